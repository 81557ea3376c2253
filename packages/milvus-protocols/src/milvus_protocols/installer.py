"""
Dependency installer protocols.

Third-party software the cluster depends on (etcd, object storage, message
queue) is installed by an external subsystem. The engine only talks to it
through these two narrow interfaces:

- DependencyInstallerProtocol: "make this release match these values"
- ReleaseBackendProtocol: the primitive release operations an installer
  implementation is built from (chart install/upgrade/inspect)
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol, runtime_checkable


class DependencyKind(str, Enum):
    """Kinds of dependency the operator can install."""

    ETCD = "etcd"
    STORAGE = "storage"
    PULSAR = "pulsar"
    KAFKA = "kafka"
    TEI = "tei"


@dataclass
class ChartRequest:
    """
    A request to install or update one dependency release.

    Attributes:
        release_name: Name of the release (e.g. "my-milvus-etcd")
        namespace: Namespace the release lives in
        chart: Chart identifier for the dependency kind
        kind: Which dependency this release provides
        values: Untyped chart values, produced from typed values at the boundary
    """

    release_name: str
    namespace: str
    chart: str
    kind: DependencyKind
    values: dict[str, Any] = field(default_factory=dict)


@runtime_checkable
class DependencyInstallerProtocol(Protocol):
    """
    Protocol for installing and updating dependency releases.

    reconcile() must be idempotent: a no-op when the release already has
    the requested values and no externally-driven update is pending.
    """

    async def reconcile(self, request: ChartRequest) -> None:
        """Install or update the release described by request."""
        ...

    async def get_values(self, namespace: str, release: str) -> dict[str, Any]:
        """Return the values of a release, or {} if it does not exist."""
        ...


@runtime_checkable
class ReleaseBackendProtocol(Protocol):
    """Primitive release operations (a chart manager)."""

    async def exists(self, namespace: str, release: str) -> bool:
        ...

    async def install(self, request: ChartRequest) -> None:
        ...

    async def get_values(self, namespace: str, release: str) -> dict[str, Any]:
        ...

    async def needs_update(self, namespace: str, release: str) -> bool:
        """True when the release is in a state that requires an upgrade."""
        ...

    async def upgrade(self, request: ChartRequest) -> None:
        ...
