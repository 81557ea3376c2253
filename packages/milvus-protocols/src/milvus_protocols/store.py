"""
Object store protocol definition.

The ObjectStoreProtocol is the narrow interface the engine uses to read and
write resources. Implementations wrap a real API server client; tests and
the CLI use the in-memory implementation shipped with milvus_operator.

Writes are split in two paths:
- update(): spec/metadata path, used by the spec-driven reconcile
- update_status(): status sub-resource path, used by the status syncer

Keeping them apart means a status write never races a spec write.
"""

from typing import Protocol, TypeVar, runtime_checkable

from pydantic import BaseModel

ResourceT = TypeVar("ResourceT", bound=BaseModel)


class StoreError(Exception):
    """Base class for object store failures."""


class NotFoundError(StoreError):
    """
    Raised when a requested object does not exist.

    Attributes:
        kind: Resource kind that was requested
        namespace: Namespace of the request
        name: Name of the request
    """

    def __init__(self, kind: str, namespace: str, name: str) -> None:
        self.kind = kind
        self.namespace = namespace
        self.name = name
        super().__init__(f"{kind} {namespace}/{name} not found")


class AlreadyExistsError(StoreError):
    """Raised when creating an object whose name is already taken."""

    def __init__(self, kind: str, namespace: str, name: str) -> None:
        self.kind = kind
        self.namespace = namespace
        self.name = name
        super().__init__(f"{kind} {namespace}/{name} already exists")


@runtime_checkable
class ObjectStoreProtocol(Protocol):
    """
    Protocol for the generic object store.

    Resources are addressed by model class plus namespace/name. Returned
    objects are copies; mutating them has no effect until written back.
    """

    async def get(
        self, kind: type[ResourceT], namespace: str, name: str
    ) -> ResourceT:
        """
        Get one object.

        Raises:
            NotFoundError: If the object does not exist.
            StoreError: On any other failure.
        """
        ...

    async def list(
        self,
        kind: type[ResourceT],
        namespace: str | None = None,
        labels: dict[str, str] | None = None,
    ) -> list[ResourceT]:
        """
        List objects of a kind, optionally filtered by namespace and labels.

        Raises:
            StoreError: On failure.
        """
        ...

    async def create(self, obj: BaseModel) -> None:
        """Create a new object."""
        ...

    async def update(self, obj: BaseModel) -> None:
        """Write spec and metadata of an existing object (status is ignored)."""
        ...

    async def update_status(self, obj: BaseModel) -> None:
        """Write only the status of an existing object."""
        ...
