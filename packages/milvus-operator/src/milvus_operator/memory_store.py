"""
In-memory ObjectStoreProtocol implementation.

Used by the CLI (manifests loaded from YAML) and by tests. Objects are
stored and returned as deep copies, so callers only affect the store
through explicit writes. Semantics follow an API server closely enough for
the engine:

- create() fails on a taken name, starts generation at 1 and assigns a uid
- update() writes metadata and spec, keeps the stored status, and bumps
  generation when the spec changed
- update_status() writes only the status
"""

import asyncio
import logging
import uuid
from typing import Any

from pydantic import BaseModel

from milvus_protocols import AlreadyExistsError, ChartRequest, NotFoundError, ResourceT

logger = logging.getLogger(__name__)

_Key = tuple[str, str, str]


def _meta(obj: BaseModel) -> Any:
    return obj.metadata  # type: ignore[attr-defined]


def _kind_name(kind: type[BaseModel]) -> str:
    return kind.__name__


class InMemoryObjectStore:
    """
    Dict-backed object store keyed by (kind, namespace, name).

    Example:
        store = InMemoryObjectStore()
        await store.create(milvus)
        milvus = await store.get(Milvus, "default", "my-release")
    """

    def __init__(self) -> None:
        self._objects: dict[_Key, BaseModel] = {}
        self._lock = asyncio.Lock()

    def _key(self, kind: type[BaseModel], namespace: str, name: str) -> _Key:
        return (_kind_name(kind), namespace, name)

    def _key_of(self, obj: BaseModel) -> _Key:
        meta = _meta(obj)
        return self._key(type(obj), meta.namespace, meta.name)

    def _stored(self, obj: BaseModel) -> BaseModel:
        key = self._key_of(obj)
        stored = self._objects.get(key)
        if stored is None:
            raise NotFoundError(*key)
        return stored

    async def get(self, kind: type[ResourceT], namespace: str, name: str) -> ResourceT:
        stored = self._objects.get(self._key(kind, namespace, name))
        if stored is None:
            raise NotFoundError(_kind_name(kind), namespace, name)
        return stored.model_copy(deep=True)  # type: ignore[return-value]

    async def create(self, obj: BaseModel) -> None:
        async with self._lock:
            key = self._key_of(obj)
            if key in self._objects:
                raise AlreadyExistsError(*key)
            stored = obj.model_copy(deep=True)
            meta = _meta(stored)
            meta.generation = max(meta.generation, 1)
            meta.uid = meta.uid or str(uuid.uuid4())
            self._objects[key] = stored
            logger.debug(f"Created {key[0]} {key[1]}/{key[2]}")

    async def update(self, obj: BaseModel) -> None:
        async with self._lock:
            current = self._stored(obj)
            updated = obj.model_copy(deep=True)
            meta = _meta(updated)
            meta.generation = _meta(current).generation
            if hasattr(updated, "spec") and updated.spec != current.spec:  # type: ignore[attr-defined]
                meta.generation += 1
            if hasattr(updated, "status"):
                updated.status = current.status.model_copy(deep=True)  # type: ignore[attr-defined]
            self._objects[self._key_of(obj)] = updated

    async def update_status(self, obj: BaseModel) -> None:
        async with self._lock:
            current = self._stored(obj)
            current.status = obj.status.model_copy(deep=True)  # type: ignore[attr-defined]

    async def delete(self, kind: type[BaseModel], namespace: str, name: str) -> None:
        async with self._lock:
            if self._objects.pop(self._key(kind, namespace, name), None) is None:
                raise NotFoundError(_kind_name(kind), namespace, name)

    # Defined last: the method name shadows the builtin inside the class body
    async def list(
        self,
        kind: type[ResourceT],
        namespace: str | None = None,
        labels: dict[str, str] | None = None,
    ) -> "list[ResourceT]":
        found = []
        for (kind_name, ns, _), obj in sorted(self._objects.items()):
            if kind_name != _kind_name(kind):
                continue
            if namespace is not None and ns != namespace:
                continue
            obj_labels = _meta(obj).labels
            if labels and any(obj_labels.get(k) != v for k, v in labels.items()):
                continue
            found.append(obj.model_copy(deep=True))
        return found


class InMemoryReleaseBackend:
    """
    ReleaseBackendProtocol implementation that only records releases.

    Lets the CLI run the full dependency reconcile without a cluster.
    """

    def __init__(self) -> None:
        self.releases: dict[tuple[str, str], ChartRequest] = {}
        self.pending_updates: set[tuple[str, str]] = set()

    async def exists(self, namespace: str, release: str) -> bool:
        return (namespace, release) in self.releases

    async def install(self, request: ChartRequest) -> None:
        self.releases[(request.namespace, request.release_name)] = request

    async def get_values(self, namespace: str, release: str) -> dict[str, Any]:
        return dict(self.releases[(namespace, release)].values)

    async def needs_update(self, namespace: str, release: str) -> bool:
        return (namespace, release) in self.pending_updates

    async def upgrade(self, request: ChartRequest) -> None:
        key = (request.namespace, request.release_name)
        self.releases[key] = request
        self.pending_updates.discard(key)
