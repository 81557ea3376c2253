"""
Factory wiring the operator services together.

Services are constructed once here and injected; nothing in the engine
reaches for a module-level singleton.
"""

from dataclasses import dataclass
from pathlib import Path

import httpx
import yaml
from pydantic import BaseModel

from milvus_protocols import Deployment, Ingress, Milvus, ObjectStoreProtocol

from milvus_operator.config import Settings
from milvus_operator.dependencies import DependencyConditionAggregator
from milvus_operator.deploy_status import (
    ComponentConditionGetter,
    ComponentsDeployStatusUpdater,
)
from milvus_operator.installer import DependencyReconciler, ReleaseInstaller
from milvus_operator.memory_store import InMemoryObjectStore, InMemoryReleaseBackend
from milvus_operator.probe import DependencyChecker, EndpointCheckCache, EndpointProber
from milvus_operator.reconciler import ClusterReconciler
from milvus_operator.runner import GroupRunner
from milvus_operator.syncer import StatusSyncer

# Manifest kinds the CLI can load
MANIFEST_KINDS: dict[str, type[BaseModel]] = {
    "Milvus": Milvus,
    "Deployment": Deployment,
    "Ingress": Ingress,
}


@dataclass
class Services:
    """Everything a CLI command needs, built from one Settings."""

    store: ObjectStoreProtocol
    reconciler: ClusterReconciler
    syncer: StatusSyncer


def load_manifests(paths: list[Path]) -> list[BaseModel]:
    """
    Parse YAML manifests (multi-document files allowed).

    Raises:
        ValueError: On a document of an unsupported kind.
    """
    objects: list[BaseModel] = []
    for path in paths:
        with path.open() as f:
            for doc in yaml.safe_load_all(f):
                if not doc:
                    continue
                kind = doc.get("kind")
                model = MANIFEST_KINDS.get(kind)
                if model is None:
                    raise ValueError(
                        f"{path}: unsupported kind {kind!r} "
                        f"(expected one of {', '.join(MANIFEST_KINDS)})"
                    )
                objects.append(model.model_validate(doc))
    return objects


async def create_memory_store(paths: list[Path], namespace: str) -> InMemoryObjectStore:
    """In-memory store seeded from manifests; objects without a namespace get namespace."""
    store = InMemoryObjectStore()
    for obj in load_manifests(paths):
        meta = obj.metadata  # type: ignore[attr-defined]
        meta.namespace = meta.namespace or namespace or "default"
        await store.create(obj)
    return store


def create_services(
    settings: Settings,
    store: ObjectStoreProtocol,
    http: httpx.AsyncClient,
) -> Services:
    """
    Build the reconciler and the status syncer on top of store.

    Example:
        async with httpx.AsyncClient() as http:
            services = create_services(Settings(), store, http)
            await services.reconciler.reconcile_all()
    """
    runner = GroupRunner(max_concurrency=settings.max_concurrency)
    prober = EndpointProber(
        EndpointCheckCache(ttl_seconds=settings.probe_cache_ttl_s),
        timeout_seconds=settings.dependency_check_timeout_s,
    )
    aggregator = DependencyConditionAggregator(prober, DependencyChecker(http=http))
    installer = ReleaseInstaller(InMemoryReleaseBackend())

    reconciler = ClusterReconciler(
        store,
        DependencyReconciler(installer),
        tool_image=settings.tool_image,
        runner=runner,
    )
    syncer = StatusSyncer(
        store,
        aggregator,
        ComponentConditionGetter(store),
        ComponentsDeployStatusUpdater(store),
        runner,
        settings,
    )
    return Services(store=store, reconciler=reconciler, syncer=syncer)
