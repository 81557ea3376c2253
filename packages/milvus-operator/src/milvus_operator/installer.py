"""
Dependency install reconcile.

The operator installs in-cluster dependencies (etcd, MinIO, pulsar, kafka
and the optional text embeddings inference server) through an external
installer. This module owns the operator's side of that contract:

- typed chart values per dependency kind (EtcdValues, MinioValues, ...),
  serialized to the installer's untyped form only in ChartRequest.values
- DependencyReconciler: builds a ChartRequest per declared dependency and
  hands it to a DependencyInstallerProtocol, skipping external ones
- ReleaseInstaller: a DependencyInstallerProtocol built on a release
  backend, installing missing releases and upgrading only on value drift
  (structural equality of the typed values) or a pending external update
"""

import dataclasses
import logging
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from milvus_protocols import (
    ChartRequest,
    DependencyInstallerProtocol,
    DependencyKind,
    InClusterSpec,
    Milvus,
    MsgStreamType,
    ReleaseBackendProtocol,
)

from milvus_operator.dependencies import release_name

logger = logging.getLogger(__name__)

CHARTS: dict[DependencyKind, str] = {
    DependencyKind.ETCD: "etcd",
    DependencyKind.STORAGE: "minio",
    DependencyKind.PULSAR: "pulsar-v3",
    DependencyKind.KAFKA: "kafka",
    DependencyKind.TEI: "tei",
}

# Pulsar's chart runs its cluster initialization job only when asked to
PULSAR_INITIALIZE_KEY = "initialize"


# =============================================================================
# Typed chart values
# =============================================================================


class ChartValues(BaseModel):
    """
    Base for typed chart values.

    Unknown keys (user overrides) are kept as extras so they take part in
    equality and are written back unchanged.
    """

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="allow"
    )

    def to_values(self) -> dict[str, Any]:
        """Serialize to the installer's untyped form."""
        return self.model_dump(by_alias=True, exclude_none=True)


class PersistenceValues(ChartValues):
    enabled: bool = True
    size: str = "10Gi"


class ReplicaValues(ChartValues):
    replica_count: int = 1


class EtcdValues(ChartValues):
    replica_count: int = 1
    persistence: PersistenceValues = Field(default_factory=PersistenceValues)


class MinioValues(ChartValues):
    mode: str = "standalone"
    replicas: int = 1
    persistence: PersistenceValues = Field(default_factory=PersistenceValues)


class KafkaValues(ChartValues):
    replica_count: int = 1
    persistence: PersistenceValues = Field(default_factory=PersistenceValues)


class PulsarValues(ChartValues):
    zookeeper: ReplicaValues = Field(default_factory=ReplicaValues)
    bookkeeper: ReplicaValues = Field(default_factory=ReplicaValues)
    broker: ReplicaValues = Field(default_factory=ReplicaValues)
    proxy: ReplicaValues = Field(default_factory=ReplicaValues)
    initialize: bool | None = None


class TeiValues(ChartValues):
    replica_count: int = 1


VALUES_BY_KIND: dict[DependencyKind, type[ChartValues]] = {
    DependencyKind.ETCD: EtcdValues,
    DependencyKind.STORAGE: MinioValues,
    DependencyKind.PULSAR: PulsarValues,
    DependencyKind.KAFKA: KafkaValues,
    DependencyKind.TEI: TeiValues,
}


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge override into a copy of base."""
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def build_values(kind: DependencyKind, in_cluster: InClusterSpec) -> ChartValues:
    """Typed values for a dependency from its in-cluster sizing."""
    persistence = PersistenceValues(size=in_cluster.persistence_size)
    replicas = in_cluster.replicas
    if kind == DependencyKind.ETCD:
        typed: ChartValues = EtcdValues(replica_count=replicas, persistence=persistence)
    elif kind == DependencyKind.STORAGE:
        typed = MinioValues(
            mode="standalone" if replicas <= 1 else "distributed",
            replicas=replicas,
            persistence=persistence,
        )
    elif kind == DependencyKind.KAFKA:
        typed = KafkaValues(replica_count=replicas, persistence=persistence)
    elif kind == DependencyKind.TEI:
        typed = TeiValues(replica_count=replicas)
    else:
        typed = PulsarValues(
            zookeeper=ReplicaValues(replica_count=replicas),
            bookkeeper=ReplicaValues(replica_count=replicas),
            broker=ReplicaValues(replica_count=replicas),
            proxy=ReplicaValues(replica_count=replicas),
        )
    if not in_cluster.values:
        return typed
    return VALUES_BY_KIND[kind].model_validate(
        deep_merge(typed.to_values(), in_cluster.values)
    )


def values_equal(kind: DependencyKind, a: dict[str, Any], b: dict[str, Any]) -> bool:
    """Structural equality of two untyped value dicts through the typed model."""
    model = VALUES_BY_KIND[kind]
    return model.model_validate(a) == model.model_validate(b)


def chart_request(milvus: Milvus, kind: DependencyKind) -> ChartRequest:
    deps = milvus.spec.dependencies
    in_cluster = {
        DependencyKind.ETCD: deps.etcd.in_cluster,
        DependencyKind.STORAGE: deps.storage.in_cluster,
        DependencyKind.PULSAR: deps.pulsar.in_cluster,
        DependencyKind.KAFKA: deps.kafka.in_cluster,
        DependencyKind.TEI: deps.tei.in_cluster,
    }[kind]
    chart = CHARTS[kind]
    return ChartRequest(
        release_name=release_name(milvus, chart.split("-")[0]),
        namespace=milvus.metadata.namespace,
        chart=chart,
        kind=kind,
        values=build_values(kind, in_cluster).to_values(),
    )


# =============================================================================
# Reconcile declared dependencies
# =============================================================================


class DependencyReconciler:
    """
    Installs or updates the in-cluster dependencies a Milvus CR declares.

    Installer errors propagate to the caller for retry with backoff.

    Example:
        reconciler = DependencyReconciler(installer)
        await reconciler.reconcile_all(milvus)
    """

    def __init__(self, installer: DependencyInstallerProtocol) -> None:
        self.installer = installer

    async def reconcile_etcd(self, milvus: Milvus) -> None:
        if milvus.spec.dependencies.etcd.external:
            return
        await self.installer.reconcile(chart_request(milvus, DependencyKind.ETCD))

    async def reconcile_storage(self, milvus: Milvus) -> None:
        storage = milvus.spec.dependencies.storage
        if storage.external:
            return
        await self.installer.reconcile(chart_request(milvus, DependencyKind.STORAGE))

    async def reconcile_msg_stream(self, milvus: Milvus) -> None:
        kind = milvus.spec.dependencies.msg_stream_type
        if kind == MsgStreamType.KAFKA:
            await self.reconcile_kafka(milvus)
        elif kind == MsgStreamType.PULSAR:
            await self.reconcile_pulsar(milvus)
        # embedded or custom queues need nothing installed

    async def reconcile_kafka(self, milvus: Milvus) -> None:
        if milvus.spec.dependencies.kafka.external:
            return
        await self.installer.reconcile(chart_request(milvus, DependencyKind.KAFKA))

    async def reconcile_pulsar(self, milvus: Milvus) -> None:
        if milvus.spec.dependencies.pulsar.external:
            return
        await self.installer.reconcile(chart_request(milvus, DependencyKind.PULSAR))

    async def reconcile_tei(self, milvus: Milvus) -> None:
        if not milvus.spec.dependencies.tei.enabled:
            return
        await self.installer.reconcile(chart_request(milvus, DependencyKind.TEI))

    async def reconcile_all(self, milvus: Milvus) -> None:
        await self.reconcile_etcd(milvus)
        await self.reconcile_storage(milvus)
        await self.reconcile_msg_stream(milvus)
        await self.reconcile_tei(milvus)


# =============================================================================
# Installer implementation on a release backend
# =============================================================================


class ReleaseInstaller:
    """
    DependencyInstallerProtocol implementation on top of a release backend.

    Attributes:
        backend: Primitive release operations (install/upgrade/inspect)
    """

    def __init__(self, backend: ReleaseBackendProtocol) -> None:
        self.backend = backend

    async def reconcile(self, request: ChartRequest) -> None:
        is_pulsar = request.kind == DependencyKind.PULSAR
        values = dict(request.values)

        if not await self.backend.exists(request.namespace, request.release_name):
            if is_pulsar:
                values[PULSAR_INITIALIZE_KEY] = True
            logger.info(
                f"Installing {request.chart} release "
                f"{request.namespace}/{request.release_name}"
            )
            await self.backend.install(dataclasses.replace(request, values=values))
            return

        current = await self.backend.get_values(request.namespace, request.release_name)
        needs_update = await self.backend.needs_update(
            request.namespace, request.release_name
        )
        if is_pulsar:
            current = {k: v for k, v in current.items() if k != PULSAR_INITIALIZE_KEY}
            values.pop(PULSAR_INITIALIZE_KEY, None)

        same = values_equal(request.kind, current, values)
        if same and not needs_update:
            return

        if is_pulsar:
            values[PULSAR_INITIALIZE_KEY] = False
        logger.info(
            f"Updating {request.chart} release {request.namespace}/"
            f"{request.release_name} (values changed: {not same}, "
            f"pending update: {needs_update})"
        )
        await self.backend.upgrade(dataclasses.replace(request, values=values))

    async def get_values(self, namespace: str, release: str) -> dict[str, Any]:
        if not await self.backend.exists(namespace, release):
            return {}
        return await self.backend.get_values(namespace, release)
