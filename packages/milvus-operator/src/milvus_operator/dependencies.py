"""
Dependency condition aggregation.

Turns probe results into one named condition per dependency kind:
- EtcdReady: primary metadata store
- StorageReady: object storage
- MsgStreamReady: message stream (pulsar / kafka / embedded)

A dependency the operator does not manage (declared external, or an
embedded queue that runs inside Milvus itself) is reported True without a
check. In-cluster dependencies are checked through the single-flight
EndpointProber. Probe failures never raise; they surface as False
conditions carrying the error text.
"""

from milvus_protocols import Condition, ConditionStatus, Milvus, MsgStreamType

from milvus_operator.conditions import ConditionType, Reason, new_condition
from milvus_operator.probe import DependencyChecker, EndpointProber

# Message streams that run inside the Milvus processes (or are user-provided)
EMBEDDED_MSG_STREAMS = frozenset(
    {
        MsgStreamType.ROCKSMQ,
        MsgStreamType.NATSMQ,
        MsgStreamType.WOODPECKER,
        MsgStreamType.CUSTOM,
    }
)


def release_name(milvus: Milvus, kind: str) -> str:
    """Name of the in-cluster release of a dependency, e.g. "my-milvus-etcd"."""
    return f"{milvus.metadata.name}-{kind}"


def etcd_endpoints(milvus: Milvus) -> list[str]:
    etcd = milvus.spec.dependencies.etcd
    if etcd.endpoints:
        return list(etcd.endpoints)
    return [f"{release_name(milvus, 'etcd')}.{milvus.metadata.namespace}:2379"]


def storage_endpoint(milvus: Milvus) -> str:
    storage = milvus.spec.dependencies.storage
    if storage.endpoint:
        return storage.endpoint
    return f"{release_name(milvus, 'minio')}.{milvus.metadata.namespace}:9000"


def pulsar_endpoint(milvus: Milvus) -> str:
    pulsar = milvus.spec.dependencies.pulsar
    if pulsar.endpoint:
        return pulsar.endpoint
    return (
        f"pulsar://{release_name(milvus, 'pulsar')}-proxy"
        f".{milvus.metadata.namespace}:6650"
    )


def kafka_brokers(milvus: Milvus) -> list[str]:
    kafka = milvus.spec.dependencies.kafka
    if kafka.broker_list:
        return list(kafka.broker_list)
    return [f"{release_name(milvus, 'kafka')}.{milvus.metadata.namespace}:9092"]


def not_managed_condition(type_: str) -> Condition:
    return new_condition(
        type_,
        ConditionStatus.TRUE,
        Reason.DEPENDENCY_NOT_MANAGED,
        "dependency is not managed by the operator",
    )


class DependencyConditionAggregator:
    """
    Computes dependency conditions for a Milvus CR.

    Attributes:
        prober: Single-flight prober shared by every CR
        checker: Protocol-level health checks

    Example:
        aggregator = DependencyConditionAggregator(prober, checker)
        etcd = await aggregator.get_etcd_condition(milvus)
    """

    def __init__(self, prober: EndpointProber, checker: DependencyChecker) -> None:
        self.prober = prober
        self.checker = checker

    async def get_etcd_condition(self, milvus: Milvus) -> Condition:
        if milvus.spec.dependencies.etcd.external:
            return not_managed_condition(ConditionType.ETCD_READY)
        endpoints = etcd_endpoints(milvus)
        return await self.prober.get_condition(
            endpoints,
            lambda: self.checker.check_etcd(endpoints),
            ConditionType.ETCD_READY,
            Reason.ETCD_READY,
            Reason.ETCD_NOT_READY,
        )

    async def get_storage_condition(self, milvus: Milvus) -> Condition:
        storage = milvus.spec.dependencies.storage
        if storage.external:
            return not_managed_condition(ConditionType.STORAGE_READY)
        endpoint = storage_endpoint(milvus)
        return await self.prober.get_condition(
            [endpoint],
            lambda: self.checker.check_storage(endpoint, storage.use_ssl),
            ConditionType.STORAGE_READY,
            Reason.STORAGE_READY,
            Reason.STORAGE_NOT_READY,
        )

    async def get_msg_stream_condition(self, milvus: Milvus) -> Condition:
        deps = milvus.spec.dependencies
        kind = deps.msg_stream_type

        if kind in EMBEDDED_MSG_STREAMS:
            return not_managed_condition(ConditionType.MSG_STREAM_READY)

        if kind == MsgStreamType.KAFKA:
            if deps.kafka.external:
                return not_managed_condition(ConditionType.MSG_STREAM_READY)
            brokers = kafka_brokers(milvus)
            return await self.prober.get_condition(
                brokers,
                lambda: self.checker.check_kafka(brokers),
                ConditionType.MSG_STREAM_READY,
                Reason.MSG_STREAM_READY,
                Reason.MSG_STREAM_NOT_READY,
            )

        if deps.pulsar.external:
            return not_managed_condition(ConditionType.MSG_STREAM_READY)
        endpoint = pulsar_endpoint(milvus)
        return await self.prober.get_condition(
            [endpoint],
            lambda: self.checker.check_pulsar(endpoint),
            ConditionType.MSG_STREAM_READY,
            Reason.MSG_STREAM_READY,
            Reason.MSG_STREAM_NOT_READY,
        )
