"""
Typed resource models shared by the operator and its collaborators.

This module defines the shapes the engine reads and writes:
- Milvus: the custom resource (spec + status) describing one cluster
- Deployment: the workload object owned by a Milvus CR, one per component
- Ingress: the optional ingress owned by a Milvus CR

Only the fields the engine touches are modelled. Field names are
snake_case in Python and camelCase on the wire, so manifests can be
loaded with Model.model_validate(yaml_dict).

Per project patterns:
- Use str enum for easy JSON serialization
- Pydantic BaseModel for validation and serialization
- Equality is structural (==), which drift detection relies on
"""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _Resource(BaseModel):
    """Base model: camelCase aliases, population by field name allowed."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =============================================================================
# Enums
# =============================================================================


class ConditionStatus(str, Enum):
    """Tri-state condition status."""

    TRUE = "True"
    FALSE = "False"
    UNKNOWN = "Unknown"


class MilvusHealth(str, Enum):
    """Overall health of a Milvus cluster as reported in status."""

    PENDING = "Pending"
    HEALTHY = "Healthy"
    UNHEALTHY = "Unhealthy"
    STOPPED = "Stopped"
    DELETING = "Deleting"


class MilvusMode(str, Enum):
    """Deployment topology."""

    STANDALONE = "standalone"
    CLUSTER = "cluster"


class ImageUpdateMode(str, Enum):
    """
    How image changes are rolled out across components.

    - ALL: every component takes the new image at once
    - ROLLING_UPGRADE: follow the dependency graph upwards
    - ROLLING_DOWNGRADE: follow the dependency graph in reverse
    - DISABLED: image is set when a workload is created and never changed
    """

    ALL = "all"
    ROLLING_UPGRADE = "rollingUpgrade"
    ROLLING_DOWNGRADE = "rollingDowngrade"
    DISABLED = "disabled"


class MsgStreamType(str, Enum):
    """Message stream implementation used by the cluster."""

    PULSAR = "pulsar"
    KAFKA = "kafka"
    ROCKSMQ = "rocksmq"
    NATSMQ = "natsmq"
    WOODPECKER = "woodpecker"
    CUSTOM = "custom"


# =============================================================================
# Common metadata
# =============================================================================


class OwnerReference(_Resource):
    """Back-reference from an owned object to its owner."""

    api_version: str = ""
    kind: str = ""
    name: str = ""
    uid: str = ""
    controller: bool = False
    block_owner_deletion: bool = False


class ObjectMeta(_Resource):
    """Subset of object metadata used by the engine."""

    name: str = ""
    namespace: str = ""
    uid: str = ""
    generation: int = 0
    labels: dict[str, str] = Field(default_factory=dict)
    owner_references: list[OwnerReference] = Field(default_factory=list)
    deletion_timestamp: datetime | None = None


class Condition(_Resource):
    """
    A named, timestamped tri-state fact attached to status.

    Conditions are frozen: a cycle computes a new Condition rather than
    mutating the one already in status.
    """

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True
    )

    type: str
    status: ConditionStatus = ConditionStatus.UNKNOWN
    reason: str = ""
    message: str = ""
    last_transition_time: datetime | None = None


# =============================================================================
# Workload objects
# =============================================================================


class VolumeMount(_Resource):
    name: str
    mount_path: str
    sub_path: str = ""
    read_only: bool = False


class Volume(_Resource):
    """
    A pod volume. Exactly one of the source fields is expected to be set.
    """

    name: str
    config_map_name: str | None = None
    empty_dir: bool = False
    claim_name: str | None = None


class Container(_Resource):
    name: str
    image: str = ""
    args: list[str] = Field(default_factory=list)
    env: dict[str, str] = Field(default_factory=dict)
    volume_mounts: list[VolumeMount] = Field(default_factory=list)


class PodSpec(_Resource):
    containers: list[Container] = Field(default_factory=list)
    init_containers: list[Container] = Field(default_factory=list)
    volumes: list[Volume] = Field(default_factory=list)
    host_network: bool = False
    dns_policy: str = ""


class PodTemplate(_Resource):
    labels: dict[str, str] = Field(default_factory=dict)
    spec: PodSpec = Field(default_factory=PodSpec)


class DeploymentSpec(_Resource):
    replicas: int | None = None
    template: PodTemplate = Field(default_factory=PodTemplate)


class DeploymentCondition(_Resource):
    type: str
    status: ConditionStatus = ConditionStatus.UNKNOWN
    reason: str = ""
    message: str = ""


class DeploymentStatus(_Resource):
    """Raw rollout progress facts reported for a deployment."""

    observed_generation: int = 0
    replicas: int = 0
    updated_replicas: int = 0
    ready_replicas: int = 0
    available_replicas: int = 0
    conditions: list[DeploymentCondition] = Field(default_factory=list)


class Deployment(_Resource):
    api_version: str = "apps/v1"
    kind: str = "Deployment"
    metadata: ObjectMeta = Field(default_factory=ObjectMeta)
    spec: DeploymentSpec = Field(default_factory=DeploymentSpec)
    status: DeploymentStatus = Field(default_factory=DeploymentStatus)


class LoadBalancerIngress(_Resource):
    ip: str = ""
    hostname: str = ""


class LoadBalancerStatus(_Resource):
    ingress: list[LoadBalancerIngress] = Field(default_factory=list)


class IngressStatus(_Resource):
    load_balancer: LoadBalancerStatus = Field(default_factory=LoadBalancerStatus)


class Ingress(_Resource):
    api_version: str = "networking.k8s.io/v1"
    kind: str = "Ingress"
    metadata: ObjectMeta = Field(default_factory=ObjectMeta)
    status: IngressStatus = Field(default_factory=IngressStatus)


# =============================================================================
# Milvus custom resource
# =============================================================================


class IngressSpec(_Resource):
    hosts: list[str] = Field(default_factory=list)
    ingress_class_name: str = ""


class ComponentSpec(_Resource):
    """
    Desired shape of one component.

    Attributes:
        image: Per-component image override; the global image is used if empty.
        replicas: Desired replica count. None means 1, -1 means externally
            managed (e.g. by an autoscaler) and is never overwritten.
        commands: Overrides the component's default run command.
        init_containers: Extra init containers appended after the config one.
        ingress: Ingress for the externally served component.
    """

    image: str = ""
    replicas: int | None = None
    commands: list[str] = Field(default_factory=list)
    init_containers: list[Container] = Field(default_factory=list)
    ingress: IngressSpec | None = None


class ComponentsSpec(_Resource):
    image: str = "milvusdb/milvus:v2.5.4"
    image_update_mode: ImageUpdateMode = ImageUpdateMode.ALL
    update_tool_image: bool = False
    host_network: bool = False
    dns_policy: str = ""

    standalone: ComponentSpec | None = None
    proxy: ComponentSpec | None = None
    mix_coord: ComponentSpec | None = None
    root_coord: ComponentSpec | None = None
    data_coord: ComponentSpec | None = None
    query_coord: ComponentSpec | None = None
    index_coord: ComponentSpec | None = None
    data_node: ComponentSpec | None = None
    query_node: ComponentSpec | None = None
    index_node: ComponentSpec | None = None
    streaming_node: ComponentSpec | None = None

    def component_spec(self, field_name: str) -> ComponentSpec:
        """Return the spec for a component, defaulted when not declared."""
        spec = getattr(self, field_name)
        return spec if spec is not None else ComponentSpec()


class InClusterSpec(_Resource):
    """Sizing for a dependency the operator installs in-cluster."""

    replicas: int = 1
    persistence_size: str = "10Gi"
    values: dict[str, Any] = Field(default_factory=dict)


class EtcdSpec(_Resource):
    endpoints: list[str] = Field(default_factory=list)
    external: bool = False
    in_cluster: InClusterSpec = Field(default_factory=InClusterSpec)


class StorageSpec(_Resource):
    type: str = "MinIO"
    endpoint: str = ""
    use_ssl: bool = Field(False, alias="useSSL")
    bucket_name: str = "milvus-bucket"
    external: bool = False
    in_cluster: InClusterSpec = Field(default_factory=InClusterSpec)


class PulsarSpec(_Resource):
    endpoint: str = ""
    external: bool = False
    in_cluster: InClusterSpec = Field(default_factory=InClusterSpec)


class KafkaSpec(_Resource):
    broker_list: list[str] = Field(default_factory=list)
    external: bool = False
    in_cluster: InClusterSpec = Field(default_factory=InClusterSpec)


class TeiSpec(_Resource):
    """Text embeddings inference server installed beside the cluster."""

    enabled: bool = False
    in_cluster: InClusterSpec = Field(default_factory=InClusterSpec)


class PersistenceSpec(_Resource):
    enabled: bool = False
    existing_claim: str = ""
    storage_class: str = ""
    size: str = "5Gi"


class EmbeddedQueueSpec(_Resource):
    """Options of an embedded message queue (rocksmq or natsmq)."""

    persistence: PersistenceSpec = Field(default_factory=PersistenceSpec)


class DependenciesSpec(_Resource):
    etcd: EtcdSpec = Field(default_factory=EtcdSpec)
    storage: StorageSpec = Field(default_factory=StorageSpec)
    msg_stream_type: MsgStreamType = MsgStreamType.ROCKSMQ
    pulsar: PulsarSpec = Field(default_factory=PulsarSpec)
    kafka: KafkaSpec = Field(default_factory=KafkaSpec)
    rocks_mq: EmbeddedQueueSpec = Field(default_factory=EmbeddedQueueSpec, alias="rocksmq")
    nats_mq: EmbeddedQueueSpec = Field(default_factory=EmbeddedQueueSpec, alias="natsmq")
    tei: TeiSpec = Field(default_factory=TeiSpec)

    def embedded_queue(self) -> EmbeddedQueueSpec | None:
        """Options of the selected message stream when it runs inside Milvus."""
        if self.msg_stream_type == MsgStreamType.ROCKSMQ:
            return self.rocks_mq
        if self.msg_stream_type == MsgStreamType.NATSMQ:
            return self.nats_mq
        return None


class MilvusSpec(_Resource):
    mode: MilvusMode = MilvusMode.STANDALONE
    components: ComponentsSpec = Field(default_factory=ComponentsSpec)
    dependencies: DependenciesSpec = Field(default_factory=DependenciesSpec)


class ComponentDeployStatus(_Resource):
    """What was last observed for one component's workload."""

    image: str = ""
    generation: int = 0
    status: DeploymentStatus = Field(default_factory=DeploymentStatus)


class MilvusStatus(_Resource):
    status: MilvusHealth | None = None
    conditions: list[Condition] = Field(default_factory=list)
    components_deploy_status: dict[str, ComponentDeployStatus] = Field(
        default_factory=dict
    )
    ingress: IngressStatus | None = None
    current_image: str = ""
    observed_generation: int = 0


class Milvus(_Resource):
    api_version: str = "milvus.io/v1beta1"
    kind: str = "Milvus"
    metadata: ObjectMeta = Field(default_factory=ObjectMeta)
    spec: MilvusSpec = Field(default_factory=MilvusSpec)
    status: MilvusStatus = Field(default_factory=MilvusStatus)
