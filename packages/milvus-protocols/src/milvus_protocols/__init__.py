"""
Protocol and resource definitions for the Milvus operator.

This package provides the typed resource models and the Protocol
definitions of the collaborators the operator consumes. It has zero
dependencies on the milvus_operator engine package.

Key protocols:
- ObjectStoreProtocol: get/list/create/update + status sub-resource update
- DependencyInstallerProtocol: install/update third-party dependencies
- ReleaseBackendProtocol: primitive chart release operations

Key types:
- Milvus: the custom resource (spec + status)
- Deployment, Ingress: owned workload objects
- Condition: a typed status fact
"""

from milvus_protocols.installer import (
    ChartRequest,
    DependencyInstallerProtocol,
    DependencyKind,
    ReleaseBackendProtocol,
)
from milvus_protocols.store import (
    AlreadyExistsError,
    NotFoundError,
    ObjectStoreProtocol,
    ResourceT,
    StoreError,
)
from milvus_protocols.types import (
    ComponentDeployStatus,
    ComponentSpec,
    ComponentsSpec,
    Condition,
    ConditionStatus,
    Container,
    DependenciesSpec,
    Deployment,
    DeploymentCondition,
    DeploymentSpec,
    DeploymentStatus,
    EmbeddedQueueSpec,
    EtcdSpec,
    ImageUpdateMode,
    InClusterSpec,
    Ingress,
    IngressSpec,
    IngressStatus,
    KafkaSpec,
    LoadBalancerIngress,
    LoadBalancerStatus,
    Milvus,
    MilvusHealth,
    MilvusMode,
    MilvusSpec,
    MilvusStatus,
    MsgStreamType,
    ObjectMeta,
    OwnerReference,
    PersistenceSpec,
    PodSpec,
    PodTemplate,
    PulsarSpec,
    StorageSpec,
    TeiSpec,
    Volume,
    VolumeMount,
)

__all__ = [
    # Protocols
    "ObjectStoreProtocol",
    "DependencyInstallerProtocol",
    "ReleaseBackendProtocol",
    # Store errors
    "StoreError",
    "NotFoundError",
    "AlreadyExistsError",
    "ResourceT",
    # Installer types
    "ChartRequest",
    "DependencyKind",
    # Enums
    "ConditionStatus",
    "ImageUpdateMode",
    "MilvusHealth",
    "MilvusMode",
    "MsgStreamType",
    # Metadata
    "ObjectMeta",
    "OwnerReference",
    "Condition",
    # Workloads
    "Container",
    "Deployment",
    "DeploymentCondition",
    "DeploymentSpec",
    "DeploymentStatus",
    "Ingress",
    "IngressStatus",
    "LoadBalancerIngress",
    "LoadBalancerStatus",
    "PodSpec",
    "PodTemplate",
    "Volume",
    "VolumeMount",
    # Milvus CR
    "ComponentDeployStatus",
    "ComponentSpec",
    "ComponentsSpec",
    "DependenciesSpec",
    "EmbeddedQueueSpec",
    "EtcdSpec",
    "InClusterSpec",
    "IngressSpec",
    "KafkaSpec",
    "Milvus",
    "MilvusSpec",
    "MilvusStatus",
    "PersistenceSpec",
    "PulsarSpec",
    "StorageSpec",
    "TeiSpec",
]
