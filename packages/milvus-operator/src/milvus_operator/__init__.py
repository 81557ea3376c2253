"""
Milvus Operator

Reconciliation engine for Milvus clusters. It drives every component of a
cluster through ordered rolling image changes and folds dependency probes,
workload rollouts and ingress state into one authoritative CR status.

- Rolling-update dependency graph: legal image change order per topology
- Deployment updater: desired per-component workload shape
- Endpoint prober: cached, single-flight dependency health checks
- Status syncer: periodic fast/slow status loops and metrics
- Cluster reconciler: spec-driven Deployment and dependency reconcile
"""

__version__ = "0.1.0"

from milvus_operator.components import (
    ALL_COMPONENTS,
    DependencyGraph,
    Direction,
    MilvusComponent,
    graph_for,
)
from milvus_operator.config import Settings
from milvus_operator.deployment import DeploymentUpdater, update_deployment
from milvus_operator.errors import (
    DependencyGraphError,
    OwnerReferenceError,
    ReconcileError,
)
from milvus_operator.memory_store import InMemoryObjectStore, InMemoryReleaseBackend
from milvus_operator.reconciler import ClusterReconciler
from milvus_operator.rolling import rolling_update_image_dependency_ready
from milvus_operator.runner import GroupRunner, Result
from milvus_operator.status import health
from milvus_operator.syncer import StatusSyncer

__all__ = [
    "__version__",
    # Components and graph
    "ALL_COMPONENTS",
    "DependencyGraph",
    "Direction",
    "MilvusComponent",
    "graph_for",
    "rolling_update_image_dependency_ready",
    # Services
    "ClusterReconciler",
    "DeploymentUpdater",
    "GroupRunner",
    "Result",
    "Settings",
    "StatusSyncer",
    "update_deployment",
    "health",
    # Stores
    "InMemoryObjectStore",
    "InMemoryReleaseBackend",
    # Errors
    "ReconcileError",
    "OwnerReferenceError",
    "DependencyGraphError",
]
