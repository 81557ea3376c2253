"""
Deploy-status aggregation and component readiness.

Both read back the actual workload objects of a Milvus CR. Ownership is
discovered through the controller back-reference on each Deployment (not a
name pattern), and objects are indexed by their component label.

- ComponentsDeployStatusUpdater writes {image, generation, raw status} per
  component into milvus.status.components_deploy_status
- ComponentConditionGetter computes the MilvusReady condition
"""

from enum import Enum

from milvus_protocols import (
    ComponentDeployStatus,
    ConditionStatus,
    Condition,
    Deployment,
    DeploymentStatus,
    Milvus,
    ObjectStoreProtocol,
)

from milvus_operator.components import components_for
from milvus_operator.conditions import ConditionType, Reason, new_condition
from milvus_operator.labels import APP_LABEL_COMPONENT, is_controlled_by

DEPLOYMENT_PROGRESSING = "Progressing"
NEW_REPLICA_SET_AVAILABLE_REASON = "NewReplicaSetAvailable"
DEPLOYMENT_PAUSED_REASON = "DeploymentPaused"

MAIN_CONTAINER_NAME = "milvus"


class DeploymentState(str, Enum):
    """Rollout state of a deployment derived from its raw status."""

    PROGRESSING = "progressing"
    COMPLETE = "complete"
    PAUSED = "paused"
    FAILED = "failed"


def get_deployment_state(generation: int, status: DeploymentStatus) -> DeploymentState:
    """
    Classify a deployment rollout.

    A rollout is complete only when the controller has observed the current
    generation and reports the new replica set as available.
    """
    if status.observed_generation < generation:
        return DeploymentState.PROGRESSING
    progressing = next(
        (c for c in status.conditions if c.type == DEPLOYMENT_PROGRESSING), None
    )
    if progressing is None:
        return DeploymentState.PROGRESSING
    if progressing.reason == DEPLOYMENT_PAUSED_REASON:
        return DeploymentState.PAUSED
    if progressing.status == ConditionStatus.FALSE:
        return DeploymentState.FAILED
    if (
        progressing.status == ConditionStatus.TRUE
        and progressing.reason == NEW_REPLICA_SET_AVAILABLE_REASON
    ):
        return DeploymentState.COMPLETE
    return DeploymentState.PROGRESSING


def is_rollout_complete(record: ComponentDeployStatus) -> bool:
    return get_deployment_state(record.generation, record.status) == DeploymentState.COMPLETE


def main_container_image(deployment: Deployment) -> str:
    containers = deployment.spec.template.spec.containers
    for container in containers:
        if container.name == MAIN_CONTAINER_NAME:
            return container.image
    return containers[0].image if containers else ""


async def list_owned_deployments(
    store: ObjectStoreProtocol, milvus: Milvus
) -> dict[str, Deployment]:
    """
    Owned deployments of a Milvus CR keyed by component label.

    Raises:
        StoreError: If listing fails.
    """
    deployments = await store.list(Deployment, namespace=milvus.metadata.namespace)
    owned: dict[str, Deployment] = {}
    for deployment in deployments:
        if not is_controlled_by(deployment.metadata, milvus):
            continue
        component = deployment.metadata.labels.get(APP_LABEL_COMPONENT)
        if component:
            owned[component] = deployment
    return owned


class ComponentsDeployStatusUpdater:
    """
    Records per-component deploy status on a Milvus CR.

    Zero owned deployments yields an empty map, not an error.
    """

    def __init__(self, store: ObjectStoreProtocol) -> None:
        self.store = store

    async def update(self, milvus: Milvus) -> None:
        owned = await list_owned_deployments(self.store, milvus)
        milvus.status.components_deploy_status = {
            component: ComponentDeployStatus(
                image=main_container_image(deployment),
                generation=deployment.metadata.generation,
                status=deployment.status.model_copy(deep=True),
            )
            for component, deployment in owned.items()
        }


class ComponentConditionGetter:
    """Computes the MilvusReady condition from owned deployments."""

    def __init__(self, store: ObjectStoreProtocol) -> None:
        self.store = store

    async def get_milvus_ready_condition(self, milvus: Milvus) -> Condition:
        owned = await list_owned_deployments(self.store, milvus)

        not_healthy: list[str] = []
        running = 0
        for component in components_for(milvus.spec):
            deployment = owned.get(component.name)
            if deployment is None:
                not_healthy.append(component.name)
                continue
            desired = deployment.spec.replicas
            if desired == 0:
                continue
            running += 1
            if deployment.status.available_replicas < 1:
                not_healthy.append(component.name)

        if not_healthy:
            return new_condition(
                ConditionType.MILVUS_READY,
                ConditionStatus.FALSE,
                Reason.MILVUS_COMPONENT_NOT_HEALTHY,
                f"components not healthy: {', '.join(not_healthy)}",
            )
        if running == 0:
            return new_condition(
                ConditionType.MILVUS_READY,
                ConditionStatus.FALSE,
                Reason.MILVUS_STOPPED,
                "all components are scaled to 0",
            )
        return new_condition(
            ConditionType.MILVUS_READY,
            ConditionStatus.TRUE,
            Reason.MILVUS_HEALTHY,
            "all components are healthy",
        )
