"""
Status computations folded into a Milvus CR by the status syncer.

- health(): overall health transition function
- get_milvus_updated_condition(): whether every component runs its desired
  image, naming the component that holds the rollout otherwise
- update_ingress_status(): mirror of the owned ingress' load balancer
"""

import logging

from milvus_protocols import (
    Condition,
    ConditionStatus,
    Ingress,
    Milvus,
    MilvusHealth,
    MilvusSpec,
    NotFoundError,
    ObjectStoreProtocol,
)

from milvus_operator.components import (
    Direction,
    component_spec,
    components_for,
    desired_image,
    graph_for,
    service_component,
)
from milvus_operator.conditions import ConditionType, Reason, new_condition
from milvus_operator.rolling import is_component_updated, rolling_direction

logger = logging.getLogger(__name__)


def health(
    last_state: MilvusHealth | None, is_healthy: bool, is_stopping: bool
) -> MilvusHealth:
    """
    Next overall health of a cluster.

    Stopping always wins, then healthy. A cluster that has never been
    ready (or is resuming from Stopped) stays Pending instead of flapping
    to Unhealthy.

    >>> health(MilvusHealth.STOPPED, is_healthy=False, is_stopping=False)
    <MilvusHealth.PENDING: 'Pending'>
    """
    if is_stopping:
        return MilvusHealth.STOPPED
    if is_healthy:
        return MilvusHealth.HEALTHY
    if last_state in (MilvusHealth.PENDING, MilvusHealth.STOPPED, None):
        return MilvusHealth.PENDING
    return MilvusHealth.UNHEALTHY


def is_stopping(spec: MilvusSpec) -> bool:
    """True when every deployed component is scaled to 0."""
    return all(
        component_spec(spec, component).replicas == 0
        for component in components_for(spec)
    )


def get_milvus_updated_condition(milvus: Milvus) -> Condition:
    components = components_for(milvus.spec)
    pending = [c for c in components if not is_component_updated(milvus, c)]
    if not pending:
        return new_condition(
            ConditionType.MILVUS_UPDATED,
            ConditionStatus.TRUE,
            Reason.COMPONENTS_UPDATED,
            "all components are updated",
        )

    direction = rolling_direction(milvus.spec.components.image_update_mode)
    # All or Disabled: no rollout order to report
    if direction is None:
        first = pending[0]
        return new_condition(
            ConditionType.MILVUS_UPDATED,
            ConditionStatus.FALSE,
            Reason.COMPONENTS_UPDATING,
            f"component {first} is not updated",
        )

    order = graph_for(milvus.spec).rollout_order(direction)
    first = next(c for c in order if c in pending)
    if direction == Direction.UPGRADE:
        reason, verb = Reason.UPGRADING_IMAGE, "upgrading"
    else:
        reason, verb = Reason.DOWNGRADING_IMAGE, "downgrading"
    return new_condition(
        ConditionType.MILVUS_UPDATED,
        ConditionStatus.FALSE,
        reason,
        f"{verb} component {first} to {desired_image(milvus.spec, first)}",
    )


def ingress_name(milvus: Milvus) -> str:
    return f"{milvus.metadata.name}-milvus"


async def update_ingress_status(store: ObjectStoreProtocol, milvus: Milvus) -> None:
    """
    Mirror the owned ingress' load-balancer status into milvus.status.

    A missing ingress is not an error; status is left as is.
    """
    if component_spec(milvus.spec, service_component(milvus.spec)).ingress is None:
        return
    try:
        ingress = await store.get(Ingress, milvus.metadata.namespace, ingress_name(milvus))
    except NotFoundError:
        logger.debug(f"Ingress {ingress_name(milvus)} not found yet")
        return
    milvus.status.ingress = ingress.status.model_copy(deep=True)
