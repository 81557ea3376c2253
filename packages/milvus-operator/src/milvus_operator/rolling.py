"""
Rolling-update image gating.

Decides whether a component may switch to its desired image now, based on
the dependency graph of the cluster's topology and the deploy status
recorded for each dependency. The check fails closed: a dependency without
a recorded deploy status is not ready.
"""

from milvus_protocols import ImageUpdateMode, Milvus

from milvus_operator.components import (
    DependencyGraph,
    Direction,
    MilvusComponent,
    desired_image,
    graph_for,
)
from milvus_operator.deploy_status import is_rollout_complete


def rolling_direction(mode: ImageUpdateMode) -> Direction | None:
    """Graph direction for a rolling mode, None for non-rolling modes."""
    if mode == ImageUpdateMode.ROLLING_UPGRADE:
        return Direction.UPGRADE
    if mode == ImageUpdateMode.ROLLING_DOWNGRADE:
        return Direction.DOWNGRADE
    return None


def is_component_updated(milvus: Milvus, component: MilvusComponent) -> bool:
    """
    True if the component's workload runs its desired image and the rollout
    of its current generation is complete.
    """
    record = milvus.status.components_deploy_status.get(component.name)
    if record is None:
        return False
    if record.image != desired_image(milvus.spec, component):
        return False
    return is_rollout_complete(record)


def blocking_dependencies(
    milvus: Milvus,
    component: MilvusComponent,
    graph: DependencyGraph | None = None,
) -> list[MilvusComponent]:
    """Dependencies that keep component from taking its new image."""
    direction = rolling_direction(milvus.spec.components.image_update_mode)
    if direction is None:
        return []
    graph = graph or graph_for(milvus.spec)
    return [
        dep
        for dep in graph.dependencies(component, direction)
        if not is_component_updated(milvus, dep)
    ]


def rolling_update_image_dependency_ready(
    milvus: Milvus, component: MilvusComponent
) -> bool:
    """
    Whether component may adopt its desired image in this pass.

    - All: always (every component updates at once)
    - Disabled: never (the image is only set when the workload is created)
    - RollingUpgrade / RollingDowngrade: the CR's current generation must be
      observed, and every dependency in the matching direction must run
      its desired image with a complete rollout
    """
    mode = milvus.spec.components.image_update_mode
    if mode == ImageUpdateMode.ALL:
        return True
    if mode == ImageUpdateMode.DISABLED:
        return False
    if milvus.status.observed_generation < milvus.metadata.generation:
        return False
    return not blocking_dependencies(milvus, component)
