"""
Condition types, reasons and helpers for Milvus status.

Status keeps at most one Condition per type. set_condition() replaces the
entry of the same type in place and only moves last_transition_time when
the tri-state status actually changes, so re-computing an unchanged
condition every cycle does not look like a transition.
"""

from datetime import datetime, timezone

from milvus_protocols import Condition, ConditionStatus


class ConditionType:
    """Condition types written by the operator."""

    ETCD_READY = "EtcdReady"
    STORAGE_READY = "StorageReady"
    MSG_STREAM_READY = "MsgStreamReady"
    MILVUS_READY = "MilvusReady"
    MILVUS_UPDATED = "MilvusUpdated"


# Conditions that must all be True for a cluster to be Healthy
REQUIRED_CONDITIONS: tuple[str, ...] = (
    ConditionType.ETCD_READY,
    ConditionType.STORAGE_READY,
    ConditionType.MSG_STREAM_READY,
    ConditionType.MILVUS_READY,
)


class Reason:
    """Reason codes carried by conditions."""

    DEPENDENCY_NOT_MANAGED = "DependencyNotManaged"
    PROBE_PENDING = "ProbePending"

    ETCD_READY = "EtcdReady"
    ETCD_NOT_READY = "EtcdNotReady"
    STORAGE_READY = "StorageReady"
    STORAGE_NOT_READY = "StorageNotReady"
    MSG_STREAM_READY = "MsgStreamReady"
    MSG_STREAM_NOT_READY = "MsgStreamNotReady"

    MILVUS_HEALTHY = "MilvusHealthy"
    MILVUS_COMPONENT_NOT_HEALTHY = "MilvusComponentNotHealthy"
    MILVUS_STOPPED = "MilvusStopped"

    COMPONENTS_UPDATED = "MilvusComponentsUpdated"
    COMPONENTS_UPDATING = "MilvusComponentsUpdating"
    UPGRADING_IMAGE = "MilvusUpgradingImage"
    DOWNGRADING_IMAGE = "MilvusDowngradingImage"


def new_condition(
    type_: str,
    status: ConditionStatus,
    reason: str,
    message: str = "",
) -> Condition:
    """Build a condition without a transition time (set_condition stamps it)."""
    return Condition(type=type_, status=status, reason=reason, message=message)


def get_condition(conditions: list[Condition], type_: str) -> Condition | None:
    for condition in conditions:
        if condition.type == type_:
            return condition
    return None


def is_condition_true(conditions: list[Condition], type_: str) -> bool:
    condition = get_condition(conditions, type_)
    return condition is not None and condition.status == ConditionStatus.TRUE


def set_condition(
    conditions: list[Condition],
    condition: Condition,
    now: datetime | None = None,
) -> list[Condition]:
    """
    Return a new condition list with condition applied.

    Args:
        conditions: Current conditions (not modified)
        condition: Newly computed condition
        now: Transition timestamp (defaults to current UTC time)

    Returns:
        List where the entry of the same type is replaced (position kept)
        or condition is appended. last_transition_time is carried over
        when the status did not change.
    """
    now = now or datetime.now(timezone.utc)
    existing = get_condition(conditions, condition.type)
    if existing is not None and existing.status == condition.status:
        stamped = condition.model_copy(
            update={"last_transition_time": existing.last_transition_time}
        )
    else:
        stamped = condition.model_copy(update={"last_transition_time": now})

    result = list(conditions)
    for i, c in enumerate(result):
        if c.type == condition.type:
            result[i] = stamped
            return result
    result.append(stamped)
    return result
