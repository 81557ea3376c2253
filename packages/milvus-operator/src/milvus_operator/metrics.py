"""Prometheus metrics for the Milvus operator."""

from collections.abc import Iterable

from prometheus_client import Counter, Gauge

from milvus_protocols import Milvus, MilvusHealth

# Number of Milvus CRs per health bucket
MILVUS_TOTAL = Gauge(
    "milvus_total_count",
    "Total count of Milvus clusters by status",
    ["status"],
)

STATUS_SYNC_ERRORS = Counter(
    "milvus_status_sync_errors_total",
    "Status sync cycles that failed for a single CR",
    ["loop"],
)


def health_counts(milvuses: Iterable[Milvus]) -> dict[MilvusHealth, int]:
    """Count CRs per health bucket; every bucket is present, CRs without status are skipped."""
    counts = {health: 0 for health in MilvusHealth}
    for milvus in milvuses:
        if milvus.status.status is not None:
            counts[milvus.status.status] += 1
    return counts


def set_milvus_counts(counts: dict[MilvusHealth, int]) -> None:
    """Publish one gauge value per health bucket."""
    for health, count in counts.items():
        MILVUS_TOTAL.labels(status=health.value).set(count)


def record_sync_error(loop: str) -> None:
    STATUS_SYNC_ERRORS.labels(loop=loop).inc()
