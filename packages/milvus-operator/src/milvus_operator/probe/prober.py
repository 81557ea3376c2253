"""
Single-flight dependency prober.

EndpointProber turns a boolean-ish probe function into a Condition while
making sure that:
- a fresh cached result is reused without probing
- only one probe per endpoint set runs at a time; concurrent callers get
  the cached condition immediately (Unknown when nothing is cached yet)
- a probe never runs past the configured deadline
- errors and timeouts become False conditions and are cached like any
  other result, so a dead dependency stays cheap to report
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable

from milvus_protocols import Condition, ConditionStatus

from milvus_operator.conditions import Reason, new_condition
from milvus_operator.probe.cache import EndpointCheckCache

logger = logging.getLogger(__name__)

ProbeFunc = Callable[[], Awaitable[bool]]


class EndpointProber:
    """
    Runs dependency probes through an EndpointCheckCache.

    Attributes:
        cache: Shared cache of probe results
        timeout_seconds: Deadline for a single probe

    Example:
        prober = EndpointProber(EndpointCheckCache(), timeout_seconds=3)
        condition = await prober.get_condition(
            ["etcd-0:2379"],
            lambda: checker.check_etcd(["etcd-0:2379"]),
            ConditionType.ETCD_READY,
            Reason.ETCD_READY,
            Reason.ETCD_NOT_READY,
        )
    """

    def __init__(self, cache: EndpointCheckCache, timeout_seconds: float = 3.0) -> None:
        self.cache = cache
        self.timeout_seconds = timeout_seconds

    async def get_condition(
        self,
        endpoints: Iterable[str],
        probe: ProbeFunc,
        condition_type: str,
        ready_reason: str,
        not_ready_reason: str,
    ) -> Condition:
        endpoints = list(endpoints)
        cached, initialized = self.cache.get(endpoints)
        if initialized and cached is not None and self.cache.is_fresh(endpoints):
            return cached

        async with self.cache.probing(endpoints) as owner:
            if not owner:
                # Another caller is probing; serve what we have
                if initialized and cached is not None:
                    return cached
                return new_condition(
                    condition_type,
                    ConditionStatus.UNKNOWN,
                    Reason.PROBE_PENDING,
                    "dependency check in progress",
                )

            condition = await self._probe(
                endpoints, probe, condition_type, ready_reason, not_ready_reason
            )
            self.cache.set(endpoints, condition)
            return condition

    async def _probe(
        self,
        endpoints: list[str],
        probe: ProbeFunc,
        condition_type: str,
        ready_reason: str,
        not_ready_reason: str,
    ) -> Condition:
        try:
            healthy = await asyncio.wait_for(probe(), timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            logger.info(f"Probe of {endpoints} timed out after {self.timeout_seconds}s")
            return new_condition(
                condition_type,
                ConditionStatus.FALSE,
                not_ready_reason,
                f"check timed out after {self.timeout_seconds}s",
            )
        except Exception as e:
            logger.info(f"Probe of {endpoints} failed: {e}")
            return new_condition(
                condition_type, ConditionStatus.FALSE, not_ready_reason, str(e)
            )

        if healthy:
            return new_condition(
                condition_type, ConditionStatus.TRUE, ready_reason, "healthy"
            )
        return new_condition(
            condition_type,
            ConditionStatus.FALSE,
            not_ready_reason,
            f"{', '.join(endpoints) or 'endpoint'} not healthy",
        )
