"""
Status syncer: the periodic orchestrator that folds observations into status.

One status cycle for a CR (update_status_routine):
1. fan out the dependency conditions and the readiness condition through
   the GroupRunner; the first error aborts the cycle for this CR
2. record per-component deploy status
3. compute the MilvusUpdated condition; record current_image once True
4. mirror the ingress load balancer
5. compute overall health and write through the status sub-resource path

Nothing is persisted when a step fails, so a CR never carries a partially
computed status.

Three loops run concurrently until shutdown:
- fast: CRs that are not (Healthy and Updated)
- slow: CRs that are Healthy and Updated
- metrics: republish the per-health gauge

Shutdown is coordinated through an asyncio.Event set by SIGINT/SIGTERM;
loops sleep with wait_for on that event so they stop promptly.
"""

import asyncio
import functools
import logging
import signal
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass

from milvus_protocols import (
    ConditionStatus,
    Milvus,
    MilvusHealth,
    ObjectStoreProtocol,
)

from milvus_operator.conditions import (
    REQUIRED_CONDITIONS,
    ConditionType,
    is_condition_true,
    set_condition,
)
from milvus_operator.config import Settings
from milvus_operator.dependencies import DependencyConditionAggregator
from milvus_operator.deploy_status import (
    ComponentConditionGetter,
    ComponentsDeployStatusUpdater,
)
from milvus_operator.labels import object_key
from milvus_operator.metrics import health_counts, record_sync_error, set_milvus_counts
from milvus_operator.runner import GroupRunner, Result
from milvus_operator.status import (
    get_milvus_updated_condition,
    health,
    is_stopping,
    update_ingress_status,
)

logger = logging.getLogger(__name__)


@dataclass
class PeriodicTask:
    """A coroutine function run every interval_s seconds until shutdown."""

    name: str
    func: Callable[[], Awaitable[None]]
    interval_s: float


def is_healthy_and_updated(milvus: Milvus) -> bool:
    return milvus.status.status == MilvusHealth.HEALTHY and is_condition_true(
        milvus.status.conditions, ConditionType.MILVUS_UPDATED
    )


class StatusSyncer:
    """
    Periodically recomputes and persists the status of every Milvus CR.

    Attributes:
        store: Object store (status writes use update_status only)
        aggregator: Dependency conditions
        condition_getter: MilvusReady condition
        deploy_status_updater: Per-component deploy status
        runner: Bounded fan-out shared by all loops
        settings: Loop intervals and watched namespace

    Example:
        syncer = StatusSyncer(store, aggregator, getter, updater, runner, settings)
        await syncer.run()  # Runs until SIGINT/SIGTERM
    """

    def __init__(
        self,
        store: ObjectStoreProtocol,
        aggregator: DependencyConditionAggregator,
        condition_getter: ComponentConditionGetter,
        deploy_status_updater: ComponentsDeployStatusUpdater,
        runner: GroupRunner,
        settings: Settings,
    ) -> None:
        self.store = store
        self.aggregator = aggregator
        self.condition_getter = condition_getter
        self.deploy_status_updater = deploy_status_updater
        self.runner = runner
        self.settings = settings
        self._shutdown = asyncio.Event()

    # -------------------------------------------------------------------------
    # One CR
    # -------------------------------------------------------------------------

    async def update_status_routine(self, milvus: Milvus) -> None:
        """
        Run one status cycle for milvus and persist the result.

        CRs whose status was never initialized are skipped; the reconciler
        owns that first write.

        Raises:
            Exception: Any store or aggregation error. Status is not written.
        """
        if milvus.status.status is None:
            return

        if milvus.metadata.deletion_timestamp is not None:
            milvus.status.status = MilvusHealth.DELETING
            await self.store.update_status(milvus)
            return

        etcd, storage, msg_stream, ready = await self.runner.run(
            [
                self.aggregator.get_etcd_condition(milvus),
                self.aggregator.get_storage_condition(milvus),
                self.aggregator.get_msg_stream_condition(milvus),
                self.condition_getter.get_milvus_ready_condition(milvus),
            ]
        )

        await self.deploy_status_updater.update(milvus)
        updated = get_milvus_updated_condition(milvus)

        conditions = milvus.status.conditions
        for condition in (etcd, storage, msg_stream, ready, updated):
            conditions = set_condition(conditions, condition)
        milvus.status.conditions = conditions

        if updated.status == ConditionStatus.TRUE:
            milvus.status.current_image = milvus.spec.components.image

        await update_ingress_status(self.store, milvus)

        is_healthy = all(is_condition_true(conditions, t) for t in REQUIRED_CONDITIONS)
        milvus.status.status = health(
            milvus.status.status, is_healthy, is_stopping(milvus.spec)
        )
        milvus.status.observed_generation = milvus.metadata.generation
        await self.store.update_status(milvus)

    # -------------------------------------------------------------------------
    # Loops
    # -------------------------------------------------------------------------

    async def list_milvuses(self) -> list[Milvus]:
        return await self.store.list(Milvus, namespace=self.settings.namespace or None)

    async def _sync(self, loop_name: str, milvuses: Sequence[Milvus]) -> None:
        results = await self.runner.run_diff_args(self.update_status_routine, milvuses)
        self._log_errors(loop_name, milvuses, results)

    def _log_errors(
        self, loop_name: str, milvuses: Sequence[Milvus], results: Sequence[Result]
    ) -> None:
        for milvus, result in zip(milvuses, results):
            if result.error is not None:
                record_sync_error(loop_name)
                logger.error(
                    f"{loop_name}: status sync of {object_key(milvus.metadata)} "
                    f"failed: {result.error}"
                )

    async def sync_unhealthy_or_updating(self) -> None:
        """Fast loop body: CRs that still need attention."""
        milvuses = [
            m
            for m in await self.list_milvuses()
            if m.status.status is not None and not is_healthy_and_updated(m)
        ]
        await self._sync("fast", milvuses)

    async def sync_healthy_updated(self) -> None:
        """Slow loop body: healthy, fully updated CRs."""
        milvuses = [m for m in await self.list_milvuses() if is_healthy_and_updated(m)]
        await self._sync("slow", milvuses)

    async def sync_all(self) -> None:
        """One status cycle for every initialized CR."""
        milvuses = [
            m for m in await self.list_milvuses() if m.status.status is not None
        ]
        await self._sync("all", milvuses)

    async def update_metrics(self) -> None:
        set_milvus_counts(health_counts(await self.list_milvuses()))

    # -------------------------------------------------------------------------
    # Daemon
    # -------------------------------------------------------------------------

    def tasks(self) -> list[PeriodicTask]:
        return [
            PeriodicTask(
                "fast", self.sync_unhealthy_or_updating, self.settings.fast_sync_interval_s
            ),
            PeriodicTask(
                "slow", self.sync_healthy_updated, self.settings.slow_sync_interval_s
            ),
            PeriodicTask("metrics", self.update_metrics, self.settings.metrics_interval_s),
        ]

    async def run(
        self,
        extra_tasks: Sequence[PeriodicTask] = (),
        handle_signals: bool = True,
    ) -> None:
        """
        Run the status loops (plus extra_tasks) until shutdown.

        Registers SIGINT and SIGTERM handlers when handle_signals is set.
        """
        if handle_signals:
            loop = asyncio.get_running_loop()
            for sig in (signal.SIGINT, signal.SIGTERM):
                loop.add_signal_handler(sig, functools.partial(self._handle_signal, sig))

        tasks = self.tasks() + list(extra_tasks)
        logger.info(
            "Status syncer starting: "
            + ", ".join(f"{t.name} every {t.interval_s}s" for t in tasks)
        )
        await asyncio.gather(*(self._periodic(t) for t in tasks))
        logger.info("Status syncer stopped")

    def stop(self) -> None:
        self._shutdown.set()

    def _handle_signal(self, sig: signal.Signals) -> None:
        logger.info(f"Received {sig.name}, shutting down...")
        self.stop()

    async def _periodic(self, task: PeriodicTask) -> None:
        while not self._shutdown.is_set():
            try:
                await task.func()
            except Exception as e:
                # A failed list must not end the loop
                logger.error(f"{task.name} loop iteration failed: {e}")

            try:
                await asyncio.wait_for(self._shutdown.wait(), timeout=task.interval_s)
            except asyncio.TimeoutError:
                pass  # Normal timeout, continue loop
