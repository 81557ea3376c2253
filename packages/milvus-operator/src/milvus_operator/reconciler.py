"""
Spec-driven reconcile of one Milvus CR.

ClusterReconciler brings the owned objects of a CR in line with its spec:
status initialization (status path only), in-cluster dependency installs,
then one Deployment per component through the DeploymentUpdater. A
Deployment is only written when the updater actually changed it, so a
converged cluster costs reads only.
"""

import logging

from milvus_protocols import (
    Deployment,
    Milvus,
    MilvusHealth,
    NotFoundError,
    ObjectStoreProtocol,
)

from milvus_operator.components import MilvusComponent, components_for, graph_for
from milvus_operator.deployment import (
    DeploymentUpdater,
    deployment_name,
    new_deployment,
    update_deployment,
)
from milvus_operator.installer import DependencyReconciler
from milvus_operator.labels import object_key
from milvus_operator.runner import GroupRunner

logger = logging.getLogger(__name__)


class ClusterReconciler:
    """
    Reconciles Milvus CRs into Deployments and dependency releases.

    Attributes:
        store: Object store
        dependency_reconciler: Installs declared in-cluster dependencies
        tool_image: Image of the config init container
        runner: Bounded fan-out for reconcile_all (optional)

    Example:
        reconciler = ClusterReconciler(store, DependencyReconciler(installer), tool_image)
        await reconciler.reconcile(milvus)
    """

    def __init__(
        self,
        store: ObjectStoreProtocol,
        dependency_reconciler: DependencyReconciler,
        tool_image: str,
        runner: GroupRunner | None = None,
    ) -> None:
        self.store = store
        self.dependency_reconciler = dependency_reconciler
        self.tool_image = tool_image
        self.runner = runner or GroupRunner()

    async def reconcile(self, milvus: Milvus) -> None:
        """
        Reconcile one CR.

        Raises:
            OwnerReferenceError: If a component's Deployment cannot be owned.
            DependencyGraphError: If the topology's table is not a DAG.
            StoreError: On store failures.
        """
        if milvus.metadata.deletion_timestamp is not None:
            return

        if milvus.status.status is None:
            milvus.status.status = MilvusHealth.PENDING
            await self.store.update_status(milvus)
            logger.info(f"Initialized status of {object_key(milvus.metadata)}")

        graph_for(milvus.spec).validate()
        await self.dependency_reconciler.reconcile_all(milvus)

        for component in components_for(milvus.spec):
            await self.reconcile_component(milvus, component)

    async def reconcile_component(
        self, milvus: Milvus, component: MilvusComponent
    ) -> None:
        namespace = milvus.metadata.namespace
        name = deployment_name(milvus, component)
        try:
            current = await self.store.get(Deployment, namespace, name)
        except NotFoundError:
            current = None

        deployment = (
            current.model_copy(deep=True)
            if current is not None
            else new_deployment(milvus, component)
        )
        update_deployment(
            deployment, DeploymentUpdater(milvus, component, self.tool_image)
        )

        if current is None:
            logger.info(f"Creating deployment {namespace}/{name}")
            await self.store.create(deployment)
        elif deployment != current:
            logger.info(f"Updating deployment {namespace}/{name}")
            await self.store.update(deployment)

    async def reconcile_all(self, namespace: str | None = None) -> list[Exception]:
        """
        Reconcile every CR in namespace (all when None).

        Returns:
            Errors of the CRs that failed; other CRs are not affected.
        """
        milvuses = await self.store.list(Milvus, namespace=namespace)
        results = await self.runner.run_diff_args(self.reconcile, milvuses)
        errors = []
        for milvus, result in zip(milvuses, results):
            if result.error is not None:
                logger.error(
                    f"Reconcile of {object_key(milvus.metadata)} failed: {result.error}"
                )
                errors.append(result.error)
        return errors
