"""Tests for deploy-status aggregation and the MilvusReady condition."""

import pytest

from milvus_protocols import (
    ComponentDeployStatus,
    ConditionStatus,
    Container,
    Deployment,
    DeploymentCondition,
    DeploymentStatus,
    Milvus,
    MilvusMode,
    ObjectMeta,
    OwnerReference,
)

from milvus_operator.components import (
    DATA_NODE,
    INDEX_NODE,
    PROXY,
    QUERY_NODE,
    ROOT_COORD,
    STANDALONE,
)
from milvus_operator.conditions import ConditionType, Reason
from milvus_operator.deploy_status import (
    ComponentConditionGetter,
    ComponentsDeployStatusUpdater,
    DeploymentState,
    get_deployment_state,
    list_owned_deployments,
    main_container_image,
)
from milvus_operator.deployment import new_deployment
from milvus_operator.labels import component_labels, controller_reference
from milvus_operator.memory_store import InMemoryObjectStore

IMAGE = "milvusdb/milvus:v2.5.4"


def make_milvus(mode: MilvusMode = MilvusMode.STANDALONE) -> Milvus:
    milvus = Milvus(
        metadata=ObjectMeta(name="my-release", namespace="default", uid="uid-1", generation=1)
    )
    milvus.spec.mode = mode
    return milvus


def owned_deployment(
    milvus: Milvus, component, available: int = 1, replicas: int | None = 1
) -> Deployment:
    deployment = new_deployment(milvus, component)
    deployment.metadata.labels = component_labels(milvus, component.name)
    deployment.metadata.owner_references = [controller_reference(milvus)]
    deployment.spec.replicas = replicas
    deployment.spec.template.spec.containers = [Container(name="milvus", image=IMAGE)]
    deployment.status = DeploymentStatus(
        observed_generation=1,
        available_replicas=available,
        conditions=[
            DeploymentCondition(
                type="Progressing",
                status=ConditionStatus.TRUE,
                reason="NewReplicaSetAvailable",
            )
        ],
    )
    return deployment


@pytest.fixture
def store():
    return InMemoryObjectStore()


class TestDeploymentState:
    """Tests for get_deployment_state()."""

    def progressing(self, status: ConditionStatus, reason: str, observed: int = 1):
        return DeploymentStatus(
            observed_generation=observed,
            conditions=[DeploymentCondition(type="Progressing", status=status, reason=reason)],
        )

    def test_complete(self):
        status = self.progressing(ConditionStatus.TRUE, "NewReplicaSetAvailable")
        assert get_deployment_state(1, status) == DeploymentState.COMPLETE

    def test_unobserved_generation_is_progressing(self):
        status = self.progressing(ConditionStatus.TRUE, "NewReplicaSetAvailable", observed=1)
        assert get_deployment_state(2, status) == DeploymentState.PROGRESSING

    def test_no_progressing_condition(self):
        assert get_deployment_state(1, DeploymentStatus(observed_generation=1)) == (
            DeploymentState.PROGRESSING
        )

    def test_failed(self):
        status = self.progressing(ConditionStatus.FALSE, "ProgressDeadlineExceeded")
        assert get_deployment_state(1, status) == DeploymentState.FAILED

    def test_paused(self):
        status = self.progressing(ConditionStatus.UNKNOWN, "DeploymentPaused")
        assert get_deployment_state(1, status) == DeploymentState.PAUSED

    def test_rolling(self):
        status = self.progressing(ConditionStatus.TRUE, "ReplicaSetUpdated")
        assert get_deployment_state(1, status) == DeploymentState.PROGRESSING


class TestMainContainerImage:
    def test_named_container_wins(self):
        deployment = Deployment()
        deployment.spec.template.spec.containers = [
            Container(name="sidecar", image="envoy:1"),
            Container(name="milvus", image=IMAGE),
        ]
        assert main_container_image(deployment) == IMAGE

    def test_first_container_fallback(self):
        deployment = Deployment()
        deployment.spec.template.spec.containers = [Container(name="other", image="x:1")]
        assert main_container_image(deployment) == "x:1"

    def test_no_containers(self):
        assert main_container_image(Deployment()) == ""


class TestOwnership:
    """Owned deployments are found by controller back-reference."""

    @pytest.mark.asyncio
    async def test_foreign_deployment_ignored(self, store):
        milvus = make_milvus()
        await store.create(owned_deployment(milvus, STANDALONE))

        foreign = owned_deployment(milvus, STANDALONE)
        foreign.metadata.name = "other-milvus-standalone"
        foreign.metadata.owner_references = [
            OwnerReference(kind="Milvus", name="other", uid="uid-2", controller=True)
        ]
        await store.create(foreign)

        owned = await list_owned_deployments(store, milvus)
        assert list(owned) == ["standalone"]
        assert owned["standalone"].metadata.name == "my-release-milvus-standalone"

    @pytest.mark.asyncio
    async def test_renamed_deployment_still_owned(self, store):
        milvus = make_milvus()
        deployment = owned_deployment(milvus, STANDALONE)
        deployment.metadata.name = "custom-name"
        await store.create(deployment)

        owned = await list_owned_deployments(store, milvus)
        assert owned["standalone"].metadata.name == "custom-name"

    @pytest.mark.asyncio
    async def test_non_controller_reference_ignored(self, store):
        milvus = make_milvus()
        deployment = owned_deployment(milvus, STANDALONE)
        for ref in deployment.metadata.owner_references:
            ref.controller = False
        await store.create(deployment)

        assert await list_owned_deployments(store, milvus) == {}


class TestComponentsDeployStatusUpdater:
    """Tests for ComponentsDeployStatusUpdater."""

    @pytest.mark.asyncio
    async def test_zero_owned_yields_empty_map(self, store):
        milvus = make_milvus()
        milvus.status.components_deploy_status = {"proxy": ComponentDeployStatus(image=IMAGE)}

        await ComponentsDeployStatusUpdater(store).update(milvus)

        assert milvus.status.components_deploy_status == {}

    @pytest.mark.asyncio
    async def test_one_entry_per_owned_deployment(self, store):
        milvus = make_milvus(MilvusMode.CLUSTER)
        for component in (PROXY, DATA_NODE, QUERY_NODE):
            await store.create(owned_deployment(milvus, component))

        await ComponentsDeployStatusUpdater(store).update(milvus)

        records = milvus.status.components_deploy_status
        assert set(records) == {"proxy", "datanode", "querynode"}
        proxy = records["proxy"]
        assert proxy.image == IMAGE
        assert proxy.generation == 1
        assert proxy.status.available_replicas == 1


class TestComponentConditionGetter:
    """Tests for the MilvusReady condition."""

    @pytest.mark.asyncio
    async def test_all_available(self, store):
        milvus = make_milvus()
        await store.create(owned_deployment(milvus, STANDALONE))

        condition = await ComponentConditionGetter(store).get_milvus_ready_condition(milvus)

        assert condition.type == ConditionType.MILVUS_READY
        assert condition.status == ConditionStatus.TRUE
        assert condition.reason == Reason.MILVUS_HEALTHY

    @pytest.mark.asyncio
    async def test_missing_and_unavailable_listed(self, store):
        milvus = make_milvus(MilvusMode.CLUSTER)
        await store.create(owned_deployment(milvus, INDEX_NODE))
        await store.create(owned_deployment(milvus, ROOT_COORD, available=0))

        condition = await ComponentConditionGetter(store).get_milvus_ready_condition(milvus)

        assert condition.status == ConditionStatus.FALSE
        assert condition.reason == Reason.MILVUS_COMPONENT_NOT_HEALTHY
        assert "rootcoord" in condition.message
        assert "proxy" in condition.message
        assert "indexnode" not in condition.message

    @pytest.mark.asyncio
    async def test_scaled_to_zero(self, store):
        milvus = make_milvus()
        await store.create(owned_deployment(milvus, STANDALONE, available=0, replicas=0))

        condition = await ComponentConditionGetter(store).get_milvus_ready_condition(milvus)

        assert condition.status == ConditionStatus.FALSE
        assert condition.reason == Reason.MILVUS_STOPPED
