"""Tests for the cluster reconciler."""

from datetime import datetime, timezone

import pytest

from milvus_protocols import (
    Deployment,
    Milvus,
    MilvusHealth,
    MilvusMode,
    ObjectMeta,
    OwnerReference,
)

from milvus_operator.errors import OwnerReferenceError
from milvus_operator.installer import DependencyReconciler, ReleaseInstaller
from milvus_operator.memory_store import InMemoryObjectStore, InMemoryReleaseBackend
from milvus_operator.reconciler import ClusterReconciler

IMAGE = "milvusdb/milvus:v2.5.4"
TOOL_IMAGE = "milvusdb/milvus-operator:v1.2.0"


def make_milvus(name: str = "my-release", mode: MilvusMode = MilvusMode.STANDALONE) -> Milvus:
    milvus = Milvus(metadata=ObjectMeta(name=name, namespace="default", uid=f"uid-{name}"))
    milvus.spec.mode = mode
    milvus.spec.components.image = IMAGE
    return milvus


@pytest.fixture
def store():
    return InMemoryObjectStore()


@pytest.fixture
def backend():
    return InMemoryReleaseBackend()


@pytest.fixture
def reconciler(store, backend):
    return ClusterReconciler(
        store, DependencyReconciler(ReleaseInstaller(backend)), tool_image=TOOL_IMAGE
    )


async def deployments(store: InMemoryObjectStore) -> dict[str, Deployment]:
    return {d.metadata.name: d for d in await store.list(Deployment, namespace="default")}


class TestReconcile:
    """Tests for ClusterReconciler.reconcile()."""

    @pytest.mark.asyncio
    async def test_creates_standalone_workload_and_dependencies(self, store, backend, reconciler):
        await store.create(make_milvus())

        await reconciler.reconcile(await store.get(Milvus, "default", "my-release"))

        created = await deployments(store)
        assert list(created) == ["my-release-milvus-standalone"]
        container = created["my-release-milvus-standalone"].spec.template.spec.containers[0]
        assert container.image == IMAGE
        assert set(backend.releases) == {
            ("default", "my-release-etcd"),
            ("default", "my-release-minio"),
        }

    @pytest.mark.asyncio
    async def test_initializes_pending_status(self, store, reconciler):
        await store.create(make_milvus())

        await reconciler.reconcile(await store.get(Milvus, "default", "my-release"))

        milvus = await store.get(Milvus, "default", "my-release")
        assert milvus.status.status == MilvusHealth.PENDING

    @pytest.mark.asyncio
    async def test_cluster_creates_one_deployment_per_component(self, store, reconciler):
        await store.create(make_milvus(mode=MilvusMode.CLUSTER))

        await reconciler.reconcile(await store.get(Milvus, "default", "my-release"))

        assert sorted(await deployments(store)) == sorted(
            f"my-release-milvus-{c}"
            for c in (
                "proxy",
                "rootcoord",
                "datacoord",
                "querycoord",
                "indexcoord",
                "datanode",
                "querynode",
                "indexnode",
            )
        )

    @pytest.mark.asyncio
    async def test_second_pass_writes_nothing(self, store, reconciler):
        await store.create(make_milvus())
        await reconciler.reconcile(await store.get(Milvus, "default", "my-release"))
        first = await deployments(store)

        await reconciler.reconcile(await store.get(Milvus, "default", "my-release"))

        second = await deployments(store)
        assert second == first
        assert second["my-release-milvus-standalone"].metadata.generation == 1

    @pytest.mark.asyncio
    async def test_spec_change_updates_deployment(self, store, reconciler):
        await store.create(make_milvus())
        await reconciler.reconcile(await store.get(Milvus, "default", "my-release"))

        milvus = await store.get(Milvus, "default", "my-release")
        milvus.spec.components.image = "milvusdb/milvus:v2.5.5"
        await store.update(milvus)
        await reconciler.reconcile(await store.get(Milvus, "default", "my-release"))

        deployment = (await deployments(store))["my-release-milvus-standalone"]
        assert deployment.spec.template.spec.containers[0].image == "milvusdb/milvus:v2.5.5"
        assert deployment.metadata.generation == 2

    @pytest.mark.asyncio
    async def test_deleting_cr_is_left_alone(self, store, reconciler):
        milvus = make_milvus()
        milvus.metadata.deletion_timestamp = datetime.now(timezone.utc)
        await store.create(milvus)

        await reconciler.reconcile(await store.get(Milvus, "default", "my-release"))

        assert await deployments(store) == {}

    @pytest.mark.asyncio
    async def test_foreign_controller_raises(self, store, reconciler):
        await store.create(make_milvus())
        foreign = Deployment(
            metadata=ObjectMeta(
                name="my-release-milvus-standalone",
                namespace="default",
                owner_references=[
                    OwnerReference(kind="Milvus", name="someone-else", uid="x", controller=True)
                ],
            )
        )
        await store.create(foreign)

        with pytest.raises(OwnerReferenceError):
            await reconciler.reconcile(await store.get(Milvus, "default", "my-release"))


class TestReconcileAll:
    """Tests for ClusterReconciler.reconcile_all()."""

    @pytest.mark.asyncio
    async def test_failure_is_isolated_per_cr(self, store, reconciler):
        await store.create(make_milvus("a"))
        await store.create(make_milvus("b"))
        await store.create(
            Deployment(
                metadata=ObjectMeta(
                    name="a-milvus-standalone",
                    namespace="default",
                    owner_references=[
                        OwnerReference(kind="Milvus", name="other", uid="x", controller=True)
                    ],
                )
            )
        )

        errors = await reconciler.reconcile_all()

        assert len(errors) == 1
        assert isinstance(errors[0], OwnerReferenceError)
        assert "b-milvus-standalone" in await deployments(store)

    @pytest.mark.asyncio
    async def test_namespace_scope(self, store, reconciler):
        other = make_milvus("elsewhere")
        other.metadata.namespace = "other"
        await store.create(other)
        await store.create(make_milvus())

        assert await reconciler.reconcile_all("default") == []

        assert await store.list(Deployment, namespace="other") == []
        assert list(await deployments(store)) == ["my-release-milvus-standalone"]
