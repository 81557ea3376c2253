"""Tests for the CLI commands and manifest loading."""

import pytest
from typer.testing import CliRunner

from milvus_protocols import Deployment, Milvus, MilvusMode

from milvus_operator.cli.factory import create_memory_store, load_manifests
from milvus_operator.cli.main import app

MILVUS_MANIFEST = """\
apiVersion: milvus.io/v1beta1
kind: Milvus
metadata:
  name: my-release
spec:
  mode: standalone
  components:
    image: milvusdb/milvus:v2.5.4
  dependencies:
    etcd:
      external: true
      endpoints: ["etcd.infra:2379"]
    storage:
      external: true
      type: S3
      endpoint: s3.amazonaws.com:443
      useSSL: true
"""

DEPLOYMENT_MANIFEST = """\
---
apiVersion: apps/v1
kind: Deployment
metadata:
  name: unrelated
  namespace: prod
"""

runner = CliRunner()


@pytest.fixture
def manifest(tmp_path):
    path = tmp_path / "milvus.yaml"
    path.write_text(MILVUS_MANIFEST + DEPLOYMENT_MANIFEST)
    return path


class TestLoadManifests:
    def test_multi_document(self, manifest):
        objects = load_manifests([manifest])

        assert [type(o) for o in objects] == [Milvus, Deployment]
        milvus = objects[0]
        assert milvus.spec.mode == MilvusMode.STANDALONE
        assert milvus.spec.dependencies.storage.use_ssl is True
        assert milvus.spec.dependencies.etcd.endpoints == ["etcd.infra:2379"]

    def test_unsupported_kind(self, tmp_path):
        path = tmp_path / "cm.yaml"
        path.write_text("kind: ConfigMap\nmetadata:\n  name: x\n")

        with pytest.raises(ValueError, match="unsupported kind 'ConfigMap'"):
            load_manifests([path])

    @pytest.mark.asyncio
    async def test_memory_store_defaults_namespace(self, manifest):
        store = await create_memory_store([manifest], "")

        assert (await store.get(Milvus, "default", "my-release")).metadata.uid
        assert await store.list(Deployment, namespace="prod")


class TestGraphCommand:
    def test_cluster_upgrade_order(self):
        result = runner.invoke(app, ["graph", "--mode", "cluster"])

        assert result.exit_code == 0
        assert "cluster rolling upgrade order" in result.output
        assert "indexnode" in result.output

    def test_streaming_selected_by_version(self):
        result = runner.invoke(
            app, ["graph", "--image", "milvusdb/milvus:v2.6.0", "--downgrade"]
        )

        assert result.exit_code == 0
        assert "streaming rolling downgrade order" in result.output
        assert "streamingnode" in result.output


class TestSyncCommand:
    def test_json_status(self, manifest):
        result = runner.invoke(app, ["sync", str(manifest), "--json"])

        assert result.exit_code == 0
        assert '"name": "my-release"' in result.output
        assert '"status": "Pending"' in result.output
        assert '"type": "EtcdReady"' in result.output

    def test_unsupported_manifest_exits_nonzero(self, tmp_path):
        path = tmp_path / "cm.yaml"
        path.write_text("kind: ConfigMap\nmetadata:\n  name: x\n")

        result = runner.invoke(app, ["sync", str(path)])

        assert result.exit_code == 1
        assert "unsupported kind" in result.output
