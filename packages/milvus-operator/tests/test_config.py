"""Tests for environment-based Settings."""

from milvus_operator.config import Settings


def test_defaults(monkeypatch):
    monkeypatch.delenv("MILVUS_OPERATOR_NAMESPACE", raising=False)
    settings = Settings()

    assert settings.namespace == ""
    assert settings.fast_sync_interval_s < settings.slow_sync_interval_s
    assert settings.max_concurrency == 10


def test_env_prefix(monkeypatch):
    monkeypatch.setenv("MILVUS_OPERATOR_NAMESPACE", "milvus-prod")
    monkeypatch.setenv("MILVUS_OPERATOR_DEPENDENCY_CHECK_TIMEOUT_S", "5")
    monkeypatch.setenv("MILVUS_OPERATOR_TOOL_IMAGE", "registry.local/milvus-operator:dev")

    settings = Settings()

    assert settings.namespace == "milvus-prod"
    assert settings.dependency_check_timeout_s == 5.0
    assert settings.tool_image == "registry.local/milvus-operator:dev"


def test_unprefixed_variables_ignored(monkeypatch):
    monkeypatch.setenv("NAMESPACE", "elsewhere")
    monkeypatch.delenv("MILVUS_OPERATOR_NAMESPACE", raising=False)

    assert Settings().namespace == ""
