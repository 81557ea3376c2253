"""Environment-based configuration for the Milvus operator."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Operator configuration.

    All settings can be overridden via environment variables with
    MILVUS_OPERATOR_ prefix. For example:
        MILVUS_OPERATOR_NAMESPACE=milvus-prod
        MILVUS_OPERATOR_DEPENDENCY_CHECK_TIMEOUT_S=5

    A Settings instance is built once at startup and passed to the
    services that need it.
    """

    # Namespace to watch ("" = all namespaces)
    namespace: str = ""

    # Resync loops
    fast_sync_interval_s: float = 30.0  # unhealthy or still updating
    slow_sync_interval_s: float = 120.0  # healthy and updated
    metrics_interval_s: float = 60.0

    # Dependency probing
    dependency_check_timeout_s: float = 3.0
    probe_cache_ttl_s: float = 30.0

    # Fan-out bound per group run
    max_concurrency: int = 10

    # Image of the config init container (ships /milvus/tools)
    tool_image: str = "milvusdb/milvus-operator:v1.2.0"

    # Prometheus exporter
    metrics_port: int = 8080

    model_config = {"env_prefix": "MILVUS_OPERATOR_"}
