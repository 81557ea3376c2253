"""
Dependency probing.

- EndpointCheckCache: per endpoint-set result cache with single-flight markers
- EndpointProber: turns probe functions into cached, deadline-bound conditions
- DependencyChecker: etcd / object storage / pulsar / kafka health checks
"""

from milvus_operator.probe.cache import (
    EndpointCacheEntry,
    EndpointCheckCache,
    endpoint_key,
)
from milvus_operator.probe.checks import DependencyChecker, pulsar_admin_url
from milvus_operator.probe.prober import EndpointProber, ProbeFunc

__all__ = [
    "EndpointCacheEntry",
    "EndpointCheckCache",
    "endpoint_key",
    "DependencyChecker",
    "pulsar_admin_url",
    "EndpointProber",
    "ProbeFunc",
]
