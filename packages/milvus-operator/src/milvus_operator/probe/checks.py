"""
Per-protocol dependency health checks.

DependencyChecker receives an injected httpx.AsyncClient (no base_url; the
endpoints come from each Milvus spec). Every check returns True/False for
"healthy" and raises on transport errors; EndpointProber turns both into
conditions and applies the deadline.

Endpoints:
- etcd: GET http://<endpoint>/health on every member, healthy on quorum
- object storage (MinIO): GET <scheme>://<endpoint>/minio/health/live
- pulsar: GET http://<host>:8080/admin/v2/brokers/health
- kafka: TCP connect to any broker in the list
"""

import asyncio
from dataclasses import dataclass
from urllib.parse import urlsplit

import httpx

PULSAR_ADMIN_PORT = 8080


def _with_scheme(endpoint: str, use_ssl: bool = False) -> str:
    if "://" in endpoint:
        return endpoint.rstrip("/")
    scheme = "https" if use_ssl else "http"
    return f"{scheme}://{endpoint}".rstrip("/")


def pulsar_admin_url(endpoint: str) -> str:
    """
    Admin URL for a pulsar service endpoint.

    >>> pulsar_admin_url("pulsar://my-pulsar-proxy:6650")
    'http://my-pulsar-proxy:8080'
    """
    parts = urlsplit(endpoint if "://" in endpoint else f"pulsar://{endpoint}")
    return f"http://{parts.hostname}:{PULSAR_ADMIN_PORT}"


def _split_host_port(broker: str, default_port: int = 9092) -> tuple[str, int]:
    parts = urlsplit(broker if "://" in broker else f"kafka://{broker}")
    return parts.hostname or broker, parts.port or default_port


@dataclass
class DependencyChecker:
    """
    Health checks for Milvus dependencies.

    Attributes:
        http: Pre-configured httpx.AsyncClient used for HTTP probes.

    Example:
        async with httpx.AsyncClient(timeout=3.0) as http:
            checker = DependencyChecker(http=http)
            healthy = await checker.check_etcd(["etcd-0:2379", "etcd-1:2379"])
    """

    http: httpx.AsyncClient

    async def check_etcd(self, endpoints: list[str]) -> bool:
        """
        Check etcd members; healthy when a majority reports health.

        Raises:
            ValueError: If no endpoints are configured.
            httpx.HTTPError: If every member is unreachable.
        """
        if not endpoints:
            raise ValueError("no etcd endpoints configured")

        results = await asyncio.gather(
            *(self._etcd_member_healthy(ep) for ep in endpoints),
            return_exceptions=True,
        )
        healthy = sum(1 for r in results if r is True)
        errors = [r for r in results if isinstance(r, BaseException)]
        if healthy == 0 and len(errors) == len(results):
            raise errors[0]
        return healthy > len(endpoints) // 2

    async def _etcd_member_healthy(self, endpoint: str) -> bool:
        response = await self.http.get(f"{_with_scheme(endpoint)}/health")
        if response.status_code != 200:
            return False
        # etcd reports {"health": "true", "reason": ""}
        return str(response.json().get("health", "")).lower() == "true"

    async def check_storage(self, endpoint: str, use_ssl: bool = False) -> bool:
        """Check MinIO liveness."""
        if not endpoint:
            raise ValueError("no storage endpoint configured")
        response = await self.http.get(
            f"{_with_scheme(endpoint, use_ssl)}/minio/health/live"
        )
        return response.status_code == 200

    async def check_pulsar(self, endpoint: str) -> bool:
        """Check pulsar broker health through the admin API."""
        if not endpoint:
            raise ValueError("no pulsar endpoint configured")
        response = await self.http.get(
            f"{pulsar_admin_url(endpoint)}/admin/v2/brokers/health"
        )
        return response.status_code == 200

    async def check_kafka(self, brokers: list[str]) -> bool:
        """
        Check that at least one kafka broker accepts TCP connections.

        Raises:
            ValueError: If the broker list is empty.
            OSError: The last connection error when no broker is reachable.
        """
        if not brokers:
            raise ValueError("no kafka brokers configured")

        errors: list[OSError] = []
        for broker in brokers:
            host, port = _split_host_port(broker)
            try:
                _, writer = await asyncio.open_connection(host, port)
            except OSError as e:
                errors.append(e)
                continue
            writer.close()
            await writer.wait_closed()
            return True
        raise errors[-1]
