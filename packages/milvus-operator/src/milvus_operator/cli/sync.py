"""Reconcile and status sync CLI commands.

This module provides the commands that drive the engine against an
in-memory store seeded from YAML manifests:
- sync: one reconcile pass plus one status cycle, printed as a table
- run: the periodic loops plus the Prometheus exporter, until Ctrl+C
"""

import asyncio
import json
import logging
from pathlib import Path

import httpx
import typer
from prometheus_client import start_http_server
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from milvus_protocols import ConditionStatus, Milvus, MilvusHealth

from milvus_operator.cli.factory import create_memory_store, create_services
from milvus_operator.config import Settings
from milvus_operator.syncer import PeriodicTask

HEALTH_STYLES = {
    MilvusHealth.HEALTHY: "green",
    MilvusHealth.PENDING: "yellow",
    MilvusHealth.UNHEALTHY: "red",
    MilvusHealth.STOPPED: "dim",
    MilvusHealth.DELETING: "magenta",
}


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        handlers=[RichHandler(rich_tracebacks=True)],
    )


def _settings(namespace: str | None) -> Settings:
    settings = Settings()
    if namespace is not None:
        settings.namespace = namespace
    return settings


def print_status_table(milvuses: list[Milvus]) -> None:
    console = Console()
    table = Table(title="Milvus clusters")
    table.add_column("Namespace", style="cyan")
    table.add_column("Name", style="cyan")
    table.add_column("Status")
    table.add_column("Current Image")
    table.add_column("Not Ready")

    for milvus in milvuses:
        health = milvus.status.status
        style = HEALTH_STYLES.get(health, "") if health else ""
        label = health.value if health else "-"
        failing = [
            f"{c.type}: {c.message}" if c.message else c.type
            for c in milvus.status.conditions
            if c.status != ConditionStatus.TRUE
        ]
        table.add_row(
            milvus.metadata.namespace,
            milvus.metadata.name,
            f"[{style}]{label}[/{style}]" if style else label,
            milvus.status.current_image or "-",
            "\n".join(failing) or "-",
        )

    console.print(table)


def sync(
    manifests: list[Path] = typer.Argument(..., help="YAML manifests to load", exists=True),
    namespace: str = typer.Option(
        None, "--namespace", "-n", help="Only sync this namespace (default: all)"
    ),
    json_output: bool = typer.Option(False, "--json", "-j", help="Output status as JSON"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """
    Run one reconcile pass and one status cycle over the given manifests.
    """
    configure_logging(verbose)
    settings = _settings(namespace)

    async def _sync() -> list[Milvus]:
        store = await create_memory_store(manifests, settings.namespace)
        async with httpx.AsyncClient() as http:
            services = create_services(settings, store, http)
            errors = await services.reconciler.reconcile_all(settings.namespace or None)
            await services.syncer.sync_all()
            await services.syncer.update_metrics()
            if errors:
                print(f"{len(errors)} cluster(s) failed to reconcile")
            return await services.syncer.list_milvuses()

    try:
        milvuses = asyncio.run(_sync())
    except ValueError as e:
        print(f"Error: {e}")
        raise typer.Exit(1)

    if json_output:
        data = [
            {
                "namespace": m.metadata.namespace,
                "name": m.metadata.name,
                "status": m.status.model_dump(mode="json", by_alias=True),
            }
            for m in milvuses
        ]
        print(json.dumps(data, indent=2))
        return

    print_status_table(milvuses)


def run(
    manifests: list[Path] = typer.Argument(..., help="YAML manifests to load", exists=True),
    namespace: str = typer.Option(
        None,
        "--namespace",
        "-n",
        envvar="MILVUS_OPERATOR_NAMESPACE",
        help="Only watch this namespace (default: all)",
    ),
    metrics_port: int = typer.Option(
        None, "--metrics-port", help="Prometheus exporter port"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """
    Run the reconcile and status loops until interrupted with Ctrl+C.

    Environment variables (MILVUS_OPERATOR_ prefix) configure intervals,
    probe timeouts and concurrency; see milvus_operator.config.Settings.
    """
    configure_logging(verbose)
    settings = _settings(namespace)
    if metrics_port is not None:
        settings.metrics_port = metrics_port

    print(f"Starting milvus operator (namespace: {settings.namespace or 'all'})")
    print(f"  Fast sync: {settings.fast_sync_interval_s}s")
    print(f"  Slow sync: {settings.slow_sync_interval_s}s")
    print(f"  Metrics: :{settings.metrics_port}/metrics")
    print()
    print("Press Ctrl+C to stop")
    print()

    start_http_server(settings.metrics_port)

    async def _run() -> None:
        store = await create_memory_store(manifests, settings.namespace)
        async with httpx.AsyncClient() as http:
            services = create_services(settings, store, http)

            async def reconcile() -> None:
                await services.reconciler.reconcile_all(settings.namespace or None)

            await services.syncer.run(
                extra_tasks=[
                    PeriodicTask("reconcile", reconcile, settings.fast_sync_interval_s)
                ]
            )

    try:
        asyncio.run(_run())
    except ValueError as e:
        print(f"Error: {e}")
        raise typer.Exit(1)
