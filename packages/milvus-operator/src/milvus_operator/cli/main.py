"""Milvus operator CLI - reconcile and status engine for Milvus clusters."""

import typer

from milvus_operator.cli.graph import graph
from milvus_operator.cli.sync import run, sync

app = typer.Typer(
    name="milvus-operator",
    help="Reconcile Milvus clusters and keep their status current",
    no_args_is_help=True,
)

app.command("sync")(sync)
app.command("run")(run)
app.command("graph")(graph)


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
