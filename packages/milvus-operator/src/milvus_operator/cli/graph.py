"""Rolling-update graph CLI command.

Prints the order in which components change image for a topology, and
which components each one waits on.
"""

import typer
from rich.console import Console
from rich.table import Table

from milvus_protocols import ComponentSpec, MilvusMode, MilvusSpec

from milvus_operator.components import Direction, graph_for
from milvus_operator.errors import DependencyGraphError


def build_spec(mode: MilvusMode, image: str, mix_coord: bool, streaming: bool) -> MilvusSpec:
    spec = MilvusSpec(mode=mode)
    spec.components.image = image
    if mix_coord:
        spec.components.mix_coord = ComponentSpec()
    if streaming:
        spec.components.streaming_node = ComponentSpec()
    return spec


def graph(
    mode: MilvusMode = typer.Option(MilvusMode.CLUSTER, "--mode", "-m", help="Deployment mode"),
    image: str = typer.Option(
        "milvusdb/milvus:v2.5.4", "--image", "-i", help="Target image (its version selects the topology)"
    ),
    mix_coord: bool = typer.Option(False, "--mix-coord", help="Coordinators merged into mixcoord"),
    streaming: bool = typer.Option(False, "--streaming", help="Declare a streaming node"),
    downgrade: bool = typer.Option(False, "--downgrade", help="Show the downgrade order"),
) -> None:
    """Show the rolling-update order of a topology."""
    direction = Direction.DOWNGRADE if downgrade else Direction.UPGRADE
    dependency_graph = graph_for(build_spec(mode, image, mix_coord, streaming))
    try:
        order = dependency_graph.rollout_order(direction)
    except DependencyGraphError as e:
        print(f"Error: {e}")
        raise typer.Exit(1)

    console = Console()
    table = Table(title=f"{dependency_graph.name} rolling {direction.value} order")
    table.add_column("Step", justify="right", style="cyan")
    table.add_column("Component", style="green")
    table.add_column("Waits On")

    for step, component in enumerate(order, start=1):
        deps = dependency_graph.dependencies(component, direction)
        table.add_row(str(step), component.name, ", ".join(d.name for d in deps) or "-")

    console.print(table)
