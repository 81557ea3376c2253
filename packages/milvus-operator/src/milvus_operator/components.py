"""
Component identities and the rolling-update dependency graphs.

Every Milvus process kind is a MilvusComponent. Which components a cluster
runs, and in which order they may change image, is encoded as data:

    {component -> components it depends on when upgrading}

Downgrade dependencies are the reverse edges: a component may regress only
after every component that depends on it has regressed. Adding a component
or changing the order is a table edit, not a control-flow change.

Tables:
- STANDALONE_GRAPH: single all-in-one process
- CLUSTER_GRAPH: separate root/data/query/index coordinators
- MIXCOORD_GRAPH: coordinators merged into mixcoord
- STREAMING_GRAPH: mixcoord + streaming node (Milvus >= 2.6)
"""

import re
from dataclasses import dataclass
from enum import Enum

from milvus_protocols import ComponentSpec, MilvusMode, MilvusSpec

from milvus_operator.errors import DependencyGraphError


@dataclass(frozen=True)
class MilvusComponent:
    """
    One Milvus process kind.

    Attributes:
        name: Component label value and key in components_deploy_status
        field_name: Attribute holding its spec on ComponentsSpec
        run_name: Argument passed to `milvus run`
    """

    name: str
    field_name: str
    run_name: str

    def __str__(self) -> str:
        return self.name


STANDALONE = MilvusComponent("standalone", "standalone", "standalone")
PROXY = MilvusComponent("proxy", "proxy", "proxy")
MIX_COORD = MilvusComponent("mixcoord", "mix_coord", "mixture")
ROOT_COORD = MilvusComponent("rootcoord", "root_coord", "rootcoord")
DATA_COORD = MilvusComponent("datacoord", "data_coord", "datacoord")
QUERY_COORD = MilvusComponent("querycoord", "query_coord", "querycoord")
INDEX_COORD = MilvusComponent("indexcoord", "index_coord", "indexcoord")
STREAMING_NODE = MilvusComponent("streamingnode", "streaming_node", "streamingnode")
DATA_NODE = MilvusComponent("datanode", "data_node", "datanode")
QUERY_NODE = MilvusComponent("querynode", "query_node", "querynode")
INDEX_NODE = MilvusComponent("indexnode", "index_node", "indexnode")

# Enumeration order; ties in topological ordering are broken by it
ALL_COMPONENTS: tuple[MilvusComponent, ...] = (
    STANDALONE,
    PROXY,
    MIX_COORD,
    ROOT_COORD,
    DATA_COORD,
    QUERY_COORD,
    INDEX_COORD,
    STREAMING_NODE,
    DATA_NODE,
    QUERY_NODE,
    INDEX_NODE,
)

COMPONENTS_BY_NAME: dict[str, MilvusComponent] = {c.name: c for c in ALL_COMPONENTS}


class Direction(str, Enum):
    """Direction of an image change."""

    UPGRADE = "upgrade"
    DOWNGRADE = "downgrade"


@dataclass(frozen=True)
class DependencyGraph:
    """
    Static rolling-update dependency table for one topology.

    Attributes:
        name: Topology name, for logs and the CLI
        upgrade_dependencies: component -> components that must already run
            the new image before it may take it
    """

    name: str
    upgrade_dependencies: dict[MilvusComponent, tuple[MilvusComponent, ...]]

    @property
    def components(self) -> list[MilvusComponent]:
        """Components of this topology, in enumeration order."""
        return [c for c in ALL_COMPONENTS if c in self.upgrade_dependencies]

    def downgrade_dependencies(
        self, component: MilvusComponent
    ) -> tuple[MilvusComponent, ...]:
        """Components that must regress before component may regress."""
        return tuple(
            other
            for other in self.components
            if component in self.upgrade_dependencies[other]
        )

    def dependencies(
        self, component: MilvusComponent, direction: Direction
    ) -> tuple[MilvusComponent, ...]:
        if component not in self.upgrade_dependencies:
            return ()
        if direction == Direction.UPGRADE:
            return self.upgrade_dependencies[component]
        return self.downgrade_dependencies(component)

    def rollout_order(self, direction: Direction) -> list[MilvusComponent]:
        """
        Topological order in which components change image.

        Kahn's algorithm; among components that are ready at the same time
        the enumeration order wins, so the result is deterministic.

        Raises:
            DependencyGraphError: If the table contains a cycle or an edge
                to a component outside the topology.
        """
        pending = {
            c: set(self.dependencies(c, direction)) for c in self.components
        }
        for component, deps in pending.items():
            unknown = deps - pending.keys()
            if unknown:
                names = ", ".join(sorted(u.name for u in unknown))
                raise DependencyGraphError(
                    f"{self.name}: {component} depends on unknown {names}"
                )

        order: list[MilvusComponent] = []
        while pending:
            ready = [c for c in self.components if c in pending and not pending[c]]
            if not ready:
                names = ", ".join(sorted(c.name for c in pending))
                raise DependencyGraphError(f"{self.name}: cycle among {names}")
            for component in ready:
                order.append(component)
                del pending[component]
            for deps in pending.values():
                deps.difference_update(ready)
        return order

    def validate(self) -> None:
        """Check that the table is a DAG in both directions."""
        self.rollout_order(Direction.UPGRADE)
        self.rollout_order(Direction.DOWNGRADE)


STANDALONE_GRAPH = DependencyGraph(
    name="standalone",
    upgrade_dependencies={STANDALONE: ()},
)

CLUSTER_GRAPH = DependencyGraph(
    name="cluster",
    upgrade_dependencies={
        INDEX_NODE: (),
        ROOT_COORD: (INDEX_NODE,),
        DATA_COORD: (ROOT_COORD,),
        INDEX_COORD: (DATA_COORD,),
        QUERY_COORD: (INDEX_COORD,),
        QUERY_NODE: (QUERY_COORD,),
        DATA_NODE: (QUERY_NODE,),
        PROXY: (DATA_NODE,),
    },
)

MIXCOORD_GRAPH = DependencyGraph(
    name="mixcoord",
    upgrade_dependencies={
        INDEX_NODE: (),
        MIX_COORD: (INDEX_NODE,),
        DATA_NODE: (MIX_COORD,),
        QUERY_NODE: (MIX_COORD,),
        PROXY: (MIX_COORD,),
    },
)

STREAMING_GRAPH = DependencyGraph(
    name="streaming",
    upgrade_dependencies={
        STREAMING_NODE: (),
        MIX_COORD: (STREAMING_NODE,),
        DATA_NODE: (MIX_COORD,),
        QUERY_NODE: (MIX_COORD,),
        PROXY: (MIX_COORD,),
    },
)

GRAPHS: dict[str, DependencyGraph] = {
    g.name: g for g in (STANDALONE_GRAPH, CLUSTER_GRAPH, MIXCOORD_GRAPH, STREAMING_GRAPH)
}

# Milvus releases from this version on run the streaming topology
STREAMING_MIN_VERSION = (2, 6)

_VERSION_RE = re.compile(r"^v?(\d+)\.(\d+)(?:\.(\d+))?")


def parse_image_version(image: str) -> tuple[int, int, int] | None:
    """
    Extract (major, minor, patch) from an image tag.

    >>> parse_image_version("milvusdb/milvus:v2.6.0")
    (2, 6, 0)
    >>> parse_image_version("registry:5000/milvus:latest") is None
    True
    """
    last = image.rsplit("/", 1)[-1]
    if ":" not in last:
        return None
    tag = last.split(":", 1)[1]
    match = _VERSION_RE.match(tag)
    if not match:
        return None
    major, minor, patch = match.groups()
    return int(major), int(minor), int(patch or 0)


def graph_for(spec: MilvusSpec) -> DependencyGraph:
    """Select the dependency table for a spec's topology."""
    if spec.mode == MilvusMode.STANDALONE:
        return STANDALONE_GRAPH
    version = parse_image_version(spec.components.image)
    if spec.components.streaming_node is not None or (
        version is not None and version[:2] >= STREAMING_MIN_VERSION
    ):
        return STREAMING_GRAPH
    if spec.components.mix_coord is not None:
        return MIXCOORD_GRAPH
    return CLUSTER_GRAPH


def components_for(spec: MilvusSpec) -> list[MilvusComponent]:
    """Components a spec deploys."""
    return graph_for(spec).components


def component_spec(spec: MilvusSpec, component: MilvusComponent) -> ComponentSpec:
    return spec.components.component_spec(component.field_name)


def desired_image(spec: MilvusSpec, component: MilvusComponent) -> str:
    """Per-component image override, or the global image."""
    return component_spec(spec, component).image or spec.components.image


def service_component(spec: MilvusSpec) -> MilvusComponent:
    """The component clients connect to (and that carries the ingress)."""
    if spec.mode == MilvusMode.STANDALONE:
        return STANDALONE
    return PROXY
