"""Tests for component identities and rolling-update dependency graphs."""

import pytest

from milvus_protocols import ComponentSpec, MilvusMode, MilvusSpec

from milvus_operator.components import (
    ALL_COMPONENTS,
    CLUSTER_GRAPH,
    DATA_COORD,
    DATA_NODE,
    GRAPHS,
    INDEX_COORD,
    INDEX_NODE,
    MIX_COORD,
    MIXCOORD_GRAPH,
    PROXY,
    QUERY_COORD,
    QUERY_NODE,
    ROOT_COORD,
    STANDALONE,
    STANDALONE_GRAPH,
    STREAMING_GRAPH,
    STREAMING_NODE,
    DependencyGraph,
    Direction,
    component_spec,
    components_for,
    desired_image,
    graph_for,
    parse_image_version,
    service_component,
)
from milvus_operator.errors import DependencyGraphError


def cluster_spec(image: str = "milvusdb/milvus:v2.5.4") -> MilvusSpec:
    spec = MilvusSpec(mode=MilvusMode.CLUSTER)
    spec.components.image = image
    return spec


class TestParseImageVersion:
    """Tests for parse_image_version()."""

    @pytest.mark.parametrize(
        "image,expected",
        [
            ("milvusdb/milvus:v2.6.0", (2, 6, 0)),
            ("milvusdb/milvus:2.5.4", (2, 5, 4)),
            ("milvusdb/milvus:v2.6", (2, 6, 0)),
            ("registry:5000/milvusdb/milvus:v2.6.1-gpu", (2, 6, 1)),
            ("milvusdb/milvus:latest", None),
            ("milvusdb/milvus", None),
            ("registry:5000/milvus", None),
        ],
    )
    def test_parse(self, image, expected):
        assert parse_image_version(image) == expected


class TestGraphSelection:
    """Tests for graph_for()."""

    def test_standalone_mode(self):
        assert graph_for(MilvusSpec()) is STANDALONE_GRAPH

    def test_cluster_with_separate_coordinators(self):
        assert graph_for(cluster_spec()) is CLUSTER_GRAPH

    def test_cluster_with_mixcoord(self):
        spec = cluster_spec()
        spec.components.mix_coord = ComponentSpec()
        assert graph_for(spec) is MIXCOORD_GRAPH

    def test_version_2_6_selects_streaming(self):
        assert graph_for(cluster_spec("milvusdb/milvus:v2.6.0")) is STREAMING_GRAPH

    def test_declared_streaming_node_selects_streaming(self):
        spec = cluster_spec()
        spec.components.streaming_node = ComponentSpec()
        assert graph_for(spec) is STREAMING_GRAPH

    def test_unparseable_tag_keeps_classic_topology(self):
        assert graph_for(cluster_spec("milvusdb/milvus:master-latest")) is CLUSTER_GRAPH

    def test_components_in_enumeration_order(self):
        assert components_for(MilvusSpec()) == [STANDALONE]
        assert components_for(cluster_spec("milvusdb/milvus:v2.6.0")) == [
            PROXY,
            MIX_COORD,
            STREAMING_NODE,
            DATA_NODE,
            QUERY_NODE,
        ]


class TestDependencyGraph:
    """Tests for DependencyGraph edges and ordering."""

    @pytest.mark.parametrize("graph", list(GRAPHS.values()), ids=list(GRAPHS))
    def test_every_table_is_a_dag(self, graph):
        graph.validate()

    @pytest.mark.parametrize("graph", list(GRAPHS.values()), ids=list(GRAPHS))
    def test_downgrade_edges_are_reversed_upgrade_edges(self, graph):
        for component in graph.components:
            for dep in graph.dependencies(component, Direction.UPGRADE):
                assert component in graph.dependencies(dep, Direction.DOWNGRADE)

    def test_cluster_upgrade_order(self):
        assert CLUSTER_GRAPH.rollout_order(Direction.UPGRADE) == [
            INDEX_NODE,
            ROOT_COORD,
            DATA_COORD,
            INDEX_COORD,
            QUERY_COORD,
            QUERY_NODE,
            DATA_NODE,
            PROXY,
        ]

    def test_cluster_downgrade_order_is_reversed(self):
        upgrade = CLUSTER_GRAPH.rollout_order(Direction.UPGRADE)
        assert CLUSTER_GRAPH.rollout_order(Direction.DOWNGRADE) == upgrade[::-1]

    def test_streaming_order_ties_broken_by_enumeration(self):
        assert STREAMING_GRAPH.rollout_order(Direction.UPGRADE) == [
            STREAMING_NODE,
            MIX_COORD,
            PROXY,
            DATA_NODE,
            QUERY_NODE,
        ]

    def test_mixcoord_downgrade_dependencies(self):
        assert set(MIXCOORD_GRAPH.dependencies(MIX_COORD, Direction.DOWNGRADE)) == {
            PROXY,
            DATA_NODE,
            QUERY_NODE,
        }
        assert MIXCOORD_GRAPH.dependencies(PROXY, Direction.DOWNGRADE) == ()

    def test_component_outside_topology_has_no_dependencies(self):
        assert STANDALONE_GRAPH.dependencies(PROXY, Direction.UPGRADE) == ()
        assert MIXCOORD_GRAPH.dependencies(QUERY_COORD, Direction.UPGRADE) == ()

    def test_cycle_is_rejected(self):
        graph = DependencyGraph(
            name="broken",
            upgrade_dependencies={PROXY: (DATA_NODE,), DATA_NODE: (PROXY,)},
        )
        with pytest.raises(DependencyGraphError, match="cycle"):
            graph.rollout_order(Direction.UPGRADE)

    def test_unknown_edge_is_rejected(self):
        graph = DependencyGraph(
            name="broken", upgrade_dependencies={PROXY: (QUERY_COORD,)}
        )
        with pytest.raises(DependencyGraphError, match="unknown querycoord"):
            graph.validate()


class TestComponentHelpers:
    """Tests for per-component spec helpers."""

    def test_desired_image_uses_override(self):
        spec = cluster_spec("milvusdb/milvus:v2.5.4")
        spec.components.query_node = ComponentSpec(image="milvusdb/milvus:v2.5.4-gpu")
        assert desired_image(spec, QUERY_NODE) == "milvusdb/milvus:v2.5.4-gpu"
        assert desired_image(spec, PROXY) == "milvusdb/milvus:v2.5.4"

    def test_component_spec_defaults(self):
        assert component_spec(cluster_spec(), DATA_NODE) == ComponentSpec()

    def test_service_component(self):
        assert service_component(MilvusSpec()) == STANDALONE
        assert service_component(cluster_spec()) == PROXY

    def test_component_names_unique(self):
        names = [c.name for c in ALL_COMPONENTS]
        assert len(names) == len(set(names))

    def test_mixcoord_runs_as_mixture(self):
        assert MIX_COORD.run_name == "mixture"
        assert str(MIX_COORD) == "mixcoord"
