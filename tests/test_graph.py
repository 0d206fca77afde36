"""Tests for graph construction, inversion and persistence."""

import math

import pytest

from opticore.core.config import SimulationContext
from opticore.core.errors import PortError, TopologyError
from raysim.core.frames import Isometry
from raysim.graph import OpticGraph, PortMap
from raysim.nodes import BeamSplitter, Dummy, NodeReference, PortType, ThinMirror


def chain(graph: OpticGraph, n: int) -> list:
    ids = [graph.add_node(Dummy(f"d{i}")) for i in range(n)]
    for a, b in zip(ids, ids[1:]):
        graph.connect_nodes(a, "output_1", b, "input_1", 10.0)
    return ids


def test_add_duplicate_node(graph: OpticGraph):
    node = Dummy()
    graph.add_node(node)
    with pytest.raises(TopologyError, match="already in graph"):
        graph.add_node(node)


def test_unknown_node(graph: OpticGraph):
    with pytest.raises(TopologyError, match="not found"):
        graph.node(Dummy().uuid)


def test_find_by_name(graph: OpticGraph):
    chain(graph, 2)
    assert graph.find("d1").name == "d1"
    with pytest.raises(TopologyError, match="no node named"):
        graph.find("missing")


def test_connect_unknown_port_lists_valid_ports(graph: OpticGraph):
    a, b = chain(graph, 2)
    with pytest.raises(PortError, match="Valid ports"):
        graph.connect_nodes(a, "nope", b, "input_1")


def test_connect_input_as_output_rejected(graph: OpticGraph):
    a = graph.add_node(Dummy())
    b = graph.add_node(Dummy())
    with pytest.raises(PortError):
        graph.connect_nodes(a, "input_1", b, "input_1")


def test_port_already_connected(graph: OpticGraph):
    a, b = chain(graph, 2)
    c = graph.add_node(Dummy("c"))
    with pytest.raises(TopologyError, match="already connected"):
        graph.connect_nodes(a, "output_1", c, "input_1")
    with pytest.raises(TopologyError, match="already connected"):
        graph.connect_nodes(c, "output_1", b, "input_1")


def test_non_finite_distance(graph: OpticGraph):
    a = graph.add_node(Dummy())
    b = graph.add_node(Dummy())
    with pytest.raises(TopologyError, match="finite"):
        graph.connect_nodes(a, "output_1", b, "input_1", math.nan)


def test_cycle_rejected(graph: OpticGraph):
    a, _, c = chain(graph, 3)
    with pytest.raises(TopologyError, match="cycle"):
        graph.connect_nodes(c, "output_1", a, "input_1")


def test_self_loop_rejected(graph: OpticGraph):
    a = graph.add_node(Dummy())
    with pytest.raises(TopologyError, match="cycle"):
        graph.connect_nodes(a, "output_1", a, "input_1")


def test_topological_order(graph: OpticGraph):
    splitter = BeamSplitter("bs")
    d1, d2, d3 = Dummy("d1"), Dummy("d2"), Dummy("d3")
    for node in (d3, splitter, d2, d1):
        graph.add_node(node)
    graph.connect_nodes(d1.uuid, "output_1", splitter.uuid, "input_1")
    graph.connect_nodes(splitter.uuid, "out1_trans1_refl2", d2.uuid, "input_1")
    graph.connect_nodes(splitter.uuid, "out2_trans2_refl1", d3.uuid, "input_1")
    order = graph.topological_order()
    assert order.index(d1.uuid) < order.index(splitter.uuid) < order.index(d2.uuid)
    assert order.index(splitter.uuid) < order.index(d3.uuid)


def test_disconnect_and_distance(graph: OpticGraph):
    a, b = chain(graph, 2)
    graph.update_connection_distance(a, "output_1", 42.0)
    assert graph.outgoing_edge(a, "output_1").distance_mm == 42.0
    graph.disconnect_nodes(a, "output_1")
    assert graph.edges() == []
    with pytest.raises(TopologyError, match="not connected"):
        graph.disconnect_nodes(a, "output_1")


def test_double_inversion_restores_graph(graph: OpticGraph):
    a, b, c = chain(graph, 3)
    graph.map_port(a, PortType.INPUT, "input_1", "in")
    graph.map_port(c, PortType.OUTPUT, "output_1", "out")
    before = [(e.src, e.src_port, e.tgt, e.tgt_port, e.distance_mm) for e in graph.edges()]

    graph.invert_graph()
    assert graph.edges()[0].src == b
    assert graph.node(a).inverted
    assert graph.input_map.get("out") == (c, "output_1")
    assert graph.node(a).input_port_names() == ["output_1"]

    graph.invert_graph()
    after = [(e.src, e.src_port, e.tgt, e.tgt_port, e.distance_mm) for e in graph.edges()]
    assert after == before
    assert not any(node.inverted for node in graph.nodes())
    assert graph.output_map.get("out") == (c, "output_1")


def test_inverted_graph_cannot_be_connected(graph: OpticGraph):
    a = graph.add_node(Dummy())
    b = graph.add_node(Dummy())
    graph.set_inverted(True)
    with pytest.raises(TopologyError, match="inverted"):
        graph.connect_nodes(a, "output_1", b, "input_1")


def test_map_port_rules(graph: OpticGraph):
    a, b = chain(graph, 2)
    with pytest.raises(TopologyError, match="internally connected"):
        graph.map_port(a, PortType.OUTPUT, "output_1", "out")
    graph.map_port(b, PortType.OUTPUT, "output_1", "out")
    c = graph.add_node(Dummy("c"))
    with pytest.raises(TopologyError, match="already mapped"):
        graph.map_port(c, PortType.OUTPUT, "output_1", "out")
    with pytest.raises(TopologyError, match="mapped as external"):
        graph.connect_nodes(b, "output_1", c, "input_1")


def test_stale_detection(graph: OpticGraph):
    a, b = chain(graph, 2)
    lonely = graph.add_node(Dummy("lonely"))
    assert graph.is_stale(lonely)
    assert not graph.is_stale(a)
    single = OpticGraph()
    only = single.add_node(Dummy())
    assert not single.is_stale(only)


def test_delete_node_removes_edges_and_references(graph: OpticGraph):
    a, b = chain(graph, 2)
    mirror = ThinMirror("m", isometry=Isometry.identity())
    graph.add_node(mirror)
    ref = NodeReference("m_again", mirror)
    graph.add_node(ref)
    graph.connect_nodes(b, "output_1", mirror.uuid, "input_1")
    graph.map_port(mirror.uuid, PortType.OUTPUT, "output_1", "out")

    graph.delete_node(mirror.uuid)
    assert len(graph) == 2
    assert graph.outgoing_edges(b) == []
    assert "out" not in graph.output_map
    assert ref.uuid not in graph.node_ids()


def test_reference_resolution(graph: OpticGraph):
    mirror = ThinMirror("m", isometry=Isometry.translation(0.0, 0.0, 5.0))
    graph.add_node(mirror)
    ref = NodeReference("r", mirror)
    graph.add_node(ref)
    assert ref.referenced() is mirror
    assert ref.isometry is mirror.isometry
    assert ref.input_port_names() == ["input_1"]
    assert not ref.positionable


def test_context_propagates(graph: OpticGraph):
    node = Dummy()
    graph.add_node(node)
    context = SimulationContext(ambient_refractive_index=1.33)
    graph.set_context(context)
    assert node.context is context


def test_port_map_round_trip():
    port_map = PortMap()
    node = Dummy()
    port_map.add("in", node.uuid, "input_1")
    loaded = PortMap.from_dict(port_map.to_dict())
    assert loaded.get("in") == (node.uuid, "input_1")
    assert loaded.external_name(node.uuid, "input_1") == "in"
    assert len(loaded) == 1


def test_graph_dict_round_trip(graph: OpticGraph):
    a, b, c = chain(graph, 3)
    graph.map_port(a, PortType.INPUT, "input_1", "in")
    graph.map_port(c, PortType.OUTPUT, "output_1", "out")
    graph.external_distances["in"] = 7.0
    graph.set_inverted(True)

    loaded = OpticGraph.from_dict(graph.to_dict())
    assert loaded.node_ids() == graph.node_ids()
    assert [(e.src, e.tgt, e.distance_mm) for e in loaded.edges()] == [
        (e.src, e.tgt, e.distance_mm) for e in graph.edges()
    ]
    assert loaded.input_map.get("in") == (a, "input_1")
    assert loaded.external_distances == {"in": 7.0}
    assert loaded.inverted
