"""Execution engine: scheduled analysis and positioning passes over a graph.

Both passes walk the nodes in topological order, hand each node the data on
its incoming edges (plus boundary data for mapped input ports), store the
node's outputs on its outgoing edges and collect mapped output ports into
the result. Group nodes run the same passes on their inner graph.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from contextlib import contextmanager
from uuid import UUID

import numpy as np

from opticore.core.config import AnalyzerKind, GhostFocusConfig, RayTraceConfig
from opticore.core.errors import AnalysisError, ConcurrencyError
from opticore.core.logging import get_logger
from raysim.core.frames import Isometry
from raysim.graph.optic_graph import OpticGraph
from raysim.light import GeometricData, GhostFocusData, LightResult
from raysim.nodes.base import OpticNode
from raysim.rays.bundle import RayBundle

logger = get_logger(__name__)

UP_DIRECTION = np.array([0.0, 1.0, 0.0])


@contextmanager
def _traversal(graph: OpticGraph) -> Iterator[OpticGraph]:
    """Invert a graph marked inverted for one pass and clear edge data on failure."""
    inverted = graph.inverted
    if inverted:
        graph.invert_graph()
    try:
        graph.clear_edge_data()
        yield graph
    except Exception:
        graph.clear_edge_data()
        raise
    finally:
        if inverted:
            graph.invert_graph()


def _gather_input(graph: OpticGraph, node_id: UUID, incoming: LightResult) -> LightResult:
    node_in: LightResult = {}
    for external, (target, port) in graph.input_map.items():
        if target == node_id and external in incoming:
            node_in[port] = incoming[external].copy()
    for edge in graph.incoming_edges(node_id):
        if edge.data is not None:
            node_in[edge.tgt_port] = edge.data
    return node_in


def _incoming_distances(graph: OpticGraph, node_id: UUID) -> dict[str, float]:
    distances: dict[str, float] = {}
    for external, (target, port) in graph.input_map.items():
        if target == node_id:
            distances[port] = graph.external_distances.get(external, 0.0)
    for edge in graph.incoming_edges(node_id):
        distances[edge.tgt_port] = edge.distance_mm
    return distances


def _run_node(node: OpticNode, call: Callable[[], LightResult]) -> LightResult:
    try:
        with node.lock():
            return call()
    except ConcurrencyError:
        raise
    except Exception as e:
        raise AnalysisError(f"analysis of node '{node.name}' ({node.node_type}) failed: {e}") from e


def apply_limits(outputs: LightResult, config: RayTraceConfig | GhostFocusConfig | None) -> None:
    """Drop rays exceeding the bounce or refraction limit of the pass."""
    for data in outputs.values():
        if isinstance(data, GeometricData) and isinstance(config, RayTraceConfig):
            data.bundle.filter_by_nr_of_bounces(config.max_number_of_bounces)
            data.bundle.filter_by_nr_of_refractions(config.max_number_of_refractions)
            data.bundle.drop_invalid()
        elif isinstance(data, GhostFocusData) and isinstance(config, GhostFocusConfig):
            for bundle in data.bundles:
                bundle.filter_by_nr_of_bounces(config.max_bounces)
                bundle.drop_invalid()
            data.bundles = [b for b in data.bundles if not b.is_empty()]


def _distribute(graph: OpticGraph, node: OpticNode, outputs: LightResult, result: LightResult) -> None:
    for port, data in outputs.items():
        edge = graph.outgoing_edge(node.uuid, port)
        if edge is not None:
            edge.data = data
            continue
        external = graph.output_map.external_name(node.uuid, port)
        if external is not None:
            result[external] = data
        else:
            logger.debug(f"output port '{port}' of node '{node.name}' is not connected, data dropped")


def analyze_graph(
    graph: OpticGraph,
    kind: AnalyzerKind,
    incoming: LightResult | None = None,
    config: RayTraceConfig | GhostFocusConfig | None = None,
    bounce_lvl: int = 0,
    ray_collection: list[RayBundle] | None = None,
) -> LightResult:
    """Run one analysis pass.

    Args:
        graph: Graph to analyze
        kind: Analysis mode
        incoming: Data on the external input ports
        config: Mode configuration
        bounce_lvl: Reflection level of a ghost focus pass
        ray_collection: Collects every bundle of a ghost focus pass

    Returns:
        Data on the external output ports

    Raises:
        TopologyError: If the graph has a cycle
        AnalysisError: If a node fails, naming the node
        ConcurrencyError: If a node is locked by another analysis
    """
    incoming = incoming or {}
    result: LightResult = {}
    with _traversal(graph):
        for node_id in graph.topological_order():
            node = graph.node(node_id)
            if graph.is_stale(node_id):
                node.warn(f"stale node '{node.name}' is not connected and is skipped")
                continue
            node_in = _gather_input(graph, node_id, incoming)
            outputs = _run_node(
                node, lambda: node.analyze(kind, node_in, config, bounce_lvl, ray_collection)
            )
            apply_limits(outputs, config)
            _distribute(graph, node, outputs, result)
    return result


def _place_node(graph: OpticGraph, node: OpticNode, node_in: LightResult, up: np.ndarray) -> None:
    align = node.attr.align_like_node_at_distance
    if align is not None:
        target_id, distance = align
        target = graph.node(target_id) if target_id in graph.node_ids() else None
        if target is not None and target.isometry is not None:
            node.set_isometry(target.isometry.append(Isometry.translation(0.0, 0.0, distance)))
            return
        node.warn(
            f"node '{node.name}' cannot be aligned like node {target_id}, it has no position yet. "
            "Using incoming rays instead."
        )
    distances = _incoming_distances(graph, node.uuid)
    for port in node.input_port_names():
        data = node_in.get(port)
        if not isinstance(data, GeometricData):
            continue
        rays = data.bundle.valid_rays()
        if not rays:
            continue
        ray = rays[0].copy()
        ray.propagate(distances.get(port, 0.0))
        node.set_isometry(ray.to_isometry(up))
        return
    node.warn(f"node '{node.name}' has no input data, cannot be positioned")


def calc_node_positions(
    graph: OpticGraph,
    incoming: LightResult | None = None,
    config: RayTraceConfig | None = None,
    up: np.ndarray | None = None,
) -> LightResult:
    """Place every node without a fixed pose along the traced beam path.

    Returns:
        Data on the external output ports after the positioning trace
    """
    incoming = incoming or {}
    config = config or RayTraceConfig()
    up = UP_DIRECTION.copy() if up is None else np.asarray(up, dtype=np.float64)
    result: LightResult = {}
    with _traversal(graph):
        for node_id in graph.topological_order():
            node = graph.node(node_id)
            if graph.is_stale(node_id):
                node.warn(f"stale node '{node.name}' is not connected and is skipped")
                continue
            node_in = _gather_input(graph, node_id, incoming)
            if node.positionable and node.isometry is None:
                _place_node(graph, node, node_in, up)
                if node.isometry is None:
                    continue
            node.set_incoming_distances(_incoming_distances(graph, node_id))
            outputs = _run_node(node, lambda: node.calc_node_position(node_in, config, up))
            apply_limits(outputs, config)
            for data in outputs.values():
                if isinstance(data, GeometricData) and not data.bundle.is_empty():
                    if node.is_source:
                        up = data.bundle.define_up_direction()
                    else:
                        up = data.bundle.calc_new_up_direction(up)
                    break
            _distribute(graph, node, outputs, result)
    return result


__all__ = ["analyze_graph", "calc_node_positions", "apply_limits", "UP_DIRECTION"]
