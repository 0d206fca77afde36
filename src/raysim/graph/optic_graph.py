"""Directed acyclic graph of optical nodes.

The graph exclusively owns its nodes (keyed by uuid, in insertion order).
Edges connect an output port of one node to an input port of another and
carry the free space distance between them plus the light data of the last
pass. When the graph is nested in a group node, the input and output port
maps expose internal ports under external names.
"""

from __future__ import annotations

import math
from collections import deque
from dataclasses import dataclass
from typing import Any
from uuid import UUID

from opticore.core.config import SimulationContext
from opticore.core.errors import PortError, TopologyError
from opticore.core.logging import get_logger
from raysim.graph.port_map import PortMap
from raysim.light import LightData
from raysim.nodes.base import OpticNode
from raysim.nodes.ports import PortType
from raysim.nodes.reference import NodeReference

logger = get_logger(__name__)


@dataclass(slots=True)
class Edge:
    """Connection from an output port to an input port."""

    src: UUID
    src_port: str
    tgt: UUID
    tgt_port: str
    distance_mm: float = 0.0
    data: LightData | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "src": str(self.src),
            "src_port": self.src_port,
            "tgt": str(self.tgt),
            "tgt_port": self.tgt_port,
            "distance_mm": self.distance_mm,
        }


class OpticGraph:
    """Node store, edges and boundary port maps.

    Args:
        context: Configuration shared by all nodes of the graph
    """

    def __init__(self, context: SimulationContext | None = None):
        self._nodes: dict[UUID, OpticNode] = {}
        self._edges: list[Edge] = []
        self.input_map = PortMap()
        self.output_map = PortMap()
        self.inverted = False
        self.external_distances: dict[str, float] = {}
        self.context = context if context is not None else SimulationContext()

    # -- nodes ----------------------------------------------------------------

    def add_node(self, node: OpticNode) -> UUID:
        """Take ownership of ``node``.

        Returns:
            The node uuid

        Raises:
            TopologyError: If a node with the same uuid exists
        """
        if node.uuid in self._nodes:
            raise TopologyError(f"node with uuid {node.uuid} already in graph")
        node.set_context(self.context)
        if isinstance(node, NodeReference):
            node.bind_resolver(self.node)
        self._nodes[node.uuid] = node
        logger.debug(f"added node '{node.name}'", {"node_type": node.node_type, "uuid": str(node.uuid)})
        return node.uuid

    def node(self, node_id: UUID) -> OpticNode:
        """Node by uuid.

        Raises:
            TopologyError: If the uuid is unknown
        """
        try:
            return self._nodes[node_id]
        except KeyError:
            raise TopologyError(f"node {node_id} not found in graph") from None

    def nodes(self) -> list[OpticNode]:
        return list(self._nodes.values())

    def node_ids(self) -> list[UUID]:
        return list(self._nodes)

    def find(self, name: str) -> OpticNode:
        """First node with ``name``.

        Raises:
            TopologyError: If no node has that name
        """
        for node in self._nodes.values():
            if node.name == name:
                return node
        raise TopologyError(f"no node named '{name}' in graph")

    def delete_node(self, node_id: UUID) -> None:
        """Remove a node with its edges, port mappings and all references to it."""
        self.node(node_id)
        del self._nodes[node_id]
        self._edges = [e for e in self._edges if node_id not in (e.src, e.tgt)]
        self.input_map.remove_node(node_id)
        self.output_map.remove_node(node_id)
        refs = [
            n.uuid for n in self._nodes.values() if isinstance(n, NodeReference) and n.reference_id == node_id
        ]
        for ref_id in refs:
            self.delete_node(ref_id)

    def set_context(self, context: SimulationContext) -> None:
        self.context = context
        for node in self._nodes.values():
            node.set_context(context)

    # -- edges ----------------------------------------------------------------

    def edges(self) -> list[Edge]:
        return list(self._edges)

    def incoming_edges(self, node_id: UUID) -> list[Edge]:
        return [e for e in self._edges if e.tgt == node_id]

    def outgoing_edges(self, node_id: UUID) -> list[Edge]:
        return [e for e in self._edges if e.src == node_id]

    def outgoing_edge(self, node_id: UUID, port: str) -> Edge | None:
        for edge in self._edges:
            if edge.src == node_id and edge.src_port == port:
                return edge
        return None

    def _check_port(self, node: OpticNode, port_type: PortType, port: str) -> None:
        valid = node.port_names(port_type)
        if port not in valid:
            raise PortError(
                f"{port_type.value} port '{port}' of node '{node.name}' not found. Valid ports: {valid}"
            )

    def _reachable(self, start: UUID, goal: UUID) -> bool:
        seen = {start}
        queue = deque([start])
        while queue:
            current = queue.popleft()
            if current == goal:
                return True
            for edge in self.outgoing_edges(current):
                if edge.tgt not in seen:
                    seen.add(edge.tgt)
                    queue.append(edge.tgt)
        return False

    def connect_nodes(
        self, src: UUID, src_port: str, tgt: UUID, tgt_port: str, distance_mm: float = 0.0
    ) -> Edge:
        """Connect an output port to an input port.

        Raises:
            TopologyError: If the graph is inverted, a port is unknown or
                already connected or mapped, the distance is not finite, or the
                connection would close a cycle
        """
        if self.inverted:
            raise TopologyError("cannot connect nodes of an inverted graph")
        src_node, tgt_node = self.node(src), self.node(tgt)
        self._check_port(src_node, PortType.OUTPUT, src_port)
        self._check_port(tgt_node, PortType.INPUT, tgt_port)
        if not math.isfinite(distance_mm):
            raise TopologyError("connection distance must be finite")
        for edge in self._edges:
            if edge.src == src and edge.src_port == src_port:
                raise TopologyError(f"port '{src_port}' of node '{src_node.name}' is already connected")
            if edge.tgt == tgt and edge.tgt_port == tgt_port:
                raise TopologyError(f"port '{tgt_port}' of node '{tgt_node.name}' is already connected")
        if self.output_map.external_name(src, src_port) is not None:
            raise TopologyError(f"port '{src_port}' of node '{src_node.name}' is mapped as external port")
        if self.input_map.external_name(tgt, tgt_port) is not None:
            raise TopologyError(f"port '{tgt_port}' of node '{tgt_node.name}' is mapped as external port")
        if self._reachable(tgt, src):
            raise TopologyError(
                f"connecting '{src_node.name}' to '{tgt_node.name}' would form a cycle"
            )
        edge = Edge(src, src_port, tgt, tgt_port, float(distance_mm))
        self._edges.append(edge)
        return edge

    def disconnect_nodes(self, src: UUID, src_port: str) -> None:
        edge = self.outgoing_edge(src, src_port)
        if edge is None:
            raise TopologyError(f"port '{src_port}' of node {src} is not connected")
        self._edges.remove(edge)

    def update_connection_distance(self, src: UUID, src_port: str, distance_mm: float) -> None:
        if not math.isfinite(distance_mm):
            raise TopologyError("connection distance must be finite")
        edge = self.outgoing_edge(src, src_port)
        if edge is None:
            raise TopologyError(f"port '{src_port}' of node {src} is not connected")
        edge.distance_mm = float(distance_mm)

    def clear_edge_data(self) -> None:
        for edge in self._edges:
            edge.data = None

    # -- boundary ports ---------------------------------------------------------

    def map_port(self, node_id: UUID, port_type: PortType, internal: str, external: str) -> None:
        """Expose ``internal`` of ``node_id`` as external port ``external``.

        Raises:
            TopologyError: If the port is unknown or connected, or the name is taken
        """
        node = self.node(node_id)
        self._check_port(node, port_type, internal)
        if port_type == PortType.INPUT:
            if any(e.tgt == node_id and e.tgt_port == internal for e in self._edges):
                raise TopologyError(f"port '{internal}' of node '{node.name}' is internally connected")
            self.input_map.add(external, node_id, internal)
        else:
            if self.outgoing_edge(node_id, internal) is not None:
                raise TopologyError(f"port '{internal}' of node '{node.name}' is internally connected")
            self.output_map.add(external, node_id, internal)

    # -- inversion --------------------------------------------------------------

    def set_inverted(self, inverted: bool) -> None:
        """Mark the graph for backward traversal in the next pass."""
        self.inverted = inverted

    def invert_graph(self) -> None:
        """Reverse all edges, toggle every node's direction and swap the port maps.

        Applying it twice restores the graph.
        """
        self._edges = [
            Edge(e.tgt, e.tgt_port, e.src, e.src_port, e.distance_mm, e.data) for e in self._edges
        ]
        for node in self._nodes.values():
            node.set_inverted(not node.inverted)
        self.input_map, self.output_map = self.output_map, self.input_map

    # -- scheduling -------------------------------------------------------------

    def topological_order(self) -> list[UUID]:
        """Kahn's algorithm over the nodes in insertion order.

        Raises:
            TopologyError: If the graph contains a cycle
        """
        in_degree = {node_id: 0 for node_id in self._nodes}
        for edge in self._edges:
            in_degree[edge.tgt] += 1
        queue = deque(node_id for node_id, deg in in_degree.items() if deg == 0)
        order: list[UUID] = []
        while queue:
            current = queue.popleft()
            order.append(current)
            for edge in self.outgoing_edges(current):
                in_degree[edge.tgt] -= 1
                if in_degree[edge.tgt] == 0:
                    queue.append(edge.tgt)
        if len(order) != len(self._nodes):
            raise TopologyError("graph contains a cycle")
        return order

    def is_stale(self, node_id: UUID) -> bool:
        """True for a node without edges and mapped ports in a graph of several nodes."""
        if len(self._nodes) < 2:
            return False
        if any(node_id in (e.src, e.tgt) for e in self._edges):
            return False
        mapped = [v[0] for _, v in self.input_map.items()] + [v[0] for _, v in self.output_map.items()]
        return node_id not in mapped

    def reset_data(self) -> None:
        for node in self._nodes.values():
            node.reset_data()

    def reset_hit_maps(self) -> None:
        for node in self._nodes.values():
            node.reset_hit_maps()

    # -- persistence ------------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        return {
            "context": self.context.model_dump(mode="json"),
            "inverted": self.inverted,
            "nodes": [node.to_dict() for node in self._nodes.values()],
            "edges": [edge.to_dict() for edge in self._edges],
            "input_map": self.input_map.to_dict(),
            "output_map": self.output_map.to_dict(),
            "external_distances": dict(self.external_distances),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> OpticGraph:
        """Build a graph from ``to_dict`` output.

        Raises:
            ConfigError: If a node cannot be built
            TopologyError: If an edge or mapping is invalid
        """
        # the registry imports NodeGroup, which imports this module
        from raysim.nodes.registry import node_from_dict

        graph = cls(SimulationContext(**data.get("context", {})))
        for node_data in data.get("nodes", []):
            graph.add_node(node_from_dict(node_data))
        for edge in data.get("edges", []):
            graph.connect_nodes(
                UUID(edge["src"]),
                edge["src_port"],
                UUID(edge["tgt"]),
                edge["tgt_port"],
                float(edge.get("distance_mm", 0.0)),
            )
        for port_type, key in ((PortType.INPUT, "input_map"), (PortType.OUTPUT, "output_map")):
            for external, (node_id, internal) in data.get(key, {}).items():
                graph.map_port(UUID(node_id), port_type, internal, external)
        graph.external_distances = {k: float(v) for k, v in data.get("external_distances", {}).items()}
        graph.set_inverted(bool(data.get("inverted", False)))
        return graph

    def __len__(self) -> int:
        return len(self._nodes)

    def __repr__(self) -> str:
        return f"OpticGraph({len(self._nodes)} nodes, {len(self._edges)} edges, inverted={self.inverted})"


__all__ = ["Edge", "OpticGraph"]
