"""Group node: a nested graph acting as one node."""

from __future__ import annotations

from typing import Any

import numpy as np

from opticore.core.config import AnalyzerKind, GhostFocusConfig, RayTraceConfig, SimulationContext
from opticore.core.errors import PortError
from raysim.graph.engine import analyze_graph, calc_node_positions
from raysim.graph.optic_graph import OpticGraph
from raysim.light import LightResult
from raysim.nodes.base import OpticNode
from raysim.nodes.ports import PortType
from raysim.rays.bundle import RayBundle
from raysim.surfaces.optic_surface import OpticSurface


class NodeGroup(OpticNode):
    """Node whose behavior is the analysis of an inner graph.

    The ports of the group are the external names of the inner graph's port
    maps. Inverting the group marks the inner graph inverted, so its next
    pass runs backward and the two port sets swap roles.

    Args:
        name: Node name
        graph: Inner graph, an empty one if None
    """

    node_type = "group"

    def __init__(self, name: str | None = None, graph: OpticGraph | None = None):
        super().__init__(name)
        self.graph = graph if graph is not None else OpticGraph(self.context)
        self.attr.inverted = self.graph.inverted
        self.ports.inverted = self.graph.inverted

    @property
    def positionable(self) -> bool:
        return False

    def set_inverted(self, inverted: bool) -> None:
        super().set_inverted(inverted)
        self.graph.set_inverted(inverted)

    def set_context(self, context: SimulationContext) -> None:
        super().set_context(context)
        self.graph.set_context(context)

    def add_node(self, node: OpticNode):  # type: ignore[no-untyped-def]
        return self.graph.add_node(node)

    def map_port(self, node_id, port_type: PortType, internal: str, external: str) -> None:  # type: ignore[no-untyped-def]
        self.graph.map_port(node_id, port_type, internal, external)

    def port_names(self, port_type: PortType) -> list[str]:
        if self.inverted:
            port_type = PortType.OUTPUT if port_type == PortType.INPUT else PortType.INPUT
        port_map = self.graph.input_map if port_type == PortType.INPUT else self.graph.output_map
        return port_map.names()

    def input_port_names(self) -> list[str]:
        return self.port_names(PortType.INPUT)

    def output_port_names(self) -> list[str]:
        return self.port_names(PortType.OUTPUT)

    def surface(self, port: str) -> OpticSurface:
        """Surface of the inner port mapped to ``port``."""
        for port_map in (self.graph.input_map, self.graph.output_map):
            target = port_map.get(port)
            if target is not None:
                return self.graph.node(target[0]).surface(target[1])
        valid = self.graph.input_map.names() + self.graph.output_map.names()
        raise PortError(f"port '{port}' not found. Valid ports: {valid}")

    def set_incoming_distances(self, distances: dict[str, float]) -> None:
        self.graph.external_distances.update(distances)

    def reset_data(self) -> None:
        super().reset_data()
        self.graph.reset_data()

    def reset_hit_maps(self) -> None:
        self.graph.reset_hit_maps()

    def analyze(
        self,
        kind: AnalyzerKind,
        incoming: LightResult,
        config: RayTraceConfig | GhostFocusConfig | None = None,
        bounce_lvl: int = 0,
        ray_collection: list[RayBundle] | None = None,
    ) -> LightResult:
        return analyze_graph(self.graph, kind, incoming, config, bounce_lvl, ray_collection)

    def calc_node_position(
        self, incoming: LightResult, config: RayTraceConfig, up: np.ndarray | None = None
    ) -> LightResult:
        return calc_node_positions(self.graph, incoming, config, up)

    def properties(self) -> dict[str, Any]:
        return {"graph": self.graph.to_dict()}

    @classmethod
    def from_properties(cls, name: str, properties: dict[str, Any]) -> NodeGroup:
        return cls(name=name, graph=OpticGraph.from_dict(properties.get("graph", {})))


__all__ = ["NodeGroup"]
