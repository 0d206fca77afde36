"""Proxy node for hardware shared by several beam passes."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any
from uuid import UUID

import numpy as np

from opticore.core.config import AnalyzerKind, GhostFocusConfig, RayTraceConfig
from opticore.core.errors import AnalysisError, ConfigError, OpticsError
from raysim.core.frames import Isometry
from raysim.light import LightResult
from raysim.nodes.base import OpticNode
from raysim.nodes.ports import PortType
from raysim.rays.bundle import RayBundle
from raysim.surfaces.optic_surface import OpticSurface

Resolver = Callable[[UUID], OpticNode]


class NodeReference(OpticNode):
    """Mirror of another node's ports, pose and analyses.

    The reference only stores the uuid of the referenced node. The node is
    looked up through the owning graph each time it is used, so a double pass
    system shares one set of surfaces (and hit maps) without a cycle in the
    graph. During an analysis the referenced node is locked and takes the
    direction of the reference.

    Args:
        name: Node name
        node: Node to reference, only its uuid is kept
        reference_id: Uuid of the referenced node if ``node`` is not given
    """

    node_type = "reference"

    def __init__(
        self,
        name: str | None = None,
        node: OpticNode | None = None,
        reference_id: UUID | str | None = None,
    ):
        if node is not None:
            reference_id = node.uuid
        if reference_id is None:
            raise ConfigError("a node reference needs a node or a reference id")
        super().__init__(name)
        self.reference_id = reference_id if isinstance(reference_id, UUID) else UUID(str(reference_id))
        self._resolver: Resolver | None = None

    def bind_resolver(self, resolver: Resolver) -> None:
        """Set the lookup of the graph owning the referenced node."""
        self._resolver = resolver

    def referenced(self) -> OpticNode:
        """The referenced node.

        Raises:
            AnalysisError: If the reference is unbound or the node is gone
        """
        if self._resolver is None:
            raise AnalysisError(f"reference '{self.name}' is not bound to a graph")
        try:
            return self._resolver(self.reference_id)
        except OpticsError as e:
            raise AnalysisError(f"reference '{self.name}' could not resolve node {self.reference_id}: {e}") from e

    @property
    def positionable(self) -> bool:
        return False

    @property
    def isometry(self) -> Isometry | None:
        return self.referenced().isometry

    def effective_isometry(self) -> Isometry | None:
        return self.referenced().effective_isometry()

    def port_names(self, port_type: PortType) -> list[str]:
        ports = self.referenced().ports
        if self.inverted:
            port_type = PortType.OUTPUT if port_type == PortType.INPUT else PortType.INPUT
        return list(ports.inputs if port_type == PortType.INPUT else ports.outputs)

    def input_port_names(self) -> list[str]:
        return self.port_names(PortType.INPUT)

    def output_port_names(self) -> list[str]:
        return self.port_names(PortType.OUTPUT)

    def surface(self, port: str) -> OpticSurface:
        return self.referenced().surface(port)

    def analyze(
        self,
        kind: AnalyzerKind,
        incoming: LightResult,
        config: RayTraceConfig | GhostFocusConfig | None = None,
        bounce_lvl: int = 0,
        ray_collection: list[RayBundle] | None = None,
    ) -> LightResult:
        node = self.referenced()
        with node.lock():
            previous = node.inverted
            node.set_inverted(self.inverted)
            try:
                return node.analyze(kind, incoming, config, bounce_lvl, ray_collection)
            finally:
                node.set_inverted(previous)

    def calc_node_position(
        self, incoming: LightResult, config: RayTraceConfig, up: np.ndarray | None = None
    ) -> LightResult:
        node = self.referenced()
        with node.lock():
            previous = node.inverted
            node.set_inverted(self.inverted)
            try:
                return node.calc_node_position(incoming, config, up)
            finally:
                node.set_inverted(previous)

    def reset_data(self) -> None:
        # surfaces belong to the referenced node
        self.attr.warnings.clear()

    def reset_hit_maps(self) -> None:
        pass

    def properties(self) -> dict[str, Any]:
        return {"reference_id": str(self.reference_id)}


__all__ = ["NodeReference", "Resolver"]
