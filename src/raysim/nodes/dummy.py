"""Inert node that passes light unchanged through a flat surface."""

from __future__ import annotations

from opticore.core.config import GhostFocusConfig
from raysim.core.frames import Isometry
from raysim.light import LightResult
from raysim.nodes.base import OpticNode
from raysim.nodes.ports import PortType
from raysim.rays.bundle import RayBundle


class Dummy(OpticNode):
    """Placeholder with one input and one output port."""

    node_type = "dummy"

    def __init__(self, name: str | None = None, isometry: Isometry | None = None):
        super().__init__(name, isometry)
        self.add_port(PortType.INPUT, "input_1")
        self.add_port(PortType.OUTPUT, "output_1")

    def analyze_ghost_focus(
        self,
        incoming: LightResult,
        config: GhostFocusConfig,
        ray_collection: list[RayBundle],
        bounce_lvl: int,  # noqa: ARG002
    ) -> LightResult:
        return self.ghost_pass_through(incoming, config, ray_collection)


__all__ = ["Dummy"]
