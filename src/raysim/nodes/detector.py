"""Spot diagram detector: keeps the last ray bundle that reached it."""

from __future__ import annotations

import numpy as np

from opticore.core.config import GhostFocusConfig, RayTraceConfig
from raysim.core.frames import Isometry
from raysim.light import GeometricData, GhostFocusData, LightResult
from raysim.nodes.base import OpticNode
from raysim.nodes.ports import PortType
from raysim.rays.bundle import RayBundle


class Detector(OpticNode):
    """Pass-through node storing the incoming rays for spot diagrams."""

    node_type = "detector"

    def __init__(self, name: str | None = None, isometry: Isometry | None = None):
        super().__init__(name, isometry)
        self.bundles: list[RayBundle] = []
        self.add_port(PortType.INPUT, "input_1")
        self.add_port(PortType.OUTPUT, "output_1")

    def analyze_raytrace(self, incoming: LightResult, config: RayTraceConfig) -> LightResult:
        result = super().analyze_raytrace(incoming, config)
        self.bundles = [d.bundle.copy() for d in result.values() if isinstance(d, GeometricData)]
        return result

    def analyze_ghost_focus(
        self,
        incoming: LightResult,
        config: GhostFocusConfig,
        ray_collection: list[RayBundle],
        bounce_lvl: int,  # noqa: ARG002
    ) -> LightResult:
        result = self.ghost_pass_through(incoming, config, ray_collection)
        for data in result.values():
            if isinstance(data, GhostFocusData):
                self.bundles.extend(b.copy() for b in data.bundles)
        return result

    def spot_diagram(self) -> np.ndarray:
        """Local xy positions (N, 2) of all stored valid rays in mm."""
        iso = self.effective_isometry()
        points = [b.get_xy_rays_pos(iso) for b in self.bundles]
        return np.vstack(points) if points else np.zeros((0, 2))

    def reset_data(self) -> None:
        super().reset_data()
        self.bundles = []


__all__ = ["Detector"]
