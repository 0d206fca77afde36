"""Ideal thin lens."""

from __future__ import annotations

import math
from typing import Any

from opticore.core.config import GhostFocusConfig, RayTraceConfig
from opticore.core.errors import ConfigError
from raysim.core.frames import Isometry
from raysim.light import GeometricData, GhostFocusData, LightResult
from raysim.nodes.base import OpticNode
from raysim.nodes.ports import PortType
from raysim.rays.bundle import RayBundle


class ParaxialSurface(OpticNode):
    """Aberration free lens of the given focal length in the local z = 0 plane."""

    node_type = "paraxial_surface"

    def __init__(
        self,
        name: str | None = None,
        focal_length_mm: float = 100.0,
        isometry: Isometry | None = None,
    ):
        if focal_length_mm == 0.0 or not math.isfinite(focal_length_mm):
            raise ConfigError("focal length must be != 0.0 & finite")
        super().__init__(name, isometry)
        self.focal_length_mm = float(focal_length_mm)
        self.add_port(PortType.INPUT, "input_1")
        self.add_port(PortType.OUTPUT, "output_1")

    def analyze_raytrace(self, incoming: LightResult, config: RayTraceConfig) -> LightResult:
        in_port, out_port = self.directed("input_1", "output_1")
        bundle = self.incoming_bundle(incoming, in_port)
        if bundle is None:
            return {}
        self.pass_through_surface(bundle, in_port, None, config)
        bundle.refract_paraxial(self.focal_length_mm, self.require_isometry())
        return {out_port: GeometricData(bundle)}

    def analyze_ghost_focus(
        self,
        incoming: LightResult,
        config: GhostFocusConfig,
        ray_collection: list[RayBundle],
        bounce_lvl: int,  # noqa: ARG002
    ) -> LightResult:
        in_port, out_port = self.directed("input_1", "output_1")
        bundles = self.ghost_pass_surface(
            self.incoming_bundles(incoming, in_port), in_port, None, config, ray_collection
        )
        for bundle in bundles:
            bundle.refract_paraxial(self.focal_length_mm, self.require_isometry())
        return {out_port: GhostFocusData(bundles)} if bundles else {}

    def properties(self) -> dict[str, Any]:
        return {"focal_length_mm": self.focal_length_mm}


__all__ = ["ParaxialSurface"]
