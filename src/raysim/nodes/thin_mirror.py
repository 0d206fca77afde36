"""Thin mirror: reflects all light at a flat or spherical surface."""

from __future__ import annotations

import math
from typing import Any

from opticore.core.config import GhostFocusConfig, RayTraceConfig
from raysim.core.frames import Isometry
from raysim.light import GeometricData, LightResult
from raysim.nodes.base import OpticNode
from raysim.nodes.ports import PortType
from raysim.rays.bundle import RayBundle
from raysim.surfaces.coating import ConstantR
from raysim.surfaces.geometry import Plane, Sphere
from raysim.surfaces.optic_surface import OpticSurface


class ThinMirror(OpticNode):
    """Mirror with one input and one output port.

    Args:
        name: Node name
        curvature_mm: Radius of curvature, infinite for a flat mirror
        reflectivity: Reflectivity of the coating
        isometry: Fixed pose
    """

    node_type = "mirror"

    def __init__(
        self,
        name: str | None = None,
        curvature_mm: float = math.inf,
        reflectivity: float = 1.0,
        isometry: Isometry | None = None,
    ):
        super().__init__(name, isometry)
        self.curvature_mm = float(curvature_mm)
        geometry = Plane() if math.isinf(self.curvature_mm) else Sphere(self.curvature_mm)
        coating = ConstantR(reflectivity)
        self.add_port(PortType.INPUT, "input_1", OpticSurface(geometry, coating=coating, lidt=self.attr.lidt))
        self.add_port(PortType.OUTPUT, "output_1", OpticSurface(Plane(), coating=coating, lidt=self.attr.lidt))

    def reflect(self, incoming: LightResult, config: RayTraceConfig) -> LightResult:
        in_port, out_port = self.directed("input_1", "output_1")
        bundle = self.incoming_bundle(incoming, in_port)
        if bundle is None:
            return {}
        self.pass_through_surface(bundle, "input_1", None, config, refraction_intended=False)
        return {out_port: GeometricData(bundle)}

    def analyze_raytrace(self, incoming: LightResult, config: RayTraceConfig) -> LightResult:
        return self.reflect(incoming, config)

    def analyze_ghost_focus(
        self,
        incoming: LightResult,
        config: GhostFocusConfig,
        ray_collection: list[RayBundle],
        bounce_lvl: int,  # noqa: ARG002
    ) -> LightResult:
        return self.ghost_reflect(incoming, config, ray_collection)

    def properties(self) -> dict[str, Any]:
        coating = self.surface("input_1").coating
        return {
            "curvature_mm": self.curvature_mm,
            "reflectivity": getattr(coating, "reflectivity_value", 1.0),
        }


__all__ = ["ThinMirror"]
