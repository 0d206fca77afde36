"""Parabolic mirror focusing collimated light into its focal point."""

from __future__ import annotations

from typing import Any

from opticore.core.config import GhostFocusConfig, RayTraceConfig
from raysim.core.frames import Isometry
from raysim.light import GeometricData, LightResult
from raysim.nodes.base import OpticNode
from raysim.nodes.ports import PortType
from raysim.rays.bundle import RayBundle
from raysim.surfaces.coating import ConstantR
from raysim.surfaces.geometry import Parabola
from raysim.surfaces.optic_surface import OpticSurface


class ParabolicMirror(OpticNode):
    """Paraboloid mirror; f > 0 focuses light arriving along +z.

    Args:
        name: Node name
        focal_length_mm: Focal length (!= 0)
        reflectivity: Reflectivity of the coating
        isometry: Fixed pose
    """

    node_type = "parabolic_mirror"

    def __init__(
        self,
        name: str | None = None,
        focal_length_mm: float = 100.0,
        reflectivity: float = 1.0,
        isometry: Isometry | None = None,
    ):
        super().__init__(name, isometry)
        # collimated light along +z sees a concave mirror for f > 0
        self.focal_length_mm = float(focal_length_mm)
        coating = ConstantR(reflectivity)
        surface = OpticSurface(Parabola(-self.focal_length_mm), coating=coating, lidt=self.attr.lidt)
        self.add_port(PortType.INPUT, "input_1", surface)
        self.add_port(PortType.OUTPUT, "output_1", OpticSurface(coating=coating, lidt=self.attr.lidt))

    def analyze_raytrace(self, incoming: LightResult, config: RayTraceConfig) -> LightResult:
        in_port, out_port = self.directed("input_1", "output_1")
        bundle = self.incoming_bundle(incoming, in_port)
        if bundle is None:
            return {}
        self.pass_through_surface(bundle, "input_1", None, config, refraction_intended=False)
        return {out_port: GeometricData(bundle)}

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
            "focal_length_mm": self.focal_length_mm,
            "reflectivity": getattr(coating, "reflectivity_value", 1.0),
        }


__all__ = ["ParabolicMirror"]
