"""Refractive elements with a front and a rear surface, and the thick spherical lens."""

from __future__ import annotations

import math
from typing import Any

from opticore.core.config import GhostFocusConfig, RayTraceConfig
from opticore.core.errors import ConfigError
from raysim.core.frames import Isometry
from raysim.core.refractive_index import (
    ConstantIndex,
    RefractiveIndex,
    refractive_index_from_dict,
)
from raysim.light import GeometricData, GhostFocusData, LightResult
from raysim.nodes.base import OpticNode
from raysim.nodes.ports import PortType
from raysim.rays.bundle import RayBundle
from raysim.surfaces.geometry import GeoSurface, Plane, Sphere
from raysim.surfaces.optic_surface import OpticSurface


class RefractiveElement(OpticNode):
    """Block of material between the ``input_1`` and ``output_1`` surfaces.

    Subclasses add both ports in their constructor; light is refracted into
    the material on the first surface and back into the ambient medium on the
    second one.
    """

    def __init__(
        self,
        name: str | None,
        center_thickness_mm: float,
        refractive_index: RefractiveIndex | float,
        isometry: Isometry | None,
    ):
        super().__init__(name, isometry)
        if not math.isfinite(center_thickness_mm) or center_thickness_mm < 0.0:
            raise ConfigError("center thickness must be >= 0 and finite")
        self.center_thickness_mm = float(center_thickness_mm)
        if isinstance(refractive_index, (int, float)):
            refractive_index = ConstantIndex(float(refractive_index))
        self.refractive_index: RefractiveIndex = refractive_index

    def surface_sequence(self) -> list[tuple[str, RefractiveIndex]]:
        """(port, index behind the surface) in traversal order."""
        first, second = self.directed("input_1", "output_1")
        return [(first, self.refractive_index), (second, self.ambient_index)]

    def analyze_raytrace(self, incoming: LightResult, config: RayTraceConfig) -> LightResult:
        in_port, out_port = self.directed("input_1", "output_1")
        bundle = self.incoming_bundle(incoming, in_port)
        if bundle is None:
            return {}
        for port, index in self.surface_sequence():
            self.pass_through_surface(bundle, port, index, config)
        return {out_port: GeometricData(bundle)}

    def analyze_ghost_focus(
        self,
        incoming: LightResult,
        config: GhostFocusConfig,
        ray_collection: list[RayBundle],
        bounce_lvl: int,  # noqa: ARG002
    ) -> LightResult:
        in_port, out_port = self.directed("input_1", "output_1")
        bundles = self.incoming_bundles(incoming, in_port)
        for port, index in self.surface_sequence():
            bundles = self.ghost_pass_surface(bundles, port, index, config, ray_collection)
        return {out_port: GhostFocusData(bundles)} if bundles else {}

    @classmethod
    def from_properties(cls, name: str, properties: dict[str, Any]) -> OpticNode:
        props = dict(properties)
        if "refractive_index" in props:
            props["refractive_index"] = refractive_index_from_dict(props["refractive_index"])
        return cls(name=name, **props)


class Lens(RefractiveElement):
    """Lens made of two spherical (or flat) surfaces.

    The front vertex sits at the node pose, the rear vertex ``center_thickness_mm``
    further along the local z axis.

    Args:
        name: Node name
        front_curvature_mm: Radius of the front surface, infinite for flat
        rear_curvature_mm: Radius of the rear surface, infinite for flat
        center_thickness_mm: Vertex distance (>= 0)
        refractive_index: Lens material
        isometry: Fixed pose
    """

    node_type = "lens"

    def __init__(
        self,
        name: str | None = None,
        front_curvature_mm: float = 500.0,
        rear_curvature_mm: float = -500.0,
        center_thickness_mm: float = 10.0,
        refractive_index: RefractiveIndex | float = 1.5,
        isometry: Isometry | None = None,
    ):
        super().__init__(name, center_thickness_mm, refractive_index, isometry)
        self.front_curvature_mm = float(front_curvature_mm)
        self.rear_curvature_mm = float(rear_curvature_mm)
        front = OpticSurface(self.surface_geometry(self.front_curvature_mm), lidt=self.attr.lidt)
        rear = OpticSurface(
            self.surface_geometry(self.rear_curvature_mm),
            anchor_point_iso=Isometry.translation(0.0, 0.0, self.center_thickness_mm),
            lidt=self.attr.lidt,
        )
        self.add_port(PortType.INPUT, "input_1", front)
        self.add_port(PortType.OUTPUT, "output_1", rear)

    def surface_geometry(self, radius_mm: float) -> GeoSurface:
        return Plane() if math.isinf(radius_mm) else Sphere(radius_mm)

    def properties(self) -> dict[str, Any]:
        return {
            "front_curvature_mm": self.front_curvature_mm,
            "rear_curvature_mm": self.rear_curvature_mm,
            "center_thickness_mm": self.center_thickness_mm,
            "refractive_index": self.refractive_index.to_dict(),
        }


__all__ = ["RefractiveElement", "Lens"]
