"""Wedged plate."""

from __future__ import annotations

import math
from typing import Any

from opticore.core.errors import ConfigError
from opticore.core.units import deg_to_rad
from raysim.core.frames import Isometry
from raysim.core.refractive_index import RefractiveIndex
from raysim.nodes.lens import RefractiveElement
from raysim.nodes.ports import PortType
from raysim.surfaces.geometry import Plane
from raysim.surfaces.optic_surface import OpticSurface


class Wedge(RefractiveElement):
    """Plate with a flat front and a flat rear surface tilted about the local x axis.

    Args:
        name: Node name
        center_thickness_mm: Thickness on the optical axis (>= 0)
        wedge_angle_deg: Tilt of the rear surface, within ]-90, 90[ degrees
        refractive_index: Plate material
        isometry: Fixed pose
    """

    node_type = "wedge"

    def __init__(
        self,
        name: str | None = None,
        center_thickness_mm: float = 10.0,
        wedge_angle_deg: float = 0.0,
        refractive_index: RefractiveIndex | float = 1.5,
        isometry: Isometry | None = None,
    ):
        super().__init__(name, center_thickness_mm, refractive_index, isometry)
        if not math.isfinite(wedge_angle_deg) or abs(wedge_angle_deg) >= 90.0:
            raise ConfigError("wedge angle must be finite and within ]-90, 90[ degrees")
        self.wedge_angle_deg = float(wedge_angle_deg)
        rear_iso = Isometry.from_pose(
            (0.0, 0.0, self.center_thickness_mm), (deg_to_rad(self.wedge_angle_deg), 0.0, 0.0)
        )
        self.add_port(PortType.INPUT, "input_1", OpticSurface(Plane(), lidt=self.attr.lidt))
        self.add_port(
            PortType.OUTPUT, "output_1", OpticSurface(Plane(), anchor_point_iso=rear_iso, lidt=self.attr.lidt)
        )

    def properties(self) -> dict[str, Any]:
        return {
            "center_thickness_mm": self.center_thickness_mm,
            "wedge_angle_deg": self.wedge_angle_deg,
            "refractive_index": self.refractive_index.to_dict(),
        }


__all__ = ["Wedge"]
