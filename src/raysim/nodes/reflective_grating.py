"""Reflective diffraction grating."""

from __future__ import annotations

import math
from typing import Any

from opticore.core.config import RayTraceConfig
from opticore.core.errors import ConfigError
from raysim.core.frames import Isometry
from raysim.light import GeometricData, LightResult
from raysim.nodes.base import OpticNode
from raysim.nodes.ports import PortType


class ReflectiveGrating(OpticNode):
    """Grating with lines along the local y axis.

    Args:
        name: Node name
        line_density: Lines per mm (> 0)
        diffraction_order: Order the light is sent into
        isometry: Fixed pose
    """

    node_type = "reflective_grating"

    def __init__(
        self,
        name: str | None = None,
        line_density: float = 1740.0,
        diffraction_order: int = 1,
        isometry: Isometry | None = None,
    ):
        if not math.isfinite(line_density) or line_density <= 0.0:
            raise ConfigError("line density must be > 0 and finite")
        super().__init__(name, isometry)
        self.line_density = float(line_density)
        self.diffraction_order = int(diffraction_order)
        self.add_port(PortType.INPUT, "input_1")
        self.add_port(PortType.OUTPUT, "output_1")

    def grating_vector(self):  # type: ignore[no-untyped-def]
        """2 pi * line density along the local x axis, in world coordinates (1/mm)."""
        iso = self.require_isometry()
        return 2.0 * math.pi * self.line_density * iso.transform_vector((1.0, 0.0, 0.0))

    def analyze_raytrace(self, incoming: LightResult, config: RayTraceConfig) -> LightResult:
        in_port, out_port = self.directed("input_1", "output_1")
        bundle = self.incoming_bundle(incoming, in_port)
        if bundle is None:
            return {}
        surface = self.surface("input_1")
        bundle.diffract_on_periodic_surface(
            surface,
            self.ambient_index,
            self.grating_vector(),
            self.diffraction_order,
            config.missed_surface_strategy,
            self.logger,
        )
        if bundle.apodize(surface.aperture, surface.isometry):
            self.warn("rays have been apodized at port 'input_1'")
        bundle.invalidate_by_threshold_energy(config.min_energy_per_ray_j, self.logger)
        return {out_port: GeometricData(bundle)}

    def properties(self) -> dict[str, Any]:
        return {"line_density": self.line_density, "diffraction_order": self.diffraction_order}


__all__ = ["ReflectiveGrating"]
