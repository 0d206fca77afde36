"""Light source node."""

from __future__ import annotations

from typing import Any

from opticore.core.config import GhostFocusConfig, RayTraceConfig
from opticore.core.errors import ConfigError
from raysim.core.frames import Isometry
from raysim.core.spectrum import Spectrum
from raysim.light import EnergyData, GeometricData, GhostFocusData, LightResult
from raysim.nodes.base import OpticNode
from raysim.nodes.ports import PortType
from raysim.rays.bundle import RayBundle
from raysim.rays.distribution import distribution_from_dict
from raysim.rays.ray import Ray


class Source(OpticNode):
    """Emits a ray bundle (ray tracing) or a spectrum (energy analysis).

    Rays are defined in the local frame of the source and mapped to the world
    by its pose. An inverted source receives light but emits nothing.

    Args:
        name: Node name
        rays: Bundle in local coordinates
        spectrum: Emitted spectrum, derived from ``rays`` if None
        isometry: Pose, the origin if None
        spectrum_resolution_nm: Resolution when deriving the spectrum from rays
    """

    node_type = "source"

    def __init__(
        self,
        name: str | None = None,
        rays: RayBundle | None = None,
        spectrum: Spectrum | None = None,
        isometry: Isometry | None = None,
        spectrum_resolution_nm: float = 1.0,
    ):
        super().__init__(name, isometry if isometry is not None else Isometry.identity())
        if rays is None and spectrum is None:
            raise ConfigError("a source needs rays or a spectrum")
        self.rays = rays
        self.spectrum = spectrum
        self.attr.properties["spectrum_resolution_nm"] = spectrum_resolution_nm
        self.add_port(PortType.OUTPUT, "output_1")

    @property
    def is_source(self) -> bool:
        return True

    def emitted_bundle(self) -> RayBundle:
        if self.rays is None:
            raise ConfigError(f"source '{self.name}' has no rays defined")
        bundle = self.rays.transformed(self.require_isometry())
        bundle.node_origin = self.uuid
        return bundle

    def analyze_energy(self, incoming: LightResult) -> LightResult:  # noqa: ARG002
        if self.inverted:
            return {}
        if self.spectrum is not None:
            return {"output_1": EnergyData(self.spectrum.copy())}
        resolution = self.attr.properties["spectrum_resolution_nm"]
        return {"output_1": EnergyData(self.emitted_bundle().to_spectrum(resolution))}

    def analyze_raytrace(self, incoming: LightResult, config: RayTraceConfig) -> LightResult:  # noqa: ARG002
        if self.inverted:
            return {}
        bundle = self.emitted_bundle()
        bundle.invalidate_by_threshold_energy(config.min_energy_per_ray_j, self.logger)
        return {"output_1": GeometricData(bundle)}

    def analyze_ghost_focus(
        self,
        incoming: LightResult,
        config: GhostFocusConfig,
        ray_collection: list[RayBundle],
        bounce_lvl: int,
    ) -> LightResult:
        if self.inverted or bounce_lvl > 0:
            return {}
        bundle = self.emitted_bundle()
        ray_collection.append(bundle)
        return {"output_1": GhostFocusData([bundle])}

    def properties(self) -> dict[str, Any]:
        props = super().properties()
        if self.rays is not None:
            props["rays"] = [
                {
                    "pos": r.pos.tolist(),
                    "dir": r.dir.tolist(),
                    "wavelength_nm": r.wavelength_nm,
                    "energy_j": r.energy_j,
                }
                for r in self.rays.rays
            ]
        if self.spectrum is not None:
            props["spectrum"] = self.spectrum.to_dict()
        return props

    @classmethod
    def from_properties(cls, name: str, properties: dict[str, Any]) -> Source:
        rays = None
        if "distribution" in properties:
            dist = distribution_from_dict(properties["distribution"])
            rays = RayBundle.new_collimated(
                dist, float(properties["wavelength_nm"]), float(properties["energy_j"])
            )
        elif "rays" in properties:
            rays = RayBundle(
                [Ray(r["pos"], r["dir"], r["wavelength_nm"], r["energy_j"]) for r in properties["rays"]]
            )
        spectrum = Spectrum.from_dict(properties["spectrum"]) if "spectrum" in properties else None
        return cls(
            name=name,
            rays=rays,
            spectrum=spectrum,
            spectrum_resolution_nm=float(properties.get("spectrum_resolution_nm", 1.0)),
        )


__all__ = ["Source"]
