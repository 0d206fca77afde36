"""Light data carried along graph edges.

Each analysis mode has its own payload: energy analysis moves spectra, ray
tracing moves one ray bundle per port and ghost focus analysis moves a list
of bundles per port (one for every reflection path).
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Union

from raysim.core.spectrum import Spectrum
from raysim.rays.bundle import RayBundle


@dataclass(slots=True)
class EnergyData:
    """Spectral energy of an energy analysis."""

    spectrum: Spectrum

    def total_energy(self) -> float:
        return self.spectrum.total_energy()

    def copy(self) -> EnergyData:
        return EnergyData(self.spectrum.copy())

    def to_dict(self) -> dict[str, Any]:
        return {"kind": "energy", "total_energy_j": self.total_energy(), "spectrum": self.spectrum.to_dict()}


@dataclass(slots=True)
class GeometricData:
    """Ray bundle of a ray tracing pass."""

    bundle: RayBundle

    def total_energy(self) -> float:
        return self.bundle.total_energy()

    def copy(self) -> GeometricData:
        return GeometricData(self.bundle.copy())

    def to_dict(self) -> dict[str, Any]:
        centroid = self.bundle.centroid()
        return {
            "kind": "geometric",
            "total_energy_j": self.total_energy(),
            "nr_of_rays": self.bundle.nr_of_rays(),
            "centroid_mm": centroid.tolist() if centroid is not None else None,
            "beam_radius_rms_mm": self.bundle.beam_radius_rms(),
        }


@dataclass(slots=True)
class GhostFocusData:
    """All ray bundles reaching a port during a ghost focus pass."""

    bundles: list[RayBundle] = field(default_factory=list)

    def total_energy(self) -> float:
        return math.fsum(b.total_energy() for b in self.bundles)

    def copy(self) -> GhostFocusData:
        return GhostFocusData([b.copy() for b in self.bundles])

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": "ghost_focus",
            "total_energy_j": self.total_energy(),
            "nr_of_bundles": len(self.bundles),
        }


LightData = Union[EnergyData, GeometricData, GhostFocusData]

# Port name -> data on that port
LightResult = dict[str, LightData]


def result_to_dict(result: LightResult) -> dict[str, Any]:
    """Plain summary of a result, e.g. for JSON output."""
    return {port: data.to_dict() for port, data in result.items()}


__all__ = [
    "EnergyData",
    "GeometricData",
    "GhostFocusData",
    "LightData",
    "LightResult",
    "result_to_dict",
]
