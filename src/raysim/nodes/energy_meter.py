"""Energy meter: measures the energy passing through it."""

from __future__ import annotations

from enum import Enum
from typing import Any

from opticore.core.config import GhostFocusConfig, RayTraceConfig
from raysim.core.frames import Isometry
from raysim.light import LightResult
from raysim.nodes.base import OpticNode
from raysim.nodes.ports import PortType
from raysim.rays.bundle import RayBundle


class MeterType(str, Enum):
    """Kind of instrument, only affects reporting."""

    IDEAL = "ideal"
    PYROELECTRIC = "pyroelectric"
    PHOTODIODE = "photodiode"


class EnergyMeter(OpticNode):
    """Pass-through node recording the total energy of the last analysis."""

    node_type = "energy_meter"

    def __init__(
        self,
        name: str | None = None,
        meter_type: MeterType | str = MeterType.IDEAL,
        isometry: Isometry | None = None,
    ):
        super().__init__(name, isometry)
        self.meter_type = MeterType(meter_type)
        self.measured_energy_j: float | None = None
        self.add_port(PortType.INPUT, "input_1")
        self.add_port(PortType.OUTPUT, "output_1")

    def _record(self, result: LightResult) -> LightResult:
        self.measured_energy_j = sum(data.total_energy() for data in result.values())
        self.logger.info("energy measured", {"energy_j": self.measured_energy_j})
        return result

    def analyze_energy(self, incoming: LightResult) -> LightResult:
        return self._record(super().analyze_energy(incoming))

    def analyze_raytrace(self, incoming: LightResult, config: RayTraceConfig) -> LightResult:
        return self._record(super().analyze_raytrace(incoming, config))

    def analyze_ghost_focus(
        self,
        incoming: LightResult,
        config: GhostFocusConfig,
        ray_collection: list[RayBundle],
        bounce_lvl: int,  # noqa: ARG002
    ) -> LightResult:
        return self._record(self.ghost_pass_through(incoming, config, ray_collection))

    def reset_data(self) -> None:
        super().reset_data()
        self.measured_energy_j = None

    def properties(self) -> dict[str, Any]:
        return {"meter_type": self.meter_type.value}


__all__ = ["MeterType", "EnergyMeter"]
