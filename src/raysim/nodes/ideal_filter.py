"""Ideal filter: attenuates light by a constant or spectral transmission."""

from __future__ import annotations

from typing import Any

from opticore.core.config import GhostFocusConfig, RayTraceConfig
from raysim.core.frames import Isometry
from raysim.light import EnergyData, GeometricData, GhostFocusData, LightResult
from raysim.nodes.base import OpticNode
from raysim.nodes.ports import PortType
from raysim.rays.bundle import RayBundle
from raysim.rays.splitting import ConstantFilter, FilterType, filter_from_dict


class IdealFilter(OpticNode):
    """Filter with one input and one output port."""

    node_type = "ideal_filter"

    def __init__(
        self,
        name: str | None = None,
        filter_type: FilterType | None = None,
        isometry: Isometry | None = None,
    ):
        super().__init__(name, isometry)
        self.filter_type: FilterType = filter_type if filter_type is not None else ConstantFilter(1.0)
        self.add_port(PortType.INPUT, "input_1")
        self.add_port(PortType.OUTPUT, "output_1")

    def analyze_energy(self, incoming: LightResult) -> LightResult:
        in_port, out_port = self.directed("input_1", "output_1")
        data = self.incoming_spectrum(incoming, in_port)
        if data is None:
            return {}
        spectrum = data.spectrum.copy()
        self.filter_type.filter_spectrum(spectrum)
        return {out_port: EnergyData(spectrum)}

    def analyze_raytrace(self, incoming: LightResult, config: RayTraceConfig) -> LightResult:
        in_port, out_port = self.directed("input_1", "output_1")
        bundle = self.incoming_bundle(incoming, in_port)
        if bundle is None:
            return {}
        self.pass_through_surface(bundle, in_port, None, config)
        bundle.filter_energy(self.filter_type)
        bundle.invalidate_by_threshold_energy(config.min_energy_per_ray_j, self.logger)
        return {out_port: GeometricData(bundle)}

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
                for bundle in data.bundles:
                    bundle.filter_energy(self.filter_type)
        return result

    def properties(self) -> dict[str, Any]:
        return {"filter_type": self.filter_type.to_dict()}

    @classmethod
    def from_properties(cls, name: str, properties: dict[str, Any]) -> IdealFilter:
        filter_data = properties.get("filter_type")
        return cls(name=name, filter_type=filter_from_dict(filter_data) if filter_data else None)


__all__ = ["IdealFilter"]
