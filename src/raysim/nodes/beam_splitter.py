"""Ideal beam splitter with two inputs and two outputs."""

from __future__ import annotations

from typing import Any

from opticore.core.config import GhostFocusConfig, RayTraceConfig
from raysim.core.frames import Isometry
from raysim.core.spectrum import merge_spectra
from raysim.light import EnergyData, GeometricData, GhostFocusData, LightResult
from raysim.nodes.base import OpticNode
from raysim.nodes.ports import PortType
from raysim.rays.bundle import RayBundle
from raysim.rays.splitting import RatioSplit, SplittingConfig, splitting_from_dict

IN_1 = "input_1"
IN_2 = "input_2"
OUT_1 = "out1_trans1_refl2"
OUT_2 = "out2_trans2_refl1"


class BeamSplitter(OpticNode):
    """Splits each input into a transmitted and a reflected part.

    ``out1_trans1_refl2`` carries the transmitted part of ``input_1`` and the
    reflected part of ``input_2``; ``out2_trans2_refl1`` the other two. Ray
    directions are not changed. When inverted the splitter combines the two
    outputs back into the inputs with the same rule.

    Args:
        name: Node name
        config: Transmitted fraction, a ratio or a spectrum
        isometry: Fixed pose
    """

    node_type = "beam_splitter"

    def __init__(
        self,
        name: str | None = None,
        config: SplittingConfig | None = None,
        isometry: Isometry | None = None,
    ):
        super().__init__(name, isometry)
        self.config: SplittingConfig = config if config is not None else RatioSplit(0.5)
        self.add_port(PortType.INPUT, IN_1)
        self.add_port(PortType.INPUT, IN_2)
        self.add_port(PortType.OUTPUT, OUT_1)
        self.add_port(PortType.OUTPUT, OUT_2)

    def _ports(self) -> tuple[str, str, str, str]:
        if self.inverted:
            return OUT_1, OUT_2, IN_1, IN_2
        return IN_1, IN_2, OUT_1, OUT_2

    def analyze_energy(self, incoming: LightResult) -> LightResult:
        in1, in2, out1, out2 = self._ports()
        data1 = self.incoming_spectrum(incoming, in1)
        data2 = self.incoming_spectrum(incoming, in2)
        trans1 = refl1 = trans2 = refl2 = None
        if data1 is not None:
            trans1 = data1.spectrum.copy()
            refl1 = self.config.split_spectrum(trans1)
        if data2 is not None:
            trans2 = data2.spectrum.copy()
            refl2 = self.config.split_spectrum(trans2)
        result: LightResult = {}
        merged1 = merge_spectra(trans1, refl2)
        merged2 = merge_spectra(trans2, refl1)
        if merged1 is not None:
            result[out1] = EnergyData(merged1)
        if merged2 is not None:
            result[out2] = EnergyData(merged2)
        return result

    def analyze_raytrace(self, incoming: LightResult, config: RayTraceConfig) -> LightResult:
        in1, in2, out1, out2 = self._ports()
        parts: dict[str, RayBundle] = {}
        for port, trans_out, refl_out in ((in1, out1, out2), (in2, out2, out1)):
            bundle = self.incoming_bundle(incoming, port)
            if bundle is None:
                continue
            self.pass_through_surface(bundle, port, None, config)
            reflected = bundle.split(self.config)
            reflected.invalidate_by_threshold_energy(config.min_energy_per_ray_j, self.logger)
            bundle.invalidate_by_threshold_energy(config.min_energy_per_ray_j, self.logger)
            for target, part in ((trans_out, bundle), (refl_out, reflected)):
                if target in parts:
                    parts[target].merge(part)
                else:
                    parts[target] = part
        return {port: GeometricData(bundle) for port, bundle in parts.items()}

    def analyze_ghost_focus(
        self,
        incoming: LightResult,
        config: GhostFocusConfig,
        ray_collection: list[RayBundle],
        bounce_lvl: int,  # noqa: ARG002
    ) -> LightResult:
        in1, in2, out1, out2 = self._ports()
        outgoing: dict[str, list[RayBundle]] = {out1: [], out2: []}
        for port, trans_out, refl_out in ((in1, out1, out2), (in2, out2, out1)):
            bundles = self.incoming_bundles(incoming, port)
            for bundle in self.ghost_pass_surface(bundles, port, None, config, ray_collection):
                reflected = bundle.split(self.config)
                for target, part in ((trans_out, bundle), (refl_out, reflected)):
                    if part.total_energy() > 0.0:
                        outgoing[target].append(part)
        return {port: GhostFocusData(bundles) for port, bundles in outgoing.items() if bundles}

    def properties(self) -> dict[str, Any]:
        return {"config": self.config.to_dict()}

    @classmethod
    def from_properties(cls, name: str, properties: dict[str, Any]) -> BeamSplitter:
        config = properties.get("config")
        return cls(name=name, config=splitting_from_dict(config) if config else None)


__all__ = ["BeamSplitter"]
