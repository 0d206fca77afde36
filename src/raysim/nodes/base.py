"""Base class of all optical nodes.

A node owns its ports (each with an optical surface), an optional pose and
node specific properties. The execution engine calls one analysis method per
mode; nodes without a dedicated implementation fall back to the behavior
defined here.
"""

from __future__ import annotations

import math
import threading
import uuid as uuidlib
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, ClassVar
from uuid import UUID

import numpy as np

from opticore.core.config import (
    AnalyzerKind,
    GhostFocusConfig,
    RayTraceConfig,
    SimulationContext,
)
from opticore.core.errors import AnalysisError, ConcurrencyError, ConfigError
from opticore.core.logging import StructuredLogger, get_logger
from raysim.core.frames import Isometry
from raysim.core.refractive_index import ConstantIndex, RefractiveIndex
from raysim.light import EnergyData, GeometricData, GhostFocusData, LightResult
from raysim.nodes.ports import OpticPorts, PortType
from raysim.rays.bundle import RayBundle
from raysim.surfaces.optic_surface import DEFAULT_LIDT, OpticSurface


@dataclass
class NodeAttr:
    """Attributes shared by all nodes."""

    name: str
    node_type: str
    uuid: UUID = field(default_factory=uuidlib.uuid4)
    ports: OpticPorts = field(default_factory=OpticPorts)
    isometry: Isometry | None = None
    alignment: Isometry | None = None
    align_like_node_at_distance: tuple[UUID, float] | None = None
    inverted: bool = False
    lidt: float = DEFAULT_LIDT
    properties: dict[str, Any] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)


class OpticNode:
    """Optical node with ports, pose and per-mode analysis.

    Args:
        name: Display name, defaults to the node type
        isometry: Fixed pose, placed by the positioning pass if None
    """

    node_type: ClassVar[str] = "node"

    def __init__(self, name: str | None = None, isometry: Isometry | None = None):
        self.attr = NodeAttr(name=name or self.node_type, node_type=self.node_type)
        self.context = SimulationContext()
        self._lock = threading.Lock()
        self.logger: StructuredLogger = get_logger(type(self).__module__).bind(
            node=self.attr.name, node_uuid=str(self.attr.uuid)
        )
        if isometry is not None:
            self.set_isometry(isometry)

    # -- identity and pose ----------------------------------------------------

    @property
    def name(self) -> str:
        return self.attr.name

    @property
    def uuid(self) -> UUID:
        return self.attr.uuid

    @property
    def ports(self) -> OpticPorts:
        return self.attr.ports

    @property
    def isometry(self) -> Isometry | None:
        return self.attr.isometry

    @property
    def inverted(self) -> bool:
        return self.attr.inverted

    def set_inverted(self, inverted: bool) -> None:
        self.attr.inverted = inverted
        self.ports.inverted = inverted

    @property
    def is_source(self) -> bool:
        return False

    @property
    def positionable(self) -> bool:
        """Whether the positioning pass assigns a pose to this node."""
        return True

    def effective_isometry(self) -> Isometry | None:
        """Pose including the local alignment."""
        if self.attr.isometry is None:
            return None
        if self.attr.alignment is None:
            return self.attr.isometry
        return self.attr.isometry.append(self.attr.alignment)

    def set_isometry(self, iso: Isometry) -> None:
        self.attr.isometry = iso
        self.ports.set_isometry(self.effective_isometry())  # type: ignore[arg-type]

    def set_alignment(self, alignment: Isometry) -> None:
        self.attr.alignment = alignment
        if self.attr.isometry is not None:
            self.set_isometry(self.attr.isometry)

    def set_align_like_node_at_distance(self, node_uuid: UUID, distance_mm: float) -> None:
        if not math.isfinite(distance_mm):
            raise ConfigError("alignment distance must be finite")
        self.attr.align_like_node_at_distance = (node_uuid, float(distance_mm))

    def set_lidt(self, lidt: float) -> None:
        self.ports.set_lidt(lidt)
        self.attr.lidt = lidt

    # -- ports ----------------------------------------------------------------

    def add_port(self, port_type: PortType, name: str, surface: OpticSurface | None = None) -> None:
        if surface is None:
            surface = OpticSurface(lidt=self.attr.lidt)
        self.ports.add(port_type, name, surface)
        if self.effective_isometry() is not None:
            surface.set_isometry(self.effective_isometry())  # type: ignore[arg-type]

    def input_port_names(self) -> list[str]:
        return self.ports.names(PortType.INPUT)

    def output_port_names(self) -> list[str]:
        return self.ports.names(PortType.OUTPUT)

    def port_names(self, port_type: PortType) -> list[str]:
        return self.ports.names(port_type)

    def surface(self, port: str) -> OpticSurface:
        return self.ports.surface(port)

    def directed(self, input_port: str, output_port: str) -> tuple[str, str]:
        """(incoming, outgoing) port names for the current direction."""
        if self.inverted:
            return output_port, input_port
        return input_port, output_port

    # -- diagnostics and state ------------------------------------------------

    def warn(self, msg: str, data: dict[str, Any] | None = None) -> None:
        """Record a non-fatal diagnostic on this node."""
        self.attr.warnings.append(msg)
        self.logger.warning(msg, data)

    def reset_data(self) -> None:
        """Clear hit maps, ray caches and warnings before a new run."""
        self.ports.reset_data()
        self.attr.warnings.clear()

    def reset_hit_maps(self) -> None:
        for surface in self.ports.surfaces():
            surface.reset_hit_map()

    @contextmanager
    def lock(self) -> Iterator[OpticNode]:
        """Hold the node exclusively for one analysis call.

        Raises:
            ConcurrencyError: If the node is already locked
        """
        if not self._lock.acquire(blocking=False):
            raise ConcurrencyError(f"node '{self.name}' is already locked by another analysis")
        try:
            yield self
        finally:
            self._lock.release()

    def set_context(self, context: SimulationContext) -> None:
        self.context = context

    def set_incoming_distances(self, distances: dict[str, float]) -> None:
        """Distances of the edges feeding this node, used by nested graphs."""

    def require_isometry(self) -> Isometry:
        iso = self.effective_isometry()
        if iso is None:
            raise AnalysisError(f"node '{self.name}' has no position")
        return iso

    @property
    def ambient_index(self) -> RefractiveIndex:
        return ConstantIndex(max(1.0, self.context.ambient_refractive_index))

    # -- analyses -------------------------------------------------------------

    def analyze(
        self,
        kind: AnalyzerKind,
        incoming: LightResult,
        config: RayTraceConfig | GhostFocusConfig | None = None,
        bounce_lvl: int = 0,
        ray_collection: list[RayBundle] | None = None,
    ) -> LightResult:
        """Dispatch to the analysis of ``kind``."""
        if kind == AnalyzerKind.ENERGY:
            return self.analyze_energy(incoming)
        if kind == AnalyzerKind.RAYTRACE:
            return self.analyze_raytrace(incoming, config or RayTraceConfig())  # type: ignore[arg-type]
        if kind == AnalyzerKind.GHOST_FOCUS:
            collection = ray_collection if ray_collection is not None else []
            return self.analyze_ghost_focus(
                incoming, config or GhostFocusConfig(), collection, bounce_lvl  # type: ignore[arg-type]
            )
        raise AnalysisError(f"unknown analysis kind '{kind}'")

    def analyze_energy(self, incoming: LightResult) -> LightResult:
        """Pass light from the first input port to the first output port."""
        ins, outs = self.input_port_names(), self.output_port_names()
        if not ins or not outs or ins[0] not in incoming:
            return {}
        return {outs[0]: incoming[ins[0]]}

    def analyze_raytrace(self, incoming: LightResult, config: RayTraceConfig) -> LightResult:
        ins, outs = self.input_port_names(), self.output_port_names()
        if not ins or not outs:
            return {}
        bundle = self.incoming_bundle(incoming, ins[0])
        if bundle is None:
            return {}
        self.pass_through_surface(bundle, ins[0], None, config)
        return {outs[0]: GeometricData(bundle)}

    def calc_node_position(
        self, incoming: LightResult, config: RayTraceConfig, up: np.ndarray | None = None  # noqa: ARG002
    ) -> LightResult:
        """Ray trace used while placing nodes.

        ``up`` is the up direction of the beam reaching the node; only nodes
        that place nodes of their own use it.
        """
        return self.analyze_raytrace(incoming, config)

    def analyze_ghost_focus(
        self,
        incoming: LightResult,
        config: GhostFocusConfig,
        ray_collection: list[RayBundle],
        bounce_lvl: int,
    ) -> LightResult:
        self.warn("No ghost focus analysis function defined", {"bounce_lvl": bounce_lvl})
        return {}

    # -- helpers shared by node implementations ------------------------------

    def incoming_bundle(self, incoming: LightResult, port: str) -> RayBundle | None:
        data = incoming.get(port)
        if data is None:
            return None
        if not isinstance(data, GeometricData):
            raise AnalysisError(f"expected geometric ray data on port '{port}', got {type(data).__name__}")
        return data.bundle

    def incoming_spectrum(self, incoming: LightResult, port: str) -> EnergyData | None:
        data = incoming.get(port)
        if data is None:
            return None
        if isinstance(data, GeometricData):
            return EnergyData(data.bundle.to_spectrum(self.attr.properties.get("spectrum_resolution_nm", 1.0)))
        if not isinstance(data, EnergyData):
            raise AnalysisError(f"expected energy data on port '{port}', got {type(data).__name__}")
        return data

    def incoming_bundles(self, incoming: LightResult, port: str) -> list[RayBundle]:
        data = incoming.get(port)
        if data is None:
            return []
        if isinstance(data, GeometricData):
            return [data.bundle]
        if not isinstance(data, GhostFocusData):
            raise AnalysisError(f"expected ghost focus data on port '{port}', got {type(data).__name__}")
        return list(data.bundles)

    def pass_through_surface(
        self,
        bundle: RayBundle,
        port: str,
        refractive_index: RefractiveIndex | None,
        config: RayTraceConfig,
        refraction_intended: bool = True,
    ) -> RayBundle:
        """Refract ``bundle`` on the surface of ``port`` and apply its aperture.

        For mirrors (``refraction_intended=False``) the reflected rays replace
        the content of ``bundle``.

        Returns:
            The reflected part, empty for mirrors
        """
        self.require_isometry()
        surface = self.surface(port)
        reflected = bundle.refract_on_surface(
            surface, refractive_index, refraction_intended, config.missed_surface_strategy, self.logger
        )
        if not refraction_intended:
            bundle.rays = reflected.rays
            reflected = RayBundle(node_origin=self.uuid, parent_id=bundle.uuid)
        if bundle.apodize(surface.aperture, surface.isometry):
            self.warn(f"rays have been apodized at port '{port}'")
        bundle.invalidate_by_threshold_energy(config.min_energy_per_ray_j, self.logger)
        surface.evaluate_fluence_of_ray_bundle(bundle, config.fluence_estimator)
        return reflected

    def ghost_pass_surface(
        self,
        bundles: list[RayBundle],
        port: str,
        refractive_index: RefractiveIndex | None,
        config: GhostFocusConfig,
        ray_collection: list[RayBundle],
        refraction_intended: bool = True,
    ) -> list[RayBundle]:
        """Refract bundles on one surface during a ghost focus pass.

        Reflections are cached on the surface for the opposite direction; the
        bundles cached for the current direction are appended afterwards.
        """
        self.require_isometry()
        surface = self.surface(port)
        outgoing: list[RayBundle] = []
        for bundle in bundles:
            reflected = bundle.refract_on_surface(
                surface, refractive_index, refraction_intended, logger=self.logger
            )
            if not refraction_intended:
                bundle.rays = reflected.rays
            elif reflected.total_energy() > 0.0:
                ray_collection.append(reflected)
                if self.inverted:
                    surface.add_to_forward_rays_cache(reflected)
                else:
                    surface.add_to_backward_rays_cache(reflected)
            if bundle.apodize(surface.aperture, surface.isometry):
                self.warn(f"rays have been apodized at port '{port}'")
            bundle.drop_invalid()
            surface.evaluate_fluence_of_ray_bundle(bundle, config.fluence_estimator)
            if not bundle.is_empty():
                outgoing.append(bundle)
        cache = surface.backward_rays_cache if self.inverted else surface.forward_rays_cache
        outgoing.extend(cache)
        cache.clear()
        return outgoing

    def ghost_pass_through(
        self, incoming: LightResult, config: GhostFocusConfig, ray_collection: list[RayBundle]
    ) -> LightResult:
        """Ghost focus pass of a node with one inert surface."""
        ins, outs = self.input_port_names(), self.output_port_names()
        if not ins or not outs:
            return {}
        bundles = self.incoming_bundles(incoming, ins[0])
        outgoing = self.ghost_pass_surface(bundles, ins[0], None, config, ray_collection)
        if not outgoing:
            return {}
        return {outs[0]: GhostFocusData(outgoing)}

    def ghost_reflect(
        self, incoming: LightResult, config: GhostFocusConfig, ray_collection: list[RayBundle]
    ) -> LightResult:
        """Ghost focus pass of a mirror reflecting on the ``input_1`` surface."""
        in_port, out_port = self.directed("input_1", "output_1")
        bundles = self.incoming_bundles(incoming, in_port)
        outgoing = self.ghost_pass_surface(
            bundles, "input_1", None, config, ray_collection, refraction_intended=False
        )
        return {out_port: GhostFocusData(outgoing)} if outgoing else {}

    # -- persistence ----------------------------------------------------------

    def properties(self) -> dict[str, Any]:
        """Node specific configuration as plain values."""
        return dict(self.attr.properties)

    @classmethod
    def from_properties(cls, name: str, properties: dict[str, Any]) -> OpticNode:
        return cls(name=name, **properties)

    def to_dict(self) -> dict[str, Any]:
        align = self.attr.align_like_node_at_distance
        return {
            "type": self.node_type,
            "name": self.name,
            "uuid": str(self.uuid),
            "isometry": self.attr.isometry.to_dict() if self.attr.isometry is not None else None,
            "alignment": self.attr.alignment.to_dict() if self.attr.alignment is not None else None,
            "align_like_node_at_distance": [str(align[0]), align[1]] if align else None,
            "inverted": self.inverted,
            "lidt": self.attr.lidt,
            "properties": self.properties(),
            "ports": self.ports.to_dict(),
        }

    def apply_common_dict(self, data: dict[str, Any]) -> None:
        """Restore the attributes all node types share."""
        if "uuid" in data:
            self.attr.uuid = UUID(data["uuid"])
            self.logger = self.logger.bind(node_uuid=data["uuid"])
        if data.get("lidt") is not None:
            self.set_lidt(float(data["lidt"]))
        if data.get("ports"):
            self.ports.load_surfaces(data["ports"])
        if data.get("alignment"):
            self.attr.alignment = Isometry.from_dict(data["alignment"])
        if data.get("isometry"):
            self.set_isometry(Isometry.from_dict(data["isometry"]))
        align = data.get("align_like_node_at_distance")
        if align:
            self.set_align_like_node_at_distance(UUID(align[0]), float(align[1]))
        self.set_inverted(bool(data.get("inverted", False)))

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name='{self.name}', uuid={self.uuid})"


__all__ = ["NodeAttr", "OpticNode"]
