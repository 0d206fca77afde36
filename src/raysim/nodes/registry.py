"""Closed registry of node kinds and construction from plain values."""

from __future__ import annotations

from typing import Any

from opticore.core.errors import ConfigError
from raysim.nodes.base import OpticNode
from raysim.nodes.beam_splitter import BeamSplitter
from raysim.nodes.cylindric_lens import CylindricLens
from raysim.nodes.detector import Detector
from raysim.nodes.dummy import Dummy
from raysim.nodes.energy_meter import EnergyMeter
from raysim.nodes.fluence_detector import FluenceDetector
from raysim.nodes.group import NodeGroup
from raysim.nodes.ideal_filter import IdealFilter
from raysim.nodes.lens import Lens
from raysim.nodes.parabolic_mirror import ParabolicMirror
from raysim.nodes.paraxial_surface import ParaxialSurface
from raysim.nodes.reference import NodeReference
from raysim.nodes.reflective_grating import ReflectiveGrating
from raysim.nodes.source import Source
from raysim.nodes.thin_mirror import ThinMirror
from raysim.nodes.wedge import Wedge

NODE_TYPES: dict[str, type[OpticNode]] = {
    cls.node_type: cls
    for cls in (
        BeamSplitter,
        CylindricLens,
        Detector,
        Dummy,
        EnergyMeter,
        FluenceDetector,
        NodeGroup,
        IdealFilter,
        Lens,
        ParabolicMirror,
        ParaxialSurface,
        NodeReference,
        ReflectiveGrating,
        Source,
        ThinMirror,
        Wedge,
    )
}


def node_from_dict(data: dict[str, Any]) -> OpticNode:
    """Build a node from ``OpticNode.to_dict`` output or a document entry.

    Raises:
        ConfigError: If the node type is unknown or its properties are invalid
    """
    node_type = data.get("type")
    if node_type not in NODE_TYPES:
        raise ConfigError(f"unknown node type '{node_type}'. Valid types: {sorted(NODE_TYPES)}")
    cls = NODE_TYPES[node_type]
    try:
        node = cls.from_properties(data.get("name") or node_type, dict(data.get("properties") or {}))
    except (TypeError, KeyError) as e:
        raise ConfigError(f"invalid properties for node type '{node_type}': {e}") from e
    node.apply_common_dict(data)
    return node


__all__ = ["NODE_TYPES", "node_from_dict"]
