"""Optical node kinds.

The closed set of node kinds and ``node_from_dict`` live in
``raysim.nodes.registry``; ``NodeGroup`` in ``raysim.nodes.group``.
"""

from raysim.nodes.base import NodeAttr, OpticNode
from raysim.nodes.beam_splitter import BeamSplitter
from raysim.nodes.cylindric_lens import CylindricLens
from raysim.nodes.detector import Detector
from raysim.nodes.dummy import Dummy
from raysim.nodes.energy_meter import EnergyMeter, MeterType
from raysim.nodes.fluence_detector import FluenceDetector
from raysim.nodes.ideal_filter import IdealFilter
from raysim.nodes.lens import Lens
from raysim.nodes.parabolic_mirror import ParabolicMirror
from raysim.nodes.paraxial_surface import ParaxialSurface
from raysim.nodes.ports import OpticPorts, PortType
from raysim.nodes.reference import NodeReference
from raysim.nodes.reflective_grating import ReflectiveGrating
from raysim.nodes.source import Source
from raysim.nodes.thin_mirror import ThinMirror
from raysim.nodes.wedge import Wedge

__all__ = [
    "NodeAttr",
    "OpticNode",
    "OpticPorts",
    "PortType",
    "BeamSplitter",
    "CylindricLens",
    "Detector",
    "Dummy",
    "EnergyMeter",
    "MeterType",
    "FluenceDetector",
    "IdealFilter",
    "Lens",
    "ParabolicMirror",
    "ParaxialSurface",
    "NodeReference",
    "ReflectiveGrating",
    "Source",
    "ThinMirror",
    "Wedge",
]
