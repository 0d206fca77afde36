"""Tests for the energy, ray tracing and ghost focus analyzers."""

import pytest

from opticore.core.config import AnalysisConfig, AnalyzerKind, GhostFocusConfig, RayTraceConfig
from opticore.core.errors import ConfigError
from raysim.analyzers import (
    EnergyAnalyzer,
    GhostFocusAnalyzer,
    RayTraceAnalyzer,
    create_analyzer,
    run_analysis,
)
from raysim.core.frames import Isometry
from raysim.core.spectrum import Spectrum
from raysim.graph import OpticGraph
from raysim.nodes import BeamSplitter, Detector, IdealFilter, Lens, PortType, Source
from raysim.nodes.group import NodeGroup
from raysim.rays.splitting import ConstantFilter, RatioSplit
from raysim.surfaces.coating import ConstantR


def lens_scenery(source: Source, graph: OpticGraph, front_reflectivity: float = 0.1):
    lens = Lens("lens", 100.0, -100.0, 5.0, 1.5, isometry=Isometry.translation(0.0, 0.0, 10.0))
    lens.surface("input_1").coating = ConstantR(front_reflectivity)
    detector = Detector("det")
    for node in (source, lens, detector):
        graph.add_node(node)
    graph.connect_nodes(source.uuid, "output_1", lens.uuid, "input_1", 10.0)
    graph.connect_nodes(lens.uuid, "output_1", detector.uuid, "input_1", 50.0)
    graph.map_port(detector.uuid, PortType.OUTPUT, "output_1", "out")
    return lens, detector


def test_create_analyzer_kinds():
    assert isinstance(create_analyzer("energy"), EnergyAnalyzer)
    assert isinstance(create_analyzer(AnalyzerKind.RAYTRACE), RayTraceAnalyzer)
    assert isinstance(create_analyzer("ghost_focus", GhostFocusConfig(max_bounces=2)), GhostFocusAnalyzer)


def test_create_analyzer_config_mismatch():
    with pytest.raises(ConfigError, match="RayTraceConfig"):
        create_analyzer(AnalyzerKind.RAYTRACE, GhostFocusConfig())
    with pytest.raises(ConfigError, match="GhostFocusConfig"):
        create_analyzer(AnalyzerKind.GHOST_FOCUS, RayTraceConfig())


def test_create_analyzer_from_analysis_config():
    config = AnalysisConfig(
        kind=AnalyzerKind.GHOST_FOCUS,
        raytrace=RayTraceConfig(max_number_of_bounces=5),
        ghost_focus=GhostFocusConfig(max_bounces=3),
    )
    analyzer = create_analyzer(config.kind, config)
    assert isinstance(analyzer, GhostFocusAnalyzer)
    assert analyzer.config.max_bounces == 3
    assert create_analyzer("raytrace", config).config.max_number_of_bounces == 5


def test_energy_analysis(graph: OpticGraph):
    spectrum = Spectrum.new(500.0, 600.0, 1.0)
    spectrum.add_single_peak(532.0, 2.0)
    src = Source("src", spectrum=spectrum)
    filt = IdealFilter("nd", ConstantFilter(0.25))
    graph.add_node(src)
    graph.add_node(filt)
    graph.connect_nodes(src.uuid, "output_1", filt.uuid, "input_1")
    graph.map_port(filt.uuid, PortType.OUTPUT, "output_1", "out")

    result = run_analysis(graph, AnalyzerKind.ENERGY)
    assert result["out"].total_energy() == pytest.approx(0.5)
    assert result["out"].spectrum.center_wavelength() == pytest.approx(532.0)


def test_raytrace_positions_and_traces(source: Source, graph: OpticGraph, raytrace_config: RayTraceConfig):
    lens, detector = lens_scenery(source, graph, 0.0)
    result = RayTraceAnalyzer(raytrace_config).analyze(graph)

    assert detector.isometry is not None
    assert detector.isometry.t[2] == pytest.approx(65.0)
    assert result["out"].total_energy() == pytest.approx(1.0)
    assert detector.spot_diagram().shape == (37, 2)
    # positioning samples are discarded, one pass remains
    assert lens.surface("input_1").hit_map.total_energy() == pytest.approx(1.0)


def test_raytrace_front_reflection_loss(source: Source, graph: OpticGraph, raytrace_config: RayTraceConfig):
    lens_scenery(source, graph, 0.1)
    result = run_analysis(graph, "raytrace", raytrace_config)
    assert result["out"].total_energy() == pytest.approx(0.9)


def test_raytrace_on_group(source: Source, raytrace_config: RayTraceConfig):
    group = NodeGroup("scenery")
    lens_scenery(source, group.graph)
    result = run_analysis(group, AnalyzerKind.RAYTRACE, raytrace_config)
    assert result["out"].total_energy() == pytest.approx(0.9)


def test_ghost_focus_collects_front_reflection(source: Source, graph: OpticGraph):
    lens, detector = lens_scenery(source, graph, 0.1)
    analyzer = GhostFocusAnalyzer(GhostFocusConfig(max_bounces=1))
    result = analyzer.analyze(graph)

    assert len(analyzer.ray_collection) == 2
    primary, ghost = analyzer.ray_collection
    assert primary.total_energy() == pytest.approx(1.0)
    assert ghost.total_energy() == pytest.approx(0.1)
    assert ghost.bounce_lvl == 1
    assert all(ray.dir[2] < 0.0 for ray in ghost.valid_rays())
    assert result["out"].total_energy() == pytest.approx(0.9)
    assert not graph.inverted
    assert not lens.inverted


def test_ghost_focus_without_reflections(source: Source, graph: OpticGraph):
    lens_scenery(source, graph, 0.1)
    analyzer = GhostFocusAnalyzer(GhostFocusConfig(max_bounces=0))
    analyzer.analyze(graph)
    # the reflection is still recorded, it is just not traced back
    assert len(analyzer.ray_collection) == 2


def test_ghost_focus_through_beam_splitter(source: Source, graph: OpticGraph):
    splitter = BeamSplitter("bs", RatioSplit(0.6))
    transmitted, reflected = Detector("trans"), Detector("refl")
    for node in (source, splitter, transmitted, reflected):
        graph.add_node(node)
    graph.connect_nodes(source.uuid, "output_1", splitter.uuid, "input_1", 10.0)
    graph.connect_nodes(splitter.uuid, "out1_trans1_refl2", transmitted.uuid, "input_1", 20.0)
    graph.connect_nodes(splitter.uuid, "out2_trans2_refl1", reflected.uuid, "input_1", 20.0)
    graph.map_port(transmitted.uuid, PortType.OUTPUT, "output_1", "trans")
    graph.map_port(reflected.uuid, PortType.OUTPUT, "output_1", "refl")

    result = GhostFocusAnalyzer(GhostFocusConfig(max_bounces=0)).analyze(graph)
    assert result["trans"].total_energy() == pytest.approx(0.6)
    assert result["refl"].total_energy() == pytest.approx(0.4)
    assert not splitter.attr.warnings
