"""Analyzers running the execution engine over a scenery."""

from __future__ import annotations

from opticore.core.config import AnalysisConfig, AnalyzerKind, GhostFocusConfig, RayTraceConfig
from opticore.core.errors import ConfigError
from raysim.analyzers.base import Scenery, scenery_graph
from raysim.analyzers.energy import EnergyAnalyzer
from raysim.analyzers.ghost_focus import GhostFocusAnalyzer
from raysim.analyzers.raytrace import RayTraceAnalyzer
from raysim.light import LightResult

Analyzer = EnergyAnalyzer | RayTraceAnalyzer | GhostFocusAnalyzer


def create_analyzer(
    kind: AnalyzerKind | str,
    config: AnalysisConfig | RayTraceConfig | GhostFocusConfig | None = None,
) -> Analyzer:
    """Analyzer of ``kind`` with the matching part of ``config``.

    Raises:
        ConfigError: If the configuration does not fit the analyzer kind
    """
    kind = AnalyzerKind(kind)
    if isinstance(config, AnalysisConfig):
        config = config.raytrace if kind == AnalyzerKind.RAYTRACE else (
            config.ghost_focus if kind == AnalyzerKind.GHOST_FOCUS else None
        )
    if kind == AnalyzerKind.ENERGY:
        return EnergyAnalyzer()
    if kind == AnalyzerKind.RAYTRACE:
        if config is not None and not isinstance(config, RayTraceConfig):
            raise ConfigError(f"ray tracing needs a RayTraceConfig, got {type(config).__name__}")
        return RayTraceAnalyzer(config)
    if config is not None and not isinstance(config, GhostFocusConfig):
        raise ConfigError(f"ghost focus analysis needs a GhostFocusConfig, got {type(config).__name__}")
    return GhostFocusAnalyzer(config)


def run_analysis(
    scenery: Scenery,
    kind: AnalyzerKind | str,
    config: AnalysisConfig | RayTraceConfig | GhostFocusConfig | None = None,
) -> LightResult:
    """Run the analysis ``kind`` over ``scenery`` and return its external result."""
    return create_analyzer(kind, config).analyze(scenery)


__all__ = [
    "Analyzer",
    "EnergyAnalyzer",
    "RayTraceAnalyzer",
    "GhostFocusAnalyzer",
    "Scenery",
    "scenery_graph",
    "create_analyzer",
    "run_analysis",
]
