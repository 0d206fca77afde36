"""Energy analysis: spectra through the scenery, no geometry."""

from __future__ import annotations

from opticore.core.config import AnalyzerKind
from opticore.core.logging import get_logger
from raysim.analyzers.base import Scenery, scenery_graph
from raysim.graph.engine import analyze_graph
from raysim.light import LightResult

logger = get_logger(__name__)


class EnergyAnalyzer:
    """Runs one energy pass; node poses are not needed."""

    kind = AnalyzerKind.ENERGY

    def analyze(self, scenery: Scenery) -> LightResult:
        graph = scenery_graph(scenery)
        graph.reset_data()
        logger.info("Starting energy analysis", {"nodes": len(graph)})
        return analyze_graph(graph, AnalyzerKind.ENERGY)


__all__ = ["EnergyAnalyzer"]
