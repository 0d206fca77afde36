"""Ray tracing analysis."""

from __future__ import annotations

from opticore.core.config import AnalyzerKind, RayTraceConfig
from opticore.core.logging import get_logger
from raysim.analyzers.base import Scenery, scenery_graph
from raysim.graph.engine import analyze_graph, calc_node_positions
from raysim.light import LightResult

logger = get_logger(__name__)


class RayTraceAnalyzer:
    """Positions the nodes, then traces the rays through the scenery.

    Hit maps written while positioning are discarded, so after ``analyze``
    they hold the samples of the analysis pass only.

    Args:
        config: Ray tracing settings
    """

    kind = AnalyzerKind.RAYTRACE

    def __init__(self, config: RayTraceConfig | None = None):
        self.config = config or RayTraceConfig()

    def analyze(self, scenery: Scenery) -> LightResult:
        graph = scenery_graph(scenery)
        graph.reset_data()
        logger.info(
            "Starting ray tracing analysis",
            {
                "nodes": len(graph),
                "max_bounces": self.config.max_number_of_bounces,
                "max_refractions": self.config.max_number_of_refractions,
            },
        )
        calc_node_positions(graph, config=self.config)
        graph.reset_hit_maps()
        result = analyze_graph(graph, AnalyzerKind.RAYTRACE, config=self.config)
        logger.info("Ray tracing analysis finished", {"output_ports": list(result)})
        return result


__all__ = ["RayTraceAnalyzer"]
