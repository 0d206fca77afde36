"""Ghost focus analysis: back reflections of refractive surfaces."""

from __future__ import annotations

from opticore.core.config import AnalyzerKind, GhostFocusConfig, RayTraceConfig
from opticore.core.logging import get_logger
from raysim.analyzers.base import Scenery, scenery_graph
from raysim.graph.engine import analyze_graph, calc_node_positions
from raysim.light import GhostFocusData, LightResult
from raysim.rays.bundle import RayBundle

logger = get_logger(__name__)


class GhostFocusAnalyzer:
    """Traces partial reflections back and forth through the scenery.

    Level 0 is a forward pass from the sources. Every refractive surface
    caches the bundles it reflects; the following level traverses the graph
    in the opposite direction and picks them up. ``ray_collection`` holds all
    bundles of all levels after ``analyze``.

    Args:
        config: Ghost focus settings
    """

    kind = AnalyzerKind.GHOST_FOCUS

    def __init__(self, config: GhostFocusConfig | None = None):
        self.config = config or GhostFocusConfig()
        self.ray_collection: list[RayBundle] = []

    def analyze(self, scenery: Scenery) -> LightResult:
        graph = scenery_graph(scenery)
        graph.reset_data()
        graph.set_inverted(False)
        self.ray_collection = []
        logger.info("Starting ghost focus analysis", {"max_bounces": self.config.max_bounces})
        calc_node_positions(graph, config=RayTraceConfig(fluence_estimator=self.config.fluence_estimator))
        graph.reset_data()

        result: LightResult = {}
        try:
            for bounce_lvl in range(self.config.max_bounces + 1):
                graph.set_inverted(bounce_lvl % 2 == 1)
                level_result = analyze_graph(
                    graph, AnalyzerKind.GHOST_FOCUS, {}, self.config, bounce_lvl, self.ray_collection
                )
                for port, data in level_result.items():
                    if not isinstance(data, GhostFocusData):
                        continue
                    existing = result.get(port)
                    if isinstance(existing, GhostFocusData):
                        existing.bundles.extend(data.bundles)
                    else:
                        result[port] = GhostFocusData(list(data.bundles))
                logger.debug(
                    "ghost focus level finished",
                    {"bounce_lvl": bounce_lvl, "bundles": len(self.ray_collection)},
                )
        finally:
            graph.set_inverted(False)
        logger.info("Ghost focus analysis finished", {"bundles": len(self.ray_collection)})
        return result


__all__ = ["GhostFocusAnalyzer"]
