"""Fluence detector: fluence map of the rays reaching it."""

from __future__ import annotations

from typing import Any

import numpy as np

from opticore.core.config import FluenceEstimator, GhostFocusConfig, RayTraceConfig
from opticore.core.errors import AnalysisError
from raysim.core.frames import Isometry
from raysim.hitmap.fluence import FluenceData
from raysim.hitmap.hit_map import DEFAULT_NR_OF_POINTS, estimate_fluence
from raysim.light import GeometricData, LightResult
from raysim.nodes.base import OpticNode
from raysim.nodes.ports import PortType
from raysim.rays.bundle import RayBundle


class FluenceDetector(OpticNode):
    """Pass-through node reconstructing the fluence of the last ray bundle.

    Args:
        name: Node name
        estimator: Fluence estimator
        nr_of_points: Map size (nx, ny)
        isometry: Fixed pose
    """

    node_type = "fluence_detector"

    def __init__(
        self,
        name: str | None = None,
        estimator: FluenceEstimator | str = FluenceEstimator.VORONOI,
        nr_of_points: tuple[int, int] = DEFAULT_NR_OF_POINTS,
        isometry: Isometry | None = None,
    ):
        super().__init__(name, isometry)
        self.estimator = FluenceEstimator(estimator)
        self.nr_of_points = (int(nr_of_points[0]), int(nr_of_points[1]))
        self.bundle: RayBundle | None = None
        self.add_port(PortType.INPUT, "input_1")
        self.add_port(PortType.OUTPUT, "output_1")

    def analyze_raytrace(self, incoming: LightResult, config: RayTraceConfig) -> LightResult:
        result = super().analyze_raytrace(incoming, config)
        for data in result.values():
            if isinstance(data, GeometricData):
                self.bundle = data.bundle.copy()
        return result

    def analyze_ghost_focus(
        self,
        incoming: LightResult,
        config: GhostFocusConfig,
        ray_collection: list[RayBundle],
        bounce_lvl: int,  # noqa: ARG002
    ) -> LightResult:
        return self.ghost_pass_through(incoming, config, ray_collection)

    def fluence_data(self) -> FluenceData:
        """Fluence map of the stored bundle in the detector plane.

        Raises:
            AnalysisError: If no rays were recorded
        """
        if self.bundle is None or self.bundle.is_empty():
            raise AnalysisError(f"fluence detector '{self.name}' has not received any rays")
        points = self.bundle.get_xy_rays_pos(self.effective_isometry())
        energies = np.array([r.energy_j for r in self.bundle.valid_rays()])
        return estimate_fluence(points, energies, self.estimator, self.nr_of_points)

    def reset_data(self) -> None:
        super().reset_data()
        self.bundle = None

    def properties(self) -> dict[str, Any]:
        return {"estimator": self.estimator.value, "nr_of_points": list(self.nr_of_points)}


__all__ = ["FluenceDetector"]
