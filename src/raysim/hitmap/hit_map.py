"""Hit maps: energy deposited on an optical surface, per bounce and bundle.

Hit points are stored in the local frame of the surface (mm); fluence maps use
their x and y coordinates.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from uuid import UUID

import numpy as np

from opticore.core.config import FluenceEstimator
from opticore.core.errors import AnalysisError, ConfigError
from opticore.core.logging import get_logger
from raysim.hitmap.fluence import (
    BoundingBox,
    FluenceData,
    binning,
    bounding_box,
    grid_axes,
    voronoi,
)
from raysim.hitmap.kde import kde, kde_bounding_box, silverman_bandwidth

logger = get_logger(__name__)

DEFAULT_NR_OF_POINTS = (101, 101)


@dataclass(slots=True)
class EnergyHitPoint:
    """Energy deposited by one ray at one position."""

    position: np.ndarray
    energy_j: float

    def __post_init__(self) -> None:
        self.position = np.asarray(self.position, dtype=np.float64).reshape(3)
        if not np.all(np.isfinite(self.position)):
            raise ConfigError("position must be finite")
        if not math.isfinite(self.energy_j) or self.energy_j < 0.0:
            raise ConfigError("energy must be finite and >= 0")


@dataclass(slots=True)
class CriticalFluence:
    """Record of a bundle whose peak fluence exceeded the surface LIDT."""

    fluence: float
    history_index: int
    bounce_lvl: int


def estimate_fluence(
    points: np.ndarray,
    energies: np.ndarray,
    estimator: FluenceEstimator = FluenceEstimator.VORONOI,
    nr_of_points: tuple[int, int] = DEFAULT_NR_OF_POINTS,
    box: BoundingBox | None = None,
) -> FluenceData:
    """Reconstruct a fluence map from scattered 2D samples.

    Args:
        points: Positions (N, 2) in mm
        energies: Energies (N,) in J
        estimator: Estimation method
        nr_of_points: Grid size (nx, ny)
        box: Map extent, sample bounding box (KDE: padded) if None

    Raises:
        AnalysisError: If the estimator cannot handle the samples
    """
    points = np.asarray(points, dtype=np.float64).reshape(-1, 2)
    energies = np.asarray(energies, dtype=np.float64)
    if estimator == FluenceEstimator.KDE:
        h = silverman_bandwidth(points)
        x_axis, y_axis = grid_axes(box or kde_bounding_box(points, h), nr_of_points)
        fluence = kde(points, energies, x_axis, y_axis, bandwidth=h)
    else:
        if len(points) == 0:
            raise AnalysisError("hit map is empty, cannot estimate fluence")
        x_axis, y_axis = grid_axes(box or bounding_box(points), nr_of_points)
        if estimator == FluenceEstimator.BINNING:
            fluence = binning(points, energies, x_axis, y_axis)
        else:
            fluence = voronoi(points, energies, x_axis, y_axis)
    return FluenceData(
        fluence=fluence,
        x_range_mm=(float(x_axis[0]), float(x_axis[-1])),
        y_range_mm=(float(y_axis[0]), float(y_axis[-1])),
        estimator=estimator,
    )


@dataclass(slots=True)
class RaysHitMap:
    """Hit points of one ray bundle at one bounce level."""

    hit_points: list[EnergyHitPoint] = field(default_factory=list)

    def add_hit_point(self, hit_point: EnergyHitPoint) -> None:
        self.hit_points.append(hit_point)

    def positions_xy(self) -> np.ndarray:
        if not self.hit_points:
            return np.zeros((0, 2))
        return np.array([hp.position[:2] for hp in self.hit_points])

    def energies(self) -> np.ndarray:
        return np.array([hp.energy_j for hp in self.hit_points], dtype=np.float64)

    def total_energy(self) -> float:
        return math.fsum(hp.energy_j for hp in self.hit_points)

    def merge(self, other: RaysHitMap) -> None:
        self.hit_points.extend(other.hit_points)

    def get_bounding_box(self) -> BoundingBox:
        return bounding_box(self.positions_xy())

    def calc_fluence_map(
        self,
        estimator: FluenceEstimator = FluenceEstimator.VORONOI,
        nr_of_points: tuple[int, int] = DEFAULT_NR_OF_POINTS,
        box: BoundingBox | None = None,
    ) -> FluenceData:
        return estimate_fluence(self.positions_xy(), self.energies(), estimator, nr_of_points, box)

    def __len__(self) -> int:
        return len(self.hit_points)


# Hit points of one bounce level, per ray bundle uuid
BouncedHitMap = dict[UUID, RaysHitMap]


class HitMap:
    """All energy hit points of a surface, indexed by bounce level."""

    def __init__(self) -> None:
        self.bounced: list[BouncedHitMap] = []
        self.critical_fluences: dict[UUID, CriticalFluence] = {}

    def add_to_hitmap(self, hit_point: EnergyHitPoint, bounce: int, bundle_uuid: UUID) -> None:
        """Store a hit point; missing bounce levels are created on demand."""
        if bounce < 0:
            raise ConfigError("bounce level must be >= 0")
        while len(self.bounced) <= bounce:
            self.bounced.append({})
        self.bounced[bounce].setdefault(bundle_uuid, RaysHitMap()).add_hit_point(hit_point)

    def add_critical_fluence(self, bundle_uuid: UUID, record: CriticalFluence) -> None:
        self.critical_fluences[bundle_uuid] = record

    def reset(self) -> None:
        self.bounced.clear()
        self.critical_fluences.clear()

    def is_empty(self) -> bool:
        return not any(len(rhm) for level in self.bounced for rhm in level.values())

    def rays_hit_maps(self, bounce_lvl: int | None = None) -> list[RaysHitMap]:
        levels = self.bounced if bounce_lvl is None else self.bounced[bounce_lvl : bounce_lvl + 1]
        return [rhm for level in levels for rhm in level.values() if len(rhm)]

    def get_merged_rays_hit_map(self, bounce_lvl: int | None = None) -> RaysHitMap:
        """All hit points (optionally of one bounce level) in one map."""
        merged = RaysHitMap()
        for rhm in self.rays_hit_maps(bounce_lvl):
            merged.merge(rhm)
        return merged

    def total_energy(self) -> float:
        return self.get_merged_rays_hit_map().total_energy()

    def get_bounding_box(self) -> BoundingBox:
        return self.get_merged_rays_hit_map().get_bounding_box()

    def calc_fluence_map(
        self,
        nr_of_points: tuple[int, int] = DEFAULT_NR_OF_POINTS,
        estimator: FluenceEstimator = FluenceEstimator.VORONOI,
        bounce_lvl: int | None = None,
    ) -> FluenceData:
        """Combined fluence of all stored bundles.

        Voronoi maps are computed per bundle on a shared grid and summed, the
        other estimators work on the merged sample set.

        Raises:
            AnalysisError: If the hit map is empty or no bundle can be estimated
        """
        merged = self.get_merged_rays_hit_map(bounce_lvl)
        if not len(merged):
            raise AnalysisError("hit map is empty, cannot calculate fluence")
        if estimator != FluenceEstimator.VORONOI:
            return merged.calc_fluence_map(estimator, nr_of_points)

        box = merged.get_bounding_box()
        total: np.ndarray | None = None
        ranges: tuple[tuple[float, float], tuple[float, float]] | None = None
        for rhm in self.rays_hit_maps(bounce_lvl):
            try:
                data = rhm.calc_fluence_map(estimator, nr_of_points, box)
            except AnalysisError as e:
                logger.warning("bundle skipped in combined fluence map", {"reason": str(e)})
                continue
            total = data.fluence if total is None else total + data.fluence
            ranges = (data.x_range_mm, data.y_range_mm)
        if total is None or ranges is None:
            raise AnalysisError("no ray bundle on this hit map has enough points for a fluence map")
        return FluenceData(total, ranges[0], ranges[1], estimator)

    def get_max_fluence(self, estimator: FluenceEstimator = FluenceEstimator.VORONOI) -> float:
        return self.calc_fluence_map(DEFAULT_NR_OF_POINTS, estimator).peak()


__all__ = [
    "EnergyHitPoint",
    "CriticalFluence",
    "RaysHitMap",
    "BouncedHitMap",
    "HitMap",
    "estimate_fluence",
    "DEFAULT_NR_OF_POINTS",
]
