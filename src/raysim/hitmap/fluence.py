"""Fluence maps reconstructed from energy hit points.

Hit point positions are in millimeters in the local frame of the surface,
energies in joules. All fluence values are J/cm^2. A fluence matrix has rows
along y and columns along x.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from opticore.core.config import FluenceEstimator
from opticore.core.errors import AnalysisError
from opticore.core.logging import get_logger
from opticore.core.units import mm2_to_cm2
from raysim.hitmap.griddata import (
    closed_polygon_area,
    create_voronoi_cells,
    interpolate_scatter,
    linspace,
)

logger = get_logger(__name__)

# Half width used when all samples share one coordinate
ZERO_EXTENT_PAD_MM = 0.5

BoundingBox = tuple[float, float, float, float]


@dataclass(slots=True)
class FluenceData:
    """Sampled fluence distribution on a regular grid.

    Attributes:
        fluence: Matrix of shape (ny, nx) in J/cm^2
        x_range_mm: (min, max) of the x grid
        y_range_mm: (min, max) of the y grid
        estimator: Estimator that produced the map
    """

    fluence: np.ndarray
    x_range_mm: tuple[float, float]
    y_range_mm: tuple[float, float]
    estimator: FluenceEstimator

    @property
    def shape(self) -> tuple[int, int]:
        return self.fluence.shape  # type: ignore[return-value]

    def x_axis(self) -> np.ndarray:
        return np.linspace(*self.x_range_mm, self.fluence.shape[1])

    def y_axis(self) -> np.ndarray:
        return np.linspace(*self.y_range_mm, self.fluence.shape[0])

    def cell_area_cm2(self) -> float:
        ny, nx = self.fluence.shape
        dx = (self.x_range_mm[1] - self.x_range_mm[0]) / (nx - 1)
        dy = (self.y_range_mm[1] - self.y_range_mm[0]) / (ny - 1)
        return mm2_to_cm2(dx * dy)

    def peak(self) -> float:
        """Maximum fluence, 0 for an empty map."""
        if self.fluence.size == 0 or not np.any(np.isfinite(self.fluence)):
            return 0.0
        return float(np.nanmax(self.fluence))

    def average(self) -> float:
        """Mean fluence over illuminated cells."""
        lit = self.fluence[np.isfinite(self.fluence) & (self.fluence > 0.0)]
        if lit.size == 0:
            return 0.0
        return float(np.mean(lit))

    def total_energy(self) -> float:
        """Energy in J obtained by integrating the map."""
        return float(np.nansum(self.fluence) * self.cell_area_cm2())


def bounding_box(points: np.ndarray) -> BoundingBox:
    """(x_min, x_max, y_min, y_max) of 2D samples.

    Raises:
        AnalysisError: If there are no samples
    """
    points = np.asarray(points, dtype=np.float64)
    if points.size == 0:
        raise AnalysisError("no hit points available to determine a bounding box")
    x_min, y_min = points.min(axis=0)
    x_max, y_max = points.max(axis=0)
    return float(x_min), float(x_max), float(y_min), float(y_max)


def grid_axes(box: BoundingBox, nr_of_points: tuple[int, int]) -> tuple[np.ndarray, np.ndarray]:
    """Regular x and y axes spanning ``box``; zero extents are padded."""
    x_min, x_max, y_min, y_max = box
    if x_max - x_min <= 0.0:
        x_min, x_max = x_min - ZERO_EXTENT_PAD_MM, x_max + ZERO_EXTENT_PAD_MM
    if y_max - y_min <= 0.0:
        y_min, y_max = y_min - ZERO_EXTENT_PAD_MM, y_max + ZERO_EXTENT_PAD_MM
    nx, ny = nr_of_points
    return linspace(x_min, x_max, nx), linspace(y_min, y_max, ny)


def binning(
    points: np.ndarray, energies: np.ndarray, x_axis: np.ndarray, y_axis: np.ndarray
) -> np.ndarray:
    """Histogram estimator: energy per bin divided by the bin area.

    Samples outside the axes are ignored.

    Raises:
        AnalysisError: If no samples are given
    """
    points = np.asarray(points, dtype=np.float64)
    energies = np.asarray(energies, dtype=np.float64)
    if len(points) == 0:
        raise AnalysisError("hit map is empty, cannot bin fluence")
    nx, ny = len(x_axis), len(y_axis)
    step_x = (x_axis[-1] - x_axis[0]) / (nx - 1)
    step_y = (y_axis[-1] - y_axis[0]) / (ny - 1)

    ix = np.floor((points[:, 0] - x_axis[0]) / step_x).astype(np.int64)
    iy = np.floor((points[:, 1] - y_axis[0]) / step_y).astype(np.int64)
    # samples on the upper edge belong to the last bin
    ix[points[:, 0] == x_axis[-1]] = nx - 1
    iy[points[:, 1] == y_axis[-1]] = ny - 1
    inside = (ix >= 0) & (ix < nx) & (iy >= 0) & (iy < ny)

    energy_map = np.zeros((ny, nx))
    np.add.at(energy_map, (iy[inside], ix[inside]), energies[inside])
    return energy_map / mm2_to_cm2(step_x * step_y)


def voronoi_cell_fluences(points: np.ndarray, energies: np.ndarray) -> np.ndarray:
    """Fluence of every sample: its energy over the area of its Voronoi cell.

    Samples whose cell cannot be closed get NaN.

    Raises:
        AnalysisError: If fewer than 3 samples are given or the diagram fails
    """
    points = np.asarray(points, dtype=np.float64)
    energies = np.asarray(energies, dtype=np.float64)
    if len(points) < 3:
        raise AnalysisError("Too few points (<3) on hitmap to calculate fluence!")
    _, cells = create_voronoi_cells(points)
    fluences = np.full(len(points), np.nan)
    failed = 0
    for i, cell in enumerate(cells):
        if cell is None or len(cell) < 3:
            failed += 1
            continue
        area_cm2 = mm2_to_cm2(closed_polygon_area(cell))
        if area_cm2 > 0.0:
            fluences[i] = energies[i] / area_cm2
        else:
            failed += 1
    if failed:
        logger.warning("polygon could not be created", {"cells": failed, "points": len(points)})
    return fluences


def voronoi(
    points: np.ndarray, energies: np.ndarray, x_axis: np.ndarray, y_axis: np.ndarray
) -> np.ndarray:
    """Voronoi estimator interpolated linearly onto the grid."""
    fluences = voronoi_cell_fluences(points, energies)
    return interpolate_scatter(points, fluences, x_axis, y_axis)


__all__ = [
    "FluenceData",
    "BoundingBox",
    "bounding_box",
    "grid_axes",
    "binning",
    "voronoi_cell_fluences",
    "voronoi",
]
