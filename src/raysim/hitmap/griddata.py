"""Scattered-data helpers: Voronoi cells, polygon areas and interpolation."""

from __future__ import annotations

import numpy as np
from scipy.interpolate import griddata
from scipy.spatial import QhullError, Voronoi

from opticore.core.errors import AnalysisError


def linspace(start: float, end: float, num: int) -> np.ndarray:
    """Evenly spaced samples including both end points.

    Raises:
        AnalysisError: If fewer than two points are requested or bounds are not finite
    """
    if num < 2:
        raise AnalysisError("number of points must be >= 2")
    if not (np.isfinite(start) and np.isfinite(end)):
        raise AnalysisError("axis bounds must be finite")
    return np.linspace(start, end, num)


def closed_polygon_area(vertices: np.ndarray) -> float:
    """Area of a simple polygon (shoelace formula)."""
    vertices = np.asarray(vertices, dtype=np.float64)
    if len(vertices) < 3:
        raise AnalysisError("polygon needs at least 3 vertices")
    x, y = vertices[:, 0], vertices[:, 1]
    return 0.5 * abs(float(np.dot(x, np.roll(y, -1)) - np.dot(y, np.roll(x, -1))))


def _helper_sites(points: np.ndarray) -> np.ndarray:
    """Ring of sites around the data so that all data cells are closed."""
    lo = points.min(axis=0)
    hi = points.max(axis=0)
    span = float(max(hi[0] - lo[0], hi[1] - lo[1]))
    margin = span if span > 0.0 else 1.0
    lo = lo - margin
    hi = hi + margin
    mid = 0.5 * (lo + hi)
    return np.array(
        [
            [lo[0], lo[1]],
            [mid[0], lo[1]],
            [hi[0], lo[1]],
            [hi[0], mid[1]],
            [hi[0], hi[1]],
            [mid[0], hi[1]],
            [lo[0], hi[1]],
            [lo[0], mid[1]],
        ]
    )


def create_voronoi_cells(points: np.ndarray) -> tuple[Voronoi, list[np.ndarray | None]]:
    """Voronoi diagram of ``points`` with one closed polygon per input point.

    Args:
        points: Sample positions, shape (N, 2)

    Returns:
        The scipy Voronoi object (including helper sites) and, for each input
        point, its cell vertices ordered counter-clockwise or None if the cell
        is unbounded or degenerate.

    Raises:
        AnalysisError: If fewer than 3 points are given or Qhull fails
    """
    points = np.asarray(points, dtype=np.float64)
    if len(points) < 3:
        raise AnalysisError("Too few points (<3) to create Voronoi cells")
    sites = np.vstack([points, _helper_sites(points)])
    try:
        vor = Voronoi(sites)
    except QhullError as e:
        raise AnalysisError(f"Voronoi diagram could not be created: {e}") from e

    cells: list[np.ndarray | None] = []
    for i in range(len(points)):
        region = vor.regions[vor.point_region[i]]
        if not region or -1 in region:
            cells.append(None)
            continue
        vertices = vor.vertices[region]
        center = vertices.mean(axis=0)
        order = np.argsort(np.arctan2(vertices[:, 1] - center[1], vertices[:, 0] - center[0]))
        cells.append(vertices[order])
    return vor, cells


def interpolate_scatter(
    points: np.ndarray, values: np.ndarray, x_axis: np.ndarray, y_axis: np.ndarray
) -> np.ndarray:
    """Linear interpolation on a Delaunay triangulation of scattered data.

    Args:
        points: Sample positions, shape (N, 2)
        values: Sample values, shape (N,); non-finite samples are ignored
        x_axis: Output grid x coordinates (columns)
        y_axis: Output grid y coordinates (rows)

    Returns:
        Matrix of shape (len(y_axis), len(x_axis)), zero outside the convex hull
    """
    points = np.asarray(points, dtype=np.float64)
    values = np.asarray(values, dtype=np.float64)
    keep = np.isfinite(values)
    if np.count_nonzero(keep) < 3:
        raise AnalysisError("Too few valid points (<3) for triangulated interpolation")
    xx, yy = np.meshgrid(x_axis, y_axis)
    try:
        return griddata(points[keep], values[keep], (xx, yy), method="linear", fill_value=0.0)
    except QhullError as e:
        raise AnalysisError(f"triangulation of scattered data failed: {e}") from e


__all__ = [
    "linspace",
    "closed_polygon_area",
    "create_voronoi_cells",
    "interpolate_scatter",
]
