"""Tests for hit maps and fluence estimation."""

import uuid

import numpy as np
import pytest

from opticore.core.config import FluenceEstimator
from opticore.core.errors import AnalysisError, ConfigError
from raysim.core.frames import Isometry
from raysim.hitmap import EnergyHitPoint, HitMap, estimate_fluence
from raysim.hitmap.fluence import binning, bounding_box, grid_axes, voronoi_cell_fluences
from raysim.hitmap.griddata import closed_polygon_area, linspace
from raysim.hitmap.kde import kde, silverman_bandwidth
from raysim.rays.bundle import RayBundle
from raysim.rays.distribution import Grid
from raysim.surfaces import OpticSurface

GRID = (41, 41)
KDE_ENERGY_RTOL = 0.05


def grid_samples(side_mm: float = 2.0, n: int = 5, energy_j: float = 1.0) -> tuple[np.ndarray, np.ndarray]:
    points = Grid(side_mm, n).generate()[:, :2]
    return points, np.full(len(points), energy_j / len(points))


def test_linspace_validation():
    with pytest.raises(AnalysisError, match=">= 2"):
        linspace(0.0, 1.0, 1)


def test_polygon_area():
    square = np.array([[0.0, 0.0], [2.0, 0.0], [2.0, 2.0], [0.0, 2.0]])
    assert closed_polygon_area(square) == pytest.approx(4.0)


def test_zero_extent_padding():
    x_axis, y_axis = grid_axes(bounding_box(np.array([[1.0, 1.0]])), (3, 3))
    assert x_axis[0] == pytest.approx(0.5)
    assert y_axis[-1] == pytest.approx(1.5)


def test_binning_requires_samples():
    with pytest.raises(AnalysisError, match="empty"):
        binning(np.zeros((0, 2)), np.zeros(0), np.linspace(0, 1, 3), np.linspace(0, 1, 3))


def test_binning_total_energy_exact():
    points, energies = grid_samples()
    fluence = estimate_fluence(points, energies, FluenceEstimator.BINNING, GRID)
    assert fluence.total_energy() == pytest.approx(1.0, rel=1e-12)
    assert fluence.shape == (GRID[1], GRID[0])


def test_voronoi_needs_three_points():
    with pytest.raises(AnalysisError, match="Too few points"):
        voronoi_cell_fluences(np.array([[0.0, 0.0], [1.0, 0.0]]), np.array([1.0, 1.0]))


def test_voronoi_uniform_grid():
    """Interior cells of a regular grid have the grid pitch squared as area."""
    points, energies = grid_samples(side_mm=4.0, n=5)
    fluences = voronoi_cell_fluences(points, energies)
    # centre point, pitch 1 mm -> cell 0.01 cm^2
    assert fluences[12] == pytest.approx(energies[12] / 0.01)


def test_kde_needs_two_points():
    with pytest.raises(AnalysisError, match="at least 2"):
        silverman_bandwidth(np.array([[0.0, 0.0]]))


def test_kde_total_energy():
    points, energies = grid_samples()
    fluence = estimate_fluence(points, energies, FluenceEstimator.KDE, (81, 81))
    assert fluence.total_energy() == pytest.approx(1.0, rel=KDE_ENERGY_RTOL)


def test_kde_single_kernel_peak():
    """A single kernel peaks at E / (2 pi h^2), converted to J/cm^2."""
    h = 0.5
    axis = np.array([-1.0, 0.0, 1.0])
    result = kde(np.array([[0.0, 0.0]]), np.array([1.0]), axis, axis, bandwidth=h)
    assert result[1, 1] == pytest.approx(1.0 / (2.0 * np.pi * h * h) * 100.0)


def test_hit_point_validation():
    with pytest.raises(ConfigError):
        EnergyHitPoint([0.0, 0.0, 0.0], -1.0)


def test_hit_map_levels():
    hit_map = HitMap()
    bundle_id = uuid.uuid4()
    hit_map.add_to_hitmap(EnergyHitPoint([0.0, 0.0, 0.0], 1.0), 2, bundle_id)
    assert len(hit_map.bounced) == 3
    assert hit_map.rays_hit_maps(0) == []
    assert hit_map.total_energy() == pytest.approx(1.0)
    with pytest.raises(ConfigError):
        hit_map.add_to_hitmap(EnergyHitPoint([0.0, 0.0, 0.0], 1.0), -1, bundle_id)
    hit_map.reset()
    assert hit_map.is_empty()


def test_empty_hit_map_fluence():
    with pytest.raises(AnalysisError, match="empty"):
        HitMap().calc_fluence_map()


@pytest.mark.parametrize("estimator", list(FluenceEstimator))
def test_hit_map_fluence_estimators(estimator: FluenceEstimator):
    hit_map = HitMap()
    bundle_id = uuid.uuid4()
    points, energies = grid_samples()
    for p, e in zip(points, energies):
        hit_map.add_to_hitmap(EnergyHitPoint([p[0], p[1], 0.0], float(e)), 0, bundle_id)
    fluence = hit_map.calc_fluence_map(GRID, estimator)
    assert fluence.estimator == estimator
    assert fluence.peak() > 0.0


def refracted_bundle(surface: OpticSurface) -> RayBundle:
    bundle = RayBundle.new_collimated(Grid(1.0, 5), 1000.0, 1.0)
    bundle.refract_on_surface(surface, None)
    return bundle


def test_critical_fluence_recorded():
    surface = OpticSurface(lidt=1.0e-3)
    surface.set_isometry(Isometry.translation(0.0, 0.0, 5.0))
    bundle = refracted_bundle(surface)
    surface.evaluate_fluence_of_ray_bundle(bundle, FluenceEstimator.BINNING)
    record = surface.hit_map.critical_fluences[bundle.uuid]
    assert record.fluence > surface.lidt
    assert record.history_index == 2


def test_below_threshold_not_recorded():
    surface = OpticSurface(lidt=1.0e9)
    surface.set_isometry(Isometry.translation(0.0, 0.0, 5.0))
    bundle = refracted_bundle(surface)
    surface.evaluate_fluence_of_ray_bundle(bundle, FluenceEstimator.BINNING)
    assert not surface.hit_map.critical_fluences


def test_bundle_without_hits_not_evaluated():
    surface = OpticSurface(lidt=1.0e-3)
    surface.set_isometry(Isometry.translation(0.0, 0.0, -5.0))
    bundle = refracted_bundle(surface)
    assert surface.hit_map.is_empty()
    surface.evaluate_fluence_of_ray_bundle(bundle, FluenceEstimator.BINNING)
    assert not surface.hit_map.critical_fluences
