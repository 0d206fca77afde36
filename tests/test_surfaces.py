"""Tests for geometric surfaces, apertures, coatings and optical surfaces."""

import numpy as np
import pytest

from opticore.core.errors import ConfigError
from raysim.core.frames import Isometry, compose
from raysim.surfaces import (
    ApertureType,
    CircleAperture,
    ConstantR,
    Fresnel,
    GaussianAperture,
    OpticSurface,
    Parabola,
    Plane,
    PolygonAperture,
    RectangleAperture,
    Sphere,
    StackAperture,
)
from raysim.surfaces.aperture import aperture_from_dict
from raysim.surfaces.geometry import surface_from_dict
from raysim.surfaces.optic_surface import DEFAULT_LIDT

ABS_TOL = 1e-9
Z = np.array([0.0, 0.0, 1.0])


def test_plane_hit_and_normal():
    point, normal = Plane(Isometry.translation(0.0, 0.0, 10.0)).intersect([1.0, 2.0, 0.0], Z)
    np.testing.assert_allclose(point, [1.0, 2.0, 10.0])
    np.testing.assert_allclose(normal, [0.0, 0.0, -1.0])


def test_plane_behind_ray_is_missed():
    assert Plane(Isometry.translation(0.0, 0.0, -10.0)).intersect([0.0, 0.0, 0.0], Z) is None


def test_plane_parallel_ray_is_missed():
    assert Plane().intersect([0.0, 0.0, -1.0], [1.0, 0.0, 0.0]) is None


def test_tilted_plane():
    iso = compose((0.0, np.pi / 4, 0.0), (0.0, 0.0, 5.0))
    point, _ = Plane(iso).intersect([0.0, 0.0, 0.0], Z)
    np.testing.assert_allclose(point, [0.0, 0.0, 5.0], atol=ABS_TOL)


@pytest.mark.parametrize("radius", [20.0, -20.0])
def test_sphere_vertex_hit(radius: float):
    point, normal = Sphere(radius).intersect([0.0, 0.0, -10.0], Z)
    np.testing.assert_allclose(point, [0.0, 0.0, 0.0], atol=ABS_TOL)
    assert abs(normal[2]) == pytest.approx(1.0)


def test_sphere_off_axis_point_on_surface():
    radius = 50.0
    point, _ = Sphere(radius).intersect([5.0, 0.0, -10.0], Z)
    center = np.array([0.0, 0.0, radius])
    assert np.linalg.norm(point - center) == pytest.approx(radius)
    assert point[2] > 0.0


def test_sphere_miss():
    assert Sphere(5.0).intersect([10.0, 0.0, -10.0], Z) is None


def test_parabola_on_axis_linear_root():
    """On axis the quadratic coefficient vanishes."""
    point, normal = Parabola(25.0).intersect([0.0, 0.0, -5.0], Z)
    np.testing.assert_allclose(point, [0.0, 0.0, 0.0], atol=ABS_TOL)
    np.testing.assert_allclose(normal, [0.0, 0.0, -1.0], atol=ABS_TOL)


def test_parabola_off_axis():
    f = 25.0
    point, _ = Parabola(f).intersect([10.0, 0.0, -5.0], Z)
    assert point[2] == pytest.approx(10.0**2 / (4.0 * f))


@pytest.mark.parametrize("cls", [Sphere, Parabola])
def test_zero_parameter_rejected(cls):
    with pytest.raises(ConfigError):
        cls(0.0)


def test_surface_dict_round_trip():
    surface = surface_from_dict(Sphere(12.5).to_dict())
    assert isinstance(surface, Sphere)
    assert surface.radius_mm == 12.5
    with pytest.raises(ConfigError, match="unknown surface"):
        surface_from_dict({"kind": "torus"})


def test_circle_aperture():
    aperture = CircleAperture(1.0)
    np.testing.assert_array_equal(aperture.transmission([0.0, 2.0], [0.0, 0.0]), [1.0, 0.0])
    obstruction = CircleAperture(1.0, aperture_type=ApertureType.OBSTRUCTION)
    np.testing.assert_array_equal(obstruction.transmission([0.0, 2.0], [0.0, 0.0]), [0.0, 1.0])


def test_polygon_aperture():
    square = PolygonAperture([(-1.0, -1.0), (1.0, -1.0), (1.0, 1.0), (-1.0, 1.0)])
    np.testing.assert_array_equal(square.transmission([0.0, 3.0], [0.0, 0.0]), [1.0, 0.0])
    with pytest.raises(ConfigError, match="less than 3"):
        PolygonAperture([(0.0, 0.0), (1.0, 1.0)])


def test_gaussian_and_stack_aperture():
    gauss = GaussianAperture((1.0, 1.0))
    assert float(gauss.transmission(0.0, 0.0)) == pytest.approx(1.0)
    assert float(gauss.transmission(1.0, 0.0)) == pytest.approx(np.exp(-0.5))
    stack = StackAperture([gauss, RectangleAperture(1.0, 1.0)])
    assert float(stack.transmission(5.0, 0.0)) == 0.0


def test_aperture_from_dict():
    aperture = aperture_from_dict(CircleAperture(2.0, (1.0, 0.0)).to_dict())
    assert aperture == CircleAperture(2.0, (1.0, 0.0))


def test_fresnel_normal_incidence():
    r = Fresnel().reflectivity(Z, -Z, 1.0, 1.5)
    assert r == pytest.approx(0.04)


def test_fresnel_total_internal_reflection():
    direction = np.array([np.sin(1.0), 0.0, np.cos(1.0)])
    assert Fresnel().reflectivity(direction, -Z, 1.5, 1.0) == 1.0


def test_constant_reflectivity_range():
    with pytest.raises(ConfigError):
        ConstantR(1.2)


def test_optic_surface_normal_faces_ray():
    surface = OpticSurface()
    _, normal = surface.intersect([0.0, 0.0, 5.0], -Z)
    np.testing.assert_allclose(normal, [0.0, 0.0, 1.0])


def test_optic_surface_anchor_offset():
    surface = OpticSurface(anchor_point_iso=Isometry.translation(0.0, 0.0, 2.0))
    surface.set_isometry(Isometry.translation(0.0, 0.0, 10.0))
    point, _ = surface.intersect([0.0, 0.0, 0.0], Z)
    np.testing.assert_allclose(point, [0.0, 0.0, 12.0])


def test_lidt_validation():
    surface = OpticSurface()
    assert surface.lidt == DEFAULT_LIDT
    with pytest.raises(ConfigError, match="LIDT"):
        surface.lidt = 0.0
    with pytest.raises(ConfigError, match="LIDT"):
        surface.lidt = float("nan")


def test_optic_surface_dict_round_trip():
    surface = OpticSurface(Sphere(30.0), aperture=CircleAperture(5.0), coating=ConstantR(0.3), lidt=2.5)
    loaded = OpticSurface.from_dict(surface.to_dict())
    assert loaded.lidt == 2.5
    assert loaded.coating == ConstantR(0.3)
    assert isinstance(loaded.geo_surface, Sphere)
