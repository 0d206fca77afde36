"""Tests for single-ray photon transport."""

import math
import uuid

import numpy as np
import pytest

from opticore.core.errors import AnalysisError, ConfigError
from raysim.core.frames import Isometry
from raysim.rays.ray import Ray
from raysim.rays.splitting import RatioSplit
from raysim.surfaces import ConstantR, OpticSurface

ABS_TOL = 1e-12


def incline(angle_rad: float) -> np.ndarray:
    return np.array([math.sin(angle_rad), 0.0, math.cos(angle_rad)])


def refract(ray: Ray, surface: OpticSurface, n2: float):
    point, normal = surface.intersect(ray.pos, ray.dir)
    return ray.refract_at_hit(point, normal, surface, n2, uuid.uuid4())


@pytest.mark.parametrize(
    ("kwargs", "match"),
    [
        ({"direction": [0.0, 0.0, 0.0]}, "direction"),
        ({"wavelength_nm": 0.0}, "wavelength"),
        ({"energy_j": -1.0}, "energy"),
        ({"refractive_index": 0.9}, "refractive index"),
        ({"pos": [np.nan, 0.0, 0.0]}, "position"),
    ],
)
def test_invalid_construction(kwargs, match):
    args = {"pos": [0.0, 0.0, 0.0], "direction": [0.0, 0.0, 1.0], "wavelength_nm": 1000.0, "energy_j": 1.0}
    args.update(kwargs)
    with pytest.raises(ConfigError, match=match):
        Ray(**args)


def test_direction_normalized():
    ray = Ray([0.0, 0.0, 0.0], [0.0, 3.0, 4.0], 1000.0, 1.0)
    assert np.linalg.norm(ray.dir) == pytest.approx(1.0)


def test_propagate_tracks_optical_path():
    ray = Ray([0.0, 0.0, 0.0], [0.0, 0.0, 1.0], 1000.0, 1.0, refractive_index=1.5)
    ray.propagate(10.0)
    np.testing.assert_allclose(ray.pos, [0.0, 0.0, 10.0])
    assert ray.path_length_mm == pytest.approx(15.0)
    assert ray.ray_history_len() == 1
    with pytest.raises(AnalysisError, match="finite"):
        ray.propagate(math.inf)


def test_snell_refraction():
    angle = math.radians(30.0)
    ray = Ray([-math.tan(angle), 0.0, -1.0], incline(angle), 1000.0, 1.0)
    surface = OpticSurface()
    reflected = refract(ray, surface, 1.5)

    assert reflected is not None
    assert reflected.energy_j == 0.0
    np.testing.assert_allclose(ray.pos, [0.0, 0.0, 0.0], atol=ABS_TOL)
    assert ray.dir[0] == pytest.approx(math.sin(angle) / 1.5)
    assert ray.refractive_index == 1.5
    assert ray.number_of_refractions == 1
    assert ray.energy_j == pytest.approx(1.0)
    assert surface.hit_map.total_energy() == pytest.approx(1.0)


def test_total_internal_reflection():
    angle = math.radians(60.0)
    ray = Ray([-math.tan(angle), 0.0, -1.0], incline(angle), 1000.0, 1.0, refractive_index=1.5)
    result = refract(ray, OpticSurface(), 1.0)

    assert result is None
    assert ray.number_of_bounces == 1
    assert ray.dir[2] == pytest.approx(-math.cos(angle))
    assert ray.refractive_index == 1.5


def test_coating_splits_energy():
    ray = Ray([0.0, 0.0, -1.0], [0.0, 0.0, 1.0], 1000.0, 2.0)
    reflected = refract(ray, OpticSurface(coating=ConstantR(0.25)), 1.5)
    assert reflected is not None
    assert reflected.energy_j == pytest.approx(0.5)
    assert ray.energy_j == pytest.approx(1.5)
    assert reflected.number_of_bounces == 1
    np.testing.assert_allclose(reflected.dir, [0.0, 0.0, -1.0])


def test_surface_behind_ray_not_hit():
    ray = Ray([0.0, 0.0, 1.0], [0.0, 0.0, 1.0], 1000.0, 1.0)
    assert OpticSurface().intersect(ray.pos, ray.dir) is None


def test_paraxial_lens_focus():
    focal = 100.0
    ray = Ray([2.0, 0.0, 0.0], [0.0, 0.0, 1.0], 1000.0, 1.0)
    ray.refract_paraxial(focal, Isometry.identity())
    ray.propagate(focal / ray.dir[2])
    assert ray.pos[0] == pytest.approx(0.0, abs=1e-9)
    with pytest.raises(ConfigError, match="focal length"):
        ray.refract_paraxial(0.0, Isometry.identity())


def test_split():
    ray = Ray([0.0, 0.0, 0.0], [0.0, 0.0, 1.0], 1000.0, 1.0)
    split = ray.split(RatioSplit(0.6))
    assert ray.energy_j == pytest.approx(0.6)
    assert split.energy_j == pytest.approx(0.4)


def test_up_direction():
    ray = Ray([0.0, 0.0, 0.0], [0.0, 0.0, 1.0], 1000.0, 1.0)
    np.testing.assert_allclose(ray.define_up_direction(), [0.0, 1.0, 0.0])
    with pytest.raises(AnalysisError, match="previous direction"):
        ray.calc_new_up_direction([0.0, 1.0, 0.0])


def test_copy_is_independent():
    ray = Ray([0.0, 0.0, 0.0], [0.0, 0.0, 1.0], 1000.0, 1.0)
    ray.propagate(1.0)
    clone = ray.copy()
    clone.propagate(1.0)
    clone.pos_hist[0][0] = 5.0
    assert ray.ray_history_len() == 1
    assert ray.pos_hist[0][0] == 0.0
