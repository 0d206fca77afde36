"""Tests for ray bundles."""

import logging

import numpy as np
import pytest

from opticore.core.config import MissedSurfaceStrategy
from opticore.core.errors import ConfigError
from raysim.core.frames import Isometry
from raysim.rays import ConstantFilter, Grid, Hexapolar, RandomDisk, RatioSplit, RayBundle
from raysim.surfaces import CircleAperture, ConstantR, OpticSurface

NR_OF_RAYS = 37
ENERGY_TOL = 1e-12


def test_hexapolar_ray_count(collimated_bundle: RayBundle):
    assert collimated_bundle.nr_of_rays() == NR_OF_RAYS
    assert collimated_bundle.total_energy() == pytest.approx(1.0)
    for ray in collimated_bundle:
        assert ray.energy_j == pytest.approx(1.0 / NR_OF_RAYS)


def test_distributions():
    assert len(Grid(2.0, 3).generate()) == 9
    assert len(RandomDisk(1.0, 50, seed=1).generate()) == 50
    with pytest.raises(ConfigError):
        Hexapolar(-1.0, 2)


def test_split_conserves_energy(collimated_bundle: RayBundle):
    split = collimated_bundle.split(RatioSplit(0.6))
    assert collimated_bundle.total_energy() == pytest.approx(0.6, abs=ENERGY_TOL)
    assert split.total_energy() == pytest.approx(0.4, abs=ENERGY_TOL)
    assert split.nr_of_rays() == NR_OF_RAYS


def test_threshold_can_empty_bundle(collimated_bundle: RayBundle):
    collimated_bundle.invalidate_by_threshold_energy(1.0)
    assert collimated_bundle.is_empty()
    assert len(collimated_bundle) == 0


def test_negative_threshold_warns(collimated_bundle: RayBundle, caplog: pytest.LogCaptureFixture):
    with caplog.at_level(logging.WARNING):
        collimated_bundle.invalidate_by_threshold_energy(-1.0)
    assert "negative threshold" in caplog.text
    assert collimated_bundle.nr_of_rays() == NR_OF_RAYS


def test_nan_threshold_rejected(collimated_bundle: RayBundle):
    with pytest.raises(ConfigError, match="finite"):
        collimated_bundle.invalidate_by_threshold_energy(float("nan"))


def test_apodize(collimated_bundle: RayBundle):
    apodized = collimated_bundle.apodize(CircleAperture(0.5), Isometry.identity())
    assert apodized
    # centre ray and the first ring at r = 1/3 mm pass
    assert collimated_bundle.nr_of_rays() == 7
    assert not collimated_bundle.apodize(CircleAperture(10.0), Isometry.identity())


def test_filter_energy(collimated_bundle: RayBundle):
    collimated_bundle.filter_energy(ConstantFilter(0.5))
    assert collimated_bundle.total_energy() == pytest.approx(0.5)


def test_refract_reflected_bundle_identity(collimated_bundle: RayBundle):
    surface = OpticSurface(coating=ConstantR(0.1))
    surface.set_isometry(Isometry.translation(0.0, 0.0, 10.0))
    reflected = collimated_bundle.refract_on_surface(surface, None)
    assert reflected.parent_id == collimated_bundle.uuid
    assert reflected.bounce_lvl == collimated_bundle.bounce_lvl + 1
    assert reflected.total_energy() == pytest.approx(0.1)
    assert collimated_bundle.total_energy() == pytest.approx(0.9)


def test_mirror_reflection_keeps_identity(collimated_bundle: RayBundle):
    surface = OpticSurface(coating=ConstantR(1.0))
    reflected = collimated_bundle.refract_on_surface(surface, None, refraction_intended=False)
    assert reflected.uuid == collimated_bundle.uuid
    assert all(r.number_of_bounces == 0 for r in reflected)


@pytest.mark.parametrize(
    ("strategy", "valid"),
    [(MissedSurfaceStrategy.STOP, 0), (MissedSurfaceStrategy.IGNORE, NR_OF_RAYS)],
)
def test_missed_surface_strategy(collimated_bundle: RayBundle, strategy, valid):
    surface = OpticSurface()
    surface.set_isometry(Isometry.translation(0.0, 0.0, -10.0))
    collimated_bundle.refract_on_surface(surface, None, strategy=strategy)
    assert collimated_bundle.nr_of_rays() == valid


def test_bounce_and_refraction_limits(collimated_bundle: RayBundle):
    for ray in collimated_bundle.rays[:5]:
        ray.number_of_bounces = 3
    collimated_bundle.filter_by_nr_of_bounces(2)
    assert collimated_bundle.nr_of_rays() == NR_OF_RAYS - 5
    collimated_bundle.filter_by_nr_of_refractions(0)
    assert collimated_bundle.is_empty()


def test_transformed_keeps_identity(collimated_bundle: RayBundle):
    moved = collimated_bundle.transformed(Isometry.translation(0.0, 0.0, 5.0))
    assert moved.uuid == collimated_bundle.uuid
    np.testing.assert_allclose(moved.centroid(), [0.0, 0.0, 5.0], atol=1e-12)


def test_split_by_wavelength():
    bundle = RayBundle.new_collimated(Hexapolar(1.0, 1), 500.0, 1.0)
    bundle.merge(RayBundle.new_collimated(Hexapolar(1.0, 1), 1500.0, 1.0))
    long = bundle.split_by_wavelength(1000.0)
    assert long.total_energy() == pytest.approx(1.0)
    assert bundle.total_energy() == pytest.approx(1.0)


def test_to_spectrum(collimated_bundle: RayBundle):
    spectrum = collimated_bundle.to_spectrum(1.0)
    assert spectrum.total_energy() == pytest.approx(1.0)
