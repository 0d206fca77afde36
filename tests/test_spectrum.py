"""Tests for sampled spectra and spectral splitting."""

import numpy as np
import pytest

from opticore.core.errors import ConfigError
from raysim.core.refractive_index import NBK7, ConstantIndex, refractive_index_from_dict
from raysim.core.spectrum import Spectrum, merge_spectra
from raysim.rays.splitting import ConstantFilter, RatioSplit, SpectrumFilter, SpectrumSplit

ENERGY_TOL = 1e-12


def laser_line(energy: float = 1.0) -> Spectrum:
    spectrum = Spectrum.new(500.0, 1500.0, 1.0)
    spectrum.add_single_peak(1000.0, energy)
    return spectrum


def test_single_peak_energy():
    assert laser_line(2.0).total_energy() == pytest.approx(2.0)
    assert laser_line().center_wavelength() == pytest.approx(1000.0)


def test_peak_outside_range():
    with pytest.raises(ConfigError, match="outside"):
        Spectrum.new(500.0, 600.0, 1.0).add_single_peak(1000.0, 1.0)


def test_lorentzian_normalized():
    spectrum = Spectrum.new(900.0, 1100.0, 0.5)
    spectrum.add_lorentzian_peak(1000.0, 5.0, 3.0)
    assert spectrum.total_energy() == pytest.approx(3.0)


def test_invalid_grid():
    with pytest.raises(ConfigError, match="increasing"):
        Spectrum([2.0, 1.0], [0.0, 0.0])


def test_ratio_split_conserves_energy():
    spectrum = laser_line()
    rest = RatioSplit(0.6).split_spectrum(spectrum)
    assert spectrum.total_energy() == pytest.approx(0.6, abs=ENERGY_TOL)
    assert rest.total_energy() == pytest.approx(0.4, abs=ENERGY_TOL)


def test_spectrum_split():
    curve = Spectrum([400.0, 999.0, 1001.0, 1600.0], [1.0, 1.0, 0.0, 0.0])
    spectrum = laser_line()
    rest = SpectrumSplit(curve).split_spectrum(spectrum)
    assert spectrum.total_energy() + rest.total_energy() == pytest.approx(1.0)
    assert spectrum.total_energy() == pytest.approx(0.5)


def test_filters():
    spectrum = laser_line()
    ConstantFilter(0.25).filter_spectrum(spectrum)
    assert spectrum.total_energy() == pytest.approx(0.25)
    curve = Spectrum.flat(400.0, 1600.0, 10.0, 0.5)
    assert SpectrumFilter(curve).transmission_at(1000.0) == pytest.approx(0.5)


def test_ratio_out_of_range():
    with pytest.raises(ConfigError):
        RatioSplit(1.5)


def test_merge_different_grids():
    a = laser_line(1.0)
    b = Spectrum.new(1200.0, 1800.0, 2.0)
    b.add_single_peak(1500.0, 2.0)
    merged = merge_spectra(a, b)
    assert merged is not None
    assert merged.total_energy() == pytest.approx(3.0, rel=1e-6)
    assert merge_spectra(None, None) is None


def test_dict_round_trip():
    spectrum = laser_line()
    loaded = Spectrum.from_dict(spectrum.to_dict())
    np.testing.assert_allclose(loaded.data, spectrum.data)


def test_refractive_indices():
    assert ConstantIndex(1.5).index(500.0) == 1.5
    # N-BK7 at 587.6 nm
    assert NBK7.index(587.6) == pytest.approx(1.5168, abs=1e-4)
    assert refractive_index_from_dict(1.7).index(1000.0) == pytest.approx(1.7)
