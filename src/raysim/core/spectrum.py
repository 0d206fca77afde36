"""Sampled spectra for energy analyses and spectral filters.

A spectrum stores a spectral energy density (J/nm) on a regular wavelength
grid. Transmission curves used by filters and beam splitters reuse the same
type with dimensionless values in [0, 1].
"""

from __future__ import annotations

import math
from typing import Any

import numpy as np

from opticore.core.errors import ConfigError


class Spectrum:
    """Spectral density sampled on a regular wavelength grid (nm)."""

    def __init__(self, lambdas_nm, data):  # type: ignore[no-untyped-def]
        lambdas = np.asarray(lambdas_nm, dtype=np.float64)
        values = np.asarray(data, dtype=np.float64)
        if lambdas.ndim != 1 or lambdas.size < 2:
            raise ConfigError("spectrum needs at least two wavelength samples")
        if lambdas.shape != values.shape:
            raise ConfigError("wavelength and data arrays must have the same length")
        if not np.all(np.isfinite(lambdas)) or np.any(lambdas <= 0.0):
            raise ConfigError("wavelengths must be positive and finite")
        if np.any(np.diff(lambdas) <= 0.0):
            raise ConfigError("wavelengths must be strictly increasing")
        if not np.all(np.isfinite(values)) or np.any(values < 0.0):
            raise ConfigError("spectrum data must be finite and >= 0")
        self.lambdas_nm = lambdas
        self.data = values

    @classmethod
    def new(cls, start_nm: float, end_nm: float, resolution_nm: float) -> Spectrum:
        """Empty spectrum covering [start, end) with the given step."""
        if not (math.isfinite(start_nm) and math.isfinite(end_nm) and math.isfinite(resolution_nm)):
            raise ConfigError("spectrum range must be finite")
        if resolution_nm <= 0.0 or end_nm <= start_nm:
            raise ConfigError("spectrum range must be increasing with a positive resolution")
        lambdas = np.arange(start_nm, end_nm, resolution_nm)
        return cls(lambdas, np.zeros_like(lambdas))

    @classmethod
    def flat(cls, start_nm: float, end_nm: float, resolution_nm: float, value: float) -> Spectrum:
        """Constant-valued spectrum, e.g. a flat transmission curve."""
        spectrum = cls.new(start_nm, end_nm, resolution_nm)
        spectrum.data[:] = value
        return spectrum

    @property
    def resolution_nm(self) -> float:
        return float(self.lambdas_nm[1] - self.lambdas_nm[0])

    @property
    def range_nm(self) -> tuple[float, float]:
        return float(self.lambdas_nm[0]), float(self.lambdas_nm[-1])

    def add_single_peak(self, wavelength_nm: float, energy_j: float) -> None:
        """Deposit ``energy_j`` into the bin closest to ``wavelength_nm``."""
        if energy_j < 0.0 or not math.isfinite(energy_j):
            raise ConfigError("peak energy must be finite and >= 0")
        start, end = self.range_nm
        if not start <= wavelength_nm <= end:
            raise ConfigError(f"wavelength {wavelength_nm} nm outside spectrum range")
        idx = int(np.argmin(np.abs(self.lambdas_nm - wavelength_nm)))
        self.data[idx] += energy_j / self.resolution_nm

    def add_lorentzian_peak(self, center_nm: float, width_nm: float, energy_j: float) -> None:
        """Add a Lorentzian line normalized to ``energy_j`` on this grid."""
        if width_nm <= 0.0 or energy_j < 0.0:
            raise ConfigError("lorentzian width must be positive and energy >= 0")
        hw = 0.5 * width_nm
        shape = hw / np.pi / ((self.lambdas_nm - center_nm) ** 2 + hw * hw)
        norm = float(np.sum(shape) * self.resolution_nm)
        if norm > 0.0:
            self.data += shape * energy_j / norm

    def value_at(self, wavelength_nm: float) -> float:
        """Linear interpolation, zero outside the sampled range."""
        return float(np.interp(wavelength_nm, self.lambdas_nm, self.data, left=0.0, right=0.0))

    def total_energy(self) -> float:
        return float(np.sum(self.data) * self.resolution_nm)

    def center_wavelength(self) -> float | None:
        """Density-weighted mean wavelength, ``None`` for an empty spectrum."""
        weight = float(np.sum(self.data))
        if weight == 0.0:
            return None
        return float(np.sum(self.data * self.lambdas_nm) / weight)

    def scale_vertical(self, factor: float) -> None:
        if factor < 0.0 or not math.isfinite(factor):
            raise ConfigError("scaling factor must be finite and >= 0")
        self.data *= factor

    def _transmission(self, curve: Spectrum) -> np.ndarray:
        t = np.interp(self.lambdas_nm, curve.lambdas_nm, curve.data, left=0.0, right=0.0)
        return np.clip(t, 0.0, 1.0)

    def filter(self, curve: Spectrum) -> None:
        """Multiply by a transmission curve."""
        self.data *= self._transmission(curve)

    def split_by_spectrum(self, curve: Spectrum) -> Spectrum:
        """Keep the transmitted part, return the complementary part."""
        t = self._transmission(curve)
        rest = Spectrum(self.lambdas_nm.copy(), self.data * (1.0 - t))
        self.data = self.data * t
        return rest

    def resampled(self, lambdas_nm) -> Spectrum:  # type: ignore[no-untyped-def]
        """Density interpolated on another grid."""
        lambdas = np.asarray(lambdas_nm, dtype=np.float64)
        values = np.interp(lambdas, self.lambdas_nm, self.data, left=0.0, right=0.0)
        return Spectrum(lambdas, values)

    def merge(self, other: Spectrum) -> None:
        """Add another spectrum, extending the grid when needed."""
        if np.array_equal(self.lambdas_nm, other.lambdas_nm):
            self.data = self.data + other.data
            return
        start = min(self.range_nm[0], other.range_nm[0])
        end = max(self.range_nm[1], other.range_nm[1])
        resolution = min(self.resolution_nm, other.resolution_nm)
        lambdas = np.arange(start, end + 0.5 * resolution, resolution)
        a = self.resampled(lambdas)
        b = other.resampled(lambdas)
        # keep energy when the grid gets finer
        a.data *= self.total_energy() / a.total_energy() if a.total_energy() > 0.0 else 1.0
        b.data *= other.total_energy() / b.total_energy() if b.total_energy() > 0.0 else 1.0
        self.lambdas_nm = lambdas
        self.data = a.data + b.data

    def copy(self) -> Spectrum:
        return Spectrum(self.lambdas_nm.copy(), self.data.copy())

    def to_dict(self) -> dict[str, Any]:
        return {"lambdas_nm": self.lambdas_nm.tolist(), "data": self.data.tolist()}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Spectrum:
        return cls(data["lambdas_nm"], data["data"])

    def __repr__(self) -> str:
        start, end = self.range_nm
        return f"Spectrum({start:.1f}-{end:.1f} nm, {self.total_energy():.3e} J)"


def merge_spectra(a: Spectrum | None, b: Spectrum | None) -> Spectrum | None:
    """Merge two optional spectra."""
    if a is None:
        return b.copy() if b is not None else None
    merged = a.copy()
    if b is not None:
        merged.merge(b)
    return merged


__all__ = ["Spectrum", "merge_spectra"]
