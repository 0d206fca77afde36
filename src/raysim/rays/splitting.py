"""Energy splitting and filtering configurations.

A splitting configuration yields the fraction of energy that stays in the
original (transmitted) beam. A filter configuration yields the transmitted
fraction of energy.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Union

from opticore.core.errors import ConfigError
from raysim.core.spectrum import Spectrum


def _check_fraction(value: float, what: str) -> float:
    if not math.isfinite(value) or not 0.0 <= value <= 1.0:
        raise ConfigError(f"{what} must be within [0.0, 1.0], got {value}")
    return value


def _spectrum_value(spectrum: Spectrum, wavelength_nm: float, what: str) -> float:
    start, end = spectrum.range_nm
    if not start <= wavelength_nm <= end:
        raise ConfigError(f"{what} failed: wavelength {wavelength_nm} nm outside given spectrum")
    return spectrum.value_at(wavelength_nm)


@dataclass(slots=True)
class RatioSplit:
    """Wavelength independent splitting ratio."""

    ratio: float = 0.5

    def __post_init__(self) -> None:
        _check_fraction(self.ratio, "splitting ratio")

    def ratio_at(self, wavelength_nm: float) -> float:  # noqa: ARG002
        return self.ratio

    def split_spectrum(self, spectrum: Spectrum) -> Spectrum:
        """Scale ``spectrum`` in place, return the split off part."""
        rest = spectrum.copy()
        spectrum.scale_vertical(self.ratio)
        rest.scale_vertical(1.0 - self.ratio)
        return rest

    def to_dict(self) -> dict[str, Any]:
        return {"kind": "ratio", "ratio": self.ratio}


@dataclass(slots=True)
class SpectrumSplit:
    """Splitting ratio given by a transmission spectrum."""

    spectrum: Spectrum

    def ratio_at(self, wavelength_nm: float) -> float:
        return _check_fraction(_spectrum_value(self.spectrum, wavelength_nm, "ray splitting"), "splitting ratio")

    def split_spectrum(self, spectrum: Spectrum) -> Spectrum:
        return spectrum.split_by_spectrum(self.spectrum)

    def to_dict(self) -> dict[str, Any]:
        return {"kind": "spectrum", "spectrum": self.spectrum.to_dict()}


SplittingConfig = Union[RatioSplit, SpectrumSplit]


@dataclass(slots=True)
class ConstantFilter:
    """Wavelength independent transmission."""

    transmission: float = 1.0

    def __post_init__(self) -> None:
        _check_fraction(self.transmission, "transmission factor")

    def transmission_at(self, wavelength_nm: float) -> float:  # noqa: ARG002
        return self.transmission

    def filter_spectrum(self, spectrum: Spectrum) -> None:
        spectrum.scale_vertical(self.transmission)

    def to_dict(self) -> dict[str, Any]:
        return {"kind": "constant", "transmission": self.transmission}


@dataclass(slots=True)
class SpectrumFilter:
    """Transmission curve."""

    spectrum: Spectrum

    def transmission_at(self, wavelength_nm: float) -> float:
        return _check_fraction(_spectrum_value(self.spectrum, wavelength_nm, "filtering"), "transmission factor")

    def filter_spectrum(self, spectrum: Spectrum) -> None:
        spectrum.filter(self.spectrum)

    def to_dict(self) -> dict[str, Any]:
        return {"kind": "spectrum", "spectrum": self.spectrum.to_dict()}


FilterType = Union[ConstantFilter, SpectrumFilter]


def splitting_from_dict(data: dict[str, Any]) -> SplittingConfig:
    kind = data.get("kind", "ratio")
    if kind == "ratio":
        return RatioSplit(float(data["ratio"]))
    if kind == "spectrum":
        return SpectrumSplit(Spectrum.from_dict(data["spectrum"]))
    raise ConfigError(f"unknown splitting config '{kind}'")


def filter_from_dict(data: dict[str, Any]) -> FilterType:
    kind = data.get("kind", "constant")
    if kind == "constant":
        return ConstantFilter(float(data["transmission"]))
    if kind == "spectrum":
        return SpectrumFilter(Spectrum.from_dict(data["spectrum"]))
    raise ConfigError(f"unknown filter type '{kind}'")


__all__ = [
    "RatioSplit",
    "SpectrumSplit",
    "SplittingConfig",
    "ConstantFilter",
    "SpectrumFilter",
    "FilterType",
    "splitting_from_dict",
    "filter_from_dict",
]
