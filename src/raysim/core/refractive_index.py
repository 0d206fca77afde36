"""Pluggable refractive index lookup (wavelength in nm -> index)."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from opticore.core.errors import ConfigError


@runtime_checkable
class RefractiveIndex(Protocol):
    """Anything that maps a wavelength to a refractive index."""

    def index(self, wavelength_nm: float) -> float:
        ...

    def to_dict(self) -> dict[str, Any]:
        ...


@dataclass(slots=True)
class ConstantIndex:
    """Dispersion-free medium."""

    n: float = 1.0

    def __post_init__(self) -> None:
        if not math.isfinite(self.n) or self.n < 1.0:
            raise ConfigError(f"refractive index must be finite and >= 1, got {self.n}")

    def index(self, wavelength_nm: float) -> float:  # noqa: ARG002
        return self.n

    def to_dict(self) -> dict[str, Any]:
        return {"kind": "constant", "n": self.n}


@dataclass(slots=True)
class SellmeierIndex:
    """Three-term Sellmeier equation, ``l`` coefficients in um^2."""

    k: tuple[float, float, float]
    l: tuple[float, float, float]  # noqa: E741

    def index(self, wavelength_nm: float) -> float:
        if wavelength_nm <= 0.0:
            raise ConfigError("wavelength must be positive")
        w2 = (wavelength_nm / 1000.0) ** 2
        n2 = 1.0 + sum(k * w2 / (w2 - l) for k, l in zip(self.k, self.l))
        if n2 < 1.0:
            raise ConfigError(f"Sellmeier model undefined at {wavelength_nm} nm")
        return math.sqrt(n2)

    def to_dict(self) -> dict[str, Any]:
        return {"kind": "sellmeier", "k": list(self.k), "l": list(self.l)}


# N-BK7 from the Schott catalogue
NBK7 = SellmeierIndex(
    k=(1.03961212, 0.231792344, 1.01046945),
    l=(0.00600069867, 0.0200179144, 103.560653),
)


def refractive_index_from_dict(data: dict[str, Any] | float) -> RefractiveIndex:
    """Rebuild a refractive index model from its plain representation."""
    if isinstance(data, (int, float)):
        return ConstantIndex(float(data))
    kind = data.get("kind", "constant")
    if kind == "constant":
        return ConstantIndex(float(data["n"]))
    if kind == "sellmeier":
        return SellmeierIndex(tuple(data["k"]), tuple(data["l"]))
    raise ConfigError(f"unknown refractive index model '{kind}'")


__all__ = [
    "RefractiveIndex",
    "ConstantIndex",
    "SellmeierIndex",
    "NBK7",
    "refractive_index_from_dict",
]
