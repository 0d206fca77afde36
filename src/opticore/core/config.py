"""Configuration models and I/O for optical graph analyses.

Pydantic models for analyzer settings, poses and the shared simulation context
with YAML/JSON I/O. Lengths are millimeters, energies joules, angles degrees at
input.
"""

from __future__ import annotations

import json
import math
from enum import Enum
from pathlib import Path
from typing import Literal

import numpy as np
import yaml
from pydantic import BaseModel, Field, field_validator, model_validator


class AnalyzerKind(str, Enum):
    """Type of analysis pass."""

    ENERGY = "energy"
    RAYTRACE = "raytrace"
    GHOST_FOCUS = "ghost_focus"


class MissedSurfaceStrategy(str, Enum):
    """What to do with rays that miss a surface."""

    STOP = "stop"
    IGNORE = "ignore"


class FluenceEstimator(str, Enum):
    """Estimator used to reconstruct a fluence map from hit points."""

    VORONOI = "voronoi"
    KDE = "kde"
    BINNING = "binning"


class Pose(BaseModel):
    """6-DOF pose in 3D space."""

    t: tuple[float, float, float] = Field(
        default=(0.0, 0.0, 0.0), description="Translation (x, y, z) in millimeters"
    )
    r: tuple[float, float, float] = Field(
        default=(0.0, 0.0, 0.0), description="Rotation (rx, ry, rz) in degrees"
    )
    order: Literal["ZYX"] = Field(default="ZYX", description="Rotation order (Euler angles)")

    @field_validator("t", "r")
    @classmethod
    def validate_finite(cls, v: tuple[float, float, float]) -> tuple[float, float, float]:
        """Reject NaN and infinite pose components."""
        if not all(math.isfinite(c) for c in v):
            raise ValueError(f"Pose components must be finite, got {v}")
        return v


class RayTraceConfig(BaseModel):
    """Settings of a ray tracing pass.

    The bounce and refraction limits are the termination guarantee for graphs
    that model resonators or multi-pass systems, so they are always explicit.
    """

    min_energy_per_ray_j: float = Field(
        default=1.0e-12, description="Rays below this energy are invalidated"
    )
    max_number_of_bounces: int = Field(default=1000, ge=0, description="Maximum reflections")
    max_number_of_refractions: int = Field(default=1000, ge=0, description="Maximum refractions")
    missed_surface_strategy: MissedSurfaceStrategy = Field(
        default=MissedSurfaceStrategy.STOP, description="Handling of rays missing a surface"
    )
    fluence_estimator: FluenceEstimator = Field(
        default=FluenceEstimator.VORONOI, description="Estimator for LIDT checks"
    )

    @field_validator("min_energy_per_ray_j")
    @classmethod
    def validate_min_energy(cls, v: float) -> float:
        """Energy threshold must be finite and not negative."""
        if not math.isfinite(v) or v < 0.0:
            raise ValueError(f"min_energy_per_ray_j must be finite and >= 0, got {v}")
        return v


class GhostFocusConfig(BaseModel):
    """Settings of a ghost focus pass."""

    max_bounces: int = Field(default=1, ge=0, description="Number of back-reflection levels")
    fluence_estimator: FluenceEstimator = Field(
        default=FluenceEstimator.VORONOI, description="Estimator for LIDT checks"
    )


class SimulationContext(BaseModel):
    """Configuration shared by all nodes of a scenery.

    Passed explicitly when building graphs instead of living in module state.
    """

    ambient_refractive_index: float = Field(default=1.0, description="Index of the medium")
    seed: int = Field(default=0, description="Seed for random ray distributions")

    @field_validator("ambient_refractive_index")
    @classmethod
    def validate_index(cls, v: float) -> float:
        """Refractive index must be finite and positive."""
        if not math.isfinite(v) or v <= 0.0:
            raise ValueError(f"Refractive index must be finite and positive, got {v}")
        return v

    def rng(self) -> np.random.Generator:
        """Random generator seeded from the context."""
        return np.random.default_rng(self.seed)


class AnalysisConfig(BaseModel):
    """Complete description of an analysis run."""

    kind: AnalyzerKind = Field(default=AnalyzerKind.RAYTRACE, description="Analysis mode")
    raytrace: RayTraceConfig = Field(default_factory=RayTraceConfig)
    ghost_focus: GhostFocusConfig = Field(default_factory=GhostFocusConfig)
    fluence_grid: tuple[int, int] = Field(
        default=(101, 101), description="Fluence map resolution (columns, rows)"
    )

    @field_validator("fluence_grid")
    @classmethod
    def validate_grid(cls, v: tuple[int, int]) -> tuple[int, int]:
        """Grid needs at least two points per axis."""
        if any(n < 2 for n in v):
            raise ValueError(f"Fluence grid needs at least 2 points per axis, got {v}")
        return v

    @model_validator(mode="after")
    def validate_limits(self) -> AnalysisConfig:
        """Ghost focus bounces cannot exceed the ray tracing bounce limit."""
        if self.ghost_focus.max_bounces > self.raytrace.max_number_of_bounces:
            raise ValueError("ghost_focus.max_bounces exceeds raytrace.max_number_of_bounces")
        return self

    def mode_config(self) -> RayTraceConfig | GhostFocusConfig | None:
        """Configuration object matching ``kind``."""
        if self.kind == AnalyzerKind.RAYTRACE:
            return self.raytrace
        if self.kind == AnalyzerKind.GHOST_FOCUS:
            return self.ghost_focus
        return None


def _read_mapping(path: Path) -> dict:
    with open(path) as f:
        if path.suffix.lower() in [".yaml", ".yml"]:
            data = yaml.safe_load(f)
        elif path.suffix.lower() == ".json":
            data = json.load(f)
        else:
            content = f.read()
            try:
                data = yaml.safe_load(content)
            except yaml.YAMLError:
                data = json.loads(content)
    return data or {}


def load_config(path: str | Path) -> AnalysisConfig:
    """Load an analysis configuration from YAML or JSON file.

    Args:
        path: Path to configuration file

    Returns:
        Validated AnalysisConfig object

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If config is invalid
    """
    path = Path(path)

    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    data = _read_mapping(path)
    # documents may nest the analysis section next to the scenery
    if "analysis" in data and isinstance(data["analysis"], dict):
        data = data["analysis"]
    return AnalysisConfig(**data)


def save_config(config: AnalysisConfig, path: str | Path) -> None:
    """Save an analysis configuration to YAML or JSON file.

    Args:
        config: Configuration to save
        path: Output file path
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    data = config.model_dump(mode="json", exclude_unset=True)

    with open(path, "w") as f:
        if path.suffix.lower() in [".yaml", ".yml"]:
            yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)
        else:
            json.dump(data, f, indent=2)


def round_trip_config(config: AnalysisConfig) -> AnalysisConfig:
    """Serialize a configuration to YAML and load it back.

    Args:
        config: Input configuration

    Returns:
        Configuration after serialization and deserialization
    """
    data = config.model_dump(mode="json", exclude_unset=True)
    yaml_str = yaml.safe_dump(data, default_flow_style=False, sort_keys=False)
    return AnalysisConfig(**yaml.safe_load(yaml_str))


__all__ = [
    "AnalyzerKind",
    "MissedSurfaceStrategy",
    "FluenceEstimator",
    "Pose",
    "RayTraceConfig",
    "GhostFocusConfig",
    "SimulationContext",
    "AnalysisConfig",
    "load_config",
    "save_config",
    "round_trip_config",
]
