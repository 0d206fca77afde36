"""Test configuration round-trip serialization."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from opticore.core.config import (
    AnalysisConfig,
    AnalyzerKind,
    FluenceEstimator,
    GhostFocusConfig,
    MissedSurfaceStrategy,
    Pose,
    RayTraceConfig,
    SimulationContext,
    load_config,
    round_trip_config,
    save_config,
)


def test_raytrace_defaults():
    """Limits are explicit and large by default."""
    cfg = RayTraceConfig()
    assert cfg.min_energy_per_ray_j == pytest.approx(1e-12)
    assert cfg.max_number_of_bounces == 1000
    assert cfg.max_number_of_refractions == 1000
    assert cfg.missed_surface_strategy == MissedSurfaceStrategy.STOP


def test_negative_threshold_rejected():
    with pytest.raises(ValidationError, match="min_energy_per_ray_j"):
        RayTraceConfig(min_energy_per_ray_j=-1.0)


def test_nan_threshold_rejected():
    with pytest.raises(ValidationError):
        RayTraceConfig(min_energy_per_ray_j=float("nan"))


def test_negative_bounce_limit_rejected():
    with pytest.raises(ValidationError):
        RayTraceConfig(max_number_of_bounces=-1)


def test_ghost_bounces_cannot_exceed_raytrace_limit():
    with pytest.raises(ValidationError, match="max_bounces"):
        AnalysisConfig(raytrace=RayTraceConfig(max_number_of_bounces=1), ghost_focus=GhostFocusConfig(max_bounces=3))


def test_fluence_grid_validation():
    with pytest.raises(ValidationError, match="at least 2"):
        AnalysisConfig(fluence_grid=(1, 10))


def test_pose_rejects_non_finite():
    with pytest.raises(ValidationError, match="finite"):
        Pose(t=(0.0, float("inf"), 0.0))


def test_context_index_validation():
    with pytest.raises(ValidationError):
        SimulationContext(ambient_refractive_index=0.0)


def test_context_rng_is_seeded():
    a = SimulationContext(seed=3).rng().random(4)
    b = SimulationContext(seed=3).rng().random(4)
    assert (a == b).all()


def test_mode_config():
    cfg = AnalysisConfig(kind=AnalyzerKind.GHOST_FOCUS)
    assert isinstance(cfg.mode_config(), GhostFocusConfig)
    assert AnalysisConfig(kind=AnalyzerKind.ENERGY).mode_config() is None


def test_round_trip():
    cfg = AnalysisConfig(
        kind=AnalyzerKind.RAYTRACE,
        raytrace=RayTraceConfig(max_number_of_bounces=3, fluence_estimator=FluenceEstimator.KDE),
        fluence_grid=(21, 31),
    )
    loaded = round_trip_config(cfg)
    assert loaded == cfg


@pytest.mark.parametrize("suffix", [".yaml", ".json"])
def test_save_and_load(tmp_path: Path, suffix: str):
    cfg = AnalysisConfig(kind=AnalyzerKind.ENERGY, fluence_grid=(11, 11))
    path = tmp_path / f"analysis{suffix}"
    save_config(cfg, path)
    assert load_config(path) == cfg


def test_load_nested_analysis_section(tmp_path: Path):
    path = tmp_path / "doc.json"
    path.write_text(json.dumps({"scenery": {}, "analysis": {"kind": "ghost_focus"}}))
    assert load_config(path).kind == AnalyzerKind.GHOST_FOCUS


def test_missing_file():
    with pytest.raises(FileNotFoundError):
        load_config("does/not/exist.yaml")
