from __future__ import annotations

import json
import os
import subprocess
import sys
import textwrap
from pathlib import Path

import pytest

from opticore.cli.main import main

SRC = Path(__file__).resolve().parents[1] / "src"

SCENERY = textwrap.dedent(
    """
    scenery:
      nodes:
        - type: source
          name: laser
          properties:
            distribution: {kind: hexapolar, radius_mm: 1.0, nr_of_rings: 3}
            wavelength_nm: 1064.0
            energy_j: 1.0
        - type: mirror
          name: m1
          pose: {t: [0.0, 0.0, 50.0]}
          lidt: 0.001
        - type: detector
          name: cam
      edges:
        - {src: laser, src_port: output_1, tgt: m1, tgt_port: input_1, distance_mm: 50.0}
        - {src: m1, src_port: output_1, tgt: cam, tgt_port: input_1, distance_mm: 20.0}
      output_map:
        out: [cam, output_1]
    analysis:
      kind: raytrace
      fluence_grid: [21, 21]
    """
)


def run_cli(*args: str) -> subprocess.CompletedProcess:
    env = {**os.environ, "PYTHONPATH": str(SRC)}
    return subprocess.run(
        [sys.executable, "-m", "opticore.cli", *args],
        capture_output=True,
        text=True,
        check=False,
        env=env,
    )


@pytest.fixture()
def scenery_file(tmp_path: Path) -> Path:
    path = tmp_path / "scenery.yaml"
    path.write_text(SCENERY)
    return path


def test_cli_help() -> None:
    result = run_cli("--help")
    assert result.returncode == 0
    assert "run" in result.stdout and "validate" in result.stdout and "inspect" in result.stdout


def test_cli_run_help() -> None:
    result = run_cli("run", "--help")
    assert result.returncode == 0
    assert "--config" in result.stdout
    assert "--out" in result.stdout
    assert "--fluence" in result.stdout


def test_cli_missing_command() -> None:
    result = run_cli()
    assert result.returncode != 0


def test_cli_run_raytrace(scenery_file: Path, tmp_path: Path) -> None:
    outdir = tmp_path / "out"
    result = run_cli("run", "-c", str(scenery_file), "-o", str(outdir), "--fluence", "--log")
    assert result.returncode == 0, result.stderr

    summary = json.loads((outdir / "result.json").read_text())
    assert summary["analysis"] == "raytrace"
    assert summary["result"]["out"]["total_energy_j"] == pytest.approx(1.0)
    assert summary["result"]["out"]["nr_of_rays"] == 37
    assert "input_1" in summary["critical_fluences"]["m1"]
    assert "fluence_m1_input_1.tif" in summary["fluence_maps"]
    assert (outdir / "fluence_m1_input_1.tif").exists()
    assert (outdir / "run.log").exists()


def test_cli_run_ghost_focus(scenery_file: Path, tmp_path: Path) -> None:
    outdir = tmp_path / "ghost"
    result = run_cli("run", "-c", str(scenery_file), "-o", str(outdir), "-a", "ghost_focus")
    assert result.returncode == 0, result.stderr
    summary = json.loads((outdir / "result.json").read_text())
    assert summary["analysis"] == "ghost_focus"
    assert summary["nr_of_ghost_bundles"] == 1


def test_cli_run_missing_document(tmp_path: Path) -> None:
    result = run_cli("run", "-c", str(tmp_path / "missing.yaml"), "-o", str(tmp_path / "out"))
    assert result.returncode == 1
    assert "Error:" in result.stderr


def test_cli_validate(scenery_file: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["validate", "-c", str(scenery_file)]) == 0
    out = capsys.readouterr().out
    assert "Document valid:" in out
    assert "Nodes:    3" in out


def test_cli_validate_broken_document(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    path = tmp_path / "broken.yaml"
    path.write_text(SCENERY.replace("type: detector", "type: camera"))
    assert main(["validate", "-c", str(path)]) == 2
    assert "unknown node type 'camera'" in capsys.readouterr().err


def test_cli_inspect(scenery_file: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["inspect", "-c", str(scenery_file)]) == 0
    out = capsys.readouterr().out
    assert "Scenery Summary:" in out
    assert "Connections:" in out
    assert "laser.output_1 -> m1.input_1" in out
    assert "Fluence grid:   21x21" in out
