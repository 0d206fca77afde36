"""Tests for the fluence map TIFF export."""

import numpy as np
import pytest
import tifffile

from opticore.core.config import FluenceEstimator
from opticore.core.errors import IOError as ExportError
from raysim.hitmap.fluence import FluenceData
from raysim.io.tiff import read_fluence_tiff, write_fluence_tiff


@pytest.fixture()
def fluence_data() -> FluenceData:
    y, x = np.mgrid[-1.0:1.0:21j, -2.0:2.0:41j]
    fluence = np.exp(-(x**2 + y**2))
    return FluenceData(fluence, (-2.0, 2.0), (-1.0, 1.0), FluenceEstimator.KDE)


def test_write_and_read(tmp_path, fluence_data: FluenceData):
    path = tmp_path / "maps" / "fluence.tif"
    write_fluence_tiff(path, fluence_data, {"surface": "lens:input_1"})
    assert path.exists()

    data, meta = read_fluence_tiff(path)
    assert data.shape == (21, 41)
    assert data.x_range_mm == (-2.0, 2.0)
    assert data.y_range_mm == (-1.0, 1.0)
    assert data.estimator == FluenceEstimator.KDE
    np.testing.assert_allclose(data.fluence, fluence_data.fluence, rtol=1e-6)
    assert meta["units"] == "J/cm^2"
    assert meta["surface"] == "lens:input_1"
    assert meta["peak_fluence"] == pytest.approx(fluence_data.peak())


def test_user_metadata_does_not_override(tmp_path, fluence_data: FluenceData):
    path = tmp_path / "fluence.tif"
    write_fluence_tiff(path, fluence_data, {"units": "W"})
    _, meta = read_fluence_tiff(path)
    assert meta["units"] == "J/cm^2"


def test_nan_written_as_zero(tmp_path, fluence_data: FluenceData):
    fluence_data.fluence[0, 0] = np.nan
    path = tmp_path / "fluence.tif"
    write_fluence_tiff(path, fluence_data)
    data, _ = read_fluence_tiff(path)
    assert data.fluence[0, 0] == 0.0


def test_foreign_tiff_rejected(tmp_path):
    path = tmp_path / "plain.tif"
    tifffile.imwrite(path, np.zeros((4, 4), dtype=np.float32))
    with pytest.raises(ExportError, match="no fluence metadata"):
        read_fluence_tiff(path)
