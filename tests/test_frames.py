"""Tests for isometries and frame helpers."""

import numpy as np
import pytest

from raysim.core.frames import (
    Isometry,
    compose,
    compose_chain,
    from_world,
    identity,
    invert,
    look_along,
    rotation_between,
    to_world,
)

# Named tolerances for tests (PLR2004)
ABS_TOL = 1e-9
ROUND_TRIP_TOL = 1e-9


def test_identity_transform():
    """Identity leaves points unchanged."""
    p = np.array([1.0, 2.0, 3.0])
    np.testing.assert_allclose(to_world(p, identity()), p)


def test_translation_only():
    """Pure translation moves the origin."""
    iso = Isometry.translation(1.0, 2.0, 3.0)
    np.testing.assert_allclose(iso.transform_point([0.0, 0.0, 0.0]), [1.0, 2.0, 3.0])
    np.testing.assert_allclose(iso.transform_vector([0.0, 0.0, 1.0]), [0.0, 0.0, 1.0])


def test_rotation_z():
    """90 degrees about z turns x into y."""
    iso = compose((np.pi / 2, 0.0, 0.0), (0.0, 0.0, 0.0))
    np.testing.assert_allclose(iso.transform_point([1.0, 0.0, 0.0]), [0.0, 1.0, 0.0], atol=ABS_TOL)


def test_round_trip_accuracy():
    """world -> local -> world reproduces the point."""
    iso = compose((0.1, 0.2, 0.3), (10.0, 20.0, 30.0))
    p = np.array([[1.0, -2.0, 0.5], [4.0, 5.0, 6.0]])
    back = to_world(from_world(p, iso), iso)
    np.testing.assert_allclose(back, p, atol=ROUND_TRIP_TOL)


def test_inverse_and_chain():
    a = compose((0.3, 0.0, 0.1), (1.0, 0.0, 0.0))
    b = compose((0.0, 0.2, 0.0), (0.0, 5.0, 0.0))
    assert compose_chain([a, invert(a)]).is_close(identity())
    chained = compose_chain([a, b])
    p = np.array([0.5, 0.5, 0.5])
    np.testing.assert_allclose(chained.transform_point(p), a.transform_point(b.transform_point(p)), atol=ABS_TOL)


def test_append_offsets_in_local_frame():
    """Appending a z translation moves along the local z axis."""
    iso = compose((0.0, np.pi / 2, 0.0), (0.0, 0.0, 0.0))
    moved = iso.append(Isometry.translation(0.0, 0.0, 10.0))
    np.testing.assert_allclose(moved.t, iso.transform_vector([0.0, 0.0, 10.0]), atol=ABS_TOL)


def test_dict_round_trip():
    iso = compose((0.4, -0.2, 0.1), (1.0, 2.0, 3.0))
    assert Isometry.from_dict(iso.to_dict()).is_close(iso)


def test_look_along_axis():
    iso = look_along([0.0, 0.0, 5.0], [0.0, 0.0, 1.0], [0.0, 1.0, 0.0])
    np.testing.assert_allclose(iso.R, np.eye(3), atol=ABS_TOL)
    np.testing.assert_allclose(iso.t, [0.0, 0.0, 5.0])


def test_look_along_rejects_parallel_up():
    with pytest.raises(ValueError, match="parallel"):
        look_along([0.0, 0.0, 0.0], [0.0, 1.0, 0.0], [0.0, 1.0, 0.0])


def test_rotation_between_antiparallel():
    r = rotation_between([0.0, 0.0, 1.0], [0.0, 0.0, -1.0])
    np.testing.assert_allclose(r @ np.array([0.0, 0.0, 1.0]), [0.0, 0.0, -1.0], atol=ABS_TOL)


def test_non_finite_isometry_rejected():
    with pytest.raises(ValueError, match="finite"):
        Isometry(t=(np.nan, 0.0, 0.0))
