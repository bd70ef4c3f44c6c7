import numpy as np
import pytest

from probelevel.lesn import (
    LesnMethod,
    bw_exponential,
    bw_gaussian,
    bw_linear,
    lesn_correct,
    shift_down,
    shift_down_log,
    stretch_down,
    stretch_down_by_type,
)


@pytest.fixture
def chips():
    return np.array(
        [
            [100.0, 50.0],
            [200.0, 80.0],
            [400.0, 300.0],
            [1000.0, 2000.0],
        ]
    )


def test_weights_at_extremes():
    assert bw_linear(5.0, 5.0, 9.0, 1.0) == pytest.approx(1.0)
    assert bw_linear(9.0, 5.0, 9.0, 1.0) == pytest.approx(0.0)
    assert bw_exponential(5.0, 5.0, 9.0, 3.0) == pytest.approx(1.0)
    assert bw_gaussian(5.0, 5.0, 9.0, 3.0) == pytest.approx(1.0)


@pytest.mark.parametrize("fn", [bw_linear, bw_exponential, bw_gaussian])
def test_weights_decrease_with_intensity(fn):
    xs = np.array([1.0, 2.0, 3.0, 4.0])
    w = np.asarray(fn(xs, 1.0, 4.0, 2.0))
    assert w.shape == (4,)
    assert w[0] == pytest.approx(1.0)
    assert bool(np.all(np.diff(w) < 0))


def test_linear_weights_values():
    w = np.asarray(bw_linear(np.array([1.0, 2.5, 4.0]), 1.0, 4.0, 2.0))
    assert np.allclose(w, [1.0, 0.5, 0.0])


def test_shift_down_sets_minimum_and_keeps_differences(chips):
    out = shift_down(chips, 20.0)
    assert np.allclose(out.min(axis=0), 20.0)
    assert np.allclose(np.diff(out, axis=0), np.diff(chips, axis=0))


def test_shift_down_does_not_modify_input(chips):
    original = chips.copy()
    shift_down(chips, 20.0)
    assert np.array_equal(chips, original)


def test_shift_down_vector_keeps_shape():
    out = shift_down([5.0, 7.0, 9.0], 1.0)
    assert out.shape == (3,)
    assert np.allclose(out, [1.0, 3.0, 5.0])


def test_shift_down_log_keeps_ratios(chips):
    out = shift_down_log(chips, 20.0)
    assert np.allclose(out.min(axis=0), 20.0)
    assert np.allclose(out / out[0], chips / chips[0])


def test_shift_down_log_floors_when_below_baseline():
    data = np.array([[5.0], [30.0], [50.0]])
    out = shift_down_log(data, 20.0)
    assert np.allclose(out[:, 0], [20.0, 30.0, 50.0])


def test_stretch_linear_moves_min_and_keeps_max(chips):
    out = stretch_down(chips, 20.0, 1.0, False, bw_linear)
    assert np.allclose(out.min(axis=0), 20.0)
    assert np.allclose(out.max(axis=0), chips.max(axis=0))


@pytest.mark.parametrize("weighting,theta", [(bw_exponential, 1.5), (bw_gaussian, 4.0)])
def test_stretch_log_bounds(chips, weighting, theta):
    out = stretch_down(chips, 20.0, theta, True, weighting)
    assert np.allclose(out.min(axis=0), 20.0)
    assert np.all(out <= chips + 1e-9)
    assert np.all(out >= 20.0 - 1e-9)


def test_stretch_log_floors_columns_below_baseline():
    data = np.array([[10.0, 40.0], [25.0, 60.0], [90.0, 200.0]])
    out = stretch_down(data, 20.0, 1.0, True, bw_exponential)
    assert np.allclose(out[:, 0], [20.0, 25.0, 90.0])
    assert out[0, 1] == pytest.approx(20.0)


def test_stretch_by_type_matches_direct_call(chips):
    by_type = stretch_down_by_type(chips, 20.0, 4, 2.0)
    direct = stretch_down(chips, 20.0, 2.0, True, bw_exponential)
    assert np.allclose(by_type, direct)


def test_stretch_by_unknown_type_leaves_data(chips):
    out = stretch_down_by_type(chips, 20.0, 9, 2.0)
    assert np.array_equal(out, chips)


def test_lesn_half_gaussian_uses_squared_theta(chips):
    out = lesn_correct(chips, LesnMethod.HALF_GAUSSIAN, 20.0, 3.0)
    expected = stretch_down(chips, 20.0, 18.0, True, bw_gaussian)
    assert np.allclose(out, expected)


def test_lesn_exponential(chips):
    out = lesn_correct(chips, 1, 20.0, 3.0)
    expected = stretch_down(chips, 20.0, 3.0, True, bw_exponential)
    assert np.allclose(out, expected)


@pytest.mark.parametrize("method", [0, 7, LesnMethod.SHIFT])
def test_lesn_other_methods_shift(chips, method):
    assert np.allclose(lesn_correct(chips, method, 20.0, 3.0), shift_down(chips, 20.0))


def test_empty_data_raises():
    with pytest.raises(ValueError):
        shift_down([], 1.0)
    with pytest.raises(ValueError):
        stretch_down(np.zeros((0, 2)), 1.0, 1.0, True, bw_gaussian)