import numpy as np
import pytest

from probelevel.model import (
    DataGroup,
    ModelFit,
    ModelParameters,
    build_model_matrix,
    compute_n_params,
)


def _data(n_probes=6, n_arrays=3, seed=0):
    rng = np.random.default_rng(seed)
    pm = rng.uniform(100.0, 1000.0, size=(n_probes, n_arrays))
    mm = rng.uniform(50.0, 500.0, size=(n_probes, n_arrays))
    names = ["a"] * 4 + ["b"] * (n_probes - 4)
    return DataGroup(pm=pm, mm=mm, probe_names=names)


def _default_model(n_arrays=3):
    return ModelParameters(
        n_arrays=n_arrays,
        which_parameter_types=(0, 0, 1, 0, 1),
        constraints=(0, 0, 0, 0, -1),
    )


def test_datagroup_dimensions_and_probesets():
    data = _data()
    assert data.n_probes == 6
    assert data.n_arrays == 3
    assert data.n_probesets == 2


def test_datagroup_rejects_mismatched_mm():
    with pytest.raises(ValueError):
        DataGroup(pm=np.ones((4, 2)), mm=np.ones((3, 2)))


def test_model_parameters_need_five_entries():
    with pytest.raises(ValueError):
        ModelParameters(n_arrays=2, which_parameter_types=(1, 0, 1, 0))


def test_update_space_resets_storage():
    fit = ModelFit()
    fit.update_space(4, 12, 6)
    assert fit.x.shape == (12, 6)
    assert not fit.x.any()
    assert fit.params.shape == (6,)
    assert fit.varcov.shape == (6, 6)
    assert fit.resids.shape == (12,)
    assert (fit.n, fit.p, fit.nprobes) == (12, 6, 4)


def test_default_model_matrix_has_full_rank():
    data = _data()
    model = _default_model()
    fit = build_model_matrix(model, data, ModelFit(), range(4))
    assert fit.p == compute_n_params(model, 4)
    assert fit.x.shape == (4 * data.n_arrays, fit.p)
    assert np.linalg.matrix_rank(fit.x) == fit.p
    # every observation belongs to exactly one array
    assert np.allclose(fit.x[:, : data.n_arrays].sum(axis=1), 1.0)


def test_probe_effect_columns_sum_to_zero_over_probes():
    data = _data()
    fit = build_model_matrix(_default_model(), data, ModelFit(), range(4))
    probe_cols = fit.x[:, data.n_arrays :]
    for i in range(data.n_arrays):
        block = probe_cols[i * 4 : (i + 1) * 4]
        assert np.allclose(block.sum(axis=0), 0.0)


def test_unchanged_probe_count_keeps_matrix():
    data = _data()
    model = _default_model()
    fit = build_model_matrix(model, data, ModelFit(), [0, 1])
    before = fit.x
    build_model_matrix(model, data, fit, [4, 5])
    assert fit.x is before
    build_model_matrix(model, data, fit, [0, 1, 2, 3])
    assert fit.x is not before
    assert fit.nprobes == 4


def test_pm_and_mm_response_doubles_observations():
    data = _data()
    model = ModelParameters(
        n_arrays=3,
        which_parameter_types=(0, 0, 1, 1, 1),
        constraints=(0, 0, 0, -1, -1),
        response_variable=0,
    )
    fit = build_model_matrix(model, data, ModelFit(), range(4))
    assert fit.n == 2 * 4 * 3
    assert fit.x.shape == (fit.n, compute_n_params(model, 4))
    probe_type = fit.x[:, 3]
    assert np.allclose(probe_type[:12], 1.0)
    assert np.allclose(probe_type[12:], -1.0)


def test_mm_covariate_column_and_refresh():
    data = _data()
    model = ModelParameters(
        n_arrays=3,
        which_parameter_types=(1, 0, 1, 0, 0),
        constraints=(0, 0, -1, 0, 0),
        mmorpm_covariate=1,
    )
    rows = [0, 1, 2, 3]
    fit = build_model_matrix(model, data, ModelFit(), rows)
    expected = np.log2(data.mm[rows, :].T.ravel())
    assert np.allclose(fit.x[:, 0], 1.0)
    assert np.allclose(fit.x[:, 1], expected)

    other = DataGroup(pm=data.pm, mm=data.mm * 2.0, probe_names=data.probe_names)
    before = fit.x
    build_model_matrix(model, other, fit, rows)
    assert fit.x is before
    assert np.allclose(fit.x[:, 1], expected + 1.0)


def test_pm_covariate_for_mm_response():
    data = _data()
    model = ModelParameters(
        n_arrays=3,
        which_parameter_types=(0, 0, 1, 0, 0),
        response_variable=-1,
        mmorpm_covariate=-1,
    )
    rows = [4, 5]
    fit = build_model_matrix(model, data, ModelFit(), rows)
    assert np.allclose(fit.x[:, 0], np.log2(data.pm[rows, :].T.ravel()))


def test_covariate_without_mm_raises():
    data = DataGroup(pm=np.full((4, 2), 10.0))
    model = ModelParameters(
        n_arrays=2, which_parameter_types=(1, 0, 0, 0, 0), mmorpm_covariate=1
    )
    with pytest.raises(ValueError):
        build_model_matrix(model, data, ModelFit(), [0, 1])


def test_chip_level_covariates_fill_columns():
    data = _data()
    covariates = np.array([[1.0], [2.0], [5.0]])
    model = ModelParameters(
        n_arrays=3,
        which_parameter_types=(1, 1, 0, 0, 1),
        constraints=(0, 0, 0, 0, -1),
        chiplevelcovariates=covariates,
    )
    fit = build_model_matrix(model, data, ModelFit(), range(4))
    assert model.n_chiplevelcovariates == 1
    assert np.allclose(fit.x[:, 1], np.repeat(covariates.ravel(), 4))
    assert fit.x.shape[1] == compute_n_params(model, 4)


def test_empty_probeset_raises():
    with pytest.raises(ValueError):
        build_model_matrix(_default_model(), _data(), ModelFit(), [])