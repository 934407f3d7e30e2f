import pytest
from unittest.mock import Mock
from h2o.exceptions import H2OError
from h2o.utils.shared_utils import List
import pandas as pd

from utils import constants
from utils.glm_metrics import (
    resolve_sort_order, penalty_label, parse_regularization, first_value, metric_scalar, model_metric,
    model_summary_row
)

@pytest.mark.parametrize("metric, expected", [
    ("auc", True), ("AUCPR", True), ("logloss", False), ("rmse", False), ("mean_per_class_error", False)
])
def test_sort_order_follows_metric_direction(metric, expected):
    assert resolve_sort_order(metric) is expected

def test_explicit_sort_flag_wins():
    assert resolve_sort_order("auc", decreasing=False) is False
    assert resolve_sort_order("logloss", decreasing=True) is True

def test_unknown_sort_metric_raises():
    with pytest.raises(ValueError, match="Unsupported sort metric"):
        resolve_sort_order("accuracy_at_5deg")

@pytest.mark.parametrize("alpha, lam, expected", [
    (1.0, 0.01, constants.PENALTY_LASSO),
    (0.0, 0.01, constants.PENALTY_RIDGE),
    (0.5, 0.01, constants.PENALTY_ELASTIC_NET),
    (0.5, 0.0, constants.PENALTY_NONE),
    (None, None, constants.PENALTY_NONE),
])
def test_penalty_label(alpha, lam, expected):
    assert penalty_label(alpha, lam) == expected

def test_parse_elastic_net_summary():
    reg = parse_regularization("Elastic Net (alpha = 0.5, lambda = 9.244E-4 )")
    assert reg['alpha'] == 0.5
    assert reg['lambda'] == pytest.approx(9.244e-4)
    assert reg['penalty'] == constants.PENALTY_ELASTIC_NET

def test_parse_lasso_and_ridge_imply_alpha():
    lasso = parse_regularization("Lasso (lambda = 0.002 )")
    ridge = parse_regularization("Ridge ( lambda = 0.01 )")
    assert lasso['alpha'] == 1.0 and lasso['penalty'] == constants.PENALTY_LASSO
    assert ridge['alpha'] == 0.0 and ridge['penalty'] == constants.PENALTY_RIDGE

def test_parse_none_and_empty():
    assert parse_regularization("None")['penalty'] == constants.PENALTY_NONE
    empty = parse_regularization(None)
    assert empty['alpha'] is None and empty['lambda'] is None

def test_first_value_unwraps_lists():
    assert first_value([0.5]) == 0.5
    assert first_value([]) is None
    assert first_value(0.25) == 0.25

def test_model_metric_reads_requested_split():
    model = Mock()
    model.auc.return_value = 0.91
    assert model_metric(model, "auc", "valid") == 0.91
    model.auc.assert_called_once_with(valid=True)

def test_model_metric_unwraps_threshold_metrics():
    model = Mock()
    model.mean_per_class_error.return_value = [[0.4512, 0.05]]
    assert model_metric(model, "mean_per_class_error", "xval") == 0.05
    model.mean_per_class_error.assert_called_once_with(xval=True)

def test_metric_scalar_prefers_engine_chosen_value():
    errors = List([[0.1, 0.3], [0.45, 0.05]])
    errors.value = 0.05
    assert metric_scalar(errors) == 0.05
    assert metric_scalar([[0.1, 0.3], [0.45, 0.05]]) == 0.3
    assert metric_scalar(0.91) == 0.91
    assert metric_scalar(None) is None
    assert metric_scalar([]) is None

def test_model_metric_returns_none_when_split_missing():
    model = Mock()
    model.logloss.side_effect = H2OError("no validation metrics")
    assert model_metric(model, "logloss", "valid") is None

def test_model_summary_row():
    model = Mock()
    model.summary.return_value.as_data_frame.return_value = pd.DataFrame({
        'family': ['binomial'], 'regularization': ['Lasso (lambda = 0.1 )'], 'number_of_active_predictors': [3]
    })
    row = model_summary_row(model)
    assert row['family'] == 'binomial'
    assert row['number_of_active_predictors'] == 3

def test_model_summary_row_without_summary():
    model = Mock()
    model.summary.return_value = None
    assert model_summary_row(model) == {}
