import json
import pytest
import pandas as pd
from unittest.mock import Mock, MagicMock, patch

from modules.model_selector import ModelSelector
from utils.exceptions import ModelSelectionError
from utils import constants

@pytest.fixture
def mock_logger():
    return Mock()

@pytest.fixture
def base_config(tmp_path):
    return {
        'selection': {'sort_by': 'auc', 'decreasing': None},
        'outputs': {'base_results_dir': str(tmp_path)}
    }

def make_model(model_id, alpha, auc, logloss=0.2):
    model = MagicMock()
    model.model_id = model_id
    model.actual_params = {'alpha': [alpha]}
    model.auc.return_value = auc
    model.logloss.return_value = logloss
    return model

@pytest.fixture
def mock_h2o():
    with patch('modules.model_selector.model_selector.h2o') as h2o_mock:
        yield h2o_mock

def sorted_grid(mock_h2o, models):
    mock_h2o.get_grid.return_value.get_grid.return_value.models = models
    return mock_h2o.get_grid.return_value

def test_best_model_is_first_of_sorted_grid(base_config, mock_logger, mock_h2o, tmp_path):
    models = [make_model("m_enet", 0.5, 0.98), make_model("m_ridge", 0.0, 0.97), make_model("m_lasso", 1.0, 0.96)]
    grid = sorted_grid(mock_h2o, models)

    best, leaderboard = ModelSelector(base_config, mock_logger).execute("glm_alpha_grid", "run_1")

    mock_h2o.get_grid.assert_called_once_with("glm_alpha_grid")
    grid.get_grid.assert_called_once_with(sort_by='auc', decreasing=True)
    assert best is models[0]
    assert list(leaderboard['rank']) == [1, 2, 3]
    assert list(leaderboard['alpha']) == [0.5, 0.0, 1.0]
    models[0].auc.assert_called_with(valid=True)

    out_dir = tmp_path / constants.BEST_MODEL_DIR
    assert list(pd.read_parquet(out_dir / constants.LEADERBOARD_FILE)['model_id']) == ["m_enet", "m_ridge", "m_lasso"]
    info = json.loads((out_dir / constants.BEST_MODEL_FILE).read_text())
    assert info['model_id'] == "m_enet"
    assert info['metric_value'] == 0.98
    assert info['decreasing'] is True
    assert info['n_models'] == 3
    assert info['metric_split'] == 'valid'

def test_error_metric_sorts_ascending(base_config, mock_logger, mock_h2o):
    base_config['selection']['sort_by'] = 'logloss'
    grid = sorted_grid(mock_h2o, [make_model("m", 0.5, 0.9, logloss=0.1)])

    ModelSelector(base_config, mock_logger).execute("glm_alpha_grid", "run_1")
    grid.get_grid.assert_called_once_with(sort_by='logloss', decreasing=False)

def test_explicit_direction_overrides(base_config, mock_logger, mock_h2o):
    base_config['selection']['decreasing'] = False
    grid = sorted_grid(mock_h2o, [make_model("m", 0.5, 0.9)])

    ModelSelector(base_config, mock_logger).execute("glm_alpha_grid", "run_1")
    grid.get_grid.assert_called_once_with(sort_by='auc', decreasing=False)

def test_single_model_grid(base_config, mock_logger, mock_h2o):
    only = make_model("m_only", 1.0, 0.91)
    sorted_grid(mock_h2o, [only])
    best, leaderboard = ModelSelector(base_config, mock_logger).execute("g", "run_1")
    assert best is only
    assert len(leaderboard) == 1

def test_empty_grid_raises(base_config, mock_logger, mock_h2o):
    sorted_grid(mock_h2o, [])
    with pytest.raises(ModelSelectionError, match="contains no models"):
        ModelSelector(base_config, mock_logger).execute("g", "run_1")

def test_cross_validated_grid_reports_xval_metrics(base_config, mock_logger, mock_h2o, tmp_path):
    base_config['glm'] = {'nfolds': 5}
    models = [make_model("m_lasso", 1.0, 0.95), make_model("m_ridge", 0.0, 0.93)]
    sorted_grid(mock_h2o, models)

    _, leaderboard = ModelSelector(base_config, mock_logger).execute("glm_alpha_grid", "run_1")

    for model in models:
        model.auc.assert_called_once_with(xval=True)
    assert list(leaderboard['auc']) == [0.95, 0.93]
    info = json.loads((tmp_path / constants.BEST_MODEL_DIR / constants.BEST_MODEL_FILE).read_text())
    assert info['metric_split'] == 'xval'
    assert info['metric_value'] == 0.95
