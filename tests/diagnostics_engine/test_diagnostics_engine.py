import pytest
import pandas as pd
from pathlib import Path
from unittest.mock import Mock

from modules.diagnostics_engine import DiagnosticsEngine
from utils import constants

@pytest.fixture
def mock_logger():
    return Mock()

@pytest.fixture
def base_config(tmp_path):
    return {
        'selection': {'sort_by': 'auc'},
        'diagnostics': {'dpi': 50, 'save_format': 'png',
                        'plot_metric_by_alpha': True, 'plot_regularization_path': True},
        'outputs': {'base_results_dir': str(tmp_path)}
    }

@pytest.fixture
def evaluation():
    return {
        'model_id': 'glm_alpha_grid_model_2',
        'split': 'test',
        'auc': 0.97,
        'roc': pd.DataFrame({'fpr': [0.0, 0.1, 0.4, 1.0], 'tpr': [0.0, 0.8, 0.95, 1.0]}),
        'regularization': {'alpha': 0.5, 'lambda': 0.002},
        'regularization_path': pd.DataFrame({
            'lambda': [0.3, 0.03, 0.002, 0.0],
            'explained_deviance_train': [0.0, 0.5, 0.8, 0.81],
            'explained_deviance_valid': [0.0, 0.45, 0.75, 0.74],
        }),
    }

@pytest.fixture
def grid_summary():
    return pd.DataFrame({
        'model_id': ['m_ridge', 'm_enet', 'm_lasso'],
        'alpha': [0.0, 0.5, 1.0],
        'penalty': [constants.PENALTY_RIDGE, constants.PENALTY_ELASTIC_NET, constants.PENALTY_LASSO],
        'train_auc': [0.99, 0.99, 0.98],
        'valid_auc': [0.97, 0.98, 0.96],
    })

def test_all_plots_written(base_config, mock_logger, evaluation, grid_summary, tmp_path):
    paths = DiagnosticsEngine(base_config, mock_logger).execute(evaluation, grid_summary, "run_1")

    out_dir = tmp_path / constants.DIAGNOSTICS_DIR
    expected = {out_dir / "roc_curve_test.png", out_dir / "metric_by_alpha.png", out_dir / "regularization_path.png"}
    assert {Path(p) for p in paths} == expected
    for path in expected:
        assert path.stat().st_size > 0

def test_disabled_plots_skipped(base_config, mock_logger, evaluation, grid_summary):
    base_config['diagnostics']['plot_metric_by_alpha'] = False
    base_config['diagnostics']['plot_regularization_path'] = False
    paths = DiagnosticsEngine(base_config, mock_logger).execute(evaluation, grid_summary, "run_1")
    assert [Path(p).name for p in paths] == ["roc_curve_test.png"]

def test_missing_inputs_produce_no_plots(base_config, mock_logger):
    evaluation = {'split': 'test', 'roc': pd.DataFrame(), 'regularization_path': pd.DataFrame()}
    assert DiagnosticsEngine(base_config, mock_logger).execute(evaluation, None, "run_1") == []

def test_failing_plot_is_not_fatal(base_config, mock_logger, evaluation, grid_summary):
    engine = DiagnosticsEngine(base_config, mock_logger)
    bad_summary = grid_summary.drop(columns=['alpha'])
    paths = engine.execute(evaluation, bad_summary, "run_1")

    assert "metric_by_alpha.png" not in [Path(p).name for p in paths]
    assert len(paths) == 2
    assert any("metric_by_alpha" in str(c) for c in mock_logger.warning.call_args_list)
