import logging
import pandas as pd
from typing import Any, Dict, List, Optional

import h2o
from h2o.estimators import H2OGeneralizedLinearEstimator
from h2o.grid.grid_search import H2OGridSearch
from sklearn.model_selection import ParameterGrid

from modules.base.base_engine import BaseEngine
from utils.error_handling import handle_engine_errors
from utils.exceptions import GridSearchError
from utils.file_io import save_dataframe
from utils.glm_metrics import first_value, model_metric, model_summary_row, parse_regularization, penalty_label
from utils import constants

class GridSearchEngine(BaseEngine):
    """
    Drives the H2O grid search over the GLM mixing parameter.

    One GLM is fitted per hyper_params combination (by default alpha in
    {0.0, 0.5, 1.0}: Ridge, Elastic Net, Lasso). Each fit runs the engine's own
    lambda search, so lambda is never part of the grid. Fitting, the
    regularization path and metrics all happen inside the cluster; this engine
    only formats the request and tabulates what comes back.
    """

    # Estimator arguments accepted from the `glm` config section
    GLM_PARAM_KEYS = (
        'family', 'link', 'lambda_search', 'nlambdas', 'lambda_min_ratio', 'standardize',
        'nfolds', 'fold_assignment', 'seed', 'solver', 'max_iterations', 'early_stopping',
        'missing_values_handling', 'balance_classes', 'keep_cross_validation_predictions',
    )

    def __init__(self, config: dict, logger: logging.Logger):
        super().__init__(config, logger)
        self.grid_config = config.get('grid', {})
        self.glm_config = config.get('glm', {})
        self.grid_id = self.grid_config['grid_id']
        self.hyper_params: Dict[str, List[Any]] = self.grid_config['hyper_params']
        self.max_models = config.get('resources', {}).get('max_grid_models', 100)
        self.summary_df: Optional[pd.DataFrame] = None

    def _get_engine_directory_name(self) -> str:
        return constants.GRID_SEARCH_DIR

    def build_estimator(self) -> H2OGeneralizedLinearEstimator:
        """GLM template for the grid. Grid hyper_params override these per model."""
        params = {
            k: v for k, v in self.glm_config.items()
            if k in self.GLM_PARAM_KEYS and v is not None and k not in self.hyper_params
        }
        params.setdefault('family', 'binomial')
        params.setdefault('lambda_search', True)
        self.logger.debug(f"GLM template parameters: {params}")
        return H2OGeneralizedLinearEstimator(**params)

    def grid_size(self) -> int:
        return len(ParameterGrid(self.hyper_params))

    @handle_engine_errors("Grid Search")
    def execute(self, train: h2o.H2OFrame, valid: h2o.H2OFrame, x: List[str], y: str,
                run_id: str) -> H2OGridSearch:
        """
        Train the grid on the cluster and persist a per-model summary.

        Args:
            train, valid: training and validation frames.
            x: predictor column names.
            y: response column name.
            run_id: Unique identifier for this execution.

        Returns:
            The trained H2OGridSearch.
        """
        n_models = self.grid_size()
        if n_models > self.max_models:
            raise GridSearchError(
                f"Grid of {n_models} models exceeds resources.max_grid_models ({self.max_models})."
            )

        self.logger.info(
            f"Starting grid search '{self.grid_id}': {n_models} model(s) over {self.hyper_params}"
        )

        grid = H2OGridSearch(
            model=self.build_estimator(),
            hyper_params=self.hyper_params,
            grid_id=self.grid_id,
            search_criteria=self.grid_config.get('search_criteria'),
        )
        grid.train(x=x, y=y, training_frame=train, validation_frame=valid)

        self._log_failures(grid)

        if not grid.models:
            raise GridSearchError(f"Grid '{self.grid_id}' finished without any successfully trained model.")

        self.summary_df = self.summarize(grid)
        save_dataframe(self.summary_df, self.output_dir / constants.GRID_SUMMARY_FILE,
                       excel_copy=self.excel_copy, index=False)

        self.logger.info(f"Grid search complete: {len(grid.models)} of {n_models} model(s) trained")
        self.logger.info(f"Grid summary:\n{self.summary_df.to_string(index=False)}")
        return grid

    def _log_failures(self, grid: H2OGridSearch) -> None:
        failed = getattr(grid, 'failed_params', None) or []
        details = getattr(grid, 'failure_details', None) or []
        for i, params in enumerate(failed):
            reason = details[i] if i < len(details) else "unknown reason"
            self.logger.warning(f"Grid model failed for {params}: {reason}")

    def summarize(self, grid: H2OGridSearch) -> pd.DataFrame:
        """One row per grid model: alpha, selected lambda, penalty and train/valid metrics."""
        rows = []
        for model in grid.models:
            actual = model.actual_params
            summary = model_summary_row(model)
            reg = parse_regularization(summary.get('regularization'))
            alpha = first_value(actual.get('alpha'))
            alpha = reg['alpha'] if alpha is None else float(alpha)

            row = {
                'model_id': model.model_id,
                'alpha': alpha,
                'lambda': reg['lambda'],
                'penalty': penalty_label(alpha, reg['lambda']),
                'regularization': reg['regularization'],
                'active_predictors': summary.get('number_of_active_predictors'),
            }
            for split in ('train', 'valid'):
                row[f'{split}_auc'] = model_metric(model, 'auc', split)
                row[f'{split}_logloss'] = model_metric(model, 'logloss', split)
            rows.append(row)

        return pd.DataFrame(rows)
