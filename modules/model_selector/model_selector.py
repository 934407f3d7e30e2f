import logging
import pandas as pd
from typing import Any, List, Tuple

import h2o

from modules.base.base_engine import BaseEngine
from utils.error_handling import handle_engine_errors
from utils.exceptions import ModelSelectionError
from utils.file_io import save_dataframe, save_json
from utils.glm_metrics import first_value, model_metric, ranking_split, resolve_sort_order
from utils import constants

class ModelSelector(BaseEngine):
    """
    Picks the best model of a trained grid.

    The grid is fetched from the cluster by id and sorted there on one metric.
    H2O ranks on cross-validation metrics when nfolds >= 2 and on the
    validation frame otherwise; the leaderboard reports the same split.
    The first model of the sorted grid wins; ties keep the engine's ordering.
    """

    def __init__(self, config: dict, logger: logging.Logger):
        super().__init__(config, logger)
        selection = config.get('selection', {})
        self.metric = str(selection.get('sort_by', 'auc')).lower()
        self.decreasing = resolve_sort_order(self.metric, selection.get('decreasing'))
        self.metric_split = ranking_split(config.get('glm', {}).get('nfolds'))

    def _get_engine_directory_name(self) -> str:
        return constants.BEST_MODEL_DIR

    @handle_engine_errors("Model Selection")
    def execute(self, grid_id: str, run_id: str) -> Tuple[Any, pd.DataFrame]:
        """
        Sort the grid and return the top-ranked model.

        Returns:
            (best_model, leaderboard DataFrame)
        """
        order = "descending" if self.decreasing else "ascending"
        self.logger.info(f"Selecting best model of grid '{grid_id}' by {self.metric} ({order})...")

        grid = h2o.get_grid(grid_id)
        sorted_grid = grid.get_grid(sort_by=self.metric, decreasing=self.decreasing)
        models = list(sorted_grid.models)

        if not models:
            raise ModelSelectionError(f"Grid '{grid_id}' contains no models to select from.")

        best_model = models[0]
        leaderboard = self.build_leaderboard(models)
        save_dataframe(leaderboard, self.output_dir / constants.LEADERBOARD_FILE,
                       excel_copy=self.excel_copy, index=False)

        best_row = leaderboard.iloc[0]
        save_json({
            'run_id': run_id,
            'grid_id': grid_id,
            'model_id': best_model.model_id,
            'alpha': best_row['alpha'],
            'sort_by': self.metric,
            'decreasing': self.decreasing,
            'metric_split': self.metric_split,
            'metric_value': best_row[self.metric],
            'n_models': len(models),
        }, self.output_dir / constants.BEST_MODEL_FILE)

        self.logger.info(f"Leaderboard:\n{leaderboard.to_string(index=False)}")
        self.logger.info(
            f"Best model: {best_model.model_id} (alpha={best_row['alpha']}, "
            f"{self.metric_split} {self.metric}={best_row[self.metric]})"
        )
        return best_model, leaderboard

    def build_leaderboard(self, models: List[Any]) -> pd.DataFrame:
        rows = []
        for rank, model in enumerate(models, start=1):
            rows.append({
                'rank': rank,
                'model_id': model.model_id,
                'alpha': first_value(model.actual_params.get('alpha')),
                self.metric: model_metric(model, self.metric, self.metric_split),
            })
        return pd.DataFrame(rows)
