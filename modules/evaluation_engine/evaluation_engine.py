import pandas as pd
import numpy as np
import logging
from typing import Dict, Any, Optional

import h2o
from h2o.estimators import H2OGeneralizedLinearEstimator
from h2o.exceptions import H2OError

from modules.base.base_engine import BaseEngine
from utils.error_handling import handle_engine_errors
from utils.exceptions import ReportingError
from utils.file_io import save_dataframe, save_json
from utils.glm_metrics import first_value, metric_scalar, model_summary_row, parse_regularization, penalty_label
from utils import constants

class EvaluationEngine(BaseEngine):
    """
    Pulls the reporting extracts for the selected GLM out of the cluster.

    Includes the confusion matrix, coefficients (raw and standardized), the
    regularization summary, ROC points and AUC for one data split, plus the
    lambda search path. Every number is computed by H2O; this engine only
    reshapes and persists it.
    """

    # Scalar metrics read off H2OBinomialModelMetrics
    PERFORMANCE_METRICS = ('auc', 'aucpr', 'logloss', 'mse', 'rmse', 'gini', 'mean_per_class_error')

    def __init__(self, config: dict, logger: logging.Logger):
        super().__init__(config, logger)
        eval_cfg = config.get('evaluation', {})
        self.performance_split = eval_cfg.get('performance_split', 'test')
        self.top_coefficients = eval_cfg.get('top_coefficients', 10)
        self.lambda_search = config.get('glm', {}).get('lambda_search', True)

    def _get_engine_directory_name(self) -> str:
        return constants.EVALUATION_DIR

    @handle_engine_errors("Evaluation")
    def execute(self, model, frames: Dict[str, h2o.H2OFrame], run_id: str) -> Dict[str, Any]:
        """
        Compute reporting extracts and save evaluation artifacts.

        Parameters:
            model: the selected H2O GLM.
            frames: {'train': ..., 'valid': ..., 'test': ...}
            run_id: Run identifier.

        Returns:
            dict with metrics, auc, confusion_matrix, coefficients,
            regularization, roc and regularization_path.
        """
        split = self.performance_split
        self.logger.info(f"Starting Evaluation of {model.model_id} on the {split} split...")

        perf = self.performance(model, split, frames)
        metrics = self.performance_metrics(perf)
        confusion = self.confusion_matrix(perf)
        coefficients = self.coefficients(model)
        regularization = self.regularization_summary(model)
        roc = self.roc_points(perf)
        path = self.regularization_path(model) if self.lambda_search else pd.DataFrame()

        save_json({'model_id': model.model_id, 'split': split, **metrics},
                  self.output_dir / f"metrics_{split}.json")
        save_json(regularization, self.output_dir / "regularization_summary.json")
        save_dataframe(confusion, self.output_dir / f"confusion_matrix_{split}.parquet",
                       excel_copy=self.excel_copy, index=False)
        save_dataframe(coefficients, self.output_dir / "coefficients.parquet",
                       excel_copy=self.excel_copy, index=False)
        save_dataframe(roc, self.output_dir / f"roc_{split}.parquet", excel_copy=self.excel_copy, index=False)
        if not path.empty:
            save_dataframe(path, self.output_dir / "regularization_path.parquet",
                           excel_copy=self.excel_copy, index=False)

        self._log_text_report(split, metrics, confusion, coefficients, regularization)

        return {
            'model_id': model.model_id,
            'split': split,
            'metrics': metrics,
            'auc': metrics.get('auc'),
            'confusion_matrix': confusion,
            'coefficients': coefficients,
            'regularization': regularization,
            'roc': roc,
            'regularization_path': path,
        }

    def performance(self, model, split: str, frames: Dict[str, h2o.H2OFrame]):
        """Ask the cluster for model metrics on one split."""
        if split == 'test':
            if frames.get('test') is None:
                raise ReportingError("Test performance requested but no test frame was provided.")
            return model.model_performance(test_data=frames['test'])
        if split not in ('train', 'valid', 'xval'):
            raise ReportingError(f"Unknown performance split '{split}'")

        perf = model.model_performance(**{split: True})
        if perf is None:
            raise ReportingError(f"Model {model.model_id} has no {split} metrics.")
        return perf

    def performance_metrics(self, perf) -> Dict[str, Optional[float]]:
        metrics = {}
        for name in self.PERFORMANCE_METRICS:
            metrics[name] = metric_scalar(getattr(perf, name)())
        return metrics

    def confusion_matrix(self, perf) -> pd.DataFrame:
        """Confusion matrix at the engine's max-F1 threshold."""
        cm = perf.confusion_matrix()
        df = cm.table.as_data_frame()
        # H2O leaves the row-label column unnamed
        return df.rename(columns={df.columns[0]: 'actual'}) if len(df.columns) else df

    def coefficients(self, model) -> pd.DataFrame:
        """Raw and standardized coefficients, largest standardized magnitude first."""
        raw = model.coef()
        standardized = model.coef_norm()
        df = pd.DataFrame({
            'name': list(raw.keys()),
            'coefficient': [float(v) for v in raw.values()],
        })
        df['standardized_coefficient'] = df['name'].map(standardized).astype(float)
        order = np.argsort(-df['standardized_coefficient'].abs().to_numpy(), kind='stable')
        return df.iloc[order].reset_index(drop=True)

    def regularization_summary(self, model) -> Dict[str, Any]:
        """Selected alpha/lambda of the model as reported by its summary table."""
        summary = model_summary_row(model)
        reg = parse_regularization(summary.get('regularization'))
        alpha = first_value(model.actual_params.get('alpha'))
        if alpha is not None:
            reg['alpha'] = float(alpha)
        reg['penalty'] = penalty_label(reg['alpha'], reg['lambda'])
        reg['lambda_search'] = summary.get('lambda_search')
        reg['number_of_active_predictors'] = summary.get('number_of_active_predictors')
        reg['number_of_predictors_total'] = summary.get('number_of_predictors_total')
        reg['model_id'] = model.model_id
        return reg

    def roc_points(self, perf) -> pd.DataFrame:
        return pd.DataFrame({'fpr': list(perf.fprs), 'tpr': list(perf.tprs)})

    def regularization_path(self, model) -> pd.DataFrame:
        """Explained deviance along the lambda search path."""
        try:
            path = H2OGeneralizedLinearEstimator.getGLMRegularizationPath(model)
        except (H2OError, KeyError, ValueError) as e:
            self.logger.warning(f"Regularization path unavailable for {model.model_id}: {e}")
            return pd.DataFrame()

        lambdas = list(path.get('lambdas') or [])
        if not lambdas:
            return pd.DataFrame()
        df = pd.DataFrame({'lambda': lambdas})
        for key in ('explained_deviance_train', 'explained_deviance_valid'):
            values = path.get(key)
            if values is not None and len(values) == len(lambdas):
                df[key] = values
        return df

    def _log_text_report(self, split: str, metrics: Dict[str, Any], confusion: pd.DataFrame,
                         coefficients: pd.DataFrame, regularization: Dict[str, Any]) -> None:
        self.logger.info(f"Confusion matrix ({split}):\n{confusion.to_string(index=False)}")
        top = coefficients.head(self.top_coefficients)
        self.logger.info(f"Top {len(top)} coefficients:\n{top.to_string(index=False)}")
        self.logger.info(
            f"Regularization: {regularization['regularization']} "
            f"[{regularization['penalty']}, alpha={regularization['alpha']}, lambda={regularization['lambda']}]"
        )
        auc = metrics.get('auc')
        auc_text = f"{auc:.4f}" if auc is not None else "n/a"
        self.logger.info(f"Evaluation complete. {split} AUC: {auc_text}")
