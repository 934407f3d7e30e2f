import pandas as pd
import numpy as np
import matplotlib
matplotlib.use('Agg')  # Headless rendering; plots are only written to disk
import matplotlib.pyplot as plt
import seaborn as sns
import logging
from pathlib import Path
from contextlib import contextmanager
from typing import Any, Callable, Dict, List, Optional

from modules.base.base_engine import BaseEngine
from utils.error_handling import handle_engine_errors
from utils import constants

class DiagnosticsEngine(BaseEngine):
    """
    Renders the pipeline's figures from the local extracts.

    - ROC curve of the selected model (FPR vs TPR, AUC in the legend).
    - Grid metric by alpha (one point per grid model).
    - Explained deviance along the lambda search path.
    """

    def __init__(self, config: dict, logger: logging.Logger):
        super().__init__(config, logger)
        self.diag_config = config.get('diagnostics', {})
        self.dpi = self.diag_config.get('dpi', 150)
        self.fmt = self.diag_config.get('save_format', 'png')
        self.sort_metric = str(config.get('selection', {}).get('sort_by', 'auc')).lower()

    def _get_engine_directory_name(self) -> str:
        return constants.DIAGNOSTICS_DIR

    @contextmanager
    def _plot_context(self):
        """
        Apply the engine's plot style and restore the global matplotlib/seaborn
        settings afterwards. Figures opened inside are closed on exit.
        """
        original_rcParams = plt.rcParams.copy()
        figs: List[Any] = []
        try:
            sns.set_theme(style="whitegrid")
            yield figs
        finally:
            plt.rcParams.update(original_rcParams)
            for fig in figs:
                plt.close(fig)

    def _save_fig(self, fig, filename: str, figs: list) -> Path:
        path = self.output_dir / f"{filename}.{self.fmt}"
        fig.savefig(path, dpi=self.dpi, bbox_inches='tight')
        figs.append(fig)
        return path

    def _run_plot(self, name: str, plot_func: Callable[[list], Path]) -> Optional[Path]:
        """Run one plot in its own context. A failing plot is logged, not raised."""
        try:
            with self._plot_context() as figs:
                return plot_func(figs)
        except Exception as e:
            self.logger.warning(f"Failed to generate {name}: {e}")
            return None

    @handle_engine_errors("Diagnostics")
    def execute(self, evaluation: Dict[str, Any], grid_summary: Optional[pd.DataFrame], run_id: str) -> List[str]:
        """
        Generate all applicable plots.

        Returns:
            List of written plot paths (as strings).
        """
        self.logger.info("Generating diagnostic plots...")
        split = evaluation.get('split', 'test')
        tasks: List[tuple] = []

        roc = evaluation.get('roc')
        if roc is not None and not roc.empty:
            tasks.append((
                'roc_curve',
                lambda figs: self.plot_roc(roc, evaluation.get('auc'), evaluation.get('model_id', ''), split, figs)
            ))

        if self.diag_config.get('plot_metric_by_alpha', True) and grid_summary is not None and not grid_summary.empty:
            tasks.append(('metric_by_alpha', lambda figs: self.plot_metric_by_alpha(grid_summary, figs)))

        path_df = evaluation.get('regularization_path')
        if self.diag_config.get('plot_regularization_path', True) and path_df is not None and not path_df.empty:
            tasks.append((
                'regularization_path',
                lambda figs: self.plot_regularization_path(path_df, evaluation.get('regularization', {}), figs)
            ))

        results = [self._run_plot(name, func) for name, func in tasks]
        written = [str(p) for p in results if p is not None]

        self.logger.info(f"Diagnostics complete: {len(written)} of {len(tasks)} plot(s) written to {self.output_dir}")
        return written

    def plot_roc(self, roc: pd.DataFrame, auc: Optional[float], label: str, split: str, figs: list) -> Path:
        """ROC curve: false-positive rate vs true-positive rate."""
        roc = roc.sort_values(['fpr', 'tpr'])
        fig, ax = plt.subplots(figsize=(7, 6))
        legend = f"{label} (AUC = {auc:.4f})" if auc is not None else label
        ax.plot(roc['fpr'], roc['tpr'], color='darkorange', linewidth=2, label=legend)
        ax.plot([0, 1], [0, 1], color='navy', linestyle='--', linewidth=1, label='Chance')
        ax.set_xlim(0.0, 1.0)
        ax.set_ylim(0.0, 1.05)
        ax.set_xlabel('False Positive Rate')
        ax.set_ylabel('True Positive Rate')
        ax.set_title(f'ROC Curve ({split})')
        ax.legend(loc='lower right')
        return self._save_fig(fig, f"roc_curve_{split}", figs)

    def plot_metric_by_alpha(self, grid_summary: pd.DataFrame, figs: list) -> Path:
        """Train vs validation metric for every alpha in the grid."""
        df = grid_summary.sort_values('alpha')
        metric = self.sort_metric if f'valid_{self.sort_metric}' in df.columns else 'auc'

        fig, ax = plt.subplots(figsize=(8, 5))
        for split, marker in (('train', 'o'), ('valid', 's')):
            col = f'{split}_{metric}'
            if col in df.columns and df[col].notna().any():
                ax.plot(df['alpha'], df[col], marker=marker, label=split.title())

        for _, row in df.iterrows():
            ax.annotate(row.get('penalty', ''), (row['alpha'], row.get(f'valid_{metric}', np.nan)),
                        textcoords='offset points', xytext=(0, 8), ha='center', fontsize=8)

        ax.set_xlabel('alpha (0 = Ridge, 1 = Lasso)')
        ax.set_ylabel(metric.upper())
        ax.set_title(f'{metric.upper()} by alpha')
        ax.legend()
        return self._save_fig(fig, "metric_by_alpha", figs)

    def plot_regularization_path(self, path_df: pd.DataFrame, regularization: Dict[str, Any], figs: list) -> Path:
        """Explained deviance vs log10(lambda); the selected lambda is marked."""
        df = path_df[path_df['lambda'] > 0].sort_values('lambda')
        log_lambda = np.log10(df['lambda'])

        fig, ax = plt.subplots(figsize=(8, 5))
        for col, label in (('explained_deviance_train', 'Train'), ('explained_deviance_valid', 'Valid')):
            if col in df.columns:
                ax.plot(log_lambda, df[col], label=label)

        selected = regularization.get('lambda')
        if selected:
            ax.axvline(np.log10(selected), color='grey', linestyle=':', label=f'selected lambda = {selected:.3g}')

        ax.set_xlabel('log10(lambda)')
        ax.set_ylabel('Explained deviance')
        ax.set_title(f"Regularization path (alpha = {regularization.get('alpha')})")
        ax.legend()
        return self._save_fig(fig, "regularization_path", figs)
