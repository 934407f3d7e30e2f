"""
SplitEngine for the H2O GLM Regularization Grid pipeline.

Partitions the prepared H2OFrame into training, validation and test frames.
The partitioning itself is done by the cluster (`split_frame`), which draws a
uniform random number per row, so split sizes only approximate the ratios.
"""
import logging
import pandas as pd
from typing import Dict, List, Tuple

import h2o

from modules.base.base_engine import BaseEngine
from utils.error_handling import handle_engine_errors
from utils.exceptions import DataValidationError
from utils.file_io import save_dataframe
from utils import constants

class SplitEngine(BaseEngine):
    """
    Splits the frame into Train/Valid/Test by the configured ratios.

    `splitting.ratios` holds the train and validation fractions; the test
    split receives the remainder. The seed comes from the propagated
    `_internal_seeds.split` so reruns reproduce the same partition.
    """

    def __init__(self, config: dict, logger: logging.Logger):
        super().__init__(config, logger)
        self.split_config = config.get('splitting', {})
        self.response = config.get('data', {}).get('response_column')

    def _get_engine_directory_name(self) -> str:
        return constants.SPLITS_DIR

    @handle_engine_errors("Data Splitting")
    def execute(self, frame: h2o.H2OFrame, run_id: str) -> Tuple[h2o.H2OFrame, h2o.H2OFrame, h2o.H2OFrame]:
        """
        Execute the splitting workflow.

        Returns:
            train, valid, test H2OFrames
        """
        self.logger.info("Starting Split Engine execution...")

        ratios = list(self.split_config['ratios'])
        seed = self.config.get('_internal_seeds', {}).get('split', self.split_config.get('seed'))

        kwargs = {'ratios': ratios, 'seed': seed}
        if self.split_config.get('destination_frames', False):
            kwargs['destination_frames'] = [f"{run_id}_{name}" for name in constants.SPLIT_NAMES]

        train, valid, test = frame.split_frame(**kwargs)
        splits = dict(zip(constants.SPLIT_NAMES, (train, valid, test)))

        for name, part in splits.items():
            if part.nrows == 0:
                raise DataValidationError(
                    f"Split '{name}' is empty (ratios={ratios}, rows={frame.nrows}). "
                    "Use more data or larger ratios."
                )

        self._generate_balance_report(splits, frame.nrows)

        self.logger.info(
            f"Splits created - Train: {train.nrows}, Valid: {valid.nrows}, Test: {test.nrows} (seed={seed})"
        )
        return train, valid, test

    def _class_counts(self, part: h2o.H2OFrame) -> Dict[str, int]:
        counts = part[self.response].table().as_data_frame()
        return {str(level): int(count) for level, count in zip(counts.iloc[:, 0], counts.iloc[:, 1])}

    def _generate_balance_report(self, splits: Dict[str, h2o.H2OFrame], total_rows: int) -> pd.DataFrame:
        """Save rows and per-class counts per split; warn when a split lacks a class."""
        levels = self._response_levels(splits['train'])
        report: List[dict] = []

        for name, part in splits.items():
            row = {
                'split': name,
                'rows': part.nrows,
                'fraction': round(part.nrows / total_rows, 4) if total_rows else 0.0,
            }
            counts = self._class_counts(part) if self.response else {}
            for level in levels:
                row[f'n_{level}'] = counts.get(level, 0)
                if counts.get(level, 0) == 0:
                    self.logger.warning(f"Split '{name}' has no rows of class '{level}'.")
            report.append(row)

        report_df = pd.DataFrame(report)
        save_dataframe(report_df, self.output_dir / "split_balance_report.parquet",
                       excel_copy=self.excel_copy, index=False)
        return report_df

    def _response_levels(self, part: h2o.H2OFrame) -> List[str]:
        if not self.response:
            return []
        return list(part[self.response].levels()[0])
