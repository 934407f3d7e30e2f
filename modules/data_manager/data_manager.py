import logging
import pandas as pd
from pathlib import Path
from typing import List, Optional

import h2o

from utils.exceptions import DataValidationError
from utils.file_io import save_dataframe
from utils.error_handling import handle_engine_errors
from utils import constants

class DataManager:
    """
    Manages ingestion of the raw CSV into an H2OFrame and prepares the
    binary-classification response.

    Steps:
    - Path validation before anything is sent to the cluster.
    - Column presence checks (response, categoricals, ignored columns).
    - Row filter down to the two configured classes.
    - Response factor rebuilt so only the two classes remain as levels,
      with the first configured class as the reference level.
    """

    REMOTE_SCHEMES = ('http://', 'https://', 's3://', 's3a://', 's3n://', 'gs://', 'hdfs://')

    def __init__(self, config: dict, logger: logging.Logger):
        self.config = config
        self.logger = logger
        self.data_config = config['data']
        self.response = self.data_config['response_column']
        self.classes = list(self.data_config['classes'])
        self.categorical_columns: List[str] = self.data_config.get('categorical_columns', [])
        self.ignored_columns: List[str] = self.data_config.get('ignored_columns', [])
        self.frame: Optional[h2o.H2OFrame] = None
        self.base_dir = Path(self.config.get('outputs', {}).get('base_results_dir', 'results'))

    @handle_engine_errors("Data Ingestion")
    def execute(self, run_id: str) -> h2o.H2OFrame:
        """
        Execute the complete ingestion workflow.

        Args:
            run_id: Unique identifier for the run.

        Returns:
            H2OFrame: filtered frame with a two-level factor response.
        """
        self.logger.info("Starting Data Manager execution...")

        output_dir = self.base_dir / constants.DATA_INGESTION_DIR
        output_dir.mkdir(parents=True, exist_ok=True)

        self.load_data()
        self.validate_columns()
        self.filter_classes()
        self.declare_response_levels()
        self.convert_categoricals()
        self.generate_reports(output_dir)

        self.logger.info(f"Data ready: {self.frame.nrows} rows, {len(self.predictor_columns())} predictors")
        return self.frame

    def resolve_path(self) -> str:
        """Resolve data.file_path. Remote URIs are handed to H2O untouched."""
        file_path_str = str(self.data_config['file_path'])
        if file_path_str.lower().startswith(self.REMOTE_SCHEMES):
            return file_path_str

        file_path = Path(file_path_str).expanduser()
        if not file_path.is_absolute():
            file_path = Path.cwd() / file_path
        file_path = file_path.resolve()

        if not file_path.exists():
            raise DataValidationError(f"Data file not found: {file_path}")
        if file_path.is_dir():
            raise DataValidationError(f"Data path is a directory, expected a CSV file: {file_path}")
        return str(file_path)

    def load_data(self) -> h2o.H2OFrame:
        """Import the CSV into the cluster as an H2OFrame."""
        path = self.resolve_path()
        kwargs = {}
        if self.data_config.get('destination_frame'):
            kwargs['destination_frame'] = self.data_config['destination_frame']

        self.logger.info(f"Importing {path} into H2O...")
        self.frame = h2o.import_file(path, **kwargs)

        if self.frame.nrows == 0:
            raise DataValidationError(f"Imported frame is empty: {path}")

        self.logger.info(f"Imported frame: {self.frame.nrows} rows x {self.frame.ncols} columns")
        return self.frame

    def validate_columns(self) -> None:
        """All referenced columns must exist in the imported frame."""
        columns = set(self.frame.columns)
        required = [self.response] + list(self.categorical_columns) + list(self.ignored_columns)
        missing = [c for c in required if c not in columns]
        if missing:
            raise DataValidationError(
                f"Missing columns in data: {missing}. Available columns: {self.frame.columns}"
            )

    def filter_classes(self) -> h2o.H2OFrame:
        """Keep only rows whose response is one of the two configured classes."""
        y = self.response
        total = self.frame.nrows

        mask = self.frame[y].isin(self.classes)
        filtered = self.frame[mask, :]

        if filtered.nrows == 0:
            raise DataValidationError(
                f"No rows left after filtering '{y}' to classes {self.classes}. "
                f"Check data.classes against the values in the file."
            )

        self.logger.info(f"Filtered '{y}' to {self.classes}: kept {filtered.nrows} of {total} rows")
        self.frame = filtered
        return self.frame

    def declare_response_levels(self) -> List[str]:
        """
        Turn the response into a two-level factor.

        Filtering keeps the original domain, so the column goes through
        character and back to drop unused levels. The first configured class
        becomes the reference level; H2O treats the second as positive.
        """
        y = self.response
        negative, positive = (str(c) for c in self.classes)

        self.frame[y] = self.frame[y].ascharacter().asfactor()
        levels = self.frame[y].levels()[0]

        if len(levels) != 2:
            raise DataValidationError(
                f"Response '{y}' must have exactly 2 levels after filtering, found {len(levels)}: {levels}"
            )
        if negative not in levels or positive not in levels:
            raise DataValidationError(
                f"Response levels {levels} do not match configured classes {[negative, positive]}"
            )

        self.frame[y] = self.frame[y].relevel(negative)
        self.logger.info(f"Response '{y}' levels: '{negative}' (reference), '{positive}' (positive)")
        return [negative, positive]

    def convert_categoricals(self) -> None:
        for col in self.categorical_columns:
            self.frame[col] = self.frame[col].asfactor()
        if self.categorical_columns:
            self.logger.info(f"Converted {len(self.categorical_columns)} column(s) to factors: {self.categorical_columns}")

    def predictor_columns(self) -> List[str]:
        """All columns except the response and ignored columns."""
        excluded = {self.response, *self.ignored_columns}
        return [c for c in self.frame.columns if c not in excluded]

    def generate_reports(self, output_dir: Path) -> None:
        """Save the column profile and class distribution. Failures are not fatal."""
        excel_copy = self.config.get('outputs', {}).get('save_excel_copy', False)
        try:
            types = self.frame.types
            profile = pd.DataFrame({
                'column': list(types.keys()),
                'h2o_type': list(types.values()),
            })
            profile['role'] = profile['column'].map(
                lambda c: 'response' if c == self.response
                else 'ignored' if c in self.ignored_columns
                else 'predictor'
            )
            save_dataframe(profile, output_dir / "data_profile.parquet", excel_copy=excel_copy)

            counts = self.frame[self.response].table().as_data_frame()
            save_dataframe(counts, output_dir / "class_distribution.parquet", excel_copy=excel_copy)
            self.logger.info(f"Class distribution:\n{counts.to_string(index=False)}")
        except Exception as e:
            self.logger.warning(f"Failed to save data reports: {e}")
