import json
import os
import re
import hashlib
import sys
import logging
import h2o
import jsonschema
import psutil  # Required for memory awareness
from datetime import datetime
from pathlib import Path
from typing import Dict, Any, Optional
from sklearn.model_selection import ParameterGrid

from utils.exceptions import ConfigurationError
from utils import constants
from utils.glm_metrics import ranking_split

class ConfigurationManager:
    """
    Manages system configuration loading, validation, and access.
    Acts as the single source of truth and safety guard for the pipeline.

    Validation stages:
    - Structural (JSON schema).
    - Logical (split ratios, class pair, alpha range, sort metric).
    - Resources (grid size, cluster memory vs physical RAM).
    """

    # Default Resource Limits (Safety Guardrails)
    DEFAULT_MAX_GRID_MODELS = 100  # Each grid model runs a full lambda search on the cluster

    _MEM_SIZE_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*([kKmMgGtT]?)[bB]?\s*$")
    _MEM_UNITS_MB = {'': 1.0 / (1024 * 1024), 'k': 1.0 / 1024, 'm': 1.0, 'g': 1024.0, 't': 1024.0 * 1024}

    def __init__(self, config_path: str = "config/config.json",
                 schema_path: str = "config/schema.json"):
        """
        Initialize the ConfigurationManager.

        Args:
            config_path (str): Path to the user configuration JSON.
            schema_path (str): Path to the JSON schema definition.
        """
        self.config_path = config_path
        self.schema_path = schema_path
        self.config: Dict[str, Any] = {}
        self.schema: Dict[str, Any] = {}
        self.run_id: Optional[str] = None
        self.logger = logging.getLogger("config_manager")

    def load_and_validate(self) -> Dict[str, Any]:
        """
        Main entry point. Loads config, validates schema/logic/resources,
        and propagates seeds.

        Returns:
            Dict[str, Any]: The fully validated and hydrated configuration.

        Raises:
            ConfigurationError: If any validation step fails.
        """
        self.config = self._load_json(self.config_path)
        self.schema = self._load_json(self.schema_path)

        self._validate_schema()
        self._validate_logic()
        self._validate_resources()
        self._propagate_seeds()

        return self.config

    def generate_run_id(self) -> str:
        """
        Generate or retrieve a unique run identifier based on timestamp.
        Used for directory naming and metadata.
        """
        if not self.run_id:
            # Format: YYYYMMDD_HHMMSS
            self.run_id = datetime.now().strftime("%Y%m%d_%H%M%S")
        return self.run_id

    def save_artifacts(self, output_dir: str) -> None:
        """
        Save configuration artifacts to the run directory.

        Saves:
        1. config_used.json: The exact config object in memory.
        2. config_hash.txt: SHA256 hash for versioning.
        3. run_metadata.json: Environment details (Python version, platform, h2o client).
        """
        config_dir = Path(output_dir) / constants.CONFIG_DIR
        config_dir.mkdir(parents=True, exist_ok=True)

        with open(config_dir / constants.CONFIG_USED_FILE, 'w') as f:
            json.dump(self.config, f, indent=2)

        config_str = json.dumps(self.config, sort_keys=True)
        config_hash = hashlib.sha256(config_str.encode()).hexdigest()

        with open(config_dir / constants.CONFIG_HASH_FILE, 'w') as f:
            f.write(config_hash)

        metadata = {
            'run_id': self.run_id,
            'start_time': datetime.now().isoformat(),
            'python_version': sys.version,
            'platform': sys.platform,
            'h2o_client_version': self._h2o_client_version(),
            'config_hash': config_hash,
            'working_directory': os.getcwd()
        }

        with open(config_dir / constants.RUN_METADATA_FILE, 'w') as f:
            json.dump(metadata, f, indent=2)

    @staticmethod
    def _h2o_client_version() -> str:
        return h2o.__version__

    def _load_json(self, path: str) -> Dict[str, Any]:
        """Safely load a JSON file."""
        if not os.path.exists(path):
            raise ConfigurationError(f"File not found: {path}")
        try:
            with open(path, 'r') as f:
                return json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON in {path}: {str(e)}")

    def _validate_schema(self) -> None:
        """Validate config structure against JSON schema."""
        try:
            jsonschema.validate(instance=self.config, schema=self.schema)
        except jsonschema.ValidationError as e:
            raise ConfigurationError(f"Schema validation failed: {e.message}")

    def _validate_logic(self) -> None:
        """Comprehensive logical validation."""
        # --- Data Section ---
        data = self.config.get('data', {})
        for key in ['file_path', 'response_column']:
            if not data.get(key):
                raise ConfigurationError(f"Data '{key}' must be specified and non-empty.")

        classes = data.get('classes', [])
        if len(classes) != 2 or len({str(c) for c in classes}) != 2:
            raise ConfigurationError(f"data.classes must hold exactly two distinct values, got {classes}")

        response = data['response_column']
        if response in data.get('ignored_columns', []):
            raise ConfigurationError(f"Response column '{response}' cannot be listed in ignored_columns.")

        # --- Splitting Section ---
        split = self.config.get('splitting', {})
        ratios = split.get('ratios', [])
        if len(ratios) != 2:
            raise ConfigurationError(f"splitting.ratios must hold [train, valid] fractions, got {ratios}")
        for ratio in ratios:
            if not (0.0 < ratio < 1.0):
                raise ConfigurationError(f"Split ratios must be between 0 and 1 (exclusive), got {ratio}")
        if sum(ratios) >= 1.0:
            raise ConfigurationError(
                f"Sum of split ratios ({sum(ratios)}) must be < 1.0 to leave room for the test split."
            )
        if split.get('seed', 42) < 0:
            raise ConfigurationError("Splitting seed must be non-negative.")

        # --- GLM Section ---
        glm = self.config.get('glm', {})
        nfolds = glm.get('nfolds', 0)
        if nfolds == 1:
            raise ConfigurationError("glm.nfolds must be 0 (disabled) or >= 2.")

        # --- Grid Section ---
        grid = self.config.get('grid', {})
        if not grid.get('grid_id'):
            raise ConfigurationError("grid.grid_id must be specified and non-empty.")
        alphas = grid.get('hyper_params', {}).get('alpha', [])
        if not alphas:
            raise ConfigurationError("grid.hyper_params.alpha cannot be empty.")
        for alpha in alphas:
            if not (0.0 <= alpha <= 1.0):
                raise ConfigurationError(f"alpha values must lie in [0, 1], got {alpha}")

        # --- Selection Section ---
        selection = self.config.get('selection', {})
        sort_by = str(selection.get('sort_by', '')).lower()
        if sort_by not in constants.SORT_METRICS:
            raise ConfigurationError(
                f"selection.sort_by '{sort_by}' is not supported. Choose one of {list(constants.SORT_METRICS)}."
            )
        ranked_on = ranking_split(nfolds)
        metric_split = selection.setdefault('metric_split', ranked_on)
        if metric_split != ranked_on:
            raise ConfigurationError(
                f"selection.metric_split '{metric_split}' does not match the split the grid is ranked on "
                f"('{ranked_on}' with glm.nfolds={nfolds}). Remove it or set it to '{ranked_on}'."
            )

        # --- Evaluation Section ---
        perf_split = self.config.get('evaluation', {}).get('performance_split', 'test')
        if perf_split not in constants.PERFORMANCE_SPLITS:
            raise ConfigurationError(
                f"evaluation.performance_split must be one of {list(constants.PERFORMANCE_SPLITS)}, got '{perf_split}'"
            )
        if perf_split == 'xval' and nfolds < 2:
            raise ConfigurationError("evaluation.performance_split 'xval' requires glm.nfolds >= 2.")

    def _validate_resources(self) -> None:
        """
        Validate against system resources.
        Counts the grid and compares requested cluster memory with physical RAM.
        """
        resources = self.config.get('resources', {})

        # 1. Grid Explosion Check
        hyper_params = self.config.get('grid', {}).get('hyper_params', {})
        try:
            total_models = len(ParameterGrid(hyper_params))
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid hyper_params grid: {str(e)}")

        max_models = resources.get('max_grid_models', self.DEFAULT_MAX_GRID_MODELS)
        if total_models > max_models:
            raise ConfigurationError(
                f"Grid Explosion Detected! Total models ({total_models}) exceeds "
                f"safety limit ({max_models}). Reduce hyper_params or increase 'resources.max_grid_models'."
            )
        logging.info(f"Grid size validated: {total_models} models (Limit: {max_models})")

        # 2. Cluster Memory Check
        mem_size = self.config.get('cluster', {}).get('max_mem_size')
        if mem_size:
            requested_mb = self._parse_mem_size_mb(mem_size)
            system_ram_mb = int(psutil.virtual_memory().total / (1024 * 1024))
            if requested_mb > system_ram_mb:
                logging.warning(
                    f"Configured cluster max_mem_size ({mem_size}) exceeds physical system RAM ({system_ram_mb}MB). "
                    "The JVM may fail to start."
                )

        if 'resources' not in self.config:
            self.config['resources'] = {}
        self.config['resources']['max_grid_models'] = max_models

    @classmethod
    def _parse_mem_size_mb(cls, value: str) -> float:
        """Convert an H2O/JVM memory size ('4G', '512m', '2048M') into megabytes."""
        match = cls._MEM_SIZE_RE.match(str(value))
        if not match:
            raise ConfigurationError(f"Unparseable cluster.max_mem_size '{value}'. Use forms like '4G' or '512m'.")
        amount, unit = match.groups()
        return float(amount) * cls._MEM_UNITS_MB[unit.lower()]

    def _propagate_seeds(self) -> None:
        """
        Propagate master seed to the split and the GLM estimator.
        Uses large offsets to avoid correlation between components.
        """
        master_seed = self.config['splitting']['seed']

        self.config['_internal_seeds'] = {
            'split': master_seed,
            'model': master_seed + 2000,
        }
        glm = self.config.setdefault('glm', {})
        glm.setdefault('seed', self.config['_internal_seeds']['model'])
        logging.debug(f"Seeds propagated from master ({master_seed}): {self.config['_internal_seeds']}")
