import logging
from datetime import datetime
from typing import Any, Dict

import h2o

from modules.base.base_engine import BaseEngine
from utils.error_handling import handle_engine_errors
from utils.file_io import save_json
from utils.glm_metrics import first_value
from utils import constants

class ModelExportEngine(BaseEngine):
    """
    Saves the selected model so it can be reloaded with h2o.load_model()
    (binary format, tied to the cluster version) and optionally as a MOJO
    for scoring without a cluster.
    """

    def __init__(self, config: dict, logger: logging.Logger):
        super().__init__(config, logger)
        outputs = config.get('outputs', {})
        self.save_model = outputs.get('save_model', True)
        self.export_mojo = outputs.get('export_mojo', False)

    def _get_engine_directory_name(self) -> str:
        return constants.MODEL_EXPORT_DIR

    @handle_engine_errors("Model Export")
    def execute(self, model, run_id: str) -> str:
        """
        Returns:
            Path of the saved binary model, or "" when saving is disabled.
        """
        if not self.save_model:
            self.logger.info("Model saving disabled in config.")
            return ""

        model_path = h2o.save_model(model, path=str(self.output_dir), force=True)
        self.logger.info(f"Saved model {model.model_id} to {model_path}")

        mojo_path = None
        if self.export_mojo:
            mojo_path = model.download_mojo(path=str(self.output_dir))
            self.logger.info(f"Exported MOJO to {mojo_path}")

        save_json(self.build_metadata(model, run_id, model_path, mojo_path),
                  self.output_dir / constants.MODEL_METADATA_FILE)
        return model_path

    def build_metadata(self, model, run_id: str, model_path: str, mojo_path=None) -> Dict[str, Any]:
        params = model.actual_params
        return {
            'run_id': run_id,
            'model_id': model.model_id,
            'algo': getattr(model, 'algo', 'glm'),
            'family': first_value(params.get('family')),
            'alpha': first_value(params.get('alpha')),
            'lambda': first_value(params.get('lambda')),
            'model_path': model_path,
            'mojo_path': mojo_path,
            'h2o_version': h2o.__version__,
            'exported_at': datetime.now().isoformat(),
        }
