#!/usr/bin/env python
"""
GLM Regularization Grid Pipeline - Main Entry Point
Orchestrates an H2O grid search over the GLM elastic-net mixing parameter on a
two-class subset of a CSV file, and reports on the best model.
"""
import sys
import logging
import argparse
import traceback
from pathlib import Path
from typing import Any, Dict

# Add project root to Python path
sys.path.insert(0, str(Path(__file__).parent))

# Core Infrastructure
from modules.config_manager import ConfigurationManager
from modules.logging_config import LoggingConfigurator
from modules.cluster_manager import ClusterManager
from modules.data_manager import DataManager
from modules.split_engine import SplitEngine
from modules.grid_search_engine import GridSearchEngine
from modules.model_selector import ModelSelector
from modules.evaluation_engine import EvaluationEngine
from modules.diagnostics_engine import DiagnosticsEngine
from modules.reporting_engine import ReportingEngine
from modules.model_export import ModelExportEngine
from utils.exceptions import GLMGridException


def parse_arguments(argv=None):
    """
    Parse command-line arguments for configurable pipeline execution.

    Returns:
        argparse.Namespace: Parsed command-line arguments.
    """
    parser = argparse.ArgumentParser(
        description="H2O GLM Regularization Grid Pipeline - alpha grid search with lambda search",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )

    parser.add_argument(
        "--config",
        type=str,
        default="config/config.json",
        help="Path to the configuration JSON file"
    )

    parser.add_argument(
        "--schema",
        type=str,
        default="config/schema.json",
        help="Path to the configuration JSON schema"
    )

    parser.add_argument(
        "--run-id",
        type=str,
        default=None,
        help="Optional run identifier (defaults to timestamp if not provided)"
    )

    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose (DEBUG) logging"
    )

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Validate configuration and setup without starting the cluster"
    )

    parser.add_argument(
        "--keep-cluster",
        action="store_true",
        help="Leave the H2O cluster running when the pipeline ends"
    )

    return parser.parse_args(argv)


def setup_run_directory(config: dict, run_id: str, logger: logging.Logger = None) -> Path:
    """
    Create the run directory <base_results_dir>/<run_id> and point the config at it.

    Returns:
        Path: absolute run directory.
    """
    base_results_dir = config.get('outputs', {}).get('base_results_dir', 'results')
    run_dir = (Path(base_results_dir) / run_id).absolute()
    run_dir.mkdir(parents=True, exist_ok=True)
    config['outputs']['base_results_dir'] = str(run_dir)
    if logger:
        logger.info(f"Created run directory: {run_dir}")
    return run_dir


def _phase(logger: logging.Logger, title: str) -> None:
    logger.info("\n" + "=" * 60)
    logger.info(title)
    logger.info("=" * 60)


def run_pipeline(config: dict, logger: logging.Logger, run_id: str) -> Dict[str, Any]:
    """
    Run every phase against an already connected cluster.

    Returns:
        dict: summary of the run (best model, test AUC, artifact paths).
    """
    # ---------------------------------------------------------------
    # PHASE 1: DATA INGESTION & SPLITTING
    # ---------------------------------------------------------------
    _phase(logger, "PHASE 1: DATA INGESTION & SPLITTING")

    data_manager = DataManager(config, logger)
    frame = data_manager.execute(run_id)

    split_engine = SplitEngine(config, logger)
    train, valid, test = split_engine.execute(frame, run_id)
    frames = {'train': train, 'valid': valid, 'test': test}

    # ---------------------------------------------------------------
    # PHASE 2: GRID SEARCH & SELECTION
    # ---------------------------------------------------------------
    _phase(logger, "PHASE 2: GLM GRID SEARCH & MODEL SELECTION")

    grid_engine = GridSearchEngine(config, logger)
    x = data_manager.predictor_columns()
    y = config['data']['response_column']
    grid = grid_engine.execute(train, valid, x, y, run_id)

    selector = ModelSelector(config, logger)
    best_model, leaderboard = selector.execute(grid.grid_id, run_id)

    # ---------------------------------------------------------------
    # PHASE 3: EVALUATION & REPORTING
    # ---------------------------------------------------------------
    _phase(logger, "PHASE 3: EVALUATION & REPORTING")

    evaluation = EvaluationEngine(config, logger).execute(best_model, frames, run_id)
    plots = DiagnosticsEngine(config, logger).execute(evaluation, grid_engine.summary_df, run_id)

    report_path = ReportingEngine(config, logger).generate_report({
        'grid_id': grid.grid_id,
        'best_model_id': best_model.model_id,
        'sort_by': selector.metric,
        'split': evaluation['split'],
        'metrics': evaluation['metrics'],
        'regularization': evaluation['regularization'],
        'leaderboard': leaderboard,
        'confusion_matrix': evaluation['confusion_matrix'],
        'coefficients': evaluation['coefficients'],
        'plots': plots,
    }, run_id)

    model_path = ModelExportEngine(config, logger).execute(best_model, run_id)

    return {
        'run_id': run_id,
        'grid_id': grid.grid_id,
        'best_model_id': best_model.model_id,
        'alpha': evaluation['regularization'].get('alpha'),
        'lambda': evaluation['regularization'].get('lambda'),
        'penalty': evaluation['regularization'].get('penalty'),
        'split': evaluation['split'],
        'auc': evaluation['auc'],
        'plots': plots,
        'report_path': report_path,
        'model_path': model_path,
    }


def main(argv=None):
    """
    Main pipeline orchestration function.

    Handles configuration loading, logging setup, the cluster session and
    sequential execution of all pipeline phases.

    Returns:
        int: Exit code (0 for success, 1 for errors, 130 when interrupted)
    """
    logger = None

    try:
        args = parse_arguments(argv)

        print("\n" + "=" * 80)
        print("    H2O GLM REGULARIZATION GRID PIPELINE")
        print("=" * 80 + "\n")

        # ---------------------------------------------------------------
        # PHASE 0: INITIALIZATION & VALIDATION
        # ---------------------------------------------------------------
        config_manager = ConfigurationManager(config_path=args.config, schema_path=args.schema)
        config = config_manager.load_and_validate()

        # Override config settings from CLI if provided
        if args.verbose:
            config.setdefault('logging', {})['level'] = 'DEBUG'
        if args.keep_cluster:
            config['cluster']['shutdown_on_exit'] = False

        logging_configurator = LoggingConfigurator(config)
        logging_configurator.setup()
        logger = logging_configurator.get_logger('pipeline')

        logger.info("Pipeline initialization started")
        logger.info(f"Configuration loaded from: {args.config}")

        config_manager.run_id = args.run_id
        run_id = config_manager.generate_run_id()
        run_dir = setup_run_directory(config, run_id, logger)
        config_manager.save_artifacts(str(run_dir))

        logger.info(f"Run ID: {run_id}")
        logger.info(f"Output Directory: {run_dir}")

        if args.dry_run:
            logger.info("Dry run mode: validation complete. Exiting without starting the cluster.")
            print("\n[SUCCESS] Configuration validated successfully.")
            return 0

        cluster_manager = ClusterManager(config, logger)
        with cluster_manager.session():
            summary = run_pipeline(config, logger, run_id)

        # ---------------------------------------------------------------
        # COMPLETION
        # ---------------------------------------------------------------
        auc = summary['auc']
        logger.info("\n" + "-" * 60)
        logger.info("PIPELINE COMPLETED SUCCESSFULLY")
        logger.info(f"Run ID: {run_id}")
        logger.info(f"Best model: {summary['best_model_id']} ({summary['penalty']}, alpha={summary['alpha']})")
        logger.info(f"{summary['split'].title()} AUC: {auc:.4f}" if auc is not None else "AUC: n/a")
        logger.info(f"Report: {summary['report_path'] or 'disabled'}")
        logger.info(f"Output Directory: {run_dir}")
        logger.info("-" * 60 + "\n")

        print(f"\n[SUCCESS] Pipeline completed. Results saved to: {run_dir}")

        return 0

    except GLMGridException as e:
        # Known pipeline errors
        msg = f"Pipeline Error: {str(e)}"
        print(f"\n[ERROR] {msg}")
        if logger:
            logger.critical(msg, exc_info=True)
        else:
            traceback.print_exc()
        return 1

    except KeyboardInterrupt:
        print("\n[INTERRUPTED] Pipeline interrupted by user.")
        if logger:
            logger.warning("Pipeline interrupted by user (Ctrl+C)")
        return 130

    except Exception as e:
        # Unexpected errors
        msg = f"Unexpected Error: {str(e)}"
        print(f"\n[CRITICAL] {msg}")
        if logger:
            logger.critical(msg, exc_info=True)
        else:
            traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
