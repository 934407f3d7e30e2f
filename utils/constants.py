# utils/constants.py

# --- Top-Level Result Directories ---
# Sequentially numbered in pipeline order so the run directory sorts naturally

CONFIG_DIR = "01_RunConfiguration"          # Run config, metadata, seeds
DATA_INGESTION_DIR = "02_DataIngestion"     # Data profile, class distribution
SPLITS_DIR = "03_DataSplits"                # Train/valid/test balance report
GRID_SEARCH_DIR = "04_GridSearch"           # Grid summary (one row per alpha)
BEST_MODEL_DIR = "05_BestModel"             # Leaderboard and selected model
EVALUATION_DIR = "06_Evaluation"            # Confusion matrix, coefficients, ROC points
DIAGNOSTICS_DIR = "07_DiagnosticPlots"      # ROC curve, metric by alpha, regularization path
REPORTING_DIR = "08_FinalReports"           # PDF report
MODEL_EXPORT_DIR = "09_ModelExport"         # Saved H2O binary model / MOJO

# --- File Names ---
CONFIG_USED_FILE = "config_used.json"
CONFIG_HASH_FILE = "config_hash.txt"
RUN_METADATA_FILE = "run_metadata.json"
GRID_SUMMARY_FILE = "grid_summary.parquet"
LEADERBOARD_FILE = "leaderboard.parquet"
BEST_MODEL_FILE = "best_model.json"
MODEL_METADATA_FILE = "model_metadata.json"

# --- Data Splits ---
SPLIT_NAMES = ("train", "valid", "test")
PERFORMANCE_SPLITS = ("train", "valid", "test", "xval")

# --- Grid Sort Metrics ---
# Scalar metrics exposed by the H2O model API that get_grid() can sort on.
HIGHER_IS_BETTER_METRICS = ("auc", "aucpr", "r2")
LOWER_IS_BETTER_METRICS = ("logloss", "mean_per_class_error", "rmse", "mse")
SORT_METRICS = HIGHER_IS_BETTER_METRICS + LOWER_IS_BETTER_METRICS

# --- Regularization Labels ---
PENALTY_LASSO = "Lasso (L1)"
PENALTY_RIDGE = "Ridge (L2)"
PENALTY_ELASTIC_NET = "Elastic Net"
PENALTY_NONE = "None"
