# utils/constants.py

# --- Top-Level Result Directories ---
# Sequentially numbered for proper sorting with clear, self-explanatory names

CONFIG_DIR = "01_RunConfiguration"          # Run config, metadata, seeds
SPLITS_DIR = "02_DataSplits"                # Train/test split and resample plan
TUNING_DIR = "03_HyperparameterTuning"      # Leaderboard and per-fold evaluations
FINAL_MODEL_DIR = "04_FinalModel"           # Refit workflow and test score

# Canonical list used when building the base results structure (in order).
TOP_LEVEL_RESULT_DIRS = [
    CONFIG_DIR,
    SPLITS_DIR,
    TUNING_DIR,
    FINAL_MODEL_DIR,
]

# --- File Names ---
CONFIG_USED_FILE = "config_used.json"
CONFIG_HASH_FILE = "config_hash.txt"
RUN_METADATA_FILE = "run_metadata.json"
SPLIT_FILE = "split_assignment.parquet"
FOLDS_FILE = "resample_plan.parquet"
LEADERBOARD_FILE = "leaderboard.parquet"
EVALUATIONS_FILE = "evaluations.parquet"
BEST_CONFIG_FILE = "best_configuration.json"
FINAL_MODEL_FILE = "final_workflow.pkl"
FINAL_METRICS_FILE = "test_metrics.json"

# --- Resampling Schemes ---
KFOLD = "kfold"
MONTE_CARLO = "monte_carlo"
RESAMPLE_SCHEMES = [KFOLD, MONTE_CARLO]

# --- Search Strategies ---
GRID = "grid"
LATIN_HYPERCUBE = "latin_hypercube"
RACING = "racing"
ANNEALING = "annealing"
SEARCH_STRATEGIES = [GRID, LATIN_HYPERCUBE, RACING, ANNEALING]

# --- Selection Rules ---
SELECT_BEST = "best"
SELECT_ONE_STD_ERR = "one_std_err"
SELECTION_RULES = [SELECT_BEST, SELECT_ONE_STD_ERR]

# --- Model Modes ---
REGRESSION = "regression"
CLASSIFICATION = "classification"

# --- Optimization Directions ---
MINIMIZE = "minimize"
MAXIMIZE = "maximize"

# --- Default metric per mode ---
DEFAULT_METRICS = {
    REGRESSION: "rmse",
    CLASSIFICATION: "accuracy",
}
