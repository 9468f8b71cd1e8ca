#!/usr/bin/env python
"""
Recipe Tuner - Main Entry Point
Runs one resampled hyperparameter-tuning experiment end to end:
split -> resample -> tune -> select -> refit on train -> evaluate once on test.
"""
import os
import sys
import logging
import argparse
import traceback
import random
from pathlib import Path

import pandas as pd
import numpy as np

# Add project root to Python path
sys.path.insert(0, str(Path(__file__).parent))

# Core Infrastructure
from modules.config_manager import ConfigurationManager
from modules.logging_config import LoggingConfigurator
from modules.data_manager import DataManager
from modules.split_engine import SplitEngine
from modules.workflow import build_workflow
from modules.search_strategies import build_strategy
from modules.evaluation_engine import MetricRegistry
from modules.tuning_engine import TuningEngine, label_workflow, tune_per_label
from modules.selector import Selector
from modules.training_engine import TrainingEngine
from utils import constants
from utils.exceptions import TuningException


def parse_arguments(argv=None):
    """
    Parse command-line arguments for configurable pipeline execution.

    Returns:
        argparse.Namespace: Parsed command-line arguments.
    """
    parser = argparse.ArgumentParser(
        description="Recipe Tuner - resampled hyperparameter tuning",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    parser.add_argument(
        "--config",
        type=str,
        default="config/config.json",
        help="Path to the configuration JSON file"
    )
    parser.add_argument(
        "--data",
        type=str,
        default=None,
        help="Override data.file_path from the configuration"
    )
    parser.add_argument(
        "--run-id",
        type=str,
        default=None,
        help="Optional run identifier appended to the results directory"
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose (DEBUG) logging"
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Validate configuration and setup without running the pipeline"
    )
    return parser.parse_args(argv)


def setup_global_determinism(config: dict, logger: logging.Logger):
    """
    Seed the global random generators. Every engine also receives its own
    explicit seed, this only guards third-party code that reads global state.
    """
    seed = config['splitting']['seed']
    logger.info(f"Setting Global Deterministic Seed: {seed}")
    random.seed(seed)
    np.random.seed(seed)
    pd.options.mode.copy_on_write = True
    os.environ['PYTHONHASHSEED'] = str(seed)


def setup_run_directory(config: dict, run_id: str = None, logger: logging.Logger = None) -> Path:
    base_results_dir = config['outputs']['base_results_dir']
    run_dir = Path(f"{base_results_dir}_{run_id}" if run_id else base_results_dir).absolute()
    if config['outputs']['save_artifacts']:
        run_dir.mkdir(parents=True, exist_ok=True)
        if logger:
            logger.info(f"Run directory: {run_dir}")
    return run_dir


def run_experiment(config: dict, logger: logging.Logger) -> dict:
    """
    Execute the tuning experiment described by a validated configuration.

    Returns:
        dict: label -> LastFitResult (a single entry for single-outcome runs).
    """
    outcome = config['data']['outcome']
    labels = outcome if isinstance(outcome, list) else [outcome]

    # ---------------------------------------------------------------
    # PHASE 1: DATA INGESTION & SPLITTING
    # ---------------------------------------------------------------
    logger.info("=" * 60)
    logger.info("PHASE 1: DATA INGESTION & SPLITTING")
    logger.info("=" * 60)

    data_manager = DataManager(config, logger)
    dataset = data_manager.execute(labels[0])

    # The model mode depends on the outcome; check it before any split is written
    workflow = build_workflow(config, labels[0], dataset.mode, logger)

    split_engine = SplitEngine(config, logger)
    split, plan = split_engine.execute(dataset)

    # ---------------------------------------------------------------
    # PHASE 2: HYPERPARAMETER TUNING
    # ---------------------------------------------------------------
    logger.info("=" * 60)
    logger.info("PHASE 2: HYPERPARAMETER TUNING")
    logger.info("=" * 60)

    metric = MetricRegistry.get(config['metric']['name'] or constants.DEFAULT_METRICS[workflow.model.mode])
    tuning_engine = TuningEngine(config, logger)

    def strategy_factory(wf):
        return build_strategy(config, wf.tunable(), logger)

    if len(labels) > 1:
        logger.info(f"Binary relevance over {len(labels)} labels: {labels}")
        leaderboards = tune_per_label(tuning_engine, workflow, labels, plan, metric, strategy_factory)
    else:
        leaderboards = {labels[0]: tuning_engine.execute(workflow, plan, metric, strategy_factory(workflow))}

    # ---------------------------------------------------------------
    # PHASE 3: SELECTION, FINAL FIT & TEST EVALUATION
    # ---------------------------------------------------------------
    logger.info("=" * 60)
    logger.info("PHASE 3: SELECTION, FINAL FIT & TEST EVALUATION")
    logger.info("=" * 60)

    selector = Selector(config, logger)
    training_engine = TrainingEngine(config, logger)
    results = {}
    for label, leaderboard in leaderboards.items():
        candidate = selector.select(leaderboard)
        label_wf = workflow if len(labels) == 1 else label_workflow(workflow, label, labels)
        results[label] = training_engine.execute(
            label_wf, candidate, split, metric, plan, label=label if len(labels) > 1 else None
        )
    return results


def main(argv=None):
    """
    Main pipeline orchestration function.

    Returns:
        int: Exit code (0 for success, 1 for errors)
    """
    logger = None

    try:
        args = parse_arguments(argv)

        print("\n" + "=" * 80)
        print("    RECIPE TUNER - RESAMPLED HYPERPARAMETER TUNING")
        print("=" * 80 + "\n")

        # ---------------------------------------------------------------
        # PHASE 0: INITIALIZATION & VALIDATION
        # ---------------------------------------------------------------
        config_manager = ConfigurationManager(config_path=args.config)
        config = config_manager.load_and_validate()

        # Override config settings from CLI if provided
        if args.verbose:
            config['logging']['level'] = 'DEBUG'
        if args.data:
            config['data']['file_path'] = args.data

        logging_configurator = LoggingConfigurator(config)
        logging_configurator.setup()
        logger = logging_configurator.get_logger('pipeline')
        logger.info(f"Configuration loaded from: {args.config}")

        run_id = config_manager.generate_run_id() if args.run_id is None else args.run_id
        config_manager.run_id = run_id
        run_dir = setup_run_directory(config, args.run_id, logger)
        config['outputs']['base_results_dir'] = str(run_dir)
        if config['outputs']['save_artifacts']:
            config_manager.save_artifacts(str(run_dir))

        setup_global_determinism(config, logger)

        if args.dry_run:
            logger.info("Dry run mode: validation complete. Exiting without running pipeline.")
            print("\n[SUCCESS] Configuration validated successfully.")
            return 0

        results = run_experiment(config, logger)

        logger.info("-" * 60)
        logger.info("PIPELINE COMPLETED SUCCESSFULLY")
        for label, result in results.items():
            logger.info(f"{label}: test {result.metric} = {result.score:.5g}")
        logger.info("-" * 60)

        print(f"\n[SUCCESS] Pipeline completed. Run ID: {run_id}")
        return 0

    except TuningException as e:
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
        msg = f"Unexpected Error: {str(e)}"
        print(f"\n[CRITICAL] {msg}")
        if logger:
            logger.critical(msg, exc_info=True)
        else:
            traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
