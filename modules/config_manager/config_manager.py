import copy
import json
import os
import hashlib
import sys
import logging
import jsonschema
import psutil  # Required for memory awareness
from datetime import datetime
from pathlib import Path
from typing import Dict, Any, Optional

from modules.config_manager.schema import DEFAULTS, DEFAULT_SCHEMA
from modules.evaluation_engine.metrics import MetricRegistry
from modules.model_factory import DiscreteDomain, ModelFactory, domain_from_config
from modules.recipe import build_step
from utils.exceptions import ConfigurationError
from utils.file_io import save_json
from utils import constants


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Merge `override` into `base`; nested dicts merge, everything else replaces."""
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
    return base


class ConfigurationManager:
    """
    Manages system configuration loading, validation, and access.
    Acts as the single source of truth and safety guard for the pipeline.

    Validation order:
    - Defaults merged under the user configuration.
    - Structural validation (jsonschema).
    - Logical validation (value ranges), failing with the offending field.
    - Workflow validation (recipe steps, model family, tuning domains and
      the search and selection entries that name tunable parameters).
    - Resource validation (candidate count, memory-bounded worker count).
    - Seed propagation.
    """

    # Default Resource Limits (Safety Guardrails)
    DEFAULT_MAX_HPO_CONFIGS = 1000  # Prevent accidental combinatoric explosions

    def __init__(self, config_path: str = "config/config.json",
                 schema_path: Optional[str] = None):
        """
        Initialize the ConfigurationManager.

        Args:
            config_path (str): Path to the user configuration JSON.
            schema_path (str): Optional JSON schema; the built-in schema is used otherwise.
        """
        self.config_path = config_path
        self.schema_path = schema_path
        self.config: Dict[str, Any] = {}
        self.schema: Dict[str, Any] = {}
        self.run_id: Optional[str] = None
        self.logger = logging.getLogger("config_manager")

    def load_and_validate(self) -> Dict[str, Any]:
        """
        Main entry point. Loads config, applies defaults, validates
        schema/logic/resources, and propagates seeds.

        Raises:
            ConfigurationError: If any validation step fails.
        """
        return self.validate_config(self._load_json(self.config_path))

    def validate_config(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """Validate an in-memory configuration dict (same steps as `load_and_validate`)."""
        self.config = _deep_merge(copy.deepcopy(DEFAULTS), copy.deepcopy(config))
        self.schema = self._load_json(self.schema_path) if self.schema_path else DEFAULT_SCHEMA

        self._validate_schema()
        self._validate_logic()
        self._validate_workflow()
        self._validate_resources()
        self._propagate_seeds()
        return self.config

    def generate_run_id(self) -> str:
        """
        Generate or retrieve a unique run identifier based on timestamp.
        """
        if not self.run_id:
            # Format: YYYYMMDD_HHMMSS
            self.run_id = datetime.now().strftime("%Y%m%d_%H%M%S")
        return self.run_id

    def save_artifacts(self, output_dir: str) -> None:
        """
        Save configuration artifacts to the run directory for full reproducibility.

        Saves:
        1. config_used.json: The exact config object in memory.
        2. config_hash.txt: SHA256 hash for versioning.
        3. run_metadata.json: Environment details (Python version, Platform, etc.).
        """
        config_dir = Path(output_dir) / constants.CONFIG_DIR
        config_dir.mkdir(parents=True, exist_ok=True)

        save_json(self.config, config_dir / constants.CONFIG_USED_FILE)

        config_str = json.dumps(self.config, sort_keys=True, default=str)
        config_hash = hashlib.sha256(config_str.encode()).hexdigest()
        with open(config_dir / constants.CONFIG_HASH_FILE, 'w') as f:
            f.write(config_hash)

        metadata = {
            'run_id': self.run_id,
            'start_time': datetime.now().isoformat(),
            'python_version': sys.version,
            'platform': sys.platform,
            'config_hash': config_hash,
            'working_directory': os.getcwd()
        }
        save_json(metadata, config_dir / constants.RUN_METADATA_FILE)

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
            field = ".".join(str(p) for p in e.absolute_path) or None
            raise ConfigurationError(f"Schema validation failed at '{field}': {e.message}", field=field)

    @staticmethod
    def _require(condition: bool, field: str, message: str) -> None:
        if not condition:
            raise ConfigurationError(f"{field}: {message}", field=field)

    def _validate_logic(self) -> None:
        """Comprehensive logical validation."""
        req = self._require

        # --- Splitting Section ---
        split = self.config['splitting']
        req(0.0 < split['train_fraction'] < 1.0, 'splitting.train_fraction',
            f"must be between 0 and 1 (exclusive), got {split['train_fraction']}")
        req(split['seed'] >= 0, 'splitting.seed', "must be non-negative")
        req(split['strata_breaks'] >= 1, 'splitting.strata_breaks', f"must be >= 1, got {split['strata_breaks']}")
        req(0.0 <= split['strata_pool'] < 0.5, 'splitting.strata_pool',
            f"must be in [0, 0.5), got {split['strata_pool']}")
        req(split['strata_depth'] >= 1, 'splitting.strata_depth', f"must be >= 1, got {split['strata_depth']}")

        # --- Resampling Section ---
        resampling = self.config['resampling']
        req(resampling['scheme'] in constants.RESAMPLE_SCHEMES, 'resampling.scheme',
            f"must be one of {constants.RESAMPLE_SCHEMES}, got '{resampling['scheme']}'")
        req(resampling['folds'] >= 2, 'resampling.folds', f"must be >= 2, got {resampling['folds']}")
        req(resampling['repeats'] >= 1, 'resampling.repeats', f"must be >= 1, got {resampling['repeats']}")
        req(resampling['times'] >= 1, 'resampling.times', f"must be >= 1, got {resampling['times']}")
        req(0.0 < resampling['proportion'] < 1.0, 'resampling.proportion',
            f"must be between 0 and 1 (exclusive), got {resampling['proportion']}")

        # --- Search Section ---
        search = self.config['search']
        req(search['strategy'] in constants.SEARCH_STRATEGIES, 'search.strategy',
            f"must be one of {constants.SEARCH_STRATEGIES}, got '{search['strategy']}'")
        levels = search['grid_levels']
        level_values = levels.values() if isinstance(levels, dict) else [levels]
        req(all(v >= 1 for v in level_values), 'search.grid_levels', "must be >= 1")
        req(search['lhs_size'] >= 1, 'search.lhs_size', f"must be >= 1, got {search['lhs_size']}")

        racing = search['racing']
        req(0.0 < racing['alpha'] < 1.0, 'search.racing.alpha', f"must be in (0, 1), got {racing['alpha']}")
        req(racing['burn_in'] >= 2, 'search.racing.burn_in', f"must be >= 2, got {racing['burn_in']}")
        req(racing['max_rounds'] is None or racing['max_rounds'] >= 1, 'search.racing.max_rounds',
            f"must be >= 1, got {racing['max_rounds']}")
        req(racing['num_ties'] >= 1, 'search.racing.num_ties', f"must be >= 1, got {racing['num_ties']}")
        req(racing['base'] in (constants.GRID, constants.LATIN_HYPERCUBE), 'search.racing.base',
            f"must be grid or latin_hypercube, got '{racing['base']}'")

        annealing = search['annealing']
        for key in ('iterations', 'no_improve', 'restart', 'initial'):
            req(annealing[key] >= 1, f'search.annealing.{key}', f"must be >= 1, got {annealing[key]}")
        req(annealing['cooling_coef'] > 0, 'search.annealing.cooling_coef',
            f"must be > 0, got {annealing['cooling_coef']}")
        r_min, r_max = annealing['radius']
        req(0 < r_min <= r_max < 1, 'search.annealing.radius',
            f"must satisfy 0 < min <= max < 1, got [{r_min}, {r_max}]")
        req(0.0 <= annealing['flip'] <= 1.0, 'search.annealing.flip', f"must be in [0, 1], got {annealing['flip']}")

        # --- Metric / Selection ---
        metric_name = self.config['metric']['name']
        req(metric_name is None or metric_name in MetricRegistry.available(), 'metric.name',
            f"unknown metric '{metric_name}'. Available: {MetricRegistry.available()}")
        selection = self.config['selection']
        req(selection['rule'] in constants.SELECTION_RULES, 'selection.rule',
            f"must be one of {constants.SELECTION_RULES}, got '{selection['rule']}'")
        if selection['rule'] == constants.SELECT_ONE_STD_ERR:
            req(bool(selection['simplicity']), 'selection.simplicity',
                "must list (parameter, ascending) pairs for the one_std_err rule")

        # Execution validation
        execution = self.config['execution']
        n_jobs = execution['n_jobs']
        req(n_jobs == -1 or n_jobs >= 1, 'execution.n_jobs',
            f"must be -1 (all cores) or a positive integer, got {n_jobs}")
        req(execution['backend'] in ('loky', 'threading', 'multiprocessing'), 'execution.backend',
            f"must be loky, threading or multiprocessing, got '{execution['backend']}'")

        resources = self.config['resources']
        req(resources['max_hpo_configs'] >= 1, 'resources.max_hpo_configs', "must be >= 1")
        req(resources['worker_memory_mb'] >= 1, 'resources.worker_memory_mb',
            f"must be >= 1, got {resources['worker_memory_mb']}")
        if 'max_memory_mb' in resources:
            req(resources['max_memory_mb'] >= 1, 'resources.max_memory_mb',
                f"must be >= 1, got {resources['max_memory_mb']}")

    def _validate_workflow(self) -> None:
        """
        Build the recipe steps, model family and tuning domains once, so a bad
        workflow fails here and not after data loading or a tuning run.
        """
        req = self._require
        model = self.config['workflow']['model']

        for step in self.config['workflow']['recipe']['steps']:
            build_step(step)

        adapter = ModelFactory.create(model['family'])
        mode = model.get('mode')
        if mode is not None and adapter.modes:
            req(mode in adapter.modes, 'workflow.model.mode',
                f"family '{model['family']}' supports {list(adapter.modes)}, got '{mode}'")

        tunable = {
            name: domain_from_config(name, value['tune'])
            for name, value in model['params'].items()
            if isinstance(value, dict) and 'tune' in value
        }

        for name, ascending in self.config['selection']['simplicity']:
            req(name in tunable, 'selection.simplicity',
                f"'{name}' is not a tunable parameter. Tunable: {sorted(tunable)}")
            if not ascending and isinstance(tunable[name], DiscreteDomain):
                req(all(isinstance(v, (int, float)) for v in tunable[name].values), 'selection.simplicity',
                    f"'{name}' has non-numeric values and cannot be ordered descending")

        grid = self.config['search']['grid']
        for entry in grid or []:
            req(set(entry) == set(tunable), 'search.grid',
                f"entry {entry} must set exactly the tunable parameters {sorted(tunable)}")
            for name, value in entry.items():
                req(tunable[name].contains(value), 'search.grid',
                    f"value {value!r} is outside the domain of '{name}': {tunable[name]}")

    def _estimated_candidates(self) -> int:
        """Upper bound on the number of candidates the configured search proposes."""
        search = self.config['search']
        strategy = search['strategy']
        if strategy == constants.ANNEALING:
            return search['annealing']['initial'] + search['annealing']['iterations']
        if strategy == constants.LATIN_HYPERCUBE or (
                strategy == constants.RACING and search['racing']['base'] == constants.LATIN_HYPERCUBE):
            return search['lhs_size']
        if search.get('grid') is not None:
            return len(search['grid'])

        total = 1
        levels = search['grid_levels']
        for name, value in self.config['workflow']['model']['params'].items():
            if not (isinstance(value, dict) and 'tune' in value):
                continue
            domain = value['tune']
            k = levels.get(name, 3) if isinstance(levels, dict) else levels
            if domain.get('type') == 'discrete':
                k = len(domain.get('values', []))
            elif domain.get('type') == 'integer' and 'range' in domain:
                k = min(k, int(domain['range'][1]) - int(domain['range'][0]) + 1)
            total *= max(k, 1)
        return total

    def _validate_resources(self) -> None:
        """
        Validate against system resources.
        Estimates the candidate count and ensures it fits within safe limits to prevent crashes.
        """
        resources = self.config['resources']

        # 1. Candidate Explosion Check
        total_configs = self._estimated_candidates()
        max_configs = resources.get('max_hpo_configs', self.DEFAULT_MAX_HPO_CONFIGS)
        if total_configs > max_configs:
            raise ConfigurationError(
                f"HPO Grid Explosion Detected! Total configurations ({total_configs}) exceeds "
                f"safety limit ({max_configs}). Reduce the search space or increase 'resources.max_hpo_configs'.",
                field='resources.max_hpo_configs'
            )
        self.logger.info(f"Search size validated: up to {total_configs} candidate(s) (Limit: {max_configs})")

        # 2. Memory Limits Check
        system_ram_mb = int(psutil.virtual_memory().total / (1024 * 1024))
        # Default safety buffer: 80% of system RAM
        safe_ram_limit = int(system_ram_mb * 0.8)
        config_max_ram = resources.get('max_memory_mb', safe_ram_limit)
        if config_max_ram > system_ram_mb:
            self.logger.warning(
                f"Configured max_memory_mb ({config_max_ram}MB) exceeds physical system RAM ({system_ram_mb}MB). "
                "This may lead to instability."
            )
        resources['max_memory_mb'] = config_max_ram

        # 3. Worker Cap: each worker holds its own copy of the data and fitted models
        execution = self.config['execution']
        requested = execution['n_jobs'] if execution['n_jobs'] != -1 else (os.cpu_count() or 1)
        affordable = max(1, config_max_ram // resources['worker_memory_mb'])
        if requested > affordable:
            self.logger.warning(
                f"Reducing execution.n_jobs from {execution['n_jobs']} to {affordable}: "
                f"{affordable} worker(s) x {resources['worker_memory_mb']}MB fit in {config_max_ram}MB."
            )
            execution['n_jobs'] = affordable

    def _propagate_seeds(self) -> None:
        """
        Propagate master seed to internal components to ensure full pipeline reproducibility.
        Uses large, non-overlapping offsets to avoid correlation between components.
        """
        master_seed = self.config['splitting']['seed']

        self.config['_internal_seeds'] = {
            'split': master_seed,
            'cv': master_seed + 1000,
            'model': master_seed + 2000,
            'search': master_seed + 3000,
        }
        self.logger.debug(f"Seeds propagated from master ({master_seed}): {self.config['_internal_seeds']}")
