import logging
from typing import Any, Dict

from modules.model_factory import ModelFactory, ModelSpec, domain_from_config
from modules.recipe import Recipe, build_step
from modules.workflow.workflow import Workflow
from utils.exceptions import ConfigurationError


def build_workflow(config: Dict[str, Any], outcome: str, mode: str,
                   logger: logging.Logger = None) -> Workflow:
    """
    Build a Workflow from the `workflow` config section.

    Model parameters are either plain values (fixed) or objects of the form
    {"tune": {<domain>}} (tunable). The model seed is passed to the adapter as
    `random_state` unless `engine_args` sets one explicitly.
    """
    section = config.get('workflow', {})
    recipe_cfg = section.get('recipe', {})
    model_cfg = section.get('model', {})

    steps = [build_step(spec) for spec in recipe_cfg.get('steps', [])]
    recipe = Recipe(outcome, steps)

    family = model_cfg.get('family')
    if not family:
        raise ConfigurationError("workflow.model.family is required.", field='workflow.model.family')
    # Fail fast on unknown families
    adapter = ModelFactory.create(family)

    params = {}
    for name, value in model_cfg.get('params', {}).items():
        if isinstance(value, dict) and 'tune' in value:
            params[name] = domain_from_config(name, value['tune'])
        else:
            params[name] = value

    engine_args = dict(model_cfg.get('engine_args', {}))
    model_seed = config.get('_internal_seeds', {}).get('model')
    if model_seed is not None:
        engine_args.setdefault('random_state', model_seed)

    spec = ModelSpec(family, params, model_cfg.get('mode', mode), engine_args)
    if adapter.modes and spec.mode not in adapter.modes:
        raise ConfigurationError(
            f"Model family '{family}' does not support mode '{spec.mode}'. Supported: {list(adapter.modes)}",
            field='workflow.model.mode'
        )
    if logger:
        logger.info(
            f"Workflow: {len(steps)} recipe step(s) -> {family} ({spec.mode}), "
            f"tunable={list(spec.tunable())}"
        )
    return Workflow(recipe, spec)
