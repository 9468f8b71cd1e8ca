"""
Search Strategies Module
========================

Responsibility:
- Propose candidate hyperparameter configurations round by round.
- Decide which folds each round is evaluated on and when the search stops.
- Strategies: grid, Latin hypercube, racing, simulated annealing.
"""
import logging
from typing import Any, Dict, Mapping

from modules.model_factory.domains import Domain
from utils import constants
from utils.exceptions import ConfigurationError

from .base import SearchStrategy
from .grid import GridSearch
from .latin_hypercube import LatinHypercubeSearch, latin_hypercube
from .racing import RacingSearch
from .annealing import AnnealingSearch


def build_strategy(config: Dict[str, Any], params: Mapping[str, Domain],
                   logger: logging.Logger = None) -> SearchStrategy:
    """Create the strategy named by `search.strategy`, seeded from the search seed."""
    search = config.get('search', {})
    name = search.get('strategy', constants.GRID)
    seed = config.get('_internal_seeds', {}).get('search', search.get('seed'))

    if name == constants.GRID:
        return GridSearch(params, levels=search.get('grid_levels', 3), grid=search.get('grid'),
                          seed=seed, logger=logger)
    if name == constants.LATIN_HYPERCUBE:
        return LatinHypercubeSearch(params, size=search.get('lhs_size', 10), seed=seed, logger=logger)
    if name == constants.RACING:
        racing = search.get('racing', {})
        return RacingSearch(
            params,
            base=racing.get('base', constants.GRID),
            levels=search.get('grid_levels', 3),
            grid=search.get('grid'),
            size=search.get('lhs_size', 10),
            alpha=racing.get('alpha', 0.05),
            burn_in=racing.get('burn_in', 3),
            max_rounds=racing.get('max_rounds'),
            num_ties=racing.get('num_ties', 10),
            seed=seed,
            logger=logger
        )
    if name == constants.ANNEALING:
        annealing = search.get('annealing', {})
        return AnnealingSearch(
            params,
            iterations=annealing.get('iterations', 10),
            no_improve=annealing.get('no_improve', 10),
            restart=annealing.get('restart', 8),
            cooling_coef=annealing.get('cooling_coef', 0.02),
            radius=tuple(annealing.get('radius', (0.05, 0.15))),
            flip=annealing.get('flip', 0.75),
            initial=annealing.get('initial', 3),
            seed=seed,
            logger=logger
        )
    raise ConfigurationError(
        f"Unknown search strategy '{name}'. Available: {constants.SEARCH_STRATEGIES}",
        field='search.strategy'
    )


__all__ = [
    'SearchStrategy', 'GridSearch', 'LatinHypercubeSearch', 'latin_hypercube',
    'RacingSearch', 'AnnealingSearch', 'build_strategy'
]
