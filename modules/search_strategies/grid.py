from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from sklearn.model_selection import ParameterGrid

from modules.search_strategies.base import SearchStrategy
from utils.exceptions import ConfigurationError


class GridSearch(SearchStrategy):
    """
    Full Cartesian product of per-dimension levels, proposed in one round.

    `levels` is either one count for every dimension or a mapping of
    parameter name to count. An explicit `grid` (list of configurations)
    takes precedence over generated levels.
    """
    name = "grid"

    def __init__(self, params, levels: Union[int, Mapping[str, int]] = 3,
                 grid: Optional[Sequence[Mapping[str, Any]]] = None, seed=None, logger=None):
        super().__init__(params, seed, logger)
        self.levels = levels
        self.grid = [dict(g) for g in grid] if grid is not None else None
        self._proposed = False

    def _levels_for(self, name: str) -> int:
        if isinstance(self.levels, Mapping):
            return int(self.levels.get(name, 3))
        return int(self.levels)

    def configurations(self) -> List[Dict[str, Any]]:
        if self.grid is not None:
            return self._validated_grid()
        param_grid = {name: domain.levels(self._levels_for(name)) for name, domain in self.params.items()}
        return list(ParameterGrid(param_grid))

    def _validated_grid(self) -> List[Dict[str, Any]]:
        for config in self.grid:
            if set(config) != set(self.params):
                raise ConfigurationError(
                    f"Grid entry {config} must set exactly the tunable parameters {sorted(self.params)}.",
                    field='search.grid'
                )
            for name, value in config.items():
                self.params[name].validate(name, value)
        return self.grid

    def propose(self, history):
        if self._proposed:
            return []
        self._proposed = True
        candidates = self._make_candidates(history, self.configurations())
        self.logger.info(f"Grid search: {len(candidates)} candidate(s).")
        return candidates

    def is_done(self, history):
        return self._proposed
