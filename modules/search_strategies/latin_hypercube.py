from typing import Any, Dict, List

import numpy as np

from modules.search_strategies.base import SearchStrategy


def latin_hypercube(n: int, d: int, rng: np.random.RandomState) -> np.ndarray:
    """
    n points in [0, 1)^d with exactly one point per 1/n bin on every axis.
    """
    points = np.empty((n, d))
    for j in range(d):
        points[:, j] = (rng.permutation(n) + rng.uniform(size=n)) / n
    return points


class LatinHypercubeSearch(SearchStrategy):
    """
    Space-filling design of `size` candidates, proposed in one round.

    Integer and discrete dimensions can map two bins onto the same value;
    duplicate configurations are dropped, so fewer than `size` candidates
    may be proposed.
    """
    name = "latin_hypercube"

    def __init__(self, params, size: int = 10, seed=None, logger=None):
        super().__init__(params, seed, logger)
        self.size = size
        self._proposed = False

    def configurations(self) -> List[Dict[str, Any]]:
        if not self.params:
            return [{}]
        names = list(self.params)
        points = latin_hypercube(self.size, len(names), self.rng)
        return [
            {name: self.params[name].from_unit(u) for name, u in zip(names, row)}
            for row in points
        ]

    def propose(self, history):
        if self._proposed:
            return []
        self._proposed = True
        candidates = self._make_candidates(history, self.configurations())
        if len(candidates) < self.size:
            self.logger.info(f"Latin hypercube: {self.size - len(candidates)} duplicate point(s) dropped.")
        self.logger.info(f"Latin hypercube: {len(candidates)} candidate(s).")
        return candidates

    def is_done(self, history):
        return self._proposed
