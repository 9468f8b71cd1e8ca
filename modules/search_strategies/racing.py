from typing import Dict, List, Optional

import numpy as np

from modules.evaluation_engine.stat_tests import compare_to_leader
from modules.search_strategies.base import SearchStrategy
from modules.search_strategies.grid import GridSearch
from modules.search_strategies.latin_hypercube import LatinHypercubeSearch
from utils import constants
from utils.exceptions import ConfigurationError


class RacingSearch(SearchStrategy):
    """
    Racing with early elimination.

    Round 1 evaluates every base candidate on the first `burn_in` folds; each
    later round evaluates the survivors on one more fold. After each round
    every survivor is compared with the leader by a one-sided paired t-test
    on the folds both have scores for, and removed when p < alpha. When only
    two survivors are left for `num_ties` rounds the worse one is dropped.

    The race stops when one candidate survives (which is then evaluated on
    the remaining folds), when folds run out, or after `max_rounds`.
    """
    name = "racing"

    def __init__(self, params, base: str = constants.GRID, levels=3, grid=None, size: int = 10,
                 alpha: float = 0.05, burn_in: int = 3, max_rounds: Optional[int] = None,
                 num_ties: int = 10, seed=None, logger=None):
        super().__init__(params, seed, logger)
        if base == constants.GRID:
            self.base = GridSearch(params, levels=levels, grid=grid, seed=seed, logger=self.logger)
        elif base == constants.LATIN_HYPERCUBE:
            self.base = LatinHypercubeSearch(params, size=size, seed=seed, logger=self.logger)
        else:
            raise ConfigurationError(f"Racing base must be grid or latin_hypercube, got '{base}'.",
                                     field='search.racing.base')
        if burn_in < 2:
            raise ConfigurationError("Racing burn_in must be >= 2.", field='search.racing.burn_in')
        self.alpha = alpha
        self.burn_in = burn_in
        self.max_rounds = max_rounds
        self.num_ties = num_ties

        self.round = 0
        self.survivors: List[int] = []
        # candidate index -> round it was eliminated in
        self.eliminated: Dict[int, int] = {}
        self.failed_out: List[int] = []
        self._next_fold = 0
        self._tie_rounds = 0
        self._finishing = False
        self._done = False

    def prepare(self, n_folds, metric):
        super().prepare(n_folds, metric)
        if n_folds < self.burn_in:
            self.logger.warning(
                f"Racing burn_in ({self.burn_in}) exceeds the {n_folds} available folds; "
                f"using all folds in the first round."
            )
            self.burn_in = n_folds

    def propose(self, history):
        if self.round > 0:
            return []
        candidates = self.base.propose(history)
        self.survivors = [c.index for c in candidates]
        self.logger.info(f"Racing: {len(candidates)} candidate(s), burn-in on {self.burn_in} fold(s).")
        return candidates

    def assessment_folds(self, history):
        if self.round == 0:
            return list(range(self.burn_in))
        if self._finishing:
            return list(range(self._next_fold, self.n_folds))
        return [self._next_fold]

    def excluded(self):
        return set(self.eliminated) | set(self.failed_out)

    def observe(self, history):
        self.round += 1
        if self._finishing:
            self._done = True
            return
        self._next_fold = self.burn_in if self.round == 1 else self._next_fold + 1

        # Candidates without a single score cannot take part in the race
        for index in list(self.survivors):
            if history.summary(index).n == 0:
                self.survivors.remove(index)
                self.failed_out.append(index)

        leader = history.best(self.survivors)
        if leader is None:
            self.logger.warning("Racing: every candidate failed; stopping.")
            self._done = True
            return
        leader_index = leader[0].index
        self._eliminate_inferior(history, leader_index)

        if len(self.survivors) == 2:
            self._tie_rounds += 1
            if self._tie_rounds >= self.num_ties:
                loser = [i for i in self.survivors if i != leader_index][0]
                self._drop(loser, reason=f"tie-break after {self._tie_rounds} round(s)")
        else:
            self._tie_rounds = 0

        self.logger.info(
            f"Racing round {self.round}: {len(self.survivors)} survivor(s), "
            f"{len(self.eliminated)} eliminated, leader=candidate {leader_index}."
        )

        if len(self.survivors) == 1:
            if self._next_fold < self.n_folds:
                self._finishing = True
            else:
                self._done = True
        elif self._next_fold >= self.n_folds:
            self.logger.info("Racing: folds exhausted.")
            self._done = True
        elif self.max_rounds is not None and self.round >= self.max_rounds:
            self.logger.info(f"Racing: reached max_rounds={self.max_rounds}.")
            self._done = True

    def _eliminate_inferior(self, history, leader_index: int) -> None:
        leader_scores = history.scores(leader_index)
        for index in list(self.survivors):
            if index == leader_index:
                continue
            scores = history.scores(index)
            shared = sorted(set(scores) & set(leader_scores))
            result = compare_to_leader(
                np.array([leader_scores[f] for f in shared]),
                np.array([scores[f] for f in shared]),
                direction=self.metric.direction,
                alpha=self.alpha
            )
            if result['significant']:
                self._drop(index, reason=f"p={result['p_value']:.4f}")

    def _drop(self, index: int, reason: str) -> None:
        self.survivors.remove(index)
        self.eliminated[index] = self.round
        self.logger.debug(f"Racing: candidate {index} eliminated in round {self.round} ({reason}).")

    def is_done(self, history):
        return self._done
