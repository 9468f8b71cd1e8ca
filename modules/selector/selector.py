import logging
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np

from modules.tuning_engine.results import Candidate, Leaderboard
from utils import constants
from utils.exceptions import ConfigurationError, EmptyLeaderboardError


def select_best(leaderboard: Leaderboard, n: Optional[int] = None) -> Union[Candidate, List[Candidate]]:
    """
    Best candidate, or the ordered top `n` when `n` is given.

    Raises:
        EmptyLeaderboardError: If no candidate was ranked.
    """
    if not len(leaderboard):
        raise EmptyLeaderboardError(
            f"No candidate has a summary ({len(leaderboard.failed)} failed on every fold)."
        )
    if n is None:
        return leaderboard.entries[0][0]
    return [candidate for candidate, _ in leaderboard.top(n)]


def select_by_one_std_err(leaderboard: Leaderboard, simplicity: Sequence[Tuple[str, bool]]) -> Candidate:
    """
    Simplest candidate whose mean is within one standard error of the best.

    `simplicity` lists (parameter, ascending) pairs in priority order, e.g.
    [("penalty", False)] prefers larger penalties. Remaining ties go to the
    better-ranked candidate.
    """
    best = select_best(leaderboard)
    best_summary = leaderboard.entries[0][1]
    metric = leaderboard.metric
    std_err = best_summary.std_err if np.isfinite(best_summary.std_err) else 0.0
    bound = best_summary.mean + metric.sign * std_err

    within = [
        (rank, candidate) for rank, (candidate, summary) in enumerate(leaderboard)
        if metric.sign * summary.mean <= metric.sign * bound
    ]
    for name, _ in simplicity:
        if name not in best.values:
            raise ConfigurationError(f"Simplicity parameter '{name}' is not tunable.", field='selection.simplicity')

    def simplicity_key(item):
        rank, candidate = item
        key = []
        for name, ascending in simplicity:
            value = candidate.values[name]
            key.append(value if ascending else _negate(value))
        return tuple(key) + (rank,)

    return min(within, key=simplicity_key)[1]


def _negate(value):
    try:
        return -value
    except TypeError as e:
        raise ConfigurationError(f"Cannot order non-numeric value {value!r} descending.",
                                 field='selection.simplicity') from e


class Selector:
    """Applies the configured selection rule (`selection.rule`)."""

    def __init__(self, config: dict, logger: logging.Logger):
        selection = config.get('selection', {})
        self.rule = selection.get('rule', constants.SELECT_BEST)
        self.simplicity = [tuple(item) for item in selection.get('simplicity', [])]
        self.logger = logger
        if self.rule not in constants.SELECTION_RULES:
            raise ConfigurationError(
                f"Unknown selection rule '{self.rule}'. Available: {constants.SELECTION_RULES}",
                field='selection.rule'
            )

    def select(self, leaderboard: Leaderboard) -> Candidate:
        if self.rule == constants.SELECT_ONE_STD_ERR:
            if not self.simplicity:
                raise ConfigurationError("one_std_err selection needs selection.simplicity.",
                                         field='selection.simplicity')
            candidate = select_by_one_std_err(leaderboard, self.simplicity)
        else:
            candidate = select_best(leaderboard)

        self.logger.info(f"Selected candidate {candidate.index} {candidate.values} (rule={self.rule}).")
        return candidate
