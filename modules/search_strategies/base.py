import abc
import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set

import numpy as np

from modules.evaluation_engine.metrics import Metric
from modules.model_factory.domains import Domain
from modules.tuning_engine.results import Candidate, TuningHistory, values_key


class SearchStrategy(abc.ABC):
    """
    Produces candidate configurations and decides when to stop.

    The tuning engine drives a strategy round by round:

        prepare(n_folds, metric)
        while not is_done(history):
            history <- propose(history)
            evaluate non-excluded candidates on assessment_folds(history)
            observe(history)

    Every round is fully evaluated before `observe` is called, so iterative
    strategies always see complete summaries.
    """
    name = "search"

    def __init__(self, params: Mapping[str, Domain], seed: Optional[int] = None,
                 logger: logging.Logger = None):
        self.params: Dict[str, Domain] = dict(params)
        self.seed = seed
        self.rng = np.random.RandomState(seed)
        self.logger = logger or logging.getLogger(__name__)
        self.n_folds: Optional[int] = None
        self.metric: Optional[Metric] = None

    def prepare(self, n_folds: int, metric: Metric) -> None:
        self.n_folds = n_folds
        self.metric = metric

    @abc.abstractmethod
    def propose(self, history: TuningHistory) -> List[Candidate]:
        """New candidates for the next round (may be empty)."""

    @abc.abstractmethod
    def is_done(self, history: TuningHistory) -> bool:
        pass

    def assessment_folds(self, history: TuningHistory) -> Optional[List[int]]:
        """Fold indices to evaluate this round; None means every fold."""
        return None

    def observe(self, history: TuningHistory) -> None:
        """Called once the round's evaluations are all recorded."""

    def excluded(self) -> Set[int]:
        """Candidates that must not be evaluated again (nor ranked)."""
        return set()

    def _make_candidates(self, history: TuningHistory, configurations: Iterable[Mapping[str, Any]]) -> List[Candidate]:
        """Wrap configurations as Candidates, skipping ones already seen."""
        candidates = []
        seen = set()
        for values in configurations:
            key = values_key(values)
            if key in seen or history.seen(values) is not None:
                continue
            seen.add(key)
            candidates.append(Candidate(history.next_index + len(candidates), values))
        return candidates

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(params={list(self.params)}, seed={self.seed})"
