"""
Tuning results: candidates, per-fold evaluations, summaries and the
leaderboard.
"""
import math
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple

import numpy as np
import pandas as pd

from modules.evaluation_engine.metrics import Metric
from utils.cache import config_fingerprint


@dataclass(frozen=True)
class Candidate:
    """One concrete assignment of the tunable hyperparameters.

    `index` is the construction order and the final tie-break key.
    """
    index: int
    values: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, 'values', dict(self.values))

    @property
    def key(self) -> Tuple:
        return values_key(self.values)

    def label(self) -> str:
        return f"Candidate{self.index:03d}"


def values_key(values: Mapping[str, Any]) -> Tuple:
    return tuple(sorted(values.items()))


@dataclass(frozen=True)
class Evaluation:
    """Score (or failure) of one candidate on one fold."""
    candidate_index: int
    fold_index: int
    fold_id: str
    score: float = float('nan')
    error: Optional[str] = None
    step: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.error is not None


@dataclass(frozen=True)
class Summary:
    metric: str
    mean: float
    std_err: float
    n: int
    n_failed: int = 0

    @classmethod
    def from_evaluations(cls, metric: str, evaluations: Iterable[Evaluation]) -> "Summary":
        evaluations = list(evaluations)
        scores = np.array([e.score for e in evaluations if not e.failed], dtype=float)
        n_failed = sum(1 for e in evaluations if e.failed)
        n = int(scores.size)
        mean = float(scores.mean()) if n else float('nan')
        std_err = float(scores.std(ddof=1) / math.sqrt(n)) if n > 1 else float('nan')
        return cls(metric, mean, std_err, n, n_failed)


class TuningHistory:
    """
    Append-only record of candidates and (candidate, fold) evaluations.

    Writes are lock-protected. Evaluations are keyed by (candidate, fold), so
    summaries never depend on the order results arrive in.
    """

    def __init__(self, metric: Metric):
        self.metric = metric
        self._lock = threading.Lock()
        self._candidates: Dict[int, Candidate] = {}
        self._by_key: Dict[Tuple, int] = {}
        self._evaluations: Dict[Tuple[int, int], Evaluation] = {}
        self.rounds = 0

    # --- writes ---

    def add_candidates(self, candidates: Iterable[Candidate]) -> None:
        with self._lock:
            for candidate in candidates:
                if candidate.index in self._candidates:
                    raise ValueError(f"Candidate index {candidate.index} already recorded.")
                self._candidates[candidate.index] = candidate
                self._by_key.setdefault(candidate.key, candidate.index)

    def record(self, evaluation: Evaluation) -> None:
        key = (evaluation.candidate_index, evaluation.fold_index)
        with self._lock:
            if key in self._evaluations:
                raise ValueError(f"Evaluation for candidate {key[0]} on fold {key[1]} already recorded.")
            self._evaluations[key] = evaluation

    # --- reads ---

    @property
    def next_index(self) -> int:
        return len(self._candidates)

    @property
    def candidates(self) -> List[Candidate]:
        return [self._candidates[i] for i in sorted(self._candidates)]

    def candidate(self, index: int) -> Candidate:
        return self._candidates[index]

    def seen(self, values: Mapping[str, Any]) -> Optional[Candidate]:
        index = self._by_key.get(values_key(values))
        return self._candidates[index] if index is not None else None

    def has(self, candidate_index: int, fold_index: int) -> bool:
        return (candidate_index, fold_index) in self._evaluations

    def evaluations(self, candidate_index: int = None) -> List[Evaluation]:
        items = sorted(self._evaluations.items())
        return [e for (c, _), e in items if candidate_index is None or c == candidate_index]

    def scores(self, candidate_index: int) -> Dict[int, float]:
        """Successful scores keyed by fold index."""
        return {e.fold_index: e.score for e in self.evaluations(candidate_index) if not e.failed}

    def summary(self, candidate_index: int) -> Summary:
        return Summary.from_evaluations(self.metric.name, self.evaluations(candidate_index))

    def summaries(self) -> Dict[int, Summary]:
        return {c.index: self.summary(c.index) for c in self.candidates}

    def best(self, among: Iterable[int] = None) -> Optional[Tuple[Candidate, Summary]]:
        """Best scored candidate, ties broken by candidate index."""
        indices = sorted(among) if among is not None else sorted(self._candidates)
        scored = [(i, self.summary(i)) for i in indices]
        scored = [(i, s) for i, s in scored if s.n > 0]
        if not scored:
            return None
        index, summary = min(scored, key=lambda item: (self.metric.sign * item[1].mean, item[0]))
        return self._candidates[index], summary

    def to_frame(self) -> pd.DataFrame:
        rows = []
        for e in self.evaluations():
            rows.append({
                'candidate': e.candidate_index,
                'fold_index': e.fold_index,
                'fold_id': e.fold_id,
                'metric': self.metric.name,
                'score': e.score,
                'error': e.error,
                'step': e.step,
                **self._candidates[e.candidate_index].values,
            })
        return pd.DataFrame(rows)


class Leaderboard:
    """
    Ranked (Candidate, Summary) pairs.

    Ordered by direction-adjusted mean, then candidate index. Candidates with
    no successful fold are kept in `failed`; candidates removed by racing are
    kept in `eliminated`. Neither is ranked.
    """

    def __init__(self, metric: Metric, entries: Iterable[Tuple[Candidate, Summary]],
                 failed: Iterable[Tuple[Candidate, Summary]] = (),
                 eliminated: Iterable[Tuple[Candidate, Summary]] = (),
                 cancelled: bool = False):
        self.metric = metric
        self.entries: Tuple[Tuple[Candidate, Summary], ...] = tuple(
            sorted(entries, key=lambda e: (metric.sign * e[1].mean, e[0].index))
        )
        self.failed = tuple(sorted(failed, key=lambda e: e[0].index))
        self.eliminated = tuple(sorted(eliminated, key=lambda e: e[0].index))
        self.cancelled = cancelled

    @classmethod
    def from_history(cls, history: TuningHistory, eliminated: Iterable[int] = (),
                     cancelled: bool = False) -> "Leaderboard":
        eliminated = set(eliminated)
        ranked, failed, dropped = [], [], []
        for candidate in history.candidates:
            summary = history.summary(candidate.index)
            if summary.n == 0:
                failed.append((candidate, summary))
            elif candidate.index in eliminated:
                dropped.append((candidate, summary))
            else:
                ranked.append((candidate, summary))
        return cls(history.metric, ranked, failed, dropped, cancelled)

    @property
    def candidates(self) -> List[Candidate]:
        return [c for c, _ in self.entries]

    def top(self, n: int) -> List[Tuple[Candidate, Summary]]:
        return list(self.entries[:n])

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[Tuple[Candidate, Summary]]:
        return iter(self.entries)

    def __getitem__(self, item):
        return self.entries[item]

    def to_frame(self) -> pd.DataFrame:
        rows = []
        sections = [('ranked', self.entries), ('eliminated', self.eliminated), ('failed', self.failed)]
        for status, entries in sections:
            for rank, (candidate, summary) in enumerate(entries, start=1):
                rows.append({
                    'rank': rank if status == 'ranked' else None,
                    'status': status,
                    'candidate': candidate.index,
                    'config_id': config_fingerprint(candidate.values),
                    **candidate.values,
                    'metric': summary.metric,
                    'mean': summary.mean,
                    'std_err': summary.std_err,
                    'n': summary.n,
                    'n_failed': summary.n_failed,
                })
        return pd.DataFrame(rows)

    def __repr__(self) -> str:
        return (f"Leaderboard(metric={self.metric.name}, ranked={len(self.entries)}, "
                f"eliminated={len(self.eliminated)}, failed={len(self.failed)}, cancelled={self.cancelled})")
