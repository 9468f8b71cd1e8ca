import math

import numpy as np
import pytest

from modules.evaluation_engine import MetricRegistry
from modules.tuning_engine import Candidate, Evaluation, Leaderboard, Summary, TuningHistory


@pytest.fixture
def rmse():
    return MetricRegistry.get('rmse')


def _history(metric, scores):
    """scores: {candidate_index: [fold scores, None for a failure]}"""
    history = TuningHistory(metric)
    history.add_candidates([Candidate(i, {'p': float(i)}) for i in sorted(scores)])
    for i, fold_scores in scores.items():
        for f, score in enumerate(fold_scores):
            if score is None:
                history.record(Evaluation(i, f, f"Fold{f + 1:02d}", error="boom", step='model'))
            else:
                history.record(Evaluation(i, f, f"Fold{f + 1:02d}", score=score))
    return history


def test_summary_statistics():
    evaluations = [Evaluation(0, f, str(f), score=s) for f, s in enumerate([1.0, 2.0, 3.0])]
    evaluations.append(Evaluation(0, 3, '3', error='failed'))
    summary = Summary.from_evaluations('rmse', evaluations)
    assert summary.mean == pytest.approx(2.0)
    assert summary.std_err == pytest.approx(1.0 / math.sqrt(3))
    assert (summary.n, summary.n_failed) == (3, 1)

    single = Summary.from_evaluations('rmse', evaluations[:1])
    assert single.n == 1 and math.isnan(single.std_err)


def test_summary_is_independent_of_arrival_order(rmse):
    evaluations = [Evaluation(0, f, str(f), score=float(s)) for f, s in enumerate([4, 1, 3, 2])]
    forward, backward = TuningHistory(rmse), TuningHistory(rmse)
    for h in (forward, backward):
        h.add_candidates([Candidate(0, {'p': 1})])
    for e in evaluations:
        forward.record(e)
    for e in reversed(evaluations):
        backward.record(e)
    assert forward.summary(0) == backward.summary(0)
    assert [e.fold_index for e in backward.evaluations(0)] == [0, 1, 2, 3]


def test_duplicates_rejected(rmse):
    history = _history(rmse, {0: [1.0]})
    with pytest.raises(ValueError):
        history.add_candidates([Candidate(0, {'p': 9.0})])
    with pytest.raises(ValueError):
        history.record(Evaluation(0, 0, 'Fold01', score=2.0))


def test_history_lookup(rmse):
    history = _history(rmse, {0: [1.0, None], 1: [0.5, 0.7]})
    assert history.next_index == 2
    assert history.seen({'p': 1.0}).index == 1
    assert history.seen({'p': 7.0}) is None
    assert history.has(0, 1) and not history.has(1, 5)
    assert history.scores(0) == {0: 1.0}
    assert history.best()[0].index == 1
    assert history.best(among=[0])[0].index == 0
    assert len(history.to_frame()) == 4


def test_leaderboard_total_order(rmse):
    history = _history(rmse, {0: [2.0, 2.0], 1: [1.0, 1.0], 2: [1.0, 1.0], 3: [3.0, 3.0]})
    leaderboard = Leaderboard.from_history(history)
    # Equal means fall back to construction order
    assert [c.index for c in leaderboard.candidates] == [1, 2, 0, 3]
    assert [c.index for c, _ in leaderboard.top(2)] == [1, 2]


def test_reversed_metric_reverses_order(rmse):
    scores = {0: [2.0, 2.5], 1: [1.0, 1.5], 2: [3.0, 3.5]}
    ascending = Leaderboard.from_history(_history(rmse, scores))
    descending = Leaderboard.from_history(_history(rmse.reversed(), scores))
    assert [c.index for c in ascending.candidates] == [1, 0, 2]
    assert [c.index for c in descending.candidates] == [2, 0, 1]


def test_failed_and_eliminated_are_not_ranked(rmse):
    history = _history(rmse, {0: [None, None], 1: [1.0, 1.0], 2: [0.1, None]})
    leaderboard = Leaderboard.from_history(history, eliminated=[1])

    assert [c.index for c in leaderboard.candidates] == [2]
    assert [c.index for c, _ in leaderboard.failed] == [0]
    assert [c.index for c, _ in leaderboard.eliminated] == [1]
    assert leaderboard[0][1].n_failed == 1

    frame = leaderboard.to_frame()
    assert list(frame['status']) == ['ranked', 'eliminated', 'failed']
    assert frame['rank'].iloc[0] == 1
    assert frame['config_id'].nunique() == 3
    assert {'p', 'mean', 'std_err', 'n', 'n_failed'} <= set(frame.columns)
    assert "ranked=1" in repr(leaderboard)

