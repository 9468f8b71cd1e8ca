"""
Tuning Engine Module
====================

Responsibility:
- Evaluate (candidate x fold) units on a scoped worker pool.
- Aggregate per-candidate summaries independent of completion order.
- Produce the ranked Leaderboard; fan out binary-relevance runs.
"""

from .results import Candidate, Evaluation, Summary, TuningHistory, Leaderboard
from .cancellation import CancellationToken
from .tuning_engine import TuningEngine
from .binary_relevance import tune_per_label, label_workflow

__all__ = [
    'Candidate', 'Evaluation', 'Summary', 'TuningHistory', 'Leaderboard',
    'CancellationToken', 'TuningEngine', 'tune_per_label', 'label_workflow'
]
