"""
Evaluation Engine Module
========================

Responsibility:
- Named metrics with an optimization direction.
- Paired significance tests between per-fold scores.
"""

from .metrics import Metric, MetricRegistry
from .stat_tests import compare_to_leader

__all__ = ['Metric', 'MetricRegistry', 'compare_to_leader']
