"""
Split Engine
============

Responsibility:
- Seeded train/test partitioning, optionally stratified by the outcome.
- Resampling plans (repeated k-fold, Monte-Carlo) drawn from training rows only.
- Quantile / level strata with pooling of sparse strata.
"""

from .split_engine import SplitEngine
from .resamples import Split, Fold, ResamplePlan
from .strata import make_strata

__all__ = ['SplitEngine', 'Split', 'Fold', 'ResamplePlan', 'make_strata']
