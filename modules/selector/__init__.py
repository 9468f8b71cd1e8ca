"""
Selector Module
===============

Responsibility:
- Extract the best (or top-n) candidate from a Leaderboard.
- Apply the configured selection rule.
"""

from .selector import Selector, select_best, select_by_one_std_err

__all__ = ['Selector', 'select_best', 'select_by_one_std_err']
