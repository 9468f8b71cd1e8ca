"""
Training Engine Module
======================

Responsibility:
- Binds the selected candidate into the workflow (finalize).
- Refits recipe + model on every training row.
- Scores the test rows exactly once, asserting they were never fit on.
- Persists the fitted workflow (.pkl) and test metrics (.json).
"""

from .training_engine import TrainingEngine, LastFitResult

__all__ = ['TrainingEngine', 'LastFitResult']
