"""
Workflow Module
===============

Responsibility:
- Bind one Recipe to one ModelSpec.
- Finalize tunable hyperparameters and fit recipe + model together.
"""

from .workflow import Workflow, FittedWorkflow
from .builder import build_workflow

__all__ = ['Workflow', 'FittedWorkflow', 'build_workflow']
