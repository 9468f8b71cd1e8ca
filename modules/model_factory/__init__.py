"""
Model Factory Module
====================

Responsibility:
- Model specifications with fixed and tunable hyperparameters.
- Value domains (continuous, integer, discrete) for tunable parameters.
- Adapter registry exposing every model family through `fit`/`predict`.
"""

from .domains import Domain, ContinuousDomain, IntegerDomain, DiscreteDomain, domain_from_config
from .model_spec import ModelSpec
from .model_factory import ModelFactory, ModelAdapter, SklearnAdapter, FittedModel

__all__ = [
    'Domain', 'ContinuousDomain', 'IntegerDomain', 'DiscreteDomain', 'domain_from_config',
    'ModelSpec', 'ModelFactory', 'ModelAdapter', 'SklearnAdapter', 'FittedModel'
]
