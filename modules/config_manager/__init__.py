"""
Configuration Manager Module
============================

Responsibility:
- Centralized loading and validation of JSON configuration files.
- Defaults for every documented setting.
- Range checks that name the offending field.
- Resource usage guardrails (candidate count, memory).
- Deterministic seed propagation for reproducibility.
"""

from .config_manager import ConfigurationManager
from .schema import DEFAULTS, DEFAULT_SCHEMA

__all__ = ['ConfigurationManager', 'DEFAULTS', 'DEFAULT_SCHEMA']
