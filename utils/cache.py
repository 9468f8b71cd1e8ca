"""
Lightweight hashing utilities.

- Provides a stable fingerprint helper (lru_cache) for repeated keys, used to
  tag candidate configurations in leaderboards and artifacts.
"""

import json
from functools import lru_cache
from hashlib import sha256
from typing import Any, Mapping


@lru_cache(maxsize=256)
def fingerprint(key: str) -> str:
    """
    Deterministically hash a string key (cached to avoid repeated hashing).
    """
    return sha256(key.encode("utf-8")).hexdigest()


def config_fingerprint(values: Mapping[str, Any]) -> str:
    """Short hash of a parameter assignment, stable across runs."""
    signature = json.dumps(dict(values), sort_keys=True, default=str)
    return fingerprint(signature)[:12]
