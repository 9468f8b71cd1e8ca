"""
Hyperparameter value domains.

Every domain maps to and from the unit interval so that search strategies
(Latin hypercube, annealing) can work on a common scale. Continuous domains
may be declared on a transformed scale, e.g. a penalty searched over
`[-10, 0]` in log10 units.
"""
import abc
import math
from dataclasses import dataclass
from typing import Any, Dict, List, Tuple

import numpy as np

from utils.exceptions import ConfigurationError

TRANSFORMS = {
    None: (lambda x: x, lambda x: x),
    'identity': (lambda x: x, lambda x: x),
    'log10': (math.log10, lambda x: 10 ** x),
    'log2': (math.log2, lambda x: 2 ** x),
    'log': (math.log, math.exp),
}


class Domain(abc.ABC):
    """Set of admissible values for one tunable hyperparameter."""

    #: True when values vary smoothly on the unit scale
    numeric = True

    @abc.abstractmethod
    def levels(self, n: int) -> List[Any]:
        """Up to `n` distinct, evenly spread values."""

    @abc.abstractmethod
    def from_unit(self, u: float) -> Any:
        """Map a point of [0, 1] to a value of the domain."""

    @abc.abstractmethod
    def to_unit(self, value: Any) -> float:
        """Map a domain value to [0, 1]."""

    @abc.abstractmethod
    def contains(self, value: Any) -> bool:
        pass

    def validate(self, name: str, value: Any) -> None:
        if not self.contains(value):
            raise ConfigurationError(f"Value {value!r} is outside the domain of '{name}': {self}", field=name)


@dataclass(frozen=True)
class ContinuousDomain(Domain):
    """Real interval [low, high] on the (optionally transformed) scale."""
    low: float
    high: float
    transform: str = None

    def __post_init__(self):
        if self.transform not in TRANSFORMS:
            raise ConfigurationError(f"Unknown transform '{self.transform}'. Available: {[t for t in TRANSFORMS if t]}")
        if not self.low < self.high:
            raise ConfigurationError(f"Continuous domain needs low < high, got [{self.low}, {self.high}]")

    def _forward(self, value: float) -> float:
        return TRANSFORMS[self.transform][0](value)

    def _inverse(self, value: float) -> float:
        return float(TRANSFORMS[self.transform][1](value))

    def levels(self, n: int) -> List[float]:
        if n == 1:
            return [self._inverse((self.low + self.high) / 2.0)]
        return [self._inverse(float(v)) for v in np.linspace(self.low, self.high, n)]

    def from_unit(self, u: float) -> float:
        u = min(max(float(u), 0.0), 1.0)
        return self._inverse(self.low + u * (self.high - self.low))

    def to_unit(self, value: float) -> float:
        return (self._forward(value) - self.low) / (self.high - self.low)

    def contains(self, value: Any) -> bool:
        try:
            scaled = self._forward(float(value))
        except (TypeError, ValueError):
            return False
        tol = 1e-9 * max(1.0, abs(self.high - self.low))
        return self.low - tol <= scaled <= self.high + tol


@dataclass(frozen=True)
class IntegerDomain(Domain):
    """Inclusive integer range [low, high]."""
    low: int
    high: int

    def __post_init__(self):
        if int(self.low) != self.low or int(self.high) != self.high:
            raise ConfigurationError(f"Integer domain bounds must be integers, got [{self.low}, {self.high}]")
        if not self.low <= self.high:
            raise ConfigurationError(f"Integer domain needs low <= high, got [{self.low}, {self.high}]")

    def levels(self, n: int) -> List[int]:
        if n == 1:
            return [int(round((self.low + self.high) / 2.0))]
        values = np.round(np.linspace(self.low, self.high, n)).astype(int)
        return [int(v) for v in dict.fromkeys(values.tolist())]

    def from_unit(self, u: float) -> int:
        width = self.high - self.low + 1
        offset = int(math.floor(min(max(float(u), 0.0), 1.0) * width))
        return int(min(self.low + offset, self.high))

    def to_unit(self, value: int) -> float:
        width = self.high - self.low + 1
        return (int(value) - self.low + 0.5) / width

    def contains(self, value: Any) -> bool:
        try:
            return int(value) == value and self.low <= int(value) <= self.high
        except (TypeError, ValueError):
            return False


@dataclass(frozen=True)
class DiscreteDomain(Domain):
    """Finite, ordered set of admissible values (qualitative parameters)."""
    values: Tuple[Any, ...]

    numeric = False

    def __post_init__(self):
        object.__setattr__(self, 'values', tuple(self.values))
        if not self.values:
            raise ConfigurationError("Discrete domain needs at least one value.")

    def levels(self, n: int) -> List[Any]:
        # Qualitative values are never subsampled
        return list(self.values)

    def from_unit(self, u: float) -> Any:
        idx = int(math.floor(min(max(float(u), 0.0), 1.0) * len(self.values)))
        return self.values[min(idx, len(self.values) - 1)]

    def to_unit(self, value: Any) -> float:
        return (self.values.index(value) + 0.5) / len(self.values)

    def contains(self, value: Any) -> bool:
        return value in self.values


def domain_from_config(name: str, spec: Dict[str, Any]) -> Domain:
    """
    Build a Domain from its JSON description.

    Examples:
        {"type": "continuous", "range": [-10, 0], "transform": "log10"}
        {"type": "integer", "range": [1, 15]}
        {"type": "discrete", "values": ["gini", "entropy"]}
    """
    kind = spec.get('type', 'continuous')
    field = f"workflow.model.params.{name}"
    try:
        if kind == 'continuous':
            low, high = spec['range']
            return ContinuousDomain(float(low), float(high), spec.get('transform'))
        if kind == 'integer':
            low, high = spec['range']
            return IntegerDomain(int(low), int(high))
        if kind == 'discrete':
            return DiscreteDomain(tuple(spec['values']))
    except KeyError as e:
        raise ConfigurationError(f"Domain for '{name}' is missing {e}.", field=field) from e
    except ConfigurationError as e:
        raise ConfigurationError(f"Invalid domain for '{name}': {e}", field=field) from e
    raise ConfigurationError(f"Unknown domain type '{kind}' for '{name}'.", field=field)
