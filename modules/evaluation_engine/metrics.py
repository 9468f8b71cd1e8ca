"""
Named scoring functions with an optimization direction.

All metrics are called as `metric(predictions, truth)` and return a float.
"""
from dataclasses import dataclass
from typing import Callable, Dict, List

import numpy as np
from sklearn.metrics import (
    accuracy_score,
    cohen_kappa_score,
    f1_score,
    matthews_corrcoef,
    mean_absolute_error,
    mean_squared_error,
)

from utils import constants
from utils.exceptions import ConfigurationError


@dataclass(frozen=True)
class Metric:
    name: str
    fn: Callable[[np.ndarray, np.ndarray], float]
    direction: str = constants.MINIMIZE

    def __post_init__(self):
        if self.direction not in (constants.MINIMIZE, constants.MAXIMIZE):
            raise ConfigurationError(f"Unknown metric direction '{self.direction}'.", field='metric.direction')

    @property
    def sign(self) -> int:
        """+1 when smaller is better, -1 otherwise; multiply a score to get a loss."""
        return 1 if self.direction == constants.MINIMIZE else -1

    def __call__(self, predictions, truth) -> float:
        return float(self.fn(np.asarray(predictions), np.asarray(truth)))

    def is_better(self, a: float, b: float) -> bool:
        return self.sign * a < self.sign * b

    def reversed(self) -> "Metric":
        """Same function, opposite direction."""
        flipped = constants.MAXIMIZE if self.direction == constants.MINIMIZE else constants.MINIMIZE
        return Metric(self.name, self.fn, flipped)


def _rmse(pred, truth):
    return np.sqrt(mean_squared_error(truth, pred))


def _mae(pred, truth):
    return mean_absolute_error(truth, pred)


def _rsq(pred, truth):
    # Squared correlation; undefined for constant predictions
    pred = pred.astype(float)
    truth = truth.astype(float)
    if np.std(pred) == 0 or np.std(truth) == 0:
        return np.nan
    return np.corrcoef(pred, truth)[0, 1] ** 2


def _accuracy(pred, truth):
    return accuracy_score(truth, pred)


def _mcc(pred, truth):
    return matthews_corrcoef(truth, pred)


def _f_meas(pred, truth):
    labels = sorted(set(truth.tolist()) | set(pred.tolist()), key=str)
    if len(labels) < 2:
        # The event level cannot be identified from a single observed level
        return np.nan
    if len(labels) == 2:
        # First level is the event, as in the usual two-class convention
        return f1_score(truth, pred, pos_label=labels[0], average='binary', zero_division=0)
    return f1_score(truth, pred, average='macro', zero_division=0)


def _kap(pred, truth):
    return cohen_kappa_score(truth, pred)


class MetricRegistry:
    """Registry of metrics keyed by name."""

    METRICS: Dict[str, Metric] = {
        'rmse': Metric('rmse', _rmse, constants.MINIMIZE),
        'mae': Metric('mae', _mae, constants.MINIMIZE),
        'rsq': Metric('rsq', _rsq, constants.MAXIMIZE),
        'accuracy': Metric('accuracy', _accuracy, constants.MAXIMIZE),
        'mcc': Metric('mcc', _mcc, constants.MAXIMIZE),
        'f_meas': Metric('f_meas', _f_meas, constants.MAXIMIZE),
        'kap': Metric('kap', _kap, constants.MAXIMIZE),
    }

    @classmethod
    def get(cls, name: str) -> Metric:
        if name not in cls.METRICS:
            raise ConfigurationError(f"Unknown metric '{name}'. Available: {cls.available()}", field='metric.name')
        return cls.METRICS[name]

    @classmethod
    def register(cls, metric: Metric) -> None:
        cls.METRICS[metric.name] = metric

    @classmethod
    def available(cls) -> List[str]:
        return list(cls.METRICS.keys())
