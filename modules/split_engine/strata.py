"""
Stratum construction for outcome-preserving splits.

Numeric outcomes are cut at sample quantiles; categorical outcomes use their
levels, with rare levels pooled together.
"""
import logging
from typing import Optional

import numpy as np
import pandas as pd

POOLED_LABEL = "__pooled__"


def make_strata(values, breaks: int = 4, pool: float = 0.1, depth: int = 20,
                logger: Optional[logging.Logger] = None) -> Optional[np.ndarray]:
    """
    Build stratum labels for `values`.

    Args:
        values: Outcome (or stratification column) values.
        breaks: Number of quantile bins for numeric values.
        pool: Levels holding a smaller proportion of rows are pooled.
        depth: Minimum expected rows per numeric bin; `breaks` is reduced to honour it.

    Returns:
        Array of string labels, or None when the data cannot be stratified.
    """
    logger = logger or logging.getLogger(__name__)
    series = pd.Series(values).reset_index(drop=True)
    n = len(series)
    if n == 0:
        return None

    if pd.api.types.is_numeric_dtype(series) and not pd.api.types.is_bool_dtype(series):
        return _numeric_strata(series, breaks, depth, logger)
    return _categorical_strata(series, pool)


def _numeric_strata(series: pd.Series, breaks: int, depth: int, logger: logging.Logger) -> Optional[np.ndarray]:
    n = len(series)
    if n / breaks < depth:
        reduced = min(breaks, n // depth)
        logger.warning(
            f"Only {n} rows available for {breaks} strata (depth {depth}); using {reduced} quantile bins instead."
        )
        breaks = reduced

    if breaks < 2:
        logger.warning("Too little data to stratify; falling back to unstratified sampling.")
        return None

    bins = pd.qcut(series, q=breaks, duplicates='drop')
    codes = np.asarray(bins.cat.codes)
    if len(np.unique(codes)) < 2:
        logger.warning("Outcome has too few distinct values to stratify; falling back to unstratified sampling.")
        return None
    return np.array([f"q{c + 1}" for c in codes], dtype=object)


def _categorical_strata(series: pd.Series, pool: float) -> np.ndarray:
    labels = series.astype(str).to_numpy(dtype=object)
    n = len(labels)
    counts = pd.Series(labels).value_counts()
    rare = counts[counts / n < pool].index

    if len(rare) and len(rare) < len(counts):
        labels = np.where(pd.Series(labels).isin(rare).to_numpy(), POOLED_LABEL, labels).astype(object)
        pooled_size = int((labels == POOLED_LABEL).sum())
        if pooled_size / n < pool:
            # Still too small on its own: merge into the smallest regular level
            regular = counts.drop(index=rare)
            target = regular.sort_values(kind='stable').index[0]
            labels = np.where(labels == POOLED_LABEL, target, labels).astype(object)
    return labels
