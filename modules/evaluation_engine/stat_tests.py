import numpy as np
from scipy import stats
from typing import Dict, Any

from utils import constants


def compare_to_leader(
    leader_scores: np.ndarray,
    candidate_scores: np.ndarray,
    direction: str = constants.MINIMIZE,
    alpha: float = 0.05,
) -> Dict[str, Any]:
    """
    One-sided paired t-test of "candidate is worse than leader".

    Scores must be paired by fold. Returns the p-value, the mean loss
    difference (positive means the candidate is worse) and whether the
    difference is significant at `alpha`.
    """
    leader_scores = np.asarray(leader_scores, dtype=float)
    candidate_scores = np.asarray(candidate_scores, dtype=float)

    # Drop NaNs
    mask = ~np.isnan(leader_scores) & ~np.isnan(candidate_scores)
    sign = 1.0 if direction == constants.MINIMIZE else -1.0
    diff = sign * (candidate_scores[mask] - leader_scores[mask])

    if diff.size < 2:
        return {"p_value": np.nan, "mean_diff": float(diff.mean()) if diff.size else np.nan, "significant": False}

    # If identical (or all zero diff), skip tests to avoid warnings
    if np.allclose(diff, 0):
        return {"p_value": 1.0, "mean_diff": 0.0, "significant": False}

    if np.std(diff, ddof=1) == 0:
        # Constant non-zero difference: t is infinite
        p_value = 0.0 if diff.mean() > 0 else 1.0
    else:
        _, p_value = stats.ttest_rel(sign * candidate_scores[mask], sign * leader_scores[mask], alternative="greater")

    return {
        "p_value": float(p_value),
        "mean_diff": float(diff.mean()),
        "significant": bool(p_value < alpha),
    }
