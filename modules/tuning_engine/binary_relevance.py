"""
Binary relevance: one independent tuning run per label.

The runs share the Dataset and the ResamplePlan and nothing else. Each
label's recipe first drops the other label columns so no label is used as a
predictor of another.
"""
import functools
from typing import Callable, Dict, Sequence

import pandas as pd

from modules.evaluation_engine.metrics import Metric
from modules.recipe import FunctionStep, Recipe
from modules.split_engine.resamples import ResamplePlan
from modules.tuning_engine.cancellation import CancellationToken
from modules.tuning_engine.results import Leaderboard
from modules.workflow import Workflow


def _drop_columns(rows: pd.DataFrame, columns: Sequence[str]) -> pd.DataFrame:
    return rows.drop(columns=list(columns), errors='ignore')


def label_workflow(workflow: Workflow, label: str, labels: Sequence[str]) -> Workflow:
    """Rebind `workflow` to predict `label`, ignoring the other labels."""
    others = [l for l in labels if l != label]
    drop = FunctionStep(functools.partial(_drop_columns, columns=others), label='drop_other_labels')
    recipe = Recipe(label, (drop,) + workflow.recipe.steps)
    return Workflow(recipe, workflow.model)


def tune_per_label(engine, workflow: Workflow, labels: Sequence[str], plan: ResamplePlan,
                   metric: Metric, strategy_factory: Callable[[Workflow], object],
                   cancel_token: CancellationToken = None) -> Dict[str, Leaderboard]:
    """
    Fan out independent `tune` calls, one per label.

    `strategy_factory` builds a fresh search strategy for each label's
    workflow, since strategies keep per-run state.
    """
    results = {}
    for label in labels:
        per_label = label_workflow(workflow, label, labels)
        results[label] = engine.tune(
            per_label, plan, metric, strategy_factory(per_label), cancel_token, label=label
        )
    return results
