import time
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import joblib
import numpy as np
import pandas as pd

from modules.base.base_engine import BaseEngine
from modules.evaluation_engine.metrics import Metric
from modules.split_engine.resamples import ResamplePlan, Split
from modules.tuning_engine.results import Candidate
from modules.workflow import FittedWorkflow, Workflow
from utils import constants
from utils.error_handling import handle_engine_errors
from utils.exceptions import DataLeakageError
from utils.file_io import save_dataframe, save_json


@dataclass
class LastFitResult:
    workflow: Workflow
    fitted: FittedWorkflow
    metric: str
    score: float
    predictions: pd.DataFrame


class TrainingEngine(BaseEngine):
    """
    Refits the selected configuration on the full training rows and scores
    it once on the test rows.

    Improvements:
    - Disjointness of test rows from every fitting row is asserted, not assumed.
    - Timing metrics.
    - Fitted workflow persisted with joblib when artifacts are enabled.
    """

    def __init__(self, config: dict, logger: logging.Logger):
        super().__init__(config, logger)
        self.excel_copy = config.get('outputs', {}).get('save_excel_copy', False)

    def _get_engine_directory_name(self) -> str:
        return constants.FINAL_MODEL_DIR

    def finalize(self, workflow: Workflow, candidate: Candidate) -> Workflow:
        return workflow.finalize(candidate.values)

    def fit(self, final_workflow: Workflow, train_rows: pd.DataFrame) -> FittedWorkflow:
        self.logger.info(f"Training {final_workflow.model.family} on {len(train_rows)} rows.")
        start_time = time.time()
        fitted = final_workflow.fit(train_rows)
        self.logger.info(f"Training completed in {time.time() - start_time:.2f} seconds.")
        return fitted

    def evaluate_once(self, fitted: FittedWorkflow, test_rows: pd.DataFrame, metric: Metric,
                      plan: Optional[ResamplePlan] = None) -> float:
        """
        Score `fitted` on `test_rows`.

        Raises:
            DataLeakageError: If any test row was used to fit the workflow or
                appears in any fold of `plan`.
        """
        test_index = test_rows.index.to_numpy()
        overlap = np.intersect1d(fitted.training_index, test_index)
        if overlap.size:
            raise DataLeakageError(f"{overlap.size} test row(s) were used to fit the final workflow.")
        if plan is not None:
            overlap = np.intersect1d(plan.rows, test_index)
            if overlap.size:
                raise DataLeakageError(f"{overlap.size} test row(s) appear in the resampling plan.")

        predictions = fitted.predict(test_rows)
        return metric(predictions, test_rows[fitted.workflow.outcome].to_numpy())

    @handle_engine_errors("Final Fit")
    def execute(self, workflow: Workflow, candidate: Candidate, split: Split, metric: Metric,
                plan: Optional[ResamplePlan] = None, label: str = None) -> LastFitResult:
        return self.last_fit(workflow, candidate, split, metric, plan, label)

    def last_fit(self, workflow: Workflow, candidate: Candidate, split: Split, metric: Metric,
                 plan: Optional[ResamplePlan] = None, label: str = None) -> LastFitResult:
        """finalize -> fit on every training row -> evaluate once on the test rows."""
        final = self.finalize(workflow, candidate)
        train_rows = split.training()
        test_rows = split.testing()

        fitted = self.fit(final, train_rows)
        score = self.evaluate_once(fitted, test_rows, metric, plan)
        self.logger.info(f"Test {metric.name}: {score:.5g} (candidate {candidate.index} {candidate.values}).")

        predictions = pd.DataFrame({
            'row': test_rows.index.to_numpy(),
            'truth': test_rows[final.outcome].to_numpy(),
            'prediction': fitted.predict(test_rows),
        })
        result = LastFitResult(final, fitted, metric.name, float(score), predictions)

        if self.save_artifacts:
            self._save_artifacts(result, candidate, len(train_rows), label)
        return result

    def _save_artifacts(self, result: LastFitResult, candidate: Candidate, n_train: int,
                        label: Optional[str]) -> None:
        out_dir = self.output_dir / label if label else self.output_dir
        out_dir.mkdir(parents=True, exist_ok=True)

        model_path = out_dir / constants.FINAL_MODEL_FILE
        joblib.dump(result.fitted, model_path)
        self.logger.info(f"Model saved to {model_path}")

        save_json({'candidate': candidate.index, 'values': candidate.values,
                   'family': result.workflow.model.family, 'fixed': result.workflow.model.fixed()},
                  out_dir / constants.BEST_CONFIG_FILE)
        metrics: Dict[str, Any] = {'metric': result.metric, 'score': result.score, 'n_train': n_train,
                                   'n_test': len(result.predictions)}
        save_json(metrics, out_dir / constants.FINAL_METRICS_FILE)
        save_dataframe(result.predictions, out_dir / "test_predictions.parquet", excel_copy=self.excel_copy)
