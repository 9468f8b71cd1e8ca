"""
TuningEngine: evaluates (candidate x fold) units round by round.

Each unit fits the finalized workflow (recipe + model) on the fold's
analysis rows and scores the assessment rows. Units of one round are
independent and run on a joblib worker pool that is scoped to the `tune`
call; the next round is only requested from the search strategy once every
unit of the current round has been recorded.
"""
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import numpy as np
import pandas as pd
from joblib import Parallel, delayed

from modules.base.base_engine import BaseEngine
from modules.evaluation_engine.metrics import Metric
from modules.model_factory import ModelAdapter, ModelFactory
from modules.split_engine.resamples import Fold, ResamplePlan
from modules.tuning_engine.cancellation import CancellationToken
from modules.tuning_engine.results import Candidate, Evaluation, Leaderboard, TuningHistory
from utils import constants
from utils.error_handling import handle_engine_errors
from utils.exceptions import EvaluationError, InsufficientDataError, ModelFitError, StepFitError
from utils.file_io import save_dataframe


def _evaluate_unit(workflow, adapter: ModelAdapter, metric: Metric, candidate: Candidate,
                   fold_index: int, fold_id: str, analysis: pd.DataFrame,
                   assessment: pd.DataFrame) -> Evaluation:
    """
    Fit on `analysis`, score on `assessment`.

    Recipe and model fit failures are recorded as failed evaluations; any
    other error aborts the run with the candidate, fold and stage attached.
    """
    stage = 'finalize'
    try:
        final = workflow.finalize(candidate.values)
        stage = 'fit'
        fitted = final.fit(analysis, adapter)
        stage = 'predict'
        predictions = fitted.predict(assessment)
        stage = 'score'
        score = metric(predictions, assessment[workflow.outcome].to_numpy())
    except StepFitError as e:
        return Evaluation(candidate.index, fold_index, fold_id, error=str(e), step=e.step)
    except ModelFitError as e:
        return Evaluation(candidate.index, fold_index, fold_id, error=str(e), step='model')
    except Exception as e:
        raise EvaluationError(
            f"Candidate {candidate.index} {candidate.values} failed on fold {fold_id} during {stage}: {e}",
            candidate=candidate.index, fold=fold_id, step=stage
        ) from e

    if not np.isfinite(score):
        return Evaluation(candidate.index, fold_index, fold_id,
                          error=f"{metric.name} is not finite", step='score')
    return Evaluation(candidate.index, fold_index, fold_id, score=float(score))


class TuningEngine(BaseEngine):
    """
    Drives a SearchStrategy over a ResamplePlan and returns a Leaderboard.

    Improvements over a flat grid loop:
    - Rounds: racing and annealing decide the next candidates from complete
      summaries of the previous round.
    - Scoped worker pool released on success, cancellation and error.
    - Resource cap on the number of evaluated configurations.
    """

    def __init__(self, config: dict, logger: logging.Logger):
        super().__init__(config, logger)
        execution = config.get('execution', {})
        self.n_jobs = execution.get('n_jobs', 1)
        self.backend = execution.get('backend', 'loky')
        self.max_configs = config.get('resources', {}).get('max_hpo_configs', 1000)
        self.excel_copy = config.get('outputs', {}).get('save_excel_copy', False)
        self.history: Optional[TuningHistory] = None

    def _get_engine_directory_name(self) -> str:
        return constants.TUNING_DIR

    @handle_engine_errors("Hyperparameter Tuning")
    def execute(self, workflow, plan: ResamplePlan, metric: Metric, strategy,
                cancel_token: CancellationToken = None, label: str = None) -> Leaderboard:
        return self.tune(workflow, plan, metric, strategy, cancel_token, label)

    def tune(self, workflow, plan: ResamplePlan, metric: Metric, strategy,
             cancel_token: CancellationToken = None, label: str = None) -> Leaderboard:
        """
        Run the search to completion (or cancellation).

        Raises:
            InsufficientDataError: If the plan has no folds.
            EvaluationError: On the first non-recoverable unit failure.
        """
        if not len(plan):
            raise InsufficientDataError("Resample plan has no folds.")

        adapter = ModelFactory.create(workflow.model.family)
        history = TuningHistory(metric)
        self.history = history
        strategy.prepare(len(plan), metric)
        fold_rows = {
            fold.index: (plan.dataset.rows(fold.analysis), plan.dataset.rows(fold.assessment))
            for fold in plan
        }
        tag = f"[{label}] " if label else ""
        self.logger.info(
            f"{tag}Tuning {workflow.model.family} with {strategy.name} search over {len(plan)} fold(s), "
            f"metric={metric.name} ({metric.direction}), n_jobs={self.n_jobs}."
        )

        cancelled = False
        with Parallel(n_jobs=self.n_jobs, backend=self.backend) as parallel:
            while not strategy.is_done(history):
                if cancel_token is not None and cancel_token.cancelled:
                    self.logger.warning(f"{tag}Tuning cancelled after {history.rounds} round(s).")
                    cancelled = True
                    break

                proposed = strategy.propose(history)
                capped = False
                room = self.max_configs - len(history.candidates)
                if len(proposed) > room:
                    self.logger.warning(f"Max HPO configs ({self.max_configs}) reached. Stopping search early.")
                    proposed = proposed[:max(room, 0)]
                    capped = True
                history.add_candidates(proposed)

                units = self._round_units(history, strategy, plan)
                evaluations = parallel(
                    delayed(_evaluate_unit)(
                        workflow, adapter, metric, candidate, fold.index, fold.id, *fold_rows[fold.index]
                    )
                    for candidate, fold in units
                )
                for evaluation in evaluations:
                    history.record(evaluation)
                history.rounds += 1
                self._log_round(history, evaluations, tag)

                if capped:
                    break
                strategy.observe(history)

        leaderboard = Leaderboard.from_history(history, eliminated=strategy.excluded(), cancelled=cancelled)
        self.logger.info(f"{tag}Tuning finished: {leaderboard!r}")
        for candidate, summary in leaderboard.failed:
            self.logger.warning(f"{tag}Candidate {candidate.index} {candidate.values} failed on every fold.")

        if self.save_artifacts:
            self._save_artifacts(history, leaderboard, label)
        return leaderboard

    def _round_units(self, history: TuningHistory, strategy, plan: ResamplePlan) -> List[Tuple[Candidate, Fold]]:
        folds = strategy.assessment_folds(history)
        fold_indices = range(len(plan)) if folds is None else folds
        excluded = strategy.excluded()
        return [
            (candidate, plan[f])
            for candidate in history.candidates if candidate.index not in excluded
            for f in fold_indices if not history.has(candidate.index, f)
        ]

    def _log_round(self, history: TuningHistory, evaluations: List[Evaluation], tag: str) -> None:
        n_failed = sum(1 for e in evaluations if e.failed)
        best = history.best()
        best_msg = (
            f"best so far: candidate {best[0].index} mean={best[1].mean:.5g} (n={best[1].n})"
            if best else "no candidate scored yet"
        )
        self.logger.info(
            f"{tag}Round {history.rounds}: {len(evaluations)} unit(s) evaluated, {n_failed} failed; {best_msg}."
        )
        for e in evaluations:
            if e.failed:
                self.logger.debug(f"{tag}Candidate {e.candidate_index} fold {e.fold_id} failed at {e.step}: {e.error}")

    def _save_artifacts(self, history: TuningHistory, leaderboard: Leaderboard, label: Optional[str]) -> None:
        out_dir = self.output_dir / label if label else self.output_dir
        save_dataframe(leaderboard.to_frame(), out_dir / constants.LEADERBOARD_FILE, excel_copy=self.excel_copy)
        save_dataframe(history.to_frame(), out_dir / constants.EVALUATIONS_FILE, excel_copy=self.excel_copy)
        self.logger.info(f"Tuning results saved to {out_dir}")
