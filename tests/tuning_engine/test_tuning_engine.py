import math

import numpy as np
import pandas as pd
import pytest

from modules.data_manager import Dataset
from modules.evaluation_engine import Metric, MetricRegistry
from modules.model_factory import ContinuousDomain, ModelSpec
from modules.recipe import ImputeStep, Recipe
from modules.search_strategies import AnnealingSearch, GridSearch
from modules.split_engine import ResamplePlan
from modules.tuning_engine import CancellationToken, TuningEngine
from modules.workflow import Workflow
from utils import constants
from utils.exceptions import EvaluationError, InsufficientDataError

PARAMS = {'c': ContinuousDomain(0.0, 10.0)}


@pytest.fixture
def rmse():
    return MetricRegistry.get('rmse')


class TestTuningEngine:

    def test_grid_leaderboard(self, mock_logger, constant_adapter, constant_workflow, constant_plan, rmse):
        engine = TuningEngine({}, mock_logger)
        leaderboard = engine.tune(constant_workflow(), constant_plan, rmse, GridSearch(PARAMS, levels=5))

        assert len(leaderboard) == 5
        assert [c.values['c'] for c in leaderboard.candidates] == [2.5, 5.0, 0.0, 7.5, 10.0]
        for candidate, summary in leaderboard:
            assert summary.n == len(constant_plan)
            assert summary.mean == pytest.approx(abs(candidate.values['c'] - 3.0))
        assert engine.history.rounds == 1
        assert not leaderboard.cancelled

    def test_parallel_matches_sequential(self, mock_logger, constant_adapter, constant_workflow, constant_plan, rmse):
        sequential = TuningEngine({}, mock_logger)
        parallel = TuningEngine({'execution': {'n_jobs': 2, 'backend': 'threading'}}, mock_logger)
        a = sequential.tune(constant_workflow(), constant_plan, rmse, GridSearch(PARAMS, levels=4))
        b = parallel.tune(constant_workflow(), constant_plan, rmse, GridSearch(PARAMS, levels=4))

        assert a.candidates == b.candidates
        assert [s for _, s in a] == [s for _, s in b]

    def test_fold_local_failures_are_recorded(self, mock_logger, constant_adapter, constant_workflow,
                                              constant_plan, rmse):
        engine = TuningEngine({}, mock_logger)
        leaderboard = engine.tune(constant_workflow(fail_below=4.0), constant_plan, rmse,
                                  GridSearch(PARAMS, levels=3))

        assert [c.values['c'] for c in leaderboard.candidates] == [5.0, 10.0]
        (failed, summary), = leaderboard.failed
        assert failed.values == {'c': 0.0}
        assert summary.n_failed == len(constant_plan)
        assert all(e.step == 'model' for e in engine.history.evaluations(failed.index))

    def test_recipe_failures_name_the_step(self, mock_logger, constant_adapter, constant_dataset, constant_plan, rmse):
        frame = constant_dataset.frame.assign(x=np.nan)
        dataset = Dataset(frame, 'y')
        plan = ResamplePlan(dataset, constant_plan.folds, constant_plan.scheme)
        workflow = Workflow(Recipe('y', [ImputeStep()]), ModelSpec('constant', PARAMS))

        engine = TuningEngine({}, mock_logger)
        leaderboard = engine.tune(workflow, plan, rmse, GridSearch(PARAMS, levels=2))
        assert len(leaderboard) == 0
        assert len(leaderboard.failed) == 2
        assert {e.step for e in engine.history.evaluations()} == {'impute'}

    def test_non_finite_scores_are_failures(self, mock_logger, constant_adapter, constant_workflow, constant_plan):
        always_nan = Metric('always_nan', lambda p, t: math.nan)
        engine = TuningEngine({}, mock_logger)
        leaderboard = engine.tune(constant_workflow(), constant_plan, always_nan, GridSearch(PARAMS, levels=2))

        assert len(leaderboard) == 0
        assert all(e.step == 'score' for e in engine.history.evaluations())

    def test_unexpected_errors_abort_with_context(self, mock_logger, constant_adapter, constant_workflow,
                                                  constant_plan, rmse):
        engine = TuningEngine({}, mock_logger)
        with pytest.raises(EvaluationError) as info:
            engine.tune(constant_workflow(explode_at=5.0), constant_plan, rmse, GridSearch(PARAMS, levels=3))
        assert info.value.candidate == 1
        assert info.value.step == 'fit'
        assert info.value.fold is not None

    def test_execute_propagates_evaluation_error(self, mock_logger, constant_adapter, constant_workflow,
                                                 constant_plan, rmse):
        engine = TuningEngine({}, mock_logger)
        with pytest.raises(EvaluationError):
            engine.execute(constant_workflow(explode_at=0.0), constant_plan, rmse, GridSearch(PARAMS, levels=3))

    def test_max_configs_cap(self, mock_logger, constant_adapter, constant_workflow, constant_plan, rmse):
        engine = TuningEngine({'resources': {'max_hpo_configs': 3}}, mock_logger)
        leaderboard = engine.tune(constant_workflow(), constant_plan, rmse, GridSearch(PARAMS, levels=5))

        assert len(engine.history.candidates) == 3
        assert len(leaderboard) == 3
        assert any("Max HPO configs" in str(c) for c in mock_logger.warning.call_args_list)

    def test_cancel_before_start(self, mock_logger, constant_adapter, constant_workflow, constant_plan, rmse):
        token = CancellationToken()
        token.cancel()
        engine = TuningEngine({}, mock_logger)
        leaderboard = engine.tune(constant_workflow(), constant_plan, rmse, GridSearch(PARAMS), cancel_token=token)

        assert leaderboard.cancelled
        assert len(leaderboard) == 0
        assert engine.history.rounds == 0

    def test_cancel_between_rounds_keeps_completed_work(self, mock_logger, constant_adapter, constant_workflow,
                                                       constant_plan, rmse):
        token = CancellationToken()

        class CancelAfterTwoIterations(AnnealingSearch):
            def observe(self, history):
                super().observe(history)
                if self.iteration == 2:
                    token.cancel()

        engine = TuningEngine({}, mock_logger)
        search = CancelAfterTwoIterations(PARAMS, iterations=20, no_improve=20, seed=0)
        leaderboard = engine.tune(constant_workflow(), constant_plan, rmse, search, cancel_token=token)

        assert leaderboard.cancelled
        assert engine.history.rounds == 3
        assert len(leaderboard) == len(engine.history.candidates)
        assert all(s.n == len(constant_plan) for _, s in leaderboard)

    def test_empty_plan(self, mock_logger, constant_adapter, constant_workflow, constant_dataset, rmse):
        empty = ResamplePlan(constant_dataset, (), constants.KFOLD)
        with pytest.raises(InsufficientDataError):
            TuningEngine({}, mock_logger).tune(constant_workflow(), empty, rmse, GridSearch(PARAMS))

    def test_artifacts(self, tmp_path, mock_logger, constant_adapter, constant_workflow, constant_plan, rmse):
        config = {'outputs': {'base_results_dir': str(tmp_path), 'save_artifacts': True}}
        engine = TuningEngine(config, mock_logger)
        engine.execute(constant_workflow(), constant_plan, rmse, GridSearch(PARAMS, levels=3), label='y')

        out = tmp_path / constants.TUNING_DIR / 'y'
        leaderboard = pd.read_parquet(out / constants.LEADERBOARD_FILE)
        evaluations = pd.read_parquet(out / constants.EVALUATIONS_FILE)
        assert list(leaderboard['c']) == [5.0, 0.0, 10.0]
        assert len(evaluations) == 3 * len(constant_plan)

    def test_compute_only_writes_nothing(self, tmp_path, mock_logger, constant_adapter, constant_workflow,
                                         constant_plan, rmse):
        engine = TuningEngine({'outputs': {'base_results_dir': str(tmp_path)}}, mock_logger)
        engine.tune(constant_workflow(), constant_plan, rmse, GridSearch(PARAMS, levels=2))
        assert list(tmp_path.iterdir()) == []
