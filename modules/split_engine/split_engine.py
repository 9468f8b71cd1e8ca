"""
SplitEngine for the resampled tuning pipeline.

This module partitions a Dataset into training and testing rows and builds
the resampling plan (repeated k-fold or Monte-Carlo) from the training rows
only. Both steps can stratify on the outcome so that every partition and fold
keeps the outcome's marginal distribution, which is what makes the fold
estimates comparable with the final test estimate.
"""
import logging
import numpy as np
from typing import Optional, Tuple
from sklearn.model_selection import (
    train_test_split,
    KFold,
    StratifiedKFold,
    ShuffleSplit,
    StratifiedShuffleSplit,
)

from modules.base.base_engine import BaseEngine
from modules.data_manager.dataset import Dataset
from modules.split_engine.resamples import Fold, ResamplePlan, Split
from modules.split_engine.strata import make_strata
from utils import constants
from utils.error_handling import handle_engine_errors
from utils.exceptions import ConfigurationError, InsufficientDataError
from utils.file_io import save_dataframe


class SplitEngine(BaseEngine):
    """
    Splits data into Train/Test sets and generates resampling plans.

    Every random draw is derived from the propagated seeds
    (`_internal_seeds.split` for the initial split, `_internal_seeds.cv` for
    the folds), so the same configuration always reproduces the same rows.
    """

    def __init__(self, config: dict, logger: logging.Logger):
        super().__init__(config, logger)
        self.split_config = config.get('splitting', {})
        self.resample_config = config.get('resampling', {})

        master_seed = self.split_config.get('seed', 42)
        seeds = config.get('_internal_seeds', {})
        self.split_seed = seeds.get('split', master_seed)
        self.cv_seed = seeds.get('cv', master_seed + 1000)

    def _get_engine_directory_name(self) -> str:
        return constants.SPLITS_DIR

    @handle_engine_errors("Data Splitting")
    def execute(self, dataset: Dataset) -> Tuple[Split, ResamplePlan]:
        """
        Execute the splitting workflow.

        Returns:
            The initial Split and the ResamplePlan built on its training rows.
        """
        self.logger.info("Starting Split Engine execution...")
        stratify_by = dataset.outcome if self.split_config.get('stratify', True) else None

        split = self.split(dataset, self.split_config.get('train_fraction', 0.75), stratify_by)
        plan = self.resample(dataset, split.train, stratify_by=stratify_by)

        if self.save_artifacts:
            save_dataframe(split.to_frame(), self.output_dir / constants.SPLIT_FILE)
            save_dataframe(plan.to_frame(), self.output_dir / constants.FOLDS_FILE)

        self.logger.info(f"Split: Train={len(split.train)}, Test={len(split.test)}; {plan}")
        return split, plan

    # ------------------------------------------------------------------
    # Initial split
    # ------------------------------------------------------------------

    def split(self, dataset: Dataset, train_fraction: float, stratify_by: Optional[str] = None) -> Split:
        """
        Partition the dataset into disjoint train/test position sets.

        The training size is `round(n * train_fraction)`.

        Raises:
            ConfigurationError: If train_fraction is outside (0, 1).
            InsufficientDataError: If a partition or stratum cannot be populated.
        """
        if not (0.0 < train_fraction < 1.0):
            raise ConfigurationError(
                f"train_fraction must be between 0 and 1 (exclusive), got {train_fraction}",
                field='splitting.train_fraction'
            )

        n_rows = len(dataset)
        n_train = int(round(n_rows * train_fraction))
        n_test = n_rows - n_train
        if n_train < 1 or n_test < 1:
            raise InsufficientDataError(
                f"Cannot split {n_rows} rows with train_fraction={train_fraction}: "
                f"train={n_train}, test={n_test}."
            )

        positions = np.arange(n_rows)
        strata = self._strata(dataset, positions, stratify_by)
        if strata is not None:
            self._check_strata(strata, minimum=2, context="train/test split")

        try:
            train_idx, test_idx = train_test_split(
                positions,
                train_size=n_train,
                test_size=n_test,
                random_state=self.split_seed,
                shuffle=True,
                stratify=strata
            )
        except ValueError as e:
            raise InsufficientDataError(f"Stratified train/test split failed: {e}") from e

        return Split(dataset, train_idx, test_idx, stratified_by=stratify_by if strata is not None else None)

    # ------------------------------------------------------------------
    # Resampling
    # ------------------------------------------------------------------

    def resample(self, dataset: Dataset, rows=None, scheme: Optional[str] = None,
                 folds: Optional[int] = None, repeats: Optional[int] = None,
                 times: Optional[int] = None, proportion: Optional[float] = None,
                 stratify_by: Optional[str] = None) -> ResamplePlan:
        """
        Build a resampling plan over `rows` (the training positions).

        Unspecified parameters fall back to the `resampling` config section.
        """
        rows = np.sort(np.asarray(rows if rows is not None else np.arange(len(dataset)), dtype=int))
        scheme = scheme or self.resample_config.get('scheme', constants.KFOLD)
        strata = self._strata(dataset, rows, stratify_by)
        rng = np.random.RandomState(self.cv_seed)

        if scheme == constants.KFOLD:
            v = folds or self.resample_config.get('folds', 10)
            n_repeats = repeats or self.resample_config.get('repeats', 1)
            fold_list = self._kfold(rows, strata, v, n_repeats, rng)
            params = {'folds': v, 'repeats': n_repeats}
        elif scheme == constants.MONTE_CARLO:
            n_times = times or self.resample_config.get('times', 25)
            prop = proportion or self.resample_config.get('proportion', 0.75)
            fold_list = self._monte_carlo(rows, strata, n_times, prop, rng)
            params = {'times': n_times, 'proportion': prop}
        else:
            raise ConfigurationError(
                f"Unknown resampling scheme '{scheme}'. Available: {constants.RESAMPLE_SCHEMES}",
                field='resampling.scheme'
            )

        params['stratified_by'] = stratify_by if strata is not None else None
        return ResamplePlan(dataset, tuple(fold_list), scheme, params)

    def _kfold(self, rows: np.ndarray, strata: Optional[np.ndarray], v: int, repeats: int, rng) -> list:
        if v < 2:
            raise ConfigurationError(f"folds must be >= 2, got {v}.", field='resampling.folds')
        if len(rows) < v:
            raise InsufficientDataError(f"Cannot build {v} folds from {len(rows)} training rows.")

        if strata is not None:
            labels, counts = np.unique(strata, return_counts=True)
            for label, count in zip(labels, counts):
                if count < v:
                    self.logger.warning(
                        f"Stratum '{label}' has {count} rows, fewer than {v} folds; some folds will miss it."
                    )

        fold_list = []
        for r in range(repeats):
            # Independent seed per repeat so fold compositions are re-drawn
            repeat_seed = int(rng.randint(0, 2**31 - 1))
            if strata is not None:
                splitter = StratifiedKFold(n_splits=v, shuffle=True, random_state=repeat_seed)
                pieces = splitter.split(rows, strata)
            else:
                splitter = KFold(n_splits=v, shuffle=True, random_state=repeat_seed)
                pieces = splitter.split(rows)

            try:
                for k, (analysis_idx, assessment_idx) in enumerate(pieces):
                    fold_id = f"Repeat{r + 1}_Fold{k + 1:02d}" if repeats > 1 else f"Fold{k + 1:02d}"
                    fold_list.append(Fold(
                        index=len(fold_list),
                        id=fold_id,
                        analysis=rows[analysis_idx],
                        assessment=rows[assessment_idx],
                        repeat=r + 1
                    ))
            except ValueError as e:
                raise InsufficientDataError(f"Stratified k-fold failed on repeat {r + 1}: {e}") from e

        return fold_list

    def _monte_carlo(self, rows: np.ndarray, strata: Optional[np.ndarray], times: int, proportion: float, rng) -> list:
        if not (0.0 < proportion < 1.0):
            raise ConfigurationError(
                f"proportion must be between 0 and 1 (exclusive), got {proportion}",
                field='resampling.proportion'
            )
        n_analysis = int(round(len(rows) * proportion))
        n_assessment = len(rows) - n_analysis
        if n_analysis < 1 or n_assessment < 1:
            raise InsufficientDataError(
                f"Cannot draw Monte-Carlo resamples from {len(rows)} rows with proportion={proportion}."
            )

        seed = int(rng.randint(0, 2**31 - 1))
        if strata is not None:
            self._check_strata(strata, minimum=2, context="Monte-Carlo resampling")
            splitter = StratifiedShuffleSplit(n_splits=times, train_size=n_analysis, test_size=n_assessment, random_state=seed)
            pieces = splitter.split(rows, strata)
        else:
            splitter = ShuffleSplit(n_splits=times, train_size=n_analysis, test_size=n_assessment, random_state=seed)
            pieces = splitter.split(rows)

        fold_list = []
        try:
            for i, (analysis_idx, assessment_idx) in enumerate(pieces):
                fold_list.append(Fold(
                    index=i,
                    id=f"Resample{i + 1:02d}",
                    analysis=rows[analysis_idx],
                    assessment=rows[assessment_idx]
                ))
        except ValueError as e:
            raise InsufficientDataError(f"Stratified Monte-Carlo resampling failed: {e}") from e
        return fold_list

    # ------------------------------------------------------------------
    # Stratification helpers
    # ------------------------------------------------------------------

    def _strata(self, dataset: Dataset, positions: np.ndarray, stratify_by: Optional[str]) -> Optional[np.ndarray]:
        if stratify_by is None:
            return None
        frame = dataset.frame
        if stratify_by not in frame.columns:
            raise ConfigurationError(f"Stratification column '{stratify_by}' not found.", field='splitting.stratify_by')

        return make_strata(
            frame[stratify_by].iloc[positions].to_numpy(),
            breaks=self.split_config.get('strata_breaks', 4),
            pool=self.split_config.get('strata_pool', 0.1),
            depth=self.split_config.get('strata_depth', 20),
            logger=self.logger
        )

    def _check_strata(self, strata: np.ndarray, minimum: int, context: str) -> None:
        labels, counts = np.unique(strata, return_counts=True)
        for label, count in zip(labels, counts):
            if count < minimum:
                raise InsufficientDataError(
                    f"Stratum '{label}' has {count} row(s); at least {minimum} are needed for the {context}.",
                    stratum=label
                )
