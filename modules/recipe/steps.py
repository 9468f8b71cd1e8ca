"""
Built-in preprocessing steps.

Each step learns its parameters in `fit` from the rows it is handed and uses
only those parameters in `apply`. Values that only appear in later rows
degrade gracefully: unseen categories encode as all-zero indicators, unseen
ordinal levels become NaN and unseen tokens are ignored.
"""
import abc
from typing import Any, Callable, Dict, List, Optional, Sequence

import numpy as np
import pandas as pd
from sklearn.feature_extraction.text import CountVectorizer, TfidfTransformer
from sklearn.preprocessing import OneHotEncoder, StandardScaler

from utils.exceptions import ConfigurationError, StepFitError


class Step(abc.ABC):
    """
    One preprocessing operation.

    `selects` decides which predictors the step touches when no explicit
    `columns` are given: 'numeric', 'nominal' or 'all'.
    """
    kind = "step"
    selects = "all"

    def __init__(self, columns: Optional[Sequence[str]] = None):
        self.columns = list(columns) if columns is not None else None

    @property
    def name(self) -> str:
        if self.columns:
            return f"{self.kind}({', '.join(self.columns)})"
        return self.kind

    def select(self, rows: pd.DataFrame, outcome: str) -> List[str]:
        if self.columns is not None:
            missing = [c for c in self.columns if c not in rows.columns]
            if missing:
                raise StepFitError(f"Step '{self.name}' references missing column(s) {missing}.", step=self.name)
            return list(self.columns)

        predictors = [c for c in rows.columns if c != outcome]
        if self.selects == "numeric":
            return [c for c in predictors if _is_numeric(rows[c])]
        if self.selects == "nominal":
            return [c for c in predictors if not _is_numeric(rows[c])]
        return predictors

    @abc.abstractmethod
    def fit(self, rows: pd.DataFrame, outcome: str) -> Dict[str, Any]:
        """Learn parameters from `rows` only."""

    @abc.abstractmethod
    def apply(self, rows: pd.DataFrame, params: Dict[str, Any]) -> pd.DataFrame:
        """Transform `rows` with previously learned parameters."""

    def describe(self, params: Dict[str, Any]) -> Dict[str, Any]:
        """Plain-data view of the learned parameters."""
        return params

    def _require_rows(self, rows: pd.DataFrame) -> None:
        if rows.empty:
            raise StepFitError(f"Step '{self.name}' cannot be fit on zero rows.", step=self.name)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.name})"


def _is_numeric(series: pd.Series) -> bool:
    return pd.api.types.is_numeric_dtype(series) and not pd.api.types.is_bool_dtype(series)


class ImputeStep(Step):
    """Fill missing values: median for numeric predictors, most frequent level otherwise."""
    kind = "impute"

    def fit(self, rows, outcome):
        self._require_rows(rows)
        fills = {}
        for col in self.select(rows, outcome):
            observed = rows[col].dropna()
            if observed.empty:
                raise StepFitError(f"Column '{col}' has no observed values to impute from.", step=self.name)
            if _is_numeric(rows[col]):
                fills[col] = float(observed.median())
            else:
                fills[col] = observed.value_counts().sort_index(kind='stable').idxmax()
        return {'fills': fills}

    def apply(self, rows, params):
        fills = {c: v for c, v in params['fills'].items() if c in rows.columns}
        return rows.fillna(value=fills) if fills else rows


class ZeroVarianceStep(Step):
    """Drop predictors holding a single distinct value in the fitting rows."""
    kind = "zero_variance"

    def fit(self, rows, outcome):
        self._require_rows(rows)
        drop = [c for c in self.select(rows, outcome) if rows[c].nunique(dropna=False) <= 1]
        return {'drop': drop}

    def apply(self, rows, params):
        return rows.drop(columns=params['drop'], errors='ignore')


class NormalizeStep(Step):
    """Center and scale numeric predictors."""
    kind = "normalize"
    selects = "numeric"

    def fit(self, rows, outcome):
        self._require_rows(rows)
        columns = self.select(rows, outcome)
        if not columns:
            return {'columns': [], 'scaler': None}
        scaler = StandardScaler().fit(rows[columns].astype(float))
        return {'columns': columns, 'scaler': scaler}

    def apply(self, rows, params):
        columns = params['columns']
        if not columns:
            return rows
        rows = rows.copy()
        rows[columns] = params['scaler'].transform(rows[columns].astype(float))
        return rows

    def describe(self, params):
        scaler = params['scaler']
        return {
            'columns': params['columns'],
            'mean': scaler.mean_.tolist() if scaler is not None else [],
            'scale': scaler.scale_.tolist() if scaler is not None else [],
        }


class DummyStep(Step):
    """One-hot encode nominal predictors; unseen levels encode as all zeros."""
    kind = "dummy"
    selects = "nominal"

    def fit(self, rows, outcome):
        self._require_rows(rows)
        columns = self.select(rows, outcome)
        if not columns:
            return {'columns': [], 'encoder': None}
        encoder = OneHotEncoder(handle_unknown='ignore', sparse_output=False, dtype=float)
        encoder.fit(rows[columns].astype(str))
        return {'columns': columns, 'encoder': encoder}

    def apply(self, rows, params):
        columns = params['columns']
        if not columns:
            return rows
        encoder = params['encoder']
        encoded = pd.DataFrame(
            encoder.transform(rows[columns].astype(str)),
            columns=encoder.get_feature_names_out(columns),
            index=rows.index
        )
        return pd.concat([rows.drop(columns=columns), encoded], axis=1)

    def describe(self, params):
        encoder = params['encoder']
        return {
            'columns': params['columns'],
            'levels': [list(c) for c in encoder.categories_] if encoder is not None else [],
        }


class OrdinalScoreStep(Step):
    """
    Replace ordered levels with integer scores 1..L.

    `levels` fixes the order per column; otherwise the sorted observed levels
    are used. Levels not seen while fitting become NaN.
    """
    kind = "ordinal_score"
    selects = "nominal"

    def __init__(self, columns=None, levels: Optional[Dict[str, Sequence[Any]]] = None):
        super().__init__(columns)
        self.levels = {k: list(v) for k, v in (levels or {}).items()}

    def fit(self, rows, outcome):
        self._require_rows(rows)
        learned = {}
        for col in self.select(rows, outcome):
            if col in self.levels:
                learned[col] = self.levels[col]
            else:
                learned[col] = sorted(rows[col].dropna().unique().tolist(), key=str)
        return {'levels': learned}

    def apply(self, rows, params):
        rows = rows.copy()
        for col, levels in params['levels'].items():
            codes = pd.Categorical(rows[col], categories=levels, ordered=True).codes
            rows[col] = np.where(codes < 0, np.nan, codes + 1.0)
        return rows


class TextTfStep(Step):
    """
    Tokenize text columns, keep the `max_tokens` most frequent tokens and
    emit one term-frequency column per retained token.

    weight: 'raw' counts, 'term_frequency' (counts / tokens in document) or
    'tfidf'.
    """
    kind = "text_tf"
    WEIGHTS = ('raw', 'term_frequency', 'tfidf')

    def __init__(self, columns: Sequence[str], max_tokens: int = 100, min_times: int = 1,
                 weight: str = 'raw', lowercase: bool = True, stop_words: Optional[Sequence[str]] = None,
                 token_pattern: str = r"(?u)\b\w+\b"):
        if not columns:
            raise ConfigurationError("text_tf requires explicit text columns.", field='workflow.recipe.steps.columns')
        if weight not in self.WEIGHTS:
            raise ConfigurationError(f"Unknown weight '{weight}'. Available: {list(self.WEIGHTS)}",
                                     field='workflow.recipe.steps.weight')
        super().__init__(columns)
        self.max_tokens = max_tokens
        self.min_times = min_times
        self.weight = weight
        self.lowercase = lowercase
        self.stop_words = list(stop_words) if stop_words else None
        self.token_pattern = token_pattern

    def fit(self, rows, outcome):
        self._require_rows(rows)
        fitted = {}
        for col in self.select(rows, outcome):
            vectorizer = CountVectorizer(
                max_features=self.max_tokens,
                min_df=self.min_times,
                lowercase=self.lowercase,
                stop_words=self.stop_words,
                token_pattern=self.token_pattern
            )
            texts = rows[col].fillna('').astype(str)
            try:
                counts = vectorizer.fit_transform(texts)
            except ValueError as e:
                # sklearn raises on an empty vocabulary
                raise StepFitError(f"Column '{col}' retained zero tokens: {e}", step=self.name) from e
            idf = TfidfTransformer().fit(counts) if self.weight == 'tfidf' else None
            fitted[col] = {'vectorizer': vectorizer, 'idf': idf}
        return {'columns': fitted}

    def apply(self, rows, params):
        frames = [rows.drop(columns=list(params['columns']))]
        for col, fitted in params['columns'].items():
            vectorizer = fitted['vectorizer']
            counts = vectorizer.transform(rows[col].fillna('').astype(str))
            if self.weight == 'tfidf':
                values = fitted['idf'].transform(counts).toarray()
            else:
                values = counts.toarray().astype(float)
                if self.weight == 'term_frequency':
                    totals = values.sum(axis=1, keepdims=True)
                    values = np.divide(values, totals, out=np.zeros_like(values), where=totals > 0)
            names = [f"tf_{col}_{token}" for token in vectorizer.get_feature_names_out()]
            frames.append(pd.DataFrame(values, columns=names, index=rows.index))
        return pd.concat(frames, axis=1)

    def describe(self, params):
        return {col: sorted(f['vectorizer'].vocabulary_) for col, f in params['columns'].items()}


class FunctionStep(Step):
    """Stateless, caller-supplied row transformation."""
    kind = "function"

    def __init__(self, fn: Callable[[pd.DataFrame], pd.DataFrame], label: str = None):
        super().__init__(None)
        self.fn = fn
        self.label = label or getattr(fn, '__name__', 'function')

    @property
    def name(self) -> str:
        return f"function({self.label})"

    def fit(self, rows, outcome):
        return {}

    def apply(self, rows, params):
        return self.fn(rows)


STEP_TYPES = {
    ImputeStep.kind: ImputeStep,
    ZeroVarianceStep.kind: ZeroVarianceStep,
    NormalizeStep.kind: NormalizeStep,
    DummyStep.kind: DummyStep,
    OrdinalScoreStep.kind: OrdinalScoreStep,
    TextTfStep.kind: TextTfStep,
}


def build_step(spec: Dict[str, Any]) -> Step:
    """Create a step from its config description, e.g. {"type": "dummy"}."""
    spec = dict(spec)
    kind = spec.pop('type', None)
    if kind not in STEP_TYPES:
        raise ConfigurationError(
            f"Unknown recipe step '{kind}'. Available: {list(STEP_TYPES)}",
            field='workflow.recipe.steps'
        )
    try:
        return STEP_TYPES[kind](**spec)
    except TypeError as e:
        raise ConfigurationError(f"Invalid arguments for step '{kind}': {e}", field='workflow.recipe.steps') from e
