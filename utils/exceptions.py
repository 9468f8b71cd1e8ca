"""
Custom exception hierarchy for the resampled tuning engine.
"""

class TuningException(Exception):
    """Base exception for all system errors."""
    pass

class ConfigurationError(TuningException):
    """Configuration validation failed. `field` names the offending key."""

    def __init__(self, message: str, field: str = None):
        super().__init__(message)
        self.field = field

class DataValidationError(TuningException):
    """Data validation failed."""
    pass

class InsufficientDataError(TuningException):
    """A stratum, fold or recipe step has too few rows."""

    def __init__(self, message: str, stratum=None, fold=None):
        super().__init__(message)
        self.stratum = stratum
        self.fold = fold

class StepFitError(TuningException):
    """A preprocessing step could not be fit on the rows it was given."""

    def __init__(self, message: str, step: str = None):
        super().__init__(message)
        self.step = step

class ModelFitError(TuningException):
    """Model fitting failed."""
    pass

class EvaluationError(TuningException):
    """A (candidate, fold) evaluation failed fatally."""

    def __init__(self, message: str, candidate=None, fold=None, step=None):
        super().__init__(message)
        self.candidate = candidate
        self.fold = fold
        self.step = step

class EmptyLeaderboardError(TuningException):
    """No candidate produced a usable summary."""
    pass

class DataLeakageError(TuningException):
    """Held-out rows were seen while fitting."""
    pass
