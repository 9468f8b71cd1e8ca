"""
Built-in configuration defaults and JSON schema.

The schema only checks structure and types; value ranges are enforced by
ConfigurationManager so each failure can name its field.
"""

DEFAULTS = {
    "data": {
        "file_path": None,
        "outcome": None,
        "drop_columns": []
    },
    "splitting": {
        "train_fraction": 0.75,
        "seed": 42,
        "stratify": True,
        "strata_breaks": 4,
        "strata_pool": 0.1,
        "strata_depth": 20
    },
    "resampling": {
        "scheme": "kfold",
        "folds": 10,
        "repeats": 1,
        "times": 25,
        "proportion": 0.75
    },
    "workflow": {
        "recipe": {"steps": []},
        "model": {"params": {}, "engine_args": {}}
    },
    "search": {
        "strategy": "grid",
        "grid_levels": 3,
        "grid": None,
        "lhs_size": 10,
        "racing": {
            "base": "grid",
            "alpha": 0.05,
            "burn_in": 3,
            "max_rounds": None,
            "num_ties": 10
        },
        "annealing": {
            "iterations": 10,
            "no_improve": 10,
            "restart": 8,
            "cooling_coef": 0.02,
            "radius": [0.05, 0.15],
            "flip": 0.75,
            "initial": 3
        }
    },
    "metric": {"name": None},
    "selection": {"rule": "best", "simplicity": []},
    "execution": {"n_jobs": 1, "backend": "loky"},
    "resources": {"max_hpo_configs": 1000, "worker_memory_mb": 512},
    "logging": {
        "level": "INFO",
        "log_dir": "logs",
        "log_file": "tuning.log",
        "log_to_console": True,
        "log_to_file": True,
        "colorful_console": True
    },
    "outputs": {
        "base_results_dir": "results",
        "save_artifacts": False,
        "save_excel_copy": False
    }
}

_NUMBER = {"type": "number"}
_INTEGER = {"type": "integer"}

DEFAULT_SCHEMA = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "required": ["data", "workflow"],
    "properties": {
        "data": {
            "type": "object",
            "required": ["outcome"],
            "properties": {
                "file_path": {"type": ["string", "null"]},
                "outcome": {
                    "oneOf": [
                        {"type": "string"},
                        {"type": "array", "items": {"type": "string"}, "minItems": 1}
                    ]
                },
                "drop_columns": {"type": "array", "items": {"type": "string"}}
            }
        },
        "splitting": {
            "type": "object",
            "properties": {
                "train_fraction": _NUMBER,
                "seed": _INTEGER,
                "stratify": {"type": "boolean"},
                "strata_breaks": _INTEGER,
                "strata_pool": _NUMBER,
                "strata_depth": _INTEGER
            }
        },
        "resampling": {
            "type": "object",
            "properties": {
                "scheme": {"type": "string"},
                "folds": _INTEGER,
                "repeats": _INTEGER,
                "times": _INTEGER,
                "proportion": _NUMBER
            }
        },
        "workflow": {
            "type": "object",
            "required": ["model"],
            "properties": {
                "recipe": {
                    "type": "object",
                    "properties": {
                        "steps": {
                            "type": "array",
                            "items": {"type": "object", "required": ["type"]}
                        }
                    }
                },
                "model": {
                    "type": "object",
                    "required": ["family"],
                    "properties": {
                        "family": {"type": "string"},
                        "mode": {"type": "string"},
                        "params": {"type": "object"},
                        "engine_args": {"type": "object"}
                    }
                }
            }
        },
        "search": {
            "type": "object",
            "properties": {
                "strategy": {"type": "string"},
                "grid_levels": {"oneOf": [_INTEGER, {"type": "object", "additionalProperties": _INTEGER}]},
                "grid": {"type": ["array", "null"], "items": {"type": "object"}},
                "lhs_size": _INTEGER,
                "racing": {
                    "type": "object",
                    "properties": {
                        "base": {"type": "string"},
                        "alpha": _NUMBER,
                        "burn_in": _INTEGER,
                        "max_rounds": {"type": ["integer", "null"]},
                        "num_ties": _INTEGER
                    }
                },
                "annealing": {
                    "type": "object",
                    "properties": {
                        "iterations": _INTEGER,
                        "no_improve": _INTEGER,
                        "restart": _INTEGER,
                        "cooling_coef": _NUMBER,
                        "radius": {"type": "array", "items": _NUMBER, "minItems": 2, "maxItems": 2},
                        "flip": _NUMBER,
                        "initial": _INTEGER
                    }
                }
            }
        },
        "metric": {
            "type": "object",
            "properties": {"name": {"type": ["string", "null"]}}
        },
        "selection": {
            "type": "object",
            "properties": {
                "rule": {"type": "string"},
                "simplicity": {
                    "type": "array",
                    "items": {"type": "array", "minItems": 2, "maxItems": 2}
                }
            }
        },
        "execution": {
            "type": "object",
            "properties": {
                "n_jobs": _INTEGER,
                "backend": {"type": "string"}
            }
        },
        "resources": {
            "type": "object",
            "properties": {
                "max_hpo_configs": _INTEGER,
                "max_memory_mb": _INTEGER,
                "worker_memory_mb": _INTEGER
            }
        },
        "logging": {"type": "object"},
        "outputs": {"type": "object"}
    }
}
