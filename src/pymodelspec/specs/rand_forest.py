"""Random forests — ``rand_forest()`` for classification or regression.

The sklearn engine can predict with the first ``trees`` trees of one fitted
forest, so ``trees`` supports multi_predict().
"""

from __future__ import annotations

from typing import Any, Mapping

from pymodelspec.core.deferred import Deferred
from pymodelspec.core.registry import UNKNOWN_MODE, ModelRegistry
from pymodelspec.core.spec import ModelSpec, create
from pymodelspec.engines import scikit
from pymodelspec.specs._checks import check_number

MODEL = "rand_forest"

_ESTIMATORS = {
    "classification": "sklearn.ensemble.RandomForestClassifier",
    "regression": "sklearn.ensemble.RandomForestRegressor",
}
_TYPES = {
    "classification": ("class", "prob", "raw"),
    "regression": ("numeric", "raw"),
}


def rand_forest(
    mode: str = UNKNOWN_MODE,
    mtry: Any = None,
    trees: Any = None,
    min_n: Any = None,
    registry: ModelRegistry | None = None,
) -> ModelSpec:
    """Random forest. mtry: predictors sampled per split; min_n: smallest node to split."""
    return create(MODEL, mode=mode, registry=registry, mtry=mtry, trees=trees, min_n=min_n)


def translate_hook(args: dict[str, Deferred], spec: ModelSpec, engine: str) -> Mapping[str, Deferred]:
    check_number(args, "max_features", "mtry", low=1, integer=True)
    check_number(args, "n_estimators", "trees", low=1, integer=True)
    check_number(args, "min_samples_split", "min_n", low=2, integer=True)
    return args


def register(registry: ModelRegistry) -> None:
    registry.register_model(MODEL)
    for mode in ("classification", "regression"):
        registry.register_mode(MODEL, mode)
        registry.register_engine(MODEL, mode, "sklearn")
    registry.register_dependency(MODEL, "sklearn", "sklearn")

    registry.register_argument(MODEL, "sklearn", "mtry", "max_features", "pymodelspec.core.params.mtry")
    registry.register_argument(MODEL, "sklearn", "trees", "n_estimators", "pymodelspec.core.params.trees", True)
    registry.register_argument(MODEL, "sklearn", "min_n", "min_samples_split", "pymodelspec.core.params.min_n")

    for mode, estimator in _ESTIMATORS.items():
        registry.register_fit(MODEL, "sklearn", mode, scikit.fit_module(estimator))
        for type in _TYPES[mode]:
            registry.register_predict(MODEL, "sklearn", mode, type, scikit.forest_predict_module(type))

    registry.register_translation_hook(MODEL, translate_hook)
