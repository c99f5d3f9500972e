"""Linear regression — ``linear_reg()`` and its engines.

Engines:
    lm      ordinary least squares (sklearn LinearRegression); takes no main arguments
    glmnet  elastic-net penalty path; ``penalty`` supports multi_predict()
"""

from __future__ import annotations

from typing import Any, Mapping

from pymodelspec.core.deferred import Deferred
from pymodelspec.core.registry import ModelRegistry
from pymodelspec.core.spec import ModelSpec, create
from pymodelspec.engines import glmnet, scikit
from pymodelspec.specs._checks import check_number

MODEL = "linear_reg"


def linear_reg(
    mode: str = "regression",
    penalty: Any = None,
    mixture: Any = None,
    registry: ModelRegistry | None = None,
) -> ModelSpec:
    """Linear regression. penalty: amount of regularization; mixture: L1 proportion."""
    return create(MODEL, mode=mode, registry=registry, penalty=penalty, mixture=mixture)


def translate_hook(args: dict[str, Deferred], spec: ModelSpec, engine: str) -> Mapping[str, Deferred]:
    if engine == "glmnet":
        check_number(args, "lambda_", "penalty", low=0, single=False)
        check_number(args, "alpha", "mixture", low=0, high=1)
    return args


def register(registry: ModelRegistry) -> None:
    registry.register_model(MODEL)
    registry.register_mode(MODEL, "regression")

    registry.register_engine(MODEL, "regression", "lm")
    registry.register_dependency(MODEL, "lm", "sklearn")
    registry.register_fit(MODEL, "lm", "regression", scikit.fit_module("sklearn.linear_model.LinearRegression"))
    for type in ("numeric", "raw"):
        registry.register_predict(MODEL, "lm", "regression", type, scikit.predict_module(type))

    registry.register_engine(MODEL, "regression", "glmnet")
    registry.register_dependency(MODEL, "glmnet", "sklearn")
    glmnet.register_arguments(registry, MODEL)
    registry.register_fit(MODEL, "glmnet", "regression", glmnet.fit_module("gaussian"))
    for type in ("numeric", "raw"):
        registry.register_predict(MODEL, "glmnet", "regression", type, glmnet.predict_module(type))

    registry.register_translation_hook(MODEL, translate_hook)
