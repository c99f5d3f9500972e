"""Logistic regression — ``logistic_reg()`` and its engines.

Engines:
    sklearn  LogisticRegression; ``penalty`` is translated to ``C = 1 / penalty``
    glmnet   elastic-net penalty path (binomial family)
"""

from __future__ import annotations

from typing import Any, Mapping

from pymodelspec.core.deferred import Deferred
from pymodelspec.core.registry import ModelRegistry
from pymodelspec.core.spec import ModelSpec, create
from pymodelspec.engines import glmnet, scikit
from pymodelspec.specs._checks import check_number

MODEL = "logistic_reg"
CLASS_TYPES = ("class", "prob", "raw")


def logistic_reg(
    mode: str = "classification",
    penalty: Any = None,
    mixture: Any = None,
    registry: ModelRegistry | None = None,
) -> ModelSpec:
    """Logistic regression for two-class outcomes."""
    return create(MODEL, mode=mode, registry=registry, penalty=penalty, mixture=mixture)


def penalty_to_c(penalty: float) -> float:
    """sklearn's C is the inverse of the regularization strength."""
    return 1e12 if penalty == 0 else 1.0 / penalty


def sklearn_hook(args: dict[str, Deferred], spec: ModelSpec) -> dict[str, Deferred]:
    """Rewrite user penalty/mixture into LogisticRegression's C/l1_ratio."""
    check_number(args, "C", "penalty", low=0)
    check_number(args, "l1_ratio", "mixture", low=0, high=1)
    # only rewrite C when it came from `penalty`, not from engine arguments
    if "C" in args and args["C"] is spec.args.get("penalty"):
        args["C"] = args["C"].then(penalty_to_c)
    if "l1_ratio" in args:
        if scikit.ELASTICNET_PENALTY_ARG:
            args.setdefault("penalty", Deferred.literal("elasticnet"))
        args.setdefault("solver", Deferred.literal("saga"))
    return args


def translate_hook(args: dict[str, Deferred], spec: ModelSpec, engine: str) -> Mapping[str, Deferred]:
    if engine == "sklearn":
        return sklearn_hook(args, spec)
    if engine == "glmnet":
        check_number(args, "lambda_", "penalty", low=0, single=False)
        check_number(args, "alpha", "mixture", low=0, high=1)
    return args


def register_sklearn(registry: ModelRegistry, model: str) -> None:
    """Register the LogisticRegression engine for *model* (classification)."""
    registry.register_engine(model, "classification", "sklearn")
    registry.register_dependency(model, "sklearn", "sklearn")
    registry.register_argument(model, "sklearn", "penalty", "C", "pymodelspec.core.params.penalty")
    registry.register_argument(model, "sklearn", "mixture", "l1_ratio", "pymodelspec.core.params.mixture")
    registry.register_fit(
        model, "sklearn", "classification",
        scikit.fit_module("sklearn.linear_model.LogisticRegression", max_iter=1000),
    )
    for type in CLASS_TYPES:
        registry.register_predict(model, "sklearn", "classification", type, scikit.predict_module(type))


def register_glmnet(registry: ModelRegistry, model: str, family: str) -> None:
    registry.register_engine(model, "classification", "glmnet")
    registry.register_dependency(model, "glmnet", "sklearn")
    glmnet.register_arguments(registry, model)
    registry.register_fit(model, "glmnet", "classification", glmnet.fit_module(family))
    for type in CLASS_TYPES:
        registry.register_predict(model, "glmnet", "classification", type, glmnet.predict_module(type))


def register(registry: ModelRegistry) -> None:
    registry.register_model(MODEL)
    registry.register_mode(MODEL, "classification")
    register_sklearn(registry, MODEL)
    register_glmnet(registry, MODEL, "binomial")
    registry.register_translation_hook(MODEL, translate_hook)
