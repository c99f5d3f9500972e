"""scikit-learn engines — fit/predict wrappers and module builders."""

from __future__ import annotations

import importlib
from typing import Any

import numpy as np
import pandas as pd
import sklearn
from sklearn.base import is_classifier
from sklearn.utils.fixes import parse_version

from pymodelspec.core.deferred import Deferred
from pymodelspec.core.registry import FitModule, FunctionRef, PredictModule

_PACKAGE = __name__

# From scikit-learn 1.8 LogisticRegression infers the elastic-net penalty from
# l1_ratio and penalty="elasticnet" is deprecated.
ELASTICNET_PENALTY_ARG = parse_version(sklearn.__version__) < parse_version("1.8")


def elasticnet_params(l1_ratio: Any) -> dict[str, Any]:
    """LogisticRegression keyword arguments for an elastic-net fit with saga."""
    params: dict[str, Any] = {"solver": "saga", "l1_ratio": l1_ratio}
    if ELASTICNET_PENALTY_ARG:
        params["penalty"] = "elasticnet"
    return params


def _load_estimator(path: str) -> type:
    module_name, _, name = path.rpartition(".")
    return getattr(importlib.import_module(module_name), name)


def sklearn_fit(x: Any, y: Any, estimator: str, sample_weight: Any = None, **params: Any) -> Any:
    """Construct ``estimator`` (a dotted class path) with *params* and fit it."""
    model = _load_estimator(estimator)(**params)
    if sample_weight is not None:
        model.fit(x, y, sample_weight=sample_weight)
    else:
        model.fit(x, y)
    return model


def sklearn_predict(object: Any, new_data: Any, method: str = "predict") -> Any:
    return getattr(object, method)(new_data)


def forest_predict(object: Any, new_data: Any, trees: Any = None, method: str = "predict") -> Any:
    """Predict with only the first *trees* trees of a fitted forest."""
    n_total = len(object.estimators_)
    if trees is None:
        return getattr(object, method)(new_data)
    k = int(trees)
    if k < 1 or k > n_total:
        raise ValueError(f"trees must be between 1 and the {n_total} fitted trees, got {trees}")
    if k == n_total:
        return getattr(object, method)(new_data)
    subset = object.estimators_[:k]
    if is_classifier(object):
        proba = np.mean([tree.predict_proba(new_data) for tree in subset], axis=0)
        if method == "predict_proba":
            return proba
        return object.classes_[np.argmax(proba, axis=1)]
    return np.mean([tree.predict(new_data) for tree in subset], axis=0)


# ---------------------------------------------------------------------------
# Output normalization
# ---------------------------------------------------------------------------

def class_post(raw: Any, model_fit: Any) -> pd.Categorical:
    return pd.Categorical(np.asarray(raw).ravel(), categories=model_fit.levels)


def prob_post(raw: Any, model_fit: Any) -> pd.DataFrame:
    """One column per outcome level, in level order."""
    classes = list(model_fit.fit.classes_)
    frame = pd.DataFrame(np.asarray(raw), columns=classes)
    return frame.reindex(columns=model_fit.levels)


def numeric_post(raw: Any, model_fit: Any) -> np.ndarray:
    return np.asarray(raw, dtype=float).ravel()


# ---------------------------------------------------------------------------
# Module builders used by model definitions
# ---------------------------------------------------------------------------

def fit_module(estimator: str, **defaults: Any) -> FitModule:
    """Matrix-interface fit module constructing the given estimator class."""
    return FitModule(
        interface="matrix",
        protected=("x", "y", "sample_weight"),
        func=FunctionRef("sklearn_fit", _PACKAGE),
        defaults={"estimator": estimator, **defaults},
        data_args={"weights": "sample_weight"},
    )


_POSTS = {"class": class_post, "prob": prob_post, "numeric": numeric_post}
_METHODS = {"class": "predict", "prob": "predict_proba", "numeric": "predict", "raw": "predict"}


def predict_module(type: str) -> PredictModule:
    return PredictModule(
        func=FunctionRef("sklearn_predict", _PACKAGE),
        args={
            "object": Deferred.expression("object"),
            "new_data": Deferred.expression("new_data"),
            "method": _METHODS[type],
        },
        post=_POSTS.get(type),
    )


def forest_predict_module(type: str) -> PredictModule:
    """Like predict_module, honouring a ``trees`` submodel value."""
    return PredictModule(
        func=FunctionRef("forest_predict", _PACKAGE),
        args={
            "object": Deferred.expression("object"),
            "new_data": Deferred.expression("new_data"),
            "trees": Deferred.expression("args.get('trees')"),
            "method": _METHODS[type],
        },
        post=_POSTS.get(type),
    )
