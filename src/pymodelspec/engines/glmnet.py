"""Penalty-path engine — one fit, predictions at any penalty on the path.

A fit estimates one elastic-net model per penalty value (ElasticNet for the
gaussian family, saga LogisticRegression for binomial/multinomial). The path
always holds ``DEFAULT_PATH`` plus the penalties given by the user, which is
what makes ``penalty`` a submodel argument: predictions at a fitted penalty
use that submodel, predictions between two fitted penalties interpolate the
linear predictor of the neighbours, and penalties outside the path are
rejected.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import numpy as np
from sklearn.linear_model import ElasticNet, LogisticRegression

from pymodelspec.core.deferred import Deferred
from pymodelspec.core.registry import FitModule, FunctionRef, ModelRegistry, PredictModule
from pymodelspec.engines.scikit import class_post, elasticnet_params, numeric_post, prob_post

_PACKAGE = __name__

DEFAULT_PATH = np.geomspace(1e-3, 1.0, 8)
FAMILIES = ("gaussian", "binomial", "multinomial")
PREDICT_TYPES = ("numeric", "class", "prob", "raw")


@dataclass
class PenaltyPath:
    """Submodels fitted along a sorted penalty path."""
    family: str
    penalties: np.ndarray
    estimators: list[Any] = field(default_factory=list)
    classes_: np.ndarray | None = None

    def locate(self, penalty: float) -> tuple[int, int, float]:
        """Return (lower, upper, weight of upper) submodels for *penalty*.

        Both indices are equal when *penalty* is on the path.
        """
        penalties = self.penalties
        hits = np.flatnonzero(np.isclose(penalties, penalty, rtol=1e-8, atol=1e-12))
        if len(hits):
            idx = int(hits[0])
            return idx, idx, 0.0
        if penalty < penalties[0] or penalty > penalties[-1]:
            raise ValueError(
                f"Penalty {penalty:g} is outside the fitted path "
                f"[{penalties[0]:g}, {penalties[-1]:g}]; include it in `penalty` and refit"
            )
        upper = int(np.searchsorted(penalties, penalty))
        lower = upper - 1
        weight = (penalty - penalties[lower]) / (penalties[upper] - penalties[lower])
        return lower, upper, float(weight)


def _estimator(family: str, penalty: float, alpha: float, n_obs: int, max_iter: int) -> Any:
    if family == "gaussian":
        return ElasticNet(alpha=penalty, l1_ratio=alpha, max_iter=max_iter)
    # glmnet scales the penalty by the number of observations; C does not.
    C = 1e12 if penalty == 0 else 1.0 / (penalty * n_obs)
    return LogisticRegression(C=C, max_iter=max_iter, **elasticnet_params(alpha))


def glmnet_fit(
    x: Any,
    y: Any,
    family: str = "gaussian",
    lambda_: Any = None,
    alpha: float = 1.0,
    max_iter: int = 1000,
    weights: Any = None,
) -> PenaltyPath:
    """Fit the penalty path; *lambda_* adds one or more penalties to DEFAULT_PATH."""
    if family not in FAMILIES:
        raise ValueError(f"Unknown family '{family}'. Choose from: {list(FAMILIES)}")
    if not 0 <= alpha <= 1:
        raise ValueError(f"alpha must be between 0 and 1, got {alpha}")
    path = DEFAULT_PATH
    if lambda_ is not None:
        requested = np.atleast_1d(np.asarray(lambda_, dtype=float))
        if np.any(requested < 0):
            raise ValueError(f"Penalties must be non-negative, got {requested.tolist()}")
        path = np.concatenate([DEFAULT_PATH, requested])
    path = np.unique(path)

    if family == "binomial" and len(np.unique(y)) != 2:
        raise ValueError(f"The binomial family needs exactly 2 outcome levels, got {len(np.unique(y))}")

    estimators = []
    for penalty in path:
        est = _estimator(family, float(penalty), alpha, len(y), max_iter)
        est.fit(x, y, sample_weight=weights)
        estimators.append(est)
    classes = estimators[0].classes_ if family != "gaussian" else None
    return PenaltyPath(family=family, penalties=path, estimators=estimators, classes_=classes)


def _link(est: Any, new_x: Any) -> np.ndarray:
    if isinstance(est, ElasticNet):
        return est.predict(new_x)
    return est.decision_function(new_x)


def _from_link(path: PenaltyPath, eta: np.ndarray, type: str) -> np.ndarray:
    if type in ("numeric", "raw") or path.family == "gaussian":
        return eta
    if eta.ndim == 1:
        if type == "prob":
            p = 1.0 / (1.0 + np.exp(-eta))
            return np.column_stack([1.0 - p, p])
        return path.classes_[(eta > 0).astype(int)]
    if type == "prob":
        shifted = np.exp(eta - eta.max(axis=1, keepdims=True))
        return shifted / shifted.sum(axis=1, keepdims=True)
    return path.classes_[np.argmax(eta, axis=1)]


def glmnet_predict(object: PenaltyPath, new_x: Any, penalty: Any, type: str = "numeric") -> Any:
    """Predict at a single *penalty* on or between the fitted penalties.

    ``type="raw"`` returns the linear predictor.
    """
    if type not in PREDICT_TYPES:
        raise ValueError(f"Unknown prediction type '{type}'. Choose from: {list(PREDICT_TYPES)}")
    if penalty is None:
        raise ValueError("A penalty value is required to predict; set `penalty` in the model spec")
    values = np.atleast_1d(penalty)
    if len(values) != 1:
        raise ValueError(
            f"The model spec holds {len(values)} penalty values; predict() needs one. "
            "Use multi_predict() to predict at several penalties."
        )
    lower, upper, weight = object.locate(float(values[0]))
    if lower == upper and type != "raw":
        est = object.estimators[lower]
        return est.predict_proba(new_x) if type == "prob" else est.predict(new_x)
    eta = _link(object.estimators[lower], new_x)
    if weight:
        eta = (1.0 - weight) * eta + weight * _link(object.estimators[upper], new_x)
    return _from_link(object, eta, type)


# ---------------------------------------------------------------------------
# Module builders used by model definitions
# ---------------------------------------------------------------------------

def register_arguments(registry: ModelRegistry, model: str, engine: str = "glmnet") -> None:
    registry.register_argument(model, engine, "penalty", "lambda_", "pymodelspec.core.params.penalty", True)
    registry.register_argument(model, engine, "mixture", "alpha", "pymodelspec.core.params.mixture", False)


def fit_module(family: str) -> FitModule:
    return FitModule(
        interface="matrix",
        protected=("x", "y", "weights"),
        func=FunctionRef("glmnet_fit", _PACKAGE),
        defaults={"family": family},
    )


_POSTS = {"class": class_post, "prob": prob_post, "numeric": numeric_post}


def predict_module(type: str) -> PredictModule:
    return PredictModule(
        func=FunctionRef("glmnet_predict", _PACKAGE),
        args={
            "object": Deferred.expression("object"),
            "new_x": Deferred.expression("new_data"),
            "penalty": Deferred.expression("args.get('penalty')"),
            "type": type,
        },
        post=_POSTS.get(type),
    )
