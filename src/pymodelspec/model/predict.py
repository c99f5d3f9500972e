"""Prediction dispatcher — run a fitted model's engine predict function on new data.

Every prediction type has a canonical output which ``predict`` formats into a
DataFrame with one row per row of ``new_data``, in the same order:

- "class"   → ``.pred_class`` (categorical with the training levels)
- "prob"    → ``.pred_<level>`` per outcome level
- "numeric" → ``.pred``
- "raw"     → whatever the engine returns, unformatted
"""

from __future__ import annotations

import itertools
import logging
from typing import TYPE_CHECKING, Any, Mapping

import numpy as np
import pandas as pd

from pymodelspec.core.errors import (
    FitExecutionError,
    MissingDependencyError,
    NoSubmodelSupportError,
    PredictionShapeError,
    UnsupportedPredictionTypeError,
)
from pymodelspec.core.registry import PREDICTION_TYPES
from pymodelspec.model.interfaces import shape_new_data

if TYPE_CHECKING:
    from pymodelspec.core.spec import ModelSpec
    from pymodelspec.model.fit import ModelFit

logger = logging.getLogger(__name__)

_DEFAULT_TYPES = {"classification": "class", "regression": "numeric"}
_TYPE_MODES = {
    "class": ("classification",),
    "prob": ("classification",),
    "numeric": ("regression",),
}


def _check_fit(model_fit: ModelFit) -> None:
    if model_fit.failed:
        raise FitExecutionError(
            f"Cannot predict with model '{model_fit.spec.model_name}': "
            f"the fit failed with {model_fit.error!r}"
        )


def _prediction_type(model_fit: ModelFit, type: str | None) -> str:
    mode = model_fit.spec.mode
    if type is None:
        type = _DEFAULT_TYPES.get(mode)
        if type is None:
            raise UnsupportedPredictionTypeError(f"No default prediction type for mode '{mode}'")
    if type not in PREDICTION_TYPES:
        raise UnsupportedPredictionTypeError(
            f"Unknown prediction type '{type}'. Choose from: {list(PREDICTION_TYPES)}"
        )
    modes = _TYPE_MODES.get(type)
    if modes is not None and mode not in modes:
        raise UnsupportedPredictionTypeError(
            f"Prediction type '{type}' is for {list(modes)} models; "
            f"this model is in '{mode}' mode"
        )
    return type


def _run_engine(
    model_fit: ModelFit,
    new_data: Any,
    type: str,
    args: Mapping[str, Any],
    opts: Mapping[str, Any] | None = None,
) -> Any:
    spec = model_fit.spec
    module = spec.registry.get_predict_module(spec.model_name, spec.engine, spec.mode, type)
    if module.pre is not None:
        new_data = module.pre(new_data, model_fit)
    bindings = {
        "object": model_fit.fit,
        "new_data": new_data,
        "model_fit": model_fit,
        "args": dict(args),
    }
    call_args = {name: value.resolve(bindings) for name, value in module.args.items()}
    if opts:
        call_args.update(opts)
    try:
        func = module.func.load()
    except (ImportError, AttributeError) as exc:
        raise MissingDependencyError(f"Cannot load prediction function '{module.func}': {exc}") from exc
    raw = func(**call_args)
    if module.post is not None:
        raw = module.post(raw, model_fit)
    return raw


def _format(result: Any, type: str, model_fit: ModelFit, n_rows: int) -> pd.DataFrame:
    if type == "class":
        out = pd.DataFrame({".pred_class": pd.Categorical(np.asarray(result), categories=model_fit.levels)})
    elif type == "prob":
        frame = pd.DataFrame(result).reset_index(drop=True)
        out = frame.rename(columns=lambda c: f".pred_{c}")
    elif type == "numeric":
        values = np.asarray(result, dtype=float)
        if values.ndim == 2 and values.shape[1] == 1:
            values = values[:, 0]
        out = pd.DataFrame({".pred": values})
    else:
        frame = pd.DataFrame(result).reset_index(drop=True)
        out = frame.rename(columns=lambda c: c if str(c).startswith(".pred") else f".pred_{c}")
    if len(out) != n_rows:
        raise PredictionShapeError(
            f"Engine '{model_fit.spec.engine}' returned {len(out)} predictions "
            f"for {n_rows} rows of new data"
        )
    return out


def predict(
    model_fit: ModelFit,
    new_data: Any,
    type: str | None = None,
    opts: Mapping[str, Any] | None = None,
) -> Any:
    """Predict from a fitted model.

    type defaults to "class" for classification and "numeric" for regression.
    opts are extra engine arguments, only used with type="raw".
    """
    _check_fit(model_fit)
    type = _prediction_type(model_fit, type)
    if opts and type != "raw":
        logger.warning("opts are only used for raw predictions and were ignored")
        opts = None
    shaped = shape_new_data(model_fit.preproc, new_data)
    result = _run_engine(model_fit, shaped, type, model_fit.resolved_args, opts)
    if type == "raw":
        return result
    return _format(result, type, model_fit, len(new_data))


def multi_predict_args(obj: ModelFit | ModelSpec) -> list[str]:
    """Arguments for which one fit can predict at several values."""
    spec = getattr(obj, "spec", obj)
    if spec.engine is None:
        return []
    descriptors = spec.registry.get_arguments(spec.model_name, spec.engine)
    return [d.exposed_name for d in descriptors if d.has_submodel]


def has_multi_predict(obj: ModelFit | ModelSpec) -> bool:
    return bool(multi_predict_args(obj))


def multi_predict(
    model_fit: ModelFit,
    new_data: Any = None,
    type: str | None = None,
    **kwargs: Any,
) -> pd.DataFrame:
    """Predict at several values of submodel arguments from a single fit.

    Returns a DataFrame with one ``.pred`` cell per row of *new_data*; each
    cell is a DataFrame with one row per combination of the varying values,
    holding the prediction columns followed by the argument columns.
    """
    if "newdata" in kwargs:
        raise TypeError("multi_predict() got an unexpected argument 'newdata'. Did you mean 'new_data'?")
    if new_data is None:
        raise TypeError("multi_predict() missing required argument 'new_data'")
    _check_fit(model_fit)

    supported = multi_predict_args(model_fit)
    if not supported:
        raise NoSubmodelSupportError(
            f"Engine '{model_fit.spec.engine}' of model '{model_fit.spec.model_name}' "
            "does not support submodel predictions"
        )
    unknown = sorted(set(kwargs) - set(supported))
    if unknown:
        raise NoSubmodelSupportError(
            f"Argument(s) {unknown} do not support submodel predictions. Available: {supported}"
        )

    type = _prediction_type(model_fit, type)
    if type == "raw":
        raise UnsupportedPredictionTypeError("multi_predict() does not support raw predictions")

    varying = dict(kwargs)
    if not varying:
        for name in supported:
            if model_fit.resolved_args.get(name) is not None:
                varying[name] = model_fit.resolved_args[name]
        if not varying:
            raise ValueError(f"No values given for any of {supported}")

    names = list(varying)
    grids = [sorted(np.atleast_1d(varying[name]).tolist()) for name in names]
    shaped = shape_new_data(model_fit.preproc, new_data)
    n_rows = len(new_data)

    frames = []
    for combo in itertools.product(*grids):
        args = dict(model_fit.resolved_args)
        args.update(zip(names, combo))
        result = _run_engine(model_fit, shaped, type, args)
        frame = _format(result, type, model_fit, n_rows)
        for name, value in zip(names, combo):
            frame[name] = value
        frame[".row"] = np.arange(n_rows)
        frames.append(frame)

    stacked = pd.concat(frames, ignore_index=True)
    nested = np.empty(n_rows, dtype=object)
    for row, group in stacked.groupby(".row", sort=True):
        nested[row] = group.drop(columns=".row").reset_index(drop=True)
    return pd.DataFrame({".pred": nested})
