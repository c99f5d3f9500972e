"""Fit and predict dispatch, and data shaping for engine interfaces."""

from pymodelspec.model.fit import ModelFit, fit, fit_xy
from pymodelspec.model.predict import has_multi_predict, multi_predict, multi_predict_args, predict

__all__ = [
    "ModelFit", "fit", "fit_xy",
    "predict", "multi_predict", "has_multi_predict", "multi_predict_args",
]
