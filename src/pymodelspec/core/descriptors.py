"""Data descriptors — symbols describing the training data.

Deferred arguments may reference these names, e.g. ``quote("n_preds // 3")``
for a random forest's ``mtry``; they are bound when the fit is executed.
"""

from __future__ import annotations

from typing import Any

import pandas as pd

DESCRIPTOR_NAMES = ("n_obs", "n_cols", "n_preds", "n_levels", "levels", "n_factors")


def data_descriptors(
    predictors: pd.DataFrame,
    n_preds: int,
    levels: list[Any] | None = None,
) -> dict[str, Any]:
    """Compute descriptor bindings.

    predictors : the predictor columns before dummy encoding.
    n_preds : number of predictor columns the engine actually receives.
    levels : outcome levels for classification, None otherwise.
    """
    n_factors = sum(
        1 for col in predictors.columns
        if not pd.api.types.is_numeric_dtype(predictors[col])
        or pd.api.types.is_bool_dtype(predictors[col])
    )
    return {
        "n_obs": int(predictors.shape[0]),
        "n_cols": int(predictors.shape[1]),
        "n_preds": int(n_preds),
        "n_levels": len(levels) if levels is not None else 0,
        "levels": list(levels) if levels is not None else None,
        "n_factors": n_factors,
    }
