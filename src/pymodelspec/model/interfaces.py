"""Shape training and new data into the form an engine's interface expects.

Three interfaces exist: "formula" (formula string + data frame), "data.frame"
(predictor frame + outcome series) and "matrix" (float ndarray + outcome
array). Users may supply either a formula and data or x and y; this module
converts between them.

Formula support is deliberately small::

    outcome ~ a + b          named columns
    outcome ~ .              every column except the outcome
    outcome ~ . - c          every column except the outcome and c
    outcome ~ log(a) + b     expression terms, evaluated with DataFrame.eval
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import numpy as np
import pandas as pd

from pymodelspec.core.deferred import validate_expression
from pymodelspec.core.errors import InterfaceMismatchError, OutcomeTypeError

OUTCOME_COLUMN = ".outcome"
_INTERCEPT_TERMS = {"0", "1"}


@dataclass(frozen=True)
class Formula:
    """A parsed ``outcome ~ terms`` formula."""
    outcome: str
    terms: tuple[str, ...]
    removed: tuple[str, ...] = ()
    source: str = ""

    def expand(self, data: pd.DataFrame) -> list[str]:
        """Return predictor terms with ``.`` expanded against *data*."""
        expanded: list[str] = []
        for term in self.terms:
            if term == ".":
                expanded.extend(
                    str(c) for c in data.columns
                    if c != self.outcome and c not in self.terms
                )
            else:
                expanded.append(term)
        seen: list[str] = []
        for term in expanded:
            if term not in self.removed and term not in seen:
                seen.append(term)
        return seen


def _split_terms(rhs: str) -> list[tuple[str, str]]:
    """Split at top-level ``+``/``-``; returns (sign, term) pairs."""
    pieces: list[tuple[str, str]] = []
    depth = 0
    sign = "+"
    current: list[str] = []
    for ch in rhs:
        if ch in "([":
            depth += 1
        elif ch in ")]":
            depth -= 1
        if depth == 0 and ch in "+-":
            term = "".join(current).strip()
            if term:
                pieces.append((sign, term))
            sign = ch
            current = []
        else:
            current.append(ch)
    term = "".join(current).strip()
    if term:
        pieces.append((sign, term))
    return pieces


def parse_formula(formula: str) -> Formula:
    if not isinstance(formula, str) or "~" not in formula:
        raise InterfaceMismatchError(f"Expected a formula like 'y ~ x1 + x2', got {formula!r}")
    lhs, rhs = formula.split("~", 1)
    outcome = lhs.strip()
    if not outcome:
        raise InterfaceMismatchError(f"Formula {formula!r} has no outcome")

    terms: list[str] = []
    removed: list[str] = []
    for sign, term in _split_terms(rhs):
        if term in _INTERCEPT_TERMS:
            continue
        (terms if sign == "+" else removed).append(term)
    if not terms:
        raise InterfaceMismatchError(f"Formula {formula!r} has no predictors")
    return Formula(outcome=outcome, terms=tuple(terms), removed=tuple(removed), source=formula)


def evaluate_terms(terms: list[str] | tuple[str, ...], data: pd.DataFrame) -> pd.DataFrame:
    """Build the predictor frame: plain columns are copied, others evaluated."""
    missing = [t for t in terms if t not in data.columns and t.isidentifier()]
    if missing:
        raise InterfaceMismatchError(
            f"Input data is missing required columns: {missing}. Expected: {list(terms)}"
        )
    cols: dict[str, Any] = {}
    for term in terms:
        if term in data.columns:
            cols[term] = data[term]
            continue
        try:
            validate_expression(term)
            cols[term] = data.eval(term)
        except Exception as exc:
            raise InterfaceMismatchError(f"Cannot evaluate formula term '{term}': {exc}") from exc
    return pd.DataFrame(cols, index=data.index)


def _as_frame(x: Any, columns: list[str] | tuple[str, ...] | None = None) -> pd.DataFrame:
    if isinstance(x, pd.DataFrame):
        return x
    if isinstance(x, np.ndarray) and x.ndim == 2:
        if columns is not None and len(columns) == x.shape[1]:
            names = list(columns)
        else:
            names = [f"x{i + 1}" for i in range(x.shape[1])]
        return pd.DataFrame(x, columns=names)
    raise InterfaceMismatchError(
        f"Predictors must be a DataFrame or a 2-D ndarray, got {type(x).__name__}"
    )


def _as_series(y: Any, n_rows: int) -> pd.Series:
    if isinstance(y, pd.DataFrame):
        if y.shape[1] != 1:
            raise InterfaceMismatchError(f"Expected a single outcome column, got {y.shape[1]}")
        y = y.iloc[:, 0]
    if isinstance(y, pd.Series):
        series = y.reset_index(drop=True)
    elif isinstance(y, (np.ndarray, list, tuple, pd.Categorical)):
        arr = np.asarray(y) if not isinstance(y, pd.Categorical) else y
        if getattr(arr, "ndim", 1) != 1:
            raise InterfaceMismatchError("Outcome must be one-dimensional")
        series = pd.Series(arr)
    else:
        raise InterfaceMismatchError(
            f"Outcome must be a Series, 1-D ndarray or list, got {type(y).__name__}"
        )
    if len(series) != n_rows:
        raise InterfaceMismatchError(
            f"Outcome has {len(series)} rows but predictors have {n_rows}"
        )
    return series


def outcome_levels(y: pd.Series, mode: str) -> list[Any] | None:
    """Check the outcome suits *mode*; return class levels for classification."""
    is_numeric = pd.api.types.is_numeric_dtype(y) and not pd.api.types.is_bool_dtype(y)
    if mode == "classification":
        if is_numeric:
            raise OutcomeTypeError(
                "For a classification model, the outcome should be categorical "
                f"(got numeric dtype {y.dtype})."
            )
        if isinstance(y.dtype, pd.CategoricalDtype):
            return list(y.cat.categories)
        return sorted(pd.unique(y.dropna()).tolist())
    if mode == "regression" and not is_numeric:
        raise OutcomeTypeError(
            f"For a regression model, the outcome should be numeric (got dtype {y.dtype})."
        )
    return None


def _encode(x: pd.DataFrame, columns: tuple[str, ...] | None = None) -> pd.DataFrame:
    """Dummy-encode non-numeric columns; align to *columns* when given."""
    if columns is None:
        return pd.get_dummies(x, drop_first=True, dtype=float)
    encoded = pd.get_dummies(x, dtype=float)
    return encoded.reindex(columns=list(columns), fill_value=0.0)


@dataclass(frozen=True)
class Preprocessor:
    """What is needed to shape new data exactly like the training data."""
    interface: str
    source: str  # "formula" or "xy"
    terms: tuple[str, ...]
    columns: tuple[str, ...] = ()
    formula: Formula | None = None
    outcome: str | None = None


@dataclass
class ShapedData:
    """Training data in the engine's shape plus what descriptors need."""
    bindings: dict[str, Any]
    predictors: pd.DataFrame
    outcome: pd.Series
    n_preds: int
    preproc: Preprocessor


def _shape_predictors(
    x: pd.DataFrame, y: pd.Series, interface: str, source: str,
    formula: Formula | None = None,
) -> ShapedData:
    terms = tuple(str(c) for c in x.columns)
    if interface == "matrix":
        encoded = _encode(x)
        columns = tuple(str(c) for c in encoded.columns)
        bindings = {"x": encoded.to_numpy(dtype=float), "y": y.to_numpy()}
        n_preds = len(columns)
    else:
        columns = terms
        bindings = {"x": x, "y": y}
        n_preds = len(columns)
    preproc = Preprocessor(
        interface=interface, source=source, terms=terms, columns=columns,
        formula=formula, outcome=formula.outcome if formula else None,
    )
    return ShapedData(bindings, x, y, n_preds, preproc)


def shape_formula(formula: str, data: Any, interface: str) -> ShapedData:
    """Shape ``formula`` + ``data`` for *interface*."""
    if not isinstance(data, pd.DataFrame):
        raise InterfaceMismatchError(f"data must be a DataFrame, got {type(data).__name__}")
    parsed = parse_formula(formula)
    if parsed.outcome in data.columns:
        y = data[parsed.outcome].reset_index(drop=True)
    else:
        y = evaluate_terms([parsed.outcome], data).iloc[:, 0].reset_index(drop=True)
    terms = parsed.expand(data)
    x = evaluate_terms(terms, data).reset_index(drop=True)

    if interface == "formula":
        preproc = Preprocessor(
            interface=interface, source="formula", terms=tuple(terms),
            columns=tuple(terms), formula=parsed, outcome=parsed.outcome,
        )
        bindings = {"formula": formula, "data": data}
        return ShapedData(bindings, x, y, len(terms), preproc)
    return _shape_predictors(x, y, interface, "formula", parsed)


def shape_xy(x: Any, y: Any, interface: str) -> ShapedData:
    """Shape ``x`` + ``y`` for *interface*."""
    x = _as_frame(x).reset_index(drop=True)
    y = _as_series(y, len(x))
    if interface == "formula":
        if OUTCOME_COLUMN in x.columns:
            raise InterfaceMismatchError(f"Predictors may not contain a '{OUTCOME_COLUMN}' column")
        data = x.copy()
        data[OUTCOME_COLUMN] = y.to_numpy()
        formula = f"{OUTCOME_COLUMN} ~ ."
        terms = tuple(str(c) for c in x.columns)
        preproc = Preprocessor(
            interface=interface, source="xy", terms=terms, columns=terms,
            formula=parse_formula(formula), outcome=OUTCOME_COLUMN,
        )
        return ShapedData({"formula": formula, "data": data}, x, y, len(terms), preproc)
    return _shape_predictors(x, y, interface, "xy")


def shape_new_data(preproc: Preprocessor, new_data: Any) -> Any:
    """Shape prediction data the way the training data was shaped."""
    frame = _as_frame(new_data, preproc.terms)
    if preproc.interface == "formula":
        if preproc.source == "xy":
            missing = [c for c in preproc.terms if c not in frame.columns]
            if missing:
                raise InterfaceMismatchError(
                    f"Input data is missing required columns: {missing}. "
                    f"Expected: {list(preproc.terms)}"
                )
        return frame
    x = evaluate_terms(preproc.terms, frame)
    if preproc.interface == "matrix":
        return _encode(x, preproc.columns).to_numpy(dtype=float)
    return x
