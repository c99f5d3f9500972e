"""Fit dispatcher — execute a translated spec against the engine's function."""

from __future__ import annotations

import importlib.util
import logging
import time
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Mapping

import numpy as np
import pandas as pd

from pymodelspec.core.control import FitControl
from pymodelspec.core.descriptors import data_descriptors
from pymodelspec.core.errors import (
    FitExecutionError,
    InterfaceMismatchError,
    MissingDependencyError,
)
from pymodelspec.core.spec import ModelSpec
from pymodelspec.core.translate import translate
from pymodelspec.model.interfaces import (
    Preprocessor,
    ShapedData,
    outcome_levels,
    shape_formula,
    shape_xy,
)

if TYPE_CHECKING:
    from pymodelspec.core.registry import FunctionRef

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ModelFit:
    """A fitted model: the engine's object plus what prediction needs."""
    spec: ModelSpec
    fit: Any
    preproc: Preprocessor | None = None
    levels: list[Any] | None = None
    resolved_args: Mapping[str, Any] = field(default_factory=dict)
    elapsed: float = 0.0
    error: BaseException | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "resolved_args", MappingProxyType(dict(self.resolved_args)))

    @property
    def failed(self) -> bool:
        return self.error is not None

    def predict(self, new_data: Any, type: str | None = None, opts: Mapping[str, Any] | None = None) -> Any:
        from pymodelspec.model.predict import predict

        return predict(self, new_data, type=type, opts=opts)

    def multi_predict(self, new_data: Any = None, type: str | None = None, **kwargs: Any) -> pd.DataFrame:
        from pymodelspec.model.predict import multi_predict

        return multi_predict(self, new_data, type=type, **kwargs)

    def __str__(self) -> str:
        title = self.spec.model_name.replace("_", " ").title()
        header = f"{title} fit ({self.spec.mode}, engine '{self.spec.engine}')"
        if self.failed:
            return f"{header}\nFit failed: {self.error!r}"
        return f"{header}\nFit time: {self.elapsed:.3f}s\n\n{self.fit!r}"


def _check_dependencies(spec: ModelSpec) -> None:
    packages = spec.registry.get_dependencies(spec.model_name, spec.engine)
    missing = [p for p in packages if importlib.util.find_spec(p) is None]
    if missing:
        raise MissingDependencyError(
            f"Package(s) {missing} required by engine '{spec.engine}' of model "
            f"'{spec.model_name}' are not installed"
        )


def _load_function(ref: FunctionRef, spec: ModelSpec) -> Any:
    try:
        return ref.load()
    except (ImportError, AttributeError) as exc:
        raise MissingDependencyError(
            f"Cannot load fitting function '{ref}' for engine '{spec.engine}': {exc}"
        ) from exc


def _prepare(spec: ModelSpec) -> ModelSpec:
    if spec.method is None or spec.engine is None:
        spec = translate(spec)
    _check_dependencies(spec)
    return spec


def _execute(spec: ModelSpec, shaped: ShapedData, control: FitControl | None, weights: Any) -> ModelFit:
    control = control if control is not None else FitControl()
    method = spec.method

    levels = outcome_levels(shaped.outcome, spec.mode)
    bindings = data_descriptors(shaped.predictors, shaped.n_preds, levels)
    bindings.update(shaped.bindings)

    # Shared memo: a user expression is evaluated once for both views.
    memo: dict[int, Any] = {}
    mapped = {d.exposed_name for d in spec.registry.get_arguments(spec.model_name, spec.engine)}
    resolved_args = {
        name: value.resolve(bindings, memo)
        for name, value in spec.args.items()
        if value is not None and name in mapped
    }
    call_args = method.resolve_args(bindings, memo)

    if weights is not None:
        if "weights" not in method.data_args:
            raise InterfaceMismatchError(
                f"Engine '{spec.engine}' of model '{spec.model_name}' does not accept case weights"
            )
        weights = np.asarray(weights, dtype=float)
        if weights.shape != (len(shaped.outcome),):
            raise InterfaceMismatchError(
                f"weights must be 1-D with {len(shaped.outcome)} values, got shape {weights.shape}"
            )
    for slot, arg_name in method.data_args.items():
        if slot == "weights":
            if weights is not None:
                call_args[arg_name] = weights
        elif slot in shaped.bindings:
            call_args[arg_name] = shaped.bindings[slot]

    func = _load_function(method.func, spec)
    start = time.perf_counter()
    try:
        raw = func(**call_args)
    except Exception as exc:
        elapsed = time.perf_counter() - start
        if control.catch:
            if control.verbosity >= 1:
                logger.warning(
                    "Fitting model %r with engine %r failed: %s",
                    spec.model_name, spec.engine, exc,
                )
            return ModelFit(
                spec=spec, fit=None, preproc=shaped.preproc, levels=levels,
                resolved_args=resolved_args, elapsed=elapsed, error=exc,
            )
        if control.verbosity >= 1:
            logger.error("Fitting model %r with engine %r failed", spec.model_name, spec.engine)
        raise FitExecutionError(
            f"Engine '{spec.engine}' failed to fit model '{spec.model_name}': {exc}"
        ) from exc

    elapsed = time.perf_counter() - start
    logger.log(
        logging.INFO if control.verbosity > 1 else logging.DEBUG,
        "Fit %r with engine %r in %.3fs", spec.model_name, spec.engine, elapsed,
    )
    return ModelFit(
        spec=spec, fit=raw, preproc=shaped.preproc, levels=levels,
        resolved_args=resolved_args, elapsed=elapsed,
    )


def fit(
    spec: ModelSpec,
    formula: str,
    data: pd.DataFrame,
    control: FitControl | None = None,
    weights: Any = None,
) -> ModelFit:
    """Fit *spec* using a formula such as ``"y ~ x1 + x2"`` and a data frame."""
    spec = _prepare(spec)
    shaped = shape_formula(formula, data, spec.method.interface)
    return _execute(spec, shaped, control, weights)


def fit_xy(
    spec: ModelSpec,
    x: Any,
    y: Any,
    control: FitControl | None = None,
    weights: Any = None,
) -> ModelFit:
    """Fit *spec* on predictors *x* and outcome *y*."""
    spec = _prepare(spec)
    shaped = shape_xy(x, y, spec.method.interface)
    return _execute(spec, shaped, control, weights)
