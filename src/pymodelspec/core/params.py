"""Tuning parameter ranges referenced by argument descriptors."""

from __future__ import annotations

import importlib
from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np
import pandas as pd

if TYPE_CHECKING:
    from pymodelspec.core.spec import ModelSpec


@dataclass(frozen=True)
class ParamRange:
    """A tunable parameter's range; ``log10`` ranges are given as exponents."""
    name: str
    low: float
    high: float
    transform: str | None = None
    integer: bool = False

    def grid(self, levels: int = 5) -> list[float]:
        """Return *levels* evenly spaced values (on the transformed scale)."""
        if levels < 1:
            raise ValueError(f"levels must be >= 1, got {levels}")
        values = np.linspace(self.low, self.high, levels)
        if self.transform == "log10":
            values = 10.0 ** values
        if self.integer:
            return sorted({int(round(v)) for v in values})
        return [float(v) for v in values]


def penalty() -> ParamRange:
    return ParamRange("penalty", -10.0, 0.0, transform="log10")


def mixture() -> ParamRange:
    return ParamRange("mixture", 0.0, 1.0)


def trees() -> ParamRange:
    return ParamRange("trees", 1, 2000, integer=True)


def mtry() -> ParamRange:
    # upper bound depends on the data; callers replace it with n_preds
    return ParamRange("mtry", 1, 10, integer=True)


def min_n() -> ParamRange:
    return ParamRange("min_n", 2, 40, integer=True)


def load_param(reference: str) -> ParamRange:
    """Resolve a dotted constructor reference such as ``pymodelspec.core.params.penalty``."""
    module_name, _, name = reference.rpartition(".")
    return getattr(importlib.import_module(module_name), name)()


def tunable(spec: ModelSpec) -> pd.DataFrame:
    """List the spec's engine arguments that have a parameter constructor."""
    if spec.engine is None:
        raise ValueError("Set an engine before asking which arguments are tunable")
    rows = []
    for d in spec.registry.get_arguments(spec.model_name, spec.engine):
        if d.constructor is None:
            continue
        rows.append({
            "name": d.exposed_name,
            "original_name": d.original_name,
            "constructor": d.constructor,
            "range": load_param(d.constructor),
            "has_submodel": d.has_submodel,
        })
    return pd.DataFrame(rows, columns=["name", "original_name", "constructor", "range", "has_submodel"])
