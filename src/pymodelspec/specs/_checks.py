"""Argument checks shared by the translation hooks of the built-in models.

Only literal values are checked; expressions are validated by the engine
when they are resolved at fit time.
"""

from __future__ import annotations

from typing import Any, Mapping

import numpy as np

from pymodelspec.core.deferred import Deferred
from pymodelspec.core.errors import InvalidArgumentError

_UNSET = object()


def literal(args: Mapping[str, Deferred], name: str) -> Any:
    value = args.get(name)
    if value is None or not value.is_literal():
        return _UNSET
    return value.resolve()


def check_number(
    args: Mapping[str, Deferred],
    name: str,
    exposed: str,
    low: float | None = None,
    high: float | None = None,
    integer: bool = False,
    single: bool = True,
) -> None:
    """Validate the literal behind engine argument *name* (user-facing *exposed*)."""
    value = literal(args, name)
    if value is _UNSET:
        return
    values = np.atleast_1d(np.asarray(value, dtype=object)).tolist()
    if single and len(values) != 1:
        raise InvalidArgumentError(exposed, f"takes a single value, got {len(values)}")
    for v in values:
        if isinstance(v, (bool, np.bool_)):
            raise InvalidArgumentError(exposed, "must be a number, not a boolean")
        if not isinstance(v, (int, float, np.integer, np.floating)):
            raise InvalidArgumentError(exposed, f"must be a number, got {type(v).__name__}")
        if integer and float(v) != int(v):
            raise InvalidArgumentError(exposed, f"must be a whole number, got {v}")
        if low is not None and v < low:
            raise InvalidArgumentError(exposed, f"must be >= {low}, got {v}")
        if high is not None and v > high:
            raise InvalidArgumentError(exposed, f"must be <= {high}, got {v}")
