"""Fit control options and their YAML loader."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import yaml


@dataclass(frozen=True)
class FitControl:
    """Options governing how fits are executed.

    verbosity : int
        0 silences fit logging, 1 logs failures, 2 also logs fit timings at
        INFO level.
    catch : bool
        If True, a failing fitting function yields a failure ModelFit instead
        of raising FitExecutionError.
    """
    verbosity: int = 1
    catch: bool = False

    def __post_init__(self) -> None:
        if isinstance(self.verbosity, bool) or not isinstance(self.verbosity, int):
            raise TypeError(f"verbosity must be an integer, got {self.verbosity!r}")
        if self.verbosity < 0:
            raise ValueError(f"verbosity must be >= 0, got {self.verbosity}")
        if not isinstance(self.catch, bool):
            raise TypeError(f"catch must be a boolean, got {self.catch!r}")


def fit_control(verbosity: int = 1, catch: bool = False) -> FitControl:
    return FitControl(verbosity=verbosity, catch=catch)


def load_control(path: str | Path | None = None) -> FitControl:
    """Load fit control options from a YAML file.

    The file holds a mapping with an optional ``control`` section::

        control:
          verbosity: 0
          catch: true

    If no path is given, returns the default options.
    """
    if path is None:
        return FitControl()

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path) as f:
        raw = yaml.safe_load(f)

    if raw is None:
        return FitControl()
    if not isinstance(raw, dict):
        raise ValueError("Config file must be a YAML mapping")

    control = raw.get("control", {})
    if not isinstance(control, dict):
        raise ValueError("'control' section must be a mapping")

    unknown = sorted(set(control) - {"verbosity", "catch"})
    if unknown:
        raise ValueError(f"Unknown control option(s): {unknown}")

    defaults = FitControl()
    return FitControl(
        verbosity=control.get("verbosity", defaults.verbosity),
        catch=control.get("catch", defaults.catch),
    )
