"""Registry introspection: which engines, arguments and packages a model has."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pandas as pd

from pymodelspec.core.registry import ModelRegistry, get_registry

if TYPE_CHECKING:
    from pymodelspec.core.spec import ModelSpec
    from pymodelspec.model.fit import ModelFit


def show_engines(model: str, registry: ModelRegistry | None = None) -> pd.DataFrame:
    """One row per (engine, mode) pair registered for *model*."""
    registry = registry if registry is not None else get_registry()
    info = registry.lookup(model)
    rows = [
        {"engine": engine, "mode": mode}
        for mode in info.modes
        for engine in info.engines[mode]
    ]
    return pd.DataFrame(rows, columns=["engine", "mode"])


def describe(model: str, registry: ModelRegistry | None = None) -> str:
    """Human-readable summary of modes, engines, arguments and prediction types."""
    registry = registry if registry is not None else get_registry()
    info = registry.lookup(model)
    lines = [f"Information for `{model}`", "", f" modes: {', '.join(info.modes) or '-'}", "", " engines:"]
    for mode in info.modes:
        for engine in info.engines[mode]:
            fit_module = info.fit_modules.get((engine, mode))
            interface = fit_module.interface if fit_module else "no fit module"
            types = sorted(t for (e, m, t) in info.predict_modules if e == engine and m == mode)
            lines.append(f"   {mode:<15}{engine:<10}{interface:<12}predict: {', '.join(types) or '-'}")
    args = [
        (engine, d) for engine, descriptors in info.arguments.items() for d in descriptors
    ]
    if args:
        lines += ["", " arguments:"]
        for engine, d in args:
            submodel = " (submodel)" if d.has_submodel else ""
            lines.append(f"   {engine:<10}{d.exposed_name} --> {d.original_name}{submodel}")
    if info.dependencies:
        lines += ["", " dependencies:"]
        for engine, deps in info.dependencies.items():
            lines.append(f"   {engine:<10}{', '.join(deps)}")
    return "\n".join(lines)


def required_packages(obj: ModelSpec | ModelFit) -> list[str]:
    """Importable packages the spec's (or fit's) engine depends on."""
    spec = getattr(obj, "spec", obj)
    if spec.engine is None:
        return []
    return spec.registry.get_dependencies(spec.model_name, spec.engine)
