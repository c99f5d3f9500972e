"""Model specifications — declarative, unevaluated model descriptions."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Mapping

from pymodelspec.core.deferred import Deferred, as_deferred
from pymodelspec.core.errors import InvalidModeError
from pymodelspec.core.registry import UNKNOWN_MODE, ModelRegistry, get_registry

if TYPE_CHECKING:
    import pandas as pd

    from pymodelspec.core.control import FitControl
    from pymodelspec.core.translate import CallDescriptor
    from pymodelspec.model.fit import ModelFit


def _wrap_args(args: Mapping[str, Any]) -> Mapping[str, Deferred | None]:
    return MappingProxyType({
        name: None if value is None else as_deferred(value)
        for name, value in args.items()
    })


def _check_mode(registry: ModelRegistry, model_name: str, mode: str | None) -> str:
    """Validate *mode* for *model_name*; pick the default when it is None."""
    modes = registry.modes_for(model_name)
    if not modes:
        raise InvalidModeError(f"Model '{model_name}' has no registered modes")
    if mode is None:
        return modes[0] if len(modes) == 1 else UNKNOWN_MODE
    if mode == UNKNOWN_MODE and len(modes) > 1:
        return mode
    if mode not in modes:
        raise InvalidModeError(
            f"'{mode}' is not a known mode for model '{model_name}'. Available: {modes}"
        )
    return mode


def _format_value(value: Deferred | None) -> str:
    if value is None:
        return "<unset>"
    if value.is_literal():
        return repr(value.resolve())
    return value.source


@dataclass(frozen=True)
class ModelSpec:
    """A model type, its mode, its main arguments and (optionally) an engine.

    Specs are immutable: ``set_engine``, ``set_mode``, ``update`` and
    ``translate`` return new specs.
    """
    model_name: str
    mode: str
    args: Mapping[str, Deferred | None] = field(default_factory=dict)
    engine_args: Mapping[str, Deferred] = field(default_factory=dict)
    engine: str | None = None
    method: CallDescriptor | None = None
    registry: ModelRegistry = field(default_factory=get_registry, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "args", _wrap_args(self.args))
        object.__setattr__(
            self, "engine_args",
            MappingProxyType({k: as_deferred(v) for k, v in self.engine_args.items()}),
        )

    def set_engine(self, engine: str, **engine_args: Any) -> ModelSpec:
        """Attach an engine and engine-specific arguments (not remapped)."""
        self.registry.check_engine(self.model_name, engine, self.mode)
        return replace(self, engine=engine, engine_args=engine_args, method=None)

    def set_mode(self, mode: str) -> ModelSpec:
        mode = _check_mode(self.registry, self.model_name, mode)
        if self.engine is not None:
            self.registry.check_engine(self.model_name, self.engine, mode)
        return replace(self, mode=mode, method=None)

    def update(self, **args: Any) -> ModelSpec:
        """Replace main arguments; names must already belong to the spec."""
        unknown = sorted(set(args) - set(self.args))
        if unknown:
            raise TypeError(
                f"Unknown argument(s) {unknown} for model '{self.model_name}'. "
                f"Available: {sorted(self.args)}"
            )
        merged = dict(self.args)
        merged.update(args)
        return replace(self, args=merged, method=None)

    def translate(self, engine: str | None = None) -> ModelSpec:
        """Return a copy with ``method`` holding the engine-native fit call."""
        from pymodelspec.core.translate import translate

        return translate(self, engine)

    def fit(
        self,
        formula: str,
        data: pd.DataFrame,
        control: FitControl | None = None,
        weights: Any = None,
    ) -> ModelFit:
        from pymodelspec.model.fit import fit

        return fit(self, formula, data, control=control, weights=weights)

    def fit_xy(self, x: Any, y: Any, control: FitControl | None = None, weights: Any = None) -> ModelFit:
        from pymodelspec.model.fit import fit_xy

        return fit_xy(self, x, y, control=control, weights=weights)

    def __str__(self) -> str:
        title = self.model_name.replace("_", " ").title()
        lines = [f"{title} Model Specification ({self.mode})"]
        set_args = {k: v for k, v in self.args.items() if v is not None}
        if set_args:
            lines.append("")
            lines.append("Main Arguments:")
            lines.extend(f"  {k} = {_format_value(v)}" for k, v in set_args.items())
        if self.engine_args:
            lines.append("")
            lines.append("Engine-Specific Arguments:")
            lines.extend(f"  {k} = {_format_value(v)}" for k, v in self.engine_args.items())
        if self.engine is not None:
            lines.append("")
            lines.append(f"Computational engine: {self.engine}")
        return "\n".join(lines)


def create(
    model_name: str,
    mode: str | None = None,
    registry: ModelRegistry | None = None,
    **args: Any,
) -> ModelSpec:
    """Create a spec for *model_name*; arguments are captured, not evaluated.

    ``None`` marks an argument as unset. Strings are literals; use
    :func:`pymodelspec.quote` for expressions.
    """
    registry = registry if registry is not None else get_registry()
    mode = _check_mode(registry, model_name, mode)
    return ModelSpec(model_name=model_name, mode=mode, args=args, registry=registry)
