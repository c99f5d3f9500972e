"""Translation — turn a ModelSpec into an engine-native call descriptor."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Mapping

from pymodelspec.core.deferred import Deferred, as_deferred
from pymodelspec.core.errors import InvalidModeError, NoEngineError, ProtectedArgumentError
from pymodelspec.core.registry import UNKNOWN_MODE, FunctionRef

if TYPE_CHECKING:
    from pymodelspec.core.spec import ModelSpec

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CallDescriptor:
    """A frozen, ready-to-invoke description of an engine's fit call."""
    func: FunctionRef
    args: Mapping[str, Deferred]
    interface: str
    protected: tuple[str, ...] = ()
    data_args: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))

    def resolve_args(
        self, bindings: Mapping[str, Any] | None = None, memo: dict[int, Any] | None = None,
    ) -> dict[str, Any]:
        """Evaluate every argument against *bindings*, keeping argument order.

        Values already in *memo* (see :meth:`Deferred.resolve`) are reused.
        """
        return {name: value.resolve(bindings, memo) for name, value in self.args.items()}


def _check_protected(args: Mapping[str, Any], protected: tuple[str, ...], spec: ModelSpec, engine: str) -> None:
    clash = [name for name in args if name in protected]
    if clash:
        raise ProtectedArgumentError(clash, spec.model_name, engine)


def translate(spec: ModelSpec, engine: str | None = None) -> ModelSpec:
    """Build the fit call for *spec* with *engine* (or the spec's own engine).

    Merge order: fit-module defaults, then user arguments renamed through the
    registry's argument descriptors, then engine arguments verbatim. Protected
    arguments are rejected whatever their source.
    """
    engine = engine or spec.engine
    if engine is None:
        raise NoEngineError(
            f"No engine set for model '{spec.model_name}'. "
            f"Use set_engine() with one of: {spec.registry.engines_for(spec.model_name, spec.mode)}"
        )
    if spec.mode == UNKNOWN_MODE:
        raise InvalidModeError(
            f"Model '{spec.model_name}' has more than one mode; set one first "
            f"({spec.registry.modes_for(spec.model_name)})"
        )

    registry = spec.registry
    registry.check_engine(spec.model_name, engine, spec.mode)
    fit_module = registry.get_fit_module(spec.model_name, engine, spec.mode)

    args: dict[str, Deferred] = dict(fit_module.defaults)

    descriptors = registry.get_arguments(spec.model_name, engine)
    mapped = {d.exposed_name for d in descriptors}
    for descriptor in descriptors:
        value = spec.args.get(descriptor.exposed_name)
        if value is not None:
            args[descriptor.original_name] = value

    unused = [name for name, value in spec.args.items() if value is not None and name not in mapped]
    if unused:
        logger.warning(
            "Argument(s) %s are not used by engine %r of model %r and were dropped",
            unused, engine, spec.model_name,
        )

    engine_args = spec.engine_args
    if spec.engine not in (None, engine) and engine_args:
        logger.warning(
            "Engine argument(s) %s were set for engine %r, not %r, and were dropped",
            list(engine_args), spec.engine, engine,
        )
        engine_args = {}
    args.update(engine_args)
    _check_protected(args, fit_module.protected, spec, engine)

    hook = registry.get_translation_hook(spec.model_name)
    if hook is not None:
        hooked = hook(dict(args), spec=spec, engine=engine)
        args = {name: as_deferred(value) for name, value in hooked.items()}
        _check_protected(args, fit_module.protected, spec, engine)

    method = CallDescriptor(
        func=fit_module.func,
        args=MappingProxyType(args),
        interface=fit_module.interface,
        protected=fit_module.protected,
        data_args=fit_module.data_args,
    )
    return replace(spec, engine=engine, engine_args=engine_args, method=method)
