"""Model registry — which models, modes, engines and arguments exist.

The registry is written by model-definition modules at import time and read
by the translator and dispatcher afterwards. Registration order is enforced
by the API: a mode needs its model, an engine needs its mode, an argument
needs its engine, and fit/predict modules need the full combination.

Entry points for a definition module::

    reg = get_registry()
    reg.register_model("linear_reg")
    reg.register_mode("linear_reg", "regression")
    reg.register_engine("linear_reg", "regression", "lm")
    reg.register_argument("linear_reg", "lm", "penalty", "alpha")
    reg.register_fit("linear_reg", "lm", "regression", FitModule(...))
    reg.register_predict("linear_reg", "lm", "regression", "numeric", PredictModule(...))
"""

from __future__ import annotations

import importlib
import logging
import threading
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Mapping

from pymodelspec.core.deferred import Deferred, as_deferred
from pymodelspec.core.errors import (
    DuplicateModelError,
    DuplicateRegistrationError,
    InvalidModeError,
    UnknownEngineError,
    UnknownModelError,
    UnsupportedCombinationError,
    UnsupportedPredictionTypeError,
)

logger = logging.getLogger(__name__)

UNKNOWN_MODE = "unknown"
INTERFACES = ("formula", "data.frame", "matrix")
PREDICTION_TYPES = ("numeric", "class", "prob", "conf_int", "pred_int", "quantile", "raw")
DATA_SLOTS = ("formula", "data", "x", "y", "weights")

TranslationHook = Callable[..., Mapping[str, Deferred]]


# ---------------------------------------------------------------------------
# Typed descriptors
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class FunctionRef:
    """Where an engine function lives: ``package`` + attribute path ``name``.

    ``fn`` short-circuits the import for callables registered directly
    (handy in tests and notebooks).
    """

    name: str
    package: str | None = None
    fn: Callable | None = field(default=None, compare=False, repr=False)

    @classmethod
    def from_callable(cls, fn: Callable) -> FunctionRef:
        return cls(name=fn.__qualname__, package=fn.__module__, fn=fn)

    def load(self) -> Callable:
        """Import and return the referenced callable."""
        if self.fn is not None:
            return self.fn
        if self.package is None:
            module_name, _, attr = self.name.rpartition(".")
            if not module_name:
                raise ValueError(f"Function reference '{self.name}' has no package")
            obj: Any = importlib.import_module(module_name)
            parts = [attr]
        else:
            obj = importlib.import_module(self.package)
            parts = self.name.split(".")
        for part in parts:
            obj = getattr(obj, part)
        return obj

    def __str__(self) -> str:
        return f"{self.package}.{self.name}" if self.package else self.name


@dataclass(frozen=True)
class ArgumentDescriptor:
    """Maps a user-facing argument name onto one engine's native name."""

    exposed_name: str
    original_name: str
    constructor: str | None = None  # dotted reference for tuning-grid tooling
    has_submodel: bool = False

    def __post_init__(self) -> None:
        for attr in ("exposed_name", "original_name"):
            value = getattr(self, attr)
            if not isinstance(value, str) or not value.isidentifier():
                raise ValueError(f"{attr} must be a valid identifier, got {value!r}")


@dataclass(frozen=True)
class FitModule:
    """How to call an engine's fitting function.

    Parameters
    ----------
    interface : str
        "formula", "data.frame" or "matrix" — the data shape the function
        expects.
    protected : tuple of str
        Argument names filled in from the data at fit time; never user-settable.
    func : FunctionRef
        The fitting function.
    defaults : mapping
        Argument values used when the user supplies none. Plain values are
        wrapped as literals.
    data_args : mapping
        Data slot ("formula", "data", "x", "y", "weights") to function
        argument name. Defaults to the slot names themselves.
    """

    interface: str
    protected: tuple[str, ...]
    func: FunctionRef
    defaults: Mapping[str, Deferred] = field(default_factory=dict)
    data_args: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.interface not in INTERFACES:
            raise ValueError(f"Unknown interface '{self.interface}'. Choose from: {list(INTERFACES)}")
        protected = tuple(self.protected)
        defaults = {k: as_deferred(v) for k, v in dict(self.defaults).items()}
        overlap = sorted(set(defaults) & set(protected))
        if overlap:
            raise ValueError(f"Defaults {overlap} collide with protected arguments")
        data_args = {slot: slot for slot in DATA_SLOTS if slot in protected}
        data_args.update(self.data_args)
        unknown_slots = sorted(set(data_args) - set(DATA_SLOTS))
        if unknown_slots:
            raise ValueError(f"Unknown data slot(s) {unknown_slots}. Choose from: {list(DATA_SLOTS)}")
        unprotected = sorted(set(data_args.values()) - set(protected))
        if unprotected:
            raise ValueError(f"Data arguments {unprotected} must be protected")
        object.__setattr__(self, "protected", protected)
        object.__setattr__(self, "defaults", MappingProxyType(defaults))
        object.__setattr__(self, "data_args", MappingProxyType(data_args))


@dataclass(frozen=True)
class PredictModule:
    """How to call an engine's prediction function.

    ``args`` values are deferred; they may use the symbols ``object`` (the
    raw fitted object), ``new_data``, ``model_fit`` and ``args`` (resolved
    user arguments of the fit).
    """

    func: FunctionRef
    args: Mapping[str, Deferred] = field(default_factory=dict)
    pre: Callable | None = None
    post: Callable | None = None

    def __post_init__(self) -> None:
        args = {k: as_deferred(v) for k, v in dict(self.args).items()}
        object.__setattr__(self, "args", MappingProxyType(args))


@dataclass
class ModelEntry:
    """Everything registered for one model type."""

    name: str
    modes: list[str] = field(default_factory=list)
    engines: dict[str, list[str]] = field(default_factory=dict)
    arguments: dict[str, list[ArgumentDescriptor]] = field(default_factory=dict)
    fit_modules: dict[tuple[str, str], FitModule] = field(default_factory=dict)
    predict_modules: dict[tuple[str, str, str], PredictModule] = field(default_factory=dict)
    dependencies: dict[str, list[str]] = field(default_factory=dict)
    translation_hook: TranslationHook | None = None

    def all_engines(self) -> list[str]:
        seen: list[str] = []
        for mode in self.modes:
            for engine in self.engines.get(mode, []):
                if engine not in seen:
                    seen.append(engine)
        return seen


@dataclass(frozen=True)
class ModelInfo:
    """Read-only, optionally filtered view of a ModelEntry."""

    name: str
    modes: tuple[str, ...]
    engines: Mapping[str, tuple[str, ...]]
    arguments: Mapping[str, tuple[ArgumentDescriptor, ...]]
    fit_modules: Mapping[tuple[str, str], FitModule]
    predict_modules: Mapping[tuple[str, str, str], PredictModule]
    dependencies: Mapping[str, tuple[str, ...]]


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

class ModelRegistry:
    """Process-wide store of model metadata. Append-only; no deletion."""

    def __init__(self) -> None:
        self._models: dict[str, ModelEntry] = {}
        self._lock = threading.RLock()

    # -- lookups used by every register_* call ------------------------------

    def _entry(self, model: str) -> ModelEntry:
        if model not in self._models:
            raise UnknownModelError(
                f"Model '{model}' is not registered. Available: {self.models()}"
            )
        return self._models[model]

    def _check_mode(self, entry: ModelEntry, mode: str) -> None:
        if mode not in entry.modes:
            raise InvalidModeError(
                f"Mode '{mode}' is not registered for model '{entry.name}'. "
                f"Available: {entry.modes}"
            )

    def _check_engine(self, entry: ModelEntry, engine: str, mode: str | None = None) -> None:
        known = entry.engines.get(mode, []) if mode else entry.all_engines()
        if engine not in known:
            where = f" in mode '{mode}'" if mode else ""
            raise UnknownEngineError(
                f"Engine '{engine}' is not registered for model '{entry.name}'{where}. "
                f"Available: {known}"
            )

    def _check_combination(self, entry: ModelEntry, engine: str, mode: str) -> None:
        if mode not in entry.modes or engine not in entry.engines.get(mode, []):
            raise UnsupportedCombinationError(
                f"Model '{entry.name}' has no engine '{engine}' in mode '{mode}'"
            )

    # -- registration -------------------------------------------------------

    def register_model(self, name: str) -> None:
        with self._lock:
            if name in self._models:
                raise DuplicateModelError(f"Model '{name}' is already registered")
            self._models[name] = ModelEntry(name=name)
            logger.debug("Registered model %r", name)

    def register_mode(self, model: str, mode: str) -> None:
        with self._lock:
            entry = self._entry(model)
            if mode == UNKNOWN_MODE:
                raise InvalidModeError(f"'{UNKNOWN_MODE}' is reserved and cannot be registered")
            if mode not in entry.modes:
                entry.modes.append(mode)
                entry.engines[mode] = []

    def register_engine(self, model: str, mode: str, engine: str) -> None:
        with self._lock:
            entry = self._entry(model)
            self._check_mode(entry, mode)
            if engine not in entry.engines[mode]:
                entry.engines[mode].append(engine)

    def register_argument(
        self,
        model: str,
        engine: str,
        exposed_name: str,
        original_name: str,
        constructor: str | None = None,
        has_submodel: bool = False,
    ) -> None:
        with self._lock:
            entry = self._entry(model)
            self._check_engine(entry, engine)
            current = entry.arguments.setdefault(engine, [])
            if any(d.exposed_name == exposed_name for d in current):
                raise DuplicateRegistrationError(
                    f"Argument '{exposed_name}' is already registered for "
                    f"model '{model}' with engine '{engine}'"
                )
            current.append(ArgumentDescriptor(exposed_name, original_name, constructor, has_submodel))

    def register_fit(self, model: str, engine: str, mode: str, fit_module: FitModule) -> None:
        with self._lock:
            entry = self._entry(model)
            self._check_combination(entry, engine, mode)
            if (engine, mode) in entry.fit_modules:
                raise DuplicateRegistrationError(
                    f"A fit module is already registered for '{model}' ({engine}, {mode})"
                )
            entry.fit_modules[(engine, mode)] = fit_module

    def register_predict(
        self, model: str, engine: str, mode: str, type: str, predict_module: PredictModule,
    ) -> None:
        with self._lock:
            entry = self._entry(model)
            self._check_combination(entry, engine, mode)
            if type not in PREDICTION_TYPES:
                raise ValueError(f"Unknown prediction type '{type}'. Choose from: {list(PREDICTION_TYPES)}")
            if (engine, mode, type) in entry.predict_modules:
                raise DuplicateRegistrationError(
                    f"A '{type}' predict module is already registered for "
                    f"'{model}' ({engine}, {mode})"
                )
            entry.predict_modules[(engine, mode, type)] = predict_module

    def register_dependency(self, model: str, engine: str, package: str) -> None:
        with self._lock:
            entry = self._entry(model)
            self._check_engine(entry, engine)
            deps = entry.dependencies.setdefault(engine, [])
            if package not in deps:
                deps.append(package)

    def register_translation_hook(self, model: str, hook: TranslationHook) -> None:
        """Attach a model-specific hook run after the generic argument merge."""
        with self._lock:
            entry = self._entry(model)
            entry.translation_hook = hook

    # -- reads --------------------------------------------------------------

    def models(self) -> list[str]:
        """Return sorted list of registered model names."""
        return sorted(self._models)

    def has_model(self, name: str) -> bool:
        return name in self._models

    def modes_for(self, model: str) -> list[str]:
        return list(self._entry(model).modes)

    def engines_for(self, model: str, mode: str | None = None) -> list[str]:
        """Engines for *mode*, or for any mode when *mode* is None/unknown."""
        entry = self._entry(model)
        if mode is None or mode == UNKNOWN_MODE:
            return entry.all_engines()
        self._check_mode(entry, mode)
        return list(entry.engines[mode])

    def check_engine(self, model: str, engine: str, mode: str | None = None) -> None:
        """Raise UnknownEngineError unless *engine* is registered (for *mode*)."""
        entry = self._entry(model)
        self._check_engine(entry, engine, None if mode == UNKNOWN_MODE else mode)

    def get_arguments(self, model: str, engine: str) -> list[ArgumentDescriptor]:
        return list(self._entry(model).arguments.get(engine, []))

    def get_fit_module(self, model: str, engine: str, mode: str) -> FitModule:
        entry = self._entry(model)
        if (engine, mode) not in entry.fit_modules:
            raise UnsupportedCombinationError(
                f"No fit module registered for model '{model}' with engine "
                f"'{engine}' in mode '{mode}'"
            )
        return entry.fit_modules[(engine, mode)]

    def get_predict_module(self, model: str, engine: str, mode: str, type: str) -> PredictModule:
        entry = self._entry(model)
        if (engine, mode, type) not in entry.predict_modules:
            available = sorted(
                t for (e, m, t) in entry.predict_modules if e == engine and m == mode
            )
            raise UnsupportedPredictionTypeError(
                f"Prediction type '{type}' is not available for model '{model}' "
                f"with engine '{engine}' in mode '{mode}'. Available: {available}"
            )
        return entry.predict_modules[(engine, mode, type)]

    def get_dependencies(self, model: str, engine: str) -> list[str]:
        return list(self._entry(model).dependencies.get(engine, []))

    def get_translation_hook(self, model: str) -> TranslationHook | None:
        return self._entry(model).translation_hook

    def lookup(self, model: str, mode: str | None = None, engine: str | None = None) -> ModelInfo:
        """Return what is registered for *model*, filtered by mode and/or engine."""
        entry = self._entry(model)
        if mode is not None:
            self._check_mode(entry, mode)
        if engine is not None:
            self._check_engine(entry, engine, mode)

        modes = [m for m in entry.modes if mode is None or m == mode]
        engines = {
            m: tuple(e for e in entry.engines[m] if engine is None or e == engine)
            for m in modes
        }
        keep = {e for es in engines.values() for e in es}
        return ModelInfo(
            name=entry.name,
            modes=tuple(modes),
            engines=MappingProxyType(engines),
            arguments=MappingProxyType({
                e: tuple(args) for e, args in entry.arguments.items() if e in keep
            }),
            fit_modules=MappingProxyType({
                k: v for k, v in entry.fit_modules.items() if k[0] in keep and k[1] in modes
            }),
            predict_modules=MappingProxyType({
                k: v for k, v in entry.predict_modules.items() if k[0] in keep and k[1] in modes
            }),
            dependencies=MappingProxyType({
                e: tuple(deps) for e, deps in entry.dependencies.items() if e in keep
            }),
        )

    def __len__(self) -> int:
        return len(self._models)

    def __contains__(self, name: str) -> bool:
        return name in self._models


_default_registry = ModelRegistry()


def get_registry() -> ModelRegistry:
    """Return the process-wide registry the built-in models register into."""
    return _default_registry
