"""Exception hierarchy for model registration, specification and execution."""

from __future__ import annotations


class ModelSpecError(Exception):
    """Base class for every error raised by pymodelspec."""


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------

class RegistrationError(ModelSpecError):
    """A model-definition module registered something inconsistent."""


class DuplicateModelError(RegistrationError):
    pass


class DuplicateRegistrationError(RegistrationError):
    """An argument, fit module or predict module is registered twice."""


class UnknownModelError(RegistrationError, LookupError):
    pass


class UnknownEngineError(RegistrationError, LookupError):
    pass


class UnsupportedCombinationError(RegistrationError):
    """No fit module exists for a (model, mode, engine) triple."""


# ---------------------------------------------------------------------------
# Specification / translation
# ---------------------------------------------------------------------------

class SpecificationError(ModelSpecError):
    pass


class InvalidModeError(SpecificationError, ValueError):
    pass


class NoEngineError(SpecificationError):
    pass


class TranslationError(ModelSpecError):
    pass


class ProtectedArgumentError(TranslationError):
    """User or engine arguments collide with data slots reserved for fit time."""

    def __init__(self, names: list[str], model: str, engine: str) -> None:
        self.names = list(names)
        super().__init__(
            f"Argument(s) {self.names} cannot be set for model '{model}' with "
            f"engine '{engine}': they are filled in from the data at fit time."
        )


class InvalidArgumentError(TranslationError, ValueError):
    """Raised by model-specific translation hooks for bad argument values."""

    def __init__(self, name: str, message: str) -> None:
        self.name = name
        super().__init__(f"Argument '{name}': {message}")


# ---------------------------------------------------------------------------
# Execution
# ---------------------------------------------------------------------------

class ExecutionError(ModelSpecError):
    pass


class FitExecutionError(ExecutionError):
    """The underlying fitting function failed."""


class InterfaceMismatchError(ExecutionError, ValueError):
    """Training or new data cannot be shaped into the engine's interface."""


class OutcomeTypeError(InterfaceMismatchError):
    pass


class MissingDependencyError(ExecutionError, ImportError):
    pass


# ---------------------------------------------------------------------------
# Prediction
# ---------------------------------------------------------------------------

class PredictionError(ModelSpecError):
    pass


class UnsupportedPredictionTypeError(PredictionError, ValueError):
    pass


class NoSubmodelSupportError(PredictionError):
    pass


class UnresolvedSymbolError(PredictionError, NameError):
    """A deferred expression references symbols absent from its bindings."""

    def __init__(self, symbols: list[str], expression: str = "") -> None:
        self.symbols = sorted(symbols)
        where = f" in expression {expression!r}" if expression else ""
        super().__init__(f"Unresolved symbol(s) {self.symbols}{where}.")


class PredictionShapeError(PredictionError):
    """Prediction output does not line up with the rows of the new data."""
