"""PyModelSpec — declarative model specifications with pluggable engines.

A model is described by its type, mode, main arguments and engine, and
nothing is evaluated until it is fit. The same specification can be fit
with any registered engine; argument names are translated per engine.

Quick start::

    from pymodelspec import linear_reg, quote

    spec = linear_reg(penalty=0.01).set_engine("glmnet")
    model = spec.fit("mpg ~ .", df)
    model.predict(df.head())
    model.multi_predict(df.head(), penalty=[0.001, 0.01, 0.1])

Defining a new model::

    from pymodelspec import FitModule, FunctionRef, get_registry

    reg = get_registry()
    reg.register_model("my_model")
    reg.register_mode("my_model", "regression")
    reg.register_engine("my_model", "regression", "my_engine")
"""

__version__ = "0.1.0"

# Errors
from pymodelspec.core.errors import (
    DuplicateModelError,
    DuplicateRegistrationError,
    ExecutionError,
    FitExecutionError,
    InterfaceMismatchError,
    InvalidArgumentError,
    InvalidModeError,
    MissingDependencyError,
    ModelSpecError,
    NoEngineError,
    NoSubmodelSupportError,
    OutcomeTypeError,
    PredictionError,
    PredictionShapeError,
    ProtectedArgumentError,
    RegistrationError,
    SpecificationError,
    TranslationError,
    UnknownEngineError,
    UnknownModelError,
    UnresolvedSymbolError,
    UnsupportedCombinationError,
    UnsupportedPredictionTypeError,
)

# Registry and specifications
from pymodelspec.core.control import FitControl, fit_control, load_control
from pymodelspec.core.deferred import Deferred, as_deferred, quote
from pymodelspec.core.introspect import describe, required_packages, show_engines
from pymodelspec.core.params import tunable
from pymodelspec.core.registry import (
    ArgumentDescriptor,
    FitModule,
    FunctionRef,
    ModelInfo,
    ModelRegistry,
    PredictModule,
    get_registry,
)
from pymodelspec.core.spec import ModelSpec, create
from pymodelspec.core.translate import CallDescriptor, translate

# Execution
from pymodelspec.model.fit import ModelFit, fit, fit_xy
from pymodelspec.model.predict import has_multi_predict, multi_predict, multi_predict_args, predict

# Built-in models
from pymodelspec.specs import linear_reg, logistic_reg, multinom_reg, rand_forest

__all__ = [
    # Errors
    "ModelSpecError", "RegistrationError", "DuplicateModelError",
    "DuplicateRegistrationError", "UnknownModelError", "UnknownEngineError",
    "UnsupportedCombinationError", "SpecificationError", "InvalidModeError",
    "NoEngineError", "TranslationError", "ProtectedArgumentError",
    "InvalidArgumentError", "ExecutionError", "FitExecutionError",
    "InterfaceMismatchError", "OutcomeTypeError", "MissingDependencyError",
    "PredictionError", "UnsupportedPredictionTypeError", "NoSubmodelSupportError",
    "UnresolvedSymbolError", "PredictionShapeError",
    # Registry and specifications
    "ModelRegistry", "ModelInfo", "ArgumentDescriptor", "FitModule",
    "PredictModule", "FunctionRef", "get_registry",
    "Deferred", "quote", "as_deferred",
    "ModelSpec", "create", "CallDescriptor", "translate",
    "FitControl", "fit_control", "load_control",
    "describe", "show_engines", "required_packages", "tunable",
    # Execution
    "ModelFit", "fit", "fit_xy", "predict", "multi_predict",
    "has_multi_predict", "multi_predict_args",
    # Built-in models
    "linear_reg", "logistic_reg", "multinom_reg", "rand_forest",
]
