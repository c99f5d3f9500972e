"""Built-in model definitions.

Importing this package registers every built-in model into the default
registry. ``register_builtin_models`` does the same for any other registry.
"""

from __future__ import annotations

from pymodelspec.core.registry import ModelRegistry, get_registry
from pymodelspec.specs.linear_reg import linear_reg
from pymodelspec.specs.linear_reg import register as _register_linear_reg
from pymodelspec.specs.logistic_reg import logistic_reg
from pymodelspec.specs.logistic_reg import register as _register_logistic_reg
from pymodelspec.specs.multinom_reg import multinom_reg
from pymodelspec.specs.multinom_reg import register as _register_multinom_reg
from pymodelspec.specs.rand_forest import rand_forest
from pymodelspec.specs.rand_forest import register as _register_rand_forest

_REGISTRARS = (
    _register_linear_reg,
    _register_logistic_reg,
    _register_multinom_reg,
    _register_rand_forest,
)


def register_builtin_models(registry: ModelRegistry) -> None:
    """Register linear_reg, logistic_reg, multinom_reg and rand_forest."""
    for register in _REGISTRARS:
        register(registry)


register_builtin_models(get_registry())

__all__ = [
    "linear_reg",
    "logistic_reg",
    "multinom_reg",
    "rand_forest",
    "register_builtin_models",
]
