"""Tests for core/spec.py."""

from __future__ import annotations

import pytest

from pymodelspec.core.deferred import Deferred, quote
from pymodelspec.core.errors import InvalidModeError, UnknownEngineError, UnknownModelError
from pymodelspec.core.registry import FitModule, FunctionRef
from pymodelspec.core.spec import create


@pytest.fixture
def forest_registry(registry):
    registry.register_model("rand_forest")
    for mode in ("classification", "regression"):
        registry.register_mode("rand_forest", mode)
        registry.register_engine("rand_forest", mode, "ranger")
    registry.register_engine("rand_forest", "regression", "spark")
    for mode in ("classification", "regression"):
        registry.register_fit(
            "rand_forest", "ranger", mode,
            FitModule(interface="data.frame", protected=("x", "y"), func=FunctionRef("len", "builtins")),
        )
    return registry


class TestCreate:
    def test_arguments_are_deferred(self, forest_registry):
        spec = create("rand_forest", mode="regression", registry=forest_registry, trees=500, mtry=None)
        assert isinstance(spec.args["trees"], Deferred)
        assert spec.args["trees"].resolve() == 500
        assert spec.args["mtry"] is None
        assert spec.engine is None
        assert spec.method is None

    def test_expression_argument_not_evaluated(self, forest_registry):
        spec = create("rand_forest", mode="regression", registry=forest_registry, mtry=quote("n_preds // 3"))
        assert spec.args["mtry"].symbols == frozenset({"n_preds"})

    def test_unknown_model(self, registry):
        with pytest.raises(UnknownModelError):
            create("nonexistent", registry=registry)

    def test_invalid_mode(self, forest_registry):
        with pytest.raises(InvalidModeError, match="Available"):
            create("rand_forest", mode="censored regression", registry=forest_registry)

    def test_default_mode_is_unknown_with_several_modes(self, forest_registry):
        spec = create("rand_forest", registry=forest_registry)
        assert spec.mode == "unknown"

    def test_default_mode_single(self, registry):
        registry.register_model("linear_reg")
        registry.register_mode("linear_reg", "regression")
        assert create("linear_reg", registry=registry).mode == "regression"


class TestSetEngine:
    def test_valid(self, forest_registry):
        spec = create("rand_forest", mode="regression", registry=forest_registry)
        with_engine = spec.set_engine("spark", num_threads=4)
        assert with_engine.engine == "spark"
        assert with_engine.engine_args["num_threads"].resolve() == 4
        assert spec.engine is None

    def test_engine_not_in_mode(self, forest_registry):
        spec = create("rand_forest", mode="classification", registry=forest_registry)
        with pytest.raises(UnknownEngineError):
            spec.set_engine("spark")

    def test_unknown_mode_accepts_any_mode_engine(self, forest_registry):
        spec = create("rand_forest", registry=forest_registry).set_engine("spark")
        assert spec.engine == "spark"


class TestSetModeAndUpdate:
    def test_set_mode(self, forest_registry):
        spec = create("rand_forest", registry=forest_registry).set_engine("ranger")
        assert spec.set_mode("classification").mode == "classification"

    def test_set_mode_checks_engine(self, forest_registry):
        spec = create("rand_forest", registry=forest_registry).set_engine("spark")
        with pytest.raises(UnknownEngineError):
            spec.set_mode("classification")

    def test_update(self, forest_registry):
        spec = create("rand_forest", mode="regression", registry=forest_registry, trees=10, mtry=None)
        updated = spec.update(mtry=3)
        assert updated.args["mtry"].resolve() == 3
        assert updated.args["trees"].resolve() == 10
        assert spec.args["mtry"] is None

    def test_update_unknown_argument(self, forest_registry):
        spec = create("rand_forest", mode="regression", registry=forest_registry, trees=10)
        with pytest.raises(TypeError, match="min_n"):
            spec.update(min_n=5)

    def test_translate_method(self, forest_registry):
        spec = create("rand_forest", mode="regression", registry=forest_registry).set_engine("ranger")
        translated = spec.translate()
        assert translated.method is not None
        assert translated.method.interface == "data.frame"


def test_str(forest_registry):
    spec = (
        create("rand_forest", mode="regression", registry=forest_registry, trees=100, mtry=quote("n_preds // 3"))
        .set_engine("ranger", importance="impurity")
    )
    text = str(spec)
    assert text.startswith("Rand Forest Model Specification (regression)")
    assert "Main Arguments:" in text
    assert "trees = 100" in text
    assert "mtry = n_preds // 3" in text
    assert "importance = 'impurity'" in text
    assert "Computational engine: ranger" in text
