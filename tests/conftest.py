"""Shared test fixtures for PyModelSpec."""

import numpy as np
import pandas as pd
import pytest

from pymodelspec.core.registry import ModelRegistry


@pytest.fixture
def registry():
    """Empty registry, independent of the default one."""
    return ModelRegistry()


@pytest.fixture
def iris_df():
    """Iris-like table: four measurements, three well separated species."""
    np.random.seed(42)
    n = 50
    centers = {
        "setosa": (5.0, 3.4, 1.5, 0.2),
        "versicolor": (5.9, 2.8, 4.3, 1.3),
        "virginica": (6.6, 3.0, 5.6, 2.0),
    }
    frames = []
    for species, center in centers.items():
        values = np.array(center) + np.random.normal(0, 0.2, size=(n, 4))
        frame = pd.DataFrame(
            values, columns=["sepal_length", "sepal_width", "petal_length", "petal_width"],
        )
        frame["species"] = species
        frames.append(frame)
    df = pd.concat(frames, ignore_index=True)
    df["species"] = pd.Categorical(df["species"], categories=list(centers))
    return df


@pytest.fixture
def regression_df():
    """Numeric outcome with two numeric predictors and one categorical."""
    np.random.seed(42)
    n = 120
    df = pd.DataFrame({
        "x1": np.random.randn(n),
        "x2": np.random.uniform(1, 10, size=n),
        "group": np.random.choice(["a", "b", "c"], size=n),
    })
    shift = df["group"].map({"a": 0.0, "b": 1.5, "c": -1.0})
    df["y"] = 3 * df["x1"] + 0.5 * df["x2"] + shift + np.random.randn(n) * 0.3
    return df


@pytest.fixture
def two_class_df():
    """Binary outcome driven by x1 + x2."""
    np.random.seed(42)
    n = 150
    df = pd.DataFrame({
        "x1": np.random.randn(n),
        "x2": np.random.randn(n),
    })
    df["label"] = np.where(df["x1"] + df["x2"] > 0, "yes", "no")
    return df
