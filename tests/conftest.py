"""Shared test fixtures."""

import numpy as np
import polars as pl
import pytest


@pytest.fixture
def city_df() -> pl.DataFrame:
    """Three cities with a numeric outcome; level means 2, 11 and 22."""
    return pl.DataFrame({
        "city": ["A", "A", "B", "B", "C", "C", "C"],
        "size": [1, 2, 3, 4, 5, 6, 7],
        "y": [1.0, 3.0, 10.0, 12.0, 20.0, 22.0, 24.0],
    })


@pytest.fixture
def binary_df() -> pl.DataFrame:
    """Two-level outcome with factor order yes < no.

    Level ``a`` is 3:1 for yes, ``b`` is 1:3 for yes.
    """
    return pl.DataFrame({
        "grp": ["a", "a", "a", "a", "b", "b", "b", "b"],
        "y": ["yes", "yes", "yes", "no", "yes", "no", "no", "no"],
    }).with_columns(pl.col("y").cast(pl.Enum(["yes", "no"])))


@pytest.fixture
def separated_df() -> pl.DataFrame:
    """Level ``a`` always yes, ``b`` always no, ``c`` mixed."""
    return pl.DataFrame({
        "grp": ["a", "a", "a", "b", "b", "b", "c", "c", "c", "c"],
        "y": ["yes", "yes", "yes", "no", "no", "no", "yes", "no", "yes", "no"],
    }).with_columns(pl.col("y").cast(pl.Enum(["yes", "no"])))


@pytest.fixture
def grouped_numeric_df() -> pl.DataFrame:
    """Thirty rows over three well separated groups plus a little noise."""
    rng = np.random.default_rng(42)
    groups = np.repeat(["low", "mid", "high"], 10)
    centers = np.repeat([10.0, 20.0, 30.0], 10)
    return pl.DataFrame({
        "grp": groups.tolist(),
        "y": (centers + rng.normal(0, 1.0, 30)).tolist(),
    })


@pytest.fixture
def grouped_binary_df() -> pl.DataFrame:
    """Forty rows over two groups with yes rates of 0.8 and 0.2."""
    grp = ["u"] * 20 + ["v"] * 20
    y = ["yes"] * 16 + ["no"] * 4 + ["yes"] * 4 + ["no"] * 16
    return pl.DataFrame({"grp": grp, "y": y}).with_columns(
        pl.col("y").cast(pl.Enum(["yes", "no"]))
    )
