"""Tests for the Bayesian hierarchical encoding step."""

import math

import polars as pl
import pytest

from lencode.errors import ModelFitError
from lencode.steps.base import NEW_LEVEL
from lencode.steps.bayes import LencodeBayes


def test_binary_outcome_sign_and_shrinkage(grouped_binary_df):
    step = LencodeBayes(terms=("grp",), outcome="y").fit(grouped_binary_df)
    mapping = step.mapping["grp"].to_dict()

    # u is mostly "yes", the first level, so it scores highest
    assert mapping["u"] > mapping[NEW_LEVEL] > mapping["v"]
    assert all(math.isfinite(v) for v in mapping.values())


def test_binary_outcome_is_deterministic(grouped_binary_df):
    first = LencodeBayes(terms=("grp",), outcome="y").fit(grouped_binary_df)
    second = LencodeBayes(terms=("grp",), outcome="y").fit(grouped_binary_df)
    assert first.mapping == second.mapping


def test_numeric_outcome_estimates_near_group_means(grouped_numeric_df):
    step = LencodeBayes(terms=("grp",), outcome="y").fit(grouped_numeric_df)
    mapping = step.mapping["grp"].to_dict()

    assert mapping["low"] < mapping["mid"] < mapping["high"]
    assert mapping["low"] == pytest.approx(10.0, abs=1.5)
    assert mapping["mid"] == pytest.approx(20.0, abs=1.5)
    assert mapping["high"] == pytest.approx(30.0, abs=1.5)
    assert mapping[NEW_LEVEL] == pytest.approx(20.0, abs=3.0)


def test_numeric_outcome_without_level_effect_pools_to_grand_mean():
    # every level has mean 5.0, so the level variance sits on its zero boundary
    df = pl.DataFrame({
        "grp": ["a", "b", "c", "d"] * 4,
        "y": [3.5, 4.5, 5.5, 6.5, 4.5, 5.5, 6.5, 3.5, 5.5, 6.5, 3.5, 4.5, 6.5, 3.5, 4.5, 5.5],
    })
    step = LencodeBayes(terms=("grp",), outcome="y").fit(df)
    mapping = step.mapping["grp"].to_dict()

    assert set(mapping) == {"a", "b", "c", "d", NEW_LEVEL}
    for value in mapping.values():
        assert value == pytest.approx(5.0, abs=1e-3)


def test_constant_numeric_outcome_pools_to_constant():
    df = pl.DataFrame({"grp": ["a", "a", "b", "b", "c"], "y": [7.0] * 5})
    step = LencodeBayes(terms=("grp",), outcome="y").fit(df)

    assert step.mapping["grp"].to_dict() == {"a": 7.0, "b": 7.0, "c": 7.0, NEW_LEVEL: 7.0}


def test_novel_level_gets_intercept(grouped_numeric_df):
    step = LencodeBayes(terms=("grp",), outcome="y").fit(grouped_numeric_df)
    result = step.apply(pl.DataFrame({"grp": ["unseen", "low"]}))

    assert result["grp"][0] == step.mapping["grp"].fallback
    assert result["grp"][1] == step.mapping["grp"].to_dict()["low"]


def test_numeric_outcome_needs_two_levels():
    df = pl.DataFrame({"grp": ["a", "a", "a"], "y": [1.0, 2.0, 3.0]})
    with pytest.raises(ModelFitError, match="two observed levels"):
        LencodeBayes(terms=("grp",), outcome="y").fit(df)


def test_describe():
    step = LencodeBayes(terms=("grp",), outcome="y")
    assert step.describe() == "Linear embedding for factors via Bayesian GLM for grp"
    assert step.id.startswith("lencode_bayes_")
