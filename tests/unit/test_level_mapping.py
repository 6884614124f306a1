"""Tests for level mappings and the trimmed-mean fallback."""

import math

import numpy as np
import polars as pl
import pytest

from lencode.errors import ReservedLevelError
from lencode.steps.base import NEW_LEVEL, LevelMapping, trimmed_mean


def test_trimmed_mean_drops_one_value_from_each_tail_of_five():
    # sorted: -100, 1, 2, 3, 100 -> keep 1, 2, 3
    assert trimmed_mean([1, 2, 3, 100, -100], 0.1) == pytest.approx(2.0)


def test_trimmed_mean_without_trim_is_plain_mean():
    assert trimmed_mean([1, 2, 3, 100, -100], 0.0) == pytest.approx(1.2)


def test_trimmed_mean_keeps_small_samples():
    assert trimmed_mean([4.0], 0.1) == pytest.approx(4.0)
    assert trimmed_mean([1.0, 3.0], 0.1) == pytest.approx(2.0)
    assert trimmed_mean([1.0, 2.0, 30.0], 0.1) == pytest.approx(11.0)


def test_trimmed_mean_of_ten_trims_one_each_side():
    values = list(range(1, 10)) + [1000]
    # drop 1 and 1000 -> mean of 2..9
    assert trimmed_mean(values, 0.1) == pytest.approx(5.5)


def test_trimmed_mean_empty_is_nan():
    assert math.isnan(trimmed_mean([], 0.1))


def test_from_estimates_uses_trimmed_mean_fallback():
    m = LevelMapping.from_estimates(["a", "b", "c", "d", "e"], [1, 2, 3, 100, -100])
    assert m.fallback == pytest.approx(2.0)
    assert m.values == (1.0, 2.0, 3.0, 100.0, -100.0)


def test_from_estimates_replaces_non_finite_with_fallback():
    m = LevelMapping.from_estimates(["a", "b", "c", "d"], [1.0, np.nan, 3.0, np.inf])
    # fallback from the finite values 1 and 3
    assert m.fallback == pytest.approx(2.0)
    assert m.to_dict() == {"a": 1.0, "b": 2.0, "c": 3.0, "d": 2.0, NEW_LEVEL: 2.0}


def test_from_estimates_negates_all_values():
    m = LevelMapping.from_estimates(["a", "b"], [1.0, 3.0], negate=True)
    assert m.values == (-1.0, -3.0)
    assert m.fallback == pytest.approx(-2.0)


def test_to_frame_has_sentinel_last():
    m = LevelMapping(levels=("x", "y"), values=(0.5, 1.5), fallback=1.0)
    frame = m.to_frame()
    assert frame["level"].to_list() == ["x", "y", NEW_LEVEL]
    assert frame["value"].to_list() == [0.5, 1.5, 1.0]
    assert len(m) == 3


def test_from_frame_round_trip():
    m = LevelMapping(levels=("x", "y"), values=(0.5, 1.5), fallback=1.0)
    assert LevelMapping.from_frame(m.to_frame()) == m


def test_lookup_preserves_order_and_uses_fallback():
    m = LevelMapping(levels=("x", "y"), values=(0.5, 1.5), fallback=1.0)
    series = pl.Series("col", ["y", "new", None, "x", "y", "other"])
    result = m.lookup(series)
    assert result.name == "col"
    assert result.dtype == pl.Float64
    assert result.to_list() == [1.5, 1.0, 1.0, 0.5, 1.5, 1.0]
    assert m.novel_count(series) == 3


def test_sentinel_level_is_reserved():
    with pytest.raises(ReservedLevelError, match="reserved"):
        LevelMapping(levels=(NEW_LEVEL,), values=(1.0,), fallback=0.0)


def test_duplicate_levels_rejected():
    with pytest.raises(ValueError, match="unique"):
        LevelMapping(levels=("a", "a"), values=(1.0, 2.0), fallback=0.0)


def test_non_finite_values_rejected():
    with pytest.raises(ValueError, match="finite"):
        LevelMapping(levels=("a",), values=(float("nan"),), fallback=0.0)
