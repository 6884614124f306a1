"""Polars utility functions."""

import polars as pl

NOMINAL_DTYPES = (pl.String, pl.Categorical, pl.Enum)


def is_nominal(dtype: pl.DataType) -> bool:
    """True for string, categorical and enum dtypes."""
    return isinstance(dtype, NOMINAL_DTYPES) or dtype in NOMINAL_DTYPES


def is_numeric(dtype: pl.DataType) -> bool:
    return dtype.is_numeric()


def factor_levels(series: pl.Series) -> list[str]:
    """Return the level order of a nominal series.

    Enums keep their declared category order, everything else uses the
    sorted distinct non-null values.
    """
    if isinstance(series.dtype, pl.Enum):
        return series.dtype.categories.to_list()
    return sorted(series.drop_nulls().cast(pl.String).unique().to_list())
