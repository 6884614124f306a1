"""Type and presence checks run before training and applying steps."""

from dataclasses import dataclass

import polars as pl
import structlog

from lencode.errors import (
    MissingColumnError,
    UnsupportedOutcomeTypeError,
    WrongPredictorTypeError,
)
from lencode.utils.polars_utils import factor_levels, is_nominal, is_numeric

logger = structlog.get_logger()


@dataclass(frozen=True)
class OutcomeSpec:
    """Resolved outcome column: its name and, for factors, the two levels."""

    name: str
    levels: tuple[str, ...] | None = None

    @property
    def is_factor(self) -> bool:
        return self.levels is not None

    @property
    def second_level(self) -> str:
        if self.levels is None:
            raise UnsupportedOutcomeTypeError(f"Numeric outcome '{self.name}' has no levels")
        return self.levels[1]


def check_nominal(df: pl.DataFrame, columns: list[str]) -> None:
    """Fail unless every column is a string, categorical or enum column."""
    bad = {col: str(df.schema[col]) for col in columns if not is_nominal(df.schema[col])}
    if bad:
        details = ", ".join(f"{col} ({dtype})" for col, dtype in bad.items())
        raise WrongPredictorTypeError(
            f"All columns selected for the step should be nominal (string or categorical); "
            f"got {details}"
        )
    logger.debug("nominal_check_passed", columns=columns)


def check_outcome(df: pl.DataFrame, name: str) -> OutcomeSpec:
    """Classify the outcome column as numeric or two-level factor."""
    dtype = df.schema[name]
    if is_numeric(dtype):
        return OutcomeSpec(name=name)
    if is_nominal(dtype):
        levels = factor_levels(df[name])
        if len(levels) != 2:
            raise UnsupportedOutcomeTypeError(
                f"Factor outcome '{name}' must have exactly two levels, found {len(levels)}"
            )
        return OutcomeSpec(name=name, levels=tuple(levels))
    raise UnsupportedOutcomeTypeError(
        f"Outcome '{name}' must be numeric or a two-level factor, got {dtype}"
    )


def check_columns_present(df: pl.DataFrame, columns: list[str]) -> None:
    """Fail if any expected column is absent from the frame."""
    missing = [col for col in columns if col not in df.columns]
    if missing:
        raise MissingColumnError(f"Missing columns: {missing}")
