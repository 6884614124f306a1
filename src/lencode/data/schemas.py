"""Polars schema definitions shared by steps, recipes and reports."""

from dataclasses import dataclass

import polars as pl

from lencode.utils.polars_utils import is_nominal

OUTCOME_ROLE = "outcome"
PREDICTOR_ROLE = "predictor"

MAPPING_SCHEMA = {
    "level": pl.String,
    "value": pl.Float64,
}

TIDY_SCHEMA = {
    "terms": pl.String,
    "level": pl.String,
    "value": pl.Float64,
    "id": pl.String,
}

RECIPE_TIDY_SCHEMA = {
    "number": pl.Int64,
    "operation": pl.String,
    "type": pl.String,
    "trained": pl.Boolean,
    "skip": pl.Boolean,
    "id": pl.String,
}


@dataclass(frozen=True)
class VariableInfo:
    """One column of the recipe template: name, polars dtype and role."""

    variable: str
    dtype: pl.DataType
    role: str

    @property
    def type(self) -> str:
        if is_nominal(self.dtype):
            return "nominal"
        if self.dtype.is_numeric():
            return "numeric"
        return "other"


def summarize_schema(
    schema: pl.Schema | dict[str, pl.DataType],
    outcomes: list[str] | tuple[str, ...] = (),
) -> list[VariableInfo]:
    """Build the variable info table for a frame schema."""
    return [
        VariableInfo(
            variable=name,
            dtype=dtype,
            role=OUTCOME_ROLE if name in outcomes else PREDICTOR_ROLE,
        )
        for name, dtype in schema.items()
    ]


def info_to_frame(info: list[VariableInfo]) -> pl.DataFrame:
    """Render the variable info table as a DataFrame."""
    return pl.DataFrame(
        {
            "variable": [v.variable for v in info],
            "type": [v.type for v in info],
            "role": [v.role for v in info],
        },
        schema={"variable": pl.String, "type": pl.String, "role": pl.String},
    )
