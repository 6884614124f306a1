"""Reading and writing tabular files for the command line interface."""

from pathlib import Path

import polars as pl

SUPPORTED_SUFFIXES = (".csv", ".parquet")


def _check_suffix(path: Path) -> str:
    suffix = path.suffix.lower()
    if suffix not in SUPPORTED_SUFFIXES:
        raise ValueError(f"Unsupported file type '{suffix}', expected one of {SUPPORTED_SUFFIXES}")
    return suffix


def load_frame(path: Path, string_columns: list[str] | None = None) -> pl.DataFrame:
    """Load a CSV or Parquet file, forcing ``string_columns`` to strings."""
    if _check_suffix(path) == ".parquet":
        df = pl.read_parquet(path)
        if string_columns:
            df = df.with_columns([pl.col(c).cast(pl.String) for c in string_columns])
        return df
    overrides = {c: pl.String for c in string_columns or []}
    return pl.read_csv(path, schema_overrides=overrides)


def write_frame(df: pl.DataFrame, path: Path) -> None:
    """Write a frame as CSV or Parquet depending on the suffix."""
    if _check_suffix(path) == ".parquet":
        df.write_parquet(path)
    else:
        df.write_csv(path)
