"""Tests for the command line interface."""

import polars as pl
import pytest
from typer.testing import CliRunner

from lencode.cli import app

runner = CliRunner()


def _write_train(tmp_path):
    path = tmp_path / "train.csv"
    pl.DataFrame({
        "city": ["A", "A", "B", "B"],
        "y": [1.0, 3.0, 10.0, 12.0],
    }).write_csv(path)
    return path


def test_encode_writes_output(tmp_path):
    train = _write_train(tmp_path)
    new = tmp_path / "new.csv"
    pl.DataFrame({"city": ["B", "Q"], "y": [0.0, 0.0]}).write_csv(new)
    out = tmp_path / "out.parquet"

    result = runner.invoke(
        app,
        ["encode", str(train), "--outcome", "y", "--column", "city", "--apply", str(new), "--output", str(out)],
    )

    assert result.exit_code == 0, result.output
    encoded = pl.read_parquet(out)
    assert encoded["city"].to_list() == pytest.approx([11.0, 6.5])


def test_tidy_prints_mapping(tmp_path):
    train = _write_train(tmp_path)

    result = runner.invoke(app, ["tidy", str(train), "--outcome", "y", "--column", "city", "--method", "mixed"])

    assert result.exit_code == 0, result.output
    assert "Linear embedding for factors via mixed effects for city [trained]" in result.output
    assert "terms,level,value,id" in result.output
    assert "..new" in result.output


def test_unknown_method_fails(tmp_path):
    train = _write_train(tmp_path)
    result = runner.invoke(app, ["encode", str(train), "--outcome", "y", "--column", "city", "--method", "woe"])
    assert result.exit_code != 0
