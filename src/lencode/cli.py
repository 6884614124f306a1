"""CLI entry point for fitting and applying likelihood encodings."""

from pathlib import Path
from typing import Annotated

import typer

app = typer.Typer(
    name="lencode",
    help="Likelihood encoding of categorical columns.",
)


def _fit_recipe(train: Path, outcome: str, columns: list[str], method: str):
    from lencode.data.loader import load_frame
    from lencode.recipe import Recipe
    from lencode.steps.registry import get_step_class

    step_cls = get_step_class(method)
    training = load_frame(train, string_columns=columns)
    recipe = Recipe(training, outcomes=outcome).add_step(step_cls(terms=tuple(columns), outcome=outcome))
    return recipe.prep(training), training


@app.command()
def encode(
    train: Annotated[Path, typer.Argument(help="Training data (CSV or Parquet)")],
    outcome: Annotated[str, typer.Option(help="Outcome column")],
    column: Annotated[list[str], typer.Option(help="Nominal column to encode (repeatable)")],
    apply: Annotated[Path | None, typer.Option(help="Data to encode; defaults to the training data")] = None,
    output: Annotated[Path | None, typer.Option(help="Output file (CSV or Parquet)")] = None,
    method: Annotated[str, typer.Option(help="Encoding method: glm, bayes or mixed")] = "glm",
) -> None:
    """Fit an encoding step on TRAIN and encode the data."""
    from lencode.data.loader import load_frame, write_frame

    typer.echo(f"Fitting {method} encoding for {', '.join(column)}...")
    recipe, training = _fit_recipe(train, outcome, column, method)
    new_data = load_frame(apply, string_columns=column) if apply is not None else training
    encoded = recipe.bake(new_data)
    if output is None:
        typer.echo(encoded.write_csv())
    else:
        write_frame(encoded, output)
        typer.echo(f"Encoded data written to {output}")


@app.command()
def tidy(
    train: Annotated[Path, typer.Argument(help="Training data (CSV or Parquet)")],
    outcome: Annotated[str, typer.Option(help="Outcome column")],
    column: Annotated[list[str], typer.Option(help="Nominal column to encode (repeatable)")],
    method: Annotated[str, typer.Option(help="Encoding method: glm, bayes or mixed")] = "glm",
) -> None:
    """Print the fitted level encodings as CSV."""
    recipe, _ = _fit_recipe(train, outcome, column, method)
    typer.echo(recipe.steps[0].describe())
    typer.echo(recipe.tidy(1).write_csv())


if __name__ == "__main__":
    app()
