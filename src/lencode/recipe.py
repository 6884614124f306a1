"""Minimal preprocessing recipe: an ordered list of steps trained then applied.

A recipe records the variable info of a template frame (column names, dtypes
and outcome/predictor roles). ``prep`` trains the steps in order, each on the
output of the steps before it; ``bake`` applies the trained steps to new data.
Recipes and steps are never modified in place.
"""

from typing import Any

import polars as pl
import structlog

from lencode.config import Settings, load_settings
from lencode.data.schemas import RECIPE_TIDY_SCHEMA, VariableInfo, info_to_frame, summarize_schema
from lencode.data.validator import check_columns_present
from lencode.errors import SelectorError, StepNotTrainedError
from lencode.selectors import SelectorLike
from lencode.steps.base import EncodingStep
from lencode.steps.bayes import LencodeBayes
from lencode.steps.glm import LencodeGlm
from lencode.steps.mixed import LencodeMixed

logger = structlog.get_logger()


class Recipe:
    """Ordered collection of encoding steps bound to a data template."""

    def __init__(
        self,
        template: pl.DataFrame,
        outcomes: str | list[str] | tuple[str, ...] = (),
        steps: tuple[EncodingStep, ...] = (),
        prepped: bool = False,
    ) -> None:
        outcomes = (outcomes,) if isinstance(outcomes, str) else tuple(outcomes)
        missing = [name for name in outcomes if name not in template.columns]
        if missing:
            raise SelectorError(f"Outcome columns not found in data: {missing}")
        self.template = template
        self.outcomes = outcomes
        self.steps = tuple(steps)
        self.prepped = prepped

    @property
    def var_info(self) -> list[VariableInfo]:
        return summarize_schema(self.template.schema, self.outcomes)

    def summary(self) -> pl.DataFrame:
        return info_to_frame(self.var_info)

    def add_step(self, step: EncodingStep) -> "Recipe":
        """Return a new recipe with ``step`` appended."""
        return Recipe(self.template, self.outcomes, (*self.steps, step), prepped=False)

    def prep(self, training: pl.DataFrame | None = None, settings: Settings | None = None) -> "Recipe":
        """Train every step in order and return the trained recipe."""
        training = self.template if training is None else training
        check_columns_present(training, self.template.columns)
        settings = settings or load_settings()

        current = training
        trained: list[EncodingStep] = []
        for number, step in enumerate(self.steps, 1):
            logger.info("prepping_step", number=number, step=step.tag, id=step.id)
            fitted = step.fit(current, summarize_schema(current.schema, self.outcomes), settings)
            current = fitted.apply(current)
            trained.append(fitted)
        return Recipe(self.template, self.outcomes, tuple(trained), prepped=True)

    def bake(self, new_data: pl.DataFrame) -> pl.DataFrame:
        """Apply the trained steps to new data, honouring ``skip``."""
        if not self.prepped:
            raise StepNotTrainedError("Recipe has not been prepped; call prep() first")
        for step in self.steps:
            if step.skip:
                logger.debug("skipping_step", step=step.tag, id=step.id)
                continue
            logger.debug("baking_step", step=step.tag, id=step.id)
            new_data = step.apply(new_data)
        return new_data

    def tidy(self, number: int | None = None) -> pl.DataFrame:
        """Step overview, or the tidy table of step ``number`` (1-based)."""
        if number is not None:
            if not 1 <= number <= len(self.steps):
                raise IndexError(f"Step number {number} out of range 1..{len(self.steps)}")
            return self.steps[number - 1].tidy()
        return pl.DataFrame(
            {
                "number": list(range(1, len(self.steps) + 1)),
                "operation": ["step"] * len(self.steps),
                "type": [s.tag for s in self.steps],
                "trained": [s.trained for s in self.steps],
                "skip": [s.skip for s in self.steps],
                "id": [s.id for s in self.steps],
            },
            schema=RECIPE_TIDY_SCHEMA,
        )

    def __str__(self) -> str:
        roles = self.summary().group_by("role", maintain_order=True).len()
        lines = ["Data Recipe", "", "Inputs:", ""]
        lines += [f"  {row['role']}: {row['len']}" for row in roles.iter_rows(named=True)]
        if self.steps:
            lines += ["", "Operations:", ""]
            lines += [f"  {step.describe()}" for step in self.steps]
        return "\n".join(lines)


def _add(
    cls: type[EncodingStep],
    recipe: Recipe,
    terms: tuple[SelectorLike, ...],
    outcome: SelectorLike | None,
    role: str | None,
    skip: bool,
    id: str | None,
    options: dict[str, Any] | None,
) -> Recipe:
    step = cls(
        terms=terms,
        outcome=outcome,
        role=role,
        skip=skip,
        id=id or "",
        options=options or {},
    )
    return recipe.add_step(step)


def step_lencode_glm(
    recipe: Recipe,
    *terms: SelectorLike,
    outcome: SelectorLike | None = None,
    role: str | None = None,
    skip: bool = False,
    id: str | None = None,
    options: dict[str, Any] | None = None,
) -> Recipe:
    """Add a GLM likelihood encoding step for the selected nominal columns."""
    return _add(LencodeGlm, recipe, terms, outcome, role, skip, id, options)


def step_lencode_bayes(
    recipe: Recipe,
    *terms: SelectorLike,
    outcome: SelectorLike | None = None,
    role: str | None = None,
    skip: bool = False,
    id: str | None = None,
    options: dict[str, Any] | None = None,
) -> Recipe:
    """Add a Bayesian hierarchical likelihood encoding step."""
    return _add(LencodeBayes, recipe, terms, outcome, role, skip, id, options)


def step_lencode_mixed(
    recipe: Recipe,
    *terms: SelectorLike,
    outcome: SelectorLike | None = None,
    role: str | None = None,
    skip: bool = False,
    id: str | None = None,
    options: dict[str, Any] | None = None,
) -> Recipe:
    """Add an empirical-Bayes pooled-means encoding step."""
    return _add(LencodeMixed, recipe, terms, outcome, role, skip, id, options)
