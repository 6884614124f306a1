"""Column selectors resolved against a recipe's variable info at training time.

A selector is either a plain column name or a :class:`Selector`. Selectors are
kept unresolved on the step and only turned into column names when the step
is trained, so the same step definition can be reused across data sets.
Selectors hold plain data only, which keeps steps picklable.
"""

import re
from dataclasses import dataclass
from typing import Union

from lencode.data.schemas import OUTCOME_ROLE, PREDICTOR_ROLE, VariableInfo
from lencode.errors import SelectorError


@dataclass(frozen=True)
class Selector:
    """A named predicate over variable info rows."""

    kind: str
    arg: str | None = None

    @property
    def label(self) -> str:
        if self.arg is None:
            return f"{self.kind}()"
        return f"{self.kind}({self.arg!r})"

    def matches(self, v: VariableInfo) -> bool:
        if self.kind == "all_nominal":
            return v.type == "nominal"
        if self.kind == "all_numeric":
            return v.type == "numeric"
        if self.kind == "all_outcomes":
            return v.role == OUTCOME_ROLE
        if self.kind == "all_predictors":
            return v.role == PREDICTOR_ROLE
        if self.kind == "all_nominal_predictors":
            return v.type == "nominal" and v.role == PREDICTOR_ROLE
        if self.kind == "starts_with":
            return v.variable.startswith(self.arg)
        if self.kind == "ends_with":
            return v.variable.endswith(self.arg)
        if self.kind == "matches":
            return re.search(self.arg, v.variable) is not None
        raise SelectorError(f"Unknown selector: {self.kind}")

    def resolve(self, info: list[VariableInfo]) -> list[str]:
        return [v.variable for v in info if self.matches(v)]

    def __str__(self) -> str:
        return self.label


SelectorLike = Union[str, Selector]


def all_nominal() -> Selector:
    return Selector("all_nominal")


def all_numeric() -> Selector:
    return Selector("all_numeric")


def all_outcomes() -> Selector:
    return Selector("all_outcomes")


def all_predictors() -> Selector:
    return Selector("all_predictors")


def all_nominal_predictors() -> Selector:
    return Selector("all_nominal_predictors")


def starts_with(prefix: str) -> Selector:
    return Selector("starts_with", prefix)


def ends_with(suffix: str) -> Selector:
    return Selector("ends_with", suffix)


def matches(pattern: str) -> Selector:
    re.compile(pattern)
    return Selector("matches", pattern)


def selector_labels(selectors: tuple[SelectorLike, ...]) -> list[str]:
    """Human-readable form of unresolved selectors."""
    return [s if isinstance(s, str) else s.label for s in selectors]


def resolve_selectors(selectors: tuple[SelectorLike, ...], info: list[VariableInfo]) -> list[str]:
    """Turn selectors into an ordered, de-duplicated list of column names."""
    known = {v.variable for v in info}
    resolved: list[str] = []
    for selector in selectors:
        if isinstance(selector, str):
            if selector not in known:
                raise SelectorError(f"Column '{selector}' not found in data")
            names = [selector]
        else:
            names = selector.resolve(info)
        for name in names:
            if name not in resolved:
                resolved.append(name)
    if not resolved:
        raise SelectorError(f"No columns were selected by {selector_labels(selectors)}")
    return resolved
