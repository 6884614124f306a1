"""Shared machinery for likelihood encoding steps.

Every encoding step follows the same two-phase lifecycle: ``fit`` resolves the
selectors, checks column types and estimates one number per factor level,
returning a new trained step; ``apply`` swaps each level for its number. The
variants only differ in how the per-level numbers are estimated.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from typing import Any, ClassVar

import numpy as np
import polars as pl
import structlog
from pydantic import BaseModel

from lencode.config import Settings, load_settings
from lencode.data.schemas import MAPPING_SCHEMA, TIDY_SCHEMA, VariableInfo, summarize_schema
from lencode.data.validator import (
    OutcomeSpec,
    check_columns_present,
    check_nominal,
    check_outcome,
)
from lencode.errors import (
    ConfigurationError,
    ModelFitError,
    ReservedLevelError,
    StepNotTrainedError,
)
from lencode.selectors import Selector, SelectorLike, resolve_selectors, selector_labels
from lencode.utils.polars_utils import factor_levels

logger = structlog.get_logger()

# Level under which the value for novel levels is stored.
NEW_LEVEL = "..new"

_ID_CHARS = np.array(list("abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"))


def rand_id(prefix: str) -> str:
    """Default step identifier: the step tag plus five random characters."""
    suffix = "".join(np.random.default_rng().choice(_ID_CHARS, size=5))
    return f"{prefix}_{suffix}"


def trimmed_mean(values: np.ndarray | list[float], trim: float = 0.1) -> float:
    """Mean after dropping ``round(n * trim)`` values from each tail.

    At least one value is always kept. Returns NaN for empty input.
    """
    x = np.sort(np.asarray(values, dtype=float))
    n = x.size
    if n == 0:
        return float("nan")
    cut = int(np.floor(n * trim + 0.5))
    cut = min(cut, (n - 1) // 2)
    return float(x[cut : n - cut].mean())


@dataclass(frozen=True)
class LevelMapping:
    """Encoding of one column: a value per training level plus a fallback."""

    levels: tuple[str, ...]
    values: tuple[float, ...]
    fallback: float

    def __post_init__(self) -> None:
        if len(self.levels) != len(self.values):
            raise ValueError("levels and values must have the same length")
        if len(set(self.levels)) != len(self.levels):
            raise ValueError("levels must be unique")
        if NEW_LEVEL in self.levels:
            raise ReservedLevelError(f"'{NEW_LEVEL}' is reserved for the novel-level fallback")
        if not np.all(np.isfinite(self.values)) or not np.isfinite(self.fallback):
            raise ValueError("all encoded values must be finite")

    @classmethod
    def from_estimates(
        cls,
        levels: list[str],
        estimates: np.ndarray | list[float],
        fallback: float | None = None,
        trim: float = 0.1,
        negate: bool = False,
    ) -> "LevelMapping":
        """Build a mapping from raw per-level estimates.

        Without an explicit fallback, the trimmed mean of the finite estimates
        is used. Non-finite estimates are replaced by the fallback.
        """
        coefs = np.asarray(estimates, dtype=float)
        finite = np.isfinite(coefs)
        if fallback is None:
            fallback = trimmed_mean(coefs[finite], trim)
        if not np.isfinite(fallback):
            raise ModelFitError("No finite estimates were produced for any level")
        coefs = np.where(finite, coefs, fallback)
        if negate:
            coefs = -coefs
            fallback = -fallback
        return cls(
            levels=tuple(str(lvl) for lvl in levels),
            values=tuple(float(c) for c in coefs),
            fallback=float(fallback),
        )

    @classmethod
    def from_frame(cls, frame: pl.DataFrame) -> "LevelMapping":
        """Rebuild a mapping from its ``level``/``value`` frame."""
        is_new = frame["level"] == NEW_LEVEL
        if is_new.sum() != 1:
            raise ValueError(f"Mapping frame needs exactly one '{NEW_LEVEL}' row")
        known = frame.filter(~is_new)
        return cls(
            levels=tuple(known["level"].to_list()),
            values=tuple(known["value"].to_list()),
            fallback=float(frame.filter(is_new)["value"][0]),
        )

    def to_frame(self) -> pl.DataFrame:
        return pl.DataFrame(
            {
                "level": [*self.levels, NEW_LEVEL],
                "value": [*self.values, self.fallback],
            },
            schema=MAPPING_SCHEMA,
        )

    def to_dict(self) -> dict[str, float]:
        return {**dict(zip(self.levels, self.values)), NEW_LEVEL: self.fallback}

    def novel_count(self, series: pl.Series) -> int:
        keys = series.cast(pl.String)
        return int((~keys.is_in(list(self.levels))).fill_null(True).sum())

    def lookup(self, series: pl.Series) -> pl.Series:
        """Map each value's string form to its encoding, in row order."""
        keys = series.cast(pl.String)
        return (
            keys.replace_strict(
                list(self.levels),
                list(self.values),
                default=self.fallback,
                return_dtype=pl.Float64,
            )
            .fill_null(self.fallback)
            .alias(series.name)
        )

    def __len__(self) -> int:
        return len(self.levels) + 1


@dataclass
class ColumnData:
    """Usable rows of one predictor column paired with the outcome."""

    column: str
    all_levels: list[str]
    levels: list[str]
    codes: np.ndarray
    y: np.ndarray

    @property
    def n_levels(self) -> int:
        return len(self.levels)

    def design(self) -> np.ndarray:
        """Full indicator matrix: one column per level, no intercept."""
        x = np.zeros((self.codes.size, self.n_levels))
        x[np.arange(self.codes.size), self.codes] = 1.0
        return x


def prepare_column(training: pl.DataFrame, column: str, outcome: OutcomeSpec) -> ColumnData:
    """Drop incomplete rows and code the column for model fitting.

    For factor outcomes the response is the indicator of the second level.
    """
    frame = training.select(column, outcome.name)
    if frame.schema[outcome.name].is_float():
        frame = frame.with_columns(pl.col(outcome.name).fill_nan(None))
    present = set(frame[column].drop_nulls().cast(pl.String).unique().to_list())
    if NEW_LEVEL in present:
        raise ReservedLevelError(
            f"Column '{column}' has a level named '{NEW_LEVEL}', which is reserved "
            "for the novel-level fallback; rename that level before fitting"
        )
    all_levels = [lvl for lvl in factor_levels(frame[column]) if lvl in present]
    usable = frame.drop_nulls()
    if usable.height == 0:
        raise ModelFitError(f"No complete rows to fit column '{column}'")

    keys = usable[column].cast(pl.String)
    observed = set(keys.unique().to_list())
    levels = [lvl for lvl in all_levels if lvl in observed]
    codes = keys.replace_strict(levels, list(range(len(levels))), return_dtype=pl.Int64).to_numpy()

    if outcome.is_factor:
        y = (usable[outcome.name].cast(pl.String) == outcome.second_level).cast(pl.Float64)
    else:
        y = usable[outcome.name].cast(pl.Float64)
    return ColumnData(column=column, all_levels=all_levels, levels=levels, codes=codes, y=y.to_numpy())


@dataclass(frozen=True)
class EncodingStep(ABC):
    """Base class of the likelihood encoding steps."""

    terms: tuple[SelectorLike, ...] = ()
    outcome: SelectorLike | None = None
    role: str | None = None
    trained: bool = False
    mapping: dict[str, LevelMapping] | None = None
    skip: bool = False
    id: str = ""
    options: dict[str, Any] = field(default_factory=dict)

    tag: ClassVar[str]
    description: ClassVar[str]
    # Whether factor-outcome estimates come out on the second-level scale.
    negate_for_factor: ClassVar[bool] = True

    def __post_init__(self) -> None:
        if self.outcome is None:
            raise ConfigurationError("Please list a variable in `outcome`")
        terms = (self.terms,) if isinstance(self.terms, (str, Selector)) else tuple(self.terms)
        if not terms:
            raise ConfigurationError("Please supply at least one selector for the step")
        object.__setattr__(self, "terms", terms)
        if not self.id:
            object.__setattr__(self, "id", rand_id(self.tag))
        if self.mapping is not None:
            mapping = {
                col: m if isinstance(m, LevelMapping) else LevelMapping.from_frame(m)
                for col, m in self.mapping.items()
            }
            object.__setattr__(self, "mapping", mapping)

    @abstractmethod
    def _config(self, settings: Settings) -> BaseModel:
        """Settings section for this step with ``options`` applied."""

    @abstractmethod
    def _estimate(
        self, data: ColumnData, outcome: OutcomeSpec, config: Any
    ) -> tuple[np.ndarray, float | None]:
        """Per-level estimates (aligned with ``data.levels``) and optional fallback."""

    def _merged_config(self, section: BaseModel) -> BaseModel:
        return type(section)(**{**section.model_dump(), **self.options})

    def fit(
        self,
        training: pl.DataFrame,
        info: list[VariableInfo] | None = None,
        settings: Settings | None = None,
    ) -> "EncodingStep":
        """Estimate the encodings and return a trained copy of the step."""
        info = info if info is not None else summarize_schema(training.schema)
        config = self._config(settings or load_settings())

        outcome_names = resolve_selectors((self.outcome,), info)
        if len(outcome_names) != 1:
            raise ConfigurationError(f"`outcome` must select exactly one column, got {outcome_names}")
        outcome = check_outcome(training, outcome_names[0])
        columns = [c for c in resolve_selectors(self.terms, info) if c != outcome.name]
        check_nominal(training, columns)

        logger.info("fitting_step", step=self.tag, id=self.id, columns=columns, outcome=outcome.name)
        mapping: dict[str, LevelMapping] = {}
        for col in columns:
            data = prepare_column(training, col, outcome)
            estimates, fallback = self._estimate(data, outcome, config)
            by_level = dict(zip(data.levels, np.asarray(estimates, dtype=float)))
            mapping[col] = LevelMapping.from_estimates(
                data.all_levels,
                [by_level.get(lvl, np.nan) for lvl in data.all_levels],
                fallback=fallback,
                trim=getattr(config, "trim", 0.1),
                negate=outcome.is_factor and self.negate_for_factor,
            )
            logger.info(
                "encoded_column",
                column=col,
                n_levels=len(data.all_levels),
                fallback=mapping[col].fallback,
            )
        return replace(self, trained=True, mapping=mapping)

    def apply(self, new_data: pl.DataFrame) -> pl.DataFrame:
        """Replace each encoded column with its numeric encoding."""
        if self.mapping is None:
            raise StepNotTrainedError(f"Step '{self.id}' has not been trained")
        check_columns_present(new_data, list(self.mapping))
        for col, m in self.mapping.items():
            n_novel = m.novel_count(new_data[col])
            if n_novel:
                logger.debug("novel_levels", column=col, count=n_novel)
        return new_data.with_columns([m.lookup(new_data[col]) for col, m in self.mapping.items()])

    def describe(self) -> str:
        if self.trained and self.mapping is not None:
            names = list(self.mapping)
        else:
            names = selector_labels(self.terms)
        text = f"{self.description} for {', '.join(names)}"
        return f"{text} [trained]" if self.trained else text

    def tidy(self) -> pl.DataFrame:
        """One row per (column, level) pair, or per selector when untrained."""
        if self.trained and self.mapping is not None:
            frames = [
                m.to_frame().with_columns(
                    pl.lit(col, dtype=pl.String).alias("terms"),
                    pl.lit(self.id, dtype=pl.String).alias("id"),
                )
                for col, m in self.mapping.items()
            ]
            if not frames:
                return pl.DataFrame(schema=TIDY_SCHEMA)
            res = pl.concat(frames)
        else:
            labels = selector_labels(self.terms)
            res = pl.DataFrame(
                {
                    "terms": labels,
                    "level": [None] * len(labels),
                    "value": [None] * len(labels),
                    "id": [self.id] * len(labels),
                },
                schema=TIDY_SCHEMA,
            )
        return res.select(list(TIDY_SCHEMA)).cast(TIDY_SCHEMA)

    def __str__(self) -> str:
        return self.describe()
