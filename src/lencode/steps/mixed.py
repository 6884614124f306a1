"""Likelihood encoding through empirical-Bayes pooled means.

Each level mean is pulled toward the grand mean with weight
``n / (n + k)``, where ``k`` is the ratio of within-level to between-level
variance estimated by the method of moments (or fixed with the ``smoothing``
option). For two-level outcomes the pooled rate of the first level is
reported on the log-odds scale, matching the sign convention of the GLM step.
"""

import numpy as np
import structlog
from scipy.special import logit

from lencode.config import MixedConfig, Settings
from lencode.data.validator import OutcomeSpec
from lencode.steps.base import ColumnData, EncodingStep

logger = structlog.get_logger()


def moment_smoothing(y: np.ndarray, codes: np.ndarray, means: np.ndarray, counts: np.ndarray) -> float:
    """Estimate the within/between variance ratio; ``inf`` means full pooling."""
    n_levels = counts.size
    if n_levels < 2:
        return np.inf
    resid = y - means[codes]
    dof = y.size - n_levels
    sigma2 = float(resid @ resid) / dof if dof > 0 else float(np.var(y))
    tau2 = float(np.var(means, ddof=1)) - float(np.mean(sigma2 / counts))
    if tau2 <= 0:
        return np.inf
    return sigma2 / tau2


class LencodeMixed(EncodingStep):
    """Encode factor levels with shrunken level means."""

    tag = "lencode_mixed"
    description = "Linear embedding for factors via mixed effects"
    negate_for_factor = False

    def _config(self, settings: Settings) -> MixedConfig:
        return self._merged_config(settings.mixed)

    def _estimate(
        self, data: ColumnData, outcome: OutcomeSpec, config: MixedConfig
    ) -> tuple[np.ndarray, float]:
        y = 1.0 - data.y if outcome.is_factor else data.y
        counts = np.bincount(data.codes, minlength=data.n_levels).astype(float)
        means = np.bincount(data.codes, weights=y, minlength=data.n_levels) / counts
        grand = float(y.mean())

        k = config.smoothing if config.smoothing is not None else moment_smoothing(y, data.codes, means, counts)
        weights = np.zeros_like(counts) if np.isinf(k) else counts / (counts + k)
        pooled = weights * means + (1.0 - weights) * grand
        logger.debug("pooling_weights", column=data.column, smoothing=k)

        if outcome.is_factor:
            eps = config.eps
            return logit(np.clip(pooled, eps, 1 - eps)), float(logit(np.clip(grand, eps, 1 - eps)))
        return pooled, grand
