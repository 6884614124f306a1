"""Likelihood encoding through a no-intercept generalized linear model.

Each level gets its own coefficient on the linear predictor scale, so for
two-level outcomes the encodings are log-odds. Coefficients are sign-flipped
for factor outcomes: larger values mean the first outcome level is more
likely. Novel levels get a slightly trimmed mean of the coefficients.

References:
    Micci-Barreca D (2001) "A preprocessing scheme for high-cardinality
    categorical attributes in classification and prediction problems,"
    ACM SIGKDD Explorations Newsletter, 3(1), 27-32.
"""

import warnings

import numpy as np
import statsmodels.api as sm
import structlog
from statsmodels.tools.sm_exceptions import PerfectSeparationError, PerfectSeparationWarning

from lencode.config import GlmConfig, Settings
from lencode.data.validator import OutcomeSpec
from lencode.errors import ModelFitError
from lencode.steps.base import ColumnData, EncodingStep

logger = structlog.get_logger()


class LencodeGlm(EncodingStep):
    """Encode factor levels as coefficients of ``outcome ~ 0 + level``."""

    tag = "lencode_glm"
    description = "Linear embedding for factors via GLM"

    def _config(self, settings: Settings) -> GlmConfig:
        return self._merged_config(settings.glm)

    def _estimate(
        self, data: ColumnData, outcome: OutcomeSpec, config: GlmConfig
    ) -> tuple[np.ndarray, None]:
        family = sm.families.Binomial() if outcome.is_factor else sm.families.Gaussian()
        model = sm.GLM(data.y, data.design(), family=family)
        try:
            with warnings.catch_warnings(record=True) as caught:
                warnings.simplefilter("always")
                result = model.fit(maxiter=config.max_iter, tol=config.tol)
        except (np.linalg.LinAlgError, ValueError, PerfectSeparationError) as exc:
            raise ModelFitError(f"GLM fit failed for column '{data.column}': {exc}") from exc

        for w in caught:
            if issubclass(w.category, PerfectSeparationWarning):
                logger.debug("separation_detected", column=data.column)
            else:
                logger.debug("glm_warning", column=data.column, message=str(w.message))

        if not result.converged:
            raise ModelFitError(
                f"GLM for column '{data.column}' did not converge in {config.max_iter} iterations"
            )
        return np.asarray(result.params, dtype=float), None
