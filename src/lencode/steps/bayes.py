"""Likelihood encoding through a Bayesian random-intercept model.

The model is ``outcome ~ 1 + (1 | level)``. Each level is encoded by the
posterior mean of the intercept plus its level effect, and novel levels by the
intercept alone, so sparse levels are shrunk toward the overall rate.

Two-level outcomes use a binomial mixed GLM fitted by variational Bayes;
numeric outcomes use a linear mixed model fitted by REML.

References:
    Zumel N and Mount J (2017) "vtreat: a data.frame Processor for Predictive
    Modeling," arXiv:1611.09477
"""

import warnings

import numpy as np
import structlog
from statsmodels.genmod.bayes_mixed_glm import BinomialBayesMixedGLM
from statsmodels.regression.mixed_linear_model import MixedLM
from statsmodels.tools.sm_exceptions import ConvergenceWarning

from lencode.config import BayesConfig, Settings
from lencode.data.validator import OutcomeSpec
from lencode.errors import ModelFitError
from lencode.steps.base import ColumnData, EncodingStep
from lencode.steps.mixed import moment_smoothing

logger = structlog.get_logger()


class LencodeBayes(EncodingStep):
    """Encode factor levels with hierarchical (partially pooled) estimates."""

    tag = "lencode_bayes"
    description = "Linear embedding for factors via Bayesian GLM"

    def _config(self, settings: Settings) -> BayesConfig:
        return self._merged_config(settings.bayes)

    def _estimate(
        self, data: ColumnData, outcome: OutcomeSpec, config: BayesConfig
    ) -> tuple[np.ndarray, float]:
        try:
            if outcome.is_factor:
                return self._fit_binomial(data, config)
            return self._fit_gaussian(data)
        except (np.linalg.LinAlgError, ValueError) as exc:
            raise ModelFitError(f"Mixed model fit failed for column '{data.column}': {exc}") from exc

    @staticmethod
    def _fit_binomial(data: ColumnData, config: BayesConfig) -> tuple[np.ndarray, float]:
        model = BinomialBayesMixedGLM(
            data.y,
            np.ones((data.codes.size, 1)),
            data.design(),
            np.zeros(data.n_levels, dtype=int),
            vcp_p=config.vcp_p,
            fe_p=config.fe_p,
        )
        # Fixed starting point; the statsmodels default draws it at random.
        n_params = model.k_fep + model.k_vcp + model.k_vc
        result = model.fit_vb(
            mean=np.zeros(n_params),
            sd=np.full(n_params, np.exp(-0.5)),
            minim_opts={"maxiter": config.max_iter},
        )
        intercept = float(result.fe_mean[0])
        return intercept + np.asarray(result.vc_mean, dtype=float), intercept

    @staticmethod
    def _fit_gaussian(data: ColumnData) -> tuple[np.ndarray, float]:
        if data.n_levels < 2:
            raise ModelFitError(
                f"Column '{data.column}' needs at least two observed levels for a mixed model"
            )
        grand = float(data.y.mean())
        pooled = np.full(data.n_levels, grand)
        if np.ptp(data.y) == 0:
            logger.debug("full_pooling", column=data.column, reason="constant_outcome")
            return pooled, grand

        model = MixedLM(data.y, np.ones((data.codes.size, 1)), groups=data.codes)
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always", ConvergenceWarning)
            try:
                result = model.fit(reml=True, method=["lbfgs", "bfgs", "cg"])
            except np.linalg.LinAlgError:
                if not _moment_variance_is_zero(data):
                    raise
                logger.debug("full_pooling", column=data.column, reason="singular_fit")
                return pooled, grand
        for w in caught:
            logger.debug("mixed_model_warning", column=data.column, message=str(w.message))
        at_boundary = _variance_estimate_is_zero(result) or (
            not result.converged and _moment_variance_is_zero(data)
        )
        if at_boundary:
            logger.debug("full_pooling", column=data.column, reason="boundary_variance")
            return pooled, grand
        if not result.converged:
            raise ModelFitError(f"Mixed model for column '{data.column}' did not converge")

        intercept = float(np.asarray(result.fe_params)[0])
        effects = result.random_effects
        estimates = np.array(
            [intercept + float(np.asarray(effects[code])[0]) for code in range(data.n_levels)]
        )
        return estimates, intercept


def _variance_estimate_is_zero(result) -> bool:
    cov_re = float(np.asarray(result.cov_re)[0, 0])
    return bool(np.isfinite(cov_re) and cov_re <= 1e-8 * max(float(result.scale), 1e-12))


def _moment_variance_is_zero(data: ColumnData) -> bool:
    """Whether the method-of-moments level variance sits at its zero boundary."""
    counts = np.bincount(data.codes, minlength=data.n_levels).astype(float)
    means = np.bincount(data.codes, weights=data.y, minlength=data.n_levels) / counts
    return bool(np.isinf(moment_smoothing(data.y, data.codes, means, counts)))
