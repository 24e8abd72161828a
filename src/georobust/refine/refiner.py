# Andy Zhao
"""
Non-linear refinement of a consensus model over its inliers.

Cost minimized over the free parameters x of the model:

    F(x) = sum_i ||r_i(x) / sigma||^2 + w * N_in * sum_k s_k(x)^2

- r_i: signed geometric residual of inlier i (outliers never take part)
- sigma: expected residual standard deviation (the inlier threshold of the
       consensus stage), geometric residuals are measured in units of it
- s_k: optional suggestion residuals (current value - suggested value)
- w:   suggestion weight, so one suggestion counts like w * N_in squared
       geometric residuals of the same magnitude

Two modes:
- standard: Levenberg-Marquardt (scipy.optimize.least_squares, method="lm")
- fast: linear refit on the inliers followed by a single damped Gauss-Newton
  step with a forward difference Jacobian

The refined model is only returned when it lowers F. The covariance of the
parameters is estimated from the Gauss-Newton approximation of the Hessian:

    cov = (J^T J)^-1 * sum(r^2) / (m - p)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Generic, Optional, TypeVar

import numpy as np
from scipy.optimize import least_squares

from ..consensus.types import FloatArray, Mask, ModelFitter
from ..exceptions import RefinementError
from ..log import get_logger

M = TypeVar("M")
logger = get_logger(__name__)

DEFAULT_SUGGESTION_WEIGHT = 2.0
DEFAULT_TOLERANCE = 1e-12
DEFAULT_JACOBIAN_STEP = 1e-7
DEFAULT_DAMPING = 1e-3


@dataclass(frozen=True)
class RefinementParams:
    fast: bool = False
    keep_covariance: bool = False
    suggestion_weight: float = DEFAULT_SUGGESTION_WEIGHT
    standard_deviation: float = 1.0
    max_evaluations: Optional[int] = None       # None lets scipy pick its default
    ftol: float = DEFAULT_TOLERANCE
    xtol: float = DEFAULT_TOLERANCE
    gtol: float = DEFAULT_TOLERANCE
    jacobian_step: float = DEFAULT_JACOBIAN_STEP
    damping: float = DEFAULT_DAMPING


@dataclass(frozen=True)
class RefinementResult(Generic[M]):
    model: M
    covariance: Optional[FloatArray]    # (P, P) or None
    improved: bool                      # False -> model is the input model


def numerical_jacobian(fun: Callable[[FloatArray], FloatArray], x: FloatArray, step: float) -> FloatArray:
    """Forward difference Jacobian of fun at x, shape (m, p)."""
    f0 = fun(x)
    J = np.empty((f0.shape[0], x.shape[0]), dtype=np.float64)
    for j in range(x.shape[0]):
        h = step * max(1.0, abs(float(x[j])))
        xh = x.copy()
        xh[j] += h
        J[:, j] = (fun(xh) - f0) / h
    return J


def estimate_covariance(J: FloatArray, residuals: FloatArray) -> Optional[FloatArray]:
    """
    (J^T J)^-1 scaled by the residual variance.

    None when there are no degrees of freedom left or J^T J is singular.
    """
    m, p = J.shape
    if m <= p:
        return None

    JtJ = J.T @ J
    if not np.all(np.isfinite(JtJ)) or np.linalg.matrix_rank(JtJ) < p:
        return None

    s2 = float(np.sum(residuals * residuals)) / float(m - p)
    try:
        cov = np.linalg.inv(JtJ) * s2
    except np.linalg.LinAlgError:
        return None
    return cov if np.all(np.isfinite(cov)) else None


def _cost(r: FloatArray) -> float:
    return float(np.sum(r * r))


def refine(
        model_fitter: ModelFitter[M],
        model: M,
        inliers: Mask,
        pts0: FloatArray,
        pts1: FloatArray,
        params: RefinementParams,
        suggestion_terms: Optional[Callable[[M], FloatArray]] = None,
) -> RefinementResult[M]:
    """
    Refine a consensus model using only the inlier correspondences.

    Raises:
    - RefinementError if the inlier set is too small or the optimization fails.
      The estimators catch it and keep the unrefined model.
    """
    inliers = np.asarray(inliers, dtype=bool)
    if inliers.shape[0] != pts0.shape[0] or pts0.shape[0] != pts1.shape[0]:
        raise RefinementError("inlier mask and correspondences must have the same length")

    p0 = pts0[inliers]
    p1 = pts1[inliers]
    num_inliers = int(p0.shape[0])
    if num_inliers < model_fitter.sample_size:
        raise RefinementError(
            f"only {num_inliers} inliers, at least {model_fitter.sample_size} are needed")

    if not params.standard_deviation > 0.0:
        raise RefinementError(f"standard deviation must be > 0, got {params.standard_deviation}")
    sigma = float(params.standard_deviation)
    weight = np.sqrt(params.suggestion_weight * num_inliers) if suggestion_terms is not None else 0.0

    def residual_fun(x: FloatArray) -> FloatArray:
        candidate = model_fitter.from_params(x)
        r = model_fitter.residual_vector(candidate, p0, p1) / sigma
        if suggestion_terms is not None:
            r = np.concatenate([r, weight * suggestion_terms(candidate)])
        return r

    try:
        x0 = np.asarray(model_fitter.to_params(model), dtype=np.float64)
        r0 = residual_fun(x0)
    except (ValueError, np.linalg.LinAlgError) as e:
        raise RefinementError(f"cannot evaluate the initial model: {e}") from e
    if not np.all(np.isfinite(r0)):
        raise RefinementError("initial model has non-finite residuals")
    cost0 = _cost(r0)

    try:
        if params.fast:
            x, r, J = _fast_refine(model_fitter, x0, r0, p0, p1, residual_fun, params)
        else:
            x, r, J = _lm_refine(x0, r0, residual_fun, params)
    except (ValueError, np.linalg.LinAlgError) as e:
        raise RefinementError(f"optimization failed: {e}") from e

    improved = bool(np.all(np.isfinite(x)) and np.all(np.isfinite(r)) and _cost(r) < cost0)
    if improved:
        refined = model_fitter.from_params(x)
        logger.debug("Refinement improved cost %.6g -> %.6g over %d inliers", cost0, _cost(r), num_inliers)
    else:
        logger.debug("Refinement did not improve cost %.6g, keeping the consensus model", cost0)
        refined, x, r, J = model, x0, r0, None

    covariance = None
    if params.keep_covariance:
        if J is None:
            J = numerical_jacobian(residual_fun, x, params.jacobian_step)
        covariance = estimate_covariance(J, r)
        if covariance is None:
            logger.debug("Covariance not available (singular normal matrix or no redundancy)")

    return RefinementResult(model=refined, covariance=covariance, improved=improved)


def _lm_refine(
        x0: FloatArray,
        r0: FloatArray,
        residual_fun: Callable[[FloatArray], FloatArray],
        params: RefinementParams,
) -> tuple[FloatArray, FloatArray, Optional[FloatArray]]:
    # MINPACK's LM needs at least as many residuals as parameters
    method = "lm" if r0.shape[0] >= x0.shape[0] else "trf"

    kwargs = {}
    if params.max_evaluations is not None:
        kwargs["max_nfev"] = params.max_evaluations

    result = least_squares(
        residual_fun,
        x0,
        method=method,
        x_scale="jac",
        ftol=params.ftol,
        xtol=params.xtol,
        gtol=params.gtol,
        **kwargs,
    )
    if result.status < 0:
        raise RefinementError(f"least squares failed: {result.message}")
    return result.x, result.fun, result.jac


def _fast_refine(
        model_fitter: ModelFitter[M],
        x0: FloatArray,
        r0: FloatArray,
        p0: FloatArray,
        p1: FloatArray,
        residual_fun: Callable[[FloatArray], FloatArray],
        params: RefinementParams,
) -> tuple[FloatArray, FloatArray, Optional[FloatArray]]:
    # Linear refit on all inliers as the starting point
    x, r = x0, r0
    refit = model_fitter.fit_least_squares(p0, p1)
    if refit is not None:
        x_refit = np.asarray(model_fitter.to_params(refit), dtype=np.float64)
        r_refit = residual_fun(x_refit)
        if np.all(np.isfinite(r_refit)) and _cost(r_refit) < _cost(r):
            x, r = x_refit, r_refit

    # One damped Gauss-Newton step
    J = numerical_jacobian(residual_fun, x, params.jacobian_step)
    JtJ = J.T @ J
    g = J.T @ r
    diag = np.diag(JtJ).copy()
    diag[diag <= 0.0] = 1.0
    delta = np.linalg.solve(JtJ + params.damping * np.diag(diag), -g)

    x_step = x + delta
    r_step = residual_fun(x_step)
    if np.all(np.isfinite(r_step)) and _cost(r_step) < _cost(r):
        return x_step, r_step, None
    return x, r, J
