"""
Evaluate the likelihood of data under Gaussian, multivariate-t and
factor-analyzer mixtures.

The private functions here are written with ``autograd.numpy`` so that the
derivative engine can trace through them. The public functions operate on
concrete mixture parameters and check for degenerate parameters first.
"""

__all__ = ["weighted_log_prob", "log_likelihood", "log_likelihoods",
    "responsibilities", "check_degenerate"]

import logging

import autograd.numpy as np
from autograd.scipy.linalg import solve_triangular
from autograd.scipy.special import gammaln, logsumexp

from .exceptions import DegenerateLikelihood

logger = logging.getLogger(__name__)

# Smallest diagonal entry of a covariance factor (or specific variance)
# before the component is considered to have collapsed.
COLLAPSE_TOLERANCE = 1e-12


def _log_gaussian_prob(y, mean, scale_tril):
    r"""
    Return the log density of a multivariate normal distribution with
    covariance :math:`LL^\top` for all :math:`N` observations.

    :param y:
        A :math:`N\times{}D` array of the observations :math:`y`,
        where :math:`N` is the number of observations, and :math:`D` is
        the number of dimensions per observation.

    :param mean:
        The mean of the distribution.

    :param scale_tril:
        The lower triangular Cholesky factor :math:`L` of the covariance
        matrix.
    """

    N, D = y.shape
    z = solve_triangular(scale_tril, (y - mean).T, lower=True)
    log_det = np.sum(np.log(np.diag(scale_tril)))
    return -0.5 * (D * np.log(2 * np.pi) + np.sum(z**2, axis=0)) - log_det


def _log_student_t_prob(y, mean, scale_tril, dof):
    r"""
    Return the log density of a multivariate t-distribution with scale
    matrix :math:`LL^\top` and ``dof`` degrees of freedom.
    """

    N, D = y.shape
    z = solve_triangular(scale_tril, (y - mean).T, lower=True)
    mahalanobis = np.sum(z**2, axis=0)
    log_det = np.sum(np.log(np.diag(scale_tril)))

    return gammaln(0.5 * (dof + D)) - gammaln(0.5 * dof) \
         - 0.5 * D * np.log(dof * np.pi) - log_det \
         - 0.5 * (dof + D) * np.log1p(mahalanobis / dof)


def _log_factor_analyzer_prob(y, mean, factor_loads, specific_variances):
    r"""
    Return the log density of a multivariate normal distribution with
    covariance :math:`WW^\top + \Psi`, without forming the :math:`D\times{}D`
    covariance matrix. The Woodbury identity reduces the inverse and the
    determinant to those of the :math:`Q\times{}Q` matrix
    :math:`I + W^\top\Psi^{-1}W`.

    :param factor_loads:
        The :math:`D\times{}Q` factor loading matrix :math:`W`.

    :param specific_variances:
        The :math:`D` diagonal entries of :math:`\Psi`.
    """

    N, D = y.shape
    Q = factor_loads.shape[1]

    residual = y - mean
    scaled_loads = factor_loads / specific_variances[:, np.newaxis]
    capacitance = np.eye(Q) + np.dot(factor_loads.T, scaled_loads)
    capacitance_chol = np.linalg.cholesky(capacitance)

    u = solve_triangular(
        capacitance_chol, np.dot(scaled_loads.T, residual.T), lower=True)
    mahalanobis = np.sum(residual**2 / specific_variances, axis=1) \
                - np.sum(u**2, axis=0)
    log_det = 2 * np.sum(np.log(np.diag(capacitance_chol))) \
            + np.sum(np.log(specific_variances))

    return -0.5 * (D * np.log(2 * np.pi) + mahalanobis + log_det)


def _estimate_log_prob(y, params):
    r"""
    Return the :math:`N\times{}K` log densities of every observation under
    every component.
    """

    K = params["means"].shape[0]
    if "factor_loads" in params:
        columns = [_log_factor_analyzer_prob(y, params["means"][k],
            params["factor_loads"][k], params["specific_variances"][k]) \
            for k in range(K)]

    elif "dofs" in params:
        columns = [_log_student_t_prob(y, params["means"][k],
            params["scale_tril"][k], params["dofs"][k]) for k in range(K)]

    else:
        columns = [_log_gaussian_prob(y, params["means"][k],
            params["scale_tril"][k]) for k in range(K)]

    return np.stack(columns, axis=1)


def weighted_log_prob(y, params):
    r"""
    Return the weighted log probability of the observations :math:`y`
    belonging to each component,

    .. math::

        \log{w_k} + \log{f(y_i|\theta_k)}

    :param y:
        A :math:`N\times{}D` array of the observations :math:`y`.

    :param params:
        A dictionary of mixture parameters.
    """
    return _estimate_log_prob(y, params) + params["log_weights"]


def check_degenerate(params):
    r"""
    Raise :class:`DegenerateLikelihood` if any component of the (concrete)
    mixture parameters has collapsed.
    """

    if "scale_tril" in params:
        diagonals = np.diagonal(params["scale_tril"], axis1=-2, axis2=-1)
        if not np.all(np.isfinite(diagonals)) \
        or np.min(diagonals) <= COLLAPSE_TOLERANCE:
            raise DegenerateLikelihood("a covariance factor has collapsed")

    if "specific_variances" in params:
        specific_variances = params["specific_variances"]
        if not np.all(np.isfinite(specific_variances)) \
        or np.min(specific_variances) <= COLLAPSE_TOLERANCE:
            raise DegenerateLikelihood("a specific variance has collapsed")

    if not np.all(np.isfinite(params["log_weights"])):
        raise DegenerateLikelihood("a mixing weight has collapsed")


def _expectation(y, params):
    check_degenerate(params)
    try:
        weighted = weighted_log_prob(y, params)
    except np.linalg.LinAlgError as e:
        raise DegenerateLikelihood(str(e)) from e

    log_prob_norm = logsumexp(weighted, axis=1)
    if not np.all(np.isfinite(log_prob_norm)):
        raise DegenerateLikelihood("log-likelihood is not finite")

    return weighted, log_prob_norm


def log_likelihoods(y, params):
    r"""
    Return the log-likelihood of each observation,
    :math:`\log\sum_{k}w_kf(y_i|\theta_k)`.
    """
    return _expectation(y, params)[1]


def log_likelihood(y, params):
    r"""
    Return the total log-likelihood of the observations :math:`y` given the
    mixture parameters.

    :raise DegenerateLikelihood:
        If the parameters have collapsed or the log-likelihood is not finite.
    """
    return float(np.sum(log_likelihoods(y, params)))


def responsibilities(y, params):
    r"""
    Return the :math:`N\times{}K` responsibility matrix,

    .. math::

        r_{ik} = \frac{w_{k}f\left(y_i;\theta_k\right)}{\sum_{j=1}^{K}{w_j}f\left(y_i;\theta_j\right)}

    """

    weighted, log_prob_norm = _expectation(y, params)
    with np.errstate(under="ignore"):
        return np.exp(weighted - log_prob_norm[:, np.newaxis])
