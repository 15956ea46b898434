"""
Differentiable maps from unconstrained real vectors to constrained mixture
parameters (simplex weights, positive-definite matrices, orthogonal matrices),
together with their inverses, which are used to build initial vectors.

Every forward map in this module is written with ``autograd.numpy`` and does
not assign into arrays, so that it can sit on the differentiated path.
"""

__all__ = ["log_softmax", "logits_from_weights", "cholesky_factor",
    "cholesky_params", "orthogonal_matrix", "orthogonal_params",
    "shape_vector", "shape_params", "factor_loads", "factor_loads_params",
    "num_cholesky_params", "num_orthogonal_params", "num_loading_params"]

from functools import lru_cache

import autograd.numpy as np
from autograd.scipy.special import logsumexp


def num_cholesky_params(D):
    r"""
    Return the number of free parameters in a :math:`D\times{}D` lower
    triangular Cholesky factor.
    """
    return D * (D + 1) // 2


def num_orthogonal_params(D):
    r"""
    Return the number of free parameters in a :math:`D\times{}D` rotation.
    """
    return D * (D - 1) // 2


def num_loading_params(D, Q):
    r"""
    Return the number of free parameters in a :math:`D\times{}Q` factor
    loading matrix, after removing the rotational freedom.
    """
    return D * Q - Q * (Q - 1) // 2


def _scatter_matrix(shape, rows, cols):
    size = len(rows)
    scatter = np.zeros((shape[0] * shape[1], size))
    scatter[np.ravel_multi_index((rows, cols), shape), np.arange(size)] = 1.0
    scatter.flags.writeable = False
    return scatter


@lru_cache(maxsize=None)
def _strictly_lower_scatter(D):
    return _scatter_matrix((D, D), *np.tril_indices(D, -1))


@lru_cache(maxsize=None)
def _trapezoid_scatter(D, Q):
    return _scatter_matrix((D, Q), *np.tril_indices(D, 0, Q))


def log_softmax(logits):
    r"""
    Map :math:`K - 1` unconstrained logits to the logarithm of :math:`K`
    mixing weights. The last component's logit is pinned at zero, so the
    weights are identifiable and always sum to one.

    :param logits:
        An array of :math:`K - 1` real values.

    :returns:
        An array of :math:`K` log weights.
    """
    full = np.concatenate([logits, np.zeros(1)])
    return full - logsumexp(full)


def logits_from_weights(weights):
    r"""
    Return the logits that :func:`log_softmax` maps back to ``weights``.
    """
    log_weights = np.log(np.asarray(weights, dtype=float))
    return log_weights[:-1] - log_weights[-1]


def cholesky_factor(params, D):
    r"""
    Build a lower triangular matrix :math:`L` with strictly positive diagonal
    from :math:`D(D + 1)/2` unconstrained values, such that :math:`LL^\top`
    is positive-definite.

    The first :math:`D` values are the logarithm of the diagonal, and the
    remainder fill the strictly lower triangle in row-major order.
    """
    lower = np.reshape(np.dot(_strictly_lower_scatter(D), params[D:]), (D, D))
    return lower + np.diag(np.exp(params[:D]))


def cholesky_params(L):
    r"""
    Return the unconstrained values that :func:`cholesky_factor` maps to the
    lower triangular matrix ``L``.
    """
    L = np.asarray(L, dtype=float)
    rows, cols = np.tril_indices(L.shape[0], -1)
    return np.concatenate([np.log(np.diag(L)), L[rows, cols]])


def orthogonal_matrix(params, D):
    r"""
    Build a :math:`D\times{}D` rotation matrix from :math:`D(D - 1)/2`
    unconstrained values using the Cayley transform

    .. math::

        R = (I - S)^{-1}(I + S)

    where :math:`S` is the skew-symmetric matrix whose strictly lower
    triangle holds ``params``.
    """
    lower = np.reshape(np.dot(_strictly_lower_scatter(D), params), (D, D))
    skew = lower - lower.T
    identity = np.eye(D)
    return np.linalg.solve(identity - skew, identity + skew)


def orthogonal_params(R):
    r"""
    Return the unconstrained values that :func:`orthogonal_matrix` maps to
    (a sign-adjusted version of) the orthogonal matrix ``R``.

    Column signs of ``R`` are flipped to make it a proper rotation as close
    to the identity as possible. Rotations that the Cayley transform cannot
    reach map to the identity.
    """
    R = np.array(R, dtype=float)
    D = R.shape[0]
    R = R * np.where(np.diag(R) < 0, -1.0, 1.0)
    if np.linalg.det(R) < 0:
        R[:, -1] = -R[:, -1]

    identity = np.eye(D)
    rows, cols = np.tril_indices(D, -1)
    if np.linalg.cond(R + identity) > 1e8:
        return np.zeros(rows.size)

    skew = np.linalg.solve(R + identity, R - identity)
    return skew[rows, cols]


def shape_vector(params):
    r"""
    Map :math:`D - 1` unconstrained values to a positive vector of length
    :math:`D` whose product is one (the shape of an ellipsoid with unit
    volume).
    """
    log_shape = np.concatenate([params, -np.sum(params) * np.ones(1)])
    return np.exp(log_shape)


def shape_params(shape):
    r"""
    Return the unconstrained values that :func:`shape_vector` maps to the
    normalised version of ``shape``.
    """
    log_shape = np.log(np.asarray(shape, dtype=float))
    return (log_shape - np.mean(log_shape))[:-1]


def factor_loads(params, D, Q):
    r"""
    Build a :math:`D\times{}Q` factor loading matrix with a zero upper
    triangle from :math:`DQ - Q(Q - 1)/2` unconstrained values.
    """
    return np.reshape(np.dot(_trapezoid_scatter(D, Q), params), (D, Q))


def factor_loads_params(W):
    r"""
    Rotate the loading matrix ``W`` so that its upper triangle is zero, and
    return the unconstrained values that :func:`factor_loads` maps to it.
    """
    W = np.asarray(W, dtype=float)
    D, Q = W.shape
    rotation, _ = np.linalg.qr(W[:Q].T)
    W = np.dot(W, rotation)
    rows, cols = np.tril_indices(D, 0, Q)
    return W[rows, cols]
