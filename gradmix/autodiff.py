"""
The negative log-likelihood objective of a mixture model, as a function of
the unconstrained parameter vector, with exact derivatives computed by
reverse-mode automatic differentiation through the forward map and the
likelihood.
"""

__all__ = ["NegativeLogLikelihood"]

import logging

import autograd.numpy as np
from autograd import hessian_vector_product, value_and_grad
from autograd.scipy.special import logsumexp

from .exceptions import DegenerateLikelihood
from .likelihood import check_degenerate, weighted_log_prob

logger = logging.getLogger(__name__)


class NegativeLogLikelihood(object):

    r"""
    The objective minimized by every optimizer,

    .. math::

        f(v) = -\sum_{i=1}^{N}\log\sum_{k=1}^{K}w_k(v)\,p(y_i|\theta_k(v))

    where :math:`v` is the unconstrained parameter vector.

    The last value and gradient are cached, so that optimizers asking for the
    value and then the gradient at the same point only pay for one pass.

    :param data:
        A :math:`N\times{}D` array of the observations :math:`y`.

    :param forward:
        A callable that maps an unconstrained vector to a dictionary of
        mixture parameters. It must be written with ``autograd.numpy``.
    """

    def __init__(self, data, forward):
        self._data = data
        self._forward = forward
        self._value_and_grad = value_and_grad(self._objective)
        self._hvp = hessian_vector_product(self._objective)
        self._cache = (None, None, None)
        self.num_evaluations = 0
        return None


    @property
    def num_observations(self):
        """
        Return the number of observations, :math:`N`.
        """
        return self._data.shape[0]


    def _objective(self, vector):
        weighted = weighted_log_prob(self._data, self._forward(vector))
        return -np.sum(logsumexp(weighted, axis=1))


    def _check(self, vector):
        try:
            check_degenerate(self._forward(vector))
        except np.linalg.LinAlgError as e:
            raise DegenerateLikelihood(str(e)) from e


    def value_and_gradient(self, vector):
        r"""
        Return the objective value and its exact gradient at ``vector``.

        :raise DegenerateLikelihood:
            If the mixture parameters have collapsed, or if the objective or
            its gradient is not finite.
        """

        vector = np.asarray(vector, dtype=float)
        key = vector.tobytes()
        if key == self._cache[0]:
            return self._cache[1:]

        self._check(vector)
        try:
            value, gradient = self._value_and_grad(vector)
        except np.linalg.LinAlgError as e:
            raise DegenerateLikelihood(str(e)) from e

        self.num_evaluations += 1
        if not np.isfinite(value) or not np.all(np.isfinite(gradient)):
            raise DegenerateLikelihood(
                "non-finite objective ({}) after {} evaluations".format(
                    value, self.num_evaluations))

        value = float(value)
        self._cache = (key, value, gradient)
        return (value, gradient)


    def __call__(self, vector):
        return self.value_and_gradient(vector)[0]


    def gradient(self, vector):
        r"""
        Return the exact gradient of the objective at ``vector``.
        """
        return self.value_and_gradient(vector)[1]


    def hessian_vector_product(self, vector, direction):
        r"""
        Return the exact product of the Hessian of the objective at
        ``vector`` with ``direction``, without forming the Hessian.
        """

        try:
            product = self._hvp(
                np.asarray(vector, dtype=float),
                np.asarray(direction, dtype=float))
        except np.linalg.LinAlgError as e:
            raise DegenerateLikelihood(str(e)) from e

        if not np.all(np.isfinite(product)):
            raise DegenerateLikelihood("non-finite Hessian-vector product")
        return product
