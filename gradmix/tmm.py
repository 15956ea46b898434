"""
Mixtures of multivariate t-distributions, which are more robust to outliers
than Gaussian mixtures.
"""

__all__ = ["TMM"]

import autograd.numpy as np

from . import transforms
from .base import BaseMixtureModel
from .exceptions import InvalidArgument


class TMM(BaseMixtureModel):

    r"""
    Model data with a mixture of :math:`K` multivariate t-distributions. Each
    component has its own location, full scale matrix, and degrees of
    freedom :math:`\nu_k > 0`, which is parameterized on a logarithmic scale.

    The ``covariances`` in the mixture parameters are the scale matrices; the
    covariance of a component is :math:`\nu_k/(\nu_k - 2)` times the scale
    matrix when :math:`\nu_k > 2`.

    :param data:
        A :math:`N\times{}D` array of the observations :math:`y`.

    :param initial_dof: [optional]
        The degrees of freedom for every component at initialization
        (default: ``10``).

    :param random_state: [optional]
        A seed or ``numpy.random.RandomState`` used for initialization.
    """

    model_name = "TMM"

    def __init__(self, data, initial_dof=10.0, random_state=None):
        super(TMM, self).__init__(data, random_state=random_state)
        if not np.isfinite(initial_dof) or 0 >= initial_dof:
            raise InvalidArgument("initial_dof must be a positive value")
        self.initial_dof = initial_dof
        return None


    def _num_covariance_params(self):
        K, D = self._structure()
        return K * transforms.num_cholesky_params(D) + K


    def _parameter_sizes(self):
        K, D = self._structure()
        return self._weight_and_mean_sizes() + [
            ("scale_tril", K * transforms.num_cholesky_params(D)),
            ("log_dofs", K)
        ]


    def forward(self, vector):
        K, D = self._structure()
        blocks = self.unpack(vector)
        factors = np.reshape(blocks["scale_tril"], (K, -1))
        scale_tril = np.stack(
            [transforms.cholesky_factor(factors[k], D) for k in range(K)])
        return self._mixture_params(blocks, scale_tril=scale_tril,
            dofs=np.exp(blocks["log_dofs"]))


    def _initial_blocks(self, labels, weights, means, covariances,
        random_state):
        K, D = self._structure()
        return dict(
            logits=transforms.logits_from_weights(weights),
            means=means,
            scale_tril=np.hstack([transforms.cholesky_params(
                np.linalg.cholesky(covariance)) for covariance in covariances]),
            log_dofs=np.log(self.initial_dof) * np.ones(K))
