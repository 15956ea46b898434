"""
Gaussian mixture models with full covariance matrices, either free for every
component or shared by all components.
"""

__all__ = ["GMM", "GMMConstrained"]

import autograd.numpy as np

from . import transforms
from .base import BaseMixtureModel


class GMM(BaseMixtureModel):

    r"""
    Model data with a mixture of :math:`K` multivariate Gaussian distributions,
    each with its own full covariance matrix.

    Each covariance matrix is parameterized by its Cholesky factor, with the
    diagonal of the factor on a logarithmic scale.

    :param data:
        A :math:`N\times{}D` array of the observations :math:`y`.

    :param random_state: [optional]
        A seed or ``numpy.random.RandomState`` used for initialization.
    """

    model_name = "GMM"

    def _num_covariance_params(self):
        K, D = self._structure()
        return K * transforms.num_cholesky_params(D)


    def _parameter_sizes(self):
        K, D = self._structure()
        return self._weight_and_mean_sizes() \
             + [("scale_tril", K * transforms.num_cholesky_params(D))]


    def forward(self, vector):
        K, D = self._structure()
        blocks = self.unpack(vector)
        factors = np.reshape(blocks["scale_tril"], (K, -1))
        scale_tril = np.stack(
            [transforms.cholesky_factor(factors[k], D) for k in range(K)])
        return self._mixture_params(blocks, scale_tril=scale_tril)


    def _initial_blocks(self, labels, weights, means, covariances,
        random_state):
        return dict(
            logits=transforms.logits_from_weights(weights),
            means=means,
            scale_tril=np.hstack([transforms.cholesky_params(
                np.linalg.cholesky(covariance)) for covariance in covariances]))



class GMMConstrained(BaseMixtureModel):

    r"""
    Model data with a mixture of :math:`K` multivariate Gaussian distributions
    that share one full covariance matrix.

    :param data:
        A :math:`N\times{}D` array of the observations :math:`y`.

    :param random_state: [optional]
        A seed or ``numpy.random.RandomState`` used for initialization.
    """

    model_name = "GMM_Constrained"

    def _num_covariance_params(self):
        K, D = self._structure()
        return transforms.num_cholesky_params(D)


    def _parameter_sizes(self):
        K, D = self._structure()
        return self._weight_and_mean_sizes() \
             + [("scale_tril", transforms.num_cholesky_params(D))]


    def forward(self, vector):
        K, D = self._structure()
        blocks = self.unpack(vector)
        L = transforms.cholesky_factor(blocks["scale_tril"], D)
        return self._mixture_params(blocks, scale_tril=np.stack([L] * K))


    def _initial_blocks(self, labels, weights, means, covariances,
        random_state):
        covariance = np.sum(weights[:, np.newaxis, np.newaxis] * covariances,
                            axis=0)
        return dict(
            logits=transforms.logits_from_weights(weights),
            means=means,
            scale_tril=transforms.cholesky_params(
                np.linalg.cholesky(covariance)))
