r"""
Mixtures of factor analyzers, where the covariance matrix of every component
has a low-rank plus diagonal structure,

.. math::

    \Sigma_k = W_kW_k^\top + \Psi_k

with :math:`W_k` a :math:`D\times{}Q` factor loading matrix and
:math:`\Psi_k` a diagonal matrix of specific variances.
"""

__all__ = ["MFA"]

import logging

import autograd.numpy as np
from sklearn import decomposition

from . import transforms
from .base import BaseMixtureModel

logger = logging.getLogger(__name__)


class MFA(BaseMixtureModel):

    r"""
    Model data with a mixture of :math:`K` factor analyzers, each with
    :math:`Q` latent factors, its own factor loads, and its own specific
    variances.

    The number of latent factors is given to :meth:`init_params`. If it is
    not given, the largest :math:`Q` that satisfies the Ledermann bound
    :math:`(D - Q)^2 \geq D + Q` is used.

    :param data:
        A :math:`N\times{}D` array of the observations :math:`y`.

    :param random_state: [optional]
        A seed or ``numpy.random.RandomState`` used for initialization.
    """

    model_name = "MFA"
    requires_latent_factors = True

    # Factor loads (E/V across components), specific variances (E/V across
    # components), and specific variances isotropic (I) or not (V).
    model_type = "VVV"

    def _counts(self):
        r"""
        Return the number of distinct factor load matrices, the number of
        distinct specific variance vectors, and the number of free values in
        each specific variance vector.
        """

        K, D = self._structure()
        loads, noise, noise_shape = self.model_type
        return (
            1 if loads == "E" else K,
            1 if noise == "E" else K,
            1 if noise_shape == "I" else D)


    def _num_covariance_params(self):
        K, D = self._structure()
        Q = self.num_latent_factors
        loads, noise, noise_shape = self.model_type
        num_params = {"E": 1, "V": K}[loads] * (D * Q - Q * (Q - 1) // 2)
        num_params += {"E": 1, "V": K}[noise] * {"I": 1, "V": D}[noise_shape]
        return num_params


    def _parameter_sizes(self):
        K, D = self._structure()
        num_loads, num_noise, noise_size = self._counts()
        return self._weight_and_mean_sizes() + [
            ("factor_loads", num_loads * transforms.num_loading_params(
                D, self.num_latent_factors)),
            ("log_specific_variances", num_noise * noise_size)
        ]


    def forward(self, vector):
        K, D = self._structure()
        Q = self.num_latent_factors
        blocks = self.unpack(vector)
        num_loads, num_noise, noise_size = self._counts()

        raw_loads = np.reshape(blocks["factor_loads"], (num_loads, -1))
        raw_noise = np.reshape(
            blocks["log_specific_variances"], (num_noise, noise_size))

        factor_loads, specific_variances, covariances = [], [], []
        for k in range(K):
            W = transforms.factor_loads(raw_loads[k % num_loads], D, Q)
            psi = np.exp(raw_noise[k % num_noise]) * np.ones(D)
            factor_loads.append(W)
            specific_variances.append(psi)
            covariances.append(np.dot(W, W.T) + np.diag(psi))

        return self._mixture_params(blocks,
            factor_loads=np.stack(factor_loads),
            specific_variances=np.stack(specific_variances),
            covariances=np.stack(covariances))


    def _factor_analysis(self, y, random_state):
        fa = decomposition.FactorAnalysis(
            n_components=self.num_latent_factors, random_state=random_state)
        fa.fit(y)
        return (fa.components_.T, fa.noise_variance_)


    def _initial_blocks(self, labels, weights, means, covariances,
        random_state):

        K, D = self._structure()
        num_loads, num_noise, noise_size = self._counts()

        # Factor analysis of the residuals after removing the component means.
        residual = self.data - means[labels]
        pooled = self._factor_analysis(residual, random_state)

        factor_loads, log_noise = [], []
        for k in range(K):
            members = residual[labels == k]
            if max(num_loads, num_noise) > 1 and members.shape[0] > D:
                W, psi = self._factor_analysis(members, random_state)
            else:
                logger.debug("Using pooled factor analysis for component "
                             "{} of {}".format(k, K))
                W, psi = pooled

            factor_loads.append(W)
            log_noise.append(np.log(np.maximum(psi, 1e-6 * np.diag(
                covariances[k]))))

        if num_loads == 1:
            factor_loads = [pooled[0]]

        log_noise = np.array(log_noise)
        if num_noise == 1:
            log_noise = np.atleast_2d(np.sum(
                weights[:, np.newaxis] * log_noise, axis=0))

        if noise_size == 1:
            log_noise = np.mean(log_noise, axis=1)

        return dict(
            logits=transforms.logits_from_weights(weights),
            means=means,
            factor_loads=[transforms.factor_loads_params(W) \
                for W in factor_loads],
            log_specific_variances=log_noise)
