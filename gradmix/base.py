"""
A base model for mixtures that are fit by gradient-based optimization of the
log-likelihood over an unconstrained parameter vector.
"""

__all__ = ["BaseMixtureModel"]

import logging

import autograd.numpy as np
from sklearn import cluster
from sklearn.utils import check_random_state

from . import likelihood, transforms
from .autodiff import NegativeLogLikelihood
from .exceptions import InvalidArgument, InvalidStructuralParameter
from .optimizers import get_optimizer

logger = logging.getLogger(__name__)


def _validate_data(data, min_rows=1, num_features=None):
    r"""
    Return a read-only :math:`N\times{}D` float copy of ``data``.

    :raise InvalidArgument:
        If the data are not numeric, not finite, or have the wrong shape.
    """

    try:
        y = np.array(data, dtype=float)
    except (TypeError, ValueError) as e:
        raise InvalidArgument("data must be numeric: {}".format(e)) from e

    if y.ndim == 1:
        y = y.reshape((-1, 1))

    if y.ndim != 2:
        raise InvalidArgument("data must be a two-dimensional array")

    N, D = y.shape
    if min_rows > N:
        raise InvalidArgument("data must have at least {} rows".format(min_rows))

    if 1 > D:
        raise InvalidArgument("data must have at least 1 column")

    if num_features is not None and D != num_features:
        raise InvalidArgument(
            "data have {} columns but the model was fit with {}".format(
                D, num_features))

    if not np.all(np.isfinite(y)):
        raise InvalidArgument("data must be finite")

    y.flags.writeable = False
    return y


def _is_integer(value):
    if isinstance(value, bool):
        return False
    try:
        return int(value) == value
    except (TypeError, ValueError, OverflowError):
        return False


def _partition_statistics(y, labels, K):
    r"""
    Return the weights, means and covariance matrices of a hard partition of
    the data. Component covariances are shrunk towards the pooled covariance
    so that they are positive-definite even for tiny (or empty) components.
    """

    N, D = y.shape
    responsibility = np.zeros((N, K))
    responsibility[np.arange(N), labels] = 1

    effective_membership = np.sum(responsibility, axis=0)
    weights = (effective_membership + 0.5)/(N + K/2.0)

    pooled = np.atleast_2d(np.cov(y.T, bias=True))
    pooled = pooled + 1e-6 * max(1.0, np.mean(np.diag(pooled))) * np.eye(D)

    means = np.tile(np.mean(y, axis=0), (K, 1))
    covariances = np.tile(pooled, (K, 1, 1))
    for k in range(K):
        n_k = effective_membership[k]
        if n_k == 0:
            continue

        means[k] = np.sum(responsibility[:, k] * y.T, axis=1) / n_k
        diff = y[labels == k] - means[k]
        covariances[k] = (np.dot(diff.T, diff) + pooled) / (n_k + 1)

    return (weights, means, covariances)


class BaseMixtureModel(object):

    r"""
    A base class for mixture models fit by minimizing the negative
    log-likelihood with respect to an unconstrained parameter vector.

    Sub-classes describe the layout of the unconstrained vector
    (:meth:`_parameter_sizes`), the forward map from that vector to mixture
    parameters (:meth:`forward`), how to build an initial vector from a hard
    partition of the data (:meth:`_initial_blocks`), and the number of free
    covariance parameters (:meth:`_num_covariance_params`).

    :param data:
        A :math:`N\times{}D` array of the observations :math:`y`,
        where :math:`N` is the number of observations, and :math:`D` is
        the number of dimensions per observation.

    :param random_state: [optional]
        A seed or ``numpy.random.RandomState`` used for initialization.
    """

    model_name = None
    requires_latent_factors = False

    def __init__(self, data, random_state=None):
        self._data = _validate_data(data, min_rows=2)
        self.random_state = random_state
        self.meta = {}

        self._num_components = None
        self._num_latent_factors = None
        self._params_store = None
        self._fit_num_free_params = None
        return None


    @property
    def data(self):
        """
        Return the (read-only) data the model is fit to.
        """
        return self._data


    @property
    def num_observations(self):
        """
        Return the number of observations, :math:`N`.
        """
        return self._data.shape[0]


    @property
    def num_features(self):
        """
        Return the number of dimensions per observation, :math:`D`.
        """
        return self._data.shape[1]


    @property
    def num_components(self):
        """
        Return the number of components, :math:`K`, set by
        :meth:`init_params`.
        """
        return self._num_components


    @property
    def num_latent_factors(self):
        """
        Return the number of latent factors, :math:`Q`, if the family has
        any.
        """
        return self._num_latent_factors


    @property
    def params_store(self):
        """
        Return the trace of mixture parameters from the last fit.
        """
        if self._params_store is None:
            raise InvalidArgument("the model has not been fit")
        return self._params_store


    @property
    def params(self):
        """
        Return the final mixture parameters from the last fit.
        """
        return self.params_store[-1]


    @property
    def num_free_params(self):
        r"""
        Return the number of free parameters of the model: :math:`K - 1`
        mixing weights, :math:`KD` means, and the free covariance parameters
        implied by the covariance structure.
        """
        K, D = self._structure()
        return (K - 1) + K * D + self._num_covariance_params()


    def _structure(self):
        if self._num_components is None:
            raise InvalidArgument(
                "the model structure is unknown; call init_params first")
        return (self._num_components, self.num_features)


    def _num_covariance_params(self):
        raise NotImplementedError("the _num_covariance_params method should "
                                  "be defined in the model sub-class")


    def _parameter_sizes(self):
        raise NotImplementedError("the _parameter_sizes method should "
                                  "be defined in the model sub-class")


    def _initial_blocks(self, labels, weights, means, covariances,
        random_state):
        raise NotImplementedError("the _initial_blocks method should "
                                  "be defined in the model sub-class")


    def forward(self, vector):
        r"""
        Map an unconstrained parameter vector to a dictionary of mixture
        parameters.
        """
        raise NotImplementedError("the forward method should "
                                  "be defined in the model sub-class")


    def _weight_and_mean_sizes(self):
        K, D = self._structure()
        return [("logits", K - 1), ("means", K * D)]


    def unpack(self, vector):
        r"""
        Split an unconstrained parameter vector into its named blocks.
        """

        blocks, offset = {}, 0
        for name, size in self._parameter_sizes():
            blocks[name] = vector[offset:offset + size]
            offset += size
        return blocks


    def pack(self, blocks):
        r"""
        Concatenate named blocks into an unconstrained parameter vector.
        """

        vector = []
        for name, size in self._parameter_sizes():
            block = np.ravel(np.asarray(blocks[name], dtype=float))
            if block.size != size:
                raise ValueError("block '{}' has size {} (expected {})".format(
                    name, block.size, size))
            vector.append(block)
        return np.concatenate(vector)


    @property
    def num_unconstrained_params(self):
        r"""
        Return the length of the unconstrained parameter vector.
        """
        return sum(size for name, size in self._parameter_sizes())


    def _mixture_params(self, blocks, **kwargs):
        r"""
        Return the mixture parameters common to all families (weights and
        means), updated with the family-specific parameters in ``kwargs``.
        """

        K, D = self._structure()
        log_weights = transforms.log_softmax(blocks["logits"])
        params = dict(weights=np.exp(log_weights), log_weights=log_weights,
            means=np.reshape(blocks["means"], (K, D)))
        params.update(kwargs)

        if "covariances" not in params:
            L = params["scale_tril"]
            params["covariances"] = np.matmul(L, np.swapaxes(L, 1, 2))

        return params


    def _validate_latent_factors(self, q):
        D = self.num_features
        if q is None and self.requires_latent_factors:
            # Largest number of factors allowed by the Ledermann bound.
            q = max([1] + [Q for Q in range(1, D) if (D - Q)**2 >= D + Q])

        if q is not None and (not _is_integer(q) or not 1 <= q < D):
            raise InvalidStructuralParameter(
                "number of latent factors must be an integer in [1, {}) "
                "(got {})".format(D, q))

        if not self.requires_latent_factors:
            if q is not None:
                logger.warning("{} has no latent factors; ignoring q={}"\
                    .format(self.model_name, q))
            return None

        return int(q)


    def _initial_labels(self, K, use_kmeans, random_state):
        N, D = self.data.shape
        if use_kmeans and K <= N:
            kmeans = cluster.KMeans(
                n_clusters=K, n_init=10, random_state=random_state)
            return kmeans.fit(self.data).labels_

        if use_kmeans:
            logger.warning("Cannot run k-means with more components than "
                           "observations; using a random partition")

        centers = self.data[random_state.choice(N, size=K, replace=K > N)]
        distance = np.sum((self.data[:, np.newaxis, :] - centers)**2, axis=2)
        return np.argmin(distance, axis=1)


    def init_params(self, num_components, scale=0.5, q=None, use_kmeans=True):
        r"""
        Return an initial unconstrained parameter vector.

        The data are partitioned (by k-means, or around randomly chosen
        observations), the statistics of the partition are mapped to the
        unconstrained space, and the result is perturbed by random noise
        scaled by ``scale``.

        :param num_components:
            The number of mixture components, :math:`K`.

        :param scale: [optional]
            The scale of the random perturbation (default: ``0.5``).

        :param q: [optional]
            The number of latent factors. Only used by factor-analyzer
            families.

        :param use_kmeans: [optional]
            Partition the data with k-means rather than at random
            (default: ``True``).

        :raise InvalidArgument:
            If any argument is invalid.
        """

        if not _is_integer(num_components) or 1 > num_components:
            raise InvalidArgument(
                "number of components must be a positive integer")

        if not isinstance(scale, (int, float, np.number)) \
        or not np.isfinite(scale) or 0 > scale:
            raise InvalidArgument("scale must be a non-negative value")

        K = int(num_components)
        Q = self._validate_latent_factors(q)
        N, D = self.data.shape
        if K > N:
            logger.warning("The number of components ({}) is greater than "
                           "the number of observations ({})".format(K, N))

        random_state = check_random_state(self.random_state)
        labels = self._initial_labels(K, use_kmeans, random_state)
        weights, means, covariances = _partition_statistics(
            self.data, labels, K)

        previous = (self._num_components, self._num_latent_factors)
        self._num_components, self._num_latent_factors = (K, Q)
        try:
            blocks = self._initial_blocks(
                labels, weights, means, covariances, random_state)

            noise_scale = 0.1 * scale
            std = np.std(self.data, axis=0)
            for name, size in self._parameter_sizes():
                noise = noise_scale * random_state.randn(size)
                if name == "means":
                    noise = noise * np.tile(std, K)
                blocks[name] = np.ravel(blocks[name]) + noise

            vector = self.pack(blocks)

        except BaseException:
            self._num_components, self._num_latent_factors = previous
            raise

        logger.debug("init_params: {} with K={} Q={}: {} parameters".format(
            self.model_name, K, Q, vector.size))
        return vector


    def _validate_vector(self, vector):
        self._structure()
        try:
            vector = np.array(vector, dtype=float).ravel()
        except (TypeError, ValueError) as e:
            raise InvalidArgument(
                "parameter vector must be numeric: {}".format(e)) from e

        if vector.size != self.num_unconstrained_params:
            raise InvalidArgument(
                "parameter vector has size {} (expected {})".format(
                    vector.size, self.num_unconstrained_params))

        if not np.all(np.isfinite(vector)):
            raise InvalidArgument("parameter vector must be finite")
        return vector


    def fit(self, init_params, optimizer="Newton-CG", **kwargs):
        r"""
        Fit the mixture model by minimizing the negative log-likelihood,
        starting from the given unconstrained parameter vector.

        :param init_params:
            The initial unconstrained parameter vector (see
            :meth:`init_params`).

        :param optimizer: [optional]
            One of ``Newton-CG`` (default), ``grad_descent``, ``rms_prop``,
            or ``adam``.

        :param \**kwargs:
            Options passed to the optimizer.

        :returns:
            The trace of mixture parameters, one entry per iteration.

        :raise UnknownOptimizer:
            If the optimizer name is not recognised.

        :raise FitFailed:
            If the objective cannot be evaluated at the initial parameters.
        """

        minimizer = get_optimizer(optimizer, **kwargs)
        vector = self._validate_vector(init_params)

        objective = NegativeLogLikelihood(self.data, self.forward)
        vectors = minimizer.minimize(objective, vector)
        params_store = [self.forward(v) for v in vectors]

        self._params_store = params_store
        self._fit_num_free_params = self.num_free_params
        self.meta = dict(minimizer.meta)
        self.meta.update(num_evaluations=objective.num_evaluations)

        logger.info("{}: fit with {} finished after {} iterations "
                    "(converged: {})".format(self.model_name, optimizer,
                        self.meta["iterations"], self.meta["converged"]))
        return params_store


    def _resolve(self, data, params):
        if data is None:
            data = self.data
        else:
            data = _validate_data(data, num_features=self.num_features)
        return (data, self.params if params is None else params)


    def responsibilities(self, data=None, params=None):
        r"""
        Return the :math:`N\times{}K` matrix of posterior probabilities of each
        observation belonging to each component.

        :param data: [optional]
            The observations (default: the training data).

        :param params: [optional]
            An entry of the parameter trace (default: the final entry).
        """
        return likelihood.responsibilities(*self._resolve(data, params))


    def labels(self, data=None, params=None):
        r"""
        Return the most probable component for each observation, as an
        integer in :math:`[0, K)`. Ties go to the lowest component index.

        :param data: [optional]
            The observations (default: the training data).

        :param params: [optional]
            An entry of the parameter trace (default: the final entry).
        """
        return np.argmax(self.responsibilities(data, params), axis=1)


    def likelihood(self, params=None, data=None):
        r"""
        Return the total log-likelihood.

        :param params: [optional]
            An entry of the parameter trace (default: the final entry).

        :param data: [optional]
            The observations (default: the training data).
        """
        data, params = self._resolve(data, params)
        return likelihood.log_likelihood(data, params)


    def _criterion_num_free_params(self):
        # Count for the structure of the last successful fit, which is kept
        # if init_params is called again.
        if self._fit_num_free_params is None:
            return self.num_free_params
        return self._fit_num_free_params


    def aic(self, params=None):
        r"""
        Return the Akaike information criterion on the training data,

        .. math::

            \textrm{AIC} = 2Q - 2\log{\mathcal{L}}

        where :math:`Q` is the number of free parameters of the fitted model.
        """
        return 2 * self._criterion_num_free_params() \
             - 2 * self.likelihood(params)


    def bic(self, params=None):
        r"""
        Return the Bayesian information criterion on the training data,

        .. math::

            \textrm{BIC} = Q\log{N} - 2\log{\mathcal{L}}

        where :math:`Q` is the number of free parameters of the fitted model.
        """
        num_free_params = self._criterion_num_free_params()
        return num_free_params * np.log(self.num_observations) \
             - 2 * self.likelihood(params)
