r"""
Gaussian mixture models from the MCLUST family, where the covariance matrix
of every component is decomposed into a volume, a shape and an orientation,

.. math::

    \Sigma_k = \lambda_k D_k A_k D_k^\top

and each of these is either equal across components (E), variable across
components (V), or fixed to the identity (I).
"""

__all__ = ["Mclust", "MCLUST_MODELS"]

import autograd.numpy as np

from . import transforms
from .base import BaseMixtureModel
from .exceptions import InvalidStructuralParameter

MCLUST_MODELS = ("EII", "VII", "EEI", "VEI", "EVI", "VVI", "EEE", "VEE",
    "EVE", "VVE", "EEV", "VEV", "EVV", "VVV")


class Mclust(BaseMixtureModel):

    r"""
    Model data with a mixture of :math:`K` multivariate Gaussian distributions
    whose covariance matrices follow an MCLUST structure.

    :param data:
        A :math:`N\times{}D` array of the observations :math:`y`.

    :param model_type: [optional]
        A three-letter code giving the volume, shape and orientation
        constraints. The available options are: EII, VII, EEI, VEI, EVI,
        VVI, EEE, VEE, EVE, VVE, EEV, VEV, EVV, VVV (default: ``VVV``).

    :param random_state: [optional]
        A seed or ``numpy.random.RandomState`` used for initialization.
    """

    default_model_type = "VVV"

    def __init__(self, data, model_type=None, random_state=None):

        model_type = self.default_model_type if model_type is None \
                                             else model_type
        if not isinstance(model_type, str) \
        or model_type.strip().upper() not in MCLUST_MODELS:
            raise InvalidStructuralParameter(
                "Model type '{}' is invalid. Must be one of: {}".format(
                    model_type, ", ".join(MCLUST_MODELS)))

        super(Mclust, self).__init__(data, random_state=random_state)
        self.model_type = model_type.strip().upper()
        return None


    @property
    def model_name(self):
        return "Mclust_{}".format(self.model_type)


    def _counts(self):
        r"""
        Return the number of distinct volumes, shape vectors and orientation
        matrices in the model.
        """

        K, D = self._structure()
        volume, shape, orientation = self.model_type
        return (
            1 if volume == "E" else K,
            0 if shape == "I" or D == 1 else (1 if shape == "E" else K),
            0 if orientation == "I" or D == 1 \
              else (1 if orientation == "E" else K))


    def _num_covariance_params(self):
        K, D = self._structure()
        volume, shape, orientation = self.model_type
        num_params = {"E": 1, "V": K}[volume]
        num_params += {"I": 0, "E": D - 1, "V": K * (D - 1)}[shape]
        num_params += {"I": 0, "E": 1, "V": K}[orientation] \
                    * transforms.num_orthogonal_params(D)
        return num_params


    def _parameter_sizes(self):
        K, D = self._structure()
        num_volumes, num_shapes, num_orientations = self._counts()
        return self._weight_and_mean_sizes() + [
            ("log_volumes", num_volumes),
            ("shapes", num_shapes * (D - 1)),
            ("orientations",
                num_orientations * transforms.num_orthogonal_params(D))
        ]


    def forward(self, vector):
        K, D = self._structure()
        blocks = self.unpack(vector)
        num_volumes, num_shapes, num_orientations = self._counts()

        volumes = np.exp(blocks["log_volumes"]) * np.ones(K)

        if num_shapes:
            raw = np.reshape(blocks["shapes"], (num_shapes, D - 1))
            shapes = np.stack([transforms.shape_vector(raw[k % num_shapes]) \
                for k in range(K)])
        else:
            shapes = np.ones((K, D))

        if num_orientations:
            raw = np.reshape(blocks["orientations"], (num_orientations, -1))
            orientations = np.stack([transforms.orthogonal_matrix(
                raw[k % num_orientations], D) for k in range(K)])
        else:
            orientations = np.stack([np.eye(D)] * K)

        covariances = np.stack([volumes[k] * np.dot(
            orientations[k] * shapes[k], orientations[k].T) for k in range(K)])
        scale_tril = np.stack([np.linalg.cholesky(covariances[k]) \
            for k in range(K)])

        return self._mixture_params(blocks, volumes=volumes, shapes=shapes,
            orientations=orientations, covariances=covariances,
            scale_tril=scale_tril)


    def _initial_blocks(self, labels, weights, means, covariances,
        random_state):

        K, D = self._structure()
        num_volumes, num_shapes, num_orientations = self._counts()

        # Orientations from the eigenvectors of the (pooled) covariances.
        if num_orientations == 1:
            pooled = np.sum(
                weights[:, np.newaxis, np.newaxis] * covariances, axis=0)
            orientation_params = [
                transforms.orthogonal_params(np.linalg.eigh(pooled)[1])]
        elif num_orientations == K:
            orientation_params = [transforms.orthogonal_params(
                np.linalg.eigh(covariance)[1]) for covariance in covariances]
        else:
            orientation_params = []

        log_volumes = np.zeros(K)
        log_shapes = np.zeros((K, D))
        for k, covariance in enumerate(covariances):
            if orientation_params:
                R = transforms.orthogonal_matrix(
                    orientation_params[k % num_orientations], D)
            else:
                R = np.eye(D)

            variances = np.diag(np.dot(R.T, np.dot(covariance, R)))
            if num_shapes:
                log_volumes[k] = np.mean(np.log(variances))
                log_shapes[k] = np.log(variances) - log_volumes[k]
            else:
                log_volumes[k] = np.log(np.mean(variances))

        if num_volumes == 1:
            log_volumes = np.atleast_1d(np.sum(weights * log_volumes))

        if num_shapes == 1:
            log_shapes = np.atleast_2d(np.sum(
                weights[:, np.newaxis] * log_shapes, axis=0))

        return dict(
            logits=transforms.logits_from_weights(weights),
            means=means,
            log_volumes=log_volumes,
            shapes=[transforms.shape_params(np.exp(log_shape)) \
                for log_shape in log_shapes[:num_shapes]],
            orientations=orientation_params)
