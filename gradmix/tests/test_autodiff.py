""" Test the exact derivatives of the negative log-likelihood. """

import numpy as np
import unittest

from .. import GMM, GMMConstrained, MFA, Mclust, PGMM, TMM
from ..autodiff import NegativeLogLikelihood
from ..exceptions import DegenerateLikelihood


def _centered_difference(function, x, h=1e-5):
    gradient = np.zeros_like(x)
    for i in range(x.size):
        step = np.zeros_like(x)
        step[i] = h
        gradient[i] = (function(x + step) - function(x - step)) / (2 * h)
    return gradient


class TestGradient(unittest.TestCase):

    def _generate_data(self):
        random = np.random.RandomState(42)
        return np.vstack([
            random.multivariate_normal([0, 0], [[1, 0.3], [0.3, 0.5]], 10),
            random.multivariate_normal([3, 1], [[0.4, 0], [0, 0.8]], 10)
        ])


    def _models(self, y):
        return [
            (GMM(y, random_state=0), {}),
            (GMMConstrained(y, random_state=0), {}),
            (Mclust(y, model_type="VVV", random_state=0), {}),
            (Mclust(y, model_type="EVE", random_state=0), {}),
            (Mclust(y, model_type="VEI", random_state=0), {}),
            (MFA(y, random_state=0), dict(q=1)),
            (PGMM(y, model_type="EVI", random_state=0), dict(q=1)),
            (TMM(y, random_state=0), {}),
        ]


    def _check_gradient(self, model, kwargs):
        random = np.random.RandomState(7)
        init = model.init_params(2, scale=1.0, **kwargs)
        objective = NegativeLogLikelihood(model.data, model.forward)

        for _ in range(3):
            vector = init + 0.3 * random.randn(init.size)
            gradient = objective.gradient(vector)
            expected = _centered_difference(objective, vector)

            self.assertLessEqual(
                np.linalg.norm(gradient - expected),
                1e-4 * max(1.0, np.linalg.norm(expected)),
                msg=model.model_name)


    def test_gradients_match_finite_differences(self):
        y = self._generate_data()
        for model, kwargs in self._models(y):
            self._check_gradient(model, kwargs)


    def test_hessian_vector_product(self):

        y = self._generate_data()
        model = GMM(y, random_state=0)
        vector = model.init_params(2, scale=1.0)
        objective = NegativeLogLikelihood(model.data, model.forward)

        direction = np.random.RandomState(3).randn(vector.size)
        h = 1e-5
        expected = (objective.gradient(vector + h * direction) \
                 -  objective.gradient(vector - h * direction)) / (2 * h)
        product = objective.hessian_vector_product(vector, direction)

        self.assertLessEqual(np.linalg.norm(product - expected),
                             1e-4 * max(1.0, np.linalg.norm(expected)))


    def test_value_matches_likelihood(self):

        y = self._generate_data()
        model = TMM(y, random_state=0)
        vector = model.init_params(2)
        objective = NegativeLogLikelihood(model.data, model.forward)

        self.assertAlmostEqual(
            objective(vector), -model.likelihood(model.forward(vector)))
        self.assertEqual(objective.num_observations, 20)


    def test_degenerate(self):

        y = self._generate_data()
        model = GMMConstrained(y)
        vector = model.init_params(2)
        vector[model.num_unconstrained_params - 3] = -1000

        objective = NegativeLogLikelihood(model.data, model.forward)
        with self.assertRaises(DegenerateLikelihood):
            objective.value_and_gradient(vector)
