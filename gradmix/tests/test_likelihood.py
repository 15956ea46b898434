""" Test the likelihood of Gaussian, t and factor-analyzer mixtures. """

import numpy as np
import unittest
from scipy import stats
from scipy.special import logsumexp

from .. import likelihood
from ..exceptions import DegenerateLikelihood


class TestLikelihood(unittest.TestCase):

    def setUp(self):

        random = np.random.RandomState(0)
        self.y = random.randn(50, 3)
        self.means = np.array([[0, 0, 0], [1, -1, 2]], dtype=float)
        self.covariances = np.array([
            [
                [1.0, 0.2, 0.0],
                [0.2, 0.5, 0.1],
                [0.0, 0.1, 2.0]
            ],
            [
                [0.7, -0.3, 0.0],
                [-0.3, 1.2, 0.0],
                [0.0, 0.0, 0.3]
            ]
        ])
        self.weights = np.array([0.3, 0.7])


    def _gaussian_params(self):
        return dict(weights=self.weights, log_weights=np.log(self.weights),
            means=self.means, covariances=self.covariances,
            scale_tril=np.linalg.cholesky(self.covariances))


    def _expected_log_likelihoods(self, logpdf):
        return logsumexp(np.log(self.weights) + np.array([
            logpdf(k) for k in range(2)]).T, axis=1)


    def test_gaussian(self):

        expected = self._expected_log_likelihoods(
            lambda k: stats.multivariate_normal.logpdf(
                self.y, self.means[k], self.covariances[k]))

        params = self._gaussian_params()
        np.testing.assert_allclose(
            likelihood.log_likelihoods(self.y, params), expected)
        self.assertAlmostEqual(
            likelihood.log_likelihood(self.y, params), np.sum(expected))


    def test_student_t(self):

        dofs = np.array([3.0, 12.0])
        expected = self._expected_log_likelihoods(
            lambda k: stats.multivariate_t.logpdf(
                self.y, self.means[k], self.covariances[k], df=dofs[k]))

        params = self._gaussian_params()
        params.update(dofs=dofs)
        np.testing.assert_allclose(
            likelihood.log_likelihoods(self.y, params), expected)


    def test_factor_analyzer(self):

        random = np.random.RandomState(1)
        factor_loads = random.randn(2, 3, 1)
        specific_variances = np.array([[0.5, 0.2, 1.0], [0.3, 0.3, 0.3]])
        covariances = np.array([np.dot(W, W.T) + np.diag(psi) \
            for W, psi in zip(factor_loads, specific_variances)])

        expected = self._expected_log_likelihoods(
            lambda k: stats.multivariate_normal.logpdf(
                self.y, self.means[k], covariances[k]))

        params = dict(weights=self.weights, log_weights=np.log(self.weights),
            means=self.means, covariances=covariances,
            factor_loads=factor_loads, specific_variances=specific_variances)
        np.testing.assert_allclose(
            likelihood.log_likelihoods(self.y, params), expected)


    def test_responsibilities(self):

        responsibility = likelihood.responsibilities(
            self.y, self._gaussian_params())

        self.assertEqual(responsibility.shape, (50, 2))
        self.assertTrue(np.all(responsibility >= 0))
        np.testing.assert_allclose(np.sum(responsibility, axis=1), 1)


    def test_far_away_observations(self):

        # Densities underflow, but the log-sum-exp does not.
        y = np.vstack([self.y, 1e3 * np.ones((1, 3))])
        params = self._gaussian_params()

        self.assertTrue(np.all(np.isfinite(
            likelihood.log_likelihoods(y, params))))
        np.testing.assert_allclose(
            np.sum(likelihood.responsibilities(y, params), axis=1), 1)


    def test_collapsed_covariance(self):

        params = self._gaussian_params()
        params["scale_tril"] = params["scale_tril"].copy()
        params["scale_tril"][1, 2, 2] = 0

        with self.assertRaises(DegenerateLikelihood):
            likelihood.log_likelihood(self.y, params)


    def test_collapsed_specific_variance(self):

        params = dict(weights=self.weights, log_weights=np.log(self.weights),
            means=self.means, factor_loads=np.ones((2, 3, 1)),
            specific_variances=np.array([[1.0, 1.0, 1.0], [1.0, 0.0, 1.0]]))

        with self.assertRaises(DegenerateLikelihood):
            likelihood.responsibilities(self.y, params)
