""" Test the maps from unconstrained vectors to mixture parameters. """

import numpy as np
import unittest

from .. import transforms


class TestSimplex(unittest.TestCase):

    def test_weights_sum_to_one(self):

        random = np.random.RandomState(0)
        for magnitude in (1, 10, 1e3, 1e8):
            for K in (1, 2, 5):
                logits = magnitude * random.randn(K - 1)
                weights = np.exp(transforms.log_softmax(logits))

                self.assertAlmostEqual(np.sum(weights), 1.0, delta=1e-9)
                self.assertTrue(np.all(weights >= 0))


    def test_inverse(self):

        weights = np.array([0.2, 0.5, 0.3])
        logits = transforms.logits_from_weights(weights)
        self.assertEqual(logits.size, 2)
        np.testing.assert_allclose(
            np.exp(transforms.log_softmax(logits)), weights)



class TestCholeskyFactor(unittest.TestCase):

    def test_positive_definite(self):

        random = np.random.RandomState(1)
        for D in (1, 2, 4):
            for _ in range(10):
                params = 3 * random.randn(transforms.num_cholesky_params(D))
                L = transforms.cholesky_factor(params, D)
                covariance = np.dot(L, L.T)

                np.testing.assert_array_equal(L, np.tril(L))
                np.testing.assert_allclose(covariance, covariance.T)
                self.assertTrue(np.all(np.linalg.eigvalsh(covariance) > 0))


    def test_inverse(self):

        covariance = np.array([[2.0, 0.3, 0.1], [0.3, 1.0, -0.2],
                               [0.1, -0.2, 0.5]])
        L = np.linalg.cholesky(covariance)
        params = transforms.cholesky_params(L)
        np.testing.assert_allclose(transforms.cholesky_factor(params, 3), L)



class TestOrthogonal(unittest.TestCase):

    def test_orthogonal(self):

        random = np.random.RandomState(2)
        for D in (1, 2, 3, 5):
            params = random.randn(transforms.num_orthogonal_params(D))
            R = transforms.orthogonal_matrix(params, D)
            np.testing.assert_allclose(np.dot(R, R.T), np.eye(D), atol=1e-12)
            self.assertAlmostEqual(np.linalg.det(R), 1.0)


    def test_eigenvectors(self):

        covariance = np.array([[2.0, 0.8], [0.8, 1.0]])
        _, eigenvectors = np.linalg.eigh(covariance)
        params = transforms.orthogonal_params(eigenvectors)
        R = transforms.orthogonal_matrix(params, 2)

        # Same eigenspaces, up to the sign of each column.
        np.testing.assert_allclose(
            np.abs(np.dot(R.T, eigenvectors)), np.eye(2), atol=1e-10)



class TestShape(unittest.TestCase):

    def test_unit_determinant(self):

        random = np.random.RandomState(3)
        for D in (1, 2, 4):
            shape = transforms.shape_vector(random.randn(D - 1))
            self.assertEqual(shape.size, D)
            self.assertTrue(np.all(shape > 0))
            self.assertAlmostEqual(np.prod(shape), 1.0)


    def test_normalised_inverse(self):

        shape = np.array([4.0, 1.0, 2.0])
        recovered = transforms.shape_vector(transforms.shape_params(shape))
        np.testing.assert_allclose(recovered, shape / np.prod(shape)**(1/3.))



class TestFactorLoads(unittest.TestCase):

    def test_zero_upper_triangle(self):

        D, Q = 5, 2
        params = np.arange(1, 1 + transforms.num_loading_params(D, Q))
        W = transforms.factor_loads(params.astype(float), D, Q)

        self.assertEqual(W.shape, (D, Q))
        self.assertEqual(W[0, 1], 0)
        self.assertEqual(np.count_nonzero(W), params.size)


    def test_rotation_preserves_covariance(self):

        random = np.random.RandomState(4)
        W = random.randn(4, 2)
        params = transforms.factor_loads_params(W)
        W_rotated = transforms.factor_loads(params, 4, 2)

        np.testing.assert_allclose(
            np.dot(W_rotated, W_rotated.T), np.dot(W, W.T), atol=1e-12)
