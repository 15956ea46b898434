"""
Iterative minimizers of the negative log-likelihood over the unconstrained
parameter vector. Every optimizer returns the trace of parameter vectors it
visited, starting with the initial vector.
"""

__all__ = ["Optimizer", "NewtonCG", "GradientDescent", "RMSProp", "Adam",
    "OPTIMIZERS", "get_optimizer"]

import logging

import numpy as np
from scipy import optimize as op

from .exceptions import (DegenerateLikelihood, FitFailed, InvalidArgument,
    UnknownOptimizer)

logger = logging.getLogger(__name__)


class Optimizer(object):

    r"""
    A base class for optimizers of the negative log-likelihood.

    :param max_iter: [optional]
        The maximum number of (outer) iterations.

    :param tolerance: [optional]
        The relative change in the objective between consecutive iterations
        below which the objective is considered to have plateaued
        (default: ``1e-8``).
    """

    name = None
    default_max_iter = 1000

    def __init__(self, max_iter=None, tolerance=1e-8, **kwargs):

        max_iter = self.default_max_iter if max_iter is None else max_iter
        if int(max_iter) != max_iter or 0 >= max_iter:
            raise InvalidArgument("max_iter must be a positive integer")

        if 0 > tolerance:
            raise InvalidArgument("tolerance must be a non-negative value")

        if kwargs:
            logger.warning("Ignoring unknown {} options: {}".format(
                self.name, ", ".join(sorted(kwargs))))

        self.max_iter = int(max_iter)
        self.tolerance = tolerance
        self.meta = {}
        return None


    def minimize(self, objective, init_vector):
        r"""
        Minimize the objective, starting from ``init_vector``.

        :param objective:
            A :class:`gradmix.autodiff.NegativeLogLikelihood` instance.

        :param init_vector:
            The initial unconstrained parameter vector.

        :returns:
            A list of parameter vectors, one per iteration, starting with the
            initial vector. If the objective becomes degenerate part way, the
            vectors accumulated so far are returned.

        :raise FitFailed:
            If the objective cannot be evaluated at the initial vector.
        """

        vector = np.array(init_vector, dtype=float)
        try:
            value, gradient = objective.value_and_gradient(vector)
        except DegenerateLikelihood as e:
            raise FitFailed(
                "cannot evaluate the objective at the initial parameters: "
                "{}".format(e)) from e

        trace, values = [vector], [value]
        self.meta = dict(optimizer=self.name, converged=False,
            degenerate=False, values=values)

        logger.debug("{}: initial objective {}".format(self.name, value))

        try:
            self._minimize(objective, vector, value, gradient, trace, values)

        except DegenerateLikelihood as e:
            logger.warning("Halting {} after {} iterations: {}".format(
                self.name, len(trace) - 1, e))
            self.meta["degenerate"] = True

        self.meta["iterations"] = len(trace) - 1
        return trace


    def _minimize(self, objective, vector, value, gradient, trace, values):
        raise NotImplementedError("the _minimize method should be defined "
                                  "in the Optimizer sub-class")


    def _has_plateaued(self, values):
        if len(values) < 2:
            return False
        change = abs(values[-2] - values[-1])
        return change <= self.tolerance * max(1.0, abs(values[-1]))



class NewtonCG(Optimizer):

    r"""
    Truncated Newton minimization. Each outer iteration solves for the Newton
    step with conjugate gradients using exact Hessian-vector products, then
    performs a Wolfe line search. Trial steps where the mixture is degenerate
    are rejected by the line search; the fit only halts as degenerate when no
    acceptable step can be found.

    :param gtol: [optional]
        Stop when the norm of the gradient, divided by the number of
        observations, falls below this value (default: ``1e-6``).

    :param xtol: [optional]
        Average relative change in the parameters below which the inner
        solver terminates (default: ``1e-8``).
    """

    name = "Newton-CG"
    default_max_iter = 200

    def __init__(self, max_iter=None, tolerance=1e-10, gtol=1e-6, xtol=1e-8,
        **kwargs):
        super(NewtonCG, self).__init__(
            max_iter=max_iter, tolerance=tolerance, **kwargs)

        if 0 > gtol:
            raise InvalidArgument("gtol must be a non-negative value")
        if 0 >= xtol:
            raise InvalidArgument("xtol must be a positive value")

        self.gtol = gtol
        self.xtol = xtol
        return None


    def _small_gradient(self, gradient, N):
        return self.gtol >= np.linalg.norm(gradient) / N


    def _minimize(self, objective, vector, value, gradient, trace, values):

        N = objective.num_observations
        if self._small_gradient(gradient, N):
            logger.info("Newton-CG: initial parameters are already optimal")
            self.meta["converged"] = True
            return None

        # Trial points of the line search may fall where the mixture is
        # degenerate. These are reported to scipy as infinite so that it
        # backtracks, and only points accepted by the callback are traced.
        last = dict(degenerate=False)

        def fun(x):
            try:
                value = objective(x)
            except DegenerateLikelihood as e:
                logger.debug("Newton-CG: rejecting trial point: {}".format(e))
                last["degenerate"] = True
                return np.inf
            last["degenerate"] = False
            return value

        def jac(x):
            try:
                gradient = objective.gradient(x)
            except DegenerateLikelihood:
                last["degenerate"] = True
                return np.full(np.shape(x), np.inf)
            last["degenerate"] = False
            return gradient

        def callback(intermediate_result):
            xk = np.array(intermediate_result.x, dtype=float)
            value, gradient = objective.value_and_gradient(xk)
            trace.append(xk)
            values.append(value)

            logger.debug("Newton-CG iteration {}: objective {}".format(
                len(trace) - 1, value))

            if self._small_gradient(gradient, N) \
            or self._has_plateaued(values):
                self.meta["converged"] = True
                raise StopIteration

        result = op.minimize(fun, vector, method="Newton-CG",
            jac=jac, hessp=objective.hessian_vector_product,
            callback=callback,
            options=dict(maxiter=self.max_iter, xtol=self.xtol))

        if self.meta["converged"]:
            logger.info("Newton-CG converged after {} iterations".format(
                len(trace) - 1))

        elif len(trace) - 1 >= self.max_iter:
            logger.warning(
                "Hit maximum number of Newton-CG iterations ({})".format(
                    self.max_iter))

        elif last["degenerate"] and not result.success:
            logger.warning("Halting Newton-CG after {} iterations: no "
                           "non-degenerate step was found".format(
                               len(trace) - 1))
            self.meta["degenerate"] = True

        else:
            logger.info("Newton-CG stopped: {}".format(result.message))
            self.meta["converged"] = bool(result.success)

        return None



class _FirstOrderOptimizer(Optimizer):

    r"""
    A base class for first-order optimizers. Steps are taken along the
    gradient of the per-observation objective, so that step sizes do not
    depend on the number of observations.

    :param step_size: [optional]
        The learning rate.
    """

    default_step_size = 0.01

    def __init__(self, max_iter=None, tolerance=1e-8, step_size=None,
        **kwargs):
        super(_FirstOrderOptimizer, self).__init__(
            max_iter=max_iter, tolerance=tolerance, **kwargs)

        step_size = self.default_step_size if step_size is None else step_size
        if 0 >= step_size:
            raise InvalidArgument("step_size must be a positive value")

        self.step_size = step_size
        return None


    def _initial_state(self, vector):
        return {}


    def _update(self, vector, gradient, iteration, state):
        raise NotImplementedError("the _update method should be defined "
                                  "in the optimizer sub-class")


    def _minimize(self, objective, vector, value, gradient, trace, values):

        N = objective.num_observations
        state = self._initial_state(vector)

        for iteration in range(self.max_iter):

            vector = self._update(vector, gradient / N, iteration, state)
            value, gradient = objective.value_and_gradient(vector)
            trace.append(vector)
            values.append(value)

            logger.debug("{} iteration {}: objective {}".format(
                self.name, iteration + 1, value))

            if self._has_plateaued(values):
                logger.info("{} converged after {} iterations".format(
                    self.name, iteration + 1))
                self.meta["converged"] = True
                break

        else:
            logger.warning("Hit maximum number of {} iterations ({})".format(
                self.name, self.max_iter))

        return None



class GradientDescent(_FirstOrderOptimizer):

    r"""
    Gradient descent with momentum.

    :param mass: [optional]
        The momentum coefficient (default: ``0.9``).
    """

    name = "grad_descent"
    default_step_size = 0.05

    def __init__(self, mass=0.9, **kwargs):
        super(GradientDescent, self).__init__(**kwargs)
        if not 0 <= mass < 1:
            raise InvalidArgument("mass must be in [0, 1)")
        self.mass = mass
        return None


    def _initial_state(self, vector):
        return dict(velocity=np.zeros_like(vector))


    def _update(self, vector, gradient, iteration, state):
        state["velocity"] = self.mass * state["velocity"] \
                          - (1.0 - self.mass) * gradient
        return vector + self.step_size * state["velocity"]



class RMSProp(_FirstOrderOptimizer):

    r"""
    Root mean squared propagation: the step for each parameter is scaled by
    a running average of its squared gradient.

    :param gamma: [optional]
        The decay rate of the running average (default: ``0.9``).

    :param eps: [optional]
        A small value added to the denominator (default: ``1e-8``).
    """

    name = "rms_prop"

    def __init__(self, gamma=0.9, eps=1e-8, **kwargs):
        super(RMSProp, self).__init__(**kwargs)
        if not 0 <= gamma < 1:
            raise InvalidArgument("gamma must be in [0, 1)")
        if 0 >= eps:
            raise InvalidArgument("eps must be a positive value")
        self.gamma = gamma
        self.eps = eps
        return None


    def _initial_state(self, vector):
        return dict(avg_sq_grad=np.ones_like(vector))


    def _update(self, vector, gradient, iteration, state):
        state["avg_sq_grad"] = self.gamma * state["avg_sq_grad"] \
                             + (1 - self.gamma) * gradient**2
        return vector - self.step_size * gradient \
                      / (np.sqrt(state["avg_sq_grad"]) + self.eps)



class Adam(_FirstOrderOptimizer):

    r"""
    Adaptive moment estimation (Kingma & Ba, 2015).

    :param b1: [optional]
        The decay rate of the first moment estimate (default: ``0.9``).

    :param b2: [optional]
        The decay rate of the second moment estimate (default: ``0.999``).

    :param eps: [optional]
        A small value added to the denominator (default: ``1e-8``).
    """

    name = "adam"

    def __init__(self, b1=0.9, b2=0.999, eps=1e-8, **kwargs):
        super(Adam, self).__init__(**kwargs)
        if not 0 <= b1 < 1 or not 0 <= b2 < 1:
            raise InvalidArgument("b1 and b2 must be in [0, 1)")
        if 0 >= eps:
            raise InvalidArgument("eps must be a positive value")
        self.b1 = b1
        self.b2 = b2
        self.eps = eps
        return None


    def _initial_state(self, vector):
        return dict(m=np.zeros_like(vector), v=np.zeros_like(vector))


    def _update(self, vector, gradient, iteration, state):
        state["m"] = (1 - self.b1) * gradient + self.b1 * state["m"]
        state["v"] = (1 - self.b2) * gradient**2 + self.b2 * state["v"]
        m_hat = state["m"] / (1 - self.b1**(iteration + 1))
        v_hat = state["v"] / (1 - self.b2**(iteration + 1))
        return vector - self.step_size * m_hat / (np.sqrt(v_hat) + self.eps)



OPTIMIZERS = {
    NewtonCG.name: NewtonCG,
    GradientDescent.name: GradientDescent,
    RMSProp.name: RMSProp,
    Adam.name: Adam,
}


def get_optimizer(name, **kwargs):
    r"""
    Return an optimizer instance by name.

    :param name:
        One of ``Newton-CG``, ``grad_descent``, ``rms_prop``, or ``adam``.

    :raise UnknownOptimizer:
        If the name is not a registered optimizer.
    """

    try:
        klass = OPTIMIZERS[name]
    except (KeyError, TypeError):
        raise UnknownOptimizer(
            "Optimizer '{}' is invalid. Must be one of: {}".format(
                name, ", ".join(OPTIMIZERS))) from None

    return klass(**kwargs)
