""" Exceptions raised when specifying or fitting mixture models. """

__all__ = ["GradmixError", "InvalidArgument", "InvalidStructuralParameter",
    "UnknownOptimizer", "DegenerateLikelihood", "FitFailed"]


class GradmixError(Exception):
    """ Base class for all errors raised by gradmix. """


class InvalidArgument(GradmixError, ValueError):
    """
    Malformed caller input, detected before any numerical work is done.
    """


class InvalidStructuralParameter(InvalidArgument):
    """
    A structural parameter (number of latent factors, covariance structure
    code) is not valid for the model family.
    """


class UnknownOptimizer(InvalidArgument):
    """ The optimizer name is not one of the registered optimizers. """


class DegenerateLikelihood(GradmixError, ArithmeticError):
    """
    The likelihood cannot be evaluated because the mixture parameters have
    collapsed (e.g., a covariance factor lost positive-definiteness).
    """


class FitFailed(GradmixError, RuntimeError):
    """ The objective could not be evaluated at the initial parameters. """
