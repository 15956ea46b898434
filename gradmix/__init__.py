""" Mixture models fit by automatic differentiation and gradient-based optimization. """

import logging

from . import (autodiff, likelihood, optimizers, transforms)
from .exceptions import (GradmixError, InvalidArgument,
    InvalidStructuralParameter, UnknownOptimizer, DegenerateLikelihood,
    FitFailed)
from .gmm import GMM, GMMConstrained
from .mclust import Mclust
from .mfa import MFA
from .pgmm import PGMM
from .tmm import TMM

__version__ = "0.1.0"

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

handler = logging.StreamHandler()
handler.setFormatter(logging.Formatter(
    "%(asctime)s [%(levelname)s] %(message)s"))
logger.addHandler(handler)

del handler, logger, logging
