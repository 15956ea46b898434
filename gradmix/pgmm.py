"""
Parsimonious Gaussian mixture models: mixtures of factor analyzers with
constraints on the factor loads and the specific variances.
"""

__all__ = ["PGMM", "PGMM_MODELS"]

from .exceptions import InvalidStructuralParameter
from .mfa import MFA

PGMM_MODELS = ("EEI", "EEV", "EVI", "EVV", "VEI", "VEV", "VVI", "VVV")


def _normalize_model_type(model_type):
    r"""
    Return the canonical code for a PGMM model type. Codes in the notation of
    McNicholas & Murphy (2008), built from C (constrained) and U
    (unconstrained), are translated. Specific variances that are equal (E)
    across dimensions are isotropic, so a trailing E is read as I.
    """

    if not isinstance(model_type, str):
        raise InvalidStructuralParameter(
            "Model type must be a string (got {})".format(model_type))

    code = model_type.strip().upper()
    if len(code) == 3 and set(code) <= set("CU"):
        equal = dict(C="E", U="V")
        code = equal[code[0]] + equal[code[1]] + dict(C="I", U="V")[code[2]]
    elif len(code) == 3 and code[2] == "E":
        code = code[:2] + "I"

    if code not in PGMM_MODELS:
        raise InvalidStructuralParameter(
            "Model type '{}' is invalid. Must be one of: {}".format(
                model_type, ", ".join(PGMM_MODELS)))
    return code


class PGMM(MFA):

    r"""
    Model data with a parsimonious Gaussian mixture model.

    :param data:
        A :math:`N\times{}D` array of the observations :math:`y`.

    :param model_type: [optional]
        A three-letter code. The first letter states whether the factor loads
        are equal (E) or variable (V) across components, the second whether
        the specific variances are equal (E) or variable (V) across
        components, and the third whether the specific variances are
        isotropic (I, or equivalently E) or variable (V) across dimensions. The
        available options are: EEI, EEV, EVI, EVV, VEI, VEV, VVI, VVV, or
        their equivalents CCC, CCU, CUC, CUU, UCC, UCU, UUC, UUU
        (default: ``VVV``).

    :param random_state: [optional]
        A seed or ``numpy.random.RandomState`` used for initialization.
    """

    default_model_type = "VVV"

    def __init__(self, data, model_type=None, random_state=None):
        model_type = _normalize_model_type(
            self.default_model_type if model_type is None else model_type)
        super(PGMM, self).__init__(data, random_state=random_state)
        self.model_type = model_type
        return None


    @property
    def model_name(self):
        return "PGMM_{}".format(self.model_type)
