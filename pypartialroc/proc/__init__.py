"""
Partial ROC analysis for presence-background model evaluation.

Range binning of background and test predictions, trapezoidal partial
AUC, the bootstrap partial ROC ratio test and its summary statistics.

Method: Peterson, Papeş & Soberón (2008), *Ecological Modelling* 213:63-72.
"""

from pypartialroc.proc._common import (
    BinnedSamples,
    PartialROCBootstrap,
    PartialROCSummary,
    InvalidInputError,
    COMPUTED,
    DEGENERATE,
    UNDEFINED,
)
from pypartialroc.proc._trapezoid import trapezoidal_area
from pypartialroc.proc._binning import (
    bin_predictions,
    bin_template,
    build_bins_and_template,
    discretize,
)
from pypartialroc.proc._bootstrap import bootstrap_partial_auc
from pypartialroc.proc._summary import summarize, partial_roc_test

__all__ = [
    "BinnedSamples",
    "PartialROCBootstrap",
    "PartialROCSummary",
    "InvalidInputError",
    "COMPUTED",
    "DEGENERATE",
    "UNDEFINED",
    "trapezoidal_area",
    "bin_predictions",
    "bin_template",
    "build_bins_and_template",
    "discretize",
    "bootstrap_partial_auc",
    "summarize",
    "partial_roc_test",
]
