"""
PyPartialROC: Partial ROC testing for species-distribution and classification models.

Bootstrap estimates of the partial AUC ratio: does a model discriminate
test (presence) records from the background better than random within
its high-sensitivity operating region?

Usage:
    from pypartialroc import proc
"""

__version__ = "0.1.0"
__author__ = "Hai-Shuo"
__email__ = "contact@sgcx.org"

from pypartialroc import proc

__all__ = [
    "__version__",
    "proc",
]
