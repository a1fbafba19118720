"""Reduction of partial ROC bootstrap replicates to test statistics."""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray

from pypartialroc.proc._bootstrap import bootstrap_partial_auc
from pypartialroc.proc._common import (
    InvalidInputError,
    PartialROCBootstrap,
    PartialROCSummary,
)


def summarize(
    results: PartialROCBootstrap | NDArray[np.floating],
    has_complete_auc: bool,
) -> PartialROCSummary:
    """Mean AUCs, mean ratio and one-sided p-value of a bootstrap table.

    Parameters
    ----------
    results : PartialROCBootstrap or array of float, shape ``(n, 4)``
        Output of :func:`bootstrap_partial_auc`, or its ``table``.
    has_complete_auc : bool
        Whether the first column holds complete AUCs.

    Returns
    -------
    PartialROCSummary

    Notes
    -----
    Means use only rows with a finite ratio, so ``NaN`` rows are dropped
    and all-zero rows are kept.  The p-value is
    ``1 - (rows with ratio > 1) / (all rows)``: its denominator counts
    every row, including those excluded from the means.
    """
    table = results.table if isinstance(results, PartialROCBootstrap) else results
    table = np.asarray(table, dtype=np.float64)

    if table.ndim != 2 or table.shape[1] != 4:
        raise InvalidInputError(
            f"results must have shape (n_iterations, 4), got {table.shape}"
        )

    n_rows = table.shape[0]
    ratios = table[:, 3]
    finite = np.isfinite(ratios)
    n_valid = int(finite.sum())

    if n_valid == 0:
        return PartialROCSummary(
            mean_complete_auc=np.nan,
            mean_pauc=np.nan,
            mean_pauc_rand=np.nan,
            mean_auc_ratio=np.nan,
            p_value=np.nan,
            n_iterations=n_rows,
            n_valid=0,
        )

    # NaN > 1 is False, so missing rows count as "not better than random"
    prop_success = np.sum(ratios > 1.0) / n_rows
    valid = table[finite]

    return PartialROCSummary(
        mean_complete_auc=float(np.mean(valid[:, 0])) if has_complete_auc else np.nan,
        mean_pauc=float(np.mean(valid[:, 1])),
        mean_pauc_rand=float(np.mean(valid[:, 2])),
        mean_auc_ratio=float(np.mean(valid[:, 3])),
        p_value=float(1.0 - prop_success),
        n_iterations=n_rows,
        n_valid=n_valid,
    )


def partial_roc_test(
    test_predictions: NDArray[np.floating],
    background_predictions: NDArray[np.floating],
    **kwargs,
) -> PartialROCSummary:
    """Run :func:`bootstrap_partial_auc` and summarize the replicates.

    Keyword arguments are passed through to :func:`bootstrap_partial_auc`.
    """
    boot = bootstrap_partial_auc(test_predictions, background_predictions, **kwargs)
    return summarize(boot, has_complete_auc=boot.compute_full_auc)
