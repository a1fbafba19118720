"""Shared result types and errors for partial ROC analysis."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray


EPS = float(np.finfo(np.float64).eps)

# Replicate status codes (one per bootstrap row)
COMPUTED = 0  # ratio = model pAUC / random pAUC
DEGENERATE = 1  # one of the partial AUCs was exactly zero; row of zeros
UNDEFINED = 2  # fewer than two bins above the sensitivity cut; row of NaN

RESULT_COLUMNS = ("auc_complete", "auc_pmodel", "auc_prand", "ratio")


class InvalidInputError(ValueError):
    """Raised when top-level inputs cannot produce a partial ROC test."""


@dataclass(frozen=True)
class BinnedSamples:
    """Background and test predictions mapped into a shared bin space.

    Attributes
    ----------
    background_bins, test_bins : array of int
        Bin index in ``[1, n_bins]`` for every cleaned value, in input
        order.  With ``mode='discard'`` a floating-point edge case may put
        an index outside that range; such indices are not counted.
    counts : array of int, shape ``(n_bins,)``
        Background histogram; ``counts[k]`` is the count of bin ``k + 1``.
    fractional_area : array of float, shape ``(n_bins,)``
        Cumulative background fraction from bin ``n_bins`` down to bin 1.
        Element ``j`` pairs with template column ``j``.
    n_bins : int
    min_value, max_value : float
        Range of the combined cleaned samples.
    mode : str
        ``'clamp'`` or ``'discard'``.
    """

    background_bins: NDArray[np.integer]
    test_bins: NDArray[np.integer]
    counts: NDArray[np.integer]
    fractional_area: NDArray[np.floating]
    n_bins: int
    min_value: float
    max_value: float
    mode: str

    @property
    def n_background(self) -> int:
        return int(self.background_bins.shape[0])

    @property
    def n_test(self) -> int:
        return int(self.test_bins.shape[0])


@dataclass(frozen=True)
class PartialROCBootstrap:
    """Bootstrap replicates of the partial ROC test.

    Attributes
    ----------
    table : array of float, shape ``(iterations, 4)``
        Columns are complete AUC, model partial AUC, random partial AUC
        and their ratio.  ``NaN`` marks a value that could not be computed
        for that replicate.
    status : array of int8, shape ``(iterations,)``
        ``COMPUTED``, ``DEGENERATE`` or ``UNDEFINED`` per row.
    threshold : float
        Omission error percentage; partial region is
        sensitivity > ``1 - threshold / 100``.
    sample_percentage : float
        Percentage of the test sample drawn per replicate.
    n_samp : int
        Test observations drawn per replicate.
    n_bins : int
    compute_full_auc : bool
    n_background, n_test : int
        Sample sizes after removing non-finite values.
    """

    table: NDArray[np.floating]
    status: NDArray[np.integer]
    threshold: float
    sample_percentage: float
    n_samp: int
    n_bins: int
    compute_full_auc: bool
    n_background: int
    n_test: int

    @property
    def iterations(self) -> int:
        return int(self.table.shape[0])

    @property
    def auc_complete(self) -> NDArray[np.floating]:
        return self.table[:, 0]

    @property
    def auc_pmodel(self) -> NDArray[np.floating]:
        return self.table[:, 1]

    @property
    def auc_prand(self) -> NDArray[np.floating]:
        return self.table[:, 2]

    @property
    def ratio(self) -> NDArray[np.floating]:
        return self.table[:, 3]

    def summary(self) -> str:
        """Human-readable summary."""
        n_undefined = int(np.sum(self.status == UNDEFINED))
        n_degenerate = int(np.sum(self.status == DEGENERATE))
        lines = [
            "Partial ROC Bootstrap",
            "=" * 40,
            f"Iterations     : {self.iterations}",
            f"Threshold (E)  : {self.threshold:g}%",
            f"Sample         : {self.sample_percentage:g}% ({self.n_samp} of {self.n_test})",
            f"Background n   : {self.n_background}",
            f"Bins           : {self.n_bins}",
            f"Undefined rows : {n_undefined}",
            f"Zero rows      : {n_degenerate}",
        ]
        return "\n".join(lines)


@dataclass(frozen=True)
class PartialROCSummary:
    """Aggregate statistics of a partial ROC bootstrap.

    Means are taken over rows with a finite ratio.  ``p_value`` is
    ``1 - (rows with ratio > 1) / (all rows)``.  All five statistics are
    ``NaN`` when no row has a finite ratio.
    """

    mean_complete_auc: float
    mean_pauc: float
    mean_pauc_rand: float
    mean_auc_ratio: float
    p_value: float
    n_iterations: int
    n_valid: int

    def as_tuple(self) -> tuple[float, float, float, float, float]:
        return (
            self.mean_complete_auc,
            self.mean_pauc,
            self.mean_pauc_rand,
            self.mean_auc_ratio,
            self.p_value,
        )

    def summary(self) -> str:
        """Human-readable summary."""
        lines = [
            "Partial ROC Test",
            "=" * 40,
            f"Mean AUC        : {self.mean_complete_auc:.4f}",
            f"Mean pAUC       : {self.mean_pauc:.4f}",
            f"Mean pAUC rand  : {self.mean_pauc_rand:.4f}",
            f"Mean pAUC ratio : {self.mean_auc_ratio:.4f}",
            f"p-value         : {self.p_value:.4g}",
            f"Valid replicates: {self.n_valid} / {self.n_iterations}",
        ]
        return "\n".join(lines)
