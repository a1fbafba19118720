"""Bootstrap partial ROC test.

Each replicate draws a subsample of the binned test predictions without
replacement, computes sensitivity at every bin threshold, and integrates
the sensitivity vs. fractional-area curve over the region where
sensitivity exceeds ``1 - E`` (``E`` the omission error threshold).  The
model's partial AUC is divided by the partial AUC of the random-model
diagonal over the same region.

**CPU path**: replicates fan out over a joblib thread pool.

**GPU path**: subsamples are drawn on CPU, the omission comparison for a
batch of replicates runs in PyTorch, and the partial AUCs are finished
per replicate on CPU.

Replicate ``i`` always uses the ``i``-th generator spawned from
``random_state``, so the table is reproducible for a fixed seed whatever
the backend or number of workers.

References
----------
Peterson, Papeş & Soberón (2008). Rethinking receiver operating
characteristic analysis applications in ecological niche modeling.
*Ecological Modelling*, 213(1), 63-72.
"""

from __future__ import annotations

import logging

import joblib
import numpy as np
from numpy.typing import NDArray

from pypartialroc.proc._binning import bin_template, discretize, sample_size
from pypartialroc.proc._common import (
    COMPUTED,
    DEGENERATE,
    EPS,
    UNDEFINED,
    InvalidInputError,
    PartialROCBootstrap,
)
from pypartialroc.proc._trapezoid import trapezoidal_area

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD = 5.0
DEFAULT_SAMPLE_PERCENTAGE = 50.0
DEFAULT_ITERATIONS = 500
DEFAULT_N_BINS = 500

_VALID_BACKENDS = ("cpu", "gpu", "auto")
_GPU_MAX_ELEMENTS = 1 << 26  # omission tensor entries per batch


# ---------------------------------------------------------------------------
# Single replicate
# ---------------------------------------------------------------------------

def _sensitivity(
    template: NDArray[np.float64], sampled: NDArray[np.integer],
) -> NDArray[np.float64]:
    """Fraction of the subsample at or above each bin threshold."""
    omission = template > sampled[:, np.newaxis]
    return 1.0 - omission.mean(axis=0)


def _replicate_from_sensitivity(
    sensitivity: NDArray[np.float64],
    fractional_area: NDArray[np.float64],
    error_sens: float,
    compute_full_auc: bool,
) -> tuple[NDArray[np.float64], int]:
    """Partial AUCs and ratio for one sensitivity curve.

    Returns the row ``(auc_complete, auc_pmodel, auc_prand, ratio)`` and
    its status code.
    """
    keep = np.flatnonzero(sensitivity > error_sens)
    if keep.shape[0] < 2:
        return np.full(4, np.nan), UNDEFINED

    x = fractional_area[keep]
    y = sensitivity[keep]
    order = np.argsort(x, kind="stable")
    x = x[order]
    y = y[order]

    auc_pmodel = trapezoidal_area(x, y)
    auc_prand = trapezoidal_area(x, x)

    if auc_pmodel == 0 or auc_prand == 0:
        return np.zeros(4), DEGENERATE

    ratio = auc_pmodel / auc_prand if abs(auc_prand) > EPS else np.nan

    auc_complete = np.nan
    if compute_full_auc:
        order = np.argsort(fractional_area, kind="stable")
        auc_complete = trapezoidal_area(fractional_area[order], sensitivity[order])

    return np.array([auc_complete, auc_pmodel, auc_prand, ratio]), COMPUTED


def _replicate(
    template: NDArray[np.float64],
    fractional_area: NDArray[np.float64],
    test_bins: NDArray[np.integer],
    n_samp: int,
    error_sens: float,
    compute_full_auc: bool,
    rng: np.random.Generator,
) -> tuple[NDArray[np.float64], int]:
    """One bootstrap replicate on CPU."""
    rows_id = rng.choice(test_bins.shape[0], size=n_samp, replace=False)
    sensitivity = _sensitivity(template, test_bins[rows_id])
    return _replicate_from_sensitivity(
        sensitivity, fractional_area, error_sens, compute_full_auc,
    )


# ---------------------------------------------------------------------------
# CPU path
# ---------------------------------------------------------------------------

def _iterate_cpu(
    template: NDArray[np.float64],
    fractional_area: NDArray[np.float64],
    test_bins: NDArray[np.integer],
    n_samp: int,
    error_sens: float,
    compute_full_auc: bool,
    rngs: list[np.random.Generator],
    n_jobs: int | None,
) -> tuple[NDArray[np.float64], NDArray[np.int8]]:
    """Run replicates over a joblib thread pool; rows follow ``rngs`` order."""
    with joblib.Parallel(n_jobs=n_jobs, prefer="threads") as parallel:
        results = parallel(
            joblib.delayed(_replicate)(
                template, fractional_area, test_bins,
                n_samp, error_sens, compute_full_auc, rng_i,
            )
            for rng_i in rngs
        )

    table = np.empty((len(rngs), 4), dtype=np.float64)
    status = np.empty(len(rngs), dtype=np.int8)
    for i, (row, code) in enumerate(results):
        table[i] = row
        status[i] = code
    return table, status


# ---------------------------------------------------------------------------
# GPU path
# ---------------------------------------------------------------------------

def _iterate_gpu(
    template: NDArray[np.float64],
    fractional_area: NDArray[np.float64],
    test_bins: NDArray[np.integer],
    n_samp: int,
    error_sens: float,
    compute_full_auc: bool,
    rngs: list[np.random.Generator],
) -> tuple[NDArray[np.float64], NDArray[np.int8]]:
    """Batched omission matrices in PyTorch.

    Subsample indices come from the same generators as the CPU path, so
    both backends see identical draws.
    """
    import torch

    # Select device
    if torch.cuda.is_available():
        device = torch.device("cuda")
    elif hasattr(torch.backends, "mps") and torch.backends.mps.is_available():
        device = torch.device("mps")
    else:
        device = torch.device("cpu")

    # MPS uses float32, others float64
    if device.type == "mps":
        dtype = torch.float32
    else:
        dtype = torch.float64

    n_test = test_bins.shape[0]
    sampled = np.stack([
        test_bins[rng_i.choice(n_test, size=n_samp, replace=False)] for rng_i in rngs
    ])

    template_t = torch.as_tensor(np.array(template), device=device, dtype=dtype)

    batch = _gpu_batch_size(n_samp, template.shape[1])
    sensitivity = np.empty((len(rngs), template.shape[1]), dtype=np.float64)
    for start in range(0, len(rngs), batch):
        stop = min(start + batch, len(rngs))
        sampled_t = torch.as_tensor(sampled[start:stop], device=device, dtype=dtype)
        # (batch, n_samp, n_bins) bool, reduced to integer counts per bin
        omission = template_t.unsqueeze(0) > sampled_t.unsqueeze(2)
        missed = omission.sum(dim=1)
        sens_t = 1.0 - missed.to(dtype) / n_samp
        sensitivity[start:stop] = sens_t.cpu().numpy().astype(np.float64)

    table = np.empty((len(rngs), 4), dtype=np.float64)
    status = np.empty(len(rngs), dtype=np.int8)
    for i in range(len(rngs)):
        table[i], status[i] = _replicate_from_sensitivity(
            sensitivity[i], fractional_area, error_sens, compute_full_auc,
        )
    return table, status


def _gpu_batch_size(n_samp: int, n_bins: int) -> int:
    """Replicates per batch so one omission tensor stays under the element budget."""
    return max(1, _GPU_MAX_ELEMENTS // (n_samp * n_bins))


def _gpu_available() -> bool:
    try:
        import torch
    except ImportError:
        return False
    return torch.cuda.is_available() or (
        hasattr(torch.backends, "mps") and torch.backends.mps.is_available()
    )


# ---------------------------------------------------------------------------
# Driver
# ---------------------------------------------------------------------------

def _iterate(
    template: NDArray[np.float64],
    fractional_area: NDArray[np.float64],
    test_bins: NDArray[np.integer],
    n_samp: int,
    error_sens: float,
    iterations: int,
    compute_full_auc: bool,
    rng: np.random.Generator,
    *,
    n_jobs: int | None = -1,
    backend: str = "cpu",
) -> tuple[NDArray[np.float64], NDArray[np.int8]]:
    """Run ``iterations`` independent replicates against shared inputs.

    Returns the ``(iterations, 4)`` table and the per-row status codes.
    """
    rngs = rng.spawn(iterations)

    if backend == "gpu" or (backend == "auto" and _gpu_available()):
        return _iterate_gpu(
            template, fractional_area, test_bins,
            n_samp, error_sens, compute_full_auc, rngs,
        )
    return _iterate_cpu(
        template, fractional_area, test_bins,
        n_samp, error_sens, compute_full_auc, rngs, n_jobs,
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def bootstrap_partial_auc(
    test_predictions: NDArray[np.floating],
    background_predictions: NDArray[np.floating],
    threshold_pct: float = DEFAULT_THRESHOLD,
    sample_pct: float = DEFAULT_SAMPLE_PERCENTAGE,
    iterations: int = DEFAULT_ITERATIONS,
    compute_full_auc: bool = True,
    n_bins: int = DEFAULT_N_BINS,
    *,
    random_state: int | np.random.Generator | None = None,
    n_jobs: int | None = -1,
    backend: str = "cpu",
) -> PartialROCBootstrap:
    """Bootstrap replicates of the partial ROC test.

    Parameters
    ----------
    test_predictions : array of float
        Model predictions at test (presence) records.
    background_predictions : array of float
        Model predictions over the background.
    threshold_pct : float
        Omission error ``E`` in percent; the partial region is
        sensitivity > ``1 - E/100``.  Must be in ``(0, 100]``.
    sample_pct : float
        Percentage of test predictions drawn (without replacement) per
        replicate, in ``(0, 100]``.
    iterations : int
        Number of bootstrap replicates.
    compute_full_auc : bool
        Also integrate the complete curve for each replicate.
    n_bins : int
        Number of bins spanning the pooled prediction range (> 1).
    random_state : int, Generator or None
        Seed for the subsampling.  A fixed seed gives a fixed table.
    n_jobs : int or None
        joblib worker threads for the CPU backend (``-1`` for all cores).
    backend : str
        ``'cpu'``, ``'gpu'``, or ``'auto'``.

    Returns
    -------
    PartialROCBootstrap

    Raises
    ------
    InvalidInputError
        Before any replicate runs, for empty or all-non-finite samples,
        ``n_bins <= 1``, a constant pooled sample, or out-of-range
        parameters.

    Notes
    -----
    Rows where fewer than two bins exceed the sensitivity cut are ``NaN``;
    rows where a partial AUC is exactly zero are all zeros.  Neither is an
    error.  GPU backend requires ``pip install pypartialroc[gpu]``
    (PyTorch).
    """
    if int(iterations) != iterations or iterations < 1:
        raise InvalidInputError(f"iterations must be a positive integer, got {iterations!r}")
    if not 0 < threshold_pct <= 100:
        raise InvalidInputError(f"threshold_pct must be in (0, 100], got {threshold_pct}")
    if backend not in _VALID_BACKENDS:
        raise InvalidInputError(f"backend must be one of {_VALID_BACKENDS}, got {backend!r}")

    binned = discretize(test_predictions, background_predictions, n_bins, mode="clamp")
    n_samp = sample_size(sample_pct, binned.n_test)
    template = bin_template(n_samp, binned.n_bins)
    error_sens = 1.0 - threshold_pct / 100.0

    logger.debug(
        "partial ROC bootstrap: n_background=%d n_test=%d n_samp=%d n_bins=%d "
        "iterations=%d error_sens=%.4f backend=%s",
        binned.n_background, binned.n_test, n_samp, binned.n_bins,
        iterations, error_sens, backend,
    )

    table, status = _iterate(
        template, binned.fractional_area, binned.test_bins,
        n_samp, error_sens, int(iterations), compute_full_auc,
        np.random.default_rng(random_state),
        n_jobs=n_jobs, backend=backend,
    )

    n_undefined = int(np.sum(status == UNDEFINED))
    if n_undefined:
        logger.debug(
            "%d of %d replicates had fewer than two bins above sensitivity %.4f",
            n_undefined, iterations, error_sens,
        )
    n_degenerate = int(np.sum(status == DEGENERATE))
    if n_degenerate:
        logger.debug("%d of %d replicates had a zero partial AUC", n_degenerate, iterations)

    return PartialROCBootstrap(
        table=table,
        status=status,
        threshold=float(threshold_pct),
        sample_percentage=float(sample_pct),
        n_samp=n_samp,
        n_bins=binned.n_bins,
        compute_full_auc=bool(compute_full_auc),
        n_background=binned.n_background,
        n_test=binned.n_test,
    )
