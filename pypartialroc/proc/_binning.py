"""Range binning of prediction samples for the partial ROC test.

Background and test predictions are pooled and mapped onto ``n_bins``
equal-width bins spanning their joint range.  The background histogram,
accumulated from the most restrictive bin downwards, gives the fractional
area (the x-axis of the partial ROC curve).  The bin-comparison template
holds the descending bin thresholds that every bootstrap replicate
compares its subsample against.

Two binning modes are supported:

``'clamp'``
    The floored bin position is clamped into ``[0, n_bins - 1]`` before
    the ``+ 1`` shift, so every index lies in ``[1, n_bins]``.  This is
    the mode used by :func:`~pypartialroc.proc.bootstrap_partial_auc`.
``'discard'``
    No clamping.  Indices that fall outside ``[1, n_bins]`` through
    floating-point rounding are left as computed and are not counted in
    the histogram.
"""

from __future__ import annotations

import math

import numpy as np
from numpy.typing import NDArray

from pypartialroc.proc._common import EPS, BinnedSamples, InvalidInputError

_VALID_MODES = ("clamp", "discard")


# ---------------------------------------------------------------------------
# Input validation
# ---------------------------------------------------------------------------

def _as_sample(values: NDArray, name: str) -> NDArray[np.float64]:
    """Coerce to a non-empty 1-D float64 array."""
    values = np.asarray(values, dtype=np.float64)
    if values.ndim != 1:
        raise InvalidInputError(f"{name} must be a 1-D array, got shape {values.shape}")
    if values.shape[0] == 0:
        raise InvalidInputError(f"{name} cannot be empty")
    return values


def _drop_non_finite(values: NDArray[np.float64], name: str) -> NDArray[np.float64]:
    """Remove NaN and infinite entries; at least one must remain."""
    clean = values[np.isfinite(values)]
    if clean.shape[0] == 0:
        raise InvalidInputError(f"No finite values in {name}")
    return clean


def _check_n_bins(n_bins: int) -> int:
    if int(n_bins) != n_bins or n_bins <= 1:
        raise InvalidInputError(f"n_bins must be an integer greater than 1, got {n_bins!r}")
    return int(n_bins)


def sample_size(sample_pct: float, n_test: int) -> int:
    """Test observations drawn per replicate: ``max(1, ceil(pct/100 * n))``."""
    if not 0 < sample_pct <= 100:
        raise InvalidInputError(
            f"sample_pct must be in (0, 100], got {sample_pct}"
        )
    n_samp = max(1, math.ceil(sample_pct / 100.0 * n_test))
    if n_samp > n_test:
        raise InvalidInputError(
            f"Sample size {n_samp} exceeds the {n_test} available test predictions"
        )
    return n_samp


# ---------------------------------------------------------------------------
# Binning and histogram
# ---------------------------------------------------------------------------

def bin_predictions(
    values: NDArray[np.floating],
    min_value: float,
    max_value: float,
    n_bins: int,
    *,
    clamp: bool = True,
) -> NDArray[np.int64]:
    """Map values onto bin indices ``floor((v - min) * (n_bins - 1) / range) + 1``.

    The map is monotone: ``a <= b`` implies ``bin(a) <= bin(b)``.

    Parameters
    ----------
    values : array of float
        Finite values.
    min_value, max_value : float
        Range being binned; ``max_value - min_value`` must exceed machine
        epsilon.
    n_bins : int
        Number of bins (> 1).
    clamp : bool
        Clamp the floored position into ``[0, n_bins - 1]`` so every index
        is in ``[1, n_bins]``.

    Returns
    -------
    array of int64
    """
    n_bins = _check_n_bins(n_bins)
    value_range = max_value - min_value
    if not value_range > EPS:
        raise InvalidInputError("All prediction values are identical")

    scale = (n_bins - 1.0) / value_range
    position = np.floor((np.asarray(values, dtype=np.float64) - min_value) * scale)
    if clamp:
        position = np.clip(position, 0.0, n_bins - 1.0)
    return position.astype(np.int64) + 1


def _histogram(bins: NDArray[np.int64], n_bins: int) -> NDArray[np.int64]:
    """Exact bin counts; indices outside ``[1, n_bins]`` are ignored."""
    in_range = (bins >= 1) & (bins <= n_bins)
    return np.bincount(bins[in_range] - 1, minlength=n_bins).astype(np.int64)


def _fractional_area(counts: NDArray[np.int64]) -> NDArray[np.float64]:
    """Cumulative background fraction from the top bin down to bin 1."""
    csum = np.cumsum(counts[::-1]).astype(np.float64)
    if csum.shape[0] > 0 and csum[-1] > EPS:
        return csum / csum[-1]
    return np.zeros(csum.shape[0], dtype=np.float64)


def discretize(
    test_predictions: NDArray[np.floating],
    background_predictions: NDArray[np.floating],
    n_bins: int,
    *,
    mode: str = "clamp",
) -> BinnedSamples:
    """Clean, pool and bin both samples; histogram the background.

    Parameters
    ----------
    test_predictions : array of float
        Predictions on the test (presence) sample.
    background_predictions : array of float
        Predictions on the background sample.
    n_bins : int
        Number of bins (> 1).
    mode : str
        ``'clamp'`` or ``'discard'`` (see module docstring).

    Returns
    -------
    BinnedSamples

    Raises
    ------
    InvalidInputError
        Empty samples, samples without finite values, ``n_bins <= 1`` or a
        pooled range not exceeding machine epsilon.
    """
    test = _as_sample(test_predictions, "test_predictions")
    background = _as_sample(background_predictions, "background_predictions")
    n_bins = _check_n_bins(n_bins)
    if mode not in _VALID_MODES:
        raise InvalidInputError(f"mode must be one of {_VALID_MODES}, got {mode!r}")

    background = _drop_non_finite(background, "background_predictions")
    test = _drop_non_finite(test, "test_predictions")

    # Background first: [0, n_background) is background, the rest is test
    combined = np.concatenate([background, test])
    n_background = background.shape[0]

    min_value = float(combined.min())
    max_value = float(combined.max())
    binned = bin_predictions(
        combined, min_value, max_value, n_bins, clamp=(mode == "clamp"),
    )

    background_bins = binned[:n_background]
    test_bins = binned[n_background:]

    counts = _histogram(background_bins, n_bins)

    return BinnedSamples(
        background_bins=background_bins,
        test_bins=test_bins,
        counts=counts,
        fractional_area=_fractional_area(counts),
        n_bins=n_bins,
        min_value=min_value,
        max_value=max_value,
        mode=mode,
    )


# ---------------------------------------------------------------------------
# Bin-comparison template
# ---------------------------------------------------------------------------

def bin_template(n_samp: int, n_bins: int) -> NDArray[np.float64]:
    """Matrix of shape ``(n_samp, n_bins)`` with column ``j`` equal to ``n_bins - j``.

    Read-only input shared by every bootstrap replicate.
    """
    n_bins = _check_n_bins(n_bins)
    if int(n_samp) != n_samp or n_samp < 1:
        raise InvalidInputError(f"n_samp must be a positive integer, got {n_samp!r}")

    thresholds = np.arange(n_bins, 0, -1, dtype=np.float64)
    template = np.broadcast_to(thresholds, (int(n_samp), n_bins)).copy()
    template.flags.writeable = False
    return template


def build_bins_and_template(
    test_predictions: NDArray[np.floating],
    background_predictions: NDArray[np.floating],
    n_bins: int = 1000,
    *,
    sample_pct: float = 100.0,
    mode: str = "discard",
) -> tuple[BinnedSamples, NDArray[np.float64]]:
    """Discretize both samples and build the matching comparison template.

    With the default ``sample_pct=100`` the template has one row
    per cleaned test prediction.

    Returns
    -------
    (BinnedSamples, array of float)
    """
    binned = discretize(test_predictions, background_predictions, n_bins, mode=mode)
    n_samp = sample_size(sample_pct, binned.n_test)
    return binned, bin_template(n_samp, binned.n_bins)
