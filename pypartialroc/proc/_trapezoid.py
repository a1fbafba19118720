"""Trapezoidal integration of piecewise-linear curves."""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray

from pypartialroc.proc._common import InvalidInputError


def trapezoidal_area(
    x: NDArray[np.floating],
    y: NDArray[np.floating],
) -> float:
    """Area under the polyline through ``(x[i], y[i])``.

    Uses ``0.5 * sum((x[i] - x[i-1]) * (y[i] + y[i-1]))``.  Points are
    taken in the order given, so a decreasing step contributes a negative
    term; callers sort by ``x`` to get a conventional AUC.

    Parameters
    ----------
    x : array of float
        Abscissae.
    y : array of float
        Ordinates; entries beyond ``len(x)`` are ignored.  With two or
        more points ``y`` must be at least as long as ``x``.

    Returns
    -------
    float
        Signed area, ``0.0`` for fewer than two points.
    """
    x = np.asarray(x, dtype=np.float64).ravel()
    y = np.asarray(y, dtype=np.float64).ravel()

    n = x.shape[0]
    if n < 2:
        return 0.0

    # Only the first len(x) points of y take part
    if y.shape[0] < n:
        raise InvalidInputError(
            f"y must have at least as many points as x, "
            f"got {y.shape[0]} and {n}"
        )
    y = y[:n]

    return float(0.5 * np.sum(np.diff(x) * (y[1:] + y[:-1])))
