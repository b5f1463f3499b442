"""
Uniform r-grid helpers and the Q-space band-pass filter.
"""

from __future__ import annotations

import numpy as np
import scipy.fft

from pdfcalc.settings import get_fft_workers

#: Round-off allowance when counting grid points between two limits.
RGRID_EPS: float = 1e-8


def rgrid_points(rmin: float, rmax: float, rstep: float) -> int:
    """
    Return the number of points of the grid ``rmin + i * rstep`` below *rmax*.

    Examples
    --------
    >>> rgrid_points(0.0, 10.0, 0.01)
    1000
    """
    if rmax <= rmin:
        return 0
    return int(np.ceil((rmax - rmin) / rstep - RGRID_EPS))


def extension_points(extension: float, rstep: float) -> int:
    """Return the number of grid points needed to cover *extension*."""
    if extension <= 0:
        return 0
    return int(np.ceil(extension / rstep - RGRID_EPS))


def band_pass_filter(
    y: np.ndarray, rstep: float, qmin: float, qmax: float
) -> np.ndarray:
    """
    Remove Fourier components of *y* outside ``[qmin, qmax]``.

    The signal is zero-padded to a power of two at least twice its length,
    so the periodic continuation of the transform does not wrap the signal
    onto itself.  Components with ``Q < qmin`` or ``Q > qmax`` are zeroed.

    Parameters
    ----------
    y : np.ndarray, shape (n,)
        Signal sampled on a uniform grid.
    rstep : float
        Grid spacing in A.
    qmin, qmax : float
        Pass band in 1/A.  ``qmin == 0`` with infinite ``qmax`` returns an
        unfiltered copy.

    Returns
    -------
    np.ndarray, shape (n,)
        Filtered signal.
    """
    y = np.asarray(y, dtype=np.float64)
    n = len(y)
    if n == 0 or (qmin <= 0 and not np.isfinite(qmax)):
        return y.copy()
    padlen = 1 << int(np.ceil(np.log2(2 * n)))
    workers = get_fft_workers()
    yq = scipy.fft.rfft(y, n=padlen, workers=workers)
    q = 2 * np.pi * scipy.fft.rfftfreq(padlen, d=rstep)
    yq[(q < qmin) | (q > qmax)] = 0.0
    return scipy.fft.irfft(yq, n=padlen, workers=workers)[:n]
