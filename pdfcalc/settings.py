"""
Runtime configuration for pdfcalc.

Settings are read from environment variables once, when the module is first
imported.  Set them before importing pdfcalc.

FFT parallelism for the band-pass filter is configured via PDFCALC_FFT_WORKERS:
- 1: single-threaded (default)
- N: use N threads
- -1: use all available cores

Pair enumeration fan-out is configured via PDFCALC_EVAL_WORKERS:
- 1: evaluate all anchor sites in the calling thread (default)
- N: split anchor sites into N chunks evaluated by a thread pool

Example
-------
>>> import os
>>> os.environ['PDFCALC_FFT_WORKERS'] = '4'  # Before importing pdfcalc
>>> os.environ['PDFCALC_EVAL_WORKERS'] = '2'
"""

from __future__ import annotations

import os

FFT_WORKERS_ENV_VAR = 'PDFCALC_FFT_WORKERS'
DEFAULT_FFT_WORKERS = 1

EVAL_WORKERS_ENV_VAR = 'PDFCALC_EVAL_WORKERS'
DEFAULT_EVAL_WORKERS = 1


def _read_int(name: str) -> int | None:
    """Return the integer value of environment variable *name* or None."""
    value = os.environ.get(name, '').strip()
    if not value:
        return None
    try:
        return int(value)
    except ValueError:
        raise ValueError(
            f"Invalid {name} '{value}'. Must be an integer."
        )


def _resolve_fft_workers() -> int:
    """Resolve FFT worker count from environment variable.

    Returns
    -------
    int
        Number of FFT worker threads. 1 for single-threaded,
        -1 for all available cores.

    Raises
    ------
    ValueError
        If the environment variable is not a valid non-zero integer.
    """
    workers = _read_int(FFT_WORKERS_ENV_VAR)
    if workers is None:
        return DEFAULT_FFT_WORKERS
    if workers == 0:
        raise ValueError(
            f"Invalid {FFT_WORKERS_ENV_VAR} '{workers}'. Must be non-zero."
        )
    return workers


def _resolve_eval_workers() -> int:
    """Resolve the pair enumeration thread count from environment variable.

    Raises
    ------
    ValueError
        If the environment variable is not a positive integer.
    """
    workers = _read_int(EVAL_WORKERS_ENV_VAR)
    if workers is None:
        return DEFAULT_EVAL_WORKERS
    if workers < 1:
        raise ValueError(
            f"Invalid {EVAL_WORKERS_ENV_VAR} '{workers}'. Must be positive."
        )
    return workers


FFT_WORKERS = _resolve_fft_workers()
EVAL_WORKERS = _resolve_eval_workers()


def get_fft_workers() -> int:
    """
    Get the number of FFT worker threads.

    Returns
    -------
    int
        Number of worker threads. 1 for single-threaded,
        -1 for all available cores.
    """
    return FFT_WORKERS


def get_eval_workers() -> int:
    """
    Get the number of threads used for pair enumeration.

    Returns
    -------
    int
        Number of worker threads, at least 1.
    """
    return EVAL_WORKERS
