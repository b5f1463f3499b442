"""
PDF baselines added to the reduced RDF when forming the PDF.

Baselines are registered by tag in :data:`baselines`:

- ``'linear'``: ``slope * r``; by default the slope is ``-4 pi rho`` with
  ``rho`` the number density of the structure.
- ``'zero'``: no baseline.
"""

from __future__ import annotations

import numpy as np

from pdfcalc.registry import Registrable, Registry


class PDFBaseline(Registrable):
    """Base class of PDF baselines."""

    def __call__(self, r, number_density: float = 0.0) -> np.ndarray:
        """Return baseline values on the grid *r*."""
        raise NotImplementedError


baselines: Registry[PDFBaseline] = Registry("PDF baseline")


@baselines.register
class ZeroBaseline(PDFBaseline):
    type_name = "zero"

    def __call__(self, r, number_density: float = 0.0) -> np.ndarray:
        return np.zeros_like(np.asarray(r, dtype=np.float64))


@baselines.register
class LinearBaseline(PDFBaseline):
    """
    Linear baseline ``slope * r``.

    Parameters
    ----------
    slope : float or None
        Fixed slope.  ``None`` (default) derives the slope from the number
        density as ``-4 pi rho``; :meth:`reset` restores that behaviour.
    """

    type_name = "linear"

    def __init__(self, slope: float | None = None) -> None:
        self.slope = slope

    def reset(self) -> None:
        """Drop a fixed slope and derive it from the number density again."""
        self.slope = None

    def effective_slope(self, number_density: float) -> float:
        if self.slope is not None:
            return float(self.slope)
        return -4.0 * np.pi * number_density

    def __call__(self, r, number_density: float = 0.0) -> np.ndarray:
        r = np.asarray(r, dtype=np.float64)
        return self.effective_slope(number_density) * r

    def __repr__(self) -> str:
        return f"LinearBaseline(slope={self.slope})"


def create_baseline(tag: str, **kwargs) -> PDFBaseline:
    """Create a registered baseline by tag."""
    return baselines.create(tag, **kwargs)
