"""
Peak profiles: unit-area lineshapes rendered on a distance grid.

Profiles are registered by tag in :data:`peak_profiles`:

- ``'gaussian'``: Gaussian of a given FWHM.
- ``'croppedgaussian'``: Gaussian set to zero beyond its bounds and
  rescaled to unit area.

Profile bounds are the offsets from the peak centre where the profile
falls to ``precision`` times its maximum.  Calculators evaluate profiles
only within the bounds.
"""

from __future__ import annotations

import numpy as np
from scipy.special import erf

from pdfcalc.peakwidth import SIGMA_TO_FWHM
from pdfcalc.registry import Registrable, Registry


class PeakProfile(Registrable):
    """
    Base class of peak profiles.

    Parameters
    ----------
    precision : float
        Relative cutoff defining the profile bounds, in (0, 1).
    """

    def __init__(self, precision: float = 1e-6) -> None:
        self.precision = precision

    @property
    def precision(self) -> float:
        return self._precision

    @precision.setter
    def precision(self, value: float) -> None:
        if not 0 < value < 1:
            raise ValueError(f"Profile precision must be in (0, 1), got {value}")
        self._precision = float(value)

    def __call__(self, x, fwhm: float) -> np.ndarray:
        """Return profile values at offsets *x* from the peak centre."""
        raise NotImplementedError

    def xboundlo(self, fwhm: float) -> float:
        """Lower offset bound, non-positive."""
        return -self.xboundhi(fwhm)

    def xboundhi(self, fwhm: float) -> float:
        """Upper offset bound, non-negative."""
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}(precision={self.precision})"


peak_profiles: Registry[PeakProfile] = Registry("peak profile")


@peak_profiles.register
class GaussianProfile(PeakProfile):
    """
    Unit-area Gaussian profile.

    A zero or negative FWHM gives a profile that is zero everywhere.
    """

    type_name = "gaussian"

    def __call__(self, x, fwhm: float) -> np.ndarray:
        x = np.asarray(x, dtype=np.float64)
        if fwhm <= 0:
            return np.zeros_like(x)
        sigma = fwhm / SIGMA_TO_FWHM
        return np.exp(-0.5 * (x / sigma) ** 2) / (sigma * np.sqrt(2.0 * np.pi))

    def xboundhi(self, fwhm: float) -> float:
        if fwhm <= 0:
            return 0.0
        return float(fwhm / 2.0 * np.sqrt(np.log(1.0 / self.precision) / np.log(2.0)))


@peak_profiles.register
class CroppedGaussianProfile(GaussianProfile):
    """
    Gaussian profile cropped at its bounds and rescaled to unit area.
    """

    type_name = "croppedgaussian"

    def __call__(self, x, fwhm: float) -> np.ndarray:
        y = super().__call__(x, fwhm)
        if fwhm <= 0:
            return y
        xb = self.xboundhi(fwhm)
        sigma = fwhm / SIGMA_TO_FWHM
        y = np.where(np.abs(np.asarray(x)) > xb, 0.0, y)
        return y / erf(xb / (sigma * np.sqrt(2.0)))


def create_peak_profile(tag: str, **kwargs) -> PeakProfile:
    """Create a registered peak profile by tag."""
    return peak_profiles.create(tag, **kwargs)
