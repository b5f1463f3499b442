"""
Peak width models: conversion of pair displacements to peak widths.

Models are registered by tag in :data:`peak_width_models` and created with
:func:`create_peak_width_model`.

- ``'debye-waller'``: independent thermal vibrations of the two atoms.
- ``'jeong'``: Debye-Waller width corrected for correlated motion of near
  neighbours and for Q-resolution broadening.
- ``'constant'``: the same width for every pair.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np

from pdfcalc.registry import Registrable, Registry

if TYPE_CHECKING:
    from pdfcalc.bondgenerator import Bond
    from pdfcalc.structure import StructureAdapter


#: Conversion factor from the standard deviation of a Gaussian to its FWHM.
SIGMA_TO_FWHM: float = 2.0 * np.sqrt(2.0 * np.log(2.0))


class PeakWidthModel(Registrable):
    """Base class of peak width models."""

    def calculate(self, bond: "Bond") -> float:
        """Return the FWHM of the peak of *bond*."""
        return self.calculate_from_msd(bond.msd)

    def calculate_from_msd(self, msd: float) -> float:
        """Return the FWHM for a mean-square relative displacement."""
        raise NotImplementedError

    def max_width(
        self, structure: "StructureAdapter | None", rmin: float, rmax: float
    ) -> float:
        """Return an upper bound of the FWHM for bonds in ``[rmin, rmax]``."""
        raise NotImplementedError


peak_width_models: Registry[PeakWidthModel] = Registry("peak width model")


def max_uij_eigenvalue(structure: "StructureAdapter | None") -> float:
    """
    Return the largest principal displacement of any site in *structure*.

    The mean-square displacement ``u.U.u`` along any unit vector ``u`` is
    bounded by the largest eigenvalue of ``U``.  Crystal adapters contribute
    the rotated tensors of every symmetry image.
    """
    if structure is None or structure.count_sites() == 0:
        return 0.0
    images = getattr(structure, "symmetry_images", None)
    tensors = []
    for i in range(structure.count_sites()):
        if images is None:
            tensors.append(structure.site_cartesian_uij(i)[np.newaxis])
        else:
            tensors.append(images(i)[1])
    tensors = np.concatenate(tensors)
    return float(max(np.max(np.linalg.eigvalsh(tensors)), 0.0))


@peak_width_models.register
class DebyeWallerPeakWidth(PeakWidthModel):
    """
    Peak width from independent thermal vibrations of the two atoms.

    ``fwhm = 2 sqrt(2 ln 2) sqrt(msd)``, the FWHM of a Gaussian with
    variance ``msd``.
    """

    type_name = "debye-waller"

    def calculate_from_msd(self, msd: float) -> float:
        if msd < 0:
            raise ValueError(f"Mean-square displacement must be non-negative, got {msd}")
        return float(SIGMA_TO_FWHM * np.sqrt(msd))

    def max_width(self, structure, rmin, rmax) -> float:
        return self.calculate_from_msd(2.0 * max_uij_eigenvalue(structure))


@peak_width_models.register
class JeongPeakWidth(DebyeWallerPeakWidth):
    """
    Debye-Waller width with correlated-motion and Q-broadening corrections.

    ``fwhm = fwhm_DW * sqrt(1 - delta1/r - delta2/r**2 + qbroad**2 * r**2)``,
    with the square root argument clipped at zero.

    Parameters
    ----------
    delta1 : float
        Coefficient of the 1/r sharpening term (high temperature).
    delta2 : float
        Coefficient of the 1/r**2 sharpening term (low temperature).
    qbroad : float
        Q-resolution broadening factor.
    """

    type_name = "jeong"

    def __init__(self, delta1: float = 0.0, delta2: float = 0.0, qbroad: float = 0.0) -> None:
        self.delta1 = delta1
        self.delta2 = delta2
        self.qbroad = qbroad

    @property
    def qbroad(self) -> float:
        return self._qbroad

    @qbroad.setter
    def qbroad(self, value: float) -> None:
        if value < 0:
            raise ValueError(f"qbroad must be non-negative, got {value}")
        self._qbroad = float(value)

    def correction(self, r):
        """Return the multiplicative width correction at distance *r*."""
        r = np.asarray(r, dtype=np.float64)
        with np.errstate(divide='ignore', invalid='ignore'):
            arg = 1.0 - self.delta1 / r - self.delta2 / r ** 2 + (self.qbroad * r) ** 2
        return np.sqrt(np.clip(np.nan_to_num(arg, nan=0.0, neginf=0.0), 0.0, None))

    def calculate(self, bond: "Bond") -> float:
        fwhm = self.calculate_from_msd(bond.msd)
        return float(fwhm * self.correction(bond.distance))

    def max_width(self, structure, rmin, rmax) -> float:
        fwhm = super().max_width(structure, rmin, rmax)
        ends = [r for r in (rmin, rmax) if r > 0 and np.isfinite(r)]
        if not ends:
            return fwhm
        return float(fwhm * max(max(self.correction(r) for r in ends), 1.0))

    def __repr__(self) -> str:
        return f"JeongPeakWidth(delta1={self.delta1}, delta2={self.delta2}, qbroad={self.qbroad})"


@peak_width_models.register
class ConstantPeakWidth(PeakWidthModel):
    """
    Same FWHM for every pair regardless of displacements.

    Parameters
    ----------
    width : float
        Peak FWHM in Angstroms.
    """

    type_name = "constant"

    def __init__(self, width: float = 0.0) -> None:
        self.width = width

    @property
    def width(self) -> float:
        return self._width

    @width.setter
    def width(self, value: float) -> None:
        if value < 0:
            raise ValueError(f"Peak width must be non-negative, got {value}")
        self._width = float(value)

    def calculate_from_msd(self, msd: float) -> float:
        return self._width

    def max_width(self, structure, rmin, rmax) -> float:
        return self._width

    def __repr__(self) -> str:
        return f"ConstantPeakWidth(width={self.width})"


def create_peak_width_model(tag: str, **kwargs) -> PeakWidthModel:
    """Create a registered peak width model by tag."""
    return peak_width_models.create(tag, **kwargs)
