"""
Base classes for structure adapters in pdfcalc.

This module defines the abstract interface through which the calculators
query a structure, together with the in-memory adapter that every concrete
variant builds on.
"""

from __future__ import annotations

import warnings
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Mapping, Sequence

import numpy as np

from ._pdffit import apply_pdffit, validate_pdffit

if TYPE_CHECKING:
    from pdfcalc.bondgenerator import BondGenerator
    from pdfcalc.lattice import Lattice
    from pdfcalc.pairquantity import PairQuantity


#: Tolerance for accepting slightly negative eigenvalues of Uij tensors.
UIJ_PSD_TOLERANCE: float = 1e-8


class StructureAdapter(ABC):
    """
    Abstract base class defining the structure query interface.

    Calculators consume structures exclusively through these methods, so
    any structure representation can be used once it is wrapped in an
    adapter.  Per-site data is read-only.
    """

    @abstractmethod
    def count_sites(self) -> int:
        """Return the number of sites the bond generator iterates over."""
        ...

    @abstractmethod
    def site_cartesian_position(self, idx: int) -> np.ndarray:
        """Return the cartesian position of site *idx*."""
        ...

    @abstractmethod
    def site_occupancy(self, idx: int) -> float:
        ...

    @abstractmethod
    def site_anisotropy(self, idx: int) -> bool:
        """Return ``True`` if site *idx* has an anisotropic displacement tensor."""
        ...

    @abstractmethod
    def site_cartesian_uij(self, idx: int) -> np.ndarray:
        """
        Return the cartesian displacement tensor of site *idx*.

        Isotropic sites return ``Uiso * I``.
        """
        ...

    @abstractmethod
    def site_atom_type(self, idx: int) -> str:
        ...

    @abstractmethod
    def number_density(self) -> float:
        """Return the number density in atoms per A^3, 0 for aperiodic structures."""
        ...

    @abstractmethod
    def create_bond_generator(self) -> "BondGenerator":
        """Return a new bond generator bound to this adapter."""
        ...

    def site_multiplicity(self, idx: int) -> float:
        """Return the symmetry degeneracy of site *idx* (default 1)."""
        self._check_index(idx)
        return 1.0

    def site_uiso(self, idx: int) -> float:
        """Return the isotropic equivalent displacement of site *idx*."""
        return float(np.trace(self.site_cartesian_uij(idx)) / 3.0)

    def total_occupancy(self) -> float:
        """Return the sum of occupancy times multiplicity over all sites."""
        return float(sum(
            self.site_occupancy(i) * self.site_multiplicity(i)
            for i in range(self.count_sites())
        ))

    @property
    def lattice(self) -> "Lattice | None":
        """Lattice of periodic structures, ``None`` otherwise."""
        return None

    def custom_pq_config(self, pq: "PairQuantity") -> None:
        """
        Adjust a pair quantity before each evaluation pass.

        The default implementation leaves the pair quantity unchanged.
        """
        pass

    def _check_index(self, idx: int) -> None:
        n = self.count_sites()
        if not 0 <= idx < n:
            raise IndexError(f"Site index {idx} out of range for {n} sites.")


def _as_uij_tensors(
    n: int,
    uiso: float | Sequence[float] | np.ndarray | None,
    uij: Sequence[np.ndarray | None] | np.ndarray | None,
    anisotropy: Sequence[bool] | np.ndarray | None,
) -> tuple[np.ndarray, np.ndarray]:
    """
    Combine isotropic and anisotropic displacement input into tensors.

    Returns
    -------
    anisotropy : np.ndarray, shape (n,), dtype=bool
    tensors : np.ndarray, shape (n, 3, 3)
        Cartesian tensors, ``Uiso * I`` for isotropic sites.

    Raises
    ------
    ValueError
        If an anisotropic site has no tensor, a tensor is not a symmetric
        3x3 matrix, or an isotropic displacement is negative.
    """
    if uiso is None:
        uiso_arr = np.zeros(n)
    else:
        uiso_arr = np.broadcast_to(np.asarray(uiso, dtype=np.float64), (n,)).copy()
    if np.any(uiso_arr < 0) or not np.all(np.isfinite(uiso_arr)):
        raise ValueError("Isotropic displacements must be finite and non-negative.")

    if anisotropy is None:
        if uij is None:
            aniso = np.zeros(n, dtype=bool)
        else:
            aniso = np.array([u is not None for u in uij], dtype=bool)
    else:
        aniso = np.asarray(anisotropy, dtype=bool).copy()
        if aniso.shape != (n,):
            raise ValueError("Anisotropy flags and site arrays are incommensurate.")

    if uij is not None and len(uij) != n:
        raise ValueError("Displacement tensors and site arrays are incommensurate.")

    tensors = uiso_arr[:, np.newaxis, np.newaxis] * np.eye(3)
    for i in np.flatnonzero(aniso):
        u = None if uij is None else uij[i]
        if u is None:
            raise ValueError(f"Anisotropic site {i} has no displacement tensor.")
        u = np.asarray(u, dtype=np.float64)
        if u.shape != (3, 3):
            raise ValueError(f"Displacement tensor of site {i} must have shape (3, 3), got {u.shape}")
        if not np.allclose(u, u.T, atol=1e-10):
            raise ValueError(f"Displacement tensor of site {i} is not symmetric.")
        if np.linalg.eigvalsh(u).min() < -UIJ_PSD_TOLERANCE:
            warnings.warn(
                f"Displacement tensor of site {i} is not positive semidefinite.",
                RuntimeWarning,
                stacklevel=3,
            )
        tensors[i] = u
    return aniso, tensors


class AtomicStructureAdapter(StructureAdapter):
    """
    Aperiodic structure held directly as NumPy arrays.

    Designed for structures already resident in memory or generated
    numerically.  All arrays are copied at construction.

    Parameters
    ----------
    positions : np.ndarray
        Cartesian positions of shape ``(N, 3)`` in Angstroms.
    atom_types : list of str
        Species label of each site, e.g. ``'Na'`` or ``'O2-'``.
    occupancies : np.ndarray, optional
        Site occupancies in [0, 1] (default: all 1).
    uiso : float or np.ndarray, optional
        Isotropic displacement parameters in A^2 (default: 0).
    uij : sequence of (3, 3) arrays or None, optional
        Cartesian displacement tensors.  Entries may be ``None`` for
        isotropic sites.
    anisotropy : sequence of bool, optional
        Anisotropy flag of each site.  Defaults to ``True`` wherever a
        tensor is given in *uij*.
    pdffit : mapping, optional
        PDFfit-style calculation parameters, see :attr:`pdffit`.

    Raises
    ------
    ValueError
        If the arrays are inconsistent or contain invalid values.
    """

    def __init__(
        self,
        positions: np.ndarray,
        atom_types: Sequence[str],
        occupancies: np.ndarray | None = None,
        uiso: float | np.ndarray | None = None,
        uij: Sequence[np.ndarray | None] | np.ndarray | None = None,
        anisotropy: Sequence[bool] | None = None,
        pdffit: Mapping[str, float] | None = None,
    ) -> None:
        positions = np.array(positions, dtype=np.float64, copy=True).reshape(-1, 3)
        n = len(positions)
        if len(atom_types) != n:
            raise ValueError("Atom types and position arrays are incommensurate.")
        if not np.all(np.isfinite(positions)):
            raise ValueError("Site positions must be finite.")

        if occupancies is None:
            occ = np.ones(n)
        else:
            occ = np.array(occupancies, dtype=np.float64, copy=True).reshape(-1)
            if occ.shape != (n,):
                raise ValueError("Occupancies and position arrays are incommensurate.")
            if np.any(occ < 0) or np.any(occ > 1):
                raise ValueError("Occupancies must lie in [0, 1].")

        aniso, tensors = _as_uij_tensors(n, uiso, uij, anisotropy)

        for arr in (positions, occ, aniso, tensors):
            arr.setflags(write=False)
        self._positions = positions
        self._occupancies = occ
        self._anisotropy = aniso
        self._uij = tensors
        self._atom_types = tuple(str(t) for t in atom_types)
        self.pdffit = pdffit

    def count_sites(self) -> int:
        return len(self._positions)

    def site_cartesian_position(self, idx: int) -> np.ndarray:
        self._check_index(idx)
        return self._positions[idx]

    def site_occupancy(self, idx: int) -> float:
        self._check_index(idx)
        return float(self._occupancies[idx])

    def site_anisotropy(self, idx: int) -> bool:
        self._check_index(idx)
        return bool(self._anisotropy[idx])

    def site_cartesian_uij(self, idx: int) -> np.ndarray:
        self._check_index(idx)
        return self._uij[idx]

    def site_atom_type(self, idx: int) -> str:
        self._check_index(idx)
        return self._atom_types[idx]

    def number_density(self) -> float:
        return 0.0

    def create_bond_generator(self) -> "BondGenerator":
        from pdfcalc.bondgenerator import BondGenerator
        return BondGenerator(self)

    @property
    def pdffit(self) -> dict[str, float]:
        """
        PDFfit-style calculation parameters applied to PDF calculators.

        Recognised names are ``scale``, ``delta1``, ``delta2``, ``qdamp``,
        ``spdiameter`` and ``stepcut``; unknown names raise ``ValueError``.
        """
        return dict(self._pdffit)

    @pdffit.setter
    def pdffit(self, value: Mapping[str, float] | None) -> None:
        self._pdffit = validate_pdffit(value)

    def custom_pq_config(self, pq: "PairQuantity") -> None:
        """Push :attr:`pdffit` parameters onto *pq* if it is a PDF calculator."""
        from pdfcalc.pdfcalculator import PDFCalculator
        if self._pdffit and isinstance(pq, PDFCalculator):
            apply_pdffit(pq, self._pdffit)

    @property
    def positions(self) -> np.ndarray:
        """Cartesian positions of all sites (read-only)."""
        return self._positions

    @property
    def cartesian_uijs(self) -> np.ndarray:
        """Cartesian displacement tensors of all sites (read-only)."""
        return self._uij

    def __len__(self) -> int:
        return self.count_sites()

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.count_sites()} sites)"
