"""
Periodic structure adapter for pdfcalc.

This module provides the PeriodicStructureAdapter class for structures with
translational symmetry only.  Images of the unit cell are not stored; the
bond generator produces them on the fly from a lattice point search.
"""

from __future__ import annotations

from typing import Any, Mapping, Sequence

import numpy as np

from pdfcalc.lattice import Lattice
from ._base import AtomicStructureAdapter
from ._pymatgen import pdffit_from_pymatgen, sites_from_pymatgen


class PeriodicStructureAdapter(AtomicStructureAdapter):
    """
    Structure periodic in three dimensions.

    Site data are copied at construction.  When the adapter is created
    from a pymatgen ``Structure``, the source object is kept as a borrowed
    reference in :attr:`source`; it is not copied and later changes to it
    are not seen by the adapter.

    Parameters
    ----------
    lattice : Lattice or array_like
        Lattice or 3x3 cell matrix with rows = lattice vectors.
    positions : np.ndarray
        Cartesian positions of shape ``(N, 3)``.
    atom_types : list of str
        Species label of each site.
    occupancies, uiso, uij, anisotropy, pdffit : optional
        As for :class:`AtomicStructureAdapter`; *uij* tensors are cartesian.

    Attributes
    ----------
    source : object or None
        Structure object this adapter was created from, if any.
    """

    def __init__(
        self,
        lattice: Lattice | np.ndarray,
        positions: np.ndarray,
        atom_types: Sequence[str],
        occupancies: np.ndarray | None = None,
        uiso: float | np.ndarray | None = None,
        uij: Sequence[np.ndarray | None] | np.ndarray | None = None,
        anisotropy: Sequence[bool] | None = None,
        pdffit: Mapping[str, float] | None = None,
    ) -> None:
        super().__init__(positions, atom_types, occupancies, uiso, uij, anisotropy, pdffit)
        self._lattice = lattice if isinstance(lattice, Lattice) else Lattice(lattice)
        self.source: Any = None

    @classmethod
    def from_pymatgen(cls, structure, default_uiso: float = 0.0) -> "PeriodicStructureAdapter":
        """
        Create an adapter from a :class:`pymatgen.core.Structure`.

        Site properties ``"uiso"`` and ``"uij"`` supply displacement
        parameters; ``"uij"`` tensors are taken in the crystal frame.
        A ``"pdffit"`` entry of ``structure.properties`` supplies
        calculation parameters.

        Parameters
        ----------
        structure : pymatgen.core.Structure
            Source structure.
        default_uiso : float, optional
            Isotropic displacement for sites without displacement data.
        """
        lattice = Lattice.from_pymatgen(structure.lattice)
        data = sites_from_pymatgen(structure, default_uiso)
        uij = [None if u is None else lattice.cartesian_uij(u) for u in data["uij"]]
        adapter = cls(
            lattice,
            data["positions"],
            data["atom_types"],
            occupancies=data["occupancies"],
            uiso=data["uiso"],
            uij=uij,
            pdffit=pdffit_from_pymatgen(structure),
        )
        adapter.source = structure
        return adapter

    @property
    def lattice(self) -> Lattice:
        return self._lattice

    def number_density(self) -> float:
        return self.total_occupancy() / self._lattice.volume

    def create_bond_generator(self):
        from pdfcalc.bondgenerator import PeriodicBondGenerator
        return PeriodicBondGenerator(self)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.count_sites()} sites, {self._lattice!r})"
