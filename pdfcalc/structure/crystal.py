"""
Space-group expanded crystal adapter for pdfcalc.

The adapter receives the asymmetric unit together with already resolved
symmetry operations and expands every site into its symmetry-equivalent
images once, at construction.  Bond generation then only has to combine
the stored images with lattice translations.
"""

from __future__ import annotations

from typing import Any, Mapping, Sequence

import numpy as np

from pdfcalc.lattice import Lattice, wrap_fractional
from .periodic import PeriodicStructureAdapter
from ._pymatgen import pdffit_from_pymatgen, sites_from_pymatgen

#: Two symmetry images are the same site when their fractional coordinates
#: agree within this tolerance modulo lattice translations.
SYMMETRY_TOLERANCE: float = 1e-5


def _affine_matrix(op: Any) -> np.ndarray:
    """Return the 4x4 fractional affine matrix of a symmetry operation."""
    matrix = getattr(op, "affine_matrix", op)
    matrix = np.asarray(matrix, dtype=np.float64)
    if matrix.shape != (4, 4):
        raise ValueError(
            f"Symmetry operations must be SymmOp objects or 4x4 affine matrices, got shape {matrix.shape}"
        )
    return matrix


class CrystalStructureAdapter(PeriodicStructureAdapter):
    """
    Crystal described by an asymmetric unit and symmetry operations.

    All symmetry images and their rotated displacement tensors are computed
    and copied into the adapter at construction; the adapter keeps no
    reference to its inputs apart from :attr:`source`.  Images that fall on
    top of an earlier image of the same site are dropped, and the number of
    distinct images is the site multiplicity.

    Sites reported by :meth:`count_sites` are the asymmetric-unit sites.
    Each pass of a pair quantity is switched to the full summation
    convention, because bonds are enumerated from asymmetric-unit anchors
    to every image in the crystal.

    Parameters
    ----------
    lattice : Lattice or array_like
        Lattice or 3x3 cell matrix with rows = lattice vectors.
    frac_coords : np.ndarray
        Fractional coordinates of the asymmetric unit, shape ``(N, 3)``.
    atom_types : list of str
        Species label of each asymmetric-unit site.
    symmops : sequence
        Symmetry operations in fractional coordinates, as
        :class:`pymatgen.core.operations.SymmOp` objects or 4x4 affine
        matrices.
    occupancies, uiso, anisotropy, pdffit : optional
        As for :class:`AtomicStructureAdapter`.
    uij : sequence of (3, 3) arrays or None, optional
        Displacement tensors in the crystal frame (CIF convention).

    Raises
    ------
    ValueError
        If no symmetry operations are given or the inputs are inconsistent.
    """

    def __init__(
        self,
        lattice: Lattice | np.ndarray,
        frac_coords: np.ndarray,
        atom_types: Sequence[str],
        symmops: Sequence[Any],
        occupancies: np.ndarray | None = None,
        uiso: float | np.ndarray | None = None,
        uij: Sequence[np.ndarray | None] | np.ndarray | None = None,
        anisotropy: Sequence[bool] | None = None,
        pdffit: Mapping[str, float] | None = None,
    ) -> None:
        lattice = lattice if isinstance(lattice, Lattice) else Lattice(lattice)
        frac = wrap_fractional(np.array(frac_coords, dtype=np.float64).reshape(-1, 3))
        cart_uij = None
        if uij is not None:
            cart_uij = [None if u is None else lattice.cartesian_uij(u) for u in uij]
        super().__init__(
            lattice, lattice.cartesian(frac), atom_types,
            occupancies, uiso, cart_uij, anisotropy, pdffit,
        )
        affine = [_affine_matrix(op) for op in symmops]
        if not affine:
            raise ValueError("At least one symmetry operation is required.")
        self._frac_coords = frac
        self._expand_symmetry(np.array(affine))

    @classmethod
    def from_pymatgen(
        cls, structure, symmops: Sequence[Any] = (), default_uiso: float = 0.0
    ) -> "CrystalStructureAdapter":
        """
        Create an adapter from the asymmetric unit stored in a pymatgen
        ``Structure`` and a list of symmetry operations.

        Parameters
        ----------
        structure : pymatgen.core.Structure
            Structure holding only the asymmetric-unit sites.
        symmops : sequence of pymatgen.core.operations.SymmOp
            Fractional symmetry operations of the space group.
        default_uiso : float, optional
            Isotropic displacement for sites without displacement data.
        """
        data = sites_from_pymatgen(structure, default_uiso)
        adapter = cls(
            Lattice.from_pymatgen(structure.lattice),
            data["frac_coords"],
            data["atom_types"],
            symmops,
            occupancies=data["occupancies"],
            uiso=data["uiso"],
            uij=data["uij"],
            pdffit=pdffit_from_pymatgen(structure),
        )
        adapter.source = structure
        return adapter

    def _expand_symmetry(self, affine: np.ndarray) -> None:
        rotations = affine[:, :3, :3]
        translations = affine[:, :3, 3]
        # fractional rotation -> cartesian rotation for column vectors
        basis = self._lattice.matrix.T
        basis_inv = np.linalg.inv(basis)
        cart_rotations = basis @ rotations @ basis_inv

        self._sym_positions: list[np.ndarray] = []
        self._sym_uij: list[np.ndarray] = []
        multiplicities = []
        for idx, x in enumerate(self._frac_coords):
            images = wrap_fractional(rotations @ x + translations)
            unique: list[int] = []
            for k, y in enumerate(images):
                if unique:
                    delta = images[unique] - y
                    delta -= np.round(delta)
                    if np.any(np.all(np.abs(delta) < SYMMETRY_TOLERANCE, axis=1)):
                        continue
                unique.append(k)
            u = self.cartesian_uijs[idx]
            r = cart_rotations[unique]
            positions = self._lattice.cartesian(images[unique])
            tensors = r @ u @ np.transpose(r, (0, 2, 1))
            positions.setflags(write=False)
            tensors.setflags(write=False)
            self._sym_positions.append(positions)
            self._sym_uij.append(tensors)
            multiplicities.append(float(len(unique)))
        self._multiplicities = np.array(multiplicities)
        self._multiplicities.setflags(write=False)

    def site_multiplicity(self, idx: int) -> float:
        self._check_index(idx)
        return float(self._multiplicities[idx])

    def symmetry_images(self, idx: int) -> tuple[np.ndarray, np.ndarray]:
        """
        Return the symmetry images of asymmetric-unit site *idx*.

        Returns
        -------
        positions : np.ndarray, shape (m, 3)
            Cartesian positions of the images inside the unit cell.
        uij : np.ndarray, shape (m, 3, 3)
            Cartesian displacement tensors of the images.
        """
        self._check_index(idx)
        return self._sym_positions[idx], self._sym_uij[idx]

    def count_unit_cell_sites(self) -> int:
        """Return the number of sites in the full unit cell."""
        return int(sum(len(p) for p in self._sym_positions))

    def custom_pq_config(self, pq) -> None:
        super().custom_pq_config(pq)
        pq.use_full_sum = True

    def create_bond_generator(self):
        from pdfcalc.bondgenerator import CrystalBondGenerator
        return CrystalBondGenerator(self)
