"""
Unit cell geometry for periodic structures.

A cell is stored as a 3x3 matrix whose rows are the lattice vectors
``a``, ``b`` and ``c``, the layout pymatgen and ASE use.  Coordinates are
row vectors, so a fractional point ``s`` sits at ``s @ M`` in cartesian
space.

Besides coordinate conversion, :class:`Lattice` supplies what pair
enumeration and displacement handling need from a cell:

- the metric tensor ``M M^T`` and the reciprocal lengths ``a*, b*, c*``
- the body diagonal bounding the distance between two sites of one cell
- the transform of crystal-frame displacement tensors (CIF ``Uij``) to
  cartesian ones, ``U_cart = A N U N A^T`` with ``A = M^T`` and
  ``N = diag(a*, b*, c*)``
"""

from __future__ import annotations

import numpy as np


def cartesian_to_fractional(
    positions: np.ndarray, cell_inverse: np.ndarray
) -> np.ndarray:
    """Return ``positions @ cell_inverse``, the fractional coordinates."""
    return positions @ cell_inverse


def fractional_to_cartesian(
    fractional: np.ndarray, cell_matrix: np.ndarray
) -> np.ndarray:
    """Return ``fractional @ cell_matrix``, the cartesian coordinates."""
    return fractional @ cell_matrix


def wrap_fractional(fractional: np.ndarray) -> np.ndarray:
    """
    Fold fractional coordinates into the home cell.

    Every component of the result lies in ``[0, 1)``; the input array is
    not modified.
    """
    wrapped = fractional - np.floor(fractional)
    # values like -1e-17 wrap to exactly 1.0
    wrapped[wrapped >= 1.0] = 0.0
    return wrapped


def cell_matrix_from_parameters(
    a: float, b: float, c: float,
    alpha: float, beta: float, gamma: float,
) -> np.ndarray:
    """
    Build a cell matrix from lattice parameters.

    The ``a`` vector lies along x and ``b`` in the xy plane.  Angles are
    in degrees.

    Raises
    ------
    ValueError
        If the lengths are not positive or the angles do not describe a cell.
    """
    if min(a, b, c) <= 0:
        raise ValueError(f"Cell lengths must be positive. Got: ({a}, {b}, {c})")
    ca, cb, cg = np.cos(np.radians([alpha, beta, gamma]))
    sg = np.sin(np.radians(gamma))
    cz2 = 1.0 - cb ** 2 - ((ca - cb * cg) / sg) ** 2
    if sg <= 0 or cz2 <= 0:
        raise ValueError(
            f"Cell angles do not define a cell. Got: ({alpha}, {beta}, {gamma})"
        )
    return np.array([
        [a, 0.0, 0.0],
        [b * cg, b * sg, 0.0],
        [c * cb, c * (ca - cb * cg) / sg, c * np.sqrt(cz2)],
    ])


class Lattice:
    """
    Immutable periodic lattice.

    Parameters
    ----------
    cell_matrix : array_like, shape (3, 3)
        Rows are the lattice vectors ``a``, ``b``, ``c`` in Angstroms.

    Raises
    ------
    ValueError
        If the matrix is not 3x3, not finite or singular.
    """

    def __init__(self, cell_matrix) -> None:
        matrix = np.array(cell_matrix, dtype=np.float64, copy=True)
        if matrix.shape != (3, 3):
            raise ValueError(f"Cell matrix must have shape (3, 3), got {matrix.shape}")
        if not np.all(np.isfinite(matrix)):
            raise ValueError("Cell matrix must be finite.")
        volume = abs(np.linalg.det(matrix))
        if volume < 1e-12:
            raise ValueError("Cell matrix is singular.")
        inverse = np.linalg.inv(matrix)
        matrix.setflags(write=False)
        inverse.setflags(write=False)
        self._matrix = matrix
        self._inverse = inverse
        self._volume = float(volume)

    @classmethod
    def from_parameters(
        cls, a: float, b: float, c: float,
        alpha: float = 90.0, beta: float = 90.0, gamma: float = 90.0,
    ) -> "Lattice":
        """Create a lattice from cell lengths and angles in degrees."""
        return cls(cell_matrix_from_parameters(a, b, c, alpha, beta, gamma))

    @classmethod
    def from_pymatgen(cls, lattice) -> "Lattice":
        """Create a lattice from a :class:`pymatgen.core.Lattice`."""
        return cls(lattice.matrix)

    @property
    def matrix(self) -> np.ndarray:
        """Cell matrix with rows = lattice vectors (read-only)."""
        return self._matrix

    @property
    def inverse(self) -> np.ndarray:
        """Inverse of the cell matrix (read-only)."""
        return self._inverse

    @property
    def volume(self) -> float:
        return self._volume

    @property
    def abc(self) -> np.ndarray:
        """Lengths of the lattice vectors."""
        return np.linalg.norm(self._matrix, axis=1)

    @property
    def reciprocal_lengths(self) -> np.ndarray:
        """Lengths of the reciprocal vectors ``a*, b*, c*`` (no 2*pi factor)."""
        return np.linalg.norm(self._inverse, axis=0)

    @property
    def metric(self) -> np.ndarray:
        """Metric tensor ``M M^T``."""
        return self._matrix @ self._matrix.T

    def cartesian(self, fractional) -> np.ndarray:
        """Convert fractional coordinates to cartesian."""
        return fractional_to_cartesian(np.asarray(fractional, dtype=np.float64), self._matrix)

    def fractional(self, cartesian) -> np.ndarray:
        """Convert cartesian coordinates to fractional."""
        return cartesian_to_fractional(np.asarray(cartesian, dtype=np.float64), self._inverse)

    def ucv_cartesian(self, cartesian) -> np.ndarray:
        """Translate cartesian positions into the unit cell."""
        return self.cartesian(wrap_fractional(np.atleast_2d(self.fractional(cartesian))))

    def cartesian_uij(self, uij_crystal) -> np.ndarray:
        """
        Convert displacement tensors from the crystal frame to cartesian.

        Parameters
        ----------
        uij_crystal : array_like, shape (..., 3, 3)
            Tensors in the crystal frame, i.e. with respect to the unit
            vectors of the reciprocal basis as used in CIF files.

        Returns
        -------
        np.ndarray, shape (..., 3, 3)
            Cartesian tensors.
        """
        transform = self._matrix.T * self.reciprocal_lengths
        return transform @ np.asarray(uij_crystal, dtype=np.float64) @ transform.T

    def max_cell_diagonal(self) -> float:
        """Length of the longest body diagonal of the unit cell."""
        a, b, c = self._matrix
        return float(max(
            np.linalg.norm(a + b + c),
            np.linalg.norm(a + b - c),
            np.linalg.norm(a - b + c),
            np.linalg.norm(-a + b + c),
        ))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Lattice):
            return NotImplemented
        return bool(np.allclose(self._matrix, other._matrix, atol=1e-6, rtol=0))

    def __hash__(self) -> int:
        return hash(tuple(np.round(self._matrix, 6).ravel()))

    def __repr__(self) -> str:
        a, b, c = self.abc
        return f"Lattice(a={a:.5g}, b={b:.5g}, c={c:.5g}, volume={self.volume:.5g})"
