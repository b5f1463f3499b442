"""
Enumeration of lattice translations inside a spherical shell.

:class:`PointsInSphere` lists every lattice vector ``T = h a + k b + l c``
with ``rmin <= |T| <= rmax``, sorted by increasing length.  The enumeration
is finite for a given radius and can be restarted, so periodic bond
generators use it as the source of image translations.
"""

from __future__ import annotations

from typing import Iterator

import numpy as np

from pdfcalc.lattice import Lattice

#: Relative tolerance applied to the shell bounds so that lattice points
#: lying exactly on ``rmin`` or ``rmax`` are included.
SHELL_TOLERANCE: float = 1e-10


class PointsInSphere:
    """
    Lattice points within a spherical shell ordered by distance from origin.

    Parameters
    ----------
    rmin : float
        Inner radius of the shell (clipped at 0).
    rmax : float
        Outer radius of the shell.
    lattice : Lattice
        Lattice whose translations are enumerated.

    Attributes
    ----------
    mno : np.ndarray, shape (n, 3), dtype=int
        Integer coefficients ``(h, k, l)`` of each lattice point.
    vectors : np.ndarray, shape (n, 3)
        Cartesian translation vectors.
    norms : np.ndarray, shape (n,)
        Lengths of the translation vectors, non-decreasing.

    Examples
    --------
    >>> sph = PointsInSphere(0.0, 4.0, Lattice.from_parameters(4, 4, 4))
    >>> len(sph)
    7
    >>> sph.rewind()
    >>> sph.r()
    0.0
    """

    def __init__(self, rmin: float, rmax: float, lattice: Lattice) -> None:
        if rmax < rmin:
            raise ValueError(f"rmax must not be below rmin, got rmin={rmin}, rmax={rmax}")
        self.rmin = max(0.0, float(rmin))
        self.rmax = float(rmax)
        self.lattice = lattice
        self._build()
        self._index = 0

    def _build(self) -> None:
        tol = SHELL_TOLERANCE * max(1.0, self.rmax)
        # |h| <= rmax |a*| bounds every point of the sphere along each axis
        bounds = np.ceil(self.rmax * self.lattice.reciprocal_lengths + tol).astype(int)
        axes = [np.arange(-n, n + 1) for n in bounds]
        mno = np.stack(np.meshgrid(*axes, indexing="ij"), axis=-1).reshape(-1, 3)
        vectors = mno @ self.lattice.matrix
        norms = np.linalg.norm(vectors, axis=1)
        inside = (norms >= self.rmin - tol) & (norms <= self.rmax + tol)
        order = np.argsort(norms[inside], kind="stable")
        self.mno = mno[inside][order]
        self.vectors = vectors[inside][order]
        self.norms = norms[inside][order]
        for arr in (self.mno, self.vectors, self.norms):
            arr.setflags(write=False)

    def __len__(self) -> int:
        return len(self.norms)

    # loop control

    def rewind(self) -> None:
        """Restart the enumeration at the shortest vector."""
        self._index = 0

    def next(self) -> None:
        """Advance to the next lattice point."""
        self._index += 1

    def finished(self) -> bool:
        return self._index >= len(self.norms)

    # data access

    def hkl(self) -> np.ndarray:
        """Integer coefficients of the current lattice point."""
        return self.mno[self._index]

    def r(self) -> float:
        """Length of the current translation vector."""
        return float(self.norms[self._index])

    def vector(self) -> np.ndarray:
        """Cartesian translation vector of the current lattice point."""
        return self.vectors[self._index]

    def __iter__(self) -> Iterator[np.ndarray]:
        """Iterate over cartesian translation vectors, shortest first."""
        self.rewind()
        while not self.finished():
            yield self.vector()
            self.next()
