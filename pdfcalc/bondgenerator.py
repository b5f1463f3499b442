"""
Bond generators: enumeration of interatomic pairs within a distance window.

A bond generator runs two nested loops.  The outer loop walks the partner
site ``j`` over the selected site range, while the anchor site ``i`` stays
fixed.  The inner symmetry loop walks every image of site ``j`` whose
distance from site ``i`` lies inside ``[rmin, rmax]``.

- :class:`BondGenerator`: aperiodic structures, one image per site.
- :class:`PeriodicBondGenerator`: images from lattice translations.
- :class:`CrystalBondGenerator`: symmetry images times lattice translations.

State is reported by :attr:`BondGenerator.state`:
``'rewound'`` (positioned at the first bond, none consumed),
``'advancing'`` (bonds being consumed) or ``'exhausted'``.

Example
-------
>>> generator = adapter.create_bond_generator()
>>> generator.set_rmax(5.0)
>>> generator.select_anchor_site(0)
>>> for bond in generator:
...     print(bond.site1, bond.distance, bond.msd)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterator

import numpy as np

from pdfcalc.points_in_sphere import PointsInSphere

if TYPE_CHECKING:
    from pdfcalc.structure import StructureAdapter, CrystalStructureAdapter


#: Bonds shorter than this are treated as a site paired with itself.
ZERO_BOND_TOLERANCE: float = 1e-8


@dataclass(frozen=True)
class Bond:
    """
    A single enumerated pair.

    Attributes
    ----------
    site0, site1 : int
        Indices of the anchor and partner sites.
    r0, r1 : np.ndarray
        Cartesian positions of the two ends.
    distance : float
        Length of the bond.
    msd : float
        Mean-square relative displacement along the bond direction.
    multiplicity : float
        Symmetry degeneracy of the anchor site.
    """

    site0: int
    site1: int
    r0: np.ndarray
    r1: np.ndarray
    distance: float
    msd: float
    multiplicity: float = 1.0

    @property
    def r01(self) -> np.ndarray:
        """Bond vector from ``r0`` to ``r1``."""
        return self.r1 - self.r0


class BondGenerator:
    """
    Bond generator for aperiodic structures.

    Parameters
    ----------
    structure : StructureAdapter
        Adapter providing the site data.  The generator holds a reference
        and never modifies it.

    Attributes
    ----------
    state : str
        One of ``'rewound'``, ``'advancing'`` or ``'exhausted'``.
    """

    def __init__(self, structure: "StructureAdapter") -> None:
        self.structure = structure
        self._rmin = 0.0
        self._rmax = np.inf
        self._anchor = 0
        self._first = 0
        self._last = structure.count_sites()
        self._site1 = 0
        self._positioned = False
        self.state = 'rewound'
        # accepted images of the current partner site
        self._images = np.empty((0, 3))
        self._image_uij = np.empty((0, 3, 3))
        self._image_dist = np.empty(0)
        self._image_idx = 0

    # configuration

    @property
    def rmin(self) -> float:
        return self._rmin

    @property
    def rmax(self) -> float:
        return self._rmax

    def set_rmin(self, r: float) -> None:
        """Set the lower bound of the accepted bond lengths."""
        if r < 0 or np.isnan(r):
            raise ValueError(f"rmin must be non-negative, got {r}")
        self._rmin = float(r)
        self._window_changed()

    def set_rmax(self, r: float) -> None:
        """Set the upper bound of the accepted bond lengths."""
        if r < 0 or np.isnan(r):
            raise ValueError(f"rmax must be non-negative, got {r}")
        self._rmax = float(r)
        self._window_changed()

    def select_anchor_site(self, idx: int) -> None:
        """Fix the anchor site ``i`` of all produced bonds."""
        self.structure._check_index(idx)
        self._anchor = int(idx)
        self._positioned = False
        self.state = 'rewound'

    def select_site_range(self, first: int, last: int) -> None:
        """Restrict partner sites to the half-open range ``[first, last)``."""
        n = self.structure.count_sites()
        if not 0 <= first <= last <= n:
            raise IndexError(f"Invalid site range [{first}, {last}) for {n} sites.")
        self._first = int(first)
        self._last = int(last)
        self._positioned = False
        self.state = 'rewound'

    def _window_changed(self) -> None:
        self._positioned = False
        self.state = 'rewound'

    # loop control

    def rewind(self) -> None:
        """Position the generator at the first bond of the configured loops."""
        if self._rmin > self._rmax:
            raise ValueError(
                f"rmin must not exceed rmax, got rmin={self._rmin}, rmax={self._rmax}"
            )
        self._prepare()
        self._r0 = self._anchor_position()
        self._uij0 = self.structure.site_cartesian_uij(self._anchor)
        self._site1 = self._first
        self._positioned = True
        self.state = 'rewound'
        if self._site1 >= self._last:
            self.state = 'exhausted'
            return
        self._rewind_symmetry()
        if len(self._image_dist) == 0:
            self._get_next_bond()

    def next(self) -> None:
        """Advance to the next bond."""
        self._ensure_positioned()
        if self.state == 'exhausted':
            return
        self.state = 'advancing'
        self._get_next_bond()

    def finished(self) -> bool:
        self._ensure_positioned()
        return self.state == 'exhausted'

    def __iter__(self) -> Iterator[Bond]:
        """Rewind and yield every bond as a :class:`Bond` value."""
        self.rewind()
        while not self.finished():
            yield self.bond()
            self.next()

    def _ensure_positioned(self) -> None:
        if not self._positioned:
            self.rewind()

    def _get_next_bond(self) -> None:
        """Advance the symmetry loop, moving to the next partner site when it runs out."""
        if self._iterate_symmetry():
            return
        while True:
            self._site1 += 1
            if self._site1 >= self._last:
                self.state = 'exhausted'
                return
            self._rewind_symmetry()
            if len(self._image_dist):
                return

    def _iterate_symmetry(self) -> bool:
        """Move to the next accepted image of the partner site, if any."""
        self._image_idx += 1
        return self._image_idx < len(self._image_dist)

    def _rewind_symmetry(self) -> None:
        """Collect the images of the current partner site inside the window."""
        positions, uij = self._partner_images(self._site1)
        dist = np.linalg.norm(positions - self._r0, axis=1)
        accept = (
            (dist >= self._rmin) & (dist <= self._rmax) & (dist > ZERO_BOND_TOLERANCE)
        )
        self._images = positions[accept]
        self._image_uij = uij[accept]
        self._image_dist = dist[accept]
        self._image_idx = 0

    # hooks for periodic variants

    def _prepare(self) -> None:
        """Prepare per-window data before the loops start."""
        pass

    def _anchor_position(self) -> np.ndarray:
        return self.structure.site_cartesian_position(self._anchor)

    def _partner_images(self, idx: int) -> tuple[np.ndarray, np.ndarray]:
        """Return all candidate images of site *idx* and their Uij tensors."""
        position = self.structure.site_cartesian_position(idx)
        uij = self.structure.site_cartesian_uij(idx)
        return position[np.newaxis, :], uij[np.newaxis, :, :]

    # data access

    def _current(self) -> int:
        self._ensure_positioned()
        if self.state == 'exhausted':
            raise RuntimeError("Bond generator is exhausted; call rewind().")
        return self._image_idx

    def site0(self) -> int:
        return self._anchor

    def site1(self) -> int:
        self._current()
        return self._site1

    def r0(self) -> np.ndarray:
        """Cartesian position of the anchor end of the current bond."""
        self._current()
        return self._r0

    def r1(self) -> np.ndarray:
        """Cartesian position of the partner end of the current bond."""
        return self._images[self._current()]

    def r01(self) -> np.ndarray:
        return self.r1() - self._r0

    def distance(self) -> float:
        return float(self._image_dist[self._current()])

    def msd(self) -> float:
        """
        Mean-square relative displacement along the current bond.

        Each site's tensor is projected on the bond unit vector and the two
        projections are summed.
        """
        k = self._current()
        u = (self._images[k] - self._r0) / self._image_dist[k]
        return float(u @ self._uij0 @ u + u @ self._image_uij[k] @ u)

    def multiplicity(self) -> float:
        return self.structure.site_multiplicity(self._anchor)

    def bond(self) -> Bond:
        """Return the current bond as an immutable :class:`Bond`."""
        k = self._current()
        return Bond(
            site0=self._anchor,
            site1=self._site1,
            r0=self._r0,
            r1=self._images[k],
            distance=float(self._image_dist[k]),
            msd=self.msd(),
            multiplicity=self.multiplicity(),
        )


class PeriodicBondGenerator(BondGenerator):
    """
    Bond generator for periodic structures.

    Site positions are folded into the unit cell and partner images are
    produced by adding lattice translations from a :class:`PointsInSphere`
    search.  The search shell is the bond window widened by the longest
    cell diagonal and is rebuilt only when the window changes.

    Raises
    ------
    ValueError
        On rewind, if ``rmax`` is infinite.
    """

    def __init__(self, structure: "StructureAdapter") -> None:
        super().__init__(structure)
        lattice = structure.lattice
        positions = np.array([
            structure.site_cartesian_position(i)
            for i in range(structure.count_sites())
        ]).reshape(-1, 3)
        self._ucv_positions = lattice.ucv_cartesian(positions) if len(positions) else positions
        self._buffer = lattice.max_cell_diagonal()
        self._sphere: PointsInSphere | None = None

    def _window_changed(self) -> None:
        super()._window_changed()
        self._sphere = None

    def _prepare(self) -> None:
        if not np.isfinite(self._rmax):
            raise ValueError("Periodic bond generation requires a finite rmax.")
        if self._sphere is None:
            self._sphere = PointsInSphere(
                self._rmin - self._buffer,
                self._rmax + self._buffer,
                self.structure.lattice,
            )

    def _anchor_position(self) -> np.ndarray:
        return self._ucv_positions[self._anchor]

    def _partner_images(self, idx: int) -> tuple[np.ndarray, np.ndarray]:
        translations = self._sphere.vectors
        positions = self._ucv_positions[idx] + translations
        uij = self.structure.site_cartesian_uij(idx)
        return positions, np.broadcast_to(uij, (len(positions), 3, 3))

    @property
    def sphere(self) -> PointsInSphere | None:
        """Lattice point search of the current window, built on rewind."""
        return self._sphere


class CrystalBondGenerator(PeriodicBondGenerator):
    """
    Bond generator for space-group expanded crystals.

    The symmetry loop runs over every stored symmetry image of the partner
    site combined with every lattice translation of the search shell.
    The displacement tensor of each image is the rotated tensor computed
    by the adapter.
    """

    structure: "CrystalStructureAdapter"

    def _partner_images(self, idx: int) -> tuple[np.ndarray, np.ndarray]:
        images, image_uij = self.structure.symmetry_images(idx)
        translations = self._sphere.vectors
        positions = (images[:, np.newaxis, :] + translations[np.newaxis, :, :]).reshape(-1, 3)
        uij = np.repeat(image_uij, len(translations), axis=0)
        return positions, uij
