"""Tests for pdfcalc.points_in_sphere lattice point enumeration."""

import numpy as np
import pytest

from pdfcalc.lattice import Lattice
from pdfcalc.points_in_sphere import PointsInSphere


class TestPointsInSphere:
    """Tests for PointsInSphere."""

    def test_cubic_first_shell_with_origin(self, cubic_lattice):
        sph = PointsInSphere(0.0, 4.0, cubic_lattice)
        assert len(sph) == 7

    def test_shell_excludes_origin(self, cubic_lattice):
        sph = PointsInSphere(0.1, 4.0, cubic_lattice)
        assert len(sph) == 6
        np.testing.assert_allclose(sph.norms, 4.0)

    def test_two_shells(self, cubic_lattice):
        sph = PointsInSphere(0.0, 4.0 * np.sqrt(2.0), cubic_lattice)
        assert len(sph) == 1 + 6 + 12

    def test_norms_are_sorted(self):
        lat = Lattice.from_parameters(3.0, 4.0, 5.0, 70, 80, 100)
        sph = PointsInSphere(0.0, 12.0, lat)
        assert np.all(np.diff(sph.norms) >= 0)

    def test_complete_against_brute_force(self):
        lat = Lattice.from_parameters(3.0, 4.0, 5.0, 70, 80, 100)
        rmin, rmax = 2.0, 9.0
        sph = PointsInSphere(rmin, rmax, lat)
        n = 10
        grid = np.arange(-n, n + 1)
        mno = np.stack(np.meshgrid(grid, grid, grid, indexing="ij"), axis=-1).reshape(-1, 3)
        norms = np.linalg.norm(mno @ lat.matrix, axis=1)
        expected = np.count_nonzero((norms >= rmin) & (norms <= rmax))
        assert len(sph) == expected

    def test_vectors_match_mno(self):
        lat = Lattice.from_parameters(3.0, 4.0, 5.0, 70, 80, 100)
        sph = PointsInSphere(0.0, 8.0, lat)
        np.testing.assert_allclose(sph.vectors, sph.mno @ lat.matrix)

    def test_negative_rmin_is_clipped(self, cubic_lattice):
        sph = PointsInSphere(-3.0, 4.0, cubic_lattice)
        assert sph.rmin == 0.0
        assert len(sph) == 7

    def test_rmax_below_rmin_raises(self, cubic_lattice):
        with pytest.raises(ValueError):
            PointsInSphere(5.0, 4.0, cubic_lattice)

    def test_loop_protocol(self, cubic_lattice):
        sph = PointsInSphere(0.0, 4.0, cubic_lattice)
        sph.rewind()
        assert not sph.finished()
        assert sph.r() == 0.0
        np.testing.assert_array_equal(sph.hkl(), [0, 0, 0])
        count = 0
        while not sph.finished():
            count += 1
            sph.next()
        assert count == len(sph)

    def test_iteration_is_restartable(self, cubic_lattice):
        sph = PointsInSphere(0.0, 4.0, cubic_lattice)
        first = [v.copy() for v in sph]
        second = [v.copy() for v in sph]
        assert len(first) == len(second) == 7
        np.testing.assert_allclose(first, second)

    def test_arrays_are_read_only(self, cubic_lattice):
        sph = PointsInSphere(0.0, 4.0, cubic_lattice)
        with pytest.raises(ValueError):
            sph.norms[0] = 1.0
