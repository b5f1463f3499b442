"""Shared fixtures for unit tests."""

import numpy as np
import pytest
from pymatgen.core.operations import SymmOp

from pdfcalc.lattice import Lattice
from pdfcalc.structure import (
    AtomicStructureAdapter,
    CrystalStructureAdapter,
    MoleculeAdapter,
    PeriodicStructureAdapter,
)


@pytest.fixture
def cubic_lattice():
    """Cubic lattice with a = 4 A."""
    return Lattice.from_parameters(4.0, 4.0, 4.0)


@pytest.fixture
def simple_cubic(cubic_lattice):
    """One Ni atom in a 4 A cubic cell."""
    return PeriodicStructureAdapter(
        cubic_lattice, [[0.0, 0.0, 0.0]], ["Ni"], uiso=0.005,
    )


@pytest.fixture
def bcc_periodic(cubic_lattice):
    """Body-centred cubic Fe with both atoms listed explicitly."""
    return PeriodicStructureAdapter(
        cubic_lattice, [[0.0, 0.0, 0.0], [2.0, 2.0, 2.0]], ["Fe", "Fe"], uiso=0.005,
    )


@pytest.fixture
def bcc_symmops():
    """Identity and body-centring translation."""
    return [
        SymmOp.from_rotation_and_translation(np.eye(3), [0.0, 0.0, 0.0]),
        SymmOp.from_rotation_and_translation(np.eye(3), [0.5, 0.5, 0.5]),
    ]


@pytest.fixture
def bcc_crystal(cubic_lattice, bcc_symmops):
    """Body-centred cubic Fe generated from one site by symmetry."""
    return CrystalStructureAdapter(
        cubic_lattice, [[0.0, 0.0, 0.0]], ["Fe"], bcc_symmops, uiso=0.005,
    )


@pytest.fixture
def linear_molecule():
    """Three carbon atoms on the x axis spaced by 1 A."""
    return MoleculeAdapter(
        [[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [2.0, 0.0, 0.0]],
        ["C", "C", "C"],
        uiso=0.005,
    )


@pytest.fixture
def dimer():
    """Two oxygen atoms 2 A apart."""
    return AtomicStructureAdapter(
        [[0.0, 0.0, 0.0], [0.0, 0.0, 2.0]], ["O", "O"], uiso=0.005,
    )


@pytest.fixture
def sheared_pair():
    """Two oxygen atoms 5.3 A apart along (1, 1, 0) with sheared Uij."""
    u = np.array([[0.01, 0.009, 0.0], [0.009, 0.01, 0.0], [0.0, 0.0, 0.001]])
    d = 5.3 / np.sqrt(2.0)
    return AtomicStructureAdapter(
        [[0.0, 0.0, 0.0], [d, d, 0.0]], ["O", "O"], uij=[u, u],
    )
