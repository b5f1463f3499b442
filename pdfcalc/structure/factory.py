"""Conversion of supported structure objects into adapters."""

from __future__ import annotations

from typing import Any

from ._base import StructureAdapter
from ._pymatgen import pymatgen_from_ase
from .molecule import MoleculeAdapter
from .periodic import PeriodicStructureAdapter


def create_adapter(stru: Any, default_uiso: float = 0.0) -> StructureAdapter:
    """
    Return a structure adapter for *stru*.

    Parameters
    ----------
    stru : StructureAdapter, pymatgen Structure or Molecule, or ase.Atoms
        Structure to adapt.  Adapters are returned unchanged.
    default_uiso : float, optional
        Isotropic displacement for sites without displacement data.

    Returns
    -------
    StructureAdapter

    Raises
    ------
    TypeError
        If *stru* is of an unsupported type.
    """
    if isinstance(stru, StructureAdapter):
        return stru

    from pymatgen.core import Molecule, Structure

    if isinstance(stru, Structure):
        return PeriodicStructureAdapter.from_pymatgen(stru, default_uiso)
    if isinstance(stru, Molecule):
        return MoleculeAdapter.from_pymatgen(stru, default_uiso)

    from ase import Atoms

    if isinstance(stru, Atoms):
        adapter = create_adapter(pymatgen_from_ase(stru), default_uiso)
        adapter.source = stru
        return adapter

    raise TypeError(f"Cannot create a structure adapter for {type(stru).__name__!r}.")
