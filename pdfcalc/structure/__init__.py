"""
Structure adapters for pdfcalc.

Classes
-------
StructureAdapter
    Abstract interface consumed by bond generators and calculators.
AtomicStructureAdapter
    Aperiodic structure held as in-memory NumPy arrays.
PeriodicStructureAdapter
    Periodic structure; images generated on the fly.
CrystalStructureAdapter
    Asymmetric unit plus symmetry operations, expanded at construction.
MoleculeAdapter
    Aperiodic molecule with cartesian displacement tensors.

Functions
---------
create_adapter
    Wrap pymatgen or ASE objects in the matching adapter.
"""

from ._base import StructureAdapter, AtomicStructureAdapter
from .crystal import CrystalStructureAdapter
from .factory import create_adapter
from .molecule import MoleculeAdapter
from .periodic import PeriodicStructureAdapter

__all__ = [
    "AtomicStructureAdapter",
    "CrystalStructureAdapter",
    "MoleculeAdapter",
    "PeriodicStructureAdapter",
    "StructureAdapter",
    "create_adapter",
]
