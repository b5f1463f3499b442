"""Atomic pair distribution function calculator"""
from pdfcalc.lattice import Lattice
from pdfcalc.points_in_sphere import PointsInSphere
from pdfcalc.structure import (
    StructureAdapter,
    AtomicStructureAdapter,
    PeriodicStructureAdapter,
    CrystalStructureAdapter,
    MoleculeAdapter,
    create_adapter,
)
from pdfcalc.bondgenerator import Bond, BondGenerator
from pdfcalc.pairquantity import PairQuantity, PairCounter
from pdfcalc.pdfcalculator import PDFCalculator
from pdfcalc.registry import UnknownTypeError
from pdfcalc._version import __version__

__all__ = [
    "Bond",
    "BondGenerator",
    "AtomicStructureAdapter",
    "CrystalStructureAdapter",
    "Lattice",
    "MoleculeAdapter",
    "PairCounter",
    "PairQuantity",
    "PDFCalculator",
    "PeriodicStructureAdapter",
    "PointsInSphere",
    "StructureAdapter",
    "UnknownTypeError",
    "create_adapter",
    "__version__",
]
