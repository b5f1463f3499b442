"""
Molecule adapter for pdfcalc.

Molecules are always treated as aperiodic.  Anisotropic displacement
tensors are taken in the cartesian frame; to use crystal-frame tensors,
place the molecule in a periodic structure instead.
"""

from __future__ import annotations

from typing import Any

from ._base import AtomicStructureAdapter
from ._pymatgen import pdffit_from_pymatgen, sites_from_pymatgen


class MoleculeAdapter(AtomicStructureAdapter):
    """
    Aperiodic molecule or cluster.

    All site data are copied at construction.  The number density is 0,
    so the PDF baseline of a molecule is flat.

    Attributes
    ----------
    source : object or None
        Molecule object this adapter was created from, if any.
    """

    source: Any = None

    @classmethod
    def from_pymatgen(cls, molecule, default_uiso: float = 0.0) -> "MoleculeAdapter":
        """
        Create an adapter from a :class:`pymatgen.core.Molecule`.

        Site properties ``"uiso"`` and ``"uij"`` (cartesian) supply
        displacement parameters.  A ``"pdffit"`` entry of
        ``molecule.properties`` supplies calculation parameters.
        """
        data = sites_from_pymatgen(molecule, default_uiso)
        adapter = cls(
            data["positions"],
            data["atom_types"],
            occupancies=data["occupancies"],
            uiso=data["uiso"],
            uij=data["uij"],
            pdffit=pdffit_from_pymatgen(molecule),
        )
        adapter.source = molecule
        return adapter
