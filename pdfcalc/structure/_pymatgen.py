"""
Helpers for reading site data from pymatgen and ASE objects.

Displacement parameters are read from the site properties ``"uiso"``
(scalar, A^2) and ``"uij"`` (3x3 tensor).  Disordered pymatgen sites are
split into one site per species, each carrying its partial occupancy.
"""

from __future__ import annotations

from typing import Any, Iterable

import numpy as np


def sites_from_pymatgen(
    sites: Iterable[Any], default_uiso: float = 0.0
) -> dict[str, Any]:
    """
    Collect per-site arrays from pymatgen sites.

    Parameters
    ----------
    sites : iterable of pymatgen.core.Site
        Sites of a ``Structure`` or ``Molecule``.
    default_uiso : float, optional
        Isotropic displacement used for sites without ``"uiso"`` or
        ``"uij"`` properties (default: 0).

    Returns
    -------
    dict
        Keys ``positions``, ``frac_coords`` (``None`` for molecules),
        ``atom_types``, ``occupancies``, ``uiso`` and ``uij`` (list with
        ``None`` entries for isotropic sites, tensors in the frame in which
        they were stored).
    """
    positions = []
    frac_coords = []
    atom_types = []
    occupancies = []
    uiso = []
    uij = []
    for site in sites:
        props = site.properties
        site_uij = props.get("uij")
        site_uiso = props.get("uiso")
        if site_uiso is None:
            site_uiso = default_uiso
        for species, occu in site.species.items():
            positions.append(site.coords)
            frac_coords.append(getattr(site, "frac_coords", None))
            atom_types.append(str(species))
            occupancies.append(occu)
            uiso.append(site_uiso)
            uij.append(None if site_uij is None else np.asarray(site_uij, dtype=np.float64))
    periodic = bool(frac_coords) and frac_coords[0] is not None
    return {
        "positions": np.array(positions, dtype=np.float64).reshape(-1, 3),
        "frac_coords": np.array(frac_coords, dtype=np.float64).reshape(-1, 3) if periodic else None,
        "atom_types": atom_types,
        "occupancies": np.array(occupancies, dtype=np.float64),
        "uiso": np.array(uiso, dtype=np.float64),
        "uij": uij,
    }


def pdffit_from_pymatgen(obj) -> dict[str, Any] | None:
    """Return the ``"pdffit"`` entry of a pymatgen object's properties, if any."""
    properties = getattr(obj, "properties", None) or {}
    return properties.get("pdffit")


def pymatgen_from_ase(atoms):
    """
    Convert an :class:`ase.Atoms` object to a pymatgen structure.

    Periodic atoms (any ``pbc`` flag set) become a ``Structure``, all others
    a ``Molecule``.  Per-atom ``"uiso"`` and ``"uij"`` arrays are carried
    over as site properties, and an ``info["pdffit"]`` mapping as the
    ``"pdffit"`` entry of the structure properties.
    """
    from pymatgen.io.ase import AseAtomsAdaptor

    if np.any(atoms.pbc):
        converted = AseAtomsAdaptor.get_structure(atoms)
    else:
        converted = AseAtomsAdaptor.get_molecule(atoms)
    for name in ("uiso", "uij"):
        if name in atoms.arrays:
            converted.add_site_property(name, [np.array(v) for v in atoms.arrays[name]])
    if "pdffit" in atoms.info:
        converted.properties["pdffit"] = dict(atoms.info["pdffit"])
    return converted
