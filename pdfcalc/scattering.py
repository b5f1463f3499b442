"""
Scattering factor tables.

A table maps species labels to their scattering power at Q = 0.  Values
can be overridden per species with :meth:`ScatteringFactorTable.set_custom`.
Tables are registered by tag in :data:`scattering_tables`:

- ``'xray'``: X-ray form factor at Q = 0, i.e. the number of electrons
  ``Z - charge`` taken from pymatgen element data.
- ``'electronnumber'``: the same values registered under the name used
  for electron counting.
"""

from __future__ import annotations

from pymatgen.core.periodic_table import DummySpecies, get_el_sp

from pdfcalc.registry import Registrable, Registry


class ScatteringFactorTable(Registrable):
    """Base class of scattering factor tables with custom overrides."""

    def __init__(self) -> None:
        self._custom: dict[str, float] = {}
        self._cache: dict[str, float] = {}

    def lookup(self, smbl: str) -> float:
        """
        Return the scattering factor of species *smbl*.

        Raises
        ------
        ValueError
            If the species is unknown.
        """
        if smbl in self._custom:
            return self._custom[smbl]
        value = self._cache.get(smbl)
        if value is None:
            value = self._standard_lookup(smbl)
            self._cache[smbl] = value
        return value

    def _standard_lookup(self, smbl: str) -> float:
        raise NotImplementedError

    def set_custom(self, smbl: str, value: float) -> None:
        """Override the scattering factor of *smbl*."""
        self._custom[smbl] = float(value)

    def reset_custom(self, smbl: str | None = None) -> None:
        """Remove the override of *smbl*, or all overrides when ``None``."""
        if smbl is None:
            self._custom.clear()
        else:
            self._custom.pop(smbl, None)

    def custom_symbols(self) -> tuple[str, ...]:
        return tuple(sorted(self._custom))


scattering_tables: Registry[ScatteringFactorTable] = Registry("scattering factor table")


@scattering_tables.register
class XrayScatteringTable(ScatteringFactorTable):
    """
    X-ray scattering factors at Q = 0.

    Species labels are parsed by pymatgen, so both elements (``'Na'``) and
    ions (``'Na+'``, ``'O2-'``) are accepted.
    """

    type_name = "xray"

    def _standard_lookup(self, smbl: str) -> float:
        try:
            species = get_el_sp(smbl)
        except (ValueError, KeyError) as exc:
            raise ValueError(f"Unknown atom type {smbl!r}.") from exc
        if isinstance(species, DummySpecies):
            raise ValueError(f"Unknown atom type {smbl!r}.")
        charge = getattr(species, "oxi_state", None) or 0.0
        element = getattr(species, "element", species)
        return float(element.Z - charge)


@scattering_tables.register
class ElectronNumberTable(XrayScatteringTable):
    """Electron count ``Z - charge`` of a species."""

    type_name = "electronnumber"


def create_scattering_table(tag: str, **kwargs) -> ScatteringFactorTable:
    """Create a registered scattering factor table by tag."""
    return scattering_tables.create(tag, **kwargs)
