"""
Pair quantities: accumulators driven by bond generators.

A :class:`PairQuantity` adapts a structure, runs a bond generator over all
site pairs and collects one contribution per bond into its value array.

Summation convention
--------------------
With ``use_full_sum = False`` (default) the partner site ``j`` of anchor
``i`` runs over ``[0, i]``, so every unordered pair is visited once and
contributions are made with ``summation_scale = 2``; bonds between a site
and its own images are visited in both directions and use
``summation_scale = 1``.  With ``use_full_sum = True`` every ordered pair is
visited and ``summation_scale = 1``.  Accumulators add
``summation_scale / 2`` times their per-pair quantity, so both conventions
give the same value.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING, Any, Sequence

import numpy as np
from tqdm import tqdm

from pdfcalc.settings import get_eval_workers
from pdfcalc.structure import create_adapter

if TYPE_CHECKING:
    from pdfcalc.bondgenerator import Bond, BondGenerator
    from pdfcalc.structure import StructureAdapter


class PairQuantity:
    """
    Base accumulator of per-pair contributions.

    Subclasses implement :meth:`reset_value` and
    :meth:`add_pair_contribution`.

    Parameters
    ----------
    rmin, rmax : float
        Window of accepted bond lengths (default ``[0, inf)``).
    eval_workers : int or None
        Threads used to split the anchor sites; ``None`` uses the
        ``PDFCALC_EVAL_WORKERS`` setting.

    Attributes
    ----------
    use_full_sum : bool
        Summation convention, see the module docstring.  Adapters may set
        it in :meth:`StructureAdapter.custom_pq_config`.
    """

    def __init__(
        self,
        rmin: float = 0.0,
        rmax: float = np.inf,
        eval_workers: int | None = None,
    ) -> None:
        self._rmin = 0.0
        self._rmax = np.inf
        self._set_rlimits(rmin, rmax)
        self.use_full_sum = False
        self.eval_workers = eval_workers
        self._structure: StructureAdapter | None = None
        self._value = np.zeros(0)

    # configuration

    @property
    def eval_workers(self) -> int | None:
        """Threads used for pair enumeration; ``None`` defers to the settings."""
        return self._eval_workers

    @eval_workers.setter
    def eval_workers(self, value: int | None) -> None:
        if value is not None and value < 1:
            raise ValueError(f"eval_workers must be a positive integer or None, got {value}")
        self._eval_workers = None if value is None else int(value)

    @property
    def rmin(self) -> float:
        return self._rmin

    @rmin.setter
    def rmin(self, value: float) -> None:
        self._set_rlimits(value, self._rmax)

    @property
    def rmax(self) -> float:
        return self._rmax

    @rmax.setter
    def rmax(self, value: float) -> None:
        self._set_rlimits(self._rmin, value)

    def _set_rlimits(self, rmin: float, rmax: float) -> None:
        if rmin < 0 or np.isnan(rmin):
            raise ValueError(f"rmin must be non-negative, got {rmin}")
        if not rmin < rmax:
            raise ValueError(f"rmin must be smaller than rmax, got rmin={rmin}, rmax={rmax}")
        self._rmin = float(rmin)
        self._rmax = float(rmax)
        self._config_changed()

    def _config_changed(self) -> None:
        """Hook called whenever the configuration changes."""
        pass

    @property
    def structure(self) -> "StructureAdapter | None":
        """Adapter of the last evaluated structure."""
        return self._structure

    @property
    def value(self) -> np.ndarray:
        """Copy of the accumulated value array."""
        return self._value.copy()

    # evaluation

    def eval(self, structure: Any = None, progress: bool = False) -> np.ndarray:
        """
        Accumulate the quantity over all bonds of *structure*.

        Parameters
        ----------
        structure : StructureAdapter, pymatgen or ASE object, optional
            Structure to evaluate; ``None`` reuses the last structure.
        progress : bool
            Show a progress bar over the anchor sites.

        Returns
        -------
        np.ndarray
            Copy of the accumulated value array.

        Raises
        ------
        RuntimeError
            If no structure was given now or before.
        """
        if structure is not None:
            self._set_structure(create_adapter(structure))
        if self._structure is None:
            raise RuntimeError("No structure to evaluate; pass one to eval().")
        stru = self._structure
        stru.custom_pq_config(self)
        self._prepare_pass()
        self.reset_value()

        nsites = stru.count_sites()
        workers = self._eval_workers or get_eval_workers()
        workers = max(1, min(workers, nsites))
        if workers == 1:
            self._accumulate_sites(range(nsites), self._value, progress)
        else:
            chunks = np.array_split(np.arange(nsites), workers)
            with ThreadPoolExecutor(max_workers=workers) as executor:
                futures = [
                    executor.submit(self._accumulate_private, chunk)
                    for chunk in chunks
                ]
                for future in tqdm(futures, disable=not progress):
                    self._value += future.result()
        return self.value

    def _set_structure(self, structure: "StructureAdapter") -> None:
        self._structure = structure

    def _prepare_pass(self) -> None:
        """Hook called after the structure is configured, before reset_value()."""
        pass

    def _accumulate_private(self, sites: Sequence[int]) -> np.ndarray:
        """Accumulate *sites* into a private array."""
        out = np.zeros_like(self._value)
        self._accumulate_sites(sites, out, progress=False)
        return out

    def _accumulate_sites(
        self, sites: Sequence[int], out: np.ndarray, progress: bool
    ) -> None:
        nsites = self._structure.count_sites()
        generator = self._structure.create_bond_generator()
        self.configure_bond_generator(generator)
        for i in tqdm(sites, disable=not progress):
            i = int(i)
            generator.select_anchor_site(i)
            generator.select_site_range(0, nsites if self.use_full_sum else i + 1)
            for bond in generator:
                if self.use_full_sum or bond.site1 == i:
                    summation_scale = 1
                else:
                    summation_scale = 2
                self.add_pair_contribution(bond, summation_scale, out)

    # accumulator contract

    def reset_value(self) -> None:
        """Zero the value array before an accumulation pass."""
        raise NotImplementedError

    def configure_bond_generator(self, generator: "BondGenerator") -> None:
        """Push the distance window onto *generator*."""
        generator.set_rmin(self._rmin)
        generator.set_rmax(self._rmax)

    def add_pair_contribution(
        self, bond: "Bond", summation_scale: int, out: np.ndarray | None = None
    ) -> None:
        """
        Add the contribution of *bond* into *out* (default: the value array).
        """
        raise NotImplementedError


class PairCounter(PairQuantity):
    """
    Count pairs with lengths in ``[rmin, rmax]``.

    Examples
    --------
    >>> counter = PairCounter(rmax=3.0)
    >>> counter.eval(adapter)
    >>> counter.count()
    """

    def reset_value(self) -> None:
        self._value = np.zeros(1)

    def add_pair_contribution(self, bond, summation_scale, out=None) -> None:
        target = self._value if out is None else out
        target[0] += summation_scale / 2.0

    def count(self) -> float:
        """Return the number of counted unordered pairs."""
        return float(self._value[0]) if len(self._value) else 0.0
