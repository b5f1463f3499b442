"""
Real-space PDF calculator.

:class:`PDFCalculator` sums a peak for every pair of atoms on an r-grid that
extends beyond the requested range, normalises the histogram to the radial
distribution function, and derives the PDF by band-pass filtering, adding
the baseline and applying envelopes.  The extensions are then trimmed.

Three nested grids share the spacing ``rstep`` and the origin ``rmin``:

- requested grid: ``rmin + i * rstep`` for ``0 <= i < n``;
- extended grid: requested grid widened by the termination-ripple margin,
  returned by the ``extended_*`` accessors;
- calculation grid: extended grid widened by the peak-tail margin, holding
  the raw histogram in :attr:`value`.

Example
-------
>>> from pdfcalc import PDFCalculator
>>> pc = PDFCalculator(rmax=20.0, qmax=25.0)
>>> r, g = pc(structure)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import numpy as np

from pdfcalc.baseline import PDFBaseline, baselines
from pdfcalc.envelope import PDFEnvelope, envelopes
from pdfcalc.fourier import band_pass_filter, extension_points, rgrid_points
from pdfcalc.pairquantity import PairQuantity
from pdfcalc.peakprofile import PeakProfile, peak_profiles
from pdfcalc.peakwidth import PeakWidthModel, peak_width_models
from pdfcalc.scattering import ScatteringFactorTable, scattering_tables

#: Number of termination ripples kept within the extended r-range.
NRIPPLES: int = 6

_CONFIG_NAMES = (
    "qmin", "qmax", "rmin", "rmax", "rstep", "max_extension",
    "peak_width_model", "peak_profile", "baseline", "scattering_table",
)


@dataclass(frozen=True)
class _StructureCache:
    sf_site: np.ndarray
    sf_average: float
    total_occupancy: float
    number_density: float


@dataclass(frozen=True)
class _RLimitsCache:
    rmin: float
    rstep: float
    rgrid_points: int
    ripples_lo_points: int
    ripples_hi_points: int
    calc_lo_points: int
    calc_hi_points: int

    def grid(self, lo_points: int, hi_points: int) -> np.ndarray:
        """Return ``rmin + i * rstep`` for ``-lo_points <= i < n + hi_points``."""
        idx = np.arange(-lo_points, self.rgrid_points + hi_points)
        return self.rmin + idx * self.rstep

    @property
    def calc_points(self) -> int:
        return self.calc_lo_points + self.rgrid_points + self.calc_hi_points

    @property
    def rcalclo(self) -> float:
        return self.rmin - self.calc_lo_points * self.rstep

    @property
    def rcalchi(self) -> float:
        return self.rmin + (self.rgrid_points - 1 + self.calc_hi_points) * self.rstep

    @property
    def tails_lo_points(self) -> int:
        return self.calc_lo_points - self.ripples_lo_points

    @property
    def tails_hi_points(self) -> int:
        return self.calc_hi_points - self.ripples_hi_points


class PDFCalculator(PairQuantity):
    """
    Brute-force real-space PDF calculator.

    All keyword arguments are configuration values and are validated
    together; see :meth:`configure`.

    Parameters
    ----------
    qmin : float
        Lower bound of the Q-band in 1/A (default 0).
    qmax : float
        Upper bound of the Q-band in 1/A (default ``inf``, no filtering).
    rmin, rmax : float
        Requested r-range in A (default 0 and 10).
    rstep : float
        Grid spacing in A (default 0.01).
    max_extension : float
        Cap on the total r-range extension in A (default 10).
    peak_width_model : PeakWidthModel or str
        Default ``'debye-waller'``.
    peak_profile : PeakProfile or str
        Default ``'gaussian'``.
    baseline : PDFBaseline or str
        Default ``'linear'``.
    scattering_table : ScatteringFactorTable or str
        Default ``'xray'``.
    eval_workers : int or None
        Threads used for pair enumeration.

    Attributes
    ----------
    progress : str
        State: 'initialized' or 'computed'.
    """

    def __init__(self, eval_workers: int | None = None, **kwargs: Any) -> None:
        self._structure_cache: _StructureCache | None = None
        self._rlimits_cache: _RLimitsCache | None = None
        self._result_limits: _RLimitsCache | None = None
        self._result_cache: _StructureCache | None = None
        self._qmin = 0.0
        self._qmax = np.inf
        self._rstep = 0.01
        self._max_extension = 10.0
        self._peak_width: PeakWidthModel = peak_width_models.create("debye-waller")
        self._peak_profile: PeakProfile = peak_profiles.create("gaussian")
        self._baseline: PDFBaseline = baselines.create("linear")
        self._sftable: ScatteringFactorTable = scattering_tables.create("xray")
        self._envelopes: dict[str, PDFEnvelope] = {"scale": envelopes.create("scale")}
        super().__init__(rmin=0.0, rmax=10.0, eval_workers=eval_workers)
        self.progress = 'initialized'
        if kwargs:
            self.configure(**kwargs)

    # configuration

    def configure(self, **kwargs: Any) -> None:
        """
        Set several configuration values at once.

        Values are validated together, so for example both ends of the
        r-range can be moved past each other in one call.

        Raises
        ------
        TypeError
            For unknown configuration names.
        ValueError
            For invalid values; the configuration is then left unchanged.
        """
        unknown = set(kwargs) - set(_CONFIG_NAMES)
        if unknown:
            raise TypeError(f"Unknown configuration names: {', '.join(sorted(unknown))}")
        config = {name: getattr(self, name) for name in _CONFIG_NAMES}
        config.update(kwargs)
        qmin, qmax = float(config["qmin"]), float(config["qmax"])
        if qmin < 0 or np.isnan(qmin):
            raise ValueError(f"qmin must be non-negative, got {qmin}")
        if not qmin < qmax:
            raise ValueError(f"qmin must be smaller than qmax, got qmin={qmin}, qmax={qmax}")
        rstep = float(config["rstep"])
        if not rstep > 0:
            raise ValueError(f"rstep must be positive, got {rstep}")
        max_extension = float(config["max_extension"])
        if max_extension < 0 or np.isnan(max_extension):
            raise ValueError(f"max_extension must be non-negative, got {max_extension}")
        rmin, rmax = float(config["rmin"]), float(config["rmax"])
        peak_width = peak_width_models.resolve(config["peak_width_model"])
        peak_profile = peak_profiles.resolve(config["peak_profile"])
        baseline = baselines.resolve(config["baseline"])
        sftable = scattering_tables.resolve(config["scattering_table"])

        self._set_rlimits(rmin, rmax)
        self._qmin, self._qmax = qmin, qmax
        self._rstep = rstep
        self._max_extension = max_extension
        self._peak_width = peak_width
        self._peak_profile = peak_profile
        self._baseline = baseline
        self._sftable = sftable
        self._config_changed()

    def _set_rlimits(self, rmin: float, rmax: float) -> None:
        if not np.isfinite(rmax):
            raise ValueError(f"rmax must be finite, got {rmax}")
        super()._set_rlimits(rmin, rmax)

    def _config_changed(self) -> None:
        self._structure_cache = None
        self._rlimits_cache = None

    @property
    def qmin(self) -> float:
        return self._qmin

    @qmin.setter
    def qmin(self, value: float) -> None:
        self.configure(qmin=value)

    @property
    def qmax(self) -> float:
        return self._qmax

    @qmax.setter
    def qmax(self, value: float) -> None:
        self.configure(qmax=value)

    @property
    def rstep(self) -> float:
        return self._rstep

    @rstep.setter
    def rstep(self, value: float) -> None:
        self.configure(rstep=value)

    @property
    def max_extension(self) -> float:
        """Maximum total extension of the r-range for ripples and peak tails."""
        return self._max_extension

    @max_extension.setter
    def max_extension(self, value: float) -> None:
        self.configure(max_extension=value)

    @property
    def peak_width_model(self) -> PeakWidthModel:
        return self._peak_width

    @peak_width_model.setter
    def peak_width_model(self, value: PeakWidthModel | str) -> None:
        self.configure(peak_width_model=value)

    @property
    def peak_profile(self) -> PeakProfile:
        return self._peak_profile

    @peak_profile.setter
    def peak_profile(self, value: PeakProfile | str) -> None:
        self.configure(peak_profile=value)

    @property
    def baseline(self) -> PDFBaseline:
        return self._baseline

    @baseline.setter
    def baseline(self, value: PDFBaseline | str) -> None:
        self.configure(baseline=value)

    @property
    def scattering_table(self) -> ScatteringFactorTable:
        return self._sftable

    @scattering_table.setter
    def scattering_table(self, value: ScatteringFactorTable | str) -> None:
        self.configure(scattering_table=value)

    # envelopes

    def add_envelope(self, envelope: PDFEnvelope | str) -> None:
        """Add an envelope, replacing any envelope of the same type."""
        envelope = envelopes.resolve(envelope)
        self._envelopes[envelope.type_name] = envelope
        self._config_changed()

    def pop_envelope(self, tag: str) -> PDFEnvelope:
        """
        Remove and return the envelope of type *tag*.

        Raises
        ------
        KeyError
            If no such envelope is in use.
        """
        try:
            envelope = self._envelopes.pop(tag)
        except KeyError:
            raise KeyError(f"Envelope {tag!r} is not in use.") from None
        self._config_changed()
        return envelope

    def get_envelope(self, tag: str) -> PDFEnvelope:
        """Return the envelope of type *tag* in use."""
        try:
            return self._envelopes[tag]
        except KeyError:
            raise KeyError(f"Envelope {tag!r} is not in use.") from None

    def used_envelope_types(self) -> tuple[str, ...]:
        return tuple(sorted(self._envelopes))

    def clear_envelopes(self) -> None:
        self._envelopes.clear()
        self._config_changed()

    # caches

    def _set_structure(self, structure) -> None:
        super()._set_structure(structure)
        self._config_changed()

    @property
    def _sdata(self) -> _StructureCache:
        if self._structure_cache is None:
            self._structure_cache = self._cache_structure_data()
        return self._structure_cache

    @property
    def _rlimits(self) -> _RLimitsCache:
        if self._rlimits_cache is None:
            self._rlimits_cache = self._cache_rlimits_data()
        return self._rlimits_cache

    def _cache_structure_data(self) -> _StructureCache:
        """Look up occupancy-scaled scattering factors of all sites."""
        stru = self._structure
        if stru is None:
            return _StructureCache(np.zeros(0), 0.0, 0.0, 0.0)
        nsites = stru.count_sites()
        sf_site = np.array([
            self._sftable.lookup(stru.site_atom_type(i)) * stru.site_occupancy(i)
            for i in range(nsites)
        ])
        multiplicity = np.array([stru.site_multiplicity(i) for i in range(nsites)])
        total_occupancy = stru.total_occupancy()
        if total_occupancy > 0:
            sf_average = float(np.sum(sf_site * multiplicity) / total_occupancy)
        else:
            sf_average = 0.0
        sf_site.setflags(write=False)
        return _StructureCache(sf_site, sf_average, total_occupancy, stru.number_density())

    def _cache_rlimits_data(self) -> _RLimitsCache:
        """Compute the grid extensions for the current configuration."""
        ext_ripples = self._ext_from_termination_ripples()
        ext_pktails = self._ext_from_peak_tails()
        ext_total = ext_ripples + ext_pktails
        if ext_total > self._max_extension:
            ext_ripples *= self._max_extension / ext_total
            ext_pktails *= self._max_extension / ext_total
        dr = self._rstep
        # no grid point may fall below r = 0
        below_rmin = int(np.floor(self._rmin / dr + 1e-8))
        ripples_lo = min(extension_points(ext_ripples, dr), below_rmin)
        calc_lo = min(extension_points(ext_ripples + ext_pktails, dr), below_rmin)
        ripples_hi = extension_points(ext_ripples, dr)
        calc_hi = ripples_hi + extension_points(ext_pktails, dr)
        return _RLimitsCache(
            rmin=self._rmin,
            rstep=dr,
            rgrid_points=rgrid_points(self._rmin, self._rmax, dr),
            ripples_lo_points=ripples_lo,
            ripples_hi_points=ripples_hi,
            calc_lo_points=calc_lo,
            calc_hi_points=calc_hi,
        )

    def _ext_from_termination_ripples(self) -> float:
        """r-range extension that lets termination ripples propagate."""
        if not np.isfinite(self._qmax) or self._qmax <= 0:
            return 0.0
        return NRIPPLES * 2 * np.pi / self._qmax

    def _ext_from_peak_tails(self) -> float:
        """r-range extension covering tails of peaks centred out of range."""
        fwhm = self._peak_width.max_width(self._structure, self._rmin, self._rmax)
        return max(-self._peak_profile.xboundlo(fwhm), self._peak_profile.xboundhi(fwhm))

    # PairQuantity overloads

    def _prepare_pass(self) -> None:
        # strategies may have been mutated in place since the last pass
        self._config_changed()
        self._result_cache = self._sdata
        self._result_limits = self._rlimits
        self._calc_rgrid = self._result_limits.grid(
            self._result_limits.calc_lo_points, self._result_limits.calc_hi_points
        )

    def reset_value(self) -> None:
        limits = self._result_limits if self._result_limits is not None else self._rlimits
        self._value = np.zeros(limits.calc_points)

    def configure_bond_generator(self, generator) -> None:
        limits = self._result_limits
        generator.set_rmin(max(0.0, limits.rcalclo))
        generator.set_rmax(max(0.0, limits.rcalchi))

    def add_pair_contribution(self, bond, summation_scale, out=None) -> None:
        """Add the weighted peak profile of *bond* into the histogram."""
        target = self._value if out is None else out
        sdata = self._result_cache
        limits = self._result_limits
        sf_prod = sdata.sf_site[bond.site0] * sdata.sf_site[bond.site1]
        peakscale = sf_prod * bond.multiplicity * summation_scale / 2.0
        fwhm = self._peak_width.calculate(bond)
        profile = self._peak_profile
        dist = bond.distance
        rcalclo = limits.rcalclo
        dr = limits.rstep
        lo = max(0, int(np.ceil((dist + profile.xboundlo(fwhm) - rcalclo) / dr)))
        hi = min(limits.calc_points - 1, int(np.floor((dist + profile.xboundhi(fwhm) - rcalclo) / dr)))
        if lo > hi:
            return
        x = self._calc_rgrid[lo:hi + 1] - dist
        target[lo:hi + 1] += peakscale * profile(x, fwhm)

    def eval(self, structure: Any = None, progress: bool = False) -> np.ndarray:
        value = super().eval(structure, progress)
        self.progress = 'computed'
        return value

    def __call__(self, structure: Any = None, progress: bool = False) -> tuple[np.ndarray, np.ndarray]:
        """Evaluate *structure* and return the ``(r, G)`` arrays."""
        self.eval(structure, progress)
        return self.rgrid, self.pdf

    # post-processing

    def apply_band_pass_filter(self, y: np.ndarray) -> np.ndarray:
        """Apply the ``[qmin, qmax]`` band-pass filter to *y*."""
        return band_pass_filter(y, self._rstep, self._qmin, self._qmax)

    def apply_baseline(self, r: np.ndarray, y: np.ndarray) -> np.ndarray:
        """Return *y* plus the baseline evaluated on *r*."""
        density = self._result_cache.number_density if self._result_cache else 0.0
        return np.asarray(y) + self._baseline(r, density)

    def apply_envelopes(self, r: np.ndarray, y: np.ndarray) -> np.ndarray:
        """Return *y* multiplied by every envelope in use, in tag order."""
        result = np.array(y, dtype=np.float64, copy=True)
        for tag in self.used_envelope_types():
            result *= self._envelopes[tag](r)
        return result

    # results

    def _check_computed(self) -> _RLimitsCache:
        if self.progress != 'computed' or self._result_limits is None:
            raise RuntimeError("Call eval() before requesting results.")
        return self._result_limits

    def _cut_ripple_points(self, y: np.ndarray) -> np.ndarray:
        limits = self._result_limits
        start = limits.ripples_lo_points
        return y[start:start + limits.rgrid_points].copy()

    @property
    def rgrid(self) -> np.ndarray:
        """Requested r-grid ``rmin + i * rstep`` below ``rmax``."""
        limits = self._check_computed()
        return limits.grid(0, 0)

    @property
    def extended_rgrid(self) -> np.ndarray:
        """r-grid extended by the termination-ripple margins."""
        limits = self._check_computed()
        return limits.grid(limits.ripples_lo_points, limits.ripples_hi_points)

    @property
    def extended_rmin(self) -> float:
        limits = self._check_computed()
        return limits.rmin - limits.ripples_lo_points * limits.rstep

    @property
    def extended_rmax(self) -> float:
        limits = self._check_computed()
        return limits.rmin + (limits.rgrid_points - 1 + limits.ripples_hi_points) * limits.rstep

    @property
    def ripples_lo_points(self) -> int:
        """Number of extended-grid points below ``rmin``."""
        return self._check_computed().ripples_lo_points

    @property
    def ripples_hi_points(self) -> int:
        """Number of extended-grid points at or above ``rmax``."""
        return self._check_computed().ripples_hi_points

    @property
    def extended_rdf(self) -> np.ndarray:
        """Radial distribution function on the extended grid."""
        limits = self._check_computed()
        sdata = self._result_cache
        denominator = sdata.total_occupancy * sdata.sf_average ** 2
        scale = 0.0 if denominator == 0 else 2.0 / denominator
        start = limits.tails_lo_points
        stop = start + limits.ripples_lo_points + limits.rgrid_points + limits.ripples_hi_points
        return self._value[start:stop] * scale

    @property
    def extended_rdf_per_r(self) -> np.ndarray:
        """RDF divided by r on the extended grid, 0 at r = 0."""
        r = self.extended_rgrid
        rdf = self.extended_rdf
        result = np.zeros_like(rdf)
        nonzero = r > 0
        result[nonzero] = rdf[nonzero] / r[nonzero]
        return result

    @property
    def extended_pdf(self) -> np.ndarray:
        """PDF on the extended grid."""
        r = self.extended_rgrid
        pdf = self.apply_band_pass_filter(self.extended_rdf_per_r)
        pdf = self.apply_baseline(r, pdf)
        return self.apply_envelopes(r, pdf)

    @property
    def rdf(self) -> np.ndarray:
        return self._cut_ripple_points(self.extended_rdf)

    @property
    def rdf_per_r(self) -> np.ndarray:
        return self._cut_ripple_points(self.extended_rdf_per_r)

    @property
    def pdf(self) -> np.ndarray:
        return self._cut_ripple_points(self.extended_pdf)

    def __repr__(self) -> str:
        return (
            f"PDFCalculator(rmin={self.rmin}, rmax={self.rmax}, rstep={self.rstep}, "
            f"qmin={self.qmin}, qmax={self.qmax})"
        )
