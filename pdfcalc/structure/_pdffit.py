"""
PDFfit-style calculation parameters carried by structure adapters.

A structure refined with PDFfit stores, next to its sites, a handful of
parameters that belong to the PDF calculation rather than to the atoms.
Adapters keep them in a plain mapping and push them onto a
:class:`~pdfcalc.pdfcalculator.PDFCalculator` before each evaluation:

- ``scale``: factor of the ``'scale'`` envelope.
- ``delta1``, ``delta2``: coefficients of the ``'jeong'`` peak width model.
- ``qdamp``: damping of the ``'qresolution'`` envelope.
- ``spdiameter``: diameter of the ``'sphericalshape'`` envelope.
- ``stepcut``: cutoff of the ``'stepcut'`` envelope.
"""

from __future__ import annotations

from typing import Any, Mapping

#: Names of the recognised calculation parameters.
PDFFIT_PARAMETERS: tuple[str, ...] = (
    "scale", "delta1", "delta2", "qdamp", "spdiameter", "stepcut",
)

_ENVELOPE_PARAMETERS = {
    "scale": "scale",
    "qdamp": "qresolution",
    "spdiameter": "sphericalshape",
    "stepcut": "stepcut",
}


def validate_pdffit(params: Mapping[str, Any] | None) -> dict[str, float]:
    """
    Return a float-valued copy of *params*.

    Raises
    ------
    ValueError
        If *params* names an unknown parameter.
    """
    if not params:
        return {}
    unknown = sorted(set(params) - set(PDFFIT_PARAMETERS))
    if unknown:
        raise ValueError(
            f"Unknown PDFfit parameters {unknown}; expected a subset of {PDFFIT_PARAMETERS}"
        )
    return {name: float(value) for name, value in params.items()}


def apply_pdffit(pdfc, params: Mapping[str, float]) -> None:
    """
    Configure the strategies of PDF calculator *pdfc* from *params*.

    Envelopes missing from *pdfc* are added.  Width corrections switch the
    calculator to the ``'jeong'`` model unless it already uses it.
    """
    for name, tag in _ENVELOPE_PARAMETERS.items():
        if name not in params:
            continue
        if tag not in pdfc.used_envelope_types():
            pdfc.add_envelope(tag)
        setattr(pdfc.get_envelope(tag), name, params[name])

    if "delta1" in params or "delta2" in params:
        if pdfc.peak_width_model.type_name != "jeong":
            pdfc.peak_width_model = "jeong"
        model = pdfc.peak_width_model
        model.delta1 = params.get("delta1", model.delta1)
        model.delta2 = params.get("delta2", model.delta2)
