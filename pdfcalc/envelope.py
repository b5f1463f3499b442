"""
PDF envelopes: multiplicative corrections applied to the PDF.

Envelopes are registered by tag in :data:`envelopes`:

- ``'scale'``: constant scale factor.
- ``'qresolution'``: Gaussian damping ``exp(-(qdamp r)**2 / 2)`` from
  finite instrument Q-resolution.
- ``'sphericalshape'``: characteristic function of a spherical particle.
- ``'stepcut'``: zero beyond a cutoff distance.
"""

from __future__ import annotations

import numpy as np

from pdfcalc.registry import Registrable, Registry


class PDFEnvelope(Registrable):
    """Base class of PDF envelopes."""

    def __call__(self, r) -> np.ndarray:
        """Return the envelope factors on the grid *r*."""
        raise NotImplementedError


envelopes: Registry[PDFEnvelope] = Registry("PDF envelope")


def _non_negative(name: str, value: float) -> float:
    if value < 0 or np.isnan(value):
        raise ValueError(f"{name} must be non-negative, got {value}")
    return float(value)


@envelopes.register
class ScaleEnvelope(PDFEnvelope):
    """Constant scale factor."""

    type_name = "scale"

    def __init__(self, scale: float = 1.0) -> None:
        self.scale = float(scale)

    def __call__(self, r) -> np.ndarray:
        return np.full(np.shape(r), self.scale)

    def __repr__(self) -> str:
        return f"ScaleEnvelope(scale={self.scale})"


@envelopes.register
class QResolutionEnvelope(PDFEnvelope):
    """
    Gaussian damping from the instrument Q-resolution.

    Parameters
    ----------
    qdamp : float
        Damping factor in 1/A; 0 disables the envelope.
    """

    type_name = "qresolution"

    def __init__(self, qdamp: float = 0.0) -> None:
        self.qdamp = qdamp

    @property
    def qdamp(self) -> float:
        return self._qdamp

    @qdamp.setter
    def qdamp(self, value: float) -> None:
        self._qdamp = _non_negative("qdamp", value)

    def __call__(self, r) -> np.ndarray:
        r = np.asarray(r, dtype=np.float64)
        return np.exp(-0.5 * (self.qdamp * r) ** 2)

    def __repr__(self) -> str:
        return f"QResolutionEnvelope(qdamp={self.qdamp})"


@envelopes.register
class SphericalShapeEnvelope(PDFEnvelope):
    """
    Shape envelope of a spherical particle.

    ``1 - 3/2 (r/d) + 1/2 (r/d)**3`` for ``r < d`` and 0 beyond, where
    ``d`` is the particle diameter.

    Parameters
    ----------
    spdiameter : float
        Particle diameter in A; infinite or 0 disables the envelope.
    """

    type_name = "sphericalshape"

    def __init__(self, spdiameter: float = np.inf) -> None:
        self.spdiameter = spdiameter

    @property
    def spdiameter(self) -> float:
        return self._spdiameter

    @spdiameter.setter
    def spdiameter(self, value: float) -> None:
        self._spdiameter = _non_negative("spdiameter", value)

    def __call__(self, r) -> np.ndarray:
        r = np.asarray(r, dtype=np.float64)
        d = self.spdiameter
        if d == 0 or not np.isfinite(d):
            return np.ones_like(r)
        x = r / d
        return np.where(x < 1.0, 1.0 - 1.5 * x + 0.5 * x ** 3, 0.0)

    def __repr__(self) -> str:
        return f"SphericalShapeEnvelope(spdiameter={self.spdiameter})"


@envelopes.register
class StepCutEnvelope(PDFEnvelope):
    """
    Step function cutting the PDF beyond ``stepcut``.

    Parameters
    ----------
    stepcut : float
        Cutoff distance in A; 0 disables the envelope.
    """

    type_name = "stepcut"

    def __init__(self, stepcut: float = 0.0) -> None:
        self.stepcut = stepcut

    @property
    def stepcut(self) -> float:
        return self._stepcut

    @stepcut.setter
    def stepcut(self, value: float) -> None:
        self._stepcut = _non_negative("stepcut", value)

    def __call__(self, r) -> np.ndarray:
        r = np.asarray(r, dtype=np.float64)
        if self.stepcut == 0:
            return np.ones_like(r)
        return np.where(r <= self.stepcut, 1.0, 0.0)

    def __repr__(self) -> str:
        return f"StepCutEnvelope(stepcut={self.stepcut})"


def create_envelope(tag: str, **kwargs) -> PDFEnvelope:
    """Create a registered envelope by tag."""
    return envelopes.create(tag, **kwargs)
