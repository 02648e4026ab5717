"""Fatal error types raised by the self-energy engine."""

from __future__ import annotations


class ConfigurationError(ValueError):
    """Incompatible engine settings, e.g. tetrahedron integration with four-phonon diagrams."""


class GridError(ValueError):
    """k-grid dimension mismatch or a singular lattice metric."""


class MomentumConservationError(RuntimeError):
    """A folded partner k-point does not conserve crystal momentum."""
