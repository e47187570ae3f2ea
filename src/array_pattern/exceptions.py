"""
Error and warning types raised while building and synthesizing patterns.
"""


class PatternError(Exception):
    """Base class for all errors raised by array_pattern."""


class ConfigurationError(PatternError, ValueError):
    """
    Invalid construction input.

    Raised for empty geometries, non-positive wavelengths, degenerate element
    tables and element pattern policies that do not match the geometry.
    """


class GeometryError(PatternError, ValueError):
    """
    Invalid angular input.

    Raised for degenerate or out-of-bounds sampling ranges, bad step counts
    and direction vectors that are not finite unit vectors.
    """


class SynthesisCancelled(PatternError):
    """Synthesis was stopped through its cancellation event."""


class NumericalWarning(UserWarning):
    """
    Non-fatal numerical condition found during synthesis.

    The computation proceeds; the message is also stored in the resulting
    pattern's metadata under ``'warnings'``.
    """
