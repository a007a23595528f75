"""
Error taxonomy for PCGSE.

Every error raised by the package derives from :class:`PCGSEError`. The
concrete classes also inherit from the closest builtin so that callers using
plain ``except ValueError`` keep working.

Propagation policy:
    Errors are raised to the immediate caller before any partial result is
    produced. A single invalid gene set or option aborts the whole run.
"""

from __future__ import annotations

__all__ = [
    'PCGSEError',
    'ConfigurationError',
    'InvalidInputError',
    'UnsupportedFeatureError',
    'DegenerateGroupError',
    'DegenerateInputError',
]


class PCGSEError(Exception):
    """Base class for all PCGSE errors."""
    pass


class ConfigurationError(PCGSEError, ValueError):
    """Raised for unknown option values, missing arguments or incompatible option combinations."""
    pass


class InvalidInputError(ConfigurationError):
    """Raised when the data matrix or gene set membership is malformed."""
    pass


class UnsupportedFeatureError(PCGSEError, NotImplementedError):
    """Raised when a disabled feature (permutation testing) is requested."""
    pass


class DegenerateGroupError(PCGSEError, ValueError):
    """Raised when a gene set is too small (or too large) for the set-level test."""
    pass


class DegenerateInputError(PCGSEError, ValueError):
    """Raised when the data matrix has too few observations or constant variables."""
    pass
