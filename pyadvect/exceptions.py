"""
Custom exceptions for pyAdvect.

This module defines exception hierarchy for better error handling
and debugging throughout the codebase.
"""


class pyAdvectError(Exception):
    """Base exception for all pyAdvect errors."""
    pass


class ConfigurationError(pyAdvectError):
    """Raised when configuration parameters are invalid."""
    pass


class SimulationError(pyAdvectError):
    """Raised during simulation execution."""
    pass


class NumericalError(SimulationError):
    """Raised when an advected field blows up (negative, huge or NaN values)."""

    def __init__(self, message: str, field: str = "", code: int = 0):
        super().__init__(message)
        self.field = field
        self.code = code


class IOError(pyAdvectError):
    """Raised for file I/O errors."""
    pass


class ValidationError(pyAdvectError):
    """Raised when parameter validation fails."""
    pass


class GridError(ValidationError):
    """Raised when scalar and velocity arrays do not fit the staggered grid."""
    pass
