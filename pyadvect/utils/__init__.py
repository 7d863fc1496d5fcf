"""Utilities module for pyAdvect.

This module provides diagnostics and logging utilities
for pyAdvect simulations.
"""

from .diagnostics import (
    field_extrema,
    interior_mass,
    summarize_fields,
    total_mass,
)
from .logging import (
    SimulationLogger,
    get_logger,
    setup_logging,
)

__all__ = [
    # Diagnostics
    "total_mass",
    "interior_mass",
    "field_extrema",
    "summarize_fields",
    # Logging
    "SimulationLogger",
    "setup_logging",
    "get_logger",
]
