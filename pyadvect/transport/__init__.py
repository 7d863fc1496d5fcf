"""
Scalar transport module for pyAdvect.

This module advects the model's scalar fields (moisture species, potential
temperature, number concentrations) once per timestep with MPDATA.
"""

from .checks import AdvectionReport, SanityThresholds, check_after, check_before
from .driver import TransportSolver, interior_faces, mpdata, mpdata_init
from .fields import TRANSPORTED_FIELDS, TransportedField, fields_for
from .state import DomainState, SolverState

__all__ = [
    # Driver
    "TransportSolver",
    "mpdata_init",
    "mpdata",
    "interior_faces",
    # State management
    "DomainState",
    "SolverState",
    # Field registry
    "TransportedField",
    "TRANSPORTED_FIELDS",
    "fields_for",
    # Debug checks
    "SanityThresholds",
    "AdvectionReport",
    "check_before",
    "check_after",
]
