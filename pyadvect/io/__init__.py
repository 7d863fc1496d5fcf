"""I/O module for pyAdvect.

This module provides configuration management and HDF5 I/O functionality
for pyAdvect simulations.
"""

from .config import (
    AdvectionConfig,
    DebugConfig,
    GridConfig,
    InitialConditionConfig,
    OutputConfig,
    PhysicsConfig,
    RunConfig,
    SimulationConfig,
    WindConfig,
    load_config,
)
from .hdf5_io import (
    load_checkpoint,
    load_diagnostics,
    load_output,
    save_checkpoint,
    save_diagnostics,
    save_output,
)

__all__ = [
    # Configuration
    "RunConfig",
    "GridConfig",
    "AdvectionConfig",
    "PhysicsConfig",
    "DebugConfig",
    "WindConfig",
    "InitialConditionConfig",
    "SimulationConfig",
    "OutputConfig",
    "load_config",
    # HDF5 I/O
    "save_checkpoint",
    "load_checkpoint",
    "save_output",
    "load_output",
    "save_diagnostics",
    "load_diagnostics",
]
