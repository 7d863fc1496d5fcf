"""HDF5 I/O functionality for pyAdvect.

This module provides functions for saving and loading domain checkpoints
and field output using HDF5 format with xarray integration.
"""

import json
import subprocess
from datetime import datetime
from pathlib import Path
from typing import Any, Optional, Union

import h5py
import jax.numpy as jnp
import numpy as np
import xarray as xr

from .. import __version__
from ..core.grid import Grid
from ..transport.state import DomainState, SolverState
from .config import RunConfig


def _get_git_info() -> dict[str, str]:
    """Get current git commit hash and status."""
    try:
        commit = (
            subprocess.check_output(["git", "rev-parse", "HEAD"], stderr=subprocess.DEVNULL)
            .decode()
            .strip()
        )
        status = (
            subprocess.check_output(["git", "status", "--porcelain"], stderr=subprocess.DEVNULL)
            .decode()
            .strip()
        )
        return {"commit": commit, "dirty": len(status) > 0}
    except (subprocess.CalledProcessError, FileNotFoundError):
        return {"commit": "unknown", "dirty": False}


def save_checkpoint(
    domain: DomainState,
    config: RunConfig,
    filename: Union[str, Path],
    solver_state: Optional[SolverState] = None,
    compression: Optional[str] = "gzip",
    compression_level: int = 4,
) -> None:
    """Save a domain checkpoint to HDF5 file.

    Args:
        domain: Domain state (scalars, winds, optional density fields)
        config: Run configuration used for this simulation
        filename: Path to save checkpoint file
        solver_state: Solver bookkeeping; its rotation and timestep counters are stored
        compression: HDF5 compression type ('gzip', 'lzf', or None)
        compression_level: Compression level (1-9 for gzip)
    """
    filename = Path(filename)
    filename.parent.mkdir(parents=True, exist_ok=True)

    with h5py.File(filename, "w") as f:
        # Save metadata
        meta = f.create_group("metadata")
        meta.attrs["timestamp"] = datetime.now().isoformat()
        meta.attrs["pyadvect_version"] = __version__

        git_info = _get_git_info()
        meta.attrs["git_commit"] = git_info["commit"]
        meta.attrs["git_dirty"] = git_info["dirty"]

        # Save configuration as JSON
        meta.attrs["config"] = json.dumps(config.to_dict())

        state_group = f.create_group("state")
        for key, value in domain.to_dict().items():
            if isinstance(value, (jnp.ndarray, np.ndarray)):
                state_group.create_dataset(
                    key,
                    data=np.asarray(value),
                    compression=compression,
                    compression_opts=compression_level if compression == "gzip" else None,
                )
            else:
                state_group.attrs[key] = value

        if solver_state is not None:
            state_group.attrs["rotation"] = int(solver_state.rotation)
            state_group.attrs["timestep"] = int(solver_state.timestep)


def load_checkpoint(
    filename: Union[str, Path],
) -> tuple[DomainState, dict[str, int], RunConfig]:
    """Load a domain checkpoint from HDF5 file.

    Args:
        filename: Path to checkpoint file

    Returns:
        Tuple of (domain, counters, config) where ``counters`` holds the
        solver's ``rotation`` and ``timestep`` if they were saved
    """
    filename = Path(filename)

    with h5py.File(filename, "r") as f:
        config = RunConfig.from_dict(json.loads(f["metadata"].attrs["config"]))

        state_group = f["state"]
        state = {key: jnp.array(state_group[key][:]) for key in state_group}

        counters = {}
        for key, value in state_group.attrs.items():
            if key in ("rotation", "timestep"):
                counters[key] = int(value)
            else:
                state[key] = value

    return DomainState.from_dict(state), counters, config


def save_output(
    data: dict[str, jnp.ndarray],
    grid: Grid,
    time: float,
    metadata: dict[str, Any],
    filename: Union[str, Path],
    compress: bool = True,
) -> None:
    """Save scalar fields to a NetCDF file using xarray.

    Args:
        data: Dictionary of cell-centred fields, each (nx, nz, ny)
        grid: Grid object with coordinate information
        time: Current simulation time
        metadata: Additional metadata to save
        filename: Path to save output file
        compress: Whether to use compression
    """
    filename = Path(filename)
    filename.parent.mkdir(parents=True, exist_ok=True)

    coords = {
        "x": np.asarray(grid.x),
        "z": np.asarray(grid.z),
        "y": np.asarray(grid.y),
    }

    data_vars = {}
    for name, field in data.items():
        field_np = np.asarray(field)
        if field_np.shape != grid.shape:
            raise ValueError(f"{name} has shape {field_np.shape}, expected {grid.shape}")
        data_vars[name] = xr.DataArray(
            field_np,
            dims=["x", "z", "y"],
            coords=coords,
            attrs={"long_name": name, "units": ""},
        )

    ds = xr.Dataset(data_vars, coords={"time": time})

    # Convert booleans to strings for NetCDF compatibility
    for key, value in metadata.items():
        if isinstance(value, bool):
            ds.attrs[key] = str(value)
        else:
            ds.attrs[key] = value
    ds.attrs["created"] = datetime.now().isoformat()
    ds.attrs["dx"] = float(grid.dx)
    ds.attrs["dz"] = float(grid.dz)

    encoding = {}
    if compress:
        comp = {"zlib": True, "complevel": 4}
        for var in ds.data_vars:
            encoding[var] = comp

    ds.to_netcdf(filename, encoding=encoding, engine="h5netcdf")


def load_output(filename: Union[str, Path]) -> xr.Dataset:
    """Load simulation output from HDF5/NetCDF file.

    Args:
        filename: Path to output file

    Returns:
        xarray Dataset with simulation data
    """
    return xr.open_dataset(filename, engine="h5netcdf")


def save_diagnostics(
    diagnostics: dict[str, float],
    time: float,
    filename: Union[str, Path],
) -> None:
    """Append scalar diagnostics to an HDF5 time series file.

    Args:
        diagnostics: Dictionary of diagnostic quantities
        time: Current simulation time
        filename: Path to diagnostics file
    """
    filename = Path(filename)
    filename.parent.mkdir(parents=True, exist_ok=True)

    with h5py.File(filename, "a") as f:
        if "time" not in f:
            f.create_dataset("time", data=[time], maxshape=(None,), chunks=True)
            for name, value in diagnostics.items():
                f.create_dataset(name, data=[float(value)], maxshape=(None,), chunks=True)
            return

        time_dset = f["time"]
        # Only append if this time isn't already in the file
        if np.any(np.isclose(time_dset[:], time)):
            return

        time_dset.resize(time_dset.shape[0] + 1, axis=0)
        time_dset[-1] = time
        for name, value in diagnostics.items():
            if name in f:
                dset = f[name]
                dset.resize(dset.shape[0] + 1, axis=0)
                dset[-1] = float(value)


def load_diagnostics(filename: Union[str, Path]) -> dict[str, np.ndarray]:
    """Load diagnostic data from HDF5 file.

    Args:
        filename: Path to diagnostics file

    Returns:
        Dictionary with diagnostic arrays
    """
    diagnostics = {}

    with h5py.File(filename, "r") as f:
        for key in f:
            diagnostics[key] = f[key][:]

    return diagnostics
