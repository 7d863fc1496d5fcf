"""Diagnostic functions for pyAdvect simulations.

This module provides functions to compute conservation and extrema
statistics of the transported scalar fields.
"""

from typing import Dict, Optional

import jax
import jax.numpy as jnp


@jax.jit
def total_mass(q: jnp.ndarray, rho: Optional[jnp.ndarray] = None) -> jnp.ndarray:
    """Sum of a scalar field over the grid, optionally weighted by density.

    Args:
        q: Scalar field, shape (nx, nz, ny)
        rho: Optional air density with the same shape

    Returns:
        Scalar total
    """
    if rho is not None:
        return jnp.sum(q * rho)
    return jnp.sum(q)


def interior_mass(q: jnp.ndarray) -> float:
    """Total over the cells the advection scheme updates (lateral boundaries excluded)."""
    return float(jnp.sum(q[1:-1, :, 1:-1]))


def field_extrema(q: jnp.ndarray) -> Dict[str, float]:
    """Minimum, maximum and mean of a field, plus a NaN flag."""
    return {
        "min": float(jnp.nanmin(q)),
        "max": float(jnp.nanmax(q)),
        "mean": float(jnp.nanmean(q)),
        "has_nan": bool(jnp.any(jnp.isnan(q))),
    }


def summarize_fields(
    scalars: Dict[str, jnp.ndarray], courant_max: Optional[float] = None
) -> Dict[str, float]:
    """Flat dictionary of per-field statistics for logging and time series.

    Args:
        scalars: Mapping of field name to 3D array
        courant_max: Largest Courant number of the step, if known

    Returns:
        Dictionary with ``<name>_total``, ``<name>_min``, ``<name>_max`` entries
    """
    diagnostics: Dict[str, float] = {}
    for name, q in scalars.items():
        stats = field_extrema(q)
        diagnostics[f"{name}_total"] = float(total_mass(q))
        diagnostics[f"{name}_min"] = stats["min"]
        diagnostics[f"{name}_max"] = stats["max"]

    if courant_max is not None:
        diagnostics["courant_max"] = float(courant_max)

    return diagnostics
