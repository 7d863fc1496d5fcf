"""
One-dimensional MPDATA advection along a single grid axis.

These operators advect a field along x, y or z independently and are used
by the alternating-direction (operator-split) scheme. The same line kernel
serves all three axes; only the boundary treatment differs:

- x and y: the two end cells of every line are held fixed.
- z: the bottom face is closed and the top cell loses ``q * w_top`` in the
  low-order pass; no antidiffusive flux leaves through the top.
"""

from functools import partial
from typing import Optional

import jax
import jax.numpy as jnp

from pyadvect.core.grid import from_lines, to_lines
from pyadvect.core.limiter import limit_line
from pyadvect.core.operators import donor_cell_flux, pseudo_velocity

# Cells of the non-advected horizontal dimension(s) that each axis updates
_INTERIOR = {
    "x": (slice(None), slice(None), slice(1, -1)),
    "y": (slice(1, -1), slice(None), slice(None)),
    "z": (slice(1, -1), slice(None), slice(1, -1)),
}


def _apply_fluxes(q: jax.Array, flux: jax.Array, closed: bool) -> jax.Array:
    """Update a batch of lines with face fluxes (positive towards higher index)."""
    inner = q[..., 1:-1] + (flux[..., :-1] - flux[..., 1:])
    if closed:
        first = q[..., :1] - flux[..., :1]
        last = q[..., -1:] + flux[..., -1:]
    else:
        first = q[..., :1]
        last = q[..., -1:]
    return jnp.concatenate([first, inner, last], axis=-1)


@partial(jax.jit, static_argnames=("fct",))
def advect_line(
    q: jax.Array, courant: jax.Array, top: Optional[jax.Array] = None, fct: bool = False
) -> jax.Array:
    """
    Advect a batch of 1D lines with one donor-cell pass plus one MPDATA correction.

    Parameters:
        q: Scalar values, shape (..., n)
        courant: Courant numbers on the n-1 interior faces, shape (..., n-1)
        top: Courant number on the outflow face beyond the last cell, shape (...,).
            Passing it marks the line as a closed vertical column; lines
            without it keep their end cells fixed.
        fct: Apply the flux-corrected-transport limiter to the correction

    Returns:
        Advected lines, shape (..., n)
    """
    closed = top is not None

    if q.shape[-1] == 1:
        # A single layer only exchanges mass through the top
        return q - q * top[..., None] if closed else q

    # Low-order (donor-cell) pass
    flux = donor_cell_flux(q[..., :-1], q[..., 1:], courant)
    q1 = _apply_fluxes(q, flux, closed)
    if closed:
        top_flux = donor_cell_flux(q[..., -1], q[..., -1], top)
        q1 = q1.at[..., -1].add(-top_flux)

    # Antidiffusive correction
    u_anti = pseudo_velocity(q1[..., :-1], q1[..., 1:], courant)
    if fct:
        u_anti = limit_line(q1, q, u_anti, closed_ends=closed)

    flux = donor_cell_flux(q1[..., :-1], q1[..., 1:], u_anti)
    return _apply_fluxes(q1, flux, closed)


def _advect_axis(q: jax.Array, courant: jax.Array, axis: str, fct: bool) -> jax.Array:
    region = _INTERIOR[axis]
    lines = to_lines(q[region], axis)

    if axis == "z":
        c = courant[region]
        new = advect_line(lines, to_lines(c[:, :-1, :], "z"), c[:, -1, :], fct=fct)
    else:
        new = advect_line(lines, to_lines(courant[region], axis), fct=fct)

    return q.at[region].set(from_lines(new, axis))


@partial(jax.jit, static_argnames=("fct",))
def advect_x(q: jax.Array, u: jax.Array, fct: bool = False) -> jax.Array:
    """
    Advect along x on every level of the interior y rows.

    Parameters:
        q: Scalar field, shape (nx, nz, ny)
        u: x Courant numbers, shape (nx-1, nz, ny)
        fct: Apply the FCT limiter

    Returns:
        Updated field
    """
    return _advect_axis(q, u, "x", fct)


@partial(jax.jit, static_argnames=("fct",))
def advect_y(q: jax.Array, v: jax.Array, fct: bool = False) -> jax.Array:
    """Advect along y on every level of the interior x columns.

    ``v`` has shape (nx, nz, ny-1).
    """
    return _advect_axis(q, v, "y", fct)


@partial(jax.jit, static_argnames=("fct",))
def advect_z(q: jax.Array, w: jax.Array, fct: bool = False) -> jax.Array:
    """Advect the interior columns vertically.

    ``w`` has shape (nx, nz, ny); ``w[:, -1, :]`` is the model-top face.
    """
    return _advect_axis(q, w, "z", fct)


AXIS_ADVECTORS = {"x": advect_x, "y": advect_y, "z": advect_z}
