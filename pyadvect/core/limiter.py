"""
Flux-corrected transport (FCT) limiter for MPDATA pseudo-velocities.

Implements the non-oscillatory option of Smolarkiewicz and Grabowski (1990),
J. Comput. Phys. 86, 355-375: each antidiffusive velocity is scaled by a
factor in [0, 1] so that the corrected field cannot leave the envelope of
its neighbours in the previous and low-order fields.
"""

from functools import partial
from typing import Tuple

import jax
import jax.numpy as jnp

from pyadvect.core.grid import from_lines, to_lines
from pyadvect.core.operators import donor_cell_flux

# Guard for the inflow/outflow totals in the limiting ratios
FLUX_EPS = 1e-15


def _neighbourhood(field: jax.Array, reduce) -> jax.Array:
    """Reduce each cell with its immediate neighbours along the last axis.

    End cells only see the one neighbour that exists.
    """
    left = jnp.concatenate([field[..., :1], field[..., :-1]], axis=-1)
    right = jnp.concatenate([field[..., 1:], field[..., -1:]], axis=-1)
    return reduce(reduce(left, field), right)


def envelope(q_low: jax.Array, q_prev: jax.Array) -> Tuple[jax.Array, jax.Array]:
    """
    Bounds allowed for each cell after the antidiffusive correction.

    Parameters:
        q_low: Field after the low-order pass, lines along the last axis
        q_prev: Field before the low-order pass, same shape

    Returns:
        (qmax, qmin) per cell, taken over the cell and its neighbours in both fields
    """
    qmax = _neighbourhood(jnp.maximum(q_low, q_prev), jnp.maximum)
    qmin = _neighbourhood(jnp.minimum(q_low, q_prev), jnp.minimum)
    return qmax, qmin


def flux_totals(flux: jax.Array) -> Tuple[jax.Array, jax.Array]:
    """
    Total antidiffusive inflow and outflow of every cell along a line.

    ``flux`` holds the n-1 face fluxes of a line of n cells; nothing enters
    or leaves through the two ends of the line.

    Returns:
        (fin, fout), both non-negative with shape (..., n)
    """
    pad = jnp.zeros_like(flux[..., :1])
    below = jnp.concatenate([pad, flux], axis=-1)  # face on the low-index side
    above = jnp.concatenate([flux, pad], axis=-1)  # face on the high-index side

    fin = jnp.maximum(0.0, below) - jnp.minimum(0.0, above)
    fout = jnp.maximum(0.0, above) - jnp.minimum(0.0, below)
    return fin, fout


@partial(jax.jit, static_argnames=("closed_ends",))
def limit_line(
    q_low: jax.Array, q_prev: jax.Array, u_anti: jax.Array, closed_ends: bool = False
) -> jax.Array:
    """
    Limit antidiffusive velocities along a batch of 1D lines.

    Parameters:
        q_low: Low-order field, shape (..., n)
        q_prev: Field before the low-order pass, shape (..., n)
        u_anti: Antidiffusive Courant numbers on the faces, shape (..., n-1)
        closed_ends: If True (vertical columns) the end cells are limited with
            their one-sided flux totals. If False (horizontal lines) the end
            cells are held fixed by the advection step and never constrain
            the limiter.

    Returns:
        Limited antidiffusive Courant numbers, shape (..., n-1)
    """
    if u_anti.shape[-1] == 0:
        return u_anti

    qmax, qmin = envelope(q_low, q_prev)
    flux = donor_cell_flux(q_low[..., :-1], q_low[..., 1:], u_anti)
    # Closed columns: the top cell's fout is -min(0, f) on the face below it, outgoing flux only
    fin, fout = flux_totals(flux)

    beta_in = (qmax - q_low) / (fin + FLUX_EPS)
    beta_out = (q_low - qmin) / (fout + FLUX_EPS)

    if not closed_ends:
        beta_in = beta_in.at[..., 0].set(1.0).at[..., -1].set(1.0)
        beta_out = beta_out.at[..., 0].set(1.0).at[..., -1].set(1.0)

    # Positive velocity: flow leaves the low-index cell and enters the high-index cell
    ratio_pos = jnp.minimum(1.0, jnp.minimum(beta_in[..., 1:], beta_out[..., :-1]))
    ratio_neg = jnp.minimum(1.0, jnp.minimum(beta_in[..., :-1], beta_out[..., 1:]))

    return jnp.where(
        u_anti > 0, ratio_pos * u_anti, jnp.where(u_anti < 0, ratio_neg * u_anti, u_anti)
    )


@jax.jit
def flux_limiter(
    q_prev: jax.Array,
    q_low: jax.Array,
    u2: jax.Array,
    v2: jax.Array,
    w2: jax.Array,
) -> Tuple[jax.Array, jax.Array, jax.Array]:
    """
    Apply the FCT limiter to all three pseudo-velocity components.

    Parameters:
        q_prev: Field at the start of the pass, shape (nx, nz, ny)
        q_low: Low-order field the pseudo-velocities were computed from
        u2, v2, w2: Pseudo-velocities with shapes (nx-1, nz, ny),
            (nx, nz, ny-1) and (nx, nz, ny)

    Returns:
        Limited (u2, v2, w2); the top-face vertical velocity is zero
    """
    u2_faces = limit_line(
        to_lines(q_low, "x"), to_lines(q_prev, "x"), to_lines(u2, "x"), closed_ends=False
    )
    v2_faces = limit_line(
        to_lines(q_low, "y"), to_lines(q_prev, "y"), to_lines(v2, "y"), closed_ends=False
    )
    u2 = from_lines(u2_faces, "x")
    v2 = from_lines(v2_faces, "y")

    w2_faces = limit_line(
        to_lines(q_low, "z"), to_lines(q_prev, "z"), to_lines(w2[:, :-1, :], "z"), closed_ends=True
    )
    w2 = jnp.concatenate([from_lines(w2_faces, "z"), jnp.zeros_like(w2[:, -1:, :])], axis=1)

    return u2, v2, w2
