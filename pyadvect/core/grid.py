"""
Grid management for 3D staggered-grid advection.

This module provides the Grid class and associated functions for describing
an Arakawa-C style grid: scalars at cell centres stored as (x, z, y),
horizontal winds on the x- and y-faces, vertical wind on the z-faces.
"""

from typing import Dict, Tuple
from functools import partial

import jax
import jax.numpy as jnp
from jax.tree_util import register_pytree_node

# Storage axis of each physical direction in an (x, z, y) array
AXES: Dict[str, int] = {"x": 0, "z": 1, "y": 2}


class Grid:
    """
    Grid information for 3D staggered-grid simulations.

    This class is registered as a JAX pytree to enable JIT compilation
    and other JAX transformations.

    Attributes:
        nx: Number of cells in x
        nz: Number of model levels
        ny: Number of cells in y
        dx: Horizontal grid spacing [m] (same in x and y)
        dz: Layer thickness [m]
        x: Cell-centre x-coordinates, shape (nx,)
        z: Cell-centre heights, shape (nz,)
        y: Cell-centre y-coordinates, shape (ny,)
    """

    def __init__(self, nx: int, nz: int, ny: int, dx: float, dz: float,
                 x: jax.Array, z: jax.Array, y: jax.Array):
        self.nx = nx
        self.nz = nz
        self.ny = ny
        self.dx = dx
        self.dz = dz
        self.x = x
        self.z = z
        self.y = y

    @property
    def shape(self) -> Tuple[int, int, int]:
        """Shape of a cell-centred scalar field."""
        return (self.nx, self.nz, self.ny)

    def tree_flatten(self) -> Tuple[list, dict]:
        """Flatten Grid into JAX-compatible format."""
        children = [self.x, self.z, self.y]
        aux_data = {"nx": self.nx, "nz": self.nz, "ny": self.ny, "dx": self.dx, "dz": self.dz}
        return children, aux_data

    @classmethod
    def tree_unflatten(cls, aux_data: dict, children: list) -> "Grid":
        """Reconstruct Grid from flattened representation."""
        x, z, y = children
        return cls(aux_data["nx"], aux_data["nz"], aux_data["ny"],
                   aux_data["dx"], aux_data["dz"], x, z, y)

    def __repr__(self) -> str:
        return f"Grid(nx={self.nx}, nz={self.nz}, ny={self.ny}, dx={self.dx}, dz={self.dz})"


# Register Grid as a JAX pytree
register_pytree_node(
    Grid,
    Grid.tree_flatten,
    Grid.tree_unflatten
)


@partial(jax.jit, static_argnums=(0, 1, 2, 3, 4))
def make_grid(nx: int, nz: int, ny: int, dx: float, dz: float = 1.0) -> Grid:
    """
    Create a Grid object for staggered-grid advection.

    Parameters:
        nx, nz, ny: Number of cells along x, z and y (nx, ny >= 3, nz >= 1)
        dx: Horizontal grid spacing
        dz: Layer thickness

    Returns:
        Grid object with cell-centre coordinates
    """
    if nx < 3 or ny < 3:
        raise ValueError(f"nx and ny must be at least 3, got nx={nx}, ny={ny}")
    if nz < 1:
        raise ValueError(f"nz must be at least 1, got {nz}")
    if dx <= 0 or dz <= 0:
        raise ValueError(f"dx and dz must be positive, got dx={dx}, dz={dz}")

    x = (jnp.arange(nx) + 0.5) * dx
    z = (jnp.arange(nz) + 0.5) * dz
    y = (jnp.arange(ny) + 0.5) * dx

    return Grid(nx, nz, ny, dx, dz, x, z, y)


def face_shapes(shape: Tuple[int, int, int]) -> Dict[str, Tuple[int, int, int]]:
    """
    Shapes of the Courant-number arrays that go with a scalar field.

    Parameters:
        shape: Scalar field shape (nx, nz, ny)

    Returns:
        Dictionary with the expected shapes of ``u``, ``v`` and ``w``
    """
    nx, nz, ny = shape
    return {"u": (nx - 1, nz, ny), "v": (nx, nz, ny - 1), "w": (nx, nz, ny)}


def to_lines(array: jax.Array, axis: str) -> jax.Array:
    """View a 3D (x, z, y) array as a batch of 1D lines running along ``axis``.

    The line direction becomes the last dimension; the two remaining
    dimensions keep their relative order.
    """
    return jnp.moveaxis(array, AXES[axis], -1)


def from_lines(lines: jax.Array, axis: str) -> jax.Array:
    """Inverse of :func:`to_lines`."""
    return jnp.moveaxis(lines, -1, AXES[axis])
