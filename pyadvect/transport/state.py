"""
State management for scalar transport.

This module defines immutable state containers optimized for JAX: the
domain (scalar fields, winds, density) and the solver bookkeeping that the
transport driver threads from one timestep to the next.
"""

from typing import Dict, NamedTuple, Optional, Tuple

import jax.numpy as jnp
from jax.tree_util import register_pytree_node

from pyadvect.core.grid import face_shapes

_OPTIONAL_ARRAYS = ("rho", "dz", "ur", "vr", "wr")


class DomainState(NamedTuple):
    """Immutable snapshot of the model domain seen by the advection scheme.

    Attributes:
        scalars: Mapping of field name to array, shape (nx, nz, ny)
        u: x wind [m/s], staggered in x: (nx+1, nz, ny) or (nx-1, nz, ny)
        v: y wind [m/s], staggered in y: (nx, nz, ny+1) or (nx, nz, ny-1)
        w: Vertical wind through the top of each level, (nx, nz, ny)
        dx: Horizontal grid spacing [m]
        rho: Air density (optional)
        dz: Layer thickness (optional)
        ur, vr, wr: Density-weighted winds, same shapes as u, v, w (optional)
        time: Model time [s]
        step: Number of completed timesteps
    """

    scalars: Dict[str, jnp.ndarray]
    u: jnp.ndarray
    v: jnp.ndarray
    w: jnp.ndarray
    dx: float
    rho: Optional[jnp.ndarray] = None
    dz: Optional[jnp.ndarray] = None
    ur: Optional[jnp.ndarray] = None
    vr: Optional[jnp.ndarray] = None
    wr: Optional[jnp.ndarray] = None
    time: float = 0.0
    step: int = 0

    @property
    def shape(self) -> Tuple[int, int, int]:
        """Shape (nx, nz, ny) of the scalar grid, taken from the vertical wind."""
        return tuple(self.w.shape)

    def get_scalar(self, name: str) -> jnp.ndarray:
        """Get a specific scalar field.

        Raises:
            KeyError: If scalar name not found
        """
        if name not in self.scalars:
            raise KeyError(f"Scalar '{name}' not found in domain")
        return self.scalars[name]

    def update_scalars(self, updates: Dict[str, jnp.ndarray]) -> "DomainState":
        """Create new state with some scalar fields replaced."""
        new_scalars = dict(self.scalars)
        new_scalars.update(updates)
        return self._replace(scalars=new_scalars)

    def to_dict(self) -> Dict:
        """Convert to a flat dictionary (scalars prefixed with ``scalar_``)."""
        state = {
            "u": self.u,
            "v": self.v,
            "w": self.w,
            "dx": float(self.dx),
            "time": float(self.time),
            "step": int(self.step),
        }
        for key in _OPTIONAL_ARRAYS:
            value = getattr(self, key)
            if value is not None:
                state[key] = value
        for name, q in self.scalars.items():
            state[f"scalar_{name}"] = q
        return state

    @classmethod
    def from_dict(cls, state_dict: Dict) -> "DomainState":
        """Inverse of :meth:`to_dict`."""
        scalars = {
            key[len("scalar_"):]: jnp.asarray(value)
            for key, value in state_dict.items()
            if key.startswith("scalar_")
        }
        optional = {
            key: jnp.asarray(state_dict[key]) for key in _OPTIONAL_ARRAYS if key in state_dict
        }
        return cls(
            scalars=scalars,
            u=jnp.asarray(state_dict["u"]),
            v=jnp.asarray(state_dict["v"]),
            w=jnp.asarray(state_dict["w"]),
            dx=float(state_dict["dx"]),
            time=float(state_dict.get("time", 0.0)),
            step=int(state_dict.get("step", 0)),
            **optional,
        )


class SolverState(NamedTuple):
    """Bookkeeping carried by the transport driver between timesteps.

    Attributes:
        rotation: Axis-order counter of the alternating scheme, cycles 0, 1, 2
        timestep: Number of driver calls plus one
        u_courant, v_courant, w_courant: Courant numbers of the last call,
            shapes (nx-1, nz, ny), (nx, nz, ny-1) and (nx, nz, ny)
    """

    rotation: int
    timestep: int
    u_courant: jnp.ndarray
    v_courant: jnp.ndarray
    w_courant: jnp.ndarray

    @classmethod
    def allocate(cls, shape: Tuple[int, int, int]) -> "SolverState":
        """Fresh state with zeroed Courant arrays sized for a scalar grid of ``shape``."""
        shapes = face_shapes(shape)
        return cls(
            rotation=0,
            timestep=1,
            u_courant=jnp.zeros(shapes["u"]),
            v_courant=jnp.zeros(shapes["v"]),
            w_courant=jnp.zeros(shapes["w"]),
        )


# Register DomainState as JAX pytree
def _domain_flatten(state: DomainState):
    """Flatten DomainState for JAX."""
    names = sorted(state.scalars.keys())
    present = tuple(key for key in _OPTIONAL_ARRAYS if getattr(state, key) is not None)
    children = [state.scalars[name] for name in names]
    children += [state.u, state.v, state.w]
    children += [getattr(state, key) for key in present]
    aux_data = (tuple(names), present, state.dx, state.time, state.step)
    return children, aux_data


def _domain_unflatten(aux_data, children):
    """Unflatten DomainState for JAX."""
    names, present, dx, time, step = aux_data
    n = len(names)
    scalars = {name: child for name, child in zip(names, children[:n])}
    u, v, w = children[n:n + 3]
    optional = dict(zip(present, children[n + 3:]))
    return DomainState(scalars, u, v, w, dx, time=time, step=step, **optional)


register_pytree_node(DomainState, _domain_flatten, _domain_unflatten)
