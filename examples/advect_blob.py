#!/usr/bin/env python
"""
Simple example: advect a moisture blob across a 3-D domain.

Compares first-order upwind transport with two-pass MPDATA/FCT and checks
that the scheme conserves mass and stays non-negative.
"""

import jax.numpy as jnp
from pyadvect.core.grid import make_grid
from pyadvect.transport import DomainState, TransportSolver
from pyadvect.utils.diagnostics import field_extrema, total_mass

# Parameters
nx, nz, ny = 40, 10, 40   # Grid size
dx = 1000.0               # Horizontal spacing [m]
dz = 500.0                # Layer thickness [m]
u, v = 10.0, 5.0          # Background wind [m/s]
dt = 20.0                 # Timestep [s]
n_steps = 60

grid = make_grid(nx, nz, ny, dx, dz)

# Gaussian blob of water vapour in the lower half of the domain
i, k, j = jnp.meshgrid(jnp.arange(nx), jnp.arange(nz), jnp.arange(ny), indexing="ij")
qv0 = 1e-2 * jnp.exp(-((i - 10) ** 2 + (k - 3) ** 2 + (j - 10) ** 2) / (2 * 3.0**2))

scalars = {name: jnp.zeros(grid.shape) for name in ("cloud", "qrain", "qsnow")}
scalars["qv"] = qv0
scalars["th"] = jnp.full(grid.shape, 300.0)

domain = DomainState(
    scalars=scalars,
    u=jnp.full((nx + 1, nz, ny), u),
    v=jnp.full((nx, nz, ny + 1), v),
    w=jnp.zeros((nx, nz, ny)),
    dx=dx,
)

print(f"Initial qv mass: {float(total_mass(qv0)):.6e}")

for order in (1, 2):
    solver = TransportSolver(order=order, fct=True, microphysics="kessler", debug=True)
    state = solver.initialize(domain)
    current = domain

    for step in range(n_steps):
        current, state, _ = solver.step(current, state, dt)

    qv = current.scalars["qv"]
    stats = field_extrema(qv)
    print(
        f"order={order}: mass={float(total_mass(qv)):.6e} "
        f"max={stats['max']:.3e} min={stats['min']:.3e}"
    )

print("\nMPDATA keeps the peak higher than upwind for the same mass.")
print(f"Centre of mass moved by ~{u * dt * n_steps / dx:.0f} cells in x")
print(f"Final x-centroid index: "
      f"{float(jnp.sum(current.scalars['qv'] * i) / jnp.sum(current.scalars['qv'])):.1f}")
