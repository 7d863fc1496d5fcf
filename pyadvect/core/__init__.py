"""Numerical core: staggered grid, donor-cell operators, FCT limiter and MPDATA solvers."""
