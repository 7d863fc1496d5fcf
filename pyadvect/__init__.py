"""
pyAdvect: MPDATA/FCT advection of scalar fields on a 3-D staggered grid, in Python/JAX.
"""

__version__ = "0.1.0"
__author__ = "pyAdvect Developers"

import jax

# Enable double precision by default
jax.config.update("jax_enable_x64", True)
