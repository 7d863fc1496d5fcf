"""
Parameter validation utilities for pyAdvect.

This module provides decorators and functions for validating
parameters throughout the codebase.
"""

from functools import wraps
from typing import Callable, Optional, Union

import jax.numpy as jnp
import numpy as np

from pyadvect.exceptions import GridError, ValidationError


def validate_order(func: Callable) -> Callable:
    """Validate that the ``order`` argument (number of MPDATA passes) is an integer >= 1.

    Args:
        func: Function to decorate

    Returns:
        Decorated function with order validation

    Raises:
        ValidationError: If order is missing or invalid
    """

    @wraps(func)
    def wrapper(*args, **kwargs):
        order = kwargs.get("order")
        if order is None:
            raise ValidationError("order parameter required")

        if isinstance(order, bool) or not isinstance(order, (int, np.integer)):
            raise ValidationError(f"order must be integer, got {type(order).__name__}")

        if order < 1:
            raise ValidationError(f"order must be >= 1, got {order}")

        return func(*args, **kwargs)

    return wrapper


def validate_timestep(dt: float, dt_min: float = 1e-10, dt_max: Optional[float] = None) -> float:
    """Validate timestep is within reasonable bounds.

    Args:
        dt: Timestep to validate [s]
        dt_min: Minimum allowed timestep
        dt_max: Maximum allowed timestep (no upper bound if None)

    Returns:
        Validated timestep

    Raises:
        ValidationError: If timestep is invalid
    """
    if isinstance(dt, bool) or not isinstance(dt, (float, int, np.floating, np.integer)):
        raise ValidationError(f"Timestep dt must be numeric, got {type(dt).__name__}")

    dt = float(dt)

    if not np.isfinite(dt) or dt <= 0:
        raise ValidationError(f"Timestep dt must be positive, got {dt}")

    if dt < dt_min:
        raise ValidationError(f"Timestep dt={dt} is below minimum {dt_min}")

    if dt_max is not None and dt > dt_max:
        raise ValidationError(f"Timestep dt={dt} exceeds maximum {dt_max}")

    return dt


def validate_array_shape(
    array: Union[np.ndarray, jnp.ndarray], expected_shape: tuple, name: str = "array"
) -> None:
    """Validate array has expected shape.

    Args:
        array: Array to validate
        expected_shape: Expected shape tuple
        name: Array name for error messages

    Raises:
        ValidationError: If array shape doesn't match
    """
    if not hasattr(array, "shape"):
        raise ValidationError(f"{name} must be an array, got {type(array).__name__}")

    if tuple(array.shape) != tuple(expected_shape):
        raise ValidationError(f"{name} has shape {array.shape}, expected {expected_shape}")


def validate_staggered_winds(q, u, v, w) -> None:
    """Check that Courant-number arrays match the scalar field's staggered grid.

    ``q`` is ``(nx, nz, ny)``; ``u`` must be ``(nx-1, nz, ny)``,
    ``v`` ``(nx, nz, ny-1)`` and ``w`` ``(nx, nz, ny)``.

    Raises:
        GridError: On any mismatch
    """
    if getattr(q, "ndim", None) != 3:
        raise GridError(f"scalar field must be 3-D (x, z, y), got shape {getattr(q, 'shape', None)}")

    nx, nz, ny = q.shape
    expected = {
        "u": (u, (nx - 1, nz, ny)),
        "v": (v, (nx, nz, ny - 1)),
        "w": (w, (nx, nz, ny)),
    }
    for name, (array, shape) in expected.items():
        try:
            validate_array_shape(array, shape, name)
        except ValidationError as err:
            raise GridError(str(err)) from err


def max_courant_number(u, v, w) -> float:
    """Largest absolute Courant number across the three components."""
    return float(max(jnp.max(jnp.abs(c)) if c.size else 0.0 for c in (u, v, w)))
