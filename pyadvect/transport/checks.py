"""
Debug sanity checks wrapped around the advection of one scalar field.

Problems are summed into a small integer code:

=====  ==========================================================
 -1    negative values before advection (clamped to zero)
 -4    NaNs before advection (replaced by the corner value)
 +1    negative values after advection beyond the tolerance
 +2    values above the ceiling after advection
 +4    NaNs after advection
=====  ==========================================================

Any problem found after advection first resets a negative code to zero, so
a positive code always means the advection itself misbehaved.
"""

from dataclasses import dataclass
from typing import NamedTuple, Tuple

import jax.numpy as jnp

from pyadvect.utils.logging import get_logger

logger = get_logger("pyadvect.transport.checks")


@dataclass(frozen=True)
class SanityThresholds:
    """Limits used by the debug checks.

    Attributes:
        negative_tolerance: Post-advection negatives no deeper than this are
            clamped to zero silently
        ceiling: Largest plausible value of a checked field
    """

    negative_tolerance: float = 1e-6
    ceiling: float = 6000.0

    def __post_init__(self):
        if self.negative_tolerance < 0:
            raise ValueError(
                f"negative_tolerance must be non-negative, got {self.negative_tolerance}"
            )
        if self.ceiling <= 0:
            raise ValueError(f"ceiling must be positive, got {self.ceiling}")


class AdvectionReport(NamedTuple):
    """Outcome of advecting one field."""

    field: str
    code: int
    minimum: float
    maximum: float

    @property
    def fatal(self) -> bool:
        return self.code > 0


def check_before(q: jnp.ndarray, name: str = "field") -> Tuple[jnp.ndarray, int]:
    """Repair pre-existing problems before advection.

    Args:
        q: Scalar field
        name: Field name for log messages

    Returns:
        (repaired field, code contribution <= 0)
    """
    code = 0

    q_min = float(jnp.nanmin(q))
    if q_min < 0:
        logger.debug(f"{name}: negative values before advection (min={q_min:.3e})")
        code -= 1
        q = jnp.where(q < 0, 0.0, q)

    if bool(jnp.any(jnp.isnan(q))):
        logger.debug(f"{name}: NaN values before advection")
        code -= 4
        q = jnp.where(jnp.isnan(q), q[0, 0, 0], q)

    return q, code


def check_after(
    q: jnp.ndarray,
    code: int,
    thresholds: SanityThresholds,
    check_ceiling: bool = True,
    name: str = "field",
) -> Tuple[jnp.ndarray, int]:
    """Inspect an advected field and update the problem code.

    Args:
        q: Advected scalar field
        code: Code accumulated by :func:`check_before`
        thresholds: Negative tolerance and ceiling
        check_ceiling: Whether the ceiling applies to this field
        name: Field name for log messages

    Returns:
        (possibly clamped field, updated code)
    """
    q_min = float(jnp.nanmin(q))
    if q_min < 0:
        code = max(code, 0)
        if q_min > -thresholds.negative_tolerance:
            q = jnp.where(q < 0, 0.0, q)
        else:
            logger.debug(f"{name}: negative values after advection (min={q_min:.3e})")
            code += 1

    if check_ceiling:
        q_max = float(jnp.nanmax(q))
        if q_max > thresholds.ceiling:
            logger.debug(f"{name}: values above {thresholds.ceiling} (max={q_max:.3e})")
            code = max(code, 0) + 2

    if bool(jnp.any(jnp.isnan(q))):
        logger.debug(f"{name}: NaN values after advection")
        code = max(code, 0) + 4

    return q, code
