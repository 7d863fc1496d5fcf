"""
Registry of the scalar fields advected every timestep.
"""

from dataclasses import dataclass
from typing import Tuple

# Microphysics schemes that carry ice, graupel and number concentrations
ICE_SCHEMES = ("thompson",)
MICROPHYSICS_SCHEMES = ("simple", "kessler", "thompson")


@dataclass(frozen=True)
class TransportedField:
    """A scalar field in the domain state that gets advected.

    Attributes:
        name: Key of the field in ``DomainState.scalars``
        long_name: Human readable description
        ice_phase: Only advected when the microphysics scheme carries ice
        check_ceiling: Apply the sanity ceiling in debug checks (off for
            number concentrations, whose magnitudes are unbounded). Only the
            ceiling is skipped: a large negative or a NaN in a number
            concentration still yields a positive code and aborts the step.
    """

    name: str
    long_name: str
    ice_phase: bool = False
    check_ceiling: bool = True


TRANSPORTED_FIELDS: Tuple[TransportedField, ...] = (
    TransportedField("qv", "water vapor mixing ratio"),
    TransportedField("cloud", "cloud water mixing ratio"),
    TransportedField("qrain", "rain mixing ratio"),
    TransportedField("qsnow", "snow mixing ratio"),
    TransportedField("th", "potential temperature"),
    TransportedField("ice", "cloud ice mixing ratio", ice_phase=True),
    TransportedField("qgrau", "graupel mixing ratio", ice_phase=True),
    TransportedField("nice", "cloud ice number concentration", ice_phase=True,
                     check_ceiling=False),
    TransportedField("nrain", "rain number concentration", ice_phase=True,
                     check_ceiling=False),
)


def fields_for(microphysics: str) -> Tuple[TransportedField, ...]:
    """Fields to advect, in order, for the given microphysics scheme."""
    carries_ice = microphysics.lower() in ICE_SCHEMES
    return tuple(f for f in TRANSPORTED_FIELDS if carries_ice or not f.ice_phase)
