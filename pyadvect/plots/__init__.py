"""
Plotting utilities for pyAdvect simulations.

- style: Plot styling configuration
- fields: Field slices, vertical sections and conservation plots
"""

from .fields import plot_conservation_check, plot_field_slice, plot_vertical_section
from .style import PlotStyle

__all__ = [
    "PlotStyle",
    "plot_field_slice",
    "plot_vertical_section",
    "plot_conservation_check",
]
