"""Plot styling configuration for pyAdvect visualizations."""

import matplotlib.pyplot as plt


class PlotStyle:
    """Consistent plot styling for scalar field figures."""

    # Sequential map for non-negative fields, diverging map for changes
    FIELD_CMAP = "viridis"
    CHANGE_CMAP = "RdBu_r"

    # Figure defaults
    DPI = 150
    FIGSIZE_SINGLE = (6, 5)
    FIGSIZE_DOUBLE = (12, 5)

    @staticmethod
    def setup():
        """Set up matplotlib parameters for consistent styling."""
        plt.rcParams.update(
            {
                "font.size": 12,
                "axes.labelsize": 13,
                "axes.titlesize": 14,
                "legend.fontsize": 11,
                "axes.grid": False,
                "lines.linewidth": 2,
            }
        )


PlotStyle.setup()
