"""Field visualization functions for pyAdvect simulations."""

from pathlib import Path
from typing import Dict, Optional

import matplotlib.pyplot as plt
import numpy as np

from ..core.grid import Grid
from .style import PlotStyle


def _finish(fig, output_path, return_fig):
    if output_path and return_fig:
        fig.savefig(output_path, dpi=PlotStyle.DPI, bbox_inches="tight")
        plt.close(fig)
        return None
    return fig if return_fig else None


def _axes(ax, figsize):
    if ax is None:
        fig, ax = plt.subplots(figsize=figsize or PlotStyle.FIGSIZE_SINGLE)
        return fig, ax, True
    return ax.get_figure(), ax, False


def plot_field_slice(
    field: np.ndarray,
    grid: Grid,
    level: int = 0,
    title: str = "Field",
    cmap: Optional[str] = None,
    vmin: Optional[float] = None,
    vmax: Optional[float] = None,
    figsize: Optional[tuple[float, float]] = None,
    output_path: Optional[Path] = None,
    show_colorbar: bool = True,
    ax: Optional[plt.Axes] = None,
) -> Optional[plt.Figure]:
    """Plot a horizontal (x-y) slice of a scalar field at one model level.

    Args:
        field: Array of shape (nx, nz, ny)
        grid: Grid object
        level: Model level k to plot
        title: Plot title
        cmap: Colormap name (default: viridis)
        vmin, vmax: Color scale limits (default: data range)
        figsize: Figure size
        output_path: Path to save figure
        show_colorbar: Whether to show colorbar
        ax: Existing axes to plot on (creates new figure if None)

    Returns:
        Figure object if ax is None and nothing was saved, otherwise None
    """
    field = np.asarray(field)
    if not 0 <= level < field.shape[1]:
        raise ValueError(f"level {level} outside 0..{field.shape[1] - 1}")

    fig, ax, return_fig = _axes(ax, figsize)
    data = field[:, level, :]

    im = ax.pcolormesh(
        np.asarray(grid.x),
        np.asarray(grid.y),
        data.T,
        cmap=cmap or PlotStyle.FIELD_CMAP,
        vmin=vmin,
        vmax=vmax,
        shading="nearest",
    )
    ax.set_xlabel("x [m]")
    ax.set_ylabel("y [m]")
    ax.set_title(f"{title} (level {level})")
    ax.set_aspect("equal")

    if show_colorbar:
        plt.colorbar(im, ax=ax, fraction=0.046, pad=0.04)

    return _finish(fig, output_path, return_fig)


def plot_vertical_section(
    field: np.ndarray,
    grid: Grid,
    row: Optional[int] = None,
    title: str = "Field",
    cmap: Optional[str] = None,
    figsize: Optional[tuple[float, float]] = None,
    output_path: Optional[Path] = None,
    ax: Optional[plt.Axes] = None,
) -> Optional[plt.Figure]:
    """Plot an x-z section of a scalar field along one y row (middle row by default)."""
    field = np.asarray(field)
    if row is None:
        row = field.shape[2] // 2

    fig, ax, return_fig = _axes(ax, figsize)

    im = ax.pcolormesh(
        np.asarray(grid.x),
        np.asarray(grid.z),
        field[:, :, row].T,
        cmap=cmap or PlotStyle.FIELD_CMAP,
        shading="nearest",
    )
    ax.set_xlabel("x [m]")
    ax.set_ylabel("z [m]")
    ax.set_title(f"{title} (row {row})")
    plt.colorbar(im, ax=ax, fraction=0.046, pad=0.04)

    return _finish(fig, output_path, return_fig)


def plot_conservation_check(
    time_data: np.ndarray,
    quantities: Dict[str, np.ndarray],
    relative: bool = True,
    output_path: Optional[Path] = None,
    figsize: Optional[tuple[float, float]] = None,
) -> Optional[plt.Figure]:
    """Plot the evolution of field totals over time.

    Args:
        time_data: Time array
        quantities: Dict of {name: total_array}
        relative: If True, plot relative change from the initial value
        output_path: Path to save figure
        figsize: Figure size

    Returns:
        Figure object or None if saved
    """
    fig, ax = plt.subplots(figsize=figsize or PlotStyle.FIGSIZE_SINGLE)

    for name, data in quantities.items():
        data = np.asarray(data)
        if relative and data[0] != 0:
            ax.plot(time_data, (data - data[0]) / abs(data[0]), label=name)
        else:
            ax.plot(time_data, data, label=name)

    ax.set_xlabel("Time [s]")
    if relative:
        ax.set_ylabel("Relative Change")
        ax.axhline(0, color="k", linestyle=":", alpha=0.5)
    else:
        ax.set_ylabel("Total")
    ax.set_title("Conservation Check")
    ax.legend()

    return _finish(fig, output_path, True)
