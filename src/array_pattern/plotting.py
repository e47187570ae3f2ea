"""
Plotting helpers for synthesized patterns.
"""
import numpy as np
import matplotlib.pyplot as plt
from typing import List, Literal, Optional, Tuple, Union
import logging

from .pattern import POWER_DB_FLOOR, Pattern
from .utilities import find_nearest, linear_to_db

logger = logging.getLogger(__name__)

ValueType = Literal['gain', 'magnitude', 'phase']


def _field_values(field: np.ndarray, value_type: str, dynamic_range_db: float) -> Tuple[np.ndarray, str]:
    if value_type == 'gain':
        peak = np.max(np.abs(field))
        if peak == 0:
            return np.full(field.shape, POWER_DB_FLOOR), 'Relative Power (dB)'
        values = linear_to_db((np.abs(field) / peak) ** 2)
        return np.maximum(values, -dynamic_range_db), 'Relative Power (dB)'
    if value_type == 'magnitude':
        return np.abs(field), 'Field Magnitude'
    if value_type == 'phase':
        return np.degrees(np.angle(field)), 'Phase (degrees)'
    raise ValueError(f"Invalid value_type: {value_type!r}. Choose from 'gain', 'magnitude', 'phase'")


def plot_pattern_cut(
    pattern: Pattern,
    phi: Optional[Union[float, List[float]]] = None,
    value_type: ValueType = 'gain',
    dynamic_range_db: float = 60.0,
    ax: Optional[plt.Axes] = None,
    fig_size: Tuple[float, float] = (10, 6),
    title: Optional[str] = None
) -> plt.Figure:
    """
    Plot theta cuts of a pattern.

    Args:
        pattern: Pattern to plot
        phi: Phi angle(s) of the cuts in degrees, or None to plot every phi
        value_type: 'gain' (power relative to peak, dB), 'magnitude' or 'phase'
        dynamic_range_db: Lowest level shown below the peak for 'gain'
        ax: Optional matplotlib axes to plot on
        fig_size: Figure size as (width, height) in inches
        title: Optional title for the plot

    Returns:
        matplotlib.Figure: The created figure object
    """
    if ax is None:
        fig, ax = plt.subplots(figsize=fig_size)
    else:
        fig = ax.figure

    dataset = pattern.to_dataset()
    theta_angles = dataset.theta.values
    phi_angles = dataset.phi.values
    data, y_label = _field_values(dataset.field.values, value_type, dynamic_range_db)

    if phi is None:
        phi_indices = list(range(len(phi_angles)))
    elif np.isscalar(phi):
        phi_indices = [find_nearest(phi_angles, phi)[1]]
    else:
        phi_indices = [find_nearest(phi_angles, p)[1] for p in phi]

    color_cycle = plt.cm.tab10(np.linspace(0, 1, max(len(phi_indices), 1)))
    for j, phi_idx in enumerate(phi_indices):
        ax.plot(
            theta_angles,
            data[:, phi_idx],
            '-',
            color=color_cycle[j % len(color_cycle)],
            label=f"φ={phi_angles[phi_idx]:.1f}°"
        )

    ax.set_xlabel('Theta (degrees)')
    ax.set_ylabel(y_label)

    if title is None:
        frequency = pattern.frequency
        freq_str = f"{frequency / 1e6:.1f} MHz" if frequency else "unknown frequency"
        title = f"Array Pattern: {freq_str}"

    ax.set_title(title)
    ax.grid(True)

    if len(phi_indices) <= 8:
        ax.legend(loc='best')

    fig.tight_layout()

    return fig


def plot_pattern_2d(
    pattern: Pattern,
    value_type: ValueType = 'gain',
    dynamic_range_db: float = 60.0,
    ax: Optional[plt.Axes] = None,
    fig_size: Tuple[float, float] = (10, 6),
    title: Optional[str] = None,
    cmap: str = 'viridis'
) -> plt.Figure:
    """
    Plot a pattern as a theta/phi color map.

    Args:
        pattern: Pattern to plot
        value_type: 'gain' (power relative to peak, dB), 'magnitude' or 'phase'
        dynamic_range_db: Lowest level shown below the peak for 'gain'
        ax: Optional matplotlib axes to plot on
        fig_size: Figure size as (width, height) in inches
        title: Optional title for the plot
        cmap: Matplotlib colormap name

    Returns:
        matplotlib.Figure: The created figure object
    """
    if ax is None:
        fig, ax = plt.subplots(figsize=fig_size)
    else:
        fig = ax.figure

    dataset = pattern.to_dataset()
    data, label = _field_values(dataset.field.values, value_type, dynamic_range_db)

    mesh = ax.pcolormesh(dataset.phi.values, dataset.theta.values, data, shading='nearest', cmap=cmap)
    fig.colorbar(mesh, ax=ax, label=label)

    ax.set_xlabel('Phi (degrees)')
    ax.set_ylabel('Theta (degrees)')
    ax.set_title(title if title is not None else f"Array Pattern ({len(pattern)} samples)")

    fig.tight_layout()

    return fig
