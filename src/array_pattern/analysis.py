"""
Analysis functions for synthesized radiation patterns.
"""
import numpy as np
import logging
from scipy.integrate import trapezoid
from typing import Any, Dict, Optional, Tuple, Union

from .pattern import Pattern
from .utilities import find_nearest, interpolate_crossing, linear_to_db

# Configure logging
logger = logging.getLogger(__name__)


def calculate_directivity(
    pattern: Pattern,
    theta: Optional[float] = None,
    phi: Optional[float] = None
) -> Union[float, Tuple[float, float, float]]:
    """
    Calculate directivity from a full-sphere pattern.

    Directivity is D(theta, phi) = 4*pi * U(theta, phi) / P_total where U = |E|^2
    and P_total is U integrated over the sphere with the trapezoid rule. The phi
    axis is closed by repeating the first phi cut at phi + 360 degrees.

    Args:
        pattern: Pattern synthesized over a grid covering the whole sphere
        theta: Theta angle in degrees for a specific direction, or None for the peak
        phi: Phi angle in degrees for a specific direction, or None for the peak

    Returns:
        If theta and phi are specified:
            float: Directivity in dBi toward the nearest grid sample
        Otherwise:
            Tuple[float, float, float]: (peak_directivity_dBi, peak_theta_deg, peak_phi_deg)

    Raises:
        ValueError: If the grid does not cover the whole sphere or the pattern is zero everywhere
    """
    if not pattern.grid.covers_full_sphere:
        raise ValueError("Directivity needs a pattern sampled over the whole sphere "
                         "(theta 0..180 deg, phi a full turn)")

    dataset = pattern.to_dataset()
    theta_deg = dataset.theta.values
    phi_deg = dataset.phi.values
    intensity = np.abs(dataset.field.values) ** 2

    theta_rad = np.radians(theta_deg)
    phi_rad = np.radians(np.append(phi_deg, phi_deg[0] + 360.0))
    closed = np.concatenate([intensity, intensity[:, :1]], axis=1)

    integrand = closed * np.sin(theta_rad)[:, np.newaxis]
    total_power = trapezoid(trapezoid(integrand, phi_rad, axis=1), theta_rad, axis=0)

    if total_power <= 0:
        raise ValueError("Pattern radiates no power; directivity is undefined")

    directivity = 4 * np.pi * intensity / total_power

    if theta is not None and phi is not None:
        _, theta_idx = find_nearest(theta_deg, theta)
        _, phi_idx = find_nearest(phi_deg, np.mod(phi, 360.0))
        return float(linear_to_db(directivity[theta_idx, phi_idx]))

    peak_theta_idx, peak_phi_idx = np.unravel_index(np.argmax(directivity), directivity.shape)
    peak_db = float(linear_to_db(directivity[peak_theta_idx, peak_phi_idx]))
    logger.info(f"Peak directivity {peak_db:.2f} dBi at theta={theta_deg[peak_theta_idx]:.1f} deg, "
                f"phi={phi_deg[peak_phi_idx]:.1f} deg")
    return peak_db, float(theta_deg[peak_theta_idx]), float(phi_deg[peak_phi_idx])


def find_peak(pattern: Pattern) -> Dict[str, Any]:
    """
    Locate the strongest sample of a pattern.

    Args:
        pattern: Pattern to search

    Returns:
        Dict with keys 'index', 'value' (complex), 'magnitude', 'theta_deg' and 'phi_deg'
    """
    sample, value = pattern.peak()
    return {
        'index': pattern.peak_index(),
        'value': value,
        'magnitude': abs(value),
        'theta_deg': float(np.degrees(sample.theta)),
        'phi_deg': float(np.degrees(sample.phi)),
    }


def half_power_beamwidth(pattern: Pattern, phi: Optional[float] = None) -> float:
    """
    Measure the -3 dB beamwidth of a theta cut.

    The cut is taken through the pattern peak, or through the phi cut nearest to
    ``phi``. Starting at the cut maximum, the pattern is followed outward in both
    theta directions and the -3 dB crossings are linearly interpolated. A side
    that never drops below -3 dB contributes the edge of the grid.

    Args:
        pattern: Pattern with at least two theta samples
        phi: Phi angle in degrees of the cut, or None to cut through the peak

    Returns:
        float: Half-power beamwidth in degrees

    Raises:
        ValueError: If the pattern has fewer than two theta samples or the cut is zero
    """
    dataset = pattern.to_dataset()
    theta_deg = dataset.theta.values
    phi_deg = dataset.phi.values
    field = dataset.field.values

    if len(theta_deg) < 2:
        raise ValueError("Beamwidth needs at least two theta samples")

    if phi is None:
        _, phi_idx = np.unravel_index(np.argmax(np.abs(field)), field.shape)
    else:
        _, phi_idx = find_nearest(phi_deg, phi)

    power = np.abs(field[:, phi_idx]) ** 2
    peak_power = np.max(power)
    if peak_power == 0:
        raise ValueError(f"Cut at phi={phi_deg[phi_idx]:.1f} deg is zero everywhere")

    cut_db = linear_to_db(power / peak_power)
    peak_idx = int(np.argmax(power))

    upper = theta_deg[-1]
    for idx in range(peak_idx, len(theta_deg) - 1):
        if cut_db[idx + 1] < -3.0:
            upper = interpolate_crossing(theta_deg[idx:idx + 2], cut_db[idx:idx + 2], -3.0)
            break
    else:
        logger.warning("Pattern stays above -3 dB up to the last theta sample")

    lower = theta_deg[0]
    for idx in range(peak_idx, 0, -1):
        if cut_db[idx - 1] < -3.0:
            lower = interpolate_crossing(theta_deg[idx - 1:idx + 1], cut_db[idx - 1:idx + 1], -3.0)
            break
    else:
        logger.warning("Pattern stays above -3 dB down to the first theta sample")

    return float(upper - lower)
