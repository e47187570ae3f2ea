"""
Common utility functions and constants for array pattern synthesis.
"""
import numpy as np
from typing import Tuple, Union, List

from .exceptions import GeometryError

# Physical constants
lightspeed = 299792458  # Speed of light in vacuum (m/s)

# Numerical tolerances
UNIT_NORM_TOLERANCE = 1e-6  # Accepted |norm - 1| for caller-supplied directions
POLE_TOLERANCE = 1e-12  # Theta distance (rad) at which a sample counts as a pole
DB_FLOOR = 1e-15  # Linear floor applied before taking logarithms

# Type aliases
NumericArray = Union[np.ndarray, List[float], List[int], Tuple[float, ...], Tuple[int, ...]]


def find_nearest(array: NumericArray, value: float) -> Tuple[Union[float, np.ndarray], Union[int, np.ndarray]]:
    """
    Find the value in an array that is closest to a specified value and its index.

    Args:
        array: Array-like collection of numeric values
        value: Target value to find the nearest element to

    Returns:
        Tuple containing (nearest_value, index_of_nearest_value)

    Raises:
        ValueError: If input array is empty
    """
    array = np.asarray(array)

    if array.size == 0:
        raise ValueError("Input array is empty")

    idx = np.abs(array - value).argmin()
    return array[idx], idx


def frequency_to_wavelength(frequency: Union[float, np.ndarray], dielectric_constant: float = 1.0) -> np.ndarray:
    """
    Convert frequency to wavelength.

    Args:
        frequency: Frequency in Hz
        dielectric_constant: Relative permittivity of the medium (default: 1.0 for vacuum)

    Returns:
        Wavelength in meters

    Raises:
        ValueError: If frequency is zero or negative
        ValueError: If dielectric constant is negative
    """
    frequency = np.asarray(frequency, dtype=float)

    if np.any(frequency <= 0):
        raise ValueError("Frequency must be positive")

    if dielectric_constant < 0:
        raise ValueError("Dielectric constant must be non-negative")

    return lightspeed / (frequency * np.sqrt(dielectric_constant))


def wavelength_to_frequency(wavelength: Union[float, np.ndarray], dielectric_constant: float = 1.0) -> np.ndarray:
    """
    Convert wavelength to frequency.

    Args:
        wavelength: Wavelength in meters
        dielectric_constant: Relative permittivity of the medium (default: 1.0 for vacuum)

    Returns:
        Frequency in Hz

    Raises:
        ValueError: If wavelength is zero or negative
        ValueError: If dielectric constant is negative
    """
    wavelength = np.asarray(wavelength, dtype=float)

    if np.any(wavelength <= 0):
        raise ValueError("Wavelength must be positive")

    if dielectric_constant < 0:
        raise ValueError("Dielectric constant must be non-negative")

    return lightspeed / (wavelength * np.sqrt(dielectric_constant))


def db_to_linear(db_value: Union[float, np.ndarray]) -> np.ndarray:
    """
    Convert a power dB value to linear scale.

    Args:
        db_value: Value in dB

    Returns:
        Value in linear scale
    """
    db_value = np.asarray(db_value, dtype=float)
    return 10 ** (db_value / 10.0)


def linear_to_db(linear_value: Union[float, np.ndarray]) -> np.ndarray:
    """
    Convert a linear power value to dB scale.

    Values below DB_FLOOR are clamped so the result is always finite.

    Args:
        linear_value: Value in linear scale

    Returns:
        Value in dB

    Raises:
        ValueError: If linear value is negative
    """
    linear_value = np.asarray(linear_value, dtype=float)

    if np.any(linear_value < 0):
        raise ValueError("Linear values must be non-negative for dB conversion")

    linear_value = np.maximum(linear_value, DB_FLOOR)

    return 10.0 * np.log10(linear_value)


def interpolate_crossing(x: np.ndarray, y: np.ndarray, threshold: float) -> float:
    """
    Linearly interpolate to find the x value where y crosses a threshold.

    Args:
        x: Array of x coordinates (size 2)
        y: Array of y coordinates (size 2)
        threshold: The y value to find the crossing for

    Returns:
        Interpolated x value at the crossing
    """
    if y[1] == y[0]:
        return float(x[0])
    return x[0] + (threshold - y[0]) * (x[1] - x[0]) / (y[1] - y[0])


def spherical_to_cartesian(theta: NumericArray, phi: NumericArray) -> np.ndarray:
    """
    Convert spherical angles to unit direction vectors.

    Args:
        theta: Polar angle(s) from +z in radians
        phi: Azimuth angle(s) from +x in radians

    Returns:
        np.ndarray: Array of shape (..., 3) holding (x, y, z)
    """
    theta, phi = np.broadcast_arrays(np.asarray(theta, dtype=float), np.asarray(phi, dtype=float))
    sin_theta = np.sin(theta)
    return np.stack((sin_theta * np.cos(phi), sin_theta * np.sin(phi), np.cos(theta)), axis=-1)


def cartesian_to_spherical(directions: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """
    Convert unit direction vectors to spherical angles.

    Args:
        directions: Array of shape (..., 3)

    Returns:
        Tuple[np.ndarray, np.ndarray]: theta in [0, pi] and phi in [0, 2*pi), radians
    """
    directions = np.asarray(directions, dtype=float)
    x, y, z = directions[..., 0], directions[..., 1], directions[..., 2]
    theta = np.arccos(np.clip(z, -1.0, 1.0))
    phi = np.mod(np.arctan2(y, x), 2 * np.pi)
    return theta, phi


def as_directions(direction: NumericArray) -> Tuple[np.ndarray, bool]:
    """
    Validate caller-supplied direction vector(s) and stack them.

    Args:
        direction: A unit vector of shape (3,) or a stack of shape (N, 3)

    Returns:
        Tuple[np.ndarray, bool]: (N, 3) float array and whether the input was a single vector

    Raises:
        GeometryError: If the shape is wrong or any vector is not a finite unit vector
    """
    directions = np.asarray(direction, dtype=float)
    single = directions.ndim == 1
    if single:
        directions = directions[np.newaxis, :]

    if directions.ndim != 2 or directions.shape[1] != 3:
        raise GeometryError(f"Directions must have shape (3,) or (N, 3), got {np.shape(direction)}")

    if not np.all(np.isfinite(directions)):
        raise GeometryError("Direction vectors must be finite")

    norms = np.sqrt(np.sum(directions ** 2, axis=1))
    if np.any(np.abs(norms - 1.0) > UNIT_NORM_TOLERANCE):
        raise GeometryError("Direction vectors must have unit norm")

    return directions, single
