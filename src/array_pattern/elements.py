"""
Element radiation models.

Every model answers one question: what is the complex gain of this radiator
toward a given direction. The models are flat classes sharing the
``ElementPattern`` protocol; they hold fixed parameters set at construction and
never change afterwards, so a single instance can be evaluated from many
threads at once.

All models accept either a single unit vector of shape (3,), returning a Python
complex, or a stack of shape (N, 3), returning a complex128 array of shape (N,).
"""
import logging
from typing import Any, Protocol, Tuple, Union, runtime_checkable

import numpy as np
from scipy.interpolate import RegularGridInterpolator

from .exceptions import ConfigurationError
from .utilities import as_directions, cartesian_to_spherical

# Configure logging
logger = logging.getLogger(__name__)

# Below this sine the direction is treated as lying on the dipole axis
_AXIS_TOLERANCE = 1e-12

# Tolerance used when deciding whether a table reaches the poles or closes in phi
_TABLE_TOLERANCE = 1e-9

VALID_DIPOLE_KINDS = ('short', 'half_wave')
VALID_INTERPOLATION_METHODS = ('nearest', 'linear')
VALID_EXTRAPOLATION_POLICIES = ('error', 'nearest', 'zero')


@runtime_checkable
class ElementPattern(Protocol):
    """Anything that can report a complex gain toward unit direction vectors."""

    def evaluate(self, direction: np.ndarray) -> Union[complex, np.ndarray]:
        ...


def _package(gains: np.ndarray, single: bool) -> Union[complex, np.ndarray]:
    gains = np.asarray(gains, dtype=np.complex128)
    if single:
        return complex(gains[0])
    return gains


class IsotropicElement:
    """
    Idealized radiator with the same gain in every direction.

    Args:
        gain: Real, positive field gain. The default of 1.0 gives the unit-magnitude,
            zero-phase isotropic radiator.
    """

    def __init__(self, gain: float = 1.0):
        gain = float(gain)
        if not np.isfinite(gain) or gain <= 0:
            raise ConfigurationError(f"Isotropic gain must be positive and finite, got {gain}")
        self._gain = gain

    @property
    def gain(self) -> float:
        return self._gain

    def evaluate(self, direction: np.ndarray) -> Union[complex, np.ndarray]:
        directions, single = as_directions(direction)
        return _package(np.full(len(directions), self._gain), single)

    def __repr__(self) -> str:
        return f"IsotropicElement(gain={self._gain})"


class DipoleElement:
    """
    Canonical thin-wire dipole.

    The gain depends only on the angle psi between the observation direction and
    the dipole axis:
        - 'short': sin(psi)
        - 'half_wave': cos(pi/2 * cos(psi)) / sin(psi)

    Both patterns are exactly zero along the axis.

    Args:
        axis: Dipole axis, normalized on construction (default +z)
        kind: 'short' or 'half_wave'

    Raises:
        ConfigurationError: If the axis is zero or not finite, or the kind is unknown
    """

    def __init__(self, axis: Tuple[float, float, float] = (0.0, 0.0, 1.0), kind: str = 'short'):
        axis = np.asarray(axis, dtype=float)
        if axis.shape != (3,) or not np.all(np.isfinite(axis)):
            raise ConfigurationError(f"Dipole axis must be a finite 3-vector, got {axis}")
        norm = np.linalg.norm(axis)
        if norm == 0:
            raise ConfigurationError("Dipole axis must be non-zero")
        if kind not in VALID_DIPOLE_KINDS:
            raise ConfigurationError(f"Invalid dipole kind: {kind!r}. "
                                     f"Choose from {', '.join(VALID_DIPOLE_KINDS)}")

        self._axis = axis / norm
        self._axis.setflags(write=False)
        self._kind = kind

    @property
    def axis(self) -> np.ndarray:
        return self._axis

    @property
    def kind(self) -> str:
        return self._kind

    def evaluate(self, direction: np.ndarray) -> Union[complex, np.ndarray]:
        directions, single = as_directions(direction)

        cos_psi = np.clip(np.sum(directions * self._axis, axis=1), -1.0, 1.0)
        sin_psi = np.linalg.norm(np.cross(directions, self._axis), axis=1)

        if self._kind == 'short':
            gains = sin_psi
        else:
            off_axis = sin_psi > _AXIS_TOLERANCE
            gains = np.zeros_like(sin_psi)
            np.divide(np.cos(0.5 * np.pi * cos_psi), sin_psi, out=gains, where=off_axis)

        return _package(gains, single)

    def __repr__(self) -> str:
        return f"DipoleElement(axis={self._axis.tolist()}, kind='{self._kind}')"


class PatchElement:
    """
    Rectangular microstrip patch over a ground plane, boresight along +z.

    Cavity-model pattern for a patch whose radiating edges are parallel to y:

        X = k W sin(theta) sin(phi) / 2
        F = sinc(X) * cos(k L sin(theta) cos(phi) / 2)
        E_theta = F cos(phi),  E_phi = -F cos(theta) sin(phi)

    The returned gain is the real magnitude sqrt(E_theta^2 + E_phi^2); the rear
    hemisphere (z < 0) is shadowed by the ground plane and has zero gain.

    Args:
        length: Patch length along x (meters)
        width: Patch width along y (meters)
        wavelength: Operating wavelength (meters)
    """

    def __init__(self, length: float, width: float, wavelength: float):
        for name, value in (('length', length), ('width', width), ('wavelength', wavelength)):
            if not np.isfinite(value) or value <= 0:
                raise ConfigurationError(f"Patch {name} must be positive and finite, got {value}")

        self._length = float(length)
        self._width = float(width)
        self._wavelength = float(wavelength)
        self._k = 2 * np.pi / self._wavelength

    @property
    def length(self) -> float:
        return self._length

    @property
    def width(self) -> float:
        return self._width

    @property
    def wavelength(self) -> float:
        return self._wavelength

    def evaluate(self, direction: np.ndarray) -> Union[complex, np.ndarray]:
        directions, single = as_directions(direction)
        theta, phi = cartesian_to_spherical(directions)

        sin_theta = np.sin(theta)
        x = self._k * self._width * sin_theta * np.sin(phi) / 2
        # np.sinc is sin(pi x) / (pi x)
        envelope = np.sinc(x / np.pi) * np.cos(self._k * self._length * sin_theta * np.cos(phi) / 2)

        e_theta = envelope * np.cos(phi)
        e_phi = -envelope * np.cos(theta) * np.sin(phi)
        gains = np.sqrt(e_theta ** 2 + e_phi ** 2)
        gains[directions[:, 2] < 0] = 0.0

        return _package(gains, single)

    def __repr__(self) -> str:
        return f"PatchElement(length={self._length}, width={self._width}, wavelength={self._wavelength})"


class TabulatedElement:
    """
    Element pattern interpolated from a regular theta/phi table.

    The table holds complex gains on a theta x phi grid (radians). Directions that
    fall between nodes are interpolated with nearest-neighbor or bilinear
    interpolation; real and imaginary parts are interpolated independently.

    When the phi axis goes all the way round (the gap from the last phi back to
    the first is no wider than the table's own spacing) the table is closed
    periodically, so directions between the last and first phi are interpolated
    across the seam.

    Directions outside the table are handled by the extrapolation policy:
        - 'error': the table must cover the whole sphere, checked at construction
        - 'nearest': use the value at the nearest table edge
        - 'zero': report zero gain

    Args:
        theta: Strictly increasing theta nodes in radians, shape (M,)
        phi: Strictly increasing phi nodes in radians, shape (K,), spanning at most 2*pi
        gain: Complex gains, shape (M, K)
        method: 'nearest' or 'linear'
        extrapolation: 'error', 'nearest' or 'zero'

    Raises:
        ConfigurationError: If the table is too small, malformed, not finite, or
            leaves part of the sphere uncovered under the 'error' policy
    """

    MIN_TABLE_ENTRIES = 4

    def __init__(self,
                 theta: np.ndarray,
                 phi: np.ndarray,
                 gain: np.ndarray,
                 method: str = 'linear',
                 extrapolation: str = 'error'):
        theta = np.array(theta, dtype=float)
        phi = np.array(phi, dtype=float)
        gain = np.array(gain, dtype=np.complex128)

        if method not in VALID_INTERPOLATION_METHODS:
            raise ConfigurationError(f"Invalid interpolation method: {method!r}. "
                                     f"Choose from {', '.join(VALID_INTERPOLATION_METHODS)}")
        if extrapolation not in VALID_EXTRAPOLATION_POLICIES:
            raise ConfigurationError(f"Invalid extrapolation policy: {extrapolation!r}. "
                                     f"Choose from {', '.join(VALID_EXTRAPOLATION_POLICIES)}")

        if theta.ndim != 1 or phi.ndim != 1:
            raise ConfigurationError("Table theta and phi must be one-dimensional")
        if len(theta) < 2 or len(phi) < 2 or theta.size * phi.size < self.MIN_TABLE_ENTRIES:
            raise ConfigurationError(
                f"Table needs at least 2 theta and 2 phi entries "
                f"({self.MIN_TABLE_ENTRIES} in total), got {len(theta)} x {len(phi)}")
        if gain.shape != (len(theta), len(phi)):
            raise ConfigurationError(f"Table gain shape mismatch: expected {(len(theta), len(phi))}, "
                                     f"got {gain.shape}")
        if not (np.all(np.isfinite(theta)) and np.all(np.isfinite(phi)) and np.all(np.isfinite(gain))):
            raise ConfigurationError("Table angles and gains must be finite")
        if np.any(np.diff(theta) <= 0) or np.any(np.diff(phi) <= 0):
            raise ConfigurationError("Table theta and phi must be strictly increasing")

        phi_span = phi[-1] - phi[0]
        if phi_span > 2 * np.pi + _TABLE_TOLERANCE:
            raise ConfigurationError(f"Table phi spans {phi_span:.6f} rad, more than a full turn")

        seam_gap = phi[0] + 2 * np.pi - phi[-1]
        self._phi_closed = bool(seam_gap <= np.max(np.diff(phi)) + _TABLE_TOLERANCE)
        self._theta_closed = bool(theta[0] <= _TABLE_TOLERANCE and theta[-1] >= np.pi - _TABLE_TOLERANCE)

        if extrapolation == 'error' and not (self._phi_closed and self._theta_closed):
            raise ConfigurationError(
                "Table does not cover the full sphere "
                f"(theta {np.degrees(theta[0]):.2f}..{np.degrees(theta[-1]):.2f} deg, "
                f"phi {np.degrees(phi[0]):.2f}..{np.degrees(phi[-1]):.2f} deg); "
                "choose extrapolation='nearest' or 'zero' to allow partial tables")

        self._theta = theta
        self._phi = phi
        self._gain = gain
        for array in (self._theta, self._phi, self._gain):
            array.setflags(write=False)
        self._method = method
        self._extrapolation = extrapolation

        # Close the table across the phi seam
        table_phi = phi
        table_gain = gain
        if self._phi_closed and seam_gap > _TABLE_TOLERANCE:
            table_phi = np.append(phi, phi[0] + 2 * np.pi)
            table_gain = np.concatenate([gain, gain[:, :1]], axis=1)
        self._phi_end = table_phi[-1]

        values = np.stack([table_gain.real, table_gain.imag], axis=-1)
        self._interpolator = RegularGridInterpolator(
            (theta, table_phi), values, method=method, bounds_error=False, fill_value=None)

        logger.debug(f"Built tabulated element: {len(theta)} x {len(phi)} table, "
                     f"method '{method}', extrapolation '{extrapolation}'")

    @classmethod
    def from_pattern(cls, pattern: Any, method: str = 'linear',
                     extrapolation: str = 'error') -> 'TabulatedElement':
        """
        Build a tabulated element from a synthesized pattern.

        Args:
            pattern: Pattern computed over a rectangular grid
            method: 'nearest' or 'linear'
            extrapolation: 'error', 'nearest' or 'zero'

        Returns:
            TabulatedElement: Element reproducing the pattern at its grid nodes

        Raises:
            ConfigurationError: If the pattern grid is not rectangular
        """
        grid = pattern.grid
        if not grid.is_rectangular:
            raise ConfigurationError("A tabulated element needs a rectangular grid; "
                                     "rebuild the pattern with pole_policy='redundant'")
        gain = np.asarray(pattern.values).reshape(grid.shape)
        return cls(grid.theta_values, grid.phi_values, gain, method=method, extrapolation=extrapolation)

    @property
    def table(self) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """The (theta, phi, gain) table this element was built from."""
        return self._theta, self._phi, self._gain

    @property
    def method(self) -> str:
        return self._method

    @property
    def extrapolation(self) -> str:
        return self._extrapolation

    @property
    def phi_closed(self) -> bool:
        """True when the phi nodes go all the way round and the table wraps across the seam."""
        return self._phi_closed

    @property
    def theta_closed(self) -> bool:
        """True when the theta nodes reach both poles."""
        return self._theta_closed

    def evaluate(self, direction: np.ndarray) -> Union[complex, np.ndarray]:
        directions, single = as_directions(direction)
        theta, phi = cartesian_to_spherical(directions)

        phi_start = self._phi[0]
        phi = phi_start + np.mod(phi - phi_start, 2 * np.pi)

        theta_min, theta_max = self._theta[0], self._theta[-1]
        outside = ((theta < theta_min) | (theta > theta_max) | (phi > self._phi_end))

        # Clamp onto the table; phi beyond the last node snaps to whichever edge is nearer round the circle
        past_end = phi > self._phi_end
        snap_to_start = past_end & ((phi - self._phi_end) > (phi_start + 2 * np.pi - phi))
        phi = np.where(snap_to_start, phi_start, np.minimum(phi, self._phi_end))
        theta = np.clip(theta, theta_min, theta_max)

        values = self._interpolator(np.column_stack([theta, phi]))
        gains = values[:, 0] + 1j * values[:, 1]

        if self._extrapolation == 'zero':
            gains[outside] = 0.0

        return _package(gains, single)

    def __repr__(self) -> str:
        return (f"TabulatedElement({len(self._theta)} x {len(self._phi)}, method='{self._method}', "
                f"extrapolation='{self._extrapolation}')")
