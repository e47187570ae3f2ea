"""
Angular sampling grids over the sphere or a sector of it.
"""
import logging
import numbers
from typing import Any, Dict, Iterator, NamedTuple, Tuple

import numpy as np

from .exceptions import GeometryError
from .utilities import POLE_TOLERANCE, spherical_to_cartesian

# Configure logging
logger = logging.getLogger(__name__)

VALID_POLE_POLICIES = ('redundant', 'collapse')


class AngularSample(NamedTuple):
    """A single observation direction: angles in radians and its unit vector."""
    theta: float
    phi: float
    direction: np.ndarray


def _validate_range(name: str, value_range: Tuple[float, float]) -> Tuple[float, float]:
    try:
        low, high = (float(v) for v in value_range)
    except (TypeError, ValueError):
        raise GeometryError(f"{name} must be a (min, max) pair of numbers, got {value_range!r}") from None

    if not (np.isfinite(low) and np.isfinite(high)):
        raise GeometryError(f"{name} must be finite, got ({low}, {high})")
    if low >= high:
        raise GeometryError(f"{name} is degenerate: min {low} must be less than max {high}")
    return low, high


def _validate_steps(name: str, steps: Any) -> int:
    if isinstance(steps, bool) or not isinstance(steps, numbers.Integral):
        raise GeometryError(f"{name} must be an integer, got {steps!r}")
    if steps < 1:
        raise GeometryError(f"{name} must be at least 1, got {steps}")
    return int(steps)


class SamplingGrid:
    """
    Ordered, immutable set of observation directions.

    Theta is sampled on the closed interval [theta_min, theta_max] and phi on the
    half-open interval [phi_min, phi_max), so a full azimuth sweep never repeats
    phi = 0. Samples are ordered theta-major: every phi for the first theta, then
    every phi for the next.

    The pole policy decides what happens on rows at theta = 0 or theta = pi, where
    phi is degenerate:
        - 'redundant': every phi is kept, the grid stays a full theta x phi rectangle
        - 'collapse': only the first phi sample is kept on a pole row

    Attributes:
        theta (np.ndarray): Theta of every sample in radians, shape (N,)
        phi (np.ndarray): Phi of every sample in radians, shape (N,)
        directions (np.ndarray): Unit vectors of every sample, shape (N, 3)
        theta_values (np.ndarray): Distinct theta values, shape (M,)
        phi_values (np.ndarray): Distinct phi values, shape (K,)
        pole_policy (str): 'redundant' or 'collapse'
    """

    def __init__(self,
                 theta_range: Tuple[float, float],
                 phi_range: Tuple[float, float],
                 theta_steps: int,
                 phi_steps: int,
                 pole_policy: str = 'redundant',
                 full_sphere: bool = False):
        """
        Build a sampling grid.

        Args:
            theta_range: (min, max) polar angle in radians
            phi_range: (min, max) azimuth angle in radians
            theta_steps: Number of theta samples
            phi_steps: Number of phi samples
            pole_policy: 'redundant' or 'collapse'
            full_sphere: If True, the ranges must lie within theta [0, pi] and phi [0, 2*pi]

        Raises:
            GeometryError: If a range is degenerate or out of bounds, a step count
                is below 1, or the pole policy is unknown
        """
        theta_min, theta_max = _validate_range("theta_range", theta_range)
        phi_min, phi_max = _validate_range("phi_range", phi_range)
        theta_steps = _validate_steps("theta_steps", theta_steps)
        phi_steps = _validate_steps("phi_steps", phi_steps)

        if pole_policy not in VALID_POLE_POLICIES:
            raise GeometryError(f"Invalid pole policy: {pole_policy!r}. "
                                f"Choose from {', '.join(VALID_POLE_POLICIES)}")

        if full_sphere:
            if theta_min < 0 or theta_max > np.pi + POLE_TOLERANCE:
                raise GeometryError(f"theta_range ({theta_min}, {theta_max}) escapes [0, pi]")
            if phi_min < 0 or phi_max > 2 * np.pi + POLE_TOLERANCE:
                raise GeometryError(f"phi_range ({phi_min}, {phi_max}) escapes [0, 2*pi]")

        theta_values = np.linspace(theta_min, theta_max, theta_steps)
        phi_values = phi_min + (phi_max - phi_min) * np.arange(phi_steps) / phi_steps

        theta_index, phi_index = np.meshgrid(
            np.arange(theta_steps), np.arange(phi_steps), indexing='ij')
        theta_index = theta_index.ravel()
        phi_index = phi_index.ravel()

        pole_rows = ((np.abs(theta_values) <= POLE_TOLERANCE)
                     | (np.abs(theta_values - np.pi) <= POLE_TOLERANCE))
        if pole_policy == 'collapse' and np.any(pole_rows):
            keep = ~pole_rows[theta_index] | (phi_index == 0)
            theta_index = theta_index[keep]
            phi_index = phi_index[keep]

        theta = theta_values[theta_index]
        phi = phi_values[phi_index]
        directions = spherical_to_cartesian(theta, phi)

        self.theta = theta
        self.phi = phi
        self.directions = directions
        self.theta_values = theta_values
        self.phi_values = phi_values
        self.theta_index = theta_index
        self.phi_index = phi_index
        for array in (self.theta, self.phi, self.directions, self.theta_values,
                      self.phi_values, self.theta_index, self.phi_index):
            array.setflags(write=False)

        self.pole_policy = pole_policy
        self.full_sphere = bool(full_sphere)
        self._parameters = {
            'theta_range': [theta_min, theta_max],
            'phi_range': [phi_min, phi_max],
            'theta_steps': theta_steps,
            'phi_steps': phi_steps,
            'pole_policy': pole_policy,
            'full_sphere': self.full_sphere,
        }

        logger.debug(f"Built sampling grid: {theta_steps} x {phi_steps} steps, "
                     f"{len(theta)} samples, pole policy '{pole_policy}'")

    @classmethod
    def build(cls,
              theta_range: Tuple[float, float],
              phi_range: Tuple[float, float],
              theta_steps: int,
              phi_steps: int,
              pole_policy: str = 'redundant',
              full_sphere: bool = False) -> 'SamplingGrid':
        """Build a grid from ranges in radians. See ``SamplingGrid.__init__``."""
        return cls(theta_range, phi_range, theta_steps, phi_steps,
                   pole_policy=pole_policy, full_sphere=full_sphere)

    @classmethod
    def sphere(cls, theta_steps: int, phi_steps: int, pole_policy: str = 'redundant') -> 'SamplingGrid':
        """
        Build a grid covering the whole sphere.

        Theta runs from 0 to pi inclusive, phi from 0 up to (but excluding) 2*pi.

        Args:
            theta_steps: Number of theta samples
            phi_steps: Number of phi samples
            pole_policy: 'redundant' or 'collapse'

        Returns:
            SamplingGrid: Full-sphere grid
        """
        return cls((0.0, np.pi), (0.0, 2 * np.pi), theta_steps, phi_steps,
                   pole_policy=pole_policy, full_sphere=True)

    @classmethod
    def from_degrees(cls,
                     theta_range: Tuple[float, float],
                     phi_range: Tuple[float, float],
                     theta_steps: int,
                     phi_steps: int,
                     pole_policy: str = 'redundant',
                     full_sphere: bool = False) -> 'SamplingGrid':
        """Build a grid from ranges given in degrees."""
        return cls(tuple(np.radians(theta_range)), tuple(np.radians(phi_range)),
                   theta_steps, phi_steps, pole_policy=pole_policy, full_sphere=full_sphere)

    @property
    def parameters(self) -> Dict[str, Any]:
        """Arguments this grid was built from."""
        return dict(self._parameters)

    @property
    def shape(self) -> Tuple[int, int]:
        """Rectangular (theta, phi) shape before any pole collapse."""
        return len(self.theta_values), len(self.phi_values)

    @property
    def is_rectangular(self) -> bool:
        """True when every (theta, phi) pair of the rectangle is present."""
        return len(self.theta) == self.shape[0] * self.shape[1]

    @property
    def covers_full_sphere(self) -> bool:
        """True when theta spans 0..pi and phi spans a whole turn."""
        theta_min, theta_max = self._parameters['theta_range']
        phi_min, phi_max = self._parameters['phi_range']
        return (abs(theta_min) <= POLE_TOLERANCE
                and abs(theta_max - np.pi) <= POLE_TOLERANCE
                and (phi_max - phi_min) >= 2 * np.pi - POLE_TOLERANCE)

    def __len__(self) -> int:
        return len(self.theta)

    def __getitem__(self, index: int) -> AngularSample:
        return AngularSample(float(self.theta[index]), float(self.phi[index]), self.directions[index])

    def __iter__(self) -> Iterator[AngularSample]:
        for index in range(len(self)):
            yield self[index]

    def __repr__(self) -> str:
        return (f"SamplingGrid(theta_steps={self.shape[0]}, phi_steps={self.shape[1]}, "
                f"samples={len(self)}, pole_policy='{self.pole_policy}')")
