"""
Array geometry: element positions, excitation weights and the array factor.
"""
import logging
import numbers
from typing import Iterable, Iterator, NamedTuple, Optional, Sequence, Tuple, Union

import numpy as np
from scipy.spatial import cKDTree

from .exceptions import ConfigurationError
from .utilities import as_directions, frequency_to_wavelength, lightspeed, spherical_to_cartesian

# Configure logging
logger = logging.getLogger(__name__)

VALID_UNITS = ('meters', 'wavelengths')
VALID_AXES = {'x': 0, 'y': 1, 'z': 2}


class ArrayElement(NamedTuple):
    """One radiator of an array: position in meters and complex excitation weight."""
    position: Tuple[float, float, float]
    weight: complex


class ArrayGeometry:
    """
    Ordered collection of array elements at one operating wavelength.

    Positions are stored in meters. The array factor toward a unit direction d is

        AF(d) = sum_i w_i * exp(j * k * (p_i . d)),  k = 2 * pi / wavelength

    evaluated in double-precision complex arithmetic.

    Args:
        elements: Ordered iterable of ArrayElement or (position, weight) pairs
        wavelength: Operating wavelength in meters
        units: Unit of the supplied positions, 'meters' or 'wavelengths'

    Raises:
        ConfigurationError: If the collection is empty, the wavelength is not
            positive and finite, a position is not a finite 3-vector, a weight is
            not finite, or the units are unknown
    """

    def __init__(self,
                 elements: Iterable[Union[ArrayElement, Tuple[Sequence[float], complex]]],
                 wavelength: float,
                 units: str = 'meters'):
        try:
            wavelength = float(wavelength)
        except (TypeError, ValueError):
            raise ConfigurationError(f"Wavelength must be a number, got {wavelength!r}") from None
        if not np.isfinite(wavelength) or wavelength <= 0:
            raise ConfigurationError(f"Wavelength must be positive and finite, got {wavelength}")
        if units not in VALID_UNITS:
            raise ConfigurationError(f"Invalid position units: {units!r}. Choose from {', '.join(VALID_UNITS)}")

        positions = []
        weights = []
        for index, element in enumerate(elements):
            try:
                position, weight = element
                position = np.asarray(position, dtype=float)
                weight = complex(weight)
            except (TypeError, ValueError):
                raise ConfigurationError(f"Element {index} must be a (position, weight) pair, "
                                         f"got {element!r}") from None
            if position.shape != (3,) or not np.all(np.isfinite(position)):
                raise ConfigurationError(f"Element {index} position must be a finite 3-vector, got {position}")
            if not (np.isfinite(weight.real) and np.isfinite(weight.imag)):
                raise ConfigurationError(f"Element {index} weight must be finite, got {weight}")
            positions.append(position)
            weights.append(weight)

        if not positions:
            raise ConfigurationError("Array geometry needs at least one element")

        positions = np.array(positions)
        if units == 'wavelengths':
            positions = positions * wavelength

        self._positions = positions
        self._weights = np.array(weights, dtype=np.complex128)
        self._positions.setflags(write=False)
        self._weights.setflags(write=False)
        self._wavelength = wavelength

    @classmethod
    def build(cls, elements, wavelength: float, units: str = 'meters') -> 'ArrayGeometry':
        """Build a geometry from (position, weight) pairs. See ``ArrayGeometry.__init__``."""
        return cls(elements, wavelength, units=units)

    @classmethod
    def from_frequency(cls, elements, frequency: float, units: str = 'meters') -> 'ArrayGeometry':
        """
        Build a geometry from an operating frequency instead of a wavelength.

        Args:
            elements: Ordered iterable of ArrayElement or (position, weight) pairs
            frequency: Operating frequency in Hz
            units: Unit of the supplied positions, 'meters' or 'wavelengths'

        Returns:
            ArrayGeometry: Geometry at wavelength c / frequency
        """
        try:
            wavelength = float(frequency_to_wavelength(frequency))
        except ValueError as e:
            raise ConfigurationError(str(e)) from None
        return cls(elements, wavelength, units=units)

    @property
    def wavelength(self) -> float:
        """Operating wavelength in meters."""
        return self._wavelength

    @property
    def frequency(self) -> float:
        """Operating frequency in Hz."""
        return lightspeed / self._wavelength

    @property
    def wavenumber(self) -> float:
        """Free-space wavenumber k = 2*pi / wavelength in rad/m."""
        return 2 * np.pi / self._wavelength

    @property
    def positions(self) -> np.ndarray:
        """Element positions in meters, shape (E, 3)."""
        return self._positions

    @property
    def positions_in_wavelengths(self) -> np.ndarray:
        """Element positions in wavelengths, shape (E, 3)."""
        return self._positions / self._wavelength

    @property
    def weights(self) -> np.ndarray:
        """Complex excitation weights, shape (E,)."""
        return self._weights

    def __len__(self) -> int:
        return len(self._weights)

    def __getitem__(self, index: int) -> ArrayElement:
        return ArrayElement(tuple(float(v) for v in self._positions[index]), complex(self._weights[index]))

    def __iter__(self) -> Iterator[ArrayElement]:
        for index in range(len(self)):
            yield self[index]

    def __repr__(self) -> str:
        return f"ArrayGeometry(elements={len(self)}, wavelength={self._wavelength})"

    def phase_terms(self, directions: np.ndarray) -> np.ndarray:
        """
        Spatial phase factor of every element toward every direction.

        The dot products are accumulated component by component so that each
        row depends only on its own direction, independent of how many
        directions are passed in one call.

        Args:
            directions: Unit vectors, shape (N, 3)

        Returns:
            np.ndarray: exp(j k p_i . d_n), complex128 of shape (N, E)
        """
        directions = np.asarray(directions, dtype=float)
        positions = self._positions
        path = (directions[:, 0:1] * positions[:, 0]
                + directions[:, 1:2] * positions[:, 1]
                + directions[:, 2:3] * positions[:, 2])
        return np.exp(1j * self.wavenumber * path)

    def array_factor(self, direction: np.ndarray) -> Union[complex, np.ndarray]:
        """
        Evaluate the array factor.

        Args:
            direction: Unit vector of shape (3,) or stack of shape (N, 3)

        Returns:
            complex for a single direction, complex128 array of shape (N,) otherwise

        Raises:
            GeometryError: If any direction is not a finite unit vector
        """
        directions, single = as_directions(direction)
        af = np.sum(self.phase_terms(directions) * self._weights, axis=1)
        if single:
            return complex(af[0])
        return af

    def min_spacing(self) -> float:
        """
        Smallest distance between any two elements in meters.

        Uses a nearest-neighbor query, so memory grows linearly with the element count.

        Returns:
            float: Minimum pairwise distance, or inf for a single-element array
        """
        if len(self) < 2:
            return float('inf')
        distances, _ = cKDTree(self._positions).query(self._positions, k=2)
        return float(np.min(distances[:, 1]))

    def with_weights(self, weights: Sequence[complex]) -> 'ArrayGeometry':
        """
        Return a copy of this geometry with new excitation weights.

        Args:
            weights: One complex weight per element, in element order

        Returns:
            ArrayGeometry: New geometry sharing positions and wavelength

        Raises:
            ConfigurationError: If the number of weights does not match the element count
        """
        weights = np.asarray(weights, dtype=np.complex128).ravel()
        if len(weights) != len(self):
            raise ConfigurationError(f"Number of weights ({len(weights)}) must match "
                                     f"number of elements ({len(self)})")
        return ArrayGeometry(zip(self._positions, weights), self._wavelength)

    def steered(self, theta: float, phi: float) -> 'ArrayGeometry':
        """
        Return a copy of this geometry with its main beam steered toward (theta, phi).

        Each weight keeps its magnitude and gains the progressive phase
        exp(-j k p_i . d0), so all contributions add in phase toward d0.

        Args:
            theta: Steering polar angle in radians
            phi: Steering azimuth angle in radians

        Returns:
            ArrayGeometry: Steered geometry
        """
        steer_direction = spherical_to_cartesian(theta, phi).reshape(1, 3)
        steering = np.conj(self.phase_terms(steer_direction)[0])
        logger.debug(f"Steering {len(self)} elements toward theta={np.degrees(theta):.2f} deg, "
                     f"phi={np.degrees(phi):.2f} deg")
        return self.with_weights(self._weights * steering)


def _validate_count(name: str, value) -> int:
    if isinstance(value, bool) or not isinstance(value, numbers.Integral) or value < 1:
        raise ConfigurationError(f"{name} must be a positive integer, got {value!r}")
    return int(value)


def _validate_spacing(name: str, value: float, count: int) -> float:
    value = float(value)
    if not np.isfinite(value) or (count > 1 and value <= 0):
        raise ConfigurationError(f"{name} must be positive and finite, got {value}")
    return value


def _resolve_weights(weights: Optional[Sequence[complex]], count: int) -> np.ndarray:
    if weights is None:
        return np.ones(count, dtype=np.complex128)
    weights = np.asarray(weights, dtype=np.complex128).ravel()
    if len(weights) != count:
        raise ConfigurationError(f"Number of weights ({len(weights)}) must match number of elements ({count})")
    return weights


def linear_array(n: int,
                 spacing: float,
                 wavelength: float,
                 axis: str = 'x',
                 weights: Optional[Sequence[complex]] = None) -> ArrayGeometry:
    """
    Build a uniform linear array centred on the origin.

    Args:
        n: Number of elements
        spacing: Element spacing in meters
        wavelength: Operating wavelength in meters
        axis: Array axis, 'x', 'y' or 'z'
        weights: Optional complex weights, uniform unit weights if None

    Returns:
        ArrayGeometry: The linear array

    Raises:
        ConfigurationError: If the count, spacing, axis or weights are invalid
    """
    n = _validate_count("n", n)
    spacing = _validate_spacing("spacing", spacing, n)
    if axis not in VALID_AXES:
        raise ConfigurationError(f"Invalid array axis: {axis!r}. Choose from {', '.join(VALID_AXES)}")

    positions = np.zeros((n, 3))
    positions[:, VALID_AXES[axis]] = (np.arange(n) - (n - 1) / 2) * spacing
    return ArrayGeometry(zip(positions, _resolve_weights(weights, n)), wavelength)


def rectangular_array(nx: int,
                      ny: int,
                      dx: float,
                      dy: float,
                      wavelength: float,
                      weights: Optional[Sequence[complex]] = None) -> ArrayGeometry:
    """
    Build a uniform rectangular array in the xy-plane centred on the origin.

    Elements are ordered x-major: all y positions for the first x, then the next x.

    Args:
        nx: Number of elements along x
        ny: Number of elements along y
        dx: Spacing along x in meters
        dy: Spacing along y in meters
        wavelength: Operating wavelength in meters
        weights: Optional complex weights (nx * ny), uniform unit weights if None

    Returns:
        ArrayGeometry: The planar array
    """
    nx = _validate_count("nx", nx)
    ny = _validate_count("ny", ny)
    dx = _validate_spacing("dx", dx, nx)
    dy = _validate_spacing("dy", dy, ny)

    x = (np.arange(nx) - (nx - 1) / 2) * dx
    y = (np.arange(ny) - (ny - 1) / 2) * dy
    xx, yy = np.meshgrid(x, y, indexing='ij')
    positions = np.column_stack([xx.ravel(), yy.ravel(), np.zeros(nx * ny)])
    return ArrayGeometry(zip(positions, _resolve_weights(weights, nx * ny)), wavelength)
