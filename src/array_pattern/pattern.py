"""
Core class for synthesized radiation pattern results.
"""
import copy
import logging
from typing import Any, Dict, Iterator, Optional, Tuple

import numpy as np
import xarray as xr

from .grid import AngularSample, SamplingGrid

# Configure logging
logger = logging.getLogger(__name__)

# Relative power assigned to samples with no field at all
POWER_DB_FLOOR = -300.0


def _plain(value: Any) -> Any:
    """Convert numpy scalars and arrays inside metadata to built-in Python types."""
    if isinstance(value, dict):
        return {str(key): _plain(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(item) for item in value]
    if isinstance(value, np.ndarray):
        return _plain(value.tolist())
    if isinstance(value, np.generic):
        return value.item()
    return copy.deepcopy(value)


class Pattern:
    """
    Immutable result of a pattern synthesis.

    A Pattern pairs the sampling grid it was computed on with one complex field
    value per sample, in grid order. Scalar views (magnitude, phase, power in dB
    relative to the peak) are derived on demand from the stored complex values
    and never stored alongside them.

    Attributes:
        grid (SamplingGrid): Grid the values were computed on
        values (np.ndarray): Read-only complex128 field values, shape (N,)
        metadata (Dict[str, Any]): Copy of the synthesis metadata, including
            'wavelength', 'frequency', 'combination_policy', 'pole_policy',
            'units', 'element_count' and 'warnings'
    """

    def __init__(self,
                 grid: SamplingGrid,
                 values: np.ndarray,
                 metadata: Optional[Dict[str, Any]] = None):
        """
        Initialize a Pattern.

        Args:
            grid: Sampling grid the values belong to
            values: Complex field values, one per grid sample
            metadata: Optional metadata dictionary

        Raises:
            ValueError: If the number of values does not match the grid
        """
        values = np.array(values, dtype=np.complex128).ravel()
        if len(values) != len(grid):
            raise ValueError(f"Value count mismatch: grid has {len(grid)} samples, got {len(values)} values")
        values.setflags(write=False)

        self._grid = grid
        self._values = values
        self._metadata = _plain(metadata) if metadata is not None else {}
        self._metadata.setdefault('warnings', [])

    @property
    def grid(self) -> SamplingGrid:
        return self._grid

    @property
    def values(self) -> np.ndarray:
        return self._values

    @property
    def metadata(self) -> Dict[str, Any]:
        return copy.deepcopy(self._metadata)

    @property
    def warnings(self) -> Tuple[str, ...]:
        """Numerical warnings raised while this pattern was synthesized."""
        return tuple(self._metadata['warnings'])

    @property
    def wavelength(self) -> Optional[float]:
        return self._metadata.get('wavelength')

    @property
    def frequency(self) -> Optional[float]:
        return self._metadata.get('frequency')

    def sample_count(self) -> int:
        """Number of samples in the pattern."""
        return len(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def at(self, index: int) -> Tuple[AngularSample, complex]:
        """
        Get one sample of the pattern.

        Args:
            index: Sample index in grid order

        Returns:
            Tuple[AngularSample, complex]: The direction and its field value

        Raises:
            IndexError: If index is out of range
        """
        return self._grid[index], complex(self._values[index])

    def __iter__(self) -> Iterator[Tuple[AngularSample, complex]]:
        for index in range(len(self)):
            yield self.at(index)

    def __repr__(self) -> str:
        return (f"Pattern(samples={len(self)}, "
                f"combination_policy={self._metadata.get('combination_policy')!r})")

    def magnitude(self) -> np.ndarray:
        """Field magnitude of every sample."""
        return np.abs(self._values)

    def phase(self, degrees: bool = False) -> np.ndarray:
        """
        Field phase of every sample.

        Args:
            degrees: If True return degrees, otherwise radians

        Returns:
            np.ndarray: Phase in (-pi, pi] radians or (-180, 180] degrees
        """
        phase = np.angle(self._values)
        if degrees:
            return np.degrees(phase)
        return phase

    def power_db(self) -> np.ndarray:
        """
        Power of every sample in dB relative to the pattern peak.

        The peak sits at 0 dB. Nulls are floored at POWER_DB_FLOOR; a pattern that
        is zero everywhere is POWER_DB_FLOOR everywhere.

        Returns:
            np.ndarray: 20*log10(|E| / |E|max)
        """
        magnitude = self.magnitude()
        peak = np.max(magnitude)
        if peak == 0:
            return np.full(len(magnitude), POWER_DB_FLOOR)
        with np.errstate(divide='ignore'):
            power = 20.0 * np.log10(magnitude / peak)
        return np.maximum(power, POWER_DB_FLOOR)

    def peak_index(self) -> int:
        """Index of the sample with the largest magnitude (first one on ties)."""
        return int(np.argmax(self.magnitude()))

    def peak(self) -> Tuple[AngularSample, complex]:
        """Direction and value of the strongest sample."""
        return self.at(self.peak_index())

    def to_dataset(self) -> xr.Dataset:
        """
        Convert the pattern to an xarray Dataset on the theta x phi rectangle.

        Coordinates are in degrees. Under the 'collapse' pole policy the single
        value kept at a pole is broadcast over every phi of that row.

        Returns:
            xr.Dataset: Dataset with a complex 'field' variable over (theta, phi)
        """
        grid = self._grid
        field = np.zeros(grid.shape, dtype=np.complex128)
        field[grid.theta_index, grid.phi_index] = self._values

        if not grid.is_rectangular:
            present = np.zeros(grid.shape, dtype=bool)
            present[grid.theta_index, grid.phi_index] = True
            for row in np.where(~present.all(axis=1))[0]:
                field[row, :] = field[row, 0]

        attrs = {key: value for key, value in self._metadata.items()
                 if isinstance(value, (str, int, float, bool))}

        return xr.Dataset(
            data_vars={
                'field': (('theta', 'phi'), field),
            },
            coords={
                'theta': np.degrees(grid.theta_values),
                'phi': np.degrees(grid.phi_values),
            },
            attrs=attrs,
        )
