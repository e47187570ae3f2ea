"""
Functions for saving and loading synthesized patterns.
"""
import json
import logging
from pathlib import Path
from typing import Any, Dict, Union

import h5py
import numpy as np

from .grid import SamplingGrid
from .pattern import Pattern

logger = logging.getLogger(__name__)

FILE_FORMAT = 'array_pattern'
FILE_VERSION = '1.0'


def _rebuild_grid(grid_parameters: Dict[str, Any], theta: np.ndarray, phi: np.ndarray) -> SamplingGrid:
    grid = SamplingGrid(**grid_parameters)
    if len(grid) != len(theta) or not (np.allclose(grid.theta, theta) and np.allclose(grid.phi, phi)):
        raise ValueError("Stored sample directions do not match the stored grid parameters")
    return grid


def save_pattern_npz(pattern: Pattern, file_path: Union[str, Path]) -> None:
    """
    Save a pattern to NPZ format for efficient loading.

    The file holds the per-sample theta and phi (radians), the complex field
    values, and the grid parameters and pattern metadata as JSON strings.

    Args:
        pattern: Pattern to save
        file_path: Path to save the file to; a '.npz' suffix is enforced

    Raises:
        OSError: If file cannot be written
    """
    file_path = Path(file_path)

    # Ensure .npz extension
    if file_path.suffix.lower() != '.npz':
        file_path = file_path.with_suffix('.npz')

    header = {
        'format': FILE_FORMAT,
        'version': FILE_VERSION,
        'grid': pattern.grid.parameters,
    }

    np.savez_compressed(
        file_path,
        theta=pattern.grid.theta,
        phi=pattern.grid.phi,
        values=pattern.values,
        header=json.dumps(header),
        metadata=json.dumps(pattern.metadata),
    )
    logger.info(f"Pattern saved to {file_path}")


def load_pattern_npz(file_path: Union[str, Path]) -> Pattern:
    """
    Load a pattern saved by ``save_pattern_npz``.

    Args:
        file_path: Path to the NPZ file

    Returns:
        Pattern: The stored pattern, on a rebuilt sampling grid

    Raises:
        FileNotFoundError: If file does not exist
        ValueError: If file format is invalid
    """
    file_path = Path(file_path)

    if not file_path.exists():
        raise FileNotFoundError(f"Pattern file not found: {file_path}")

    with np.load(file_path, allow_pickle=False) as data:
        header = json.loads(str(data['header']))
        if header.get('format') != FILE_FORMAT:
            raise ValueError(f"Not an {FILE_FORMAT} file: {file_path}")

        grid = _rebuild_grid(header['grid'], data['theta'], data['phi'])
        pattern = Pattern(grid, data['values'], json.loads(str(data['metadata'])))

    logger.info(f"Pattern loaded from {file_path}")
    return pattern


def write_pattern_h5(pattern: Pattern, file_path: Union[str, Path]) -> None:
    """
    Write a pattern to an HDF5 file.

    Layout: group 'dir' with datasets 'theta' and 'phi' (radians, per sample),
    'field_real', 'field_imag' and 'gain' (field magnitude). The grid parameters
    and pattern metadata are stored as JSON string attributes of the group.

    Args:
        pattern: Pattern to write
        file_path: Path to the HDF5 file, overwritten if it exists

    Raises:
        OSError: If file cannot be written
    """
    file_path = Path(file_path)
    values = pattern.values

    with h5py.File(file_path, 'w') as h5:
        group = h5.create_group('dir')
        group.create_dataset('theta', data=pattern.grid.theta)
        group.create_dataset('phi', data=pattern.grid.phi)
        group.create_dataset('field_real', data=values.real, compression='gzip')
        group.create_dataset('field_imag', data=values.imag, compression='gzip')
        group.create_dataset('gain', data=np.abs(values), compression='gzip')
        group.attrs['format'] = FILE_FORMAT
        group.attrs['version'] = FILE_VERSION
        group.attrs['grid'] = json.dumps(pattern.grid.parameters)
        group.attrs['metadata'] = json.dumps(pattern.metadata)

    logger.info(f"Pattern written to {file_path}")


def read_pattern_h5(file_path: Union[str, Path]) -> Pattern:
    """
    Read a pattern written by ``write_pattern_h5``.

    Args:
        file_path: Path to the HDF5 file

    Returns:
        Pattern: The stored pattern, on a rebuilt sampling grid

    Raises:
        FileNotFoundError: If file does not exist
        ValueError: If file format is invalid
    """
    file_path = Path(file_path)

    if not file_path.exists():
        raise FileNotFoundError(f"Pattern file not found: {file_path}")

    with h5py.File(file_path, 'r') as h5:
        if 'dir' not in h5 or h5['dir'].attrs.get('format') != FILE_FORMAT:
            raise ValueError(f"Not an {FILE_FORMAT} file: {file_path}")
        group = h5['dir']
        grid = _rebuild_grid(json.loads(group.attrs['grid']), group['theta'][:], group['phi'][:])
        values = group['field_real'][:] + 1j * group['field_imag'][:]
        metadata = json.loads(group.attrs['metadata'])

    logger.info(f"Pattern read from {file_path}")
    return Pattern(grid, values, metadata)
