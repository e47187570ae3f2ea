"""
Tests for saving, loading and plotting patterns.
"""
import h5py
import matplotlib
import matplotlib.pyplot as plt
import numpy as np
import pytest

from array_pattern import (
    DipoleElement, ElementPatternPolicy, Pattern, SamplingGrid, linear_array, load_pattern_npz,
    plot_pattern_2d, plot_pattern_cut, read_pattern_h5, save_pattern_npz, synthesize,
    write_pattern_h5
)

matplotlib.use('Agg')


@pytest.fixture
def pattern():
    """Phased four-element array of half-wave dipoles on a collapsed sphere."""
    grid = SamplingGrid.sphere(theta_steps=19, phi_steps=12, pole_policy='collapse')
    geometry = linear_array(4, 0.5, wavelength=0.6, weights=[1, 0.8j, -0.8, -1j])
    policy = ElementPatternPolicy.multiplication(DipoleElement(axis=(0, 1, 0), kind='half_wave'))
    return synthesize(grid, geometry, policy)


def test_npz_round_trip(pattern, tmp_path):
    """A pattern saved to NPZ loads back with the same grid, values and metadata."""
    file_path = tmp_path / "pattern.npz"
    save_pattern_npz(pattern, file_path)
    loaded = load_pattern_npz(file_path)

    np.testing.assert_array_equal(loaded.values, pattern.values)
    np.testing.assert_array_equal(loaded.grid.theta, pattern.grid.theta)
    np.testing.assert_array_equal(loaded.grid.phi, pattern.grid.phi)
    assert loaded.grid.pole_policy == 'collapse'
    assert loaded.metadata == pattern.metadata


def test_npz_suffix_enforced(pattern, tmp_path):
    """A missing .npz suffix is added on save."""
    save_pattern_npz(pattern, tmp_path / "pattern.dat")
    assert (tmp_path / "pattern.npz").exists()


def test_npz_missing_file(tmp_path):
    """Loading a missing file raises FileNotFoundError."""
    with pytest.raises(FileNotFoundError):
        load_pattern_npz(tmp_path / "missing.npz")


def test_npz_wrong_format(tmp_path):
    """NPZ files from elsewhere are rejected."""
    file_path = tmp_path / "other.npz"
    np.savez(file_path, header='{"format": "something_else"}')
    with pytest.raises(ValueError):
        load_pattern_npz(file_path)


def test_h5_round_trip(pattern, tmp_path):
    """A pattern written to HDF5 reads back unchanged."""
    file_path = tmp_path / "pattern.h5"
    write_pattern_h5(pattern, file_path)
    loaded = read_pattern_h5(file_path)

    np.testing.assert_array_equal(loaded.values, pattern.values)
    np.testing.assert_array_equal(loaded.grid.directions, pattern.grid.directions)
    assert loaded.metadata == pattern.metadata


def test_h5_layout(pattern, tmp_path):
    """The HDF5 file keeps per-sample angles and the gain magnitude under 'dir'."""
    file_path = tmp_path / "pattern.h5"
    write_pattern_h5(pattern, file_path)

    with h5py.File(file_path, 'r') as h5:
        group = h5['dir']
        np.testing.assert_array_equal(group['theta'][:], pattern.grid.theta)
        np.testing.assert_array_equal(group['phi'][:], pattern.grid.phi)
        np.testing.assert_allclose(group['gain'][:], np.abs(pattern.values))


def test_h5_wrong_format(tmp_path):
    """HDF5 files without a pattern group are rejected."""
    file_path = tmp_path / "other.h5"
    with h5py.File(file_path, 'w') as h5:
        h5.create_dataset('data', data=np.zeros(3))
    with pytest.raises(ValueError):
        read_pattern_h5(file_path)
    with pytest.raises(FileNotFoundError):
        read_pattern_h5(tmp_path / "missing.h5")


@pytest.mark.parametrize("value_type", ['gain', 'magnitude', 'phase'])
def test_plot_pattern_cut(pattern, value_type):
    """Cuts plot one line per requested phi."""
    fig = plot_pattern_cut(pattern, phi=[0.0, 90.0], value_type=value_type, title="Cuts")

    assert isinstance(fig, plt.Figure)
    assert len(fig.axes[0].lines) == 2
    plt.close(fig)


def test_plot_pattern_2d(pattern):
    """The 2D plot draws a colour map with a colour bar."""
    fig = plot_pattern_2d(pattern)

    assert isinstance(fig, plt.Figure)
    assert len(fig.axes) == 2
    plt.close(fig)


def test_plot_invalid_value_type(pattern):
    """Unknown value types are rejected."""
    with pytest.raises(ValueError):
        plot_pattern_cut(pattern, value_type='axial_ratio')
    plt.close('all')


def test_numpy_metadata_round_trip(tmp_path):
    """Metadata holding numpy scalars and arrays is stored as plain values."""
    grid = SamplingGrid.sphere(theta_steps=5, phi_steps=4)
    pattern = Pattern(grid, np.ones(len(grid)), {
        'wavelength': np.float32(0.5),
        'element_count': np.int64(3),
        'taper': np.array([0.5, 1.0, 0.5]),
    })

    save_pattern_npz(pattern, tmp_path / "pattern.npz")
    write_pattern_h5(pattern, tmp_path / "pattern.h5")

    for loaded in (load_pattern_npz(tmp_path / "pattern.npz"), read_pattern_h5(tmp_path / "pattern.h5")):
        assert loaded.metadata['wavelength'] == 0.5
        assert loaded.metadata['element_count'] == 3
        assert loaded.metadata['taper'] == [0.5, 1.0, 0.5]
        assert loaded.metadata == pattern.metadata
