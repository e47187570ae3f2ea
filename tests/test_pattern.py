"""
Tests for Pattern results and pattern analysis.
"""
import numpy as np
import pytest

from array_pattern import (
    AngularSample, DipoleElement, ElementPatternPolicy, IsotropicElement, Pattern, SamplingGrid,
    calculate_directivity, find_peak, half_power_beamwidth, linear_array, synthesize
)
from array_pattern.pattern import POWER_DB_FLOOR


@pytest.fixture
def dipole_pattern():
    """Short z-dipole over the whole sphere at 1 degree theta resolution."""
    grid = SamplingGrid.sphere(theta_steps=181, phi_steps=72)
    geometry = linear_array(1, 0.0, wavelength=1.0)
    return synthesize(grid, geometry, ElementPatternPolicy.multiplication(DipoleElement()))


def test_value_count_must_match_grid():
    """A pattern needs exactly one value per grid sample."""
    grid = SamplingGrid.sphere(3, 4)
    with pytest.raises(ValueError):
        Pattern(grid, np.ones(5))


def test_sample_access():
    """Samples pair a direction with its complex value, in grid order."""
    grid = SamplingGrid.sphere(3, 4)
    values = np.arange(12) * (1 + 1j)
    pattern = Pattern(grid, values)

    sample, value = pattern.at(5)
    assert isinstance(sample, AngularSample)
    assert sample.theta == grid.theta[5]
    assert value == 5 + 5j
    assert pattern.sample_count() == 12
    assert [v for _, v in pattern] == list(values)
    with pytest.raises(IndexError):
        pattern.at(12)


def test_values_are_read_only():
    """Pattern values cannot be modified, and do not alias the caller's array."""
    grid = SamplingGrid.sphere(3, 4)
    values = np.ones(12, dtype=complex)
    pattern = Pattern(grid, values)

    with pytest.raises(ValueError):
        pattern.values[0] = 0
    values[0] = 7
    assert pattern.values[0] == 1


def test_metadata_is_copied():
    """Changing returned metadata does not change the pattern."""
    grid = SamplingGrid.sphere(3, 4)
    pattern = Pattern(grid, np.ones(12), {'wavelength': 0.5})

    metadata = pattern.metadata
    metadata['wavelength'] = 99.0
    metadata['warnings'].append('tampered')

    assert pattern.wavelength == 0.5
    assert pattern.warnings == ()


def test_magnitude_phase_and_power():
    """Scalar views are derived from the complex values."""
    grid = SamplingGrid.build((0.1, 1.0), (0.0, 1.0), 2, 2)
    pattern = Pattern(grid, [2.0, 1j, -1.0, 0.0])

    np.testing.assert_allclose(pattern.magnitude(), [2.0, 1.0, 1.0, 0.0])
    np.testing.assert_allclose(pattern.phase(degrees=True), [0.0, 90.0, 180.0, 0.0])
    np.testing.assert_allclose(pattern.power_db(), [0.0, -6.0206, -6.0206, POWER_DB_FLOOR], atol=1e-4)


def test_power_of_zero_pattern():
    """A pattern with no field anywhere is at the floor everywhere."""
    grid = SamplingGrid.sphere(3, 4)
    power = Pattern(grid, np.zeros(12)).power_db()

    assert np.all(power == POWER_DB_FLOOR)


def test_to_dataset():
    """The dataset lays values out on the theta x phi rectangle in degrees."""
    grid = SamplingGrid.sphere(3, 4)
    pattern = Pattern(grid, np.arange(12), {'wavelength': 0.5, 'combination_policy': 'per_element'})
    dataset = pattern.to_dataset()

    assert dataset.field.shape == (3, 4)
    np.testing.assert_allclose(dataset.theta.values, [0, 90, 180])
    np.testing.assert_allclose(dataset.phi.values, [0, 90, 180, 270])
    np.testing.assert_array_equal(dataset.field.values, np.arange(12).reshape(3, 4))
    assert dataset.attrs['wavelength'] == 0.5
    assert 'warnings' not in dataset.attrs


def test_to_dataset_broadcasts_collapsed_poles():
    """Collapsed pole values are repeated across every phi."""
    grid = SamplingGrid.sphere(3, 4, pole_policy='collapse')
    pattern = Pattern(grid, [10.0, 1.0, 2.0, 3.0, 4.0, 20.0])
    field = pattern.to_dataset().field.values

    np.testing.assert_array_equal(field[0], 10.0)
    np.testing.assert_array_equal(field[1], [1.0, 2.0, 3.0, 4.0])
    np.testing.assert_array_equal(field[2], 20.0)


def test_peak():
    """The peak is the first sample with the largest magnitude."""
    grid = SamplingGrid.sphere(3, 4)
    values = np.ones(12)
    values[6] = -3.0
    pattern = Pattern(grid, values)

    assert pattern.peak_index() == 6
    peak = find_peak(pattern)
    assert peak['index'] == 6
    assert peak['magnitude'] == 3.0
    assert peak['theta_deg'] == pytest.approx(90.0)
    assert peak['phi_deg'] == pytest.approx(180.0)


def test_isotropic_directivity():
    """An isotropic radiator has 0 dBi directivity."""
    grid = SamplingGrid.sphere(theta_steps=91, phi_steps=36)
    geometry = linear_array(1, 0.0, wavelength=1.0)
    pattern = synthesize(grid, geometry, ElementPatternPolicy.multiplication(IsotropicElement()))

    peak_db, _, _ = calculate_directivity(pattern)
    assert peak_db == pytest.approx(0.0, abs=0.01)
    assert calculate_directivity(pattern, theta=45.0, phi=10.0) == pytest.approx(0.0, abs=0.01)


def test_short_dipole_directivity(dipole_pattern):
    """A short dipole has 1.76 dBi directivity broadside."""
    peak_db, peak_theta, _ = calculate_directivity(dipole_pattern)

    assert peak_db == pytest.approx(10 * np.log10(1.5), abs=0.01)
    assert peak_theta == pytest.approx(90.0)


def test_collapsed_grid_directivity():
    """Collapsed and redundant pole policies give the same directivity."""
    geometry = linear_array(1, 0.0, wavelength=1.0)
    policy = ElementPatternPolicy.multiplication(DipoleElement(axis=(1, 0, 0)))
    redundant = synthesize(SamplingGrid.sphere(91, 72), geometry, policy)
    collapsed = synthesize(SamplingGrid.sphere(91, 72, pole_policy='collapse'), geometry, policy)

    assert calculate_directivity(collapsed)[0] == pytest.approx(calculate_directivity(redundant)[0], abs=1e-9)


def test_directivity_needs_full_sphere():
    """Directivity is undefined on a partial grid."""
    grid = SamplingGrid.build((0.0, np.pi / 2), (0.0, 2 * np.pi), 10, 8)
    pattern = Pattern(grid, np.ones(80))

    with pytest.raises(ValueError):
        calculate_directivity(pattern)


def test_short_dipole_beamwidth(dipole_pattern):
    """A short dipole has a 90 degree half-power beamwidth."""
    assert half_power_beamwidth(dipole_pattern) == pytest.approx(90.0, abs=0.5)


def test_half_wave_dipole_beamwidth():
    """A half-wave dipole has a 78 degree half-power beamwidth."""
    grid = SamplingGrid.sphere(theta_steps=361, phi_steps=4)
    geometry = linear_array(1, 0.0, wavelength=1.0)
    pattern = synthesize(grid, geometry, ElementPatternPolicy.multiplication(DipoleElement(kind='half_wave')))

    assert half_power_beamwidth(pattern, phi=0.0) == pytest.approx(78.0, abs=1.0)


def test_beamwidth_of_zero_cut():
    """A cut with no field has no beamwidth."""
    grid = SamplingGrid.sphere(5, 4)
    with pytest.raises(ValueError):
        half_power_beamwidth(Pattern(grid, np.zeros(20)))


def test_metadata_numpy_values_become_builtin():
    """Numpy scalars and arrays in metadata are stored as built-in Python values."""
    grid = SamplingGrid.sphere(3, 4)
    pattern = Pattern(grid, np.ones(12), {'wavelength': np.float64(0.5), 'weights': np.arange(3)})
    metadata = pattern.metadata

    assert type(metadata['wavelength']) is float
    assert metadata['weights'] == [0, 1, 2]
    assert all(type(w) is int for w in metadata['weights'])
