"""
Tests for array geometry and the array factor.
"""
import tracemalloc

import numpy as np
import pytest

from array_pattern import (
    ArrayElement, ArrayGeometry, ConfigurationError, GeometryError, lightspeed,
    linear_array, rectangular_array, spherical_to_cartesian
)


def test_empty_geometry_rejected():
    """An array needs at least one element."""
    with pytest.raises(ConfigurationError):
        ArrayGeometry([], wavelength=1.0)


@pytest.mark.parametrize("wavelength", [0.0, -0.5, np.nan, np.inf, "long"])
def test_invalid_wavelength(wavelength):
    """The wavelength must be a positive, finite number."""
    with pytest.raises(ConfigurationError):
        ArrayGeometry([((0, 0, 0), 1.0)], wavelength=wavelength)


@pytest.mark.parametrize("elements", [
    [((0, 0), 1.0)],
    [((0, 0, np.nan), 1.0)],
    [((0, 0, 0), complex(np.inf, 0))],
    [(0, 0, 0)],
])
def test_invalid_elements(elements):
    """Positions must be finite 3-vectors and weights finite complex numbers."""
    with pytest.raises(ConfigurationError):
        ArrayGeometry(elements, wavelength=1.0)


def test_invalid_units():
    """Only meters and wavelengths are accepted as position units."""
    with pytest.raises(ConfigurationError):
        ArrayGeometry([((0, 0, 0), 1.0)], wavelength=1.0, units='furlongs')


def test_positions_in_wavelengths():
    """Positions given in wavelengths are stored in meters."""
    geometry = ArrayGeometry([((0.5, 0, 0), 1.0), ((0, 0.25, 0), 1j)], wavelength=0.2, units='wavelengths')

    np.testing.assert_allclose(geometry.positions, [[0.1, 0, 0], [0, 0.05, 0]])
    np.testing.assert_allclose(geometry.positions_in_wavelengths, [[0.5, 0, 0], [0, 0.25, 0]])
    np.testing.assert_array_equal(geometry.weights, [1.0, 1j])


def test_from_frequency():
    """Building from a frequency uses wavelength = c / f."""
    geometry = ArrayGeometry.from_frequency([((0, 0, 0), 1.0)], frequency=1e9)

    assert geometry.wavelength == pytest.approx(lightspeed / 1e9)
    assert geometry.frequency == pytest.approx(1e9)
    assert geometry.wavenumber == pytest.approx(2 * np.pi * 1e9 / lightspeed)

    with pytest.raises(ConfigurationError):
        ArrayGeometry.from_frequency([((0, 0, 0), 1.0)], frequency=-1.0)


def test_element_access():
    """Elements come back in insertion order as ArrayElement tuples."""
    geometry = ArrayGeometry.build([ArrayElement((1.0, 2.0, 3.0), 0.5), ((0, 0, 1), 2j)], wavelength=1.0)

    assert len(geometry) == 2
    assert geometry[0] == ArrayElement((1.0, 2.0, 3.0), 0.5 + 0j)
    assert [element.weight for element in geometry] == [0.5, 2j]


def test_geometry_is_read_only():
    """Stored positions and weights cannot be modified in place."""
    geometry = linear_array(3, 0.5, wavelength=1.0)

    with pytest.raises(ValueError):
        geometry.positions[0, 0] = 1.0
    with pytest.raises(ValueError):
        geometry.weights[0] = 0.0


def test_collocated_array_factor():
    """N collocated unit-weight elements give an array factor of N everywhere."""
    geometry = ArrayGeometry([((0.1, 0.2, 0.3), 1.0)] * 5, wavelength=0.7)
    directions = spherical_to_cartesian(np.linspace(0, np.pi, 7), np.linspace(0, 2 * np.pi, 7))

    af = geometry.array_factor(directions)
    np.testing.assert_allclose(np.abs(af), 5.0, atol=1e-12)


def test_half_wavelength_pair():
    """A half-wavelength pair adds in phase broadside and cancels end-fire."""
    geometry = linear_array(2, 0.5, wavelength=1.0)

    assert abs(geometry.array_factor([0.0, 0.0, 1.0])) == pytest.approx(2.0)
    assert abs(geometry.array_factor([0.0, 1.0, 0.0])) == pytest.approx(2.0)
    assert abs(geometry.array_factor([1.0, 0.0, 0.0])) == pytest.approx(0.0, abs=1e-12)


def test_array_factor_rejects_invalid_direction():
    """The array factor validates its directions."""
    geometry = linear_array(2, 0.5, wavelength=1.0)
    with pytest.raises(GeometryError):
        geometry.array_factor([0.0, 0.0, 2.0])


def test_steering():
    """A steered array reaches its full coherent sum toward the steering direction."""
    geometry = linear_array(4, 0.5, wavelength=1.0)
    theta, phi = np.radians(30.0), 0.0
    steered = geometry.steered(theta, phi)

    target = spherical_to_cartesian(theta, phi)
    assert abs(steered.array_factor(target)) == pytest.approx(4.0)
    assert abs(geometry.array_factor(target)) < 4.0
    np.testing.assert_allclose(np.abs(steered.weights), 1.0)


def test_with_weights():
    """Replacing weights keeps positions and checks the count."""
    geometry = linear_array(3, 0.5, wavelength=1.0)
    tapered = geometry.with_weights([0.5, 1.0, 0.5])

    np.testing.assert_array_equal(tapered.positions, geometry.positions)
    np.testing.assert_array_equal(tapered.weights, [0.5, 1.0, 0.5])
    with pytest.raises(ConfigurationError):
        geometry.with_weights([1.0, 1.0])


def test_min_spacing():
    """Minimum spacing is the smallest pairwise distance."""
    assert linear_array(3, 0.1, wavelength=1.0).min_spacing() == pytest.approx(0.1)
    assert rectangular_array(2, 2, 0.3, 0.2, wavelength=1.0).min_spacing() == pytest.approx(0.2)
    assert linear_array(1, 0.0, wavelength=1.0).min_spacing() == float('inf')


def test_linear_array_layout():
    """Linear arrays are centred on the origin along the chosen axis."""
    geometry = linear_array(4, 0.5, wavelength=1.0, axis='y', weights=[1, 2, 3, 4])

    np.testing.assert_allclose(geometry.positions[:, 1], [-0.75, -0.25, 0.25, 0.75])
    np.testing.assert_array_equal(geometry.positions[:, [0, 2]], 0.0)
    np.testing.assert_array_equal(geometry.weights, [1, 2, 3, 4])


def test_rectangular_array_layout():
    """Planar arrays are centred, lie in the xy-plane and are ordered x-major."""
    geometry = rectangular_array(2, 3, 0.5, 0.4, wavelength=1.0)

    assert len(geometry) == 6
    np.testing.assert_allclose(geometry.positions.mean(axis=0), 0.0, atol=1e-12)
    np.testing.assert_allclose(geometry.positions[:3, 0], -0.25)
    np.testing.assert_allclose(geometry.positions[:3, 1], [-0.4, 0.0, 0.4])


@pytest.mark.parametrize("kwargs", [
    dict(n=0, spacing=0.5, wavelength=1.0),
    dict(n=2.5, spacing=0.5, wavelength=1.0),
    dict(n=3, spacing=0.0, wavelength=1.0),
    dict(n=3, spacing=0.5, wavelength=1.0, axis='w'),
    dict(n=3, spacing=0.5, wavelength=1.0, weights=[1, 1]),
])
def test_linear_array_invalid(kwargs):
    """Invalid counts, spacings, axes and weight lengths are rejected."""
    with pytest.raises(ConfigurationError):
        linear_array(**kwargs)


def test_min_spacing_large_array_memory():
    """Spacing of a large planar array is found without the full pairwise distance matrix."""
    geometry = rectangular_array(100, 100, 0.5, 0.4, wavelength=1.0)

    tracemalloc.start()
    try:
        spacing = geometry.min_spacing()
        _, peak = tracemalloc.get_traced_memory()
    finally:
        tracemalloc.stop()

    assert spacing == pytest.approx(0.4)
    # A full matrix for 10000 elements would need about 400 MB
    assert peak < 50 * 1024 ** 2


def test_min_spacing_collocated():
    """Collocated elements have zero spacing."""
    geometry = ArrayGeometry([((0, 0, 0), 1.0), ((1, 0, 0), 1.0), ((0, 0, 0), 1.0)], wavelength=1.0)
    assert geometry.min_spacing() == 0.0
