"""
array_pattern package - Far-field pattern synthesis for antenna elements and phased arrays.

This package builds sampling grids, element radiation models and array
geometries, and combines them into immutable Pattern results that can be
analysed, plotted and saved.
"""

__version__ = '0.1.0'

# Import key classes and functions to make them available at the package level
from .exceptions import (
    PatternError,
    ConfigurationError,
    GeometryError,
    SynthesisCancelled,
    NumericalWarning
)
from .grid import AngularSample, SamplingGrid
from .elements import (
    ElementPattern,
    IsotropicElement,
    DipoleElement,
    PatchElement,
    TabulatedElement
)
from .geometry import (
    ArrayElement,
    ArrayGeometry,
    linear_array,
    rectangular_array
)
from .pattern import Pattern
from .synthesis import (
    CombinationPolicy,
    ElementPatternPolicy,
    SynthesisConfig,
    PatternSynthesizer,
    synthesize,
    iter_synthesize
)
from .analysis import (
    calculate_directivity,
    find_peak,
    half_power_beamwidth
)
from .pattern_io import (
    save_pattern_npz,
    load_pattern_npz,
    write_pattern_h5,
    read_pattern_h5
)
from .utilities import (
    find_nearest,
    frequency_to_wavelength,
    wavelength_to_frequency,
    lightspeed,
    db_to_linear,
    linear_to_db,
    spherical_to_cartesian,
    cartesian_to_spherical
)
from .plotting import (
    plot_pattern_cut,
    plot_pattern_2d
)

# Define what gets imported with "from array_pattern import *"
__all__ = [
    'PatternError',
    'ConfigurationError',
    'GeometryError',
    'SynthesisCancelled',
    'NumericalWarning',
    'AngularSample',
    'SamplingGrid',
    'ElementPattern',
    'IsotropicElement',
    'DipoleElement',
    'PatchElement',
    'TabulatedElement',
    'ArrayElement',
    'ArrayGeometry',
    'linear_array',
    'rectangular_array',
    'Pattern',
    'CombinationPolicy',
    'ElementPatternPolicy',
    'SynthesisConfig',
    'PatternSynthesizer',
    'synthesize',
    'iter_synthesize',
    'calculate_directivity',
    'find_peak',
    'half_power_beamwidth',
    'save_pattern_npz',
    'load_pattern_npz',
    'write_pattern_h5',
    'read_pattern_h5',
    'find_nearest',
    'frequency_to_wavelength',
    'wavelength_to_frequency',
    'lightspeed',
    'db_to_linear',
    'linear_to_db',
    'spherical_to_cartesian',
    'cartesian_to_spherical',
    'plot_pattern_cut',
    'plot_pattern_2d'
]
