#!/usr/bin/env python3
"""
Basic Array Pattern Synthesis Tutorial

This tutorial demonstrates the fundamental operations of the array_pattern package:
- Building a sampling grid and an array geometry
- Choosing element patterns and a combination policy
- Synthesizing, analysing and plotting the pattern
- Saving the result to NPZ and HDF5

The last section shows how to cancel a long-running synthesis from another thread.
"""

from array_pattern import (
    SamplingGrid, DipoleElement, PatchElement, ElementPatternPolicy, SynthesisConfig,
    SynthesisCancelled, linear_array, rectangular_array, synthesize, iter_synthesize,
    calculate_directivity, half_power_beamwidth, find_peak,
    plot_pattern_cut, plot_pattern_2d, save_pattern_npz, write_pattern_h5
)
import logging
import threading
import matplotlib.pyplot as plt
import numpy as np
from pathlib import Path

logging.basicConfig(level=logging.INFO, format='%(name)s - %(levelname)s - %(message)s')


def print_section_header(title):
    """Print a formatted section header."""
    print("\n" + "="*60)
    print(f"{title}")
    print("="*60)


def print_pattern_info(pattern, name="Pattern"):
    """Print basic information about a pattern."""
    peak_db, peak_theta, peak_phi = calculate_directivity(pattern)
    print(f"\n{name} Information:")
    print(f"  Samples: {len(pattern)}")
    print(f"  Frequency: {pattern.frequency / 1e9:.3f} GHz")
    print(f"  Combination: {pattern.metadata['combination_policy']}")
    print(f"  Peak directivity: {peak_db:.2f} dBi at theta={peak_theta:.1f}°, phi={peak_phi:.1f}°")
    for warning in pattern.warnings:
        print(f"  Warning: {warning}")


output_dir = Path(__file__).parent / 'output'
output_dir.mkdir(exist_ok=True)

frequency = 10e9
wavelength = 299792458 / frequency
grid = SamplingGrid.sphere(theta_steps=181, phi_steps=72)

# ============================================================================
print_section_header("TUTORIAL 1: LINEAR ARRAY OF HALF-WAVE DIPOLES")
# ============================================================================
array = linear_array(8, spacing=wavelength / 2, wavelength=wavelength, axis='x')
dipole = DipoleElement(axis=(0, 1, 0), kind='half_wave')
pattern = synthesize(grid, array, ElementPatternPolicy.multiplication(dipole))
print_pattern_info(pattern, "Broadside Dipole Array")
print(f"  HPBW (phi=0°): {half_power_beamwidth(pattern, phi=0.0):.1f}°")

# ============================================================================
print_section_header("TUTORIAL 2: STEERED PLANAR ARRAY OF PATCHES")
# ============================================================================
planar = rectangular_array(4, 4, wavelength / 2, wavelength / 2, wavelength=wavelength)
steered = planar.steered(np.radians(30.0), np.radians(0.0))
patch = PatchElement(length=0.49 * wavelength, width=0.6 * wavelength, wavelength=wavelength)
steered_pattern = synthesize(grid, steered, ElementPatternPolicy.multiplication(patch),
                             SynthesisConfig(max_workers=4, batch_size=1024))
print_pattern_info(steered_pattern, "Steered Patch Array")
peak = find_peak(steered_pattern)
print(f"  Peak field {peak['magnitude']:.2f} at theta={peak['theta_deg']:.1f}°")

fig = plot_pattern_cut(steered_pattern, phi=[0.0, 90.0])
fig.savefig(output_dir / 'steered_patch_cuts.png')
fig = plot_pattern_2d(steered_pattern)
fig.savefig(output_dir / 'steered_patch_map.png')
plt.close('all')

save_pattern_npz(steered_pattern, output_dir / 'steered_patch.npz')
write_pattern_h5(steered_pattern, output_dir / 'steered_patch.h5')

# ============================================================================
print_section_header("TUTORIAL 3: STREAMING AND CANCELLATION")
# ============================================================================
cancel = threading.Event()
count = 0
try:
    for sample, value in iter_synthesize(grid, steered, ElementPatternPolicy.multiplication(patch),
                                         SynthesisConfig(batch_size=500), cancel_event=cancel):
        count += 1
        if count == 1000:
            cancel.set()
except SynthesisCancelled:
    print(f"✓ Stream cancelled after {count} samples")
