"""
Pattern synthesis: combine an array geometry, element patterns and a sampling grid.

Two combination policies are supported and must always be chosen explicitly:

    pattern multiplication   total(d) = AF(d) * g(d)
    per-element patterns     total(d) = sum_i w_i * g_i(d) * exp(j k p_i . d)

Synthesis validates every input before computing a single sample, splits the
grid into batches and evaluates them on a thread pool. Every batch reads only
immutable inputs and writes its own slice of the result, so the output does
not depend on the number of workers.
"""
import logging
import numbers
import threading
import time
import warnings
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from typing import Iterator, List, Optional, Sequence, Tuple

import numpy as np

from .elements import ElementPattern
from .exceptions import ConfigurationError, GeometryError, NumericalWarning, PatternError, SynthesisCancelled
from .geometry import ArrayGeometry
from .grid import AngularSample, SamplingGrid
from .pattern import Pattern

# Configure logging
logger = logging.getLogger(__name__)


class CombinationPolicy(str, Enum):
    """How element patterns are merged with the array geometry."""
    PATTERN_MULTIPLICATION = 'pattern_multiplication'
    PER_ELEMENT = 'per_element'


class ElementPatternPolicy:
    """
    Element pattern(s) together with the rule that combines them.

    Use ``ElementPatternPolicy.multiplication(pattern)`` when every element
    shares one pattern and orientation, or ``ElementPatternPolicy.per_element(patterns)``
    to give each element its own pattern.

    Args:
        combination: CombinationPolicy (or its string value)
        patterns: Element patterns; exactly one for pattern multiplication

    Raises:
        ConfigurationError: If the combination is unknown, no patterns are given,
            a pattern has no evaluate method, or pattern multiplication is given
            more than one pattern
    """

    def __init__(self, combination: CombinationPolicy, patterns: Sequence[ElementPattern]):
        try:
            combination = CombinationPolicy(combination)
        except ValueError:
            valid = ', '.join(policy.value for policy in CombinationPolicy)
            raise ConfigurationError(f"Invalid combination policy: {combination!r}. Choose from {valid}") from None

        patterns = tuple(patterns)
        if not patterns:
            raise ConfigurationError("At least one element pattern is required")
        for index, pattern in enumerate(patterns):
            if not isinstance(pattern, ElementPattern):
                raise ConfigurationError(f"Element pattern {index} has no evaluate(direction) method: {pattern!r}")
        if combination is CombinationPolicy.PATTERN_MULTIPLICATION and len(patterns) != 1:
            raise ConfigurationError("Pattern multiplication takes exactly one shared element pattern, "
                                     f"got {len(patterns)}; use per_element for distinct patterns")

        self._combination = combination
        self._patterns = patterns

    @classmethod
    def multiplication(cls, pattern: ElementPattern) -> 'ElementPatternPolicy':
        """One pattern shared by every element: total = AF * pattern."""
        return cls(CombinationPolicy.PATTERN_MULTIPLICATION, (pattern,))

    @classmethod
    def per_element(cls, patterns: Sequence[ElementPattern]) -> 'ElementPatternPolicy':
        """One pattern per element, in element order."""
        return cls(CombinationPolicy.PER_ELEMENT, patterns)

    @property
    def combination(self) -> CombinationPolicy:
        return self._combination

    @property
    def patterns(self) -> Tuple[ElementPattern, ...]:
        return self._patterns

    def __repr__(self) -> str:
        return f"ElementPatternPolicy({self._combination.value!r}, patterns={len(self._patterns)})"


@dataclass(frozen=True)
class SynthesisConfig:
    """
    Execution settings for pattern synthesis.

    Attributes:
        max_workers: Worker threads; None lets the thread pool pick, 1 runs inline
        batch_size: Samples evaluated per batch, also the cancellation granularity
        spacing_warning_threshold: Minimum element spacing in wavelengths below
            which a NumericalWarning is attached to the pattern
    """
    max_workers: Optional[int] = None
    batch_size: int = 2048
    spacing_warning_threshold: float = 0.5

    def __post_init__(self):
        workers = self.max_workers
        if workers is not None and (isinstance(workers, bool) or not isinstance(workers, numbers.Integral)
                                    or workers < 1):
            raise ConfigurationError(f"max_workers must be None or at least 1, got {self.max_workers!r}")
        if (isinstance(self.batch_size, bool) or not isinstance(self.batch_size, numbers.Integral)
                or self.batch_size < 1):
            raise ConfigurationError(f"batch_size must be a positive integer, got {self.batch_size!r}")
        if not np.isfinite(self.spacing_warning_threshold) or self.spacing_warning_threshold < 0:
            raise ConfigurationError("spacing_warning_threshold must be non-negative and finite, "
                                     f"got {self.spacing_warning_threshold!r}")


class PatternSynthesizer:
    """
    Computes far-field patterns from a grid, an array geometry and an element pattern policy.

    Args:
        config: Execution settings, defaults to SynthesisConfig()
    """

    def __init__(self, config: Optional[SynthesisConfig] = None):
        self.config = config if config is not None else SynthesisConfig()

    def synthesize(self,
                   grid: SamplingGrid,
                   geometry: ArrayGeometry,
                   policy: ElementPatternPolicy,
                   cancel_event: Optional[threading.Event] = None) -> Pattern:
        """
        Compute the total field for every sample of the grid.

        Args:
            grid: Observation directions
            geometry: Element positions, weights and wavelength
            policy: Element pattern(s) and combination rule
            cancel_event: Optional event; when set, synthesis stops before the next batch

        Returns:
            Pattern: Field values in grid order with synthesis metadata

        Raises:
            GeometryError: If grid is not a SamplingGrid
            ConfigurationError: If geometry or policy are invalid or inconsistent
            SynthesisCancelled: If cancel_event was set before synthesis finished
            PatternError: If an element pattern produced a non-finite gain
        """
        self._validate(grid, geometry, policy)
        messages = self._check_spacing(geometry)

        start_time = time.perf_counter()
        values = np.empty(len(grid), dtype=np.complex128)
        batches = self._batches(len(grid))

        if self.config.max_workers == 1 or len(batches) == 1:
            for start, stop in batches:
                self._run_batch(grid, geometry, policy, values, start, stop, cancel_event)
        else:
            with ThreadPoolExecutor(max_workers=self.config.max_workers) as executor:
                futures = [
                    executor.submit(self._run_batch, grid, geometry, policy, values, start, stop, cancel_event)
                    for start, stop in batches
                ]
                try:
                    for future in futures:
                        future.result()
                except BaseException:
                    for future in futures:
                        future.cancel()
                    raise

        elapsed = time.perf_counter() - start_time
        logger.info(f"Synthesized {len(grid)} samples from {len(geometry)} elements "
                    f"({policy.combination.value}) in {elapsed:.3f} s")

        return Pattern(grid, values, self._metadata(grid, geometry, policy, messages))

    def iter_synthesize(self,
                        grid: SamplingGrid,
                        geometry: ArrayGeometry,
                        policy: ElementPatternPolicy,
                        cancel_event: Optional[threading.Event] = None
                        ) -> Iterator[Tuple[AngularSample, complex]]:
        """
        Compute the pattern lazily, yielding (direction, value) pairs in grid order.

        Inputs are validated when this method is called, before the first pair is
        requested. Batches are computed one at a time, so only one batch of values
        is held in memory.

        Args:
            grid: Observation directions
            geometry: Element positions, weights and wavelength
            policy: Element pattern(s) and combination rule
            cancel_event: Optional event; when set, iteration stops with SynthesisCancelled

        Returns:
            Iterator[Tuple[AngularSample, complex]]: Samples and their field values
        """
        self._validate(grid, geometry, policy)
        self._check_spacing(geometry)
        return self._stream(grid, geometry, policy, cancel_event)

    def _stream(self, grid, geometry, policy, cancel_event):
        for start, stop in self._batches(len(grid)):
            self._check_cancelled(cancel_event)
            values = self._compute_batch(grid, geometry, policy, start, stop)
            for offset, value in enumerate(values):
                yield grid[start + offset], complex(value)

    def _batches(self, count: int) -> List[Tuple[int, int]]:
        size = self.config.batch_size
        return [(start, min(start + size, count)) for start in range(0, count, size)]

    @staticmethod
    def _check_cancelled(cancel_event: Optional[threading.Event]) -> None:
        if cancel_event is not None and cancel_event.is_set():
            raise SynthesisCancelled("Pattern synthesis was cancelled")

    def _run_batch(self, grid, geometry, policy, values, start, stop, cancel_event) -> None:
        self._check_cancelled(cancel_event)
        values[start:stop] = self._compute_batch(grid, geometry, policy, start, stop)
        logger.debug(f"Computed samples {start}..{stop - 1}")

    @staticmethod
    def _compute_batch(grid: SamplingGrid,
                       geometry: ArrayGeometry,
                       policy: ElementPatternPolicy,
                       start: int,
                       stop: int) -> np.ndarray:
        directions = grid.directions[start:stop]
        phase = geometry.phase_terms(directions)

        if policy.combination is CombinationPolicy.PATTERN_MULTIPLICATION:
            array_factor = np.sum(phase * geometry.weights, axis=1)
            values = array_factor * np.asarray(policy.patterns[0].evaluate(directions))
        else:
            # Shared pattern instances are evaluated once
            evaluated = {}
            columns = []
            for pattern in policy.patterns:
                if id(pattern) not in evaluated:
                    evaluated[id(pattern)] = np.asarray(pattern.evaluate(directions))
                columns.append(evaluated[id(pattern)])
            element_gains = np.column_stack(columns)
            values = np.sum(element_gains * phase * geometry.weights, axis=1)

        if not np.all(np.isfinite(values)):
            bad = start + int(np.argmin(np.isfinite(values)))
            raise PatternError(f"Non-finite field at sample {bad}; check the element pattern(s) "
                               f"{list(policy.patterns)}")
        return values

    @staticmethod
    def _validate(grid: SamplingGrid, geometry: ArrayGeometry, policy: ElementPatternPolicy) -> None:
        if not isinstance(grid, SamplingGrid):
            raise GeometryError(f"Expected a SamplingGrid, got {type(grid).__name__}")
        if not isinstance(geometry, ArrayGeometry):
            raise ConfigurationError(f"Expected an ArrayGeometry, got {type(geometry).__name__}")
        if not isinstance(policy, ElementPatternPolicy):
            raise ConfigurationError("An explicit ElementPatternPolicy is required, "
                                     f"got {type(policy).__name__}")
        if policy.combination is CombinationPolicy.PER_ELEMENT and len(policy.patterns) != len(geometry):
            raise ConfigurationError(f"Per-element combination needs one pattern per element: "
                                     f"{len(geometry)} elements, {len(policy.patterns)} patterns")

    def _check_spacing(self, geometry: ArrayGeometry) -> List[str]:
        messages = []
        threshold = self.config.spacing_warning_threshold
        spacing = geometry.min_spacing() / geometry.wavelength
        if spacing < threshold:
            message = (f"Minimum element spacing is {spacing:.3f} wavelengths, below "
                       f"{threshold} wavelengths; the pattern may show aliasing")
            messages.append(message)
            logger.warning(message)
            warnings.warn(message, NumericalWarning, stacklevel=3)
        return messages

    @staticmethod
    def _metadata(grid, geometry, policy, messages):
        return {
            'wavelength': geometry.wavelength,
            'frequency': geometry.frequency,
            'combination_policy': policy.combination.value,
            'pole_policy': grid.pole_policy,
            'element_count': len(geometry),
            'sample_count': len(grid),
            'angle_units': 'radians',
            'units': 'linear field',
            'warnings': list(messages),
        }


def synthesize(grid: SamplingGrid,
               geometry: ArrayGeometry,
               policy: ElementPatternPolicy,
               config: Optional[SynthesisConfig] = None,
               cancel_event: Optional[threading.Event] = None) -> Pattern:
    """Synthesize a pattern with a one-off PatternSynthesizer. See ``PatternSynthesizer.synthesize``."""
    return PatternSynthesizer(config).synthesize(grid, geometry, policy, cancel_event=cancel_event)


def iter_synthesize(grid: SamplingGrid,
                    geometry: ArrayGeometry,
                    policy: ElementPatternPolicy,
                    config: Optional[SynthesisConfig] = None,
                    cancel_event: Optional[threading.Event] = None) -> Iterator[Tuple[AngularSample, complex]]:
    """Stream a pattern sample by sample. See ``PatternSynthesizer.iter_synthesize``."""
    return PatternSynthesizer(config).iter_synthesize(grid, geometry, policy, cancel_event=cancel_event)
