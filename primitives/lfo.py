"""Wavetable LFO — sine modulation source for delay-time sweeps.

One period of a sine is precomputed into a CircularBuffer and read back by
phase (truncating lookup, no interpolation). Phase advances once per tick and
persists across calls, so modulation is continuous across audio blocks.
"""

import math

import numpy as np
from numba import njit

from primitives.circular_buffer import CircularBuffer


@njit(cache=True)
def lfo_tick(table, phase, increment, amplitude):
    """Read the table at `phase`, then advance.

    Returns (value, new_phase). The phase wraps with a single subtraction,
    so increments of 1.0 or more (frequency >= sample rate) are not folded
    back fully. LFO rates sit far below that.
    """
    size = len(table)
    idx = int(phase * size) % size
    value = table[idx] * amplitude
    phase += increment
    if phase >= 1.0:
        phase -= 1.0
    return value, phase


class LFO:
    """Low-frequency sine oscillator.

    value = amplitude * sin(2*pi*phase), phase in [0, 1)
    """

    def __init__(self, frequency: float, amplitude: float, sample_rate: float,
                 wavetable_size: int = 1024):
        if not (math.isfinite(sample_rate) and sample_rate > 0):
            raise ValueError(f"sample_rate must be positive, got {sample_rate}")
        if wavetable_size <= 0:
            raise ValueError(f"wavetable_size must be positive, got {wavetable_size}")
        if not math.isfinite(frequency):
            raise ValueError(f"frequency must be finite, got {frequency}")
        self.wavetable = CircularBuffer(wavetable_size, dtype=np.float32)
        for i in range(wavetable_size):
            self.wavetable.push(np.sin(2.0 * np.pi * i / wavetable_size))
        self.sample_rate = float(sample_rate)
        self.phase_increment = frequency / self.sample_rate
        self.phase = 0.0
        self.amplitude = float(amplitude)

    def tick(self) -> float:
        value, self.phase = lfo_tick(self.wavetable.buffer, self.phase,
                                     self.phase_increment, self.amplitude)
        return float(value)

    def reset(self):
        """Rewind the phase. Wavetable and amplitude are kept."""
        self.phase = 0.0

    def set_frequency(self, frequency: float):
        if not math.isfinite(frequency):
            raise ValueError(f"frequency must be finite, got {frequency}")
        self.phase_increment = frequency / self.sample_rate

    def get_frequency(self) -> float:
        return self.phase_increment * self.sample_rate

    def set_amplitude(self, amplitude: float):
        self.amplitude = float(amplitude)

    def get_amplitude(self) -> float:
        return self.amplitude

    def get_phase(self) -> float:
        return self.phase

    def set_sample_rate(self, sample_rate: float):
        """Change the tick rate, keeping the frequency in Hz."""
        if not (math.isfinite(sample_rate) and sample_rate > 0):
            raise ValueError(f"sample_rate must be positive, got {sample_rate}")
        frequency = self.get_frequency()
        self.sample_rate = float(sample_rate)
        self.set_frequency(frequency)
