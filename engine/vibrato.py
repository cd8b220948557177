"""Vibrato — delay line read through an LFO-swept fractional tap.

Per channel, per sample:
    1. push x[n] into the channel's delay line
    2. m = lfo.tick()                                  (in [-amplitude, amplitude])
    3. tap = 1 + delay*sr + depth*sr*m                 (1 = newest sample)
    4. y[n] = linear interpolation at `tap` samples behind the write cursor

The line holds the base delay plus twice the modulation depth plus two slots,
so the deepest interpolated read never wraps onto fresh samples. depth <= delay
keeps the shallowest tap at or behind the newest sample.
"""

import logging
import math
from enum import Enum

import numpy as np
from numba import njit

from engine.errors import InvalidConfiguration, InvalidValue
from engine.params import SR, VIBRATO_SCHEMA
from primitives.circular_buffer import (
    CircularBuffer, READ, WRITE, buffer_get_frac, buffer_push,
)
from primitives.lfo import LFO, lfo_tick
from shared.render import render_blocks

log = logging.getLogger(__name__)


class VibratoParam(Enum):
    SAMPLE_RATE = "sample_rate"
    DELAY = "delay"
    DEPTH = "depth"
    MODULATION_FREQUENCY = "mod_freq"


@njit(cache=True)
def _process_block_vibrato(x, y, buf, cursors, table, phase, phase_inc, amplitude,
                           delay_samples, depth_samples):
    """Returns the LFO phase after the block."""
    for n in range(len(x)):
        buffer_push(buf, cursors, x[n])
        mod, phase = lfo_tick(table, phase, phase_inc, amplitude)
        tap = 1.0 + delay_samples + depth_samples * mod
        # tap counts back from the write cursor; get_frac counts forward
        # from the read cursor and wraps negative offsets
        y[n] = buffer_get_frac(buf, cursors, cursors[WRITE] - cursors[READ] - tap)
    return phase


def _line_length(delay: float, depth: float, sample_rate: float) -> int:
    """Slots needed for the base delay plus the full modulation excursion."""
    delay_samples = int(round(delay * sample_rate))
    depth_samples = int(round(depth * sample_rate))
    return max(2 + delay_samples + 2 * depth_samples,
               _deepest_read(delay, depth, sample_rate) + 1)


def _deepest_read(delay: float, depth: float, sample_rate: float) -> int:
    """Furthest slot behind the newest sample that interpolation touches."""
    return int(math.floor((delay + depth) * sample_rate)) + 1


class Vibrato:
    """Multi-channel vibrato: one delay line and one LFO per channel.

    Channels share parameters but advance independently. Lines are sized
    once at construction; later changes that would need a longer line are
    rejected with InvalidConfiguration.
    """

    def __init__(self, sample_rate: float, delay: float, depth: float,
                 mod_freq: float, amplitude: float = 1.0,
                 wavetable_size: int = 1024, num_channels: int = 1):
        if not all(math.isfinite(v) for v in (sample_rate, delay, depth, mod_freq)):
            raise InvalidConfiguration(
                f"sample rate, delay, depth and modulation frequency must be finite, "
                f"got {sample_rate}, {delay}, {depth}, {mod_freq}")
        if sample_rate <= 0:
            raise InvalidConfiguration(f"sample rate must be positive, got {sample_rate}")
        if delay < 0 or depth < 0:
            raise InvalidConfiguration(f"delay and depth must be >= 0, got {delay}, {depth}")
        if depth > delay:
            raise InvalidConfiguration(
                f"depth ({depth}s) must not exceed delay ({delay}s)")
        if not 0.0 <= amplitude <= 1.0:
            raise InvalidConfiguration(f"LFO amplitude must be in [0, 1], got {amplitude}")
        if mod_freq < 0:
            raise InvalidConfiguration(f"modulation frequency must be >= 0, got {mod_freq}")
        if wavetable_size <= 0:
            raise InvalidConfiguration(f"wavetable size must be positive, got {wavetable_size}")
        if num_channels < 1:
            raise InvalidConfiguration(f"need at least one channel, got {num_channels}")

        self.sample_rate = float(sample_rate)
        self.delay = float(delay)
        self.depth = float(depth)
        self.num_channels = int(num_channels)
        length = _line_length(self.delay, self.depth, self.sample_rate)
        self.delay_lines = [CircularBuffer(length) for _ in range(self.num_channels)]
        self.lfos = [LFO(mod_freq, amplitude, self.sample_rate, wavetable_size)
                     for _ in range(self.num_channels)]
        log.debug("vibrato: %d ch, line %d samples, delay %.4fs depth %.4fs @ %.2f Hz",
                  self.num_channels, length, self.delay, self.depth, mod_freq)

    @classmethod
    def from_params(cls, params: dict, sample_rate: float, num_channels: int = 1):
        """Build from a params dict (see engine/params.py)."""
        p = VIBRATO_SCHEMA.resolve(params)
        return cls(sample_rate, p["delay"], p["depth"], p["mod_freq"],
                   p["amplitude"], p["wavetable_size"], num_channels)

    @property
    def line_length(self) -> int:
        return self.delay_lines[0].capacity

    def reset(self):
        """Clear delay lines and rewind LFOs. Parameters are kept."""
        for dl in self.delay_lines:
            dl.reset()
        for lfo in self.lfos:
            lfo.reset()

    def process(self, inputs) -> np.ndarray:
        """Process one block of per-channel samples.

        State carries over between calls, so splitting a stream into blocks
        of any size gives the same output as one long block.

        Returns:
            float32 (channels, samples)
        """
        if len(inputs) != self.num_channels:
            raise ValueError(f"expected {self.num_channels} channels, got {len(inputs)}")
        outputs = np.zeros((self.num_channels, len(inputs[0])), dtype=np.float32)
        delay_samples = self.delay * self.sample_rate
        depth_samples = self.depth * self.sample_rate

        for ch in range(self.num_channels):
            x = np.ascontiguousarray(inputs[ch], dtype=np.float32)
            if len(x) != outputs.shape[1]:
                raise ValueError(f"channel {ch}: length {len(x)} != {outputs.shape[1]}")
            dl = self.delay_lines[ch]
            lfo = self.lfos[ch]
            lfo.phase = _process_block_vibrato(
                x, outputs[ch], dl.buffer, dl.cursors, lfo.wavetable.buffer,
                lfo.phase, lfo.phase_increment, lfo.amplitude,
                delay_samples, depth_samples,
            )
        return outputs

    def _check_fits(self, delay: float, depth: float, sample_rate: float):
        if _deepest_read(delay, depth, sample_rate) > self.line_length - 1:
            raise InvalidConfiguration(
                f"delay {delay}s + depth {depth}s at {sample_rate} Hz needs "
                f"{_line_length(delay, depth, sample_rate)} samples, "
                f"line holds {self.line_length}")

    def set_param(self, param: VibratoParam, value: float):
        """Update one parameter.

        Raises InvalidValue when the value breaks depth <= delay or its own
        domain, InvalidConfiguration when the allocated line is too short
        for it. Nothing changes on failure.
        """
        param = VibratoParam(param)
        value = float(value)
        if not math.isfinite(value):
            raise InvalidValue(param, value, "must be finite")

        if param is VibratoParam.SAMPLE_RATE:
            if not value > 0:
                raise InvalidValue(param, value, "sample rate must be positive")
            self._check_fits(self.delay, self.depth, value)
            self.sample_rate = value
            for lfo in self.lfos:
                lfo.set_sample_rate(value)

        elif param is VibratoParam.DELAY:
            if not value >= self.depth:
                raise InvalidValue(param, value,
                                   f"delay must be >= depth ({self.depth}s)")
            self._check_fits(value, self.depth, self.sample_rate)
            self.delay = value

        elif param is VibratoParam.DEPTH:
            if not 0.0 <= value <= self.delay:
                raise InvalidValue(param, value,
                                   f"depth must be in [0, delay ({self.delay}s)]")
            self._check_fits(self.delay, value, self.sample_rate)
            self.depth = value

        else:
            if not value >= 0:
                raise InvalidValue(param, value, "modulation frequency must be >= 0")
            for lfo in self.lfos:
                lfo.set_frequency(value)

        log.debug("vibrato %s -> %g", param.value, value)

    def get_param(self, param: VibratoParam) -> float:
        param = VibratoParam(param)
        if param is VibratoParam.SAMPLE_RATE:
            return self.sample_rate
        if param is VibratoParam.DELAY:
            return self.delay
        if param is VibratoParam.DEPTH:
            return self.depth
        return self.lfos[0].get_frequency()


def render_vibrato(input_audio: np.ndarray, params: dict, sample_rate: float = None,
                   chunk_callback=None, chunk_size=4096) -> np.ndarray:
    """Offline entry point: build a vibrato from `params` and run it.

    Args:
        input_audio: float array -- mono (samples,) or (samples, channels)
        params: parameter dict (see engine/params.py); missing keys take defaults
        sample_rate: Hz (default engine.params.SR)
        chunk_callback: called with each rendered chunk; return False to stop
        chunk_size: samples per processing block

    Returns:
        float32 output in the input's layout
    """
    sr = SR if sample_rate is None else sample_rate
    n_channels = 1 if np.ndim(input_audio) == 1 else np.shape(input_audio)[1]
    vib = Vibrato.from_params(params, sr, n_channels)
    return render_blocks(vib.process, input_audio, sr, "vibrato",
                         chunk_callback=chunk_callback, chunk_size=chunk_size)
