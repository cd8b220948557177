"""Fixed-delay comb filter, feedforward (FIR) or feedback (IIR).

Per channel, per sample:
    1. delayed = delay_line.peek()
    2. y[n] = x[n] + gain * delayed
    3. push x[n] (FIR) or y[n] (IIR) into the delay line

Peek-before-push and the type-dependent push value are the whole filter;
reordering them changes the transfer function.

Until a channel's line has filled, its read cursor sits on slot 0, so the
first sample pushed is read back on every sample of the first pass. Signals
that start from silence are unaffected.
"""

import logging
import math
from enum import Enum

import numpy as np
from numba import njit

from engine.errors import InvalidConfiguration, InvalidValue
from engine.params import COMB_SCHEMA, SR
from primitives.circular_buffer import CircularBuffer, buffer_peek, buffer_push
from shared.render import render_blocks

log = logging.getLogger(__name__)


class FilterType(Enum):
    FIR = "fir"
    IIR = "iir"


class CombParam(Enum):
    GAIN = "gain"
    DELAY = "delay"


@njit(cache=True)
def _process_block_comb(x, y, buf, cursors, gain, recursive):
    for n in range(len(x)):
        delayed = buffer_peek(buf, cursors)
        y[n] = x[n] + gain * delayed
        if recursive:
            buffer_push(buf, cursors, y[n])
        else:
            buffer_push(buf, cursors, x[n])


def _to_samples(seconds: float, sample_rate: float) -> int:
    return int(round(seconds * sample_rate))


class CombFilter:
    """Multi-channel comb filter with one delay line per channel.

    All channels share the same delay length. Changing the delay reallocates
    every line (history is dropped); it may range up to the maximum delay
    given at construction.
    """

    def __init__(self, filter_type: FilterType, max_delay_secs: float,
                 sample_rate: float, num_channels: int, gain: float = 0.5):
        if not (math.isfinite(sample_rate) and sample_rate > 0):
            raise InvalidConfiguration(f"sample rate must be positive, got {sample_rate}")
        if num_channels < 1:
            raise InvalidConfiguration(f"need at least one channel, got {num_channels}")
        if not 0.0 <= gain <= 1.0:
            raise InvalidConfiguration(f"gain must be in [0, 1], got {gain}")
        if not math.isfinite(max_delay_secs):
            raise InvalidConfiguration(f"max delay must be finite, got {max_delay_secs}")
        max_delay_samples = _to_samples(max_delay_secs, sample_rate)
        if max_delay_samples <= 0:
            raise InvalidConfiguration(
                f"max delay of {max_delay_secs}s is under one sample at {sample_rate} Hz")

        self.filter_type = FilterType(filter_type)
        self.sample_rate = float(sample_rate)
        self.num_channels = int(num_channels)
        self.gain = float(gain)
        self.max_delay_samples = max_delay_samples
        self.delay_lines = [CircularBuffer(max_delay_samples) for _ in range(self.num_channels)]

    @classmethod
    def from_params(cls, params: dict, sample_rate: float, num_channels: int):
        """Build from a params dict (see engine/params.py)."""
        p = COMB_SCHEMA.resolve(params)
        comb = cls(FilterType(p["filter_type"]), p["max_delay"], sample_rate,
                   num_channels, p["gain"])
        if _to_samples(p["delay"], sample_rate) != comb.max_delay_samples:
            comb.set_param(CombParam.DELAY, p["delay"])
        return comb

    def reset(self):
        """Clear every delay line. Gain and delay are kept."""
        for dl in self.delay_lines:
            dl.reset()

    def process(self, inputs, outputs=None) -> np.ndarray:
        """Filter one block.

        Args:
            inputs: per-channel sample arrays, (channels, samples)
            outputs: optional (channels, samples) array filled in place

        Returns:
            the output block, float32 (channels, samples) unless `outputs`
            was given
        """
        if len(inputs) != self.num_channels:
            raise ValueError(f"expected {self.num_channels} channels, got {len(inputs)}")
        if outputs is None:
            n = len(inputs[0])
            outputs = np.zeros((self.num_channels, n), dtype=np.float32)
        elif len(outputs) != self.num_channels:
            raise ValueError(f"expected {self.num_channels} output channels, got {len(outputs)}")

        recursive = self.filter_type is FilterType.IIR
        for ch, dl in enumerate(self.delay_lines):
            x = np.ascontiguousarray(inputs[ch], dtype=np.float32)
            y = outputs[ch]
            if len(y) != len(x):
                raise ValueError(f"channel {ch}: output length {len(y)} != input length {len(x)}")
            _process_block_comb(x, y, dl.buffer, dl.cursors, self.gain, recursive)
        return outputs

    def set_param(self, param: CombParam, value: float):
        """Set gain (0..1) or delay (seconds). Raises InvalidValue if out of range."""
        param = CombParam(param)
        if param is CombParam.GAIN:
            if not 0.0 <= value <= 1.0:
                raise InvalidValue(param, value, "gain must be in [0, 1]")
            self.gain = float(value)
            log.debug("comb gain -> %.3f", self.gain)
        else:
            if not math.isfinite(value):
                raise InvalidValue(param, value, "delay must be finite")
            delay_samples = _to_samples(value, self.sample_rate)
            if not 0 < delay_samples <= self.max_delay_samples:
                raise InvalidValue(
                    param, value,
                    f"delay must be 1..{self.max_delay_samples} samples, got {delay_samples}")
            self.delay_lines = [CircularBuffer(delay_samples) for _ in range(self.num_channels)]
            log.debug("comb delay -> %d samples, %d lines reallocated",
                      delay_samples, self.num_channels)

    def get_param(self, param: CombParam) -> float:
        param = CombParam(param)
        if param is CombParam.GAIN:
            return self.gain
        return self.delay_lines[0].capacity / self.sample_rate


def render_comb(input_audio: np.ndarray, params: dict, sample_rate: float = None,
                chunk_callback=None, chunk_size=4096) -> np.ndarray:
    """Offline entry point: build a comb filter from `params` and run it.

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
    comb = CombFilter.from_params(params, sr, n_channels)
    return render_blocks(comb.process, input_audio, sr,
                         f"comb/{comb.filter_type.value}",
                         chunk_callback=chunk_callback, chunk_size=chunk_size)
