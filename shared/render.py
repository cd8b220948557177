"""Block rendering shared by the effect entry points.

Effects process channel-major blocks (channels, samples). Callers hand in
audio the way it comes off disk: mono (samples,) or (samples, channels).
render_blocks converts between the two, feeds the effect in fixed-size
chunks, and checks the result.
"""

import logging
import time

import numpy as np

log = logging.getLogger(__name__)


def to_channels(audio: np.ndarray) -> np.ndarray:
    """(samples,) or (samples, channels) -> contiguous float32 (channels, samples)."""
    audio = np.asarray(audio)
    if audio.ndim == 1:
        return np.ascontiguousarray(audio[np.newaxis, :], dtype=np.float32)
    if audio.ndim == 2:
        return np.ascontiguousarray(audio.T, dtype=np.float32)
    raise ValueError(f"expected 1-D or 2-D audio, got shape {audio.shape}")


def from_channels(channels: np.ndarray, ndim: int) -> np.ndarray:
    """Inverse of to_channels for an input that had `ndim` dimensions."""
    if ndim == 1:
        return channels[0]
    return channels.T


def safety_check(output):
    """Reject non-finite or exploded output.

    Returns (ok, error_message).
    """
    if not np.all(np.isfinite(output)):
        return False, "output diverged (non-finite values)"
    peak = np.max(np.abs(output)) if output.size else 0.0
    if peak > 1e6:
        return False, f"output exploded (peak={peak:.0e})"
    return True, ""


def render_blocks(process, input_audio, sample_rate, name,
                  chunk_callback=None, chunk_size=4096):
    """Run `process` over `input_audio` one chunk at a time.

    Args:
        process: callable taking a (channels, n) float32 block and returning
            a block of the same shape. Called in order; state carries over.
        input_audio: mono (samples,) or multi-channel (samples, channels)
        sample_rate: Hz, only used for the timing log
        name: effect name for the log
        chunk_callback: if provided, called with each rendered chunk in the
            input's layout. Return True to continue, False to stop early.
        chunk_size: samples per block

    Returns:
        output in the input's layout. Shorter than the input if the callback
        stopped the render.
    """
    if chunk_size <= 0:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")
    t0 = time.perf_counter()
    ndim = np.ndim(input_audio)
    channels = to_channels(input_audio)
    n_samples = channels.shape[1]
    output = np.zeros_like(channels)

    end = 0
    for start in range(0, n_samples, chunk_size):
        end = min(start + chunk_size, n_samples)
        output[:, start:end] = process(channels[:, start:end])
        if chunk_callback is not None:
            if not chunk_callback(from_channels(output[:, start:end], ndim)):
                log.info("%s render stopped by callback at sample %d", name, end)
                break
    output = output[:, :end]

    ok, msg = safety_check(output)
    if not ok:
        log.warning("%s: %s", name, msg)

    elapsed = time.perf_counter() - t0
    duration = n_samples / sample_rate
    rtf = duration / elapsed if elapsed > 0 else float('inf')
    log.info("%s render %.1fs audio, %d ch in %.3fs (%.0fx RT)",
             name, duration, channels.shape[0], elapsed, rtf)
    return from_channels(output, ndim)
