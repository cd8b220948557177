"""Circular sample buffer — ring storage with integer and fractional reads.

The buffer serves two roles:
    ring queue   push() / pop()            (FIFO, oldest evicted when full)
    delay line   push() / get() / peek()   (reads never advance the read cursor)

Cursor state lives in a small int64 array so the compiled effect kernels can
advance it in place. The buffer_* functions below are the only implementation
of the cursor arithmetic; the CircularBuffer methods and the effect kernels
both call them.
"""

import math

import numpy as np
from numba import njit

# Cursor slots
READ = 0
WRITE = 1
SIZE = 2


# ---------------------------------------------------------------------------
# Compiled helpers
# ---------------------------------------------------------------------------

@njit(cache=True)
def buffer_push(buf, cursors, value):
    """Write at the write cursor. Evicts the oldest entry once full."""
    cap = len(buf)
    w = cursors[WRITE]
    buf[w] = value
    if cursors[SIZE] == cap:
        cursors[READ] = (cursors[READ] + 1) % cap
    else:
        cursors[SIZE] += 1
    cursors[WRITE] = (w + 1) % cap


@njit(cache=True)
def buffer_peek(buf, cursors):
    return buf[cursors[READ]]


@njit(cache=True)
def buffer_get(buf, cursors, offset):
    return buf[(cursors[READ] + offset) % len(buf)]


@njit(cache=True)
def buffer_get_frac(buf, cursors, offset):
    """Linear interpolation between the two slots around `offset`.

    offset is relative to the read cursor and wraps modulo capacity in both
    directions, so -0.5 blends the last slot with slot 0.
    """
    cap = len(buf)
    base = np.floor(offset)
    frac = offset - base
    i0 = (cursors[READ] + int(base)) % cap
    i1 = (i0 + 1) % cap
    return (1.0 - frac) * buf[i0] + frac * buf[i1]


# ---------------------------------------------------------------------------
# Object interface
# ---------------------------------------------------------------------------

class CircularBuffer:
    """Fixed-capacity ring buffer with independent read and write cursors.

    Usage:
        cb = CircularBuffer(capacity=1024)
        cb.push(sample)
        oldest = cb.pop()              # 0.0 when empty, never raises
        x = cb.get(3)                  # 3 slots past the read cursor
        y = cb.get_frac(3.25)          # linear interpolation
    """

    def __init__(self, capacity: int, dtype=np.float32):
        if int(capacity) != capacity or capacity <= 0:
            raise ValueError(f"capacity must be a positive integer, got {capacity!r}")
        self.buffer = np.zeros(int(capacity), dtype=dtype)
        self.cursors = np.zeros(3, dtype=np.int64)

    @property
    def capacity(self) -> int:
        return len(self.buffer)

    @property
    def read_index(self) -> int:
        return int(self.cursors[READ])

    @property
    def write_index(self) -> int:
        return int(self.cursors[WRITE])

    def __len__(self):
        return int(self.cursors[SIZE])

    def reset(self):
        """Zero every slot and all cursors."""
        self.buffer[:] = 0
        self.cursors[:] = 0

    def push(self, value):
        """Append a value, overwriting the oldest one when full."""
        buffer_push(self.buffer, self.cursors, value)

    def put(self, value):
        """Overwrite the slot under the write cursor without advancing."""
        self.buffer[self.cursors[WRITE]] = value

    def pop(self):
        """Remove and return the oldest value.

        An empty buffer returns the dtype's zero instead of raising; delay
        lines rely on reading silence before they fill.
        """
        if self.cursors[SIZE] == 0:
            return self.buffer.dtype.type(0)
        value = self.buffer[self.cursors[READ]]
        self.cursors[READ] = (self.cursors[READ] + 1) % self.capacity
        self.cursors[SIZE] -= 1
        return value

    def peek(self):
        """Value under the read cursor, without consuming it."""
        return buffer_peek(self.buffer, self.cursors)

    def get(self, offset: int):
        """Value `offset` slots past the read cursor (wraps modulo capacity)."""
        return buffer_get(self.buffer, self.cursors, int(offset))

    def get_frac(self, offset: float) -> float:
        """Fractional read; integer offsets match get() exactly."""
        offset = float(offset)
        if not math.isfinite(offset):
            raise ValueError(f"offset must be finite, got {offset}")
        return float(buffer_get_frac(self.buffer, self.cursors, offset))

    def get_read_index(self) -> int:
        return self.read_index

    def set_read_index(self, index: int):
        self.cursors[READ] = int(index) % self.capacity

    def get_write_index(self) -> int:
        return self.write_index

    def set_write_index(self, index: int):
        self.cursors[WRITE] = int(index) % self.capacity
