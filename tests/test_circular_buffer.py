"""Test the circular buffer primitive — queue semantics, wraparound, fractional reads.

Run: uv run pytest tests/test_circular_buffer.py
"""

import numpy as np
import pytest

from primitives.circular_buffer import CircularBuffer


def filled(values, capacity=None, dtype=np.float32):
    cb = CircularBuffer(capacity or len(values), dtype=dtype)
    for v in values:
        cb.push(v)
    return cb


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------
def test_initialization_and_capacity():
    cb = CircularBuffer(5)
    assert cb.capacity == 5
    assert len(cb) == 0
    assert cb.read_index == 0 and cb.write_index == 0
    assert cb.buffer.dtype == np.float32
    assert np.all(cb.buffer == 0)


@pytest.mark.parametrize("capacity", [0, -3, 2.5])
def test_rejects_bad_capacity(capacity):
    with pytest.raises(ValueError):
        CircularBuffer(capacity)


# ---------------------------------------------------------------------------
# Queue semantics
# ---------------------------------------------------------------------------
def test_push_and_size():
    cb = CircularBuffer(3)
    cb.push(1)
    cb.push(2)
    assert len(cb) == 2
    cb.push(3)
    assert len(cb) == 3
    cb.push(4)  # full: oldest evicted, size stays put
    assert len(cb) == 3


def test_pop_in_push_order():
    cb = filled([1, 2, 3])
    assert cb.pop() == 1
    assert len(cb) == 2
    assert cb.pop() == 2
    assert cb.pop() == 3
    assert len(cb) == 0


def test_pop_empty_returns_zero():
    cb = CircularBuffer(3)
    assert cb.pop() == 0.0
    assert len(cb) == 0

    ints = CircularBuffer(3, dtype=np.int64)
    value = ints.pop()
    assert value == 0
    assert isinstance(value, np.int64)


def test_overwrite_evicts_oldest():
    cb = filled([1, 2, 3], capacity=2)
    assert cb.pop() == 2
    assert cb.pop() == 3


@pytest.mark.parametrize("extra", [1, 2, 7, 20])
def test_fifo_keeps_last_capacity_values(extra):
    capacity = 5
    values = list(range(100, 100 + capacity + extra))
    cb = filled(values, capacity=capacity, dtype=np.int64)
    popped = [cb.pop() for _ in range(capacity)]
    assert popped == values[-capacity:]
    assert len(cb) == 0


def test_peek_does_not_consume():
    cb = filled([7, 8, 9])
    assert cb.peek() == 7
    assert cb.peek() == 7
    assert len(cb) == 3
    assert cb.pop() == 7
    assert cb.peek() == 8


# ---------------------------------------------------------------------------
# Offset reads
# ---------------------------------------------------------------------------
def test_get_with_offset():
    cb = filled(range(5))
    assert cb.get(0) == 0
    assert cb.get(4) == 4

    cb.push(5)  # evicts 0, read cursor moves to the old slot 1
    assert cb.get(0) == 1
    assert cb.get(4) == 5


def test_get_wraps_modulo_capacity():
    cb = filled([10, 20, 30, 40, 50])
    assert cb.get(7) == cb.get(2) == 30
    assert cb.get(-1) == cb.get(4) == 50


def test_get_frac_integer_offsets_match_get():
    cb = filled(np.linspace(-1.0, 1.0, 9), capacity=9)
    for i in range(-3, 12):
        assert cb.get_frac(i) == cb.get(i)


def test_get_frac_midpoint_is_mean():
    cb = filled([1.0, 2.0, 4.0, 8.0])
    for i in range(3):
        expected = 0.5 * (cb.get(i) + cb.get(i + 1))
        assert cb.get_frac(i + 0.5) == pytest.approx(expected)


def test_get_frac_across_wrap_boundary():
    cb = filled([1.0, 2.0, 3.0, 4.0])
    # slot 3 blends with slot 0
    assert cb.get_frac(3.5) == pytest.approx(2.5)
    assert cb.get_frac(3.25) == pytest.approx(0.75 * 4.0 + 0.25 * 1.0)
    # negative offsets wrap the same way
    assert cb.get_frac(-0.5) == pytest.approx(cb.get_frac(3.5))
    assert cb.get_frac(-4.0) == cb.get(0)


def test_get_frac_after_read_cursor_moves():
    cb = filled([1.0, 2.0, 3.0, 4.0, 5.0, 6.0], capacity=4)
    # holds 3, 4, 5, 6 with the read cursor on 3
    assert cb.get(0) == 3.0
    assert cb.get_frac(0.5) == pytest.approx(3.5)
    assert cb.get_frac(3.5) == pytest.approx(0.5 * (6.0 + 3.0))


@pytest.mark.parametrize("offset", [float("nan"), float("inf"), -float("inf")])
def test_get_frac_rejects_non_finite(offset):
    cb = filled([1.0, 2.0])
    with pytest.raises(ValueError):
        cb.get_frac(offset)


# ---------------------------------------------------------------------------
# Cursors and reset
# ---------------------------------------------------------------------------
def test_put_does_not_advance():
    cb = CircularBuffer(3)
    cb.put(5.0)
    assert len(cb) == 0
    assert cb.write_index == 0
    assert cb.buffer[0] == 5.0
    cb.push(6.0)  # overwrites the same slot
    assert cb.get(0) == 6.0


def test_index_setters_wrap():
    cb = CircularBuffer(4)
    cb.set_read_index(6)
    cb.set_write_index(-1)
    assert cb.get_read_index() == 2
    assert cb.get_write_index() == 3


def test_decoupled_cursors():
    cb = filled([1.0, 2.0, 3.0, 4.0])
    cb.set_read_index(2)
    assert cb.peek() == 3.0
    assert cb.get(1) == 4.0
    cb.set_write_index(1)
    cb.put(9.0)
    assert cb.get(3) == 9.0


def test_reset_clears_contents_and_cursors():
    cb = filled([1.0, 2.0, 3.0, 4.0, 5.0], capacity=4)
    cb.reset()
    assert len(cb) == 0
    assert cb.read_index == 0 and cb.write_index == 0
    assert np.all(cb.buffer == 0)
    assert cb.pop() == 0.0
