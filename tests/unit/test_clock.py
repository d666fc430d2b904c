"""
Unit tests for block height sources.
"""

import pytest

from sealbid.core.clock import ManualClock, SystemClock


class TestManualClock:
    """Tests for the manually driven clock."""

    def test_advance_and_set(self):
        clock = ManualClock(start=3)
        assert clock.now() == 3
        assert clock.advance() == 4
        assert clock.advance(6) == 10
        assert clock.set(10) == 10
        assert clock.set(15) == 15

    def test_cannot_move_backward(self):
        clock = ManualClock(start=5)
        with pytest.raises(ValueError):
            clock.set(4)
        with pytest.raises(ValueError):
            clock.advance(-1)
        assert clock.now() == 5

    def test_negative_start(self):
        with pytest.raises(ValueError):
            ManualClock(start=-1)


class TestSystemClock:
    """Tests for the wall-time clock."""

    def test_height_from_time(self, monkeypatch):
        monkeypatch.setattr("sealbid.core.clock.time.time", lambda: 1000.0)
        assert SystemClock(block_time=5.0, genesis=900.0).now() == 20
        assert SystemClock(block_time=5.0, genesis=2000.0).now() == 0

    def test_invalid_block_time(self):
        with pytest.raises(ValueError):
            SystemClock(block_time=0)
