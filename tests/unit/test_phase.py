"""
Tests for the phase schedule.

Tests cover:
1. Phase as a function of block height
2. Guards and the errors they return
3. Schedule construction
"""

import pytest

from sealbid.core.auction import Phase, PhaseSchedule
from sealbid.core.errors import ErrorCode, ErrorKind


@pytest.fixture
def schedule():
    return PhaseSchedule(bid_deadline=10, reveal_deadline=20)


class TestPhaseAt:
    """Phase boundaries are inclusive on the deadline."""

    @pytest.mark.parametrize("now,expected", [
        (0, Phase.BIDDING),
        (10, Phase.BIDDING),
        (11, Phase.REVEAL),
        (20, Phase.REVEAL),
        (21, Phase.SETTLED),
        (10**6, Phase.SETTLED),
    ])
    def test_boundaries(self, schedule, now, expected):
        assert schedule.phase_at(now) == expected

    def test_monotonic(self, schedule):
        phases = [schedule.phase_at(t) for t in range(0, 30)]
        assert phases == sorted(phases)

    def test_equal_deadlines_skip_reveal(self):
        schedule = PhaseSchedule(bid_deadline=5, reveal_deadline=5)
        assert schedule.phase_at(5) == Phase.BIDDING
        assert schedule.phase_at(6) == Phase.SETTLED


class TestGuards:
    """Tests for phase guards."""

    def test_bidding_guard(self, schedule):
        assert schedule.require_bidding(10) is None
        err = schedule.require_bidding(11)
        assert err.code == ErrorCode.BIDDING_CLOSED
        assert err.kind == ErrorKind.VALIDATION

    def test_reveal_guard(self, schedule):
        assert schedule.require_reveal(10).code == ErrorCode.NOT_READY
        assert schedule.require_reveal(11) is None
        assert schedule.require_reveal(20) is None
        assert schedule.require_reveal(21).code == ErrorCode.REVEAL_CLOSED

    def test_settled_guard(self, schedule):
        assert schedule.require_settled(20).code == ErrorCode.NOT_READY
        assert schedule.require_settled(21) is None


class TestConstruction:
    """Tests for schedule validation."""

    def test_from_windows(self):
        schedule = PhaseSchedule.from_windows(start=100, bidding_window=10, reveal_window=5)
        assert schedule.bid_deadline == 110
        assert schedule.reveal_deadline == 115

    def test_reveal_before_bid_rejected(self):
        with pytest.raises(ValueError):
            PhaseSchedule(bid_deadline=10, reveal_deadline=9)

    def test_negative_deadline_rejected(self):
        with pytest.raises(ValueError):
            PhaseSchedule(bid_deadline=-1, reveal_deadline=9)
