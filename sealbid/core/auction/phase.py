"""
Phase State Machine - Bidding -> Reveal -> Settled.

Phase is a pure function of the current block height and two deadlines:

    Bidding   if now <= bid_deadline
    Reveal    if bid_deadline < now <= reveal_deadline
    Settled   if now > reveal_deadline

There is no transition call. Each guard recomputes the phase from `now`, so an
auction can neither get stuck between phases nor move backward while the
clock is monotonic.
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import Optional

from sealbid.core.errors import AuctionError, ErrorCode, make_error
from sealbid.core.types import BlockHeight


class Phase(IntEnum):
    """Auction phase, ordered."""
    BIDDING = 0
    REVEAL = 1
    SETTLED = 2


@dataclass(frozen=True)
class PhaseSchedule:
    """The two deadlines that define an auction's timeline."""
    bid_deadline: BlockHeight
    reveal_deadline: BlockHeight

    def __post_init__(self):
        if self.bid_deadline < 0:
            raise ValueError("bid_deadline must be non-negative")
        if self.reveal_deadline < self.bid_deadline:
            raise ValueError("reveal_deadline must not precede bid_deadline")

    @classmethod
    def from_windows(
        cls,
        start: BlockHeight,
        bidding_window: int,
        reveal_window: int,
    ) -> "PhaseSchedule":
        """Schedule opening at `start` with the given window lengths."""
        bid_deadline = start + bidding_window
        return cls(bid_deadline=bid_deadline, reveal_deadline=bid_deadline + reveal_window)

    def phase_at(self, now: BlockHeight) -> Phase:
        if now <= self.bid_deadline:
            return Phase.BIDDING
        if now <= self.reveal_deadline:
            return Phase.REVEAL
        return Phase.SETTLED

    # =========================================================================
    # Guards
    # =========================================================================

    def require_bidding(self, now: BlockHeight) -> Optional[AuctionError]:
        if self.phase_at(now) != Phase.BIDDING:
            return make_error(
                ErrorCode.BIDDING_CLOSED,
                f"Bidding closed at block {self.bid_deadline}",
            )
        return None

    def require_reveal(self, now: BlockHeight) -> Optional[AuctionError]:
        phase = self.phase_at(now)
        if phase == Phase.BIDDING:
            return make_error(
                ErrorCode.NOT_READY,
                f"Bidding not closed until block {self.bid_deadline}",
            )
        if phase == Phase.SETTLED:
            return make_error(
                ErrorCode.REVEAL_CLOSED,
                f"Reveal period closed at block {self.reveal_deadline}",
            )
        return None

    def require_settled(self, now: BlockHeight) -> Optional[AuctionError]:
        if self.phase_at(now) != Phase.SETTLED:
            return make_error(
                ErrorCode.NOT_READY,
                f"Auction cannot settle before block {self.reveal_deadline + 1}",
            )
        return None


__all__ = ["Phase", "PhaseSchedule"]
