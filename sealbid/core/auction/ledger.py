"""
Bid Ledger - append-only record of sealed bids.

Each bid keeps the opaque handle of its amount, the submitting principal and
the block it arrived in. The only mutable field is `revealed`, flipped once
during the reveal phase. Bids are never removed or reordered; ledger order is
the order the settlement fold replays.
"""

from dataclasses import dataclass
from typing import Iterator, List, Optional, Tuple

from sealbid.core.auction.phase import PhaseSchedule
from sealbid.core.errors import AuctionError, ErrorCode, make_error
from sealbid.core.types import BlockHeight, OpaqueHandle, Principal
from sealbid.utils.logger import get_logger

logger = get_logger("auction.ledger")

BidIndex = int


@dataclass
class Bid:
    """
    A sealed bid.

    Attributes:
        index: Position in the ledger
        principal: Submitter
        handle: Opaque bid amount
        submitted_at: Block of submission
        revealed: Whether the bidder has revealed
        revealed_at: Block of reveal, if any
    """
    index: BidIndex
    principal: Principal
    handle: OpaqueHandle
    submitted_at: BlockHeight
    revealed: bool = False
    revealed_at: Optional[BlockHeight] = None


class BidLedger:
    """Append-only list of bids gated by the auction's phase schedule."""

    def __init__(self, schedule: PhaseSchedule, max_bids: Optional[int] = None):
        self.schedule = schedule
        self.max_bids = max_bids
        self._bids: List[Bid] = []

    # =========================================================================
    # Submission
    # =========================================================================

    def check_submit(self, now: BlockHeight) -> Optional[AuctionError]:
        """Every condition submit() enforces, without appending."""
        err = self.schedule.require_bidding(now)
        if err:
            return err
        if self.max_bids is not None and len(self._bids) >= self.max_bids:
            return make_error(ErrorCode.BID_LIMIT_REACHED, f"Ledger holds {self.max_bids} bids")
        return None

    def submit(
        self,
        principal: Principal,
        handle: OpaqueHandle,
        now: BlockHeight,
    ) -> Tuple[Optional[BidIndex], Optional[AuctionError]]:
        """
        Append a bid.

        Returns:
            (index, None) on success, (None, error) otherwise
        """
        err = self.check_submit(now)
        if err:
            return None, err

        bid = Bid(index=len(self._bids), principal=principal, handle=handle, submitted_at=now)
        self._bids.append(bid)

        logger.debug(f"Bid #{bid.index} recorded for {principal[:10]} at block {now}")
        return bid.index, None

    # =========================================================================
    # Reveal
    # =========================================================================

    def reveal(
        self,
        principal: Principal,
        now: BlockHeight,
    ) -> Tuple[Optional[BidIndex], Optional[AuctionError]]:
        """
        Mark the caller's most recent unrevealed bid as revealed.

        Returns:
            (index, None) on success, (None, error) otherwise
        """
        err = self.schedule.require_reveal(now)
        if err:
            return None, err

        own = self.bids_of(principal)
        if not own:
            return None, make_error(ErrorCode.NOT_FOUND, f"No bid from {principal}")

        for bid in reversed(own):
            if not bid.revealed:
                bid.revealed = True
                bid.revealed_at = now
                logger.debug(f"Bid #{bid.index} revealed by {principal[:10]}")
                return bid.index, None

        return None, make_error(ErrorCode.ALREADY_REVEALED, f"All bids from {principal} revealed")

    # =========================================================================
    # Queries
    # =========================================================================

    def count(self) -> int:
        return len(self._bids)

    def bids_of(self, principal: Principal) -> List[Bid]:
        principal = principal.lower()
        return [b for b in self._bids if b.principal.lower() == principal]

    def revealed_bids(self) -> List[Bid]:
        return [b for b in self._bids if b.revealed]

    def get(self, index: BidIndex) -> Optional[Bid]:
        if 0 <= index < len(self._bids):
            return self._bids[index]
        return None

    def __iter__(self) -> Iterator[Bid]:
        return iter(list(self._bids))

    def __len__(self) -> int:
        return len(self._bids)


__all__ = ["Bid", "BidIndex", "BidLedger"]
