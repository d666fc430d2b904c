"""
Sealbid Auction Module.

This module provides the confidential auction:
- Phase schedule (Bidding -> Reveal -> Settled)
- Append-only bid ledger
- Oblivious running maximum and settlement fold
- Asynchronous decryption bookkeeping
- The AuctionEngine composition root
"""

from sealbid.core.auction.phase import Phase, PhaseSchedule
from sealbid.core.auction.ledger import Bid, BidIndex, BidLedger
from sealbid.core.auction.tracker import RunningMaximumTracker, FoldResult, INDEX_WIDTH
from sealbid.core.auction.events import AuctionEvent, EventType
from sealbid.core.auction.decryption import (
    DecryptionBook,
    DecryptionRequest,
    DecryptionCallback,
    Relayer,
    decryption_digest,
)
from sealbid.core.auction.engine import (
    AuctionEngine,
    AuctionState,
    Settlement,
    derive_engine_address,
)

__all__ = [
    # Phases
    "Phase",
    "PhaseSchedule",
    # Ledger
    "Bid",
    "BidIndex",
    "BidLedger",
    # Tracker
    "RunningMaximumTracker",
    "FoldResult",
    "INDEX_WIDTH",
    # Events
    "AuctionEvent",
    "EventType",
    # Decryption
    "DecryptionBook",
    "DecryptionRequest",
    "DecryptionCallback",
    "Relayer",
    "decryption_digest",
    # Engine
    "AuctionEngine",
    "AuctionState",
    "Settlement",
    "derive_engine_address",
]
