"""
Auction events.

The engine appends one record per state change so callers can observe the
auction the way they would watch contract logs. Only ValueDecrypted carries a
plaintext, and only for a handle someone explicitly asked to decrypt.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from sealbid.core.types import BlockHeight, OpaqueHandle, Principal


class EventType(Enum):
    BID_PLACED = "BidPlaced"
    BID_REVEALED = "BidRevealed"
    AUCTION_SETTLED = "AuctionSettled"
    PERMISSION_GRANTED = "PermissionGranted"
    PERMISSION_REVOKED = "PermissionRevoked"
    DECRYPTION_REQUESTED = "DecryptionRequested"
    VALUE_DECRYPTED = "ValueDecrypted"


@dataclass(frozen=True)
class AuctionEvent:
    """A single emitted event."""
    event_type: EventType
    block: BlockHeight
    principal: Optional[Principal] = None
    handle: Optional[OpaqueHandle] = None
    data: Optional[Dict[str, Any]] = None

    @property
    def name(self) -> str:
        return self.event_type.value


__all__ = ["EventType", "AuctionEvent"]
