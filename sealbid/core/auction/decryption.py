"""
Decryption Book - bookkeeping for asynchronous public decryption.

A decryption is a one-way request to an external relayer followed, some time
later, by exactly one callback carrying the plaintext:

    request(handle)  -> pending[handle] = request
    callback(handle) -> decrypted[handle] = plaintext

At most one request per handle may be outstanding. Once a plaintext is
recorded it never changes; later callbacks are rejected. Requests cannot be
cancelled.
"""

from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Protocol, Tuple

from sealbid.crypto import keccak256
from sealbid.core.errors import AuctionError, ErrorCode, make_error
from sealbid.core.types import BlockHeight, OpaqueHandle, Principal

DOMAIN_DECRYPTION = b"sealbid.decrypt.v1"


@dataclass
class DecryptionRequest:
    """An outstanding or fulfilled decryption request."""
    request_id: int
    handle: OpaqueHandle
    requester: Principal
    requested_at: BlockHeight
    fulfilled_at: Optional[BlockHeight] = None

    @property
    def is_fulfilled(self) -> bool:
        return self.fulfilled_at is not None


def decryption_digest(request_id: int, handle: OpaqueHandle, plaintext: int) -> bytes:
    """Message an oracle signs to vouch for a plaintext."""
    return keccak256(
        DOMAIN_DECRYPTION
        + request_id.to_bytes(8, "big")
        + handle.handle_id
        + plaintext.to_bytes(32, "big")
    )


class DecryptionBook:
    """Pending requests and recorded plaintexts, keyed by handle id."""

    def __init__(self):
        self._next_request_id = 1
        self._pending: Dict[bytes, DecryptionRequest] = {}
        self._fulfilled: Dict[bytes, DecryptionRequest] = {}
        self._plaintexts: Dict[bytes, int] = {}

    def check_request(self, handle: OpaqueHandle) -> Optional[AuctionError]:
        if handle.handle_id in self._plaintexts:
            return make_error(ErrorCode.ALREADY_DECRYPTED, f"Handle {handle.short_id} already decrypted")
        if handle.handle_id in self._pending:
            return make_error(
                ErrorCode.DECRYPTION_PENDING,
                f"Request {self._pending[handle.handle_id].request_id} for {handle.short_id} outstanding",
            )
        return None

    def open(self, handle: OpaqueHandle, requester: Principal, now: BlockHeight) -> DecryptionRequest:
        """Record a new request. Call check_request() first."""
        request = DecryptionRequest(
            request_id=self._next_request_id,
            handle=handle,
            requester=requester,
            requested_at=now,
        )
        self._next_request_id += 1
        self._pending[handle.handle_id] = request
        return request

    def check_callback(self, handle: OpaqueHandle) -> Optional[AuctionError]:
        if handle.handle_id in self._plaintexts:
            return make_error(ErrorCode.ALREADY_DECRYPTED, f"Handle {handle.short_id} already decrypted")
        if handle.handle_id not in self._pending:
            return make_error(ErrorCode.NOT_FOUND, f"No decryption requested for {handle.short_id}")
        return None

    def discard(self, handle: OpaqueHandle) -> Optional[DecryptionRequest]:
        """Drop a pending request that never reached a relayer."""
        return self._pending.pop(handle.handle_id, None)

    def pending_for(self, handle: OpaqueHandle) -> Optional[DecryptionRequest]:
        return self._pending.get(handle.handle_id)

    def fulfil(self, handle: OpaqueHandle, plaintext: int, now: BlockHeight) -> DecryptionRequest:
        """Record the plaintext. Call check_callback() first."""
        request = self._pending.pop(handle.handle_id)
        request.fulfilled_at = now
        self._fulfilled[handle.handle_id] = request
        self._plaintexts[handle.handle_id] = plaintext
        return request

    # =========================================================================
    # Queries
    # =========================================================================

    def is_decrypted(self, handle: OpaqueHandle) -> bool:
        return handle.handle_id in self._plaintexts

    def plaintext(self, handle: OpaqueHandle) -> Optional[int]:
        return self._plaintexts.get(handle.handle_id)

    def pending(self) -> List[DecryptionRequest]:
        return sorted(self._pending.values(), key=lambda r: r.request_id)

    def fulfilled(self) -> List[DecryptionRequest]:
        return sorted(self._fulfilled.values(), key=lambda r: r.request_id)


# =============================================================================
# Relayer interface
# =============================================================================

# Signature of AuctionEngine.decrypt_callback as seen by a relayer
DecryptionCallback = Callable[[OpaqueHandle, int, Optional[bytes]], Tuple[bool, Optional[AuctionError]]]


class Relayer(Protocol):
    """
    External decryption service.

    submit() must return without invoking the callback; the plaintext is
    delivered later through exactly one callback invocation.
    """

    @property
    def address(self) -> Principal:
        ...

    def submit(self, request: DecryptionRequest, callback: DecryptionCallback) -> None:
        ...


__all__ = [
    "DecryptionBook",
    "DecryptionRequest",
    "DecryptionCallback",
    "Relayer",
    "decryption_digest",
    "DOMAIN_DECRYPTION",
]
