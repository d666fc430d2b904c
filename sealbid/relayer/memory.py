"""
In-memory relayer - queues requests until the caller drains them.

Useful when a test needs to control exactly when (and in which order)
callbacks land.
"""

from dataclasses import dataclass
from typing import List, Optional, Tuple

from sealbid.core.auction.decryption import DecryptionCallback, DecryptionRequest
from sealbid.core.errors import AuctionError
from sealbid.relayer.base import OracleRelayer
from sealbid.utils.logger import get_logger

logger = get_logger("relayer.memory")


@dataclass
class DeliveryResult:
    """Outcome of one callback delivery."""
    request_id: int
    plaintext: Optional[int]
    accepted: bool
    error: Optional[AuctionError] = None


class InMemoryRelayer(OracleRelayer):
    """FIFO queue of decryption requests."""

    def __init__(self, provider, keypair=None):
        super().__init__(provider, keypair)
        self._queue: List[Tuple[DecryptionRequest, DecryptionCallback]] = []

    def submit(self, request: DecryptionRequest, callback: DecryptionCallback) -> None:
        self._queue.append((request, callback))
        logger.debug(f"Queued decryption request {request.request_id}")

    @property
    def queued(self) -> int:
        return len(self._queue)

    def deliver_next(self) -> Optional[DeliveryResult]:
        """Resolve and deliver the oldest queued request."""
        if not self._queue:
            return None
        request, callback = self._queue.pop(0)
        try:
            plaintext, signature = self.resolve(request)
        except AuctionError as e:
            logger.warning(f"Request {request.request_id} could not be decrypted: {e.message}")
            return DeliveryResult(request.request_id, None, False, e)

        accepted, err = callback(request.handle, plaintext, signature)
        return DeliveryResult(request.request_id, plaintext, accepted, err)

    def drain(self) -> List[DeliveryResult]:
        """Deliver every queued request in submission order."""
        results = []
        while self._queue:
            results.append(self.deliver_next())
        return results
