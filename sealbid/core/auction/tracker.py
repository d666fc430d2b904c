"""
Running Maximum Tracker - oblivious max aggregation.

During bidding the tracker folds each new bid handle h into the running
maximum with one comparison and one selection:

    is_higher = compare_ge(h, current_max)
    current_max = select(is_higher, h, current_max)

No plaintext is ever produced, so nothing about the ordering of bids leaks
while the auction is open. In particular the tracker does not keep a
plaintext leader: a leader can only be named by decrypting a comparison.

At settlement the engine asks for a replay fold over the ledger. The replay
carries an oblivious winner index alongside the maximum:

    ge  = compare_ge(bid_i, max)
    max = select(ge, bid_i, max)
    idx = select(ge, enc(i), idx)

Only the final idx is ever decrypted. Because the comparison is >=, the later
of two equal bids wins.
"""

from dataclasses import dataclass
from typing import Iterable, List, Sequence

from sealbid.core.auction.ledger import Bid
from sealbid.core.provider.base import ObliviousValueProvider
from sealbid.core.types import OpaqueHandle, Principal, Width
from sealbid.utils.logger import get_logger

logger = get_logger("auction.tracker")

# Width of the oblivious winner index carried through the settlement fold
INDEX_WIDTH = Width.UINT64


@dataclass(frozen=True)
class FoldResult:
    """Outcome of the settlement replay: both handles are still opaque."""
    max_handle: OpaqueHandle
    winner_index_handle: OpaqueHandle
    steps: int


class RunningMaximumTracker:
    """Holds the opaque running maximum for one auction."""

    def __init__(
        self,
        provider: ObliviousValueProvider,
        width: Width,
        grantees: Sequence[Principal] = (),
    ):
        self.provider = provider
        self.width = width
        self.grantees: List[Principal] = list(grantees)

        self._current_max = provider.trivial_encrypt(0, width)
        self._grant(self._current_max, self.grantees)
        self._updates = 0

    @property
    def current_max(self) -> OpaqueHandle:
        return self._current_max

    @property
    def update_count(self) -> int:
        return self._updates

    def _grant(self, handle: OpaqueHandle, grantees: Iterable[Principal]) -> None:
        for principal in grantees:
            self.provider.grant(handle, principal)

    # =========================================================================
    # Running maximum
    # =========================================================================

    def propose(self, handle: OpaqueHandle) -> OpaqueHandle:
        """
        Compute the maximum that would result from folding in `handle`.

        Only provider calls happen here; tracker state is untouched, so a
        failure in the provider leaves the tracker exactly as it was.
        """
        is_higher = self.provider.compare_ge(handle, self._current_max)
        return self.provider.select(is_higher, handle, self._current_max)

    def commit(self, new_max: OpaqueHandle) -> None:
        """Adopt a proposed maximum and re-grant access to it."""
        self._grant(new_max, self.grantees)
        self._current_max = new_max
        self._updates += 1
        logger.debug(f"Running max -> {new_max.short_id} after {self._updates} updates")

    def observe(self, handle: OpaqueHandle) -> OpaqueHandle:
        """propose() followed by commit()."""
        new_max = self.propose(handle)
        self.commit(new_max)
        return new_max

    # =========================================================================
    # Settlement replay
    # =========================================================================

    def fold(self, bids: Sequence[Bid], grantees: Sequence[Principal] = ()) -> FoldResult:
        """
        Replay an oblivious max fold over bids in ledger order.

        Args:
            bids: Bids to fold, in ledger order (must be non-empty)
            grantees: Principals granted access on both result handles

        Returns:
            FoldResult with the opaque maximum and opaque winner ledger index
        """
        if not bids:
            raise ValueError("Cannot fold an empty bid sequence")

        provider = self.provider
        best = provider.trivial_encrypt(0, self.width)
        best_index = provider.trivial_encrypt(0, INDEX_WIDTH)

        for bid in bids:
            ge = provider.compare_ge(bid.handle, best)
            best = provider.select(ge, bid.handle, best)
            best_index = provider.select(ge, provider.trivial_encrypt(bid.index, INDEX_WIDTH), best_index)

        self._grant(best, grantees)
        self._grant(best_index, grantees)

        logger.debug(f"Settlement fold over {len(bids)} bids -> {best.short_id}")
        return FoldResult(max_handle=best, winner_index_handle=best_index, steps=len(bids))


__all__ = ["RunningMaximumTracker", "FoldResult", "INDEX_WIDTH"]
