"""
Auction Engine - confidential sealed-bid auction over oblivious values.

This module composes the phase schedule, bid ledger, running maximum tracker,
capability registry and decryption book behind a small public operation set:

1. Bidding: principals submit encrypted bids; the engine keeps an opaque
   running maximum and never learns any amount
2. Reveal: bidders mark their bids revealed
3. Settled: the seller settles; an oblivious replay over the ledger yields
   the winning handle and an opaque winner index, and only the index is
   decrypted

Every operation returns a (value, error) pair and has no effect when it fails.
Handles produced by the engine start with no grants; the engine grants itself,
the submitter and the seller explicitly after each derivation.
"""

import secrets
from dataclasses import dataclass
from typing import List, Optional, Tuple

from sealbid.crypto import keccak256, verify
from sealbid.core.auction.decryption import (
    DecryptionBook,
    DecryptionRequest,
    Relayer,
    decryption_digest,
)
from sealbid.core.auction.events import AuctionEvent, EventType
from sealbid.core.auction.ledger import Bid, BidIndex, BidLedger
from sealbid.core.auction.phase import Phase, PhaseSchedule
from sealbid.core.auction.tracker import RunningMaximumTracker
from sealbid.core.clock import Clock
from sealbid.core.config import AuctionConfig
from sealbid.core.errors import AuctionError, ErrorCode, ProviderError, make_error
from sealbid.core.permissions import CapabilityGrant, CapabilityRegistry
from sealbid.core.provider.base import ObliviousValueProvider
from sealbid.core.types import Expiry, OpaqueHandle, Principal, Width
from sealbid.utils.logger import get_logger
from sealbid.utils.validation import (
    validate_block_number,
    validate_ciphertext,
    validate_principal,
    validate_proof,
)

logger = get_logger("auction")


# =============================================================================
# Data Structures
# =============================================================================


@dataclass(frozen=True)
class Settlement:
    """
    Result of a successful settle().

    The winning amount stays behind `winning_handle`; only the seller (and
    the engine) may decrypt it.
    """
    winner: Principal
    winning_handle: OpaqueHandle
    winner_index: BidIndex
    bids_considered: int
    settled_at: int


@dataclass(frozen=True)
class AuctionState:
    """Read-only snapshot of an engine's state."""
    phase: Phase
    bid_deadline: int
    reveal_deadline: int
    current_max: OpaqueHandle
    current_leader: Optional[Principal]
    bids: Tuple[Bid, ...]


def derive_engine_address(seller: str, salt: bytes) -> Principal:
    """Deterministic engine address from its seller and a salt."""
    return Principal("0x" + keccak256(b"sealbid.engine" + seller.lower().encode() + salt)[-20:].hex())


# =============================================================================
# Auction Engine
# =============================================================================


class AuctionEngine:
    """
    A single confidential auction.

    All state is owned by the instance; operations are meant to run one at a
    time, each against the state left by the previous one.
    """

    def __init__(
        self,
        seller: Principal,
        provider: ObliviousValueProvider,
        clock: Clock,
        schedule: PhaseSchedule,
        address: Optional[Principal] = None,
        bid_width: Width = Width.UINT32,
        max_bids: Optional[int] = None,
        count_unrevealed_bids: bool = True,
        relayer: Optional[Relayer] = None,
        oracle_public_key: Optional[bytes] = None,
    ):
        """
        Initialize the engine.

        Args:
            seller: Principal allowed to settle
            provider: Oblivious value backend
            clock: Block height source
            schedule: Bid and reveal deadlines
            address: Engine principal (derived from seller if omitted)
            bid_width: Width every bid must be encrypted at
            max_bids: Optional ledger capacity
            count_unrevealed_bids: Whether settlement folds unrevealed bids
            relayer: Decryption service for decrypt_request()
            oracle_public_key: If set, callbacks must be signed by this key

        Raises:
            ValueError: invalid seller, address or oracle key
        """
        valid, err = validate_principal(seller, "seller")
        if not valid:
            raise ValueError(err)
        if address is not None:
            valid, err = validate_principal(address, "address")
            if not valid:
                raise ValueError(err)
        if oracle_public_key is not None and len(oracle_public_key) != 64:
            raise ValueError("oracle_public_key must be 64 bytes")

        self.seller = Principal(seller.lower())
        self.address = Principal((address or derive_engine_address(seller, secrets.token_bytes(16))).lower())
        self.provider = provider
        self.clock = clock
        self.schedule = schedule
        self.bid_width = bid_width
        self.count_unrevealed_bids = count_unrevealed_bids
        self.relayer = relayer
        self.oracle_public_key = oracle_public_key

        self.ledger = BidLedger(schedule, max_bids=max_bids)
        self.tracker = RunningMaximumTracker(provider, bid_width, grantees=(self.address, self.seller))
        self.registry = CapabilityRegistry()
        self.decryptions = DecryptionBook()

        self.events: List[AuctionEvent] = []
        self._leader: Optional[Principal] = None
        self._settlement: Optional[Settlement] = None

        logger.info(
            f"Auction {self.address[:10]} created by seller {self.seller[:10]}: "
            f"bidding until block {schedule.bid_deadline}, "
            f"reveal until block {schedule.reveal_deadline}"
        )

    @classmethod
    def from_config(
        cls,
        config: AuctionConfig,
        seller: Principal,
        provider: ObliviousValueProvider,
        clock: Clock,
        address: Optional[Principal] = None,
        relayer: Optional[Relayer] = None,
    ) -> "AuctionEngine":
        """Build an engine whose windows start at the clock's current block."""
        return cls(
            seller=seller,
            provider=provider,
            clock=clock,
            schedule=PhaseSchedule.from_windows(clock.now(), config.bidding_window, config.reveal_window),
            address=address,
            bid_width=config.bid_width,
            max_bids=config.max_bids,
            count_unrevealed_bids=config.count_unrevealed_bids,
            relayer=relayer,
            oracle_public_key=config.oracle_public_key_bytes,
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def _check_principal(principal, name: str = "principal") -> Optional[AuctionError]:
        valid, err = validate_principal(principal, name)
        if not valid:
            return make_error(ErrorCode.INVALID_PRINCIPAL, err)
        return None

    def _emit(self, event_type: EventType, block: int, **kwargs) -> None:
        self.events.append(AuctionEvent(event_type=event_type, block=block, **kwargs))

    # =========================================================================
    # Bidding
    # =========================================================================

    def submit_bid(
        self,
        principal: Principal,
        raw_ciphertext: bytes,
        proof: bytes,
    ) -> Tuple[Optional[BidIndex], Optional[AuctionError]]:
        """
        Submit an encrypted bid during the bidding phase.

        The provider ingests the ciphertext, the tracker folds the new handle
        into the running maximum, and the bid is appended to the ledger. The
        bid handle is then granted to the submitter and to the engine.

        Returns:
            (bid_index, None) on success, (None, error) otherwise
        """
        now = self.clock.now()

        err = self.schedule.require_bidding(now)
        if err:
            logger.warning(f"Bid rejected at block {now}: {err.message}")
            return None, err

        err = self._check_principal(principal)
        if err:
            return None, err
        principal = Principal(principal.lower())

        err = self.ledger.check_submit(now)
        if err:
            logger.warning(f"Bid from {principal[:10]} rejected: {err.message}")
            return None, err

        for valid, message in (validate_ciphertext(raw_ciphertext), validate_proof(proof)):
            if not valid:
                return None, make_error(ErrorCode.INVALID_INPUT, message)

        # Everything that can fail happens before the ledger is touched
        try:
            handle = self.provider.ingest(raw_ciphertext, proof, self.address, principal, self.bid_width)
            new_max = self.tracker.propose(handle)
        except ProviderError as e:
            logger.warning(f"Bid from {principal[:10]} rejected by provider: {e.message}")
            return None, e

        index, err = self.ledger.submit(principal, handle, now)
        if err:
            return None, err

        self.tracker.commit(new_max)
        self.provider.grant(handle, principal)
        self.provider.grant(handle, self.address)

        self._emit(EventType.BID_PLACED, now, principal=principal, data={"index": index})
        logger.info(f"Bid #{index} placed by {principal[:10]} at block {now}")
        return index, None

    # =========================================================================
    # Reveal
    # =========================================================================

    def reveal_bid(self, principal: Principal) -> Tuple[bool, Optional[AuctionError]]:
        """
        Reveal the caller's most recent unrevealed bid.

        Returns:
            (True, None) on success, (False, error) otherwise
        """
        now = self.clock.now()

        err = self.schedule.require_reveal(now)
        if err:
            logger.warning(f"Reveal rejected at block {now}: {err.message}")
            return False, err

        err = self._check_principal(principal)
        if err:
            return False, err
        principal = Principal(principal.lower())

        index, err = self.ledger.reveal(principal, now)
        if err:
            logger.warning(f"Reveal by {principal[:10]} rejected: {err.message}")
            return False, err

        self._emit(EventType.BID_REVEALED, now, principal=principal, data={"index": index})
        logger.info(f"Bid #{index} revealed by {principal[:10]}")
        return True, None

    # =========================================================================
    # Settlement
    # =========================================================================

    def settle(self, caller: Principal) -> Tuple[Optional[Settlement], Optional[AuctionError]]:
        """
        Determine the winner after the reveal deadline.

        Replays an oblivious compare/select fold over the ledger, grants the
        seller access to the winning handle, and decrypts only the winner's
        ledger index. A repeated call returns the recorded settlement.

        Returns:
            (Settlement, None) on success, (None, error) otherwise
        """
        now = self.clock.now()

        err = self.schedule.require_settled(now)
        if err:
            logger.warning(f"Settle rejected at block {now}: {err.message}")
            return None, err

        err = self._check_principal(caller, "caller")
        if err:
            return None, err
        if caller.lower() != self.seller:
            logger.warning(f"Settle attempted by non-seller {caller[:10]}")
            return None, make_error(ErrorCode.UNAUTHORIZED, "Only seller can end auction")

        if self._settlement is not None:
            return self._settlement, None

        if self.ledger.count() == 0:
            return None, make_error(ErrorCode.NO_VALID_BIDS, "No bids were submitted")

        bids = list(self.ledger) if self.count_unrevealed_bids else self.ledger.revealed_bids()
        if not bids:
            return None, make_error(ErrorCode.NO_VALID_BIDS, "No bids were revealed")

        try:
            result = self.tracker.fold(bids, grantees=(self.address, self.seller))
            winner_index = self.provider.decrypt(result.winner_index_handle, self.seller, now)
        except AuctionError as e:
            logger.error(f"Settlement fold failed: {e.message}")
            return None, e

        winning_bid = self.ledger.get(winner_index)
        if winning_bid is None:
            return None, make_error(ErrorCode.NOT_FOUND, f"Winner index {winner_index} not in ledger")

        settlement = Settlement(
            winner=winning_bid.principal,
            winning_handle=result.max_handle,
            winner_index=winner_index,
            bids_considered=len(bids),
            settled_at=now,
        )
        self._settlement = settlement
        self._leader = winning_bid.principal

        self._emit(
            EventType.AUCTION_SETTLED,
            now,
            principal=settlement.winner,
            handle=settlement.winning_handle,
        )
        logger.info(f"Auction {self.address[:10]} settled: winner={settlement.winner[:10]} over {len(bids)} bids")
        return settlement, None

    # =========================================================================
    # Permissions
    # =========================================================================

    def grant_decrypt(
        self,
        owner: Principal,
        grantee: Principal,
        handle: OpaqueHandle,
        expiry: Expiry = None,
    ) -> Tuple[Optional[CapabilityGrant], Optional[AuctionError]]:
        """
        Let grantee decrypt owner's handle, permanently or until `expiry`.

        Records the owner -> grantee relationship and issues the matching
        handle-level grant. The owner must already hold a valid grant on the
        handle.

        Returns:
            (CapabilityGrant, None) on success, (None, error) otherwise
        """
        now = self.clock.now()

        err = self._check_principal(owner, "owner") or self._check_principal(grantee, "grantee")
        if err:
            return None, err
        if expiry is not None:
            valid, message = validate_block_number(expiry, "expiry")
            if not valid:
                return None, make_error(ErrorCode.INVALID_INPUT, message)

        if not self.provider.is_allowed(handle, owner, now):
            return None, make_error(
                ErrorCode.PERMISSION_DENIED,
                f"{owner} holds no grant on {handle.short_id}",
            )

        try:
            self.provider.grant(handle, grantee, expiry)
        except ProviderError as e:
            return None, e

        record = self.registry.grant(owner, grantee, handle, expiry, now)
        self._emit(
            EventType.PERMISSION_GRANTED,
            now,
            principal=record.grantee,
            handle=handle,
            data={"owner": record.owner, "expiry": expiry},
        )
        return record, None

    def revoke_decrypt(self, owner: Principal, grantee: Principal) -> Tuple[bool, Optional[AuctionError]]:
        """
        Remove the owner -> grantee relationship grant.

        Handle-level provider grants already issued are not withdrawn.

        Returns:
            (removed, None); removed is False when no grant existed
        """
        now = self.clock.now()

        err = self._check_principal(owner, "owner") or self._check_principal(grantee, "grantee")
        if err:
            return False, err

        removed = self.registry.revoke(owner, grantee)
        if removed:
            self._emit(
                EventType.PERMISSION_REVOKED,
                now,
                principal=Principal(grantee.lower()),
                data={"owner": owner.lower()},
            )
        return removed, None

    def is_authorized(self, owner: Principal, grantee: Principal) -> bool:
        """Relationship check at the clock's current block."""
        if self._check_principal(owner, "owner") or self._check_principal(grantee, "grantee"):
            return False
        return self.registry.is_authorized(owner, grantee, self.clock.now())

    # =========================================================================
    # Decryption
    # =========================================================================

    def user_decrypt(
        self,
        handle: OpaqueHandle,
        requester: Principal,
    ) -> Tuple[Optional[int], Optional[AuctionError]]:
        """
        Synchronous private decryption for a principal holding a grant.

        Returns:
            (plaintext, None) on success, (None, error) otherwise
        """
        err = self._check_principal(requester, "requester")
        if err:
            return None, err
        try:
            return self.provider.decrypt(handle, requester, self.clock.now()), None
        except AuctionError as e:
            return None, e

    def decrypt_request(
        self,
        handle: OpaqueHandle,
        requester: Principal,
    ) -> Tuple[Optional[int], Optional[AuctionError]]:
        """
        Ask the relayer to publicly decrypt a handle.

        The request is one-way: the plaintext arrives later through
        decrypt_callback(). Only one request per handle may be outstanding.
        If the relayer refuses the hand-off the request is dropped and
        RELAYER_UNAVAILABLE is returned, so the handle can be requested again.

        Returns:
            (request_id, None) on success, (None, error) otherwise
        """
        now = self.clock.now()

        err = self._check_principal(requester, "requester")
        if err:
            return None, err
        requester = Principal(requester.lower())

        err = self.decryptions.check_request(handle)
        if err:
            logger.warning(f"Decryption request for {handle.short_id} rejected: {err.message}")
            return None, err

        if not self.provider.is_allowed(handle, requester, now):
            return None, make_error(
                ErrorCode.PERMISSION_DENIED,
                f"{requester} may not decrypt {handle.short_id}",
            )

        request = self.decryptions.open(handle, requester, now)
        if self.relayer is not None:
            # The relayer only resolves after submit() returns, so its grant
            # can follow the hand-off
            try:
                self.relayer.submit(request, self.decrypt_callback)
            except Exception as e:
                self.decryptions.discard(handle)
                logger.error(f"Relayer refused decryption request {request.request_id}: {e}")
                return None, make_error(ErrorCode.RELAYER_UNAVAILABLE, f"Relayer refused request: {e}")
            try:
                self.provider.grant(handle, self.relayer.address)
            except ProviderError as e:
                self.decryptions.discard(handle)
                return None, e

        self._emit(
            EventType.DECRYPTION_REQUESTED,
            now,
            principal=requester,
            handle=handle,
            data={"request_id": request.request_id},
        )
        logger.debug(f"Decryption request {request.request_id} for {handle.short_id}")
        return request.request_id, None

    def decrypt_callback(
        self,
        handle: OpaqueHandle,
        plaintext: int,
        signature: Optional[bytes] = None,
    ) -> Tuple[bool, Optional[AuctionError]]:
        """
        Record the plaintext delivered by the relayer.

        Returns:
            (True, None) on success, (False, error) otherwise. A second
            callback for the same handle returns ALREADY_DECRYPTED and leaves
            the recorded plaintext unchanged.
        """
        now = self.clock.now()

        err = self.decryptions.check_callback(handle)
        if err:
            logger.warning(f"Callback for {handle.short_id} rejected: {err.message}")
            return False, err

        if isinstance(plaintext, bool) or not isinstance(plaintext, int) \
                or plaintext < 0 or plaintext > handle.width.max_value:
            return False, make_error(
                ErrorCode.INVALID_INPUT,
                f"Plaintext out of range for {handle.width.name}",
            )

        request = self.decryptions.pending_for(handle)
        if self.oracle_public_key is not None:
            digest = decryption_digest(request.request_id, handle, plaintext)
            if signature is None or not verify(digest, signature, self.oracle_public_key):
                logger.warning(f"Callback for {handle.short_id} carries an invalid oracle signature")
                return False, make_error(ErrorCode.INVALID_SIGNATURE, "Oracle signature check failed")

        self.decryptions.fulfil(handle, plaintext, now)
        self._emit(
            EventType.VALUE_DECRYPTED,
            now,
            handle=handle,
            data={"request_id": request.request_id, "plaintext": plaintext},
        )
        logger.debug(f"Decryption request {request.request_id} fulfilled")
        return True, None

    def is_decrypted(self, handle: OpaqueHandle) -> bool:
        return self.decryptions.is_decrypted(handle)

    def decrypted_value(self, handle: OpaqueHandle) -> Optional[int]:
        return self.decryptions.plaintext(handle)

    def pending_decryptions(self) -> List[DecryptionRequest]:
        return self.decryptions.pending()

    # =========================================================================
    # Queries
    # =========================================================================

    def phase(self) -> Phase:
        return self.schedule.phase_at(self.clock.now())

    def is_bidding_active(self) -> bool:
        return self.phase() == Phase.BIDDING

    def bid_count(self) -> int:
        return self.ledger.count()

    def bids_of(self, principal: Principal) -> List[Bid]:
        return self.ledger.bids_of(principal)

    def current_max(self) -> OpaqueHandle:
        """Opaque running maximum; never a plaintext."""
        return self.tracker.current_max

    def current_leader(self) -> Optional[Principal]:
        """Winner once settled, None before."""
        return self._leader

    @property
    def settlement(self) -> Optional[Settlement]:
        return self._settlement

    def state(self) -> AuctionState:
        return AuctionState(
            phase=self.phase(),
            bid_deadline=self.schedule.bid_deadline,
            reveal_deadline=self.schedule.reveal_deadline,
            current_max=self.tracker.current_max,
            current_leader=self._leader,
            bids=tuple(self.ledger),
        )


__all__ = ["AuctionEngine", "AuctionState", "Settlement", "derive_engine_address"]
