"""
Integration tests for a complete confidential auction.

Tests the full flow from encrypted bids through settlement to the
asynchronous public decryption of the winning amount.
"""

import itertools

import pytest

from sealbid.crypto import generate_keypair
from sealbid.core.auction import AuctionEngine, EventType, Phase, PhaseSchedule
from sealbid.core.clock import ManualClock
from sealbid.core.config import AuctionConfig
from sealbid.core.errors import ErrorCode
from sealbid.core.provider import MockProvider
from sealbid.relayer import InMemoryRelayer


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def auction():
    """An engine built from config with a signing relayer attached."""
    provider = MockProvider()
    clock = ManualClock(start=1)
    relayer = InMemoryRelayer(provider)
    seller = generate_keypair()
    config = AuctionConfig(
        bidding_window=5,
        reveal_window=3,
        oracle_public_key=relayer.public_key.hex(),
    )
    engine = AuctionEngine.from_config(config, seller.address, provider, clock, relayer=relayer)
    return engine, provider, clock, relayer, seller.address


def bid(engine, provider, bidder, amount):
    payload = provider.create_encrypted_input(engine.address, bidder).add32(amount).encrypt()
    return engine.submit_bid(bidder, payload.data, payload.proof)


def close_reveal(engine, clock):
    clock.set(engine.schedule.reveal_deadline + 1)


# =============================================================================
# Full Flow Tests
# =============================================================================


class TestFullAuctionFlow:
    """End-to-end auction flow tests."""

    def test_three_bidders(self, auction):
        """A bids 100, B bids 150, C bids 120: B wins and the seller reads 150."""
        engine, provider, clock, relayer, seller = auction
        a, b, c = (generate_keypair().address for _ in range(3))

        for bidder, amount in ((a, 100), (b, 150), (c, 120)):
            _, err = bid(engine, provider, bidder, amount)
            assert err is None
            clock.advance()
        assert engine.phase() == Phase.BIDDING

        clock.set(engine.schedule.bid_deadline + 1)
        for bidder in (a, b, c):
            assert engine.reveal_bid(bidder) == (True, None)

        close_reveal(engine, clock)
        settlement, err = engine.settle(seller)
        assert err is None
        assert settlement.winner == b
        assert engine.current_leader() == b

        # Seller decrypts privately
        assert engine.user_decrypt(settlement.winning_handle, seller) == (150, None)

        # And publicly through the relayer
        request_id, err = engine.decrypt_request(settlement.winning_handle, seller)
        assert err is None
        assert not engine.is_decrypted(settlement.winning_handle)
        results = relayer.drain()
        assert results[0].accepted
        assert engine.decrypted_value(settlement.winning_handle) == 150

        event_types = [e.event_type for e in engine.events]
        assert event_types == [
            EventType.BID_PLACED,
            EventType.BID_PLACED,
            EventType.BID_PLACED,
            EventType.BID_REVEALED,
            EventType.BID_REVEALED,
            EventType.BID_REVEALED,
            EventType.AUCTION_SETTLED,
            EventType.DECRYPTION_REQUESTED,
            EventType.VALUE_DECRYPTED,
        ]

    def test_tampered_bid_rejected(self, auction):
        """A tampered proof is refused and the auction continues unaffected."""
        engine, provider, clock, relayer, seller = auction
        honest, cheater = generate_keypair().address, generate_keypair().address

        bid(engine, provider, honest, 40)
        payload = provider.create_encrypted_input(engine.address, cheater).add32(10**6).encrypt()
        tampered = bytearray(payload.data)
        tampered[-1] ^= 0x01
        _, err = engine.submit_bid(cheater, bytes(tampered), payload.proof)

        assert err.code == ErrorCode.INVALID_PROOF
        assert engine.bid_count() == 1

        close_reveal(engine, clock)
        settlement, _ = engine.settle(seller)
        assert settlement.winner == honest
        assert engine.user_decrypt(settlement.winning_handle, seller) == (40, None)

    def test_no_bids(self, auction):
        engine, provider, clock, relayer, seller = auction
        close_reveal(engine, clock)
        settlement, err = engine.settle(seller)
        assert settlement is None
        assert err.code == ErrorCode.NO_VALID_BIDS
        assert engine.current_leader() is None

    def test_operations_follow_phase(self, auction):
        """Bids only while bidding, reveals only in reveal, settle only after."""
        engine, provider, clock, relayer, seller = auction
        bidder = generate_keypair().address
        bid(engine, provider, bidder, 1)

        assert engine.reveal_bid(bidder)[1].code == ErrorCode.NOT_READY
        assert engine.settle(seller)[1].code == ErrorCode.NOT_READY

        clock.set(engine.schedule.bid_deadline + 1)
        assert bid(engine, provider, bidder, 2)[1].code == ErrorCode.BIDDING_CLOSED
        assert engine.settle(seller)[1].code == ErrorCode.NOT_READY

        close_reveal(engine, clock)
        assert bid(engine, provider, bidder, 3)[1].code == ErrorCode.BIDDING_CLOSED
        assert engine.reveal_bid(bidder)[1].code == ErrorCode.REVEAL_CLOSED
        assert engine.settle(seller)[0].winner == bidder


class TestWinnerSelection:
    """The settled winner is the highest bidder regardless of arrival order."""

    @pytest.mark.parametrize("amounts", list(itertools.permutations([3, 500, 42, 77])))
    def test_any_order(self, amounts):
        provider = MockProvider()
        clock = ManualClock(start=0)
        seller = generate_keypair().address
        engine = AuctionEngine(seller, provider, clock, PhaseSchedule(10, 12))
        bidders = [generate_keypair().address for _ in amounts]

        for bidder, amount in zip(bidders, amounts):
            bid(engine, provider, bidder, amount)
        close_reveal(engine, clock)

        settlement, err = engine.settle(seller)
        assert err is None
        assert settlement.winner == bidders[amounts.index(500)]
        assert engine.user_decrypt(settlement.winning_handle, seller) == (500, None)
        assert engine.user_decrypt(engine.current_max(), seller) == (500, None)

    def test_same_bidder_several_bids(self, auction):
        engine, provider, clock, relayer, seller = auction
        alice, bob = generate_keypair().address, generate_keypair().address
        bid(engine, provider, alice, 10)
        bid(engine, provider, bob, 20)
        bid(engine, provider, alice, 30)

        assert len(engine.bids_of(alice)) == 2
        close_reveal(engine, clock)
        settlement, _ = engine.settle(seller)
        assert settlement.winner == alice
        assert settlement.winner_index == 2

    def test_tie_goes_to_later_bid(self, auction):
        engine, provider, clock, relayer, seller = auction
        first, second = generate_keypair().address, generate_keypair().address
        bid(engine, provider, first, 90)
        bid(engine, provider, second, 90)

        close_reveal(engine, clock)
        settlement, _ = engine.settle(seller)
        assert settlement.winner == second


class TestConfidentiality:
    """Nobody but the grantees can read bids or the running maximum."""

    def test_other_bidders_cannot_read(self, auction):
        engine, provider, clock, relayer, seller = auction
        alice, bob = generate_keypair().address, generate_keypair().address
        bid(engine, provider, alice, 10)
        bid(engine, provider, bob, 20)

        alice_handle = engine.bids_of(alice)[0].handle
        assert engine.user_decrypt(alice_handle, bob)[1].code == ErrorCode.PERMISSION_DENIED
        assert engine.user_decrypt(engine.current_max(), bob)[1].code == ErrorCode.PERMISSION_DENIED
        assert engine.decrypt_request(alice_handle, bob)[1].code == ErrorCode.PERMISSION_DENIED

    def test_delegated_read_with_expiry(self, auction):
        engine, provider, clock, relayer, seller = auction
        alice, auditor = generate_keypair().address, generate_keypair().address
        bid(engine, provider, alice, 10)
        handle = engine.bids_of(alice)[0].handle

        engine.grant_decrypt(alice, auditor, handle, expiry=clock.now() + 2)
        assert engine.user_decrypt(handle, auditor) == (10, None)
        clock.advance(3)
        assert engine.user_decrypt(handle, auditor)[1].code == ErrorCode.PERMISSION_DENIED
        assert not engine.is_authorized(alice, auditor)
