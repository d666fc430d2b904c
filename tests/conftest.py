"""
Shared fixtures: a mock provider, a manual clock and a ready engine.

The default engine opens at block 1, closes bidding after block 10 and closes
reveals after block 20.
"""

import pytest

from sealbid.crypto import generate_keypair
from sealbid.core.auction import AuctionEngine, PhaseSchedule
from sealbid.core.clock import ManualClock
from sealbid.core.provider import MockProvider

BID_DEADLINE = 10
REVEAL_DEADLINE = 20


@pytest.fixture
def provider():
    return MockProvider()


@pytest.fixture
def clock():
    return ManualClock(start=1)


@pytest.fixture
def seller():
    return generate_keypair().address


@pytest.fixture
def bidders():
    return [generate_keypair().address for _ in range(4)]


@pytest.fixture
def engine(seller, provider, clock):
    return AuctionEngine(
        seller=seller,
        provider=provider,
        clock=clock,
        schedule=PhaseSchedule(bid_deadline=BID_DEADLINE, reveal_deadline=REVEAL_DEADLINE),
    )


@pytest.fixture
def encrypt_bid(provider):
    """Build a 32-bit encrypted payload bound to (engine, bidder)."""
    def _encrypt(engine, bidder, amount):
        return provider.create_encrypted_input(engine.address, bidder).add32(amount).encrypt()
    return _encrypt


@pytest.fixture
def place_bid(encrypt_bid):
    """Encrypt and submit a bid, returning the engine's (index, error)."""
    def _place(engine, bidder, amount):
        payload = encrypt_bid(engine, bidder, amount)
        return engine.submit_bid(bidder, payload.data, payload.proof)
    return _place
