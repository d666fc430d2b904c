"""
Sealbid - Confidential sealed-bid auctions over oblivious values.

A research prototype integrating:
- Opaque handles issued by an oblivious value provider
- Capability grants with optional block-height expiry
- A time-gated Bidding -> Reveal -> Settled auction
- Asynchronous relayer-driven decryption
"""

__version__ = "0.1.0"
