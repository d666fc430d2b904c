"""
Decryption relayers: the external oracles behind decrypt_request().
"""

from sealbid.relayer.base import OracleRelayer
from sealbid.relayer.memory import InMemoryRelayer, DeliveryResult
from sealbid.relayer.async_relayer import AsyncRelayer

__all__ = ["OracleRelayer", "InMemoryRelayer", "DeliveryResult", "AsyncRelayer"]
