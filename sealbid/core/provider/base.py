"""
Oblivious Value Provider - the interface the auction core consumes.

A provider owns every oblivious value. It hands out opaque handles, performs
arithmetic, comparison and selection on them, and decrypts for principals that
hold a valid grant.

Handle lifecycle rules every implementation must honour:
- Handles are immutable. combine/compare_ge/select always return new handles.
- A freshly produced handle has no grants. Callers grant explicitly.
- decrypt fails closed: no grant, or an expired one, means PERMISSION_DENIED.
"""

from abc import ABC, abstractmethod
from typing import Optional

from sealbid.core.types import (
    BinaryOp,
    BlockHeight,
    BoolHandle,
    Expiry,
    OpaqueHandle,
    Principal,
    Width,
)


class ObliviousValueProvider(ABC):
    """Abstract encrypted-value backend."""

    @abstractmethod
    def trivial_encrypt(self, value: int, width: Width) -> OpaqueHandle:
        """Encrypt a public constant (e.g. the initial zero maximum)."""

    @abstractmethod
    def ingest(
        self,
        raw_ciphertext: bytes,
        proof: bytes,
        contract: Principal,
        user: Principal,
        width: Width,
    ) -> OpaqueHandle:
        """
        Validate a client-encrypted input and issue a handle for it.

        Raises:
            ProviderError: INVALID_PROOF if the proof does not bind the
                ciphertext to (contract, user); TYPE_MISMATCH if the input
                was encrypted at another width.
        """

    @abstractmethod
    def combine(self, op: BinaryOp, a: OpaqueHandle, b: OpaqueHandle) -> OpaqueHandle:
        """Wrapping arithmetic on two handles of the same width."""

    @abstractmethod
    def compare_ge(self, a: OpaqueHandle, b: OpaqueHandle) -> BoolHandle:
        """Oblivious a >= b."""

    @abstractmethod
    def select(
        self,
        cond: BoolHandle,
        if_true: OpaqueHandle,
        if_false: OpaqueHandle,
    ) -> OpaqueHandle:
        """Oblivious cond ? if_true : if_false."""

    @abstractmethod
    def grant(self, handle: OpaqueHandle, principal: Principal, expires_at: Expiry = None) -> None:
        """Allow principal to decrypt handle, optionally until a block height."""

    @abstractmethod
    def is_allowed(
        self,
        handle: OpaqueHandle,
        principal: Principal,
        now: Optional[BlockHeight] = None,
    ) -> bool:
        """Whether principal holds a grant on handle that is valid at now."""

    @abstractmethod
    def decrypt(
        self,
        handle: OpaqueHandle,
        requester: Principal,
        now: Optional[BlockHeight] = None,
    ) -> int:
        """
        Decrypt handle for requester.

        Raises:
            AuthorizationError: PERMISSION_DENIED without a valid grant.
        """


__all__ = ["ObliviousValueProvider"]
