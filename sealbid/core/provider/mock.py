"""
Mock Provider - in-process oblivious value arena for tests and demos.

Values live in a private arena keyed by 32-byte handle ids. Nothing here is
homomorphic: plaintexts sit in memory and the arithmetic is ordinary integer
arithmetic. What the mock does enforce is the provider contract the auction
depends on:

- Inputs arrive as AES-GCM ciphertexts under the provider's network key, with a
  Keccak-256 proof binding (ciphertext, contract, user). Tampered ciphertexts
  or proofs are rejected with INVALID_PROOF.
- Every derived handle starts with an empty ACL.
- decrypt checks the ACL, including grant expiry.

Ciphertext layout:
    version (1) || width (1) || nonce (12) || tag (16) || AES-GCM(value, 8 bytes)
"""

import secrets
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from Crypto.Cipher import AES

from sealbid.crypto import keccak256
from sealbid.core.errors import ErrorCode, AuthorizationError, ProviderError
from sealbid.core.provider.base import ObliviousValueProvider
from sealbid.core.types import (
    BinaryOp,
    BlockHeight,
    BoolHandle,
    Expiry,
    OpaqueHandle,
    Principal,
    Width,
)
from sealbid.utils.logger import get_logger

logger = get_logger("provider")


# =============================================================================
# Constants
# =============================================================================

CIPHERTEXT_VERSION = 1
NONCE_SIZE = 12
TAG_SIZE = 16
VALUE_SIZE = 8
HEADER_SIZE = 2 + NONCE_SIZE + TAG_SIZE

# Domain separators
DOMAIN_INPUT_PROOF = b"sealbid.input.v1"
DOMAIN_HANDLE = b"sealbid.handle.v1"


# =============================================================================
# Client-side input encryption
# =============================================================================


@dataclass
class EncryptedPayload:
    """Ciphertext plus input proof, ready for submission."""
    data: bytes
    proof: bytes


@dataclass
class EncryptedInput:
    """
    Builder for a single client-encrypted value.

    Bound to the contract (engine address) that will ingest it and the user
    submitting it; a payload built for one pair is rejected by any other.
    """
    network_key: bytes
    contract: Principal
    user: Principal
    _value: Optional[Tuple[int, Width]] = field(default=None, repr=False)

    def _add(self, value: int, width: Width) -> "EncryptedInput":
        if self._value is not None:
            raise ValueError("EncryptedInput holds a single value")
        if not isinstance(value, int) or value < 0 or value > width.max_value:
            raise ValueError(f"Value out of range for {width.name}")
        self._value = (value, width)
        return self

    def add8(self, value: int) -> "EncryptedInput":
        return self._add(value, Width.UINT8)

    def add16(self, value: int) -> "EncryptedInput":
        return self._add(value, Width.UINT16)

    def add32(self, value: int) -> "EncryptedInput":
        return self._add(value, Width.UINT32)

    def add64(self, value: int) -> "EncryptedInput":
        return self._add(value, Width.UINT64)

    def encrypt(self) -> EncryptedPayload:
        """Encrypt the value and produce its binding proof."""
        if self._value is None:
            raise ValueError("Nothing to encrypt")
        value, width = self._value

        nonce = secrets.token_bytes(NONCE_SIZE)
        cipher = AES.new(self.network_key, AES.MODE_GCM, nonce=nonce)
        body, tag = cipher.encrypt_and_digest(value.to_bytes(VALUE_SIZE, "big"))
        data = bytes([CIPHERTEXT_VERSION, int(width)]) + nonce + tag + body

        return EncryptedPayload(
            data=data,
            proof=input_proof(self.network_key, self.contract, self.user, data),
        )


def input_proof(network_key: bytes, contract: str, user: str, data: bytes) -> bytes:
    """Keyed binding of a ciphertext to its (contract, user) pair."""
    return keccak256(
        network_key
        + DOMAIN_INPUT_PROOF
        + contract.lower().encode()
        + user.lower().encode()
        + data
    )


# =============================================================================
# Mock Provider
# =============================================================================


class MockProvider(ObliviousValueProvider):
    """
    Arena-backed provider.

    The arena maps handle ids to (plaintext, width); the ACL maps handle ids to
    {principal: expiry}. Both are private to the provider.
    """

    def __init__(self, network_key: Optional[bytes] = None):
        self._network_key = network_key or secrets.token_bytes(32)
        self._salt = secrets.token_bytes(16)
        self._counter = 0

        self._values: Dict[bytes, Tuple[int, Width]] = {}
        self._bools: Dict[bytes, bool] = {}
        self._acl: Dict[bytes, Dict[str, Expiry]] = {}

        logger.debug("MockProvider initialized")

    # =========================================================================
    # Arena
    # =========================================================================

    def _next_id(self) -> bytes:
        self._counter += 1
        return keccak256(DOMAIN_HANDLE + self._salt + self._counter.to_bytes(8, "big"))

    def _issue(self, value: int, width: Width) -> OpaqueHandle:
        handle = OpaqueHandle(handle_id=self._next_id(), width=width)
        self._values[handle.handle_id] = (value % width.modulus, width)
        return handle

    def _lookup(self, handle: OpaqueHandle) -> int:
        entry = self._values.get(handle.handle_id)
        if entry is None or entry[1] != handle.width:
            raise ProviderError(ErrorCode.UNKNOWN_HANDLE, f"Unknown handle {handle.short_id}")
        return entry[0]

    @staticmethod
    def _require_same_width(a: OpaqueHandle, b: OpaqueHandle) -> None:
        if a.width != b.width:
            raise ProviderError(
                ErrorCode.TYPE_MISMATCH,
                f"Width mismatch: {a.width.name} vs {b.width.name}",
            )

    @property
    def handle_count(self) -> int:
        """Number of integer handles issued so far."""
        return len(self._values)

    # =========================================================================
    # Inputs
    # =========================================================================

    def create_encrypted_input(self, contract: Principal, user: Principal) -> EncryptedInput:
        """Client-side builder for inputs this provider will accept."""
        return EncryptedInput(network_key=self._network_key, contract=contract, user=user)

    def trivial_encrypt(self, value: int, width: Width) -> OpaqueHandle:
        if value < 0 or value > width.max_value:
            raise ValueError(f"Value out of range for {width.name}")
        return self._issue(value, width)

    def ingest(
        self,
        raw_ciphertext: bytes,
        proof: bytes,
        contract: Principal,
        user: Principal,
        width: Width,
    ) -> OpaqueHandle:
        if not isinstance(raw_ciphertext, (bytes, bytearray)) or len(raw_ciphertext) <= HEADER_SIZE:
            raise ProviderError(ErrorCode.INVALID_PROOF, "Malformed ciphertext")

        raw_ciphertext = bytes(raw_ciphertext)
        expected = input_proof(self._network_key, contract, user, raw_ciphertext)
        if not isinstance(proof, (bytes, bytearray)) or not secrets.compare_digest(expected, bytes(proof)):
            raise ProviderError(ErrorCode.INVALID_PROOF, "Input proof does not match ciphertext")

        version, encoded_width = raw_ciphertext[0], raw_ciphertext[1]
        if version != CIPHERTEXT_VERSION:
            raise ProviderError(ErrorCode.INVALID_PROOF, f"Unsupported ciphertext version {version}")
        if encoded_width != int(width):
            raise ProviderError(
                ErrorCode.TYPE_MISMATCH,
                f"Input encrypted as {encoded_width}-bit, expected {width.name}",
            )

        nonce = raw_ciphertext[2:2 + NONCE_SIZE]
        tag = raw_ciphertext[2 + NONCE_SIZE:HEADER_SIZE]
        body = raw_ciphertext[HEADER_SIZE:]
        cipher = AES.new(self._network_key, AES.MODE_GCM, nonce=nonce)
        try:
            plaintext = cipher.decrypt_and_verify(body, tag)
        except ValueError:
            raise ProviderError(ErrorCode.INVALID_PROOF, "Ciphertext authentication failed")

        value = int.from_bytes(plaintext, "big")
        if value > width.max_value:
            raise ProviderError(ErrorCode.TYPE_MISMATCH, f"Value exceeds {width.name}")

        handle = self._issue(value, width)
        logger.debug(f"Ingested input from {user[:10]} as handle {handle.short_id}")
        return handle

    # =========================================================================
    # Oblivious operations
    # =========================================================================

    def combine(self, op: BinaryOp, a: OpaqueHandle, b: OpaqueHandle) -> OpaqueHandle:
        self._require_same_width(a, b)
        x, y = self._lookup(a), self._lookup(b)
        if op == BinaryOp.ADD:
            return self._issue(x + y, a.width)
        if op == BinaryOp.SUB:
            return self._issue(x - y, a.width)
        raise ValueError(f"Unsupported operation {op}")

    def compare_ge(self, a: OpaqueHandle, b: OpaqueHandle) -> BoolHandle:
        self._require_same_width(a, b)
        result = BoolHandle(handle_id=self._next_id())
        self._bools[result.handle_id] = self._lookup(a) >= self._lookup(b)
        return result

    def select(
        self,
        cond: BoolHandle,
        if_true: OpaqueHandle,
        if_false: OpaqueHandle,
    ) -> OpaqueHandle:
        self._require_same_width(if_true, if_false)
        flag = self._bools.get(cond.handle_id)
        if flag is None:
            raise ProviderError(ErrorCode.UNKNOWN_HANDLE, f"Unknown condition {cond.short_id}")
        chosen = if_true if flag else if_false
        return self._issue(self._lookup(chosen), if_true.width)

    # =========================================================================
    # Access control
    # =========================================================================

    def grant(self, handle: OpaqueHandle, principal: Principal, expires_at: Expiry = None) -> None:
        self._lookup(handle)
        self._acl.setdefault(handle.handle_id, {})[principal.lower()] = expires_at

    def is_allowed(
        self,
        handle: OpaqueHandle,
        principal: Principal,
        now: Optional[BlockHeight] = None,
    ) -> bool:
        grants = self._acl.get(handle.handle_id, {})
        key = principal.lower()
        if key not in grants:
            return False
        expiry = grants[key]
        return expiry is None or now is None or now <= expiry

    def allowed_principals(self, handle: OpaqueHandle) -> List[str]:
        """Principals holding any grant on handle (expired ones included)."""
        return sorted(self._acl.get(handle.handle_id, {}))

    def decrypt(
        self,
        handle: OpaqueHandle,
        requester: Principal,
        now: Optional[BlockHeight] = None,
    ) -> int:
        value = self._lookup(handle)
        if not self.is_allowed(handle, requester, now):
            logger.warning(f"Decrypt of {handle.short_id} denied for {requester[:10]}")
            raise AuthorizationError(
                ErrorCode.PERMISSION_DENIED,
                f"{requester} may not decrypt {handle.short_id}",
            )
        return value


__all__ = [
    "MockProvider",
    "EncryptedInput",
    "EncryptedPayload",
    "input_proof",
]
