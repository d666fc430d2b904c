"""
Cryptographic primitives for Sealbid.

Principals, oracle keys and the binding hash behind encrypted inputs:

- keccak256: input proofs, handle ids, callback digests, addresses
- KeyPair / generate_keypair: secp256k1 identities for bidders, sellers and
  decryption oracles
- sign / verify: oracle signatures over decryption digests

A principal is the Ethereum-style address of a public key, i.e. the last
20 bytes of its Keccak-256, so bidder identities look like the accounts a
confidential auction contract would see.
"""

import secrets
from dataclasses import dataclass

from Crypto.Hash import keccak
from py_ecc.secp256k1 import secp256k1


# =============================================================================
# Constants
# =============================================================================

# secp256k1 group order
SECP256K1_ORDER = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141

ADDRESS_SIZE = 20


# =============================================================================
# Hashing
# =============================================================================


def keccak256(data: bytes) -> bytes:
    """Keccak-256 digest (the pre-standard SHA-3 used by Ethereum)."""
    k = keccak.new(digest_bits=256)
    k.update(data)
    return k.digest()


# =============================================================================
# Principals
# =============================================================================


@dataclass
class KeyPair:
    """
    secp256k1 identity of a principal.

    Attributes:
        private_key: 32-byte scalar in [1, order-1]
        public_key: 64-byte x || y point, no 0x04 prefix
    """
    private_key: bytes
    public_key: bytes

    @property
    def address(self) -> str:
        return address_from_public_key(self.public_key)


def generate_keypair() -> KeyPair:
    """Fresh random principal."""
    scalar = secrets.randbelow(SECP256K1_ORDER - 1) + 1
    private_key = scalar.to_bytes(32, byteorder="big")
    return KeyPair(private_key=private_key, public_key=private_key_to_public_key(private_key))


def private_key_to_public_key(private_key: bytes) -> bytes:
    if len(private_key) != 32:
        raise ValueError("Private key must be 32 bytes")

    x, y = secp256k1.privtopub(private_key)
    return x.to_bytes(32, byteorder="big") + y.to_bytes(32, byteorder="big")


def address_from_public_key(public_key: bytes) -> str:
    """0x-prefixed hex of the last 20 bytes of keccak256(public_key)."""
    if len(public_key) != 64:
        raise ValueError("Public key must be 64 bytes")
    return "0x" + keccak256(public_key)[-ADDRESS_SIZE:].hex()


def is_valid_address(address: str) -> bool:
    if not isinstance(address, str) or not address.startswith("0x"):
        return False
    if len(address) != 2 + 2 * ADDRESS_SIZE:
        return False
    try:
        int(address, 16)
    except ValueError:
        return False
    return True


# =============================================================================
# Oracle signatures
# =============================================================================


def sign(message_hash: bytes, private_key: bytes) -> bytes:
    """
    Sign a 32-byte digest.

    Returns:
        64-byte r || s with s in the lower half of the group order
    """
    if len(message_hash) != 32:
        raise ValueError("Message hash must be 32 bytes")
    if len(private_key) != 32:
        raise ValueError("Private key must be 32 bytes")

    _, r, s = secp256k1.ecdsa_raw_sign(message_hash, private_key)
    if s > SECP256K1_ORDER // 2:
        s = SECP256K1_ORDER - s

    return r.to_bytes(32, byteorder="big") + s.to_bytes(32, byteorder="big")


def verify(message_hash: bytes, signature: bytes, public_key: bytes) -> bool:
    """
    Check an r || s signature against a 64-byte public key.

    Malformed inputs verify as False rather than raising, so a callback
    carrying garbage is simply rejected.
    """
    if len(message_hash) != 32 or len(signature) != 64 or len(public_key) != 64:
        return False

    r = int.from_bytes(signature[:32], byteorder="big")
    s = int.from_bytes(signature[32:], byteorder="big")
    if not (0 < r < SECP256K1_ORDER and 0 < s < SECP256K1_ORDER):
        return False

    expected = (
        int.from_bytes(public_key[:32], byteorder="big"),
        int.from_bytes(public_key[32:], byteorder="big"),
    )

    # No recovery id travels with the signature, so try both parities
    for v in (27, 28):
        try:
            if secp256k1.ecdsa_raw_recover(message_hash, (v, r, s)) == expected:
                return True
        except (ValueError, ZeroDivisionError):
            continue

    return False


def bytes_to_hex(data: bytes) -> str:
    return "0x" + data.hex()


__all__ = [
    "KeyPair",
    "generate_keypair",
    "private_key_to_public_key",
    "address_from_public_key",
    "is_valid_address",
    "keccak256",
    "sign",
    "verify",
    "bytes_to_hex",
    "SECP256K1_ORDER",
    "ADDRESS_SIZE",
]
