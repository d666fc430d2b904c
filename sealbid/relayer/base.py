"""
Relayer base - shared plumbing for decryption oracles.

A relayer owns a secp256k1 keypair. Its address is the principal the engine
grants on each handle it asks to decrypt; its key signs every plaintext it
returns so engines configured with the oracle public key can check callbacks.
"""

from typing import Optional, Tuple

from sealbid.crypto import KeyPair, generate_keypair, sign
from sealbid.core.auction.decryption import DecryptionRequest, decryption_digest
from sealbid.core.provider.base import ObliviousValueProvider
from sealbid.core.types import Principal


class OracleRelayer:
    """Decrypts requested handles with its own grant and signs the results."""

    def __init__(self, provider: ObliviousValueProvider, keypair: Optional[KeyPair] = None):
        self.provider = provider
        self.keypair = keypair or generate_keypair()

    @property
    def address(self) -> Principal:
        return Principal(self.keypair.address)

    @property
    def public_key(self) -> bytes:
        return self.keypair.public_key

    def resolve(self, request: DecryptionRequest) -> Tuple[int, bytes]:
        """
        Decrypt a request's handle and sign the plaintext.

        Raises:
            AuthorizationError: the engine did not grant this relayer access
        """
        plaintext = self.provider.decrypt(request.handle, self.address)
        signature = sign(
            decryption_digest(request.request_id, request.handle, plaintext),
            self.keypair.private_key,
        )
        return plaintext, signature
