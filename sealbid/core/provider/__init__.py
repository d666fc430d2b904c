"""
Oblivious value providers.

- ObliviousValueProvider: the abstract interface the auction consumes
- MockProvider: in-process arena implementation for tests and demos
"""

from sealbid.core.provider.base import ObliviousValueProvider
from sealbid.core.provider.mock import (
    MockProvider,
    EncryptedInput,
    EncryptedPayload,
    input_proof,
)

__all__ = [
    "ObliviousValueProvider",
    "MockProvider",
    "EncryptedInput",
    "EncryptedPayload",
    "input_proof",
]
