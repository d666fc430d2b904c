"""
Value types shared across the auction core.

OpaqueHandle and BoolHandle are tokens issued by an oblivious value provider.
Core code passes them around, stores them and hands them back to the provider;
it never reads anything out of them except the id used for logging.
"""

from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import NewType, Optional


# Participant identity: a 0x-prefixed 20-byte hex address
Principal = NewType("Principal", str)

# Block height / logical clock reading
BlockHeight = int

# None means the grant never expires
Expiry = Optional[BlockHeight]


class Width(IntEnum):
    """Bit width of an oblivious unsigned integer."""
    UINT8 = 8
    UINT16 = 16
    UINT32 = 32
    UINT64 = 64

    @property
    def modulus(self) -> int:
        return 1 << int(self)

    @property
    def max_value(self) -> int:
        return self.modulus - 1


class BinaryOp(Enum):
    """Arithmetic accepted by ObliviousValueProvider.combine."""
    ADD = "add"
    SUB = "sub"


@dataclass(frozen=True)
class OpaqueHandle:
    """
    Reference to an oblivious unsigned integer.

    Attributes:
        handle_id: 32-byte identifier assigned by the issuing provider
        width: Bit width of the referenced value
    """
    handle_id: bytes
    width: Width

    @property
    def short_id(self) -> str:
        return self.handle_id.hex()[:8]

    def __repr__(self) -> str:
        return f"OpaqueHandle({self.short_id}, {self.width.name})"


@dataclass(frozen=True)
class BoolHandle:
    """Reference to an oblivious boolean, only produced by comparisons."""
    handle_id: bytes

    @property
    def short_id(self) -> str:
        return self.handle_id.hex()[:8]

    def __repr__(self) -> str:
        return f"BoolHandle({self.short_id})"


__all__ = [
    "Principal",
    "BlockHeight",
    "Expiry",
    "Width",
    "BinaryOp",
    "OpaqueHandle",
    "BoolHandle",
]
