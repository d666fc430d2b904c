"""
Error taxonomy for the auction core.

Every failure has an ErrorCode, and every code belongs to exactly one kind:

- VALIDATION: bad input or an operation attempted in the wrong phase
- PERMISSION: decrypt or settle without the required authority
- STATE: the operation conflicts with recorded state
- PROVIDER: surfaced unchanged from the oblivious value provider, or the
  decryption relayer refused a request

Engine operations *return* these errors as the second element of a
(value, error) pair. Providers *raise* ProviderError; the engine catches it and
returns the same instance to its caller.
"""

from enum import Enum, IntEnum


class ErrorKind(Enum):
    """Broad category of an error code."""
    VALIDATION = "validation"
    PERMISSION = "permission"
    STATE = "state"
    PROVIDER = "provider"


class ErrorCode(IntEnum):
    """Every failure the auction core can report."""
    # Validation
    INVALID_PRINCIPAL = 1
    INVALID_INPUT = 2
    BIDDING_CLOSED = 3
    NOT_READY = 4
    REVEAL_CLOSED = 5
    BID_LIMIT_REACHED = 6
    # Permission
    PERMISSION_DENIED = 20
    UNAUTHORIZED = 21
    INVALID_SIGNATURE = 22
    # State
    ALREADY_REVEALED = 40
    ALREADY_DECRYPTED = 41
    DECRYPTION_PENDING = 42
    NO_VALID_BIDS = 43
    NOT_FOUND = 44
    # Provider
    INVALID_PROOF = 60
    TYPE_MISMATCH = 61
    UNKNOWN_HANDLE = 62
    RELAYER_UNAVAILABLE = 63

    @property
    def kind(self) -> ErrorKind:
        if self < 20:
            return ErrorKind.VALIDATION
        if self < 40:
            return ErrorKind.PERMISSION
        if self < 60:
            return ErrorKind.STATE
        return ErrorKind.PROVIDER


class AuctionError(Exception):
    """Base class for every typed auction failure."""

    def __init__(self, code: ErrorCode, message: str = ""):
        self.code = code
        self.message = message or code.name.replace("_", " ").capitalize()
        super().__init__(self.message)

    @property
    def kind(self) -> ErrorKind:
        return self.code.kind

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.code.name}, {self.message!r})"


class ValidationError(AuctionError):
    """Invalid input or wrong-phase operation."""


class AuthorizationError(AuctionError):
    """Missing or expired permission."""


class StateError(AuctionError):
    """Operation conflicts with recorded state."""


class ProviderError(AuctionError):
    """Failure raised by an oblivious value provider."""


_KIND_TO_CLASS = {
    ErrorKind.VALIDATION: ValidationError,
    ErrorKind.PERMISSION: AuthorizationError,
    ErrorKind.STATE: StateError,
    ErrorKind.PROVIDER: ProviderError,
}


def make_error(code: ErrorCode, message: str = "") -> AuctionError:
    """Build an error of the class matching the code's kind."""
    return _KIND_TO_CLASS[code.kind](code, message)


__all__ = [
    "ErrorKind",
    "ErrorCode",
    "AuctionError",
    "ValidationError",
    "AuthorizationError",
    "StateError",
    "ProviderError",
    "make_error",
]
