"""
Input Validation - sanitization for values crossing the engine boundary.

Provides validation for external inputs to prevent:
- Malformed principals
- Oversized ciphertexts and proofs (resource exhaustion)
- Negative or overflowing block heights
"""

from typing import Any, Optional, Tuple

from sealbid.crypto import is_valid_address

# =============================================================================
# Constants
# =============================================================================

# Maximum sizes
MAX_CIPHERTEXT_SIZE = 4096  # 4KB
MAX_PROOF_SIZE = 1024

# Field bounds
MIN_BLOCK = 0
MAX_BLOCK = 2**64 - 1


# =============================================================================
# Validation Functions
# =============================================================================


def validate_bytes(
    data: Any,
    name: str,
    expected_length: Optional[int] = None,
    max_length: Optional[int] = None,
) -> Tuple[bool, str]:
    """
    Validate bytes input.

    Args:
        data: Data to validate
        name: Field name for error messages
        expected_length: Exact expected length
        max_length: Maximum allowed length

    Returns:
        (is_valid, error_message)
    """
    if not isinstance(data, (bytes, bytearray)):
        return False, f"{name} must be bytes, got {type(data).__name__}"

    if expected_length is not None and len(data) != expected_length:
        return False, f"{name} must be {expected_length} bytes, got {len(data)}"

    if max_length is not None and len(data) > max_length:
        return False, f"{name} exceeds max length {max_length}, got {len(data)}"

    return True, ""


def validate_integer(
    value: Any,
    name: str,
    min_val: int,
    max_val: int,
) -> Tuple[bool, str]:
    """Validate integer within bounds (bool is rejected)."""
    if isinstance(value, bool) or not isinstance(value, int):
        return False, f"{name} must be int, got {type(value).__name__}"

    if value < min_val:
        return False, f"{name} must be >= {min_val}, got {value}"

    if value > max_val:
        return False, f"{name} must be <= {max_val}, got {value}"

    return True, ""


def validate_principal(principal: Any, name: str = "principal") -> Tuple[bool, str]:
    """Validate a 0x-prefixed 20-byte hex address."""
    if not isinstance(principal, str):
        return False, f"{name} must be str, got {type(principal).__name__}"
    if not is_valid_address(principal):
        return False, f"{name} is not a valid address: {principal!r}"
    return True, ""


def validate_block_number(block: Any, name: str = "block_number") -> Tuple[bool, str]:
    """Validate a block height."""
    return validate_integer(block, name, MIN_BLOCK, MAX_BLOCK)


def validate_ciphertext(data: Any) -> Tuple[bool, str]:
    return validate_bytes(data, "ciphertext", max_length=MAX_CIPHERTEXT_SIZE)


def validate_proof(data: Any) -> Tuple[bool, str]:
    return validate_bytes(data, "proof", max_length=MAX_PROOF_SIZE)


# =============================================================================
# Module Exports
# =============================================================================

__all__ = [
    "validate_bytes",
    "validate_integer",
    "validate_principal",
    "validate_block_number",
    "validate_ciphertext",
    "validate_proof",
    "MAX_CIPHERTEXT_SIZE",
    "MAX_PROOF_SIZE",
]
