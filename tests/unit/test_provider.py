"""
Tests for the mock oblivious value provider.

Tests cover:
1. Encrypted input ingestion and proof checks
2. Oblivious arithmetic, comparison and selection
3. Handle lifecycle: fresh handles carry no grants
4. Fail-closed decryption, including expiry
"""

import pytest

from sealbid.crypto import generate_keypair
from sealbid.core.errors import AuthorizationError, ErrorCode, ErrorKind, ProviderError
from sealbid.core.provider import MockProvider
from sealbid.core.types import BinaryOp, Width


@pytest.fixture
def contract():
    return generate_keypair().address


@pytest.fixture
def user():
    return generate_keypair().address


def ingest32(provider, contract, user, value):
    payload = provider.create_encrypted_input(contract, user).add32(value).encrypt()
    return provider.ingest(payload.data, payload.proof, contract, user, Width.UINT32)


class TestIngest:
    """Tests for client input ingestion."""

    def test_ingest_round_trip(self, provider, contract, user):
        handle = ingest32(provider, contract, user, 12345)
        provider.grant(handle, user)
        assert handle.width == Width.UINT32
        assert provider.decrypt(handle, user) == 12345

    def test_tampered_proof_rejected(self, provider, contract, user):
        payload = provider.create_encrypted_input(contract, user).add32(7).encrypt()
        bad_proof = bytes([payload.proof[0] ^ 1]) + payload.proof[1:]

        with pytest.raises(ProviderError) as exc:
            provider.ingest(payload.data, bad_proof, contract, user, Width.UINT32)
        assert exc.value.code == ErrorCode.INVALID_PROOF
        assert exc.value.kind == ErrorKind.PROVIDER

    def test_tampered_ciphertext_rejected(self, provider, contract, user):
        payload = provider.create_encrypted_input(contract, user).add32(7).encrypt()
        bad_data = payload.data[:-1] + bytes([payload.data[-1] ^ 1])

        with pytest.raises(ProviderError) as exc:
            provider.ingest(bad_data, payload.proof, contract, user, Width.UINT32)
        assert exc.value.code == ErrorCode.INVALID_PROOF

    def test_proof_bound_to_user(self, provider, contract, user):
        """A payload encrypted for one user cannot be replayed by another."""
        payload = provider.create_encrypted_input(contract, user).add32(7).encrypt()
        other = generate_keypair().address

        with pytest.raises(ProviderError) as exc:
            provider.ingest(payload.data, payload.proof, contract, other, Width.UINT32)
        assert exc.value.code == ErrorCode.INVALID_PROOF

    def test_proof_bound_to_contract(self, provider, contract, user):
        payload = provider.create_encrypted_input(contract, user).add32(7).encrypt()
        other = generate_keypair().address

        with pytest.raises(ProviderError):
            provider.ingest(payload.data, payload.proof, other, user, Width.UINT32)

    def test_other_provider_rejects(self, provider, contract, user):
        payload = provider.create_encrypted_input(contract, user).add32(7).encrypt()

        with pytest.raises(ProviderError) as exc:
            MockProvider().ingest(payload.data, payload.proof, contract, user, Width.UINT32)
        assert exc.value.code == ErrorCode.INVALID_PROOF

    def test_width_mismatch(self, provider, contract, user):
        payload = provider.create_encrypted_input(contract, user).add8(7).encrypt()

        with pytest.raises(ProviderError) as exc:
            provider.ingest(payload.data, payload.proof, contract, user, Width.UINT32)
        assert exc.value.code == ErrorCode.TYPE_MISMATCH

    def test_malformed_ciphertext(self, provider, contract, user):
        with pytest.raises(ProviderError) as exc:
            provider.ingest(b"\x01\x20", b"\x00" * 32, contract, user, Width.UINT32)
        assert exc.value.code == ErrorCode.INVALID_PROOF

    def test_input_builder_limits(self, provider, contract, user):
        builder = provider.create_encrypted_input(contract, user)
        with pytest.raises(ValueError):
            builder.add8(256)
        builder.add8(255)
        with pytest.raises(ValueError):
            builder.add8(1)

    def test_encrypt_without_value(self, provider, contract, user):
        with pytest.raises(ValueError):
            provider.create_encrypted_input(contract, user).encrypt()


class TestObliviousOps:
    """Tests for combine / compare_ge / select."""

    def test_add_and_sub(self, provider, user):
        a = provider.trivial_encrypt(30, Width.UINT32)
        b = provider.trivial_encrypt(12, Width.UINT32)
        total = provider.combine(BinaryOp.ADD, a, b)
        diff = provider.combine(BinaryOp.SUB, a, b)
        provider.grant(total, user)
        provider.grant(diff, user)

        assert provider.decrypt(total, user) == 42
        assert provider.decrypt(diff, user) == 18

    def test_arithmetic_wraps(self, provider, user):
        a = provider.trivial_encrypt(250, Width.UINT8)
        b = provider.trivial_encrypt(10, Width.UINT8)
        total = provider.combine(BinaryOp.ADD, a, b)
        under = provider.combine(BinaryOp.SUB, b, a)
        provider.grant(total, user)
        provider.grant(under, user)

        assert provider.decrypt(total, user) == 4
        assert provider.decrypt(under, user) == 16

    @pytest.mark.parametrize("x,y", [(5, 3), (3, 5), (4, 4)])
    def test_select_on_compare(self, provider, user, x, y):
        a = provider.trivial_encrypt(x, Width.UINT32)
        b = provider.trivial_encrypt(y, Width.UINT32)
        larger = provider.select(provider.compare_ge(a, b), a, b)
        provider.grant(larger, user)
        assert provider.decrypt(larger, user) == max(x, y)

    def test_mixed_widths_rejected(self, provider):
        a = provider.trivial_encrypt(1, Width.UINT8)
        b = provider.trivial_encrypt(1, Width.UINT16)
        with pytest.raises(ProviderError) as exc:
            provider.compare_ge(a, b)
        assert exc.value.code == ErrorCode.TYPE_MISMATCH

    def test_every_derivation_is_a_new_handle(self, provider):
        a = provider.trivial_encrypt(1, Width.UINT32)
        b = provider.trivial_encrypt(2, Width.UINT32)
        chosen = provider.select(provider.compare_ge(a, b), a, b)
        assert chosen not in (a, b)
        assert chosen.handle_id != b.handle_id


class TestAccessControl:
    """Tests for grants and fail-closed decryption."""

    def test_derived_handle_has_no_grants(self, provider, user):
        a = provider.trivial_encrypt(9, Width.UINT32)
        provider.grant(a, user)
        derived = provider.combine(BinaryOp.ADD, a, a)

        assert provider.allowed_principals(derived) == []
        with pytest.raises(AuthorizationError) as exc:
            provider.decrypt(derived, user)
        assert exc.value.code == ErrorCode.PERMISSION_DENIED

    def test_grant_expiry_inclusive(self, provider, user):
        h = provider.trivial_encrypt(9, Width.UINT32)
        provider.grant(h, user, expires_at=15)

        assert provider.decrypt(h, user, now=15) == 9
        with pytest.raises(AuthorizationError):
            provider.decrypt(h, user, now=16)

    def test_grant_is_case_insensitive(self, provider, user):
        h = provider.trivial_encrypt(9, Width.UINT32)
        provider.grant(h, user.upper().replace("0X", "0x"))
        assert provider.is_allowed(h, user)

    def test_unknown_handle(self, provider, user):
        other = MockProvider().trivial_encrypt(1, Width.UINT32)
        with pytest.raises(ProviderError) as exc:
            provider.grant(other, user)
        assert exc.value.code == ErrorCode.UNKNOWN_HANDLE
