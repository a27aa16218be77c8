"""
Tests for the paymaster signer.
"""

import pytest
from eth_utils import keccak

from anode.core.paymaster import (
    ConfigurationError,
    InternalError,
    SigningContext,
    canonicalize_signature,
    recover_signer,
    sign_paymaster_hash,
)
from anode.core.paymaster.signer import SECP256K1_HALF_N, SECP256K1_N, is_canonical

PRIVATE_KEY = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"
SIGNER = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"
PAYMASTER = "0x3720B69B7f30D92FACed624c39B1fd317408774B"


def _high_s_variant(signature: bytes) -> bytes:
    r = signature[:32]
    s = int.from_bytes(signature[32:64], "big")
    v = signature[64]
    return r + (SECP256K1_N - s).to_bytes(32, "big") + bytes([55 - v])


class TestSigningContext:
    def test_create(self):
        context = SigningContext.create(PRIVATE_KEY, PAYMASTER.lower())

        assert context.signer_address == SIGNER
        assert context.paymaster_address == PAYMASTER
        assert context.enforce_canonical is True

    def test_repr_hides_key(self):
        context = SigningContext.create(PRIVATE_KEY, PAYMASTER)

        assert PRIVATE_KEY[2:] not in repr(context)

    def test_missing_key(self):
        with pytest.raises(ConfigurationError, match="private key"):
            SigningContext.create("", PAYMASTER)

    def test_missing_paymaster_address(self):
        with pytest.raises(ConfigurationError, match="contract address"):
            SigningContext.create(PRIVATE_KEY, None)

    def test_invalid_paymaster_address(self):
        with pytest.raises(ConfigurationError, match="Invalid paymaster contract address"):
            SigningContext.create(PRIVATE_KEY, "0x1234")

    def test_invalid_key_does_not_leak(self):
        bad_key = "0xnot-a-real-key"

        with pytest.raises(ConfigurationError) as exc_info:
            SigningContext.create(bad_key, PAYMASTER)

        assert exc_info.value.code.value == "CONFIGURATION_ERROR"
        assert bad_key not in exc_info.value.message


class TestSignPaymasterHash:
    def test_signature_recovers_signer(self):
        context = SigningContext.create(PRIVATE_KEY, PAYMASTER)
        signing_hash = keccak(b"paymaster")

        signature = sign_paymaster_hash(signing_hash, context)

        assert len(signature) == 65
        assert signature[64] in (27, 28)
        assert is_canonical(signature)
        assert recover_signer(signing_hash, signature) == SIGNER

    def test_signing_is_deterministic(self):
        context = SigningContext.create(PRIVATE_KEY, PAYMASTER)
        signing_hash = keccak(b"deterministic")

        assert sign_paymaster_hash(signing_hash, context) == sign_paymaster_hash(signing_hash, context)

    def test_rejects_wrong_hash_length(self):
        context = SigningContext.create(PRIVATE_KEY, PAYMASTER)

        with pytest.raises(InternalError) as exc_info:
            sign_paymaster_hash(b"\x00" * 31, context)

        assert exc_info.value.message == "Internal server error"


class TestCanonicalization:
    def test_high_s_is_flipped_back(self):
        context = SigningContext.create(PRIVATE_KEY, PAYMASTER)
        signature = sign_paymaster_hash(keccak(b"low-s"), context)
        high = _high_s_variant(signature)

        assert int.from_bytes(high[32:64], "big") > SECP256K1_HALF_N
        assert not is_canonical(high)
        assert canonicalize_signature(high) == signature

    def test_low_s_unchanged(self):
        context = SigningContext.create(PRIVATE_KEY, PAYMASTER)
        signature = sign_paymaster_hash(keccak(b"unchanged"), context)

        assert canonicalize_signature(signature) == signature

    def test_zero_based_recovery_id(self):
        r = (1).to_bytes(32, "big")
        high_s = (SECP256K1_N - 5).to_bytes(32, "big")

        canonical = canonicalize_signature(r + high_s + bytes([0]))

        assert canonical == r + (5).to_bytes(32, "big") + bytes([1])

    def test_rejects_bad_length(self):
        with pytest.raises(ValueError):
            canonicalize_signature(b"\x00" * 64)
