"""Shared fixtures for paymaster engine tests."""

import pytest

from anode.core.paymaster import PaymasterProcessor, SigningContext

# Well-known local development key (first Hardhat/Anvil account).
TEST_PRIVATE_KEY = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"
TEST_SIGNER = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"
TEST_PAYMASTER = "0x3720B69B7f30D92FACed624c39B1fd317408774B"


@pytest.fixture
def v6_operation() -> dict:
    return {
        "sender": "0x1234567890123456789012345678901234567890",
        "nonce": "0x0",
        "initCode": "0x",
        "callData": "0x",
        "callGasLimit": "0x5208",
        "verificationGasLimit": "0x186a0",
        "preVerificationGas": "0x5208",
        "maxFeePerGas": "0x3b9aca00",
        "maxPriorityFeePerGas": "0x3b9aca00",
        "paymasterAndData": "0x",
        "signature": "0x",
    }


@pytest.fixture
def v7_operation() -> dict:
    """Packed equivalent of ``v6_operation``."""
    return {
        "sender": "0x1234567890123456789012345678901234567890",
        "nonce": "0x0",
        "initCode": "0x",
        "callData": "0x",
        # verificationGasLimit=0x186a0 | callGasLimit=0x5208
        "accountGasLimits": "0x" + (0x186A0).to_bytes(16, "big").hex() + (0x5208).to_bytes(16, "big").hex(),
        "preVerificationGas": "0x5208",
        # maxPriorityFeePerGas=1 gwei | maxFeePerGas=1 gwei
        "gasFees": "0x" + (0x3B9ACA00).to_bytes(16, "big").hex() + (0x3B9ACA00).to_bytes(16, "big").hex(),
        "paymasterAndData": "0x",
        "signature": "0x",
    }


@pytest.fixture
def signing_context() -> SigningContext:
    return SigningContext.create(TEST_PRIVATE_KEY, TEST_PAYMASTER)


@pytest.fixture
def processor(signing_context: SigningContext) -> PaymasterProcessor:
    return PaymasterProcessor(signing_context, configured_version="0.6", clock=lambda: 1_700_000_000)
