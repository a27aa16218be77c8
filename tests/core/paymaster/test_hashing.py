from dataclasses import replace

from eth_abi import encode
from eth_utils import keccak, to_canonical_address

from anode.core.paymaster import (
    normalize_user_operation,
    paymaster_data_prefix,
    paymaster_signing_hash,
    resolve_version_policy,
    user_operation_fingerprint,
    user_operation_hash,
)

PAYMASTER = "0x3720B69B7f30D92FACed624c39B1fd317408774B"
OTHER_PAYMASTER = "0x1111111111111111111111111111111111111111"


def test_v6_hash_matches_manual_abi_encoding(v6_operation):
    v6_operation["callData"] = "0xb61d27f6"
    op = normalize_user_operation(v6_operation)
    policy = resolve_version_policy("0.6")

    struct_hash = keccak(
        encode(
            ["address", "uint256", "bytes32", "bytes32", "uint256", "uint256", "uint256", "uint256", "uint256", "bytes32"],
            [
                op.sender,
                0,
                keccak(b""),
                keccak(bytes.fromhex("b61d27f6")),
                21000,
                100000,
                21000,
                1_000_000_000,
                1_000_000_000,
                keccak(b""),
            ],
        )
    )
    expected = keccak(encode(["bytes32", "address", "uint256"], [struct_hash, policy.entry_point, 11155111]))

    assert user_operation_hash(op, policy) == expected


def test_v7_hash_uses_packed_words(v7_operation):
    op = normalize_user_operation(v7_operation)
    policy = resolve_version_policy("0.7")

    struct_hash = keccak(
        encode(
            ["address", "uint256", "bytes32", "bytes32", "bytes32", "uint256", "bytes32", "bytes32"],
            [
                op.sender,
                0,
                keccak(b""),
                keccak(b""),
                op.account_gas_limits,
                21000,
                op.gas_fees,
                keccak(b""),
            ],
        )
    )
    expected = keccak(encode(["bytes32", "address", "uint256"], [struct_hash, policy.entry_point, 11155111]))

    assert user_operation_hash(op, policy) == expected


def test_user_operation_hash_is_deterministic(v6_operation):
    policy = resolve_version_policy()

    first = user_operation_hash(normalize_user_operation(v6_operation), policy)
    second = user_operation_hash(normalize_user_operation(dict(v6_operation)), policy)

    assert first == second
    assert len(first) == 32


def test_user_operation_hash_ignores_signature(v6_operation):
    policy = resolve_version_policy()
    op = normalize_user_operation(v6_operation)

    assert user_operation_hash(op, policy) == user_operation_hash(replace(op, signature=b"\x01" * 65), policy)


def test_user_operation_hash_depends_on_entry_point_and_chain(v6_operation):
    op = normalize_user_operation(v6_operation)
    sepolia = resolve_version_policy("0.6")
    mainnet = resolve_version_policy("0.6", chain_id=1)
    v07 = resolve_version_policy("0.7")

    assert user_operation_hash(op, sepolia) != user_operation_hash(op, mainnet)
    assert user_operation_hash(op, sepolia) != user_operation_hash(op, v07)


def test_signing_hash_matches_manual_packing(v6_operation):
    op = normalize_user_operation(v6_operation)
    prefix = paymaster_data_prefix(PAYMASTER, 0, 0)

    inner = keccak(
        to_canonical_address(op.sender)
        + (0).to_bytes(32, "big")
        + (21000).to_bytes(32, "big")
        + (100000).to_bytes(32, "big")
        + (21000).to_bytes(32, "big")
        + (1_000_000_000).to_bytes(32, "big")
        + (1_000_000_000).to_bytes(32, "big")
        + keccak(b"")
        + keccak(b"")
        + keccak(prefix)
    )
    expected = keccak(inner + (11155111).to_bytes(32, "big"))

    assert paymaster_signing_hash(op, prefix, 11155111) == expected


def test_signing_hash_is_layout_independent(v6_operation, v7_operation):
    prefix = paymaster_data_prefix(PAYMASTER, 0, 0)
    v6 = normalize_user_operation(v6_operation)
    v7 = normalize_user_operation(v7_operation)

    assert paymaster_signing_hash(v6, prefix, 11155111) == paymaster_signing_hash(v7, prefix, 11155111)
    assert paymaster_signing_hash(v6.to_packed(), prefix, 11155111) == paymaster_signing_hash(v6, prefix, 11155111)


def test_signing_hash_covers_validity_window_and_chain(v6_operation):
    op = normalize_user_operation(v6_operation)
    base = paymaster_signing_hash(op, paymaster_data_prefix(PAYMASTER, 0, 0), 11155111)

    assert base != paymaster_signing_hash(op, paymaster_data_prefix(PAYMASTER, 1_700_000_600, 0), 11155111)
    assert base != paymaster_signing_hash(op, paymaster_data_prefix(OTHER_PAYMASTER, 0, 0), 11155111)
    assert base != paymaster_signing_hash(op, paymaster_data_prefix(PAYMASTER, 0, 0), 1)


def test_fingerprint_ignores_signature_only(v6_operation):
    policy = resolve_version_policy()
    op = normalize_user_operation(v6_operation)

    key = user_operation_fingerprint(op, policy, PAYMASTER)

    assert key.startswith("paymaster:")
    assert key == user_operation_fingerprint(replace(op, signature=b"\x02" * 65), policy, PAYMASTER)
    assert key != user_operation_fingerprint(replace(op, nonce=1), policy, PAYMASTER)
    assert key != user_operation_fingerprint(op, policy, OTHER_PAYMASTER)
    assert key != user_operation_fingerprint(op, resolve_version_policy("0.7"), PAYMASTER)
