"""
UserOperation hashing.

Two related hashes are computed here and nowhere else:

1. ``user_operation_hash``: what the EntryPoint's ``getUserOpHash`` returns,
   i.e. ``keccak(abi.encode(keccak(abi.encode(packed op)), entryPoint, chainId))``.
   The ``signature`` field never feeds into it.

2. ``paymaster_signing_hash``: what the paymaster contract rebuilds before
   recovering the paymaster signer. It is tightly packed and uses the
   decomposed gas values for both layouts::

       inner = keccak(sender(20) | nonce(32) | callGasLimit(32)
                      | verificationGasLimit(32) | preVerificationGas(32)
                      | maxFeePerGas(32) | maxPriorityFeePerGas(32)
                      | keccak(callData) | keccak(initCode)
                      | keccak(paymaster(20) | validUntil(6) | validAfter(6)))
       signingHash = keccak(inner | chainId(32))
"""

from __future__ import annotations

from typing import List

from eth_abi import encode as abi_encode
from eth_utils import keccak, to_canonical_address

from .userop import OperationVariant, PackedUserOperation, UserOperationV6, unsupported_variant
from .versions import VersionPolicy

_V6_STRUCT_TYPES = [
    "address",  # sender
    "uint256",  # nonce
    "bytes32",  # keccak(initCode)
    "bytes32",  # keccak(callData)
    "uint256",  # callGasLimit
    "uint256",  # verificationGasLimit
    "uint256",  # preVerificationGas
    "uint256",  # maxFeePerGas
    "uint256",  # maxPriorityFeePerGas
    "bytes32",  # keccak(paymasterAndData)
]

_V7_STRUCT_TYPES = [
    "address",  # sender
    "uint256",  # nonce
    "bytes32",  # keccak(initCode)
    "bytes32",  # keccak(callData)
    "bytes32",  # accountGasLimits
    "uint256",  # preVerificationGas
    "bytes32",  # gasFees
    "bytes32",  # keccak(paymasterAndData)
]


def _word(value: int) -> bytes:
    return value.to_bytes(32, "big")


def encode_user_operation(op: OperationVariant) -> bytes:
    """ABI-encode the signature-excluded struct the EntryPoint hashes."""
    if isinstance(op, UserOperationV6):
        return abi_encode(
            _V6_STRUCT_TYPES,
            [
                op.sender,
                op.nonce,
                keccak(op.init_code),
                keccak(op.call_data),
                op.call_gas_limit,
                op.verification_gas_limit,
                op.pre_verification_gas,
                op.max_fee_per_gas,
                op.max_priority_fee_per_gas,
                keccak(op.paymaster_and_data),
            ],
        )
    if isinstance(op, PackedUserOperation):
        return abi_encode(
            _V7_STRUCT_TYPES,
            [
                op.sender,
                op.nonce,
                keccak(op.init_code),
                keccak(op.call_data),
                op.account_gas_limits,
                op.pre_verification_gas,
                op.gas_fees,
                keccak(op.paymaster_and_data),
            ],
        )
    raise unsupported_variant(op)


def user_operation_struct_hash(op: OperationVariant) -> bytes:
    return keccak(encode_user_operation(op))


def user_operation_hash(op: OperationVariant, policy: VersionPolicy) -> bytes:
    """Hash that must equal ``EntryPoint.getUserOpHash(op)`` on ``policy.chain_id``."""
    return keccak(
        abi_encode(
            ["bytes32", "address", "uint256"],
            [user_operation_struct_hash(op), policy.entry_point, policy.chain_id],
        )
    )


def paymaster_signing_hash(
    op: OperationVariant,
    paymaster_data_prefix: bytes,
    chain_id: int,
) -> bytes:
    """
    Hash the paymaster signs over.

    ``paymaster_data_prefix`` is ``paymaster(20) | validUntil(6) | validAfter(6)``,
    i.e. the authorization blob without its signature.
    """
    gas = op.gas_fields()
    parts: List[bytes] = [
        to_canonical_address(op.sender),
        _word(op.nonce),
        _word(gas.call_gas_limit),
        _word(gas.verification_gas_limit),
        _word(gas.pre_verification_gas),
        _word(gas.max_fee_per_gas),
        _word(gas.max_priority_fee_per_gas),
        keccak(op.call_data),
        keccak(op.init_code),
        keccak(paymaster_data_prefix),
    ]
    inner = keccak(b"".join(parts))
    return keccak(inner + _word(chain_id))


def user_operation_fingerprint(
    op: OperationVariant,
    policy: VersionPolicy,
    paymaster: str,
) -> str:
    """
    Stable cache key for ``op`` sponsored by ``paymaster`` under ``policy``.

    The account signature is excluded so a re-signed but otherwise identical
    operation maps to the same key. Whether fees were declared is part
    of the key, since it decides the payment method.
    """
    digest = keccak(
        policy.version.value.encode()
        + to_canonical_address(policy.entry_point)
        + _word(policy.chain_id)
        + to_canonical_address(paymaster)
        + encode_user_operation(op)
        + bytes([op.fees_declared])
    )
    return "paymaster:" + digest.hex()


__all__ = [
    "encode_user_operation",
    "paymaster_signing_hash",
    "user_operation_fingerprint",
    "user_operation_hash",
    "user_operation_struct_hash",
]
