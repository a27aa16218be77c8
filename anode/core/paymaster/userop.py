"""
ERC-4337 UserOperation models and helpers.

Two wire layouts are supported:

- ``UserOperationV6``: the flat EntryPoint v0.6 struct.
- ``PackedUserOperation``: the EntryPoint v0.7 struct, where gas limits and
  fees are packed pairwise into single 32-byte words.

``OperationVariant`` is the union of both. Code that needs the decomposed gas
values should call ``gas_fields()`` instead of inspecting the layout.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Dict, Tuple, Union

from .versions import EntryPointVersion

UINT128_MAX = (1 << 128) - 1
UINT256_MAX = (1 << 256) - 1


def _to_hex(value: int) -> str:
    return hex(value)


def _bytes_to_hex(value: bytes) -> str:
    return "0x" + value.hex()


def pack_uint128_pair(high: int, low: int) -> bytes:
    """Pack two uint128 values into one big-endian 32-byte word (high first)."""
    for value in (high, low):
        if value < 0 or value > UINT128_MAX:
            raise ValueError(f"Value does not fit in 128 bits: {value}")
    return high.to_bytes(16, "big") + low.to_bytes(16, "big")


def unpack_uint128_pair(word: bytes) -> Tuple[int, int]:
    """Split a 32-byte word into its (high, low) uint128 halves."""
    if len(word) != 32:
        raise ValueError(f"Packed word must be 32 bytes, got {len(word)}")
    return int.from_bytes(word[:16], "big"), int.from_bytes(word[16:], "big")


@dataclass(frozen=True)
class GasFields:
    """Decomposed gas and fee values, independent of wire layout."""

    call_gas_limit: int
    verification_gas_limit: int
    pre_verification_gas: int
    max_fee_per_gas: int
    max_priority_fee_per_gas: int
    fees_declared: bool = True

    @property
    def is_zero_fee(self) -> bool:
        return self.max_fee_per_gas == 0 and self.max_priority_fee_per_gas == 0


@dataclass(frozen=True)
class UserOperationV6:
    """
    EntryPoint v0.6 UserOperation.

    Numeric values are raw units (wei / gas units); byte fields hold raw bytes
    and are hex-encoded only when serialized for RPC.
    """

    sender: str
    nonce: int
    init_code: bytes
    call_data: bytes
    call_gas_limit: int
    verification_gas_limit: int
    pre_verification_gas: int
    max_fee_per_gas: int
    max_priority_fee_per_gas: int
    paymaster_and_data: bytes = b""
    signature: bytes = b""
    # False unless the caller sent both fee fields; undeclared zero fees are
    # not a request for direct payment.
    fees_declared: bool = True

    version = EntryPointVersion.V06

    def gas_fields(self) -> GasFields:
        return GasFields(
            call_gas_limit=self.call_gas_limit,
            verification_gas_limit=self.verification_gas_limit,
            pre_verification_gas=self.pre_verification_gas,
            max_fee_per_gas=self.max_fee_per_gas,
            max_priority_fee_per_gas=self.max_priority_fee_per_gas,
            fees_declared=self.fees_declared,
        )

    def with_paymaster_and_data(self, paymaster_and_data: bytes) -> UserOperationV6:
        return replace(self, paymaster_and_data=paymaster_and_data)

    def with_zero_fees(self) -> UserOperationV6:
        return replace(self, max_fee_per_gas=0, max_priority_fee_per_gas=0)

    def to_packed(self) -> PackedUserOperation:
        """Convert to the v0.7 packed layout with the same effective values."""
        return PackedUserOperation(
            sender=self.sender,
            nonce=self.nonce,
            init_code=self.init_code,
            call_data=self.call_data,
            account_gas_limits=pack_uint128_pair(self.verification_gas_limit, self.call_gas_limit),
            pre_verification_gas=self.pre_verification_gas,
            gas_fees=pack_uint128_pair(self.max_priority_fee_per_gas, self.max_fee_per_gas),
            paymaster_and_data=self.paymaster_and_data,
            signature=self.signature,
            fees_declared=self.fees_declared,
        )

    def to_rpc_dict(self) -> Dict[str, Any]:
        return {
            "sender": self.sender,
            "nonce": _to_hex(self.nonce),
            "initCode": _bytes_to_hex(self.init_code),
            "callData": _bytes_to_hex(self.call_data),
            "callGasLimit": _to_hex(self.call_gas_limit),
            "verificationGasLimit": _to_hex(self.verification_gas_limit),
            "preVerificationGas": _to_hex(self.pre_verification_gas),
            "maxFeePerGas": _to_hex(self.max_fee_per_gas),
            "maxPriorityFeePerGas": _to_hex(self.max_priority_fee_per_gas),
            "paymasterAndData": _bytes_to_hex(self.paymaster_and_data),
            "signature": _bytes_to_hex(self.signature),
        }


@dataclass(frozen=True)
class PackedUserOperation:
    """
    EntryPoint v0.7 PackedUserOperation.

    ``account_gas_limits`` is ``verificationGasLimit(16) || callGasLimit(16)``
    and ``gas_fees`` is ``maxPriorityFeePerGas(16) || maxFeePerGas(16)``.
    """

    sender: str
    nonce: int
    init_code: bytes
    call_data: bytes
    account_gas_limits: bytes
    pre_verification_gas: int
    gas_fees: bytes
    paymaster_and_data: bytes = b""
    signature: bytes = b""
    fees_declared: bool = True

    version = EntryPointVersion.V07

    def gas_fields(self) -> GasFields:
        verification_gas_limit, call_gas_limit = unpack_uint128_pair(self.account_gas_limits)
        max_priority_fee_per_gas, max_fee_per_gas = unpack_uint128_pair(self.gas_fees)
        return GasFields(
            call_gas_limit=call_gas_limit,
            verification_gas_limit=verification_gas_limit,
            pre_verification_gas=self.pre_verification_gas,
            max_fee_per_gas=max_fee_per_gas,
            max_priority_fee_per_gas=max_priority_fee_per_gas,
            fees_declared=self.fees_declared,
        )

    def with_paymaster_and_data(self, paymaster_and_data: bytes) -> PackedUserOperation:
        return replace(self, paymaster_and_data=paymaster_and_data)

    def with_zero_fees(self) -> PackedUserOperation:
        return replace(self, gas_fees=bytes(32))

    def to_rpc_dict(self) -> Dict[str, Any]:
        return {
            "sender": self.sender,
            "nonce": _to_hex(self.nonce),
            "initCode": _bytes_to_hex(self.init_code),
            "callData": _bytes_to_hex(self.call_data),
            "accountGasLimits": _bytes_to_hex(self.account_gas_limits),
            "preVerificationGas": _to_hex(self.pre_verification_gas),
            "gasFees": _bytes_to_hex(self.gas_fees),
            "paymasterAndData": _bytes_to_hex(self.paymaster_and_data),
            "signature": _bytes_to_hex(self.signature),
        }


OperationVariant = Union[UserOperationV6, PackedUserOperation]


def unsupported_variant(op: Any) -> TypeError:
    return TypeError(f"Unsupported user operation variant: {type(op).__name__}")


__all__ = [
    "GasFields",
    "OperationVariant",
    "PackedUserOperation",
    "UINT128_MAX",
    "UINT256_MAX",
    "UserOperationV6",
    "pack_uint128_pair",
    "unpack_uint128_pair",
    "unsupported_variant",
]
