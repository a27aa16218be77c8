"""
UserOperation normalization.

Turns a raw JSON-RPC style operation (either EntryPoint layout) into an
``OperationVariant``. The resolved ``VersionPolicy`` decides which EntryPoint
the request is processed against; it does not restrict which input layout is
accepted.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, Mapping, Optional

from eth_utils import is_address, to_checksum_address

from .errors import ValidationError
from .userop import (
    UINT128_MAX,
    UINT256_MAX,
    OperationVariant,
    PackedUserOperation,
    UserOperationV6,
    pack_uint128_pair,
)
from .validator import check_required_fields, lookup_field, to_snake_case
from .versions import EntryPointVersion, VersionPolicy

logger = logging.getLogger(__name__)

V6_FIELDS = (
    "sender",
    "nonce",
    "initCode",
    "callData",
    "callGasLimit",
    "verificationGasLimit",
    "preVerificationGas",
    "maxFeePerGas",
    "maxPriorityFeePerGas",
    "paymasterAndData",
    "signature",
)

PACKED_FIELDS = ("accountGasLimits", "gasFees")

# Fields of the unpacked v0.7 JSON-RPC form used by bundlers.
UNPACKED_V7_FIELDS = (
    "factory",
    "factoryData",
    "paymaster",
    "paymasterVerificationGasLimit",
    "paymasterPostOpGasLimit",
    "paymasterData",
)

FEE_FIELDS = ("maxFeePerGas", "maxPriorityFeePerGas")

RECOGNISED_FIELDS = frozenset(
    name
    for field in (*V6_FIELDS, *PACKED_FIELDS, *UNPACKED_V7_FIELDS)
    for name in (field, to_snake_case(field))
)


def _has_any(raw: Mapping[str, Any], names: Iterable[str]) -> bool:
    return any(lookup_field(raw, name) is not None for name in names)


def _has_all(raw: Mapping[str, Any], names: Iterable[str]) -> bool:
    return all(lookup_field(raw, name) is not None for name in names)


def detect_layout(raw: Mapping[str, Any]) -> EntryPointVersion:
    """Return the wire layout of ``raw``; this is the only place that inspects keys."""
    if _has_any(raw, PACKED_FIELDS) or _has_any(raw, UNPACKED_V7_FIELDS):
        return EntryPointVersion.V07
    return EntryPointVersion.V06


def parse_uint(value: Any, name: str, *, bits: int = 256) -> int:
    """Parse a hex string, decimal string or int into a bounded unsigned int."""
    if isinstance(value, bool):
        raise ValidationError(f"{name} must be a quantity, got a boolean")
    if isinstance(value, int):
        parsed = value
    elif isinstance(value, str):
        text = value.strip()
        try:
            if text.lower().startswith("0x"):
                parsed = int(text[2:], 16) if len(text) > 2 else 0
            else:
                parsed = int(text, 10)
        except ValueError:
            raise ValidationError(f"{name} is not a valid quantity: {value!r}") from None
    else:
        raise ValidationError(f"{name} must be a hex or decimal quantity")

    limit = UINT128_MAX if bits == 128 else UINT256_MAX
    if parsed < 0 or parsed > limit:
        raise ValidationError(f"{name} is out of uint{bits} range")
    return parsed


def parse_bytes(value: Any, name: str) -> bytes:
    """Parse a 0x-prefixed, even-length hex string into bytes."""
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if not isinstance(value, str) or not value.startswith(("0x", "0X")):
        raise ValidationError(f"{name} must be a 0x-prefixed hex string")
    body = value[2:]
    if len(body) % 2 != 0:
        raise ValidationError(f"{name} must have an even-length hex string")
    try:
        return bytes.fromhex(body)
    except ValueError:
        raise ValidationError(f"{name} is not valid hex") from None


def parse_address(value: Any, name: str = "sender") -> str:
    if isinstance(value, (bytes, bytearray)) and len(value) == 20:
        return to_checksum_address(bytes(value))
    if not isinstance(value, str) or not is_address(value):
        raise ValidationError(f"{name} must be a 20-byte address")
    return to_checksum_address(value)


def parse_word(value: Any, name: str) -> bytes:
    """Parse a packed bytes32 word; shorter quantities are left-padded."""
    if isinstance(value, (bytes, bytearray)):
        if len(value) > 32:
            raise ValidationError(f"{name} must be at most 32 bytes")
        return bytes(value).rjust(32, b"\x00")
    return parse_uint(value, name).to_bytes(32, "big")


def _optional_uint(raw: Mapping[str, Any], name: str, *, bits: int = 256) -> int:
    value = lookup_field(raw, name)
    return 0 if value is None else parse_uint(value, name, bits=bits)


def _optional_bytes(raw: Mapping[str, Any], name: str) -> bytes:
    value = lookup_field(raw, name)
    return b"" if value is None else parse_bytes(value, name)


def _normalize_v6(raw: Mapping[str, Any]) -> UserOperationV6:
    check_required_fields(raw, EntryPointVersion.V06)
    return UserOperationV6(
        sender=parse_address(lookup_field(raw, "sender")),
        nonce=parse_uint(lookup_field(raw, "nonce"), "nonce"),
        init_code=parse_bytes(lookup_field(raw, "initCode"), "initCode"),
        call_data=parse_bytes(lookup_field(raw, "callData"), "callData"),
        call_gas_limit=_optional_uint(raw, "callGasLimit"),
        verification_gas_limit=_optional_uint(raw, "verificationGasLimit"),
        pre_verification_gas=_optional_uint(raw, "preVerificationGas"),
        max_fee_per_gas=_optional_uint(raw, "maxFeePerGas"),
        max_priority_fee_per_gas=_optional_uint(raw, "maxPriorityFeePerGas"),
        paymaster_and_data=parse_bytes(lookup_field(raw, "paymasterAndData"), "paymasterAndData"),
        signature=parse_bytes(lookup_field(raw, "signature"), "signature"),
        fees_declared=_has_all(raw, FEE_FIELDS),
    )


def _init_code_v7(raw: Mapping[str, Any]) -> bytes:
    factory = lookup_field(raw, "factory")
    if factory is None:
        return _optional_bytes(raw, "initCode")
    factory_address = bytes.fromhex(parse_address(factory, "factory")[2:])
    return factory_address + _optional_bytes(raw, "factoryData")


def _paymaster_and_data_v7(raw: Mapping[str, Any]) -> bytes:
    paymaster = lookup_field(raw, "paymaster")
    if paymaster is None:
        return _optional_bytes(raw, "paymasterAndData")
    return (
        bytes.fromhex(parse_address(paymaster, "paymaster")[2:])
        + _optional_uint(raw, "paymasterVerificationGasLimit", bits=128).to_bytes(16, "big")
        + _optional_uint(raw, "paymasterPostOpGasLimit", bits=128).to_bytes(16, "big")
        + _optional_bytes(raw, "paymasterData")
    )


def _packed_word(
    raw: Mapping[str, Any],
    packed_name: str,
    high_name: str,
    low_name: str,
) -> bytes:
    value = lookup_field(raw, packed_name)
    if value is not None:
        return parse_word(value, packed_name)
    # Absent packed words are synthesized from the unpacked fields (zero when
    # those are absent too).
    return pack_uint128_pair(
        _optional_uint(raw, high_name, bits=128),
        _optional_uint(raw, low_name, bits=128),
    )


def _normalize_v7(raw: Mapping[str, Any]) -> PackedUserOperation:
    check_required_fields(raw, EntryPointVersion.V07)
    return PackedUserOperation(
        sender=parse_address(lookup_field(raw, "sender")),
        nonce=parse_uint(lookup_field(raw, "nonce"), "nonce"),
        init_code=_init_code_v7(raw),
        call_data=parse_bytes(lookup_field(raw, "callData"), "callData"),
        account_gas_limits=_packed_word(
            raw, "accountGasLimits", "verificationGasLimit", "callGasLimit"
        ),
        pre_verification_gas=_optional_uint(raw, "preVerificationGas"),
        gas_fees=_packed_word(raw, "gasFees", "maxPriorityFeePerGas", "maxFeePerGas"),
        paymaster_and_data=_paymaster_and_data_v7(raw),
        signature=parse_bytes(lookup_field(raw, "signature"), "signature"),
        fees_declared=lookup_field(raw, "gasFees") is not None or _has_all(raw, FEE_FIELDS),
    )


def normalize_user_operation(
    raw: Any,
    policy: Optional[VersionPolicy] = None,
) -> OperationVariant:
    """
    Parse ``raw`` into the internal tagged representation.

    Raises:
        ValidationError: if ``raw`` is not an object, a required field for its
            layout is absent, or a field is malformed.
    """
    if not isinstance(raw, Mapping):
        raise ValidationError("userOperation must be an object")

    layout = detect_layout(raw)
    if policy is not None and layout is not policy.version:
        logger.debug(
            f"UserOperation layout v{layout.value} differs from "
            f"resolved EntryPoint v{policy.version.value}"
        )

    if layout is EntryPointVersion.V07:
        return _normalize_v7(raw)
    return _normalize_v6(raw)


def passthrough_fields(raw: Mapping[str, Any]) -> Dict[str, Any]:
    """Keys of ``raw`` that are not UserOperation fields."""
    return {key: value for key, value in raw.items() if key not in RECOGNISED_FIELDS}


def render_user_operation(raw: Mapping[str, Any], op: OperationVariant) -> Dict[str, Any]:
    """Serialize ``op`` in its canonical wire layout, carrying through unknown keys of ``raw``."""
    return {**passthrough_fields(raw), **op.to_rpc_dict()}


__all__ = [
    "RECOGNISED_FIELDS",
    "detect_layout",
    "normalize_user_operation",
    "parse_address",
    "passthrough_fields",
    "parse_bytes",
    "parse_uint",
    "parse_word",
    "render_user_operation",
]
