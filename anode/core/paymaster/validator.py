"""
UserOperation validation.

Presence rules are applied to the raw wire payload before parsing; shape
rules are applied to the parsed operation.
"""

from __future__ import annotations

from typing import Any, List, Mapping, Sequence

from .errors import ValidationError
from .userop import (
    UINT256_MAX,
    OperationVariant,
    PackedUserOperation,
    UserOperationV6,
    unsupported_variant,
)
from .versions import EntryPointVersion

# Empty bytes ("0x") count as present; absent keys and nulls do not.
REQUIRED_FIELDS: Mapping[EntryPointVersion, Sequence[str]] = {
    EntryPointVersion.V06: (
        "sender",
        "nonce",
        "initCode",
        "callData",
        "paymasterAndData",
        "signature",
    ),
    EntryPointVersion.V07: (
        "sender",
        "nonce",
        "callData",
        "signature",
    ),
}


def to_snake_case(name: str) -> str:
    return "".join(f"_{ch.lower()}" if ch.isupper() else ch for ch in name)


def lookup_field(raw: Mapping[str, Any], name: str) -> Any:
    """Return the camelCase field, falling back to its snake_case spelling."""
    value = raw.get(name)
    if value is None:
        value = raw.get(to_snake_case(name))
    return value


def missing_fields(raw: Mapping[str, Any], layout: EntryPointVersion) -> List[str]:
    return [name for name in REQUIRED_FIELDS[layout] if lookup_field(raw, name) is None]


def check_required_fields(raw: Mapping[str, Any], layout: EntryPointVersion) -> None:
    missing = missing_fields(raw, layout)
    if missing:
        raise ValidationError(
            f"Invalid UserOperation format for EntryPoint v{layout.value}: "
            f"missing {', '.join(missing)}",
            details={"missing": missing, "layout": layout.value},
        )


def _check_uint256(name: str, value: int) -> None:
    if value < 0 or value > UINT256_MAX:
        raise ValidationError(f"{name} is out of uint256 range")


def validate_user_operation(op: OperationVariant) -> OperationVariant:
    """Check field shapes of a normalized operation and return it unchanged."""
    if int(op.sender, 16) == 0:
        raise ValidationError("sender must not be the zero address")
    _check_uint256("nonce", op.nonce)
    _check_uint256("preVerificationGas", op.pre_verification_gas)

    if isinstance(op, UserOperationV6):
        for name, value in (
            ("callGasLimit", op.call_gas_limit),
            ("verificationGasLimit", op.verification_gas_limit),
            ("maxFeePerGas", op.max_fee_per_gas),
            ("maxPriorityFeePerGas", op.max_priority_fee_per_gas),
        ):
            _check_uint256(name, value)
    elif isinstance(op, PackedUserOperation):
        if len(op.account_gas_limits) != 32:
            raise ValidationError("accountGasLimits must be exactly 32 bytes")
        if len(op.gas_fees) != 32:
            raise ValidationError("gasFees must be exactly 32 bytes")
    else:
        raise unsupported_variant(op)

    return op


__all__ = [
    "REQUIRED_FIELDS",
    "check_required_fields",
    "lookup_field",
    "missing_fields",
    "validate_user_operation",
]
