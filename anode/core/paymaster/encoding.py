"""
paymasterAndData encoding.

Layout (97 bytes)::

    paymaster(20) | validUntil(6) | validAfter(6) | signature(65)

``validUntil == 0`` means no expiry; ``validAfter == 0`` means valid
immediately. Both are big-endian uint48.
"""

from __future__ import annotations

from dataclasses import dataclass

from eth_utils import to_canonical_address, to_checksum_address

from .errors import ValidationError
from .signer import SIGNATURE_LENGTH

ADDRESS_LENGTH = 20
TIMESTAMP_LENGTH = 6
PREFIX_LENGTH = ADDRESS_LENGTH + 2 * TIMESTAMP_LENGTH
PAYMASTER_AND_DATA_LENGTH = PREFIX_LENGTH + SIGNATURE_LENGTH

UINT48_MAX = (1 << 48) - 1


@dataclass(frozen=True)
class PaymasterAuthorization:
    paymaster: str
    valid_until: int
    valid_after: int
    signature: bytes

    def to_dict(self) -> dict:
        return {
            "paymaster": self.paymaster,
            "validUntil": self.valid_until,
            "validAfter": self.valid_after,
            "signature": "0x" + self.signature.hex(),
        }


def _encode_uint48(value: int) -> bytes:
    if value < 0 or value > UINT48_MAX:
        raise ValueError(f"Timestamp does not fit in uint48: {value}")
    return value.to_bytes(TIMESTAMP_LENGTH, "big")


def paymaster_data_prefix(paymaster: str, valid_until: int, valid_after: int) -> bytes:
    """The signed part of paymasterAndData: address and validity window."""
    return (
        to_canonical_address(paymaster)
        + _encode_uint48(valid_until)
        + _encode_uint48(valid_after)
    )


def encode_paymaster_and_data(auth: PaymasterAuthorization) -> bytes:
    if len(auth.signature) != SIGNATURE_LENGTH:
        raise ValueError(f"Signature must be {SIGNATURE_LENGTH} bytes")
    return paymaster_data_prefix(auth.paymaster, auth.valid_until, auth.valid_after) + auth.signature


def decode_paymaster_and_data(data: bytes) -> PaymasterAuthorization:
    """Inverse of ``encode_paymaster_and_data``."""
    if len(data) != PAYMASTER_AND_DATA_LENGTH:
        raise ValidationError(
            f"paymasterAndData must be {PAYMASTER_AND_DATA_LENGTH} bytes, got {len(data)}"
        )
    until_end = ADDRESS_LENGTH + TIMESTAMP_LENGTH
    return PaymasterAuthorization(
        paymaster=to_checksum_address(data[:ADDRESS_LENGTH]),
        valid_until=int.from_bytes(data[ADDRESS_LENGTH:until_end], "big"),
        valid_after=int.from_bytes(data[until_end:PREFIX_LENGTH], "big"),
        signature=data[PREFIX_LENGTH:],
    )


__all__ = [
    "PAYMASTER_AND_DATA_LENGTH",
    "PREFIX_LENGTH",
    "PaymasterAuthorization",
    "UINT48_MAX",
    "decode_paymaster_and_data",
    "encode_paymaster_and_data",
    "paymaster_data_prefix",
]
