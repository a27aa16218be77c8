"""
Paymaster signer.

Signs the paymaster signing hash as an EIP-191 personal message over
secp256k1 and returns a 65-byte ``r || s || v`` signature with ``v`` in
{27, 28}. Low-S canonicalization is applied when enabled on the context.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from eth_account import Account
from eth_account.messages import encode_defunct
from eth_account.signers.local import LocalAccount
from eth_utils import is_address, to_checksum_address

from .errors import ConfigurationError, InternalError

logger = logging.getLogger(__name__)

SECP256K1_N = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141
SECP256K1_HALF_N = SECP256K1_N // 2

SIGNATURE_LENGTH = 65


@dataclass(frozen=True)
class SigningContext:
    """
    Process-wide signing configuration.

    Built once at startup and shared read-only by every request.
    """

    paymaster_address: str
    account: LocalAccount = field(repr=False)
    enforce_canonical: bool = True

    @property
    def signer_address(self) -> str:
        return self.account.address

    @classmethod
    def create(
        cls,
        private_key: Optional[str],
        paymaster_address: Optional[str],
        *,
        enforce_canonical: bool = True,
    ) -> SigningContext:
        """
        Validate configuration and build the context.

        Raises:
            ConfigurationError: if the key or paymaster address is missing or
                malformed.
        """
        if not private_key:
            raise ConfigurationError("Paymaster private key is not configured")
        if not paymaster_address:
            raise ConfigurationError("Paymaster contract address is not configured")
        if not is_address(paymaster_address):
            raise ConfigurationError(f"Invalid paymaster contract address: {paymaster_address}")

        try:
            account = Account.from_key(private_key)
        except Exception as exc:  # noqa: BLE001
            # Never include key material in the message.
            raise ConfigurationError("Invalid paymaster private key") from exc

        context = cls(
            paymaster_address=to_checksum_address(paymaster_address),
            account=account,
            enforce_canonical=enforce_canonical,
        )
        logger.info(
            f"Paymaster signing context loaded: paymaster={context.paymaster_address}, "
            f"signer={context.signer_address}, canonical={enforce_canonical}"
        )
        return context

    @classmethod
    def from_settings(cls, settings: Any) -> SigningContext:
        return cls.create(
            settings.paymaster_private_key,
            settings.paymaster_contract_address,
            enforce_canonical=settings.enforce_canonical_signatures,
        )


def _split(signature: bytes) -> tuple[int, int, int]:
    if len(signature) != SIGNATURE_LENGTH:
        raise ValueError(f"Signature must be {SIGNATURE_LENGTH} bytes, got {len(signature)}")
    r = int.from_bytes(signature[:32], "big")
    s = int.from_bytes(signature[32:64], "big")
    return r, s, signature[64]


def _join(r: int, s: int, v: int) -> bytes:
    return r.to_bytes(32, "big") + s.to_bytes(32, "big") + bytes([v])


def is_canonical(signature: bytes) -> bool:
    _, s, _ = _split(signature)
    return s <= SECP256K1_HALF_N


def canonicalize_signature(signature: bytes) -> bytes:
    """
    Return the low-S form of ``signature``.

    ``s > n/2`` is replaced by ``n - s`` and the recovery id is flipped so the
    signature still recovers the same address.
    """
    r, s, v = _split(signature)
    if s <= SECP256K1_HALF_N:
        return signature
    if v in (27, 28):
        flipped = 55 - v
    elif v in (0, 1):
        flipped = 1 - v
    else:
        raise ValueError(f"Unsupported recovery id: {v}")
    return _join(r, SECP256K1_N - s, flipped)


def sign_paymaster_hash(signing_hash: bytes, context: SigningContext) -> bytes:
    """Sign ``signing_hash`` with the paymaster key as a personal message."""
    if len(signing_hash) != 32:
        raise InternalError(details={"reason": "signing hash must be 32 bytes"})

    signed = context.account.sign_message(encode_defunct(primitive=signing_hash))
    v = signed.v if signed.v >= 27 else signed.v + 27
    signature = _join(signed.r, signed.s, v)

    if context.enforce_canonical:
        signature = canonicalize_signature(signature)
    return signature


def recover_signer(signing_hash: bytes, signature: bytes) -> str:
    """Recover the address that produced ``signature`` over ``signing_hash``."""
    return Account.recover_message(encode_defunct(primitive=signing_hash), signature=signature)


__all__ = [
    "SECP256K1_HALF_N",
    "SECP256K1_N",
    "SIGNATURE_LENGTH",
    "SigningContext",
    "canonicalize_signature",
    "is_canonical",
    "recover_signer",
    "sign_paymaster_hash",
]
