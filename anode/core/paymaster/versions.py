"""
EntryPoint version policy.

Resolves which EntryPoint (verifying contract) address and hash layout a
request is processed against.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Mapping, Optional

from eth_utils import is_address, to_checksum_address

SEPOLIA_CHAIN_ID = 11155111


class EntryPointVersion(str, Enum):
    """Supported EntryPoint protocol versions."""

    V06 = "0.6"
    V07 = "0.7"


DEFAULT_VERSION = EntryPointVersion.V06

DEFAULT_ENTRY_POINTS: Mapping[EntryPointVersion, str] = {
    EntryPointVersion.V06: "0x5FF137D4b0FDCD49DcA30c7CF57E578a026d2789",
    EntryPointVersion.V07: "0x0000000071727De22E5E9d8BAf0edAc6f37da032",
}

_VERSION_ALIASES = {
    "0.6": EntryPointVersion.V06,
    "0.6.0": EntryPointVersion.V06,
    "v0.6": EntryPointVersion.V06,
    "v6": EntryPointVersion.V06,
    "6": EntryPointVersion.V06,
    "0.7": EntryPointVersion.V07,
    "0.7.0": EntryPointVersion.V07,
    "v0.7": EntryPointVersion.V07,
    "v7": EntryPointVersion.V07,
    "7": EntryPointVersion.V07,
}


@dataclass(frozen=True)
class VersionPolicy:
    """Per-request protocol constants."""

    version: EntryPointVersion
    entry_point: str
    chain_id: int

    def to_dict(self) -> dict:
        return {
            "version": self.version.value,
            "entryPoint": self.entry_point,
            "chainId": self.chain_id,
        }


def parse_version(value: object) -> Optional[EntryPointVersion]:
    """Return the matching version, or None for anything unrecognised."""
    if isinstance(value, EntryPointVersion):
        return value
    if not isinstance(value, str):
        return None
    return _VERSION_ALIASES.get(value.strip().lower())


def _entry_point_for(
    version: EntryPointVersion,
    overrides: Optional[Mapping[EntryPointVersion, str]],
) -> str:
    candidate = (overrides or {}).get(version)
    if candidate and is_address(candidate):
        return to_checksum_address(candidate)
    return DEFAULT_ENTRY_POINTS[version]


def resolve_version_policy(
    requested: object = None,
    configured: object = None,
    *,
    entry_points: Optional[Mapping[EntryPointVersion, str]] = None,
    chain_id: int = SEPOLIA_CHAIN_ID,
) -> VersionPolicy:
    """
    Resolve the policy for one request.

    Precedence: explicit per-call ``requested`` > process ``configured`` >
    protocol default. Malformed versions or addresses fall through to the
    next level; this never raises.
    """
    version = parse_version(requested) or parse_version(configured) or DEFAULT_VERSION
    return VersionPolicy(
        version=version,
        entry_point=_entry_point_for(version, entry_points),
        chain_id=chain_id,
    )


__all__ = [
    "DEFAULT_ENTRY_POINTS",
    "DEFAULT_VERSION",
    "EntryPointVersion",
    "SEPOLIA_CHAIN_ID",
    "VersionPolicy",
    "parse_version",
    "resolve_version_policy",
]
