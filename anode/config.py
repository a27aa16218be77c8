import os

from pathlib import Path
from typing import Any, Dict

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


BASE_DIR = Path(__file__).resolve().parents[1]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    def model_post_init(self, __context: Any) -> None:
        """Ensure we pick up legacy environment variable aliases."""

        super().model_post_init(__context)

        if not self.paymaster_private_key:
            fallback = os.getenv("PRIVATE_KEY") or os.getenv("OWNER_PRIVATE_KEY")
            if fallback:
                object.__setattr__(self, "paymaster_private_key", fallback)

    # Server Settings
    host: str = Field(default="127.0.0.1", description="Server host")
    port: int = Field(default=8000, description="Server port")
    log_level: str = Field(default="INFO", description="Logging level")
    service_version: str = Field(default="0.1.0", description="Version reported by /health")

    # Paymaster Signing
    paymaster_private_key: str = Field(
        default="",
        description="Hex private key used to sign paymaster authorizations",
        repr=False,
    )
    paymaster_contract_address: str = Field(
        default="",
        description="Deployed paymaster contract address embedded in paymasterAndData",
        validation_alias=AliasChoices("paymaster_contract_address", "paymaster_address"),
    )
    paymaster_validity_seconds: int = Field(
        default=0,
        ge=0,
        description="Authorization lifetime in seconds; 0 issues authorizations without expiry",
    )
    enforce_canonical_signatures: bool = Field(
        default=True,
        description="Normalize paymaster signatures to low-S form",
    )

    # EntryPoint
    entrypoint_version: str = Field(default="0.6", description="Default EntryPoint version (0.6 or 0.7)")
    entrypoint_v06_address: str = Field(
        default="0x5FF137D4b0FDCD49DcA30c7CF57E578a026d2789",
        description="EntryPoint v0.6 contract address",
    )
    entrypoint_v07_address: str = Field(
        default="0x0000000071727De22E5E9d8BAf0edAc6f37da032",
        description="EntryPoint v0.7 contract address",
    )
    chain_id: int = Field(default=11155111, ge=1, description="Chain ID the EntryPoint is deployed on")

    # Cache Settings
    cache_enabled: bool = Field(default=True, description="Cache processing results by operation fingerprint")
    cache_ttl_seconds: int = Field(default=300, description="Cache TTL in seconds")
    max_cache_size: int = Field(default=1000, description="Maximum cache size")
    cache_timeout_seconds: float = Field(
        default=0.25,
        gt=0,
        description="Upper bound for a single cache read or write",
    )
    redis_url: str = Field(
        default="",
        description="Redis connection string used for caching processing results",
    )

    @property
    def has_signing_key(self) -> bool:
        return bool(self.paymaster_private_key)

    def public_summary(self) -> Dict[str, Any]:
        """Configuration safe to expose on health endpoints."""
        return {
            "entryPointVersion": self.entrypoint_version,
            "chainId": self.chain_id,
            "paymaster": self.paymaster_contract_address or None,
            "signingKeyConfigured": self.has_signing_key,
        }


# Global settings instance
settings = Settings()
