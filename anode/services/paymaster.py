"""Process-wide paymaster processor wiring."""

from __future__ import annotations

import logging
from typing import Optional

from ..config import Settings, settings as default_settings
from ..core.paymaster import ConfigurationError, PaymasterProcessor, SigningContext

logger = logging.getLogger(__name__)


def build_signing_context(settings: Settings) -> Optional[SigningContext]:
    """
    Build the signing context, or None when configuration is incomplete.

    Direct-payment requests do not need a key, so a missing key degrades the
    service instead of preventing startup; sponsorship requests then fail
    with CONFIGURATION_ERROR.
    """
    try:
        return SigningContext.from_settings(settings)
    except ConfigurationError as exc:
        logger.error(f"Paymaster signing disabled: {exc.message}")
        return None


def build_paymaster_processor(settings: Settings) -> PaymasterProcessor:
    return PaymasterProcessor.from_settings(settings, build_signing_context(settings))


_paymaster_processor: Optional[PaymasterProcessor] = None


def get_paymaster_processor() -> PaymasterProcessor:
    global _paymaster_processor
    if _paymaster_processor is None:
        _paymaster_processor = build_paymaster_processor(default_settings)
    return _paymaster_processor


def reset_paymaster_processor() -> None:
    """Drop the cached processor so the next call re-reads configuration."""
    global _paymaster_processor
    _paymaster_processor = None


__all__ = [
    "build_paymaster_processor",
    "build_signing_context",
    "get_paymaster_processor",
    "reset_paymaster_processor",
]
