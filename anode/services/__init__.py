"""Service layer helpers"""

from .cache import ResultCache, get_result_cache
from .paymaster import (
    build_paymaster_processor,
    build_signing_context,
    get_paymaster_processor,
    reset_paymaster_processor,
)

__all__ = [
    "ResultCache",
    "get_result_cache",
    "build_paymaster_processor",
    "build_signing_context",
    "get_paymaster_processor",
    "reset_paymaster_processor",
]
