"""
Payment mode classification.
"""

from enum import Enum

from .userop import GasFields


class PaymentMethod(str, Enum):
    """How an operation's gas is paid. Values are the wire names."""

    SPONSORSHIP = "paymaster"
    DIRECT_PAYMENT = "direct-payment"


def classify_payment_method(gas: GasFields) -> PaymentMethod:
    # Explicit zero fees signal that the bundler pays directly (Ultra-Relay
    # style). Omitted fees are sponsored.
    if gas.fees_declared and gas.is_zero_fee:
        return PaymentMethod.DIRECT_PAYMENT
    return PaymentMethod.SPONSORSHIP


__all__ = ["PaymentMethod", "classify_payment_method"]
