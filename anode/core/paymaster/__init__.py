"""
Paymaster Signing Engine

Validates ERC-4337 user operations and attaches a signed paymaster
authorization:
- PaymasterProcessor: runs one operation through the processing states
- SigningContext: immutable signing key + paymaster address
- Hashing helpers: EntryPoint userOpHash and the paymaster signing hash

Usage:
    from anode.core.paymaster import PaymasterProcessor, SigningContext

    context = SigningContext.create(private_key, paymaster_address)
    processor = PaymasterProcessor(context, configured_version="0.6")

    result = processor.process(user_operation_json)
    if result.success:
        submit(result.user_operation)
"""

from .classifier import PaymentMethod, classify_payment_method
from .encoding import (
    PAYMASTER_AND_DATA_LENGTH,
    PaymasterAuthorization,
    decode_paymaster_and_data,
    encode_paymaster_and_data,
    paymaster_data_prefix,
)
from .errors import (
    ConfigurationError,
    ErrorCode,
    InternalError,
    InvalidRequestError,
    PaymasterError,
    ValidationError,
)
from .hashing import (
    paymaster_signing_hash,
    user_operation_fingerprint,
    user_operation_hash,
)
from .normalizer import normalize_user_operation, render_user_operation
from .processor import PaymasterProcessor, ProcessingResult, ProcessingState
from .signer import (
    SigningContext,
    canonicalize_signature,
    recover_signer,
    sign_paymaster_hash,
)
from .userop import GasFields, OperationVariant, PackedUserOperation, UserOperationV6
from .validator import validate_user_operation
from .versions import EntryPointVersion, VersionPolicy, resolve_version_policy

__all__ = [
    # Types
    "EntryPointVersion",
    "GasFields",
    "OperationVariant",
    "PackedUserOperation",
    "PaymasterAuthorization",
    "PaymentMethod",
    "ProcessingResult",
    "ProcessingState",
    "SigningContext",
    "UserOperationV6",
    "VersionPolicy",
    # Errors
    "ConfigurationError",
    "ErrorCode",
    "InternalError",
    "InvalidRequestError",
    "PaymasterError",
    "ValidationError",
    # Operations
    "PAYMASTER_AND_DATA_LENGTH",
    "PaymasterProcessor",
    "canonicalize_signature",
    "classify_payment_method",
    "decode_paymaster_and_data",
    "encode_paymaster_and_data",
    "normalize_user_operation",
    "paymaster_data_prefix",
    "paymaster_signing_hash",
    "recover_signer",
    "render_user_operation",
    "resolve_version_policy",
    "sign_paymaster_hash",
    "user_operation_fingerprint",
    "user_operation_hash",
    "validate_user_operation",
]
