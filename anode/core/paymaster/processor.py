"""
Paymaster Processor

Sequences normalization, validation, classification, hashing, signing and
encoding for one user operation.

State flow::

    RECEIVED -> NORMALIZED -> VALIDATED -> CLASSIFIED
        sponsorship:    -> HASH_COMPUTED -> SIGNED -> ENCODED -> COMPLETED
        direct payment: -> FEES_ZEROED -> COMPLETED
    any state -> FAILED

The processor never raises for a bad operation or missing configuration;
failures are returned as a ``ProcessingResult`` with ``error`` set.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Protocol, Set

from .classifier import PaymentMethod, classify_payment_method
from .encoding import (
    PAYMASTER_AND_DATA_LENGTH,
    PaymasterAuthorization,
    decode_paymaster_and_data,
    encode_paymaster_and_data,
    paymaster_data_prefix,
)
from .errors import ConfigurationError, InternalError, PaymasterError, ValidationError
from .hashing import paymaster_signing_hash, user_operation_fingerprint, user_operation_hash
from .normalizer import (
    RECOGNISED_FIELDS,
    normalize_user_operation,
    parse_bytes,
    passthrough_fields,
    render_user_operation,
)
from .signer import SigningContext, sign_paymaster_hash
from .userop import OperationVariant
from .validator import lookup_field, validate_user_operation
from .versions import (
    SEPOLIA_CHAIN_ID,
    EntryPointVersion,
    VersionPolicy,
    resolve_version_policy,
)

logger = logging.getLogger(__name__)

SERVICE_NAME = "aNode Paymaster"
PROCESSING_MODULES = ["basic_paymaster"]


class ProcessingState(str, Enum):
    RECEIVED = "received"
    NORMALIZED = "normalized"
    VALIDATED = "validated"
    CLASSIFIED = "classified"
    HASH_COMPUTED = "hash_computed"
    SIGNED = "signed"
    ENCODED = "encoded"
    FEES_ZEROED = "fees_zeroed"
    COMPLETED = "completed"
    FAILED = "failed"


TERMINAL_STATES = frozenset({ProcessingState.COMPLETED, ProcessingState.FAILED})

TRANSITIONS: Dict[ProcessingState, Set[ProcessingState]] = {
    ProcessingState.RECEIVED: {ProcessingState.NORMALIZED},
    ProcessingState.NORMALIZED: {ProcessingState.VALIDATED},
    ProcessingState.VALIDATED: {ProcessingState.CLASSIFIED},
    ProcessingState.CLASSIFIED: {ProcessingState.HASH_COMPUTED, ProcessingState.FEES_ZEROED},
    ProcessingState.HASH_COMPUTED: {ProcessingState.SIGNED},
    ProcessingState.SIGNED: {ProcessingState.ENCODED},
    ProcessingState.ENCODED: {ProcessingState.COMPLETED},
    ProcessingState.FEES_ZEROED: {ProcessingState.COMPLETED},
    ProcessingState.COMPLETED: set(),
    ProcessingState.FAILED: set(),
}


class InvalidTransitionError(Exception):
    """Raised when the processor attempts an illegal state transition."""

    def __init__(self, from_state: ProcessingState, to_state: ProcessingState):
        self.from_state = from_state
        self.to_state = to_state
        super().__init__(f"Cannot transition from {from_state.value} to {to_state.value}")


class ResultCacheBackend(Protocol):  # pragma: no cover - protocol
    async def get(self, key: str) -> Optional[Dict[str, Any]]:
        ...

    async def set(self, key: str, value: Dict[str, Any]) -> None:
        ...


@dataclass
class ProcessingTrace:
    """Records the states a single request passed through."""

    state: ProcessingState = ProcessingState.RECEIVED
    history: List[ProcessingState] = field(default_factory=lambda: [ProcessingState.RECEIVED])

    def advance(self, to_state: ProcessingState) -> None:
        if to_state is not ProcessingState.FAILED and to_state not in TRANSITIONS[self.state]:
            raise InvalidTransitionError(self.state, to_state)
        if self.state in TERMINAL_STATES:
            raise InvalidTransitionError(self.state, to_state)
        self.state = to_state
        self.history.append(to_state)


@dataclass
class ProcessingResult:
    success: bool
    payment_method: PaymentMethod
    user_operation: Dict[str, Any]
    error: Optional[PaymasterError] = None
    user_op_hash: Optional[str] = None
    policy: Optional[VersionPolicy] = None
    states: List[ProcessingState] = field(default_factory=list)
    duration_ms: float = 0.0
    cached: bool = False

    @property
    def state(self) -> Optional[ProcessingState]:
        return self.states[-1] if self.states else None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "success": self.success,
            "userOperation": self.user_operation,
            "paymentMethod": self.payment_method.value,
        }
        if self.user_op_hash:
            payload["userOpHash"] = self.user_op_hash
        if self.policy is not None:
            payload["entryPoint"] = self.policy.to_dict()
        if self.error is not None:
            payload["error"] = self.error.to_dict()
        return payload

    def to_cache_dict(self) -> Dict[str, Any]:
        """Serializable form without passthrough keys or the account signature."""
        payload = self.to_dict()
        payload["userOperation"] = {
            key: value
            for key, value in self.user_operation.items()
            if key in RECOGNISED_FIELDS and key != "signature"
        }
        return payload

    @classmethod
    def from_cache_dict(
        cls,
        payload: Mapping[str, Any],
        raw: Mapping[str, Any],
        policy: VersionPolicy,
    ) -> ProcessingResult:
        return cls(
            success=bool(payload["success"]),
            payment_method=PaymentMethod(payload["paymentMethod"]),
            user_operation={
                **passthrough_fields(raw),
                **payload["userOperation"],
                # The fingerprint excludes the signature; keep the caller's own.
                "signature": "0x" + parse_bytes(lookup_field(raw, "signature"), "signature").hex(),
            },
            user_op_hash=payload.get("userOpHash"),
            policy=policy,
            states=[ProcessingState.COMPLETED],
            cached=True,
        )


class PaymasterProcessor:
    """
    Processes user operations for one paymaster.

    Holds only immutable configuration; safe to share across concurrent
    requests.
    """

    def __init__(
        self,
        context: Optional[SigningContext],
        *,
        configured_version: Optional[str] = None,
        entry_points: Optional[Mapping[EntryPointVersion, str]] = None,
        chain_id: int = SEPOLIA_CHAIN_ID,
        validity_seconds: int = 0,
        clock: Callable[[], float] = time.time,
    ):
        self.context = context
        self.configured_version = configured_version
        self.entry_points = dict(entry_points or {})
        self.chain_id = chain_id
        self.validity_seconds = validity_seconds
        self._clock = clock

    @classmethod
    def from_settings(
        cls,
        settings: Any,
        context: Optional[SigningContext],
    ) -> PaymasterProcessor:
        return cls(
            context,
            configured_version=settings.entrypoint_version,
            entry_points={
                EntryPointVersion.V06: settings.entrypoint_v06_address,
                EntryPointVersion.V07: settings.entrypoint_v07_address,
            },
            chain_id=settings.chain_id,
            validity_seconds=settings.paymaster_validity_seconds,
        )

    def resolve_policy(self, requested_version: Optional[str] = None) -> VersionPolicy:
        return resolve_version_policy(
            requested_version,
            self.configured_version,
            entry_points=self.entry_points,
            chain_id=self.chain_id,
        )

    def validity_window(self) -> tuple[int, int]:
        """Return (validUntil, validAfter); zero means unbounded."""
        if self.validity_seconds > 0:
            return int(self._clock()) + self.validity_seconds, 0
        return 0, 0

    def process(
        self,
        raw: Any,
        requested_version: Optional[str] = None,
    ) -> ProcessingResult:
        """Run one operation through the state machine."""
        started = time.perf_counter()
        policy = self.resolve_policy(requested_version)
        trace = ProcessingTrace()
        raw_fields: Mapping[str, Any] = raw if isinstance(raw, Mapping) else {}

        try:
            result = self._run(raw, raw_fields, policy, trace)
        except PaymasterError as exc:
            result = self._failed(exc, raw_fields, policy, trace)
        except Exception as exc:  # noqa: BLE001
            logger.exception(f"Unexpected paymaster failure in state {trace.state.value}")
            result = self._failed(InternalError(cause=exc), raw_fields, policy, trace)

        result.duration_ms = round((time.perf_counter() - started) * 1000, 3)
        return result

    def _authorization_expired(self, payload: Mapping[str, Any]) -> bool:
        """True when a cached sponsorship is past its validUntil."""
        blob = parse_bytes(payload["userOperation"].get("paymasterAndData", "0x"), "paymasterAndData")
        if len(blob) != PAYMASTER_AND_DATA_LENGTH:
            return False
        valid_until = decode_paymaster_and_data(blob).valid_until
        return 0 < valid_until <= self._clock()

    async def process_cached(
        self,
        raw: Any,
        requested_version: Optional[str] = None,
        cache: Optional[ResultCacheBackend] = None,
    ) -> ProcessingResult:
        """
        ``process`` behind an optional read-through cache.

        Only successful results are cached; the cache backend is responsible
        for turning its own failures into misses.
        """
        if cache is None or self.context is None or not isinstance(raw, Mapping):
            return self.process(raw, requested_version)

        policy = self.resolve_policy(requested_version)
        try:
            key = user_operation_fingerprint(
                normalize_user_operation(raw, policy),
                policy,
                self.context.paymaster_address,
            )
        except ValidationError:
            return self.process(raw, requested_version)

        cached = await cache.get(key)
        if cached and self._authorization_expired(cached):
            logger.debug(f"Paymaster cache entry expired: {key}")
        elif cached:
            logger.debug(f"Paymaster cache hit: {key}")
            return ProcessingResult.from_cache_dict(cached, raw, policy)

        result = self.process(raw, requested_version)
        if result.success:
            await cache.set(key, result.to_cache_dict())
        return result

    def _run(
        self,
        raw: Any,
        raw_fields: Mapping[str, Any],
        policy: VersionPolicy,
        trace: ProcessingTrace,
    ) -> ProcessingResult:
        op = normalize_user_operation(raw, policy)
        trace.advance(ProcessingState.NORMALIZED)

        validate_user_operation(op)
        trace.advance(ProcessingState.VALIDATED)

        payment_method = classify_payment_method(op.gas_fields())
        trace.advance(ProcessingState.CLASSIFIED)

        if payment_method is PaymentMethod.DIRECT_PAYMENT:
            updated = op.with_zero_fees().with_paymaster_and_data(b"")
            trace.advance(ProcessingState.FEES_ZEROED)
        else:
            updated = self._sponsor(op, policy, trace)

        rendered = render_user_operation(raw_fields, updated)
        op_hash = "0x" + user_operation_hash(updated, policy).hex()
        trace.advance(ProcessingState.COMPLETED)
        logger.info(
            f"UserOperation processed: sender={op.sender}, nonce={op.nonce}, "
            f"method={payment_method.value}, entryPoint=v{policy.version.value}"
        )
        return ProcessingResult(
            success=True,
            payment_method=payment_method,
            user_operation=rendered,
            user_op_hash=op_hash,
            policy=policy,
            states=list(trace.history),
        )

    def _sponsor(
        self,
        op: OperationVariant,
        policy: VersionPolicy,
        trace: ProcessingTrace,
    ) -> OperationVariant:
        if self.context is None:
            raise ConfigurationError("Paymaster signing context is not configured")

        valid_until, valid_after = self.validity_window()
        prefix = paymaster_data_prefix(self.context.paymaster_address, valid_until, valid_after)
        signing_hash = paymaster_signing_hash(op, prefix, policy.chain_id)
        trace.advance(ProcessingState.HASH_COMPUTED)

        signature = sign_paymaster_hash(signing_hash, self.context)
        trace.advance(ProcessingState.SIGNED)

        paymaster_and_data = encode_paymaster_and_data(
            PaymasterAuthorization(
                paymaster=self.context.paymaster_address,
                valid_until=valid_until,
                valid_after=valid_after,
                signature=signature,
            )
        )
        trace.advance(ProcessingState.ENCODED)
        return op.with_paymaster_and_data(paymaster_and_data)

    def _failed(
        self,
        error: PaymasterError,
        raw_fields: Mapping[str, Any],
        policy: VersionPolicy,
        trace: ProcessingTrace,
    ) -> ProcessingResult:
        failed_in = trace.state
        if failed_in not in TERMINAL_STATES:
            trace.advance(ProcessingState.FAILED)
        if isinstance(error, ValidationError):
            logger.info(f"UserOperation rejected in state {failed_in.value}: {error.message}")
        else:
            logger.error(f"UserOperation processing failed in state {failed_in.value}: {error.message}")
        return ProcessingResult(
            success=False,
            payment_method=PaymentMethod.SPONSORSHIP,
            user_operation=dict(raw_fields),
            error=error,
            policy=policy,
            states=list(trace.history),
        )


__all__ = [
    "InvalidTransitionError",
    "PROCESSING_MODULES",
    "PaymasterProcessor",
    "ProcessingResult",
    "ProcessingState",
    "ProcessingTrace",
    "SERVICE_NAME",
    "TERMINAL_STATES",
    "TRANSITIONS",
]
