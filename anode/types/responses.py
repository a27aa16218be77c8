from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field


class ErrorBody(BaseModel):
    code: str = Field(description="Stable error code")
    message: str = Field(description="Human-readable error message")


class ProcessingInfo(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    modules: List[str] = Field(default_factory=list, description="Processing modules that ran")
    total_duration: str = Field(alias="totalDuration", description="Wall-clock processing time")
    service: str = Field(description="Service name and version")
    cached: bool = Field(default=False, description="Whether the result was served from cache")


class ProcessResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = Field(description="Whether the operation was processed")
    user_operation: Optional[Dict[str, Any]] = Field(
        default=None,
        alias="userOperation",
        description="UserOperation with paymasterAndData and fees updated",
    )
    payment_method: str = Field(
        default="paymaster",
        alias="paymentMethod",
        description="paymaster or direct-payment",
    )
    user_op_hash: Optional[str] = Field(
        default=None,
        alias="userOpHash",
        description="EntryPoint hash of the returned UserOperation",
    )
    entry_point: Optional[Dict[str, Any]] = Field(
        default=None,
        alias="entryPoint",
        description="Resolved EntryPoint version, address and chain",
    )
    processing: Optional[ProcessingInfo] = Field(default=None, description="Processing metadata")
    error: Optional[ErrorBody] = Field(default=None, description="Error details if processing failed")


class HealthResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    status: str = Field(description="ok or degraded")
    service: str = Field(description="Service name")
    version: str = Field(description="Service version")
    entry_point_version: str = Field(alias="entryPointVersion", description="Configured EntryPoint version")
    chain_id: int = Field(alias="chainId", description="Configured chain ID")
    paymaster: Optional[str] = Field(default=None, description="Paymaster contract address")
    signer: Dict[str, Any] = Field(default_factory=dict, description="Signing context status")
    cache: Dict[str, Any] = Field(default_factory=dict, description="Result cache status")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Time of the health probe",
    )
