from typing import Any, Optional
from pydantic import BaseModel, ConfigDict, Field


class ProcessRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    # Left untyped so a non-object payload can be answered with INVALID_REQUEST
    user_operation: Any = Field(
        default=None,
        alias="userOperation",
        description="ERC-4337 UserOperation in EntryPoint v0.6 or v0.7 layout",
    )
    entry_point_version: Optional[str] = Field(
        default=None,
        alias="entryPointVersion",
        description="Optional EntryPoint version override (0.6 or 0.7)",
    )
