from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from ..config import settings
from ..core.paymaster import InvalidRequestError, PaymasterProcessor, ProcessingResult
from ..core.paymaster.processor import PROCESSING_MODULES, SERVICE_NAME
from ..services.cache import ResultCache, get_result_cache
from ..services.paymaster import get_paymaster_processor
from ..types import ErrorBody, ProcessingInfo, ProcessRequest, ProcessResponse

router = APIRouter(prefix="/api/v1/paymaster")


def _processing_info(duration_ms: float, cached: bool = False) -> ProcessingInfo:
    return ProcessingInfo(
        modules=list(PROCESSING_MODULES),
        total_duration=f"{duration_ms}ms",
        service=f"{SERVICE_NAME} v{settings.service_version}",
        cached=cached,
    )


def _render(response: ProcessResponse, status_code: int) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=response.model_dump(by_alias=True, exclude_none=True, mode="json"),
    )


def _to_response(result: ProcessingResult) -> ProcessResponse:
    return ProcessResponse(
        success=result.success,
        user_operation=result.user_operation,
        payment_method=result.payment_method.value,
        user_op_hash=result.user_op_hash,
        entry_point=result.policy.to_dict() if result.policy is not None else None,
        processing=_processing_info(result.duration_ms, result.cached),
        error=ErrorBody(**result.error.to_dict()) if result.error is not None else None,
    )


@router.post("/process")
async def process_user_operation(
    request: ProcessRequest,
    processor: PaymasterProcessor = Depends(get_paymaster_processor),
    cache: Optional[ResultCache] = Depends(get_result_cache),
) -> JSONResponse:
    """Sponsor a UserOperation or mark it for direct payment"""
    if not isinstance(request.user_operation, dict):
        error = InvalidRequestError("Invalid userOperation format")
        return _render(
            ProcessResponse(
                success=False,
                processing=_processing_info(0),
                error=ErrorBody(**error.to_dict()),
            ),
            error.http_status,
        )

    result = await processor.process_cached(
        request.user_operation,
        request.entry_point_version,
        cache,
    )
    status_code = result.error.http_status if result.error is not None else 200
    return _render(_to_response(result), status_code)
