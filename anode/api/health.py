from typing import Optional

from fastapi import APIRouter, Depends

from ..config import settings
from ..core.paymaster import PaymasterProcessor
from ..services.cache import ResultCache, get_result_cache
from ..services.paymaster import get_paymaster_processor
from ..types import HealthResponse

router = APIRouter()


@router.get("/health", response_model=HealthResponse, response_model_by_alias=True)
@router.get("/healthz", response_model=HealthResponse, response_model_by_alias=True, include_in_schema=False)
async def health_check(
    processor: PaymasterProcessor = Depends(get_paymaster_processor),
    cache: Optional[ResultCache] = Depends(get_result_cache),
) -> HealthResponse:
    """Health check reporting signer and cache status"""

    policy = processor.resolve_policy()
    context = processor.context

    if context is not None:
        signer = {
            "status": "configured",
            "address": context.signer_address,
            "enforceCanonical": context.enforce_canonical,
        }
    else:
        signer = {"status": "missing"}

    cache_status = await cache.ping() if cache is not None else {"status": "disabled"}

    return HealthResponse(
        status="ok" if context is not None else "degraded",
        service="aNode Paymaster",
        version=settings.service_version,
        entry_point_version=policy.version.value,
        chain_id=policy.chain_id,
        paymaster=context.paymaster_address if context is not None else None,
        signer=signer,
        cache=cache_status,
    )
