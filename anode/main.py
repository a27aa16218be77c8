import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .api import health, paymaster
from .config import settings
from .core.paymaster import ErrorCode
from .logging_config import setup_logging
from .middleware import RequestLoggingMiddleware
from .services.paymaster import get_paymaster_processor

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    processor = get_paymaster_processor()
    policy = processor.resolve_policy()
    if processor.context is None:
        logger.warning("Paymaster started without a signing context; sponsorship requests will fail")
    logger.info(
        f"Paymaster ready: entryPoint=v{policy.version.value} {policy.entry_point}, "
        f"chainId={policy.chain_id}, config={settings.public_summary()}"
    )
    yield


# Create FastAPI app
app = FastAPI(
    title="aNode Paymaster",
    description="ERC-4337 paymaster signing and validation service",
    version=settings.service_version,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=86400,
)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.info(f"Rejected malformed request to {request.url.path}: {exc.errors()}")
    return JSONResponse(
        status_code=400,
        content={
            "success": False,
            "error": {"code": ErrorCode.INVALID_REQUEST.value, "message": "Invalid request body"},
        },
    )


app.include_router(health.router, tags=["Health"])
app.include_router(paymaster.router, tags=["Paymaster"])


@app.get("/")
async def root():
    """Root endpoint with basic info"""
    return {
        "name": "aNode Paymaster",
        "version": settings.service_version,
        "description": "ERC-4337 paymaster signing and validation service",
        "endpoints": {
            "process": "/api/v1/paymaster/process",
            "health": "/health",
        },
        "docs": "/docs",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "anode.main:app",
        host=settings.host,
        port=settings.port,
        reload=True,
        log_level=settings.log_level.lower()
    )
