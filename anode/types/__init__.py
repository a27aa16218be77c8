from .requests import ProcessRequest
from .responses import ErrorBody, HealthResponse, ProcessingInfo, ProcessResponse

__all__ = [
    "ProcessRequest",
    "ErrorBody",
    "HealthResponse",
    "ProcessingInfo",
    "ProcessResponse",
]
