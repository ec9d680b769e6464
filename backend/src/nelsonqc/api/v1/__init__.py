"""nelsonqc API v1 endpoints."""

from nelsonqc.api.v1.data import router as data_router
from nelsonqc.api.v1.websocket import router as websocket_router

__all__ = [
    "data_router",
    "websocket_router",
]
