"""Health check and status endpoints."""

import time

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from luzzi.config import settings

# Set when the module is first imported (i.e. at cold start)
_app_start_time = time.time()

router = APIRouter(tags=["Health"])


@router.get("/status")
async def get_status() -> JSONResponse:
    """
    Unauthenticated liveness check for load balancers and API Gateway.

    Does not touch DynamoDB.

    Returns:
        JSONResponse with status, service name, version and uptime_seconds
    """
    return JSONResponse(
        status_code=200,
        content={
            "status": "ok",
            "service": settings.api_title,
            "version": settings.api_version,
            "uptime_seconds": int(time.time() - _app_start_time),
        },
    )
