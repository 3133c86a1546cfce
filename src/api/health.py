"""
Health check endpoints
"""

from datetime import datetime, timezone

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

router = APIRouter()
logger = structlog.get_logger()


def _utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.get("")
async def health_check(request: Request) -> JSONResponse:
    """
    Health check endpoint for monitoring
    """
    try:
        services = request.app.state.services
        health_data = {
            "status": "healthy",
            "timestamp": _utcnow(),
            "version": request.app.version,
            "service": "github-webhook-metrics",
            "sink": services.sink.name,
        }
        return JSONResponse(content=health_data, status_code=200)

    except Exception as e:
        logger.error("Health check failed", error=str(e))
        return JSONResponse(
            content={
                "status": "unhealthy",
                "timestamp": _utcnow(),
                "error": str(e),
            },
            status_code=503,
        )


@router.get("/ready")
async def readiness_check(request: Request) -> JSONResponse:
    """
    Readiness check endpoint for deployment
    """
    try:
        settings = request.app.state.settings
        services = request.app.state.services
        checks = {
            "sink": check_sink_configuration(settings),
            "webhook_secret": bool(settings.GITHUB_WEBHOOK_SECRET or settings.SECRET_PARAMETER_NAME),
            "secret_loaded": services.secret.is_loaded,
        }

        # The secret is fetched lazily on the first delivery
        all_ready = checks["sink"] and checks["webhook_secret"]

        return JSONResponse(
            content={
                "ready": all_ready,
                "checks": checks,
                "timestamp": _utcnow(),
            },
            status_code=200 if all_ready else 503,
        )

    except Exception as e:
        logger.error("Readiness check failed", error=str(e))
        return JSONResponse(
            content={
                "ready": False,
                "error": str(e),
                "timestamp": _utcnow(),
            },
            status_code=503,
        )


def check_sink_configuration(settings) -> bool:
    """Check that the selected sink has its target configured"""
    backend = settings.sink_backend
    if backend == "log":
        return True
    if backend == "firehose":
        return bool(settings.DELIVERY_STREAM_NAME)
    if backend == "timestream":
        return bool(settings.TIMESTREAM_DATABASE and settings.TIMESTREAM_TABLE)
    if backend == "s3":
        return bool(settings.RAW_DATA_BUCKET)
    return False
