"""
GitHub webhook ingestion endpoints
"""

from typing import Optional

import structlog
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from src.models.records import InboundRequest
from src.services.errors import IngestionError
from src.services.ingestion_pipeline import IngestionPipeline
from src.services.shared_services import get_pipeline

router = APIRouter()
logger = structlog.get_logger()


def resolve_source_ip(request: Request) -> Optional[str]:
    """Caller address, from X-Forwarded-For only when configured to trust it"""
    settings = getattr(request.app.state, "settings", None)
    if settings is not None and settings.TRUST_FORWARDED_FOR:
        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded:
            return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


def error_response(error: IngestionError) -> JSONResponse:
    return JSONResponse(content=error.to_response_body(), status_code=error.status_code)


@router.post("/webhooks")
async def github_webhook(
    request: Request,
    pipeline: IngestionPipeline = Depends(get_pipeline),
) -> JSONResponse:
    """
    Verify a GitHub delivery, flatten it into one record and write it
    """
    body = await request.body()
    inbound = InboundRequest(
        body=body,
        headers=request.headers,
        is_base64_encoded=request.headers.get("Content-Transfer-Encoding", "").lower() == "base64",
        source_ip=resolve_source_ip(request),
    )

    try:
        result = await pipeline.handle_webhook(inbound)
    except IngestionError as e:
        log = logger.error if e.status_code >= 500 else logger.warning
        log(
            "Webhook rejected",
            status_code=e.status_code,
            error_type=type(e).__name__,
            retryable=e.retryable,
            error=e.message,
            delivery_id=request.headers.get("X-GitHub-Delivery"),
        )
        return error_response(e)
    except Exception as e:
        logger.error(
            "Webhook processing failed",
            event_type=request.headers.get("X-GitHub-Event"),
            delivery_id=request.headers.get("X-GitHub-Delivery"),
            error=str(e),
        )
        return JSONResponse(
            content={"message": "Error processing webhook", "error": str(e)},
            status_code=500,
        )

    return JSONResponse(
        content={
            "message": "Webhook received and processed successfully",
            "eventType": result.event_type,
            "recordId": result.ack.record_id,
        },
        status_code=200,
    )
