"""
Custom data endpoint for metrics pushed by CI jobs and other clients
"""

import structlog
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from src.services.errors import IngestionError
from src.services.ingestion_pipeline import IngestionPipeline
from src.services.shared_services import get_pipeline

router = APIRouter()
logger = structlog.get_logger()


@router.post("/custom-data")
async def submit_custom_data(
    request: Request,
    pipeline: IngestionPipeline = Depends(get_pipeline),
) -> JSONResponse:
    body = await request.body()
    try:
        result = await pipeline.handle_custom_data(body, api_key=request.headers.get("x-api-key"))
    except IngestionError as e:
        logger.warning(
            "Custom data rejected",
            status_code=e.status_code,
            error_type=type(e).__name__,
            error=e.message,
        )
        return JSONResponse(content=e.to_response_body(), status_code=e.status_code)
    except Exception as e:
        logger.error("Custom data processing failed", error=str(e))
        return JSONResponse(
            content={"message": "Error processing custom data", "error": str(e)},
            status_code=500,
        )

    return JSONResponse(
        content={"result": "success", "recordId": result.ack.record_id},
        status_code=200,
    )
