"""
AWS Lambda entry point for API Gateway proxy integrations
"""

import asyncio
import base64
import binascii
import json
from typing import Any, Dict, Optional

import structlog

from config.settings import Settings
from src.models.records import InboundRequest
from src.services.errors import IngestionError, MalformedInputError
from src.services.shared_services import ServiceContainer, build_services
from src.utils.webhook_validator import get_header

logger = structlog.get_logger()

RESPONSE_HEADERS = {
    "Content-Type": "application/json",
    "Access-Control-Allow-Origin": "*",
}


class LambdaApp:
    """Holds the services for one Lambda execution environment"""

    def __init__(self, services: Optional[ServiceContainer] = None, settings: Optional[Settings] = None):
        self._services = services
        self._settings = settings

    @property
    def services(self) -> ServiceContainer:
        # Built on the first invocation of a cold start and reused afterwards
        if self._services is None:
            self._services = build_services(self._settings or Settings())
        return self._services

    def __call__(self, event: Dict[str, Any], context: Any = None) -> Dict[str, Any]:
        return asyncio.run(self.handle(event))

    async def handle(self, event: Dict[str, Any]) -> Dict[str, Any]:
        path = event.get("path") or event.get("rawPath") or event.get("resource") or ""
        headers = event.get("headers") or {}

        try:
            if path.rstrip("/").endswith("/custom-data"):
                return await self._handle_custom_data(event, headers)
            return await self._handle_webhook(event, headers)
        except IngestionError as e:
            logger.warning(
                "Request rejected",
                status_code=e.status_code,
                error_type=type(e).__name__,
                error=e.message,
            )
            return _response(e.status_code, e.to_response_body())
        except Exception as e:
            logger.error("Error processing webhook", error=str(e))
            return _response(500, {"message": "Error processing webhook", "error": str(e)})

    async def _handle_webhook(self, event: Dict[str, Any], headers: Dict[str, str]) -> Dict[str, Any]:
        request = InboundRequest(
            body=event.get("body"),
            headers=headers,
            is_base64_encoded=bool(event.get("isBase64Encoded")),
            source_ip=_source_ip(event),
        )
        result = await self.services.pipeline.handle_webhook(request)
        return _response(
            200,
            {
                "message": "Webhook received and processed successfully",
                "eventType": result.event_type,
                "recordId": result.ack.record_id,
            },
        )

    async def _handle_custom_data(self, event: Dict[str, Any], headers: Dict[str, str]) -> Dict[str, Any]:
        body = event.get("body")
        if body and event.get("isBase64Encoded"):
            try:
                body = base64.b64decode(body, validate=True)
            except (binascii.Error, ValueError) as e:
                raise MalformedInputError(f"Body is not valid base64: {e}")
        result = await self.services.pipeline.handle_custom_data(
            body, api_key=get_header(headers, "x-api-key")
        )
        return _response(200, {"result": "success", "recordId": result.ack.record_id})


def _source_ip(event: Dict[str, Any]) -> Optional[str]:
    context = event.get("requestContext") or {}
    identity = context.get("identity") or {}
    http = context.get("http") or {}
    return identity.get("sourceIp") or http.get("sourceIp")


def _response(status_code: int, body: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "statusCode": status_code,
        "headers": dict(RESPONSE_HEADERS),
        "body": json.dumps(body),
    }


handler = LambdaApp()
