"""
Sequential webhook ingestion: verify, normalize, extract, assemble, write
"""

import hmac
import json
from typing import Any, Callable, Optional, Union

import structlog
from pydantic import ValidationError

from src.models.custom_data import CustomDataPayload
from src.models.measures import FALLBACK_MEASURE
from src.models.records import InboundRequest, IngestionResult
from src.utils.json_path import MISSING, get_path
from src.utils.time_utils import now_millis
from .errors import (
    AuthenticationError,
    EmptyBodyError,
    InvalidCustomDataError,
    InvalidJsonError,
)
from .measure_extractor import CUSTOM_DATA_EVENT, extract
from .origin_guard import NetworkOriginGuard
from .payload_normalizer import normalize
from .record_assembler import assemble, assemble_custom, supplied_time_millis
from .secret_store import CachedSecret
from .sinks import RecordSink

logger = structlog.get_logger()


def _loggable(value: Any) -> Any:
    return None if value is MISSING else value


class IngestionPipeline:
    """
    Handles one inbound event at a time with no state shared between calls

    The only suspension points are the secret fetch, the origin range fetch
    and the sink write. Nothing is written unless a complete record exists.
    """

    def __init__(
        self,
        secret: CachedSecret,
        sink: RecordSink,
        origin_guard: Optional[NetworkOriginGuard] = None,
        custom_data_api_key: Optional[str] = None,
        clock: Callable[[], int] = now_millis,
    ):
        self.secret = secret
        self.sink = sink
        self.origin_guard = origin_guard or NetworkOriginGuard(enabled=False)
        self.custom_data_api_key = custom_data_api_key
        self.clock = clock

    async def handle_webhook(self, request: InboundRequest) -> IngestionResult:
        await self.origin_guard.check(request.source_ip)

        secret = await self.secret.get()
        event = normalize(request, secret)

        logger.info(
            "Received GitHub webhook",
            event_type=event.event_type,
            delivery_id=event.delivery_id,
            action=_loggable(get_path(event.payload, "action")),
            repository=_loggable(get_path(event.payload, "repository.full_name")),
        )

        measure = extract(event.event_type, event.payload)
        timestamp_ms = None
        if event.event_type == CUSTOM_DATA_EVENT:
            timestamp_ms = supplied_time_millis(event.payload)
        record = assemble(
            event.verified, event.payload, measure, timestamp_ms=timestamp_ms, clock=self.clock
        )
        ack = await self.sink.write(record)

        logger.info(
            "Webhook event processed",
            event_type=event.event_type,
            delivery_id=event.delivery_id,
            measure_name=measure.name,
            measure_value_count=len(measure.values) if measure.is_multi else 1,
            sink=ack.sink,
            record_id=ack.record_id,
        )
        return IngestionResult(event_type=event.event_type, record=record, ack=ack)

    def _check_api_key(self, api_key: Optional[str]) -> None:
        if not self.custom_data_api_key:
            return
        if not api_key or not hmac.compare_digest(
            api_key.encode("utf-8"), self.custom_data_api_key.encode("utf-8")
        ):
            raise AuthenticationError("Missing or invalid API key")

    async def handle_custom_data(
        self, body: Optional[Union[bytes, str]], api_key: Optional[str] = None
    ) -> IngestionResult:
        self._check_api_key(api_key)

        if not body:
            raise EmptyBodyError()

        try:
            data: Any = json.loads(body)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise InvalidJsonError(f"Invalid JSON payload: {e}", parse_error=str(e))

        if not isinstance(data, dict):
            raise InvalidCustomDataError("Custom data must be a JSON object")

        try:
            CustomDataPayload.model_validate(data)
        except ValidationError as e:
            raise InvalidCustomDataError(
                f"Missing required fields: {e.error_count()} validation error(s)"
            )

        if data.get("Time") is not None and supplied_time_millis(data) is None:
            raise InvalidCustomDataError("Time must be epoch milliseconds or ISO-8601 within years 1-9999")

        measure = extract(CUSTOM_DATA_EVENT, data)
        if measure == FALLBACK_MEASURE and data.get("MeasureName") != FALLBACK_MEASURE.name:
            raise InvalidCustomDataError("Measure values do not match their declared types")

        record = assemble_custom(data, measure, clock=self.clock)
        ack = await self.sink.write(record)

        logger.info(
            "Custom data processed",
            measure_name=measure.name,
            sink=ack.sink,
            record_id=ack.record_id,
        )
        return IngestionResult(event_type=CUSTOM_DATA_EVENT, record=record, ack=ack)
