"""
Sink adapters that hand assembled records to external stores
"""

import asyncio
import json
import uuid
from abc import ABC, abstractmethod
from typing import Any, Callable, Optional

import boto3
import structlog
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    ConnectionError as BotoConnectionError,
    ConnectTimeoutError,
    EndpointConnectionError,
    ReadTimeoutError,
)

from src.models.records import OutputRecord, WriteAck
from src.utils.time_utils import format_millis, millis_to_datetime
from .errors import SinkError, SinkPermanentError, SinkTransientError

logger = structlog.get_logger()

TRANSIENT_ERROR_CODES = {
    "ThrottlingException",
    "Throttling",
    "ThrottledException",
    "RequestLimitExceeded",
    "ServiceUnavailableException",
    "ServiceUnavailable",
    "InternalServerException",
    "InternalServerError",
    "InternalFailure",
    "SlowDown",
    "RequestTimeout",
    "LimitExceededException",
}


def classify_client_error(error: Exception, sink: str) -> SinkError:
    """Map an SDK failure onto a transient or permanent sink error"""
    if isinstance(error, ClientError):
        code = error.response.get("Error", {}).get("Code", "Unknown")
        status = error.response.get("ResponseMetadata", {}).get("HTTPStatusCode", 0) or 0
        message = error.response.get("Error", {}).get("Message", str(error))
        if code in TRANSIENT_ERROR_CODES or status >= 500:
            return SinkTransientError(f"{code}: {message}", sink=sink, error_code=code)
        return SinkPermanentError(f"{code}: {message}", sink=sink, error_code=code)

    if isinstance(error, (EndpointConnectionError, ConnectTimeoutError, ReadTimeoutError, BotoConnectionError)):
        return SinkTransientError(str(error), sink=sink, error_code=type(error).__name__)

    return SinkPermanentError(str(error), sink=sink, error_code=type(error).__name__)


class RecordSink(ABC):
    """Abstract base class for record sinks"""

    name = "sink"

    @abstractmethod
    async def write(self, record: OutputRecord) -> WriteAck:
        """Write one record, raising SinkTransientError or SinkPermanentError"""
        pass

    async def close(self) -> None:
        return None


class LogSink(RecordSink):
    """Writes each record to the structured log stream"""

    name = "log"

    async def write(self, record: OutputRecord) -> WriteAck:
        row = record.to_flat_dict()
        logger.info("GitHub metrics record", record=row)
        return WriteAck(sink=self.name, record_id=record.dimension("delivery_id"))


class Boto3Sink(RecordSink):
    """Shared plumbing for sinks backed by a blocking boto3 client"""

    service_name = ""

    def __init__(self, client: Any = None, region_name: Optional[str] = None):
        self._client = client
        self._region_name = region_name

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = boto3.client(self.service_name, region_name=self._region_name)
        return self._client

    async def write(self, record: OutputRecord) -> WriteAck:
        try:
            return await asyncio.to_thread(self._write_sync, record)
        except (ClientError, BotoCoreError) as e:
            error = classify_client_error(e, self.name)
            logger.error(
                "Sink write failed",
                sink=self.name,
                error_code=error.error_code,
                retryable=error.retryable,
                error=error.message,
            )
            raise error from e

    @abstractmethod
    def _write_sync(self, record: OutputRecord) -> WriteAck:
        pass


class FirehoseSink(Boto3Sink):
    """Puts newline-delimited JSON rows onto a Firehose delivery stream"""

    name = "firehose"
    service_name = "firehose"

    def __init__(self, delivery_stream_name: str, client: Any = None, region_name: Optional[str] = None):
        super().__init__(client=client, region_name=region_name)
        if not delivery_stream_name:
            raise ValueError("Delivery stream name is required")
        self.delivery_stream_name = delivery_stream_name

    def _write_sync(self, record: OutputRecord) -> WriteAck:
        data = (json.dumps(record.to_flat_dict()) + "\n").encode("utf-8")
        response = self.client.put_record(
            DeliveryStreamName=self.delivery_stream_name,
            Record={"Data": data},
        )
        return WriteAck(sink=self.name, record_id=response.get("RecordId"))


class TimestreamSink(Boto3Sink):
    """Writes records to a Timestream table"""

    name = "timestream"
    service_name = "timestream-write"

    def __init__(
        self,
        database_name: str,
        table_name: str,
        client: Any = None,
        region_name: Optional[str] = None,
    ):
        super().__init__(client=client, region_name=region_name)
        if not database_name or not table_name:
            raise ValueError("Timestream database and table names are required")
        self.database_name = database_name
        self.table_name = table_name

    def _write_sync(self, record: OutputRecord) -> WriteAck:
        response = self.client.write_records(
            DatabaseName=self.database_name,
            TableName=self.table_name,
            Records=[record.to_timestream_record()],
        )
        ingested = response.get("RecordsIngested", {}).get("Total")
        return WriteAck(
            sink=self.name,
            record_id=str(ingested) if ingested is not None else None,
        )


def partitioned_key(record: OutputRecord, unique: Callable[[], str] = lambda: uuid.uuid4().hex) -> str:
    """
    Hour-partitioned object key

    custom_data/... for custom submissions, event_type=<type>/... for webhooks.
    """
    event_type = record.event_type or "unknown"
    prefix = "custom_data" if event_type == "custom_data" else f"event_type={event_type}"
    issued_at = millis_to_datetime(record.timestamp)
    stamp = format_millis(record.timestamp)
    return (
        f"{prefix}/year={issued_at.year}/month={issued_at.month:02d}"
        f"/day={issued_at.day:02d}/hour={issued_at.hour:02d}/{stamp}_{unique()}.json"
    )


class S3Sink(Boto3Sink):
    """Writes one JSON object per record into a raw data bucket"""

    name = "s3"
    service_name = "s3"

    def __init__(self, bucket_name: str, client: Any = None, region_name: Optional[str] = None):
        super().__init__(client=client, region_name=region_name)
        if not bucket_name:
            raise ValueError("Bucket name is required")
        self.bucket_name = bucket_name

    def _write_sync(self, record: OutputRecord) -> WriteAck:
        key = partitioned_key(record)
        self.client.put_object(
            Bucket=self.bucket_name,
            Key=key,
            Body=json.dumps(record.to_flat_dict()).encode("utf-8"),
            ContentType="application/json",
        )
        return WriteAck(sink=self.name, record_id=key)
