"""
Construction of process-wide service instances from settings
"""

from dataclasses import dataclass

import structlog
from fastapi import Request

from config.settings import Settings
from .ingestion_pipeline import IngestionPipeline
from .origin_guard import NetworkOriginGuard
from .secret_store import (
    CachedSecret,
    SecretProvider,
    SSMParameterSecretProvider,
    StaticSecretProvider,
)
from .sinks import FirehoseSink, LogSink, RecordSink, S3Sink, TimestreamSink

logger = structlog.get_logger()


@dataclass
class ServiceContainer:
    """Client handles built once at startup and passed to request handlers"""

    secret: CachedSecret
    sink: RecordSink
    origin_guard: NetworkOriginGuard
    pipeline: IngestionPipeline

    async def close(self) -> None:
        await self.sink.close()


def build_secret_provider(settings: Settings) -> SecretProvider:
    if settings.GITHUB_WEBHOOK_SECRET:
        return StaticSecretProvider(settings.GITHUB_WEBHOOK_SECRET)
    return SSMParameterSecretProvider(region_name=settings.AWS_REGION)


def build_sink(settings: Settings) -> RecordSink:
    backend = settings.sink_backend
    if backend == "log":
        return LogSink()
    if backend == "firehose":
        return FirehoseSink(settings.DELIVERY_STREAM_NAME, region_name=settings.AWS_REGION)
    if backend == "timestream":
        return TimestreamSink(
            settings.TIMESTREAM_DATABASE,
            settings.TIMESTREAM_TABLE,
            region_name=settings.AWS_REGION,
        )
    if backend == "s3":
        return S3Sink(settings.RAW_DATA_BUCKET, region_name=settings.AWS_REGION)
    raise ValueError(f"Unknown sink backend: {settings.SINK_BACKEND}")


def build_services(settings: Settings) -> ServiceContainer:
    """Build every service from settings; no network calls happen here"""
    secret = CachedSecret(build_secret_provider(settings), settings.SECRET_PARAMETER_NAME)
    sink = build_sink(settings)
    origin_guard = NetworkOriginGuard(
        enabled=settings.ENFORCE_SOURCE_IP_CHECK,
        cidrs=settings.github_hook_cidrs_list,
        api_url=settings.GITHUB_API_URL,
    )
    pipeline = IngestionPipeline(
        secret=secret,
        sink=sink,
        origin_guard=origin_guard,
        custom_data_api_key=settings.CUSTOM_DATA_API_KEY,
    )

    logger.info(
        "Services initialized",
        sink=sink.name,
        secret_source="static" if settings.GITHUB_WEBHOOK_SECRET else "ssm",
        source_ip_check=settings.ENFORCE_SOURCE_IP_CHECK,
    )
    return ServiceContainer(secret=secret, sink=sink, origin_guard=origin_guard, pipeline=pipeline)


def get_services(request: Request) -> ServiceContainer:
    """FastAPI dependency returning the container attached at startup"""
    return request.app.state.services


def get_pipeline(request: Request) -> IngestionPipeline:
    return get_services(request).pipeline
