"""
Application settings and configuration
"""

from typing import Optional, List

from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Server Configuration
    HOST: str = Field(default="0.0.0.0", description="Server host")
    PORT: int = Field(default=8080, description="Server port")
    DEBUG: bool = Field(default=False, description="Debug mode")
    LOG_LEVEL: str = Field(default="INFO", description="Logging level")

    # Webhook Secret Configuration
    GITHUB_WEBHOOK_SECRET: Optional[str] = Field(
        default=None,
        description="Static webhook secret; when unset the secret is read from SSM",
    )
    SECRET_PARAMETER_NAME: str = Field(
        default="/github/metrics/secret-token",
        description="SSM parameter holding the webhook secret",
    )
    AWS_REGION: Optional[str] = Field(default=None, description="AWS region for SDK clients")

    # Sink Configuration
    SINK_BACKEND: str = Field(
        default="log", description="Record sink: log, firehose, timestream or s3"
    )
    DELIVERY_STREAM_NAME: Optional[str] = Field(
        default=None, description="Firehose delivery stream for webhook records"
    )
    TIMESTREAM_DATABASE: Optional[str] = Field(default=None, description="Timestream database")
    TIMESTREAM_TABLE: Optional[str] = Field(default=None, description="Timestream table")
    RAW_DATA_BUCKET: Optional[str] = Field(default=None, description="S3 bucket for raw records")

    # Network Origin Configuration
    ENFORCE_SOURCE_IP_CHECK: bool = Field(
        default=False, description="Reject requests from outside GitHub hook ranges"
    )
    TRUST_FORWARDED_FOR: bool = Field(
        default=False, description="Use X-Forwarded-For as the caller address"
    )
    GITHUB_HOOK_CIDRS: str = Field(
        default="", description="Comma-separated CIDR override for GitHub hook ranges"
    )
    GITHUB_API_URL: str = Field(
        default="https://api.github.com", description="GitHub API URL"
    )

    # Custom Data API
    CUSTOM_DATA_API_KEY: Optional[str] = Field(
        default=None, description="API key required by the custom data endpoint"
    )

    @property
    def github_hook_cidrs_list(self) -> List[str]:
        """Get hook CIDR overrides as a list"""
        if not self.GITHUB_HOOK_CIDRS:
            return []
        return [cidr.strip() for cidr in self.GITHUB_HOOK_CIDRS.split(",") if cidr.strip()]

    @property
    def sink_backend(self) -> str:
        return self.SINK_BACKEND.strip().lower()

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True
        extra = "ignore"


# Global settings instance
settings = Settings()
