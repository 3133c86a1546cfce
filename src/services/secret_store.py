"""
Webhook secret retrieval with a process-wide cache
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Any, Optional

import boto3
import structlog
from botocore.exceptions import BotoCoreError, ClientError

from .errors import SecretUnavailableError

logger = structlog.get_logger()


class SecretProvider(ABC):
    """Source of secret values looked up by name"""

    @abstractmethod
    async def get_secret(self, name: str) -> str:
        pass


class StaticSecretProvider(SecretProvider):
    """Returns a secret configured in the environment, whatever the name"""

    def __init__(self, value: str):
        if not value:
            raise ValueError("Static secret must not be empty")
        self._value = value

    async def get_secret(self, name: str) -> str:
        return self._value


class SSMParameterSecretProvider(SecretProvider):
    """Reads SecureString parameters from SSM Parameter Store"""

    def __init__(self, client: Any = None, region_name: Optional[str] = None):
        self._client = client
        self._region_name = region_name

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = boto3.client("ssm", region_name=self._region_name)
        return self._client

    def _get_parameter(self, name: str) -> str:
        response = self.client.get_parameter(Name=name, WithDecryption=True)
        return response["Parameter"]["Value"]

    async def get_secret(self, name: str) -> str:
        try:
            return await asyncio.to_thread(self._get_parameter, name)
        except (ClientError, BotoCoreError, KeyError) as e:
            logger.error("Error fetching parameter from SSM", parameter=name, error=str(e))
            raise SecretUnavailableError(f"Unable to read secret parameter {name}") from e


class CachedSecret:
    """
    Fetches one named secret on first use and keeps it for the process lifetime

    Concurrent first fetches may both reach the provider. Failures are not
    cached.
    """

    def __init__(self, provider: SecretProvider, name: str):
        self.provider = provider
        self.name = name
        self._value: Optional[str] = None

    @property
    def is_loaded(self) -> bool:
        return self._value is not None

    async def get(self) -> str:
        if self._value is None:
            value = await self.provider.get_secret(self.name)
            if not value:
                raise SecretUnavailableError(f"Secret {self.name} is empty")
            self._value = value
            logger.info("Webhook secret loaded", secret_name=self.name)
        return self._value
