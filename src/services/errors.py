"""
Ingestion error taxonomy and HTTP status mapping
"""

from typing import Any, Dict, Optional


class IngestionError(Exception):
    """Base exception for failures while handling an inbound event"""

    status_code = 500
    retryable = False
    public_message = "Error processing webhook"

    def __init__(self, message: str, status_code: Optional[int] = None, retryable: Optional[bool] = None):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        if retryable is not None:
            self.retryable = retryable
        super().__init__(message)

    def to_response_body(self) -> Dict[str, Any]:
        """JSON body returned to the request originator"""
        return {"message": self.public_message, "error": self.message}


class NormalizationError(IngestionError):
    """The inbound request could not be turned into a verified event"""


class MalformedInputError(NormalizationError):
    """The request is unusable as sent; the caller must fix it"""

    status_code = 400
    public_message = "Invalid request"


class EmptyBodyError(MalformedInputError):
    public_message = "No request body provided"

    def __init__(self, message: str = "Request body is empty"):
        super().__init__(message)


class InvalidJsonError(MalformedInputError):
    public_message = "Invalid JSON payload"

    def __init__(self, message: str, parse_error: Optional[str] = None):
        self.parse_error = parse_error or message
        super().__init__(message)


class MissingHeaderError(MalformedInputError):
    public_message = "Missing required header"

    def __init__(self, header: str):
        self.header = header
        super().__init__(f"Missing required header: {header}")


class InvalidCustomDataError(MalformedInputError):
    public_message = "Invalid JSON body"


class AuthenticationError(NormalizationError):
    """Signature or API key check failed"""

    status_code = 401
    public_message = "Invalid signature"

    def to_response_body(self) -> Dict[str, Any]:
        return {"message": self.public_message}


class ForbiddenOriginError(IngestionError):
    """The caller address is outside the allowed provider ranges"""

    status_code = 403
    public_message = "Forbidden source address"

    def to_response_body(self) -> Dict[str, Any]:
        return {"message": self.public_message}


class SecretUnavailableError(IngestionError):
    """The verification secret could not be fetched"""


class SinkError(IngestionError):
    """Writing the record to the external store failed"""

    def __init__(self, message: str, sink: str = "unknown", error_code: Optional[str] = None):
        self.sink = sink
        self.error_code = error_code
        super().__init__(message)


class SinkTransientError(SinkError):
    """Write failed for a reason that may clear on redelivery"""

    retryable = True


class SinkPermanentError(SinkError):
    """Write failed and will keep failing until something is fixed"""
