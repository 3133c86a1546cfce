"""
Turns raw inbound requests into verified, parsed GitHub events
"""

import base64
import binascii
import json
from typing import Tuple

import structlog

from src.models.records import InboundRequest, NormalizedEvent, VerifiedEvent
from src.utils.webhook_validator import (
    extract_github_delivery_id,
    extract_github_event_type,
    get_header,
    validate_github_webhook,
)
from .errors import (
    AuthenticationError,
    EmptyBodyError,
    InvalidJsonError,
    MalformedInputError,
    MissingHeaderError,
)

logger = structlog.get_logger()

SIGNATURE_HEADER = "X-Hub-Signature-256"


def decode_body(request: InboundRequest) -> bytes:
    """Return the raw body bytes, undoing any base64 transport encoding"""
    body = request.body
    if body is None:
        raise EmptyBodyError()

    raw = body.encode("utf-8") if isinstance(body, str) else bytes(body)

    if request.is_base64_encoded:
        try:
            raw = base64.b64decode(raw, validate=True)
        except (binascii.Error, ValueError) as e:
            raise MalformedInputError(f"Body is not valid base64: {e}")

    if not raw:
        raise EmptyBodyError()
    return raw


def parse_json_body(raw: bytes) -> Tuple[str, dict]:
    """Decode UTF-8 text and parse it as a JSON object"""
    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise InvalidJsonError("Body is not valid UTF-8", parse_error=str(e))

    try:
        payload = json.loads(text)
    except json.JSONDecodeError as e:
        raise InvalidJsonError(f"Invalid JSON payload: {e.msg}", parse_error=str(e))

    if not isinstance(payload, dict):
        raise InvalidJsonError(
            "JSON payload must be an object",
            parse_error=f"top-level value is {type(payload).__name__}",
        )
    return text, payload


def normalize(request: InboundRequest, secret: str) -> NormalizedEvent:
    """
    Verify and parse one inbound webhook request

    Order matters: an empty body is rejected before the signature check, and
    the signature is checked over the decoded bytes before any JSON parsing,
    so a signed but malformed body is a 400 and never a 401.

    Raises:
        EmptyBodyError, MalformedInputError, InvalidJsonError, MissingHeaderError: 400
        AuthenticationError: 401
    """
    raw = decode_body(request)

    signature = get_header(request.headers, SIGNATURE_HEADER)
    if not validate_github_webhook(raw, signature, secret):
        raise AuthenticationError(
            "Missing webhook signature" if not signature else "Invalid webhook signature"
        )

    event_type = extract_github_event_type(request.headers)
    if not event_type:
        raise MissingHeaderError("X-GitHub-Event")

    delivery_id = extract_github_delivery_id(request.headers)
    if not delivery_id:
        raise MissingHeaderError("X-GitHub-Delivery")

    text, payload = parse_json_body(raw)

    logger.debug(
        "Normalized webhook payload",
        event_type=event_type,
        delivery_id=delivery_id,
        body_bytes=len(raw),
    )

    return NormalizedEvent(
        verified=VerifiedEvent(event_type=event_type, delivery_id=delivery_id, raw_body=text),
        payload=payload,
    )
