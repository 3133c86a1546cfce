"""
GitHub webhook signature validation utilities
"""

import hashlib
import hmac
from typing import Mapping, Optional, Union

import structlog

logger = structlog.get_logger()

SIGNATURE_PREFIX = "sha256="


def sign_payload(payload: Union[bytes, str], secret: str) -> str:
    """
    Compute the X-Hub-Signature-256 header value for a payload

    Args:
        payload: Raw request body
        secret: Webhook secret configured in GitHub

    Returns:
        str: "sha256=" followed by the hex HMAC digest
    """
    if isinstance(payload, str):
        payload = payload.encode("utf-8")
    digest = hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()
    return SIGNATURE_PREFIX + digest


def validate_github_webhook(payload: bytes, signature: Optional[str], secret: str) -> bool:
    """
    Validate GitHub webhook signature

    Never raises: a missing or malformed header, or any failure while
    computing the digest, counts as an invalid signature.

    Args:
        payload: Raw request body as bytes
        signature: X-Hub-Signature-256 header value
        secret: Webhook secret configured in GitHub

    Returns:
        bool: True if signature is valid, False otherwise
    """
    if not signature:
        logger.warning("Missing webhook signature")
        return False

    if not signature.startswith(SIGNATURE_PREFIX):
        logger.warning("Invalid signature format", signature_prefix=signature[:7])
        return False

    try:
        received_digest = bytes.fromhex(signature[len(SIGNATURE_PREFIX):])
        expected_digest = hmac.new(
            secret.encode("utf-8"), payload, hashlib.sha256
        ).digest()
    except Exception as e:
        logger.warning("Signature verification error", error=str(e))
        return False

    # Use constant-time comparison to prevent timing attacks
    is_valid = hmac.compare_digest(received_digest, expected_digest)

    if not is_valid:
        logger.warning(
            "Invalid webhook signature",
            expected_prefix=expected_digest.hex()[:8],
            received_prefix=received_digest.hex()[:8],
        )

    return is_valid


def get_header(headers: Mapping[str, str], name: str) -> Optional[str]:
    """
    Case-insensitive header lookup

    API gateways may forward either "X-GitHub-Event" or "x-github-event".
    """
    if name in headers:
        return headers[name]
    wanted = name.lower()
    for key, value in headers.items():
        if key.lower() == wanted:
            return value
    return None


def extract_github_event_type(headers: Mapping[str, str]) -> Optional[str]:
    """
    Extract GitHub event type from webhook headers

    Returns:
        str: Event type (e.g., 'issues', 'pull_request'), or None when absent
    """
    return get_header(headers, "X-GitHub-Event")


def extract_github_delivery_id(headers: Mapping[str, str]) -> Optional[str]:
    """Extract the GitHub delivery id from webhook headers"""
    return get_header(headers, "X-GitHub-Delivery")
