"""
Helpers shared by the test suites
"""

import json
from typing import Any, Dict, List, Optional

from src.models.records import InboundRequest, OutputRecord, WriteAck
from src.services.errors import SinkError
from src.services.sinks import RecordSink
from src.utils.webhook_validator import sign_payload

TEST_SECRET = "test-webhook-secret"
FIXED_NOW_MS = 1_700_000_000_000


class InMemorySink(RecordSink):
    """Collects records instead of writing them anywhere"""

    name = "memory"

    def __init__(self, error: Optional[SinkError] = None):
        self.records: List[OutputRecord] = []
        self.error = error

    async def write(self, record: OutputRecord) -> WriteAck:
        if self.error is not None:
            raise self.error
        self.records.append(record)
        return WriteAck(sink=self.name, record_id=f"record-{len(self.records)}")


def signed_headers(
    body: bytes,
    event_type: str = "push",
    delivery_id: str = "delivery-1",
    secret: str = TEST_SECRET,
    **extra: str,
) -> Dict[str, str]:
    headers = {
        "X-GitHub-Event": event_type,
        "X-GitHub-Delivery": delivery_id,
        "X-Hub-Signature-256": sign_payload(body, secret),
        "Content-Type": "application/json",
    }
    headers.update(extra)
    return headers


def make_request(
    payload: Any,
    event_type: str = "push",
    delivery_id: str = "delivery-1",
    secret: str = TEST_SECRET,
    source_ip: Optional[str] = None,
) -> InboundRequest:
    body = payload if isinstance(payload, bytes) else json.dumps(payload).encode("utf-8")
    return InboundRequest(
        body=body,
        headers=signed_headers(body, event_type, delivery_id, secret),
        source_ip=source_ip,
    )
