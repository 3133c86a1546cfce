"""
Integration tests for the HTTP endpoints
"""

import json

import pytest
from fastapi.testclient import TestClient

from config.settings import Settings
from main import create_app
from src.services.errors import SinkPermanentError
from src.services.ingestion_pipeline import IngestionPipeline
from src.services.origin_guard import NetworkOriginGuard
from src.services.secret_store import CachedSecret, StaticSecretProvider
from src.services.shared_services import ServiceContainer

from tests.helpers import FIXED_NOW_MS, TEST_SECRET, InMemorySink, signed_headers


def build_client(sink=None, origin_guard=None, api_key=None, **overrides):
    app_settings = Settings(GITHUB_WEBHOOK_SECRET=TEST_SECRET, **overrides)
    secret = CachedSecret(StaticSecretProvider(TEST_SECRET), app_settings.SECRET_PARAMETER_NAME)
    sink = sink or InMemorySink()
    origin_guard = origin_guard or NetworkOriginGuard(enabled=False)
    pipeline = IngestionPipeline(
        secret=secret,
        sink=sink,
        origin_guard=origin_guard,
        custom_data_api_key=api_key,
        clock=lambda: FIXED_NOW_MS,
    )
    services = ServiceContainer(secret=secret, sink=sink, origin_guard=origin_guard, pipeline=pipeline)
    return TestClient(create_app(app_settings, services=services)), sink


class TestWebhookEndpoint:
    """Integration tests for POST /webhooks"""

    @pytest.fixture
    def client_and_sink(self):
        return build_client()

    def test_push_delivery(self, client_and_sink, push_payload):
        client, sink = client_and_sink
        body = json.dumps(push_payload).encode()

        response = client.post("/webhooks", content=body, headers=signed_headers(body, delivery_id="d-1"))

        assert response.status_code == 200
        assert response.json() == {
            "message": "Webhook received and processed successfully",
            "eventType": "push",
            "recordId": "record-1",
        }
        assert sink.records[0].dimension("delivery_id") == "d-1"

    def test_invalid_signature(self, client_and_sink, push_payload):
        client, sink = client_and_sink
        body = json.dumps(push_payload).encode()

        response = client.post("/webhooks", content=body, headers=signed_headers(body, secret="nope"))

        assert response.status_code == 401
        assert response.json() == {"message": "Invalid signature"}
        assert sink.records == []

    def test_malformed_json_with_valid_signature(self, client_and_sink):
        client, sink = client_and_sink
        body = b'{"ref": "refs/heads/main",'

        response = client.post("/webhooks", content=body, headers=signed_headers(body))

        assert response.status_code == 400
        assert response.json()["message"] == "Invalid JSON payload"
        assert response.json()["error"]
        assert sink.records == []

    def test_empty_body(self, client_and_sink):
        client, _ = client_and_sink
        response = client.post("/webhooks", content=b"", headers=signed_headers(b""))
        assert response.status_code == 400
        assert response.json()["message"] == "No request body provided"

    def test_missing_event_header(self, client_and_sink):
        client, _ = client_and_sink
        body = b"{}"
        headers = signed_headers(body)
        del headers["X-GitHub-Event"]

        response = client.post("/webhooks", content=body, headers=headers)

        assert response.status_code == 400
        assert "X-GitHub-Event" in response.json()["error"]

    def test_base64_transfer_encoding(self, client_and_sink, push_payload):
        import base64

        client, sink = client_and_sink
        raw = json.dumps(push_payload).encode()
        headers = signed_headers(raw, **{"Content-Transfer-Encoding": "base64"})

        response = client.post("/webhooks", content=base64.b64encode(raw), headers=headers)

        assert response.status_code == 200
        assert len(sink.records) == 1

    def test_sink_failure(self, push_payload):
        client, _ = build_client(
            sink=InMemorySink(error=SinkPermanentError("ValidationException: bad", sink="memory"))
        )
        body = json.dumps(push_payload).encode()

        response = client.post("/webhooks", content=body, headers=signed_headers(body))

        assert response.status_code == 500
        assert response.json() == {
            "message": "Error processing webhook",
            "error": "ValidationException: bad",
        }

    def test_unexpected_error(self, push_payload):
        class BrokenSink(InMemorySink):
            async def write(self, record):
                raise RuntimeError("boom")

        client, _ = build_client(sink=BrokenSink())
        body = json.dumps(push_payload).encode()

        response = client.post("/webhooks", content=body, headers=signed_headers(body))

        assert response.status_code == 500
        assert response.json() == {"message": "Error processing webhook", "error": "boom"}

    def test_forbidden_origin(self, push_payload):
        client, sink = build_client(
            origin_guard=NetworkOriginGuard(enabled=True, cidrs=["192.30.252.0/22"]),
            TRUST_FORWARDED_FOR=True,
        )
        body = json.dumps(push_payload).encode()

        denied = client.post(
            "/webhooks",
            content=body,
            headers=signed_headers(body, **{"X-Forwarded-For": "203.0.113.9, 10.0.0.1"}),
        )
        allowed = client.post(
            "/webhooks",
            content=body,
            headers=signed_headers(body, **{"X-Forwarded-For": "192.30.252.10"}),
        )

        assert denied.status_code == 403
        assert denied.json() == {"message": "Forbidden source address"}
        assert allowed.status_code == 200
        assert len(sink.records) == 1


class TestCustomDataEndpoint:
    """Integration tests for POST /custom-data"""

    BODY = {
        "Dimensions": [{"Name": "pipeline", "Value": "release"}],
        "MeasureName": "deploy_seconds",
        "MeasureValueType": "DOUBLE",
        "MeasureValue": 93.5,
    }

    def test_success(self):
        client, sink = build_client()
        response = client.post("/custom-data", json=self.BODY)

        assert response.status_code == 200
        assert response.json() == {"result": "success", "recordId": "record-1"}
        assert sink.records[0].measure.value == "93.5"

    def test_missing_fields(self):
        client, _ = build_client()
        response = client.post("/custom-data", json={"MeasureName": "x"})
        assert response.status_code == 400
        assert response.json()["message"] == "Invalid JSON body"

    def test_api_key(self):
        client, _ = build_client(api_key="k3y")

        assert client.post("/custom-data", json=self.BODY).status_code == 401
        response = client.post("/custom-data", json=self.BODY, headers={"x-api-key": "k3y"})
        assert response.status_code == 200


class TestHealthEndpoints:
    """Integration tests for health checks"""

    def test_health(self):
        client, _ = build_client()
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert response.json()["sink"] == "memory"

    def test_ready_with_log_sink(self):
        client, _ = build_client()
        response = client.get("/health/ready")
        assert response.status_code == 200
        assert response.json()["checks"]["sink"] is True
        assert response.json()["checks"]["secret_loaded"] is False

    def test_not_ready_without_stream_name(self):
        client, _ = build_client(SINK_BACKEND="firehose")
        response = client.get("/health/ready")
        assert response.status_code == 503
        assert response.json()["checks"]["sink"] is False

    def test_root(self):
        client, _ = build_client()
        assert client.get("/").json()["webhook"] == "/webhooks"
