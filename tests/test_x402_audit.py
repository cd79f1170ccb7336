# tests/test_x402_audit.py
"""
Unit tests for the x402 audit trail.
"""
import json
from unittest.mock import AsyncMock, patch

import pytest
import requests
from fastapi.testclient import TestClient

from app.main import create_app
from app.x402.audit import (
    AuditEventType,
    generate_request_id,
    record_event,
    record_event_async,
)
from app.x402.middleware import X_PAYMENT_HEADER

ENDPOINT = "/api/protected-endpoint?item=1"


def read_events(log_path, event_type=None):
    with open(log_path) as f:
        events = [json.loads(line) for line in f if line.strip()]
    if event_type is None:
        return events
    return [e for e in events if e["event_type"] == event_type.value]


class TestGenerateRequestId:
    """Test request ID generation."""

    def test_correct_length(self):
        """Request ID has expected length."""
        assert len(generate_request_id()) == 8

    def test_unique_ids(self):
        """Generated IDs are unique."""
        ids = [generate_request_id() for _ in range(100)]
        assert len(set(ids)) == 100


class TestRecordEvent:
    """Test writing events to the trail."""

    def test_disabled_without_path(self):
        """No path means nothing is written."""
        assert record_event(None, AuditEventType.REQUEST_RECEIVED, "abc12345") is False

    def test_writes_json_line(self, tmp_path):
        """Events are appended as JSON lines with their details under data."""
        log_path = tmp_path / "logs" / "audit.jsonl"

        assert record_event(
            str(log_path),
            AuditEventType.PAYMENT_REQUIRED_SENT,
            "abc12345",
            "10.0.0.1",
            amount="1000000000",
            network="eip155:1",
        ) is True

        [event] = read_events(log_path)
        assert event["event_type"] == "payment_required_sent"
        assert event["request_id"] == "abc12345"
        assert event["client_ip"] == "10.0.0.1"
        assert event["data"] == {"amount": "1000000000", "network": "eip155:1"}
        assert "timestamp" in event

    def test_appends(self, tmp_path):
        """Later events never overwrite earlier ones."""
        log_path = str(tmp_path / "audit.jsonl")
        record_event(log_path, AuditEventType.PAYMENT_REJECTED, "a", reason="expired")
        record_event(log_path, AuditEventType.PAYMENT_REJECTED, "b", reason="bad sig")

        assert [e["data"]["reason"] for e in read_events(log_path)] == ["expired", "bad sig"]

    def test_write_failure_does_not_raise(self, tmp_path):
        """Unwritable path is logged, not raised."""
        blocker = tmp_path / "file"
        blocker.write_text("x")
        # Parent is a regular file, so mkdir fails
        assert record_event(str(blocker / "audit.jsonl"), AuditEventType.REQUEST_RECEIVED, "abc") is False


class TestRecordEventAsync:
    """Writes from request handlers go through the worker thread pool."""

    @pytest.mark.anyio
    async def test_runs_in_threadpool(self, tmp_path):
        """The blocking write is handed to run_in_threadpool."""
        log_path = str(tmp_path / "audit.jsonl")
        with patch("app.x402.audit.run_in_threadpool", new=AsyncMock(return_value=True)) as pool:
            assert await record_event_async(
                log_path, AuditEventType.PAYMENT_VERIFIED, "abc12345", "1.1.1.1"
            ) is True

        pool.assert_awaited_once_with(
            record_event, log_path, AuditEventType.PAYMENT_VERIFIED, "abc12345", "1.1.1.1"
        )

    @pytest.mark.anyio
    async def test_disabled_skips_threadpool(self):
        """No path means no worker thread is used."""
        with patch("app.x402.audit.run_in_threadpool", new=AsyncMock()) as pool:
            assert await record_event_async(None, AuditEventType.REQUEST_RECEIVED, "abc") is False
        pool.assert_not_awaited()

    @pytest.mark.anyio
    async def test_writes_line(self, tmp_path):
        """The threaded write lands in the trail."""
        log_path = str(tmp_path / "audit.jsonl")
        await record_event_async(log_path, AuditEventType.UPSTREAM_ERROR, "abc", status_code=500)

        [event] = read_events(log_path)
        assert event["data"] == {"status_code": 500}

    def test_gate_never_writes_on_event_loop(self, settings, tmp_path):
        """Every audit write made while serving a request uses the thread pool."""
        settings.X402_AUDIT_LOG_PATH = str(tmp_path / "audit.jsonl")
        client = TestClient(create_app(settings=settings))

        with patch("app.x402.audit.run_in_threadpool", new=AsyncMock(return_value=True)) as pool:
            assert client.get(ENDPOINT).status_code == 402

        written = [c.args[2] for c in pool.await_args_list]
        assert written == [AuditEventType.REQUEST_RECEIVED, AuditEventType.PAYMENT_REQUIRED_SENT]


class TestGateAuditTrail:
    """The route guard records one decision per request."""

    @patch("app.x402.facilitator.requests.post")
    def test_failure_kinds_are_distinguished(self, mock_post, settings, tmp_path, facilitator_response):
        """Invalid payments and facilitator failures share a 402 but not an audit event."""
        log_path = str(tmp_path / "audit.jsonl")
        settings.X402_AUDIT_LOG_PATH = log_path
        client = TestClient(create_app(settings=settings))

        mock_post.return_value = facilitator_response({"isValid": False, "invalidReason": "expired"})
        assert client.get(ENDPOINT, headers={X_PAYMENT_HEADER: "proof"}).status_code == 402

        mock_post.side_effect = requests.exceptions.ConnectionError("refused")
        assert client.get(ENDPOINT, headers={X_PAYMENT_HEADER: "proof"}).status_code == 402

        rejected = read_events(log_path, AuditEventType.PAYMENT_REJECTED)
        failed = read_events(log_path, AuditEventType.VERIFICATION_FAILED)
        assert len(rejected) == 1
        assert rejected[0]["data"]["reason"] == "expired"
        assert len(failed) == 1

    def test_challenge_and_client_error_logged(self, settings, tmp_path):
        """402 challenges and 400 rejections are recorded."""
        log_path = str(tmp_path / "audit.jsonl")
        settings.X402_AUDIT_LOG_PATH = log_path
        client = TestClient(create_app(settings=settings))

        client.get(ENDPOINT)
        client.get("/api/protected-endpoint")

        assert len(read_events(log_path, AuditEventType.PAYMENT_REQUIRED_SENT)) == 1
        assert len(read_events(log_path, AuditEventType.CLIENT_INPUT_REJECTED)) == 1
        assert len(read_events(log_path, AuditEventType.REQUEST_RECEIVED)) == 2

    @patch("app.x402.facilitator.requests.post")
    def test_content_not_found_logged(self, mock_post, settings, tmp_path, facilitator_response):
        """404 after payment is recorded under the same request id."""
        log_path = str(tmp_path / "audit.jsonl")
        settings.X402_AUDIT_LOG_PATH = log_path
        settings.PROTECTED_CONTENT = ""
        mock_post.return_value = facilitator_response({"isValid": True})
        client = TestClient(create_app(settings=settings))

        assert client.get(ENDPOINT, headers={X_PAYMENT_HEADER: "proof"}).status_code == 404

        verified = read_events(log_path, AuditEventType.PAYMENT_VERIFIED)
        not_found = read_events(log_path, AuditEventType.CONTENT_NOT_FOUND)
        assert len(not_found) == 1
        assert not_found[0]["request_id"] == verified[0]["request_id"]
