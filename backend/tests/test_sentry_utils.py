import pytest
from fastapi import HTTPException

from haulquote.models import Quote, ServiceRequest
from haulquote.utils import sentry_utils


@pytest.fixture
def captured(monkeypatch):
    errors = []
    monkeypatch.setattr(
        sentry_utils,
        "capture_error_with_context",
        lambda error, operation, **kwargs: errors.append((type(error).__name__, operation)),
    )
    return errors


class TestSentryTrackEndpoint:
    @pytest.mark.asyncio
    async def test_returns_result(self, captured):
        @sentry_utils.sentry_track_endpoint("save_verification_session")
        async def endpoint(user=None):
            return {"session_id": "session-1"}

        assert await endpoint(user={"id": "user-1"}) == {"session_id": "session-1"}
        assert captured == []

    @pytest.mark.asyncio
    async def test_http_exception_passes_through(self, captured):
        @sentry_utils.sentry_track_endpoint("save_verification_session")
        async def endpoint(user=None):
            raise HTTPException(status_code=502, detail="store failed")

        with pytest.raises(HTTPException):
            await endpoint(user={"id": "user-1"})
        assert captured == []

    @pytest.mark.asyncio
    async def test_unexpected_error_is_captured(self, captured):
        @sentry_utils.sentry_track_endpoint("save_verification_session")
        async def endpoint(user=None):
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            await endpoint(user={"id": "user-1"})
        assert captured == [("RuntimeError", "save_verification_session")]


class TestTrackQuoteFailures:
    def test_groups_reasons_into_one_message(self, monkeypatch):
        messages = []
        monkeypatch.setattr(sentry_utils.sentry_sdk, "capture_message", lambda message, level: messages.append(message))

        request = ServiceRequest(id="request-1", company_name="Acme", city="Midland", state="TX",
                                 container_size="4YD", frequency="1x/week")
        failed = [
            Quote(id=f"quote-{i}", service_request=request, pricing_source="Failed", status="failed",
                  failure_reason="Cannot determine region for Midland, TX")
            for i in range(2)
        ]

        sentry_utils.track_quote_failures(failed, "session-1")
        sentry_utils.track_quote_failures([], "session-1")

        assert messages == ["2 quotes failed in session session-1"]
