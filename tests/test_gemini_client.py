"""Tests for design2code.integrations.gemini_client."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from design2code import config
from design2code.errors import (
    AuthError,
    EmptyResponseError,
    FetchError,
    RateLimitError,
    SafetyBlockError,
    TruncationError,
    ValidationError,
)
from design2code.integrations.gemini_client import GeminiClient, extract_candidate_text


def _candidate(text="const A = 1;", finish_reason="STOP"):
    return {
        "candidates": [{"content": {"parts": [{"text": text}]}, "finishReason": finish_reason}],
        "usageMetadata": {"promptTokenCount": 10, "candidatesTokenCount": 5},
    }


def _response(status_code=200, payload=None, text="", headers=None):
    resp = MagicMock()
    resp.status_code = status_code
    resp.json.return_value = payload if payload is not None else {}
    resp.text = text
    resp.headers = headers or {}
    return resp


@pytest.fixture
def client():
    return GeminiClient(api_key="test-gemini-key", model="gemini-test")


# ---------------------------------------------------------------------------
# Response parsing
# ---------------------------------------------------------------------------


class TestExtractCandidateText:

    def test_text(self):
        assert extract_candidate_text(_candidate("hello")) == "hello"

    def test_joins_parts(self):
        data = {"candidates": [{"content": {"parts": [{"text": "a"}, {"text": "b"}]}}]}
        assert extract_candidate_text(data) == "ab"

    def test_prompt_blocked(self):
        with pytest.raises(SafetyBlockError):
            extract_candidate_text({"promptFeedback": {"blockReason": "SAFETY"}})

    def test_safety_finish(self):
        with pytest.raises(SafetyBlockError):
            extract_candidate_text(_candidate("", "SAFETY"))

    def test_truncated(self):
        with pytest.raises(TruncationError):
            extract_candidate_text(_candidate("const A =", "MAX_TOKENS"))

    def test_no_candidates(self):
        with pytest.raises(EmptyResponseError):
            extract_candidate_text({"candidates": []})

    def test_blank_text(self):
        with pytest.raises(EmptyResponseError):
            extract_candidate_text(_candidate("   "))


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------


class TestGeminiClient:

    def test_missing_key(self, monkeypatch):
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        monkeypatch.setattr(config, "GEMINI_API_KEY", "")
        with pytest.raises(ValidationError, match="GEMINI_API_KEY"):
            GeminiClient()

    @pytest.mark.asyncio
    async def test_generate(self, client):
        with patch.object(client, "_get_client") as mock_get_client:
            mock_http = AsyncMock()
            mock_http.post = AsyncMock(return_value=_response(payload=_candidate("export default A;")))
            mock_get_client.return_value = mock_http

            text = await client.generate("Build a button", temperature=0.3, max_output_tokens=512)

        assert text == "export default A;"
        path = mock_http.post.call_args[0][0]
        body = mock_http.post.call_args[1]["json"]
        assert path == "/models/gemini-test:generateContent"
        assert body["contents"][0]["parts"][0]["text"] == "Build a button"
        assert body["generationConfig"]["temperature"] == 0.3
        assert body["generationConfig"]["maxOutputTokens"] == 512

    @pytest.mark.asyncio
    async def test_rate_limited(self, client):
        with patch.object(client, "_get_client") as mock_get_client:
            mock_http = AsyncMock()
            mock_http.post = AsyncMock(
                return_value=_response(429, text="quota", headers={"Retry-After": "12"})
            )
            mock_get_client.return_value = mock_http

            with pytest.raises(RateLimitError) as exc:
                await client.generate("prompt")

        assert exc.value.retry_after == 12.0
        assert exc.value.retryable

    @pytest.mark.asyncio
    async def test_bad_key(self, client):
        with patch.object(client, "_get_client") as mock_get_client:
            mock_http = AsyncMock()
            mock_http.post = AsyncMock(return_value=_response(403, text="denied"))
            mock_get_client.return_value = mock_http

            with pytest.raises(AuthError):
                await client.generate("prompt")

    @pytest.mark.asyncio
    async def test_server_error_is_retryable(self, client):
        with patch.object(client, "_get_client") as mock_get_client:
            mock_http = AsyncMock()
            mock_http.post = AsyncMock(return_value=_response(503, text="unavailable"))
            mock_get_client.return_value = mock_http

            with pytest.raises(FetchError) as exc:
                await client.generate("prompt")

        assert exc.value.status == 503
        assert exc.value.retryable

    @pytest.mark.asyncio
    async def test_non_json_body(self, client):
        resp = _response(text="<html>upstream error</html>")
        resp.json.side_effect = ValueError("Expecting value")
        with patch.object(client, "_get_client") as mock_get_client:
            mock_http = AsyncMock()
            mock_http.post = AsyncMock(return_value=resp)
            mock_get_client.return_value = mock_http

            with pytest.raises(EmptyResponseError, match="non-JSON"):
                await client.generate("prompt")
