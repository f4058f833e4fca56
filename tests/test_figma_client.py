"""Tests for design2code.integrations.figma_client."""

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from design2code import config
from design2code.errors import (
    AuthError,
    FetchError,
    NotFoundError,
    RateLimitError,
    ValidationError,
)
from design2code.generation.retry import RetryPolicy
from design2code.integrations.figma_client import FigmaClient, extract_file_key, validate_token

FILE_KEY = "6kGd851qaAX4TiL44vpIrO"


class RecordingSleep:

    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


def _response(status_code=200, payload=None, text="", headers=None):
    resp = MagicMock()
    resp.status_code = status_code
    resp.json.return_value = payload if payload is not None else {}
    resp.text = text
    resp.headers = headers or {}
    return resp


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def sleep():
    return RecordingSleep()


@pytest.fixture
def client(sleep):
    """FigmaClient with a test token and a recording backoff sleep."""
    return FigmaClient(token="test-figma-token-123", sleep=sleep)


@pytest.fixture
def sample_images_response():
    return {"err": None, "images": {"1:1": "https://figma-alpha.s3/1.png", "1:2": None}}


# ---------------------------------------------------------------------------
# Input validation
# ---------------------------------------------------------------------------


class TestFileKey:

    @pytest.mark.parametrize("value", [
        f"https://www.figma.com/design/{FILE_KEY}/App?node-id=1-2",
        f"https://www.figma.com/file/{FILE_KEY}/App",
        f"  {FILE_KEY}  ",
    ])
    def test_extract(self, value):
        assert extract_file_key(value) == FILE_KEY

    @pytest.mark.parametrize("value", ["", "not a key!", None])
    def test_invalid(self, value):
        with pytest.raises(ValidationError):
            extract_file_key(value)


class TestToken:

    def test_too_short(self):
        with pytest.raises(ValidationError):
            validate_token("abc")

    def test_missing_token(self, monkeypatch):
        monkeypatch.delenv("FIGMA_TOKEN", raising=False)
        monkeypatch.setattr(config, "FIGMA_TOKEN", "")
        with pytest.raises(ValidationError, match="FIGMA_TOKEN"):
            FigmaClient()

    def test_env_token(self, monkeypatch):
        monkeypatch.setenv("FIGMA_TOKEN", "env-token-0123456789")
        assert FigmaClient()._token == "env-token-0123456789"


# ---------------------------------------------------------------------------
# get_file / get_file_nodes
# ---------------------------------------------------------------------------


class TestGetFile:

    @pytest.mark.asyncio
    async def test_success(self, client, page_document):
        mock_resp = _response(payload=page_document)

        with patch.object(client, "_get_client") as mock_get_client:
            mock_http = AsyncMock()
            mock_http.get = AsyncMock(return_value=mock_resp)
            mock_get_client.return_value = mock_http

            data = await client.get_file(FILE_KEY, depth=3)

        assert data["name"] == "Design System"
        path = mock_http.get.call_args[0][0]
        assert path == f"/v1/files/{FILE_KEY}"
        assert mock_http.get.call_args[1]["params"] == {"depth": "3"}

    @pytest.mark.asyncio
    async def test_missing_document(self, client):
        with patch.object(client, "_get_client") as mock_get_client:
            mock_http = AsyncMock()
            mock_http.get = AsyncMock(return_value=_response(payload={"name": "x"}))
            mock_get_client.return_value = mock_http

            with pytest.raises(FetchError, match="missing document"):
                await client.get_file(FILE_KEY)

    @pytest.mark.asyncio
    async def test_non_json_body_not_retried(self, client, sleep):
        resp = _response(text="<html>maintenance</html>")
        resp.json.side_effect = ValueError("Expecting value")
        with patch.object(client, "_get_client") as mock_get_client:
            mock_http = AsyncMock()
            mock_http.get = AsyncMock(return_value=resp)
            mock_get_client.return_value = mock_http

            with pytest.raises(FetchError, match="non-JSON") as exc:
                await client.get_file(FILE_KEY)

        assert exc.value.status == 200
        assert mock_http.get.await_count == 1
        assert sleep.delays == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status, error", [(401, AuthError), (403, AuthError), (404, NotFoundError)])
    async def test_client_errors_not_retried(self, client, sleep, status, error):
        with patch.object(client, "_get_client") as mock_get_client:
            mock_http = AsyncMock()
            mock_http.get = AsyncMock(return_value=_response(status, text="nope"))
            mock_get_client.return_value = mock_http

            with pytest.raises(error):
                await client.get_file(FILE_KEY)

        assert mock_http.get.await_count == 1
        assert sleep.delays == []

    @pytest.mark.asyncio
    async def test_rate_limit_honours_retry_after(self, client, sleep, page_document):
        limited = _response(429, text="Rate limited", headers={"Retry-After": "3"})
        ok = _response(payload=page_document)

        with patch.object(client, "_get_client") as mock_get_client:
            mock_http = AsyncMock()
            mock_http.get = AsyncMock(side_effect=[limited, ok])
            mock_get_client.return_value = mock_http

            data = await client.get_file(FILE_KEY)

        assert data["document"]["id"] == "0:0"
        assert sleep.delays == [3.0]

    @pytest.mark.asyncio
    async def test_rate_limit_exhausted(self, sleep):
        client = FigmaClient(token="test-figma-token-123", retry_policy=RetryPolicy(max_retries=1), sleep=sleep)
        with patch.object(client, "_get_client") as mock_get_client:
            mock_http = AsyncMock()
            mock_http.get = AsyncMock(return_value=_response(429, text="Rate limited"))
            mock_get_client.return_value = mock_http

            with pytest.raises(RateLimitError):
                await client.get_file(FILE_KEY)

        assert mock_http.get.await_count == 2

    @pytest.mark.asyncio
    async def test_server_error_retried_then_raised(self, client, sleep):
        with patch.object(client, "_get_client") as mock_get_client:
            mock_http = AsyncMock()
            mock_http.get = AsyncMock(return_value=_response(502, text="Bad gateway"))
            mock_get_client.return_value = mock_http

            with pytest.raises(FetchError) as exc:
                await client.get_file(FILE_KEY)

        assert exc.value.status == 502
        assert mock_http.get.await_count == 4
        assert sleep.delays == sorted(sleep.delays)

    @pytest.mark.asyncio
    async def test_timeout_maps_to_fetch_error(self):
        client = FigmaClient(token="test-figma-token-123", retry_policy=RetryPolicy(max_retries=0))
        with patch.object(client, "_get_client") as mock_get_client:
            mock_http = AsyncMock()
            mock_http.get = AsyncMock(side_effect=httpx.ReadTimeout("slow"))
            mock_get_client.return_value = mock_http

            with pytest.raises(FetchError, match="timeout"):
                await client.get_file(FILE_KEY)

    @pytest.mark.asyncio
    async def test_get_file_nodes(self, client):
        payload = {"nodes": {"1:1": {"document": {"id": "1:1"}}}}
        with patch.object(client, "_get_client") as mock_get_client:
            mock_http = AsyncMock()
            mock_http.get = AsyncMock(return_value=_response(payload=payload))
            mock_get_client.return_value = mock_http

            data = await client.get_file_nodes(FILE_KEY, ["1:1", "1:2"])

        assert data == payload
        assert mock_http.get.call_args[1]["params"] == {"ids": "1:1,1:2"}

    @pytest.mark.asyncio
    async def test_get_file_nodes_requires_ids(self, client):
        with pytest.raises(ValidationError):
            await client.get_file_nodes(FILE_KEY, [])


# ---------------------------------------------------------------------------
# Images
# ---------------------------------------------------------------------------


class TestNodeImages:

    @pytest.mark.asyncio
    async def test_images(self, client, sample_images_response):
        with patch.object(client, "_get_client") as mock_get_client:
            mock_http = AsyncMock()
            mock_http.get = AsyncMock(return_value=_response(payload=sample_images_response))
            mock_get_client.return_value = mock_http

            images = await client.get_node_images(FILE_KEY, ["1:1", "1:2"])

        assert images["1:1"].endswith("1.png")
        assert images["1:2"] is None
        params = mock_http.get.call_args[1]["params"]
        assert params["format"] == "png"
        assert params["scale"] == "2"

    @pytest.mark.asyncio
    async def test_request_limited_to_max_nodes(self, client):
        with patch.object(client, "_get_client") as mock_get_client:
            mock_http = AsyncMock()
            mock_http.get = AsyncMock(return_value=_response(payload={"images": {}}))
            mock_get_client.return_value = mock_http

            await client.get_node_images(FILE_KEY, [f"1:{i}" for i in range(10)], max_nodes=3)

        assert mock_http.get.call_args[1]["params"]["ids"] == "1:0,1:1,1:2"

    @pytest.mark.asyncio
    async def test_render_error(self, client):
        with patch.object(client, "_get_client") as mock_get_client:
            mock_http = AsyncMock()
            mock_http.get = AsyncMock(return_value=_response(payload={"err": "render failed"}))
            mock_get_client.return_value = mock_http

            with pytest.raises(FetchError, match="render failed"):
                await client.get_node_images(FILE_KEY, ["1:1"])

    @pytest.mark.asyncio
    async def test_image_url_swallows_errors(self, client):
        with patch.object(client, "_get_client") as mock_get_client:
            mock_http = AsyncMock()
            mock_http.get = AsyncMock(return_value=_response(404, text="Not found"))
            mock_get_client.return_value = mock_http

            assert await client.get_image_url(FILE_KEY, "1:1") is None
