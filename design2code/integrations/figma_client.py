"""Figma REST API client for the design-to-code pipeline.

Fetches file documents, specific node trees and rendered node previews
using Personal Access Token (PAT) authentication. Transient failures (5xx,
429, timeouts) are retried with the shared backoff policy.

Environment:
    FIGMA_TOKEN — Figma Personal Access Token (required)

Usage:
    client = FigmaClient()
    file = await client.get_file("6kGd851qaAX4TiL44vpIrO", depth=3)
    images = await client.get_node_images("6kGd851qaAX4TiL44vpIrO", ["16650:539"])
"""

import asyncio
import logging
import os
import re
from typing import Any, Dict, List, Optional

import httpx

from design2code import config, settings
from design2code.errors import (
    Design2CodeError,
    FetchError,
    ValidationError,
    classify_http_status,
    parse_retry_after,
)
from design2code.generation.retry import RetryPolicy, Sleep, retry_async

logger = logging.getLogger(__name__)

_FILE_URL_RE = re.compile(r"figma\.com/(?:file|design|proto|board)/([A-Za-z0-9_-]+)")
_FILE_KEY_RE = re.compile(r"^[A-Za-z0-9_-]+$")
MIN_TOKEN_LENGTH = 10


def extract_file_key(url_or_key: str) -> str:
    """Accept a Figma file URL or a bare file key; return the key.

    'https://www.figma.com/design/6kGd851qaAX4TiL44vpIrO/App?node-id=1-2' → '6kGd851qaAX4TiL44vpIrO'
    """
    if not url_or_key or not isinstance(url_or_key, str):
        raise ValidationError("File key is required and must be a string")
    value = url_or_key.strip()
    match = _FILE_URL_RE.search(value)
    if match:
        return match.group(1)
    if not _FILE_KEY_RE.match(value):
        raise ValidationError(f"Invalid Figma file key format: {value[:60]!r}")
    return value


def validate_token(token: Optional[str]) -> str:
    if not token or not isinstance(token, str):
        raise ValidationError(
            "Figma token not configured. Set FIGMA_TOKEN environment variable "
            "or pass token= to FigmaClient()."
        )
    if len(token) < MIN_TOKEN_LENGTH:
        raise ValidationError("Figma token appears to be too short")
    return token


class FigmaClient:
    """Async Figma REST API client.

    Args:
        token: Figma PAT. Falls back to FIGMA_TOKEN env var.
        timeout: HTTP request timeout in seconds.
        retry_policy: Backoff for transient failures.
        sleep: Backoff sleep (injectable for tests).
    """

    def __init__(
        self,
        token: Optional[str] = None,
        timeout: float = settings.FIGMA_HTTP_TIMEOUT,
        retry_policy: Optional[RetryPolicy] = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self._token = validate_token(token or os.getenv("FIGMA_TOKEN", config.FIGMA_TOKEN))
        self._client: Optional[httpx.AsyncClient] = None
        self._timeout = timeout
        self._retry_policy = retry_policy or RetryPolicy(
            max_retries=settings.FIGMA_MAX_RETRIES,
            base_delay=settings.FIGMA_RETRY_BASE_DELAY,
        )
        self._sleep = sleep

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=config.FIGMA_API_BASE,
                headers={"X-FIGMA-TOKEN": self._token},
                timeout=self._timeout,
                limits=httpx.Limits(max_connections=5, max_keepalive_connections=3),
            )
        return self._client

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def _get_once(self, path: str, params: Optional[Dict] = None) -> Dict[str, Any]:
        client = await self._get_client()
        try:
            resp = await client.get(path, params=params)
        except httpx.TimeoutException as e:
            raise FetchError(f"Figma API timeout: {path}") from e
        except httpx.TransportError as e:
            raise FetchError(f"Figma API connection error: {path}") from e

        if resp.status_code != 200:
            raise classify_http_status(
                resp.status_code,
                f"Figma API error {resp.status_code} for {path}: {resp.text[:200]}",
                retry_after=parse_retry_after(resp.headers.get("Retry-After")),
            )
        try:
            return resp.json()
        except ValueError as e:
            raise FetchError(
                f"Figma API returned a non-JSON body for {path}: {resp.text[:200]!r}",
                status=resp.status_code,
            ) from e

    async def _get(self, path: str, params: Optional[Dict] = None) -> Dict[str, Any]:
        """GET with retries on transient failures."""
        return await retry_async(
            lambda: self._get_once(path, params),
            self._retry_policy,
            sleep=self._sleep,
            caller=f"figma GET {path}",
            wrap_exhausted=False,
        )

    # ------------------------------------------------------------------
    # Core API methods
    # ------------------------------------------------------------------

    async def get_file(
        self,
        file_key: str,
        depth: Optional[int] = None,
        include_geometry: bool = False,
    ) -> Dict[str, Any]:
        """Fetch a whole file document.

        GET /v1/files/:key?depth=...&geometry=paths
        """
        file_key = extract_file_key(file_key)
        params: Dict[str, str] = {}
        if depth is not None:
            params["depth"] = str(depth)
        if include_geometry:
            params["geometry"] = "paths"

        data = await self._get(f"/v1/files/{file_key}", params=params or None)
        if not isinstance(data.get("document"), dict):
            raise FetchError(f"Figma file {file_key} response is missing document data")
        logger.info(
            f"get_file: file={file_key}, name={data.get('name')!r}, version={data.get('version')}"
        )
        return data

    async def get_file_nodes(
        self,
        file_key: str,
        node_ids: List[str],
    ) -> Dict[str, Any]:
        """Fetch specific nodes from a Figma file.

        GET /v1/files/:key/nodes?ids=...
        """
        file_key = extract_file_key(file_key)
        if not node_ids:
            raise ValidationError("Node IDs are required and must be a non-empty list")
        data = await self._get(f"/v1/files/{file_key}/nodes", params={"ids": ",".join(node_ids)})
        logger.info(
            f"get_file_nodes: file={file_key}, requested={len(node_ids)}, "
            f"returned={len(data.get('nodes') or {})}"
        )
        return data

    async def get_node_images(
        self,
        file_key: str,
        node_ids: List[str],
        fmt: str = "png",
        scale: int = 2,
        max_nodes: int = settings.FIGMA_IMAGE_MAX_NODES,
    ) -> Dict[str, Optional[str]]:
        """Render node previews via Figma's image export API.

        GET /v1/images/:key?ids=...&format=png&scale=2

        Only the first ``max_nodes`` ids are requested. Nodes Figma could
        not render map to None.
        """
        file_key = extract_file_key(file_key)
        if not node_ids:
            raise ValidationError("Node IDs are required and must be a non-empty list")

        limited = list(node_ids[:max_nodes])
        if len(node_ids) > max_nodes:
            logger.warning(
                f"get_node_images: limited request to {max_nodes} nodes (requested {len(node_ids)})"
            )

        data = await self._get(
            f"/v1/images/{file_key}",
            params={"ids": ",".join(limited), "format": fmt, "scale": str(scale)},
        )
        if data.get("err"):
            raise FetchError(f"Figma image render error: {data['err']}")

        images = data.get("images") or {}
        failed = [node_id for node_id, url in images.items() if not url]
        if failed:
            logger.warning(f"get_node_images: failed to render nodes: {', '.join(failed)}")
        logger.info(
            f"get_node_images: file={file_key}, requested={len(limited)}, "
            f"rendered={len(images) - len(failed)}"
        )
        return images

    async def get_image_url(self, file_key: str, node_id: str) -> Optional[str]:
        """Preview URL for one node; None when it cannot be rendered."""
        try:
            images = await self.get_node_images(file_key, [node_id])
        except Design2CodeError as e:
            logger.warning(f"get_image_url: failed for {node_id}: {e}")
            return None
        return images.get(node_id)
