"""Gemini generateContent client — the code generation service.

Implements the GenerationService protocol: prompt text in, generated text
out. Transport and HTTP failures map onto the package error taxonomy;
safety blocks, truncation and empty candidates are distinct typed errors.

Environment:
    GEMINI_API_KEY — API key (required)
    GEMINI_MODEL   — model name (default gemini-2.5-flash)
"""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, Optional

import httpx

from design2code import config, settings
from design2code.errors import (
    EmptyResponseError,
    FetchError,
    SafetyBlockError,
    TruncationError,
    ValidationError,
    classify_http_status,
    parse_retry_after,
)

logger = logging.getLogger(__name__)

SAFETY_FINISH_REASONS = frozenset({"SAFETY", "PROHIBITED_CONTENT", "BLOCKLIST", "SPII"})
TRUNCATION_FINISH_REASONS = frozenset({"MAX_TOKENS"})


def extract_candidate_text(data: Dict[str, Any]) -> str:
    """Generated text from a generateContent response, or raise typed errors."""
    feedback = data.get("promptFeedback") or {}
    if feedback.get("blockReason"):
        raise SafetyBlockError(f"Prompt blocked by the generation service: {feedback['blockReason']}")

    candidates = data.get("candidates") or []
    if not candidates:
        raise EmptyResponseError("Generation service returned no candidates")

    candidate = candidates[0] or {}
    finish_reason = str(candidate.get("finishReason") or "")
    if finish_reason in SAFETY_FINISH_REASONS:
        raise SafetyBlockError(f"Generation stopped by safety filter ({finish_reason})")

    parts = (candidate.get("content") or {}).get("parts") or []
    text = "".join(p.get("text", "") for p in parts if isinstance(p, dict))

    if finish_reason in TRUNCATION_FINISH_REASONS:
        raise TruncationError(
            f"Generated output hit the max output token limit after {len(text)} chars"
        )
    if not text.strip():
        raise EmptyResponseError("Generation service returned a candidate without text")
    return text


class GeminiClient:
    """Async Gemini API client.

    Args:
        api_key: Falls back to GEMINI_API_KEY env var.
        model: Falls back to GEMINI_MODEL env var.
        timeout: HTTP request timeout in seconds.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        timeout: float = settings.GEMINI_HTTP_TIMEOUT,
    ):
        self._api_key = api_key or os.getenv("GEMINI_API_KEY", config.GEMINI_API_KEY)
        if not self._api_key:
            raise ValidationError(
                "Gemini API key not configured. Set GEMINI_API_KEY environment variable "
                "or pass api_key= to GeminiClient()."
            )
        self.model = model or os.getenv("GEMINI_MODEL", config.GEMINI_MODEL)
        self._client: Optional[httpx.AsyncClient] = None
        self._timeout = timeout

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=config.GEMINI_API_BASE,
                headers={"x-goog-api-key": self._api_key, "Content-Type": "application/json"},
                timeout=self._timeout,
            )
        return self._client

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def generate(
        self,
        prompt: str,
        *,
        temperature: float = settings.GENERATION_TEMPERATURE,
        max_output_tokens: int = settings.GENERATION_MAX_OUTPUT_TOKENS,
    ) -> str:
        path = f"/models/{self.model}:generateContent"
        body = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": temperature,
                "topK": 40,
                "topP": 0.95,
                "maxOutputTokens": max_output_tokens,
            },
        }

        client = await self._get_client()
        try:
            resp = await client.post(path, json=body)
        except httpx.TimeoutException as e:
            raise FetchError(f"Gemini API timeout: {path}") from e
        except httpx.TransportError as e:
            raise FetchError(f"Gemini API connection error: {path}") from e

        if resp.status_code != 200:
            raise classify_http_status(
                resp.status_code,
                f"Gemini API error {resp.status_code}: {resp.text[:200]}",
                retry_after=parse_retry_after(resp.headers.get("Retry-After")),
            )

        try:
            data = resp.json()
        except ValueError as e:
            raise EmptyResponseError(
                f"Gemini API returned a non-JSON body: {resp.text[:200]!r}"
            ) from e
        text = extract_candidate_text(data if isinstance(data, dict) else {})
        usage = data.get("usageMetadata") or {}
        logger.info(
            "gemini: model=%s, prompt_chars=%d, output_chars=%d, prompt_tokens=%s, output_tokens=%s",
            self.model, len(prompt), len(text),
            usage.get("promptTokenCount"), usage.get("candidatesTokenCount"),
        )
        return text
