"""Pipeline runtime settings — tunable parameters for extraction and generation.

All values read from environment variables with sensible defaults. Import
from here instead of hardcoding.

Service credentials and endpoints stay in design2code/config.py.
"""

from __future__ import annotations

import os


def _int(key: str, default: int) -> int:
    return int(os.getenv(key, str(default)))


def _float(key: str, default: float) -> float:
    return float(os.getenv(key, str(default)))


def _str(key: str, default: str) -> str:
    return os.getenv(key, default)


# =====================================================================
# HTTP Clients (Figma API, Gemini API)
# =====================================================================

FIGMA_HTTP_TIMEOUT = _float("FIGMA_HTTP_TIMEOUT", 30.0)
GEMINI_HTTP_TIMEOUT = _float("GEMINI_HTTP_TIMEOUT", 60.0)

# Max node ids per image-render request
FIGMA_IMAGE_MAX_NODES = _int("FIGMA_IMAGE_MAX_NODES", 50)


# =====================================================================
# Retry / Backoff
# =====================================================================

# Figma fetches: 5xx, 429, timeouts
FIGMA_MAX_RETRIES = _int("FIGMA_MAX_RETRIES", 3)
FIGMA_RETRY_BASE_DELAY = _float("FIGMA_RETRY_BASE_DELAY", 1.0)

# Generation calls: delay = min(base * factor ** attempt, cap)
GENERATION_MAX_RETRIES = _int("GENERATION_MAX_RETRIES", 3)
GENERATION_RETRY_BASE_DELAY = _float("GENERATION_RETRY_BASE_DELAY", 1.0)
GENERATION_RETRY_FACTOR = _float("GENERATION_RETRY_FACTOR", 2.0)
GENERATION_RETRY_MAX_DELAY = _float("GENERATION_RETRY_MAX_DELAY", 10.0)


# =====================================================================
# Response Cache
# =====================================================================

RESPONSE_CACHE_CAPACITY = _int("RESPONSE_CACHE_CAPACITY", 50)
RESPONSE_CACHE_TTL_SECONDS = _float("RESPONSE_CACHE_TTL_SECONDS", 300.0)


# =====================================================================
# Token Budgets
# =====================================================================

# Per-component budget for simplified metadata before prompt compilation
METADATA_TOKEN_BUDGET = _int("METADATA_TOKEN_BUDGET", 800)

# Default generation parameters
GENERATION_TEMPERATURE = _float("GENERATION_TEMPERATURE", 0.5)
GENERATION_MAX_OUTPUT_TOKENS = _int("GENERATION_MAX_OUTPUT_TOKENS", 4000)

# Page prompts above this many components use the one-line-per-component form
PAGE_COMPRESSION_THRESHOLD = _int("PAGE_COMPRESSION_THRESHOLD", 8)
PAGE_PROMPT_TOKEN_BUDGET = _int("PAGE_PROMPT_TOKEN_BUDGET", 4000)


# =====================================================================
# Batch Extraction
# =====================================================================

BATCH_SIZE = _int("BATCH_SIZE", 10)
BATCH_MAX_COMPONENTS = _int("BATCH_MAX_COMPONENTS", 100)

# Pause between chunks (seconds) to avoid saturating the upstream service
BATCH_CHUNK_PAUSE = _float("BATCH_CHUNK_PAUSE", 0.1)

# Token budget hint handed to each batch item's simplification
BATCH_ITEM_TOKEN_BUDGET = _int("BATCH_ITEM_TOKEN_BUDGET", 800)


# =====================================================================
# Code Generation Target
# =====================================================================

# Baseline module import prepended when generated code omits it
CODE_BASELINE_IMPORT = _str("CODE_BASELINE_IMPORT", "import React from 'react';")
