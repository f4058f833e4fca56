"""Service configuration constants — single source of truth for all env vars."""

import os

# Figma REST API: Personal Access Token for design file access
FIGMA_TOKEN = os.getenv("FIGMA_TOKEN", "")
FIGMA_API_BASE = os.getenv("FIGMA_API_BASE", "https://api.figma.com")

# Gemini generateContent: API key and model used for code generation
GEMINI_API_KEY = os.getenv("GEMINI_API_KEY", "")
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")
GEMINI_API_BASE = os.getenv(
    "GEMINI_API_BASE", "https://generativelanguage.googleapis.com/v1beta"
)
