"""Generation stage: retry policy, response cache, orchestration, code validation."""

from design2code.generation.cache import ResponseCache, UsageCounters, prompt_hash
from design2code.generation.code_validator import analyze_code, enhance_code, validate_code
from design2code.generation.orchestrator import (
    DEFAULT_STRATEGY_LADDER,
    GenerationOrchestrator,
    GenerationService,
)
from design2code.generation.retry import NO_RETRY, RetryPolicy, retry_async

__all__ = [
    "DEFAULT_STRATEGY_LADDER",
    "GenerationOrchestrator",
    "GenerationService",
    "NO_RETRY",
    "ResponseCache",
    "RetryPolicy",
    "UsageCounters",
    "analyze_code",
    "enhance_code",
    "prompt_hash",
    "retry_async",
    "validate_code",
]
