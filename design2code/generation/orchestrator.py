"""Generation orchestrator — cache, retry and strategy fallback around a
GenerationService.

    generate()                one compiled prompt → validated code
    generate_with_fallback()  walk a strategy ladder until a rung succeeds
    generate_page()           page-level prompt through the same path

Auth, validation and safety-block failures end the ladder immediately;
every other failure advances to the next rung. Only ladder exhaustion is
visible to callers, as a GenerationFailure carrying each rung's error.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple, Union

from design2code.errors import (
    AuthError,
    Design2CodeError,
    GenerationError,
    GenerationFailure,
    InvalidGeneratedCodeError,
    SafetyBlockError,
    ValidationError,
)
from design2code.generation.cache import ResponseCache, UsageCounters, prompt_hash
from design2code.generation.code_validator import enhance_code, validate_code
from design2code.generation.retry import RetryPolicy, Sleep, retry_async
from design2code.models import GenerationRequest, GenerationResult, PromptSpec, PromptStrategy
from design2code.prompts.compiler import PAGE_LADDER, compile_component_prompt, compile_page_prompt
from design2code.prompts.token_budget import estimate_tokens
from design2code.schemas import GenerationParams, StrategyRung, coerce_ladder, coerce_options

logger = logging.getLogger(__name__)

TERMINAL_ERRORS: Tuple[type, ...] = (AuthError, ValidationError, SafetyBlockError)

DEFAULT_STRATEGY_LADDER: Tuple[StrategyRung, ...] = (
    StrategyRung(strategy=PromptStrategy.DETAILED, token_budget=3000, temperature=0.5),
    StrategyRung(strategy=PromptStrategy.VISUAL_SIMILARITY, token_budget=2000, temperature=0.4),
    StrategyRung(strategy=PromptStrategy.MINIMAL, token_budget=800, temperature=0.3),
    StrategyRung(strategy=PromptStrategy.FALLBACK, token_budget=300, temperature=0.2),
)

Metadata = Dict[str, Any]


class GenerationService(Protocol):
    """Text-in / text-out code generation backend."""

    async def generate(
        self,
        prompt: str,
        *,
        temperature: float,
        max_output_tokens: int,
    ) -> str:
        ...


class GenerationOrchestrator:
    """Dispatches compiled prompts with caching, retries and fallback.

    Args:
        service: GenerationService implementation (e.g. GeminiClient).
        cache: Shared ResponseCache; a private one is created if omitted.
        policy: Retry policy for transient failures.
        counters: Shared UsageCounters.
        sleep: Backoff sleep (injectable for tests).
    """

    def __init__(
        self,
        service: GenerationService,
        cache: Optional[ResponseCache] = None,
        policy: Optional[RetryPolicy] = None,
        counters: Optional[UsageCounters] = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self.service = service
        self.cache = cache if cache is not None else ResponseCache()
        self.policy = policy or RetryPolicy()
        self.counters = counters if counters is not None else UsageCounters()
        self._sleep = sleep

    # ------------------------------------------------------------------
    # Single dispatch
    # ------------------------------------------------------------------

    def _finish(self, raw: str, metadata: Optional[Metadata]) -> str:
        code = validate_code(raw)
        return enhance_code(code, metadata) if metadata else code

    async def generate(
        self,
        prompt_spec: PromptSpec,
        params: Union[GenerationParams, dict, None] = None,
        *,
        metadata: Optional[Metadata] = None,
        component_id: Optional[str] = None,
    ) -> GenerationResult:
        """Dispatch one compiled prompt and return validated code.

        A cache hit skips the service entirely. A cached response that no
        longer validates is evicted and the prompt is dispatched fresh.
        """
        params = coerce_options(GenerationParams, params)
        component_id = component_id or (metadata or {}).get("id") or "component"
        request = GenerationRequest(
            component_id=component_id,
            strategy=prompt_spec.strategy,
            temperature=params.temperature,
            max_output_tokens=params.max_output_tokens,
            prompt_hash=prompt_hash(prompt_spec.text),
        )

        cached = self.cache.get(prompt_spec.text)
        if cached is not None:
            try:
                code = self._finish(cached, metadata)
            except InvalidGeneratedCodeError:
                logger.warning("generate: evicting invalid cached response %s", request.prompt_hash[:12])
                self.cache.evict(prompt_spec.text)
            else:
                self.counters.record(cache_hits=1)
                logger.debug("generate: cache hit %s for %s", request.prompt_hash[:12], component_id)
                return GenerationResult(
                    code=code,
                    strategy=prompt_spec.strategy,
                    component_id=component_id,
                    from_cache=True,
                    attempts=0,
                )
        self.counters.record(cache_misses=1)

        attempts = 0

        async def dispatch() -> str:
            nonlocal attempts
            attempts += 1
            self.counters.record(calls=1, prompt_tokens=prompt_spec.estimated_tokens)
            try:
                return await self.service.generate(
                    prompt_spec.text,
                    temperature=request.temperature,
                    max_output_tokens=request.max_output_tokens,
                )
            except Design2CodeError:
                raise
            except Exception as e:
                raise GenerationError(
                    f"Generation service failed: {type(e).__name__}: {e}"
                ) from e

        logger.info(
            "generate: %s strategy=%s tokens=%d temperature=%.2f hash=%s",
            component_id, request.strategy.value, prompt_spec.estimated_tokens,
            request.temperature, request.prompt_hash[:12],
        )
        try:
            raw = await retry_async(
                dispatch, self.policy, sleep=self._sleep, caller=f"generate {component_id}",
            )
            self.counters.record(output_tokens=estimate_tokens(raw))
            code = self._finish(raw, metadata)
        except Design2CodeError:
            self.counters.record(failures=1)
            raise

        self.cache.put(prompt_spec.text, raw)
        return GenerationResult(
            code=code,
            strategy=prompt_spec.strategy,
            component_id=component_id,
            attempts=attempts,
        )

    # ------------------------------------------------------------------
    # Strategy ladder
    # ------------------------------------------------------------------

    async def generate_with_fallback(
        self,
        metadata: Metadata,
        ladder: Optional[Sequence[Union[StrategyRung, dict]]] = None,
        *,
        siblings: Optional[Sequence[Metadata]] = None,
        timeout: Optional[float] = None,
        strict_budget: bool = False,
    ) -> GenerationResult:
        """Try each rung in order; return the first success.

        ``timeout`` bounds the whole ladder; expiry cancels any in-flight
        dispatch or backoff sleep.
        """
        if not metadata:
            raise ValidationError("At least one component is required")
        rungs = coerce_ladder(ladder if ladder is not None else DEFAULT_STRATEGY_LADDER)
        run = self._run_ladder(metadata, rungs, list(siblings or []), strict_budget)
        if timeout is None:
            return await run
        try:
            return await asyncio.wait_for(run, timeout)
        except asyncio.TimeoutError as e:
            self.counters.record(failures=1)
            raise GenerationFailure(
                f"Generation for {metadata.get('name')!r} timed out after {timeout:.1f}s",
                hint="Wait before retrying, or reduce component complexity.",
            ) from e

    async def _run_ladder(
        self,
        metadata: Metadata,
        rungs: List[StrategyRung],
        siblings: List[Metadata],
        strict_budget: bool,
    ) -> GenerationResult:
        failures: List[Design2CodeError] = []
        for index, rung in enumerate(rungs):
            try:
                spec = compile_component_prompt(
                    metadata,
                    rung.strategy,
                    token_budget=rung.token_budget,
                    siblings=siblings,
                    strict=strict_budget,
                )
                result = await self.generate(
                    spec,
                    GenerationParams(
                        strategy=rung.strategy,
                        temperature=rung.temperature,
                        max_output_tokens=rung.max_output_tokens,
                    ),
                    metadata=metadata,
                )
            except TERMINAL_ERRORS:
                raise
            except Design2CodeError as e:
                failures.append(e)
                logger.warning(
                    "generate_with_fallback: rung %d/%d (%s) failed: %s",
                    index + 1, len(rungs), rung.strategy.value, e,
                )
                continue

            result.rung_index = index
            result.errors = [f.to_dict() for f in failures]
            if index:
                logger.info(
                    "generate_with_fallback: %s succeeded on rung %d (%s)",
                    metadata.get("name"), index + 1, rung.strategy.value,
                )
            return result

        raise GenerationFailure(
            f"All {len(rungs)} generation strategies failed for {metadata.get('name')!r}",
            attempts=len(rungs),
            causes=failures,
            hint="Reduce component complexity, or wait before retrying.",
        )

    # ------------------------------------------------------------------
    # Page
    # ------------------------------------------------------------------

    async def generate_page(
        self,
        components: Sequence[Metadata],
        params: Union[GenerationParams, dict, None] = None,
    ) -> GenerationResult:
        """Generate one page component composing the given top-level sections."""
        params = coerce_options(GenerationParams, params)
        strategy = params.strategy if params.strategy in PAGE_LADDER else None
        spec = compile_page_prompt(
            components,
            strategy,
            token_budget=params.token_budget,
            strict=params.strict_budget,
        )
        run = self.generate(spec, params, component_id="page")
        if params.timeout is None:
            return await run
        try:
            return await asyncio.wait_for(run, params.timeout)
        except asyncio.TimeoutError as e:
            self.counters.record(failures=1)
            raise GenerationFailure(f"Page generation timed out after {params.timeout:.1f}s") from e
