"""Tests for design2code.generation.orchestrator."""

import asyncio

import pytest

from design2code.design.simplifier import simplify
from design2code.errors import (
    AuthError,
    EmptyResponseError,
    GenerationError,
    GenerationFailure,
    RateLimitError,
    SafetyBlockError,
    TruncationError,
    ValidationError,
)
from design2code.generation.cache import ResponseCache, UsageCounters
from design2code.generation.orchestrator import DEFAULT_STRATEGY_LADDER, GenerationOrchestrator
from design2code.generation.retry import NO_RETRY, RetryPolicy
from design2code.models import PromptStrategy
from design2code.prompts.compiler import compile_component_prompt
from design2code.schemas import StrategyRung

GENERATED = """```jsx
import React from 'react';
import { Button } from '@mui/material';

const PrimaryButton = () => <Button sx={{ borderRadius: '8px' }}>Submit</Button>;

export default PrimaryButton;
```"""


class FakeService:
    """Scripted GenerationService: each call consumes the next outcome;
    the last outcome repeats."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.prompts = []
        self.temperatures = []

    async def generate(self, prompt, *, temperature, max_output_tokens):
        self.prompts.append(prompt)
        self.temperatures.append(temperature)
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class SlowService:

    async def generate(self, prompt, *, temperature, max_output_tokens):
        await asyncio.sleep(10)
        return GENERATED


class FakeClock:

    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


async def _no_sleep(delay):
    return None


def _orchestrator(service, clock=None, policy=NO_RETRY):
    return GenerationOrchestrator(
        service,
        cache=ResponseCache(capacity=10, ttl_seconds=300, clock=clock or FakeClock()),
        policy=policy,
        counters=UsageCounters(),
        sleep=_no_sleep,
    )


@pytest.fixture
def metadata(button_node):
    return simplify(button_node)


# ---------------------------------------------------------------------------
# Strategy ladder
# ---------------------------------------------------------------------------


class TestGenerateWithFallback:

    @pytest.mark.asyncio
    async def test_first_rung_success(self, metadata):
        service = FakeService(GENERATED)
        result = await _orchestrator(service).generate_with_fallback(metadata)
        assert result.success
        assert result.rung_index == 0
        assert result.strategy is PromptStrategy.DETAILED
        assert result.code.startswith("import React")
        assert "```" not in result.code
        assert result.errors == []

    @pytest.mark.asyncio
    async def test_rate_limited_rungs_fall_through_to_last(self, metadata):
        service = FakeService(
            RateLimitError("429"), RateLimitError("429"), RateLimitError("429"), GENERATED,
        )
        result = await _orchestrator(service).generate_with_fallback(metadata, DEFAULT_STRATEGY_LADDER)
        assert result.rung_index == 3
        assert result.strategy is PromptStrategy.FALLBACK
        assert len(result.errors) == 3
        assert service.temperatures == [0.5, 0.4, 0.3, 0.2]

    @pytest.mark.asyncio
    async def test_retries_within_each_rung(self, metadata):
        service = FakeService(*([RateLimitError("429")] * 4), GENERATED)
        orchestrator = _orchestrator(service, policy=RetryPolicy(max_retries=3))
        result = await orchestrator.generate_with_fallback(metadata)
        assert result.rung_index == 1
        assert len(service.prompts) == 5
        assert orchestrator.counters.calls == 5

    @pytest.mark.asyncio
    async def test_truncation_and_empty_advance(self, metadata):
        service = FakeService(TruncationError("cut"), EmptyResponseError("empty"), GENERATED)
        result = await _orchestrator(service).generate_with_fallback(metadata)
        assert result.rung_index == 2
        assert [e["kind"] for e in result.errors] == ["truncated", "generation_failed"]

    @pytest.mark.asyncio
    async def test_invalid_code_advances(self, metadata):
        service = FakeService("I am sorry, I cannot do that.", GENERATED)
        result = await _orchestrator(service).generate_with_fallback(metadata)
        assert result.rung_index == 1
        assert result.errors[0]["kind"] == "invalid_generated_code"

    @pytest.mark.asyncio
    async def test_unexpected_service_error_advances(self, metadata):
        service = FakeService(ValueError("Expecting value: line 1 column 1"), GENERATED)
        result = await _orchestrator(service).generate_with_fallback(metadata)
        assert result.rung_index == 1
        assert result.errors[0]["kind"] == "generation_error"
        assert "ValueError" in result.errors[0]["message"]
        assert result.errors[0]["hint"]

    @pytest.mark.asyncio
    async def test_unexpected_service_errors_exhaust_ladder(self, metadata):
        service = FakeService(ValueError("Expecting value"))
        with pytest.raises(GenerationFailure) as exc:
            await _orchestrator(service).generate_with_fallback(metadata)
        assert all(isinstance(c, GenerationError) for c in exc.value.causes)
        assert isinstance(exc.value.causes[0].__cause__, ValueError)

    @pytest.mark.asyncio
    async def test_auth_error_ends_ladder(self, metadata):
        service = FakeService(AuthError("bad key", status=403))
        with pytest.raises(AuthError):
            await _orchestrator(service).generate_with_fallback(metadata)
        assert len(service.prompts) == 1

    @pytest.mark.asyncio
    async def test_safety_block_ends_ladder(self, metadata):
        service = FakeService(SafetyBlockError("blocked"))
        with pytest.raises(SafetyBlockError):
            await _orchestrator(service).generate_with_fallback(metadata)
        assert len(service.prompts) == 1

    @pytest.mark.asyncio
    async def test_exhausted_ladder_reports_every_rung(self, metadata):
        service = FakeService(RateLimitError("429"))
        orchestrator = _orchestrator(service)
        with pytest.raises(GenerationFailure) as exc:
            await orchestrator.generate_with_fallback(metadata)
        assert exc.value.attempts == len(DEFAULT_STRATEGY_LADDER)
        assert len(exc.value.causes) == len(DEFAULT_STRATEGY_LADDER)
        assert len(exc.value.to_dict()["causes"]) == len(DEFAULT_STRATEGY_LADDER)
        assert orchestrator.counters.failures == len(DEFAULT_STRATEGY_LADDER)

    @pytest.mark.asyncio
    async def test_custom_ladder_from_dicts(self, metadata):
        service = FakeService(GENERATED)
        ladder = [{"strategy": "minimal", "token_budget": 800, "temperature": 0.1}]
        result = await _orchestrator(service).generate_with_fallback(metadata, ladder)
        assert result.strategy in (PromptStrategy.MINIMAL, PromptStrategy.FALLBACK)
        assert service.temperatures == [0.1]

    @pytest.mark.asyncio
    async def test_empty_ladder_rejected(self, metadata):
        with pytest.raises(ValidationError):
            await _orchestrator(FakeService(GENERATED)).generate_with_fallback(metadata, [])

    @pytest.mark.asyncio
    async def test_empty_metadata_rejected(self):
        with pytest.raises(ValidationError, match="At least one component is required"):
            await _orchestrator(FakeService(GENERATED)).generate_with_fallback({})

    @pytest.mark.asyncio
    async def test_timeout_cancels(self, metadata):
        orchestrator = _orchestrator(SlowService())
        with pytest.raises(GenerationFailure, match="timed out"):
            await orchestrator.generate_with_fallback(metadata, timeout=0.05)

    @pytest.mark.asyncio
    async def test_code_is_enhanced_with_metadata(self, metadata):
        result = await _orchestrator(FakeService(GENERATED)).generate_with_fallback(metadata)
        assert "width: '120px'" in result.code
        assert "backgroundColor: '#0066FF'" in result.code


# ---------------------------------------------------------------------------
# Single dispatch + cache
# ---------------------------------------------------------------------------


class TestGenerateCache:

    @pytest.mark.asyncio
    async def test_identical_prompt_served_from_cache(self, metadata):
        service = FakeService(GENERATED)
        orchestrator = _orchestrator(service)
        first = await orchestrator.generate_with_fallback(metadata)
        second = await orchestrator.generate_with_fallback(metadata)
        assert len(service.prompts) == 1
        assert second.from_cache
        assert second.code == first.code
        assert orchestrator.counters.cache_hits == 1
        assert orchestrator.counters.cache_misses == 1

    @pytest.mark.asyncio
    async def test_expired_entry_triggers_fresh_dispatch(self, metadata):
        clock = FakeClock()
        service = FakeService(GENERATED)
        orchestrator = _orchestrator(service, clock=clock)
        await orchestrator.generate_with_fallback(metadata)
        clock.now += 10 * 60
        result = await orchestrator.generate_with_fallback(metadata)
        assert not result.from_cache
        assert len(service.prompts) == 2

    @pytest.mark.asyncio
    async def test_invalid_cached_response_is_evicted(self, metadata):
        service = FakeService(GENERATED)
        orchestrator = _orchestrator(service)
        spec = compile_component_prompt(metadata, token_budget=3000)
        orchestrator.cache.put(spec.text, "no code here")

        result = await orchestrator.generate(spec, metadata=metadata)
        assert not result.from_cache
        assert len(service.prompts) == 1
        assert orchestrator.cache.get(spec.text) == GENERATED

    @pytest.mark.asyncio
    async def test_failures_are_not_cached(self, metadata):
        service = FakeService(RateLimitError("429"), GENERATED)
        orchestrator = _orchestrator(service)
        spec = compile_component_prompt(metadata, token_budget=3000)
        with pytest.raises(GenerationFailure):
            await orchestrator.generate(spec)
        assert orchestrator.cache.get(spec.text) is None

    @pytest.mark.asyncio
    async def test_token_counters(self, metadata):
        orchestrator = _orchestrator(FakeService(GENERATED))
        spec = compile_component_prompt(metadata, token_budget=3000)
        result = await orchestrator.generate(spec, {"temperature": 0.2})
        snapshot = orchestrator.counters.snapshot()
        assert result.attempts == 1
        assert snapshot["calls"] == 1
        assert snapshot["prompt_tokens"] == spec.estimated_tokens
        assert snapshot["output_tokens"] > 0


# ---------------------------------------------------------------------------
# Page
# ---------------------------------------------------------------------------


class TestGeneratePage:

    @pytest.mark.asyncio
    async def test_page_generation(self, metadata):
        page_code = GENERATED.replace("PrimaryButton", "DesignPage")
        service = FakeService(page_code)
        sections = [
            dict(metadata, id="h", name="Header", x=0, y=0, width=1440, height=80),
            dict(metadata, id="m", name="Content", x=0, y=80, width=1440, height=900),
        ]
        result = await _orchestrator(service).generate_page(sections)
        assert result.component_id == "page"
        assert result.strategy is PromptStrategy.PAGE_DETAILED
        assert "export default DesignPage;" in result.code
        assert "DesignPage" in service.prompts[0]

    @pytest.mark.asyncio
    async def test_empty_page_rejected(self):
        with pytest.raises(ValidationError):
            await _orchestrator(FakeService(GENERATED)).generate_page([])


def test_default_ladder_shape():
    assert [r.strategy for r in DEFAULT_STRATEGY_LADDER] == [
        PromptStrategy.DETAILED,
        PromptStrategy.VISUAL_SIMILARITY,
        PromptStrategy.MINIMAL,
        PromptStrategy.FALLBACK,
    ]
    assert all(isinstance(r, StrategyRung) for r in DEFAULT_STRATEGY_LADDER)
