"""Token estimation and budget-driven degradation.

Two ladders shrink generation input:

- METADATA_DEGRADATION_STEPS work on simplified metadata dicts. Each step
  is a pure function returning a new dict that is never larger than its
  input. Steps run in order until the serialized metadata fits.
- PROMPT_SECTION_DROP_ORDER works on compiled PromptDocuments, removing
  optional sections before the prompt is rendered.
"""

from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Tuple

from design2code.prompts.builder import PromptDocument

logger = logging.getLogger(__name__)

CHARS_PER_TOKEN = 3.5
STRUCTURAL_OVERHEAD = 1.1


def estimate_tokens(text: str) -> int:
    """ceil(len / 3.5) plus 10% structural overhead; 0 for empty text."""
    if not text:
        return 0
    return math.ceil(math.ceil(len(text) / CHARS_PER_TOKEN) * STRUCTURAL_OVERHEAD)


def serialize_metadata(metadata: Any) -> str:
    return json.dumps(metadata, separators=(",", ":"), ensure_ascii=False, default=str)


def estimate_metadata_tokens(metadata: Any) -> int:
    return estimate_tokens(serialize_metadata(metadata))


# ---------------------------------------------------------------------------
# Metadata ladder
# ---------------------------------------------------------------------------

Metadata = Dict[str, Any]


def _trim_text_samples(m: Metadata) -> Metadata:
    if len(m.get("all_text_content") or []) <= 1:
        return m
    return {**m, "all_text_content": m["all_text_content"][:1]}


def _truncate_child_depth(m: Metadata) -> Metadata:
    children = m.get("children")
    if not children:
        return m
    return {
        **m,
        "children": [{k: v for k, v in c.items() if k != "children"} for c in children],
    }


def _drop_nonessential_effects(m: Metadata) -> Metadata:
    if "effects" not in m or m.get("semantic_type") in ("button", "card"):
        return m
    return {k: v for k, v in m.items() if k != "effects"}


def _single_paint(m: Metadata) -> Metadata:
    updated = dict(m)
    for key in ("fills", "strokes"):
        if len(updated.get(key) or []) > 1:
            updated[key] = updated[key][:1]
    return updated


_NON_ESSENTIAL_KEYS = frozenset({"constraints", "interactions", "export_settings"})


def _drop_nonessential_fields(m: Metadata) -> Metadata:
    return {k: v for k, v in m.items() if k not in _NON_ESSENTIAL_KEYS}


def _cap_children(m: Metadata) -> Metadata:
    if len(m.get("children") or []) <= 2:
        return m
    return {**m, "children": m["children"][:2]}


def _drop_children(m: Metadata) -> Metadata:
    if "children" not in m:
        return m
    return {k: v for k, v in m.items() if k != "children"}


METADATA_DEGRADATION_STEPS: Tuple[Tuple[str, Callable[[Metadata], Metadata]], ...] = (
    ("trim_text_samples", _trim_text_samples),
    ("truncate_child_depth", _truncate_child_depth),
    ("drop_nonessential_effects", _drop_nonessential_effects),
    ("single_paint", _single_paint),
    ("drop_nonessential_fields", _drop_nonessential_fields),
    ("cap_children", _cap_children),
    ("drop_children", _drop_children),
)


@dataclass(frozen=True)
class OptimizationReport:
    metadata: Metadata
    tokens: int
    original_tokens: int
    applied_steps: Tuple[str, ...]
    within_budget: bool

    @property
    def exhausted(self) -> bool:
        return len(self.applied_steps) == len(METADATA_DEGRADATION_STEPS)


def apply_steps(metadata: Metadata, count: int) -> Metadata:
    """Apply the first ``count`` ladder steps to ``metadata``."""
    result = metadata
    for _, step in METADATA_DEGRADATION_STEPS[:count]:
        result = step(result)
    return result


def optimize_with_report(metadata: Metadata, max_tokens: int) -> OptimizationReport:
    original = estimate_metadata_tokens(metadata)
    if original <= max_tokens:
        return OptimizationReport(metadata, original, original, (), True)

    current = metadata
    tokens = original
    applied: List[str] = []
    for name, step in METADATA_DEGRADATION_STEPS:
        current = step(current)
        applied.append(name)
        tokens = estimate_metadata_tokens(current)
        if tokens <= max_tokens:
            break

    within = tokens <= max_tokens
    logger.info(
        "optimize_metadata: %d -> %d tokens (budget %d, steps=%s%s)",
        original, tokens, max_tokens, ",".join(applied),
        "" if within else ", exhausted",
    )
    return OptimizationReport(current, tokens, original, tuple(applied), within)


def optimize_metadata(metadata: Metadata, max_tokens: int = 1000) -> Metadata:
    """Smallest ladder prefix that fits ``max_tokens`` (or the fully degraded copy)."""
    return optimize_with_report(metadata, max_tokens).metadata


# ---------------------------------------------------------------------------
# Prompt ladder
# ---------------------------------------------------------------------------

PROMPT_SECTION_DROP_ORDER: Tuple[str, ...] = ("instructions", "relationships", "children", "layout")


@dataclass(frozen=True)
class FittedPrompt:
    document: PromptDocument
    text: str
    tokens: int
    dropped_sections: Tuple[str, ...]


def fit_prompt_document(document: PromptDocument, max_tokens: int) -> FittedPrompt:
    """Drop optional sections in PROMPT_SECTION_DROP_ORDER until the render fits.

    The result may still exceed ``max_tokens`` once every droppable section
    is gone; callers compare ``tokens`` against their budget.
    """
    text = document.render()
    tokens = estimate_tokens(text)
    dropped: List[str] = []
    for name in PROMPT_SECTION_DROP_ORDER:
        if tokens <= max_tokens:
            break
        if not document.has_section(name):
            continue
        candidate = document.without(name)
        if candidate.section_names() == document.section_names():
            continue
        document = candidate
        dropped.append(name)
        text = document.render()
        tokens = estimate_tokens(text)
    return FittedPrompt(document, text, tokens, tuple(dropped))
