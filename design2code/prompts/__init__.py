"""Prompt stage: token budgeting, page analysis and prompt compilation."""

from design2code.prompts.compiler import compile_component_prompt, compile_page_prompt
from design2code.prompts.page_structure import (
    PageLayout,
    PageStructure,
    analyze_visual_relationships,
    extract_page_structure,
)
from design2code.prompts.token_budget import (
    METADATA_DEGRADATION_STEPS,
    PROMPT_SECTION_DROP_ORDER,
    estimate_tokens,
    fit_prompt_document,
    optimize_metadata,
    optimize_with_report,
    serialize_metadata,
)

__all__ = [
    "METADATA_DEGRADATION_STEPS",
    "PROMPT_SECTION_DROP_ORDER",
    "PageLayout",
    "PageStructure",
    "analyze_visual_relationships",
    "compile_component_prompt",
    "compile_page_prompt",
    "estimate_tokens",
    "extract_page_structure",
    "fit_prompt_document",
    "optimize_metadata",
    "optimize_with_report",
    "serialize_metadata",
]
