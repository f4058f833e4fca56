"""Prompt compiler — simplified metadata → generation prompts.

Strategies, richest first:

    component:  DETAILED → VISUAL_SIMILARITY → MINIMAL
    page:       PAGE_DETAILED → PAGE_OPTIMIZED
    both:       FALLBACK (last resort)

Selection starts at the requested strategy and steps down one level while
the rendered prompt is over budget. At the most minimal level, optional
sections are dropped (PROMPT_SECTION_DROP_ORDER). If that still does not
fit, the FALLBACK template is used so a prompt can always be dispatched.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

from design2code import settings
from design2code.errors import TokenBudgetExceededError, ValidationError
from design2code.models import PromptSpec, PromptStrategy
from design2code.prompts import templates as T
from design2code.prompts.builder import PromptBuilder, PromptDocument
from design2code.prompts.page_structure import (
    PageStructure,
    analyze_visual_relationships,
    extract_page_structure,
)
from design2code.prompts.token_budget import estimate_tokens, fit_prompt_document

logger = logging.getLogger(__name__)

COMPONENT_LADDER: Tuple[PromptStrategy, ...] = (
    PromptStrategy.DETAILED,
    PromptStrategy.VISUAL_SIMILARITY,
    PromptStrategy.MINIMAL,
)
PAGE_LADDER: Tuple[PromptStrategy, ...] = (
    PromptStrategy.PAGE_DETAILED,
    PromptStrategy.PAGE_OPTIMIZED,
)

DEFAULT_MAX_SIBLINGS = 3
MAX_CHILD_LINES = 12
PAGE_COMPONENT_NAME = "DesignPage"

Metadata = Dict[str, Any]


# ---------------------------------------------------------------------------
# Line helpers
# ---------------------------------------------------------------------------


def _colors(paints: Optional[List[Dict[str, Any]]]) -> List[str]:
    result = []
    for paint in paints or []:
        if paint.get("color"):
            result.append(paint["color"])
        for stop in paint.get("gradient_stops") or []:
            if stop.get("color"):
                result.append(stop["color"])
        if paint.get("type") == "IMAGE":
            result.append("image")
    return result


def _has_elevation(m: Metadata) -> bool:
    return any(
        e.get("type") == "DROP_SHADOW" and e.get("visible", True)
        for e in m.get("effects") or []
    )


def _identity(m: Metadata) -> Dict[str, str]:
    return {
        "component_name": T.to_component_name(m.get("name", "")),
        "name": str(m.get("name") or "Unnamed Component"),
        "node_type": str(m.get("type") or "UNKNOWN"),
        "semantic_type": str(m.get("semantic_type") or "generic"),
        "width": T.px(m.get("width")),
        "height": T.px(m.get("height")),
        "primitive": T.mui_primitive(m.get("semantic_type")),
    }


def _requirement_lines(m: Metadata) -> List[str]:
    ident = _identity(m)
    return [line.format(**ident) for line in T.REQUIREMENT_LINES]


def _text_lines(m: Metadata) -> List[str]:
    lines = []
    if m.get("characters"):
        lines.append(f'Text content (verbatim): "{m["characters"]}"')
    samples = m.get("all_text_content") or []
    if len(samples) > 1:
        quoted = ", ".join(f'"{s.get("text")}"' for s in samples if s.get("text"))
        lines.append(f"Text elements ({m.get('text_count', len(samples))} total): {quoted}")
    return lines


def _style_lines(m: Metadata) -> List[str]:
    lines = []
    fills = _colors(m.get("fills"))
    if fills:
        lines.append(f"Background: {', '.join(fills)}")
    strokes = _colors(m.get("strokes"))
    if strokes:
        weight = T.px(m.get("stroke_weight") or 1)
        lines.append(f"Border: {weight}px solid {', '.join(strokes)}")
    if m.get("corner_radius") is not None:
        lines.append(f"Corner radius: {T.px(m['corner_radius'])}px")
    if m.get("opacity") is not None:
        lines.append(f"Opacity: {m['opacity']}")
    for effect in m.get("effects") or []:
        lines.append(f"Effect: {_effect_summary(effect)}")
    typo = m.get("typography")
    if typo:
        parts = []
        if typo.get("font_family"):
            parts.append(str(typo["font_family"]))
        if typo.get("font_size"):
            parts.append(f"{T.px(typo['font_size'])}px")
        if typo.get("font_weight"):
            parts.append(f"weight {typo['font_weight']}")
        if typo.get("line_height"):
            parts.append(f"line-height {T.px(typo['line_height'])}px")
        if typo.get("letter_spacing"):
            parts.append(f"letter-spacing {typo['letter_spacing']}")
        if typo.get("text_align"):
            parts.append(f"align {str(typo['text_align']).lower()}")
        if parts:
            lines.append(f"Typography: {', '.join(parts)}")
    if m.get("visible") is False:
        lines.append("Hidden by default (visible: false)")
    return lines


def _effect_summary(effect: Dict[str, Any]) -> str:
    kind = str(effect.get("type", "EFFECT")).lower().replace("_", " ")
    offset = effect.get("offset") or {}
    parts = [kind]
    if offset:
        parts.append(f"offset {T.px(offset.get('x'))}/{T.px(offset.get('y'))}")
    if effect.get("radius") is not None:
        parts.append(f"blur {T.px(effect['radius'])}px")
    if effect.get("color"):
        parts.append(str(effect["color"]))
    return " ".join(parts)


def _layout_lines(m: Metadata) -> List[str]:
    lines = []
    if m.get("layout_mode") and m["layout_mode"] != "NONE":
        direction = "row" if m["layout_mode"] == "HORIZONTAL" else "column"
        lines.append(f"Auto-layout: flex {direction}")
    padding = m.get("padding")
    if padding:
        lines.append(
            "Padding: {top}px {right}px {bottom}px {left}px".format(
                top=T.px(padding.get("top")), right=T.px(padding.get("right")),
                bottom=T.px(padding.get("bottom")), left=T.px(padding.get("left")),
            )
        )
    if m.get("item_spacing") is not None:
        lines.append(f"Gap between items: {T.px(m['item_spacing'])}px")
    if m.get("primary_axis_align_items"):
        lines.append(f"Main-axis alignment: {m['primary_axis_align_items']}")
    if m.get("counter_axis_align_items"):
        lines.append(f"Cross-axis alignment: {m['counter_axis_align_items']}")
    constraints = m.get("constraints") or {}
    if constraints.get("positioning_hints"):
        lines.append(f"Positioning: {'; '.join(constraints['positioning_hints'])}")
    interactions = m.get("interactions")
    if interactions:
        triggers = ", ".join(str(t).lower() for t in interactions.get("triggers") or [])
        lines.append(f"Interactions: {interactions.get('count', 0)} ({triggers or 'unspecified'})")
    return lines


def _child_lines(m: Metadata, depth: int = 0, budget: Optional[List[int]] = None) -> List[str]:
    budget = budget if budget is not None else [MAX_CHILD_LINES]
    lines = []
    for child in m.get("children") or []:
        if budget[0] <= 0:
            break
        budget[0] -= 1
        summary = (
            f"{'  ' * depth}- {child.get('name')} ({child.get('semantic_type', 'generic')}, "
            f"{T.px(child.get('width'))}x{T.px(child.get('height'))})"
        )
        colors = _colors(child.get("fills"))
        if colors:
            summary += f" bg {colors[0]}"
        if child.get("characters"):
            summary += f' "{child["characters"]}"'
        lines.append(summary)
        lines.extend(_child_lines(child, depth + 1, budget))
    return lines


def _sibling_lines(m: Metadata, siblings: Sequence[Metadata]) -> List[str]:
    lines = []
    for sibling in siblings:
        lines.append(
            f"- Sibling {sibling.get('name')} ({sibling.get('semantic_type', 'generic')}, "
            f"{T.px(sibling.get('width'))}x{T.px(sibling.get('height'))}, "
            f"x:{T.px(sibling.get('x'))} y:{T.px(sibling.get('y'))})"
        )
    names = {c.get("id"): c.get("name") for c in [m, *siblings]}
    for rel in analyze_visual_relationships([m, *siblings]):
        a = names.get(rel["component1"], rel["component1"])
        b = names.get(rel["component2"], rel["component2"])
        kind = rel["type"].replace("_", " ")
        lines.append(f"- {a} and {b}: {kind}")
    return lines


# ---------------------------------------------------------------------------
# Component strategies
# ---------------------------------------------------------------------------


def render_detailed(
    m: Metadata,
    siblings: Sequence[Metadata] = (),
    max_siblings: int = DEFAULT_MAX_SIBLINGS,
) -> PromptDocument:
    ident = _identity(m)
    summary = [
        T.SUMMARY_HEADER.format(**ident),
        f"Semantic role: {ident['semantic_type']}",
        f"Dimensions: {ident['width']}px x {ident['height']}px",
        *_text_lines(m),
    ]
    siblings = [s for s in siblings if s is not m][:max_siblings]
    return (
        PromptBuilder(PromptStrategy.DETAILED)
        .section("summary", summary, optional=False)
        .section("style", _style_lines(m), heading="## Visual style", optional=False)
        .section("layout", _layout_lines(m), heading="## Layout")
        .section("children", _child_lines(m), heading="## Children")
        .section("relationships", _sibling_lines(m, siblings) if siblings else [],
                 heading="## Page context")
        .section("instructions", T.DETAILED_INSTRUCTIONS, heading="## Instructions")
        .section("requirements", _requirement_lines(m), heading=T.REQUIREMENTS_HEADING,
                 optional=False)
        .build()
    )


def _visual_guidance(m: Metadata) -> str:
    semantic = str(m.get("semantic_type") or "generic")
    if semantic == "button":
        if _has_elevation(m):
            return T.BUTTON_GUIDANCE_CONTAINED
        if m.get("strokes"):
            return T.BUTTON_GUIDANCE_OUTLINED
        return T.BUTTON_GUIDANCE_TEXT
    return T.VISUAL_GUIDANCE.get(semantic, T.VISUAL_GUIDANCE["generic"])


def render_visual_similarity(m: Metadata) -> PromptDocument:
    ident = _identity(m)
    summary = [
        T.SUMMARY_HEADER.format(**ident),
        T.VISUAL_SIMILARITY_INTRO,
        f"Exact dimensions: {ident['width']}px x {ident['height']}px",
        *_text_lines(m),
    ]
    palette = sorted(set(_colors(m.get("fills")) + _colors(m.get("strokes"))))
    style = _style_lines(m)
    if palette:
        style.insert(0, f"Color palette: {', '.join(palette)}")
    return (
        PromptBuilder(PromptStrategy.VISUAL_SIMILARITY)
        .section("summary", summary, optional=False)
        .section("style", style, heading="## Colors, typography and effects", optional=False)
        .section("layout", _layout_lines(m), heading="## Spacing")
        .section("children", _child_lines(m), heading="## Children")
        .section("instructions", [_visual_guidance(m)], heading="## Implementation guidance")
        .section("requirements", _requirement_lines(m), heading=T.REQUIREMENTS_HEADING,
                 optional=False)
        .build()
    )


def _style_summary(m: Metadata) -> str:
    parts = []
    fills = _colors(m.get("fills"))
    if fills:
        parts.append(f"background {fills[0]}")
    strokes = _colors(m.get("strokes"))
    if strokes:
        parts.append(f"border {strokes[0]}")
    if m.get("corner_radius"):
        parts.append(f"radius {T.px(m['corner_radius'])}px")
    if _has_elevation(m):
        parts.append("shadow")
    return ", " + ", ".join(parts) if parts else ""


def render_minimal(m: Metadata) -> PromptDocument:
    ident = _identity(m)
    text = f', text "{m["characters"]}"' if m.get("characters") else ""
    summary = T.MINIMAL_SUMMARY.format(style_summary=_style_summary(m), text_summary=text, **ident)
    layout = []
    if m.get("layout_mode") and m["layout_mode"] != "NONE":
        layout.append(f"Lay out children in a flex {'row' if m['layout_mode'] == 'HORIZONTAL' else 'column'}.")
    children = m.get("children") or []
    child_line = [f"Contains: {', '.join(str(c.get('name')) for c in children)}."] if children else []
    return (
        PromptBuilder(PromptStrategy.MINIMAL)
        .section("summary", [summary], optional=False)
        .section("layout", layout)
        .section("children", child_line)
        .section("requirements", _requirement_lines(m), heading=T.REQUIREMENTS_HEADING,
                 optional=False)
        .build()
    )


def render_fallback(m: Metadata) -> str:
    ident = _identity(m)
    text_hint = f' ("{m["characters"]}")' if m.get("characters") else ""
    return T.FALLBACK_TEMPLATE.format(text_hint=text_hint, **ident)


def _render_component(
    level: PromptStrategy,
    m: Metadata,
    siblings: Sequence[Metadata],
    max_siblings: int,
) -> PromptDocument:
    if level is PromptStrategy.DETAILED:
        return render_detailed(m, siblings, max_siblings)
    if level is PromptStrategy.VISUAL_SIMILARITY:
        return render_visual_similarity(m)
    return render_minimal(m)


# ---------------------------------------------------------------------------
# Page strategies
# ---------------------------------------------------------------------------


def _page_dims(components: Sequence[Metadata]) -> Tuple[str, str]:
    right = max(float(c.get("x") or 0) + float(c.get("width") or 0) for c in components)
    bottom = max(float(c.get("y") or 0) + float(c.get("height") or 0) for c in components)
    left = min(float(c.get("x") or 0) for c in components)
    top = min(float(c.get("y") or 0) for c in components)
    return T.px(right - left), T.px(bottom - top)


def _page_summary(structure: PageStructure) -> str:
    width, height = _page_dims(structure.components)
    return T.PAGE_SUMMARY.format(
        component_name=PAGE_COMPONENT_NAME,
        count=len(structure.components),
        layout=structure.layout.value,
        width=width,
        height=height,
    )


def _page_requirements() -> List[str]:
    return [line.format(component_name=PAGE_COMPONENT_NAME) for line in T.PAGE_REQUIREMENT_LINES]


def _page_structure_lines(structure: PageStructure) -> List[str]:
    lines = [f"Layout: {structure.layout.value}"]
    for role in ("header", "hero", "sidebar", "main", "footer"):
        component = getattr(structure, role)
        if component is not None:
            lines.append(f"- {role}: {component.get('name')}")
    if structure.body:
        lines.append(f"- body: {', '.join(str(c.get('name')) for c in structure.body)}")
    return lines


def _ordered(structure: PageStructure) -> List[Metadata]:
    return sorted(structure.components, key=lambda c: (float(c.get("y") or 0), float(c.get("x") or 0)))


def render_page_detailed(structure: PageStructure) -> PromptDocument:
    component_lines: List[str] = []
    child_lines: List[str] = []
    for component in _ordered(structure):
        role = structure.role_of(component)
        ident = _identity(component)
        component_lines.append(
            f"### {role}: {ident['name']} → <{ident['primitive']}> "
            f"({ident['semantic_type']}, {ident['width']}px x {ident['height']}px, "
            f"x:{T.px(component.get('x'))} y:{T.px(component.get('y'))})"
        )
        component_lines.extend(f"  {line}" for line in _text_lines(component) + _style_lines(component))
        children = _child_lines(component, depth=1)
        if children:
            child_lines.append(f"{ident['name']}:")
            child_lines.extend(children)

    relationship_lines = []
    names = {c.get("id"): c.get("name") for c in structure.components}
    for rel in analyze_visual_relationships(structure.components):
        if rel["type"] == "overlapping":
            relationship_lines.append(
                f"- {names.get(rel['component1'])} overlaps {names.get(rel['component2'])}"
            )

    return (
        PromptBuilder(PromptStrategy.PAGE_DETAILED)
        .section("summary", [_page_summary(structure)], optional=False)
        .section("layout", _page_structure_lines(structure), heading="## Page structure")
        .section("components", component_lines, heading="## Sections", optional=False)
        .section("children", child_lines, heading="## Section contents")
        .section("relationships", relationship_lines, heading="## Overlaps")
        .section("instructions", T.PAGE_INSTRUCTIONS, heading="## Instructions")
        .section("requirements", _page_requirements(), heading=T.REQUIREMENTS_HEADING,
                 optional=False)
        .build()
    )


def render_page_optimized(structure: PageStructure) -> PromptDocument:
    lines = []
    for component in _ordered(structure):
        ident = _identity(component)
        line = (
            f"- [{structure.role_of(component)}] {ident['name']}: <{ident['primitive']}> "
            f"{ident['width']}x{ident['height']} at ({T.px(component.get('x'))},{T.px(component.get('y'))})"
        )
        colors = _colors(component.get("fills"))
        if colors:
            line += f" bg {colors[0]}"
        if component.get("characters"):
            line += f' "{component["characters"]}"'
        lines.append(line)
    return (
        PromptBuilder(PromptStrategy.PAGE_OPTIMIZED)
        .section("summary", [_page_summary(structure)], optional=False)
        .section("layout", [f"Layout: {structure.layout.value}"])
        .section("components", lines, heading="## Sections (one per line)", optional=False)
        .section("instructions", T.PAGE_INSTRUCTIONS[:1])
        .section("requirements", _page_requirements(), heading=T.REQUIREMENTS_HEADING,
                 optional=False)
        .build()
    )


def render_page_fallback(structure: PageStructure) -> str:
    names = ", ".join(str(c.get("name")) for c in _ordered(structure))
    width, height = _page_dims(structure.components)
    return (
        f"Create a React page component {PAGE_COMPONENT_NAME} ({width}px x {height}px) "
        f"with {len(structure.components)} sections stacked in order: {names}. "
        "Return only source code, keep text verbatim, match the exact sizes, and use MUI <Box>."
    )


_PAGE_RENDERERS = {
    PromptStrategy.PAGE_DETAILED: render_page_detailed,
    PromptStrategy.PAGE_OPTIMIZED: render_page_optimized,
}


# ---------------------------------------------------------------------------
# Selection
# ---------------------------------------------------------------------------


def _spec(text: str, strategy: PromptStrategy, dropped: Tuple[str, ...] = ()) -> PromptSpec:
    return PromptSpec(
        text=text,
        estimated_tokens=estimate_tokens(text),
        strategy=strategy,
        dropped_sections=dropped,
    )


def _select(
    levels: Sequence[PromptStrategy],
    render,
    fallback_text: str,
    token_budget: int,
    strict: bool,
) -> PromptSpec:
    document: Optional[PromptDocument] = None
    for level in levels:
        document = render(level)
        text = document.render()
        tokens = estimate_tokens(text)
        if tokens <= token_budget:
            return _spec(text, level)
        logger.debug("compile: %s over budget (%d > %d), stepping down", level.value, tokens, token_budget)

    if document is not None:
        fitted = fit_prompt_document(document, token_budget)
        if fitted.tokens <= token_budget:
            logger.info(
                "compile: %s fits after dropping sections %s",
                document.strategy.value, ",".join(fitted.dropped_sections),
            )
            return _spec(fitted.text, document.strategy, fitted.dropped_sections)

    spec = _spec(fallback_text, PromptStrategy.FALLBACK)
    if spec.estimated_tokens > token_budget:
        logger.warning(
            "compile: last-resort prompt still over budget (%d > %d)",
            spec.estimated_tokens, token_budget,
        )
        if strict:
            raise TokenBudgetExceededError(
                f"Prompt needs {spec.estimated_tokens} tokens, budget is {token_budget}",
                tokens=spec.estimated_tokens,
                budget=token_budget,
            )
    return spec


def compile_component_prompt(
    metadata: Metadata,
    strategy: PromptStrategy = PromptStrategy.DETAILED,
    *,
    token_budget: int = settings.PAGE_PROMPT_TOKEN_BUDGET,
    siblings: Optional[Sequence[Metadata]] = None,
    max_siblings: int = DEFAULT_MAX_SIBLINGS,
    strict: bool = False,
) -> PromptSpec:
    """Compile a single-component prompt that fits ``token_budget``."""
    if not isinstance(metadata, dict) or not metadata:
        raise ValidationError("Component metadata is required to compile a prompt")
    strategy = PromptStrategy(strategy)
    if strategy in PAGE_LADDER:
        raise ValidationError(f"{strategy.value} is a page strategy; use compile_page_prompt")

    levels = COMPONENT_LADDER[COMPONENT_LADDER.index(strategy):] if strategy in COMPONENT_LADDER else ()
    siblings = list(siblings or [])
    return _select(
        levels,
        lambda level: _render_component(level, metadata, siblings, max_siblings),
        render_fallback(metadata),
        token_budget,
        strict,
    )


def compile_page_prompt(
    components: Sequence[Metadata],
    strategy: Optional[PromptStrategy] = None,
    *,
    token_budget: int = settings.PAGE_PROMPT_TOKEN_BUDGET,
    compression_threshold: int = settings.PAGE_COMPRESSION_THRESHOLD,
    strict: bool = False,
) -> PromptSpec:
    """Compile a page prompt over top-level component metadata.

    Without an explicit strategy, pages above ``compression_threshold``
    components start at PAGE_OPTIMIZED.
    """
    components = [c for c in components or [] if isinstance(c, dict) and c]
    if not components:
        raise ValidationError("At least one component is required")
    if strategy is None:
        strategy = (
            PromptStrategy.PAGE_OPTIMIZED
            if len(components) > compression_threshold
            else PromptStrategy.PAGE_DETAILED
        )
    strategy = PromptStrategy(strategy)
    if strategy in COMPONENT_LADDER:
        raise ValidationError(f"{strategy.value} is a component strategy; use compile_component_prompt")

    structure = extract_page_structure(components)
    levels = PAGE_LADDER[PAGE_LADDER.index(strategy):] if strategy in PAGE_LADDER else ()
    return _select(
        levels,
        lambda level: _PAGE_RENDERERS[level](structure),
        render_page_fallback(structure),
        token_budget,
        strict,
    )

