"""Metadata simplifier — bounded, semantically classified node descriptions.

simplify() turns a DesignNode subtree into a plain snake_case dict suitable
for prompt compilation:

  (a) classify a semantic type from node type + name keywords
  (b) always emit identity, geometry and primary text
  (c) emit layout / effects / typography / constraints only when their
      inclusion policy holds
  (d) recurse into at most ``max_children`` children for ``max_depth``
      levels, handing each level a quarter of the parent's token budget
  (e) strip None / empty values from the result

The output is built fresh on every call; identical input and options give
identical output.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from design2code.design.figma_utils import (
    is_visible,
    simplify_effects,
    simplify_fills,
    simplify_strokes,
)
from design2code.models import DesignNode, NodeType
from design2code.schemas import SimplifyOptions, coerce_options

logger = logging.getLogger(__name__)


class SemanticType(str, Enum):
    TEXT = "text"
    BUTTON = "button"
    NAVIGATION = "navigation"
    CARD = "card"
    INPUT = "input"
    CONTAINER = "container"
    ICON = "icon"
    IMAGE = "image"
    GENERIC = "generic"


# Ordered: first match wins
_NAME_KEYWORDS = (
    (SemanticType.TEXT, ("text", "label", "title")),
    (SemanticType.BUTTON, ("button", "btn", "cta")),
    (SemanticType.NAVIGATION, ("nav", "header", "menu", "tab")),
    (SemanticType.CARD, ("card", "item", "tile")),
    (SemanticType.INPUT, ("input", "field", "form")),
    (SemanticType.CONTAINER, ("container", "wrapper", "section")),
    (SemanticType.ICON, ("icon", "symbol")),
)

# Node types that force a semantic type at their keyword slot
_TYPE_OVERRIDES = {
    SemanticType.TEXT: NodeType.TEXT,
    SemanticType.CONTAINER: NodeType.FRAME,
    SemanticType.ICON: NodeType.VECTOR,
}

PADDING_THRESHOLD = 4
SIGNIFICANT_STROKE_OPACITY = 0.1
MAX_SAMPLED_TEXT = 5
# Child recursion stops once the quartered budget drops below this
MIN_CHILD_TOKEN_BUDGET = 50

_POSITIONING_HINTS = {
    "horizontal": {
        "LEFT": "left-aligned, fixed width",
        "RIGHT": "right-aligned, fixed width",
        "LEFT_RIGHT": "stretches horizontally",
        "CENTER": "centered horizontally",
        "SCALE": "scales horizontally",
    },
    "vertical": {
        "TOP": "top-aligned, fixed height",
        "BOTTOM": "bottom-aligned, fixed height",
        "TOP_BOTTOM": "stretches vertically",
        "CENTER": "centered vertically",
        "SCALE": "scales vertically",
    },
}


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------


def detect_semantic_type(node: DesignNode) -> SemanticType:
    name = node.name.lower()
    for semantic, keywords in _NAME_KEYWORDS:
        if node.type is _TYPE_OVERRIDES.get(semantic):
            return semantic
        if any(k in name for k in keywords):
            return semantic
    if node.type is NodeType.RECTANGLE and any(f.get("type") == "IMAGE" for f in node.fills):
        return SemanticType.IMAGE
    return SemanticType.GENERIC


# ---------------------------------------------------------------------------
# Text
# ---------------------------------------------------------------------------


def _own_text(node: DesignNode) -> str:
    if node.characters:
        return node.characters
    if node.type is NodeType.TEXT:
        return node.name
    return ""


def extract_text_content(node: DesignNode) -> str:
    """Own text, or the space-joined text of descendants."""
    own = _own_text(node)
    if own:
        return own
    parts = [extract_text_content(c) for c in node.children]
    return " ".join(p for p in parts if p.strip())


def extract_all_text_content(node: Optional[DesignNode]) -> List[Dict[str, Any]]:
    """Every text-bearing node in the subtree, document order."""
    if node is None:
        return []
    found: List[Dict[str, Any]] = []
    text = _own_text(node)
    if text.strip():
        found.append({"text": text, "node_name": node.name, "node_type": node.type_name})
    for child in node.children:
        found.extend(extract_all_text_content(child))
    return found


def extract_typography(node: DesignNode) -> Optional[Dict[str, Any]]:
    if node.text is None or not node.text.style:
        return None
    style = node.text.style
    return {
        "font_family": style.get("fontFamily"),
        "font_size": style.get("fontSize"),
        "font_weight": style.get("fontWeight"),
        "text_align": style.get("textAlignHorizontal"),
        "letter_spacing": style.get("letterSpacing"),
        "line_height": style.get("lineHeightPx"),
    }


# ---------------------------------------------------------------------------
# Constraints
# ---------------------------------------------------------------------------


def extract_layout_constraints(node: Optional[DesignNode]) -> Optional[Dict[str, Any]]:
    """Figma resize constraints plus CSS-ish positioning hints."""
    if node is None or not node.constraints:
        return None
    horizontal = node.constraints.get("horizontal")
    vertical = node.constraints.get("vertical")
    hints = [
        hint
        for axis, value in (("horizontal", horizontal), ("vertical", vertical))
        for hint in [_POSITIONING_HINTS[axis].get(value)]
        if hint
    ]
    return {
        "horizontal": horizontal,
        "vertical": vertical,
        "layout_grow": node.layout_grow,
        "layout_align": node.layout_align or "INHERIT",
        "positioning_hints": hints,
    }


# ---------------------------------------------------------------------------
# Inclusion policies
# ---------------------------------------------------------------------------


def should_include_padding(node: DesignNode, semantic: SemanticType) -> bool:
    if semantic in (SemanticType.CONTAINER, SemanticType.CARD):
        return True
    return node.layout is not None and node.layout.max_padding > PADDING_THRESHOLD


def should_include_effects(node: DesignNode, semantic: SemanticType) -> bool:
    if semantic in (SemanticType.BUTTON, SemanticType.CARD):
        return True
    return any(is_visible(e) for e in node.effects)


def select_fills(node: DesignNode, semantic: SemanticType) -> List[Dict[str, Any]]:
    fills = list(node.fills)
    if semantic is SemanticType.ICON:
        return simplify_fills(fills[:1])
    if semantic is SemanticType.IMAGE:
        images = [f for f in fills if f.get("type") == "IMAGE"]
        others = [f for f in fills if f.get("type") != "IMAGE"][:1]
        return simplify_fills(images + others)
    return simplify_fills(fills[:2])


def select_strokes(node: DesignNode, semantic: SemanticType) -> List[Dict[str, Any]]:
    strokes = list(node.strokes)
    if semantic in (SemanticType.BUTTON, SemanticType.INPUT):
        return simplify_strokes(strokes[:2])
    significant = [
        s for s in strokes
        if is_visible(s) and s.get("opacity", 1) > SIGNIFICANT_STROKE_OPACITY
    ]
    return simplify_strokes(significant[:1])


def _interactions(node: DesignNode) -> Optional[Dict[str, Any]]:
    if not node.reactions:
        return None
    triggers = []
    for reaction in node.reactions:
        trigger = reaction.get("trigger")
        trigger_type = trigger.get("type") if isinstance(trigger, dict) else None
        if trigger_type and trigger_type not in triggers:
            triggers.append(trigger_type)
    return {"count": len(node.reactions), "triggers": triggers}


def _export_settings(node: DesignNode) -> List[Dict[str, Any]]:
    return [{"format": s.get("format"), "suffix": s.get("suffix")} for s in node.export_settings]


# ---------------------------------------------------------------------------
# Cleanup
# ---------------------------------------------------------------------------


def clean_metadata(value: Any) -> Any:
    """Return a copy without None, empty strings, empty lists or empty dicts."""
    if isinstance(value, dict):
        cleaned = {}
        for key, item in value.items():
            item = clean_metadata(item)
            if _is_empty(item):
                continue
            cleaned[key] = item
        return cleaned
    if isinstance(value, (list, tuple)):
        items = [clean_metadata(v) for v in value]
        return [v for v in items if not _is_empty(v)]
    return value


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value == ""
    if isinstance(value, (list, dict)):
        return len(value) == 0
    return False


# ---------------------------------------------------------------------------
# Simplify
# ---------------------------------------------------------------------------


def simplify(
    node: Union[DesignNode, dict, None],
    options: Union[SimplifyOptions, dict, None] = None,
) -> Optional[Dict[str, Any]]:
    """Simplified metadata dict for ``node``; None for None input."""
    if node is None:
        return None
    if isinstance(node, dict):
        node = DesignNode.from_dict(node)
        if node is None:
            return None
    opts = coerce_options(SimplifyOptions, options)

    if node.width == 0 or node.height == 0:
        logger.debug("simplify: %s (%s) has zero dimensions", node.name, node.type_name)

    return clean_metadata(_simplify(node, opts))


def _simplify(node: DesignNode, opts: SimplifyOptions) -> Dict[str, Any]:
    semantic = detect_semantic_type(node)
    text = extract_text_content(node)

    metadata: Dict[str, Any] = {
        "id": node.id,
        "name": node.name,
        "type": node.type_name,
        "semantic_type": semantic.value,
        "width": node.width,
        "height": node.height,
        "x": node.bounds.x,
        "y": node.bounds.y,
        "characters": text,
        "has_text": bool(text),
    }

    if opts.include_detailed_text:
        all_text = extract_all_text_content(node)
        metadata["all_text_content"] = all_text[:MAX_SAMPLED_TEXT]
        metadata["text_count"] = len(all_text)

    layout = node.layout
    if layout is not None:
        metadata["layout_mode"] = layout.mode
        metadata["primary_axis_align_items"] = layout.primary_axis_align_items
        metadata["counter_axis_align_items"] = layout.counter_axis_align_items
        if should_include_padding(node, semantic):
            metadata["padding"] = {
                "left": layout.padding_left,
                "right": layout.padding_right,
                "top": layout.padding_top,
                "bottom": layout.padding_bottom,
            }
            metadata["item_spacing"] = layout.item_spacing

    metadata["fills"] = select_fills(node, semantic)
    metadata["strokes"] = select_strokes(node, semantic)
    metadata["stroke_weight"] = node.stroke_weight
    metadata["corner_radius"] = node.corner_radius

    if opts.include_effects and should_include_effects(node, semantic):
        metadata["effects"] = simplify_effects(e for e in node.effects if is_visible(e))[:2]

    metadata["typography"] = extract_typography(node)

    if opts.include_constraints:
        metadata["constraints"] = extract_layout_constraints(node)

    metadata["interactions"] = _interactions(node)
    metadata["export_settings"] = _export_settings(node)

    if node.opacity is not None and node.opacity != 1:
        metadata["opacity"] = node.opacity
    if not node.visible:
        metadata["visible"] = False
    if node.component_id:
        metadata["component_id"] = node.component_id

    child_budget = opts.token_budget // 4
    if node.children and opts.max_depth > 0 and child_budget >= MIN_CHILD_TOKEN_BUDGET:
        child_opts = opts.model_copy(
            update={"max_depth": opts.max_depth - 1, "token_budget": child_budget}
        )
        metadata["children"] = [
            _simplify(child, child_opts) for child in node.children[: opts.max_children]
        ]

    return metadata
