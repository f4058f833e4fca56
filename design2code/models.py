"""Core data types shared across pipeline stages.

DesignNode is the typed, read-only view of a raw Figma node dict. Node
shape varies by type, so type-specific parts (text, auto-layout, instance
link) live in optional sub-records that are present only when the raw node
carries them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class NodeType(str, Enum):
    DOCUMENT = "DOCUMENT"
    CANVAS = "CANVAS"
    FRAME = "FRAME"
    GROUP = "GROUP"
    SECTION = "SECTION"
    COMPONENT = "COMPONENT"
    COMPONENT_SET = "COMPONENT_SET"
    INSTANCE = "INSTANCE"
    TEXT = "TEXT"
    VECTOR = "VECTOR"
    RECTANGLE = "RECTANGLE"
    ELLIPSE = "ELLIPSE"
    LINE = "LINE"
    STAR = "STAR"
    REGULAR_POLYGON = "REGULAR_POLYGON"
    BOOLEAN_OPERATION = "BOOLEAN_OPERATION"
    SLICE = "SLICE"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def parse(cls, value: Any) -> "NodeType":
        try:
            return cls(str(value).upper())
        except ValueError:
            return cls.UNKNOWN


# Types that may carry auto-layout properties
LAYOUT_NODE_TYPES = frozenset({
    NodeType.FRAME, NodeType.COMPONENT, NodeType.COMPONENT_SET,
    NodeType.INSTANCE, NodeType.SECTION, NodeType.GROUP,
})


def _num(value: Any, default: float = 0.0) -> float:
    """Coerce a raw numeric field; non-numbers fall back to ``default``."""
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        return value
    return default


def _dicts(value: Any) -> Tuple[Dict[str, Any], ...]:
    if not isinstance(value, list):
        return ()
    return tuple(v for v in value if isinstance(v, dict))


@dataclass(frozen=True)
class Bounds:
    x: float = 0
    y: float = 0
    width: float = 0
    height: float = 0

    @classmethod
    def from_node(cls, raw: Dict[str, Any]) -> "Bounds":
        """Geometry fallback order: absoluteBoundingBox → size → width/height."""
        bbox = raw.get("absoluteBoundingBox")
        bbox = bbox if isinstance(bbox, dict) else {}
        size = raw.get("size")
        size = size if isinstance(size, dict) else {}
        width = _num(bbox.get("width")) or _num(size.get("x")) or _num(raw.get("width"))
        height = _num(bbox.get("height")) or _num(size.get("y")) or _num(raw.get("height"))
        x = _num(bbox.get("x")) or _num(raw.get("x"))
        y = _num(bbox.get("y")) or _num(raw.get("y"))
        return cls(x=x, y=y, width=width, height=height)

    def to_dict(self) -> Dict[str, float]:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}


@dataclass(frozen=True)
class TextContent:
    """Text payload of TEXT nodes (and style of any node that carries one)."""
    characters: str = ""
    style: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class AutoLayout:
    mode: Optional[str] = None  # HORIZONTAL | VERTICAL | NONE
    padding_left: float = 0
    padding_right: float = 0
    padding_top: float = 0
    padding_bottom: float = 0
    item_spacing: Optional[float] = None
    primary_axis_align_items: Optional[str] = None
    counter_axis_align_items: Optional[str] = None

    @property
    def max_padding(self) -> float:
        return max(self.padding_left, self.padding_right, self.padding_top, self.padding_bottom)


@dataclass(frozen=True)
class DesignNode:
    """Read-only design tree node. Children are owned and ordered."""
    id: str
    name: str
    type: NodeType
    type_name: str
    bounds: Bounds = field(default_factory=Bounds)
    fills: Tuple[Dict[str, Any], ...] = ()
    strokes: Tuple[Dict[str, Any], ...] = ()
    effects: Tuple[Dict[str, Any], ...] = ()
    stroke_weight: Optional[float] = None
    corner_radius: Optional[float] = None
    opacity: Optional[float] = None
    visible: bool = True
    constraints: Optional[Dict[str, Any]] = None
    layout_grow: float = 0
    layout_align: Optional[str] = None
    reactions: Tuple[Dict[str, Any], ...] = ()
    export_settings: Tuple[Dict[str, Any], ...] = ()
    text: Optional[TextContent] = None
    layout: Optional[AutoLayout] = None
    component_id: Optional[str] = None
    children: Tuple["DesignNode", ...] = ()

    @property
    def width(self) -> float:
        return self.bounds.width

    @property
    def height(self) -> float:
        return self.bounds.height

    @property
    def characters(self) -> str:
        return self.text.characters if self.text else ""

    @classmethod
    def from_dict(cls, raw: Any) -> Optional["DesignNode"]:
        """Build a node tree from a raw Figma node dict.

        Malformed input degrades: missing fields become absent or zero,
        non-dict children are dropped. Returns None for non-dict input.
        """
        if not isinstance(raw, dict):
            return None

        node_type = NodeType.parse(raw.get("type", "UNKNOWN"))
        type_name = str(raw.get("type") or "UNKNOWN")

        text: Optional[TextContent] = None
        style = raw.get("style") if isinstance(raw.get("style"), dict) else {}
        characters = raw.get("characters")
        if isinstance(characters, str) or style:
            text = TextContent(
                characters=characters if isinstance(characters, str) else "",
                style=dict(style),
            )

        layout: Optional[AutoLayout] = None
        if node_type in LAYOUT_NODE_TYPES or raw.get("layoutMode"):
            item_spacing = raw.get("itemSpacing")
            layout = AutoLayout(
                mode=raw.get("layoutMode"),
                padding_left=_num(raw.get("paddingLeft")),
                padding_right=_num(raw.get("paddingRight")),
                padding_top=_num(raw.get("paddingTop")),
                padding_bottom=_num(raw.get("paddingBottom")),
                item_spacing=_num(item_spacing) if item_spacing is not None else None,
                primary_axis_align_items=raw.get("primaryAxisAlignItems"),
                counter_axis_align_items=raw.get("counterAxisAlignItems"),
            )

        component_id = None
        if node_type is NodeType.INSTANCE or raw.get("componentId"):
            component_id = raw.get("componentId") or None

        opacity = raw.get("opacity")
        stroke_weight = raw.get("strokeWeight")
        corner_radius = raw.get("cornerRadius")
        constraints = raw.get("constraints")

        children = tuple(
            child
            for child in (cls.from_dict(c) for c in _dicts(raw.get("children")))
            if child is not None
        )

        return cls(
            id=str(raw.get("id") or "unknown"),
            name=str(raw.get("name") or "Unnamed Component"),
            type=node_type,
            type_name=type_name,
            bounds=Bounds.from_node(raw),
            fills=_dicts(raw.get("fills")),
            strokes=_dicts(raw.get("strokes")),
            effects=_dicts(raw.get("effects")),
            stroke_weight=_num(stroke_weight) if stroke_weight is not None else None,
            corner_radius=_num(corner_radius) if corner_radius is not None else None,
            opacity=_num(opacity, 1.0) if opacity is not None else None,
            visible=raw.get("visible") is not False,
            constraints=dict(constraints) if isinstance(constraints, dict) else None,
            layout_grow=_num(raw.get("layoutGrow")),
            layout_align=raw.get("layoutAlign") or None,
            reactions=_dicts(raw.get("reactions")),
            export_settings=_dicts(raw.get("exportSettings")),
            text=text,
            layout=layout,
            component_id=component_id,
            children=children,
        )


def nodes_from_dicts(raw_nodes: Any) -> List[DesignNode]:
    """Parse a list of raw node dicts, dropping anything malformed."""
    if isinstance(raw_nodes, dict):
        raw_nodes = [raw_nodes]
    if not isinstance(raw_nodes, list):
        return []
    parsed = (DesignNode.from_dict(r) for r in raw_nodes)
    return [n for n in parsed if n is not None]


# ---------------------------------------------------------------------------
# Prompt / generation records
# ---------------------------------------------------------------------------


class PromptStrategy(str, Enum):
    DETAILED = "detailed"
    VISUAL_SIMILARITY = "visual_similarity"
    MINIMAL = "minimal"
    PAGE_DETAILED = "page_detailed"
    PAGE_OPTIMIZED = "page_optimized"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class PromptSpec:
    text: str
    estimated_tokens: int
    strategy: PromptStrategy
    dropped_sections: Tuple[str, ...] = ()


@dataclass(frozen=True)
class GenerationRequest:
    component_id: str
    strategy: PromptStrategy
    temperature: float
    max_output_tokens: int
    prompt_hash: str


@dataclass
class GenerationResult:
    code: str
    strategy: PromptStrategy
    success: bool = True
    component_id: Optional[str] = None
    rung_index: Optional[int] = None
    from_cache: bool = False
    attempts: int = 1
    errors: List[Dict[str, Any]] = field(default_factory=list)


@dataclass
class Page:
    """One slice of a filtered component list."""
    items: List[DesignNode]
    total: int
    page: int
    page_size: int
    has_more: bool


@dataclass
class BatchResult:
    components: List[Dict[str, Any]]
    total_found: int
    total_processed: int
    batches_processed: int
    batch_size: int
    processed_at: str
