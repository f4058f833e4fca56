"""Validation and light repair of generated component source.

validate_code() is the gate between the generation service and callers:
it either returns cleaned source or raises InvalidGeneratedCodeError. It
never returns a partially repaired draft.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from design2code import settings
from design2code.design.figma_utils import first_solid_color
from design2code.errors import InvalidGeneratedCodeError
from design2code.prompts.templates import px

logger = logging.getLogger(__name__)

_FENCE_BLOCK_RE = re.compile(r"```[\w+-]*[ \t]*\n?(.*?)```", re.DOTALL)
_FENCE_LINE_RE = re.compile(r"^[ \t]*```[\w+-]*[ \t]*$", re.MULTILINE)
_SOURCE_MARKER_RE = re.compile(r"^\s*(?:import|export|function|const|let|var|class)\b", re.MULTILINE)
_REACT_IMPORT_RE = re.compile(
    r"^\s*import\s+(?:\*\s+as\s+React|React)\b[^;]*?from\s+['\"]react['\"]",
    re.MULTILINE,
)
_EXPORT_RE = re.compile(r"^\s*export\b", re.MULTILINE)
_DECLARATION_RE = re.compile(
    r"^\s*(?:async\s+)?(?:function|const|let|var|class)\s+([A-Za-z_$][\w$]*)",
    re.MULTILINE,
)
_STYLE_OBJECT_RE = re.compile(r"\b(?:sx|style)=\{\{")


def strip_code_fences(text: str) -> str:
    """Contents of the first fenced block, or the text minus stray fence lines."""
    if not text:
        return ""
    match = _FENCE_BLOCK_RE.search(text)
    if match:
        return match.group(1).strip()
    return _FENCE_LINE_RE.sub("", text).strip()


def _export_target(code: str) -> Optional[str]:
    names = _DECLARATION_RE.findall(code)
    for name in names:
        if name[:1].isupper():
            return name
    return names[0] if names else None


def validate_code(text: Any) -> str:
    """Clean generated text into a module with a React import and an export.

    Raises InvalidGeneratedCodeError when the text carries no source markers
    or has nothing that could be exported.
    """
    if not isinstance(text, str) or not text.strip():
        raise InvalidGeneratedCodeError("Generated text is empty")

    code = strip_code_fences(text)
    marker = _SOURCE_MARKER_RE.search(code)
    if not marker:
        raise InvalidGeneratedCodeError(
            f"Generated text has no source markers: {code[:80]!r}"
        )
    # Drop leading prose such as "Here is the component:"
    code = code[marker.start():].strip()

    if not _EXPORT_RE.search(code):
        target = _export_target(code)
        if target is None:
            raise InvalidGeneratedCodeError("Generated code declares nothing to export")
        code = f"{code}\n\nexport default {target};"

    if not _REACT_IMPORT_RE.search(code):
        code = f"{settings.CODE_BASELINE_IMPORT}\n{code}"

    return code


# ---------------------------------------------------------------------------
# Fidelity enhancement
# ---------------------------------------------------------------------------


def _matching_brace(code: str, open_index: int) -> int:
    """Index of the brace closing the one at ``open_index``; -1 if unbalanced."""
    depth = 0
    quote: Optional[str] = None
    i = open_index
    while i < len(code):
        ch = code[i]
        if quote:
            if ch == "\\":
                i += 2
                continue
            if ch == quote:
                quote = None
        elif ch in ("'", '"', "`"):
            quote = ch
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return i
        i += 1
    return -1


def _has_key(body: str, *keys: str) -> bool:
    pattern = r"(?<![\w$-])(?:%s)\s*:" % "|".join(re.escape(k) for k in keys)
    return re.search(pattern, body) is not None


def _literal_styles(metadata: Dict[str, Any], body: str) -> List[str]:
    additions = []
    width = metadata.get("width")
    height = metadata.get("height")
    if width and not _has_key(body, "width"):
        additions.append(f"width: '{px(width)}px'")
    if height and not _has_key(body, "height"):
        additions.append(f"height: '{px(height)}px'")
    background = first_solid_color(metadata.get("fills") or [])
    if background and not _has_key(body, "background", "backgroundColor", "bgcolor"):
        additions.append(f"backgroundColor: '{background}'")
    padding = metadata.get("padding")
    if padding and any(padding.get(side) for side in ("top", "right", "bottom", "left")) \
            and not _has_key(body, "padding", "p"):
        additions.append(
            "padding: '{}px {}px {}px {}px'".format(
                px(padding.get("top")), px(padding.get("right")),
                px(padding.get("bottom")), px(padding.get("left")),
            )
        )
    return additions


def enhance_code(code: str, metadata: Optional[Dict[str, Any]]) -> str:
    """Inject missing size / background / padding literals into the first
    ``sx={{...}}`` or ``style={{...}}`` object. Code without one is returned
    unchanged."""
    if not code or not metadata:
        return code
    match = _STYLE_OBJECT_RE.search(code)
    if not match:
        logger.debug("enhance_code: no sx/style object in %s", metadata.get("name"))
        return code

    inner_open = match.end() - 1
    inner_close = _matching_brace(code, inner_open)
    if inner_close < 0:
        return code
    body = code[inner_open + 1:inner_close]

    additions = _literal_styles(metadata, body)
    if not additions:
        return code
    injected = " " + ", ".join(additions) + ("," if body.strip() else " ")
    return code[:inner_open + 1] + injected + body + code[inner_close:]


# ---------------------------------------------------------------------------
# Analysis
# ---------------------------------------------------------------------------

_IMPORT_RE = re.compile(r"^\s*import\s+.*?from\s+['\"].*?['\"];?", re.MULTILINE)
_MUI_IMPORT_RE = re.compile(r"import\s+\{([^}]+)\}\s+from\s+['\"]@mui/material['\"]")
_PROPS_RE = re.compile(r"\(\s*\{\s*([^}]+)\s*\}\s*\)")
_HEX_RE = re.compile(r"#[0-9a-fA-F]{3,8}\b")
_RGB_RE = re.compile(r"rgba?\([^)]+\)")


@dataclass
class CodeAnalysis:
    component_name: str = "Unknown"
    imports: List[str] = field(default_factory=list)
    mui_components: List[str] = field(default_factory=list)
    props: List[str] = field(default_factory=list)
    has_state: bool = False
    has_effects: bool = False
    complexity: str = "low"  # low | medium | high
    colors: List[str] = field(default_factory=list)


def analyze_code(code: Optional[str]) -> CodeAnalysis:
    analysis = CodeAnalysis()
    if not code or not isinstance(code, str):
        return analysis

    name = _export_target(code)
    if name:
        analysis.component_name = name
    analysis.imports = [m.strip() for m in _IMPORT_RE.findall(code)]
    for mui in _MUI_IMPORT_RE.findall(code):
        analysis.mui_components.extend(c.strip() for c in mui.split(",") if c.strip())
    analysis.has_state = re.search(r"\b(useState|useReducer)\b|this\.state", code) is not None
    analysis.has_effects = re.search(r"\buseEffect\b|componentDidMount|componentDidUpdate", code) is not None

    props_match = _PROPS_RE.search(code)
    if props_match:
        analysis.props = [
            re.split(r"[=:]", p.strip())[0].strip()
            for p in props_match.group(1).split(",")
            if p.strip()
        ]

    line_count = code.count("\n") + 1
    mui_count = len(analysis.mui_components)
    complex_hooks = re.search(r"\b(useCallback|useMemo|useContext)\b", code) is not None
    if line_count > 100 or mui_count > 10 or complex_hooks:
        analysis.complexity = "high"
    elif line_count > 50 or mui_count > 5 or analysis.has_state:
        analysis.complexity = "medium"

    seen: Dict[str, None] = {}
    for color in _HEX_RE.findall(code) + _RGB_RE.findall(code):
        seen.setdefault(color, None)
    analysis.colors = list(seen)
    return analysis
