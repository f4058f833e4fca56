"""Figma paint helpers — color conversion + fill/stroke/effect summaries.

Converts raw Figma paint dicts into the compact, hex-colored records used by
simplified metadata and prompt rendering.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Color utilities
# ---------------------------------------------------------------------------


def figma_color_to_hex(color: Dict) -> str:
    """Convert Figma RGBA float dict {r,g,b,a} to hex string."""
    r = round(color.get("r", 0) * 255)
    g = round(color.get("g", 0) * 255)
    b = round(color.get("b", 0) * 255)
    a = color.get("a", 1.0)
    hex_rgb = f"#{r:02X}{g:02X}{b:02X}"
    if a < 1.0:
        hex_rgb += f"{round(a * 255):02X}"
    return hex_rgb


def _safe_hex(color: Any) -> Optional[str]:
    if not isinstance(color, dict):
        return None
    try:
        return figma_color_to_hex(color)
    except (TypeError, ValueError):
        logger.debug("figma_utils: unparseable color %r", color)
        return None


def is_visible(paint: Dict[str, Any]) -> bool:
    return paint.get("visible") is not False


# ---------------------------------------------------------------------------
# Paint summaries
# ---------------------------------------------------------------------------


def simplify_fill(fill: Dict[str, Any]) -> Dict[str, Any]:
    """{type, visible, color | gradient_stops | image}."""
    fill_type = str(fill.get("type") or "UNKNOWN")
    info: Dict[str, Any] = {"type": fill_type, "visible": is_visible(fill)}

    if fill_type == "SOLID":
        info["color"] = _safe_hex(fill.get("color"))
        opacity = fill.get("opacity")
        if isinstance(opacity, (int, float)) and opacity < 1:
            info["opacity"] = round(opacity, 2)
    elif fill_type.startswith("GRADIENT_"):
        stops = fill.get("gradientStops") or []
        info["gradient_stops"] = [
            {"position": s.get("position"), "color": _safe_hex(s.get("color")) or "transparent"}
            for s in stops[:2]
            if isinstance(s, dict)
        ]
    elif fill_type == "IMAGE":
        info["scale_mode"] = fill.get("scaleMode")
    return info


def simplify_stroke(stroke: Dict[str, Any]) -> Dict[str, Any]:
    info: Dict[str, Any] = {
        "type": str(stroke.get("type") or "UNKNOWN"),
        "visible": is_visible(stroke),
    }
    if info["type"] == "SOLID":
        info["color"] = _safe_hex(stroke.get("color"))
    return info


def simplify_effect(effect: Dict[str, Any]) -> Dict[str, Any]:
    effect_type = str(effect.get("type") or "UNKNOWN")
    info: Dict[str, Any] = {"type": effect_type, "visible": is_visible(effect)}
    if effect_type in ("DROP_SHADOW", "INNER_SHADOW"):
        offset = effect.get("offset") if isinstance(effect.get("offset"), dict) else {}
        info["offset"] = {"x": offset.get("x", 0), "y": offset.get("y", 0)}
        info["radius"] = effect.get("radius")
        info["color"] = _safe_hex(effect.get("color"))
    elif effect_type in ("LAYER_BLUR", "BACKGROUND_BLUR"):
        info["radius"] = effect.get("radius")
    return info


def simplify_fills(fills: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [simplify_fill(f) for f in fills]


def simplify_strokes(strokes: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [simplify_stroke(s) for s in strokes]


def simplify_effects(effects: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [simplify_effect(e) for e in effects]


def first_solid_color(fills: Iterable[Dict[str, Any]]) -> Optional[str]:
    """Hex of the first visible SOLID paint (raw or simplified), else None."""
    for fill in fills:
        if fill.get("type") != "SOLID" or not is_visible(fill):
            continue
        color = fill.get("color")
        if isinstance(color, str):
            return color
        hex_color = _safe_hex(color)
        if hex_color:
            return hex_color
    return None
