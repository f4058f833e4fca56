"""Page-level layout analysis over simplified component metadata.

Tags top-level siblings as header / hero / footer / sidebar / body from
name keywords, confirmed by position within the page, and reports pairwise
visual relationships (overlap, shared top edge, shared left edge).

Tagging is conservative: a keyword match still has to sit in the expected
region of the page, and a purely positional match needs a full-width strip
at the very top or bottom.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

logger = logging.getLogger(__name__)


class PageLayout(str, Enum):
    HEADER_FOOTER = "header-footer"
    SIDEBAR = "sidebar"
    VERTICAL = "vertical"


# --- Keywords (matched against lower-cased names) ---

HEADER_KEYWORDS = frozenset({"header", "navbar", "nav bar", "app bar", "appbar", "topbar", "top bar", "toolbar"})
FOOTER_KEYWORDS = frozenset({"footer", "bottom bar", "bottombar", "tabbar", "tab bar"})
SIDEBAR_KEYWORDS = frozenset({"sidebar", "side bar", "sidenav", "side nav", "drawer", "aside"})
HERO_KEYWORDS = frozenset({"hero", "banner", "jumbotron", "masthead"})
MAIN_KEYWORDS = frozenset({"main", "content", "body"})

# --- Positional thresholds (fractions of the page box) ---

FULL_WIDTH_RATIO = 0.9
STRIP_HEIGHT_RATIO = 0.15
EDGE_TOLERANCE = 1.0
SIDEBAR_MIN_HEIGHT_RATIO = 0.5
SIDEBAR_MAX_WIDTH_RATIO = 0.35

# Alignment tolerance for relationship detection (px)
ALIGNMENT_TOLERANCE = 5


@dataclass
class PageStructure:
    layout: PageLayout = PageLayout.VERTICAL
    header: Optional[Dict[str, Any]] = None
    hero: Optional[Dict[str, Any]] = None
    footer: Optional[Dict[str, Any]] = None
    sidebar: Optional[Dict[str, Any]] = None
    main: Optional[Dict[str, Any]] = None
    body: List[Dict[str, Any]] = field(default_factory=list)
    components: List[Dict[str, Any]] = field(default_factory=list)

    def role_of(self, component: Dict[str, Any]) -> str:
        for role in ("header", "hero", "footer", "sidebar", "main"):
            if getattr(self, role) is component:
                return role
        return "body"


@dataclass(frozen=True)
class _PageBox:
    left: float
    top: float
    width: float
    height: float

    @property
    def bottom(self) -> float:
        return self.top + self.height


def _geom(c: Dict[str, Any]):
    return (
        float(c.get("x") or 0),
        float(c.get("y") or 0),
        float(c.get("width") or 0),
        float(c.get("height") or 0),
    )


def _page_box(components: Sequence[Dict[str, Any]]) -> _PageBox:
    boxes = [_geom(c) for c in components]
    left = min(b[0] for b in boxes)
    top = min(b[1] for b in boxes)
    right = max(b[0] + b[2] for b in boxes)
    bottom = max(b[1] + b[3] for b in boxes)
    return _PageBox(left, top, right - left, bottom - top)


def _name_has(component: Dict[str, Any], keywords: frozenset) -> bool:
    name = str(component.get("name") or "").lower()
    return any(k in name for k in keywords)


def _center_y_ratio(component: Dict[str, Any], page: _PageBox) -> float:
    _, y, _, h = _geom(component)
    if page.height <= 0:
        return 0.0
    return (y + h / 2 - page.top) / page.height


def _is_full_width_strip(component: Dict[str, Any], page: _PageBox) -> bool:
    _, _, w, h = _geom(component)
    return (
        page.width > 0 and page.height > 0
        and w >= FULL_WIDTH_RATIO * page.width
        and h <= STRIP_HEIGHT_RATIO * page.height
    )


def _find_header(components, page: _PageBox) -> Optional[Dict[str, Any]]:
    for c in components:
        if _name_has(c, HEADER_KEYWORDS) and _center_y_ratio(c, page) <= 1 / 3:
            return c
    if len(components) < 2:
        return None
    for c in components:
        if abs(_geom(c)[1] - page.top) <= EDGE_TOLERANCE and _is_full_width_strip(c, page):
            return c
    return None


def _find_footer(components, page: _PageBox, taken) -> Optional[Dict[str, Any]]:
    candidates = [c for c in components if not any(c is t for t in taken)]
    for c in candidates:
        if _name_has(c, FOOTER_KEYWORDS) and _center_y_ratio(c, page) >= 2 / 3:
            return c
    if len(components) < 2:
        return None
    for c in candidates:
        _, y, _, h = _geom(c)
        if abs(y + h - page.bottom) <= EDGE_TOLERANCE and _is_full_width_strip(c, page):
            return c
    return None


def _find_sidebar(components, page: _PageBox, taken) -> Optional[Dict[str, Any]]:
    if len(components) < 2:
        return None
    for c in components:
        if any(c is t for t in taken):
            continue
        _, _, w, h = _geom(c)
        tall = page.height > 0 and h >= SIDEBAR_MIN_HEIGHT_RATIO * page.height
        narrow = page.width > 0 and w <= SIDEBAR_MAX_WIDTH_RATIO * page.width
        if _name_has(c, SIDEBAR_KEYWORDS) and tall and narrow:
            return c
    return None


def _find_hero(components, page: _PageBox, taken) -> Optional[Dict[str, Any]]:
    for c in components:
        if any(c is t for t in taken):
            continue
        if _name_has(c, HERO_KEYWORDS) and _center_y_ratio(c, page) <= 0.5:
            return c
    return None


def _find_main(remaining: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if not remaining:
        return None
    for c in remaining:
        if _name_has(c, MAIN_KEYWORDS):
            return c
    return max(remaining, key=lambda c: _geom(c)[2] * _geom(c)[3])


def extract_page_structure(components: Sequence[Dict[str, Any]]) -> PageStructure:
    """Tag top-level siblings by role and pick the page layout."""
    components = [c for c in components or [] if isinstance(c, dict)]
    structure = PageStructure(components=list(components))
    if not components:
        return structure

    page = _page_box(components)
    header = _find_header(components, page)
    taken = [t for t in (header,) if t is not None]
    footer = _find_footer(components, page, taken)
    taken += [t for t in (footer,) if t is not None]
    sidebar = _find_sidebar(components, page, taken)
    taken += [t for t in (sidebar,) if t is not None]
    hero = _find_hero(components, page, taken)
    taken += [t for t in (hero,) if t is not None]

    remaining = [c for c in components if not any(c is t for t in taken)]
    main = _find_main(remaining)

    structure.header = header
    structure.footer = footer
    structure.sidebar = sidebar
    structure.hero = hero
    structure.main = main
    structure.body = [c for c in remaining if c is not main]

    if sidebar is not None:
        structure.layout = PageLayout.SIDEBAR
    elif header is not None or footer is not None:
        structure.layout = PageLayout.HEADER_FOOTER

    logger.debug(
        "extract_page_structure: layout=%s, components=%d",
        structure.layout.value, len(components),
    )
    return structure


# ---------------------------------------------------------------------------
# Visual relationships
# ---------------------------------------------------------------------------


def analyze_visual_relationships(components: Sequence[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Pairwise overlap and edge alignment between components."""
    relationships: List[Dict[str, Any]] = []
    for i, a in enumerate(components):
        ax, ay, aw, ah = _geom(a)
        for b in components[i + 1:]:
            bx, by, bw, bh = _geom(b)
            separated = ax + aw < bx or bx + bw < ax or ay + ah < by or by + bh < ay
            if not separated:
                relationships.append({
                    "type": "overlapping",
                    "component1": a.get("id"),
                    "component2": b.get("id"),
                })
            if abs(ay - by) < ALIGNMENT_TOLERANCE:
                relationships.append({
                    "type": "vertically_aligned",
                    "component1": a.get("id"),
                    "component2": b.get("id"),
                    "alignment": "top",
                })
            if abs(ax - bx) < ALIGNMENT_TOLERANCE:
                relationships.append({
                    "type": "horizontally_aligned",
                    "component1": a.get("id"),
                    "component2": b.get("id"),
                    "alignment": "left",
                })
    return relationships
