"""Shared fixtures: raw Figma node dicts in the shape the REST API returns."""

from typing import Any, Dict, List

import pytest


def solid(r: float, g: float, b: float, a: float = 1.0) -> Dict[str, Any]:
    return {"type": "SOLID", "visible": True, "color": {"r": r, "g": g, "b": b, "a": a}}


def bbox(x: float, y: float, width: float, height: float) -> Dict[str, float]:
    return {"x": x, "y": y, "width": width, "height": height}


def text_node(node_id: str, name: str, characters: str, x: float = 0, y: float = 0) -> Dict[str, Any]:
    return {
        "id": node_id,
        "name": name,
        "type": "TEXT",
        "characters": characters,
        "absoluteBoundingBox": bbox(x, y, 80, 20),
        "style": {"fontFamily": "Inter", "fontSize": 14, "fontWeight": 500},
        "fills": [solid(1, 1, 1)],
        "children": [],
    }


@pytest.fixture
def button_node() -> Dict[str, Any]:
    """Primary button: blue fill, drop shadow, auto-layout with padding."""
    return {
        "id": "10:1",
        "name": "Primary Button",
        "type": "FRAME",
        "absoluteBoundingBox": bbox(24, 600, 120, 40),
        "fills": [solid(0.0, 0.4, 1.0)],
        "strokes": [],
        "effects": [{
            "type": "DROP_SHADOW",
            "visible": True,
            "offset": {"x": 0, "y": 2},
            "radius": 4,
            "color": {"r": 0, "g": 0, "b": 0, "a": 0.25},
        }],
        "cornerRadius": 8,
        "layoutMode": "HORIZONTAL",
        "paddingLeft": 16,
        "paddingRight": 16,
        "paddingTop": 12,
        "paddingBottom": 12,
        "itemSpacing": 8,
        "primaryAxisAlignItems": "CENTER",
        "counterAxisAlignItems": "CENTER",
        "constraints": {"horizontal": "LEFT", "vertical": "TOP"},
        "reactions": [{"trigger": {"type": "ON_CLICK"}}],
        "children": [text_node("10:2", "Label", "Submit", 40, 610)],
    }


@pytest.fixture
def card_node() -> Dict[str, Any]:
    """Card with a title, body text and six nested rows."""
    rows: List[Dict[str, Any]] = [
        {
            "id": f"20:{i + 10}",
            "name": f"Row {i}",
            "type": "FRAME",
            "absoluteBoundingBox": bbox(0, 100 + i * 40, 300, 40),
            "fills": [solid(0.95, 0.95, 0.95)],
            "children": [text_node(f"20:{i + 100}", f"Row text {i}", f"Entry number {i}")],
        }
        for i in range(6)
    ]
    return {
        "id": "20:1",
        "name": "Profile Card",
        "type": "FRAME",
        "absoluteBoundingBox": bbox(0, 0, 320, 400),
        "fills": [solid(1, 1, 1), solid(0.9, 0.9, 0.9)],
        "strokes": [solid(0.8, 0.8, 0.8)],
        "strokeWeight": 1,
        "cornerRadius": 12,
        "layoutMode": "VERTICAL",
        "paddingLeft": 2,
        "paddingRight": 2,
        "paddingTop": 2,
        "paddingBottom": 2,
        "effects": [{"type": "DROP_SHADOW", "visible": True, "offset": {"x": 0, "y": 4}, "radius": 12,
                     "color": {"r": 0, "g": 0, "b": 0, "a": 0.1}}],
        "children": [
            text_node("20:2", "Title", "Jane Doe", 16, 16),
            text_node("20:3", "Subtitle", "Product designer", 16, 44),
            *rows,
        ],
    }


@pytest.fixture
def page_document(button_node, card_node) -> Dict[str, Any]:
    """GET /v1/files/:key response with one canvas holding a small page."""
    return {
        "name": "Design System",
        "version": "1234",
        "document": {
            "id": "0:0",
            "name": "Document",
            "type": "DOCUMENT",
            "children": [{
                "id": "0:1",
                "name": "Page 1",
                "type": "CANVAS",
                "children": [
                    {
                        "id": "1:1",
                        "name": "Header",
                        "type": "FRAME",
                        "absoluteBoundingBox": bbox(0, 0, 1440, 80),
                        "fills": [solid(0.1, 0.1, 0.1)],
                        "children": [text_node("1:2", "Logo", "Acme", 24, 24)],
                    },
                    card_node,
                    button_node,
                    {
                        "id": "1:9",
                        "name": "Arrow",
                        "type": "VECTOR",
                        "absoluteBoundingBox": bbox(0, 0, 24, 24),
                    },
                ],
            }],
        },
    }
