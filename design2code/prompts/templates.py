"""Code Generation Prompt Templates

Text fragments for every prompt strategy. Target stack is React functional
components styled with Material-UI (MUI).
"""

from __future__ import annotations

import re
from typing import Any, Dict

# Semantic type → MUI primitive the generated component should be built on
MUI_PRIMITIVES: Dict[str, str] = {
    "text": "Typography",
    "button": "Button",
    "navigation": "AppBar",
    "card": "Card",
    "input": "TextField",
    "container": "Box",
    "icon": "SvgIcon",
    "image": "CardMedia",
    "generic": "Box",
}


def mui_primitive(semantic_type: Any) -> str:
    return MUI_PRIMITIVES.get(str(semantic_type or "generic"), "Box")


def to_component_name(figma_name: str) -> str:
    """Convert Figma layer name to PascalCase component name.

    'photo-grid' → 'PhotoGrid'
    'Primary Button / Hover' → 'PrimaryButtonHover'
    '1 col' → 'Component1Col'
    """
    name = re.sub(r"[^A-Za-z0-9]", " ", figma_name or "")
    pascal = "".join(p[:1].upper() + p[1:] for p in name.split() if p)
    if not pascal:
        return "Component"
    if pascal[0].isdigit():
        pascal = "Component" + pascal
    return pascal


def px(value: Any) -> str:
    """12.0 → '12', 12.46 → '12.5'."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return "0"
    if number.is_integer():
        return str(int(number))
    return f"{number:.1f}"


# ---------------------------------------------------------------------------
# Shared
# ---------------------------------------------------------------------------

SUMMARY_HEADER = (
    'Generate a React functional component named {component_name} using '
    'Material-UI (MUI) for the Figma {node_type} "{name}".'
)

# Mandatory on every compiled prompt
REQUIREMENTS_HEADING = "## Requirements"
REQUIREMENT_LINES = (
    "- Return ONLY the source code: no markdown fences, no explanations.",
    "- Preserve every literal text string exactly as given (verbatim).",
    "- Match the exact dimensions: width {width}px, height {height}px.",
    "- Build the component on MUI <{primitive}>.",
    "- Export it as `export default {component_name};`.",
)

# ---------------------------------------------------------------------------
# Detailed
# ---------------------------------------------------------------------------

DETAILED_INSTRUCTIONS = (
    "1. Recreate the visual structure described above, child by child.",
    "2. Use the exact hex colors, pixel sizes, radii and spacing from the metadata.",
    "3. Use MUI layout primitives (Box, Stack) with the sx prop for styling.",
    "4. Respect the relationships to sibling components (alignment, overlap).",
    "5. Keep the component self-contained with no dependencies beyond React and MUI.",
)

# ---------------------------------------------------------------------------
# Visual similarity
# ---------------------------------------------------------------------------

VISUAL_SIMILARITY_INTRO = (
    "Focus on visual fidelity: the rendered component should look as close as "
    "possible to the original design (aim for high visual similarity)."
)

VISUAL_GUIDANCE: Dict[str, str] = {
    "text": "Use <Typography> with the exact font size, weight, family and color; do not wrap it in extra containers.",
    "navigation": "Use <AppBar position=\"static\"> or <Tabs> for the navigation items, in the order given.",
    "card": "Use <Card> with <CardContent>; reproduce the corner radius and shadow exactly.",
    "input": "Use <TextField> with the border color and radius given; keep placeholder text verbatim.",
    "container": "Use <Box> with display flex matching the layout mode, gap and padding given.",
    "icon": "Render the icon as an inline <SvgIcon> sized exactly as given.",
    "image": "Use <CardMedia> or a <Box component=\"img\"> placeholder with the exact dimensions and object-fit cover.",
    "generic": "Use <Box> with the sx prop to reproduce size, colors and borders exactly.",
}

BUTTON_GUIDANCE_CONTAINED = 'Use <Button variant="contained"> since the design has elevation (a visible shadow).'
BUTTON_GUIDANCE_OUTLINED = 'Use <Button variant="outlined"> since the design has a border and no elevation.'
BUTTON_GUIDANCE_TEXT = 'Use <Button variant="text"> since the design has neither elevation nor a border.'

# ---------------------------------------------------------------------------
# Minimal
# ---------------------------------------------------------------------------

MINIMAL_SUMMARY = (
    'Create a React MUI component {component_name} for "{name}" ({semantic_type}): '
    "{width}px x {height}px{style_summary}{text_summary}."
)

# ---------------------------------------------------------------------------
# Page level
# ---------------------------------------------------------------------------

PAGE_SUMMARY = (
    "Generate a complete React page component named {component_name} using "
    "Material-UI (MUI) that composes {count} top-level sections in a "
    "{layout} layout ({width}px x {height}px overall)."
)

PAGE_INSTRUCTIONS = (
    "1. Build each section as an inner function component, then compose them in the page.",
    "2. Use <Container>/<Box>/<Stack> for the overall layout; header and footer span the full width.",
    "3. Use the exact colors, sizes and text from the section list.",
    "4. Keep everything in one file with no dependencies beyond React and MUI.",
)

PAGE_REQUIREMENT_LINES = (
    "- Return ONLY the source code: no markdown fences, no explanations.",
    "- Preserve every literal text string exactly as given (verbatim).",
    "- Match the exact section dimensions given above.",
    "- Build each section on the MUI primitive named for it.",
    "- Export the page as `export default {component_name};`.",
)

# ---------------------------------------------------------------------------
# Fallback (last resort)
# ---------------------------------------------------------------------------

FALLBACK_TEMPLATE = (
    'Create a React component {component_name} for the Figma {node_type} "{name}", '
    "{width}px x {height}px. "
    "Return only source code, keep text verbatim{text_hint}, match the exact size, "
    "and use MUI <{primitive}>."
)
