"""Design tree traversal — candidate component discovery and pagination.

Depth-first, document order. A node qualifies when its type is included,
not excluded, and both dimensions fall inside [min_size, max_size].
Children are walked regardless of whether their parent qualified, until
max_depth or max_components is reached. Hitting max_components ends the
walk early; the partial list is a valid result.

Excluded types (vectors, slices, boolean ops ...) prune their whole subtree.
"""

from __future__ import annotations

import dataclasses
import logging
from typing import Any, List, Optional, Sequence, Union

from design2code.models import DesignNode, Page, TextContent, nodes_from_dicts
from design2code.schemas import FindOptions, coerce_options

logger = logging.getLogger(__name__)

MAX_NAME_LENGTH = 100
MAX_TEXT_LENGTH = 500
MAX_SANITIZED_CHILDREN = 5

NodeInput = Union[Sequence[DesignNode], Sequence[dict], DesignNode, dict, None]


def _as_nodes(nodes: NodeInput) -> List[DesignNode]:
    if nodes is None:
        return []
    if isinstance(nodes, DesignNode):
        return [nodes]
    if isinstance(nodes, dict):
        return nodes_from_dicts([nodes])
    result: List[DesignNode] = []
    for item in nodes:
        if isinstance(item, DesignNode):
            result.append(item)
        elif isinstance(item, dict):
            result.extend(nodes_from_dicts([item]))
    return result


def qualifies(node: DesignNode, options: FindOptions) -> bool:
    """True when ``node`` passes the type and size filter."""
    type_name = node.type_name.upper()
    if type_name not in options.include_types or type_name in options.exclude_types:
        return False
    return (
        options.min_size <= node.width <= options.max_size
        and options.min_size <= node.height <= options.max_size
    )


def find_components(
    nodes: NodeInput,
    options: Union[FindOptions, dict, None] = None,
) -> List[DesignNode]:
    """Collect qualifying nodes from a forest of design nodes.

    The top-level list is depth 0; children of a depth-d node are visited
    only while d < max_depth.
    """
    opts = coerce_options(FindOptions, options)
    found: List[DesignNode] = []

    def traverse(level: Sequence[DesignNode], depth: int) -> None:
        for node in level:
            if len(found) >= opts.max_components:
                return
            if node.type_name.upper() in opts.exclude_types:
                continue
            if qualifies(node, opts):
                found.append(node)
            if node.children and depth < opts.max_depth and len(found) < opts.max_components:
                traverse(node.children, depth + 1)

    traverse(_as_nodes(nodes), 0)
    logger.debug(
        "find_components: found=%d (limit=%d, max_depth=%d)",
        len(found), opts.max_components, opts.max_depth,
    )
    return found


def find_by_type(
    nodes: NodeInput,
    node_type: Any,
    options: Union[FindOptions, dict, None] = None,
) -> List[DesignNode]:
    """Same walk as find_components, restricted to a single node type."""
    opts = coerce_options(FindOptions, options)
    type_name = getattr(node_type, "value", node_type)
    narrowed = opts.model_copy(update={"include_types": [str(type_name).upper()]})
    return find_components(nodes, narrowed)


def find_top_level(
    nodes: NodeInput,
    options: Union[FindOptions, dict, None] = None,
) -> List[DesignNode]:
    """Top-level nodes and their immediate children only."""
    opts = coerce_options(FindOptions, options)
    return find_components(nodes, opts.model_copy(update={"max_depth": 1}))


def paginate_components(
    nodes: NodeInput,
    page: int = 0,
    page_size: int = 20,
    options: Union[FindOptions, dict, None] = None,
) -> Page:
    """Zero-based page slice of the filtered component list."""
    page = max(0, page)
    page_size = max(1, page_size)
    components = find_components(nodes, options)
    start = page * page_size
    end = start + page_size
    return Page(
        items=components[start:end],
        total=len(components),
        page=page,
        page_size=page_size,
        has_more=end < len(components),
    )


def sanitize_component(node: Optional[DesignNode]) -> Optional[DesignNode]:
    """Clamp name/text length and child count before metadata extraction."""
    if node is None:
        return None

    text = node.text
    if text is not None and len(text.characters) > MAX_TEXT_LENGTH:
        text = TextContent(characters=text.characters[:MAX_TEXT_LENGTH], style=text.style)

    children = tuple(
        c for c in (sanitize_component(child) for child in node.children[:MAX_SANITIZED_CHILDREN])
        if c is not None
    )
    return dataclasses.replace(
        node,
        name=node.name[:MAX_NAME_LENGTH],
        text=text,
        children=children,
    )
