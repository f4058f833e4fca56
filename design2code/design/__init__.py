"""Design stage: tree walking, metadata simplification, batch extraction."""

from design2code.design.batch import process_components_in_batches
from design2code.design.simplifier import (
    SemanticType,
    detect_semantic_type,
    extract_all_text_content,
    extract_layout_constraints,
    simplify,
)
from design2code.design.tree_walker import (
    find_by_type,
    find_components,
    find_top_level,
    paginate_components,
    sanitize_component,
)

__all__ = [
    "SemanticType",
    "detect_semantic_type",
    "extract_all_text_content",
    "extract_layout_constraints",
    "find_by_type",
    "find_components",
    "find_top_level",
    "paginate_components",
    "process_components_in_batches",
    "sanitize_component",
    "simplify",
]
