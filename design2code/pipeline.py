"""End-to-end design-to-code pipeline.

    Figma file ──get_file──▶ DesignNode tree ──find/paginate──▶ candidates
    candidate ──sanitize → simplify → optimize_metadata──▶ metadata
    metadata ──GenerationOrchestrator.generate_with_fallback──▶ component code

Usage:
    figma = FigmaClient()
    orchestrator = GenerationOrchestrator(GeminiClient())
    pipeline = DesignToCodePipeline(figma, orchestrator)
    page = await pipeline.load_components("6kGd851qaAX4TiL44vpIrO")
    result = await pipeline.generate_component(page.items[0], siblings=page.items[1:])
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence, Union

from design2code import settings
from design2code.design.simplifier import simplify
from design2code.design.tree_walker import paginate_components, sanitize_component
from design2code.errors import ValidationError
from design2code.generation.orchestrator import GenerationOrchestrator
from design2code.integrations.figma_client import FigmaClient, extract_file_key
from design2code.logging_config import get_pipeline_logger
from design2code.models import DesignNode, GenerationResult, Page, nodes_from_dicts
from design2code.prompts.token_budget import optimize_metadata
from design2code.schemas import (
    FindOptions,
    GenerationParams,
    SimplifyOptions,
    StrategyRung,
    coerce_options,
)

logger = logging.getLogger(__name__)

NodeLike = Union[DesignNode, Dict[str, Any]]


def _to_node(value: Optional[NodeLike]) -> Optional[DesignNode]:
    if isinstance(value, DesignNode):
        return value
    return DesignNode.from_dict(value)


class DesignToCodePipeline:
    """Wires the Figma client, design stage and orchestrator together.

    Args:
        figma: Design source client.
        orchestrator: Generation orchestrator.
        log_file: When set, the package logger writes to this file under
            LOG_DIR as well as to the console.
    """

    def __init__(
        self,
        figma: FigmaClient,
        orchestrator: GenerationOrchestrator,
        log_file: Optional[str] = None,
    ):
        self.figma = figma
        self.orchestrator = orchestrator
        if log_file:
            get_pipeline_logger(log_file)

    async def load_components(
        self,
        file_key: str,
        find_options: Union[FindOptions, dict, None] = None,
        page: int = 0,
        page_size: int = 20,
        depth: Optional[int] = None,
    ) -> Page:
        """Fetch a file and return one page of candidate components."""
        file_key = extract_file_key(file_key)
        data = await self.figma.get_file(file_key, depth=depth)
        roots = nodes_from_dicts(data["document"].get("children"))
        result = paginate_components(roots, page=page, page_size=page_size, options=find_options)
        logger.info(
            "load_components: file=%s, total=%d, page=%d, returned=%d",
            file_key, result.total, result.page, len(result.items),
        )
        return result

    def prepare_metadata(
        self,
        node: Optional[NodeLike],
        simplify_options: Union[SimplifyOptions, dict, None] = None,
        metadata_budget: int = settings.METADATA_TOKEN_BUDGET,
    ) -> Optional[Dict[str, Any]]:
        """sanitize → simplify → optimize for one node; None for no input."""
        design_node = sanitize_component(_to_node(node))
        if design_node is None:
            return None
        metadata = simplify(design_node, coerce_options(SimplifyOptions, simplify_options))
        if metadata is None:
            return None
        return optimize_metadata(metadata, metadata_budget)

    async def generate_component(
        self,
        node: Optional[NodeLike],
        siblings: Optional[Sequence[NodeLike]] = None,
        simplify_options: Union[SimplifyOptions, dict, None] = None,
        metadata_budget: int = settings.METADATA_TOKEN_BUDGET,
        ladder: Optional[Sequence[Union[StrategyRung, dict]]] = None,
        timeout: Optional[float] = None,
    ) -> GenerationResult:
        """Generate one component from a design node."""
        metadata = self.prepare_metadata(node, simplify_options, metadata_budget)
        if not metadata:
            raise ValidationError("At least one component is required")

        sibling_metadata: List[Dict[str, Any]] = []
        for sibling in siblings or []:
            prepared = self.prepare_metadata(sibling, simplify_options, metadata_budget)
            if prepared and prepared.get("id") != metadata.get("id"):
                sibling_metadata.append(prepared)

        return await self.orchestrator.generate_with_fallback(
            metadata,
            ladder,
            siblings=sibling_metadata,
            timeout=timeout,
        )

    async def generate_page(
        self,
        nodes: Optional[Sequence[NodeLike]],
        params: Union[GenerationParams, dict, None] = None,
        simplify_options: Union[SimplifyOptions, dict, None] = None,
        metadata_budget: int = settings.METADATA_TOKEN_BUDGET,
    ) -> GenerationResult:
        """Generate one page component from the page's top-level nodes."""
        components = [
            m for m in (
                self.prepare_metadata(n, simplify_options, metadata_budget) for n in nodes or []
            )
            if m
        ]
        if not components:
            raise ValidationError("At least one component is required")
        return await self.orchestrator.generate_page(components, params)

    async def preview_url(self, file_key: str, node_id: str) -> Optional[str]:
        """Rendered preview of a node for side-by-side comparison."""
        return await self.figma.get_image_url(file_key, node_id)
