"""Chunked component extraction with progress reporting.

Finds candidate components, then simplifies them in sequential chunks with
a short pause between chunks. Chunks run in order so progress counts only
ever grow.
"""

from __future__ import annotations

import asyncio
import logging
import math
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from design2code import settings
from design2code.design.simplifier import simplify
from design2code.design.tree_walker import NodeInput, find_components
from design2code.models import BatchResult
from design2code.schemas import FindOptions, SimplifyOptions, coerce_options

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[Dict[str, Any]], Any]


async def process_components_in_batches(
    nodes: NodeInput,
    find_options: Union[FindOptions, dict, None] = None,
    *,
    batch_size: int = settings.BATCH_SIZE,
    max_components: int = settings.BATCH_MAX_COMPONENTS,
    simplify_options: Union[SimplifyOptions, dict, None] = None,
    on_progress: Optional[ProgressCallback] = None,
    pause: float = settings.BATCH_CHUNK_PAUSE,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> BatchResult:
    """Simplify every found component, ``batch_size`` at a time.

    ``on_progress`` receives {processed, total, percentage, current_batch,
    total_batches} after each chunk and may be sync or async.
    """
    batch_size = max(1, batch_size)
    simplify_opts = coerce_options(
        SimplifyOptions,
        simplify_options or {"token_budget": settings.BATCH_ITEM_TOKEN_BUDGET},
    )

    find_opts = coerce_options(FindOptions, find_options or {"max_components": max_components})
    found = find_components(nodes, find_opts)
    selected = found[:max_components]
    total_batches = math.ceil(len(selected) / batch_size)

    logger.info(
        "process_components_in_batches: found=%d, processing=%d in %d batches of %d",
        len(found), len(selected), total_batches, batch_size,
    )

    processed: List[Dict[str, Any]] = []
    for index in range(total_batches):
        chunk = selected[index * batch_size:(index + 1) * batch_size]
        results = (simplify(component, simplify_opts) for component in chunk)
        processed.extend(r for r in results if r is not None)

        if on_progress is not None:
            outcome = on_progress({
                "processed": len(processed),
                "total": len(selected),
                "percentage": round((index + 1) / total_batches * 100),
                "current_batch": index + 1,
                "total_batches": total_batches,
            })
            if asyncio.iscoroutine(outcome):
                await outcome

        if index < total_batches - 1 and pause > 0:
            await sleep(pause)

    return BatchResult(
        components=processed,
        total_found=len(found),
        total_processed=len(processed),
        batches_processed=total_batches,
        batch_size=batch_size,
        processed_at=datetime.now(timezone.utc).isoformat(),
    )
