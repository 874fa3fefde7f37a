"""
Search Pipeline - Semantic lead search with optional memory context.

1. Embed the query (failures here fail the search)
2. Rank leads by vector distance, one page at a time
3. Best-effort memory context for the returned leads
4. Pagination metadata
"""

from typing import Optional

from ..errors import ConfigurationMissingError
from ..models import LeadCategory, SearchResponse, build_pagination
from .db.lead_store import BaseLeadStore
from .extraction.embeddings import EmbeddingGenerator, normalize_dimensions
from .memory.service import LeadMemoryService


class SearchPipeline:
    """Query text -> ranked, paginated leads."""

    def __init__(
        self,
        embedder: EmbeddingGenerator,
        store: BaseLeadStore,
        memory: Optional[LeadMemoryService] = None,
        context_limit: int = 3,
    ):
        self.embedder = embedder
        self.store = store
        self.memory = memory
        self.context_limit = context_limit

    async def _memory_context(self, query: str, lead_ids: list) -> Optional[str]:
        if self.memory is None or not lead_ids:
            return None
        try:
            context = await self.memory.search_context(query, lead_ids, self.context_limit)
        except ConfigurationMissingError:
            raise
        except Exception as e:
            print(f"[Search] Failed to get memory context: {e}", flush=True)
            return None
        return context or None

    async def search(
        self,
        query: str,
        category: Optional[LeadCategory] = None,
        page: int = 1,
        page_size: int = 10,
    ) -> SearchResponse:
        vector = normalize_dimensions(await self.embedder.embed(query))

        items, total_items = await self.store.search(vector, category, page, page_size)
        print(
            f"[Search] '{query[:50]}' category={getattr(category, 'value', category)} "
            f"page={page} -> {len(items)}/{total_items}",
            flush=True,
        )

        memory_context = await self._memory_context(query, [item.id for item in items])

        return SearchResponse(
            items=items,
            pagination=build_pagination(page, page_size, total_items),
            memory_context=memory_context,
        )
