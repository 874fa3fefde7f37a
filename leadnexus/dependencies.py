"""
Dependency wiring - builds provider clients and pipelines from Settings.

Providers are constructed lazily on first use, so an unconfigured provider
only fails the requests that need it. Routes receive everything through
FastAPI Depends; tests swap in their own Container via
app.dependency_overrides[get_container].
"""

from functools import lru_cache
from typing import Optional

from fastapi import Depends

from .config import Settings
from .services.db.lead_store import BaseLeadStore, InMemoryLeadStore, SupabaseLeadStore
from .services.db.supabase_client import SupabaseClient
from .services.extraction.embeddings import EmbeddingGenerator
from .services.extraction.extractor import LeadExtractor
from .services.ingestion import IngestionPipeline
from .services.leads import LeadService
from .services.memory.service import LeadMemoryService
from .services.memory.store import BaseMemoryStore, InMemoryMemoryStore, SupabaseMemoryStore
from .services.scraping.fetchers import BaseFetcher, get_fetcher
from .services.search import SearchPipeline

STORE_BACKENDS = ("supabase", "memory")


class Container:
    """Process-wide provider clients, built on first access."""

    def __init__(
        self,
        settings: Settings,
        lead_store: Optional[BaseLeadStore] = None,
        memory_store: Optional[BaseMemoryStore] = None,
        embedder: Optional[EmbeddingGenerator] = None,
        extractor: Optional[LeadExtractor] = None,
        fetcher: Optional[BaseFetcher] = None,
    ):
        self.settings = settings
        self._supabase: Optional[SupabaseClient] = None
        self._lead_store = lead_store
        self._memory_store = memory_store
        self._embedder = embedder
        self._extractor = extractor
        self._fetcher = fetcher

    @property
    def supabase(self) -> SupabaseClient:
        if self._supabase is None:
            self._supabase = SupabaseClient(self.settings.supabase_url, self.settings.supabase_key)
        return self._supabase

    @property
    def embedder(self) -> EmbeddingGenerator:
        if self._embedder is None:
            self._embedder = EmbeddingGenerator(
                self.settings.openai_api_key, model=self.settings.embedding_model
            )
        return self._embedder

    @property
    def extractor(self) -> LeadExtractor:
        if self._extractor is None:
            self._extractor = LeadExtractor(self.settings.openai_api_key, model=self.settings.openai_model)
        return self._extractor

    @property
    def fetcher(self) -> BaseFetcher:
        if self._fetcher is None:
            self._fetcher = get_fetcher(
                self.settings.fetcher,
                firecrawl_api_key=self.settings.firecrawl_api_key,
                apify_api_token=self.settings.apify_api_token,
            )
        return self._fetcher

    @property
    def lead_store(self) -> BaseLeadStore:
        if self._lead_store is None:
            backend = self.settings.lead_store
            if backend == "memory":
                self._lead_store = InMemoryLeadStore()
            elif backend == "supabase":
                self._lead_store = SupabaseLeadStore(self.supabase)
            else:
                raise ValueError(f"Unknown lead store: {backend}. Available: {list(STORE_BACKENDS)}")
            print(f"[Config] Lead store: {backend}", flush=True)
        return self._lead_store

    @property
    def memory_store(self) -> BaseMemoryStore:
        if self._memory_store is None:
            backend = self.settings.resolved_memory_store
            if backend == "memory":
                self._memory_store = InMemoryMemoryStore(self.embedder)
            elif backend == "supabase":
                self._memory_store = SupabaseMemoryStore(self.supabase, self.embedder)
            else:
                raise ValueError(f"Unknown memory store: {backend}. Available: {list(STORE_BACKENDS)}")
            print(f"[Config] Memory store: {backend}", flush=True)
        return self._memory_store

    @property
    def memory(self) -> LeadMemoryService:
        return LeadMemoryService(
            self.memory_store,
            context_limit=self.settings.memory_context_limit,
            graph_limit=self.settings.graph_search_limit,
        )

    async def aclose(self) -> None:
        if self._supabase is not None:
            await self._supabase.aclose()
        close = getattr(self._fetcher, "aclose", None)
        if close is not None:
            await close()


@lru_cache()
def get_container() -> Container:
    return Container(Settings.from_env())


def get_lead_service(container: Container = Depends(get_container)) -> LeadService:
    # Embedder and memory are built only by the operations that use them
    return LeadService(container.lead_store, lambda: container.embedder, lambda: container.memory)


def get_memory_service(container: Container = Depends(get_container)) -> LeadMemoryService:
    return container.memory


def get_search_pipeline(container: Container = Depends(get_container)) -> SearchPipeline:
    return SearchPipeline(
        container.embedder,
        container.lead_store,
        container.memory,
        context_limit=container.settings.memory_context_limit,
    )


def get_ingestion_pipeline(container: Container = Depends(get_container)) -> IngestionPipeline:
    return IngestionPipeline(
        fetcher=container.fetcher,
        extractor=container.extractor,
        embedder=container.embedder,
        store=container.lead_store,
        memory=container.memory,
        concurrency=container.settings.ingest_concurrency,
    )
