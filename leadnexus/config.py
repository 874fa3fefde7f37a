"""
Configuration - Settings loaded from .env.local / .env and the environment.

Loading never fails: a missing credential only becomes an error when the
provider that needs it is constructed (see errors.ConfigurationMissingError).
"""

import os
from dataclasses import dataclass, field
from typing import List, Optional
from dotenv import load_dotenv

load_dotenv(".env.local")
load_dotenv()

# Embedding settings shared by leads and memories
EMBEDDING_MODEL = "text-embedding-3-small"
EMBEDDING_DIMENSIONS = 1536

# Chat model used for lead extraction
EXTRACTION_MODEL = "gpt-4o-mini"

# Ingestion settings
MAX_INGEST_URLS = 10
INGEST_CONCURRENCY = 3


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError:
        print(f"[Config] Ignoring non-integer {name}={value!r}, using {default}")
        return default


def _env_list(name: str, default: List[str]) -> List[str]:
    value = os.getenv(name)
    if not value:
        return list(default)
    return [item.strip() for item in value.split(",") if item.strip()]


@dataclass
class Settings:
    """Runtime settings for every provider and pipeline."""
    supabase_url: str = ""
    supabase_key: str = ""
    openai_api_key: str = ""
    openai_model: str = EXTRACTION_MODEL
    embedding_model: str = EMBEDDING_MODEL
    firecrawl_api_key: str = ""
    apify_api_token: str = ""
    fetcher: str = "firecrawl"
    lead_store: str = "supabase"
    memory_store: Optional[str] = None
    ingest_concurrency: int = INGEST_CONCURRENCY
    memory_context_limit: int = 3
    graph_search_limit: int = 20
    cors_origins: List[str] = field(default_factory=lambda: ["*"])

    @property
    def resolved_memory_store(self) -> str:
        """Memory backend, following the lead store unless set explicitly."""
        return self.memory_store or self.lead_store

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            supabase_url=os.getenv("SUPABASE_URL", ""),
            supabase_key=os.getenv("SUPABASE_KEY", ""),
            openai_api_key=os.getenv("OPENAI_API_KEY", ""),
            openai_model=os.getenv("OPENAI_MODEL") or EXTRACTION_MODEL,
            embedding_model=os.getenv("EMBEDDING_MODEL") or EMBEDDING_MODEL,
            firecrawl_api_key=os.getenv("FIRECRAWL_API_KEY", ""),
            apify_api_token=os.getenv("APIFY_API_TOKEN", ""),
            fetcher=(os.getenv("FETCHER") or "firecrawl").lower(),
            lead_store=(os.getenv("LEAD_STORE") or "supabase").lower(),
            memory_store=(os.getenv("MEMORY_STORE") or "").lower() or None,
            ingest_concurrency=max(1, _env_int("INGEST_CONCURRENCY", INGEST_CONCURRENCY)),
            memory_context_limit=max(1, _env_int("MEMORY_CONTEXT_LIMIT", 3)),
            graph_search_limit=max(1, _env_int("GRAPH_SEARCH_LIMIT", 20)),
            cors_origins=_env_list("CORS_ORIGINS", ["*"]),
        )
