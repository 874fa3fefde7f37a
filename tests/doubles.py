"""
Test doubles for the fetch, LLM, embedding and memory providers.
"""

import hashlib
import re
from typing import Dict, List, Optional

from leadnexus.config import EMBEDDING_DIMENSIONS
from leadnexus.errors import UpstreamProviderError
from leadnexus.models import ExtractedLeadCandidate, ScrapedContent
from leadnexus.services.extraction.embeddings import EmbeddingGenerator, normalize_dimensions
from leadnexus.services.memory.store import BaseMemoryStore
from leadnexus.services.scraping.fetchers import BaseFetcher


def text_vector(text: str, dimensions: int = EMBEDDING_DIMENSIONS) -> List[float]:
    """Hashed bag-of-words vector; texts sharing words are similar."""
    vector = [0.0] * dimensions
    words = re.findall(r"[a-z0-9]+", text.lower())
    for word in words:
        vector[int(hashlib.md5(word.encode()).hexdigest(), 16) % dimensions] += 1.0
    if not words:
        vector[0] = 1.0
    return vector


class FakeEmbedder(EmbeddingGenerator):
    """EmbeddingGenerator whose provider call is replaced by text_vector."""

    def __init__(self, raw_dimensions: int = EMBEDDING_DIMENSIONS):
        self.model = "fake-embedding"
        self.dimensions = EMBEDDING_DIMENSIONS
        self.raw_dimensions = raw_dimensions
        self.calls: List[List[str]] = []

    async def _create(self, inputs: List[str]) -> List[List[float]]:
        self.calls.append(list(inputs))
        return [normalize_dimensions(text_vector(t, self.raw_dimensions), self.dimensions) for t in inputs]


class StubFetcher(BaseFetcher):
    """Serves canned pages; URLs in `failing` raise like an unreachable page."""

    def __init__(self, pages: Optional[Dict[str, str]] = None, failing: Optional[List[str]] = None):
        self.pages = pages or {}
        self.failing = set(failing or [])
        self.fetched: List[str] = []

    @property
    def name(self) -> str:
        return "stub"

    async def fetch(self, url: str) -> ScrapedContent:
        self.fetched.append(url)
        if url in self.failing:
            raise UpstreamProviderError(f"Failed to scrape URL {url}: HTTP 503")
        return ScrapedContent(url=url, content=self.pages.get(url, f"Profile page at {url}"))


class StubExtractor:
    """Returns the candidate registered for a URL, None otherwise."""

    def __init__(self, candidates: Optional[Dict[str, Optional[ExtractedLeadCandidate]]] = None):
        self.candidates = candidates or {}
        self.error: Optional[Exception] = None

    async def extract(self, content: str, source_url: str) -> Optional[ExtractedLeadCandidate]:
        if self.error is not None:
            raise self.error
        return self.candidates.get(source_url)

    async def extract_many(self, content: str, source_url: str) -> List[ExtractedLeadCandidate]:
        candidate = await self.extract(content, source_url)
        return [candidate] if candidate else []


class FailingMemoryStore(BaseMemoryStore):
    """Memory backend that is down."""

    def __init__(self):
        super().__init__(FakeEmbedder())

    @property
    def name(self) -> str:
        return "failing"

    async def _fail(self, *args, **kwargs):
        raise UpstreamProviderError("Memory service unavailable")

    add = search = get_all = update = delete = delete_all = _fail


def candidate(name: str, category: str = "journalist", email: Optional[str] = None, **extra) -> ExtractedLeadCandidate:
    return ExtractedLeadCandidate(
        name=name,
        email=email,
        bio=extra.pop("bio", f"{name} writes about technology and startups"),
        category=category,
        **extra,
    )
