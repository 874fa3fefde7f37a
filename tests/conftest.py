"""
Shared fixtures: in-memory stores and deterministic stand-ins for the
fetch, LLM and embedding providers (see doubles.py).
"""

from typing import Optional

import pytest

from leadnexus.models import LeadCategory, NewLead
from leadnexus.services.db.lead_store import InMemoryLeadStore
from leadnexus.services.memory.service import LeadMemoryService
from leadnexus.services.memory.store import InMemoryMemoryStore

from doubles import FailingMemoryStore, FakeEmbedder, text_vector


@pytest.fixture
def embedder():
    return FakeEmbedder()


@pytest.fixture
def lead_store():
    return InMemoryLeadStore()


@pytest.fixture
def memory_store(embedder):
    return InMemoryMemoryStore(embedder)


@pytest.fixture
def memory(memory_store):
    return LeadMemoryService(memory_store)


@pytest.fixture
def failing_memory():
    return LeadMemoryService(FailingMemoryStore())


@pytest.fixture
def make_lead(lead_store):
    """Async factory inserting a lead whose embedding is derived from its bio."""
    counter = {"n": 0}

    async def create(
        name: str,
        category: LeadCategory = LeadCategory.JOURNALIST,
        email: Optional[str] = None,
        bio: Optional[str] = None,
    ):
        counter["n"] += 1
        bio = bio or f"{name} covers technology news"
        return await lead_store.create(NewLead(
            name=name,
            category=category,
            email=email or f"lead{counter['n']}@example.com",
            bio=bio,
            source_url=f"https://example.com/{counter['n']}",
            embedding=text_vector(bio),
        ))

    return create
