"""
Pydantic models for leads, relationships, memories and the API payloads.

Field names are snake_case in Python and camelCase on the wire; rows coming
back from Postgres (snake_case columns) validate directly.
"""

import json
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import (
    AnyHttpUrl,
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    field_validator,
)
from pydantic.alias_generators import to_camel

from .config import EMBEDDING_DIMENSIONS, MAX_INGEST_URLS


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class LeadCategory(str, Enum):
    INFLUENCER = "influencer"
    JOURNALIST = "journalist"
    PUBLISHER = "publisher"


def _parse_vector(value: Any) -> Any:
    # PostgREST returns pgvector columns as "[0.1,0.2,...]"
    if isinstance(value, str):
        return json.loads(value)
    return value


# ============================================
# Leads
# ============================================

class LeadBase(CamelModel):
    category: LeadCategory
    name: str = Field(min_length=1, max_length=255)
    email: EmailStr
    bio: str = Field(min_length=1)
    source_url: str = Field(min_length=1)

    @field_validator("name", "bio", "source_url")
    @classmethod
    def not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value

    @field_validator("email")
    @classmethod
    def lower_email(cls, value: str) -> str:
        # Emails are unique case-insensitively; stored lowercased
        return value.lower()


class Lead(LeadBase):
    """A stored lead, embedding included."""
    id: str
    embedding: List[float] = Field(
        min_length=EMBEDDING_DIMENSIONS, max_length=EMBEDDING_DIMENSIONS, repr=False
    )

    @field_validator("embedding", mode="before")
    @classmethod
    def parse_embedding(cls, value: Any) -> Any:
        return _parse_vector(value)

    def public(self) -> "LeadOut":
        return LeadOut(**self.model_dump(exclude={"embedding"}))


class LeadOut(LeadBase):
    """Lead as returned by the API (no embedding)."""
    id: str


class NewLead(LeadBase):
    """Validated insert payload."""
    embedding: List[float] = Field(
        min_length=EMBEDDING_DIMENSIONS, max_length=EMBEDDING_DIMENSIONS, repr=False
    )


class LeadCreate(LeadBase):
    """Direct API insertion; the embedding is generated when omitted."""
    embedding: Optional[List[float]] = Field(
        default=None, min_length=EMBEDDING_DIMENSIONS, max_length=EMBEDDING_DIMENSIONS, repr=False
    )


class LeadUpdate(CamelModel):
    category: Optional[LeadCategory] = None
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    email: Optional[EmailStr] = None
    bio: Optional[str] = Field(default=None, min_length=1)
    source_url: Optional[str] = Field(default=None, min_length=1)
    embedding: Optional[List[float]] = Field(
        default=None, min_length=EMBEDDING_DIMENSIONS, max_length=EMBEDDING_DIMENSIONS, repr=False
    )

    @field_validator("email")
    @classmethod
    def lower_email(cls, value: Optional[str]) -> Optional[str]:
        return value.lower() if value else value


class ScoredLead(LeadOut):
    """Lead with its similarity to a query vector (1 - cosine distance)."""
    similarity: float


class LeadRelationship(CamelModel):
    id: str
    lead_id: str
    related_lead_id: str
    relationship_type: str


# ============================================
# Extraction
# ============================================

class SocialLink(CamelModel):
    platform: str = Field(min_length=1)
    url: AnyHttpUrl


class ExtractedLeadCandidate(CamelModel):
    """The LLM's structured guess at a lead. Never persisted as-is."""
    name: str = Field(min_length=1)
    email: Optional[EmailStr] = None
    bio: str = Field(min_length=1)
    category: LeadCategory
    social_links: Optional[List[SocialLink]] = None
    expertise: Optional[List[str]] = None
    organization: Optional[str] = None
    location: Optional[str] = None

    @field_validator("email", "organization", "location", mode="before")
    @classmethod
    def null_like_to_none(cls, value: Any) -> Any:
        if isinstance(value, str) and value.strip().lower() in ("", "null", "none", "n/a"):
            return None
        return value

    @field_validator("category", mode="before")
    @classmethod
    def lower_category(cls, value: Any) -> Any:
        return value.strip().lower() if isinstance(value, str) else value


class ScrapedContent(CamelModel):
    url: str
    content: str = ""
    title: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)


# ============================================
# Memories
# ============================================

class MemoryMetadata(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    lead_id: str
    category: str
    source_url: Optional[str] = None
    related_lead_id: Optional[str] = None
    relationship_type: Optional[str] = None
    timestamp: str


class Memory(CamelModel):
    id: str
    memory: str
    metadata: MemoryMetadata
    created_at: Optional[str] = None
    score: Optional[float] = None


class MemoryUpdate(CamelModel):
    memory: str = Field(min_length=1)


# ============================================
# Ingestion
# ============================================

class IngestRequest(CamelModel):
    urls: List[AnyHttpUrl] = Field(min_length=1, max_length=MAX_INGEST_URLS)


class IngestError(CamelModel):
    url: str
    error: str


class IngestedLead(LeadOut):
    extracted_data: Dict[str, Any] = Field(default_factory=dict)


class IngestResponse(CamelModel):
    success: bool
    processed: int
    successful: int
    failed: int
    results: List[IngestedLead]
    errors: List[IngestError]


# ============================================
# Search
# ============================================

class SearchRequest(CamelModel):
    query: str = Field(min_length=1, max_length=1000)
    category: Optional[LeadCategory] = None
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=10, ge=1, le=100)


class Pagination(CamelModel):
    page: int
    page_size: int
    total_items: int
    total_pages: int
    has_next_page: bool
    has_previous_page: bool


class SearchResponse(CamelModel):
    items: List[ScoredLead]
    pagination: Pagination
    memory_context: Optional[str] = None


class LeadPage(CamelModel):
    items: List[LeadOut]
    pagination: Pagination


# ============================================
# Relationships & knowledge graph
# ============================================

class RelationshipRequest(CamelModel):
    lead_id1: str = Field(pattern=r"^[0-9a-fA-F-]{36}$")
    lead_id2: str = Field(pattern=r"^[0-9a-fA-F-]{36}$")
    relationship_type: str = Field(min_length=1, max_length=100)


class RelationshipResponse(CamelModel):
    success: bool
    lead_id1: str
    lead_id2: str
    relationship_type: str
    relationship_id: Optional[str] = None
    message: str


class LeadDetail(LeadOut):
    memories: List[Memory] = Field(default_factory=list)


class GraphRequest(CamelModel):
    query: str = Field(min_length=1, max_length=1000)
    max_depth: Optional[int] = Field(default=None, ge=1, le=5)
    category: Optional[LeadCategory] = None


class GraphNode(CamelModel):
    id: str
    category: Optional[str] = None
    memories: List[str] = Field(default_factory=list)


class GraphEdge(CamelModel):
    source: str
    target: str
    type: str


class KnowledgeGraph(CamelModel):
    nodes: List[GraphNode]
    edges: List[GraphEdge]


class GraphResponse(KnowledgeGraph):
    query: str
    max_depth: Optional[int] = None
    timestamp: str


def build_pagination(page: int, page_size: int, total_items: int) -> Pagination:
    """Pagination metadata; total_pages = ceil(total_items / page_size)."""
    total_pages = -(-total_items // page_size) if page_size > 0 else 0
    return Pagination(
        page=page,
        page_size=page_size,
        total_items=total_items,
        total_pages=total_pages,
        has_next_page=page < total_pages,
        has_previous_page=page > 1,
    )
