"""
Lead Service - Lead CRUD, relationships, lead details and the knowledge graph.

Wraps the lead store with embedding generation and best-effort memory
bookkeeping. The embedder and memory service may be passed as zero-argument
providers; they are resolved on first use, so reads that never embed work
without an embedding key.
"""

from datetime import datetime, timezone
from typing import Callable, List, Optional, Tuple, Union

from ..errors import ConfigurationMissingError, NotFoundError, ValidationFailureError
from ..models import (
    GraphResponse,
    Lead,
    LeadCategory,
    LeadCreate,
    LeadDetail,
    LeadRelationship,
    LeadUpdate,
    Memory,
    NewLead,
    RelationshipResponse,
    ScoredLead,
)
from .db.lead_store import BaseLeadStore
from .extraction.embeddings import EmbeddingGenerator, create_lead_text
from .memory.service import LeadMemoryService

# Changing any of these changes the canonical embedding text
EMBEDDED_FIELDS = {"name", "bio", "category"}

EmbedderSource = Union[EmbeddingGenerator, Callable[[], EmbeddingGenerator]]
MemorySource = Union[LeadMemoryService, Callable[[], LeadMemoryService], None]


class LeadService:
    def __init__(self, store: BaseLeadStore, embedder: EmbedderSource, memory: MemorySource = None):
        self.store = store
        self._embedder = embedder
        self._memory = memory

    @property
    def embedder(self) -> EmbeddingGenerator:
        if callable(self._embedder):
            self._embedder = self._embedder()
        return self._embedder

    @property
    def memory(self) -> Optional[LeadMemoryService]:
        if callable(self._memory):
            self._memory = self._memory()
        return self._memory

    def _optional_memory(self) -> Optional[LeadMemoryService]:
        """Memory service for best-effort bookkeeping; None when unconfigured."""
        try:
            return self.memory
        except ConfigurationMissingError as e:
            print(f"[Leads] Memory unavailable: {e.message}", flush=True)
            return None

    # ---------------------------------------------
    # CRUD
    # ---------------------------------------------

    async def list_leads(
        self, category: Optional[LeadCategory] = None, page: int = 1, page_size: int = 10
    ) -> Tuple[List[Lead], int]:
        return await self.store.list(category, page, page_size)

    async def create_lead(self, data: LeadCreate) -> Lead:
        embedding = data.embedding
        if embedding is None:
            embedding = await self.embedder.embed(create_lead_text(data))
        return await self.store.create(NewLead(**data.model_dump(exclude={"embedding"}), embedding=embedding))

    async def update_lead(self, lead_id: str, changes: LeadUpdate) -> Lead:
        fields = changes.model_dump(exclude_none=True)
        if changes.embedding is None and EMBEDDED_FIELDS & fields.keys():
            current = await self.store.get(lead_id)
            merged = current.model_copy(update=fields)
            fields["embedding"] = await self.embedder.embed(create_lead_text(merged))
            print(f"[Leads] Regenerated embedding for {lead_id}", flush=True)
        return await self.store.update(lead_id, LeadUpdate(**fields))

    async def delete_lead(self, lead_id: str) -> Lead:
        lead = await self.store.delete(lead_id)
        memory = self._optional_memory()
        if memory is not None:
            try:
                removed = await memory.delete_lead_memories(lead_id)
                print(f"[Leads] Deleted {removed} memories for {lead_id}", flush=True)
            except Exception as e:
                print(f"[Leads] Failed to delete memories for {lead_id}: {e}", flush=True)
        return lead

    async def find_similar(self, lead_id: str, limit: int = 10) -> List[ScoredLead]:
        lead = await self.store.get(lead_id)
        return await self.store.find_similar(lead.embedding, limit, exclude_id=lead_id)

    # ---------------------------------------------
    # Lead details
    # ---------------------------------------------

    async def _memories(self, lead_id: str) -> List[Memory]:
        memory = self._optional_memory()
        if memory is None:
            return []
        try:
            return await memory.get_lead_memories(lead_id)
        except Exception as e:
            print(f"[Leads] Failed to fetch lead memories: {e}", flush=True)
            return []

    async def get_lead(self, lead_id: str) -> LeadDetail:
        """Lead plus its memories; memories are empty if the memory store fails."""
        lead = await self.store.get(lead_id)
        memories = await self._memories(lead_id)
        return LeadDetail(**lead.public().model_dump(), memories=memories)

    # ---------------------------------------------
    # Relationships
    # ---------------------------------------------

    async def add_relationship(
        self, lead_id1: str, lead_id2: str, relationship_type: str
    ) -> RelationshipResponse:
        """
        Directed edge lead_id1 -> lead_id2.

        Both leads must exist (NotFoundError otherwise) and must differ. The
        edge row is written first; the relationship memory is best-effort.
        """
        if lead_id1 == lead_id2:
            raise ValidationFailureError("A lead cannot have a relationship with itself")

        for lead_id in (lead_id1, lead_id2):
            try:
                await self.store.get(lead_id)
            except NotFoundError:
                raise NotFoundError("One or both leads not found") from None

        relationship = await self.store.create_relationship(lead_id1, lead_id2, relationship_type)

        memory = self._optional_memory()
        if memory is not None:
            try:
                await memory.add_relationship(lead_id1, lead_id2, relationship_type)
            except Exception as e:
                print(f"[Leads] Failed to store relationship memory: {e}", flush=True)

        return RelationshipResponse(
            success=True,
            lead_id1=lead_id1,
            lead_id2=lead_id2,
            relationship_type=relationship_type,
            relationship_id=relationship.id,
            message=f"Relationship '{relationship_type}' established between leads",
        )

    async def list_relationships(self, lead_id: str) -> List[LeadRelationship]:
        await self.store.get(lead_id)
        return await self.store.list_relationships(lead_id)

    async def delete_relationship(self, relationship_id: str) -> LeadRelationship:
        return await self.store.delete_relationship(relationship_id)

    # ---------------------------------------------
    # Knowledge graph
    # ---------------------------------------------

    async def query_graph(
        self, query: str, max_depth: Optional[int] = None, category: Optional[LeadCategory] = None
    ) -> GraphResponse:
        """One-hop graph derived from memory search; max_depth is echoed back."""
        if self.memory is None:
            nodes, edges = [], []
        else:
            graph = await self.memory.query_graph(query, category)
            nodes, edges = graph.nodes, graph.edges

        return GraphResponse(
            nodes=nodes,
            edges=edges,
            query=query,
            max_depth=max_depth,
            timestamp=datetime.now(timezone.utc).isoformat(),
        )
