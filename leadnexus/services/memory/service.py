"""
Lead Memory Service - Notes about leads and relationships, used to enrich
search results and to derive a knowledge graph.

Callers treat everything here as best-effort enrichment: pipelines catch
and log failures and continue without memory context.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from ...models import GraphEdge, GraphNode, KnowledgeGraph, Lead, LeadBase, Memory
from .store import BaseMemoryStore

RELATIONSHIP_CATEGORY = "relationship"


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def lead_memory_text(lead: LeadBase, additional_context: Optional[str] = None) -> str:
    """Canonical memory text for a lead."""
    lines = [
        "Lead Information:",
        f"Name: {lead.name}",
        f"Category: {lead.category.value}",
        f"Bio: {lead.bio}",
        f"Source: {lead.source_url}",
    ]
    if additional_context:
        lines.append(f"Additional Context: {additional_context}")
    return "\n".join(lines)


def build_graph(memories: List[Memory]) -> KnowledgeGraph:
    """
    Fold memory search results into nodes and edges.

    One node per distinct lead id (first-seen order) with that lead's memory
    texts; one edge per memory that carries relationship metadata.
    """
    nodes: Dict[str, GraphNode] = {}
    edges: List[GraphEdge] = []

    for memory in memories:
        metadata = memory.metadata
        node = nodes.get(metadata.lead_id)
        if node is None:
            node = GraphNode(id=metadata.lead_id, category=metadata.category)
            nodes[metadata.lead_id] = node
        node.memories.append(memory.memory)

        if metadata.relationship_type and metadata.related_lead_id:
            edges.append(GraphEdge(
                source=metadata.lead_id,
                target=metadata.related_lead_id,
                type=metadata.relationship_type,
            ))

    return KnowledgeGraph(nodes=list(nodes.values()), edges=edges)


class LeadMemoryService:
    """Memory operations scoped by lead id."""

    def __init__(self, store: BaseMemoryStore, context_limit: int = 3, graph_limit: int = 20):
        self.store = store
        self.context_limit = context_limit
        self.graph_limit = graph_limit

    async def add_for_lead(self, lead: Lead, additional_context: Optional[str] = None) -> Memory:
        metadata = {
            "leadId": lead.id,
            "category": lead.category.value,
            "sourceUrl": lead.source_url,
            "timestamp": _timestamp(),
        }
        return await self.store.add(lead.id, lead_memory_text(lead, additional_context), metadata)

    async def add_relationship(self, lead_id1: str, lead_id2: str, relationship_type: str) -> Memory:
        text = (
            f"Relationship established: Lead {lead_id1} is connected to "
            f"Lead {lead_id2} via {relationship_type}"
        )
        metadata = {
            "leadId": lead_id1,
            "relatedLeadId": lead_id2,
            "relationshipType": relationship_type,
            "category": RELATIONSHIP_CATEGORY,
            "timestamp": _timestamp(),
        }
        return await self.store.add(lead_id1, text, metadata)

    async def search_memories(
        self,
        query: str,
        lead_id: Optional[str] = None,
        limit: int = 10,
        category: Optional[str] = None,
        vector: Optional[List[float]] = None,
    ) -> List[Memory]:
        return await self.store.search(
            query, owner_id=lead_id, limit=limit, category=category, vector=vector
        )

    async def get_lead_memories(self, lead_id: str) -> List[Memory]:
        return await self.store.get_all(lead_id)

    async def update_memory(self, memory_id: str, text: str) -> Memory:
        return await self.store.update(memory_id, text)

    async def delete_memory(self, memory_id: str) -> None:
        await self.store.delete(memory_id)

    async def delete_lead_memories(self, lead_id: str) -> int:
        return await self.store.delete_all(lead_id)

    async def search_context(
        self, query: str, lead_ids: List[str], limit_per_lead: Optional[int] = None
    ) -> str:
        """
        Context string of memories relevant to `query`, in `lead_ids` order.

        Returns "" when no lead has a matching memory.
        """
        if not lead_ids:
            return ""
        limit = limit_per_lead or self.context_limit
        # One embedding of the query serves every per-lead search
        vector = await self.store.embedder.embed(query)
        relevant: List[Memory] = []
        for lead_id in lead_ids:
            relevant.extend(await self.search_memories(query, lead_id=lead_id, limit=limit, vector=vector))

        if not relevant:
            return ""

        context = "\n".join(f"- {mem.memory} (Lead: {mem.metadata.lead_id})" for mem in relevant)
        return f"Related context from memory:\n{context}"

    async def query_graph(self, query: str, category: Optional[Any] = None) -> KnowledgeGraph:
        """Point-in-time graph from one memory similarity search."""
        category_value = getattr(category, "value", category)
        memories = await self.search_memories(query, limit=self.graph_limit, category=category_value)
        return build_graph(memories)
