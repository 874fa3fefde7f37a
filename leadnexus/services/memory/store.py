"""
Memory Store - Free-text notes per owner (a lead id) with similarity search.

Backends:
- SupabaseMemoryStore: lead_memories table + match_memories RPC
- InMemoryMemoryStore: in-process cosine search, for local runs and tests

Both embed memory text with the injected EmbeddingGenerator.
"""

import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from ...errors import NotFoundError
from ...models import Memory
from ..db.lead_store import cosine_distance
from ..db.supabase_client import SupabaseClient
from ..extraction.embeddings import EmbeddingGenerator, format_embedding_for_postgres

MEMORIES_TABLE = "lead_memories"
MEMORY_COLUMNS = "id,owner_id,memory,metadata,created_at"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _to_memory(row: Dict[str, Any]) -> Memory:
    metadata = dict(row.get("metadata") or {})
    metadata.setdefault("leadId", row.get("owner_id"))
    metadata.setdefault("category", "lead")
    metadata.setdefault("timestamp", row.get("created_at") or _now())
    return Memory.model_validate({
        "id": str(row["id"]),
        "memory": row["memory"],
        "metadata": metadata,
        "created_at": row.get("created_at"),
        "score": row.get("similarity"),
    })


class BaseMemoryStore(ABC):
    """Abstract memory store keyed by an opaque owner id."""

    def __init__(self, embedder: EmbeddingGenerator):
        self.embedder = embedder

    @property
    @abstractmethod
    def name(self) -> str:
        """Backend name for logging."""

    @abstractmethod
    async def add(self, owner_id: str, text: str, metadata: Dict[str, Any]) -> Memory:
        pass

    @abstractmethod
    async def search(
        self,
        query: str,
        owner_id: Optional[str] = None,
        limit: int = 10,
        category: Optional[str] = None,
        vector: Optional[List[float]] = None,
    ) -> List[Memory]:
        """
        Memories most similar to `query`, optionally scoped to one owner and metadata category.

        Pass `vector` to reuse an embedding of `query` already computed by the caller.
        """

    @abstractmethod
    async def get_all(self, owner_id: str) -> List[Memory]:
        pass

    @abstractmethod
    async def update(self, memory_id: str, text: str) -> Memory:
        pass

    @abstractmethod
    async def delete(self, memory_id: str) -> None:
        pass

    @abstractmethod
    async def delete_all(self, owner_id: str) -> int:
        """Delete every memory of an owner; returns how many were removed."""


class SupabaseMemoryStore(BaseMemoryStore):
    """Memories in Supabase with pgvector search."""

    def __init__(self, client: SupabaseClient, embedder: EmbeddingGenerator):
        super().__init__(embedder)
        self.client = client

    @property
    def name(self) -> str:
        return "supabase"

    async def add(self, owner_id: str, text: str, metadata: Dict[str, Any]) -> Memory:
        embedding = await self.embedder.embed(text)
        result = await self.client.table(MEMORIES_TABLE).insert({
            "owner_id": owner_id,
            "memory": text,
            "metadata": metadata,
            "embedding": format_embedding_for_postgres(embedding),
        }).execute()
        return _to_memory(result.data[0])

    async def search(
        self,
        query: str,
        owner_id: Optional[str] = None,
        limit: int = 10,
        category: Optional[str] = None,
        vector: Optional[List[float]] = None,
    ) -> List[Memory]:
        embedding = vector or await self.embedder.embed(query)
        result = await self.client.rpc("match_memories", {
            "query_embedding": format_embedding_for_postgres(embedding),
            "match_owner": owner_id,
            "match_category": category,
            "match_limit": limit,
        }).execute()
        return [_to_memory(row) for row in result.data]

    async def get_all(self, owner_id: str) -> List[Memory]:
        result = await self.client.table(MEMORIES_TABLE).select(MEMORY_COLUMNS).eq(
            "owner_id", owner_id
        ).order("created_at", desc=True).execute()
        return [_to_memory(row) for row in result.data]

    async def update(self, memory_id: str, text: str) -> Memory:
        embedding = await self.embedder.embed(text)
        result = await self.client.table(MEMORIES_TABLE).update({
            "memory": text,
            "embedding": format_embedding_for_postgres(embedding),
            "updated_at": _now(),
        }).eq("id", memory_id).execute()
        if not result.data:
            raise NotFoundError("Memory not found")
        return _to_memory(result.data[0])

    async def delete(self, memory_id: str) -> None:
        result = await self.client.table(MEMORIES_TABLE).delete().eq("id", memory_id).execute()
        if not result.data:
            raise NotFoundError("Memory not found")

    async def delete_all(self, owner_id: str) -> int:
        result = await self.client.table(MEMORIES_TABLE).delete().eq("owner_id", owner_id).execute()
        return len(result.data)


class InMemoryMemoryStore(BaseMemoryStore):
    """Process-local memories ranked by cosine similarity."""

    def __init__(self, embedder: EmbeddingGenerator):
        super().__init__(embedder)
        self._rows: Dict[str, Dict[str, Any]] = {}

    @property
    def name(self) -> str:
        return "memory"

    async def add(self, owner_id: str, text: str, metadata: Dict[str, Any]) -> Memory:
        row = {
            "id": str(uuid.uuid4()),
            "owner_id": owner_id,
            "memory": text,
            "metadata": dict(metadata),
            "embedding": await self.embedder.embed(text),
            "created_at": _now(),
        }
        self._rows[row["id"]] = row
        return _to_memory(row)

    async def search(
        self,
        query: str,
        owner_id: Optional[str] = None,
        limit: int = 10,
        category: Optional[str] = None,
        vector: Optional[List[float]] = None,
    ) -> List[Memory]:
        vector = vector or await self.embedder.embed(query)
        candidates = [
            row for row in self._rows.values()
            if (owner_id is None or row["owner_id"] == owner_id)
            and (category is None or row["metadata"].get("category") == category)
        ]
        scored = sorted(
            ({**row, "similarity": 1.0 - cosine_distance(row["embedding"], vector)} for row in candidates),
            key=lambda row: row["similarity"],
            reverse=True,
        )
        return [_to_memory(row) for row in scored[:limit]]

    async def get_all(self, owner_id: str) -> List[Memory]:
        rows = [row for row in self._rows.values() if row["owner_id"] == owner_id]
        rows.sort(key=lambda row: row["created_at"], reverse=True)
        return [_to_memory(row) for row in rows]

    async def update(self, memory_id: str, text: str) -> Memory:
        row = self._rows.get(memory_id)
        if row is None:
            raise NotFoundError("Memory not found")
        embedding = await self.embedder.embed(text)
        row["memory"] = text
        row["embedding"] = embedding
        return _to_memory(row)

    async def delete(self, memory_id: str) -> None:
        if self._rows.pop(memory_id, None) is None:
            raise NotFoundError("Memory not found")

    async def delete_all(self, owner_id: str) -> int:
        ids = [memory_id for memory_id, row in self._rows.items() if row["owner_id"] == owner_id]
        for memory_id in ids:
            del self._rows[memory_id]
        return len(ids)
