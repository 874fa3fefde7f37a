"""
Lead Store - CRUD over leads and relationships plus vector similarity queries.

Two backends behind one interface:
- SupabaseLeadStore: PostgREST + pgvector (search_leads RPC, see sql/schema.sql)
- InMemoryLeadStore: in-process, for local runs and tests

All writes validate lead invariants first and raise domain errors, never
raw database errors.
"""

import math
import uuid
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence, Tuple, Type

from pydantic import BaseModel, ValidationError

from ...errors import (
    DuplicateEmailError,
    InvalidReferenceError,
    MissingFieldError,
    NotFoundError,
    ValidationFailureError,
)
from ...models import (
    Lead,
    LeadCategory,
    LeadRelationship,
    LeadUpdate,
    NewLead,
    ScoredLead,
)
from ..extraction.embeddings import format_embedding_for_postgres
from .supabase_client import SupabaseClient

LEADS_TABLE = "leads"
RELATIONSHIPS_TABLE = "lead_metadata"
LEAD_COLUMNS = "id,category,name,email,bio,source_url,embedding"


def validate_model(model: Type[BaseModel], data: Any) -> BaseModel:
    """Validate a payload, translating pydantic errors to domain errors."""
    if isinstance(data, model):
        return data
    if isinstance(data, BaseModel):
        data = data.model_dump(exclude_none=True)
    try:
        return model.model_validate(data)
    except ValidationError as e:
        errors = e.errors()
        fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in errors)
        if any(err["type"] == "missing" for err in errors):
            raise MissingFieldError(f"Required field is missing: {fields}") from e
        raise ValidationFailureError(f"Invalid value for: {fields}") from e


def cosine_distance(a: Sequence[float], b: Sequence[float]) -> float:
    """1 - cosine similarity; orthogonal or zero vectors give 1.0."""
    dot_product = sum(x * y for x, y in zip(a, b))
    norm1 = math.sqrt(sum(x * x for x in a))
    norm2 = math.sqrt(sum(y * y for y in b))
    if not norm1 or not norm2:
        return 1.0
    return 1.0 - dot_product / (norm1 * norm2)


def _category_value(category: Optional[Any]) -> Optional[str]:
    if category is None:
        return None
    return category.value if isinstance(category, LeadCategory) else str(category)


class BaseLeadStore(ABC):
    """Abstract lead store."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Backend name for logging."""

    @abstractmethod
    async def create(self, data: Any) -> Lead:
        """Insert a lead. Raises DuplicateEmailError on an existing email."""

    @abstractmethod
    async def get(self, lead_id: str) -> Lead:
        """Fetch a lead or raise NotFoundError."""

    @abstractmethod
    async def find_by_email(self, email: str) -> Optional[Lead]:
        pass

    @abstractmethod
    async def update(self, lead_id: str, changes: Any) -> Lead:
        pass

    @abstractmethod
    async def delete(self, lead_id: str) -> Lead:
        """Delete a lead; its relationships go with it."""

    @abstractmethod
    async def list(
        self, category: Optional[LeadCategory] = None, page: int = 1, page_size: int = 10
    ) -> Tuple[List[Lead], int]:
        pass

    @abstractmethod
    async def find_similar(
        self, vector: Sequence[float], k: int = 10, exclude_id: Optional[str] = None
    ) -> List[ScoredLead]:
        """k nearest leads by cosine distance, most similar first."""

    @abstractmethod
    async def search(
        self,
        vector: Sequence[float],
        category: Optional[LeadCategory] = None,
        page: int = 1,
        page_size: int = 10,
    ) -> Tuple[List[ScoredLead], int]:
        """
        One page of leads ordered by vector distance.

        Returns (items, total_items) where total_items counts the same
        category filter without vector ordering.
        """

    @abstractmethod
    async def create_relationship(
        self, lead_id: str, related_lead_id: str, relationship_type: str
    ) -> LeadRelationship:
        """Insert a directed edge. Raises InvalidReferenceError for unknown leads."""

    @abstractmethod
    async def list_relationships(self, lead_id: str) -> List[LeadRelationship]:
        """Edges where the lead is either endpoint."""

    @abstractmethod
    async def delete_relationship(self, relationship_id: str) -> LeadRelationship:
        pass

    async def ping(self) -> bool:
        """Connection check for the health endpoint."""
        try:
            await self.list(page=1, page_size=1)
            return True
        except Exception as e:
            print(f"[LeadStore] Connection test failed: {e}")
            return False


# ============================================
# Supabase backend
# ============================================

class SupabaseLeadStore(BaseLeadStore):
    """Lead store on Supabase (PostgREST + pgvector)."""

    def __init__(self, client: SupabaseClient):
        self.client = client

    @property
    def name(self) -> str:
        return "supabase"

    @staticmethod
    def _row(lead: NewLead) -> Dict[str, Any]:
        row = lead.model_dump(mode="json", exclude={"embedding"})
        row["embedding"] = format_embedding_for_postgres(lead.embedding)
        return row

    async def create(self, data: Any) -> Lead:
        lead = validate_model(NewLead, data)
        result = await self.client.table(LEADS_TABLE).insert(self._row(lead)).execute()
        if not result.data:
            raise NotFoundError("Lead was not returned after insert")
        return Lead.model_validate(result.data[0])

    async def get(self, lead_id: str) -> Lead:
        result = await self.client.table(LEADS_TABLE).select(LEAD_COLUMNS).eq("id", lead_id).limit(1).execute()
        if not result.data:
            raise NotFoundError(f"Lead with ID {lead_id} not found")
        return Lead.model_validate(result.data[0])

    async def find_by_email(self, email: str) -> Optional[Lead]:
        result = await self.client.table(LEADS_TABLE).select(LEAD_COLUMNS).eq(
            "email", email.lower()
        ).limit(1).execute()
        return Lead.model_validate(result.data[0]) if result.data else None

    async def update(self, lead_id: str, changes: Any) -> Lead:
        update = validate_model(LeadUpdate, changes)
        data = update.model_dump(mode="json", exclude_none=True, exclude={"embedding"})
        if update.embedding is not None:
            data["embedding"] = format_embedding_for_postgres(update.embedding)
        if not data:
            return await self.get(lead_id)

        result = await self.client.table(LEADS_TABLE).update(data).eq("id", lead_id).execute()
        if not result.data:
            raise NotFoundError("Lead not found or you don't have permission to update it")
        return Lead.model_validate(result.data[0])

    async def delete(self, lead_id: str) -> Lead:
        # lead_metadata rows are removed by ON DELETE CASCADE
        result = await self.client.table(LEADS_TABLE).delete().eq("id", lead_id).execute()
        if not result.data:
            raise NotFoundError("Lead not found or you don't have permission to delete it")
        return Lead.model_validate(result.data[0])

    async def list(
        self, category: Optional[LeadCategory] = None, page: int = 1, page_size: int = 10
    ) -> Tuple[List[Lead], int]:
        query = self.client.table(LEADS_TABLE).select(LEAD_COLUMNS, count="exact")
        if category:
            query = query.eq("category", _category_value(category))
        start = (page - 1) * page_size
        result = await query.order("name").range(start, start + page_size - 1).execute()
        leads = [Lead.model_validate(row) for row in result.data]
        return leads, result.count if result.count is not None else len(leads)

    async def count(self, category: Optional[LeadCategory] = None) -> int:
        query = self.client.table(LEADS_TABLE).select("id", count="exact")
        if category:
            query = query.eq("category", _category_value(category))
        result = await query.limit(1).execute()
        return result.count or 0

    async def _search_rpc(
        self, vector: Sequence[float], category: Optional[LeadCategory], limit: int, offset: int
    ) -> List[ScoredLead]:
        result = await self.client.rpc(
            "search_leads",
            {
                "query_embedding": format_embedding_for_postgres(vector),
                "match_category": _category_value(category),
                "match_limit": limit,
                "match_offset": offset,
            },
        ).execute()
        return [ScoredLead.model_validate(row) for row in result.data]

    async def find_similar(
        self, vector: Sequence[float], k: int = 10, exclude_id: Optional[str] = None
    ) -> List[ScoredLead]:
        limit = k + 1 if exclude_id else k
        leads = await self._search_rpc(vector, None, limit, 0)
        return [lead for lead in leads if lead.id != exclude_id][:k]

    async def search(
        self,
        vector: Sequence[float],
        category: Optional[LeadCategory] = None,
        page: int = 1,
        page_size: int = 10,
    ) -> Tuple[List[ScoredLead], int]:
        items = await self._search_rpc(vector, category, page_size, (page - 1) * page_size)
        total = await self.count(category)
        return items, total

    async def create_relationship(
        self, lead_id: str, related_lead_id: str, relationship_type: str
    ) -> LeadRelationship:
        result = await self.client.table(RELATIONSHIPS_TABLE).insert({
            "lead_id": lead_id,
            "related_lead_id": related_lead_id,
            "relationship_type": relationship_type,
        }).execute()
        return LeadRelationship.model_validate(result.data[0])

    async def list_relationships(self, lead_id: str) -> List[LeadRelationship]:
        result = await self.client.table(RELATIONSHIPS_TABLE).select("*").or_(
            f"lead_id.eq.{lead_id}", f"related_lead_id.eq.{lead_id}"
        ).execute()
        return [LeadRelationship.model_validate(row) for row in result.data]

    async def delete_relationship(self, relationship_id: str) -> LeadRelationship:
        result = await self.client.table(RELATIONSHIPS_TABLE).delete().eq("id", relationship_id).execute()
        if not result.data:
            raise NotFoundError("Relationship not found")
        return LeadRelationship.model_validate(result.data[0])


# ============================================
# In-memory backend
# ============================================

class InMemoryLeadStore(BaseLeadStore):
    """
    In-process lead store with the same invariants as the database:
    unique email, 1536-dim embeddings, referential integrity and cascade
    delete for relationships.
    """

    def __init__(self):
        self._leads: Dict[str, Lead] = {}
        self._relationships: Dict[str, LeadRelationship] = {}

    @property
    def name(self) -> str:
        return "memory"

    def _email_taken(self, email: str, exclude_id: Optional[str] = None) -> bool:
        email = email.lower()
        return any(
            lead.email.lower() == email and lead.id != exclude_id for lead in self._leads.values()
        )

    async def create(self, data: Any) -> Lead:
        new_lead = validate_model(NewLead, data)
        if self._email_taken(new_lead.email):
            raise DuplicateEmailError("This email address is already registered")
        lead = Lead(id=str(uuid.uuid4()), **new_lead.model_dump())
        self._leads[lead.id] = lead
        return lead

    async def get(self, lead_id: str) -> Lead:
        lead = self._leads.get(lead_id)
        if lead is None:
            raise NotFoundError(f"Lead with ID {lead_id} not found")
        return lead

    async def find_by_email(self, email: str) -> Optional[Lead]:
        email = email.lower()
        for lead in self._leads.values():
            if lead.email.lower() == email:
                return lead
        return None

    async def update(self, lead_id: str, changes: Any) -> Lead:
        current = await self.get(lead_id)
        update = validate_model(LeadUpdate, changes)
        merged = {**current.model_dump(), **update.model_dump(exclude_none=True)}
        lead = validate_model(Lead, merged)
        if self._email_taken(lead.email, exclude_id=lead_id):
            raise DuplicateEmailError("This email address is already registered")
        self._leads[lead_id] = lead
        return lead

    async def delete(self, lead_id: str) -> Lead:
        lead = self._leads.pop(lead_id, None)
        if lead is None:
            raise NotFoundError("Lead not found or you don't have permission to delete it")
        self._relationships = {
            rel_id: rel
            for rel_id, rel in self._relationships.items()
            if lead_id not in (rel.lead_id, rel.related_lead_id)
        }
        return lead

    def _filtered(self, category: Optional[LeadCategory]) -> List[Lead]:
        value = _category_value(category)
        return [lead for lead in self._leads.values() if value is None or lead.category.value == value]

    async def list(
        self, category: Optional[LeadCategory] = None, page: int = 1, page_size: int = 10
    ) -> Tuple[List[Lead], int]:
        leads = sorted(self._filtered(category), key=lambda lead: lead.name)
        start = (page - 1) * page_size
        return leads[start:start + page_size], len(leads)

    def _ranked(self, vector: Sequence[float], leads: List[Lead]) -> List[ScoredLead]:
        scored = [(cosine_distance(lead.embedding, vector), lead) for lead in leads]
        scored.sort(key=lambda pair: pair[0])
        return [
            ScoredLead(**lead.model_dump(exclude={"embedding"}), similarity=1.0 - distance)
            for distance, lead in scored
        ]

    async def find_similar(
        self, vector: Sequence[float], k: int = 10, exclude_id: Optional[str] = None
    ) -> List[ScoredLead]:
        leads = [lead for lead in self._leads.values() if lead.id != exclude_id]
        return self._ranked(vector, leads)[:k]

    async def search(
        self,
        vector: Sequence[float],
        category: Optional[LeadCategory] = None,
        page: int = 1,
        page_size: int = 10,
    ) -> Tuple[List[ScoredLead], int]:
        leads = self._filtered(category)
        start = (page - 1) * page_size
        return self._ranked(vector, leads)[start:start + page_size], len(leads)

    async def create_relationship(
        self, lead_id: str, related_lead_id: str, relationship_type: str
    ) -> LeadRelationship:
        if not relationship_type:
            raise MissingFieldError("Required field is missing: relationship_type")
        if lead_id not in self._leads or related_lead_id not in self._leads:
            raise InvalidReferenceError("Referenced record does not exist")
        relationship = LeadRelationship(
            id=str(uuid.uuid4()),
            lead_id=lead_id,
            related_lead_id=related_lead_id,
            relationship_type=relationship_type,
        )
        self._relationships[relationship.id] = relationship
        return relationship

    async def list_relationships(self, lead_id: str) -> List[LeadRelationship]:
        return [
            rel for rel in self._relationships.values()
            if lead_id in (rel.lead_id, rel.related_lead_id)
        ]

    async def delete_relationship(self, relationship_id: str) -> LeadRelationship:
        relationship = self._relationships.pop(relationship_id, None)
        if relationship is None:
            raise NotFoundError("Relationship not found")
        return relationship
