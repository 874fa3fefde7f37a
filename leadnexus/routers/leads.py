"""
Leads Router - Search, ingestion, relationships and lead records

Endpoints:
- POST /leads/search - Semantic search with memory context
- POST /leads/ingest - Scrape URLs and extract leads
- POST /leads/relationships - Link two leads
- POST /leads/graph - Knowledge graph from lead memories
- GET /leads - List leads
- POST /leads - Create a lead directly
- GET /leads/{id} - Lead details with memories
- PATCH /leads/{id} - Update a lead
- DELETE /leads/{id} - Delete a lead, its relationships and memories
- GET /leads/{id}/relationships - Relationships of a lead
- GET /leads/{id}/similar - Nearest leads by embedding
- GET /leads/{id}/memories - Memories of a lead
- DELETE /leads/{id}/memories - Forget a lead
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from ..dependencies import (
    get_ingestion_pipeline,
    get_lead_service,
    get_memory_service,
    get_search_pipeline,
)
from ..models import (
    GraphRequest,
    GraphResponse,
    IngestRequest,
    IngestResponse,
    LeadCategory,
    LeadCreate,
    LeadDetail,
    LeadOut,
    LeadPage,
    LeadRelationship,
    LeadUpdate,
    Memory,
    RelationshipRequest,
    RelationshipResponse,
    ScoredLead,
    SearchRequest,
    SearchResponse,
    build_pagination,
)
from ..services.ingestion import IngestionPipeline
from ..services.leads import LeadService
from ..services.memory.service import LeadMemoryService
from ..services.search import SearchPipeline

router = APIRouter()


# ============================================
# Retrieval pipeline
# ============================================

@router.post("/search", response_model=SearchResponse)
async def search_leads(request: SearchRequest, pipeline: SearchPipeline = Depends(get_search_pipeline)):
    """Rank leads by similarity to the query text."""
    return await pipeline.search(request.query, request.category, request.page, request.page_size)


@router.post("/ingest", response_model=IngestResponse)
async def ingest_leads(request: IngestRequest, pipeline: IngestionPipeline = Depends(get_ingestion_pipeline)):
    """Scrape up to 10 URLs and store one lead per page."""
    return await pipeline.ingest([str(url) for url in request.urls])


@router.post("/relationships", response_model=RelationshipResponse)
async def add_relationship(request: RelationshipRequest, service: LeadService = Depends(get_lead_service)):
    return await service.add_relationship(request.lead_id1, request.lead_id2, request.relationship_type)


@router.post("/graph", response_model=GraphResponse)
async def query_knowledge_graph(request: GraphRequest, service: LeadService = Depends(get_lead_service)):
    return await service.query_graph(request.query, request.max_depth, request.category)


# ============================================
# Lead records
# ============================================

@router.get("", response_model=LeadPage)
async def list_leads(
    category: Optional[LeadCategory] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100, alias="pageSize"),
    service: LeadService = Depends(get_lead_service),
):
    leads, total = await service.list_leads(category, page, page_size)
    return LeadPage(
        items=[lead.public() for lead in leads],
        pagination=build_pagination(page, page_size, total),
    )


@router.post("", response_model=LeadOut, status_code=201)
async def create_lead(lead: LeadCreate, service: LeadService = Depends(get_lead_service)):
    """Create a lead; the embedding is generated when not supplied."""
    created = await service.create_lead(lead)
    return created.public()


@router.get("/{lead_id}", response_model=LeadDetail)
async def get_lead(lead_id: str, service: LeadService = Depends(get_lead_service)):
    return await service.get_lead(lead_id)


@router.patch("/{lead_id}", response_model=LeadOut)
async def update_lead(lead_id: str, changes: LeadUpdate, service: LeadService = Depends(get_lead_service)):
    updated = await service.update_lead(lead_id, changes)
    return updated.public()


@router.delete("/{lead_id}", response_model=LeadOut)
async def delete_lead(lead_id: str, service: LeadService = Depends(get_lead_service)):
    deleted = await service.delete_lead(lead_id)
    return deleted.public()


@router.get("/{lead_id}/relationships", response_model=List[LeadRelationship])
async def list_relationships(lead_id: str, service: LeadService = Depends(get_lead_service)):
    return await service.list_relationships(lead_id)


@router.get("/{lead_id}/similar", response_model=List[ScoredLead])
async def similar_leads(
    lead_id: str,
    limit: int = Query(10, ge=1, le=100),
    service: LeadService = Depends(get_lead_service),
):
    return await service.find_similar(lead_id, limit)


# ============================================
# Lead memories
# ============================================

@router.get("/{lead_id}/memories", response_model=List[Memory])
async def list_lead_memories(lead_id: str, memory: LeadMemoryService = Depends(get_memory_service)):
    return await memory.get_lead_memories(lead_id)


@router.delete("/{lead_id}/memories")
async def delete_lead_memories(lead_id: str, memory: LeadMemoryService = Depends(get_memory_service)):
    removed = await memory.delete_lead_memories(lead_id)
    return {"success": True, "deleted": removed}
