"""
Records Router - Individual memories and relationships by id

Endpoints:
- PATCH /memories/{id} - Replace a memory's text
- DELETE /memories/{id} - Delete a memory
- DELETE /relationships/{id} - Delete a relationship
"""

from fastapi import APIRouter, Depends

from ..dependencies import get_lead_service, get_memory_service
from ..models import LeadRelationship, Memory, MemoryUpdate
from ..services.leads import LeadService
from ..services.memory.service import LeadMemoryService

router = APIRouter()


@router.patch("/memories/{memory_id}", response_model=Memory)
async def update_memory(
    memory_id: str, update: MemoryUpdate, memory: LeadMemoryService = Depends(get_memory_service)
):
    return await memory.update_memory(memory_id, update.memory)


@router.delete("/memories/{memory_id}")
async def delete_memory(memory_id: str, memory: LeadMemoryService = Depends(get_memory_service)):
    await memory.delete_memory(memory_id)
    return {"success": True, "id": memory_id}


@router.delete("/relationships/{relationship_id}", response_model=LeadRelationship)
async def delete_relationship(relationship_id: str, service: LeadService = Depends(get_lead_service)):
    return await service.delete_relationship(relationship_id)
