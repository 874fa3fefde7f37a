# Lead memories
from .store import BaseMemoryStore, InMemoryMemoryStore, SupabaseMemoryStore
from .service import LeadMemoryService, build_graph

__all__ = [
    "BaseMemoryStore",
    "InMemoryMemoryStore",
    "SupabaseMemoryStore",
    "LeadMemoryService",
    "build_graph",
]
