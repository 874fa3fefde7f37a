# Database clients and lead stores
from .supabase_client import SupabaseClient
from .lead_store import BaseLeadStore, InMemoryLeadStore, SupabaseLeadStore

__all__ = [
    "SupabaseClient",
    "BaseLeadStore",
    "InMemoryLeadStore",
    "SupabaseLeadStore",
]
