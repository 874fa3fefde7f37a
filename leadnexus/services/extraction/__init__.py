# Lead extraction and embeddings
from .embeddings import EmbeddingGenerator, create_lead_text, normalize_dimensions
from .extractor import LeadExtractor

__all__ = [
    "EmbeddingGenerator",
    "create_lead_text",
    "normalize_dimensions",
    "LeadExtractor",
]
