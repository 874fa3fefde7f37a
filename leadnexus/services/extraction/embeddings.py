"""
Embeddings Service - Generate vector embeddings for leads, queries and memories.

Uses OpenAI text-embedding-3-small (1536 dimensions).
"""

from typing import Any, List, Optional, Sequence

import openai
from openai import AsyncOpenAI

from ...config import EMBEDDING_DIMENSIONS, EMBEDDING_MODEL
from ...errors import UpstreamProviderError, ValidationFailureError, require_setting

# OpenAI accepts up to 2048 inputs per request; stay well below it
MAX_BATCH_SIZE = 100


def create_lead_text(lead: Any) -> str:
    """
    Canonical text for a lead embedding.

    Name, category and bio first, then organization, expertise and location
    when the candidate carries them.
    """
    category = getattr(lead, "category", None)
    parts = [
        getattr(lead, "name", None),
        getattr(category, "value", category),
        getattr(lead, "bio", None),
    ]

    organization = getattr(lead, "organization", None)
    if organization:
        parts.append(f"Works at {organization}")

    expertise = getattr(lead, "expertise", None)
    if expertise:
        parts.append(f"Expert in: {', '.join(expertise)}")

    location = getattr(lead, "location", None)
    if location:
        parts.append(f"Located in {location}")

    return ". ".join(str(p) for p in parts if p)


def normalize_dimensions(embedding: Sequence[float], dimensions: int = EMBEDDING_DIMENSIONS) -> List[float]:
    """Zero-pad or truncate a vector to exactly `dimensions` components."""
    vector = [float(x) for x in embedding]
    if len(vector) == dimensions:
        return vector
    print(f"[Embeddings] Provider returned {len(vector)} dimensions, normalizing to {dimensions}")
    if len(vector) > dimensions:
        return vector[:dimensions]
    return vector + [0.0] * (dimensions - len(vector))


def format_embedding_for_postgres(embedding: Sequence[float]) -> str:
    """
    Format embedding as a string for Postgres vector type.

    Postgres expects: '[0.1, 0.2, 0.3, ...]'
    """
    return f"[{','.join(str(x) for x in embedding)}]"


class EmbeddingGenerator:
    """Text -> 1536-dim vectors via the OpenAI embeddings API."""

    def __init__(
        self,
        api_key: Optional[str],
        model: str = EMBEDDING_MODEL,
        dimensions: int = EMBEDDING_DIMENSIONS,
        client: Optional[AsyncOpenAI] = None,
    ):
        api_key = require_setting(api_key, "OPENAI_API_KEY", "Embedding service")
        self.model = model
        self.dimensions = dimensions
        self.client = client or AsyncOpenAI(api_key=api_key)

    async def _create(self, inputs: List[str]) -> List[List[float]]:
        try:
            response = await self.client.embeddings.create(
                model=self.model,
                input=inputs,
                dimensions=self.dimensions,
            )
        except openai.OpenAIError as e:
            print(f"[Embeddings] Error generating embeddings: {e}")
            raise UpstreamProviderError("Failed to generate embedding for the provided text") from e

        data = sorted(response.data, key=lambda item: item.index)
        if len(data) != len(inputs):
            raise UpstreamProviderError(
                f"Embedding provider returned {len(data)} vectors for {len(inputs)} inputs"
            )
        return [normalize_dimensions(item.embedding, self.dimensions) for item in data]

    async def embed(self, text: str) -> List[float]:
        """
        Generate an embedding vector for the given text.

        Raises:
            ValidationFailureError: text is empty
            UpstreamProviderError: the provider call failed
        """
        if not text or not text.strip():
            raise ValidationFailureError("Cannot embed empty text")
        vectors = await self._create([text.strip()])
        return vectors[0]

    async def embed_many(self, texts: List[str]) -> List[List[float]]:
        """Embed a batch; output[i] corresponds to texts[i]."""
        if not texts:
            return []
        if any(not t or not t.strip() for t in texts):
            raise ValidationFailureError("Cannot embed empty text")

        vectors: List[List[float]] = []
        for i in range(0, len(texts), MAX_BATCH_SIZE):
            chunk = [t.strip() for t in texts[i:i + MAX_BATCH_SIZE]]
            vectors.extend(await self._create(chunk))
        return vectors
