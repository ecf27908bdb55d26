"""
Character Fallback Embedder

Deterministic pseudo-embedding derived from character codes. Used when the
external generator is unavailable or not configured. Much weaker than a real
model: it captures spelling overlap, not meaning.
"""

from carefinder.schemas.query import EmbeddingQuality
from carefinder.vectorstore.vector_math import l2_normalize


class CharacterEmbedder:
    """
    Hash characters and character bigrams into a fixed-size, L2-normalized vector.
    """

    model_name = "character-fallback"
    quality = EmbeddingQuality.FALLBACK

    def __init__(self, dimension: int):
        if dimension < 1:
            raise ValueError(f"dimension must be >= 1, got {dimension}")
        self.dimension = dimension

    def encode(self, text: str) -> list[float]:
        vector = [0.0] * self.dimension
        normalized = " ".join(text.lower().split())
        for ch in normalized:
            if ch.isspace():
                continue
            vector[ord(ch) % self.dimension] += 1.0
        for left, right in zip(normalized, normalized[1:]):
            if left.isspace() or right.isspace():
                continue
            vector[(ord(left) * 31 + ord(right)) % self.dimension] += 0.5
        return l2_normalize(vector)

    async def embed_query(self, text: str) -> list[float]:
        return self.encode(text)

    async def embed_passage(self, text: str) -> list[float]:
        return self.encode(text)
