"""
Embedding Generator Protocol (Interface)
Defines contract for query/passage embedding providers
"""

from typing import Protocol

from carefinder.schemas.query import EmbeddingQuality


class EmbedderProtocol(Protocol):
    """
    Protocol for embedding generator implementations

    Implementations may be remote or slow; callers bound each call with a
    timeout and recover from EmbeddingGeneratorUnavailableError.
    """

    model_name: str
    quality: EmbeddingQuality

    async def embed_query(self, text: str) -> list[float]:
        """
        Embed a search query

        Args:
            text: Free-text query

        Returns:
            Embedding vector

        Raises:
            EmbeddingGeneratorUnavailableError: If the generator cannot produce a vector
        """
        ...

    async def embed_passage(self, text: str) -> list[float]:
        """
        Embed an entity profile passage

        Args:
            text: Entity profile text

        Returns:
            Embedding vector

        Raises:
            EmbeddingGeneratorUnavailableError: If the generator cannot produce a vector
        """
        ...
