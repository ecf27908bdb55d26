"""
Embedding Generator Factory
Creates the configured query/passage embedder
"""

from carefinder.embedding.fallback import CharacterEmbedder
from carefinder.embedding.protocol import EmbedderProtocol
from carefinder.core.config import settings
from carefinder.core.logging import get_logger

logger = get_logger(__name__)


def get_embedder() -> EmbedderProtocol:
    """
    Get embedder implementation based on configuration

    Returns:
        Embedder implementation

    Raises:
        ValueError: If embedding_provider is not supported

    Usage:
        embedder = get_embedder()
        vector = await embedder.embed_query("chest pain specialist")
    """
    provider = settings.embedding_provider

    logger.info("embedder_factory", provider=provider)

    if provider == "character":
        return CharacterEmbedder(dimension=settings.vector_dimension)

    if provider == "e5":
        # Deferred so the model stack only loads when configured
        from carefinder.embedding.embedder import E5Embedder

        return E5Embedder()

    raise ValueError(
        f"Unsupported embedding_provider: {provider}. Supported providers: e5, character"
    )


# Singleton instance for dependency injection
_embedder: EmbedderProtocol | None = None


def get_embedder_instance() -> EmbedderProtocol:
    """
    Get singleton embedder instance

    Returns:
        Embedder instance
    """
    global _embedder
    if _embedder is None:
        _embedder = get_embedder()
    return _embedder
