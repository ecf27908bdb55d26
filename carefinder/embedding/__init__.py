"""
Embedding Generator Abstraction
Interface to the external embedding model and its local fallback
"""

from carefinder.embedding.protocol import EmbedderProtocol
from carefinder.embedding.fallback import CharacterEmbedder
from carefinder.embedding.factory import get_embedder, get_embedder_instance

__all__ = ["EmbedderProtocol", "CharacterEmbedder", "get_embedder", "get_embedder_instance"]
