"""
EmbeddingStore Abstraction
Per-entity base/delta vector storage and vector math primitives
"""

from carefinder.vectorstore.protocol import (
    DeltaProvenance,
    DeltaRecord,
    EmbeddingStoreProtocol,
)
from carefinder.vectorstore.memory import InMemoryEmbeddingStore

__all__ = [
    "DeltaProvenance",
    "DeltaRecord",
    "EmbeddingStoreProtocol",
    "InMemoryEmbeddingStore",
]
