"""
EmbeddingStore Protocol (Interface)
Defines contract for per-entity base/delta vector storage
"""

from datetime import datetime
from typing import Callable, NamedTuple, Protocol, Sequence


class DeltaProvenance(NamedTuple):
    """
    Audit information attached to a delta

    Attributes:
        update_type: Event kind that produced the delta
        reasoning: Free-text justification from the update source
        confidence: Source confidence in [0, 1]
    """

    update_type: str
    reasoning: str = ""
    confidence: float = 1.0


class DeltaRecord(NamedTuple):
    """
    Latest delta stored for an entity

    Attributes:
        vector: Delta values (may be shorter than the base vector)
        timestamp: Event time
        provenance: Audit information
    """

    vector: tuple[float, ...]
    timestamp: datetime
    provenance: DeltaProvenance


DeltaMerge = Callable[[DeltaRecord | None, Sequence[float], datetime], Sequence[float]]


class EmbeddingStoreProtocol(Protocol):
    """
    Protocol for embedding store implementations

    Single source of truth for an entity's base and delta vectors.
    The effective vector is always recomputed on read.
    """

    @property
    def dimension(self) -> int | None:
        """Collection dimension, fixed by the first registered base vector."""
        ...

    def set_base(self, entity_id: str, vector: Sequence[float]) -> None:
        """
        Register an entity's base vector

        Raises:
            InvalidDimensionError: If the vector length differs from the collection dimension
        """
        ...

    def apply_delta(
        self,
        entity_id: str,
        delta: Sequence[float],
        timestamp: datetime,
        provenance: DeltaProvenance,
        merge: DeltaMerge | None = None,
    ) -> DeltaRecord:
        """
        Replace the entity's delta (latest wins)

        Raises:
            UnknownEntityError: If the entity was never registered
            DimensionMismatchError: If the delta is longer than the base
        """
        ...

    def effective_vector(self, entity_id: str) -> list[float]:
        """
        Base vector with the current delta folded in

        Raises:
            UnknownEntityError: If the entity was never registered
        """
        ...

    def __contains__(self, entity_id: object) -> bool:
        ...
