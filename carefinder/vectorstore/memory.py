"""
In-Memory EmbeddingStore Implementation

Each entity owns an immutable slot (base + latest delta + bounded provenance
history). Writes build a new slot and swap it in with a single dict
assignment, so readers never take a lock and always see a consistent
base/delta pair. Writers for the same entity serialise on a per-entity lock;
there is no lock across the whole store.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Iterator, Sequence

from carefinder.core.config import settings
from carefinder.core.exceptions import (
    DimensionMismatchError,
    InvalidDimensionError,
    UnknownEntityError,
)
from carefinder.core.logging import get_logger
from carefinder.vectorstore.protocol import DeltaMerge, DeltaProvenance, DeltaRecord
from carefinder.vectorstore.vector_math import add_zero_extended

logger = get_logger(__name__)


@dataclass(frozen=True)
class _EntitySlot:
    base: tuple[float, ...]
    delta: DeltaRecord | None = None
    history: tuple[DeltaProvenance, ...] = ()
    write_lock: threading.Lock = field(default_factory=threading.Lock, compare=False, repr=False)


class InMemoryEmbeddingStore:
    """
    In-memory embedding store for one entity collection.

    The first registered base vector fixes the collection dimension.
    """

    def __init__(self, name: str = "default", history_size: int | None = None):
        """
        Initialize an empty store

        Args:
            name: Collection name (for logs)
            history_size: Provenance entries kept per entity
        """
        self.name = name
        self.history_size = history_size if history_size is not None else settings.delta_history_size
        self._slots: dict[str, _EntitySlot] = {}
        self._dimension: int | None = None
        self._register_lock = threading.Lock()

    @property
    def dimension(self) -> int | None:
        return self._dimension

    def set_base(self, entity_id: str, vector: Sequence[float]) -> None:
        """
        Register (or re-register) an entity's base vector.

        Re-registering keeps no previous delta.

        Raises:
            InvalidDimensionError: On empty vectors or a length differing from the collection dimension
        """
        if len(vector) == 0:
            raise InvalidDimensionError(f"Empty base vector for entity {entity_id}")

        with self._register_lock:
            if self._dimension is None:
                self._dimension = len(vector)
                logger.debug("store_dimension_fixed", store=self.name, dimension=self._dimension)
            elif len(vector) != self._dimension:
                raise InvalidDimensionError(
                    f"Base vector for {entity_id} has length {len(vector)}, "
                    f"collection dimension is {self._dimension}"
                )
            self._slots[entity_id] = _EntitySlot(base=tuple(float(x) for x in vector))

    def apply_delta(
        self,
        entity_id: str,
        delta: Sequence[float],
        timestamp: datetime,
        provenance: DeltaProvenance,
        merge: DeltaMerge | None = None,
    ) -> DeltaRecord:
        """
        Replace the entity's stored delta (latest wins).

        Args:
            entity_id: Registered entity
            delta: Delta values, at most the base length
            timestamp: Event time
            provenance: Audit information, appended to the bounded history
            merge: Optional combiner of (previous record, delta, timestamp)
                run under the entity's write lock

        Returns:
            The stored delta record

        Raises:
            UnknownEntityError: If the entity was never registered
            DimensionMismatchError: If the delta is longer than the base
        """
        slot = self._get_slot(entity_id)
        with slot.write_lock:
            current = self._get_slot(entity_id)
            vector = merge(current.delta, delta, timestamp) if merge else delta
            if len(vector) > len(current.base):
                raise DimensionMismatchError(
                    f"Delta length {len(vector)} exceeds base length {len(current.base)} "
                    f"for entity {entity_id}"
                )

            record = DeltaRecord(
                vector=tuple(float(x) for x in vector),
                timestamp=timestamp,
                provenance=provenance,
            )
            history = (current.history + (provenance,))[-self.history_size :] if self.history_size > 0 else ()
            self._slots[entity_id] = replace(current, delta=record, history=history)

        logger.debug(
            "delta_applied",
            store=self.name,
            entity_id=entity_id,
            update_type=provenance.update_type,
            confidence=provenance.confidence,
        )
        return record

    def effective_vector(self, entity_id: str) -> list[float]:
        """
        Base with the latest delta folded in (zero-extended).

        Raises:
            UnknownEntityError: If the entity was never registered
        """
        slot = self._get_slot(entity_id)
        if slot.delta is None:
            return list(slot.base)
        return add_zero_extended(slot.base, slot.delta.vector)

    def base_vector(self, entity_id: str) -> list[float]:
        return list(self._get_slot(entity_id).base)

    def delta_record(self, entity_id: str) -> DeltaRecord | None:
        return self._get_slot(entity_id).delta

    def provenance_history(self, entity_id: str) -> list[DeltaProvenance]:
        """Most recent provenance entries, oldest first."""
        return list(self._get_slot(entity_id).history)

    def entity_ids(self) -> list[str]:
        return list(self._slots)

    def __contains__(self, entity_id: object) -> bool:
        return entity_id in self._slots

    def __len__(self) -> int:
        return len(self._slots)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._slots))

    def _get_slot(self, entity_id: str) -> _EntitySlot:
        try:
            return self._slots[entity_id]
        except KeyError:
            raise UnknownEntityError(entity_id) from None
