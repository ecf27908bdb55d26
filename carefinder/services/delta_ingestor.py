"""
Delta Ingestor

Translates operational update events (availability, emergency mode,
inventory/beds) into delta vectors and pushes them into an EmbeddingStore.

The event -> vector mapping is a pure function of the event content and the
wall-clock hour. Storage policy:

- "latest" (default): the newest delta replaces the previous one.
- "decay": the previous delta decays with a half-life and the new one is
  added on top; the result is clamped to a maximum L2 norm.
"""

from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import AsyncIterable, Callable, Literal, Sequence

from carefinder.core.config import settings
from carefinder.core.exceptions import UnknownEntityError
from carefinder.core.logging import get_logger, metrics_counter
from carefinder.schemas.events import UpdateEvent, UpdateKind
from carefinder.services.encoding import DeltaSlots, default_delta_slots
from carefinder.vectorstore.protocol import (
    DeltaMerge,
    DeltaProvenance,
    DeltaRecord,
    EmbeddingStoreProtocol,
)
from carefinder.vectorstore.vector_math import norm

logger = get_logger(__name__)

DeltaPolicy = Literal["latest", "decay"]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _set_slot(vector: list[float], slot: int, value: float, dimension: int | None) -> None:
    if dimension is not None and slot >= dimension:
        return
    if slot >= len(vector):
        vector.extend([0.0] * (slot + 1 - len(vector)))
    vector[slot] = value


def build_delta(
    event: UpdateEvent,
    now: datetime,
    *,
    slots: DeltaSlots | None = None,
    availability_capacity: int | None = None,
    emergency_boost: float | None = None,
    on_call_boost: float | None = None,
    time_of_day_weight: float | None = None,
    dimension: int | None = None,
) -> list[float]:
    """
    Map an update event to a delta vector.

    An explicit `delta_vector` on the event forms the sparse prefix; schema
    slots are then written on top. The time-of-day slot is always set when
    it fits. Schema slots at or past `dimension` are skipped, so collections
    narrower than the delta layout still take explicit deltas.

    Args:
        event: Update event
        now: Wall clock used for the time-of-day feature
        dimension: Target collection dimension (None writes every slot)

    Returns:
        Delta vector, long enough to cover every written slot
    """
    slots = slots or default_delta_slots()
    capacity = availability_capacity or settings.availability_capacity
    emergency_boost = settings.emergency_boost if emergency_boost is None else emergency_boost
    on_call_boost = settings.on_call_boost if on_call_boost is None else on_call_boost
    time_weight = settings.time_of_day_weight if time_of_day_weight is None else time_of_day_weight

    delta = [float(x) for x in event.delta_vector] if event.delta_vector else []

    if event.kind == UpdateKind.AVAILABILITY_CHANGE:
        if event.slots is not None:
            _set_slot(delta, slots.availability, event.slots / capacity - 0.5, dimension)
        if event.is_on_call:
            _set_slot(delta, slots.on_call, on_call_boost, dimension)

    if event.is_emergency:
        _set_slot(delta, slots.emergency, emergency_boost, dimension)

    if (
        event.kind == UpdateKind.INVENTORY_CHANGE
        and event.available_beds is not None
        and event.total_beds
    ):
        _set_slot(delta, slots.inventory, event.available_beds / event.total_beds - 0.5, dimension)

    time_of_day = math.sin(2 * math.pi * now.hour / 24) * time_weight
    _set_slot(delta, slots.time_of_day, time_of_day, dimension)
    return delta


def decaying_merge(
    half_life_seconds: float, max_norm: float, replace_slots: Sequence[int] = ()
) -> DeltaMerge:
    """
    Merge that decays the previous delta by elapsed time and adds the new one.

    Slots listed in `replace_slots` (state features such as time of day) take
    the new value only and are never accumulated.
    """
    replaced = frozenset(replace_slots)

    def merge(
        previous: DeltaRecord | None, delta: Sequence[float], timestamp: datetime
    ) -> list[float]:
        combined = [float(x) for x in delta]
        if previous is not None:
            elapsed = max((timestamp - previous.timestamp).total_seconds(), 0.0)
            factor = 0.5 ** (elapsed / half_life_seconds) if half_life_seconds > 0 else 0.0
            if len(previous.vector) > len(combined):
                combined.extend([0.0] * (len(previous.vector) - len(combined)))
            for i, value in enumerate(previous.vector):
                if i not in replaced:
                    combined[i] += value * factor

        magnitude = norm(combined)
        if max_norm > 0 and magnitude > max_norm:
            combined = [x * max_norm / magnitude for x in combined]
        return combined

    return merge


class DeltaIngestor:
    """
    Event consumer feeding one collection's EmbeddingStore.
    """

    def __init__(
        self,
        store: EmbeddingStoreProtocol,
        *,
        policy: DeltaPolicy | None = None,
        slots: DeltaSlots | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.store = store
        self.policy = policy or settings.delta_policy
        self.slots = slots or default_delta_slots()
        self.clock = clock
        self._merge: DeltaMerge | None = None
        if self.policy == "decay":
            self._merge = decaying_merge(
                settings.delta_half_life_seconds,
                settings.delta_max_norm,
                replace_slots=(self.slots.time_of_day,),
            )

    def ingest(self, event: UpdateEvent, now: datetime | None = None) -> DeltaRecord:
        """
        Fold one event into the entity's delta.

        Args:
            event: Update event
            now: Wall clock override for the time-of-day feature

        Returns:
            Stored delta record

        Raises:
            UnknownEntityError: If the entity is not registered in the store
            DimensionMismatchError: If the explicit delta vector is longer than the base
        """
        delta = build_delta(
            event, now or self.clock(), slots=self.slots, dimension=self.store.dimension
        )
        provenance = DeltaProvenance(
            update_type=event.kind.value,
            reasoning=event.reasoning,
            confidence=event.confidence,
        )
        timestamp = event.timestamp
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=timezone.utc)
        record = self.store.apply_delta(
            event.entity_id,
            delta,
            timestamp,
            provenance,
            merge=self._merge,
        )
        metrics_counter("delta_events_ingested", kind=event.kind.value)
        logger.info(
            "delta_ingested",
            entity_id=event.entity_id,
            kind=event.kind.value,
            policy=self.policy,
            confidence=event.confidence,
            delta_norm=round(norm(record.vector), 4),
        )
        return record

    async def consume(self, events: AsyncIterable[UpdateEvent]) -> int:
        """
        Drain a push-based event source.

        Events for unknown entities are logged and skipped; other errors
        propagate and stop the loop.

        Returns:
            Number of events applied
        """
        applied = 0
        async for event in events:
            try:
                self.ingest(event)
            except UnknownEntityError as e:
                metrics_counter("delta_events_skipped", reason="unknown_entity")
                logger.warning("delta_event_skipped", entity_id=e.entity_id, kind=event.kind.value)
                continue
            applied += 1
        return applied
