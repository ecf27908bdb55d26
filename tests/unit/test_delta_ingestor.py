"""
Unit tests for DeltaIngestor

Events are fed directly (no background timer); the clock is injected so the
time-of-day feature is deterministic.
"""

import math
from datetime import datetime, timedelta, timezone

import pytest

from carefinder.core.exceptions import DimensionMismatchError
from carefinder.core.logging import metrics_value
from carefinder.schemas.events import UpdateEvent, UpdateKind
from carefinder.services.delta_ingestor import DeltaIngestor, build_delta, decaying_merge
from carefinder.services.encoding import DeltaSlots
from carefinder.vectorstore import DeltaProvenance, DeltaRecord, InMemoryEmbeddingStore
from carefinder.vectorstore.vector_math import norm


DIMENSION = 128
SLOTS = DeltaSlots(offset=100)
SIX_AM = datetime(2026, 3, 1, 6, 0, tzinfo=timezone.utc)
MIDNIGHT = datetime(2026, 3, 1, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def store():
    store = InMemoryEmbeddingStore("doctors")
    store.set_base("doc-1", [0.0] * DIMENSION)
    store.set_base("doc-2", [0.0] * DIMENSION)
    return store


@pytest.fixture
def ingestor(store):
    return DeltaIngestor(store, policy="latest", slots=SLOTS, clock=lambda: SIX_AM)


# ============================================================================
# build_delta
# ============================================================================


def test_availability_event_sets_pressure_and_on_call():
    event = UpdateEvent(
        entity_id="doc-1",
        kind=UpdateKind.AVAILABILITY_CHANGE,
        slots=8,
        is_on_call=True,
    )

    delta = build_delta(
        event, SIX_AM, slots=SLOTS, availability_capacity=10, on_call_boost=0.2, time_of_day_weight=0.1
    )

    assert len(delta) == SLOTS.on_call + 1
    assert delta[SLOTS.availability] == pytest.approx(0.3)
    assert delta[SLOTS.on_call] == pytest.approx(0.2)
    assert delta[SLOTS.time_of_day] == pytest.approx(0.1)  # sin(pi / 2) * 0.1
    assert delta[SLOTS.emergency] == 0.0
    assert all(value == 0.0 for value in delta[: SLOTS.offset])


def test_emergency_toggle_sets_boost():
    event = UpdateEvent(entity_id="h-1", kind=UpdateKind.EMERGENCY_TOGGLE, is_emergency=True)

    delta = build_delta(event, MIDNIGHT, slots=SLOTS, emergency_boost=0.3)

    assert delta[SLOTS.emergency] == pytest.approx(0.3)
    assert delta[SLOTS.time_of_day] == pytest.approx(0.0)


def test_inventory_event_uses_bed_ratio():
    event = UpdateEvent(
        entity_id="h-1",
        kind=UpdateKind.INVENTORY_CHANGE,
        available_beds=15,
        total_beds=20,
    )

    delta = build_delta(event, MIDNIGHT, slots=SLOTS)

    assert len(delta) == SLOTS.width
    assert delta[SLOTS.inventory] == pytest.approx(0.25)


def test_inventory_event_without_total_beds_skips_slot():
    event = UpdateEvent(entity_id="h-1", kind=UpdateKind.INVENTORY_CHANGE, available_beds=3)

    delta = build_delta(event, MIDNIGHT, slots=SLOTS)

    assert len(delta) == SLOTS.time_of_day + 1


def test_explicit_delta_vector_is_prefix():
    event = UpdateEvent(entity_id="doc-1", kind=UpdateKind.OTHER, delta_vector=[0.1, -0.2, 0.3])

    delta = build_delta(event, SIX_AM, slots=SLOTS, time_of_day_weight=0.1)

    assert delta[:3] == [0.1, -0.2, 0.3]
    assert delta[SLOTS.time_of_day] == pytest.approx(0.1)


def test_build_delta_is_deterministic():
    event = UpdateEvent(entity_id="doc-1", kind=UpdateKind.AVAILABILITY_CHANGE, slots=4)

    assert build_delta(event, SIX_AM, slots=SLOTS) == build_delta(event, SIX_AM, slots=SLOTS)


# ============================================================================
# DeltaIngestor.ingest
# ============================================================================


def test_ingest_applies_delta_with_provenance(ingestor, store):
    event = UpdateEvent(
        entity_id="doc-1",
        kind=UpdateKind.AVAILABILITY_CHANGE,
        slots=10,
        reasoning="Clinic opened extra evening slots",
        confidence=0.8,
        timestamp=SIX_AM,
    )
    before = metrics_value("delta_events_ingested", kind="availability-change")

    record = ingestor.ingest(event)

    effective = store.effective_vector("doc-1")
    assert effective[SLOTS.availability] == pytest.approx(0.5)
    assert record.timestamp == SIX_AM
    assert record.provenance.reasoning == "Clinic opened extra evening slots"
    assert store.provenance_history("doc-1")[-1].confidence == 0.8
    assert metrics_value("delta_events_ingested", kind="availability-change") == before + 1


def test_ingest_latest_wins(ingestor, store):
    ingestor.ingest(UpdateEvent(entity_id="doc-1", kind=UpdateKind.EMERGENCY_TOGGLE, is_emergency=True))
    ingestor.ingest(UpdateEvent(entity_id="doc-1", kind=UpdateKind.AVAILABILITY_CHANGE, slots=5))

    effective = store.effective_vector("doc-1")
    assert effective[SLOTS.emergency] == 0.0
    assert effective[SLOTS.availability] == pytest.approx(0.0)


def test_ingest_naive_timestamp_treated_as_utc(ingestor, store):
    naive = datetime(2026, 3, 1, 12, 30)

    record = ingestor.ingest(UpdateEvent(entity_id="doc-1", kind=UpdateKind.OTHER, timestamp=naive))

    assert record.timestamp.tzinfo is timezone.utc
    assert record.timestamp.hour == 12


def test_ingest_rejects_explicit_delta_longer_than_base():
    store = InMemoryEmbeddingStore()
    store.set_base("doc-1", [0.0] * 4)
    ingestor = DeltaIngestor(store, slots=SLOTS, clock=lambda: SIX_AM)

    with pytest.raises(DimensionMismatchError):
        ingestor.ingest(UpdateEvent(entity_id="doc-1", kind=UpdateKind.OTHER, delta_vector=[0.1] * 6))


def test_narrow_collection_skips_schema_slots():
    store = InMemoryEmbeddingStore()
    store.set_base("doc-1", [1.0, 0.0, 0.0, 0.0])
    ingestor = DeltaIngestor(store, slots=SLOTS, clock=lambda: SIX_AM)

    record = ingestor.ingest(
        UpdateEvent(entity_id="doc-1", kind=UpdateKind.OTHER, delta_vector=[0.1, 0.0])
    )

    assert record.vector == (0.1, 0.0)
    assert store.effective_vector("doc-1") == pytest.approx([1.1, 0.0, 0.0, 0.0])


def test_narrow_collection_takes_schema_events():
    store = InMemoryEmbeddingStore()
    store.set_base("h-1", [0.0] * 4)
    ingestor = DeltaIngestor(store, slots=SLOTS, clock=lambda: SIX_AM)

    record = ingestor.ingest(
        UpdateEvent(entity_id="h-1", kind=UpdateKind.EMERGENCY_TOGGLE, is_emergency=True)
    )

    assert record.vector == ()
    assert store.effective_vector("h-1") == [0.0] * 4
    assert store.provenance_history("h-1")[-1].update_type == "emergency-toggle"


def test_build_delta_respects_dimension():
    event = UpdateEvent(entity_id="h-1", kind=UpdateKind.EMERGENCY_TOGGLE, is_emergency=True)

    delta = build_delta(event, SIX_AM, slots=SLOTS, dimension=SLOTS.emergency + 1)

    assert len(delta) == SLOTS.emergency + 1
    assert delta[SLOTS.emergency] == pytest.approx(0.3)


def test_decay_policy_accumulates(store):
    ingestor = DeltaIngestor(store, policy="decay", slots=SLOTS, clock=lambda: MIDNIGHT)
    event = UpdateEvent(
        entity_id="doc-1", kind=UpdateKind.OTHER, delta_vector=[0.2], timestamp=MIDNIGHT
    )

    ingestor.ingest(event)
    ingestor.ingest(event)

    # Same timestamp: no decay, the two deltas add up
    assert store.effective_vector("doc-1")[0] == pytest.approx(0.4)


def test_decay_policy_replaces_time_of_day(store):
    clock = iter([SIX_AM, SIX_AM, MIDNIGHT])
    ingestor = DeltaIngestor(store, policy="decay", slots=SLOTS, clock=lambda: next(clock))
    event = UpdateEvent(entity_id="doc-1", kind=UpdateKind.OTHER, timestamp=SIX_AM)

    ingestor.ingest(event)
    ingestor.ingest(event)
    assert store.effective_vector("doc-1")[SLOTS.time_of_day] == pytest.approx(0.1)

    ingestor.ingest(event)
    assert store.effective_vector("doc-1")[SLOTS.time_of_day] == pytest.approx(0.0)


# ============================================================================
# decaying_merge
# ============================================================================


def test_decaying_merge_halves_after_half_life():
    merge = decaying_merge(half_life_seconds=60, max_norm=0)
    previous = DeltaRecord(vector=(1.0, 0.0), timestamp=MIDNIGHT, provenance=DeltaProvenance("other"))

    merged = merge(previous, [0.0, 0.5], MIDNIGHT + timedelta(seconds=60))

    assert merged == pytest.approx([0.5, 0.5])


def test_decaying_merge_clamps_norm():
    merge = decaying_merge(half_life_seconds=60, max_norm=1.0)

    merged = merge(None, [3.0, 4.0], MIDNIGHT)

    assert norm(merged) == pytest.approx(1.0)
    assert merged == pytest.approx([0.6, 0.8])


def test_decaying_merge_keeps_longer_previous_delta():
    merge = decaying_merge(half_life_seconds=60, max_norm=0)
    previous = DeltaRecord(vector=(0.0, 0.0, 1.0), timestamp=MIDNIGHT, provenance=DeltaProvenance("other"))

    merged = merge(previous, [1.0], MIDNIGHT)

    assert merged == pytest.approx([1.0, 0.0, 1.0])


# ============================================================================
# DeltaIngestor.consume
# ============================================================================


async def _events(*events):
    for event in events:
        yield event


@pytest.mark.asyncio
async def test_consume_skips_unknown_entities(ingestor, store):
    before = metrics_value("delta_events_skipped", reason="unknown_entity")

    applied = await ingestor.consume(
        _events(
            UpdateEvent(entity_id="doc-1", kind=UpdateKind.AVAILABILITY_CHANGE, slots=2),
            UpdateEvent(entity_id="ghost", kind=UpdateKind.AVAILABILITY_CHANGE, slots=2),
            UpdateEvent(entity_id="doc-2", kind=UpdateKind.EMERGENCY_TOGGLE, is_emergency=True),
        )
    )

    assert applied == 2
    assert store.delta_record("doc-1") is not None
    assert store.delta_record("doc-2") is not None
    assert metrics_value("delta_events_skipped", reason="unknown_entity") == before + 1


@pytest.mark.asyncio
async def test_consume_narrow_collection():
    store = InMemoryEmbeddingStore()
    store.set_base("doc-1", [1.0, 0.0, 0.0, 0.0])
    ingestor = DeltaIngestor(store, slots=SLOTS, clock=lambda: SIX_AM)
    event = UpdateEvent(entity_id="doc-1", kind=UpdateKind.OTHER, delta_vector=[0.1, 0.0])

    applied = await ingestor.consume(_events(event, event))

    assert applied == 2
    assert len(store.provenance_history("doc-1")) == 2


@pytest.mark.asyncio
async def test_consume_propagates_other_errors():
    store = InMemoryEmbeddingStore()
    store.set_base("doc-1", [0.0] * 4)
    ingestor = DeltaIngestor(store, slots=SLOTS, clock=lambda: SIX_AM)
    event = UpdateEvent(entity_id="doc-1", kind=UpdateKind.OTHER, delta_vector=[0.1] * 6)

    with pytest.raises(DimensionMismatchError):
        await ingestor.consume(_events(event))


def test_time_of_day_feature_follows_clock(store):
    evening = datetime(2026, 3, 1, 18, 0, tzinfo=timezone.utc)
    ingestor = DeltaIngestor(store, slots=SLOTS, clock=lambda: evening)

    ingestor.ingest(UpdateEvent(entity_id="doc-1", kind=UpdateKind.OTHER))

    expected = math.sin(2 * math.pi * 18 / 24) * 0.1
    assert store.effective_vector("doc-1")[SLOTS.time_of_day] == pytest.approx(expected)
