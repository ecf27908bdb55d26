"""
Feature encoding schema

Static slot layout shared by three encoders:

- entity profiles (base vectors when the loader supplies none)
- structured queries (symptoms / urgency / specialization preference)
- real-time deltas (availability, emergency, time of day, on-call, inventory)

Slots that fall outside the target dimension are skipped, so the same
layout works for any collection dimension; it is only fully expressed from
128 dimensions upward.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass

from carefinder.core.config import settings
from carefinder.schemas.entity import Entity, EntityCategory
from carefinder.schemas.query import SearchQuery, Urgency

SPECIALIZATIONS: tuple[str, ...] = (
    "Cardiology",
    "Neurology",
    "Pediatrics",
    "Orthopedics",
    "Dermatology",
    "General",
)
SPECIALIZATION_OFFSET = 0

SYMPTOMS: tuple[str, ...] = (
    "chest pain",
    "headache",
    "fever",
    "cough",
    "fatigue",
    "shortness of breath",
    "nausea",
    "dizziness",
    "joint pain",
    "skin rash",
    "abdominal pain",
    "back pain",
)
SYMPTOM_OFFSET = 8

# Symptom -> specialization that usually treats it
SYMPTOM_SPECIALIZATION: dict[str, str] = {
    "chest pain": "Cardiology",
    "shortness of breath": "Cardiology",
    "headache": "Neurology",
    "dizziness": "Neurology",
    "joint pain": "Orthopedics",
    "back pain": "Orthopedics",
    "skin rash": "Dermatology",
    "fever": "General",
    "cough": "General",
    "fatigue": "General",
    "nausea": "General",
    "abdominal pain": "General",
}
SYMPTOM_AFFINITY = 0.5

EXPERIENCE_SLOT = 20
EXPERIENCE_CAP_YEARS = 30
RATING_SLOT = 30
LOCATION_OFFSET = 35
LOCATION_BUCKETS = 15

HOSPITAL_TYPES: tuple[str, ...] = ("Government", "Private", "Trust", "Corporate")
HOSPITAL_TYPE_OFFSET = 50
EMERGENCY_CAPABILITY_SLOT = 55

URGENCY_SLOT = 60
URGENCY_WEIGHTS: dict[Urgency, float] = {
    Urgency.LOW: 0.25,
    Urgency.MEDIUM: 0.5,
    Urgency.HIGH: 0.75,
    Urgency.CRITICAL: 1.0,
}
AVAILABILITY_PREFERENCE = 0.5


@dataclass(frozen=True)
class DeltaSlots:
    """Delta slot positions starting at `offset`."""

    offset: int

    @property
    def availability(self) -> int:
        return self.offset

    @property
    def emergency(self) -> int:
        return self.offset + 1

    @property
    def time_of_day(self) -> int:
        return self.offset + 2

    @property
    def on_call(self) -> int:
        return self.offset + 3

    @property
    def inventory(self) -> int:
        return self.offset + 4

    @property
    def width(self) -> int:
        """Delta length needed to cover every slot."""
        return self.offset + 5


def default_delta_slots() -> DeltaSlots:
    return DeltaSlots(offset=settings.delta_slot_offset)


def _put(vector: list[float], slot: int, value: float) -> None:
    if 0 <= slot < len(vector):
        vector[slot] = value


def _add(vector: list[float], slot: int, value: float) -> None:
    if 0 <= slot < len(vector):
        vector[slot] += value


def _location_bucket(text: str) -> int:
    digest = hashlib.md5(text.lower().encode("utf-8")).hexdigest()
    return int(digest[:8], 16) % LOCATION_BUCKETS


def match_symptom(symptom: str) -> str | None:
    """Known symptom contained in (or containing) the given free text."""
    lowered = symptom.lower().strip()
    if not lowered:
        return None
    for known in SYMPTOMS:
        if known in lowered or lowered in known:
            return known
    return None


def encode_profile(entity: Entity, dimension: int) -> list[float]:
    """
    Deterministic base vector from an entity's static profile.
    """
    vector = [0.0] * dimension

    specializations = [entity.specialization] if entity.specialization else []
    if entity.category == EntityCategory.HOSPITAL:
        specializations.extend(entity.specialties)
    for specialization in specializations:
        if specialization in SPECIALIZATIONS:
            _put(vector, SPECIALIZATION_OFFSET + SPECIALIZATIONS.index(specialization), 1.0)

    if entity.experience is not None:
        _put(vector, EXPERIENCE_SLOT, min(entity.experience / EXPERIENCE_CAP_YEARS, 1.0))
    _put(vector, RATING_SLOT, entity.rating / 5.0)

    if entity.address:
        _put(vector, LOCATION_OFFSET + _location_bucket(entity.address), 1.0)

    if entity.hospital_type in HOSPITAL_TYPES:
        _put(vector, HOSPITAL_TYPE_OFFSET + HOSPITAL_TYPES.index(entity.hospital_type), 1.0)
    if entity.is_emergency:
        _put(vector, EMERGENCY_CAPABILITY_SLOT, 1.0)

    return vector


def encode_structured_query(
    query: SearchQuery,
    dimension: int,
    delta_slots: DeltaSlots | None = None,
) -> list[float]:
    """
    Query vector from symptoms, urgency and specialization preference.

    Also expresses a preference for currently available entities and, for
    High/Critical urgency, for emergency-boosted ones, so that real-time
    deltas move the ranking.
    """
    slots = delta_slots or default_delta_slots()
    vector = [0.0] * dimension

    for symptom in query.symptoms:
        known = match_symptom(symptom)
        if known is None:
            continue
        _put(vector, SYMPTOM_OFFSET + SYMPTOMS.index(known), 1.0)
        related = SYMPTOM_SPECIALIZATION.get(known)
        if related:
            _add(vector, SPECIALIZATION_OFFSET + SPECIALIZATIONS.index(related), SYMPTOM_AFFINITY)

    if query.specialization in SPECIALIZATIONS:
        _put(vector, SPECIALIZATION_OFFSET + SPECIALIZATIONS.index(query.specialization), 1.0)

    if query.urgency is not None:
        weight = URGENCY_WEIGHTS[query.urgency]
        _put(vector, URGENCY_SLOT, weight)
        if query.urgency in (Urgency.HIGH, Urgency.CRITICAL):
            _put(vector, EMERGENCY_CAPABILITY_SLOT, weight)
            _put(vector, slots.emergency, weight)

    if any(vector):
        _put(vector, slots.availability, AVAILABILITY_PREFERENCE)

    return vector


def profile_text(entity: Entity) -> str:
    """Flattened profile passage for the external embedding generator."""
    parts = [
        entity.name,
        entity.specialization or "",
        entity.hospital or "",
        entity.hospital_type or "",
        ", ".join(entity.specialties),
        ", ".join(entity.facilities),
        entity.description,
        entity.address,
    ]
    return ". ".join(part for part in parts if part)
