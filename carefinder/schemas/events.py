"""
Update Event Schemas
Real-time operational updates pushed by the external update source
"""

import enum
from datetime import datetime, timezone

from pydantic import Field

from carefinder.schemas.base import BaseSchema


class UpdateKind(str, enum.Enum):
    AVAILABILITY_CHANGE = "availability-change"
    EMERGENCY_TOGGLE = "emergency-toggle"
    INVENTORY_CHANGE = "inventory-change"
    OTHER = "other"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UpdateEvent(BaseSchema):
    """
    Time-stamped update for one entity

    Payload fields are optional; each kind reads only the ones it needs.
    `delta_vector` carries a precomputed sparse delta covering the leading
    dimensions.
    """

    entity_id: str = Field(min_length=1)
    kind: UpdateKind
    reasoning: str = ""
    confidence: float = Field(default=1.0, ge=0, le=1)
    timestamp: datetime = Field(default_factory=_utcnow)

    # Payload
    slots: int | None = Field(default=None, ge=0)
    is_on_call: bool | None = None
    is_emergency: bool | None = None
    available_beds: int | None = Field(default=None, ge=0)
    total_beds: int | None = Field(default=None, ge=0)
    delta_vector: list[float] | None = None


class DeltaReceipt(BaseSchema):
    """Acknowledgement for an ingested event"""

    entity_id: str
    update_type: UpdateKind
    timestamp: datetime
    delta_length: int
    delta_norm: float
