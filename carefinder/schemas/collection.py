"""
Collection Schemas
Load summaries and vector inspection payloads
"""

from datetime import datetime

from pydantic import Field

from carefinder.schemas.base import BaseSchema
from carefinder.schemas.entity import CollectionName


class CollectionLoadResponse(BaseSchema):
    collection: CollectionName
    loaded: int = Field(ge=0)
    embedded: int = Field(ge=0, description="Entities registered with a base vector")
    dimension: int | None = None


class ProvenanceEntry(BaseSchema):
    update_type: str
    reasoning: str
    confidence: float


class EntityVectorsResponse(BaseSchema):
    """
    Base, delta and effective vectors for one entity
    """

    entity_id: str
    base: list[float]
    delta: list[float] | None = None
    delta_timestamp: datetime | None = None
    effective: list[float]
    history: list[ProvenanceEntry] = Field(default_factory=list)
