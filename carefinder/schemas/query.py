"""
Search Schemas
Pydantic models for ranked search requests/responses
"""

import enum

from pydantic import Field

from carefinder.schemas.base import BaseSchema
from carefinder.schemas.entity import Entity, EntityCategory


class Urgency(str, enum.Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"


class EmbeddingQuality(str, enum.Enum):
    """
    How the query vector was produced

    - MODEL: external embedding generator
    - FALLBACK: deterministic character encoding (generator failed or not configured)
    - STRUCTURED: direct feature encoding of symptoms/urgency/specialization
    """

    MODEL = "model"
    FALLBACK = "fallback"
    STRUCTURED = "structured"


class NumericRange(BaseSchema):
    """Inclusive range; either bound may be omitted."""

    min: float | None = None
    max: float | None = None


class FilterSpec(BaseSchema):
    """
    Attribute filters, combined with logical AND
    """

    specialization: str | None = None
    experience: NumericRange | None = None
    rating: NumericRange | None = None
    availability: bool | None = Field(
        default=None,
        description="Only entities with at least one open slot",
    )
    emergency_only: bool = False
    hospital_type: list[str] | None = None
    facilities: list[str] | None = None


class GeoQuery(BaseSchema):
    """
    Reference point with optional search radius
    """

    longitude: float
    latitude: float
    radius_km: float | None = None

    def as_tuple(self) -> tuple[float, float]:
        return (self.longitude, self.latitude)


class SearchQuery(BaseSchema):
    """
    Ranked search request

    Text queries are embedded by the external generator. Queries without
    text are encoded from symptoms, urgency and specialization.
    """

    text: str = ""
    symptoms: list[str] = Field(default_factory=list)
    urgency: Urgency | None = None
    specialization: str | None = Field(
        default=None,
        description="Preferred specialization (ranking signal, not a filter)",
    )
    filters: FilterSpec | None = None
    location: GeoQuery | None = None
    category: EntityCategory | None = None
    limit: int | None = Field(
        default=None,
        description="Maximum results; unset uses SEARCH_DEFAULT_LIMIT, values below 1 become 1",
    )


class RankedResult(BaseSchema):
    """Single ranked search hit"""

    entity: Entity
    score: float
    distance_km: float | None = None
    highlights: list[str] = Field(default_factory=list)


class SearchResponse(BaseSchema):
    """Ordered search results plus how the query vector was obtained"""

    results: list[RankedResult] = Field(default_factory=list)
    embedding_quality: EmbeddingQuality
    candidates_scored: int = Field(ge=0)
    candidates_matched: int = Field(ge=0)
