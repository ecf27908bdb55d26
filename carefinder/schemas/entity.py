"""
Entity Schemas
Searchable doctors and hospitals as supplied by the collection loader
"""

import enum

from pydantic import Field

from carefinder.schemas.base import BaseSchema


class EntityCategory(str, enum.Enum):
    """Entity discriminator"""

    DOCTOR = "doctor"
    HOSPITAL = "hospital"


class CollectionName(str, enum.Enum):
    """Target collection selector"""

    DOCTORS = "doctors"
    HOSPITALS = "hospitals"


COLLECTION_CATEGORY: dict[CollectionName, EntityCategory] = {
    CollectionName.DOCTORS: EntityCategory.DOCTOR,
    CollectionName.HOSPITALS: EntityCategory.HOSPITAL,
}


class GeoPoint(BaseSchema):
    """
    Geographic point in degrees (GeoJSON axis order)
    """

    longitude: float = Field(ge=-180, le=180)
    latitude: float = Field(ge=-90, le=90)

    def as_tuple(self) -> tuple[float, float]:
        return (self.longitude, self.latitude)


class Entity(BaseSchema):
    """
    Searchable entity (doctor or hospital)

    Doctor-only and hospital-only attributes are optional so that a single
    filter language covers both collections.
    """

    id: str = Field(min_length=1)
    category: EntityCategory
    name: str

    # Filterable attributes
    specialization: str | None = None
    hospital: str | None = None  # Doctor's affiliated hospital
    hospital_type: str | None = None  # Government / Private / Trust / Corporate
    rating: float = Field(default=0.0, ge=0, le=5)
    experience: int | None = Field(default=None, ge=0)
    availability_slots: int = Field(default=0, ge=0)
    is_emergency: bool = False
    specialties: list[str] = Field(default_factory=list)
    facilities: list[str] = Field(default_factory=list)

    # Text-bearing attributes
    description: str = ""
    address: str = ""

    location: GeoPoint
    embedding: list[float] | None = Field(
        default=None,
        description="Base embedding produced by the external embedding generator",
    )
