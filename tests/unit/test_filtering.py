"""
Unit tests for attribute filtering (predicate variants + dispatcher)
"""

import pytest

from carefinder.schemas.entity import Entity, EntityCategory, GeoPoint
from carefinder.schemas.query import FilterSpec, NumericRange
from carefinder.services.filtering import (
    ExactMatch,
    Filterer,
    FlagMatch,
    RangeMatch,
    SetMembership,
    build_predicates,
)


@pytest.fixture
def doctor():
    return Entity(
        id="doc-1",
        category=EntityCategory.DOCTOR,
        name="Dr. Asha Menon",
        specialization="Cardiology",
        hospital="City Heart Institute",
        rating=4.2,
        experience=12,
        availability_slots=3,
        location=GeoPoint(longitude=77.59, latitude=12.97),
    )


@pytest.fixture
def hospital():
    return Entity(
        id="hosp-1",
        category=EntityCategory.HOSPITAL,
        name="Apollo General",
        hospital_type="Private",
        rating=4.7,
        is_emergency=True,
        specialties=["Cardiology", "Neurology"],
        facilities=["ICU", "MRI", "Pharmacy"],
        location=GeoPoint(longitude=77.60, latitude=12.95),
    )


# ============================================================================
# Variants
# ============================================================================


def test_exact_match(doctor):
    assert Filterer.evaluate(doctor, ExactMatch("specialization", "Cardiology"))
    assert not Filterer.evaluate(doctor, ExactMatch("specialization", "Neurology"))


def test_exact_match_missing_attribute_fails(hospital):
    assert not Filterer.evaluate(hospital, ExactMatch("specialization", "Cardiology"))


@pytest.mark.parametrize(
    "minimum,maximum,expected",
    [
        (4.2, None, True),  # inclusive lower bound
        (None, 4.2, True),  # inclusive upper bound
        (4.5, None, False),
        (None, 4.0, False),
        (4.0, 5.0, True),
        (5.0, 4.0, False),  # inverted range matches nothing
    ],
)
def test_range_match_bounds(doctor, minimum, maximum, expected):
    assert Filterer.evaluate(doctor, RangeMatch("rating", minimum, maximum)) is expected


def test_range_match_missing_value_fails(hospital):
    assert not Filterer.evaluate(hospital, RangeMatch("experience", minimum=0))


def test_range_match_non_numeric_value_fails(doctor):
    assert not Filterer.evaluate(doctor, RangeMatch("name", minimum=1))


def test_flag_match(doctor, hospital):
    assert Filterer.evaluate(hospital, FlagMatch("is_emergency"))
    assert not Filterer.evaluate(doctor, FlagMatch("is_emergency"))
    assert Filterer.evaluate(doctor, FlagMatch("is_emergency", expected=False))


def test_set_membership_scalar_and_list(hospital):
    assert Filterer.evaluate(hospital, SetMembership("hospital_type", frozenset({"Private", "Trust"})))
    assert not Filterer.evaluate(hospital, SetMembership("hospital_type", frozenset({"Government"})))
    assert Filterer.evaluate(hospital, SetMembership("facilities", frozenset({"MRI", "Dialysis"})))
    assert not Filterer.evaluate(hospital, SetMembership("facilities", frozenset({"Dialysis"})))


def test_unknown_predicate_type_fails(doctor):
    assert not Filterer.evaluate(doctor, object())


def test_empty_predicate_list_matches_everything(doctor, hospital):
    assert Filterer.matches(doctor, [])
    assert Filterer.matches(hospital, [])


def test_predicates_combine_with_and(doctor):
    predicates = [ExactMatch("specialization", "Cardiology"), RangeMatch("rating", minimum=4.5)]

    assert not Filterer.matches(doctor, predicates)


def test_evaluation_does_not_mutate_entity(doctor):
    snapshot = doctor.model_dump()

    Filterer.matches(doctor, [RangeMatch("rating", 1, 2), SetMembership("facilities", frozenset({"ICU"}))])

    assert doctor.model_dump() == snapshot


# ============================================================================
# build_predicates
# ============================================================================


def test_build_predicates_from_filter_spec():
    filters = FilterSpec(
        specialization="Cardiology",
        experience=NumericRange(min=5),
        rating=NumericRange(min=4.5, max=5),
        availability=True,
        emergency_only=True,
        hospital_type=["Private"],
        facilities=["ICU"],
    )

    predicates = build_predicates(filters, EntityCategory.HOSPITAL)

    assert predicates == [
        ExactMatch("category", EntityCategory.HOSPITAL),
        ExactMatch("specialization", "Cardiology"),
        RangeMatch("experience", 5, None),
        RangeMatch("rating", 4.5, 5),
        RangeMatch("availability_slots", minimum=1),
        FlagMatch("is_emergency"),
        SetMembership("hospital_type", frozenset({"Private"})),
        SetMembership("facilities", frozenset({"ICU"})),
    ]


def test_build_predicates_skips_empty_filters():
    filters = FilterSpec(experience=NumericRange(), hospital_type=[], availability=False)

    assert build_predicates(filters) == []
    assert build_predicates(None) == []


def test_rating_filter_excludes_lower_rated_doctor(doctor):
    predicates = build_predicates(FilterSpec(rating=NumericRange(min=4.5)))

    assert not Filterer.matches(doctor, predicates)


def test_availability_filter(doctor):
    predicates = build_predicates(FilterSpec(availability=True))
    booked = doctor.model_copy(update={"availability_slots": 0})

    assert Filterer.matches(doctor, predicates)
    assert not Filterer.matches(booked, predicates)
