"""
Attribute filtering

A closed set of tagged predicate variants evaluated by one dispatcher.
Predicates combine with logical AND; an empty predicate list matches
everything. Evaluation never raises and never mutates the entity: a missing
or incomparable attribute simply fails the predicate.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Iterable, Union

from carefinder.schemas.entity import Entity, EntityCategory
from carefinder.schemas.query import FilterSpec


@dataclass(frozen=True)
class ExactMatch:
    field: str
    value: Any


@dataclass(frozen=True)
class RangeMatch:
    """Inclusive range; `minimum > maximum` matches nothing."""

    field: str
    minimum: float | None = None
    maximum: float | None = None


@dataclass(frozen=True)
class FlagMatch:
    field: str
    expected: bool = True


@dataclass(frozen=True)
class SetMembership:
    """Scalar attribute in `values`, or any overlap for list attributes."""

    field: str
    values: frozenset


Predicate = Union[ExactMatch, RangeMatch, FlagMatch, SetMembership]


def _exact(value: Any, predicate: ExactMatch) -> bool:
    return value is not None and value == predicate.value


def _range(value: Any, predicate: RangeMatch) -> bool:
    if value is None or isinstance(value, bool):
        return False
    try:
        if predicate.minimum is not None and value < predicate.minimum:
            return False
        if predicate.maximum is not None and value > predicate.maximum:
            return False
    except TypeError:
        return False
    return True


def _flag(value: Any, predicate: FlagMatch) -> bool:
    return isinstance(value, bool) and value is predicate.expected


def _membership(value: Any, predicate: SetMembership) -> bool:
    if value is None:
        return False
    if isinstance(value, (list, tuple, set, frozenset)):
        return any(item in predicate.values for item in value)
    try:
        return value in predicate.values
    except TypeError:
        return False


_EVALUATORS: dict[type, Callable[[Any, Any], bool]] = {
    ExactMatch: _exact,
    RangeMatch: _range,
    FlagMatch: _flag,
    SetMembership: _membership,
}


class Filterer:
    """Evaluates predicate lists against entity attributes."""

    @staticmethod
    def evaluate(entity: Entity, predicate: Predicate) -> bool:
        evaluator = _EVALUATORS.get(type(predicate))
        if evaluator is None:
            return False
        return evaluator(getattr(entity, predicate.field, None), predicate)

    @classmethod
    def matches(cls, entity: Entity, predicates: Iterable[Predicate]) -> bool:
        return all(cls.evaluate(entity, predicate) for predicate in predicates)


def build_predicates(
    filters: FilterSpec | None,
    category: EntityCategory | None = None,
) -> list[Predicate]:
    """
    Convert request filters and an optional category restriction to predicates.
    """
    predicates: list[Predicate] = []
    if category is not None:
        predicates.append(ExactMatch("category", category))
    if filters is None:
        return predicates

    if filters.specialization:
        predicates.append(ExactMatch("specialization", filters.specialization))
    if filters.experience and (filters.experience.min is not None or filters.experience.max is not None):
        predicates.append(RangeMatch("experience", filters.experience.min, filters.experience.max))
    if filters.rating and (filters.rating.min is not None or filters.rating.max is not None):
        predicates.append(RangeMatch("rating", filters.rating.min, filters.rating.max))
    if filters.availability:
        predicates.append(RangeMatch("availability_slots", minimum=1))
    if filters.emergency_only:
        predicates.append(FlagMatch("is_emergency"))
    if filters.hospital_type:
        predicates.append(SetMembership("hospital_type", frozenset(filters.hospital_type)))
    if filters.facilities:
        predicates.append(SetMembership("facilities", frozenset(filters.facilities)))
    return predicates
