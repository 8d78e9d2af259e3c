"""Typed reservation query specifications.

A ``ReservationQuery`` is an immutable conjunction of predicates. Repositories
translate each predicate class into their own storage filter, so the set of
questions the core can ask the store is closed and statically known.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional, Union

from src.domain.common import ReservationStatus, ACTIVE_STATUSES


@dataclass(frozen=True)
class ByVehicle:
    vehicle_id: int


@dataclass(frozen=True)
class ByDriver:
    driver_id: int


@dataclass(frozen=True)
class BySpace:
    parking_space_id: int


@dataclass(frozen=True)
class ByLot:
    parking_lot_id: int


@dataclass(frozen=True)
class ByCompany:
    company_id: int


@dataclass(frozen=True)
class ByLotOwner:
    """Reservations in any lot owned by ``company_id``."""
    company_id: int


@dataclass(frozen=True)
class WithStatus:
    statuses: frozenset

    @classmethod
    def of(cls, *statuses: ReservationStatus) -> "WithStatus":
        return cls(frozenset(statuses))


@dataclass(frozen=True)
class OverlappingWindow:
    start: datetime
    end: datetime


@dataclass(frozen=True)
class CoveringInstant:
    at: datetime


@dataclass(frozen=True)
class ExcludingReservation:
    reservation_id: int


ReservationPredicate = Union[
    ByVehicle, ByDriver, BySpace, ByLot, ByCompany, ByLotOwner,
    WithStatus, OverlappingWindow, CoveringInstant, ExcludingReservation,
]


@dataclass(frozen=True)
class ReservationQuery:
    predicates: tuple = ()

    def where(self, *predicates: ReservationPredicate) -> "ReservationQuery":
        return ReservationQuery(self.predicates + tuple(predicates))

    def __iter__(self) -> Iterable[ReservationPredicate]:
        return iter(self.predicates)


# The three dimensions a booking must not double up on.
VEHICLE = "vehicle"
DRIVER = "driver"
SPACE = "space"


def active_in_dimension(
    dimension: str,
    key: int,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    exclude_id: Optional[int] = None,
) -> ReservationQuery:
    """Active reservations holding ``key`` in ``dimension``, optionally narrowed to a window."""
    selectors = {VEHICLE: ByVehicle, DRIVER: ByDriver, SPACE: BySpace}
    query = ReservationQuery().where(selectors[dimension](key), WithStatus(ACTIVE_STATUSES))
    if start is not None and end is not None:
        query = query.where(OverlappingWindow(start, end))
    if exclude_id is not None:
        query = query.where(ExcludingReservation(exclude_id))
    return query
