"""Reservation status transitions.

Every write of ``Reservation.status`` goes through this module. Side effects
on parking spaces are left to the application services, which apply them in
the same unit of work as the status write.
"""
from datetime import datetime
from enum import Enum
from typing import Optional

from src.domain.common import ReservationStatus, UserRole
from src.domain.entities import Caller, ParkingLot, Reservation
from src.domain.errors import ForbiddenError, InvalidStateError, InvalidTransitionError


class Actor(str, Enum):
    ADMIN = "admin"
    OPERATOR = "operator"
    OWNER = "owner"


_STAFF = frozenset({Actor.ADMIN, Actor.OPERATOR})

TRANSITIONS: dict[tuple[ReservationStatus, ReservationStatus], frozenset] = {
    (ReservationStatus.PENDING, ReservationStatus.CONFIRMED): _STAFF,
    (ReservationStatus.PENDING, ReservationStatus.CANCELLED): _STAFF | {Actor.OWNER},
    (ReservationStatus.CONFIRMED, ReservationStatus.IN_PROGRESS): _STAFF,
    (ReservationStatus.CONFIRMED, ReservationStatus.CANCELLED): _STAFF,
    (ReservationStatus.IN_PROGRESS, ReservationStatus.COMPLETED): _STAFF,
    (ReservationStatus.IN_PROGRESS, ReservationStatus.CANCELLED): _STAFF,
}


def resolve_actor(caller: Caller, reservation: Reservation, lot: ParkingLot) -> Optional[Actor]:
    """How ``caller`` relates to ``reservation``; ``None`` when it has no standing at all."""
    if caller.is_admin:
        return Actor.ADMIN
    if caller.company_id is None:
        return None
    if caller.role == UserRole.ESTACIONAMENTO and lot.company_id == caller.company_id:
        return Actor.OPERATOR
    if caller.role == UserRole.TRANSPORTADORA and reservation.company_id == caller.company_id:
        return Actor.OWNER
    return None


def is_legal(current: ReservationStatus, target: ReservationStatus) -> bool:
    return (current, target) in TRANSITIONS


def ensure_transition(current: ReservationStatus, target: ReservationStatus, actor: Actor) -> None:
    if not is_legal(current, target):
        raise InvalidTransitionError(current, target)
    if actor not in TRANSITIONS[(current, target)]:
        raise ForbiddenError(
            f"A {actor.value} cannot change a reservation from {current.value} to {target.value}",
            entity="reservation",
            rule="status_transition_role",
        )


def ensure_mutable(reservation: Reservation) -> None:
    if reservation.status.is_terminal:
        raise InvalidStateError(
            f"Reservation {reservation.id} is {reservation.status.value} and can no longer be modified",
            entity="reservation",
            rule="terminal_status",
        )


def apply_transition(reservation: Reservation, target: ReservationStatus, actor: Actor, now: datetime) -> ReservationStatus:
    """Validate and apply ``target``; returns the previous status.

    Arrival and departure are stamped with ``now`` when entering IN_PROGRESS
    and COMPLETED respectively, unless already set.
    """
    previous = reservation.status
    ensure_transition(previous, target, actor)
    reservation.status = target
    if target == ReservationStatus.IN_PROGRESS and reservation.actual_arrival is None:
        reservation.actual_arrival = now
    if target == ReservationStatus.COMPLETED and reservation.actual_departure is None:
        reservation.actual_departure = now
    return previous


def start_walk_in(reservation: Reservation, now: datetime) -> None:
    """Put a freshly built walk-up reservation straight into IN_PROGRESS.

    This is the one entry into IN_PROGRESS that skips PENDING and CONFIRMED.
    """
    if reservation.id is not None:
        raise InvalidStateError("Only new reservations can start as walk-ins", entity="reservation")
    reservation.status = ReservationStatus.IN_PROGRESS
    reservation.actual_arrival = now
