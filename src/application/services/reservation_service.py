from dataclasses import dataclass, fields
from datetime import datetime
from typing import Callable, Dict, List, Optional

from loguru import logger

from src.application.queries import (
    ReservationQuery, ByCompany, ByLotOwner, ByLot, ByVehicle, ByDriver, WithStatus, OverlappingWindow,
    SPACE,
)
from src.application.repositories import AbstractUnitOfWork
from src.application.services.conflicts import ensure_no_overlap
from src.application.services.space_inventory import SpaceInventoryLedger
from src.application.services.transactions import transactional
from src.domain.common import CompanyType, PaymentStatus, ReservationStatus, UserRole
from src.domain.entities import Caller, ParkingLot, ParkingSpace, Reservation
from src.domain.errors import ConflictError, ForbiddenError, InvalidStateError, NotFoundError
from src.domain.intervals import ensure_valid_interval
from src.domain.pricing import compute_cost, settle_cost
from src.domain.state_machine import Actor, apply_transition, ensure_mutable, resolve_actor
from src.shared.utils import as_utc, utc_now


@dataclass
class ReservationPatch:
    """Fields to change on a reservation. ``None`` leaves a field untouched."""
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    parking_space_id: Optional[int] = None
    status: Optional[ReservationStatus] = None
    actual_arrival: Optional[datetime] = None
    actual_departure: Optional[datetime] = None
    special_requests: Optional[str] = None
    payment_status: Optional[PaymentStatus] = None

    def changes(self) -> Dict[str, object]:
        return {f.name: getattr(self, f.name) for f in fields(self) if getattr(self, f.name) is not None}


@dataclass
class ReservationFilters:
    parking_lot_id: Optional[int] = None
    vehicle_id: Optional[int] = None
    driver_id: Optional[int] = None
    status: Optional[ReservationStatus] = None
    start: Optional[datetime] = None
    end: Optional[datetime] = None

    def to_query(self) -> ReservationQuery:
        query = ReservationQuery()
        if self.parking_lot_id is not None:
            query = query.where(ByLot(self.parking_lot_id))
        if self.vehicle_id is not None:
            query = query.where(ByVehicle(self.vehicle_id))
        if self.driver_id is not None:
            query = query.where(ByDriver(self.driver_id))
        if self.status is not None:
            query = query.where(WithStatus.of(ReservationStatus(self.status)))
        if self.start is not None and self.end is not None:
            query = query.where(OverlappingWindow(as_utc(self.start), as_utc(self.end)))
        return query


OWNER_FIELDS = frozenset({"start_time", "end_time", "parking_space_id", "special_requests", "status"})
OPERATOR_FIELDS = frozenset({"status", "actual_arrival", "actual_departure"})


class ReservationService:
    def __init__(self, uow: AbstractUnitOfWork, clock: Callable[[], datetime] = utc_now):
        self.uow = uow
        self.clock = clock
        self.ledger = SpaceInventoryLedger(uow, clock)

    async def _load_lot(self, lot_id: int) -> ParkingLot:
        lot = await self.uow.parking_lots.get_by_id(lot_id)
        if lot is None or not lot.is_active:
            raise NotFoundError(f"Parking lot {lot_id} not found", entity="parking_lot")
        return lot

    async def _load_space(self, lot: ParkingLot, space_id: int) -> ParkingSpace:
        space = await self.uow.parking_spaces.get_by_id(space_id)
        if space is None or not space.is_active or space.parking_lot_id != lot.id:
            raise NotFoundError(f"Parking space {space_id} not found in parking lot {lot.id}", entity="parking_space")
        if not space.is_available:
            raise ConflictError(
                f"Parking space {space.space_number} is not available",
                dimension=SPACE,
                entity="parking_space",
                rule="space_available",
            )
        return space

    def _booking_company(self, caller: Caller, company_id: Optional[int]) -> int:
        if caller.role == UserRole.ESTACIONAMENTO:
            raise ForbiddenError("Parking operators cannot book reservations", entity="reservation", rule="role")
        if caller.is_admin:
            if company_id is None:
                raise InvalidStateError("A company is required", entity="reservation", rule="company_required")
            return company_id
        if company_id is not None and company_id != caller.company_id:
            raise ForbiddenError("Cannot book on behalf of another company", entity="reservation", rule="ownership")
        return caller.company_id

    @transactional
    async def create_reservation(
        self,
        caller: Caller,
        vehicle_id: int,
        driver_id: int,
        parking_lot_id: int,
        start_time: datetime,
        end_time: datetime,
        parking_space_id: Optional[int] = None,
        special_requests: Optional[str] = None,
        company_id: Optional[int] = None,
    ) -> Reservation:
        company_id = self._booking_company(caller, company_id)
        start_time, end_time = as_utc(start_time), as_utc(end_time)
        ensure_valid_interval(start_time, end_time)

        company = await self.uow.companies.get_by_id(company_id)
        if company is None or not company.is_active:
            raise NotFoundError(f"Company {company_id} not found", entity="company")
        if company.company_type != CompanyType.TRANSPORTADORA:
            raise ForbiddenError("Only transport companies can book", entity="company", rule="company_type")

        lot = await self._load_lot(parking_lot_id)

        vehicle = await self.uow.vehicles.get_by_id(vehicle_id)
        if vehicle is None or not vehicle.is_active:
            raise NotFoundError(f"Vehicle {vehicle_id} not found", entity="vehicle")
        if vehicle.company_id != company.id:
            raise ForbiddenError("The vehicle belongs to another company", entity="vehicle", rule="ownership")

        driver = await self.uow.drivers.get_by_id(driver_id)
        if driver is None or not driver.is_active:
            raise NotFoundError(f"Driver {driver_id} not found", entity="driver")
        if driver.company_id != company.id:
            raise ForbiddenError("The driver belongs to another company", entity="driver", rule="ownership")

        if parking_space_id is not None:
            await self._load_space(lot, parking_space_id)

        await ensure_no_overlap(self.uow, vehicle.id, driver.id, parking_space_id, start_time, end_time)

        reservation = await self.uow.reservations.add(
            Reservation(
                parking_lot_id=lot.id,
                parking_space_id=parking_space_id,
                company_id=company.id,
                vehicle_id=vehicle.id,
                driver_id=driver.id,
                start_time=start_time,
                end_time=end_time,
                total_cost=compute_cost(start_time, end_time, lot.price_per_hour),
                special_requests=special_requests,
            )
        )
        logger.info(
            f"Reservation {reservation.id} created for vehicle {vehicle.license_plate} "
            f"in lot {lot.id} ({start_time.isoformat()} - {end_time.isoformat()}), cost {reservation.total_cost}"
        )
        return reservation

    async def _load_for_caller(self, caller: Caller, reservation_id: int):
        reservation = await self.uow.reservations.get_by_id(reservation_id)
        if reservation is None:
            raise NotFoundError(f"Reservation {reservation_id} not found", entity="reservation")
        lot = await self.uow.parking_lots.get_by_id(reservation.parking_lot_id)
        actor = resolve_actor(caller, reservation, lot)
        if actor is None:
            raise ForbiddenError(
                f"Caller has no access to reservation {reservation_id}", entity="reservation", rule="ownership"
            )
        return reservation, lot, actor

    @staticmethod
    def _ensure_fields_allowed(actor: Actor, reservation: Reservation, changes: Dict[str, object]) -> None:
        if actor == Actor.ADMIN:
            return
        if actor == Actor.OWNER:
            if reservation.status != ReservationStatus.PENDING:
                raise ForbiddenError(
                    "Only pending reservations can be changed by the booking company",
                    entity="reservation",
                    rule="owner_pending_only",
                )
            allowed = OWNER_FIELDS
        else:
            allowed = OPERATOR_FIELDS
        refused = sorted(set(changes) - allowed)
        if refused:
            raise ForbiddenError(
                f"A {actor.value} cannot change: {', '.join(refused)}", entity="reservation", rule="field_access"
            )

    async def _apply_patch(self, caller: Caller, reservation_id: int, patch: ReservationPatch) -> Reservation:
        reservation, lot, actor = await self._load_for_caller(caller, reservation_id)
        ensure_mutable(reservation)

        changes = patch.changes()
        if changes.get("status") == reservation.status:
            del changes["status"]
        self._ensure_fields_allowed(actor, reservation, changes)

        now = self.clock()
        start_time = as_utc(changes.get("start_time", reservation.start_time))
        end_time = as_utc(changes.get("end_time", reservation.end_time))
        times_changed = "start_time" in changes or "end_time" in changes
        space_changed = (
            "parking_space_id" in changes and changes["parking_space_id"] != reservation.parking_space_id
        )

        if times_changed:
            ensure_valid_interval(start_time, end_time)
        if space_changed:
            if reservation.status == ReservationStatus.IN_PROGRESS:
                raise InvalidStateError(
                    "The space of a reservation in progress cannot be changed",
                    entity="reservation",
                    rule="space_locked",
                )
            await self._load_space(lot, changes["parking_space_id"])
            reservation.parking_space_id = changes["parking_space_id"]
        if times_changed or space_changed:
            await ensure_no_overlap(
                self.uow,
                reservation.vehicle_id,
                reservation.driver_id,
                reservation.parking_space_id,
                start_time,
                end_time,
                exclude_id=reservation.id,
            )
        if times_changed:
            reservation.start_time, reservation.end_time = start_time, end_time
            reservation.total_cost = compute_cost(start_time, end_time, lot.price_per_hour)

        for name in ("actual_arrival", "actual_departure"):
            if name in changes:
                setattr(reservation, name, as_utc(changes[name]))
        if "special_requests" in changes:
            reservation.special_requests = changes["special_requests"]
        if "payment_status" in changes:
            reservation.payment_status = PaymentStatus(changes["payment_status"])

        if "status" in changes:
            await self._transition(reservation, lot, ReservationStatus(changes["status"]), actor, now)

        reservation = await self.uow.reservations.update(reservation)
        logger.info(f"Reservation {reservation.id} updated by {actor.value}: {', '.join(sorted(changes)) or 'no changes'}")
        return reservation

    async def _transition(
        self, reservation: Reservation, lot: ParkingLot, target: ReservationStatus, actor: Actor, now: datetime
    ) -> None:
        previous = apply_transition(reservation, target, actor, now)
        space_id = reservation.parking_space_id

        if target == ReservationStatus.IN_PROGRESS and space_id is not None:
            space = await self.uow.parking_spaces.get_by_id(space_id)
            if space is None or not space.is_active or not space.is_available:
                raise ConflictError(
                    f"Parking space {space_id} is not available",
                    dimension=SPACE,
                    entity="parking_space",
                    rule="space_available",
                )
            await self.ledger.set_availability(space_id, False)
        elif previous == ReservationStatus.IN_PROGRESS and space_id is not None:
            await self.ledger.set_availability(space_id, True)

        # A walk-up stay leaving IN_PROGRESS: completed is charged, cancelled is not.
        if previous == ReservationStatus.IN_PROGRESS and reservation.cost_is_provisional:
            if target == ReservationStatus.COMPLETED:
                settle_cost(reservation, lot.price_per_hour)
            else:
                reservation.cost_is_provisional = False

        logger.info(f"Reservation {reservation.id}: {previous.value} -> {target.value}")

    @transactional
    async def update_reservation(self, caller: Caller, reservation_id: int, patch: ReservationPatch) -> Reservation:
        return await self._apply_patch(caller, reservation_id, patch)

    @transactional
    async def cancel_reservation(self, caller: Caller, reservation_id: int) -> Reservation:
        reservation, _, _ = await self._load_for_caller(caller, reservation_id)
        if reservation.status.is_terminal:
            raise InvalidStateError(
                f"Cannot cancel a reservation in status {reservation.status.value}",
                entity="reservation",
                rule="terminal_status",
            )
        return await self._apply_patch(caller, reservation_id, ReservationPatch(status=ReservationStatus.CANCELLED))

    @transactional
    async def get_reservation(self, caller: Caller, reservation_id: int) -> Reservation:
        reservation, _, _ = await self._load_for_caller(caller, reservation_id)
        return reservation

    @transactional
    async def list_reservations(self, caller: Caller, filters: Optional[ReservationFilters] = None) -> List[Reservation]:
        query = (filters or ReservationFilters()).to_query()
        if not caller.is_admin:
            if caller.company_id is None:
                raise ForbiddenError("Caller is not linked to a company", entity="reservation", rule="company_required")
            if caller.role == UserRole.TRANSPORTADORA:
                query = query.where(ByCompany(caller.company_id))
            else:
                query = query.where(ByLotOwner(caller.company_id))
        return await self.uow.reservations.find(query)
