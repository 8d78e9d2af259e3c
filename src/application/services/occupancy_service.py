from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Callable, List, Optional, Union

from loguru import logger

from src.application.queries import ReservationQuery, BySpace, ByVehicle, ByLot, WithStatus, CoveringInstant, SPACE, VEHICLE
from src.application.repositories import AbstractUnitOfWork
from src.application.services.conflicts import ensure_no_overlap
from src.application.services.space_inventory import SpaceInventoryLedger
from src.application.services.transactions import transactional
from src.config.settings_env import settings
from src.domain.common import ReservationStatus, UserRole
from src.domain.entities import Caller, ParkingLot, ParkingSpace, Reservation, Vehicle
from src.domain.errors import ConflictError, ForbiddenError, InvalidStateError, NotFoundError
from src.domain.pricing import settle_cost
from src.domain.state_machine import Actor, apply_transition, start_walk_in
from src.shared.utils import normalize_plate, utc_now


@dataclass(frozen=True)
class VehicleRef:
    """A vehicle given either by id or by license plate."""
    vehicle_id: Optional[int] = None
    license_plate: Optional[str] = None

    @classmethod
    def parse(cls, value: Union[int, str]) -> "VehicleRef":
        if isinstance(value, int):
            return cls(vehicle_id=value)
        value = value.strip()
        if value.isdigit():
            return cls(vehicle_id=int(value))
        return cls(license_plate=normalize_plate(value))


@dataclass
class LotStatus:
    parking_lot_id: int
    name: str
    total: int
    free: int
    occupied: int
    reserved: int


@dataclass
class StatusBoard:
    total: int = 0
    free: int = 0
    occupied: int = 0
    reserved: int = 0
    lots: List[LotStatus] = field(default_factory=list)

    @property
    def occupancy_rate(self) -> float:
        return (self.occupied / self.total * 100) if self.total > 0 else 0


class OccupancyService:
    """Walk-up traffic: operators put a vehicle on a space and take it off again."""

    def __init__(self, uow: AbstractUnitOfWork, clock: Callable[[], datetime] = utc_now):
        self.uow = uow
        self.clock = clock
        self.ledger = SpaceInventoryLedger(uow, clock)

    @staticmethod
    def _ensure_operator(caller: Caller) -> None:
        if caller.role != UserRole.ESTACIONAMENTO or caller.company_id is None:
            raise ForbiddenError("Only parking operators can do this", entity="parking_space", rule="role")

    async def _load_space(self, caller: Caller, space_id: int) -> tuple[ParkingSpace, ParkingLot]:
        self._ensure_operator(caller)
        space = await self.uow.parking_spaces.get_by_id(space_id)
        if space is None or not space.is_active:
            raise NotFoundError(f"Parking space {space_id} not found", entity="parking_space")
        lot = await self.uow.parking_lots.get_by_id(space.parking_lot_id)
        if lot is None or lot.company_id != caller.company_id:
            raise ForbiddenError(
                f"Parking space {space_id} is not managed by this company", entity="parking_space", rule="ownership"
            )
        return space, lot

    async def _resolve_vehicle(self, ref: VehicleRef) -> Vehicle:
        if ref.vehicle_id is not None:
            vehicle = await self.uow.vehicles.get_by_id(ref.vehicle_id)
        else:
            vehicle = await self.uow.vehicles.get_by_license_plate(ref.license_plate)
        if vehicle is None or not vehicle.is_active:
            raise NotFoundError(f"Vehicle {ref.vehicle_id or ref.license_plate} not found", entity="vehicle")
        return vehicle

    @transactional
    async def occupy_space(self, caller: Caller, space_id: int, vehicle_ref: Union[VehicleRef, int, str]) -> Reservation:
        if not isinstance(vehicle_ref, VehicleRef):
            vehicle_ref = VehicleRef.parse(vehicle_ref)
        space, lot = await self._load_space(caller, space_id)

        vehicle = await self._resolve_vehicle(vehicle_ref)
        if vehicle.driver_id is None:
            raise InvalidStateError(
                f"Vehicle {vehicle.license_plate} has no driver assigned", entity="vehicle", rule="driver_required"
            )
        driver = await self.uow.drivers.get_by_id(vehicle.driver_id)
        if driver is None or not driver.is_active:
            raise NotFoundError(f"Driver {vehicle.driver_id} not found", entity="driver")

        now = self.clock()

        bound = await self.uow.reservations.find(
            ReservationQuery().where(BySpace(space.id), WithStatus.of(ReservationStatus.IN_PROGRESS))
        )
        if not bound:
            bound = await self.uow.reservations.find(
                ReservationQuery().where(
                    BySpace(space.id), WithStatus.of(ReservationStatus.CONFIRMED), CoveringInstant(now)
                )
            )
        if bound or not space.is_available:
            raise ConflictError(
                f"Parking space {space.space_number} is occupied or reserved",
                dimension=SPACE,
                conflicting_id=bound[0].id if bound else None,
                entity="parking_space",
                rule="space_free",
            )

        parked = await self.uow.reservations.find(
            ReservationQuery().where(ByVehicle(vehicle.id), WithStatus.of(ReservationStatus.IN_PROGRESS))
        )
        if parked:
            raise ConflictError(
                f"Vehicle {vehicle.license_plate} is already parked",
                dimension=VEHICLE,
                conflicting_id=parked[0].id,
                entity="vehicle",
                rule="vehicle_parked",
            )

        end_time = now + timedelta(hours=settings.MANUAL_OCCUPANCY_HORIZON_HOURS)
        await ensure_no_overlap(self.uow, vehicle.id, driver.id, space.id, now, end_time)

        reservation = Reservation(
            parking_lot_id=lot.id,
            parking_space_id=space.id,
            company_id=vehicle.company_id,
            vehicle_id=vehicle.id,
            driver_id=driver.id,
            start_time=now,
            end_time=end_time,
            total_cost=Decimal("0.00"),
            cost_is_provisional=True,
        )
        start_walk_in(reservation, now)
        reservation = await self.uow.reservations.add(reservation)
        await self.ledger.set_availability(space.id, False)

        logger.info(f"Vehicle {vehicle.license_plate} parked at space {space.space_number} (reservation {reservation.id})")
        return reservation

    @transactional
    async def free_space(self, caller: Caller, space_id: int) -> Reservation:
        space, lot = await self._load_space(caller, space_id)

        in_progress = await self.uow.reservations.find(
            ReservationQuery().where(BySpace(space.id), WithStatus.of(ReservationStatus.IN_PROGRESS))
        )
        if not in_progress:
            raise InvalidStateError(
                f"Parking space {space.space_number} has no vehicle parked", entity="parking_space", rule="space_empty"
            )
        reservation = in_progress[0]

        now = self.clock()
        apply_transition(reservation, ReservationStatus.COMPLETED, Actor.OPERATOR, now)
        reservation.actual_departure = now
        settle_cost(reservation, lot.price_per_hour)

        reservation = await self.uow.reservations.update(reservation)
        await self.ledger.set_availability(space.id, True)

        logger.info(f"Space {space.space_number} freed (reservation {reservation.id}). Amount: {reservation.total_cost}")
        return reservation

    @transactional
    async def status_board(self, caller: Caller) -> StatusBoard:
        self._ensure_operator(caller)
        now = self.clock()
        board = StatusBoard()

        for lot in await self.uow.parking_lots.list_by_company(caller.company_id):
            spaces = await self.uow.parking_spaces.list_by_lot(lot.id)
            upcoming = await self.uow.reservations.find(
                ReservationQuery().where(
                    ByLot(lot.id),
                    WithStatus.of(ReservationStatus.PENDING, ReservationStatus.CONFIRMED),
                    CoveringInstant(now),
                )
            )
            reserved_ids = {r.parking_space_id for r in upcoming if r.parking_space_id is not None}

            occupied = sum(1 for s in spaces if not s.is_available)
            reserved = sum(1 for s in spaces if s.is_available and s.id in reserved_ids)
            status = LotStatus(
                parking_lot_id=lot.id,
                name=lot.name,
                total=len(spaces),
                free=len(spaces) - occupied - reserved,
                occupied=occupied,
                reserved=reserved,
            )
            board.lots.append(status)
            board.total += status.total
            board.free += status.free
            board.occupied += status.occupied
            board.reserved += status.reserved

        return board

    @transactional
    async def search_vehicles(self, caller: Caller, prefix: str) -> List[Vehicle]:
        self._ensure_operator(caller)
        prefix = normalize_plate(prefix)
        if not prefix:
            return []
        return await self.uow.vehicles.search_by_plate_prefix(prefix, settings.VEHICLE_SEARCH_LIMIT)
