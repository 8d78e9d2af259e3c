from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, Iterator, List, Optional, Tuple

from loguru import logger

from src.application.queries import ReservationQuery, ByLot, BySpace, WithStatus, CoveringInstant
from src.application.repositories import AbstractUnitOfWork
from src.application.services.access import ensure_lot_operator
from src.application.services.transactions import transactional
from src.domain.common import ACTIVE_STATUSES, ReservationStatus, SpaceType
from src.domain.entities import Caller, ParkingLot, ParkingSpace, Reservation
from src.domain.errors import ConflictError, InvalidStateError, NotFoundError
from src.shared.utils import utc_now


def normalize_space_number(value: str) -> str:
    return value.strip().upper()


@dataclass
class SpaceGroup:
    space_type: SpaceType
    count: int


@dataclass
class SpaceLayout:
    """Bulk layout for a lot: ``groups`` are numbered one after the other."""
    total: int
    groups: List[SpaceGroup] = field(default_factory=list)
    prefix: str = "V"
    start_index: int = 1

    def __post_init__(self):
        self.prefix = normalize_space_number(self.prefix)

    def validate(self) -> None:
        if not 1 <= len(self.prefix) <= 5:
            raise InvalidStateError("Numbering prefix must have 1 to 5 characters", entity="layout", rule="prefix")
        if self.start_index < 1:
            raise InvalidStateError("Starting index must be at least 1", entity="layout", rule="start_index")
        if any(group.count < 0 for group in self.groups):
            raise InvalidStateError("Space counts cannot be negative", entity="layout", rule="group_count")
        declared = sum(group.count for group in self.groups)
        if declared != self.total:
            raise InvalidStateError(
                f"Per-type counts add up to {declared}, expected {self.total}",
                entity="layout",
                rule="group_total",
            )

    def space_numbers(self) -> Iterator[Tuple[str, SpaceType]]:
        index = self.start_index
        for group in self.groups:
            for _ in range(group.count):
                yield f"{self.prefix}{index:03d}", SpaceType(group.space_type)
                index += 1


@dataclass
class SpaceOccupant:
    reservation_id: int
    status: ReservationStatus
    start_time: datetime
    end_time: datetime
    license_plate: str
    vehicle_model: str
    driver_name: str
    company_name: str


@dataclass
class SpaceListing:
    space: ParkingSpace
    occupant: Optional[SpaceOccupant] = None


class SpaceInventoryLedger:
    """Sole writer of lot counters and space availability flags.

    ``set_availability`` joins the unit of work its caller already opened;
    every other operation runs as its own transaction.
    """

    def __init__(self, uow: AbstractUnitOfWork, clock: Callable[[], datetime] = utc_now):
        self.uow = uow
        self.clock = clock

    async def set_availability(self, space_id: int, available: bool) -> ParkingSpace:
        space = await self.uow.parking_spaces.get_by_id(space_id)
        if space is None or not space.is_active:
            raise NotFoundError(f"Parking space {space_id} not found", entity="parking_space")
        if space.is_available == available:
            return space

        space.is_available = available
        space = await self.uow.parking_spaces.update(space)
        await self.uow.parking_lots.adjust_counters(space.parking_lot_id, available_delta=1 if available else -1)
        logger.debug(f"Space {space.space_number} (lot {space.parking_lot_id}) available={available}")
        return space

    async def _load_lot_for_write(self, caller: Caller, lot_id: int) -> ParkingLot:
        lot = await self.uow.parking_lots.get_for_update(lot_id)
        if lot is None or not lot.is_active:
            raise NotFoundError(f"Parking lot {lot_id} not found", entity="parking_lot")
        ensure_lot_operator(caller, lot)
        return lot

    async def _recount(self, lot_id: int) -> Tuple[int, int]:
        total = await self.uow.parking_spaces.count_active(lot_id)
        available = await self.uow.parking_spaces.count_available(lot_id)
        await self.uow.parking_lots.set_counters(lot_id, total, available)
        return total, available

    @transactional
    async def add_space(
        self,
        caller: Caller,
        lot_id: int,
        space_number: str,
        space_type: SpaceType,
        is_available: bool = True,
    ) -> ParkingSpace:
        lot = await self._load_lot_for_write(caller, lot_id)
        space_number = normalize_space_number(space_number)

        if await self.uow.parking_spaces.get_active_by_number(lot.id, space_number):
            raise ConflictError(
                f"Space {space_number} already exists in parking lot {lot.id}",
                entity="parking_space",
                rule="space_number_unique",
            )

        space = await self.uow.parking_spaces.add(
            ParkingSpace(
                parking_lot_id=lot.id,
                space_number=space_number,
                space_type=space_type,
                is_available=is_available,
            )
        )
        await self.uow.parking_lots.adjust_counters(lot.id, total_delta=1, available_delta=1 if is_available else 0)
        logger.info(f"Space {space.space_number} added to parking lot {lot.id}")
        return space

    @transactional
    async def remove_space(self, caller: Caller, space_id: int) -> ParkingSpace:
        space = await self.uow.parking_spaces.get_by_id(space_id)
        if space is None or not space.is_active:
            raise NotFoundError(f"Parking space {space_id} not found", entity="parking_space")
        lot = await self._load_lot_for_write(caller, space.parking_lot_id)

        holding = await self.uow.reservations.count(
            ReservationQuery().where(BySpace(space.id), WithStatus(ACTIVE_STATUSES))
        )
        if holding:
            raise InvalidStateError(
                f"Space {space.space_number} has {holding} active reservation(s)",
                entity="parking_space",
                rule="space_in_use",
            )

        space.is_active = False
        space = await self.uow.parking_spaces.update(space)
        await self.uow.parking_lots.adjust_counters(
            lot.id, total_delta=-1, available_delta=-1 if space.is_available else 0
        )
        logger.info(f"Space {space.space_number} removed from parking lot {lot.id}")
        return space

    @transactional
    async def regenerate(self, caller: Caller, lot_id: int, layout: SpaceLayout) -> List[ParkingSpace]:
        layout.validate()
        lot = await self._load_lot_for_write(caller, lot_id)

        active = await self.uow.reservations.find(
            ReservationQuery().where(ByLot(lot.id), WithStatus(ACTIVE_STATUSES))
        )
        if any(r.parking_space_id is not None for r in active):
            raise InvalidStateError(
                f"Parking lot {lot.id} has active reservations bound to its spaces",
                entity="parking_lot",
                rule="spaces_in_use",
            )

        retired = await self.uow.parking_spaces.deactivate_all(lot.id)
        created = await self.uow.parking_spaces.add_many([
            ParkingSpace(parking_lot_id=lot.id, space_number=number, space_type=space_type)
            for number, space_type in layout.space_numbers()
        ])
        total, available = await self._recount(lot.id)
        logger.info(
            f"Parking lot {lot.id} regenerated: {retired} spaces retired, {created} created "
            f"(total={total}, available={available})"
        )
        return await self.uow.parking_spaces.list_by_lot(lot.id)

    @transactional
    async def reconcile_counters(self, caller: Caller, lot_id: int) -> ParkingLot:
        lot = await self._load_lot_for_write(caller, lot_id)
        total, available = await self._recount(lot.id)
        if (total, available) != (lot.total_spaces, lot.available_spaces):
            logger.warning(
                f"Parking lot {lot.id} counters drifted: stored ({lot.total_spaces}, {lot.available_spaces}), "
                f"counted ({total}, {available})"
            )
        return await self.uow.parking_lots.get_by_id(lot.id)

    @transactional
    async def list_spaces(
        self,
        caller: Caller,
        lot_id: int,
        available: Optional[bool] = None,
        space_type: Optional[SpaceType] = None,
    ) -> List[SpaceListing]:
        """Spaces of one lot, each with the booking holding it right now, if any."""
        lot = await self.uow.parking_lots.get_by_id(lot_id)
        if lot is None or not lot.is_active:
            raise NotFoundError(f"Parking lot {lot_id} not found", entity="parking_lot")
        ensure_lot_operator(caller, lot)

        spaces = await self.uow.parking_spaces.list_by_lot(lot.id, available=available, space_type=space_type)
        current = await self.uow.reservations.find(
            ReservationQuery().where(
                ByLot(lot.id),
                WithStatus.of(ReservationStatus.CONFIRMED, ReservationStatus.IN_PROGRESS),
                CoveringInstant(self.clock()),
            )
        )
        holding: Dict[int, Reservation] = {}
        for reservation in current:
            if reservation.parking_space_id is None:
                continue
            seen = holding.get(reservation.parking_space_id)
            # a parked vehicle wins over a confirmed booking for the same space
            if seen is None or reservation.status == ReservationStatus.IN_PROGRESS:
                holding[reservation.parking_space_id] = reservation

        listings = []
        for space in spaces:
            reservation = holding.get(space.id)
            occupant = await self._occupant(reservation) if reservation is not None else None
            listings.append(SpaceListing(space=space, occupant=occupant))
        return listings

    async def _occupant(self, reservation: Reservation) -> SpaceOccupant:
        vehicle = await self.uow.vehicles.get_by_id(reservation.vehicle_id)
        driver = await self.uow.drivers.get_by_id(reservation.driver_id)
        company = await self.uow.companies.get_by_id(reservation.company_id)
        return SpaceOccupant(
            reservation_id=reservation.id,
            status=reservation.status,
            start_time=reservation.start_time,
            end_time=reservation.end_time,
            license_plate=vehicle.license_plate if vehicle else "",
            vehicle_model=" ".join(p for p in (vehicle.brand, vehicle.model) if p) if vehicle else "",
            driver_name=driver.name if driver else "",
            company_name=company.name if company else "",
        )
