from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, update, and_

from src.application.queries import (
    ReservationQuery, ByVehicle, ByDriver, BySpace, ByLot, ByCompany, ByLotOwner,
    WithStatus, OverlappingWindow, CoveringInstant, ExcludingReservation,
)
from src.application.repositories import (
    AbstractCompanyRepository,
    AbstractParkingLotRepository,
    AbstractParkingSpaceRepository,
    AbstractVehicleRepository,
    AbstractDriverRepository,
    AbstractReservationRepository,
)
from src.domain.common import SpaceType
from src.domain.entities import Company, ParkingLot, ParkingSpace, Vehicle, Driver, Reservation
from src.infrastructure.persistence.models.models import (
    Company as ORMCompany,
    ParkingLot as ORMParkingLot,
    ParkingSpace as ORMParkingSpace,
    Vehicle as ORMVehicle,
    Driver as ORMDriver,
    Reservation as ORMReservation,
)


def _company(orm: ORMCompany) -> Company:
    return Company(
        id=orm.id,
        name=orm.name,
        cnpj=orm.cnpj,
        company_type=orm.company_type,
        is_active=orm.is_active,
        email=orm.email,
        phone=orm.phone,
    )


def _lot(orm: ORMParkingLot) -> ParkingLot:
    return ParkingLot(
        id=orm.id,
        company_id=orm.company_id,
        name=orm.name,
        address=orm.address,
        price_per_hour=orm.price_per_hour,
        total_spaces=orm.total_spaces,
        available_spaces=orm.available_spaces,
        is_active=orm.is_active,
    )


def _space(orm: ORMParkingSpace) -> ParkingSpace:
    return ParkingSpace(
        id=orm.id,
        parking_lot_id=orm.parking_lot_id,
        space_number=orm.space_number,
        space_type=orm.space_type,
        is_available=orm.is_available,
        is_active=orm.is_active,
    )


def _vehicle(orm: ORMVehicle) -> Vehicle:
    return Vehicle(
        id=orm.id,
        company_id=orm.company_id,
        license_plate=orm.license_plate,
        vehicle_type=orm.vehicle_type,
        brand=orm.brand,
        model=orm.model,
        driver_id=orm.driver_id,
        is_active=orm.is_active,
    )


def _driver(orm: ORMDriver) -> Driver:
    return Driver(
        id=orm.id,
        company_id=orm.company_id,
        name=orm.name,
        cpf=orm.cpf,
        cnh=orm.cnh,
        phone=orm.phone,
        is_active=orm.is_active,
    )


def _reservation(orm: ORMReservation) -> Reservation:
    return Reservation(
        id=orm.id,
        parking_lot_id=orm.parking_lot_id,
        parking_space_id=orm.parking_space_id,
        company_id=orm.company_id,
        vehicle_id=orm.vehicle_id,
        driver_id=orm.driver_id,
        start_time=orm.start_time,
        end_time=orm.end_time,
        total_cost=orm.total_cost,
        status=orm.status,
        payment_status=orm.payment_status,
        actual_arrival=orm.actual_arrival,
        actual_departure=orm.actual_departure,
        special_requests=orm.special_requests,
        cost_is_provisional=orm.cost_is_provisional,
        created_at=orm.created_at,
        updated_at=orm.updated_at,
    )


class SQLAlchemyCompanyRepository(AbstractCompanyRepository):
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, company_id: int) -> Optional[Company]:
        orm_company = await self.session.get(ORMCompany, company_id)
        return _company(orm_company) if orm_company else None

    async def get_by_cnpj(self, cnpj: str) -> Optional[Company]:
        result = await self.session.execute(select(ORMCompany).where(ORMCompany.cnpj == cnpj))
        orm_company = result.scalars().first()
        return _company(orm_company) if orm_company else None

    async def add(self, company: Company) -> Company:
        orm_company = ORMCompany(
            name=company.name,
            cnpj=company.cnpj,
            company_type=company.company_type,
            email=company.email,
            phone=company.phone,
            is_active=company.is_active,
        )
        self.session.add(orm_company)
        await self.session.flush()
        await self.session.refresh(orm_company)
        return _company(orm_company)


class SQLAlchemyParkingLotRepository(AbstractParkingLotRepository):
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, lot_id: int) -> Optional[ParkingLot]:
        result = await self.session.execute(
            select(ORMParkingLot)
            .where(ORMParkingLot.id == lot_id)
            .execution_options(populate_existing=True)
        )
        orm_lot = result.scalars().first()
        return _lot(orm_lot) if orm_lot else None

    async def get_for_update(self, lot_id: int) -> Optional[ParkingLot]:
        # FOR UPDATE is dropped by SQLite, where BEGIN IMMEDIATE already holds the write lock.
        result = await self.session.execute(
            select(ORMParkingLot)
            .where(ORMParkingLot.id == lot_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        orm_lot = result.scalars().first()
        return _lot(orm_lot) if orm_lot else None

    async def list_by_company(self, company_id: int, active_only: bool = True) -> List[ParkingLot]:
        query = select(ORMParkingLot).where(ORMParkingLot.company_id == company_id)
        if active_only:
            query = query.where(ORMParkingLot.is_active.is_(True))
        result = await self.session.execute(query.order_by(ORMParkingLot.id))
        return [_lot(lot) for lot in result.scalars().all()]

    async def add(self, lot: ParkingLot) -> ParkingLot:
        orm_lot = ORMParkingLot(
            company_id=lot.company_id,
            name=lot.name,
            address=lot.address,
            price_per_hour=lot.price_per_hour,
            total_spaces=0,
            available_spaces=0,
            is_active=lot.is_active,
        )
        self.session.add(orm_lot)
        await self.session.flush()
        await self.session.refresh(orm_lot)
        return _lot(orm_lot)

    async def adjust_counters(self, lot_id: int, total_delta: int = 0, available_delta: int = 0) -> None:
        await self.session.execute(
            update(ORMParkingLot)
            .where(ORMParkingLot.id == lot_id)
            .values(
                total_spaces=ORMParkingLot.total_spaces + total_delta,
                available_spaces=ORMParkingLot.available_spaces + available_delta,
            )
            .execution_options(synchronize_session="fetch")
        )

    async def set_counters(self, lot_id: int, total_spaces: int, available_spaces: int) -> None:
        await self.session.execute(
            update(ORMParkingLot)
            .where(ORMParkingLot.id == lot_id)
            .values(total_spaces=total_spaces, available_spaces=available_spaces)
            .execution_options(synchronize_session="fetch")
        )


class SQLAlchemyParkingSpaceRepository(AbstractParkingSpaceRepository):
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, space_id: int) -> Optional[ParkingSpace]:
        result = await self.session.execute(
            select(ORMParkingSpace)
            .where(ORMParkingSpace.id == space_id)
            .execution_options(populate_existing=True)
        )
        orm_space = result.scalars().first()
        return _space(orm_space) if orm_space else None

    async def get_active_by_number(self, lot_id: int, space_number: str) -> Optional[ParkingSpace]:
        result = await self.session.execute(
            select(ORMParkingSpace).where(
                and_(
                    ORMParkingSpace.parking_lot_id == lot_id,
                    ORMParkingSpace.space_number == space_number,
                    ORMParkingSpace.is_active.is_(True),
                )
            )
        )
        orm_space = result.scalars().first()
        return _space(orm_space) if orm_space else None

    async def list_by_lot(
        self, lot_id: int, available: Optional[bool] = None, space_type: Optional[SpaceType] = None
    ) -> List[ParkingSpace]:
        conditions = [ORMParkingSpace.parking_lot_id == lot_id, ORMParkingSpace.is_active.is_(True)]
        if available is not None:
            conditions.append(ORMParkingSpace.is_available.is_(available))
        if space_type is not None:
            conditions.append(ORMParkingSpace.space_type == space_type)

        result = await self.session.execute(
            select(ORMParkingSpace).where(and_(*conditions)).order_by(ORMParkingSpace.space_number)
        )
        return [_space(s) for s in result.scalars().all()]

    async def add(self, space: ParkingSpace) -> ParkingSpace:
        orm_space = ORMParkingSpace(
            parking_lot_id=space.parking_lot_id,
            space_number=space.space_number,
            space_type=space.space_type,
            is_available=space.is_available,
            is_active=space.is_active,
        )
        self.session.add(orm_space)
        await self.session.flush()
        await self.session.refresh(orm_space)
        return _space(orm_space)

    async def add_many(self, spaces: List[ParkingSpace]) -> int:
        self.session.add_all([
            ORMParkingSpace(
                parking_lot_id=s.parking_lot_id,
                space_number=s.space_number,
                space_type=s.space_type,
                is_available=s.is_available,
                is_active=s.is_active,
            ) for s in spaces
        ])
        await self.session.flush()
        return len(spaces)

    async def update(self, space: ParkingSpace) -> ParkingSpace:
        orm_space = await self.session.get(ORMParkingSpace, space.id)
        if orm_space is None:
            raise LookupError(f"Parking space with ID {space.id} not found.")
        orm_space.is_available = space.is_available
        orm_space.is_active = space.is_active
        orm_space.space_type = space.space_type
        await self.session.flush()
        await self.session.refresh(orm_space)
        return _space(orm_space)

    async def deactivate_all(self, lot_id: int) -> int:
        result = await self.session.execute(
            update(ORMParkingSpace)
            .where(and_(ORMParkingSpace.parking_lot_id == lot_id, ORMParkingSpace.is_active.is_(True)))
            .values(is_active=False)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount

    async def count_active(self, lot_id: int) -> int:
        result = await self.session.execute(
            select(func.count(ORMParkingSpace.id)).where(
                and_(ORMParkingSpace.parking_lot_id == lot_id, ORMParkingSpace.is_active.is_(True))
            )
        )
        return result.scalar() or 0

    async def count_available(self, lot_id: int) -> int:
        result = await self.session.execute(
            select(func.count(ORMParkingSpace.id)).where(
                and_(
                    ORMParkingSpace.parking_lot_id == lot_id,
                    ORMParkingSpace.is_active.is_(True),
                    ORMParkingSpace.is_available.is_(True),
                )
            )
        )
        return result.scalar() or 0


class SQLAlchemyVehicleRepository(AbstractVehicleRepository):
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, vehicle_id: int) -> Optional[Vehicle]:
        orm_vehicle = await self.session.get(ORMVehicle, vehicle_id)
        return _vehicle(orm_vehicle) if orm_vehicle else None

    async def get_by_license_plate(self, license_plate: str) -> Optional[Vehicle]:
        result = await self.session.execute(
            select(ORMVehicle).where(ORMVehicle.license_plate == license_plate.upper())
        )
        orm_vehicle = result.scalars().first()
        return _vehicle(orm_vehicle) if orm_vehicle else None

    async def search_by_plate_prefix(self, prefix: str, limit: int) -> List[Vehicle]:
        result = await self.session.execute(
            select(ORMVehicle)
            .where(and_(ORMVehicle.license_plate.startswith(prefix.upper()), ORMVehicle.is_active.is_(True)))
            .order_by(ORMVehicle.license_plate)
            .limit(limit)
        )
        return [_vehicle(v) for v in result.scalars().all()]

    async def add(self, vehicle: Vehicle) -> Vehicle:
        orm_vehicle = ORMVehicle(
            company_id=vehicle.company_id,
            driver_id=vehicle.driver_id,
            license_plate=vehicle.license_plate,
            vehicle_type=vehicle.vehicle_type,
            brand=vehicle.brand,
            model=vehicle.model,
            is_active=vehicle.is_active,
        )
        self.session.add(orm_vehicle)
        await self.session.flush()
        await self.session.refresh(orm_vehicle)
        return _vehicle(orm_vehicle)


class SQLAlchemyDriverRepository(AbstractDriverRepository):
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, driver_id: int) -> Optional[Driver]:
        orm_driver = await self.session.get(ORMDriver, driver_id)
        return _driver(orm_driver) if orm_driver else None

    async def get_by_cpf(self, cpf: str) -> Optional[Driver]:
        result = await self.session.execute(select(ORMDriver).where(ORMDriver.cpf == cpf))
        orm_driver = result.scalars().first()
        return _driver(orm_driver) if orm_driver else None

    async def add(self, driver: Driver) -> Driver:
        orm_driver = ORMDriver(
            company_id=driver.company_id,
            name=driver.name,
            cpf=driver.cpf,
            cnh=driver.cnh,
            phone=driver.phone,
            is_active=driver.is_active,
        )
        self.session.add(orm_driver)
        await self.session.flush()
        await self.session.refresh(orm_driver)
        return _driver(orm_driver)


def _predicate_clause(predicate):
    if isinstance(predicate, ByVehicle):
        return ORMReservation.vehicle_id == predicate.vehicle_id
    if isinstance(predicate, ByDriver):
        return ORMReservation.driver_id == predicate.driver_id
    if isinstance(predicate, BySpace):
        return ORMReservation.parking_space_id == predicate.parking_space_id
    if isinstance(predicate, ByLot):
        return ORMReservation.parking_lot_id == predicate.parking_lot_id
    if isinstance(predicate, ByCompany):
        return ORMReservation.company_id == predicate.company_id
    if isinstance(predicate, ByLotOwner):
        owned_lots = select(ORMParkingLot.id).where(ORMParkingLot.company_id == predicate.company_id)
        return ORMReservation.parking_lot_id.in_(owned_lots)
    if isinstance(predicate, WithStatus):
        return ORMReservation.status.in_(sorted(predicate.statuses, key=lambda s: s.value))
    if isinstance(predicate, OverlappingWindow):
        return and_(ORMReservation.start_time < predicate.end, ORMReservation.end_time > predicate.start)
    if isinstance(predicate, CoveringInstant):
        return and_(ORMReservation.start_time <= predicate.at, ORMReservation.end_time > predicate.at)
    if isinstance(predicate, ExcludingReservation):
        return ORMReservation.id != predicate.reservation_id
    raise TypeError(f"Unsupported reservation predicate: {predicate!r}")


class SQLAlchemyReservationRepository(AbstractReservationRepository):
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, reservation_id: int) -> Optional[Reservation]:
        result = await self.session.execute(
            select(ORMReservation)
            .where(ORMReservation.id == reservation_id)
            .execution_options(populate_existing=True)
        )
        orm_reservation = result.scalars().first()
        return _reservation(orm_reservation) if orm_reservation else None

    async def add(self, reservation: Reservation) -> Reservation:
        orm_reservation = ORMReservation(
            parking_lot_id=reservation.parking_lot_id,
            parking_space_id=reservation.parking_space_id,
            company_id=reservation.company_id,
            vehicle_id=reservation.vehicle_id,
            driver_id=reservation.driver_id,
            start_time=reservation.start_time,
            end_time=reservation.end_time,
            actual_arrival=reservation.actual_arrival,
            actual_departure=reservation.actual_departure,
            status=reservation.status,
            total_cost=reservation.total_cost,
            cost_is_provisional=reservation.cost_is_provisional,
            payment_status=reservation.payment_status,
            special_requests=reservation.special_requests,
        )
        self.session.add(orm_reservation)
        await self.session.flush()
        await self.session.refresh(orm_reservation)
        return _reservation(orm_reservation)

    async def update(self, reservation: Reservation) -> Reservation:
        orm_reservation = await self.session.get(ORMReservation, reservation.id)
        if orm_reservation is None:
            raise LookupError(f"Reservation with ID {reservation.id} not found.")
        orm_reservation.parking_space_id = reservation.parking_space_id
        orm_reservation.start_time = reservation.start_time
        orm_reservation.end_time = reservation.end_time
        orm_reservation.actual_arrival = reservation.actual_arrival
        orm_reservation.actual_departure = reservation.actual_departure
        orm_reservation.status = reservation.status
        orm_reservation.total_cost = reservation.total_cost
        orm_reservation.cost_is_provisional = reservation.cost_is_provisional
        orm_reservation.payment_status = reservation.payment_status
        orm_reservation.special_requests = reservation.special_requests
        await self.session.flush()
        await self.session.refresh(orm_reservation)
        return _reservation(orm_reservation)

    async def find(self, query: ReservationQuery) -> List[Reservation]:
        statement = select(ORMReservation)
        clauses = [_predicate_clause(p) for p in query]
        if clauses:
            statement = statement.where(and_(*clauses))
        result = await self.session.execute(
            statement.order_by(ORMReservation.start_time.desc(), ORMReservation.id.desc())
        )
        return [_reservation(r) for r in result.scalars().all()]

    async def count(self, query: ReservationQuery) -> int:
        statement = select(func.count(ORMReservation.id))
        clauses = [_predicate_clause(p) for p in query]
        if clauses:
            statement = statement.where(and_(*clauses))
        result = await self.session.execute(statement)
        return result.scalar() or 0
