import pytest
from sqlalchemy import select
from sqlalchemy.pool import NullPool
import tempfile
import os
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from types import SimpleNamespace

from src.infrastructure.persistence.database import build_async_engine, build_session_factory
from src.infrastructure.persistence.models.models import (
    Base, Company, ParkingLot, ParkingSpace, Driver, Vehicle, Reservation
)
from src.infrastructure.persistence.sqlalchemy_repositories import SQLAlchemyUnitOfWork
from src.application.services.reservation_service import ReservationService
from src.application.services.space_inventory import SpaceInventoryLedger
from src.application.services.occupancy_service import OccupancyService
from src.application.services.registry_service import RegistryService
from src.domain.common import CompanyType, SpaceType, VehicleType, UserRole
from src.domain.entities import Caller


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture(scope="function")
async def test_db():
    """Create a test database for each test function."""
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as tmp_file:
        test_db_path = tmp_file.name

    # NullPool so every unit of work gets its own connection
    engine = build_async_engine(f"sqlite+aiosqlite:///{test_db_path}", poolclass=NullPool)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield build_session_factory(engine)

    await engine.dispose()
    os.unlink(test_db_path)


@pytest.fixture
def uow_factory(test_db):
    return lambda: SQLAlchemyUnitOfWork(test_db)


@pytest.fixture
async def seed(test_db):
    """Two transport companies, two parking operators, one lot with three truck spaces."""
    async with test_db() as session:
        carrier = Company(name="Transportes Rapido", cnpj="11.111.111/0001-11", company_type=CompanyType.TRANSPORTADORA)
        other_carrier = Company(name="Cargas Sul", cnpj="22.222.222/0001-22", company_type=CompanyType.TRANSPORTADORA)
        operator = Company(name="Patio Central", cnpj="33.333.333/0001-33", company_type=CompanyType.ESTACIONAMENTO)
        other_operator = Company(name="Patio Norte", cnpj="44.444.444/0001-44", company_type=CompanyType.ESTACIONAMENTO)
        session.add_all([carrier, other_carrier, operator, other_operator])
        await session.flush()

        lot = ParkingLot(
            company_id=operator.id,
            name="Patio Central - Via Dutra",
            address="Rodovia Presidente Dutra, km 210",
            price_per_hour=Decimal("15.00"),
            total_spaces=3,
            available_spaces=3,
        )
        other_lot = ParkingLot(
            company_id=other_operator.id,
            name="Patio Norte",
            address="BR-116, km 30",
            price_per_hour=Decimal("10.00"),
            total_spaces=1,
            available_spaces=1,
        )
        session.add_all([lot, other_lot])
        await session.flush()

        spaces = [
            ParkingSpace(parking_lot_id=lot.id, space_number=f"A{i:03d}", space_type=SpaceType.TRUCK)
            for i in range(1, 4)
        ]
        foreign_space = ParkingSpace(parking_lot_id=other_lot.id, space_number="N001", space_type=SpaceType.TRUCK)
        session.add_all(spaces + [foreign_space])

        driver = Driver(company_id=carrier.id, name="Joao Silva", cpf="123.456.789-00", cnh="12345678900")
        second_driver = Driver(company_id=carrier.id, name="Maria Souza", cpf="987.654.321-00")
        foreign_driver = Driver(company_id=other_carrier.id, name="Pedro Lima", cpf="555.555.555-55")
        session.add_all([driver, second_driver, foreign_driver])
        await session.flush()

        vehicle = Vehicle(
            company_id=carrier.id, driver_id=driver.id, license_plate="ABC1234",
            vehicle_type=VehicleType.TRUCK, brand="Volvo", model="FH 460",
        )
        second_vehicle = Vehicle(
            company_id=carrier.id, driver_id=second_driver.id, license_plate="XYZ9876",
            vehicle_type=VehicleType.SEMI_TRUCK, brand="Scania", model="R 450",
        )
        driverless_vehicle = Vehicle(
            company_id=carrier.id, license_plate="DEF5678", vehicle_type=VehicleType.VAN,
        )
        foreign_vehicle = Vehicle(
            company_id=other_carrier.id, driver_id=foreign_driver.id, license_plate="GHI9012",
            vehicle_type=VehicleType.TRUCK,
        )
        session.add_all([vehicle, second_vehicle, driverless_vehicle, foreign_vehicle])
        await session.commit()

        return SimpleNamespace(
            carrier_id=carrier.id,
            other_carrier_id=other_carrier.id,
            operator_id=operator.id,
            other_operator_id=other_operator.id,
            lot_id=lot.id,
            other_lot_id=other_lot.id,
            space_ids=[s.id for s in spaces],
            foreign_space_id=foreign_space.id,
            driver_id=driver.id,
            second_driver_id=second_driver.id,
            foreign_driver_id=foreign_driver.id,
            vehicle_id=vehicle.id,
            second_vehicle_id=second_vehicle.id,
            driverless_vehicle_id=driverless_vehicle.id,
            foreign_vehicle_id=foreign_vehicle.id,
        )


@pytest.fixture
def admin():
    return Caller(id=1, role=UserRole.ADMIN)


@pytest.fixture
def owner(seed):
    return Caller(id=2, role=UserRole.TRANSPORTADORA, company_id=seed.carrier_id)


@pytest.fixture
def foreign_owner(seed):
    return Caller(id=3, role=UserRole.TRANSPORTADORA, company_id=seed.other_carrier_id)


@pytest.fixture
def operator(seed):
    return Caller(id=4, role=UserRole.ESTACIONAMENTO, company_id=seed.operator_id)


@pytest.fixture
def foreign_operator(seed):
    return Caller(id=5, role=UserRole.ESTACIONAMENTO, company_id=seed.other_operator_id)


@pytest.fixture
def clock():
    return FakeClock(datetime(2024, 1, 1, 8, 0, tzinfo=timezone.utc))


@pytest.fixture
def reservation_service(uow_factory, clock):
    return ReservationService(uow_factory(), clock=clock)


@pytest.fixture
def ledger(uow_factory, clock):
    return SpaceInventoryLedger(uow_factory(), clock=clock)


@pytest.fixture
def occupancy_service(uow_factory, clock):
    return OccupancyService(uow_factory(), clock=clock)


@pytest.fixture
def registry_service(uow_factory):
    return RegistryService(uow_factory())


@pytest.fixture
def lot_counters(test_db):
    """Read (total_spaces, available_spaces) straight from the lot row."""
    async def _read(lot_id):
        async with test_db() as session:
            lot = await session.get(ParkingLot, lot_id)
            return lot.total_spaces, lot.available_spaces
    return _read


@pytest.fixture
def counted_spaces(test_db):
    """Count (active, active and available) spaces of a lot from the space rows."""
    async def _count(lot_id):
        async with test_db() as session:
            result = await session.execute(
                select(ParkingSpace).where(ParkingSpace.parking_lot_id == lot_id, ParkingSpace.is_active.is_(True))
            )
            active = result.scalars().all()
            return len(active), sum(1 for s in active if s.is_available)
    return _count


@pytest.fixture
def space_row(test_db):
    async def _read(space_id):
        async with test_db() as session:
            return await session.get(ParkingSpace, space_id)
    return _read


@pytest.fixture
def all_reservations(test_db):
    async def _read():
        async with test_db() as session:
            result = await session.execute(select(Reservation).order_by(Reservation.id))
            return result.scalars().all()
    return _read
