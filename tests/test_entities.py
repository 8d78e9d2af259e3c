from datetime import datetime, timezone
from decimal import Decimal
from src.domain.entities import Caller, Company, ParkingSpace, Reservation, Vehicle
from src.domain.common import CompanyType, ReservationStatus, SpaceType, UserRole, VehicleType
from src.shared.utils import as_utc, normalize_plate


def test_caller_role_is_coerced():
    caller = Caller(id=1, role="ESTACIONAMENTO", company_id=3)
    assert caller.role == UserRole.ESTACIONAMENTO
    assert caller.is_admin is False
    assert Caller(id=2, role=UserRole.ADMIN).is_admin is True


def test_company_creation():
    company = Company(name="Patio Central", cnpj="33.333.333/0001-33", company_type="ESTACIONAMENTO")
    assert company.id is None
    assert company.company_type == CompanyType.ESTACIONAMENTO
    assert company.is_active is True


def test_parking_space_defaults():
    space = ParkingSpace(parking_lot_id=1, space_number="A001", space_type=SpaceType.TRUCK)
    assert space.is_available is True
    assert space.is_active is True


def test_vehicle_without_driver():
    vehicle = Vehicle(company_id=1, license_plate="ABC1234", vehicle_type=VehicleType.TRUCK)
    assert vehicle.driver_id is None


def test_reservation_activity_follows_status():
    reservation = Reservation(
        parking_lot_id=1,
        company_id=1,
        vehicle_id=1,
        driver_id=1,
        start_time=datetime(2024, 1, 1, 8, 0, tzinfo=timezone.utc),
        end_time=datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc),
        total_cost=Decimal("30.00"),
    )
    assert reservation.status == ReservationStatus.PENDING
    assert reservation.is_active is True
    assert reservation.cost_is_provisional is False

    reservation.status = ReservationStatus.CANCELLED
    assert reservation.is_active is False
    assert reservation.status.is_terminal is True


def test_normalize_plate():
    assert normalize_plate("abc-1234") == "ABC1234"
    assert normalize_plate(" abc 1d23 ") == "ABC1D23"
    assert normalize_plate("ABC.1234") == "ABC1234"


def test_as_utc():
    assert as_utc(None) is None
    assert as_utc(datetime(2024, 1, 1, 8, 0)) == datetime(2024, 1, 1, 8, 0, tzinfo=timezone.utc)
