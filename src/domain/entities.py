from datetime import datetime
from decimal import Decimal
from typing import Optional

from src.domain.common import (
    UserRole, CompanyType, SpaceType, VehicleType, ReservationStatus, PaymentStatus, ACTIVE_STATUSES
)


class Caller:
    """Already-authenticated identity on whose behalf an operation runs."""

    def __init__(self, id: int, role: UserRole, company_id: Optional[int] = None):
        self.id = id
        self.role = UserRole(role)
        self.company_id = company_id

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def __repr__(self) -> str:
        return f"Caller(id={self.id}, role={self.role.value}, company_id={self.company_id})"


class Company:
    def __init__(
        self,
        name: str,
        cnpj: str,
        company_type: CompanyType,
        id: Optional[int] = None,
        is_active: bool = True,
        email: Optional[str] = None,
        phone: Optional[str] = None,
    ):
        self.id = id
        self.name = name
        self.cnpj = cnpj
        self.company_type = CompanyType(company_type)
        self.is_active = is_active
        self.email = email
        self.phone = phone


class ParkingLot:
    def __init__(
        self,
        company_id: int,
        name: str,
        address: str,
        price_per_hour: Decimal,
        id: Optional[int] = None,
        total_spaces: int = 0,
        available_spaces: int = 0,
        is_active: bool = True,
    ):
        self.id = id
        self.company_id = company_id
        self.name = name
        self.address = address
        self.price_per_hour = price_per_hour
        self.total_spaces = total_spaces
        self.available_spaces = available_spaces
        self.is_active = is_active


class ParkingSpace:
    def __init__(
        self,
        parking_lot_id: int,
        space_number: str,
        space_type: SpaceType,
        id: Optional[int] = None,
        is_available: bool = True,
        is_active: bool = True,
    ):
        self.id = id
        self.parking_lot_id = parking_lot_id
        self.space_number = space_number
        self.space_type = SpaceType(space_type)
        self.is_available = is_available
        self.is_active = is_active


class Driver:
    def __init__(
        self,
        company_id: int,
        name: str,
        cpf: str,
        id: Optional[int] = None,
        cnh: Optional[str] = None,
        phone: Optional[str] = None,
        is_active: bool = True,
    ):
        self.id = id
        self.company_id = company_id
        self.name = name
        self.cpf = cpf
        self.cnh = cnh
        self.phone = phone
        self.is_active = is_active


class Vehicle:
    def __init__(
        self,
        company_id: int,
        license_plate: str,
        vehicle_type: VehicleType,
        id: Optional[int] = None,
        brand: Optional[str] = None,
        model: Optional[str] = None,
        driver_id: Optional[int] = None,
        is_active: bool = True,
    ):
        self.id = id
        self.company_id = company_id
        self.license_plate = license_plate
        self.vehicle_type = VehicleType(vehicle_type)
        self.brand = brand
        self.model = model
        self.driver_id = driver_id
        self.is_active = is_active


class Reservation:
    def __init__(
        self,
        parking_lot_id: int,
        company_id: int,
        vehicle_id: int,
        driver_id: int,
        start_time: datetime,
        end_time: datetime,
        total_cost: Decimal,
        id: Optional[int] = None,
        parking_space_id: Optional[int] = None,
        status: ReservationStatus = ReservationStatus.PENDING,
        payment_status: PaymentStatus = PaymentStatus.PENDING,
        actual_arrival: Optional[datetime] = None,
        actual_departure: Optional[datetime] = None,
        special_requests: Optional[str] = None,
        cost_is_provisional: bool = False,
        created_at: Optional[datetime] = None,
        updated_at: Optional[datetime] = None,
    ):
        self.id = id
        self.parking_lot_id = parking_lot_id
        self.parking_space_id = parking_space_id
        self.company_id = company_id
        self.vehicle_id = vehicle_id
        self.driver_id = driver_id
        self.start_time = start_time
        self.end_time = end_time
        self.total_cost = total_cost
        self.status = ReservationStatus(status)
        self.payment_status = PaymentStatus(payment_status)
        self.actual_arrival = actual_arrival
        self.actual_departure = actual_departure
        self.special_requests = special_requests
        self.cost_is_provisional = cost_is_provisional
        self.created_at = created_at
        self.updated_at = updated_at

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    def __repr__(self) -> str:
        return (
            f"Reservation(id={self.id}, status={self.status.value}, "
            f"vehicle_id={self.vehicle_id}, space_id={self.parking_space_id})"
        )
