from datetime import datetime, timezone
from sqlalchemy import Column, Integer, String, Boolean, ForeignKey, Enum, Text, Index
from sqlalchemy.orm import declarative_base, relationship

from src.domain.common import CompanyType, SpaceType, VehicleType, ReservationStatus, PaymentStatus
from src.shared.custom_types import UTCDateTime, Money

Base = declarative_base()


def _utcnow():
    return datetime.now(timezone.utc)


class Company(Base):
    __tablename__ = "companies"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    cnpj = Column(String(18), unique=True, nullable=False, index=True)
    company_type = Column(Enum(CompanyType, name="company_type"), nullable=False)
    email = Column(String(255), nullable=True)
    phone = Column(String(30), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(UTCDateTime, default=_utcnow)

    parking_lots = relationship("ParkingLot", back_populates="company")
    vehicles = relationship("Vehicle", back_populates="company")
    drivers = relationship("Driver", back_populates="company")


class ParkingLot(Base):
    __tablename__ = "parking_lots"

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    address = Column(String(500), nullable=False)
    price_per_hour = Column(Money, nullable=False)
    # Written only by the space inventory ledger.
    total_spaces = Column(Integer, nullable=False, default=0)
    available_spaces = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(UTCDateTime, default=_utcnow)

    company = relationship("Company", back_populates="parking_lots")
    parking_spaces = relationship("ParkingSpace", back_populates="parking_lot")
    reservations = relationship("Reservation", back_populates="parking_lot")


class ParkingSpace(Base):
    __tablename__ = "parking_spaces"

    id = Column(Integer, primary_key=True, index=True)
    parking_lot_id = Column(Integer, ForeignKey("parking_lots.id"), nullable=False, index=True)
    space_number = Column(String(20), nullable=False)
    space_type = Column(Enum(SpaceType, name="space_type"), nullable=False, default=SpaceType.TRUCK)
    is_available = Column(Boolean, nullable=False, default=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(UTCDateTime, default=_utcnow)
    updated_at = Column(UTCDateTime, default=_utcnow, onupdate=_utcnow)

    parking_lot = relationship("ParkingLot", back_populates="parking_spaces")
    reservations = relationship("Reservation", back_populates="parking_space")

    __table_args__ = (Index("ix_parking_spaces_lot_number", "parking_lot_id", "space_number"),)


class Driver(Base):
    __tablename__ = "drivers"

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    cpf = Column(String(14), unique=True, nullable=False)
    cnh = Column(String(20), nullable=True)
    phone = Column(String(30), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    company = relationship("Company", back_populates="drivers")


class Vehicle(Base):
    __tablename__ = "vehicles"

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=False, index=True)
    driver_id = Column(Integer, ForeignKey("drivers.id"), nullable=True)
    license_plate = Column(String(20), unique=True, nullable=False, index=True)
    vehicle_type = Column(Enum(VehicleType, name="vehicle_type"), nullable=False, default=VehicleType.TRUCK)
    brand = Column(String(100), nullable=True)
    model = Column(String(100), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    company = relationship("Company", back_populates="vehicles")
    driver = relationship("Driver")


class Reservation(Base):
    __tablename__ = "reservations"

    id = Column(Integer, primary_key=True, index=True)
    parking_lot_id = Column(Integer, ForeignKey("parking_lots.id"), nullable=False, index=True)
    parking_space_id = Column(Integer, ForeignKey("parking_spaces.id"), nullable=True, index=True)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=False, index=True)
    vehicle_id = Column(Integer, ForeignKey("vehicles.id"), nullable=False, index=True)
    driver_id = Column(Integer, ForeignKey("drivers.id"), nullable=False, index=True)
    start_time = Column(UTCDateTime, nullable=False)
    end_time = Column(UTCDateTime, nullable=False)
    actual_arrival = Column(UTCDateTime, nullable=True)
    actual_departure = Column(UTCDateTime, nullable=True)
    status = Column(Enum(ReservationStatus, name="reservation_status"), nullable=False, default=ReservationStatus.PENDING)
    total_cost = Column(Money, nullable=False, default=0)
    cost_is_provisional = Column(Boolean, nullable=False, default=False)
    payment_status = Column(Enum(PaymentStatus, name="payment_status"), nullable=False, default=PaymentStatus.PENDING)
    special_requests = Column(Text, nullable=True)
    created_at = Column(UTCDateTime, default=_utcnow)
    updated_at = Column(UTCDateTime, default=_utcnow, onupdate=_utcnow)

    parking_lot = relationship("ParkingLot", back_populates="reservations")
    parking_space = relationship("ParkingSpace", back_populates="reservations")
    vehicle = relationship("Vehicle")
    driver = relationship("Driver")

    __table_args__ = (
        Index("ix_reservations_vehicle_window", "vehicle_id", "status", "start_time", "end_time"),
        Index("ix_reservations_driver_window", "driver_id", "status", "start_time", "end_time"),
        Index("ix_reservations_space_window", "parking_space_id", "status", "start_time", "end_time"),
    )
