from enum import Enum


class UserRole(str, Enum):
    ADMIN = "ADMIN"
    TRANSPORTADORA = "TRANSPORTADORA"
    ESTACIONAMENTO = "ESTACIONAMENTO"


class CompanyType(str, Enum):
    TRANSPORTADORA = "TRANSPORTADORA"
    ESTACIONAMENTO = "ESTACIONAMENTO"


class SpaceType(str, Enum):
    CAR = "CAR"
    VAN = "VAN"
    TRUCK = "TRUCK"
    SEMI_TRUCK = "SEMI_TRUCK"
    MOTORCYCLE = "MOTORCYCLE"


class VehicleType(str, Enum):
    CAR = "CAR"
    VAN = "VAN"
    TRUCK = "TRUCK"
    SEMI_TRUCK = "SEMI_TRUCK"
    MOTORCYCLE = "MOTORCYCLE"


class ReservationStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


class PaymentStatus(str, Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    REFUNDED = "REFUNDED"
    FAILED = "FAILED"


# Statuses that hold a vehicle, a driver and (when bound) a space.
ACTIVE_STATUSES = frozenset(
    {ReservationStatus.PENDING, ReservationStatus.CONFIRMED, ReservationStatus.IN_PROGRESS}
)
TERMINAL_STATUSES = frozenset({ReservationStatus.COMPLETED, ReservationStatus.CANCELLED})
