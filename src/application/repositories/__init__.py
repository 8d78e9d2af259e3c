from .abstract_repositories import (
    AbstractCompanyRepository,
    AbstractParkingLotRepository,
    AbstractParkingSpaceRepository,
    AbstractVehicleRepository,
    AbstractDriverRepository,
    AbstractReservationRepository,
)
from .unit_of_work import AbstractUnitOfWork

__all__ = [
    "AbstractCompanyRepository",
    "AbstractParkingLotRepository",
    "AbstractParkingSpaceRepository",
    "AbstractVehicleRepository",
    "AbstractDriverRepository",
    "AbstractReservationRepository",
    "AbstractUnitOfWork",
]
