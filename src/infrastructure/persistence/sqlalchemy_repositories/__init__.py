from .sqlalchemy_repositories import (
    SQLAlchemyCompanyRepository,
    SQLAlchemyParkingLotRepository,
    SQLAlchemyParkingSpaceRepository,
    SQLAlchemyVehicleRepository,
    SQLAlchemyDriverRepository,
    SQLAlchemyReservationRepository,
)
from .unit_of_work import SQLAlchemyUnitOfWork

__all__ = [
    "SQLAlchemyCompanyRepository",
    "SQLAlchemyParkingLotRepository",
    "SQLAlchemyParkingSpaceRepository",
    "SQLAlchemyVehicleRepository",
    "SQLAlchemyDriverRepository",
    "SQLAlchemyReservationRepository",
    "SQLAlchemyUnitOfWork",
]
