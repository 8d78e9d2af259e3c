from abc import ABC, abstractmethod

from src.application.repositories.abstract_repositories import (
    AbstractCompanyRepository,
    AbstractParkingLotRepository,
    AbstractParkingSpaceRepository,
    AbstractVehicleRepository,
    AbstractDriverRepository,
    AbstractReservationRepository,
)


class AbstractUnitOfWork(ABC):
    """One store transaction and the repositories bound to it.

    ``async with uow:`` opens the transaction; leaving the block without
    ``commit()`` rolls it back. A unit of work is not re-entrant.
    """
    companies: AbstractCompanyRepository
    parking_lots: AbstractParkingLotRepository
    parking_spaces: AbstractParkingSpaceRepository
    vehicles: AbstractVehicleRepository
    drivers: AbstractDriverRepository
    reservations: AbstractReservationRepository

    @abstractmethod
    async def __aenter__(self) -> "AbstractUnitOfWork":
        pass

    @abstractmethod
    async def __aexit__(self, exc_type, exc, tb) -> bool:
        pass

    @abstractmethod
    async def commit(self) -> None:
        pass

    @abstractmethod
    async def rollback(self) -> None:
        pass
