from abc import ABC, abstractmethod
from typing import List, Optional

from src.application.queries import ReservationQuery
from src.domain.common import SpaceType
from src.domain.entities import Company, ParkingLot, ParkingSpace, Vehicle, Driver, Reservation


class AbstractCompanyRepository(ABC):
    @abstractmethod
    async def get_by_id(self, company_id: int) -> Optional[Company]:
        pass

    @abstractmethod
    async def get_by_cnpj(self, cnpj: str) -> Optional[Company]:
        pass

    @abstractmethod
    async def add(self, company: Company) -> Company:
        pass


class AbstractParkingLotRepository(ABC):
    @abstractmethod
    async def get_by_id(self, lot_id: int) -> Optional[ParkingLot]:
        pass

    @abstractmethod
    async def get_for_update(self, lot_id: int) -> Optional[ParkingLot]:
        """Load the lot and hold a write lock on it until the unit of work ends."""
        pass

    @abstractmethod
    async def list_by_company(self, company_id: int, active_only: bool = True) -> List[ParkingLot]:
        pass

    @abstractmethod
    async def add(self, lot: ParkingLot) -> ParkingLot:
        pass

    @abstractmethod
    async def adjust_counters(self, lot_id: int, total_delta: int = 0, available_delta: int = 0) -> None:
        """Atomic in-store increment of the two lot counters."""
        pass

    @abstractmethod
    async def set_counters(self, lot_id: int, total_spaces: int, available_spaces: int) -> None:
        pass


class AbstractParkingSpaceRepository(ABC):
    @abstractmethod
    async def get_by_id(self, space_id: int) -> Optional[ParkingSpace]:
        pass

    @abstractmethod
    async def get_active_by_number(self, lot_id: int, space_number: str) -> Optional[ParkingSpace]:
        pass

    @abstractmethod
    async def list_by_lot(
        self, lot_id: int, available: Optional[bool] = None, space_type: Optional[SpaceType] = None
    ) -> List[ParkingSpace]:
        """Active spaces of a lot ordered by number."""
        pass

    @abstractmethod
    async def add(self, space: ParkingSpace) -> ParkingSpace:
        pass

    @abstractmethod
    async def add_many(self, spaces: List[ParkingSpace]) -> int:
        pass

    @abstractmethod
    async def update(self, space: ParkingSpace) -> ParkingSpace:
        pass

    @abstractmethod
    async def deactivate_all(self, lot_id: int) -> int:
        pass

    @abstractmethod
    async def count_active(self, lot_id: int) -> int:
        pass

    @abstractmethod
    async def count_available(self, lot_id: int) -> int:
        pass


class AbstractVehicleRepository(ABC):
    @abstractmethod
    async def get_by_id(self, vehicle_id: int) -> Optional[Vehicle]:
        pass

    @abstractmethod
    async def get_by_license_plate(self, license_plate: str) -> Optional[Vehicle]:
        pass

    @abstractmethod
    async def search_by_plate_prefix(self, prefix: str, limit: int) -> List[Vehicle]:
        pass

    @abstractmethod
    async def add(self, vehicle: Vehicle) -> Vehicle:
        pass


class AbstractDriverRepository(ABC):
    @abstractmethod
    async def get_by_id(self, driver_id: int) -> Optional[Driver]:
        pass

    @abstractmethod
    async def get_by_cpf(self, cpf: str) -> Optional[Driver]:
        pass

    @abstractmethod
    async def add(self, driver: Driver) -> Driver:
        pass


class AbstractReservationRepository(ABC):
    @abstractmethod
    async def get_by_id(self, reservation_id: int) -> Optional[Reservation]:
        pass

    @abstractmethod
    async def add(self, reservation: Reservation) -> Reservation:
        pass

    @abstractmethod
    async def update(self, reservation: Reservation) -> Reservation:
        pass

    @abstractmethod
    async def find(self, query: ReservationQuery) -> List[Reservation]:
        """Reservations matching every predicate, newest ``start_time`` first."""
        pass

    @abstractmethod
    async def count(self, query: ReservationQuery) -> int:
        pass
