from sqlalchemy.exc import DBAPIError, IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.application.repositories import AbstractUnitOfWork
from src.domain.errors import ConflictError, DomainError, SerializationFailure, UnavailableError
from src.infrastructure.persistence.database import AsyncSessionLocal
from src.infrastructure.persistence.sqlalchemy_repositories.sqlalchemy_repositories import (
    SQLAlchemyCompanyRepository,
    SQLAlchemyParkingLotRepository,
    SQLAlchemyParkingSpaceRepository,
    SQLAlchemyVehicleRepository,
    SQLAlchemyDriverRepository,
    SQLAlchemyReservationRepository,
)
from src.shared.utils import logger

_SERIALIZATION_SQLSTATES = {"40001", "40P01"}


def _is_serialization_failure(error: DBAPIError) -> bool:
    sqlstate = getattr(error.orig, "sqlstate", None) or getattr(error.orig, "pgcode", None)
    if sqlstate in _SERIALIZATION_SQLSTATES:
        return True
    message = str(error.orig).lower()
    return "database is locked" in message or "could not serialize" in message


class SQLAlchemyUnitOfWork(AbstractUnitOfWork):
    def __init__(self, session_factory: async_sessionmaker = AsyncSessionLocal):
        self.session_factory = session_factory
        self.session: AsyncSession = None

    async def __aenter__(self) -> "SQLAlchemyUnitOfWork":
        if self.session is not None:
            raise RuntimeError("Unit of work is already open")
        self.session = self.session_factory()
        self.companies = SQLAlchemyCompanyRepository(self.session)
        self.parking_lots = SQLAlchemyParkingLotRepository(self.session)
        self.parking_spaces = SQLAlchemyParkingSpaceRepository(self.session)
        self.vehicles = SQLAlchemyVehicleRepository(self.session)
        self.drivers = SQLAlchemyDriverRepository(self.session)
        self.reservations = SQLAlchemyReservationRepository(self.session)
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        session, self.session = self.session, None
        try:
            if exc_type is not None:
                await session.rollback()
        finally:
            await session.close()

        if exc is None or isinstance(exc, DomainError):
            return False
        if isinstance(exc, IntegrityError):
            raise ConflictError(f"Constraint violated: {exc.orig}", rule="integrity") from exc
        if isinstance(exc, DBAPIError) and _is_serialization_failure(exc):
            logger.debug(f"Transaction aborted by a concurrent writer: {exc.orig}")
            raise SerializationFailure("Transaction conflicted with a concurrent writer") from exc
        if isinstance(exc, SQLAlchemyError):
            logger.error(f"Storage error: {exc}")
            raise UnavailableError("Storage is unavailable") from exc
        return False

    async def commit(self) -> None:
        await self.session.commit()

    async def rollback(self) -> None:
        await self.session.rollback()
