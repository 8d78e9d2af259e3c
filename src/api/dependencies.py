from typing import Optional

from fastapi import Header, HTTPException

from src.application.repositories import AbstractUnitOfWork
from src.domain.common import UserRole
from src.domain.entities import Caller
from src.domain.errors import (
    DomainError, NotFoundError, ForbiddenError, ConflictError, InvalidStateError, UnavailableError
)
from src.infrastructure.persistence.database import AsyncSessionLocal
from src.infrastructure.persistence.sqlalchemy_repositories import SQLAlchemyUnitOfWork


_STATUS_CODES = (
    (NotFoundError, 404),
    (ForbiddenError, 403),
    (ConflictError, 409),
    (InvalidStateError, 400),
    (UnavailableError, 503),
)


def get_uow() -> AbstractUnitOfWork:
    return SQLAlchemyUnitOfWork(AsyncSessionLocal)


def get_caller(
    x_user_id: int = Header(...),
    x_user_role: UserRole = Header(...),
    x_company_id: Optional[int] = Header(default=None),
) -> Caller:
    """Identity forwarded by the authenticating gateway; trusted as is."""
    return Caller(id=x_user_id, role=x_user_role, company_id=x_company_id)


def http_error(error: DomainError) -> HTTPException:
    for error_class, status_code in _STATUS_CODES:
        if isinstance(error, error_class):
            return HTTPException(status_code=status_code, detail=error.to_dict())
    return HTTPException(status_code=400, detail=error.to_dict())
