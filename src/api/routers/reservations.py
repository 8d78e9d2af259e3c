from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends

from src.api.dependencies import get_caller, get_uow, http_error
from src.application.repositories import AbstractUnitOfWork
from src.application.services.reservation_service import ReservationService, ReservationPatch, ReservationFilters
from src.domain.common import ReservationStatus
from src.domain.entities import Caller
from src.domain.errors import DomainError
from src.infrastructure.api.schemas.reservations import ReservationCreate, ReservationUpdate, ReservationResponse

router = APIRouter(prefix="/api/reservations", tags=["reservations"])


@router.post("", response_model=ReservationResponse, status_code=201)
async def create_reservation(
    data: ReservationCreate,
    caller: Caller = Depends(get_caller),
    uow: AbstractUnitOfWork = Depends(get_uow)
):
    service = ReservationService(uow)
    try:
        return await service.create_reservation(caller, **data.model_dump())
    except DomainError as e:
        raise http_error(e)


@router.get("", response_model=List[ReservationResponse])
async def list_reservations(
    parking_lot_id: Optional[int] = None,
    vehicle_id: Optional[int] = None,
    driver_id: Optional[int] = None,
    status: Optional[ReservationStatus] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    caller: Caller = Depends(get_caller),
    uow: AbstractUnitOfWork = Depends(get_uow)
):
    service = ReservationService(uow)
    filters = ReservationFilters(
        parking_lot_id=parking_lot_id,
        vehicle_id=vehicle_id,
        driver_id=driver_id,
        status=status,
        start=start,
        end=end,
    )
    try:
        return await service.list_reservations(caller, filters)
    except DomainError as e:
        raise http_error(e)


@router.get("/{reservation_id}", response_model=ReservationResponse)
async def get_reservation(
    reservation_id: int,
    caller: Caller = Depends(get_caller),
    uow: AbstractUnitOfWork = Depends(get_uow)
):
    service = ReservationService(uow)
    try:
        return await service.get_reservation(caller, reservation_id)
    except DomainError as e:
        raise http_error(e)


@router.patch("/{reservation_id}", response_model=ReservationResponse)
async def update_reservation(
    reservation_id: int,
    data: ReservationUpdate,
    caller: Caller = Depends(get_caller),
    uow: AbstractUnitOfWork = Depends(get_uow)
):
    service = ReservationService(uow)
    try:
        return await service.update_reservation(caller, reservation_id, ReservationPatch(**data.model_dump()))
    except DomainError as e:
        raise http_error(e)


@router.post("/{reservation_id}/cancel", response_model=ReservationResponse)
async def cancel_reservation(
    reservation_id: int,
    caller: Caller = Depends(get_caller),
    uow: AbstractUnitOfWork = Depends(get_uow)
):
    service = ReservationService(uow)
    try:
        return await service.cancel_reservation(caller, reservation_id)
    except DomainError as e:
        raise http_error(e)
