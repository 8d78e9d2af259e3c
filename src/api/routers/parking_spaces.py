from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from src.api.dependencies import get_caller, get_uow, http_error
from src.application.repositories import AbstractUnitOfWork
from src.application.services.occupancy_service import OccupancyService, VehicleRef
from src.application.services.space_inventory import SpaceInventoryLedger, SpaceLayout, SpaceGroup
from src.domain.common import SpaceType
from src.domain.entities import Caller
from src.domain.errors import DomainError
from src.infrastructure.api.schemas.parking_spaces import (
    ParkingSpaceCreate, ParkingSpaceResponse, SpaceLayoutRequest, OccupyRequest,
    SpaceListingResponse, StatusBoardResponse, LotCountersResponse, VehicleSummary,
)
from src.infrastructure.api.schemas.reservations import ReservationResponse

router = APIRouter(prefix="/api/parking-spaces", tags=["parking-spaces"])


@router.get("", response_model=List[SpaceListingResponse])
async def list_spaces(
    parking_lot_id: int,
    available: Optional[bool] = None,
    space_type: Optional[SpaceType] = None,
    caller: Caller = Depends(get_caller),
    uow: AbstractUnitOfWork = Depends(get_uow)
):
    ledger = SpaceInventoryLedger(uow)
    try:
        listings = await ledger.list_spaces(caller, parking_lot_id, available=available, space_type=space_type)
        return [SpaceListingResponse.model_validate(item, from_attributes=True) for item in listings]
    except DomainError as e:
        raise http_error(e)


@router.post("", response_model=ParkingSpaceResponse, status_code=201)
async def add_space(
    data: ParkingSpaceCreate,
    caller: Caller = Depends(get_caller),
    uow: AbstractUnitOfWork = Depends(get_uow)
):
    ledger = SpaceInventoryLedger(uow)
    try:
        return await ledger.add_space(
            caller, data.parking_lot_id, data.space_number, data.space_type, is_available=data.is_available
        )
    except DomainError as e:
        raise http_error(e)


@router.delete("/{space_id}", response_model=ParkingSpaceResponse)
async def remove_space(
    space_id: int,
    caller: Caller = Depends(get_caller),
    uow: AbstractUnitOfWork = Depends(get_uow)
):
    ledger = SpaceInventoryLedger(uow)
    try:
        return await ledger.remove_space(caller, space_id)
    except DomainError as e:
        raise http_error(e)


@router.post("/generate", response_model=List[ParkingSpaceResponse])
async def regenerate_spaces(
    data: SpaceLayoutRequest,
    caller: Caller = Depends(get_caller),
    uow: AbstractUnitOfWork = Depends(get_uow)
):
    ledger = SpaceInventoryLedger(uow)
    layout = SpaceLayout(
        total=data.total,
        groups=[SpaceGroup(space_type=g.space_type, count=g.count) for g in data.groups],
        prefix=data.prefix,
        start_index=data.start_index,
    )
    try:
        return await ledger.regenerate(caller, data.parking_lot_id, layout)
    except DomainError as e:
        raise http_error(e)


@router.post("/lots/{lot_id}/reconcile", response_model=LotCountersResponse)
async def reconcile_counters(
    lot_id: int,
    caller: Caller = Depends(get_caller),
    uow: AbstractUnitOfWork = Depends(get_uow)
):
    ledger = SpaceInventoryLedger(uow)
    try:
        return await ledger.reconcile_counters(caller, lot_id)
    except DomainError as e:
        raise http_error(e)


@router.get("/status", response_model=StatusBoardResponse)
async def status_board(
    caller: Caller = Depends(get_caller),
    uow: AbstractUnitOfWork = Depends(get_uow)
):
    service = OccupancyService(uow)
    try:
        board = await service.status_board(caller)
        return StatusBoardResponse.model_validate(board, from_attributes=True)
    except DomainError as e:
        raise http_error(e)


@router.get("/vehicles/search", response_model=List[VehicleSummary])
async def search_vehicles(
    q: str = Query(..., min_length=1, max_length=20),
    caller: Caller = Depends(get_caller),
    uow: AbstractUnitOfWork = Depends(get_uow)
):
    service = OccupancyService(uow)
    try:
        return await service.search_vehicles(caller, q)
    except DomainError as e:
        raise http_error(e)


@router.post("/{space_id}/occupy", response_model=ReservationResponse, status_code=201)
async def occupy_space(
    space_id: int,
    data: OccupyRequest,
    caller: Caller = Depends(get_caller),
    uow: AbstractUnitOfWork = Depends(get_uow)
):
    service = OccupancyService(uow)
    vehicle_ref = VehicleRef(vehicle_id=data.vehicle_id, license_plate=data.license_plate)
    try:
        return await service.occupy_space(caller, space_id, vehicle_ref)
    except DomainError as e:
        raise http_error(e)


@router.post("/{space_id}/free", response_model=ReservationResponse)
async def free_space(
    space_id: int,
    caller: Caller = Depends(get_caller),
    uow: AbstractUnitOfWork = Depends(get_uow)
):
    service = OccupancyService(uow)
    try:
        return await service.free_space(caller, space_id)
    except DomainError as e:
        raise http_error(e)
