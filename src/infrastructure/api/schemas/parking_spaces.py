from pydantic import BaseModel, Field, field_validator, model_validator, ConfigDict
from datetime import datetime
from typing import Optional, List

from src.domain.common import ReservationStatus, SpaceType, VehicleType
from src.shared.utils import normalize_plate


class ParkingSpaceCreate(BaseModel):
    parking_lot_id: int = Field(..., ge=1)
    space_number: str = Field(..., min_length=1, max_length=20)
    space_type: SpaceType = SpaceType.TRUCK
    is_available: bool = True

    @field_validator('space_number')
    def validate_space_number(cls, v):  # pylint: disable=no-self-argument
        return v.upper().strip()


class ParkingSpaceResponse(BaseModel):
    id: int
    parking_lot_id: int
    space_number: str
    space_type: SpaceType
    is_available: bool
    is_active: bool

    model_config = ConfigDict(from_attributes=True)


class SpaceOccupantResponse(BaseModel):
    reservation_id: int
    status: ReservationStatus
    start_time: datetime
    end_time: datetime
    license_plate: str
    vehicle_model: str
    driver_name: str
    company_name: str

    model_config = ConfigDict(from_attributes=True)


class SpaceListingResponse(BaseModel):
    space: ParkingSpaceResponse
    occupant: Optional[SpaceOccupantResponse] = None

    model_config = ConfigDict(from_attributes=True)


class SpaceGroupIn(BaseModel):
    space_type: SpaceType
    count: int = Field(..., ge=0)


class SpaceLayoutRequest(BaseModel):
    parking_lot_id: int = Field(..., ge=1)
    total: int = Field(..., ge=0)
    groups: List[SpaceGroupIn]
    prefix: str = Field(default="V", min_length=1, max_length=5)
    start_index: int = Field(default=1, ge=1)


class OccupyRequest(BaseModel):
    vehicle_id: Optional[int] = Field(default=None, ge=1)
    license_plate: Optional[str] = Field(default=None, min_length=1, max_length=20)

    @field_validator('license_plate')
    def validate_license_plate(cls, v):  # pylint: disable=no-self-argument
        return normalize_plate(v) if v is not None else v

    @model_validator(mode='after')
    def check_vehicle_given(self):
        if (self.vehicle_id is None) == (self.license_plate is None):
            raise ValueError("Give either vehicle_id or license_plate")
        return self


class LotStatusResponse(BaseModel):
    parking_lot_id: int
    name: str
    total: int
    free: int
    occupied: int
    reserved: int

    model_config = ConfigDict(from_attributes=True)


class StatusBoardResponse(BaseModel):
    total: int
    free: int
    occupied: int
    reserved: int
    occupancy_rate: float
    lots: List[LotStatusResponse]

    model_config = ConfigDict(from_attributes=True)


class LotCountersResponse(BaseModel):
    id: int
    name: str
    total_spaces: int
    available_spaces: int

    model_config = ConfigDict(from_attributes=True)


class VehicleSummary(BaseModel):
    id: int
    license_plate: str
    vehicle_type: VehicleType
    brand: Optional[str] = None
    model: Optional[str] = None
    company_id: int

    model_config = ConfigDict(from_attributes=True)
