from pydantic import BaseModel, Field, field_validator, ConfigDict
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from src.domain.common import ReservationStatus, PaymentStatus


class ReservationCreate(BaseModel):
    vehicle_id: int = Field(..., ge=1)
    driver_id: int = Field(..., ge=1)
    parking_lot_id: int = Field(..., ge=1)
    parking_space_id: Optional[int] = Field(default=None, ge=1)
    start_time: datetime
    end_time: datetime
    special_requests: Optional[str] = Field(default=None, max_length=500)
    company_id: Optional[int] = Field(default=None, ge=1)

    @field_validator('start_time', 'end_time')
    @classmethod
    def make_datetime_aware(cls, dt: datetime) -> datetime:
        if dt.tzinfo is None:
            return dt.replace(tzinfo=timezone.utc)
        return dt


class ReservationUpdate(BaseModel):
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    parking_space_id: Optional[int] = Field(default=None, ge=1)
    status: Optional[ReservationStatus] = None
    actual_arrival: Optional[datetime] = None
    actual_departure: Optional[datetime] = None
    special_requests: Optional[str] = Field(default=None, max_length=500)
    payment_status: Optional[PaymentStatus] = None

    @field_validator('start_time', 'end_time', 'actual_arrival', 'actual_departure')
    @classmethod
    def make_datetime_aware(cls, dt: Optional[datetime]) -> Optional[datetime]:
        if dt is None:
            return dt
        if dt.tzinfo is None:
            return dt.replace(tzinfo=timezone.utc)
        return dt


class ReservationResponse(BaseModel):
    id: int
    parking_lot_id: int
    parking_space_id: Optional[int] = None
    company_id: int
    vehicle_id: int
    driver_id: int
    start_time: datetime
    end_time: datetime
    actual_arrival: Optional[datetime] = None
    actual_departure: Optional[datetime] = None
    status: ReservationStatus
    total_cost: Decimal
    cost_is_provisional: bool = False
    payment_status: PaymentStatus
    special_requests: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
