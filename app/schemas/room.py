import datetime as dt
from pydantic import BaseModel, Field, validator
from typing import List, Optional
from app.services.availability import AvailabilityStatus


class RoomBase(BaseModel):
    name: str
    capacity: Optional[int] = None
    location: Optional[str] = None
    description: Optional[str] = None
    display_order: int = 0


class RoomCreate(RoomBase):
    pass


class RoomUpdate(BaseModel):
    name: Optional[str] = None
    capacity: Optional[int] = None
    location: Optional[str] = None
    description: Optional[str] = None
    display_order: Optional[int] = None
    is_active: Optional[bool] = None


class RoomResponse(RoomBase):
    id: int
    is_active: bool

    class Config:
        orm_mode = True


class SlotPriceIn(BaseModel):
    time_slot_id: int
    base_price: int = Field(..., ge=0)
    ac_price_per_hour: int = Field(0, ge=0)
    is_available: bool = True


class SlotPriceResponse(SlotPriceIn):
    room_id: int

    class Config:
        orm_mode = True


class DayAvailability(BaseModel):
    date: dt.date
    status: AvailabilityStatus


class AvailabilityResponse(BaseModel):
    room_id: int
    month: str
    time_slot_id: Optional[int] = None
    days: List[DayAvailability]


class TimeSlotCreate(BaseModel):
    code: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    start_time: dt.time
    end_time: dt.time
    display_order: int = 0

    @validator("end_time")
    def check_end_time(cls, value, values):
        start = values.get("start_time")
        if start is not None and value <= start:
            raise ValueError("end_time must be after start_time")
        return value


class TimeSlotResponse(TimeSlotCreate):
    id: int
    is_active: bool

    class Config:
        orm_mode = True
