import datetime as dt
from pydantic import BaseModel, Field
from typing import Optional
from app.models.room import EquipmentPriceType


class EquipmentCreate(BaseModel):
    name: str = Field(..., min_length=1)
    category: str = "other"
    price_type: EquipmentPriceType = EquipmentPriceType.per_slot
    unit_price: int = Field(0, ge=0)
    max_quantity: int = Field(1, ge=1)
    enabled: bool = True


class EquipmentResponse(EquipmentCreate):
    id: int

    class Config:
        orm_mode = True


class ClosedDateCreate(BaseModel):
    date: dt.date
    room_id: Optional[int] = None
    reason: Optional[str] = None


class ClosedDateResponse(ClosedDateCreate):
    id: int

    class Config:
        orm_mode = True
