import datetime as dt
from pydantic import BaseModel, Field
from typing import Dict, List, Optional


class HolidayCreate(BaseModel):
    date: dt.date
    name: str
    is_recurring: bool = False


class HolidayUpdate(BaseModel):
    date: Optional[dt.date] = None
    name: Optional[str] = None
    is_recurring: Optional[bool] = None


class HolidayResponse(HolidayCreate):
    id: int

    class Config:
        orm_mode = True


class BulkRegisterRequest(BaseModel):
    year: int = Field(..., ge=1900, le=2100)


class BulkRegisterResponse(BaseModel):
    created: int
    skipped: int
    errors: List[str]
    skipped_dates: List[dt.date] = []


class DateCheckResponse(BaseModel):
    unavailable: Dict[dt.date, bool]
