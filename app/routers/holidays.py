import logging
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional
from app.db import get_db
from app.dependencies import get_holiday_oracle
from app.schemas.holiday import (
    BulkRegisterRequest,
    BulkRegisterResponse,
    DateCheckResponse,
    HolidayCreate,
    HolidayResponse,
    HolidayUpdate,
)
from app.services.holidays import HolidayOracle, HolidayService
from app.utils.auth import require_staff
from app.utils.validation_helpers import parse_dates

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/holidays",
    tags=["holidays"],
)


@router.get("/", response_model=List[HolidayResponse])
def get_holidays(year: Optional[int] = None, db: Session = Depends(get_db)):
    """
    Retrieve registered holidays, optionally for one year.
    """
    return HolidayService(db).list_holidays(year)


@router.post("/", response_model=HolidayResponse, status_code=status.HTTP_201_CREATED)
def create_holiday(holiday: HolidayCreate, db: Session = Depends(get_db), current_user: dict = Depends(require_staff)):
    """
    Register a single holiday. Fails with 409 if the date already has one.
    Requires staff privileges.
    """
    return HolidayService(db).create_holiday(holiday.date, holiday.name, holiday.is_recurring)


@router.get("/check", response_model=DateCheckResponse)
def check_dates(
    dates: str = Query(..., description="Comma-separated ISO dates"),
    room_id: Optional[int] = None,
    oracle: HolidayOracle = Depends(get_holiday_oracle),
):
    """
    Tell for each date whether it is closed to reservations.
    """
    return DateCheckResponse(unavailable=oracle.check_many(parse_dates(dates), room_id))


@router.post("/bulk-register", response_model=BulkRegisterResponse)
def bulk_register(
    request: BulkRegisterRequest,
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_staff),
):
    """
    Register all national holidays of a year. Dates already registered are skipped.
    Requires staff privileges.
    """
    result = HolidayService(db).bulk_register_year(request.year)
    logger.debug(f"Bulk register {request.year} requested by user: {current_user['id']}")
    return BulkRegisterResponse(
        created=result.created,
        skipped=result.skipped,
        errors=result.errors,
        skipped_dates=result.skipped_dates,
    )


@router.put("/{holiday_id}", response_model=HolidayResponse)
def update_holiday(
    holiday_id: int,
    holiday_update: HolidayUpdate,
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_staff),
):
    """
    Update a holiday.
    Requires staff privileges.
    """
    return HolidayService(db).update_holiday(
        holiday_id,
        day=holiday_update.date,
        name=holiday_update.name,
        is_recurring=holiday_update.is_recurring,
    )


@router.delete("/{holiday_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_holiday(holiday_id: int, db: Session = Depends(get_db), current_user: dict = Depends(require_staff)):
    """
    Delete a holiday.
    Requires staff privileges.
    """
    HolidayService(db).delete_holiday(holiday_id)
    return None
