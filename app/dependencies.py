from datetime import date
from fastapi import Depends
from sqlalchemy.orm import Session
from app.config import settings
from app.db import SessionLocal, get_db
from app.repositories.holidays import SqlHolidayRepository
from app.repositories.usages import SqlUsageRepository
from app.services.applications import ApplicationService, build_application_service
from app.services.availability import AvailabilityChecker
from app.services.holidays import HolidayOracle
from app.services.notifications import NotificationDispatcher


def get_clock():
    """Source of "today" for availability and fee computation."""
    return date.today


def get_holiday_oracle(db: Session = Depends(get_db)) -> HolidayOracle:
    return HolidayOracle(SqlHolidayRepository(db), weekend_closed=settings.weekend_closed)


def get_availability_checker(
    db: Session = Depends(get_db),
    oracle: HolidayOracle = Depends(get_holiday_oracle),
    clock=Depends(get_clock),
) -> AvailabilityChecker:
    return AvailabilityChecker(oracle, SqlUsageRepository(db), clock=clock)


def get_application_service(db: Session = Depends(get_db), clock=Depends(get_clock)) -> ApplicationService:
    return build_application_service(db, clock=clock)


def get_dispatcher() -> NotificationDispatcher:
    return NotificationDispatcher(SessionLocal)
