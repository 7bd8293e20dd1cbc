from datetime import date
from typing import Optional, Protocol, Set, Tuple
from sqlalchemy import or_
from sqlalchemy.orm import Session
from app.models.holiday import ClosedDate, Holiday


class HolidayRepository(Protocol):
    def holiday_dates(self, start: date, end: date) -> Set[date]:
        ...

    def recurring_month_days(self) -> Set[Tuple[int, int]]:
        ...

    def closed_dates(self, start: date, end: date, room_id: Optional[int] = None) -> Set[date]:
        ...


class SqlHolidayRepository:
    """Reads holidays and closures for the oracle."""

    def __init__(self, db: Session):
        self.db = db

    def holiday_dates(self, start: date, end: date) -> Set[date]:
        rows = self.db.query(Holiday.date).filter(Holiday.date >= start, Holiday.date <= end).all()
        return {row.date for row in rows}

    def recurring_month_days(self) -> Set[Tuple[int, int]]:
        rows = self.db.query(Holiday.date).filter(Holiday.is_recurring.is_(True)).all()
        return {(row.date.month, row.date.day) for row in rows}

    def closed_dates(self, start: date, end: date, room_id: Optional[int] = None) -> Set[date]:
        query = self.db.query(ClosedDate.date).filter(ClosedDate.date >= start, ClosedDate.date <= end)
        if room_id is None:
            query = query.filter(ClosedDate.room_id.is_(None))
        else:
            query = query.filter(or_(ClosedDate.room_id.is_(None), ClosedDate.room_id == room_id))
        return {row.date for row in query.all()}
