from datetime import date
from typing import Optional, Protocol, Set
from sqlalchemy.orm import Session
from app.models.application import Usage


class UsageRepository(Protocol):
    def booked_dates(
        self, room_id: int, start: date, end: date, time_slot_id: Optional[int] = None
    ) -> Set[date]:
        ...


class SqlUsageRepository:
    def __init__(self, db: Session):
        self.db = db

    def booked_dates(
        self, room_id: int, start: date, end: date, time_slot_id: Optional[int] = None
    ) -> Set[date]:
        query = self.db.query(Usage.usage_date).filter(
            Usage.room_id == room_id,
            Usage.usage_date >= start,
            Usage.usage_date <= end,
            Usage.released_at.is_(None),
        )
        if time_slot_id is not None:
            query = query.filter(Usage.time_slot_id == time_slot_id)
        return {row.usage_date for row in query.all()}
