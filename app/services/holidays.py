import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional, Tuple
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from app.errors import DuplicateHolidayError, InvalidStateError, NotFoundError, ValidationError
from app.models.application import Usage
from app.models.holiday import ClosedDate, Holiday
from app.repositories.holidays import HolidayRepository

logger = logging.getLogger(__name__)

MAX_HOLIDAY_NAME_LENGTH = 255

FIXED_HOLIDAYS = [
    (1, 1, "New Year's Day"),
    (2, 11, "National Foundation Day"),
    (2, 23, "Emperor's Birthday"),
    (4, 29, "Showa Day"),
    (5, 3, "Constitution Memorial Day"),
    (5, 4, "Greenery Day"),
    (5, 5, "Children's Day"),
    (8, 11, "Mountain Day"),
    (11, 3, "Culture Day"),
    (11, 23, "Labour Thanksgiving Day"),
]

# (month, nth Monday, name)
HAPPY_MONDAY_HOLIDAYS = [
    (1, 2, "Coming of Age Day"),
    (7, 3, "Marine Day"),
    (9, 3, "Respect for the Aged Day"),
    (10, 2, "Sports Day"),
]

# Published by the National Astronomical Observatory each February for the
# following year; extend when a new year is announced.
EQUINOX_DAYS = {
    2022: (21, 23),
    2023: (21, 23),
    2024: (20, 22),
    2025: (20, 23),
    2026: (20, 23),
    2027: (21, 23),
    2028: (20, 22),
    2029: (20, 23),
    2030: (20, 23),
    2031: (21, 23),
    2032: (20, 22),
    2033: (20, 23),
    2034: (20, 23),
    2035: (21, 23),
}


def nth_monday(year: int, month: int, nth: int) -> date:
    first = date(year, month, 1)
    offset = (0 - first.weekday()) % 7
    return first + timedelta(days=offset + 7 * (nth - 1))


def generate_national_holidays(year: int) -> List[Tuple[date, str]]:
    """Return the national holidays of ``year`` sorted by date."""
    if year not in EQUINOX_DAYS:
        raise ValidationError(
            f"No holiday table for {year} (supported: {min(EQUINOX_DAYS)}-{max(EQUINOX_DAYS)})"
        )

    holidays: Dict[date, str] = {}
    for month, day, name in FIXED_HOLIDAYS:
        holidays[date(year, month, day)] = name
    for month, nth, name in HAPPY_MONDAY_HOLIDAYS:
        holidays[nth_monday(year, month, nth)] = name
    vernal, autumnal = EQUINOX_DAYS[year]
    holidays[date(year, 3, vernal)] = "Vernal Equinox Day"
    holidays[date(year, 9, autumnal)] = "Autumnal Equinox Day"

    # A weekday sandwiched between two holidays is itself a holiday
    for day in sorted(holidays):
        candidate = day + timedelta(days=1)
        if (
            candidate not in holidays
            and candidate + timedelta(days=1) in holidays
            and candidate.weekday() != 6
        ):
            holidays[candidate] = "Citizens' Holiday"

    # A holiday on Sunday moves to the next day that is not already a holiday
    for day in sorted(holidays):
        if day.weekday() != 6:
            continue
        substitute = day + timedelta(days=1)
        while substitute in holidays:
            substitute += timedelta(days=1)
        holidays[substitute] = "Substitute Holiday"

    return sorted(holidays.items())


class HolidayOracle:
    """Answers whether a date can be booked at all.

    A date is unavailable when it falls on a weekend (unless weekends are
    bookable), matches a registered holiday exactly or by month/day for a
    recurring one, or matches a facility-wide or room-specific closure.
    """

    def __init__(self, repository: HolidayRepository, weekend_closed: bool = True):
        self.repository = repository
        self.weekend_closed = weekend_closed

    def is_unavailable(self, day: date, room_id: Optional[int] = None) -> bool:
        return self.check_many([day], room_id)[day]

    def check_many(self, days: Iterable[date], room_id: Optional[int] = None) -> Dict[date, bool]:
        days = list(days)
        if not days:
            return {}
        start, end = min(days), max(days)
        holidays = self.repository.holiday_dates(start, end)
        recurring = self.repository.recurring_month_days()
        closed = self.repository.closed_dates(start, end, room_id)

        result = {}
        for day in days:
            result[day] = (
                (self.weekend_closed and day.weekday() >= 5)
                or day in holidays
                or (day.month, day.day) in recurring
                or day in closed
            )
        return result

    def business_days_between(self, start: date, end: date, room_id: Optional[int] = None) -> int:
        """Count bookable days in the half-open span (start, end]."""
        if end <= start:
            return 0
        days = [start + timedelta(days=n) for n in range(1, (end - start).days + 1)]
        flags = self.check_many(days, room_id)
        return sum(1 for day in days if not flags[day])


@dataclass
class BulkRegisterResult:
    created: int = 0
    skipped: int = 0
    errors: List[str] = field(default_factory=list)
    skipped_dates: List[date] = field(default_factory=list)


def _clean_name(name: Optional[str]) -> str:
    if name is None or not name.strip():
        raise ValidationError("Holiday name is required")
    if len(name) > MAX_HOLIDAY_NAME_LENGTH:
        raise ValidationError(f"Holiday name is too long (max {MAX_HOLIDAY_NAME_LENGTH} characters)")
    return name.strip()


class HolidayService:
    def __init__(self, db: Session):
        self.db = db

    def list_holidays(self, year: Optional[int] = None) -> List[Holiday]:
        query = self.db.query(Holiday)
        if year is not None:
            query = query.filter(Holiday.date >= date(year, 1, 1), Holiday.date <= date(year, 12, 31))
        return query.order_by(Holiday.date).all()

    def get_holiday(self, holiday_id: int) -> Holiday:
        holiday = self.db.query(Holiday).filter(Holiday.id == holiday_id).first()
        if not holiday:
            raise NotFoundError("Holiday not found")
        return holiday

    def create_holiday(self, day: date, name: str, is_recurring: bool = False) -> Holiday:
        name = _clean_name(name)
        if self.db.query(Holiday).filter(Holiday.date == day).first():
            logger.error(f"Holiday already exists for {day}")
            raise DuplicateHolidayError(f"Holiday already exists for {day}")

        holiday = Holiday(date=day, name=name, is_recurring=is_recurring)
        self.db.add(holiday)
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise DuplicateHolidayError(f"Holiday already exists for {day}") from exc
        self.db.refresh(holiday)
        logger.info(f"Created holiday {holiday.id}: {day} {name}")
        return holiday

    def update_holiday(
        self,
        holiday_id: int,
        day: Optional[date] = None,
        name: Optional[str] = None,
        is_recurring: Optional[bool] = None,
    ) -> Holiday:
        holiday = self.get_holiday(holiday_id)
        if day is not None and day != holiday.date:
            if self.db.query(Holiday).filter(Holiday.date == day).first():
                raise DuplicateHolidayError(f"Holiday already exists for {day}")
            holiday.date = day
        if name is not None:
            holiday.name = _clean_name(name)
        if is_recurring is not None:
            holiday.is_recurring = is_recurring
        target = holiday.date
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise DuplicateHolidayError(f"Holiday already exists for {target}") from exc
        self.db.refresh(holiday)
        return holiday

    def delete_holiday(self, holiday_id: int) -> None:
        holiday = self.get_holiday(holiday_id)
        self.db.delete(holiday)
        self.db.commit()
        logger.info(f"Deleted holiday {holiday_id}")

    def bulk_register_year(self, year: int) -> BulkRegisterResult:
        """Insert the national holidays of one calendar year.

        Dates that already hold a holiday are skipped and reported; the call
        never fails because of them.
        """
        generated = generate_national_holidays(year)
        existing = {
            row.date
            for row in self.db.query(Holiday.date).filter(
                Holiday.date >= date(year, 1, 1), Holiday.date <= date(year, 12, 31)
            )
        }

        result = BulkRegisterResult()
        pending = []
        for day, name in generated:
            if day in existing:
                result.skipped += 1
                result.skipped_dates.append(day)
                continue
            pending.append(Holiday(date=day, name=name))

        if pending:
            self.db.add_all(pending)
            try:
                self.db.commit()
                result.created = len(pending)
            except IntegrityError as exc:
                self.db.rollback()
                logger.error(f"Bulk holiday registration for {year} failed: {exc}")
                result.errors.extend(f"{holiday.date} ({holiday.name}): already registered" for holiday in pending)

        logger.info(f"Bulk-registered holidays for {year}: created={result.created}, skipped={result.skipped}")
        return result


class ClosedDateService:
    def __init__(self, db: Session):
        self.db = db

    def list_closed_dates(
        self, room_id: Optional[int] = None, start: Optional[date] = None, end: Optional[date] = None
    ) -> List[ClosedDate]:
        query = self.db.query(ClosedDate)
        if room_id is not None:
            query = query.filter(ClosedDate.room_id == room_id)
        if start is not None:
            query = query.filter(ClosedDate.date >= start)
        if end is not None:
            query = query.filter(ClosedDate.date <= end)
        return query.order_by(ClosedDate.date).all()

    def add_closed_date(
        self, day: date, room_id: Optional[int] = None, reason: Optional[str] = None, created_by: Optional[int] = None
    ) -> ClosedDate:
        usages = self.db.query(Usage).filter(Usage.usage_date == day, Usage.released_at.is_(None))
        if room_id is not None:
            usages = usages.filter(Usage.room_id == room_id)
        count = usages.count()
        if count:
            logger.error(f"Cannot close {day} (room {room_id}): {count} active reservations")
            raise InvalidStateError(f"There are {count} existing reservations on {day}")

        duplicate = self.db.query(ClosedDate).filter(ClosedDate.date == day)
        if room_id is None:
            duplicate = duplicate.filter(ClosedDate.room_id.is_(None))
        else:
            duplicate = duplicate.filter(ClosedDate.room_id == room_id)
        if duplicate.first():
            raise ValidationError(f"{day} is already closed")

        closed = ClosedDate(date=day, room_id=room_id, reason=reason, created_by=created_by)
        self.db.add(closed)
        self.db.commit()
        self.db.refresh(closed)
        logger.info(f"Closed {day} for room {room_id if room_id is not None else 'all'}")
        return closed

    def delete_closed_date(self, closed_date_id: int) -> None:
        closed = self.db.query(ClosedDate).filter(ClosedDate.id == closed_date_id).first()
        if not closed:
            raise NotFoundError("Closed date not found")
        self.db.delete(closed)
        self.db.commit()
