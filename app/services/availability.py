import calendar
import enum
import logging
from datetime import date, timedelta
from typing import Callable, Dict, Iterable, List, Optional
from app.repositories.usages import UsageRepository
from app.services.holidays import HolidayOracle

logger = logging.getLogger(__name__)


class AvailabilityStatus(str, enum.Enum):
    available = "available"
    booked = "booked"
    closed = "closed"
    past = "past"


def month_days(year: int, month: int) -> List[date]:
    _, last = calendar.monthrange(year, month)
    return [date(year, month, day) for day in range(1, last + 1)]


def date_range(start: date, end: date) -> List[date]:
    return [start + timedelta(days=n) for n in range((end - start).days + 1)]


class AvailabilityChecker:
    """Classifies dates for a room as past, closed, booked or available.

    Read-only: it never writes, so repeated calls without intervening writes
    agree with each other.
    """

    def __init__(
        self,
        oracle: HolidayOracle,
        usages: UsageRepository,
        clock: Callable[[], date] = date.today,
    ):
        self.oracle = oracle
        self.usages = usages
        self.clock = clock

    def check_availability(
        self, room_id: int, days: Iterable[date], time_slot_id: Optional[int] = None
    ) -> Dict[date, AvailabilityStatus]:
        days = sorted(set(days))
        if not days:
            return {}

        today = self.clock()
        closed = self.oracle.check_many(days, room_id)
        booked = self.usages.booked_dates(room_id, days[0], days[-1], time_slot_id)

        result = {}
        for day in days:
            if day < today:
                result[day] = AvailabilityStatus.past
            elif closed[day]:
                result[day] = AvailabilityStatus.closed
            elif day in booked:
                result[day] = AvailabilityStatus.booked
            else:
                result[day] = AvailabilityStatus.available
        logger.debug(f"Checked {len(days)} dates for room_id: {room_id}, time_slot_id: {time_slot_id}")
        return result

    def month_availability(
        self, room_id: int, year: int, month: int, time_slot_id: Optional[int] = None
    ) -> Dict[date, AvailabilityStatus]:
        return self.check_availability(room_id, month_days(year, month), time_slot_id)

    def unavailable(
        self, room_id: int, days: Iterable[date], time_slot_id: Optional[int] = None
    ) -> Dict[date, AvailabilityStatus]:
        """Subset of ``days`` that cannot be booked, with the reason."""
        statuses = self.check_availability(room_id, days, time_slot_id)
        return {day: status for day, status in statuses.items() if status != AvailabilityStatus.available}
