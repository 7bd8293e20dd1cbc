import logging
from contextlib import contextmanager
from dataclasses import dataclass, replace
from datetime import date, datetime
from typing import Callable, Dict, FrozenSet, List, Optional
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from app.config import settings
from app.errors import (
    AuthorizationError,
    AvailabilityConflictError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from app.models.application import Application, ApplicationStatus, PaymentStatus, Usage, UsageEquipment
from app.models.room import Room, TimeSlot
from app.repositories.holidays import SqlHolidayRepository
from app.repositories.pricing import SqlPricingRepository
from app.repositories.usages import SqlUsageRepository
from app.schemas.application import ApplicationCreate, UsageUpdate
from app.services.availability import AvailabilityChecker
from app.services.fees import FeeSchedule
from app.services.holidays import HolidayOracle
from app.services.notifications import DomainEvent
from app.services.pricing import AddOns, EquipmentRequest, PriceQuote, PricingCalculator

logger = logging.getLogger(__name__)


TRANSITIONS: Dict[ApplicationStatus, FrozenSet[ApplicationStatus]] = {
    ApplicationStatus.pending: frozenset(
        {ApplicationStatus.approved, ApplicationStatus.rejected, ApplicationStatus.cancelled}
    ),
    ApplicationStatus.approved: frozenset({ApplicationStatus.completed, ApplicationStatus.cancelled}),
    ApplicationStatus.rejected: frozenset(),
    ApplicationStatus.completed: frozenset(),
    ApplicationStatus.cancelled: frozenset(),
}

_unmapped = set(ApplicationStatus) - set(TRANSITIONS)
if _unmapped:
    raise RuntimeError(f"Statuses without transition rules: {sorted(status.value for status in _unmapped)}")

TERMINAL_STATUSES = frozenset(status for status, targets in TRANSITIONS.items() if not targets)


def can_transition(current: ApplicationStatus, target: ApplicationStatus) -> bool:
    return target in TRANSITIONS[current]


def is_staff(user: dict) -> bool:
    return user.get("role") in ("staff", "admin")


@dataclass
class ApplicationFilter:
    status: Optional[ApplicationStatus] = None
    payment_status: Optional[PaymentStatus] = None
    room_id: Optional[int] = None
    user_id: Optional[int] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    search: Optional[str] = None
    skip: int = 0
    limit: int = 100


@dataclass
class CancellationResult:
    application_id: int
    total_amount: int
    days_before: int
    fee_percentage: int
    cancellation_fee: int
    refund_amount: int
    status: ApplicationStatus
    payment_status: PaymentStatus


class ApplicationService:
    """Reservation lifecycle: create, approve/reject/complete, pay, modify, cancel.

    Every mutating call runs in one transaction over the application and its
    usages. Domain events are queued only after the transaction commits;
    callers collect them with ``drain_events``.
    """

    def __init__(
        self,
        db: Session,
        oracle: HolidayOracle,
        availability: AvailabilityChecker,
        pricing: PricingCalculator,
        fee_schedule: FeeSchedule,
        clock: Callable[[], date] = date.today,
        count_business_days: bool = False,
        max_dates: int = 31,
    ):
        self.db = db
        self.oracle = oracle
        self.availability = availability
        self.pricing = pricing
        self.fee_schedule = fee_schedule
        self.clock = clock
        self.count_business_days = count_business_days
        self.max_dates = max_dates
        self._events: List[DomainEvent] = []

    # Queries

    def get_application(self, application_id: int, user: dict) -> Application:
        application = self.db.query(Application).filter(Application.id == application_id).first()
        if not application:
            logger.error(f"Application not found: {application_id}")
            raise NotFoundError("Application not found")
        if not is_staff(user) and application.user_id != user["id"]:
            logger.error(f"User {user['id']} not authorized for application {application_id}")
            raise AuthorizationError("Not authorized to access this application")
        return application

    def list_applications(self, filters: ApplicationFilter, user: dict) -> List[Application]:
        if not is_staff(user):
            filters = replace(filters, user_id=user["id"])

        query = self.db.query(Application)
        if filters.status is not None:
            query = query.filter(Application.status == filters.status)
        if filters.payment_status is not None:
            query = query.filter(Application.payment_status == filters.payment_status)
        if filters.user_id is not None:
            query = query.filter(Application.user_id == filters.user_id)
        if filters.room_id is not None:
            query = query.filter(Application.usages.any(Usage.room_id == filters.room_id))
        if filters.start_date is not None:
            query = query.filter(Application.usages.any(Usage.usage_date >= filters.start_date))
        if filters.end_date is not None:
            query = query.filter(Application.usages.any(Usage.usage_date <= filters.end_date))
        if filters.search:
            pattern = f"%{filters.search}%"
            query = query.filter(
                or_(
                    Application.event_name.ilike(pattern),
                    Application.applicant_representative.ilike(pattern),
                    Application.applicant_email.ilike(pattern),
                    Application.applicant_phone.ilike(pattern),
                )
            )
        return (
            query.order_by(Application.created_at.desc(), Application.id.desc())
            .offset(filters.skip)
            .limit(filters.limit)
            .all()
        )

    def quote(self, data: ApplicationCreate) -> PriceQuote:
        self._validate_dates(data.dates)
        self._bookable_room(data.room_id)
        self._bookable_slot(data.time_slot_id)
        return self._price(data)

    # Lifecycle

    def create_application(self, data: ApplicationCreate, user: dict) -> Application:
        logger.debug(f"Creating application for user: {user['id']}, room_id: {data.room_id}, dates: {data.dates}")
        self._validate_dates(data.dates)
        room = self._bookable_room(data.room_id)
        self._bookable_slot(data.time_slot_id)

        conflicts = self.availability.unavailable(data.room_id, data.dates, data.time_slot_id)
        if conflicts:
            detail = ", ".join(f"{day} ({status.value})" for day, status in sorted(conflicts.items()))
            logger.error(f"Room {data.room_id} unavailable: {detail}")
            raise AvailabilityConflictError(f"Room \"{room.name}\" is not available on: {detail}")

        quote = self._price(data)
        application = Application(
            user_id=user["id"],
            time_slot_id=data.time_slot_id,
            applicant_representative=data.applicant_representative,
            applicant_phone=data.applicant_phone,
            applicant_email=data.applicant_email,
            applicant_group_name=data.applicant_group_name,
            event_name=data.event_name,
            expected_attendees=data.expected_attendees,
            entrance_fee_amount=data.entrance_fee_amount,
            ticket_multiplier=quote.ticket_multiplier,
            remarks=data.remarks,
            status=ApplicationStatus.pending,
            payment_status=PaymentStatus.unpaid,
            total_amount=quote.total,
        )
        for line in quote.lines:
            usage = Usage(
                room_id=data.room_id,
                time_slot_id=data.time_slot_id,
                usage_date=line.usage_date,
                planned_ac_hours=data.ac_hours,
                room_charge=line.room_charge,
                equipment_charge=line.equipment_charge,
                ac_charge=line.ac_charge,
                subtotal_amount=line.subtotal,
            )
            usage.equipment = [
                UsageEquipment(
                    equipment_id=item.equipment_id, quantity=item.quantity, line_amount=item.line_amount
                )
                for item in line.equipment_lines
            ]
            application.usages.append(usage)

        with self._transaction(f"Room \"{room.name}\" was booked by another request; please retry"):
            self.db.add(application)
            self.db.flush()

        self.db.refresh(application)
        logger.info(f"Created application {application.id}, total: {application.total_amount}")
        self._emit("application_created", application)
        return application

    def approve_application(self, application_id: int, user: dict) -> Application:
        application = self._staff_transition(application_id, user, ApplicationStatus.approved)
        with self._transaction():
            application.status = ApplicationStatus.approved
            application.approved_at = datetime.now()
        self._emit("application_approved", application)
        return application

    def reject_application(self, application_id: int, user: dict, reason: Optional[str] = None) -> Application:
        application = self._staff_transition(application_id, user, ApplicationStatus.rejected)
        with self._transaction():
            application.status = ApplicationStatus.rejected
            application.cancellation_reason = reason
            self._release_usages(application)
        self._emit("application_rejected", application)
        return application

    def complete_application(self, application_id: int, user: dict) -> Application:
        application = self._staff_transition(application_id, user, ApplicationStatus.completed)
        with self._transaction():
            application.status = ApplicationStatus.completed
        return application

    def preview_cancellation(self, application_id: int, user: dict) -> CancellationResult:
        application = self.get_application(application_id, user)
        self._ensure_transition(application, ApplicationStatus.cancelled)
        return self._cancellation_breakdown(application)

    def cancel_application(self, application_id: int, user: dict, reason: Optional[str] = None) -> CancellationResult:
        application = self.get_application(application_id, user)
        self._ensure_transition(application, ApplicationStatus.cancelled)
        breakdown = self._cancellation_breakdown(application)

        with self._transaction():
            application.status = ApplicationStatus.cancelled
            application.cancelled_at = datetime.now()
            application.cancellation_fee = breakdown.cancellation_fee
            application.refund_amount = breakdown.refund_amount
            application.cancellation_reason = reason
            if application.payment_status == PaymentStatus.paid and breakdown.refund_amount > 0:
                application.payment_status = PaymentStatus.refunded
            self._release_usages(application)

        logger.info(
            f"Cancelled application {application_id}: fee {breakdown.cancellation_fee} "
            f"({breakdown.fee_percentage}%), refund {breakdown.refund_amount}"
        )
        breakdown.status = application.status
        breakdown.payment_status = application.payment_status
        self._emit(
            "application_cancelled",
            application,
            cancellation_fee=breakdown.cancellation_fee,
            refund_amount=breakdown.refund_amount,
        )
        return breakdown

    def process_payment(
        self, application_id: int, user: dict, payment_reference: Optional[str] = None
    ) -> Application:
        """Mark an approved, unpaid application as paid.

        There is no payment gateway behind this; it records the fact that
        payment happened.
        """
        application = self.get_application(application_id, user)
        if application.status != ApplicationStatus.approved:
            logger.error(f"Payment refused for application {application_id} in status {application.status.value}")
            raise InvalidStateError(
                f"Payment is only accepted for approved reservations (current: {application.status.value})"
            )
        if application.payment_status != PaymentStatus.unpaid:
            raise InvalidStateError(f"Reservation is already {application.payment_status.value}")

        with self._transaction():
            application.payment_status = PaymentStatus.paid
            application.paid_at = datetime.now()
            application.payment_reference = payment_reference
        logger.info(f"Payment recorded for application {application_id}")
        self._emit("payment_confirmed", application)
        return application

    def modify_reservation(self, application_id: int, usage_id: int, changes: UsageUpdate, user: dict) -> Usage:
        application = self.get_application(application_id, user)
        if application.status in TERMINAL_STATUSES:
            raise InvalidStateError(f"Reservation is {application.status.value} and can no longer be modified")

        usage = next(
            (item for item in application.active_usages if item.id == usage_id),
            None,
        )
        if usage is None:
            raise NotFoundError("Usage not found")

        fields = changes.dict(exclude_unset=True)
        actual_ac_charge = None
        if "ac_hours" in fields:
            if not is_staff(user):
                raise AuthorizationError("Only staff can record AC hours")
            if fields["ac_hours"] is not None:
                actual_ac_charge = self.pricing.actual_ac_charge(
                    usage.room_id, usage.time_slot_id, fields["ac_hours"]
                )

        start = fields.get("actual_start_time", usage.actual_start_time)
        end = fields.get("actual_end_time", usage.actual_end_time)
        if start is not None and end is not None and start >= end:
            raise ValidationError("Actual start time must be before actual end time")

        new_date = fields.get("usage_date")
        if new_date is not None and new_date != usage.usage_date:
            conflicts = self.availability.unavailable(usage.room_id, [new_date], usage.time_slot_id)
            if conflicts:
                status = conflicts[new_date].value
                logger.error(f"Cannot move usage {usage_id} to {new_date}: {status}")
                raise AvailabilityConflictError(f"{new_date} is not available ({status})")
        else:
            new_date = None

        with self._transaction(f"{new_date} was booked by another request; please retry"):
            if "ac_hours" in fields:
                usage.ac_hours = fields["ac_hours"]
                usage.actual_ac_charge = actual_ac_charge
            if "actual_start_time" in fields:
                usage.actual_start_time = start
            if "actual_end_time" in fields:
                usage.actual_end_time = end
            if "remarks" in fields:
                usage.remarks = fields["remarks"]
            if new_date is not None:
                # The row moves in place, so the old date is freed by the same UPDATE
                usage.usage_date = new_date
            self.db.flush()

        self.db.refresh(usage)
        logger.info(f"Modified usage {usage_id} of application {application_id}: {sorted(fields)}")
        return usage

    def drain_events(self) -> List[DomainEvent]:
        events, self._events = self._events, []
        return events

    # Internals

    @contextmanager
    def _transaction(self, conflict_message: str = "Reservation conflicts with another booking; please retry"):
        try:
            yield
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            logger.error(f"Uniqueness violation while committing: {exc.orig}")
            raise AvailabilityConflictError(conflict_message) from exc
        except Exception:
            self.db.rollback()
            raise

    def _staff_transition(self, application_id: int, user: dict, target: ApplicationStatus) -> Application:
        if not is_staff(user):
            raise AuthorizationError("Staff privileges required")
        application = self.get_application(application_id, user)
        self._ensure_transition(application, target)
        return application

    def _ensure_transition(self, application: Application, target: ApplicationStatus) -> None:
        if not can_transition(application.status, target):
            logger.error(f"Invalid transition for application {application.id}: {application.status.value} -> {target.value}")
            if application.status in TERMINAL_STATUSES:
                raise InvalidStateError(f"Reservation is already {application.status.value}")
            raise InvalidStateError(f"Cannot change reservation from {application.status.value} to {target.value}")

    def _release_usages(self, application: Application) -> None:
        now = datetime.now()
        for usage in application.active_usages:
            usage.release(now)

    def _cancellation_breakdown(self, application: Application) -> CancellationResult:
        usages = application.active_usages
        today = self.clock()
        days_before = 0
        if usages:
            soonest = min(usages, key=lambda usage: usage.usage_date)
            if self.count_business_days and soonest.usage_date > today:
                days_before = self.oracle.business_days_between(today, soonest.usage_date, soonest.room_id)
            else:
                days_before = (soonest.usage_date - today).days

        percentage = self.fee_schedule.percentage_for(days_before)
        fee = self.fee_schedule.fee_for(application.total_amount, days_before)
        return CancellationResult(
            application_id=application.id,
            total_amount=application.total_amount,
            days_before=days_before,
            fee_percentage=percentage,
            cancellation_fee=fee,
            refund_amount=application.total_amount - fee,
            status=application.status,
            payment_status=application.payment_status,
        )

    def _validate_dates(self, dates: List[date]) -> None:
        if not dates:
            raise ValidationError("At least one date is required")
        if len(set(dates)) != len(dates):
            raise ValidationError("Dates must not repeat")
        if len(dates) > self.max_dates:
            raise ValidationError(f"At most {self.max_dates} dates per application")

    def _bookable_room(self, room_id: int) -> Room:
        room = self.db.query(Room).filter(Room.id == room_id).first()
        if not room:
            raise NotFoundError("Room not found")
        if not room.is_active:
            raise ValidationError(f"Room \"{room.name}\" is not accepting reservations")
        return room

    def _bookable_slot(self, time_slot_id: int) -> TimeSlot:
        slot = self.db.query(TimeSlot).filter(TimeSlot.id == time_slot_id).first()
        if not slot:
            raise NotFoundError("Time slot not found")
        if not slot.is_active:
            raise ValidationError(f"Time slot \"{slot.name}\" is not offered")
        return slot

    def _price(self, data: ApplicationCreate) -> PriceQuote:
        add_ons = AddOns(
            ac_hours=data.ac_hours,
            equipment=[EquipmentRequest(item.equipment_id, item.quantity) for item in data.equipment],
        )
        return self.pricing.compute_total(
            data.room_id, data.dates, data.time_slot_id, add_ons, data.entrance_fee_amount
        )

    def _emit(self, name: str, application: Application, **variables) -> None:
        dates = ", ".join(str(usage.usage_date) for usage in application.usages)
        self._events.append(
            DomainEvent(
                name=name,
                application_id=application.id,
                recipient_type="user",
                recipient_id=application.user_id,
                variables={
                    "representative": application.applicant_representative,
                    "event_name": application.event_name,
                    "total_amount": application.total_amount,
                    "dates": dates,
                    **variables,
                },
            )
        )


def build_application_service(db: Session, clock: Callable[[], date] = date.today) -> ApplicationService:
    oracle = HolidayOracle(SqlHolidayRepository(db), weekend_closed=settings.weekend_closed)
    return ApplicationService(
        db,
        oracle=oracle,
        availability=AvailabilityChecker(oracle, SqlUsageRepository(db), clock=clock),
        pricing=PricingCalculator(SqlPricingRepository(db)),
        fee_schedule=FeeSchedule(settings.cancellation_fee_tiers),
        clock=clock,
        count_business_days=settings.cancellation_count_business_days,
        max_dates=settings.max_dates_per_application,
    )
