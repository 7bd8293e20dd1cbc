import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, Optional
from app.models.notification import NotificationLog, NotificationStatus

logger = logging.getLogger(__name__)


@dataclass
class DomainEvent:
    """Something that happened to an application, published after commit."""

    name: str
    application_id: int
    recipient_type: str
    recipient_id: Optional[int]
    variables: Dict[str, Any] = field(default_factory=dict)


@dataclass
class DispatchResult:
    success: bool
    log_id: Optional[int] = None
    error: Optional[str] = None


TEMPLATES = {
    "application_created": (
        "Reservation #{application_id} received",
        "Dear {representative},\n\nWe received your reservation for \"{event_name}\" "
        "({dates}). Total: {total_amount} yen. Staff will review it shortly.",
    ),
    "application_approved": (
        "Reservation #{application_id} approved",
        "Dear {representative},\n\nYour reservation for \"{event_name}\" has been approved. "
        "Please complete payment of {total_amount} yen.",
    ),
    "application_rejected": (
        "Reservation #{application_id} rejected",
        "Dear {representative},\n\nYour reservation for \"{event_name}\" could not be accepted.",
    ),
    "application_cancelled": (
        "Reservation #{application_id} cancelled",
        "Dear {representative},\n\nYour reservation for \"{event_name}\" has been cancelled. "
        "Cancellation fee: {cancellation_fee} yen. Refund: {refund_amount} yen.",
    ),
    "payment_confirmed": (
        "Payment received for reservation #{application_id}",
        "Dear {representative},\n\nWe received your payment of {total_amount} yen for \"{event_name}\".",
    ),
}


class _Blank(dict):
    def __missing__(self, key):
        return ""


def render(template: str, variables: Dict[str, Any]) -> str:
    return template.format_map(_Blank(variables))


def log_delivery(recipient_type: str, recipient_id: int, subject: str, body: str) -> None:
    logger.info(f"Notification to {recipient_type} {recipient_id}: {subject}")


class NotificationDispatcher:
    """Renders templates, records a log row and hands the message to ``deliver``."""

    def __init__(self, session_factory: Callable, deliver: Callable[[str, int, str, str], None] = log_delivery):
        self.session_factory = session_factory
        self.deliver = deliver

    def send(
        self,
        template_code: str,
        recipient_type: str,
        recipient_id: int,
        variables: Dict[str, Any],
        application_id: Optional[int] = None,
    ) -> DispatchResult:
        template = TEMPLATES.get(template_code)
        if template is None:
            return DispatchResult(success=False, error=f"Template not found: {template_code}")

        subject, body = render(template[0], variables), render(template[1], variables)
        db = self.session_factory()
        try:
            log = NotificationLog(
                template_code=template_code,
                recipient_type=recipient_type,
                recipient_id=recipient_id,
                subject=subject,
                body=body,
                related_application_id=application_id,
            )
            db.add(log)
            db.commit()
            try:
                self.deliver(recipient_type, recipient_id, subject, body)
            except Exception as exc:  # delivery channel errors are recorded, not raised
                log.status = NotificationStatus.failed
                log.error = str(exc)
                db.commit()
                return DispatchResult(success=False, log_id=log.id, error=str(exc))
            log.status = NotificationStatus.sent
            log.sent_at = datetime.now()
            db.commit()
            return DispatchResult(success=True, log_id=log.id)
        finally:
            db.close()

    def dispatch_all(self, events: Iterable[DomainEvent]) -> None:
        """Deliver events one by one; a failure never propagates."""
        for event in events:
            if event.recipient_id is None:
                logger.debug(f"Skipping {event.name} for application {event.application_id}: no recipient")
                continue
            try:
                result = self.send(
                    event.name,
                    event.recipient_type,
                    event.recipient_id,
                    {"application_id": event.application_id, **event.variables},
                    application_id=event.application_id,
                )
            except Exception:
                logger.exception(f"Failed to dispatch {event.name} for application {event.application_id}")
                continue
            if not result.success:
                logger.warning(f"Notification {event.name} for application {event.application_id} failed: {result.error}")
