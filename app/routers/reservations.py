import logging
from fastapi import APIRouter, BackgroundTasks, Depends
from app.dependencies import get_application_service, get_dispatcher
from app.schemas.application import (
    ApplicationResponse,
    CancellationResponse,
    PaymentRequest,
    TransitionRequest,
    UsageResponse,
    UsageUpdate,
)
from app.services.applications import ApplicationService
from app.services.notifications import NotificationDispatcher
from app.utils.auth import get_current_user, require_staff

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/reservations",
    tags=["reservations"],
)


@router.post("/{application_id}/approve", response_model=ApplicationResponse)
def approve_reservation(
    application_id: int,
    background_tasks: BackgroundTasks,
    service: ApplicationService = Depends(get_application_service),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
    current_user: dict = Depends(require_staff),
):
    """
    Approve a pending application.
    Requires staff privileges.
    """
    application = service.approve_application(application_id, current_user)
    background_tasks.add_task(dispatcher.dispatch_all, service.drain_events())
    return application


@router.post("/{application_id}/reject", response_model=ApplicationResponse)
def reject_reservation(
    application_id: int,
    background_tasks: BackgroundTasks,
    request: TransitionRequest = TransitionRequest(),
    service: ApplicationService = Depends(get_application_service),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
    current_user: dict = Depends(require_staff),
):
    """
    Reject a pending application and free its dates.
    Requires staff privileges.
    """
    application = service.reject_application(application_id, current_user, request.reason)
    background_tasks.add_task(dispatcher.dispatch_all, service.drain_events())
    return application


@router.post("/{application_id}/complete", response_model=ApplicationResponse)
def complete_reservation(
    application_id: int,
    service: ApplicationService = Depends(get_application_service),
    current_user: dict = Depends(require_staff),
):
    """
    Mark an approved reservation as used.
    Requires staff privileges.
    """
    return service.complete_application(application_id, current_user)


@router.get("/{application_id}/cancellation-fee", response_model=CancellationResponse)
def preview_cancellation_fee(
    application_id: int,
    service: ApplicationService = Depends(get_application_service),
    current_user: dict = Depends(get_current_user),
):
    """
    Show the fee and refund a cancellation made today would incur, without cancelling.
    """
    return service.preview_cancellation(application_id, current_user)


@router.post(
    "/{application_id}/cancel",
    response_model=CancellationResponse,
    summary="Cancel a reservation",
    description="Cancel a pending or approved reservation and return the fee and refund. Requires authentication."
)
def cancel_reservation(
    application_id: int,
    background_tasks: BackgroundTasks,
    request: TransitionRequest = TransitionRequest(),
    service: ApplicationService = Depends(get_application_service),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
    current_user: dict = Depends(get_current_user),
):
    """
    Cancel a pending or approved reservation.

    The fee depends on how many days remain before the first usage date.
    Paid reservations with a refund due move to `refunded`.
    Cancelled dates become available again.
    """
    result = service.cancel_application(application_id, current_user, request.reason)
    background_tasks.add_task(dispatcher.dispatch_all, service.drain_events())
    return result


@router.post("/{application_id}/payment", response_model=ApplicationResponse)
def record_payment(
    application_id: int,
    background_tasks: BackgroundTasks,
    request: PaymentRequest = PaymentRequest(),
    service: ApplicationService = Depends(get_application_service),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
    current_user: dict = Depends(get_current_user),
):
    """
    Record payment for an approved reservation.
    """
    application = service.process_payment(application_id, current_user, request.payment_reference)
    background_tasks.add_task(dispatcher.dispatch_all, service.drain_events())
    return application


@router.patch(
    "/{application_id}/usages/{usage_id}",
    response_model=UsageResponse,
    summary="Modify a usage",
    description="Move a usage to another date or record actual usage details. Requires authentication."
)
def modify_usage(
    application_id: int,
    usage_id: int,
    changes: UsageUpdate,
    service: ApplicationService = Depends(get_application_service),
    current_user: dict = Depends(get_current_user),
):
    """
    Change one usage of a reservation: move it to another date or record
    actual times, remarks and air-conditioning hours (staff only).
    Recorded AC hours are billed separately and never change the stored total.
    """
    return service.modify_reservation(application_id, usage_id, changes, current_user)
