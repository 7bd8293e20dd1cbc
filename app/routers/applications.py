import logging
from datetime import date
from fastapi import APIRouter, BackgroundTasks, Depends, status
from typing import List, Optional
from app.dependencies import get_application_service, get_dispatcher
from app.models.application import ApplicationStatus, PaymentStatus
from app.schemas.application import (
    ApplicationCreate,
    ApplicationResponse,
    PriceQuoteResponse,
    UsageChargeResponse,
)
from app.services.applications import ApplicationFilter, ApplicationService
from app.services.notifications import NotificationDispatcher
from app.utils.auth import get_current_user

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/applications",
    tags=["applications"],
)


@router.post("", response_model=ApplicationResponse, status_code=status.HTTP_201_CREATED, include_in_schema=False)
@router.post(
    "/",
    response_model=ApplicationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a reservation application",
    description="Apply for one room and time slot on one or more dates. Requires authentication."
)
def create_application(
    application: ApplicationCreate,
    background_tasks: BackgroundTasks,
    service: ApplicationService = Depends(get_application_service),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
    current_user: dict = Depends(get_current_user),
):
    """
    Apply to use a room on one or more dates in one time slot.

    - All dates must be available (not past, not closed, not booked), otherwise 409.
    - The total is priced and stored with the application.
    - The application starts as `pending`, awaiting staff approval.
    """
    logger.debug(f"Application request from user: {current_user['id']}, room_id: {application.room_id}")
    created = service.create_application(application, current_user)
    background_tasks.add_task(dispatcher.dispatch_all, service.drain_events())
    return created


@router.post("/quote", response_model=PriceQuoteResponse)
def quote_application(
    application: ApplicationCreate,
    service: ApplicationService = Depends(get_application_service),
    current_user: dict = Depends(get_current_user),
):
    """
    Price an application without creating it.
    """
    quote = service.quote(application)
    return PriceQuoteResponse(
        room_id=quote.room_id,
        time_slot_id=quote.time_slot_id,
        ticket_multiplier=quote.ticket_multiplier,
        lines=[
            UsageChargeResponse(
                usage_date=line.usage_date,
                room_charge=line.room_charge,
                equipment_charge=line.equipment_charge,
                ac_charge=line.ac_charge,
                subtotal=line.subtotal,
            )
            for line in quote.lines
        ],
        total=quote.total,
    )


@router.get("", response_model=List[ApplicationResponse], include_in_schema=False)
@router.get(
    "/",
    response_model=List[ApplicationResponse],
    summary="List applications",
    description="Retrieve applications with optional filters. Requires authentication."
)
def get_applications(
    status: Optional[ApplicationStatus] = None,
    payment_status: Optional[PaymentStatus] = None,
    room_id: Optional[int] = None,
    user_id: Optional[int] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    search: Optional[str] = None,
    skip: int = 0,
    limit: int = 100,
    service: ApplicationService = Depends(get_application_service),
    current_user: dict = Depends(get_current_user),
):
    """
    Retrieve applications, newest first.
    Staff see every application and may filter by user; other users only see their own.
    """
    filters = ApplicationFilter(
        status=status,
        payment_status=payment_status,
        room_id=room_id,
        user_id=user_id,
        start_date=start_date,
        end_date=end_date,
        search=search,
        skip=skip,
        limit=limit,
    )
    return service.list_applications(filters, current_user)


@router.get("/{application_id}", response_model=ApplicationResponse)
def get_application(
    application_id: int,
    service: ApplicationService = Depends(get_application_service),
    current_user: dict = Depends(get_current_user),
):
    """
    Retrieve a single application with its usages.
    """
    return service.get_application(application_id, current_user)
