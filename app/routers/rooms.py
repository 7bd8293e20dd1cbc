import logging
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional
from app.db import get_db
from app.dependencies import get_availability_checker
from app.errors import InvalidStateError
from app.models.application import Usage
from app.models.room import Room, RoomTimeSlotPrice, TimeSlot
from app.schemas.room import (
    AvailabilityResponse,
    DayAvailability,
    RoomCreate,
    RoomResponse,
    RoomUpdate,
    SlotPriceIn,
    SlotPriceResponse,
)
from app.services.availability import AvailabilityChecker
from app.utils.auth import require_staff
from app.utils.validation_helpers import parse_month

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/rooms",
    tags=["rooms"],
)


def _get_room_or_404(db: Session, room_id: int) -> Room:
    room = db.query(Room).filter(Room.id == room_id).first()
    if not room:
        logger.error(f"Room not found: {room_id}")
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Room not found")
    return room


@router.post("/", response_model=RoomResponse, status_code=status.HTTP_201_CREATED)
def create_room(room: RoomCreate, db: Session = Depends(get_db), current_user: dict = Depends(require_staff)):
    """
    Create a new room.
    Requires staff privileges.
    """
    db_room = Room(**room.dict())
    db.add(db_room)
    db.commit()
    db.refresh(db_room)
    logger.debug(f"Created room: {db_room.id}")
    return db_room


@router.get("/", response_model=List[RoomResponse])
def get_rooms(include_inactive: bool = False, skip: int = 0, limit: int = 100, db: Session = Depends(get_db)):
    """
    Retrieve rooms in display order. Deactivated rooms are hidden unless asked for.
    """
    query = db.query(Room)
    if not include_inactive:
        query = query.filter(Room.is_active.is_(True))
    return query.order_by(Room.display_order, Room.id).offset(skip).limit(limit).all()


@router.get("/{room_id}", response_model=RoomResponse)
def get_room(room_id: int, db: Session = Depends(get_db)):
    """
    Retrieve a specific room by ID.
    """
    return _get_room_or_404(db, room_id)


@router.put("/{room_id}", response_model=RoomResponse)
def update_room(
    room_id: int,
    room_update: RoomUpdate,
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_staff),
):
    """
    Update a room's details.
    Requires staff privileges.
    """
    db_room = _get_room_or_404(db, room_id)

    update_data = room_update.dict(exclude_unset=True)
    for key, value in update_data.items():
        setattr(db_room, key, value)

    db.commit()
    db.refresh(db_room)
    return db_room


@router.delete("/{room_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_room(
    room_id: int,
    purge: bool = False,
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_staff),
):
    """
    Deactivate a room so it stops accepting reservations.
    With `purge=true` the room is removed outright, which is only allowed
    when it has never been reserved.
    Requires staff privileges.
    """
    db_room = _get_room_or_404(db, room_id)

    if purge:
        if db.query(Usage).filter(Usage.room_id == room_id).count():
            raise InvalidStateError("Room has reservation history and cannot be deleted; deactivate it instead")
        db.delete(db_room)
        logger.info(f"Purged room: {room_id}")
    else:
        db_room.is_active = False
        logger.info(f"Deactivated room: {room_id}")
    db.commit()
    return None


@router.get("/{room_id}/prices", response_model=List[SlotPriceResponse])
def get_room_prices(room_id: int, db: Session = Depends(get_db)):
    """
    Retrieve the per-slot price table of a room.
    """
    _get_room_or_404(db, room_id)
    return (
        db.query(RoomTimeSlotPrice)
        .filter(RoomTimeSlotPrice.room_id == room_id)
        .order_by(RoomTimeSlotPrice.time_slot_id)
        .all()
    )


@router.put("/{room_id}/prices", response_model=List[SlotPriceResponse])
def set_room_prices(
    room_id: int,
    prices: List[SlotPriceIn],
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_staff),
):
    """
    Create or update the price of a room for each given time slot.
    Requires staff privileges.
    """
    _get_room_or_404(db, room_id)
    slot_ids = {price.time_slot_id for price in prices}
    known = {row.id for row in db.query(TimeSlot.id).filter(TimeSlot.id.in_(slot_ids))}
    missing = slot_ids - known
    if missing:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Time slot not found: {', '.join(str(slot_id) for slot_id in sorted(missing))}",
        )

    existing = {
        row.time_slot_id: row
        for row in db.query(RoomTimeSlotPrice).filter(RoomTimeSlotPrice.room_id == room_id)
    }
    for price in prices:
        row = existing.get(price.time_slot_id)
        if row is None:
            row = RoomTimeSlotPrice(room_id=room_id, time_slot_id=price.time_slot_id)
            db.add(row)
            existing[price.time_slot_id] = row
        row.base_price = price.base_price
        row.ac_price_per_hour = price.ac_price_per_hour
        row.is_available = price.is_available
    db.commit()
    logger.debug(f"Updated {len(prices)} slot prices for room: {room_id}")
    return get_room_prices(room_id, db)


@router.get("/{room_id}/availability", response_model=AvailabilityResponse)
def get_room_availability(
    room_id: int,
    month: str = Query(..., description="Month in YYYY-MM format"),
    time_slot_id: Optional[int] = None,
    db: Session = Depends(get_db),
    checker: AvailabilityChecker = Depends(get_availability_checker),
):
    """
    Day-by-day availability of a room for one month.

    Each date is `past`, `closed` (weekend, holiday or closure), `booked`
    or `available`. Without `time_slot_id` a date counts as booked when
    any slot is taken.
    """
    _get_room_or_404(db, room_id)
    year, month_number = parse_month(month)
    statuses = checker.month_availability(room_id, year, month_number, time_slot_id)
    return AvailabilityResponse(
        room_id=room_id,
        month=f"{year:04d}-{month_number:02d}",
        time_slot_id=time_slot_id,
        days=[DayAvailability(date=day, status=value) for day, value in statuses.items()],
    )
