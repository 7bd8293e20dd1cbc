import logging
from datetime import date
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import List, Optional
from app.db import get_db
from app.models.room import Equipment, Room, TimeSlot
from app.schemas.facility import ClosedDateCreate, ClosedDateResponse, EquipmentCreate, EquipmentResponse
from app.schemas.room import TimeSlotCreate, TimeSlotResponse
from app.services.holidays import ClosedDateService
from app.utils.auth import require_staff

logger = logging.getLogger(__name__)

router = APIRouter(
    tags=["facilities"],
)


@router.get("/time-slots/", response_model=List[TimeSlotResponse])
def get_time_slots(db: Session = Depends(get_db)):
    """
    Retrieve the bookable time slots (e.g. morning, afternoon, evening).
    """
    return db.query(TimeSlot).order_by(TimeSlot.display_order, TimeSlot.start_time).all()


@router.post("/time-slots/", response_model=TimeSlotResponse, status_code=status.HTTP_201_CREATED)
def create_time_slot(slot: TimeSlotCreate, db: Session = Depends(get_db), current_user: dict = Depends(require_staff)):
    """
    Create a time slot.
    Requires staff privileges.
    """
    if db.query(TimeSlot).filter(TimeSlot.code == slot.code).first():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Time slot code already exists: {slot.code}")
    db_slot = TimeSlot(**slot.dict())
    db.add(db_slot)
    db.commit()
    db.refresh(db_slot)
    logger.debug(f"Created time slot: {db_slot.code}")
    return db_slot


@router.get("/equipment/", response_model=List[EquipmentResponse])
def get_equipment(include_disabled: bool = False, db: Session = Depends(get_db)):
    """
    Retrieve the equipment catalog.
    """
    query = db.query(Equipment)
    if not include_disabled:
        query = query.filter(Equipment.enabled.is_(True))
    return query.order_by(Equipment.category, Equipment.id).all()


@router.post("/equipment/", response_model=EquipmentResponse, status_code=status.HTTP_201_CREATED)
def create_equipment(item: EquipmentCreate, db: Session = Depends(get_db), current_user: dict = Depends(require_staff)):
    """
    Add an item to the equipment catalog.
    Requires staff privileges.
    """
    db_item = Equipment(**item.dict())
    db.add(db_item)
    db.commit()
    db.refresh(db_item)
    return db_item


@router.get("/closed-dates/", response_model=List[ClosedDateResponse])
def get_closed_dates(
    room_id: Optional[int] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    db: Session = Depends(get_db),
):
    """
    Retrieve facility-wide and room-specific closures.
    """
    return ClosedDateService(db).list_closed_dates(room_id, start_date, end_date)


@router.post("/closed-dates/", response_model=ClosedDateResponse, status_code=status.HTTP_201_CREATED)
def create_closed_date(
    closed: ClosedDateCreate,
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_staff),
):
    """
    Close the whole facility (no `room_id`) or one room on a date.
    Refused while reservations exist on that date.
    Requires staff privileges.
    """
    if closed.room_id is not None and not db.query(Room).filter(Room.id == closed.room_id).first():
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Room not found")
    return ClosedDateService(db).add_closed_date(
        closed.date, room_id=closed.room_id, reason=closed.reason, created_by=current_user["id"]
    )


@router.delete("/closed-dates/{closed_date_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_closed_date(closed_date_id: int, db: Session = Depends(get_db), current_user: dict = Depends(require_staff)):
    """
    Reopen a closed date.
    Requires staff privileges.
    """
    ClosedDateService(db).delete_closed_date(closed_date_id)
    return None
