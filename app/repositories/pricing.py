from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Protocol
from sqlalchemy.orm import Session
from app.models.room import Equipment, EquipmentPriceType, RoomTimeSlotPrice


@dataclass(frozen=True)
class SlotPrice:
    room_id: int
    time_slot_id: int
    base_price: int
    ac_price_per_hour: int


@dataclass(frozen=True)
class EquipmentItem:
    id: int
    name: str
    price_type: EquipmentPriceType
    unit_price: int
    max_quantity: int
    enabled: bool = True


class PricingRepository(Protocol):
    def get_slot_price(self, room_id: int, time_slot_id: int) -> Optional[SlotPrice]:
        ...

    def get_equipment(self, equipment_ids: Iterable[int]) -> Dict[int, EquipmentItem]:
        ...


class SqlPricingRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_slot_price(self, room_id: int, time_slot_id: int) -> Optional[SlotPrice]:
        row = (
            self.db.query(RoomTimeSlotPrice)
            .filter(
                RoomTimeSlotPrice.room_id == room_id,
                RoomTimeSlotPrice.time_slot_id == time_slot_id,
                RoomTimeSlotPrice.is_available.is_(True),
            )
            .first()
        )
        if row is None:
            return None
        return SlotPrice(
            room_id=row.room_id,
            time_slot_id=row.time_slot_id,
            base_price=row.base_price,
            ac_price_per_hour=row.ac_price_per_hour,
        )

    def get_equipment(self, equipment_ids: Iterable[int]) -> Dict[int, EquipmentItem]:
        ids = list(set(equipment_ids))
        if not ids:
            return {}
        rows = self.db.query(Equipment).filter(Equipment.id.in_(ids)).all()
        return {
            row.id: EquipmentItem(
                id=row.id,
                name=row.name,
                price_type=row.price_type,
                unit_price=row.unit_price,
                max_quantity=row.max_quantity,
                enabled=row.enabled,
            )
            for row in rows
        }
