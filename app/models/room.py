import enum
from sqlalchemy import Boolean, Column, Enum, ForeignKey, Integer, String, Time, UniqueConstraint
from sqlalchemy.orm import relationship
from app.db import Base


class Room(Base):
    __tablename__ = "rooms"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, index=True, nullable=False)
    capacity = Column(Integer, nullable=True)
    location = Column(String, nullable=True)
    description = Column(String, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    display_order = Column(Integer, nullable=False, default=0)

    prices = relationship(
        "RoomTimeSlotPrice", back_populates="room", cascade="all, delete-orphan"
    )
    usages = relationship("Usage", back_populates="room")


class TimeSlot(Base):
    __tablename__ = "time_slots"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String, unique=True, nullable=False)
    name = Column(String, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    display_order = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)


class RoomTimeSlotPrice(Base):
    __tablename__ = "room_time_slot_prices"
    __table_args__ = (
        UniqueConstraint("room_id", "time_slot_id", name="uq_room_time_slot_price"),
    )

    id = Column(Integer, primary_key=True, index=True)
    room_id = Column(Integer, ForeignKey("rooms.id", ondelete="CASCADE"), nullable=False)
    time_slot_id = Column(Integer, ForeignKey("time_slots.id"), nullable=False)
    base_price = Column(Integer, nullable=False)
    ac_price_per_hour = Column(Integer, nullable=False, default=0)
    is_available = Column(Boolean, nullable=False, default=True)

    room = relationship("Room", back_populates="prices")
    time_slot = relationship("TimeSlot")


class EquipmentPriceType(str, enum.Enum):
    per_slot = "per_slot"
    flat = "flat"
    free = "free"


class Equipment(Base):
    __tablename__ = "equipment"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    category = Column(String, nullable=False, default="other")
    price_type = Column(Enum(EquipmentPriceType), nullable=False, default=EquipmentPriceType.per_slot)
    unit_price = Column(Integer, nullable=False, default=0)
    max_quantity = Column(Integer, nullable=False, default=1)
    enabled = Column(Boolean, nullable=False, default=True)
