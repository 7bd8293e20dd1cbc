import enum
from sqlalchemy import (
    Column, Date, DateTime, Enum, Float, ForeignKey, Integer, String, Text, Time, UniqueConstraint, func,
)
from sqlalchemy.orm import relationship
from app.db import Base


class ApplicationStatus(str, enum.Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"
    completed = "completed"
    cancelled = "cancelled"


class PaymentStatus(str, enum.Enum):
    unpaid = "unpaid"
    paid = "paid"
    refunded = "refunded"


class Application(Base):
    __tablename__ = "applications"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    time_slot_id = Column(Integer, ForeignKey("time_slots.id"), nullable=False)

    applicant_representative = Column(String, nullable=False)
    applicant_phone = Column(String, nullable=False)
    applicant_email = Column(String, nullable=False)
    applicant_group_name = Column(String, nullable=True)
    event_name = Column(String, nullable=False)
    expected_attendees = Column(Integer, nullable=True)
    entrance_fee_amount = Column(Integer, nullable=False, default=0)
    ticket_multiplier = Column(Float, nullable=False, default=1.0)
    remarks = Column(Text, nullable=True)

    status = Column(Enum(ApplicationStatus), nullable=False, default=ApplicationStatus.pending)
    payment_status = Column(Enum(PaymentStatus), nullable=False, default=PaymentStatus.unpaid)
    payment_reference = Column(String, nullable=True)
    total_amount = Column(Integer, nullable=False, default=0)
    cancellation_fee = Column(Integer, nullable=False, default=0)
    refund_amount = Column(Integer, nullable=False, default=0)
    cancellation_reason = Column(String, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
    approved_at = Column(DateTime, nullable=True)
    paid_at = Column(DateTime, nullable=True)
    cancelled_at = Column(DateTime, nullable=True)

    user = relationship("User", back_populates="applications")
    time_slot = relationship("TimeSlot")
    usages = relationship(
        "Usage", back_populates="application", cascade="all, delete-orphan", order_by="Usage.usage_date"
    )

    @property
    def active_usages(self):
        return [usage for usage in self.usages if usage.released_at is None]


class Usage(Base):
    __tablename__ = "usages"
    __table_args__ = (
        # At most one unreleased usage per room, date and slot. Released rows
        # carry a NULL marker, and NULLs never collide in a unique constraint.
        UniqueConstraint(
            "room_id", "usage_date", "time_slot_id", "active_marker",
            name="uq_usage_room_date_slot_active",
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    application_id = Column(Integer, ForeignKey("applications.id", ondelete="CASCADE"), nullable=False)
    room_id = Column(Integer, ForeignKey("rooms.id"), nullable=False)
    time_slot_id = Column(Integer, ForeignKey("time_slots.id"), nullable=False)
    usage_date = Column(Date, nullable=False, index=True)

    planned_ac_hours = Column(Float, nullable=False, default=0)
    ac_hours = Column(Float, nullable=True)
    actual_ac_charge = Column(Integer, nullable=True)
    actual_start_time = Column(Time, nullable=True)
    actual_end_time = Column(Time, nullable=True)
    remarks = Column(Text, nullable=True)

    room_charge = Column(Integer, nullable=False, default=0)
    equipment_charge = Column(Integer, nullable=False, default=0)
    ac_charge = Column(Integer, nullable=False, default=0)
    subtotal_amount = Column(Integer, nullable=False, default=0)

    released_at = Column(DateTime, nullable=True)
    active_marker = Column(Integer, nullable=True, default=1)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    application = relationship("Application", back_populates="usages")
    room = relationship("Room", back_populates="usages")
    equipment = relationship("UsageEquipment", back_populates="usage", cascade="all, delete-orphan")

    def release(self, when):
        """Free the room, date and slot while keeping the row as history."""
        self.released_at = when
        self.active_marker = None


class UsageEquipment(Base):
    __tablename__ = "usage_equipment"

    id = Column(Integer, primary_key=True, index=True)
    usage_id = Column(Integer, ForeignKey("usages.id", ondelete="CASCADE"), nullable=False)
    equipment_id = Column(Integer, ForeignKey("equipment.id"), nullable=False)
    quantity = Column(Integer, nullable=False, default=1)
    line_amount = Column(Integer, nullable=False, default=0)

    usage = relationship("Usage", back_populates="equipment")
    equipment = relationship("Equipment")
