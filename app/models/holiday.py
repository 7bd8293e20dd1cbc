from sqlalchemy import Boolean, Column, Date, DateTime, ForeignKey, Integer, String, UniqueConstraint, func
from app.db import Base


class Holiday(Base):
    __tablename__ = "holidays"

    id = Column(Integer, primary_key=True, index=True)
    date = Column(Date, unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=False)
    is_recurring = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, server_default=func.now())


class ClosedDate(Base):
    """A facility-wide (room_id is NULL) or room-specific closure."""

    __tablename__ = "closed_dates"
    __table_args__ = (
        UniqueConstraint("date", "room_id", name="uq_closed_date_room"),
    )

    id = Column(Integer, primary_key=True, index=True)
    date = Column(Date, nullable=False, index=True)
    room_id = Column(Integer, ForeignKey("rooms.id", ondelete="CASCADE"), nullable=True)
    reason = Column(String, nullable=True)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
