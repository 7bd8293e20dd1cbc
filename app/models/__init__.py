from .user import User, UserRole
from .room import Room, TimeSlot, RoomTimeSlotPrice, Equipment, EquipmentPriceType
from .holiday import Holiday, ClosedDate
from .application import Application, ApplicationStatus, PaymentStatus, Usage, UsageEquipment
from .notification import NotificationLog, NotificationStatus


__all__ = [
    "User", "UserRole", "Room", "TimeSlot", "RoomTimeSlotPrice", "Equipment", "EquipmentPriceType",
    "Holiday", "ClosedDate", "Application", "ApplicationStatus", "PaymentStatus", "Usage",
    "UsageEquipment", "NotificationLog", "NotificationStatus",
]
