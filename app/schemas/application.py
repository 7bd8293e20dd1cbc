import datetime as dt
from pydantic import BaseModel, EmailStr, Field
from typing import List, Optional
from app.models.application import ApplicationStatus, PaymentStatus


class EquipmentUsageIn(BaseModel):
    equipment_id: int
    quantity: int = 1


class ApplicationCreate(BaseModel):
    room_id: int
    time_slot_id: int
    dates: List[dt.date]
    applicant_representative: str = Field(..., min_length=1)
    applicant_phone: str = Field(..., min_length=1)
    applicant_email: EmailStr
    applicant_group_name: Optional[str] = None
    event_name: str = Field(..., min_length=1)
    expected_attendees: Optional[int] = Field(None, ge=0)
    entrance_fee_amount: int = Field(0, ge=0)
    ac_hours: float = Field(0, ge=0)
    equipment: List[EquipmentUsageIn] = []
    remarks: Optional[str] = None


class UsageEquipmentResponse(BaseModel):
    equipment_id: int
    quantity: int
    line_amount: int

    class Config:
        orm_mode = True


class UsageResponse(BaseModel):
    id: int
    room_id: int
    time_slot_id: int
    usage_date: dt.date
    planned_ac_hours: float
    ac_hours: Optional[float] = None
    actual_ac_charge: Optional[int] = None
    actual_start_time: Optional[dt.time] = None
    actual_end_time: Optional[dt.time] = None
    remarks: Optional[str] = None
    room_charge: int
    equipment_charge: int
    ac_charge: int
    subtotal_amount: int
    released_at: Optional[dt.datetime] = None
    equipment: List[UsageEquipmentResponse] = []

    class Config:
        orm_mode = True


class ApplicationResponse(BaseModel):
    id: int
    user_id: Optional[int] = None
    time_slot_id: int
    applicant_representative: str
    applicant_phone: str
    applicant_email: str
    applicant_group_name: Optional[str] = None
    event_name: str
    expected_attendees: Optional[int] = None
    entrance_fee_amount: int
    ticket_multiplier: float
    remarks: Optional[str] = None
    status: ApplicationStatus
    payment_status: PaymentStatus
    total_amount: int
    cancellation_fee: int
    refund_amount: int
    created_at: Optional[dt.datetime] = None
    approved_at: Optional[dt.datetime] = None
    paid_at: Optional[dt.datetime] = None
    cancelled_at: Optional[dt.datetime] = None
    usages: List[UsageResponse] = []

    class Config:
        orm_mode = True


class UsageChargeResponse(BaseModel):
    usage_date: dt.date
    room_charge: int
    equipment_charge: int
    ac_charge: int
    subtotal: int


class PriceQuoteResponse(BaseModel):
    room_id: int
    time_slot_id: int
    ticket_multiplier: float
    lines: List[UsageChargeResponse]
    total: int


class UsageUpdate(BaseModel):
    usage_date: Optional[dt.date] = None
    actual_start_time: Optional[dt.time] = None
    actual_end_time: Optional[dt.time] = None
    remarks: Optional[str] = None
    ac_hours: Optional[float] = Field(None, ge=0)


class TransitionRequest(BaseModel):
    reason: Optional[str] = None


class PaymentRequest(BaseModel):
    payment_reference: Optional[str] = None


class CancellationResponse(BaseModel):
    application_id: int
    total_amount: int
    days_before: int
    fee_percentage: int
    cancellation_fee: int
    refund_amount: int
    status: ApplicationStatus
    payment_status: PaymentStatus

    class Config:
        orm_mode = True
