from pydantic import BaseModel, Field, validator
from typing import List, Optional, Literal, Dict, Any
from datetime import datetime, date
from decimal import Decimal
from enum import Enum

TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"

WEEKDAYS = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]

class SlotStatus(str, Enum):
    """Slot lifecycle state"""
    AVAILABLE = "available"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"

class SlotPaymentStatus(str, Enum):
    """Slot payment state; not_applicable only while the slot is open"""
    NOT_APPLICABLE = "not_applicable"
    PENDING = "pending"
    PARTIAL = "partial"
    PAID = "paid"
    REFUNDED = "refunded"

class SlotOrigin(str, Enum):
    PUBLISHED = "published"
    DIRECT = "direct"

class RecurrencePattern(BaseModel):
    """Repeat a published slot on the listed weekdays until end_date"""
    frequency: Literal["daily", "weekly", "monthly"] = "weekly"
    end_date: date
    days_of_week: List[str]
    
    @validator('days_of_week')
    def validate_days(cls, v):
        if not v:
            raise ValueError('At least one day of the week is required')
        normalized = [day.strip().capitalize() for day in v]
        unknown = [day for day in normalized if day not in WEEKDAYS]
        if unknown:
            raise ValueError(f"Unknown weekday(s): {', '.join(unknown)}")
        return normalized

class SlotCreateRequest(BaseModel):
    """Publish one availability slot, or a recurring series of them"""
    hall_id: int
    slot_date: date
    start_time: str = Field(..., pattern=TIME_PATTERN)
    end_time: str = Field(..., pattern=TIME_PATTERN)
    recurrence: Optional[RecurrencePattern] = None
    special_requirements: Optional[str] = None
    notes: Optional[str] = None

class SlotUpdateRequest(BaseModel):
    slot_date: Optional[date] = None
    start_time: Optional[str] = Field(None, pattern=TIME_PATTERN)
    end_time: Optional[str] = Field(None, pattern=TIME_PATTERN)
    special_requirements: Optional[str] = None
    notes: Optional[str] = None

class CancellationRequest(BaseModel):
    cancellation_reason: str = Field(..., min_length=1, max_length=500)

class FeedbackRequest(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = Field(None, max_length=1000)

class SlotFilters(BaseModel):
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    status: Optional[SlotStatus] = None
    payment_status: Optional[SlotPaymentStatus] = None

class Slot(BaseModel):
    """A row of the slot ledger"""
    id: int
    hall_id: int
    customer_id: Optional[int] = None
    booking_id: Optional[int] = None
    slot_date: date
    start_time: str
    end_time: str
    duration_hours: Decimal
    total_amount: Decimal
    platform_fee: Decimal
    owner_commission: Decimal
    payment_status: SlotPaymentStatus
    status: SlotStatus
    is_availability_slot: bool
    origin: SlotOrigin
    special_requirements: Optional[str] = None
    notes: Optional[str] = None
    actual_check_in: Optional[datetime] = None
    feedback_rating: Optional[int] = None
    feedback_comment: Optional[str] = None
    cancellation_reason: Optional[str] = None
    cancellation_date: Optional[datetime] = None
    refund_amount: Decimal = Decimal("0")
    is_recurring: bool = False
    recurring_pattern: Optional[Dict[str, Any]] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    
    class Config:
        from_attributes = True

class SlotPage(BaseModel):
    slots: List[Slot]
    total: int
    page: int
    limit: int
    total_pages: int

class OwnerSlotPage(SlotPage):
    total_earnings: Decimal

class CancellationResult(BaseModel):
    message: str
    booking_id: Optional[int] = None
    slot_id: Optional[int] = None
    refund_amount: Decimal
    refund_fraction: Decimal

class SlotDeletionResult(BaseModel):
    message: str
    deleted_id: int
    type: Literal["availability_slot", "booking"]

class FeedbackEntry(BaseModel):
    """A rating left on a completed slot"""
    slot_id: int
    booking_id: Optional[int] = None
    hall_id: int
    hall_name: str
    customer_name: Optional[str] = None
    slot_date: date
    rating: int
    comment: Optional[str] = None

class HallFeedback(BaseModel):
    hall_id: int
    average_rating: float
    total_reviews: int
    feedback: List[FeedbackEntry]

class SlotRevenueSummary(BaseModel):
    total_revenue: Decimal = Decimal("0")
    total_paid: Decimal = Decimal("0")
    total_commission: Decimal = Decimal("0")
    total_slots: int = 0
    average_amount: Decimal = Decimal("0")

class MonthlySlotRevenue(BaseModel):
    year: int
    month: int
    revenue: Decimal
    count: int

class SlotRevenueStats(BaseModel):
    summary: SlotRevenueSummary
    monthly: List[MonthlySlotRevenue]
