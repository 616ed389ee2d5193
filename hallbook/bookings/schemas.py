from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime, date
from decimal import Decimal
from enum import Enum

from hallbook.slots.schemas import TIME_PATTERN

class BookingStatus(str, Enum):
    """Booking status enumeration"""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"

class PaymentStatus(str, Enum):
    """Payment status enumeration"""
    PENDING = "pending"
    PARTIAL = "partial"
    PAID = "paid"
    REFUNDED = "refunded"

# Booking Request Models
class BookingCreateRequest(BaseModel):
    """Request to book a hall for an interval on one date"""
    hall_id: int
    booking_date: date
    start_time: str = Field(..., pattern=TIME_PATTERN, examples=["10:00"])
    end_time: str = Field(..., pattern=TIME_PATTERN, examples=["13:00"])
    special_requests: Optional[str] = Field(None, max_length=1000)

class BookingStatusUpdate(BaseModel):
    status: BookingStatus
    cancellation_reason: Optional[str] = Field(None, max_length=500)

class PaymentStatusUpdate(BaseModel):
    payment_status: PaymentStatus

class BookingSearchFilters(BaseModel):
    """Filters for booking listings"""
    hall_id: Optional[int] = None
    customer_id: Optional[int] = None
    status: Optional[BookingStatus] = None
    payment_status: Optional[PaymentStatus] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None

# Booking Response Models
class Booking(BaseModel):
    """Booking details"""
    id: int
    hall_id: int
    customer_id: Optional[int] = None
    slot_id: Optional[int] = None
    booking_date: date
    start_time: str
    end_time: str
    total_hours: Decimal
    total_amount: Decimal
    platform_fee: Decimal
    owner_commission: Decimal
    status: BookingStatus
    payment_status: PaymentStatus
    special_requests: Optional[str] = None
    cancellation_reason: Optional[str] = None
    cancellation_date: Optional[datetime] = None
    refund_amount: Decimal = Decimal("0")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    
    class Config:
        from_attributes = True

class BookingPage(BaseModel):
    bookings: List[Booking]
    total: int
    page: int
    limit: int
    total_pages: int

class BookedInterval(BaseModel):
    """A taken interval on a hall's public calendar"""
    booking_date: date
    start_time: str
    end_time: str
    status: BookingStatus
    
    class Config:
        from_attributes = True
