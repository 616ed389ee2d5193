from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime, date
from decimal import Decimal
from enum import Enum

class RevenueStatus(str, Enum):
    """Revenue record status enumeration"""
    COMPLETED = "completed"
    REFUNDED = "refunded"

# Revenue Request Models
class CompleteBookingRequest(BaseModel):
    booking_id: int

class RefundRequest(BaseModel):
    notes: Optional[str] = Field(None, max_length=1000)

class RevenueFilters(BaseModel):
    """Filters shared by the revenue listings and aggregates"""
    hall_owner_id: Optional[int] = None
    hall_id: Optional[int] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None

# Revenue Response Models
class Revenue(BaseModel):
    """Snapshot of a completed booking as earned by the hall owner"""
    id: int
    hall_owner_id: int
    hall_id: Optional[int] = None
    hall_name: str
    customer_id: Optional[int] = None
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    customer_phone: str
    booking_id: int
    date: date
    start_time: str
    end_time: str
    duration_hours: Optional[Decimal] = None
    total_amount: Decimal
    owner_commission: Decimal
    platform_fee: Decimal
    status: RevenueStatus
    completed_at: datetime
    hall_city: Optional[str] = None
    hall_state: Optional[str] = None
    hall_address: Optional[str] = None
    special_requests: Optional[str] = None
    payment_method: Optional[str] = None
    transaction_id: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class RevenuePage(BaseModel):
    revenues: List[Revenue]
    total: int
    page: int
    limit: int
    total_pages: int

class RevenueTotals(BaseModel):
    total_revenue: Decimal = Decimal("0")
    total_bookings: int = 0
    total_platform_fees: Decimal = Decimal("0")
    total_owner_commission: Decimal = Decimal("0")

class HallRevenue(BaseModel):
    hall_id: Optional[int] = None
    hall_name: str
    total_revenue: Decimal
    total_bookings: int

class MonthlyRevenue(BaseModel):
    year: int
    month: int
    total_revenue: Decimal
    total_bookings: int

class CompletionResult(BaseModel):
    """Outcome of completing a booking; ``revenue`` is empty if posting failed"""
    message: str
    booking_id: int
    booking_status: str
    revenue: Optional[Revenue] = None
