from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime
from decimal import Decimal
from enum import Enum

class ApprovalStatus(str, Enum):
    """Hall moderation state"""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"

class HallBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1)
    address: str
    city: str
    state: str
    pincode: str
    capacity: int = Field(..., ge=1)
    price_per_hour: Decimal = Field(..., ge=0)
    amenities: List[str] = []

class HallCreate(HallBase):
    pass

class HallUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    pincode: Optional[str] = None
    capacity: Optional[int] = Field(None, ge=1)
    price_per_hour: Optional[Decimal] = Field(None, ge=0)
    amenities: Optional[List[str]] = None
    is_available: Optional[bool] = None

class Hall(HallBase):
    id: int
    owner_id: int
    is_available: bool
    approval_status: ApprovalStatus
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    
    class Config:
        from_attributes = True

class HallSearch(BaseModel):
    """Public catalog filters"""
    city: Optional[str] = None
    state: Optional[str] = None
    min_price: Optional[Decimal] = None
    max_price: Optional[Decimal] = None
    capacity: Optional[int] = None
