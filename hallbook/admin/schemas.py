from pydantic import BaseModel
from typing import Dict, List, Optional
from decimal import Decimal

from hallbook.auth.schemas import User, UserRole

class PlatformStats(BaseModel):
    """Headline numbers for the admin dashboard"""
    total_users: int
    total_customers: int
    total_hall_owners: int
    blocked_users: int
    total_halls: int
    halls_by_approval: Dict[str, int]
    total_bookings: int
    bookings_by_status: Dict[str, int]
    total_slots: int
    total_revenue: Decimal
    total_platform_fees: Decimal

class AdminUserUpdate(BaseModel):
    """Moderation changes an admin may apply to an account"""
    role: Optional[UserRole] = None
    is_blocked: Optional[bool] = None
    is_verified: Optional[bool] = None

class UserPage(BaseModel):
    users: List[User]
    total: int
    page: int
    limit: int
    total_pages: int
