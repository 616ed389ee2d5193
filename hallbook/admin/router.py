from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional
from datetime import date

from hallbook.database import get_db
from hallbook.auth.dependencies import require_admin
from hallbook.auth.schemas import User, UserRole
from hallbook.admin.schemas import AdminUserUpdate, PlatformStats, UserPage
from hallbook.admin.admin_service import AdminManagementService
from hallbook.bookings.booking_service import BookingService
from hallbook.bookings.schemas import BookingPage, BookingSearchFilters, BookingStatus
from hallbook.halls.schemas import ApprovalStatus, Hall
from hallbook.halls.service import HallService
from hallbook.pagination import total_pages

router = APIRouter()

# Dashboard
@router.get("/stats", response_model=PlatformStats)
def get_platform_stats(
    admin_user = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Platform-wide counts and revenue"""
    return AdminManagementService(db).get_platform_stats()

# User Management
@router.get("/users", response_model=UserPage)
def list_users(
    role: Optional[UserRole] = Query(None, description="Filter by role"),
    blocked: Optional[bool] = Query(None, description="Filter by blocked state"),
    search: Optional[str] = Query(None, description="Match on name or email"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    admin_user = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """List accounts"""
    users, total = AdminManagementService(db).list_users(role, blocked, search, page, limit)
    return UserPage(users=users, total=total, page=page, limit=limit, total_pages=total_pages(total, limit))

@router.put("/users/{user_id}", response_model=User)
def update_user(
    user_id: int,
    update: AdminUserUpdate,
    admin_user = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Block, unblock, verify or change the role of an account"""
    return AdminManagementService(db).update_user(user_id, update, admin_user)

@router.delete("/users/{user_id}")
def delete_user(
    user_id: int,
    admin_user = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Delete an account"""
    AdminManagementService(db).delete_user(user_id, admin_user)
    return {"message": "User deleted successfully", "deleted_id": user_id}

# Hall Moderation
@router.get("/halls", response_model=List[Hall])
def list_halls(
    approval_status: Optional[ApprovalStatus] = Query(None, description="Filter by approval state"),
    admin_user = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """All halls, optionally by approval state"""
    return AdminManagementService(db).list_halls(approval_status)

@router.put("/halls/{hall_id}/approve", response_model=Hall)
def approve_hall(
    hall_id: int,
    admin_user = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Approve a hall for the public catalog"""
    return HallService.set_approval(db, hall_id, ApprovalStatus.APPROVED)

@router.put("/halls/{hall_id}/reject", response_model=Hall)
def reject_hall(
    hall_id: int,
    admin_user = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Reject a hall listing"""
    return HallService.set_approval(db, hall_id, ApprovalStatus.REJECTED)

# Bookings
@router.get("/bookings", response_model=BookingPage)
def list_bookings(
    hall_id: Optional[int] = Query(None),
    customer_id: Optional[int] = Query(None),
    booking_status: Optional[BookingStatus] = Query(None, alias="status"),
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    admin_user = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Every booking on the platform"""
    filters = BookingSearchFilters(
        hall_id=hall_id,
        customer_id=customer_id,
        status=booking_status,
        date_from=date_from,
        date_to=date_to
    )
    bookings, total = BookingService(db).list_bookings(admin_user, filters, page, limit)
    return BookingPage(bookings=bookings, total=total, page=page, limit=limit, total_pages=total_pages(total, limit))
