from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional
from datetime import date

from hallbook.database import get_db
from hallbook.auth.dependencies import require_admin, require_hall_owner
from hallbook.pagination import total_pages
from hallbook.revenue.schemas import (
    CompleteBookingRequest, CompletionResult, HallRevenue, MonthlyRevenue,
    RefundRequest, Revenue, RevenueFilters, RevenuePage, RevenueTotals
)
from hallbook.revenue.service import RevenueService

router = APIRouter()

def revenue_filters(
    hall_owner_id: Optional[int] = Query(None, description="Owner to report on (admins only)"),
    hall_id: Optional[int] = Query(None, description="Filter by hall"),
    date_from: Optional[date] = Query(None, description="Earliest booking date"),
    date_to: Optional[date] = Query(None, description="Latest booking date")
) -> RevenueFilters:
    return RevenueFilters(hall_owner_id=hall_owner_id, hall_id=hall_id, date_from=date_from, date_to=date_to)

@router.get("/", response_model=RevenuePage)
def list_revenues(
    filters: RevenueFilters = Depends(revenue_filters),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    current_user = Depends(require_hall_owner),
    db: Session = Depends(get_db)
):
    """Revenue records of the current owner, newest first"""
    revenues, total = RevenueService(db).list_revenues(current_user, filters, page, limit)
    return RevenuePage(
        revenues=revenues,
        total=total,
        page=page,
        limit=limit,
        total_pages=total_pages(total, limit)
    )

@router.get("/total", response_model=RevenueTotals)
def get_total_revenue(
    filters: RevenueFilters = Depends(revenue_filters),
    current_user = Depends(require_hall_owner),
    db: Session = Depends(get_db)
):
    """Totals over completed revenue records"""
    return RevenueService(db).totals(current_user, filters)

@router.get("/by-hall", response_model=List[HallRevenue])
def get_revenue_by_hall(
    filters: RevenueFilters = Depends(revenue_filters),
    current_user = Depends(require_hall_owner),
    db: Session = Depends(get_db)
):
    """Revenue breakdown by hall"""
    return RevenueService(db).by_hall(current_user, filters)

@router.get("/monthly-stats", response_model=List[MonthlyRevenue])
def get_monthly_stats(
    year: Optional[int] = Query(None, ge=2000, le=2100, description="Defaults to the current year"),
    hall_owner_id: Optional[int] = Query(None, description="Owner to report on (admins only)"),
    current_user = Depends(require_hall_owner),
    db: Session = Depends(get_db)
):
    """Monthly revenue statistics for one year"""
    return RevenueService(db).monthly_stats(current_user, year, hall_owner_id)

@router.get("/booking/{booking_id}", response_model=Revenue)
def get_revenue_for_booking(
    booking_id: int,
    current_user = Depends(require_hall_owner),
    db: Session = Depends(get_db)
):
    """Revenue record posted for a booking"""
    return RevenueService(db).get_by_booking(booking_id, current_user)

@router.post("/complete-booking", response_model=CompletionResult, status_code=status.HTTP_201_CREATED)
def complete_booking(
    request: CompleteBookingRequest,
    current_user = Depends(require_hall_owner),
    db: Session = Depends(get_db)
):
    """Complete a booking and record the owner's revenue"""
    revenue = RevenueService(db).complete_booking(request.booking_id, current_user)

    if revenue is None:
        message = "Booking completed; revenue record could not be posted"
    else:
        message = "Booking completed and revenue recorded"

    return CompletionResult(
        message=message,
        booking_id=request.booking_id,
        booking_status="completed",
        revenue=Revenue.model_validate(revenue) if revenue is not None else None
    )

@router.put("/{revenue_id}/refund", response_model=Revenue)
def refund_revenue(
    revenue_id: int,
    request: RefundRequest,
    current_user = Depends(require_hall_owner),
    db: Session = Depends(get_db)
):
    """Mark a revenue record as refunded"""
    return RevenueService(db).mark_refunded(revenue_id, current_user, request.notes)

@router.delete("/{revenue_id}")
def delete_revenue(
    revenue_id: int,
    current_user = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Delete a revenue record"""
    RevenueService(db).delete_revenue(revenue_id, current_user)
    return {"message": "Revenue record deleted successfully", "deleted_id": revenue_id}
