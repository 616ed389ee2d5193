from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional
from datetime import date

from hallbook.database import get_db
from hallbook.auth.dependencies import get_current_user, require_hall_owner
from hallbook.bookings.schemas import (
    Booking, BookingCreateRequest, BookingPage, BookingSearchFilters, BookingStatus,
    BookingStatusUpdate, BookedInterval, PaymentStatus, PaymentStatusUpdate
)
from hallbook.bookings.booking_service import BookingService
from hallbook.pagination import total_pages
from hallbook.slots.schemas import CancellationRequest, CancellationResult, FeedbackRequest, Slot

router = APIRouter()

# Booking Management Endpoints
@router.post("/", response_model=Booking, status_code=status.HTTP_201_CREATED)
def create_booking(
    request: BookingCreateRequest,
    current_user = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Book a hall for the current customer"""
    return BookingService(db).create_booking(request, current_user)

@router.post("/walk-in", response_model=Booking, status_code=status.HTTP_201_CREATED)
def create_walk_in_booking(
    request: BookingCreateRequest,
    current_user = Depends(require_hall_owner),
    db: Session = Depends(get_db)
):
    """Book an owned hall for a customer without an account"""
    return BookingService(db).create_owner_booking(request, current_user)

@router.get("/", response_model=BookingPage)
def list_bookings(
    hall_id: Optional[int] = Query(None, description="Filter by hall"),
    customer_id: Optional[int] = Query(None, description="Filter by customer"),
    booking_status: Optional[BookingStatus] = Query(None, alias="status", description="Filter by status"),
    payment_status: Optional[PaymentStatus] = Query(None, description="Filter by payment status"),
    date_from: Optional[date] = Query(None, description="Earliest booking date"),
    date_to: Optional[date] = Query(None, description="Latest booking date"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    current_user = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """List bookings visible to the current user"""

    filters = BookingSearchFilters(
        hall_id=hall_id,
        customer_id=customer_id,
        status=booking_status,
        payment_status=payment_status,
        date_from=date_from,
        date_to=date_to
    )
    bookings, total = BookingService(db).list_bookings(current_user, filters, page, limit)

    return BookingPage(
        bookings=bookings,
        total=total,
        page=page,
        limit=limit,
        total_pages=total_pages(total, limit)
    )

@router.get("/hall/{hall_id}/booked", response_model=List[BookedInterval])
def get_booked_intervals(
    hall_id: int,
    booking_date: Optional[date] = Query(None, alias="date", description="Single date; defaults to today onwards"),
    db: Session = Depends(get_db)
):
    """Taken intervals on a hall's calendar"""
    return BookingService(db).booked_intervals(hall_id, booking_date)

@router.get("/{booking_id}", response_model=Booking)
def get_booking(
    booking_id: int,
    current_user = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get booking details"""
    return BookingService(db).get_booking_for(booking_id, current_user)

@router.put("/{booking_id}/status", response_model=Booking)
def update_booking_status(
    booking_id: int,
    update: BookingStatusUpdate,
    current_user = Depends(require_hall_owner),
    db: Session = Depends(get_db)
):
    """Move a booking along its lifecycle"""
    return BookingService(db).update_status(
        booking_id, update.status, current_user, update.cancellation_reason
    )

@router.put("/{booking_id}/payment-status", response_model=Booking)
def update_payment_status(
    booking_id: int,
    update: PaymentStatusUpdate,
    current_user = Depends(require_hall_owner),
    db: Session = Depends(get_db)
):
    """Record the payment state of a booking"""
    return BookingService(db).update_payment_status(booking_id, update.payment_status, current_user)

@router.post("/{booking_id}/cancel", response_model=CancellationResult)
def cancel_booking(
    booking_id: int,
    request: CancellationRequest,
    current_user = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Cancel a booking with refund calculation"""
    return BookingService(db).cancel_booking(booking_id, request.cancellation_reason, current_user)

@router.post("/{booking_id}/checkin", response_model=Booking)
def check_in_booking(
    booking_id: int,
    current_user = Depends(require_hall_owner),
    db: Session = Depends(get_db)
):
    """Check the customer in; the booking becomes completed"""
    return BookingService(db).check_in(booking_id, current_user)

@router.post("/{booking_id}/feedback", response_model=Slot)
def submit_feedback(
    booking_id: int,
    feedback: FeedbackRequest,
    current_user = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Rate a completed booking"""
    return BookingService(db).submit_feedback(booking_id, feedback.rating, feedback.comment, current_user)

@router.delete("/{booking_id}")
def delete_booking(
    booking_id: int,
    current_user = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Permanently remove a cancelled booking"""
    BookingService(db).delete_booking(booking_id, current_user)
    return {"message": "Booking deleted successfully", "deleted_id": booking_id}
