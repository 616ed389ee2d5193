from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional
from datetime import date, timedelta

from hallbook.database import get_db
from hallbook.auth.dependencies import get_current_user, require_admin, require_hall_owner
from hallbook.pagination import total_pages
from hallbook.slots.schemas import (
    CancellationRequest, CancellationResult, FeedbackEntry, FeedbackRequest, OwnerSlotPage, Slot,
    SlotCreateRequest, SlotDeletionResult, SlotFilters, SlotPage, SlotPaymentStatus,
    SlotRevenueStats, SlotStatus, SlotUpdateRequest
)
from hallbook.slots.service import SlotService

router = APIRouter()

def slot_filters(
    date_from: Optional[date] = Query(None, description="Earliest slot date"),
    date_to: Optional[date] = Query(None, description="Latest slot date"),
    slot_status: Optional[SlotStatus] = Query(None, alias="status", description="Filter by slot status"),
    payment_status: Optional[SlotPaymentStatus] = Query(None, description="Filter by payment status")
) -> SlotFilters:
    return SlotFilters(date_from=date_from, date_to=date_to, status=slot_status, payment_status=payment_status)

# Publishing Endpoints
@router.post("/", response_model=List[Slot], status_code=status.HTTP_201_CREATED)
def create_slots(
    request: SlotCreateRequest,
    current_user = Depends(require_hall_owner),
    db: Session = Depends(get_db)
):
    """Publish availability for a hall, optionally repeating on weekdays"""
    return SlotService(db).create_slots(request, current_user)

# Calendar Endpoints
@router.get("/hall/{hall_id}", response_model=List[Slot])
def get_hall_slots(
    hall_id: int,
    filters: SlotFilters = Depends(slot_filters),
    db: Session = Depends(get_db)
):
    """All slots of a hall in calendar order"""
    return SlotService(db).list_hall_slots(hall_id, filters)

@router.get("/hall/{hall_id}/available", response_model=List[Slot])
def get_available_slots(hall_id: int, db: Session = Depends(get_db)):
    """Open availability slots of a hall"""
    return SlotService(db).list_available_slots(hall_id)

@router.get("/hall/{hall_id}/booked", response_model=List[Slot])
def get_booked_slots(hall_id: int, db: Session = Depends(get_db)):
    """Booked and historical slots of a hall"""
    return SlotService(db).list_booked_slots(hall_id)

@router.get("/mine", response_model=SlotPage)
def get_my_slots(
    filters: SlotFilters = Depends(slot_filters),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    current_user = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Slots booked by the current customer"""
    slots, total = SlotService(db).list_customer_slots(current_user.id, filters, page, limit)
    return SlotPage(slots=slots, total=total, page=page, limit=limit, total_pages=total_pages(total, limit))

@router.get("/mine/feedback", response_model=List[FeedbackEntry])
def get_my_feedback(
    current_user = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Ratings the current customer has left"""
    return SlotService(db).customer_feedback(current_user.id)

@router.get("/owner", response_model=OwnerSlotPage)
def get_owner_slots(
    filters: SlotFilters = Depends(slot_filters),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    current_user = Depends(require_hall_owner),
    db: Session = Depends(get_db)
):
    """Slots across the current owner's halls with earnings of the paid ones"""
    slots, total, earnings = SlotService(db).list_owner_slots(current_user.id, filters, page, limit)
    return OwnerSlotPage(
        slots=slots,
        total=total,
        page=page,
        limit=limit,
        total_pages=total_pages(total, limit),
        total_earnings=earnings
    )

@router.get("/admin/all", response_model=SlotPage)
def get_all_slots(
    filters: SlotFilters = Depends(slot_filters),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    current_user = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Every slot on the platform"""
    slots, total = SlotService(db).list_all_slots(filters, page, limit)
    return SlotPage(slots=slots, total=total, page=page, limit=limit, total_pages=total_pages(total, limit))

@router.get("/admin/revenue-stats", response_model=SlotRevenueStats)
def get_slot_revenue_stats(
    start_date: Optional[date] = Query(None, description="Defaults to 30 days ago"),
    end_date: Optional[date] = Query(None, description="Defaults to today"),
    current_user = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Revenue over paid and partially paid slots"""
    end_date = end_date or date.today()
    start_date = start_date or end_date - timedelta(days=30)
    return SlotService(db).revenue_stats(start_date, end_date)

# Lifecycle Endpoints
@router.put("/{slot_id}", response_model=Slot)
def update_slot(
    slot_id: int,
    request: SlotUpdateRequest,
    current_user = Depends(require_hall_owner),
    db: Session = Depends(get_db)
):
    """Edit a slot"""
    return SlotService(db).update_slot(slot_id, request, current_user)

@router.post("/{slot_id}/cancel", response_model=CancellationResult)
def cancel_slot(
    slot_id: int,
    request: CancellationRequest,
    current_user = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Cancel a booked slot with refund calculation"""
    service = SlotService(db)
    result = service.cancel_slot(slot_id, request.cancellation_reason, current_user)
    slot = service.get_slot(slot_id)
    return CancellationResult(
        message="Slot cancelled successfully",
        booking_id=slot.booking_id,
        slot_id=slot.id,
        **result
    )

@router.post("/{slot_id}/checkin", response_model=Slot)
def check_in(
    slot_id: int,
    current_user = Depends(require_hall_owner),
    db: Session = Depends(get_db)
):
    """Check the customer in"""
    return SlotService(db).check_in(slot_id, current_user)

@router.post("/{slot_id}/no-show", response_model=Slot)
def mark_no_show(
    slot_id: int,
    current_user = Depends(require_hall_owner),
    db: Session = Depends(get_db)
):
    """Record that the customer never arrived"""
    return SlotService(db).mark_no_show(slot_id, current_user)

@router.post("/{slot_id}/feedback", response_model=Slot)
def submit_feedback(
    slot_id: int,
    feedback: FeedbackRequest,
    current_user = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Rate a completed slot"""
    return SlotService(db).submit_feedback(slot_id, feedback.rating, feedback.comment, current_user)

@router.delete("/{slot_id}", response_model=SlotDeletionResult)
def delete_slot(
    slot_id: int,
    current_user = Depends(require_hall_owner),
    db: Session = Depends(get_db)
):
    """Remove a slot; an active booking on it is cancelled first"""
    return SlotService(db).delete_slot(slot_id, current_user)
