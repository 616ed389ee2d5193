from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional
from decimal import Decimal
from hallbook.database import get_db
from hallbook.auth.dependencies import require_hall_owner
from hallbook.halls.schemas import Hall, HallCreate, HallUpdate, HallSearch
from hallbook.halls.service import HallService
from hallbook.slots.schemas import HallFeedback
from hallbook.slots.service import SlotService

router = APIRouter()

@router.get("/", response_model=List[Hall])
def list_halls(
    city: Optional[str] = Query(None, description="Filter by city"),
    state: Optional[str] = Query(None, description="Filter by state"),
    min_price: Optional[Decimal] = Query(None, ge=0, description="Minimum price per hour"),
    max_price: Optional[Decimal] = Query(None, ge=0, description="Maximum price per hour"),
    capacity: Optional[int] = Query(None, ge=1, description="Minimum capacity"),
    limit: Optional[int] = Query(None, ge=1, le=100, description="Maximum results"),
    db: Session = Depends(get_db)
):
    """Browse approved and available halls"""
    search = HallSearch(
        city=city,
        state=state,
        min_price=min_price,
        max_price=max_price,
        capacity=capacity
    )
    return HallService.search_halls(db, search, limit=limit)

@router.get("/my-halls", response_model=List[Hall])
def get_my_halls(
    current_user = Depends(require_hall_owner),
    db: Session = Depends(get_db)
):
    """Halls owned by the current user"""
    return HallService.get_owner_halls(db, current_user.id)

@router.get("/{hall_id}", response_model=Hall)
def get_hall(hall_id: int, db: Session = Depends(get_db)):
    """Get hall details"""
    return HallService.get_hall(db, hall_id)

@router.get("/{hall_id}/feedback", response_model=HallFeedback)
def get_hall_feedback(hall_id: int, db: Session = Depends(get_db)):
    """Customer ratings of a hall with the average"""
    return SlotService(db).hall_feedback(hall_id)

@router.post("/", response_model=Hall, status_code=status.HTTP_201_CREATED)
def create_hall(
    hall: HallCreate,
    current_user = Depends(require_hall_owner),
    db: Session = Depends(get_db)
):
    """List a new hall"""
    return HallService.create_hall(db, hall, current_user)

@router.put("/{hall_id}", response_model=Hall)
def update_hall(
    hall_id: int,
    hall_update: HallUpdate,
    current_user = Depends(require_hall_owner),
    db: Session = Depends(get_db)
):
    """Update a hall listing"""
    return HallService.update_hall(db, hall_id, hall_update, current_user)

@router.delete("/{hall_id}")
def delete_hall(
    hall_id: int,
    current_user = Depends(require_hall_owner),
    db: Session = Depends(get_db)
):
    """Remove a hall listing together with its slots and bookings"""
    HallService.delete_hall(db, hall_id, current_user)
    return {"message": "Hall deleted successfully", "deleted_id": hall_id}
