import logging
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from hallbook.exceptions import ForbiddenError, NotFoundError
from hallbook.models import Hall, User
from hallbook.halls.schemas import HallCreate, HallUpdate, HallSearch, ApprovalStatus

logger = logging.getLogger(__name__)

class HallService:
    @staticmethod
    def get_hall(db: Session, hall_id: int) -> Hall:
        """Resolve a hall or raise NotFoundError"""
        hall = db.query(Hall).filter(Hall.id == hall_id).first()
        if not hall:
            raise NotFoundError("Hall not found")
        return hall
    
    @staticmethod
    def ensure_manager(hall: Hall, user: User):
        """Only the owning hall owner or an admin may manage a hall"""
        if user.role != "admin" and hall.owner_id != user.id:
            raise ForbiddenError("Not authorized to manage this hall")
    
    @staticmethod
    def search_halls(db: Session, search: HallSearch, limit: Optional[int] = None) -> List[Hall]:
        """Approved, available halls matching the catalog filters, newest first"""
        query = db.query(Hall).filter(
            Hall.approval_status == ApprovalStatus.APPROVED.value,
            Hall.is_available.is_(True),
        )
        
        if search.city:
            query = query.filter(func.lower(Hall.city) == search.city.lower())
        if search.state:
            query = query.filter(func.lower(Hall.state) == search.state.lower())
        if search.capacity:
            query = query.filter(Hall.capacity >= search.capacity)
        if search.min_price is not None:
            query = query.filter(Hall.price_per_hour >= search.min_price)
        if search.max_price is not None:
            query = query.filter(Hall.price_per_hour <= search.max_price)
        
        query = query.order_by(Hall.created_at.desc(), Hall.id.desc())
        if limit:
            query = query.limit(limit)
        return query.all()
    
    @staticmethod
    def get_owner_halls(db: Session, owner_id: int) -> List[Hall]:
        return db.query(Hall).filter(Hall.owner_id == owner_id).order_by(Hall.id.desc()).all()
    
    @staticmethod
    def owned_hall_ids(db: Session, owner_id: int) -> List[int]:
        return [row.id for row in db.query(Hall.id).filter(Hall.owner_id == owner_id).all()]
    
    @staticmethod
    def create_hall(db: Session, hall: HallCreate, owner: User) -> Hall:
        """List a new hall; it stays pending until an admin approves it"""
        db_hall = Hall(
            owner_id=owner.id,
            approval_status=ApprovalStatus.APPROVED.value if owner.role == "admin" else ApprovalStatus.PENDING.value,
            **hall.model_dump()
        )
        db.add(db_hall)
        db.commit()
        db.refresh(db_hall)
        logger.info("Hall %s listed by user %s", db_hall.id, owner.id)
        return db_hall
    
    @staticmethod
    def update_hall(db: Session, hall_id: int, hall_update: HallUpdate, user: User) -> Hall:
        db_hall = HallService.get_hall(db, hall_id)
        HallService.ensure_manager(db_hall, user)
        
        for field, value in hall_update.model_dump(exclude_unset=True).items():
            setattr(db_hall, field, value)
        
        db.commit()
        db.refresh(db_hall)
        return db_hall
    
    @staticmethod
    def delete_hall(db: Session, hall_id: int, user: User):
        db_hall = HallService.get_hall(db, hall_id)
        HallService.ensure_manager(db_hall, user)
        db.delete(db_hall)
        db.commit()
        logger.info("Hall %s deleted by user %s", hall_id, user.id)
    
    @staticmethod
    def set_approval(db: Session, hall_id: int, approval_status: ApprovalStatus) -> Hall:
        db_hall = HallService.get_hall(db, hall_id)
        db_hall.approval_status = approval_status.value
        db.commit()
        db.refresh(db_hall)
        logger.info("Hall %s marked %s", hall_id, approval_status.value)
        return db_hall
