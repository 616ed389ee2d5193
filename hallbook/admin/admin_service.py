import logging
from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from hallbook.admin.schemas import AdminUserUpdate, PlatformStats
from hallbook.auth.schemas import UserRole
from hallbook.exceptions import NotFoundError, PolicyViolationError
from hallbook.halls.schemas import ApprovalStatus
from hallbook.models import Booking, Hall, HallSlot, OwnerRevenue, User
from hallbook.pagination import paginate

logger = logging.getLogger(__name__)

class AdminManagementService:
    """Service for administrative management operations"""

    def __init__(self, db: Session):
        self.db = db

    def _count_by(self, column) -> dict:
        return {value: count for value, count in self.db.query(column, func.count()).group_by(column).all()}

    def get_platform_stats(self) -> PlatformStats:
        users_by_role = self._count_by(User.role)
        revenue, fees = self.db.query(
            func.coalesce(func.sum(OwnerRevenue.total_amount), 0),
            func.coalesce(func.sum(OwnerRevenue.platform_fee), 0),
        ).filter(OwnerRevenue.status == "completed").one()

        return PlatformStats(
            total_users=sum(users_by_role.values()),
            total_customers=users_by_role.get(UserRole.USER.value, 0),
            total_hall_owners=users_by_role.get(UserRole.HALL_OWNER.value, 0),
            blocked_users=self.db.query(User).filter(User.is_blocked.is_(True)).count(),
            total_halls=self.db.query(Hall).count(),
            halls_by_approval=self._count_by(Hall.approval_status),
            total_bookings=self.db.query(Booking).count(),
            bookings_by_status=self._count_by(Booking.status),
            total_slots=self.db.query(HallSlot).count(),
            total_revenue=Decimal(str(revenue)),
            total_platform_fees=Decimal(str(fees)),
        )

    # ================================
    # Accounts
    # ================================
    def list_users(self, role: Optional[UserRole] = None, blocked: Optional[bool] = None,
                   search: Optional[str] = None, page: int = 1, limit: int = 20) -> Tuple[List[User], int]:
        query = self.db.query(User)

        if role:
            query = query.filter(User.role == role.value)
        if blocked is not None:
            query = query.filter(User.is_blocked.is_(blocked))
        if search:
            pattern = f"%{search.lower()}%"
            query = query.filter(or_(func.lower(User.name).like(pattern), func.lower(User.email).like(pattern)))

        query = query.order_by(User.created_at.desc(), User.id.desc())
        return paginate(query, page, limit)

    def get_user(self, user_id: int) -> User:
        user = self.db.query(User).filter(User.id == user_id).first()
        if not user:
            raise NotFoundError("User not found")
        return user

    def update_user(self, user_id: int, update: AdminUserUpdate, admin: User) -> User:
        user = self.get_user(user_id)

        if user.id == admin.id and (update.is_blocked or (update.role and update.role != UserRole.ADMIN)):
            raise PolicyViolationError("Admins cannot block or demote their own account")

        changes = update.model_dump(exclude_unset=True)
        for field, value in changes.items():
            if value is None:
                continue
            setattr(user, field, value.value if isinstance(value, UserRole) else value)

        self.db.commit()
        self.db.refresh(user)
        logger.info("Admin %s updated user %s: %s", admin.id, user.id, changes)
        return user

    def delete_user(self, user_id: int, admin: User):
        """Delete an account with its halls; past bookings keep their rows without the customer link"""

        user = self.get_user(user_id)

        if user.id == admin.id:
            raise PolicyViolationError("Admins cannot delete their own account")

        if self.db.query(OwnerRevenue).filter(OwnerRevenue.hall_owner_id == user.id).first():
            raise PolicyViolationError("User has revenue records and cannot be deleted; block the account instead")

        self.db.delete(user)
        self.db.commit()
        logger.info("Admin %s deleted user %s", admin.id, user_id)

    # ================================
    # Halls
    # ================================
    def list_halls(self, approval_status: Optional[ApprovalStatus] = None) -> List[Hall]:
        query = self.db.query(Hall)
        if approval_status:
            query = query.filter(Hall.approval_status == approval_status.value)
        return query.order_by(Hall.created_at.desc(), Hall.id.desc()).all()
