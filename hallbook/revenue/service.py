import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Callable, List, Optional, Tuple

from sqlalchemy import extract, func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from hallbook.bookings import policy
from hallbook.exceptions import ForbiddenError, NotFoundError, PolicyViolationError
from hallbook.halls.service import HallService
from hallbook.models import Booking, OwnerRevenue, User
from hallbook.pagination import paginate
from hallbook.revenue.schemas import HallRevenue, MonthlyRevenue, RevenueFilters, RevenueStatus, RevenueTotals

logger = logging.getLogger(__name__)

class RevenueService:
    """Service for completing bookings and reading the owner revenue ledger"""

    def __init__(self, db: Session, clock: Optional[Callable[[], datetime]] = None):
        self.db = db
        self.clock = clock or datetime.now

    # ================================
    # Completion
    # ================================
    def complete_booking(self, booking_id: int, actor: User) -> Optional[OwnerRevenue]:
        """
        Mark a booking and its slot completed, then post the revenue record.

        The status change is committed on its own before the revenue record
        is written, so a failed posting never undoes the completion. Calling
        this again for a completed booking only posts the record if it is
        still missing, and returns the existing one otherwise.
        """
        booking = self.db.query(Booking).filter(Booking.id == booking_id).first()
        if not booking:
            raise NotFoundError("Booking not found")

        HallService.ensure_manager(booking.hall, actor)

        if booking.status != "completed":
            if booking.status == "cancelled":
                raise PolicyViolationError("Cancelled bookings cannot be completed")
            policy.ensure_transition(booking.status, "completed", policy.BOOKING_TRANSITIONS, "Booking")

            slot = booking.slot
            if slot is not None and slot.status != "completed":
                policy.ensure_transition(slot.status, "completed", policy.SLOT_TRANSITIONS)

            booking.status = "completed"
            if slot is not None:
                slot.status = "completed"

            self.db.commit()
            self.db.refresh(booking)
            logger.info("Booking %s completed by user %s", booking.id, actor.id)

        return self.post_revenue(booking)

    def post_revenue(self, booking: Booking) -> Optional[OwnerRevenue]:
        """Write the revenue snapshot for a completed booking; failures are logged, not raised"""

        existing = self._find_by_booking(booking.id)
        if existing:
            return existing

        revenue = self._snapshot(booking)
        try:
            self.db.add(revenue)
            self.db.commit()
        except IntegrityError:
            # Lost the race against a concurrent completion of the same booking
            self.db.rollback()
            return self._find_by_booking(booking.id)
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception("Failed to post revenue for booking %s", booking.id)
            return None

        self.db.refresh(revenue)
        logger.info("Revenue %s posted for booking %s (%s)", revenue.id, booking.id, revenue.total_amount)
        return revenue

    def _snapshot(self, booking: Booking) -> OwnerRevenue:
        hall = booking.hall
        customer = booking.customer
        now = self.clock()
        platform_fee, owner_commission = policy.split_amount(booking.total_amount)
        customer_name = customer.name if customer else "Walk-in customer"

        return OwnerRevenue(
            hall_owner_id=hall.owner_id,
            hall_id=hall.id,
            hall_name=hall.name,
            customer_id=customer.id if customer else None,
            customer_name=customer_name,
            customer_email=customer.email if customer else None,
            customer_phone=(customer.phone if customer else None) or "N/A",
            booking_id=booking.id,
            date=booking.booking_date,
            start_time=booking.start_time,
            end_time=booking.end_time,
            duration_hours=booking.total_hours,
            total_amount=booking.total_amount,
            owner_commission=owner_commission,
            platform_fee=platform_fee,
            status=RevenueStatus.COMPLETED.value,
            completed_at=now,
            hall_city=hall.city,
            hall_state=hall.state,
            hall_address=hall.address,
            special_requests=booking.special_requests,
            payment_method="online",
            transaction_id=f"TXN_{booking.id}_{int(now.timestamp() * 1000)}",
            notes=(
                f"Revenue recorded on {now:%d/%m/%Y} at {now:%H:%M}. "
                f"Customer: {customer_name}. Hall: {hall.name} at {hall.city}, {hall.state}. "
                f"Duration: {booking.total_hours} hours. "
                f"Special requests: {booking.special_requests or 'None'}."
            ),
        )

    # ================================
    # Ledger queries
    # ================================
    def _find_by_booking(self, booking_id: int) -> Optional[OwnerRevenue]:
        return self.db.query(OwnerRevenue).filter(OwnerRevenue.booking_id == booking_id).first()

    def _scoped(self, query, actor: User, filters: RevenueFilters):
        """Owners only ever see their own rows; admins may narrow to one owner"""
        if actor.role == "admin":
            if filters.hall_owner_id:
                query = query.filter(OwnerRevenue.hall_owner_id == filters.hall_owner_id)
        else:
            query = query.filter(OwnerRevenue.hall_owner_id == actor.id)

        if filters.hall_id:
            query = query.filter(OwnerRevenue.hall_id == filters.hall_id)
        if filters.date_from:
            query = query.filter(OwnerRevenue.date >= filters.date_from)
        if filters.date_to:
            query = query.filter(OwnerRevenue.date <= filters.date_to)
        return query

    def list_revenues(self, actor: User, filters: RevenueFilters, page: int = 1, limit: int = 10) -> Tuple[List[OwnerRevenue], int]:
        query = self._scoped(self.db.query(OwnerRevenue), actor, filters)
        query = query.order_by(OwnerRevenue.created_at.desc(), OwnerRevenue.id.desc())
        return paginate(query, page, limit)

    def totals(self, actor: User, filters: RevenueFilters) -> RevenueTotals:
        query = self.db.query(
            func.coalesce(func.sum(OwnerRevenue.total_amount), 0),
            func.count(OwnerRevenue.id),
            func.coalesce(func.sum(OwnerRevenue.platform_fee), 0),
            func.coalesce(func.sum(OwnerRevenue.owner_commission), 0),
        ).filter(OwnerRevenue.status == RevenueStatus.COMPLETED.value)

        total_revenue, total_bookings, total_fees, total_commission = self._scoped(query, actor, filters).one()

        return RevenueTotals(
            total_revenue=Decimal(str(total_revenue)),
            total_bookings=total_bookings,
            total_platform_fees=Decimal(str(total_fees)),
            total_owner_commission=Decimal(str(total_commission)),
        )

    def by_hall(self, actor: User, filters: RevenueFilters) -> List[HallRevenue]:
        """Completed revenue grouped per hall, highest earner first"""

        revenue_sum = func.sum(OwnerRevenue.total_amount)
        query = self.db.query(
            OwnerRevenue.hall_id,
            func.max(OwnerRevenue.hall_name),
            revenue_sum,
            func.count(OwnerRevenue.id),
        ).filter(OwnerRevenue.status == RevenueStatus.COMPLETED.value)

        rows = (
            self._scoped(query, actor, filters)
            .group_by(OwnerRevenue.hall_id)
            .order_by(revenue_sum.desc())
            .all()
        )

        return [
            HallRevenue(hall_id=hall_id, hall_name=hall_name, total_revenue=Decimal(str(revenue)), total_bookings=count)
            for hall_id, hall_name, revenue, count in rows
        ]

    def monthly_stats(self, actor: User, year: Optional[int] = None, hall_owner_id: Optional[int] = None) -> List[MonthlyRevenue]:
        year = year or self.clock().year
        filters = RevenueFilters(
            hall_owner_id=hall_owner_id,
            date_from=date(year, 1, 1),
            date_to=date(year, 12, 31),
        )

        month = extract("month", OwnerRevenue.date)
        query = self.db.query(
            month,
            func.sum(OwnerRevenue.total_amount),
            func.count(OwnerRevenue.id),
        ).filter(OwnerRevenue.status == RevenueStatus.COMPLETED.value)

        rows = self._scoped(query, actor, filters).group_by(month).order_by(month).all()

        return [
            MonthlyRevenue(year=year, month=int(row_month), total_revenue=Decimal(str(revenue)), total_bookings=count)
            for row_month, revenue, count in rows
        ]

    def get_by_booking(self, booking_id: int, actor: User) -> OwnerRevenue:
        revenue = self._find_by_booking(booking_id)
        if not revenue:
            raise NotFoundError("Revenue record not found")
        self._ensure_visible(revenue, actor)
        return revenue

    def get_revenue(self, revenue_id: int) -> OwnerRevenue:
        revenue = self.db.query(OwnerRevenue).filter(OwnerRevenue.id == revenue_id).first()
        if not revenue:
            raise NotFoundError("Revenue record not found")
        return revenue

    @staticmethod
    def _ensure_visible(revenue: OwnerRevenue, actor: User):
        if actor.role != "admin" and revenue.hall_owner_id != actor.id:
            raise ForbiddenError("Not authorized to access this revenue record")

    # ================================
    # Corrections
    # ================================
    def mark_refunded(self, revenue_id: int, actor: User, notes: Optional[str] = None) -> OwnerRevenue:
        """Flip a revenue record to refunded so it drops out of the totals"""

        revenue = self.get_revenue(revenue_id)
        self._ensure_visible(revenue, actor)

        if revenue.status == RevenueStatus.REFUNDED.value:
            raise PolicyViolationError("Revenue record is already refunded")

        revenue.status = RevenueStatus.REFUNDED.value
        if notes:
            revenue.notes = f"{revenue.notes}\n{notes}" if revenue.notes else notes

        self.db.commit()
        self.db.refresh(revenue)
        logger.info("Revenue %s marked refunded by user %s", revenue.id, actor.id)
        return revenue

    def delete_revenue(self, revenue_id: int, actor: User):
        if actor.role != "admin":
            raise ForbiddenError("Only admins can delete revenue records")

        revenue = self.get_revenue(revenue_id)
        self.db.delete(revenue)
        self.db.commit()
        logger.info("Revenue %s deleted by admin %s", revenue_id, actor.id)
