import logging
from collections import defaultdict
from datetime import date, datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Callable, Dict, List, Optional, Tuple

from sqlalchemy import update
from sqlalchemy.orm import Session

from hallbook.bookings import policy
from hallbook.config import settings
from hallbook.exceptions import ConflictError, ForbiddenError, NotFoundError, PolicyViolationError, ValidationError
from hallbook.halls.service import HallService
from hallbook.models import Booking, Hall, HallSlot, User
from hallbook.pagination import paginate
from hallbook.slots.schemas import (
    FeedbackEntry, HallFeedback, SlotCreateRequest, SlotUpdateRequest, SlotFilters,
    SlotRevenueStats, SlotRevenueSummary, MonthlySlotRevenue, WEEKDAYS
)

logger = logging.getLogger(__name__)

ZERO = Decimal("0")

class SlotService:
    """Service for the per-hall slot ledger: publishing, lifecycle and queries"""

    def __init__(self, db: Session, clock: Optional[Callable[[], datetime]] = None):
        self.db = db
        self.clock = clock or datetime.now

    # ================================
    # Publishing
    # ================================
    def create_slots(self, request: SlotCreateRequest, actor: User) -> List[HallSlot]:
        """Publish an availability slot, or one per matching day of a recurrence"""

        hall = HallService.get_hall(self.db, request.hall_id)
        HallService.ensure_manager(hall, actor)

        duration = policy.duration_hours(request.start_time, request.end_time)

        if request.recurrence:
            occurrences = self._recurring_dates(request.slot_date, request.recurrence.end_date, request.recurrence.days_of_week)
            if not occurrences:
                raise ValidationError("Recurrence does not match any day in the given range")
            pattern = request.recurrence.model_dump(mode="json")
        else:
            occurrences = [request.slot_date]
            pattern = None

        slots = []
        for occurrence in occurrences:
            slot = HallSlot(
                hall_id=hall.id,
                slot_date=occurrence,
                start_time=request.start_time,
                end_time=request.end_time,
                duration_hours=duration,
                total_amount=ZERO,
                platform_fee=ZERO,
                owner_commission=ZERO,
                payment_status="not_applicable",
                status="available",
                origin="published",
                special_requirements=request.special_requirements,
                notes=request.notes or "Availability slot created by hall owner",
                is_recurring=pattern is not None,
                recurring_pattern=pattern,
            )
            self.db.add(slot)
            slots.append(slot)

        self.db.commit()
        for slot in slots:
            self.db.refresh(slot)

        logger.info("Published %d slot(s) for hall %s", len(slots), hall.id)
        return slots

    @staticmethod
    def _recurring_dates(start: date, end: date, days_of_week: List[str]) -> List[date]:
        if end < start:
            raise ValidationError("Recurrence end date must not be before the slot date")

        wanted = set(days_of_week)
        dates = []
        current = start
        while current <= end:
            if WEEKDAYS[current.weekday()] in wanted:
                dates.append(current)
            current += timedelta(days=1)
        return dates

    # ================================
    # Lookups
    # ================================
    def get_slot(self, slot_id: int) -> HallSlot:
        slot = self.db.query(HallSlot).filter(HallSlot.id == slot_id).first()
        if not slot:
            raise NotFoundError("Slot not found")
        return slot

    def find_conflict(self, hall_id: int, slot_date: date, start_time: str, end_time: str) -> Optional[HallSlot]:
        """
        First confirmed or completed slot overlapping the interval, if any.

        Neighbouring dates are checked too, since overnight slots run past midnight.
        """
        candidates = self.db.query(HallSlot).filter(
            HallSlot.hall_id == hall_id,
            HallSlot.slot_date.between(slot_date - timedelta(days=1), slot_date + timedelta(days=1)),
            HallSlot.status.in_(policy.BLOCKING_STATUSES),
        ).order_by(HallSlot.slot_date, HallSlot.id).all()

        for existing in candidates:
            day_offset = (slot_date - existing.slot_date).days
            if policy.intervals_overlap(existing.start_time, existing.end_time, start_time, end_time, day_offset):
                return existing
        return None

    def find_open_slot(self, hall_id: int, slot_date: date, start_time: str, end_time: str) -> Optional[HallSlot]:
        """The published availability slot with exactly this interval, if any"""
        return self.db.query(HallSlot).filter(
            HallSlot.hall_id == hall_id,
            HallSlot.slot_date == slot_date,
            HallSlot.start_time == start_time,
            HallSlot.end_time == end_time,
            HallSlot.status == "available",
        ).order_by(HallSlot.id).first()

    def claim_calendar(self, hall: Hall, seen_revision: int):
        """
        Compare-and-swap on the hall's calendar revision.

        Must run inside the booking transaction after the conflict check. A
        concurrent booking on the same hall that committed first bumps the
        revision, so this update matches no row and the caller's booking is
        rejected instead of double-booking the interval.
        """
        result = self.db.execute(
            update(Hall)
            .where(Hall.id == hall.id, Hall.calendar_revision == seen_revision)
            .values(calendar_revision=seen_revision + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            self.db.rollback()
            logger.warning("Calendar revision race on hall %s", hall.id)
            raise ConflictError("Hall is already booked for this time slot")

    # ================================
    # Queries
    # ================================
    def _filtered(self, query, filters: Optional[SlotFilters]):
        if not filters:
            return query
        if filters.date_from:
            query = query.filter(HallSlot.slot_date >= filters.date_from)
        if filters.date_to:
            query = query.filter(HallSlot.slot_date <= filters.date_to)
        if filters.status:
            query = query.filter(HallSlot.status == filters.status.value)
        if filters.payment_status:
            query = query.filter(HallSlot.payment_status == filters.payment_status.value)
        return query

    @staticmethod
    def _calendar_order(query):
        return query.order_by(HallSlot.slot_date.asc(), HallSlot.start_time.asc(), HallSlot.id.asc())

    def list_hall_slots(self, hall_id: int, filters: Optional[SlotFilters] = None) -> List[HallSlot]:
        """Every slot of a hall, open and booked"""
        HallService.get_hall(self.db, hall_id)
        query = self.db.query(HallSlot).filter(HallSlot.hall_id == hall_id)
        return self._calendar_order(self._filtered(query, filters)).all()

    def list_available_slots(self, hall_id: int) -> List[HallSlot]:
        HallService.get_hall(self.db, hall_id)
        query = self.db.query(HallSlot).filter(
            HallSlot.hall_id == hall_id,
            HallSlot.status == "available",
        )
        return self._calendar_order(query).all()

    def list_booked_slots(self, hall_id: int) -> List[HallSlot]:
        HallService.get_hall(self.db, hall_id)
        query = self.db.query(HallSlot).filter(
            HallSlot.hall_id == hall_id,
            HallSlot.status != "available",
        )
        return self._calendar_order(query).all()

    def list_customer_slots(self, customer_id: int, filters: Optional[SlotFilters], page: int, limit: int) -> Tuple[List[HallSlot], int]:
        query = self.db.query(HallSlot).filter(HallSlot.customer_id == customer_id)
        query = self._filtered(query, filters).order_by(HallSlot.created_at.desc(), HallSlot.id.desc())
        return paginate(query, page, limit)

    def list_owner_slots(self, owner_id: int, filters: Optional[SlotFilters], page: int, limit: int) -> Tuple[List[HallSlot], int, Decimal]:
        """Slots across every hall the owner holds, with earnings of the paid rows on the page"""
        hall_ids = HallService.owned_hall_ids(self.db, owner_id)
        query = self.db.query(HallSlot).filter(HallSlot.hall_id.in_(hall_ids))
        query = self._filtered(query, filters).order_by(HallSlot.created_at.desc(), HallSlot.id.desc())
        slots, total = paginate(query, page, limit)

        earnings = sum(
            (slot.owner_commission for slot in slots if slot.payment_status == "paid"),
            ZERO
        )
        return slots, total, earnings

    def list_all_slots(self, filters: Optional[SlotFilters], page: int, limit: int) -> Tuple[List[HallSlot], int]:
        query = self._filtered(self.db.query(HallSlot), filters)
        query = query.order_by(HallSlot.created_at.desc(), HallSlot.id.desc())
        return paginate(query, page, limit)

    # ================================
    # Lifecycle
    # ================================
    def update_slot(self, slot_id: int, request: SlotUpdateRequest, actor: User) -> HallSlot:
        """Edit a slot; the interval of a booked slot is fixed"""

        slot = self.get_slot(slot_id)
        HallService.ensure_manager(slot.hall, actor)

        changes = request.model_dump(exclude_unset=True)
        moves_interval = any(key in changes for key in ("slot_date", "start_time", "end_time"))

        if moves_interval:
            if slot.status != "available":
                raise PolicyViolationError("Only open availability slots can be rescheduled")
            start_time = changes.get("start_time") or slot.start_time
            end_time = changes.get("end_time") or slot.end_time
            slot.duration_hours = policy.duration_hours(start_time, end_time)

        for field, value in changes.items():
            if value is not None:
                setattr(slot, field, value)

        self.db.commit()
        self.db.refresh(slot)
        return slot

    def cancel_slot(self, slot_id: int, reason: str, actor: User) -> Dict[str, Decimal]:
        """Cancel a booked slot and its booking; the slot stays in the ledger as cancelled"""

        slot = self.get_slot(slot_id)
        is_admin = actor.role == "admin"

        if not (is_admin or slot.customer_id == actor.id or slot.hall.owner_id == actor.id):
            raise ForbiddenError("Not authorized to cancel this slot")

        policy.ensure_transition(slot.status, "cancelled", policy.SLOT_TRANSITIONS)

        now = self.clock()
        fraction = policy.refund_fraction(policy.hours_until_start(slot.slot_date, slot.start_time, now), is_admin)
        refund = policy.refund_amount(slot.total_amount, fraction)

        self.mark_cancelled(slot, reason, now, refund)
        if slot.booking is not None and slot.booking.status not in ("cancelled", "completed"):
            self.mark_booking_cancelled(slot.booking, reason, now, refund)

        self.db.commit()
        logger.info("Slot %s cancelled by user %s, refund %s", slot.id, actor.id, refund)
        return {"refund_amount": refund, "refund_fraction": fraction}

    def check_in(self, slot_id: int, actor: User) -> HallSlot:
        slot = self.get_slot(slot_id)
        HallService.ensure_manager(slot.hall, actor)

        if slot.status != "confirmed":
            raise PolicyViolationError("Only confirmed bookings can be checked in")

        slot.actual_check_in = self.clock()
        slot.status = "completed"
        if slot.booking is not None:
            slot.booking.status = "completed"

        self.db.commit()
        self.db.refresh(slot)
        logger.info("Slot %s checked in", slot.id)
        return slot

    def mark_no_show(self, slot_id: int, actor: User) -> HallSlot:
        slot = self.get_slot(slot_id)
        HallService.ensure_manager(slot.hall, actor)
        policy.ensure_transition(slot.status, "no_show", policy.SLOT_TRANSITIONS)

        if policy.hours_until_start(slot.slot_date, slot.start_time, self.clock()) > 0:
            raise PolicyViolationError("A slot cannot be marked as no-show before it starts")

        slot.status = "no_show"
        self.db.commit()
        self.db.refresh(slot)
        return slot

    def submit_feedback(self, slot_id: int, rating: int, comment: Optional[str], actor: User) -> HallSlot:
        """Record (or overwrite) the customer's single feedback entry on a completed booking"""

        slot = self.get_slot(slot_id)

        if slot.customer_id is None or slot.customer_id != actor.id:
            raise ForbiddenError("Only the customer who made the booking can leave feedback")
        if slot.status != "completed":
            raise PolicyViolationError("Feedback can only be added to completed bookings")
        if not isinstance(rating, int) or isinstance(rating, bool) or not 1 <= rating <= 5:
            raise ValidationError("Rating must be an integer between 1 and 5")
        if comment and len(comment) > settings.FEEDBACK_COMMENT_MAX_LENGTH:
            raise ValidationError(f"Comment must be at most {settings.FEEDBACK_COMMENT_MAX_LENGTH} characters")

        slot.feedback_rating = rating
        slot.feedback_comment = comment.strip() if comment else None
        self.db.commit()
        self.db.refresh(slot)
        return slot

    def delete_slot(self, slot_id: int, actor: User) -> Dict[str, object]:
        """
        Remove a slot from the ledger.

        Open and cancelled slots are simply deleted. An active booked slot may
        be force-deleted by the hall owner or an admin; its booking is
        cancelled first with the 24-hour floor waived.
        """
        slot = self.get_slot(slot_id)
        hall = slot.hall

        if actor.role != "admin" and hall.owner_id != actor.id:
            raise ForbiddenError("Not authorized to delete this slot")

        kind = "availability_slot" if slot.is_availability_slot else "booking"

        if slot.status == "confirmed":
            booking = slot.booking
            if booking is not None and booking.status not in ("cancelled", "completed"):
                now = self.clock()
                fraction = policy.refund_fraction(
                    policy.hours_until_start(slot.slot_date, slot.start_time, now),
                    is_admin=True
                )
                self.mark_booking_cancelled(
                    booking, "Cancelled by hall owner", now,
                    policy.refund_amount(booking.total_amount, fraction)
                )
        elif slot.status not in ("available", "cancelled"):
            raise PolicyViolationError(f"A {slot.status} slot is kept for the booking history")

        self.db.delete(slot)
        self.db.commit()
        logger.info("Slot %s (%s) deleted by user %s", slot_id, kind, actor.id)
        return {"message": "Slot deleted successfully", "deleted_id": slot_id, "type": kind}

    # ================================
    # State helpers shared with the booking service
    # ================================
    @staticmethod
    def convert_to_booking(slot: HallSlot, booking: Booking, amounts: policy.Amounts):
        """
        Turn an open slot into the shadow of ``booking``.

        The owner's published requirements stay on the slot; the customer's
        own requests live on the booking only, so a restored slot never shows them.
        """
        slot.customer_id = booking.customer_id
        slot.booking = booking
        slot.duration_hours = amounts.total_hours
        slot.total_amount = amounts.total_amount
        slot.platform_fee = amounts.platform_fee
        slot.owner_commission = amounts.owner_commission
        slot.payment_status = "pending"
        slot.status = "confirmed"

    @staticmethod
    def restore_availability(slot: HallSlot):
        """Give a cancelled booking's slot back to the open calendar"""
        slot.status = "available"
        slot.customer_id = None
        slot.booking = None
        slot.total_amount = ZERO
        slot.platform_fee = ZERO
        slot.owner_commission = ZERO
        slot.payment_status = "not_applicable"
        slot.cancellation_reason = None
        slot.cancellation_date = None
        slot.refund_amount = ZERO
        slot.feedback_rating = None
        slot.feedback_comment = None

    @staticmethod
    def mark_cancelled(slot: HallSlot, reason: str, now: datetime, refund: Decimal):
        slot.status = "cancelled"
        slot.cancellation_reason = reason
        slot.cancellation_date = now
        slot.refund_amount = refund
        if refund > 0:
            slot.payment_status = "refunded"

    @staticmethod
    def mark_booking_cancelled(booking: Booking, reason: str, now: datetime, refund: Decimal):
        booking.status = "cancelled"
        booking.cancellation_reason = reason
        booking.cancellation_date = now
        booking.refund_amount = refund
        if refund > 0:
            booking.payment_status = "refunded"

    # ================================
    # Feedback
    # ================================
    def _rated(self):
        return self.db.query(HallSlot).filter(HallSlot.feedback_rating.isnot(None))

    @staticmethod
    def _feedback_entry(slot: HallSlot) -> FeedbackEntry:
        return FeedbackEntry(
            slot_id=slot.id,
            booking_id=slot.booking_id,
            hall_id=slot.hall_id,
            hall_name=slot.hall.name,
            customer_name=slot.customer.name if slot.customer else None,
            slot_date=slot.slot_date,
            rating=slot.feedback_rating,
            comment=slot.feedback_comment,
        )

    def hall_feedback(self, hall_id: int) -> HallFeedback:
        """Ratings left on a hall, newest event first, with the average to one decimal"""

        HallService.get_hall(self.db, hall_id)
        slots = (
            self._rated()
            .filter(HallSlot.hall_id == hall_id)
            .order_by(HallSlot.slot_date.desc(), HallSlot.id.desc())
            .all()
        )

        average = ZERO
        if slots:
            average = (Decimal(sum(slot.feedback_rating for slot in slots)) / len(slots)).quantize(
                Decimal("0.1"), rounding=ROUND_HALF_UP
            )

        return HallFeedback(
            hall_id=hall_id,
            average_rating=float(average),
            total_reviews=len(slots),
            feedback=[self._feedback_entry(slot) for slot in slots],
        )

    def customer_feedback(self, customer_id: int) -> List[FeedbackEntry]:
        slots = (
            self._rated()
            .filter(HallSlot.customer_id == customer_id)
            .order_by(HallSlot.slot_date.desc(), HallSlot.id.desc())
            .all()
        )
        return [self._feedback_entry(slot) for slot in slots]

    # ================================
    # Reporting
    # ================================
    def revenue_stats(self, start: date, end: date) -> SlotRevenueStats:
        """Totals over confirmed/completed slots with a paid or partial payment in the range"""

        slots = self.db.query(HallSlot).filter(
            HallSlot.slot_date >= start,
            HallSlot.slot_date <= end,
            HallSlot.status.in_(policy.BLOCKING_STATUSES),
            HallSlot.payment_status.in_(("paid", "partial")),
        ).all()

        summary = SlotRevenueSummary()
        monthly: Dict[Tuple[int, int], List[Decimal]] = defaultdict(list)

        for slot in slots:
            summary.total_revenue += slot.total_amount
            summary.total_commission += slot.platform_fee
            if slot.payment_status == "paid":
                summary.total_paid += slot.total_amount
            monthly[(slot.slot_date.year, slot.slot_date.month)].append(slot.total_amount)

        summary.total_slots = len(slots)
        if slots:
            summary.average_amount = (summary.total_revenue / len(slots)).quantize(policy.CENT)

        return SlotRevenueStats(
            summary=summary,
            monthly=[
                MonthlySlotRevenue(year=year, month=month, revenue=sum(amounts, ZERO), count=len(amounts))
                for (year, month), amounts in sorted(monthly.items())
            ]
        )
