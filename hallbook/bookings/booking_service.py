import logging
from typing import Callable, List, Optional, Tuple
from datetime import date, datetime
from decimal import Decimal
from sqlalchemy.orm import Session

from hallbook.bookings import policy
from hallbook.bookings.schemas import BookingCreateRequest, BookingSearchFilters, BookingStatus, PaymentStatus
from hallbook.exceptions import ConflictError, ForbiddenError, NotFoundError, PolicyViolationError, ValidationError
from hallbook.halls.schemas import ApprovalStatus
from hallbook.halls.service import HallService
from hallbook.models import Booking, Hall, HallSlot, User
from hallbook.pagination import paginate
from hallbook.revenue.service import RevenueService
from hallbook.slots.service import SlotService

logger = logging.getLogger(__name__)

class BookingService:
    """Service for hall bookings and their shadow slots"""

    def __init__(self, db: Session, clock: Optional[Callable[[], datetime]] = None):
        self.db = db
        self.clock = clock or datetime.now
        self.slots = SlotService(db, clock=self.clock)

    def create_booking(self, request: BookingCreateRequest, actor: User) -> Booking:
        """Book a hall for a customer"""

        if actor.role != "user":
            raise ForbiddenError("Admins and hall owners cannot book halls")

        hall = HallService.get_hall(self.db, request.hall_id)
        return self._reserve(hall, request, customer_id=actor.id)

    def create_owner_booking(self, request: BookingCreateRequest, actor: User) -> Booking:
        """Book one of the owner's own halls for a walk-in customer without an account"""

        hall = HallService.get_hall(self.db, request.hall_id)
        HallService.ensure_manager(hall, actor)
        return self._reserve(hall, request, customer_id=None)

    def _reserve(self, hall: Hall, request: BookingCreateRequest, customer_id: Optional[int]) -> Booking:
        """
        Conflict check, calendar claim and write of a booking plus its shadow slot.

        A published slot with the exact interval is converted in place and the
        booking starts confirmed; otherwise a new confirmed slot is inserted and
        the booking starts pending.
        """
        seen_revision = hall.calendar_revision

        if not hall.is_available or hall.approval_status != ApprovalStatus.APPROVED.value:
            raise PolicyViolationError("Hall is not available for booking")

        amounts = policy.compute_amounts(request.start_time, request.end_time, hall.price_per_hour)

        if policy.hours_until_start(request.booking_date, request.start_time, self.clock()) <= 0:
            raise ValidationError("Cannot book a time slot in the past")

        if self.slots.find_conflict(hall.id, request.booking_date, request.start_time, request.end_time):
            raise ConflictError("Hall is already booked for this time slot")

        self.slots.claim_calendar(hall, seen_revision)

        open_slot = self.slots.find_open_slot(hall.id, request.booking_date, request.start_time, request.end_time)

        booking = Booking(
            hall_id=hall.id,
            customer_id=customer_id,
            booking_date=request.booking_date,
            start_time=request.start_time,
            end_time=request.end_time,
            total_hours=amounts.total_hours,
            total_amount=amounts.total_amount,
            platform_fee=amounts.platform_fee,
            owner_commission=amounts.owner_commission,
            status=BookingStatus.CONFIRMED.value if open_slot else BookingStatus.PENDING.value,
            payment_status=PaymentStatus.PENDING.value,
            special_requests=request.special_requests,
        )
        self.db.add(booking)
        self.db.flush()

        if open_slot:
            self.slots.convert_to_booking(open_slot, booking, amounts)
        else:
            self.db.add(HallSlot(
                hall_id=hall.id,
                customer_id=customer_id,
                booking_id=booking.id,
                slot_date=request.booking_date,
                start_time=request.start_time,
                end_time=request.end_time,
                duration_hours=amounts.total_hours,
                total_amount=amounts.total_amount,
                platform_fee=amounts.platform_fee,
                owner_commission=amounts.owner_commission,
                payment_status="pending",
                status="confirmed",
                origin="direct",
                special_requirements=request.special_requests,
            ))

        self.db.commit()
        self.db.refresh(booking)

        logger.info(
            "Booking %s created on hall %s for %s %s-%s (%s)",
            booking.id, hall.id, booking.booking_date, booking.start_time, booking.end_time,
            "converted published slot" if open_slot else "new slot"
        )
        return booking

    def get_booking(self, booking_id: int) -> Booking:
        booking = self.db.query(Booking).filter(Booking.id == booking_id).first()
        if not booking:
            raise NotFoundError("Booking not found")
        return booking

    def get_booking_for(self, booking_id: int, actor: User) -> Booking:
        """Get a booking visible to the actor: its customer, the hall owner or an admin"""
        booking = self.get_booking(booking_id)
        if not self._is_party(booking, actor):
            raise ForbiddenError("Not authorized to view this booking")
        return booking

    @staticmethod
    def _is_party(booking: Booking, actor: User) -> bool:
        return (
            actor.role == "admin"
            or (booking.customer_id is not None and booking.customer_id == actor.id)
            or booking.hall.owner_id == actor.id
        )

    def list_bookings(self, actor: User, filters: BookingSearchFilters, page: int = 1, limit: int = 20) -> Tuple[List[Booking], int]:
        """Bookings scoped by role: customers see their own, owners their halls', admins all"""

        query = self.db.query(Booking)

        if actor.role == "user":
            query = query.filter(Booking.customer_id == actor.id)
        elif actor.role == "hall_owner":
            query = query.filter(Booking.hall_id.in_(HallService.owned_hall_ids(self.db, actor.id)))

        if filters.hall_id:
            query = query.filter(Booking.hall_id == filters.hall_id)
        if filters.customer_id:
            query = query.filter(Booking.customer_id == filters.customer_id)
        if filters.status:
            query = query.filter(Booking.status == filters.status.value)
        if filters.payment_status:
            query = query.filter(Booking.payment_status == filters.payment_status.value)
        if filters.date_from:
            query = query.filter(Booking.booking_date >= filters.date_from)
        if filters.date_to:
            query = query.filter(Booking.booking_date <= filters.date_to)

        query = query.order_by(Booking.booking_date.desc(), Booking.created_at.desc(), Booking.id.desc())
        return paginate(query, page, limit)

    def booked_intervals(self, hall_id: int, on_date: Optional[date] = None) -> List[Booking]:
        """Taken intervals of a hall on a date, or from today onwards"""

        HallService.get_hall(self.db, hall_id)
        query = self.db.query(Booking).filter(
            Booking.hall_id == hall_id,
            Booking.status.in_(("pending", "confirmed", "completed")),
        )
        if on_date:
            query = query.filter(Booking.booking_date == on_date)
        else:
            query = query.filter(Booking.booking_date >= self.clock().date())

        return query.order_by(Booking.booking_date.asc(), Booking.start_time.asc()).all()

    def cancel_booking(self, booking_id: int, reason: str, actor: User) -> dict:
        """
        Cancel a booking and compute the refund.

        When the customer cancels a booking that took over a published slot,
        the slot goes back on the open calendar. Otherwise the slot is kept as
        a cancelled record carrying the same refund.
        """
        booking = self.get_booking(booking_id)
        is_admin = actor.role == "admin"
        is_customer = booking.customer_id is not None and booking.customer_id == actor.id

        if not (is_admin or is_customer or booking.hall.owner_id == actor.id):
            raise ForbiddenError("Not authorized to cancel this booking")

        if booking.status == BookingStatus.CANCELLED.value:
            raise PolicyViolationError("Booking is already cancelled")
        policy.ensure_transition(booking.status, BookingStatus.CANCELLED.value, policy.BOOKING_TRANSITIONS, "Booking")

        slot = booking.slot
        if slot is not None:
            policy.ensure_transition(slot.status, "cancelled", policy.SLOT_TRANSITIONS)

        now = self.clock()
        fraction = policy.refund_fraction(
            policy.hours_until_start(booking.booking_date, booking.start_time, now),
            is_admin
        )
        refund = policy.refund_amount(booking.total_amount, fraction)

        self.slots.mark_booking_cancelled(booking, reason, now, refund)

        if slot is not None:
            if is_customer and slot.origin == "published":
                self.slots.restore_availability(slot)
            else:
                self.slots.mark_cancelled(slot, reason, now, refund)

        self.db.commit()
        logger.info("Booking %s cancelled by user %s, refund %s (%s)", booking.id, actor.id, refund, fraction)

        return {
            "message": "Booking cancelled successfully",
            "booking_id": booking.id,
            "slot_id": slot.id if slot is not None else None,
            "refund_amount": refund,
            "refund_fraction": fraction,
        }

    def delete_booking(self, booking_id: int, actor: User):
        """
        Permanently remove a cancelled booking and any slot still shadowing it.

        The hall owner (or an admin) may also delete an active booking, which
        force-deletes its shadow slot and leaves the booking cancelled.
        """
        booking = self.get_booking(booking_id)

        if not self._is_party(booking, actor):
            raise ForbiddenError("Not authorized to delete this booking")

        if booking.status == BookingStatus.CANCELLED.value:
            if booking.slot is not None:
                self.db.delete(booking.slot)
            self.db.delete(booking)
            self.db.commit()
            logger.info("Booking %s deleted by user %s", booking_id, actor.id)
            return

        if actor.role == "admin" or booking.hall.owner_id == actor.id:
            if booking.slot is not None:
                self.slots.delete_slot(booking.slot.id, actor)
                return
            if booking.status == BookingStatus.COMPLETED.value:
                raise PolicyViolationError("Completed bookings cannot be deleted")
            self.slots.mark_booking_cancelled(booking, "Cancelled by hall owner", self.clock(), Decimal("0"))
            self.db.commit()
            return

        raise PolicyViolationError("Only cancelled bookings can be deleted; cancel the booking first")

    def check_in(self, booking_id: int, actor: User) -> Booking:
        booking = self.get_booking(booking_id)
        if booking.slot is None:
            raise PolicyViolationError("Only confirmed bookings can be checked in")
        self.slots.check_in(booking.slot.id, actor)
        self.db.refresh(booking)
        return booking

    def submit_feedback(self, booking_id: int, rating: int, comment: Optional[str], actor: User) -> HallSlot:
        booking = self.get_booking(booking_id)
        if booking.customer_id is None or booking.customer_id != actor.id:
            raise ForbiddenError("Only the customer who made the booking can leave feedback")
        if booking.status != BookingStatus.COMPLETED.value or booking.slot is None:
            raise PolicyViolationError("Feedback can only be added to completed bookings")
        return self.slots.submit_feedback(booking.slot.id, rating, comment, actor)

    def update_status(self, booking_id: int, status: BookingStatus, actor: User, reason: Optional[str] = None) -> Booking:
        """Owner/admin status change; completion posts revenue, cancellation refunds"""

        booking = self.get_booking(booking_id)
        HallService.ensure_manager(booking.hall, actor)

        if status == BookingStatus.CANCELLED:
            self.cancel_booking(booking_id, reason or "Cancelled by hall owner", actor)
        elif status == BookingStatus.COMPLETED:
            RevenueService(self.db, clock=self.clock).complete_booking(booking_id, actor)
        else:
            policy.ensure_transition(booking.status, status.value, policy.BOOKING_TRANSITIONS, "Booking")
            booking.status = status.value
            self.db.commit()

        self.db.refresh(booking)
        return booking

    def update_payment_status(self, booking_id: int, payment_status: PaymentStatus, actor: User) -> Booking:
        """Record the payment state on the booking and its shadow slot"""

        booking = self.get_booking(booking_id)
        HallService.ensure_manager(booking.hall, actor)

        if booking.status == BookingStatus.CANCELLED.value and payment_status != PaymentStatus.REFUNDED:
            raise PolicyViolationError("Cancelled bookings can only be marked as refunded")

        booking.payment_status = payment_status.value
        if booking.slot is not None:
            booking.slot.payment_status = payment_status.value

        self.db.commit()
        self.db.refresh(booking)
        return booking
