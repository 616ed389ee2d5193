"""
Booking rules shared by the slot ledger and the booking service.

Pure functions only: time arithmetic on ``HH:MM`` strings, the overlap test
used for conflict detection, the amount split and the refund bands. Nothing
here touches the database, which keeps the rules easy to test in isolation.
"""

from datetime import date, datetime, time
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, NamedTuple, Optional, Set

from hallbook.config import settings
from hallbook.exceptions import PolicyViolationError, ValidationError

MINUTES_PER_DAY = 24 * 60
CENT = Decimal("0.01")

# Slot states that hold the hall for their interval
BLOCKING_STATUSES = ("confirmed", "completed")

SLOT_TRANSITIONS: Dict[str, Set[str]] = {
    "available": {"confirmed"},
    "confirmed": {"completed", "cancelled", "no_show"},
    "completed": set(),
    "cancelled": set(),
    "no_show": set(),
}

BOOKING_TRANSITIONS: Dict[str, Set[str]] = {
    "pending": {"confirmed", "cancelled", "completed"},
    "confirmed": {"completed", "cancelled"},
    "completed": set(),
    "cancelled": set(),
}


class Amounts(NamedTuple):
    total_hours: Decimal
    total_amount: Decimal
    platform_fee: Decimal
    owner_commission: Decimal


def parse_clock(value: str) -> int:
    """Return minutes after midnight for a 24-hour ``HH:MM`` string."""
    try:
        hours, minutes = value.split(":")
        hours, minutes = int(hours), int(minutes)
    except (AttributeError, ValueError):
        raise ValidationError(f"Invalid time '{value}', expected HH:MM")

    if not (0 <= hours <= 23 and 0 <= minutes <= 59) or len(value) != 5:
        raise ValidationError(f"Invalid time '{value}', expected HH:MM")

    return hours * 60 + minutes


def interval_minutes(start_time: str, end_time: str) -> int:
    start = parse_clock(start_time)
    end = parse_clock(end_time)
    # end at or before start means the slot runs past midnight
    if end <= start:
        end += MINUTES_PER_DAY
    return end - start


def duration_hours(start_time: str, end_time: str) -> Decimal:
    minutes = interval_minutes(start_time, end_time)
    return (Decimal(minutes) / Decimal(60)).quantize(CENT, rounding=ROUND_HALF_UP)


def minute_span(start_time: str, end_time: str) -> tuple:
    start = parse_clock(start_time)
    return start, start + interval_minutes(start_time, end_time)


def intervals_overlap(start_a: str, end_a: str, start_b: str, end_b: str, day_offset: int = 0) -> bool:
    """
    Half-open overlap test for two intervals.

    ``day_offset`` is how many days after interval A's date interval B is
    keyed, so an overnight interval can collide with early hours of the next day.
    """
    offset = day_offset * MINUTES_PER_DAY
    a_start, a_end = minute_span(start_a, end_a)
    b_start, b_end = minute_span(start_b, end_b)
    return a_start < b_end + offset and a_end > b_start + offset


def compute_amounts(start_time: str, end_time: str, price_per_hour) -> Amounts:
    total_hours = duration_hours(start_time, end_time)
    hours = Decimal(interval_minutes(start_time, end_time)) / Decimal(60)
    total_amount = (hours * Decimal(str(price_per_hour))).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    platform_fee, owner_commission = split_amount(total_amount)
    return Amounts(total_hours, total_amount, platform_fee, owner_commission)


def split_amount(total_amount) -> tuple:
    """Split a total into (platform fee, owner commission) using the configured rates."""
    total = Decimal(str(total_amount))
    platform_fee = (total * Decimal(str(settings.PLATFORM_FEE_RATE))).quantize(CENT, rounding=ROUND_HALF_UP)
    owner_commission = (total * Decimal(str(settings.OWNER_COMMISSION_RATE))).quantize(CENT, rounding=ROUND_HALF_UP)
    return platform_fee, owner_commission


def slot_start(slot_date: date, start_time: str) -> datetime:
    minutes = parse_clock(start_time)
    return datetime.combine(slot_date, time(minutes // 60, minutes % 60))


def hours_until_start(slot_date: date, start_time: str, now: Optional[datetime] = None) -> float:
    now = now or datetime.now()
    return (slot_start(slot_date, start_time) - now).total_seconds() / 3600


def refund_fraction(hours_until: float, is_admin: bool = False) -> Decimal:
    """
    Refund share for a cancellation made ``hours_until`` hours before the start.

    Non-admin cancellations inside the cutoff window are refused. Admins bypass
    the cutoff but still get no refund inside it since no band matches.
    """
    cutoff = settings.CANCELLATION_CUTOFF_HOURS

    if hours_until < cutoff and not is_admin:
        raise PolicyViolationError(
            f"Cancellation not allowed within {cutoff} hours of booking time"
        )

    if hours_until > settings.FULL_REFUND_WINDOW_HOURS:
        return Decimal(str(settings.EARLY_REFUND_FRACTION))
    if hours_until >= cutoff:
        return Decimal(str(settings.LATE_REFUND_FRACTION))
    return Decimal("0")


def refund_amount(total_amount, fraction: Decimal) -> Decimal:
    return (Decimal(str(total_amount)) * fraction).quantize(CENT, rounding=ROUND_HALF_UP)


def ensure_transition(current: str, target: str, table: Dict[str, Set[str]], label: str = "Slot"):
    if target not in table.get(current, set()):
        raise PolicyViolationError(f"{label} cannot move from '{current}' to '{target}'")
