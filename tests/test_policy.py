from datetime import date, datetime
from decimal import Decimal

import pytest

from hallbook.bookings import policy
from hallbook.exceptions import PolicyViolationError, ValidationError


class TestDurations:
    def test_same_day_interval(self):
        assert policy.duration_hours("10:00", "13:00") == Decimal("3.00")

    def test_interval_past_midnight(self):
        assert policy.duration_hours("22:00", "02:00") == Decimal("4.00")

    def test_equal_start_and_end_is_a_full_day(self):
        assert policy.interval_minutes("09:00", "09:00") == 24 * 60

    def test_partial_hours(self):
        assert policy.duration_hours("10:00", "11:30") == Decimal("1.50")

    @pytest.mark.parametrize("value", ["24:00", "9:00", "10:60", "noon", ""])
    def test_malformed_clock_rejected(self, value):
        with pytest.raises(ValidationError):
            policy.parse_clock(value)


class TestAmounts:
    def test_split_at_default_rates(self):
        amounts = policy.compute_amounts("10:00", "13:00", Decimal("500"))
        assert amounts.total_hours == Decimal("3.00")
        assert amounts.total_amount == Decimal("1500")
        assert amounts.platform_fee == Decimal("75.00")
        assert amounts.owner_commission == Decimal("1350.00")

    def test_total_rounds_half_up_to_whole_unit(self):
        # 1h20m at 100/h = 133.33...
        amounts = policy.compute_amounts("10:00", "11:20", Decimal("100"))
        assert amounts.total_amount == Decimal("133")

        # 30m at 25/h = 12.5
        amounts = policy.compute_amounts("10:00", "10:30", Decimal("25"))
        assert amounts.total_amount == Decimal("13")

    def test_overnight_amount(self):
        amounts = policy.compute_amounts("22:00", "02:00", Decimal("250"))
        assert amounts.total_amount == Decimal("1000")


class TestOverlap:
    def test_overlapping_intervals(self):
        assert policy.intervals_overlap("10:00", "13:00", "12:00", "14:00")
        assert policy.intervals_overlap("10:00", "13:00", "11:00", "12:00")

    def test_touching_intervals_do_not_overlap(self):
        assert not policy.intervals_overlap("10:00", "13:00", "13:00", "15:00")
        assert not policy.intervals_overlap("13:00", "15:00", "10:00", "13:00")

    def test_overnight_interval_overlaps_late_evening(self):
        assert policy.intervals_overlap("22:00", "02:00", "23:00", "23:30")
        assert not policy.intervals_overlap("22:00", "02:00", "18:00", "21:00")

    def test_overnight_interval_runs_into_next_day(self):
        assert policy.intervals_overlap("22:00", "02:00", "00:00", "03:00", day_offset=1)
        assert policy.intervals_overlap("00:00", "03:00", "22:00", "02:00", day_offset=-1)
        assert not policy.intervals_overlap("22:00", "02:00", "02:00", "05:00", day_offset=1)
        assert not policy.intervals_overlap("10:00", "13:00", "10:00", "13:00", day_offset=1)


class TestRefunds:
    def test_more_than_48_hours(self):
        assert policy.refund_fraction(50) == Decimal("0.8")

    def test_between_24_and_48_hours(self):
        assert policy.refund_fraction(30) == Decimal("0.5")
        assert policy.refund_fraction(48) == Decimal("0.5")
        assert policy.refund_fraction(24) == Decimal("0.5")

    def test_inside_cutoff_rejected_for_non_admin(self):
        with pytest.raises(PolicyViolationError, match="within 24 hours"):
            policy.refund_fraction(10)

    def test_inside_cutoff_admin_gets_nothing(self):
        assert policy.refund_fraction(10, is_admin=True) == Decimal("0")

    def test_refund_amount(self):
        assert policy.refund_amount(Decimal("1500"), Decimal("0.8")) == Decimal("1200.00")

    def test_hours_until_start(self):
        now = datetime(2030, 5, 1, 10, 0)
        assert policy.hours_until_start(date(2030, 5, 3), "12:00", now) == 50


class TestTransitions:
    def test_allowed_slot_transitions(self):
        policy.ensure_transition("available", "confirmed", policy.SLOT_TRANSITIONS)
        policy.ensure_transition("confirmed", "no_show", policy.SLOT_TRANSITIONS)

    @pytest.mark.parametrize("current", ["cancelled", "completed", "no_show"])
    def test_terminal_slot_states(self, current):
        with pytest.raises(PolicyViolationError):
            policy.ensure_transition(current, "confirmed", policy.SLOT_TRANSITIONS)

    def test_completed_booking_cannot_be_cancelled(self):
        with pytest.raises(PolicyViolationError, match="Booking cannot move"):
            policy.ensure_transition("completed", "cancelled", policy.BOOKING_TRANSITIONS, "Booking")
