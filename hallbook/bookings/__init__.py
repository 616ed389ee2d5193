"""
Hall Booking Module

Booking lifecycle for the marketplace:

- policy.py: time arithmetic, amount split, refund bands and transition tables
- booking_service.py: conflict-checked booking creation, cancellation, deletion
  and status changes, kept in step with the hall's slot ledger
- router.py: FastAPI endpoints for customers and hall owners
- schemas.py: Pydantic models for booking requests and responses

Submodules are imported directly (``from hallbook.bookings.booking_service
import BookingService``) since the slot ledger depends on ``policy``.
"""
