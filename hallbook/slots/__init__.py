"""
Slot Ledger Module

Every bookable interval of a hall is a slot row: published availability,
booked shadows of bookings, and the cancelled, completed and no-show history.
"""
