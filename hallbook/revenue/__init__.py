"""
Owner Revenue Module

Completion of bookings and the append-only ledger of what each hall owner
earned, with totals, per-hall and monthly breakdowns.
"""
