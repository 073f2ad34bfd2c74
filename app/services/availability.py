# app/services/availability.py
"""
Car × date-range availability — one predicate for both stores.

Ranges are half-open [pickup, return). A booking blocks a range unless it is
cancelled or lies entirely before or after it:

    blocks = status != "cancelled" AND NOT (b.return <= start OR b.pickup >= end)

Dates are compared as opaque ISO strings. A booking with a missing date never
blocks (same as SQL NULL comparisons).
"""

from typing import Iterable, Optional

CANCELLED = "cancelled"


def booking_blocks_range(status: Optional[str], pickup: Optional[str], ret: Optional[str],
                         start: str, end: str) -> bool:
    if status == CANCELLED:
        return False
    if pickup is None or ret is None:
        return False
    return not (ret <= start or pickup >= end)


def available_for_range(car_available: bool, bookings: Iterable[tuple], start: str, end: str) -> bool:
    """bookings: (status, pickup_date, return_date) tuples for one car."""
    if not car_available:
        return False
    return not any(booking_blocks_range(status, pickup, ret, start, end)
                   for status, pickup, ret in bookings)
