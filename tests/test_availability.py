"""Unit tests for the car availability predicate."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from app.services.availability import available_for_range, booking_blocks_range

BOOKING = ("confirmed", "2025-10-12", "2025-10-14")


class TestBookingBlocksRange:
    @pytest.mark.parametrize("start,end", [
        ("2025-10-12", "2025-10-14"),   # same range
        ("2025-10-13", "2025-10-15"),   # overlaps the tail
        ("2025-10-10", "2025-10-13"),   # overlaps the head
        ("2025-10-01", "2025-10-30"),   # contains it
    ])
    def test_overlapping_ranges_block(self, start, end):
        assert booking_blocks_range(*BOOKING, start, end) is True

    @pytest.mark.parametrize("start,end", [
        ("2025-10-14", "2025-10-16"),   # starts on return day
        ("2025-10-15", "2025-10-16"),
        ("2025-10-10", "2025-10-12"),   # ends on pickup day
    ])
    def test_disjoint_ranges_do_not_block(self, start, end):
        assert booking_blocks_range(*BOOKING, start, end) is False

    def test_cancelled_booking_ignored(self):
        assert booking_blocks_range("cancelled", "2025-10-12", "2025-10-14", "2025-10-12", "2025-10-14") is False

    def test_missing_dates_never_block(self):
        assert booking_blocks_range("confirmed", None, "2025-10-14", "2025-10-12", "2025-10-13") is False


class TestAvailableForRange:
    def test_unavailable_car_is_never_free(self):
        assert available_for_range(False, [], "2025-10-15", "2025-10-16") is False

    def test_free_when_no_booking_overlaps(self):
        assert available_for_range(True, [BOOKING], "2025-10-15", "2025-10-16") is True

    def test_busy_when_any_booking_overlaps(self):
        bookings = [("cancelled", "2025-10-13", "2025-10-15"), BOOKING]
        assert available_for_range(True, bookings, "2025-10-13", "2025-10-15") is False
