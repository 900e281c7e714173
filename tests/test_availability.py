"""Tests for the vehicle availability checker."""
from datetime import date

import pytest

from services.availability import check_availability


class TestOverlap:
    """Half-open overlap against confirmed/active bookings."""

    @pytest.fixture
    def held(self, make_booking):
        return make_booking(date(2024, 3, 10), date(2024, 3, 15), status="confirmed")

    def test_overlapping_range_conflicts(self, vehicle, held):
        result = check_availability(vehicle.id, date(2024, 3, 12), date(2024, 3, 16))
        assert not result.available
        assert result.conflicting_ids == [held.id]

    def test_range_inside_existing_conflicts(self, vehicle, held):
        assert not check_availability(vehicle.id, date(2024, 3, 11), date(2024, 3, 12)).available

    def test_range_covering_existing_conflicts(self, vehicle, held):
        assert not check_availability(vehicle.id, date(2024, 3, 1), date(2024, 3, 30)).available

    def test_adjacent_after_is_free(self, vehicle, held):
        """Pickup on the day of the previous drop-off is allowed."""
        result = check_availability(vehicle.id, date(2024, 3, 15), date(2024, 3, 18))
        assert result.available
        assert result.conflicting_ids == []

    def test_adjacent_before_is_free(self, vehicle, held):
        assert check_availability(vehicle.id, date(2024, 3, 5), date(2024, 3, 10)).available

    def test_other_vehicle_not_affected(self, make_vehicle, held):
        other = make_vehicle(plate="BB-11-BB")
        assert check_availability(other.id, date(2024, 3, 12), date(2024, 3, 13)).available

    def test_exclude_booking_id(self, vehicle, held):
        result = check_availability(vehicle.id, date(2024, 3, 10), date(2024, 3, 15), exclude_booking_id=held.id)
        assert result.available


class TestBlockingStatuses:
    """Only confirmed and active bookings hold the vehicle."""

    @pytest.mark.parametrize("status", ["pending_payment", "completed", "cancelled"])
    def test_non_blocking_statuses(self, vehicle, make_booking, status):
        make_booking(date(2024, 3, 10), date(2024, 3, 15), status=status)
        assert check_availability(vehicle.id, date(2024, 3, 11), date(2024, 3, 12)).available

    def test_active_blocks(self, vehicle, make_booking):
        make_booking(date(2024, 3, 10), date(2024, 3, 15), status="active")
        assert not check_availability(vehicle.id, date(2024, 3, 11), date(2024, 3, 12)).available

    def test_reports_every_conflict_in_start_order(self, vehicle, make_booking):
        late = make_booking(date(2024, 3, 20), date(2024, 3, 25), status="active")
        early = make_booking(date(2024, 3, 10), date(2024, 3, 15), status="confirmed")
        make_booking(date(2024, 3, 16), date(2024, 3, 18), status="pending_payment")

        result = check_availability(vehicle.id, date(2024, 3, 1), date(2024, 4, 1))
        assert result.conflicting_ids == [early.id, late.id]
