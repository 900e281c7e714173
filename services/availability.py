"""
Vehicle availability for a date range.

Ranges are half-open, ``[start_date, end_date)``: a booking ending on the 15th
does not block one starting on the 15th. Only confirmed and active bookings
hold a vehicle; pending, completed and cancelled ones never block.
"""
from datetime import date
from typing import List, NamedTuple, Optional

from models.booking import Booking, BLOCKING_STATUSES


class Availability(NamedTuple):
    available: bool
    conflicting_ids: List[int]


def check_availability(vehicle_id: int, start_date: date, end_date: date,
                       exclude_booking_id: Optional[int] = None) -> Availability:
    """Caller guarantees ``start_date < end_date``. Read-only."""
    q = Booking.query.filter(
        Booking.vehicle_id == vehicle_id,
        Booking.status.in_(BLOCKING_STATUSES),
        Booking.start_date < end_date,
        Booking.end_date > start_date,
    )
    if exclude_booking_id is not None:
        q = q.filter(Booking.id != exclude_booking_id)

    ids = [b.id for b in q.order_by(Booking.start_date.asc(), Booking.id.asc()).all()]
    return Availability(available=not ids, conflicting_ids=ids)
