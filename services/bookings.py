"""
Booking lifecycle: creation, admin edits, payment confirmation, cancellation.

This module is the only writer of Booking rows. Every path that pins a vehicle
to a date range locks the vehicle row first and then asks
:func:`services.availability.check_availability` for conflicts, so two
admissions for the same vehicle are serialised on databases with row locks.

State machine::

    pending_payment -> confirmed -> active -> completed
          \\______________\\__________\\______-> cancelled

``completed`` and ``cancelled`` are terminal. The admin update path applies a
requested status directly and does not walk the machine.
"""
import logging
import math
from contextlib import contextmanager
from datetime import date, datetime

from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from models import db
from models.booking import (
    Booking,
    BOOKING_STATUSES,
    PENDING_PAYMENT,
    CONFIRMED,
    ACTIVE,
    COMPLETED,
    CANCELLED,
)
from models.location import Location
from models.payment import Payment
from models.user import User
from models.vehicle import Vehicle
from security.rbac import Actor
from services.availability import check_availability
from utils.audit import log_event
from utils.errors import (
    ValidationError,
    NotFoundError,
    ConflictError,
    ForbiddenError,
    InvalidStateError,
    StorageError,
)
from utils.pagination import apply_sort, paginate

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS = {
    PENDING_PAYMENT: (CONFIRMED, CANCELLED),
    CONFIRMED: (ACTIVE, CANCELLED),
    ACTIVE: (COMPLETED, CANCELLED),
    COMPLETED: (),
    CANCELLED: (),
}

# PostgreSQL exclusion constraint added by migration 8b4e2f6a1c93
OVERLAP_CONSTRAINT = "ex_booking_vehicle_overlap"

SORTABLE_FIELDS = {"id", "start_date", "end_date", "created_at", "total_cost", "status"}

_REQUIRED_FIELDS = ("vehicle_id", "start_date", "end_date", "pickup_location_id", "dropoff_location_id")


def can_transition(current: str, new: str) -> bool:
    return new in ALLOWED_TRANSITIONS.get(current, ())


def _today() -> date:
    return date.today()


@contextmanager
def _storage():
    """Commit on success; turn driver errors into StorageError."""
    try:
        yield
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        if OVERLAP_CONSTRAINT in str(exc.orig):
            # a concurrent admission won the race past the row lock
            raise ConflictError("Vehicle is not available for the selected dates") from exc
        logger.exception("Booking integrity failure")
        raise StorageError() from exc
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("Booking storage failure")
        raise StorageError() from exc


# ---------- input parsing ----------

def parse_booking_date(value, field: str) -> date:
    """Accepts YYYY-MM-DD or a full ISO datetime; time-of-day is dropped."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise ValidationError("Invalid date format provided", field=field)

    text = value.strip()
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        raise ValidationError("Invalid date format provided", field=field)


def _parse_id(value, field: str) -> int:
    # int() would truncate 1.9 to 1
    if isinstance(value, bool) or (isinstance(value, float) and not value.is_integer()):
        raise ValidationError(f"{field} must be an integer id", field=field)
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be an integer id", field=field)


def _parse_cost(value) -> float:
    try:
        cost = float(value)
    except (TypeError, ValueError):
        raise ValidationError("total_cost must be a number", field="total_cost")
    if not math.isfinite(cost) or cost < 0:
        raise ValidationError("total_cost must be a non-negative number", field="total_cost")
    return round(cost, 2)


def _is_blank(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


# ---------- cost ----------

def rental_days(start_date: date, end_date: date) -> int:
    """Whole days between the dates, never less than one."""
    return max(1, math.ceil((end_date - start_date).days))


def calculate_cost(start_date: date, end_date: date, daily_rate) -> float:
    return round(rental_days(start_date, end_date) * float(daily_rate), 2)


# ---------- shared validation ----------

def _lock_vehicle(vehicle_id: int):
    # FOR UPDATE holds the vehicle row until commit so concurrent
    # check-then-write sequences for the same vehicle run one at a time.
    return db.session.get(Vehicle, vehicle_id, with_for_update=True)


def _load_booking(booking_id: int) -> Booking:
    booking = db.session.get(Booking, booking_id)
    if not booking:
        raise NotFoundError("booking", booking_id)
    return booking


def _validate_booking_fields(actor: Actor, data: dict, required) -> dict:
    missing = [f for f in required if _is_blank(data.get(f))]
    if missing:
        raise ValidationError(
            "Missing required booking information: " + ", ".join(missing),
            missing=missing,
        )

    start = parse_booking_date(data["start_date"], "start_date")
    end = parse_booking_date(data["end_date"], "end_date")
    if start >= end:
        raise ValidationError("Start date must be before end date")
    # Admins may backdate
    if not actor.is_admin and start < _today():
        raise ValidationError("Start date cannot be in the past for customer bookings")

    vehicle_id = _parse_id(data["vehicle_id"], "vehicle_id")
    pickup_id = _parse_id(data["pickup_location_id"], "pickup_location_id")
    dropoff_id = _parse_id(data["dropoff_location_id"], "dropoff_location_id")

    if actor.is_admin:
        user_id = _parse_id(data["user_id"], "user_id")
        if not db.session.get(User, user_id):
            raise NotFoundError("user", user_id)
    else:
        user_id = actor.user_id

    vehicle = _lock_vehicle(vehicle_id)
    if not vehicle:
        raise NotFoundError("vehicle", vehicle_id)
    if not db.session.get(Location, pickup_id):
        raise NotFoundError("pickup location", pickup_id)
    if not db.session.get(Location, dropoff_id):
        raise NotFoundError("dropoff location", dropoff_id)

    return {
        "user_id": user_id,
        "vehicle": vehicle,
        "start_date": start,
        "end_date": end,
        "pickup_location_id": pickup_id,
        "dropoff_location_id": dropoff_id,
    }


def _ensure_available(actor: Actor, vehicle: Vehicle, start: date, end: date, exclude_booking_id=None):
    result = check_availability(vehicle.id, start, end, exclude_booking_id=exclude_booking_id)
    if result.available:
        return

    logger.info(
        "Rejected booking for vehicle %s %s..%s, blocked by %s",
        vehicle.id, start, end, result.conflicting_ids,
    )
    with _storage():
        log_event(
            "BOOKING_CONFLICT",
            user_id=actor.user_id,
            entity="vehicle",
            entity_id=vehicle.id,
            metadata={
                "start_date": start.isoformat(),
                "end_date": end.isoformat(),
                "conflicting_booking_ids": result.conflicting_ids,
                "exclude_booking_id": exclude_booking_id,
            },
            commit=False,
        )
    raise ConflictError(
        f"Vehicle {vehicle.display_name} is not available for the selected dates",
        vehicle_id=vehicle.id,
        license_plate=vehicle.license_plate,
        start_date=start.isoformat(),
        end_date=end.isoformat(),
        conflicting_booking_ids=result.conflicting_ids,
    )


# ---------- operations ----------

def create_booking(actor: Actor, data: dict) -> Booking:
    required = _REQUIRED_FIELDS + (("user_id",) if actor.is_admin else ())
    fields = _validate_booking_fields(actor, data, required)
    vehicle = fields["vehicle"]
    start, end = fields["start_date"], fields["end_date"]

    _ensure_available(actor, vehicle, start, end)

    if actor.is_admin and not _is_blank(data.get("total_cost")):
        total_cost = _parse_cost(data["total_cost"])
    else:
        total_cost = calculate_cost(start, end, vehicle.daily_rate)

    status = PENDING_PAYMENT
    requested_status = data.get("status")
    if actor.is_admin and requested_status in BOOKING_STATUSES:
        status = requested_status

    booking = Booking(
        user_id=fields["user_id"],
        vehicle_id=vehicle.id,
        start_date=start,
        end_date=end,
        pickup_location_id=fields["pickup_location_id"],
        dropoff_location_id=fields["dropoff_location_id"],
        total_cost=total_cost,
        status=status,
    )
    with _storage():
        db.session.add(booking)
        db.session.flush()
        log_event(
            "BOOKING_CREATE",
            user_id=actor.user_id,
            entity="booking",
            entity_id=booking.id,
            metadata={"vehicle_id": vehicle.id, "status": status, "total_cost": total_cost},
            commit=False,
        )

    logger.info("Booking %s created for vehicle %s (%s..%s)", booking.id, vehicle.id, start, end)
    return booking


def update_booking(actor: Actor, booking_id: int, data: dict) -> Booking:
    if not actor.is_admin:
        raise ForbiddenError("Only administrators can update bookings")

    booking = _load_booking(booking_id)

    fields = _validate_booking_fields(actor, data, _REQUIRED_FIELDS + ("user_id", "status"))
    status = data["status"]
    if status not in BOOKING_STATUSES:
        raise ValidationError(
            f"Invalid booking status '{status}'",
            allowed=list(BOOKING_STATUSES),
        )

    vehicle = fields["vehicle"]
    start, end = fields["start_date"], fields["end_date"]
    _ensure_available(actor, vehicle, start, end, exclude_booking_id=booking.id)

    if _is_blank(data.get("total_cost")):
        total_cost = calculate_cost(start, end, vehicle.daily_rate)
    else:
        total_cost = _parse_cost(data["total_cost"])

    previous_status = booking.status
    booking.user_id = fields["user_id"]
    booking.vehicle_id = vehicle.id
    booking.start_date = start
    booking.end_date = end
    booking.pickup_location_id = fields["pickup_location_id"]
    booking.dropoff_location_id = fields["dropoff_location_id"]
    booking.total_cost = total_cost
    booking.status = status

    with _storage():
        log_event(
            "BOOKING_UPDATE",
            user_id=actor.user_id,
            entity="booking",
            entity_id=booking.id,
            metadata={"from_status": previous_status, "to_status": status, "total_cost": total_cost},
            commit=False,
        )
    return booking


def confirm_payment(actor: Actor, booking_id: int) -> Booking:
    booking = _load_booking(booking_id)

    if booking.user_id != actor.user_id and not actor.is_admin:
        raise ForbiddenError("Not authorized to update this booking")

    if booking.status != PENDING_PAYMENT:
        raise InvalidStateError(
            f"Booking status is already '{booking.status}', cannot confirm payment.",
            current_status=booking.status,
        )

    # Pending bookings do not hold the vehicle, so another booking may have
    # been confirmed over the same dates since this one was created.
    vehicle = _lock_vehicle(booking.vehicle_id)
    _ensure_available(actor, vehicle, booking.start_date, booking.end_date, exclude_booking_id=booking.id)

    now = datetime.utcnow()
    booking.status = CONFIRMED
    payment = Payment(
        booking=booking,
        provider="SIMULATED",
        amount=booking.total_cost,
        currency=current_app.config.get("PAYMENT_CURRENCY", "USD"),
        status="PAID",
        paid_at=now,
    )
    with _storage():
        db.session.add(payment)
        log_event(
            "BOOKING_PAYMENT_CONFIRM",
            user_id=actor.user_id,
            entity="booking",
            entity_id=booking.id,
            metadata={"amount": booking.total_cost},
            commit=False,
        )
    return booking


def cancel_booking(actor: Actor, booking_id: int, reason: str = None) -> Booking:
    """Self-service cancellation by the booking's owner."""
    booking = _load_booking(booking_id)

    if booking.user_id != actor.user_id:
        raise ForbiddenError("Not authorized to cancel this booking")

    if booking.status != CONFIRMED:
        raise InvalidStateError(
            f"Booking status is '{booking.status}', only confirmed bookings can be cancelled.",
            current_status=booking.status,
        )

    booking.status = CANCELLED
    booking.cancelled_at = datetime.utcnow()
    booking.cancel_reason = (reason or "").strip()[:120] or None
    for payment in booking.payments:
        if payment.status == "PAID":
            payment.status = "REFUNDED"

    with _storage():
        log_event(
            "BOOKING_CANCEL",
            user_id=actor.user_id,
            entity="booking",
            entity_id=booking.id,
            metadata={"reason": booking.cancel_reason},
            commit=False,
        )
    return booking


def delete_booking(actor: Actor, booking_id: int) -> None:
    if not actor.is_admin:
        raise ForbiddenError("Only administrators can delete bookings")

    booking = _load_booking(booking_id)
    with _storage():
        db.session.delete(booking)
        log_event(
            "BOOKING_DELETE",
            user_id=actor.user_id,
            entity="booking",
            entity_id=booking_id,
            metadata={"status": booking.status, "vehicle_id": booking.vehicle_id},
            commit=False,
        )


def advance_booking(actor: Actor, booking_id: int, new_status: str) -> Booking:
    """Forward move along the state machine (vehicle pickup and return)."""
    if not actor.is_admin:
        raise ForbiddenError("Only administrators can change booking status")

    booking = _load_booking(booking_id)
    if not can_transition(booking.status, new_status):
        raise InvalidStateError(
            f"Cannot move booking from '{booking.status}' to '{new_status}'.",
            current_status=booking.status,
        )

    previous_status = booking.status
    booking.status = new_status
    action = {ACTIVE: "BOOKING_PICKUP", COMPLETED: "BOOKING_RETURN"}.get(new_status, "BOOKING_STATUS_CHANGE")
    with _storage():
        log_event(
            action,
            user_id=actor.user_id,
            entity="booking",
            entity_id=booking.id,
            metadata={"from_status": previous_status, "to_status": new_status},
            commit=False,
        )
    return booking


def get_booking(actor: Actor, booking_id: int) -> Booking:
    booking = _load_booking(booking_id)
    if booking.user_id != actor.user_id and not actor.is_admin:
        raise ForbiddenError("Not authorized to view this booking")
    return booking


def list_bookings(actor: Actor, status: str = None, page: int = 1, limit: int = 100, sort: str = None):
    """Customers see their own bookings, admins see all. Returns (rows, total, pagination)."""
    q = Booking.query
    if not actor.is_admin:
        q = q.filter(Booking.user_id == actor.user_id)

    if status:
        if status not in BOOKING_STATUSES:
            raise ValidationError(f"Invalid booking status '{status}'", allowed=list(BOOKING_STATUSES))
        q = q.filter(Booking.status == status)

    q = apply_sort(q, Booking, sort, SORTABLE_FIELDS, default="-start_date,-id")
    return paginate(q, page, limit)
