from datetime import date

from flask import Blueprint, request, jsonify, g
from sqlalchemy.exc import IntegrityError

from models import db
from models.booking import Booking
from models.location import Location
from models.vehicle import Vehicle, FUEL_TYPES, DRIVETRAINS, CATEGORIES, AVAILABILITY_STATUSES
from security.rbac import require_roles
from services.availability import check_availability
from services.bookings import parse_booking_date
from utils.audit import log_event
from utils.errors import ValidationError, NotFoundError, ConflictError
from utils.pagination import page_args, apply_sort, paginate
from utils.request_body import json_body

vehicle_bp = Blueprint("vehicle", __name__, url_prefix="/vehicles")

VEHICLE_SORT_FIELDS = {"id", "make", "model", "year", "daily_rate", "passenger_capacity", "created_at"}
REQUIRED_FIELDS = ("make", "model", "year", "license_plate", "passenger_capacity",
                   "fuel_type", "category", "daily_rate", "location_id")


def serialize_vehicle(v):
    return {
        "id": v.id,
        "make": v.make,
        "model": v.model,
        "year": v.year,
        "license_plate": v.license_plate,
        "passenger_capacity": v.passenger_capacity,
        "fuel_type": v.fuel_type,
        "drivetrain": v.drivetrain,
        "category": v.category,
        "features": v.features or [],
        "daily_rate": v.daily_rate,
        "location_id": v.location_id,
        "location": {
            "id": v.location.id,
            "address": v.location.address,
            "city": v.location.city,
            "country": v.location.country,
        } if v.location else None,
        "availability_status": v.availability_status,
        "created_at": v.created_at.isoformat(),
    }


def _get_vehicle(vehicle_id: int) -> Vehicle:
    vehicle = db.session.get(Vehicle, vehicle_id)
    if not vehicle:
        raise NotFoundError("vehicle", vehicle_id)
    return vehicle


def _int_field(data, name, low, high):
    value = data.get(name)
    if isinstance(value, bool) or (isinstance(value, float) and not value.is_integer()):
        raise ValidationError(f"{name} must be an integer", field=name)
    try:
        value = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be an integer", field=name)
    if not low <= value <= high:
        raise ValidationError(f"{name} must be between {low} and {high}", field=name)
    return value


def _choice_field(data, name, choices):
    value = data.get(name)
    if value not in choices:
        raise ValidationError(f"{name} must be one of: {', '.join(choices)}", field=name)
    return value


def _apply_vehicle_fields(vehicle: Vehicle, data: dict, partial: bool):
    if not partial:
        missing = [f for f in REQUIRED_FIELDS if data.get(f) in (None, "")]
        if missing:
            raise ValidationError("Missing required vehicle fields: " + ", ".join(missing), missing=missing)

    for name in ("make", "model"):
        if name in data:
            value = (data.get(name) or "").strip() if isinstance(data.get(name), str) else ""
            if not value:
                raise ValidationError(f"{name} is required", field=name)
            setattr(vehicle, name, value)

    if "license_plate" in data:
        plate = data.get("license_plate")
        plate = plate.strip().upper() if isinstance(plate, str) else ""
        if not plate:
            raise ValidationError("license_plate is required", field="license_plate")
        vehicle.license_plate = plate

    if "year" in data:
        vehicle.year = _int_field(data, "year", 1950, date.today().year + 1)
    if "passenger_capacity" in data:
        vehicle.passenger_capacity = _int_field(data, "passenger_capacity", 1, 20)
    if "fuel_type" in data:
        vehicle.fuel_type = _choice_field(data, "fuel_type", FUEL_TYPES)
    if "category" in data:
        vehicle.category = _choice_field(data, "category", CATEGORIES)
    if "drivetrain" in data:
        vehicle.drivetrain = None if data["drivetrain"] in (None, "") else _choice_field(data, "drivetrain", DRIVETRAINS)
    if "availability_status" in data:
        vehicle.availability_status = _choice_field(data, "availability_status", AVAILABILITY_STATUSES)

    if "features" in data:
        features = data.get("features") or []
        if not isinstance(features, list) or not all(isinstance(f, str) for f in features):
            raise ValidationError("features must be a list of strings", field="features")
        vehicle.features = [f.strip() for f in features if f.strip()]

    if "daily_rate" in data:
        try:
            rate = float(data.get("daily_rate"))
        except (TypeError, ValueError):
            raise ValidationError("daily_rate must be a number", field="daily_rate")
        if rate < 0:
            raise ValidationError("daily_rate must be non-negative", field="daily_rate")
        vehicle.daily_rate = round(rate, 2)

    if "location_id" in data:
        location_id = _int_field(data, "location_id", 1, 2**31 - 1)
        if not db.session.get(Location, location_id):
            raise NotFoundError("location", location_id)
        vehicle.location_id = location_id


# ---------- PUBLIC: browse the fleet ----------
@vehicle_bp.get("")
def list_vehicles():
    q = Vehicle.query

    for name in ("category", "fuel_type", "availability_status"):
        value = request.args.get(name)
        if value:
            q = q.filter(getattr(Vehicle, name) == value)

    location_id = request.args.get("location_id", type=int)
    if location_id:
        q = q.filter(Vehicle.location_id == location_id)

    min_capacity = request.args.get("min_capacity", type=int)
    if min_capacity:
        q = q.filter(Vehicle.passenger_capacity >= min_capacity)

    max_rate = request.args.get("max_rate", type=float)
    if max_rate is not None:
        q = q.filter(Vehicle.daily_rate <= max_rate)

    q = apply_sort(q, Vehicle, request.args.get("sort"), VEHICLE_SORT_FIELDS, default="-created_at,-id")
    page, limit = page_args(request.args, "VEHICLES_PAGE_LIMIT")
    rows, total, pagination = paginate(q, page, limit)

    return jsonify(
        count=len(rows),
        total=total,
        pagination=pagination,
        data=[serialize_vehicle(v) for v in rows],
    ), 200


@vehicle_bp.get("/<int:vehicle_id>")
def get_vehicle(vehicle_id: int):
    return jsonify(serialize_vehicle(_get_vehicle(vehicle_id))), 200


@vehicle_bp.get("/<int:vehicle_id>/availability")
def vehicle_availability(vehicle_id: int):
    vehicle = _get_vehicle(vehicle_id)
    start_raw = request.args.get("start_date")
    end_raw = request.args.get("end_date")
    if not start_raw or not end_raw:
        raise ValidationError("start_date and end_date are required")

    start = parse_booking_date(start_raw, "start_date")
    end = parse_booking_date(end_raw, "end_date")
    if start >= end:
        raise ValidationError("Start date must be before end date")

    result = check_availability(vehicle.id, start, end)
    return jsonify(
        vehicle_id=vehicle.id,
        start_date=start.isoformat(),
        end_date=end.isoformat(),
        available=result.available,
    ), 200


# ---------- ADMIN: manage inventory ----------
@vehicle_bp.post("")
@require_roles("ADMIN")
def create_vehicle():
    data = json_body()
    vehicle = Vehicle()
    _apply_vehicle_fields(vehicle, data, partial=False)
    if not vehicle.availability_status:
        vehicle.availability_status = "available"

    db.session.add(vehicle)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("License plate already registered", license_plate=vehicle.license_plate)

    log_event("VEHICLE_CREATE", user_id=g.user.id, entity="vehicle", entity_id=vehicle.id)
    return jsonify(serialize_vehicle(vehicle)), 201


@vehicle_bp.put("/<int:vehicle_id>")
@require_roles("ADMIN")
def update_vehicle(vehicle_id: int):
    data = json_body()
    vehicle = _get_vehicle(vehicle_id)
    _apply_vehicle_fields(vehicle, data, partial=True)

    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("License plate already registered", license_plate=data.get("license_plate"))

    log_event("VEHICLE_UPDATE", user_id=g.user.id, entity="vehicle", entity_id=vehicle.id,
              metadata={"fields": sorted(data.keys())})
    return jsonify(serialize_vehicle(vehicle)), 200


@vehicle_bp.delete("/<int:vehicle_id>")
@require_roles("ADMIN")
def delete_vehicle(vehicle_id: int):
    vehicle = _get_vehicle(vehicle_id)

    booking_count = Booking.query.filter_by(vehicle_id=vehicle.id).count()
    if booking_count:
        raise ConflictError(
            "Vehicle has bookings and cannot be deleted; set availability_status to 'maintenance' instead",
            vehicle_id=vehicle.id,
            bookings=booking_count,
        )

    db.session.delete(vehicle)
    db.session.commit()

    log_event("VEHICLE_DELETE", user_id=g.user.id, entity="vehicle", entity_id=vehicle_id)
    return jsonify({}), 200
