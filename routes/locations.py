from flask import Blueprint, request, jsonify, g
from sqlalchemy import or_

from models import db
from models.booking import Booking
from models.location import Location
from models.vehicle import Vehicle
from security.rbac import require_roles
from utils.audit import log_event
from utils.errors import ValidationError, NotFoundError, ConflictError
from utils.request_body import json_body

location_bp = Blueprint("location", __name__, url_prefix="/locations")

LOCATION_FIELDS = ("address", "city", "country")


def serialize_location(loc):
    return {
        "id": loc.id,
        "address": loc.address,
        "city": loc.city,
        "country": loc.country,
        "created_at": loc.created_at.isoformat(),
    }


def _get_location(location_id: int) -> Location:
    loc = db.session.get(Location, location_id)
    if not loc:
        raise NotFoundError("location", location_id)
    return loc


def _clean_fields(data: dict, partial: bool) -> dict:
    out = {}
    for name in LOCATION_FIELDS:
        if partial and name not in data:
            continue
        value = data.get(name)
        value = value.strip() if isinstance(value, str) else ""
        if not value:
            raise ValidationError(f"{name} is required", field=name)
        out[name] = value
    return out


@location_bp.get("")
def list_locations():
    city = (request.args.get("city") or "").strip()
    q = Location.query
    if city:
        q = q.filter(Location.city.ilike(f"%{city}%"))

    rows = q.order_by(Location.city.asc(), Location.id.asc()).all()
    return jsonify(count=len(rows), data=[serialize_location(loc) for loc in rows]), 200


@location_bp.get("/<int:location_id>")
def get_location(location_id: int):
    return jsonify(serialize_location(_get_location(location_id))), 200


@location_bp.post("")
@require_roles("ADMIN")
def create_location():
    data = json_body()
    loc = Location(**_clean_fields(data, partial=False))
    db.session.add(loc)
    db.session.commit()

    log_event("LOCATION_CREATE", user_id=g.user.id, entity="location", entity_id=loc.id)
    return jsonify(serialize_location(loc)), 201


@location_bp.put("/<int:location_id>")
@require_roles("ADMIN")
def update_location(location_id: int):
    data = json_body()
    loc = _get_location(location_id)
    for name, value in _clean_fields(data, partial=True).items():
        setattr(loc, name, value)
    db.session.commit()

    log_event("LOCATION_UPDATE", user_id=g.user.id, entity="location", entity_id=loc.id)
    return jsonify(serialize_location(loc)), 200


@location_bp.delete("/<int:location_id>")
@require_roles("ADMIN")
def delete_location(location_id: int):
    loc = _get_location(location_id)

    vehicles = Vehicle.query.filter_by(location_id=loc.id).count()
    bookings = (
        Booking.query
        .filter(or_(Booking.pickup_location_id == loc.id, Booking.dropoff_location_id == loc.id))
        .count()
    )
    if vehicles or bookings:
        raise ConflictError(
            "Location is still referenced and cannot be deleted",
            location_id=loc.id,
            vehicles=vehicles,
            bookings=bookings,
        )

    db.session.delete(loc)
    db.session.commit()

    log_event("LOCATION_DELETE", user_id=g.user.id, entity="location", entity_id=location_id)
    return jsonify({}), 200
