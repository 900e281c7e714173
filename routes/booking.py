from flask import Blueprint, request, jsonify

from models.booking import ACTIVE, COMPLETED
from security.rbac import require_roles, current_actor
from services import bookings as booking_service
from utils.auth_context import login_required
from utils.pagination import page_args
from utils.request_body import json_body

booking_bp = Blueprint("booking", __name__, url_prefix="/bookings")


def _location_summary(loc):
    if not loc:
        return None
    return {"id": loc.id, "address": loc.address, "city": loc.city}


def serialize_booking(b):
    vehicle = b.vehicle
    return {
        "id": b.id,
        "user_id": b.user_id,
        "vehicle_id": b.vehicle_id,
        "vehicle": {
            "id": vehicle.id,
            "make": vehicle.make,
            "model": vehicle.model,
            "year": vehicle.year,
            "license_plate": vehicle.license_plate,
        } if vehicle else None,
        "start_date": b.start_date.isoformat(),
        "end_date": b.end_date.isoformat(),
        "pickup_location_id": b.pickup_location_id,
        "pickup_location": _location_summary(b.pickup_location),
        "dropoff_location_id": b.dropoff_location_id,
        "dropoff_location": _location_summary(b.dropoff_location),
        "total_cost": b.total_cost,
        "status": b.status,
        "created_at": b.created_at.isoformat(),
        "updated_at": b.updated_at.isoformat(),
        "cancelled_at": b.cancelled_at.isoformat() if b.cancelled_at else None,
        "cancel_reason": b.cancel_reason,
    }


# ---------- CUSTOMERS/ADMIN: create & browse ----------
@booking_bp.post("")
@login_required
def create_booking():
    data = json_body()
    booking = booking_service.create_booking(current_actor(), data)
    return jsonify(serialize_booking(booking)), 201


@booking_bp.get("")
@login_required
def list_bookings():
    page, limit = page_args(request.args, "BOOKINGS_PAGE_LIMIT")
    rows, total, pagination = booking_service.list_bookings(
        current_actor(),
        status=request.args.get("status"),
        page=page,
        limit=limit,
        sort=request.args.get("sort"),
    )
    return jsonify(
        count=len(rows),
        total=total,
        pagination=pagination,
        data=[serialize_booking(b) for b in rows],
    ), 200


@booking_bp.get("/<int:booking_id>")
@login_required
def get_booking(booking_id: int):
    booking = booking_service.get_booking(current_actor(), booking_id)
    return jsonify(serialize_booking(booking)), 200


# ---------- OWNER/ADMIN: simulated payment ----------
@booking_bp.post("/<int:booking_id>/confirm-payment")
@login_required
def confirm_payment(booking_id: int):
    booking = booking_service.confirm_payment(current_actor(), booking_id)
    return jsonify(serialize_booking(booking)), 200


# ---------- OWNER: self-service cancel ----------
@booking_bp.put("/<int:booking_id>/cancel")
@login_required
def cancel_booking(booking_id: int):
    data = json_body()
    booking = booking_service.cancel_booking(current_actor(), booking_id, reason=data.get("reason"))
    return jsonify(message="Booking cancelled", data=serialize_booking(booking)), 200


# ---------- ADMIN: edit, delete, pickup/return ----------
@booking_bp.put("/<int:booking_id>")
@require_roles("ADMIN")
def update_booking(booking_id: int):
    data = json_body()
    booking = booking_service.update_booking(current_actor(), booking_id, data)
    return jsonify(serialize_booking(booking)), 200


@booking_bp.delete("/<int:booking_id>")
@require_roles("ADMIN")
def delete_booking(booking_id: int):
    booking_service.delete_booking(current_actor(), booking_id)
    return jsonify({}), 200


@booking_bp.post("/<int:booking_id>/pickup")
@require_roles("ADMIN")
def pickup_vehicle(booking_id: int):
    booking = booking_service.advance_booking(current_actor(), booking_id, ACTIVE)
    return jsonify(serialize_booking(booking)), 200


@booking_bp.post("/<int:booking_id>/return")
@require_roles("ADMIN")
def return_vehicle(booking_id: int):
    booking = booking_service.advance_booking(current_actor(), booking_id, COMPLETED)
    return jsonify(serialize_booking(booking)), 200
