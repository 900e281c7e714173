from datetime import date

from flask import Blueprint, jsonify, g, request, current_app
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from models import db
from models.audit_log import AuditLog
from models.booking import Booking, ACTIVE, COMPLETED, BLOCKING_STATUSES
from models.session import Session
from models.user import User, Role, ADMIN, CUSTOMER
from models.vehicle import Vehicle
from routes.booking import serialize_booking
from security.rbac import require_roles
from utils.audit import log_event
from utils.errors import ValidationError, NotFoundError, ConflictError, ForbiddenError
from utils.profile import clean_email, apply_profile
from utils.request_body import json_body

admin_bp = Blueprint("admin", __name__, url_prefix="/admin")


def serialize_user(u):
    return {
        "id": u.id,
        "email": u.email,
        "full_name": u.full_name,
        "phone_number": u.phone_number,
        "roles": u.role_names,
        "created_at": u.created_at.isoformat(),
    }


def _get_user(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if not user:
        raise NotFoundError("user", user_id)
    return user


def _resolve_roles(names):
    if not isinstance(names, list) or not names:
        raise ValidationError("roles must be a non-empty list")

    role_names = {n.strip().upper() for n in names if isinstance(n, str) and n.strip()}
    if not role_names:
        raise ValidationError("roles must include valid role names")

    roles = Role.query.filter(Role.name.in_(role_names)).all()
    missing = role_names - {r.name for r in roles}
    if missing:
        raise ValidationError("Unknown role(s)", missing=sorted(missing))
    return roles


# ---------- dashboard ----------
@admin_bp.get("/overview")
@require_roles("ADMIN")
def overview():
    total_revenue = (
        db.session.query(func.coalesce(func.sum(Booking.total_cost), 0))
        .filter(Booking.status == COMPLETED)
        .scalar()
    )
    active_count = Booking.query.filter(Booking.status == ACTIVE).count()
    upcoming_count = (
        Booking.query
        .filter(Booking.status.in_(BLOCKING_STATUSES), Booking.start_date >= date.today())
        .count()
    )
    recent_limit = current_app.config.get("RECENT_BOOKINGS_LIMIT", 5)
    recent = Booking.query.order_by(Booking.created_at.desc(), Booking.id.desc()).limit(recent_limit).all()

    return jsonify(
        total_revenue=float(total_revenue or 0),
        active_bookings_count=active_count,
        future_bookings_count=upcoming_count,
        total_users_count=User.query.count(),
        total_vehicles_count=Vehicle.query.count(),
        recent_bookings=[serialize_booking(b) for b in recent],
    ), 200


# ---------- users ----------
@admin_bp.get("/users")
@require_roles("ADMIN")
def list_users():
    role_filter = (request.args.get("role") or "").strip().upper()
    q = User.query
    if role_filter:
        q = q.join(User.roles).filter(Role.name == role_filter)

    users = q.order_by(User.full_name.asc(), User.id.asc()).limit(1000).all()
    return jsonify(count=len(users), data=[serialize_user(u) for u in users]), 200


@admin_bp.get("/users/<int:user_id>")
@require_roles("ADMIN")
def get_user(user_id: int):
    return jsonify(serialize_user(_get_user(user_id))), 200


@admin_bp.post("/users")
@require_roles("ADMIN")
def create_user():
    data = json_body()
    email = clean_email(data.get("email"))

    roles = _resolve_roles(data.get("roles") or [CUSTOMER])
    user = User(email=email, roles=roles)
    apply_profile(user, data)
    db.session.add(user)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Email already registered", email=email)

    log_event("ADMIN_USER_CREATE", user_id=g.user.id, entity="user", entity_id=user.id,
              metadata={"roles": user.role_names})
    return jsonify(serialize_user(user)), 201


@admin_bp.put("/users/<int:user_id>")
@require_roles("ADMIN")
def update_user(user_id: int):
    data = json_body()
    user = _get_user(user_id)

    if "email" in data:
        user.email = clean_email(data.get("email"))
    apply_profile(user, data)

    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Email already registered", email=data.get("email"))

    log_event("ADMIN_USER_UPDATE", user_id=g.user.id, entity="user", entity_id=user.id)
    return jsonify(serialize_user(user)), 200


@admin_bp.post("/users/<int:user_id>/roles")
@require_roles("ADMIN")
def update_user_roles(user_id: int):
    data = json_body()
    roles = _resolve_roles(data.get("roles"))
    role_names = {r.name for r in roles}
    user = _get_user(user_id)

    if user.id == g.user.id and ADMIN not in role_names:
        raise ForbiddenError("Cannot remove your own ADMIN role")

    if ADMIN not in role_names and user.is_admin:
        admin_count = User.query.join(User.roles).filter(Role.name == ADMIN).count()
        if admin_count <= 1:
            raise ForbiddenError("Cannot remove the last ADMIN")

    user.roles = roles
    db.session.commit()

    log_event("ADMIN_UPDATE_ROLES", user_id=g.user.id, entity="user", entity_id=user.id,
              metadata={"roles": sorted(role_names)})
    return jsonify(message="Roles updated", roles=user.role_names), 200


@admin_bp.delete("/users/<int:user_id>")
@require_roles("ADMIN")
def delete_user(user_id: int):
    user = _get_user(user_id)
    if user.id == g.user.id:
        raise ForbiddenError("Cannot delete your own account")

    booking_count = Booking.query.filter_by(user_id=user.id).count()
    if booking_count:
        raise ConflictError("User has bookings and cannot be deleted", user_id=user.id, bookings=booking_count)

    Session.query.filter_by(user_id=user.id).delete()
    db.session.delete(user)
    db.session.commit()

    log_event("ADMIN_USER_DELETE", user_id=g.user.id, entity="user", entity_id=user_id)
    return jsonify({}), 200


# ---------- audit trail ----------
@admin_bp.get("/audit-logs")
@require_roles("ADMIN")
def list_audit_logs():
    limit = request.args.get("limit", type=int) or 200
    limit = max(1, min(limit, 500))

    q = AuditLog.query
    action = request.args.get("action")
    if action:
        q = q.filter(AuditLog.action == action)
    entity = request.args.get("entity")
    if entity:
        q = q.filter(AuditLog.entity == entity)
    user_id = request.args.get("user_id", type=int)
    if user_id is not None:
        q = q.filter(AuditLog.user_id == user_id)

    rows = q.order_by(AuditLog.timestamp.desc(), AuditLog.id.desc()).limit(limit).all()
    return jsonify([
        {
            "id": r.id,
            "timestamp": r.timestamp.isoformat(),
            "user_id": r.user_id,
            "action": r.action,
            "entity": r.entity,
            "entity_id": r.entity_id,
            "ip": r.ip,
            "metadata": r.metadata_json,
        }
        for r in rows
    ]), 200
