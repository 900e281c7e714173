from flask import Blueprint, jsonify, current_app, g
from sqlalchemy.exc import IntegrityError

from models import db
from security.session import revoke_session
from utils.audit import log_event
from utils.auth_context import login_required
from utils.errors import ValidationError, ConflictError
from utils.profile import clean_email, apply_profile, merge_ai_preferences
from utils.request_body import json_body

auth_bp = Blueprint("auth", __name__, url_prefix="/auth")


def serialize_me(user):
    return {
        "id": user.id,
        "email": user.email,
        "full_name": user.full_name,
        "phone_number": user.phone_number,
        "roles": user.role_names,
        "is_admin": user.is_admin,
        "ai_preferences": merge_ai_preferences(user.ai_preferences, {}),
    }


@auth_bp.get("/me")
@login_required
def me():
    return jsonify(serialize_me(g.user)), 200


@auth_bp.put("/me")
@login_required
def update_me():
    data = json_body()
    user = g.user

    full_name = data.get("full_name")
    if not isinstance(full_name, str) or not full_name.strip() or not data.get("email"):
        raise ValidationError("Please provide full_name and email")

    email = clean_email(data.get("email"))
    user.email = email
    apply_profile(user, data)

    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Email already registered", email=email)

    log_event("PROFILE_UPDATE", user_id=user.id, entity="user", entity_id=user.id)
    return jsonify(serialize_me(user)), 200


@auth_bp.put("/me/preferences")
@login_required
def update_preferences():
    data = json_body()
    user = g.user

    user.ai_preferences = merge_ai_preferences(user.ai_preferences, data)
    db.session.commit()

    log_event("PREFERENCES_UPDATE", user_id=user.id, entity="user", entity_id=user.id,
              metadata=user.ai_preferences)
    return jsonify(user.ai_preferences), 200


@auth_bp.post("/logout")
@login_required
def logout():
    cookie_name = current_app.config.get("AUTH_COOKIE_NAME", "rental_session")

    revoke_session(g.session)
    log_event("LOGOUT", user_id=g.user.id)

    resp = jsonify(message="Logged out")
    resp.delete_cookie(cookie_name, path="/")
    return resp, 200
