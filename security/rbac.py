from dataclasses import dataclass
from functools import wraps
from flask import g, jsonify

from models.user import ADMIN


@dataclass(frozen=True)
class Actor:
    """Caller capability handed to the booking core instead of the request."""
    user_id: int
    is_admin: bool = False

    @classmethod
    def from_user(cls, user) -> "Actor":
        return cls(user_id=user.id, is_admin=user.is_admin)


def current_actor() -> Actor:
    return g.actor

def require_roles(*role_names: str):
    """
    Usage: @require_roles("ADMIN")
    """
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            user = getattr(g, "user", None)
            if user is None:
                return jsonify(error="Authentication required"), 401

            user_roles = {r.name for r in user.roles}
            if ADMIN not in user_roles and not user_roles.intersection(set(role_names)):
                return jsonify(error="Forbidden"), 403

            return fn(*args, **kwargs)
        return wrapper
    return decorator
