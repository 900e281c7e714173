from functools import wraps
from flask import g, jsonify

from models import db
from models.user import User
from security.rbac import Actor
from security.session import get_session_from_request


def load_current_user():
    """Resolve the bearer token (or cookie) into g.user, g.session and g.actor."""
    g.user = g.session = g.actor = None

    sess = get_session_from_request()
    if not sess:
        return

    user = db.session.get(User, sess.user_id)
    if user is None:
        # session outlived its user
        return

    g.session = sess
    g.user = user
    g.actor = Actor.from_user(user)


def login_required(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        if g.get("actor") is None:
            return jsonify(error="Authentication required"), 401
        return fn(*args, **kwargs)
    return wrapper
