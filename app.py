from flask import Flask, g, jsonify
from flask_migrate import Migrate
from sqlalchemy import inspect
from sqlalchemy.exc import SQLAlchemyError

from config import Config
from routes import health_bp, auth_bp, admin_bp, booking_bp, vehicle_bp, location_bp

from models import db
from utils.seed import seed_roles
from utils.auth_context import load_current_user
from utils.errors import AppError, StorageError


def create_app(config_object=Config):
    app = Flask(__name__)
    app.config.from_object(config_object)

    # Register routes
    app.register_blueprint(health_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(admin_bp)
    app.register_blueprint(booking_bp)
    app.register_blueprint(vehicle_bp)
    app.register_blueprint(location_bp)

    # Database init
    db.init_app(app)

    # Migrations
    Migrate(app, db)

    with app.app_context():
        if app.config.get("CREATE_TABLES_ON_STARTUP"):
            db.create_all()
        # Seed default roles once the schema exists (safe & idempotent)
        if inspect(db.engine).has_table("roles"):
            seed_roles()

    @app.before_request
    def _load_user():
        load_current_user()

    @app.errorhandler(AppError)
    def _app_error(err):
        db.session.rollback()
        user = getattr(g, "user", None)
        app.logger.info("%s: %s (user=%s)", type(err).__name__, err.message, user.id if user else None)
        return jsonify(err.to_dict()), err.status_code

    @app.errorhandler(SQLAlchemyError)
    def _storage_error(err):
        db.session.rollback()
        app.logger.exception("Unhandled storage error")
        failure = StorageError()
        return jsonify(failure.to_dict()), failure.status_code

    @app.errorhandler(404)
    def _not_found(err):
        return jsonify(error="Not found"), 404

    @app.errorhandler(405)
    def _method_not_allowed(err):
        return jsonify(error="Method not allowed"), 405

    @app.after_request
    def add_security_headers(resp):
        resp.headers["X-Content-Type-Options"] = "nosniff"
        resp.headers["X-Frame-Options"] = "DENY"
        resp.headers["Referrer-Policy"] = "no-referrer"
        resp.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none';"
        return resp


    register_cli(app)


    return app

#-------------------------
import click
from models.user import User, Role, ADMIN, CUSTOMER
from security.session import create_session
from utils.audit import log_event

def _get_role(name):
    role = Role.query.filter_by(name=name).first()
    if not role:
        role = Role(name=name)
        db.session.add(role)
        db.session.flush()
    return role

def register_cli(app):
    @app.cli.command("create-user")
    @click.argument("email")
    @click.option("--name", default=None, help="Full name")
    @click.option("--admin", is_flag=True, help="Grant the ADMIN role")
    def create_user(email, name, admin):
        """Create a customer (or admin) account."""
        email = email.strip().lower()
        if User.query.filter_by(email=email).first():
            print("User already exists")
            return

        roles = [_get_role(CUSTOMER)]
        if admin:
            roles.append(_get_role(ADMIN))
        user = User(email=email, full_name=name, roles=roles)
        db.session.add(user)
        db.session.commit()

        log_event("CLI_USER_CREATE", entity="user", entity_id=user.id, metadata={"admin": admin})
        print(f"Created user {user.email} (id={user.id})")

    @app.cli.command("make-admin")
    @click.argument("email")
    def make_admin(email):
        """Promote a user to ADMIN by email (bootstrap)."""
        user = User.query.filter_by(email=email.strip().lower()).first()
        if not user:
            print("User not found")
            return

        admin_role = _get_role(ADMIN)
        if admin_role not in user.roles:
            user.roles.append(admin_role)
            db.session.commit()

        log_event("CLI_MAKE_ADMIN", entity="user", entity_id=user.id)
        print(f"{user.email} promoted to ADMIN")

    @app.cli.command("issue-token")
    @click.argument("email")
    def issue_token(email):
        """Print a session token for calling the API as this user."""
        user = User.query.filter_by(email=email.strip().lower()).first()
        if not user:
            print("User not found")
            return

        print(create_session(user.id, issued_by="cli"))

#-------------------------




if __name__ == "__main__":
    app = create_app()
    # Run locally
    app.run(host="127.0.0.1", port=5002)
