from datetime import datetime
from models.db import db

CUSTOMER = "CUSTOMER"
ADMIN = "ADMIN"

# Rental assistant preferences stored per user
PREFERENCE_CHOICES = {
    "preferred_car_type": ("sedan", "suv", "luxury", "sports", "compact"),
    "typical_use_case": ("business", "family", "leisure", "commute"),
    "fuel_preference": ("petrol", "diesel", "hybrid", "electric"),
}
PREFERENCE_FIELDS = ("default_passengers",) + tuple(PREFERENCE_CHOICES)

# association table for many-to-many User <-> Role
user_roles = db.Table(
    "user_roles",
    db.Column("user_id", db.Integer, db.ForeignKey("users.id"), primary_key=True),
    db.Column("role_id", db.Integer, db.ForeignKey("roles.id"), primary_key=True),
)

class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)

    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    full_name = db.Column(db.String(120), nullable=True)
    phone_number = db.Column(db.String(30), nullable=True)
    ai_preferences = db.Column(db.JSON, nullable=False, default=dict)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    roles = db.relationship("Role", secondary=user_roles, back_populates="users")

    @property
    def role_names(self):
        return sorted(r.name for r in self.roles)

    @property
    def is_admin(self) -> bool:
        return any(r.name == ADMIN for r in self.roles)

class Role(db.Model):
    __tablename__ = "roles"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(50), unique=True, nullable=False)  # CUSTOMER, ADMIN

    users = db.relationship("User", secondary=user_roles, back_populates="roles")
