from datetime import datetime
from models.db import db

PENDING_PAYMENT = "pending_payment"
CONFIRMED = "confirmed"
ACTIVE = "active"
COMPLETED = "completed"
CANCELLED = "cancelled"

BOOKING_STATUSES = (PENDING_PAYMENT, CONFIRMED, ACTIVE, COMPLETED, CANCELLED)

# Only these hold a vehicle for their date range
BLOCKING_STATUSES = (CONFIRMED, ACTIVE)

TERMINAL_STATUSES = (COMPLETED, CANCELLED)


class Booking(db.Model):
    __tablename__ = "bookings"

    id = db.Column(db.Integer, primary_key=True)

    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    vehicle_id = db.Column(db.Integer, db.ForeignKey("vehicles.id"), nullable=False, index=True)

    # half-open range: [start_date, end_date)
    start_date = db.Column(db.Date, nullable=False, index=True)
    end_date = db.Column(db.Date, nullable=False)

    pickup_location_id = db.Column(db.Integer, db.ForeignKey("locations.id"), nullable=False)
    dropoff_location_id = db.Column(db.Integer, db.ForeignKey("locations.id"), nullable=False)

    total_cost = db.Column(db.Numeric(10, 2, asdecimal=False), nullable=False, default=0)

    status = db.Column(db.String(20), nullable=False, default=PENDING_PAYMENT, index=True)
    # status values: pending_payment, confirmed, active, completed, cancelled

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
    cancelled_at = db.Column(db.DateTime, nullable=True)
    cancel_reason = db.Column(db.String(120), nullable=True)

    user = db.relationship("User")
    vehicle = db.relationship("Vehicle")
    pickup_location = db.relationship("Location", foreign_keys=[pickup_location_id])
    dropoff_location = db.relationship("Location", foreign_keys=[dropoff_location_id])
    payments = db.relationship("Payment", back_populates="booking", cascade="all, delete-orphan")

    __table_args__ = (
        db.CheckConstraint("start_date < end_date", name="ck_booking_date_order"),
        db.CheckConstraint("total_cost >= 0", name="ck_booking_cost_non_negative"),
    )
