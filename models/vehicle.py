from datetime import datetime
from models.db import db

FUEL_TYPES = ("Gasoline", "Diesel", "Electric", "Hybrid")
DRIVETRAINS = ("FWD", "RWD", "AWD", "4WD")
CATEGORIES = ("Sedan", "SUV", "Truck", "Van", "Coupe", "Convertible", "Hatchback", "Luxury", "Economy")

# Informational label only; admission is decided by booking overlap
AVAILABILITY_STATUSES = ("available", "rented", "maintenance")


class Vehicle(db.Model):
    __tablename__ = "vehicles"

    id = db.Column(db.Integer, primary_key=True)
    make = db.Column(db.String(60), nullable=False)
    model = db.Column(db.String(60), nullable=False)
    year = db.Column(db.Integer, nullable=False)
    license_plate = db.Column(db.String(20), nullable=False, unique=True, index=True)

    passenger_capacity = db.Column(db.Integer, nullable=False)
    fuel_type = db.Column(db.String(20), nullable=False)
    drivetrain = db.Column(db.String(10), nullable=True)
    category = db.Column(db.String(20), nullable=False, index=True)
    features = db.Column(db.JSON, nullable=False, default=list)

    daily_rate = db.Column(db.Numeric(10, 2, asdecimal=False), nullable=False)

    location_id = db.Column(db.Integer, db.ForeignKey("locations.id"), nullable=False, index=True)
    availability_status = db.Column(db.String(20), nullable=False, default="available")

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    location = db.relationship("Location")

    @property
    def display_name(self) -> str:
        return f"{self.make} {self.model}"
