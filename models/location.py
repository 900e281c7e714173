from datetime import datetime
from models.db import db

class Location(db.Model):
    __tablename__ = "locations"

    id = db.Column(db.Integer, primary_key=True)
    address = db.Column(db.String(160), nullable=False)
    city = db.Column(db.String(80), nullable=False, index=True)
    country = db.Column(db.String(80), nullable=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
