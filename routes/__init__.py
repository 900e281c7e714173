from .health import health_bp
from .auth import auth_bp
from .admin import admin_bp
from .booking import booking_bp
from .vehicles import vehicle_bp
from .locations import location_bp
