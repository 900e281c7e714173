from datetime import date, timedelta

import pytest

from app import create_app
from config import TestConfig
from models import db
from models.booking import Booking
from models.location import Location
from models.user import User, Role, ADMIN, CUSTOMER
from models.vehicle import Vehicle
from security.rbac import Actor
from security.session import create_session

# far enough ahead that customer bookings are never "in the past"
FUTURE = date.today() + timedelta(days=60)


def days(n: int) -> date:
    return FUTURE + timedelta(days=n)


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_user(app):
    def _make(email, admin=False, full_name=None):
        names = [CUSTOMER, ADMIN] if admin else [CUSTOMER]
        user = User(
            email=email,
            full_name=full_name,
            roles=Role.query.filter(Role.name.in_(names)).all(),
        )
        db.session.add(user)
        db.session.commit()
        return user
    return _make


@pytest.fixture
def customer(make_user):
    return make_user("alice@example.com", full_name="Alice")


@pytest.fixture
def other_customer(make_user):
    return make_user("bob@example.com", full_name="Bob")


@pytest.fixture
def admin(make_user):
    return make_user("admin@example.com", admin=True, full_name="Admin")


@pytest.fixture
def customer_actor(customer):
    return Actor(user_id=customer.id, is_admin=False)


@pytest.fixture
def admin_actor(admin):
    return Actor(user_id=admin.id, is_admin=True)


@pytest.fixture
def location(app):
    loc = Location(address="1 Main St", city="Lisbon", country="Portugal")
    db.session.add(loc)
    db.session.commit()
    return loc


@pytest.fixture
def airport(app):
    loc = Location(address="Airport Rd", city="Porto", country="Portugal")
    db.session.add(loc)
    db.session.commit()
    return loc


@pytest.fixture
def make_vehicle(location):
    def _make(plate="AA-00-AA", daily_rate=50, **fields):
        values = dict(
            make="Toyota",
            model="Corolla",
            year=2022,
            license_plate=plate,
            passenger_capacity=5,
            fuel_type="Gasoline",
            category="Sedan",
            daily_rate=daily_rate,
            location_id=location.id,
        )
        values.update(fields)
        vehicle = Vehicle(**values)
        db.session.add(vehicle)
        db.session.commit()
        return vehicle
    return _make


@pytest.fixture
def vehicle(make_vehicle):
    return make_vehicle()


@pytest.fixture
def make_booking(vehicle, location, customer):
    """Insert a booking row directly, bypassing admission checks."""
    def _make(start, end, status="confirmed", user=None, vehicle_id=None, total_cost=100):
        booking = Booking(
            user_id=(user or customer).id,
            vehicle_id=vehicle_id or vehicle.id,
            start_date=start,
            end_date=end,
            pickup_location_id=location.id,
            dropoff_location_id=location.id,
            total_cost=total_cost,
            status=status,
        )
        db.session.add(booking)
        db.session.commit()
        return booking
    return _make


@pytest.fixture
def booking_payload(vehicle, location, airport):
    def _payload(start, end, **extra):
        data = {
            "vehicle_id": vehicle.id,
            "start_date": start.isoformat() if isinstance(start, date) else start,
            "end_date": end.isoformat() if isinstance(end, date) else end,
            "pickup_location_id": location.id,
            "dropoff_location_id": airport.id,
        }
        data.update(extra)
        return data
    return _payload


def _bearer(user):
    return {"Authorization": f"Bearer {create_session(user.id)}"}


@pytest.fixture
def customer_headers(customer):
    return _bearer(customer)


@pytest.fixture
def other_headers(other_customer):
    return _bearer(other_customer)


@pytest.fixture
def admin_headers(admin):
    return _bearer(admin)
