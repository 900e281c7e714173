import pytest

from models import db
from models.audit_log import AuditLog
from models.location import Location
from models.vehicle import Vehicle
from tests.conftest import days


def _vehicle_body(location_id, **overrides):
    body = {
        "make": "Tesla",
        "model": "Model 3",
        "year": 2023,
        "license_plate": "ev-11-aa",
        "passenger_capacity": 5,
        "fuel_type": "Electric",
        "drivetrain": "RWD",
        "category": "Sedan",
        "features": ["Autopilot", "Heated seats"],
        "daily_rate": 89.9,
        "location_id": location_id,
    }
    body.update(overrides)
    return body


class TestVehicleBrowse:
    def test_list_is_public(self, client, vehicle):
        resp = client.get("/vehicles")
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["total"] == 1
        assert body["data"][0]["license_plate"] == "AA-00-AA"
        assert body["data"][0]["location"]["city"] == "Lisbon"

    def test_filters(self, client, make_vehicle, airport):
        make_vehicle("AA-00-AA", daily_rate=40, category="Economy", passenger_capacity=4)
        make_vehicle("BB-00-BB", daily_rate=120, category="SUV", passenger_capacity=7)
        make_vehicle("CC-00-CC", daily_rate=60, category="SUV", passenger_capacity=7,
                     location_id=airport.id)

        plates = lambda resp: sorted(v["license_plate"] for v in resp.get_json()["data"])

        assert plates(client.get("/vehicles?category=SUV")) == ["BB-00-BB", "CC-00-CC"]
        assert plates(client.get("/vehicles?min_capacity=6&max_rate=100")) == ["CC-00-CC"]
        assert plates(client.get(f"/vehicles?location_id={airport.id}")) == ["CC-00-CC"]

    def test_sort_and_page(self, client, make_vehicle):
        for i, rate in enumerate((70, 30, 50)):
            make_vehicle(f"PL-{i}", daily_rate=rate)

        body = client.get("/vehicles?sort=daily_rate&limit=2").get_json()
        assert [v["daily_rate"] for v in body["data"]] == [30, 50]
        assert body["pagination"] == {"next": {"page": 2, "limit": 2}}

    def test_unknown_sort_field(self, client):
        resp = client.get("/vehicles?sort=secret")
        assert resp.status_code == 400

    def test_get_missing(self, client):
        resp = client.get("/vehicles/77")
        assert resp.status_code == 404
        assert resp.get_json()["error"] == "Vehicle not found with id 77"

    def test_availability(self, client, vehicle, make_booking):
        make_booking(days(0), days(5), status="confirmed")

        resp = client.get(f"/vehicles/{vehicle.id}/availability?start_date={days(3)}&end_date={days(8)}")
        assert resp.status_code == 200
        assert resp.get_json()["available"] is False

        resp = client.get(f"/vehicles/{vehicle.id}/availability?start_date={days(5)}&end_date={days(8)}")
        assert resp.get_json() == {
            "vehicle_id": vehicle.id,
            "start_date": days(5).isoformat(),
            "end_date": days(8).isoformat(),
            "available": True,
        }

    @pytest.mark.parametrize("query", ["", "?start_date=2030-01-05&end_date=2030-01-01"])
    def test_availability_bad_range(self, client, vehicle, query):
        resp = client.get(f"/vehicles/{vehicle.id}/availability{query}")
        assert resp.status_code == 400


class TestVehicleAdmin:
    def test_customer_cannot_create(self, client, customer_headers, location):
        resp = client.post("/vehicles", json=_vehicle_body(location.id), headers=customer_headers)
        assert resp.status_code == 403

    def test_create(self, client, admin_headers, location):
        resp = client.post("/vehicles", json=_vehicle_body(location.id), headers=admin_headers)
        assert resp.status_code == 201
        body = resp.get_json()
        assert body["license_plate"] == "EV-11-AA"
        assert body["availability_status"] == "available"
        assert body["features"] == ["Autopilot", "Heated seats"]
        assert AuditLog.query.filter_by(action="VEHICLE_CREATE").count() == 1

    def test_duplicate_plate(self, client, admin_headers, location, vehicle):
        resp = client.post("/vehicles", json=_vehicle_body(location.id, license_plate="aa-00-aa"),
                           headers=admin_headers)
        assert resp.status_code == 409

    @pytest.mark.parametrize("field,value", [
        ("fuel_type", "Steam"),
        ("passenger_capacity", 0),
        ("daily_rate", -1),
        ("year", "new"),
        ("features", "sunroof"),
    ])
    def test_invalid_fields(self, client, admin_headers, location, field, value):
        resp = client.post("/vehicles", json=_vehicle_body(location.id, **{field: value}),
                           headers=admin_headers)
        assert resp.status_code == 400
        assert resp.get_json()["field"] == field

    def test_missing_fields(self, client, admin_headers):
        resp = client.post("/vehicles", json={"make": "Fiat"}, headers=admin_headers)
        assert resp.status_code == 400
        assert "license_plate" in resp.get_json()["missing"]

    def test_unknown_location(self, client, admin_headers):
        resp = client.post("/vehicles", json=_vehicle_body(999), headers=admin_headers)
        assert resp.status_code == 404

    def test_partial_update(self, client, admin_headers, vehicle):
        resp = client.put(f"/vehicles/{vehicle.id}",
                          json={"daily_rate": 65, "availability_status": "maintenance"},
                          headers=admin_headers)
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["daily_rate"] == 65
        assert body["availability_status"] == "maintenance"
        assert body["make"] == "Toyota"

    def test_delete(self, client, admin_headers, vehicle):
        vehicle_id = vehicle.id
        assert client.delete(f"/vehicles/{vehicle_id}", headers=admin_headers).status_code == 200
        db.session.expire_all()
        assert db.session.get(Vehicle, vehicle_id) is None

    def test_delete_with_bookings_conflicts(self, client, admin_headers, vehicle, make_booking):
        make_booking(days(0), days(1), status="completed")
        resp = client.delete(f"/vehicles/{vehicle.id}", headers=admin_headers)
        assert resp.status_code == 409
        assert resp.get_json()["bookings"] == 1


class TestLocations:
    def test_list_and_filter(self, client, location, airport):
        body = client.get("/locations").get_json()
        assert body["count"] == 2

        body = client.get("/locations?city=port").get_json()
        assert [loc["city"] for loc in body["data"]] == ["Porto"]

    def test_get_missing(self, client):
        assert client.get("/locations/5").status_code == 404

    def test_create_requires_fields(self, client, admin_headers):
        resp = client.post("/locations", json={"address": "x", "city": "Faro"}, headers=admin_headers)
        assert resp.status_code == 400
        assert resp.get_json()["field"] == "country"

    def test_create_update_delete(self, client, admin_headers):
        resp = client.post("/locations", json={"address": "2 Beach Rd", "city": "Faro", "country": "Portugal"},
                           headers=admin_headers)
        assert resp.status_code == 201
        location_id = resp.get_json()["id"]

        resp = client.put(f"/locations/{location_id}", json={"city": "Lagos"}, headers=admin_headers)
        assert resp.get_json()["city"] == "Lagos"
        assert resp.get_json()["address"] == "2 Beach Rd"

        assert client.delete(f"/locations/{location_id}", headers=admin_headers).status_code == 200
        db.session.expire_all()
        assert db.session.get(Location, location_id) is None

    def test_delete_referenced_location(self, client, admin_headers, vehicle, location):
        resp = client.delete(f"/locations/{location.id}", headers=admin_headers)
        assert resp.status_code == 409
        assert resp.get_json()["vehicles"] == 1

    def test_customer_cannot_create(self, client, customer_headers):
        resp = client.post("/locations", json={"address": "a", "city": "b", "country": "c"},
                           headers=customer_headers)
        assert resp.status_code == 403


@pytest.mark.parametrize("method,url", [
    ("post", "/vehicles"),
    ("post", "/locations"),
    ("post", "/admin/users"),
])
def test_non_object_json_body_is_400(client, admin_headers, method, url):
    resp = getattr(client, method)(url, json=[1, 2], headers=admin_headers)
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "JSON object body required"


def test_fractional_year_rejected(client, admin_headers, location):
    resp = client.post("/vehicles", json=_vehicle_body(location.id, year=2022.5), headers=admin_headers)
    assert resp.status_code == 400
    assert resp.get_json()["field"] == "year"


def test_whole_float_year_accepted(client, admin_headers, location):
    resp = client.post("/vehicles", json=_vehicle_body(location.id, year=2022.0), headers=admin_headers)
    assert resp.status_code == 201
    assert resp.get_json()["year"] == 2022
