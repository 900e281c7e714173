from datetime import date, timedelta

from models import db
from models.user import User
from tests.conftest import days


def test_admin_routes_require_admin(client, customer_headers):
    assert client.get("/admin/overview").status_code == 401
    assert client.get("/admin/overview", headers=customer_headers).status_code == 403
    assert client.get("/admin/users", headers=customer_headers).status_code == 403


def test_overview(client, admin_headers, make_booking, other_customer):
    make_booking(days(-200), days(-198), status="completed", total_cost=120)
    make_booking(days(-190), days(-188), status="completed", total_cost=80.5)
    make_booking(date.today() - timedelta(days=1), date.today() + timedelta(days=2), status="active")
    make_booking(days(5), days(7), status="confirmed")
    make_booking(days(10), days(12), status="pending_payment", user=other_customer)

    resp = client.get("/admin/overview", headers=admin_headers)
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["total_revenue"] == 200.5
    assert body["active_bookings_count"] == 1
    assert body["future_bookings_count"] == 1
    assert body["total_users_count"] == 3
    assert body["total_vehicles_count"] == 1
    assert len(body["recent_bookings"]) == 5


def test_overview_empty(client, admin_headers):
    body = client.get("/admin/overview", headers=admin_headers).get_json()
    assert body["total_revenue"] == 0
    assert body["recent_bookings"] == []


def test_list_users_by_role(client, admin_headers, customer):
    body = client.get("/admin/users", headers=admin_headers).get_json()
    assert body["count"] == 2

    body = client.get("/admin/users?role=admin", headers=admin_headers).get_json()
    assert [u["email"] for u in body["data"]] == ["admin@example.com"]


def test_create_user(client, admin_headers):
    resp = client.post("/admin/users", json={"email": " Carol@Example.com ", "full_name": "Carol"},
                       headers=admin_headers)
    assert resp.status_code == 201
    body = resp.get_json()
    assert body["email"] == "carol@example.com"
    assert body["roles"] == ["CUSTOMER"]

    resp = client.post("/admin/users", json={"email": "carol@example.com"}, headers=admin_headers)
    assert resp.status_code == 409


def test_create_user_validation(client, admin_headers):
    assert client.post("/admin/users", json={"email": "nope"}, headers=admin_headers).status_code == 400

    resp = client.post("/admin/users", json={"email": "d@example.com", "roles": ["PILOT"]},
                       headers=admin_headers)
    assert resp.status_code == 400
    assert resp.get_json()["missing"] == ["PILOT"]


def test_update_user(client, admin_headers, customer):
    resp = client.put(f"/admin/users/{customer.id}", json={"phone_number": "+351 900 000 000"},
                      headers=admin_headers)
    assert resp.status_code == 200
    assert resp.get_json()["phone_number"] == "+351 900 000 000"
    assert client.put("/admin/users/999", json={}, headers=admin_headers).status_code == 404


def test_promote_and_demote(client, admin_headers, customer):
    resp = client.post(f"/admin/users/{customer.id}/roles", json={"roles": ["CUSTOMER", "ADMIN"]},
                       headers=admin_headers)
    assert resp.status_code == 200
    assert resp.get_json()["roles"] == ["ADMIN", "CUSTOMER"]

    resp = client.post(f"/admin/users/{customer.id}/roles", json={"roles": ["CUSTOMER"]},
                       headers=admin_headers)
    assert resp.get_json()["roles"] == ["CUSTOMER"]


def test_cannot_drop_own_admin(client, admin, admin_headers):
    resp = client.post(f"/admin/users/{admin.id}/roles", json={"roles": ["CUSTOMER"]},
                       headers=admin_headers)
    assert resp.status_code == 403
    assert resp.get_json()["error"] == "Cannot remove your own ADMIN role"


def test_delete_user(client, admin_headers, other_customer):
    user_id = other_customer.id
    assert client.delete(f"/admin/users/{user_id}", headers=admin_headers).status_code == 200
    db.session.expire_all()
    assert db.session.get(User, user_id) is None


def test_delete_user_with_bookings(client, admin_headers, customer, make_booking):
    make_booking(days(0), days(1))
    resp = client.delete(f"/admin/users/{customer.id}", headers=admin_headers)
    assert resp.status_code == 409


def test_cannot_delete_self(client, admin, admin_headers):
    assert client.delete(f"/admin/users/{admin.id}", headers=admin_headers).status_code == 403


def test_audit_log_listing(client, admin_headers, customer_headers, make_booking, booking_payload):
    make_booking(days(0), days(2), status="confirmed")
    client.post("/bookings", json=booking_payload(days(1), days(3)), headers=customer_headers)
    client.post("/bookings", json=booking_payload(days(5), days(6)), headers=customer_headers)

    rows = client.get("/admin/audit-logs?entity=booking", headers=admin_headers).get_json()
    assert [r["action"] for r in rows] == ["BOOKING_CREATE"]

    rows = client.get("/admin/audit-logs?action=BOOKING_CONFLICT", headers=admin_headers).get_json()
    assert len(rows) == 1
    assert rows[0]["entity"] == "vehicle"
    assert rows[0]["metadata"] is not None
