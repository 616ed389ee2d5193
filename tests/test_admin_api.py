from decimal import Decimal

from tests.conftest import BOOKINGS, REVENUE, auth_headers, book, make_hall, make_user

ADMIN = "/api/v1/admin"


def test_admin_endpoints_require_admin(client, owner_headers, customer_headers):
    assert client.get(f"{ADMIN}/stats", headers=owner_headers).status_code == 403
    assert client.get(f"{ADMIN}/users", headers=customer_headers).status_code == 403


def test_platform_stats(client, db_session, hall, owner, owner_headers, customer_headers, admin_headers, future_date):
    make_hall(db_session, owner, name="Pending Hall", approval_status="pending")
    booking = book(client, customer_headers, hall.id, future_date).json()
    book(client, customer_headers, hall.id, future_date, "15:00", "16:00")
    client.post(f"{REVENUE}/complete-booking", json={"booking_id": booking["id"]}, headers=owner_headers)

    stats = client.get(f"{ADMIN}/stats", headers=admin_headers).json()

    assert stats["total_users"] == 3
    assert stats["total_customers"] == 1
    assert stats["total_hall_owners"] == 1
    assert stats["total_halls"] == 2
    assert stats["halls_by_approval"] == {"approved": 1, "pending": 1}
    assert stats["total_bookings"] == 2
    assert stats["bookings_by_status"] == {"completed": 1, "pending": 1}
    assert stats["total_slots"] == 2
    assert Decimal(stats["total_revenue"]) == Decimal("1500")
    assert Decimal(stats["total_platform_fees"]) == Decimal("75")


def test_list_users(client, customer, other_customer, owner, admin_headers):
    page = client.get(f"{ADMIN}/users", params={"role": "user"}, headers=admin_headers).json()
    assert page["total"] == 2

    found = client.get(f"{ADMIN}/users", params={"search": "ravi"}, headers=admin_headers).json()
    assert [u["email"] for u in found["users"]] == [other_customer.email]


def test_block_and_unblock_user(client, customer, customer_headers, admin_headers):
    blocked = client.put(f"{ADMIN}/users/{customer.id}", json={"is_blocked": True}, headers=admin_headers)
    assert blocked.status_code == 200
    assert blocked.json()["is_blocked"] is True
    assert client.get("/api/v1/auth/me", headers=customer_headers).status_code == 403

    listed = client.get(f"{ADMIN}/users", params={"blocked": True}, headers=admin_headers).json()
    assert listed["total"] == 1

    client.put(f"{ADMIN}/users/{customer.id}", json={"is_blocked": False}, headers=admin_headers)
    assert client.get("/api/v1/auth/me", headers=customer_headers).status_code == 200


def test_change_role(client, customer, admin_headers):
    response = client.put(f"{ADMIN}/users/{customer.id}", json={"role": "hall_owner"}, headers=admin_headers)
    assert response.json()["role"] == "hall_owner"


def test_admin_cannot_block_self(client, admin, admin_headers):
    response = client.put(f"{ADMIN}/users/{admin.id}", json={"is_blocked": True}, headers=admin_headers)
    assert response.status_code == 400


def test_delete_user_keeps_their_bookings(client, db_session, hall, customer, customer_headers, owner_headers,
                                          admin_headers, future_date):
    booking = book(client, customer_headers, hall.id, future_date).json()

    response = client.delete(f"{ADMIN}/users/{customer.id}", headers=admin_headers)
    assert response.status_code == 200

    orphan = client.get(f"{BOOKINGS}/{booking['id']}", headers=owner_headers).json()
    assert orphan["customer_id"] is None
    assert client.delete(f"{ADMIN}/users/{customer.id}", headers=admin_headers).status_code == 404


def test_owner_with_revenue_cannot_be_deleted(client, hall, owner, owner_headers, customer_headers, admin_headers, future_date):
    booking = book(client, customer_headers, hall.id, future_date).json()
    client.post(f"{REVENUE}/complete-booking", json={"booking_id": booking["id"]}, headers=owner_headers)

    response = client.delete(f"{ADMIN}/users/{owner.id}", headers=admin_headers)
    assert response.status_code == 400


def test_hall_moderation(client, db_session, owner, admin_headers):
    pending = make_hall(db_session, owner, name="Awaiting Review", approval_status="pending")

    queue = client.get(f"{ADMIN}/halls", params={"approval_status": "pending"}, headers=admin_headers).json()
    assert [h["id"] for h in queue] == [pending.id]

    approved = client.put(f"{ADMIN}/halls/{pending.id}/approve", headers=admin_headers)
    assert approved.json()["approval_status"] == "approved"
    assert [h["name"] for h in client.get("/api/v1/halls/").json()] == ["Awaiting Review"]

    rejected = client.put(f"{ADMIN}/halls/{pending.id}/reject", headers=admin_headers)
    assert rejected.json()["approval_status"] == "rejected"
    assert client.get("/api/v1/halls/").json() == []


def test_admin_booking_listing(client, db_session, hall, customer_headers, admin_headers, future_date):
    other_owner = make_user(db_session, "owner2@example.com", role="hall_owner")
    other_hall = make_hall(db_session, other_owner, name="Garden Lawn")
    book(client, customer_headers, hall.id, future_date)
    book(client, customer_headers, other_hall.id, future_date)

    page = client.get(f"{ADMIN}/bookings", headers=admin_headers).json()
    assert page["total"] == 2

    scoped = client.get(f"{ADMIN}/bookings", params={"hall_id": other_hall.id}, headers=admin_headers).json()
    assert scoped["total"] == 1
    assert client.get(f"{ADMIN}/bookings", headers=auth_headers(other_owner)).status_code == 403


def test_seeded_admin_can_sign_in(client, db_session):
    from seed_admin_data import create_admin

    admin, created = create_admin(db_session, "Root Admin", "Root@Example.com", "s3cret-pass")
    assert created
    assert admin.role == "admin"
    assert admin.is_verified

    again, created = create_admin(db_session, "Someone Else", "root@example.com", "other-pass")
    assert not created
    assert again.id == admin.id

    login = client.post("/api/v1/auth/login", json={"email": "root@example.com", "password": "s3cret-pass"})
    assert login.status_code == 200
    token = login.json()["access_token"]
    assert client.get(f"{ADMIN}/stats", headers={"Authorization": f"Bearer {token}"}).status_code == 200
