from datetime import timedelta

from hallbook.auth.utils import create_access_token
from tests.conftest import DEFAULT_PASSWORD

AUTH = "/api/v1/auth"


def register(client, **overrides):
    payload = {
        "name": "Nisha Rao",
        "email": "Nisha@Example.com",
        "password": "hunter22",
        "phone": "9876543210",
    }
    payload.update(overrides)
    return client.post(f"{AUTH}/register", json=payload)


def test_register_customer(client):
    response = register(client)

    assert response.status_code == 201
    user = response.json()
    assert user["email"] == "nisha@example.com"
    assert user["role"] == "user"
    assert "password" not in user


def test_register_hall_owner(client):
    response = register(client, role="hall_owner", business_name="Rao Venues")
    assert response.json()["role"] == "hall_owner"
    assert response.json()["business_name"] == "Rao Venues"


def test_cannot_self_register_as_admin(client):
    assert register(client, role="admin").status_code == 422


def test_duplicate_email(client):
    register(client)
    response = register(client, email="nisha@example.com")
    assert response.status_code == 400
    assert response.json()["detail"] == "Email already registered"


def test_login_and_profile(client):
    register(client)

    login = client.post(f"{AUTH}/login", json={"email": "nisha@example.com", "password": "hunter22"})
    assert login.status_code == 200
    token = login.json()["access_token"]
    assert login.json()["token_type"] == "bearer"
    assert login.json()["user"]["name"] == "Nisha Rao"

    me = client.get(f"{AUTH}/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["email"] == "nisha@example.com"


def test_oauth2_token_form(client, customer):
    response = client.post(f"{AUTH}/token", data={"username": customer.email, "password": DEFAULT_PASSWORD})
    assert response.status_code == 200
    assert response.json()["access_token"]


def test_wrong_password(client, customer):
    response = client.post(f"{AUTH}/login", json={"email": customer.email, "password": "nope-nope"})
    assert response.status_code == 401


def test_blocked_account(client, db_session, customer, customer_headers):
    customer.is_blocked = True
    db_session.commit()

    login = client.post(f"{AUTH}/login", json={"email": customer.email, "password": DEFAULT_PASSWORD})
    assert login.status_code == 403
    assert client.get(f"{AUTH}/me", headers=customer_headers).status_code == 403


def test_expired_token(client, customer):
    token = create_access_token({"sub": str(customer.id), "role": customer.role}, expires_delta=timedelta(minutes=-1))
    assert client.get(f"{AUTH}/me", headers={"Authorization": f"Bearer {token}"}).status_code == 401


def test_update_profile(client, customer_headers):
    response = client.put(f"{AUTH}/me", json={"phone": "9111111111", "address": "5 Park Street"}, headers=customer_headers)
    assert response.status_code == 200
    assert response.json()["phone"] == "9111111111"
    assert response.json()["address"] == "5 Park Street"


def test_update_password(client, customer, customer_headers):
    client.put(f"{AUTH}/me", json={"password": "brand-new-pass"}, headers=customer_headers)

    login = client.post(f"{AUTH}/login", json={"email": customer.email, "password": "brand-new-pass"})
    assert login.status_code == 200
