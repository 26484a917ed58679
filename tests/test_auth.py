"""Auth routes: registration, login, profile and password changes.

Invariants:
    - Registration always creates a CUSTOMER and returns a usable token
    - Email or phone identifies a user; duplicates are rejected
    - Inactive accounts cannot log in or use existing tokens
"""

from datetime import timedelta

from sqlalchemy import select

from flame_kitchen.core.security import create_access_token, decode_access_token, hash_password, verify_password
from flame_kitchen.models import AuditLog, User, UserRole

from conftest import PASSWORD


async def test_register_creates_customer_with_token(client):
    res = await client.post("/api/auth/register", json={
        "email": "  Ama@Example.com ",
        "password": "secret123",
        "first_name": "Ama",
    })

    assert res.status_code == 201
    body = res.json()
    assert body["user"]["email"] == "ama@example.com"
    assert body["user"]["role"] == "CUSTOMER"
    assert "password" not in body["user"]

    me = await client.get("/api/auth/me", headers={"Authorization": f"Bearer {body['token']}"})
    assert me.status_code == 200
    assert me.json()["user"]["id"] == body["user"]["id"]


async def test_register_requires_email_or_phone(client):
    res = await client.post("/api/auth/register", json={"password": "secret123"})

    assert res.status_code == 400
    assert res.json()["error"] == "Validation error"


async def test_register_rejects_short_password(client):
    res = await client.post("/api/auth/register", json={"phone": "0551112222", "password": "123"})

    assert res.status_code == 400


async def test_register_duplicate_contact_rejected(client, customer):
    res = await client.post("/api/auth/register", json={"phone": customer.phone, "password": "secret123"})

    assert res.status_code == 400
    assert res.json() == {"error": "User already exists"}


async def test_login_with_email_and_phone(client, customer):
    by_email = await client.post("/api/auth/login", json={"email": customer.email.upper(), "password": PASSWORD})
    by_phone = await client.post("/api/auth/login", json={"phone": customer.phone, "password": PASSWORD})

    assert by_email.status_code == 200
    assert by_phone.status_code == 200
    assert decode_access_token(by_email.json()["token"]) == customer.id


async def test_login_wrong_password(client, customer):
    res = await client.post("/api/auth/login", json={"email": customer.email, "password": "nope-nope"})

    assert res.status_code == 401
    assert res.json() == {"error": "Invalid credentials"}


async def test_login_unknown_user(client):
    res = await client.post("/api/auth/login", json={"email": "ghost@example.com", "password": "whatever"})

    assert res.status_code == 401


async def test_inactive_user_cannot_login_or_use_token(client, make_user, headers):
    user = await make_user(UserRole.CASHIER, is_active=False)

    login = await client.post("/api/auth/login", json={"email": user.email, "password": PASSWORD})
    me = await client.get("/api/auth/me", headers=headers(user))

    assert login.status_code == 401
    assert "inactive" in login.json()["error"]
    assert me.status_code == 401
    assert me.json() == {"error": "User not found or inactive"}


async def test_me_requires_token(client):
    res = await client.get("/api/auth/me")

    assert res.status_code == 401
    assert res.json() == {"error": "Access denied. No token provided."}


async def test_me_rejects_garbage_and_expired_tokens(client, customer):
    garbage = await client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
    expired_token = create_access_token(customer.id, expires_in=timedelta(seconds=-5))
    expired = await client.get("/api/auth/me", headers={"Authorization": f"Bearer {expired_token}"})

    assert garbage.status_code == 401
    assert garbage.json() == {"error": "Invalid token"}
    assert expired.status_code == 401


async def test_update_profile(client, customer, headers):
    res = await client.put(
        "/api/auth/profile",
        json={"first_name": "Kofi", "email": "Kofi@Example.com"},
        headers=headers(customer),
    )

    assert res.status_code == 200
    assert res.json()["user"]["first_name"] == "Kofi"
    assert res.json()["user"]["email"] == "kofi@example.com"


async def test_update_profile_rejects_taken_phone(client, make_user, headers):
    first = await make_user()
    second = await make_user()

    res = await client.put("/api/auth/profile", json={"phone": second.phone}, headers=headers(first))

    assert res.status_code == 400
    assert res.json() == {"error": "Email or phone already in use"}


async def test_change_password(client, customer, headers, session_factory):
    wrong = await client.post(
        "/api/auth/change-password",
        json={"current_password": "incorrect", "new_password": "brandnew1"},
        headers=headers(customer),
    )
    ok = await client.post(
        "/api/auth/change-password",
        json={"current_password": PASSWORD, "new_password": "brandnew1"},
        headers=headers(customer),
    )

    assert wrong.status_code == 401
    assert ok.status_code == 200

    async with session_factory() as s:
        stored = await s.get(User, customer.id)
        assert verify_password("brandnew1", stored.password)
        actions = (await s.execute(select(AuditLog.action).where(AuditLog.user_id == customer.id))).scalars().all()
        assert "CHANGE_PASSWORD" in actions


def test_password_hashing_round_trip():
    hashed = hash_password("s3cret!")

    assert hashed != "s3cret!"
    assert verify_password("s3cret!", hashed)
    assert not verify_password("other", hashed)
    assert not verify_password("s3cret!", "not-a-bcrypt-hash")
