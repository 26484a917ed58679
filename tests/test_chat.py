"""Support chat routes.

Invariants:
    - A signed-in customer has at most one ACTIVE chat; starting again returns it
    - Customers only see and write to their own chats
    - Opening a chat marks the other side's messages read
"""

from flame_kitchen.models import UserRole


async def start(client, headers=None, **payload):
    return await client.post("/api/chat", json=payload or None, headers=headers)


async def test_guest_can_start_chat(client):
    res = await start(client, customer_name="  Yaw ", customer_email="yaw@example.com")
    anonymous = await start(client)

    assert res.status_code == 201
    chat = res.json()["chat"]
    assert chat["customer_name"] == "Yaw"
    assert chat["customer_id"] is None
    assert chat["status"] == "ACTIVE"
    assert chat["messages"] == []
    assert anonymous.json()["chat"]["customer_name"] == "Guest"


async def test_customer_reuses_active_chat(client, customer, headers):
    first = await start(client, headers(customer))
    second = await start(client, headers(customer))

    assert first.status_code == 201
    assert first.json()["chat"]["customer_id"] == customer.id
    assert second.status_code == 200
    assert second.json()["message"] == "Active chat found"
    assert second.json()["chat"]["id"] == first.json()["chat"]["id"]


async def test_conversation_and_read_tracking(client, customer, admin, headers):
    chat_id = (await start(client, headers(customer))).json()["chat"]["id"]

    sent = await client.post(f"/api/chat/{chat_id}/messages", json={"message": " Where is my order? "}, headers=headers(customer))
    reply = await client.post(f"/api/chat/{chat_id}/messages", json={"message": "On its way"}, headers=headers(admin))

    assert sent.status_code == 201
    assert sent.json()["message"]["message"] == "Where is my order?"
    assert sent.json()["message"]["sender_role"] == "CUSTOMER"
    assert reply.json()["message"]["sender_role"] == "ADMIN"

    admin_unread = await client.get("/api/chat/unread/count", headers=headers(admin))
    customer_unread = await client.get("/api/chat/unread/count", headers=headers(customer))
    assert admin_unread.json() == {"count": 1}
    assert customer_unread.json() == {"count": 1}

    listing = await client.get("/api/chat", headers=headers(admin))
    summary = listing.json()["chats"][0]
    assert summary["unread_count"] == 1
    assert summary["last_message"]["message"] == "On its way"

    opened = await client.get(f"/api/chat/{chat_id}", headers=headers(customer))
    assert [m["message"] for m in opened.json()["chat"]["messages"]] == ["Where is my order?", "On its way"]
    assert all(m["is_read"] for m in opened.json()["chat"]["messages"] if m["sender_role"] == "ADMIN")

    after = await client.get("/api/chat/unread/count", headers=headers(customer))
    assert after.json() == {"count": 0}
    assert (await client.get("/api/chat/unread/count", headers=headers(admin))).json() == {"count": 1}


async def test_customers_cannot_access_other_chats(client, make_user, headers):
    owner = await make_user()
    intruder = await make_user()
    chat_id = (await start(client, headers(owner))).json()["chat"]["id"]

    read = await client.get(f"/api/chat/{chat_id}", headers=headers(intruder))
    write = await client.post(f"/api/chat/{chat_id}/messages", json={"message": "hi"}, headers=headers(intruder))
    listing = await client.get("/api/chat", headers=headers(intruder))

    assert read.status_code == 404
    assert write.status_code == 403
    assert write.json() == {"error": "Access denied"}
    assert listing.json()["chats"] == []


async def test_customer_claims_guest_chat(client, customer, headers):
    chat_id = (await start(client, customer_name="Guest Ama")).json()["chat"]["id"]

    res = await client.post(f"/api/chat/{chat_id}/messages", json={"message": "It's me"}, headers=headers(customer))

    assert res.status_code == 201
    assert res.json()["chat"]["customer_id"] == customer.id


async def test_message_validation_and_missing_chat(client, customer, headers):
    chat_id = (await start(client, headers(customer))).json()["chat"]["id"]

    blank = await client.post(f"/api/chat/{chat_id}/messages", json={"message": "   "}, headers=headers(customer))
    missing = await client.post("/api/chat/nope/messages", json={"message": "hi"}, headers=headers(customer))

    assert blank.status_code == 400
    assert missing.status_code == 404


async def test_admin_updates_status(client, admin, customer, make_user, headers):
    chat_id = (await start(client, headers(customer))).json()["chat"]["id"]
    cashier = await make_user(UserRole.CASHIER)

    resolved = await client.put(f"/api/chat/{chat_id}/status", json={"status": "RESOLVED"}, headers=headers(admin))
    by_cashier = await client.put(f"/api/chat/{chat_id}/status", json={"status": "CLOSED"}, headers=headers(cashier))
    fresh = await start(client, headers(customer))

    assert resolved.status_code == 200
    assert resolved.json()["chat"]["status"] == "RESOLVED"
    assert by_cashier.status_code == 403
    assert fresh.status_code == 201
    assert fresh.json()["chat"]["id"] != chat_id

    filtered = await client.get("/api/chat", params={"status": "RESOLVED"}, headers=headers(admin))
    assert [c["id"] for c in filtered.json()["chats"]] == [chat_id]


async def test_opened_chat_shows_messages_read(client, customer, admin, headers):
    chat_id = (await start(client, headers(customer))).json()["chat"]["id"]
    await client.post(f"/api/chat/{chat_id}/messages", json={"message": "Hello"}, headers=headers(customer))
    await client.post(f"/api/chat/{chat_id}/messages", json={"message": "Anyone there?"}, headers=headers(customer))

    opened = await client.get(f"/api/chat/{chat_id}", headers=headers(admin))

    messages = opened.json()["chat"]["messages"]
    assert [m["message"] for m in messages] == ["Hello", "Anyone there?"]
    assert all(m["is_read"] for m in messages)
