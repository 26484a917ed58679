"""Day session routes: status, close, reopen and history.

Invariants:
    - Today's session is created open on first use
    - Closing stores the paid revenue split by payment method
    - A closed day blocks orders until an admin reopens it
    - Closing exports the day to Excel
"""

import pandas as pd
from sqlalchemy import select

from flame_kitchen.models import AuditLog, DaySession
from flame_kitchen.services.day_session import today_key
from flame_kitchen.services.excel_manager import ExcelManager


async def pay(client, cashier, headers, order: dict, method: str) -> None:
    res = await client.post(
        "/api/payments/pos",
        json={"order_id": order["id"], "method": method, "amount": order["total"]},
        headers=headers(cashier),
    )
    assert res.status_code == 200


async def test_status_creates_open_session(client, customer, headers, session_factory):
    res = await client.get("/api/day-session/status", headers=headers(customer))

    assert res.status_code == 200
    day = res.json()["day_session"]
    assert day["date"] == today_key()
    assert day["is_closed"] is False
    async with session_factory() as s:
        assert len((await s.execute(select(DaySession))).scalars().all()) == 1


async def test_summary_counts_today(client, customer, cashier, place_order, headers):
    paid = await place_order(customer)
    await place_order(customer, order_type="ONLINE")
    await pay(client, cashier, headers, paid, "CASH")

    res = await client.get("/api/day-session/summary", headers=headers(cashier))
    forbidden = await client.get("/api/day-session/summary", headers=headers(customer))

    summary = res.json()["summary"]
    assert summary["total_orders"] == 2
    assert summary["paid_orders"] == 1
    assert summary["unpaid_orders"] == 1
    assert summary["total_revenue"] == paid["total"]
    assert summary["total_cash"] == paid["total"]
    assert summary["confirmed_orders"] == 1
    assert summary["orders_by_type"]["ONLINE"] == 1
    assert forbidden.status_code == 403


async def test_close_day_blocks_orders_and_exports(
    client, customer, cashier, admin, place_order, headers, session_factory, monkeypatch, tmp_path,
):
    monkeypatch.setattr(ExcelManager, "DATA_DIR", tmp_path)
    cash = await place_order(customer)
    momo = await place_order(customer, quantity=1)
    await place_order(customer, quantity=3)
    await pay(client, cashier, headers, cash, "CASH")
    await pay(client, cashier, headers, momo, "MOMO")

    res = await client.post("/api/day-session/close", json={"notes": "Quiet day"}, headers=headers(cashier))

    assert res.status_code == 200
    assert res.json()["message"] == "Day closed successfully"
    day = res.json()["day_session"]
    assert day["is_closed"] is True
    assert day["closed_by"]["id"] == cashier.id
    assert day["total_orders"] == 3
    assert day["total_revenue"] == round(cash["total"] + momo["total"], 2)
    assert day["total_cash"] == cash["total"]
    assert day["total_momo"] == momo["total"]
    assert day["total_card"] == 0
    assert day["notes"] == "Quiet day"

    blocked = await client.post(
        "/api/orders",
        json={"order_type": "TAKEAWAY", "items": [{"menu_item_id": cash["items"][0]["menu_item_id"], "quantity": 1}]},
        headers=headers(customer),
    )
    assert blocked.status_code == 403
    assert blocked.json()["day_closed"] is True

    report_file = ExcelManager.report_path(today_key())
    assert report_file.exists()
    orders_sheet = pd.read_excel(report_file, sheet_name="Orders", engine="openpyxl")
    assert len(orders_sheet) == 3
    history = ExcelManager.get_day_history()
    assert [str(row["date"]) for row in history] == [today_key()]

    async with session_factory() as s:
        actions = (await s.execute(select(AuditLog.action))).scalars().all()
        assert "CLOSE_DAY" in actions


async def test_close_twice_rejected(client, cashier, headers):
    first = await client.post("/api/day-session/close", headers=headers(cashier))
    second = await client.post("/api/day-session/close", headers=headers(cashier))

    assert first.status_code == 200
    assert second.status_code == 400
    assert second.json() == {"error": "Day is already closed"}


async def test_customers_cannot_close_day(client, customer, headers):
    res = await client.post("/api/day-session/close", headers=headers(customer))

    assert res.status_code == 403


async def test_admin_reopens_day(client, admin, cashier, customer, place_order, headers):
    await client.post("/api/day-session/close", headers=headers(cashier))

    by_cashier = await client.post("/api/day-session/open", headers=headers(cashier))
    reopened = await client.post("/api/day-session/open", headers=headers(admin))
    again = await client.post("/api/day-session/open", headers=headers(admin))

    assert by_cashier.status_code == 403
    assert reopened.status_code == 200
    day = reopened.json()["day_session"]
    assert day["is_closed"] is False
    assert day["closed_at"] is None
    assert again.status_code == 400
    assert again.json() == {"error": "Day is already open"}

    order = await place_order(customer)
    assert order["status"] == "PENDING"


async def test_open_without_session_creates_it(client, admin, headers):
    res = await client.post("/api/day-session/open", headers=headers(admin))

    assert res.status_code == 200
    assert res.json()["day_session"]["date"] == today_key()


async def test_history_paginates_newest_first(client, admin, cashier, headers, db):
    for day in ("2026-01-01", "2026-01-02", "2026-01-03"):
        db.add(DaySession(date=day, is_closed=True))
    await db.commit()

    page = await client.get("/api/day-session/history", params={"limit": 2}, headers=headers(admin))
    rest = await client.get("/api/day-session/history", params={"limit": 2, "offset": 2}, headers=headers(admin))
    forbidden = await client.get("/api/day-session/history", headers=headers(cashier))

    body = page.json()
    assert [d["date"] for d in body["day_sessions"]] == ["2026-01-03", "2026-01-02"]
    assert body["pagination"] == {"total": 3, "limit": 2, "offset": 0, "has_more": True}
    assert rest.json()["pagination"]["has_more"] is False
    assert forbidden.status_code == 403
