"""Menu routes: public browsing and admin management.

Invariants:
    - Public category listing hides inactive categories and unavailable items
    - Only admins can change the menu
    - A category that still holds items cannot be deleted
"""

from sqlalchemy import select

from flame_kitchen.models import AuditLog, Category, MenuItem, PriceVariant


async def test_public_categories_hide_unavailable_items(client, menu, db):
    db.add(Category(name="Hidden", is_active=False))
    await db.commit()

    res = await client.get("/api/menu/categories")

    assert res.status_code == 200
    categories = res.json()["categories"]
    assert [c["name"] for c in categories] == ["Mains"]
    items = categories[0]["items"]
    assert [i["name"] for i in items] == ["Jollof Rice"]
    assert items[0]["variants"][0]["price"] == 30.0
    assert items[0]["addons"][0]["name"] == "Extra Chicken"


async def test_list_items_filters_by_availability(client, menu):
    everything = await client.get("/api/menu/items")
    available = await client.get("/api/menu/items", params={"available": "true"})
    by_category = await client.get("/api/menu/items", params={"category_id": menu["category"].id})

    assert len(everything.json()["items"]) == 2
    assert [i["name"] for i in available.json()["items"]] == ["Jollof Rice"]
    assert len(by_category.json()["items"]) == 2
    assert available.json()["items"][0]["category"]["name"] == "Mains"


async def test_get_item(client, menu):
    found = await client.get(f"/api/menu/items/{menu['jollof'].id}")
    missing = await client.get("/api/menu/items/does-not-exist")

    assert found.status_code == 200
    assert found.json()["item"]["base_price"] == 25.0
    assert missing.status_code == 404
    assert missing.json() == {"error": "Menu item not found"}


async def test_non_admin_cannot_change_menu(client, customer, cashier, headers):
    payload = {"name": "Grills"}

    anonymous = await client.post("/api/menu/categories", json=payload)
    as_customer = await client.post("/api/menu/categories", json=payload, headers=headers(customer))
    as_cashier = await client.post("/api/menu/categories", json=payload, headers=headers(cashier))

    assert anonymous.status_code == 401
    assert as_customer.status_code == 403
    assert as_cashier.status_code == 403


async def test_admin_category_lifecycle(client, admin, headers, session_factory):
    created = await client.post(
        "/api/menu/categories",
        json={"name": "  Grills ", "display_order": 3},
        headers=headers(admin),
    )
    assert created.status_code == 201
    category = created.json()["category"]
    assert category["name"] == "Grills"

    updated = await client.put(
        f"/api/menu/categories/{category['id']}",
        json={"is_active": False},
        headers=headers(admin),
    )
    assert updated.status_code == 200
    assert updated.json()["category"]["is_active"] is False

    deleted = await client.delete(f"/api/menu/categories/{category['id']}", headers=headers(admin))
    assert deleted.status_code == 200
    assert deleted.json() == {"message": "Category deleted successfully"}

    async with session_factory() as s:
        assert await s.get(Category, category["id"]) is None
        actions = (await s.execute(select(AuditLog.action))).scalars().all()
        assert sorted(actions) == ["CREATE_CATEGORY", "DELETE_CATEGORY", "UPDATE_CATEGORY"]


async def test_cannot_delete_category_with_items(client, admin, menu, headers):
    res = await client.delete(f"/api/menu/categories/{menu['category'].id}", headers=headers(admin))

    assert res.status_code == 400
    assert "Cannot delete category with items" in res.json()["error"]


async def test_create_item_with_variants_and_addons(client, admin, menu, headers):
    res = await client.post(
        "/api/menu/items",
        json={
            "name": "Fried Rice",
            "category_id": menu["category"].id,
            "base_price": 22.0,
            "variants": [{"name": "Small", "price": 18.0}, {"name": "Large", "price": 27.0}],
            "addons": [{"name": "Shito", "price": 2.0}],
        },
        headers=headers(admin),
    )

    assert res.status_code == 201
    item = res.json()["item"]
    assert item["category"]["id"] == menu["category"].id
    assert sorted(v["name"] for v in item["variants"]) == ["Large", "Small"]
    assert item["addons"][0]["price"] == 2.0


async def test_create_item_unknown_category(client, admin, headers):
    res = await client.post(
        "/api/menu/items",
        json={"name": "Ghost Dish", "category_id": "missing", "base_price": 10.0},
        headers=headers(admin),
    )

    assert res.status_code == 400
    assert res.json() == {"error": "Category not found"}


async def test_create_item_rejects_negative_price(client, admin, menu, headers):
    res = await client.post(
        "/api/menu/items",
        json={"name": "Cheap", "category_id": menu["category"].id, "base_price": -1},
        headers=headers(admin),
    )

    assert res.status_code == 400
    assert res.json()["error"] == "Validation error"


async def test_update_item_replaces_variants(client, admin, menu, headers, session_factory):
    res = await client.put(
        f"/api/menu/items/{menu['jollof'].id}",
        json={"base_price": 26.5, "variants": [{"name": "Family", "price": 60.0}]},
        headers=headers(admin),
    )

    assert res.status_code == 200
    item = res.json()["item"]
    assert item["base_price"] == 26.5
    assert [v["name"] for v in item["variants"]] == ["Family"]

    async with session_factory() as s:
        names = (await s.execute(
            select(PriceVariant.name).where(PriceVariant.menu_item_id == menu["jollof"].id)
        )).scalars().all()
        assert names == ["Family"]


async def test_delete_item(client, admin, menu, headers, session_factory):
    res = await client.delete(f"/api/menu/items/{menu['soup'].id}", headers=headers(admin))
    missing = await client.delete("/api/menu/items/does-not-exist", headers=headers(admin))

    assert res.status_code == 200
    assert missing.status_code == 404
    async with session_factory() as s:
        assert await s.get(MenuItem, menu["soup"].id) is None
