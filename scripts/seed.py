"""
Database Seed Script

Creates the demo accounts and a starter menu.
Run from project root: python scripts/seed.py

Existing accounts (matched by email) and categories (matched by name)
are left untouched, so the script can be run repeatedly.
"""

import asyncio
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
# Windows event loop fix
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

from sqlalchemy import select

from flame_kitchen.core.config import setup_logging
from flame_kitchen.core.security import hash_password
from flame_kitchen.database import async_session_maker, engine, init_db
from flame_kitchen.models import Category, MenuItem, PriceVariant, User, UserRole
from flame_kitchen.services.system_settings import get_system_settings

DEFAULT_PASSWORD = "admin123"

USERS = [
    {"email": "admin@flamekitchen.com", "phone": "0551796725", "first_name": "Admin", "last_name": "User", "role": UserRole.ADMIN},
    {"email": "receptionist@flamekitchen.com", "phone": "0545010103", "first_name": "Receptionist", "last_name": "Staff", "role": UserRole.RECEPTIONIST},
    {"email": "cashier@flamekitchen.com", "phone": "0545010104", "first_name": "Cashier", "last_name": "Staff", "role": UserRole.CASHIER},
    {"email": "kitchen@flamekitchen.com", "phone": "0551796726", "first_name": "Kitchen", "last_name": "Staff", "role": UserRole.KITCHEN_STAFF},
    {"email": "customer@flamekitchen.com", "phone": "0551796727", "first_name": "Test", "last_name": "Customer", "role": UserRole.CUSTOMER},
]

SIZES = {"Small": 0.8, "Medium": 1.0, "Large": 1.2}

MENU = {
    ("Starters", "Appetizers and starters"): [
        ("Spicy Chicken Wings", "Crispy chicken wings with spicy sauce", 18.00, False),
    ],
    ("Main Courses", "Main dishes"): [
        ("Jollof Rice", "Ghanaian jollof rice with chicken", 25.00, True),
        ("Banku with Tilapia", "Traditional banku served with grilled tilapia", 35.00, False),
    ],
    ("Drinks", "Beverages"): [
        ("Coca Cola", "Chilled Coca Cola", 5.00, True),
    ],
    ("Desserts", "Sweet treats"): [
        ("Vanilla Ice Cream", "Creamy vanilla ice cream", 12.00, False),
    ],
}


async def seed_users(db) -> None:
    for data in USERS:
        result = await db.execute(select(User).where(User.email == data["email"]))
        if result.scalar_one_or_none():
            print(f"   • {data['email']} already exists")
            continue
        db.add(User(password=hash_password(DEFAULT_PASSWORD), **data))
        print(f"   ✅ {data['role'].value}: {data['email']}")


async def seed_menu(db) -> None:
    for display_order, ((name, description), items) in enumerate(MENU.items(), start=1):
        result = await db.execute(select(Category).where(Category.name == name))
        if result.scalar_one_or_none():
            print(f"   • Category {name} already exists")
            continue

        category = Category(name=name, description=description, display_order=display_order)
        for item_order, (item_name, item_description, price, sized) in enumerate(items, start=1):
            item = MenuItem(
                name=item_name,
                description=item_description,
                base_price=price,
                display_order=item_order,
            )
            if sized:
                item.variants = [
                    PriceVariant(name=size, price=round(price * factor, 2))
                    for size, factor in SIZES.items()
                ]
            category.items.append(item)
        db.add(category)
        print(f"   ✅ Category {name} ({len(items)} items)")


async def main() -> None:
    setup_logging()

    print("=" * 60)
    print("🌱 SEEDING DATABASE")
    print("=" * 60)

    await init_db()
    async with async_session_maker() as db:
        await get_system_settings(db)

        print("\n👤 Users:")
        await seed_users(db)

        print("\n🍽️ Menu:")
        await seed_menu(db)

        await db.commit()
    await engine.dispose()

    print("\n" + "=" * 60)
    print("🎉 Seeding completed!")
    print(f"   Every demo account uses the password: {DEFAULT_PASSWORD}")
    print("=" * 60)


if __name__ == "__main__":
    asyncio.run(main())
