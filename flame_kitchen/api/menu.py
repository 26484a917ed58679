"""
Menu routes.

Reading the menu is public; changing it is admin-only.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from flame_kitchen.api.deps import require_roles
from flame_kitchen.database import get_db
from flame_kitchen.models import Addon, Category, MenuItem, PriceVariant, User, UserRole
from flame_kitchen.schemas import (
    CategoryCreate,
    CategoryResponse,
    CategoryUpdate,
    CategoryWithItemsResponse,
    MenuItemCreate,
    MenuItemDetailResponse,
    MenuItemUpdate,
    MessageResponse,
)
from flame_kitchen.services.audit import record_audit

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/menu", tags=["Menu"])

admin_only = require_roles(UserRole.ADMIN)


async def load_menu_item(db: AsyncSession, item_id: str) -> Optional[MenuItem]:
    result = await db.execute(
        select(MenuItem)
        .options(selectinload(MenuItem.category))
        .where(MenuItem.id == item_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


# =============================================================================
# PUBLIC
# =============================================================================

@router.get("/categories", summary="Active Categories With Items")
async def list_categories(db: AsyncSession = Depends(get_db)) -> dict:
    """Active categories, each with its available items, in display order."""
    result = await db.execute(
        select(Category)
        .options(selectinload(Category.items.and_(MenuItem.is_available.is_(True))))
        .where(Category.is_active.is_(True))
        .order_by(Category.display_order, Category.name)
        .execution_options(populate_existing=True)
    )
    categories = result.scalars().all()
    return {"categories": [CategoryWithItemsResponse.model_validate(c) for c in categories]}


@router.get("/items", summary="Menu Items")
async def list_items(
    category_id: Optional[str] = Query(None),
    available: Optional[bool] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> dict:
    query = select(MenuItem).options(selectinload(MenuItem.category))
    if category_id:
        query = query.where(MenuItem.category_id == category_id)
    if available is not None:
        query = query.where(MenuItem.is_available.is_(available))

    result = await db.execute(query.order_by(MenuItem.display_order, MenuItem.name))
    return {"items": [MenuItemDetailResponse.model_validate(i) for i in result.scalars().all()]}


@router.get("/items/{item_id}", summary="Menu Item")
async def get_item(item_id: str, db: AsyncSession = Depends(get_db)) -> dict:
    item = await load_menu_item(db, item_id)
    if item is None:
        raise HTTPException(status_code=404, detail="Menu item not found")
    return {"item": MenuItemDetailResponse.model_validate(item)}


# =============================================================================
# CATEGORIES (ADMIN)
# =============================================================================

@router.post("/categories", status_code=201, summary="Create Category")
async def create_category(
    data: CategoryCreate,
    request: Request,
    user: User = Depends(admin_only),
    db: AsyncSession = Depends(get_db),
) -> dict:
    category = Category(**data.model_dump())
    category.name = category.name.strip()
    db.add(category)
    await db.flush()
    record_audit(db, "CREATE_CATEGORY", "Category", category.id, user_id=user.id, details={"name": category.name}, request=request)
    await db.commit()

    logger.info(f"Category created: {category.name}")
    return {"message": "Category created successfully", "category": CategoryResponse.model_validate(category)}


@router.put("/categories/{category_id}", summary="Update Category")
async def update_category(
    category_id: str,
    data: CategoryUpdate,
    request: Request,
    user: User = Depends(admin_only),
    db: AsyncSession = Depends(get_db),
) -> dict:
    category = await db.get(Category, category_id)
    if category is None:
        raise HTTPException(status_code=404, detail="Category not found")

    changes = data.model_dump(exclude_unset=True)
    for field, value in changes.items():
        setattr(category, field, value)
    record_audit(db, "UPDATE_CATEGORY", "Category", category.id, user_id=user.id, details=changes, request=request)
    await db.commit()

    return {"message": "Category updated successfully", "category": CategoryResponse.model_validate(category)}


@router.delete("/categories/{category_id}", response_model=MessageResponse, summary="Delete Category")
async def delete_category(
    category_id: str,
    request: Request,
    user: User = Depends(admin_only),
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    result = await db.execute(
        select(Category).options(selectinload(Category.items)).where(Category.id == category_id)
    )
    category = result.scalar_one_or_none()
    if category is None:
        raise HTTPException(status_code=404, detail="Category not found")

    item_count = await db.scalar(
        select(func.count()).select_from(MenuItem).where(MenuItem.category_id == category_id)
    )
    if item_count:
        raise HTTPException(
            status_code=400,
            detail="Cannot delete category with items. Please delete or move items first.",
        )

    await db.delete(category)
    record_audit(db, "DELETE_CATEGORY", "Category", category_id, user_id=user.id, details={"name": category.name}, request=request)
    await db.commit()

    logger.info(f"Category deleted: {category.name}")
    return MessageResponse(message="Category deleted successfully")


# =============================================================================
# ITEMS (ADMIN)
# =============================================================================

@router.post("/items", status_code=201, summary="Create Menu Item")
async def create_item(
    data: MenuItemCreate,
    request: Request,
    user: User = Depends(admin_only),
    db: AsyncSession = Depends(get_db),
) -> dict:
    if await db.get(Category, data.category_id) is None:
        raise HTTPException(status_code=400, detail="Category not found")

    item = MenuItem(
        **data.model_dump(exclude={"variants", "addons"}),
        variants=[PriceVariant(name=v.name, price=v.price) for v in data.variants],
        addons=[Addon(name=a.name, price=a.price) for a in data.addons],
    )
    db.add(item)
    await db.flush()
    record_audit(db, "CREATE_MENU_ITEM", "MenuItem", item.id, user_id=user.id, details={"name": item.name}, request=request)
    await db.commit()

    logger.info(f"Menu item created: {item.name} ({item.base_price:.2f})")
    item = await load_menu_item(db, item.id)
    return {"message": "Menu item created successfully", "item": MenuItemDetailResponse.model_validate(item)}


@router.put("/items/{item_id}", summary="Update Menu Item")
async def update_item(
    item_id: str,
    data: MenuItemUpdate,
    request: Request,
    user: User = Depends(admin_only),
    db: AsyncSession = Depends(get_db),
) -> dict:
    item = await load_menu_item(db, item_id)
    if item is None:
        raise HTTPException(status_code=404, detail="Menu item not found")

    changes = data.model_dump(exclude_unset=True, exclude={"variants", "addons"})
    if "category_id" in changes and await db.get(Category, changes["category_id"]) is None:
        raise HTTPException(status_code=400, detail="Category not found")

    for field, value in changes.items():
        setattr(item, field, value)
    if data.variants is not None:
        item.variants = [PriceVariant(name=v.name, price=v.price) for v in data.variants]
    if data.addons is not None:
        item.addons = [Addon(name=a.name, price=a.price) for a in data.addons]

    record_audit(db, "UPDATE_MENU_ITEM", "MenuItem", item.id, user_id=user.id, details=changes, request=request)
    await db.commit()

    item = await load_menu_item(db, item_id)
    return {"message": "Menu item updated successfully", "item": MenuItemDetailResponse.model_validate(item)}


@router.delete("/items/{item_id}", response_model=MessageResponse, summary="Delete Menu Item")
async def delete_item(
    item_id: str,
    request: Request,
    user: User = Depends(admin_only),
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    item = await db.get(MenuItem, item_id)
    if item is None:
        raise HTTPException(status_code=404, detail="Menu item not found")

    await db.delete(item)
    record_audit(db, "DELETE_MENU_ITEM", "MenuItem", item_id, user_id=user.id, details={"name": item.name}, request=request)
    await db.commit()

    logger.info(f"Menu item deleted: {item.name}")
    return MessageResponse(message="Menu item deleted successfully")
