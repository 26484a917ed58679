"""
System settings routes.

Anyone may read the restaurant settings; the Paystack keys are included
only for an authenticated admin.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from flame_kitchen.api.deps import get_optional_user, require_roles
from flame_kitchen.database import get_db
from flame_kitchen.models import User, UserRole
from flame_kitchen.schemas import (
    AdminSystemSettingsResponse,
    SystemSettingsResponse,
    SystemSettingsUpdate,
)
from flame_kitchen.services.audit import record_audit
from flame_kitchen.services.system_settings import get_system_settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/settings", tags=["Settings"])

SECRET_FIELDS = ("paystack_secret_key", "paystack_webhook_secret")


@router.get("", summary="Get System Settings")
async def read_settings(
    user: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
) -> dict:
    system = await get_system_settings(db)
    await db.commit()

    if user is not None and user.role == UserRole.ADMIN:
        return {"settings": AdminSystemSettingsResponse.model_validate(system)}
    return {"settings": SystemSettingsResponse.model_validate(system)}


@router.put("", summary="Update System Settings")
async def update_settings(
    data: SystemSettingsUpdate,
    request: Request,
    user: User = Depends(require_roles(UserRole.ADMIN)),
    db: AsyncSession = Depends(get_db),
) -> dict:
    """
    Partial update of the settings row.

    New Paystack keys take effect on the next request; the payment
    service is cached per key pair.
    """
    system = await get_system_settings(db)
    changes = data.model_dump(exclude_unset=True)
    for field, value in changes.items():
        setattr(system, field, value)

    audit_details = {
        field: "***" if field in SECRET_FIELDS and value else value
        for field, value in changes.items()
    }
    record_audit(
        db, "UPDATE_SYSTEM_SETTINGS", "SystemSettings", system.id, user_id=user.id,
        details=audit_details, request=request,
    )
    await db.commit()
    await db.refresh(system)
    logger.info(f"System settings updated by {user.id}: {sorted(changes)}")

    return {
        "message": "Settings updated successfully",
        "settings": AdminSystemSettingsResponse.model_validate(system),
    }
