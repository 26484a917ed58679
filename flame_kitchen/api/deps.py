"""
Shared route dependencies: authentication, role checks and the payment
service for the current Paystack keys.
"""

import logging
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from flame_kitchen.core.security import decode_access_token
from flame_kitchen.database import get_db
from flame_kitchen.models import User, UserRole
from flame_kitchen.services.payment import BasePaymentService, get_payment_service
from flame_kitchen.services.system_settings import get_paystack_keys

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


async def get_user_for_token(db: AsyncSession, token: Optional[str]) -> Optional[User]:
    """Active user for a token, or None."""
    if not token:
        return None
    user_id = decode_access_token(token)
    if not user_id:
        return None
    user = await db.get(User, user_id)
    if user is None or not user.is_active:
        return None
    return user


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Require a valid bearer token for an active user."""
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Access denied. No token provided.",
        )
    user_id = decode_access_token(credentials.credentials)
    if not user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")

    user = await db.get(User, user_id)
    if user is None or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found or inactive",
        )
    return user


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> Optional[User]:
    """Like get_current_user, but anonymous or invalid callers get None."""
    if credentials is None:
        return None
    return await get_user_for_token(db, credentials.credentials)


def require_roles(*roles: UserRole):
    """
    Build a dependency that admits only the given roles.

    Example:
        @router.get("/", dependencies=[Depends(require_roles(UserRole.ADMIN))])
    """
    async def checker(user: User = Depends(get_current_user)) -> User:
        if user.role not in roles:
            logger.info(f"User {user.id} ({user.role.value}) denied, needs {[r.value for r in roles]}")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Access denied. Insufficient permissions.",
            )
        return user

    return checker


async def get_payment_provider(db: AsyncSession = Depends(get_db)) -> BasePaymentService:
    """Payment service for the keys currently in effect."""
    keys = await get_paystack_keys(db)
    return get_payment_service(keys.secret_key, keys.webhook_secret)
