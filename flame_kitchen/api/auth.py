"""
Authentication routes: registration, login and the caller's own profile.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from flame_kitchen.api.deps import get_current_user
from flame_kitchen.core.security import create_access_token, hash_password, verify_password
from flame_kitchen.database import get_db
from flame_kitchen.models import User, UserRole
from flame_kitchen.schemas import (
    AuthResponse,
    ChangePasswordRequest,
    LoginRequest,
    MessageResponse,
    ProfileUpdate,
    RegisterRequest,
    UserResponse,
)
from flame_kitchen.services.audit import record_audit

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Auth"])


async def find_user_by_contact(
    db: AsyncSession,
    email: Optional[str],
    phone: Optional[str],
    exclude_id: Optional[str] = None,
) -> Optional[User]:
    conditions = []
    if email:
        conditions.append(User.email == email)
    if phone:
        conditions.append(User.phone == phone)
    if not conditions:
        return None
    query = select(User).where(or_(*conditions))
    if exclude_id:
        query = query.where(User.id != exclude_id)
    result = await db.execute(query.limit(1))
    return result.scalar_one_or_none()


@router.post("/register", response_model=AuthResponse, status_code=201, summary="Register Customer")
async def register(
    data: RegisterRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> AuthResponse:
    """Create a customer account and return an access token."""
    if await find_user_by_contact(db, data.email, data.phone):
        raise HTTPException(status_code=400, detail="User already exists")

    user = User(
        email=data.email,
        phone=data.phone,
        password=hash_password(data.password),
        first_name=data.first_name,
        last_name=data.last_name,
        role=UserRole.CUSTOMER,
    )
    db.add(user)
    await db.flush()
    record_audit(db, "USER_REGISTER", "User", user.id, user_id=user.id, request=request)
    await db.commit()

    logger.info(f"Customer registered: {user.id}")
    return AuthResponse(
        message="User registered successfully",
        token=create_access_token(user.id),
        user=UserResponse.model_validate(user),
    )


@router.post("/login", response_model=AuthResponse, summary="Login")
async def login(
    data: LoginRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> AuthResponse:
    """Exchange email or phone plus password for an access token."""
    user = await find_user_by_contact(db, data.email, data.phone)
    if user is None:
        raise HTTPException(status_code=401, detail="Invalid credentials")
    if not user.is_active:
        raise HTTPException(status_code=401, detail="Account is inactive. Please contact administrator.")
    if not verify_password(data.password, user.password):
        raise HTTPException(status_code=401, detail="Invalid credentials")

    record_audit(db, "USER_LOGIN", "User", user.id, user_id=user.id, request=request)
    await db.commit()

    logger.info(f"User logged in: {user.id} ({user.role.value})")
    return AuthResponse(
        message="Login successful",
        token=create_access_token(user.id),
        user=UserResponse.model_validate(user),
    )


@router.get("/me", summary="Current User")
async def me(user: User = Depends(get_current_user)) -> dict:
    return {"user": UserResponse.model_validate(user)}


@router.put("/profile", summary="Update Profile")
async def update_profile(
    data: ProfileUpdate,
    request: Request,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict:
    changes = data.model_dump(exclude_unset=True)
    if "email" in changes and changes["email"]:
        changes["email"] = changes["email"].lower()

    if await find_user_by_contact(db, changes.get("email"), changes.get("phone"), exclude_id=user.id):
        raise HTTPException(status_code=400, detail="Email or phone already in use")

    for field, value in changes.items():
        setattr(user, field, value)
    record_audit(db, "UPDATE_PROFILE", "User", user.id, user_id=user.id, details={"fields": sorted(changes)}, request=request)
    await db.commit()

    return {"message": "Profile updated successfully", "user": UserResponse.model_validate(user)}


@router.post("/change-password", response_model=MessageResponse, summary="Change Password")
async def change_password(
    data: ChangePasswordRequest,
    request: Request,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    if not verify_password(data.current_password, user.password):
        raise HTTPException(status_code=401, detail="Current password is incorrect")

    user.password = hash_password(data.new_password)
    record_audit(db, "CHANGE_PASSWORD", "User", user.id, user_id=user.id, request=request)
    await db.commit()

    logger.info(f"Password changed for user {user.id}")
    return MessageResponse(message="Password changed successfully")
