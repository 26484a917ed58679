"""
Customer support chat.

Customers (or guests) open a chat and exchange messages with admins.
New chats and messages are pushed to the ``role:ADMIN`` room and to the
customer's own room.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse
from fastapi.encoders import jsonable_encoder
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from flame_kitchen.api.deps import get_current_user, get_optional_user, require_roles
from flame_kitchen.database import get_db
from flame_kitchen.models import (
    Chat,
    ChatMessage,
    ChatStatus,
    SenderRole,
    User,
    UserRole,
    utcnow,
)
from flame_kitchen.schemas import (
    ChatCreate,
    ChatDetailResponse,
    ChatMessageCreate,
    ChatMessageResponse,
    ChatResponse,
    ChatStatusUpdate,
    ChatSummaryResponse,
)
from flame_kitchen.services.realtime import manager, role_room, user_room

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/chat", tags=["Chat"])

ADMIN_ROOM = role_room(UserRole.ADMIN.value)


def counterpart_role(user: User) -> SenderRole:
    """Whose messages count as unread for this user."""
    return SenderRole.ADMIN if user.role == UserRole.CUSTOMER else SenderRole.CUSTOMER


def chat_rooms(chat: Chat) -> list[str]:
    rooms = [ADMIN_ROOM]
    if chat.customer_id:
        rooms.append(user_room(chat.customer_id))
    return rooms


async def load_chat(db: AsyncSession, chat_id: str) -> Optional[Chat]:
    result = await db.execute(
        select(Chat)
        .options(selectinload(Chat.messages))
        .where(Chat.id == chat_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


@router.get("", summary="List Chats")
async def list_chats(
    status: Optional[ChatStatus] = Query(None),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict:
    """Customers see their own chats, staff see all. Most recent activity first."""
    conditions = []
    if user.role == UserRole.CUSTOMER:
        conditions.append(Chat.customer_id == user.id)
    if status:
        conditions.append(Chat.status == status)

    result = await db.execute(
        select(Chat)
        .options(selectinload(Chat.messages))
        .where(*conditions)
        .order_by(Chat.last_message_at.desc())
    )
    other_side = counterpart_role(user)

    chats = []
    for chat in result.scalars().all():
        summary = ChatSummaryResponse.model_validate(chat)
        if chat.messages:
            summary.last_message = ChatMessageResponse.model_validate(chat.messages[-1])
        summary.unread_count = sum(
            1 for m in chat.messages if not m.is_read and m.sender_role == other_side
        )
        chats.append(summary)

    return {"chats": chats}


@router.get("/unread/count", summary="Unread Message Count")
async def unread_count(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict:
    conditions = [
        ChatMessage.is_read.is_(False),
        ChatMessage.sender_role == counterpart_role(user),
    ]
    query = select(func.count(ChatMessage.id))
    if user.role == UserRole.CUSTOMER:
        query = query.join(Chat, ChatMessage.chat_id == Chat.id)
        conditions.append(Chat.customer_id == user.id)

    count = await db.scalar(query.where(*conditions))
    return {"count": count or 0}


@router.get("/{chat_id}", summary="Get Chat")
async def get_chat(
    chat_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict:
    """Chat with all its messages. Opening it marks the other side's messages read."""
    chat = await load_chat(db, chat_id)
    if chat is None or (user.role == UserRole.CUSTOMER and chat.customer_id != user.id):
        raise HTTPException(status_code=404, detail="Chat not found")

    if user.role in (UserRole.CUSTOMER, UserRole.ADMIN):
        await db.execute(
            update(ChatMessage)
            .where(
                ChatMessage.chat_id == chat.id,
                ChatMessage.sender_role == counterpart_role(user),
                ChatMessage.is_read.is_(False),
            )
            .values(is_read=True)
        )
        await db.commit()
        chat = await load_chat(db, chat_id)

    return {"chat": ChatDetailResponse.model_validate(chat)}


@router.post("", summary="Start Chat")
async def start_chat(
    data: Optional[ChatCreate] = None,
    user: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Open a support chat.

    A signed-in customer with an ACTIVE chat gets that chat back (200).
    Otherwise a new chat is created (201), for guests too.
    """
    data = data or ChatCreate()

    if user is not None:
        result = await db.execute(
            select(Chat)
            .where(Chat.customer_id == user.id, Chat.status == ChatStatus.ACTIVE)
            .order_by(Chat.created_at.desc())
        )
        existing = result.scalars().first()
        if existing is not None:
            return {"chat": ChatResponse.model_validate(existing), "message": "Active chat found"}

        chat = Chat(customer_id=user.id, customer_name=user.full_name or "Guest", customer_email=user.email)
    else:
        chat = Chat(customer_name=data.customer_name or "Guest", customer_email=data.customer_email)

    chat.status = ChatStatus.ACTIVE
    db.add(chat)
    await db.commit()

    chat = await load_chat(db, chat.id)
    logger.info(f"Chat {chat.id} opened by {chat.customer_id or 'guest'}")

    payload = ChatDetailResponse.model_validate(chat)
    await manager.emit(ADMIN_ROOM, "chat:new", payload.model_dump(mode="json"))

    return JSONResponse(status_code=201, content=jsonable_encoder({"chat": payload}))


@router.post("/{chat_id}/messages", status_code=201, summary="Send Message")
async def send_message(
    chat_id: str,
    data: ChatMessageCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict:
    """
    Post a message.

    A customer writing into a guest chat takes it over; writing into
    another customer's chat is refused.
    """
    chat = await db.get(Chat, chat_id)
    if chat is None:
        raise HTTPException(status_code=404, detail="Chat not found")

    if user.role == UserRole.CUSTOMER:
        if chat.customer_id is None:
            chat.customer_id = user.id
            chat.customer_name = user.full_name or "Customer"
            chat.customer_email = user.email
        elif chat.customer_id != user.id:
            raise HTTPException(status_code=403, detail="Access denied")

    if user.role == UserRole.ADMIN:
        sender_role = SenderRole.ADMIN
        sender_name = user.full_name or "Admin"
    else:
        sender_role = SenderRole.CUSTOMER
        sender_name = chat.customer_name or "Customer"

    message = ChatMessage(
        chat_id=chat.id,
        sender_id=user.id,
        sender_role=sender_role,
        sender_name=sender_name,
        message=data.message,
    )
    db.add(message)
    chat.last_message_at = utcnow()
    await db.commit()

    message_response = ChatMessageResponse.model_validate(message)
    logger.debug(f"Chat {chat.id}: message from {sender_role.value}")

    await manager.emit_many(chat_rooms(chat), "chat:message", {
        "chat_id": chat.id,
        "message": message_response.model_dump(mode="json"),
    })

    return {"message": message_response, "chat": ChatResponse.model_validate(chat)}


@router.put("/{chat_id}/status", summary="Update Chat Status")
async def update_chat_status(
    chat_id: str,
    data: ChatStatusUpdate,
    user: User = Depends(require_roles(UserRole.ADMIN)),
    db: AsyncSession = Depends(get_db),
) -> dict:
    chat = await db.get(Chat, chat_id)
    if chat is None:
        raise HTTPException(status_code=404, detail="Chat not found")

    chat.status = data.status
    await db.commit()
    logger.info(f"Chat {chat.id} marked {data.status.value} by {user.id}")

    await manager.emit_many(chat_rooms(chat), "chat:status-updated", {
        "chat_id": chat.id,
        "status": data.status.value,
    })

    return {"chat": ChatResponse.model_validate(chat)}
