"""
Chats Router

Conversations between users and their messages. Every mutation is
mirrored to the chat's Socket.IO room.
"""
from fastapi import APIRouter, Depends, HTTPException, Response

from studenthub.auth import verify_auth
from studenthub.errors import (
    ERROR_CHAT_FORBIDDEN,
    ERROR_CHAT_NOT_FOUND,
    ERROR_CHAT_SELF,
    ERROR_PRODUCT_NOT_FOUND,
    ERROR_RECEIVER_NOT_FOUND,
)
from studenthub.logging import get_logger, sanitize_id_for_logging
from studenthub.realtime import emit_chat_read, emit_chat_updated, emit_new_message
from studenthub.routers.deps import populate_users
from studenthub.routers.models import CreateChatRequest, SendMessageRequest, serialize
from studenthub.services.database import get_database
from studenthub.services.models import Chat, User

logger = get_logger(__name__)

router = APIRouter(prefix="/api/chats", tags=["chats"])


async def _get_chat_for_participant(chat_id: str, user: User) -> Chat:
    chat = await get_database().chats.get_by_id(chat_id)
    if not chat:
        raise HTTPException(status_code=404, detail=ERROR_CHAT_NOT_FOUND)
    if user.id not in chat.participants:
        raise HTTPException(status_code=403, detail=ERROR_CHAT_FORBIDDEN)
    return chat


async def _present_chats(db, chats: list[Chat]) -> list[dict]:
    """Chats with participant summaries and product title/images."""
    summaries = await db.users.get_summaries(
        [p for chat in chats for p in chat.participants], ("name", "avatar")
    )
    products = await db.products.get_many([c.product for c in chats if c.product])
    result = []
    for chat in chats:
        product = products.get(chat.product) if chat.product else None
        result.append(serialize(
            chat,
            participants=[summaries.get(p, {"id": p}) for p in chat.participants],
            product=(
                {"id": product.id, "title": product.title, "images": product.images,
                 "price": product.price}
                if product else chat.product
            ),
        ))
    return result


@router.get("")
async def get_chats(user: User = Depends(verify_auth)):
    """Caller's chats, most recently active first."""
    db = get_database()
    return await _present_chats(db, await db.chats.find_for_user(user.id))


@router.post("", status_code=201)
async def create_chat(
    request: CreateChatRequest, response: Response, user: User = Depends(verify_auth)
):
    """Open a chat with another user; an existing one is returned with 200."""
    if request.receiver_id == user.id:
        raise HTTPException(status_code=400, detail=ERROR_CHAT_SELF)

    db = get_database()
    if not await db.users.get_by_id(request.receiver_id):
        raise HTTPException(status_code=404, detail=ERROR_RECEIVER_NOT_FOUND)
    if request.product_id and not await db.products.get_by_id(request.product_id):
        raise HTTPException(status_code=404, detail=ERROR_PRODUCT_NOT_FOUND)

    participants = [user.id, request.receiver_id]
    chat = await db.chats.find_between(participants, request.product_id)
    if chat is not None:
        response.status_code = 200
    else:
        chat = await db.chats.create(participants, request.product_id)
        logger.info(f"Chat {sanitize_id_for_logging(chat.id)} created")
    return (await _present_chats(db, [chat]))[0]


@router.get("/{chat_id}")
async def get_chat(chat_id: str, user: User = Depends(verify_auth)):
    chat = await _get_chat_for_participant(chat_id, user)
    return (await _present_chats(get_database(), [chat]))[0]


@router.delete("/{chat_id}")
async def delete_chat(chat_id: str, user: User = Depends(verify_auth)):
    chat = await _get_chat_for_participant(chat_id, user)
    db = get_database()
    await db.messages.delete_by_chat(chat.id)
    await db.chats.delete(chat.id)
    return {"message": "Chat deleted"}


# ==================== MESSAGES ====================

@router.get("/{chat_id}/messages")
async def get_messages(chat_id: str, user: User = Depends(verify_auth)):
    """Messages oldest first, sender populated."""
    chat = await _get_chat_for_participant(chat_id, user)
    db = get_database()
    return await populate_users(db, await db.messages.find_by_chat(chat.id), "sender")


@router.post("/{chat_id}/messages", status_code=201)
async def send_message(
    chat_id: str, request: SendMessageRequest, user: User = Depends(verify_auth)
):
    chat = await _get_chat_for_participant(chat_id, user)
    db = get_database()

    message = await db.messages.create(chat.id, user.id, request.content, request.attachments)
    updated = await db.chats.record_message(chat, message.id, user.id)
    payload = (await populate_users(db, [message], "sender"))[0]

    await emit_new_message(chat.id, payload)
    await emit_chat_updated(chat.id, payload, (updated or chat).unread_count)
    return payload


@router.put("/{chat_id}/read")
async def mark_chat_read(chat_id: str, user: User = Depends(verify_auth)):
    chat = await _get_chat_for_participant(chat_id, user)
    db = get_database()

    await db.messages.mark_read(chat.id, user.id)
    updated = await db.chats.reset_unread(chat.id, user.id)
    unread_count = (updated or chat).unread_count

    await emit_chat_read(chat.id, user.id, unread_count)
    return {"message": "Chat marked as read", "unread_count": unread_count}
