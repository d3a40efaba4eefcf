"""Socket.IO Realtime Module - Rooms, typing/status relays, chat events.

Clients connect with `auth: {token}` (the same JWT as the REST API),
join `user:<id>` and per-chat rooms, and receive chat events emitted by
the chat router through the `emit_*` helpers below.
"""

from datetime import datetime, timezone
from typing import Any

import socketio

from studenthub import config
from studenthub.errors import ERROR_CHAT_FORBIDDEN, ERROR_NO_TOKEN, ERROR_SOCKET_USER_MISMATCH
from studenthub.logging import get_logger, sanitize_id_for_logging
from studenthub.security import TokenError, decode_access_token
from studenthub.services.database import get_database

logger = get_logger(__name__)

sio = socketio.AsyncServer(
    async_mode="asgi",
    cors_allowed_origins=[config.FRONTEND_URL],
    logger=False,
    engineio_logger=False,
)

USER_ROOM_PREFIX = "user:"


def user_room(user_id: str) -> str:
    return f"{USER_ROOM_PREFIX}{user_id}"


# ==================== CONNECTION ====================


@sio.event
async def connect(sid, environ, auth=None):
    """Accept only handshakes carrying a valid token."""
    token = auth.get("token") if isinstance(auth, dict) else None
    if not token:
        logger.warning(f"Socket connection rejected (no token): {sid}")
        return False
    try:
        user_id = decode_access_token(token)
    except TokenError as e:
        logger.warning(f"Socket connection rejected ({e}): {sid}")
        return False

    await sio.save_session(sid, {"user_id": user_id})
    logger.info(f"Socket connected: {sid} user={sanitize_id_for_logging(user_id)}")
    return True


@sio.event
async def disconnect(sid, *args):
    logger.info(f"Socket disconnected: {sid}")


# ==================== ROOMS ====================


async def _session_user(sid) -> str:
    session = await sio.get_session(sid)
    user_id = session.get("user_id") if session else None
    if not user_id:
        raise PermissionError(ERROR_NO_TOKEN)
    return user_id


async def _is_member(chat_id: Any, user_id: str) -> bool:
    if not isinstance(chat_id, str) or not chat_id:
        return False
    chat = await get_database().chats.get_by_id(chat_id)
    return chat is not None and user_id in chat.participants


async def _claimed_user(sid, data: dict) -> str:
    """Session user; a differing `userId` in the payload is refused."""
    user_id = await _session_user(sid)
    claimed = data.get("userId")
    if claimed and claimed != user_id:
        raise PermissionError(ERROR_SOCKET_USER_MISMATCH)
    return user_id


async def _emit_error(sid, event: str, exc: Exception, message: str) -> None:
    if isinstance(exc, PermissionError):
        logger.warning(f"Socket {event} refused for {sid}: {exc}")
        message = str(exc)
    else:
        logger.error(f"Socket {event} failed for {sid}: {exc}")
    await sio.emit("error", {"message": message}, to=sid)


@sio.on("joinUserRooms")
async def join_user_rooms(sid, data):
    """Join the personal room and every listed chat the user belongs to."""
    try:
        user_id = await _claimed_user(sid, data)
        await sio.enter_room(sid, user_room(user_id))
        for chat_id in data.get("chatIds") or []:
            if await _is_member(chat_id, user_id):
                await sio.enter_room(sid, chat_id)
            else:
                logger.warning(
                    f"Skipped chat room {sanitize_id_for_logging(chat_id)} "
                    f"for user={sanitize_id_for_logging(user_id)}"
                )
        await sio.emit("roomsJoined", {"success": True}, to=sid)
    except Exception as e:
        await _emit_error(sid, "joinUserRooms", e, "Failed to join rooms")


@sio.on("joinRoom")
async def join_room(sid, chat_id):
    try:
        user_id = await _session_user(sid)
        if not await _is_member(chat_id, user_id):
            raise PermissionError(ERROR_CHAT_FORBIDDEN)
        await sio.enter_room(sid, chat_id)
        await sio.emit("roomJoined", {"chatId": chat_id}, to=sid)
    except Exception as e:
        await _emit_error(sid, "joinRoom", e, "Failed to join room")


@sio.on("leaveRoom")
async def leave_room(sid, chat_id):
    try:
        if not isinstance(chat_id, str) or not chat_id:
            raise ValueError(f"invalid chat id {chat_id!r}")
        await sio.leave_room(sid, chat_id)
        await sio.emit("roomLeft", {"chatId": chat_id}, to=sid)
    except Exception as e:
        await _emit_error(sid, "leaveRoom", e, "Failed to leave room")


# ==================== RELAYS ====================


@sio.on("typing")
async def typing(sid, data):
    """Relay typing state to the other members of the chat."""
    try:
        user_id = await _claimed_user(sid, data)
        chat_id = data.get("chatId")
        if not await _is_member(chat_id, user_id):
            raise PermissionError(ERROR_CHAT_FORBIDDEN)
        payload = {"chatId": chat_id, "userId": user_id, "isTyping": bool(data.get("isTyping"))}
        await sio.emit("userTyping", payload, room=chat_id, skip_sid=sid)
    except Exception as e:
        await _emit_error(sid, "typing", e, "Failed to send typing status")


@sio.on("updateStatus")
async def update_status(sid, data):
    """Broadcast presence to everyone but the sender."""
    try:
        payload = {
            "userId": await _claimed_user(sid, data),
            "status": data.get("status"),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        await sio.emit("userStatusChanged", payload, skip_sid=sid)
    except Exception as e:
        await _emit_error(sid, "updateStatus", e, "Failed to update status")


# ==================== SERVER EVENTS ====================


async def emit_new_message(chat_id: str, message: dict[str, Any]) -> None:
    """Emit newMessage to the chat room."""
    try:
        await sio.emit("newMessage", {"message": message, "chatId": chat_id}, room=chat_id)
    except Exception as e:
        logger.warning(f"Failed to emit newMessage: {e}", exc_info=True)


async def emit_chat_updated(
    chat_id: str, last_message: dict[str, Any], unread_count: dict[str, int]
) -> None:
    """Emit chatUpdated (last message + unread counters) to the chat room."""
    try:
        payload = {"chatId": chat_id, "lastMessage": last_message, "unreadCount": unread_count}
        await sio.emit("chatUpdated", payload, room=chat_id)
    except Exception as e:
        logger.warning(f"Failed to emit chatUpdated: {e}", exc_info=True)


async def emit_chat_read(chat_id: str, user_id: str, unread_count: dict[str, int]) -> None:
    """Emit chatRead after a participant read the chat."""
    try:
        payload = {"chatId": chat_id, "userId": user_id, "unreadCount": unread_count}
        await sio.emit("chatRead", payload, room=chat_id)
    except Exception as e:
        logger.warning(f"Failed to emit chatRead: {e}", exc_info=True)
