"""Player-to-player messaging route handlers."""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from courttime.api.responses import error_response, server_error
from courttime.database.db import get_db_session
from courttime.models.schemas import MarkConversationReadRequest, SendMessageRequest
from courttime.services import message_service
from courttime.services.results import ErrorKind

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/api/messages/conversations/{facility_id}/{user_id}")
async def get_conversations(
    facility_id: str, user_id: int, session: AsyncSession = Depends(get_db_session)
):
    """A user's conversations at a facility, most recent first."""
    try:
        conversations = await message_service.get_conversations(session, facility_id, user_id)
        return {"success": True, "conversations": conversations}
    except Exception as e:
        logger.error(f"Error fetching conversations: {str(e)}")
        return server_error("Failed to fetch conversations")


@router.get("/api/messages/{conversation_id}")
async def get_messages(conversation_id: int, session: AsyncSession = Depends(get_db_session)):
    """Messages in a conversation, oldest first."""
    try:
        messages = await message_service.get_messages(session, conversation_id)
        return {"success": True, "messages": messages}
    except Exception as e:
        logger.error(f"Error fetching messages: {str(e)}")
        return server_error("Failed to fetch messages")


@router.post("/api/messages", status_code=201)
async def send_message(payload: SendMessageRequest, session: AsyncSession = Depends(get_db_session)):
    """Send a message, opening the conversation on first contact."""
    try:
        sent = await message_service.send_message(
            session,
            sender_id=payload.sender_id,
            recipient_id=payload.recipient_id,
            facility_id=payload.facility_id,
            message_text=payload.message_text,
        )
        return {"success": True, **sent}
    except ValueError as e:
        return error_response(400, str(e), ErrorKind.VALIDATION_ERROR)
    except PermissionError as e:
        return error_response(403, str(e))
    except Exception as e:
        logger.error(f"Error sending message: {str(e)}")
        return server_error("Failed to send message")


@router.patch("/api/messages/{conversation_id}/read")
async def mark_conversation_read(
    conversation_id: int,
    payload: MarkConversationReadRequest,
    session: AsyncSession = Depends(get_db_session),
):
    """Mark the messages sent to a user in a conversation as read."""
    try:
        count = await message_service.mark_conversation_read(session, conversation_id, payload.user_id)
        return {"success": True, "count": count}
    except ValueError as e:
        return error_response(400, str(e), ErrorKind.VALIDATION_ERROR)
    except Exception as e:
        logger.error(f"Error marking messages as read: {str(e)}")
        return server_error("Failed to mark messages as read")
