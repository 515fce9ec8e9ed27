"""
Player-to-player messaging within a facility.

Only two active members of the same facility can message each other. Each
pair has one conversation per facility, created by the first message.
"""

from typing import Dict, List, Optional
import logging

from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from courttime.database.models import (
    Conversation,
    FacilityMembership,
    MembershipStatus,
    Message,
    User,
)

logger = logging.getLogger(__name__)


def _message_to_dict(message: Message) -> Dict:
    return {
        "id": message.id,
        "conversationId": message.conversation_id,
        "senderId": message.sender_id,
        "messageText": message.message_text,
        "isRead": message.is_read,
        "createdAt": message.created_at.isoformat() if message.created_at else None,
    }


def _ordered_pair(user_a: int, user_b: int):
    return (user_a, user_b) if user_a < user_b else (user_b, user_a)


async def _count_active_members(session: AsyncSession, facility_id: str, user_ids) -> int:
    result = await session.execute(
        select(func.count(func.distinct(FacilityMembership.user_id))).where(
            FacilityMembership.facility_id == facility_id,
            FacilityMembership.user_id.in_(user_ids),
            FacilityMembership.status == MembershipStatus.ACTIVE.value,
        )
    )
    return result.scalar_one()


async def get_or_create_conversation(
    session: AsyncSession, facility_id: str, user_a: int, user_b: int
) -> int:
    """Conversation id for the pair at the facility, creating it if needed."""
    participant1_id, participant2_id = _ordered_pair(user_a, user_b)
    result = await session.execute(
        select(Conversation.id).where(
            Conversation.facility_id == facility_id,
            Conversation.participant1_id == participant1_id,
            Conversation.participant2_id == participant2_id,
        )
    )
    conversation_id = result.scalar_one_or_none()
    if conversation_id is not None:
        return conversation_id

    conversation = Conversation(
        facility_id=facility_id,
        participant1_id=participant1_id,
        participant2_id=participant2_id,
    )
    session.add(conversation)
    await session.flush()
    logger.info(
        f"Created conversation {conversation.id} at {facility_id} "
        f"between users {participant1_id} and {participant2_id}"
    )
    return conversation.id


async def send_message(
    session: AsyncSession,
    sender_id: Optional[int],
    recipient_id: Optional[int],
    facility_id: Optional[str],
    message_text: Optional[str],
) -> Dict:
    """
    Send a message, starting the conversation on first contact.

    Args:
        session: Database session
        sender_id: Sending user
        recipient_id: Receiving user
        facility_id: Facility both users belong to
        message_text: Message body

    Returns:
        Dict with the created ``message`` and its ``conversationId``

    Raises:
        ValueError: If a field is missing or the users are the same person
        PermissionError: If either user is not an active member of the facility
    """
    if not sender_id or not recipient_id or not facility_id or not message_text or not message_text.strip():
        raise ValueError("Missing required fields: senderId, recipientId, facilityId, messageText")
    if sender_id == recipient_id:
        raise ValueError("Cannot send a message to yourself")

    if await _count_active_members(session, facility_id, [sender_id, recipient_id]) != 2:
        raise PermissionError("Both users must be active members of the facility")

    conversation_id = await get_or_create_conversation(session, facility_id, sender_id, recipient_id)

    message = Message(
        conversation_id=conversation_id,
        sender_id=sender_id,
        message_text=message_text,
        is_read=False,
    )
    session.add(message)
    await session.execute(
        update(Conversation)
        .where(Conversation.id == conversation_id)
        .values(updated_at=func.now())
    )
    await session.flush()
    await session.refresh(message)

    return {"message": _message_to_dict(message), "conversationId": conversation_id}


async def get_messages(session: AsyncSession, conversation_id: int) -> List[Dict]:
    """Messages of a conversation, oldest first."""
    result = await session.execute(
        select(Message)
        .where(Message.conversation_id == conversation_id)
        .order_by(Message.created_at, Message.id)
    )
    return [_message_to_dict(m) for m in result.scalars().all()]


async def get_conversations(session: AsyncSession, facility_id: str, user_id: int) -> List[Dict]:
    """
    A user's conversations at a facility.

    Each entry names the other participant, the last message (or None), and
    how many messages from the other participant are unread. Conversations
    with the most recent message come first; empty ones come last.
    """
    result = await session.execute(
        select(Conversation).where(
            Conversation.facility_id == facility_id,
            or_(Conversation.participant1_id == user_id, Conversation.participant2_id == user_id),
        )
    )
    conversations = result.scalars().all()
    if not conversations:
        return []

    conversation_ids = [c.id for c in conversations]
    other_ids = {
        c.id: c.participant2_id if c.participant1_id == user_id else c.participant1_id
        for c in conversations
    }

    users_result = await session.execute(
        select(User.id, User.full_name, User.email).where(User.id.in_(set(other_ids.values())))
    )
    users = {row.id: row for row in users_result.all()}

    unread_result = await session.execute(
        select(Message.conversation_id, func.count(Message.id))
        .where(
            Message.conversation_id.in_(conversation_ids),
            Message.sender_id != user_id,
            Message.is_read.is_(False),
        )
        .group_by(Message.conversation_id)
    )
    unread = dict(unread_result.all())

    latest = (
        select(
            Message.conversation_id,
            func.max(Message.id).label("last_id"),
        )
        .where(Message.conversation_id.in_(conversation_ids))
        .group_by(Message.conversation_id)
        .subquery()
    )
    last_result = await session.execute(
        select(Message).join(
            latest,
            and_(Message.conversation_id == latest.c.conversation_id, Message.id == latest.c.last_id),
        )
    )
    last_messages = {m.conversation_id: m for m in last_result.scalars().all()}

    summaries = []
    for conversation in conversations:
        other = users.get(other_ids[conversation.id])
        last = last_messages.get(conversation.id)
        summaries.append(
            {
                "id": conversation.id,
                "otherUser": {
                    "id": other_ids[conversation.id],
                    "name": other.full_name if other else None,
                    "email": other.email if other else None,
                },
                "lastMessage": {
                    "text": last.message_text,
                    "senderId": last.sender_id,
                    "sentAt": last.created_at.isoformat() if last.created_at else None,
                }
                if last
                else None,
                "unreadCount": unread.get(conversation.id, 0),
            }
        )

    # Most recent message first; conversations without messages last
    summaries.sort(
        key=lambda s: last_messages[s["id"]].id if s["id"] in last_messages else 0,
        reverse=True,
    )
    return summaries


async def mark_conversation_read(session: AsyncSession, conversation_id: int, user_id: Optional[int]) -> int:
    """
    Mark messages sent to ``user_id`` in a conversation as read.

    Returns:
        Number of messages updated

    Raises:
        ValueError: If user_id is missing
    """
    if not user_id:
        raise ValueError("Missing required field: userId")
    result = await session.execute(
        update(Message)
        .where(
            Message.conversation_id == conversation_id,
            Message.sender_id != user_id,
            Message.is_read.is_(False),
        )
        .values(is_read=True)
    )
    return result.rowcount
