"""
Tests for player-to-player messaging within a facility.
"""

import pytest
from sqlalchemy import func, select

from courttime.database.models import Conversation, Message, MembershipStatus
from courttime.services import membership_service, message_service


async def _activate(session, facility_id, *user_ids):
    for user_id in user_ids:
        await membership_service.upsert_membership(
            session, user_id, facility_id, MembershipStatus.ACTIVE.value
        )


async def _unread_flags(session, conversation_id):
    result = await session.execute(
        select(Message.sender_id, Message.is_read)
        .where(Message.conversation_id == conversation_id)
        .order_by(Message.id)
    )
    return result.all()


@pytest.mark.asyncio
async def test_first_message_opens_one_conversation(db_session, facility, player, other_player):
    await _activate(db_session, facility.id, player, other_player)

    first = await message_service.send_message(
        db_session, player, other_player, facility.id, "Hit at 9 on Saturday?"
    )
    reply = await message_service.send_message(
        db_session, other_player, player, facility.id, "Sounds good"
    )

    assert first["conversationId"] == reply["conversationId"]
    assert first["message"]["senderId"] == player
    assert first["message"]["isRead"] is False
    count = await db_session.execute(select(func.count()).select_from(Conversation))
    assert count.scalar_one() == 1

    messages = await message_service.get_messages(db_session, first["conversationId"])
    assert [m["messageText"] for m in messages] == ["Hit at 9 on Saturday?", "Sounds good"]


@pytest.mark.asyncio
async def test_send_requires_active_membership_of_both(db_session, facility, player, other_player):
    await _activate(db_session, facility.id, player)
    await membership_service.upsert_membership(
        db_session, other_player, facility.id, MembershipStatus.PENDING.value
    )

    with pytest.raises(PermissionError):
        await message_service.send_message(db_session, player, other_player, facility.id, "Hello")


@pytest.mark.parametrize(
    "sender,recipient,facility_id,text",
    [
        (None, 2, "sunrise-valley", "Hi"),
        (1, None, "sunrise-valley", "Hi"),
        (1, 2, None, "Hi"),
        (1, 2, "sunrise-valley", "   "),
    ],
)
@pytest.mark.asyncio
async def test_send_missing_fields(db_session, sender, recipient, facility_id, text):
    with pytest.raises(ValueError, match="Missing required fields"):
        await message_service.send_message(db_session, sender, recipient, facility_id, text)


@pytest.mark.asyncio
async def test_cannot_message_yourself(db_session, facility, player):
    await _activate(db_session, facility.id, player)

    with pytest.raises(ValueError, match="yourself"):
        await message_service.send_message(db_session, player, player, facility.id, "Note to self")


@pytest.mark.asyncio
async def test_conversation_summaries(db_session, facility, player, other_player):
    await _activate(db_session, facility.id, player, other_player)
    await message_service.send_message(db_session, other_player, player, facility.id, "Doubles?")
    await message_service.send_message(db_session, other_player, player, facility.id, "Court 2 is free")

    conversations = await message_service.get_conversations(db_session, facility.id, player)

    assert len(conversations) == 1
    summary = conversations[0]
    assert summary["otherUser"] == {
        "id": other_player,
        "name": "Olive Other",
        "email": "other@example.com",
    }
    assert summary["lastMessage"]["text"] == "Court 2 is free"
    assert summary["lastMessage"]["senderId"] == other_player
    assert summary["unreadCount"] == 2

    sender_view = await message_service.get_conversations(db_session, facility.id, other_player)
    assert sender_view[0]["unreadCount"] == 0
    assert await message_service.get_conversations(db_session, "another-club", player) == []


@pytest.mark.asyncio
async def test_mark_conversation_read_only_touches_incoming(db_session, facility, player, other_player):
    await _activate(db_session, facility.id, player, other_player)
    sent = await message_service.send_message(db_session, player, other_player, facility.id, "Hi")
    await message_service.send_message(db_session, other_player, player, facility.id, "Hey")
    conversation_id = sent["conversationId"]

    updated = await message_service.mark_conversation_read(db_session, conversation_id, player)

    assert updated == 1
    assert await _unread_flags(db_session, conversation_id) == [(player, False), (other_player, True)]


@pytest.mark.asyncio
async def test_mark_conversation_read_requires_user(db_session):
    with pytest.raises(ValueError, match="userId"):
        await message_service.mark_conversation_read(db_session, 1, None)
