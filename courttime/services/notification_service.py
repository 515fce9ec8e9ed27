"""
Notification service for managing user notifications.

Handles creation, retrieval, and status updates for in-app notifications,
plus the booking confirmation/cancellation messages.
"""

from typing import List, Dict, Optional
from datetime import date, time
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, delete, func, and_
from courttime.database.models import Notification, NotificationType
from courttime.utils.constants import NOTIFICATION_LIST_LIMIT
from courttime.utils.datetime_utils import format_relative_day, format_time_range
import logging

logger = logging.getLogger(__name__)

PRIORITIES = ("low", "medium", "high")


def infer_priority(type: str) -> str:
    """Infer a display priority from the notification type."""
    if "confirmed" in type or "reminder" in type:
        return "high"
    if "cancelled" in type or "change" in type:
        return "medium"
    return "low"


def _notification_to_dict(notification: Notification) -> Dict:
    return {
        "id": notification.id,
        "userId": notification.user_id,
        "type": notification.type,
        "title": notification.title,
        "message": notification.message,
        "priority": notification.priority,
        "read": notification.is_read,
        "actionUrl": notification.action_url,
        "createdAt": notification.created_at.isoformat() if notification.created_at else None,
    }


async def create_notification(
    session: AsyncSession,
    user_id: int,
    type: str,
    title: str,
    message: str,
    action_url: Optional[str] = None,
    priority: Optional[str] = None,
) -> Dict:
    """
    Create a single notification for a user.

    Args:
        session: Database session
        user_id: ID of the user to notify
        type: Notification type (NotificationType enum value)
        title: Notification title
        message: Notification message text
        action_url: Optional URL for navigation when notification is clicked
        priority: Optional priority (low/medium/high); inferred from type if omitted

    Returns:
        Dict containing the created notification data

    Raises:
        ValueError: If required fields are missing or invalid
    """
    if not user_id:
        raise ValueError("user_id is required")
    if not type:
        raise ValueError("type is required")
    if not title:
        raise ValueError("title is required")
    if not message:
        raise ValueError("message is required")
    if priority is not None and priority not in PRIORITIES:
        raise ValueError(f"Invalid priority: {priority}")

    notification = Notification(
        user_id=user_id,
        type=type,
        title=title,
        message=message,
        action_url=action_url,
        priority=priority or infer_priority(type),
        is_read=False,
    )

    session.add(notification)
    await session.flush()
    await session.refresh(notification)

    return _notification_to_dict(notification)


async def notify_booking_confirmed(
    session: AsyncSession,
    user_id: int,
    facility_name: str,
    court_name: str,
    booking_date: date,
    start_time: time,
    end_time: time,
) -> Dict:
    """Notify a user that their court reservation was confirmed."""
    message = (
        f"Your {court_name} booking at {facility_name} has been confirmed for "
        f"{format_relative_day(booking_date)} at {format_time_range(start_time, end_time)}."
    )
    return await create_notification(
        session,
        user_id=user_id,
        type=NotificationType.BOOKING_CONFIRMED.value,
        title="Court Reservation Confirmed",
        message=message,
        priority="high",
    )


async def notify_booking_cancelled(
    session: AsyncSession,
    user_id: int,
    facility_name: str,
    court_name: str,
    booking_date: date,
    reason: Optional[str] = None,
) -> Dict:
    """Notify a user that their court reservation was cancelled."""
    suffix = f": {reason}." if reason else "."
    message = (
        f"Your {court_name} booking at {facility_name} for "
        f"{format_relative_day(booking_date)} has been cancelled{suffix}"
    )
    return await create_notification(
        session,
        user_id=user_id,
        type=NotificationType.BOOKING_CANCELLED.value,
        title="Reservation Cancelled",
        message=message,
        priority="medium",
    )


async def get_user_notifications(
    session: AsyncSession, user_id: int, limit: int = NOTIFICATION_LIST_LIMIT
) -> List[Dict]:
    """
    Fetch a user's most recent notifications, newest first.

    Args:
        session: Database session
        user_id: ID of the user
        limit: Maximum number of notifications to return

    Returns:
        List of notification dicts
    """
    result = await session.execute(
        select(Notification)
        .where(Notification.user_id == user_id)
        .order_by(Notification.created_at.desc(), Notification.id.desc())
        .limit(limit)
    )
    return [_notification_to_dict(n) for n in result.scalars().all()]


async def get_unread_count(session: AsyncSession, user_id: int) -> int:
    """Get count of unread notifications for a user."""
    result = await session.execute(
        select(func.count())
        .select_from(Notification)
        .where(
            and_(
                Notification.user_id == user_id,
                Notification.is_read.is_(False),
            )
        )
    )
    return result.scalar_one() or 0


async def mark_as_read(session: AsyncSession, notification_id: int) -> bool:
    """
    Mark a single notification as read.

    Returns:
        True if the notification exists, False otherwise
    """
    result = await session.execute(
        update(Notification)
        .where(Notification.id == notification_id)
        .values(is_read=True)
    )
    return result.rowcount > 0


async def mark_all_as_read(session: AsyncSession, user_id: int) -> int:
    """
    Mark all unread notifications for a user as read.

    Returns:
        Number of notifications updated
    """
    result = await session.execute(
        update(Notification)
        .where(
            and_(
                Notification.user_id == user_id,
                Notification.is_read.is_(False),
            )
        )
        .values(is_read=True)
    )
    return result.rowcount


async def delete_notification(session: AsyncSession, notification_id: int) -> bool:
    """Delete a notification. Returns True if a row was removed."""
    result = await session.execute(
        delete(Notification).where(Notification.id == notification_id)
    )
    return result.rowcount > 0
