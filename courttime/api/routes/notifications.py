"""Notification route handlers."""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from courttime.api.responses import error_response, server_error
from courttime.database.db import get_db_session
from courttime.models.schemas import CreateNotificationRequest
from courttime.services import notification_service, user_service
from courttime.services.results import ErrorKind
from courttime.utils.constants import NOTIFICATION_LIST_LIMIT

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/api/notifications", status_code=201)
async def create_notification(
    payload: CreateNotificationRequest, session: AsyncSession = Depends(get_db_session)
):
    """Create a notification for a user (announcements, admin use)."""
    if not payload.user_id or not payload.title or not payload.message or not payload.type:
        return error_response(
            400, "Missing required fields: userId, title, message, type", ErrorKind.VALIDATION_ERROR
        )
    try:
        if await user_service.get_user_by_id(session, payload.user_id) is None:
            return error_response(404, "User not found", ErrorKind.NOT_FOUND)

        notification = await notification_service.create_notification(
            session,
            user_id=payload.user_id,
            type=payload.type,
            title=payload.title,
            message=payload.message,
            action_url=payload.action_url,
            priority=payload.priority,
        )
        return {
            "success": True,
            "notification": notification,
            "message": "Notification created successfully",
        }
    except ValueError as e:
        return error_response(400, str(e), ErrorKind.VALIDATION_ERROR)
    except Exception as e:
        logger.error(f"Error creating notification: {str(e)}")
        return server_error("Failed to create notification")


@router.get("/api/notifications/{user_id}")
async def get_notifications(
    user_id: int,
    limit: int = NOTIFICATION_LIST_LIMIT,
    session: AsyncSession = Depends(get_db_session),
):
    """Get a user's most recent notifications."""
    try:
        notifications = await notification_service.get_user_notifications(
            session, user_id, limit=limit
        )
        return {"success": True, "notifications": notifications}
    except Exception as e:
        logger.error(f"Error fetching notifications: {str(e)}")
        return server_error("Failed to fetch notifications")


@router.get("/api/notifications/{user_id}/unread-count")
async def get_unread_count(user_id: int, session: AsyncSession = Depends(get_db_session)):
    """Get unread notification count for user."""
    try:
        count = await notification_service.get_unread_count(session, user_id)
        return {"success": True, "count": count}
    except Exception as e:
        logger.error(f"Error fetching unread count: {str(e)}")
        return server_error("Failed to fetch unread count")


@router.patch("/api/notifications/{notification_id}/read")
async def mark_notification_as_read(
    notification_id: int, session: AsyncSession = Depends(get_db_session)
):
    """Mark a single notification as read."""
    try:
        found = await notification_service.mark_as_read(session, notification_id)
        if not found:
            return error_response(404, "Notification not found", ErrorKind.NOT_FOUND)
        return {"success": True}
    except Exception as e:
        logger.error(f"Error marking notification as read: {str(e)}")
        return server_error("Failed to mark notification as read")


@router.patch("/api/notifications/{user_id}/read-all")
async def mark_all_notifications_as_read(
    user_id: int, session: AsyncSession = Depends(get_db_session)
):
    """Mark all user notifications as read."""
    try:
        count = await notification_service.mark_all_as_read(session, user_id)
        return {"success": True, "count": count}
    except Exception as e:
        logger.error(f"Error marking all notifications as read: {str(e)}")
        return server_error("Failed to mark notifications as read")


@router.delete("/api/notifications/{notification_id}")
async def delete_notification(
    notification_id: int, session: AsyncSession = Depends(get_db_session)
):
    """Delete a notification."""
    try:
        deleted = await notification_service.delete_notification(session, notification_id)
        if not deleted:
            return error_response(404, "Notification not found", ErrorKind.NOT_FOUND)
        return {"success": True}
    except Exception as e:
        logger.error(f"Error deleting notification: {str(e)}")
        return server_error("Failed to delete notification")
