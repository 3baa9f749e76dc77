from fastapi import APIRouter, Depends, HTTPException, status, Query
from typing import Dict, Any
from services.auth_service import verify_jwt_token as get_current_user
from services.notifications_service import NotificationsService
from models.notifications import MarkReadRequest

router = APIRouter()


@router.get("")
async def get_notifications(
    unread_only: bool = Query(default=False),
    limit: int = Query(default=50, ge=1, le=100),
    current_user: Dict[str, Any] = Depends(get_current_user)
):
    """
    Get notifications for current user, newest first.
    Expired notifications are left out.

    Optional filters:
    - unread_only: Only return unread notifications
    - limit: Max results (default 50, max 100)
    """
    service = NotificationsService()

    try:
        notifications = await service.get_notifications_for_user(
            user_id=current_user['staff_id'],
            unread_only=unread_only,
            limit=limit
        )

        unread_count = await service.get_unread_count(current_user['staff_id'])

        return {
            "success": True,
            "notifications": notifications,
            "count": len(notifications),
            "unread_count": unread_count
        }

    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to fetch notifications: {str(e)}"
        )


@router.get("/unread-count")
async def get_unread_count(current_user: Dict[str, Any] = Depends(get_current_user)):
    count = await NotificationsService().get_unread_count(current_user['staff_id'])
    return {
        "success": True,
        "unread_count": count
    }


@router.put("/read")
async def mark_notifications_read(
    request: MarkReadRequest,
    current_user: Dict[str, Any] = Depends(get_current_user)
):
    """Mark the given notifications (or all with mark_all) as read"""
    service = NotificationsService()

    if not request.mark_all and not request.notification_ids:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="notification_ids or mark_all is required"
        )

    try:
        if request.mark_all:
            count = await service.mark_all_as_read(current_user['staff_id'])
        else:
            count = await service.mark_as_read(request.notification_ids, current_user['staff_id'])

        return {
            "success": True,
            "marked_count": count,
            "message": f"Marked {count} notifications as read"
        }

    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to update notifications: {str(e)}"
        )


@router.put("/read-all")
async def mark_all_notifications_read(
    current_user: Dict[str, Any] = Depends(get_current_user)
):
    """Mark all notifications as read for current user"""
    service = NotificationsService()

    try:
        count = await service.mark_all_as_read(current_user['staff_id'])

        return {
            "success": True,
            "marked_count": count,
            "message": f"Marked {count} notifications as read"
        }

    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to update notifications: {str(e)}"
        )


@router.put("/{notification_id}/read")
async def mark_notification_read(
    notification_id: int,
    current_user: Dict[str, Any] = Depends(get_current_user)
):
    """Mark a notification as read"""
    service = NotificationsService()

    try:
        count = await service.mark_as_read([notification_id], current_user['staff_id'])

        if not count:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Notification not found"
            )

        return {
            "success": True,
            "message": "Marked as read"
        }

    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to update notification: {str(e)}"
        )


@router.delete("/{notification_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_notification(
    notification_id: int,
    current_user: Dict[str, Any] = Depends(get_current_user)
):
    """Delete a notification"""
    service = NotificationsService()

    try:
        existing = await service.get_notification_by_id(
            notification_id=notification_id,
            user_id=current_user['staff_id']
        )

        if not existing:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Notification not found"
            )

        await service.delete_notification(
            notification_id=notification_id,
            user_id=current_user['staff_id']
        )

    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to delete notification: {str(e)}"
        )
