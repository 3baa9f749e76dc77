import logging
from datetime import datetime
from typing import Optional, Dict, Any, List
from database.supabase_client import get_supabase

logger = logging.getLogger(__name__)

NOTIFICATION_TYPES = ["shift_assigned", "swap_request", "swap_approved", "swap_rejected", "shift_reserved"]


class NotificationsService:
    def __init__(self):
        self.supabase = get_supabase()

    async def create_notification(
        self,
        user_id: int,
        notification_type: str,
        title: str,
        message: str,
        metadata: Optional[Dict[str, Any]] = None,
        expires_at: Optional[datetime] = None
    ) -> Optional[Dict[str, Any]]:
        """
        Create a notification for one user.
        Best-effort: a failure is logged and None is returned.
        """
        try:
            payload = {
                "user_id": user_id,
                "type": notification_type,
                "title": title,
                "message": message,
                "metadata": metadata or {},
                "read": False,
                "created_at": datetime.utcnow().isoformat(),
                "expires_at": expires_at.isoformat() if expires_at else None
            }

            result = self.supabase.table("notifications").insert(payload).execute()

            if result.data and len(result.data) > 0:
                return result.data[0]
            return None

        except Exception as e:
            logger.error(f"Create notification error: {e}")
            return None

    # ============ COMMON NOTIFICATIONS ============

    async def notify_shift_assignment(self, staff_id: int, shift_date: str, hospital_name: Optional[str]):
        where = f" at {hospital_name}" if hospital_name else ""
        return await self.create_notification(
            user_id=staff_id,
            notification_type="shift_assigned",
            title="Shift assigned",
            message=f"You have been assigned a shift on {shift_date}{where}",
            metadata={"shift_date": shift_date, "hospital_name": hospital_name}
        )

    async def notify_swap_request(self, target_staff_id: int, from_staff_name: str, shift_date: str, swap_id: int):
        return await self.create_notification(
            user_id=target_staff_id,
            notification_type="swap_request",
            title="Swap request",
            message=f"{from_staff_name} wants to swap the shift on {shift_date}",
            metadata={"from_staff_name": from_staff_name, "shift_date": shift_date, "swap_id": swap_id}
        )

    async def notify_swap_decision(self, staff_id: int, decision: str, shift_date: str, swap_id: int):
        approved = decision == "approved"
        return await self.create_notification(
            user_id=staff_id,
            notification_type="swap_approved" if approved else "swap_rejected",
            title="Swap approved" if approved else "Swap rejected",
            message=f"Your swap request for {shift_date} was {decision}",
            metadata={"shift_date": shift_date, "decision": decision, "swap_id": swap_id}
        )

    async def notify_shift_reserved(self, staff_id: int, shift_date: str, department: str):
        return await self.create_notification(
            user_id=staff_id,
            notification_type="shift_reserved",
            title="Shift reserved",
            message=f"Your reservation for {shift_date} ({department}) is registered",
            metadata={"shift_date": shift_date, "department": department}
        )

    # ============ READ / UPDATE ============

    def _visible(self, notifications: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        now = datetime.utcnow().isoformat()
        return [n for n in notifications if not n.get("expires_at") or str(n["expires_at"]) > now]

    async def get_notifications_for_user(
        self,
        user_id: int,
        unread_only: bool = False,
        limit: int = 50
    ) -> List[Dict[str, Any]]:
        """Get unexpired notifications for a user, newest first"""
        try:
            query = self.supabase.table("notifications") \
                .select("*") \
                .eq("user_id", user_id)

            if unread_only:
                query = query.eq("read", False)

            result = query \
                .order("created_at", desc=True) \
                .limit(limit) \
                .execute()

            return self._visible(result.data or [])

        except Exception as e:
            logger.error(f"Get notifications error: {e}")
            raise e

    async def get_unread_count(self, user_id: int) -> int:
        """Get count of unread notifications"""
        try:
            result = self.supabase.table("notifications") \
                .select("id, expires_at") \
                .eq("user_id", user_id) \
                .eq("read", False) \
                .execute()

            return len(self._visible(result.data or []))

        except Exception as e:
            logger.error(f"Get unread count error: {e}")
            return 0

    async def get_notification_by_id(self, notification_id: int, user_id: int) -> Optional[Dict[str, Any]]:
        try:
            result = self.supabase.table("notifications") \
                .select("*") \
                .eq("id", notification_id) \
                .eq("user_id", user_id) \
                .execute()

            if result.data and len(result.data) > 0:
                return result.data[0]
            return None

        except Exception as e:
            logger.error(f"Get notification error: {e}")
            raise e

    async def mark_as_read(self, notification_ids: List[int], user_id: int) -> int:
        """Mark the given notifications of a user as read"""
        try:
            result = self.supabase.table("notifications") \
                .update({"read": True}) \
                .in_("id", notification_ids) \
                .eq("user_id", user_id) \
                .execute()

            return len(result.data) if result.data else 0

        except Exception as e:
            logger.error(f"Mark as read error: {e}")
            raise e

    async def mark_all_as_read(self, user_id: int) -> int:
        """Mark all notifications as read for a user"""
        try:
            result = self.supabase.table("notifications") \
                .update({"read": True}) \
                .eq("user_id", user_id) \
                .eq("read", False) \
                .execute()

            return len(result.data) if result.data else 0

        except Exception as e:
            logger.error(f"Mark all as read error: {e}")
            raise e

    async def delete_notification(self, notification_id: int, user_id: int) -> bool:
        """Delete a notification"""
        try:
            result = self.supabase.table("notifications") \
                .delete() \
                .eq("id", notification_id) \
                .eq("user_id", user_id) \
                .execute()

            return result.data is not None and len(result.data) > 0

        except Exception as e:
            logger.error(f"Delete notification error: {e}")
            raise e
