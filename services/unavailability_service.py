import logging
from datetime import date
from typing import Optional, Dict, Any, List
from database.supabase_client import get_supabase
from models.departments import staff_department
from services.permissions import can_manage_staff_member
from services.errors import NotFoundError, ConflictError, PermissionDeniedError

logger = logging.getLogger(__name__)


class UnavailabilityService:
    def __init__(self):
        self.supabase = get_supabase()

    async def _check_target(self, current_user: Dict[str, Any], staff_id: int) -> Dict[str, Any]:
        result = self.supabase.table("staff") \
            .select("id, name, hospital_id, department, specialization") \
            .eq("id", staff_id) \
            .execute()
        if not result.data:
            raise NotFoundError("Staff member not found")
        member = result.data[0]

        if not can_manage_staff_member(current_user, member, staff_department(member)):
            raise PermissionDeniedError("You can only manage your own unavailability")
        return member

    async def get_unavailability(
        self,
        hospital_id: int,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        staff_id: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        try:
            query = self.supabase.table("staff_unavailability") \
                .select("*") \
                .eq("hospital_id", hospital_id)

            if start_date:
                query = query.gte("date", start_date.isoformat())
            if end_date:
                query = query.lte("date", end_date.isoformat())
            if staff_id:
                query = query.eq("staff_id", staff_id)

            result = query.order("date").execute()
            return result.data or []

        except Exception as e:
            logger.error(f"Get unavailability error: {e}")
            raise e

    async def mark_unavailable(
        self,
        current_user: Dict[str, Any],
        staff_id: int,
        day: date,
        reason: Optional[str] = None
    ) -> Dict[str, Any]:
        """Record that a staff member cannot work on a day"""
        member = await self._check_target(current_user, staff_id)

        existing = self.supabase.table("staff_unavailability") \
            .select("id") \
            .eq("staff_id", staff_id) \
            .eq("date", day.isoformat()) \
            .execute()
        if existing.data:
            raise ConflictError("Already marked unavailable on this date")

        try:
            result = self.supabase.table("staff_unavailability").insert({
                "staff_id": staff_id,
                "hospital_id": member["hospital_id"],
                "date": day.isoformat(),
                "reason": reason
            }).execute()

            if not result.data:
                raise Exception("Insert returned no data")

            logger.info(f"Staff {staff_id} marked unavailable on {day}")
            return result.data[0]

        except Exception as e:
            logger.error(f"Mark unavailable error: {e}")
            raise e

    async def unmark_unavailable(self, current_user: Dict[str, Any], staff_id: int, day: date) -> bool:
        await self._check_target(current_user, staff_id)

        try:
            result = self.supabase.table("staff_unavailability") \
                .delete() \
                .eq("staff_id", staff_id) \
                .eq("date", day.isoformat()) \
                .execute()

        except Exception as e:
            logger.error(f"Unmark unavailable error: {e}")
            raise e

        if not result.data:
            raise NotFoundError("Unavailability record not found")
        return True
