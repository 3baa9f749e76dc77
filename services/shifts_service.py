import logging
from datetime import date
from typing import Optional, Dict, Any, List
from database.supabase_client import get_supabase
from models.shift_generator import SHIFT_TIMES, month_bounds
from models.departments import staff_department, normalize_department
from services.activity_service import log_activity
from services.notifications_service import NotificationsService
from services.errors import NotFoundError, ValidationError, ConflictError

logger = logging.getLogger(__name__)

SHIFT_CONFLICT_KEY = "date,type,hospital_id,department"
DEFAULT_DEPARTMENT = "General"


class ShiftsService:
    def __init__(self):
        self.supabase = get_supabase()

    async def _staff_names(self, staff_ids: List[int]) -> Dict[int, str]:
        if not staff_ids:
            return {}
        result = self.supabase.table("staff") \
            .select("id, name") \
            .in_("id", staff_ids) \
            .execute()
        return {s["id"]: s["name"] for s in result.data or []}

    async def get_shifts(
        self,
        hospital_id: int,
        start_date: date,
        end_date: date,
        department: Optional[str] = None,
        staff_id: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        """Get shifts for a hospital within a date range, with staff and reservation names"""
        try:
            query = self.supabase.table("shifts") \
                .select("*") \
                .eq("hospital_id", hospital_id) \
                .gte("date", start_date.isoformat()) \
                .lte("date", end_date.isoformat())

            if department:
                query = query.eq("department", department)

            if staff_id:
                query = query.eq("staff_id", staff_id)

            shifts = query.order("date").execute().data or []

            reservations = self.supabase.table("shift_reservations") \
                .select("staff_id, shift_date, department") \
                .eq("hospital_id", hospital_id) \
                .gte("shift_date", start_date.isoformat()) \
                .lte("shift_date", end_date.isoformat()) \
                .execute().data or []
            reserved = {(str(r["shift_date"])[:10], r["department"]): r["staff_id"] for r in reservations}

            names = await self._staff_names(list(
                {s["staff_id"] for s in shifts if s.get("staff_id")} | set(reserved.values())
            ))

            for shift in shifts:
                shift["staff_name"] = names.get(shift.get("staff_id"))
                reserved_by = reserved.get((str(shift["date"])[:10], shift.get("department")))
                shift["reserved_by"] = reserved_by
                shift["reserved_by_name"] = names.get(reserved_by)

            return shifts

        except Exception as e:
            logger.error(f"Get shifts error: {e}")
            raise e

    async def get_shift_by_id(self, shift_id: int, hospital_id: Optional[int] = None) -> Optional[Dict[str, Any]]:
        """Get a specific shift by ID"""
        try:
            query = self.supabase.table("shifts").select("*").eq("id", shift_id)
            if hospital_id is not None:
                query = query.eq("hospital_id", hospital_id)
            result = query.execute()

            if result.data and len(result.data) > 0:
                return result.data[0]
            return None

        except Exception as e:
            logger.error(f"Get shift error: {e}")
            raise e

    async def staff_shift_on(self, staff_id: int, shift_date: str, exclude_shift_id: Optional[int] = None) -> Optional[Dict[str, Any]]:
        """The shift a staff member already holds on a date, if any"""
        result = self.supabase.table("shifts") \
            .select("*") \
            .eq("staff_id", staff_id) \
            .eq("date", shift_date) \
            .execute()

        for shift in result.data or []:
            if shift["id"] != exclude_shift_id:
                return shift
        return None

    async def _find_slot(self, shift_date: str, shift_type: str, hospital_id: int, department: str) -> Optional[Dict[str, Any]]:
        result = self.supabase.table("shifts") \
            .select("*") \
            .eq("date", shift_date) \
            .eq("type", shift_type) \
            .eq("hospital_id", hospital_id) \
            .eq("department", department) \
            .execute()
        return result.data[0] if result.data else None

    async def assign_shift(
        self,
        shift_date: date,
        shift_type: str,
        hospital_id: int,
        department: Optional[str],
        staff_id: Optional[int],
        assigned_by: int,
        hospital_name: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Create or update the shift slot (date, type, hospital, department).
        With a staff member the slot becomes assigned, without one it is opened.
        """
        day = shift_date.isoformat()
        start_time, end_time = SHIFT_TIMES[shift_type]

        staff = None
        if staff_id is not None:
            staff_result = self.supabase.table("staff") \
                .select("id, name, hospital_id, department, specialization, is_active") \
                .eq("id", staff_id) \
                .execute()
            staff = staff_result.data[0] if staff_result.data else None
            if not staff or staff["hospital_id"] != hospital_id or not staff.get("is_active", True):
                raise NotFoundError("Staff member not found in this hospital")

        if department:
            canonical = normalize_department(department)
            if canonical is None and department != DEFAULT_DEPARTMENT:
                raise ValidationError(f"Invalid department: {department}")
            department = canonical or DEFAULT_DEPARTMENT
        else:
            department = (staff_department(staff) if staff else None) or DEFAULT_DEPARTMENT

        slot = await self._find_slot(day, shift_type, hospital_id, department)

        if staff is not None:
            clash = await self.staff_shift_on(staff_id, day, exclude_shift_id=slot["id"] if slot else None)
            if clash:
                raise ConflictError("Staff member already has a shift on this date")

        payload = {
            "date": day,
            "type": shift_type,
            "start_time": start_time,
            "end_time": end_time,
            "staff_id": staff_id,
            "hospital_id": hospital_id,
            "department": department,
            "status": "assigned" if staff_id is not None else "open"
        }

        try:
            result = self.supabase.table("shifts") \
                .upsert(payload, on_conflict=SHIFT_CONFLICT_KEY) \
                .execute()

            if not result.data:
                raise Exception("Upsert returned no data")
            shift = result.data[0]

        except Exception as e:
            logger.error(f"Assign shift error: {e}")
            raise e

        if staff is not None:
            await NotificationsService().notify_shift_assignment(staff_id, day, hospital_name)
            await log_activity(
                user_id=assigned_by,
                hospital_id=hospital_id,
                activity_type="shift_assigned",
                description=f"assigned {staff['name']} on {day}",
                metadata={"shift_id": shift["id"], "staff_id": staff_id}
            )

        return shift

    async def reassign_shift(
        self,
        shift_id: int,
        staff_id: Optional[int],
        current_staff_id: Optional[int] = None
    ) -> Optional[Dict[str, Any]]:
        """
        Point an existing shift at another staff member (None opens it).
        With ``current_staff_id`` the update only applies while that member
        still holds the shift; returns None when nothing matched.
        """
        try:
            query = self.supabase.table("shifts") \
                .update({"staff_id": staff_id, "status": "assigned" if staff_id is not None else "open"}) \
                .eq("id", shift_id)
            if current_staff_id is not None:
                query = query.eq("staff_id", current_staff_id)
            result = query.execute()

            if result.data and len(result.data) > 0:
                return result.data[0]
            return None

        except Exception as e:
            logger.error(f"Reassign shift error: {e}")
            raise e

    async def unassign_shift(self, shift_id: int, hospital_id: int) -> Dict[str, Any]:
        existing = await self.get_shift_by_id(shift_id, hospital_id)
        if not existing:
            raise NotFoundError("Shift not found")
        return await self.reassign_shift(shift_id, None)

    async def delete_shift(self, shift_id: int, hospital_id: int) -> bool:
        """Delete a shift"""
        try:
            result = self.supabase.table("shifts") \
                .delete() \
                .eq("id", shift_id) \
                .eq("hospital_id", hospital_id) \
                .execute()

            return result.data is not None and len(result.data) > 0

        except Exception as e:
            logger.error(f"Delete shift error: {e}")
            raise e

    async def clear_month(self, hospital_id: int, year: int, month: int, department: Optional[str] = None) -> int:
        """Delete every shift of a hospital (or one department) in a month"""
        start_date, end_date = month_bounds(year, month)
        logger.info(f"Deleting shifts for hospital {hospital_id} from {start_date} to {end_date}")

        try:
            query = self.supabase.table("shifts") \
                .delete() \
                .eq("hospital_id", hospital_id) \
                .gte("date", start_date.isoformat()) \
                .lte("date", end_date.isoformat())

            if department:
                query = query.eq("department", department)

            result = query.execute()
            return len(result.data) if result.data else 0

        except Exception as e:
            logger.error(f"Clear shifts error: {e}")
            raise e

    async def save_generated_shifts(self, hospital_id: int, shifts: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Persist generated shifts in a single upsert, so either all rows land or none"""
        if not shifts:
            return []

        records = [
            {
                "date": s["date"],
                "type": s["type"],
                "start_time": s["start_time"],
                "end_time": s["end_time"],
                "staff_id": s["staff_id"],
                "hospital_id": hospital_id,
                "department": s["department"],
                "status": s["status"]
            }
            for s in shifts
        ]

        try:
            result = self.supabase.table("shifts") \
                .upsert(records, on_conflict=SHIFT_CONFLICT_KEY) \
                .execute()
            return result.data or []

        except Exception as e:
            logger.error(f"Save generated shifts error: {e}")
            raise e
