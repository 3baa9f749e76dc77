import logging
from datetime import date
from typing import Optional, Dict, Any, List
from database.supabase_client import get_supabase
from config.settings import MAX_RESERVATIONS_PER_MONTH
from models.shift_generator import month_bounds
from models.departments import VALID_DEPARTMENTS, staff_department
from services.activity_service import log_activity
from services.notifications_service import NotificationsService
from services.permissions import can_manage_staff_member
from services.errors import NotFoundError, ValidationError, ConflictError, PermissionDeniedError

logger = logging.getLogger(__name__)

RESERVATION_DEPARTMENTS = VALID_DEPARTMENTS + ["General"]


class ReservationsService:
    def __init__(self):
        self.supabase = get_supabase()

    async def get_reservations(
        self,
        hospital_id: int,
        staff_id: Optional[int] = None,
        year: Optional[int] = None,
        month: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        """Reservations of a hospital, optionally for one staff member and one month"""
        try:
            query = self.supabase.table("shift_reservations") \
                .select("*") \
                .eq("hospital_id", hospital_id)

            if staff_id:
                query = query.eq("staff_id", staff_id)

            if year and month:
                first, last = month_bounds(year, month)
                query = query.gte("shift_date", first.isoformat()).lte("shift_date", last.isoformat())

            reservations = query.order("shift_date").execute().data or []

            staff_ids = list({r["staff_id"] for r in reservations})
            names = {}
            if staff_ids:
                staff = self.supabase.table("staff").select("id, name").in_("id", staff_ids).execute()
                names = {s["id"]: s["name"] for s in staff.data or []}

            for reservation in reservations:
                reservation["staff_name"] = names.get(reservation["staff_id"])

            logger.info(f"Retrieved {len(reservations)} reservations for hospital {hospital_id}")
            return reservations

        except Exception as e:
            logger.error(f"Get reservations error: {e}")
            raise e

    async def count_in_month(self, staff_id: int, hospital_id: int, shift_date: date) -> int:
        first, last = month_bounds(shift_date.year, shift_date.month)
        result = self.supabase.table("shift_reservations") \
            .select("id", count="exact") \
            .eq("staff_id", staff_id) \
            .eq("hospital_id", hospital_id) \
            .gte("shift_date", first.isoformat()) \
            .lte("shift_date", last.isoformat()) \
            .execute()
        return result.count or 0

    async def create_reservation(
        self,
        current_user: Dict[str, Any],
        hospital_id: int,
        staff_id: int,
        shift_date: date,
        department: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Reserve a future date for a staff member.

        Checks in order: the date is in the future, the staff member belongs
        to the hospital, the caller may act for them, the department is known,
        the monthly cap, a duplicate date, another reservation or an assigned
        shift for the same date and department, and unavailability.
        """
        if shift_date <= date.today():
            raise ValidationError("Invalid shift date - must be a valid future date")

        staff = self.supabase.table("staff") \
            .select("id, name, hospital_id, department, specialization, is_active") \
            .eq("id", staff_id) \
            .execute()
        if not staff.data or staff.data[0]["hospital_id"] != hospital_id or not staff.data[0].get("is_active", True):
            raise NotFoundError("Staff member not found in this hospital")
        member = staff.data[0]

        member_department = staff_department(member)
        if not can_manage_staff_member(current_user, member, member_department):
            raise PermissionDeniedError("You can only reserve shifts for yourself")

        department = department or member_department or "General"
        if department not in RESERVATION_DEPARTMENTS:
            raise ValidationError("Invalid department")

        day = shift_date.isoformat()

        if await self.count_in_month(staff_id, hospital_id, shift_date) >= MAX_RESERVATIONS_PER_MONTH:
            raise ValidationError(f"Monthly reservation limit reached ({MAX_RESERVATIONS_PER_MONTH} per month)")

        own = self.supabase.table("shift_reservations") \
            .select("id") \
            .eq("staff_id", staff_id) \
            .eq("shift_date", day) \
            .execute()
        if own.data:
            raise ConflictError("Date already reserved")

        taken = self.supabase.table("shift_reservations") \
            .select("id") \
            .eq("hospital_id", hospital_id) \
            .eq("department", department) \
            .eq("shift_date", day) \
            .execute()
        if taken.data:
            raise ConflictError("Date already reserved by another staff member")

        assigned = self.supabase.table("shifts") \
            .select("id") \
            .eq("hospital_id", hospital_id) \
            .eq("department", department) \
            .eq("date", day) \
            .eq("status", "assigned") \
            .execute()
        if assigned.data:
            raise ConflictError("Shift already assigned to another staff member")

        unavailable = self.supabase.table("staff_unavailability") \
            .select("id") \
            .eq("staff_id", staff_id) \
            .eq("date", day) \
            .execute()
        if unavailable.data:
            raise ValidationError("Staff member is marked unavailable on this date")

        try:
            result = self.supabase.table("shift_reservations").insert({
                "staff_id": staff_id,
                "hospital_id": hospital_id,
                "shift_date": day,
                "department": department
            }).execute()

            if not result.data:
                raise Exception("Insert returned no data")
            reservation = result.data[0]

        except Exception as e:
            logger.error(f"Create reservation error: {e}")
            raise e

        logger.info(f"Reservation {reservation['id']} created for staff {staff_id} on {day}")

        await NotificationsService().notify_shift_reserved(staff_id, day, department)
        await log_activity(
            user_id=current_user["staff_id"],
            hospital_id=hospital_id,
            activity_type="shift_reserved",
            description=f"reserved {day} for {member['name']}",
            metadata={"reservation_id": reservation["id"], "staff_id": staff_id, "department": department}
        )

        return reservation

    async def _delete(self, current_user: Dict[str, Any], query) -> Dict[str, Any]:
        existing = query.execute().data
        if not existing:
            raise NotFoundError("Reservation not found")
        reservation = existing[0]

        staff = self.supabase.table("staff") \
            .select("id, hospital_id, department, specialization") \
            .eq("id", reservation["staff_id"]) \
            .execute()
        member = staff.data[0] if staff.data else {"id": reservation["staff_id"], "hospital_id": reservation["hospital_id"]}
        if not can_manage_staff_member(current_user, member, staff_department(member)):
            raise PermissionDeniedError("You can only cancel your own reservations")

        try:
            self.supabase.table("shift_reservations").delete().eq("id", reservation["id"]).execute()
        except Exception as e:
            logger.error(f"Delete reservation error: {e}")
            raise e

        logger.info(f"Reservation {reservation['id']} deleted")
        return reservation

    async def delete_reservation(self, current_user: Dict[str, Any], hospital_id: int, reservation_id: int) -> Dict[str, Any]:
        query = self.supabase.table("shift_reservations") \
            .select("*") \
            .eq("id", reservation_id) \
            .eq("hospital_id", hospital_id)
        return await self._delete(current_user, query)

    async def delete_reservation_for_date(
        self,
        current_user: Dict[str, Any],
        hospital_id: int,
        staff_id: int,
        shift_date: date
    ) -> Dict[str, Any]:
        query = self.supabase.table("shift_reservations") \
            .select("*") \
            .eq("staff_id", staff_id) \
            .eq("hospital_id", hospital_id) \
            .eq("shift_date", shift_date.isoformat())
        return await self._delete(current_user, query)
