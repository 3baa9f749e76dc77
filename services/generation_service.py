import logging
from datetime import date
from typing import Optional, Dict, Any, List
from database.supabase_client import get_supabase
from models.shift_generator import ShiftGenerator, month_bounds
from models.departments import (
    VALID_DEPARTMENTS,
    staff_department,
    is_department_enabled,
    shift_type_for_department
)
from services.activity_service import log_activity
from services.hospitals_service import HospitalsService
from services.shifts_service import ShiftsService
from services.permissions import can_access_hospital, manages_department
from services.errors import NotFoundError, ValidationError, PermissionDeniedError

logger = logging.getLogger(__name__)

# Admins are not on the rota
WORKING_ROLES = ("staff", "manager")


class GenerationService:
    """Loads a department's scheduling inputs, runs the generator and saves the result"""

    def __init__(self):
        self.supabase = get_supabase()

    # ============ PERMISSIONS ============

    async def has_generation_permission(self, staff_id: int, department: str) -> bool:
        result = self.supabase.table("shift_generation_permissions") \
            .select("id") \
            .eq("staff_id", staff_id) \
            .eq("department", department) \
            .eq("is_active", True) \
            .execute()
        return bool(result.data)

    async def can_generate(self, user: Dict[str, Any], hospital_id: int, department: str) -> bool:
        if not can_access_hospital(user, hospital_id):
            return False
        if manages_department(user, department):
            return True
        return await self.has_generation_permission(user["staff_id"], department)

    async def grant_permission(self, hospital_id: int, staff_id: int, department: str, granted_by: int) -> Dict[str, Any]:
        """Allow a staff member to generate shifts for one department"""
        if department not in VALID_DEPARTMENTS:
            raise ValidationError(f"Invalid department: {department}")

        staff = self.supabase.table("staff") \
            .select("id, name, hospital_id") \
            .eq("id", staff_id) \
            .execute()
        if not staff.data or staff.data[0]["hospital_id"] != hospital_id:
            raise NotFoundError("Staff member not found in this hospital")

        try:
            result = self.supabase.table("shift_generation_permissions") \
                .upsert({
                    "staff_id": staff_id,
                    "hospital_id": hospital_id,
                    "department": department,
                    "granted_by": granted_by,
                    "is_active": True
                }, on_conflict="staff_id,department") \
                .execute()

            logger.info(f"Generation permission for {department} granted to staff {staff_id}")
            return result.data[0] if result.data else {}

        except Exception as e:
            logger.error(f"Grant generation permission error: {e}")
            raise e

    async def revoke_permission(self, hospital_id: int, staff_id: int, department: str) -> bool:
        try:
            result = self.supabase.table("shift_generation_permissions") \
                .update({"is_active": False}) \
                .eq("hospital_id", hospital_id) \
                .eq("staff_id", staff_id) \
                .eq("department", department) \
                .execute()

            if not result.data:
                raise NotFoundError("Generation permission not found")
            return True

        except NotFoundError:
            raise
        except Exception as e:
            logger.error(f"Revoke generation permission error: {e}")
            raise e

    async def list_permissions(self, hospital_id: int) -> List[Dict[str, Any]]:
        result = self.supabase.table("shift_generation_permissions") \
            .select("*") \
            .eq("hospital_id", hospital_id) \
            .eq("is_active", True) \
            .execute()

        permissions = result.data or []
        staff_ids = list({p["staff_id"] for p in permissions})
        names = {}
        if staff_ids:
            staff = self.supabase.table("staff").select("id, name").in_("id", staff_ids).execute()
            names = {s["id"]: s["name"] for s in staff.data or []}

        return [{**p, "staff_name": names.get(p["staff_id"])} for p in permissions]

    # ============ INPUTS ============

    async def _department_staff(self, hospital_id: int, department: str) -> List[Dict[str, Any]]:
        result = self.supabase.table("staff") \
            .select("id, name, role, department, specialization") \
            .eq("hospital_id", hospital_id) \
            .eq("is_active", True) \
            .order("id") \
            .execute()

        return [
            s for s in result.data or []
            if s.get("role") in WORKING_ROLES and staff_department(s) == department
        ]

    async def _existing_shifts(self, hospital_id: int, start_date: date, end_date: date) -> List[Dict[str, Any]]:
        result = self.supabase.table("shifts") \
            .select("id, date, type, staff_id, department, status") \
            .eq("hospital_id", hospital_id) \
            .gte("date", start_date.isoformat()) \
            .lte("date", end_date.isoformat()) \
            .execute()
        return result.data or []

    async def _unavailability(self, hospital_id: int, start_date: date, end_date: date) -> List[Dict[str, Any]]:
        result = self.supabase.table("staff_unavailability") \
            .select("staff_id, date") \
            .eq("hospital_id", hospital_id) \
            .gte("date", start_date.isoformat()) \
            .lte("date", end_date.isoformat()) \
            .execute()
        return result.data or []

    async def _reservations(self, hospital_id: int, department: str, start_date: date, end_date: date) -> List[Dict[str, Any]]:
        result = self.supabase.table("shift_reservations") \
            .select("id, staff_id, shift_date, department, created_at") \
            .eq("hospital_id", hospital_id) \
            .eq("department", department) \
            .gte("shift_date", start_date.isoformat()) \
            .lte("shift_date", end_date.isoformat()) \
            .execute()
        return result.data or []

    # ============ GENERATION ============

    def resolve_range(
        self,
        year: Optional[int],
        month: Optional[int],
        start_date: Optional[date],
        end_date: Optional[date]
    ):
        if start_date and end_date:
            if end_date < start_date:
                raise ValidationError("end_date must not be before start_date")
            return start_date, end_date
        if year and month:
            return month_bounds(year, month)
        raise ValidationError("Provide year and month, or start_date and end_date")

    async def generate(
        self,
        user: Dict[str, Any],
        hospital_id: int,
        department: str,
        start_date: date,
        end_date: date,
        shift_types: Optional[List[str]] = None,
        prevent_consecutive_days: bool = False,
        max_weekend_shifts: Optional[int] = None,
        weekends_first: bool = False,
        dry_run: bool = False
    ) -> Dict[str, Any]:
        """
        Generate the schedule of one department for a date range.

        Returns the generated shifts with statistics and fairness. Unless
        ``dry_run`` is set, every generated shift is written in a single
        upsert so a failure leaves the schedule untouched.
        """
        if department not in VALID_DEPARTMENTS:
            raise ValidationError(f"Invalid department: {department}")

        if not await self.can_generate(user, hospital_id, department):
            raise PermissionDeniedError("You are not allowed to generate shifts for this department")

        hospital = await HospitalsService().get_hospital(hospital_id)
        if not hospital:
            raise NotFoundError("Hospital not found")

        rules = hospital.get("department_rules") or {}
        if not is_department_enabled(rules, department):
            logger.info(f"Department {department} is disabled for hospital {hospital_id}, nothing generated")
            return {
                "shifts": [],
                "stats": {"generated": 0, "assigned": 0, "open": 0, "open_dates": []},
                "fairness": None,
                "saved": 0,
                "message": f"Department {department} is disabled"
            }

        if not shift_types:
            shift_types = [shift_type_for_department(rules, department)]

        staff = await self._department_staff(hospital_id, department)
        existing = await self._existing_shifts(hospital_id, start_date, end_date)
        unavailability = await self._unavailability(hospital_id, start_date, end_date)
        reservations = await self._reservations(hospital_id, department, start_date, end_date)

        logger.info(
            f"Generating {department} shifts for hospital {hospital_id} "
            f"from {start_date} to {end_date} with {len(staff)} staff"
        )

        try:
            generator = ShiftGenerator(
                start_date=start_date,
                end_date=end_date,
                department=department,
                staff=staff,
                existing_shifts=existing,
                unavailability=unavailability,
                reservations=reservations,
                shift_types=shift_types,
                prevent_consecutive_days=prevent_consecutive_days,
                max_weekend_shifts=max_weekend_shifts,
                weekends_first=weekends_first
            )
        except ValueError as e:
            raise ValidationError(str(e))

        outcome = generator.run()

        saved = []
        if not dry_run:
            saved = await ShiftsService().save_generated_shifts(hospital_id, outcome["shifts"])
            await log_activity(
                user_id=user["staff_id"],
                hospital_id=hospital_id,
                activity_type="schedule_generated",
                description=f"generated {department} schedule {start_date} - {end_date}",
                metadata={"department": department, **{k: v for k, v in outcome["stats"].items() if k != "open_dates"}}
            )

        return {**outcome, "saved": len(saved), "dry_run": dry_run}
