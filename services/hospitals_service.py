import logging
from typing import Optional, Dict, Any, List
from database.supabase_client import get_supabase
from models.departments import VALID_DEPARTMENTS, staff_department
from services.errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)


class HospitalsService:
    def __init__(self):
        self.supabase = get_supabase()

    async def list_hospitals(self) -> List[Dict[str, Any]]:
        """All hospitals with their active staff count"""
        try:
            hospitals = self.supabase.table("hospitals") \
                .select("*") \
                .order("name") \
                .execute()

            staff = self.supabase.table("staff") \
                .select("id, hospital_id") \
                .eq("is_active", True) \
                .execute()

            counts: Dict[int, int] = {}
            for member in staff.data or []:
                counts[member["hospital_id"]] = counts.get(member["hospital_id"], 0) + 1

            return [
                {**hospital, "staff_count": counts.get(hospital["id"], 0)}
                for hospital in hospitals.data or []
            ]

        except Exception as e:
            logger.error(f"List hospitals error: {e}")
            raise e

    async def get_hospital(self, hospital_id: int) -> Optional[Dict[str, Any]]:
        try:
            result = self.supabase.table("hospitals") \
                .select("*") \
                .eq("id", hospital_id) \
                .execute()

            if result.data and len(result.data) > 0:
                return result.data[0]
            return None

        except Exception as e:
            logger.error(f"Get hospital error: {e}")
            raise e

    async def get_hospital_details(self, hospital_id: int) -> Dict[str, Any]:
        """Hospital with staff and department counts"""
        hospital = await self.get_hospital(hospital_id)
        if not hospital:
            raise NotFoundError("Hospital not found")

        staff = self.supabase.table("staff") \
            .select("id, department, specialization") \
            .eq("hospital_id", hospital_id) \
            .eq("is_active", True) \
            .execute()

        members = staff.data or []
        departments = sorted({d for d in (staff_department(m) for m in members) if d})

        return {
            **hospital,
            "staff_count": len(members),
            "department_count": len(departments),
            "departments": departments
        }

    def _validate_rules(self, department_rules: Optional[Dict[str, Any]]):
        for department in (department_rules or {}):
            if department not in VALID_DEPARTMENTS:
                raise ValidationError(f"Unknown department in rules: {department}")

    async def create_hospital(self, hospital_data: Dict[str, Any]) -> Dict[str, Any]:
        self._validate_rules(hospital_data.get("department_rules"))

        payload = {
            "name": hospital_data["name"],
            "city": hospital_data.get("city") or "",
            "department_rules": hospital_data.get("department_rules") or {}
        }

        try:
            result = self.supabase.table("hospitals").insert(payload).execute()

            if result.data and len(result.data) > 0:
                return result.data[0]
            else:
                raise Exception("Insert returned no data")

        except Exception as e:
            logger.error(f"Create hospital error: {e}")
            raise e

    async def update_hospital(self, hospital_id: int, update_data: Dict[str, Any]) -> Dict[str, Any]:
        existing = await self.get_hospital(hospital_id)
        if not existing:
            raise NotFoundError("Hospital not found")

        payload = {k: v for k, v in update_data.items() if v is not None}
        self._validate_rules(payload.get("department_rules"))
        if not payload:
            return existing

        try:
            result = self.supabase.table("hospitals") \
                .update(payload) \
                .eq("id", hospital_id) \
                .execute()

            return result.data[0] if result.data else existing

        except Exception as e:
            logger.error(f"Update hospital error: {e}")
            raise e

    async def delete_hospital(self, hospital_id: int) -> bool:
        existing = await self.get_hospital(hospital_id)
        if not existing:
            raise NotFoundError("Hospital not found")

        try:
            result = self.supabase.table("hospitals") \
                .delete() \
                .eq("id", hospital_id) \
                .execute()

            return result.data is not None and len(result.data) > 0

        except Exception as e:
            logger.error(f"Delete hospital error: {e}")
            raise e
