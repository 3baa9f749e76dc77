import logging
from typing import List, Dict, Any, Optional
from datetime import date
from database.supabase_client import get_supabase
from models.staff import StaffCreate, StaffUpdate
from models.departments import normalize_department, staff_department
from services.auth_service import hash_secret
from services.activity_service import log_activity
from services.errors import NotFoundError, ValidationError, ConflictError
from services.permissions import (
    check_can_add_user,
    check_can_update_user,
    check_can_delete_user,
    ensure,
    ensure_hospital_access
)

logger = logging.getLogger(__name__)

PUBLIC_COLUMNS = "id, name, email, role, type, hospital_id, specialization, department, is_active, created_at"


def _resolve_department(department: Optional[str], specialization: Optional[str]) -> Optional[str]:
    if department:
        normalized = normalize_department(department)
        if normalized is None:
            raise ValidationError(f"Invalid department: {department}")
        return normalized
    return normalize_department(specialization)


async def get_staff_list(
    hospital_id: int,
    department: Optional[str] = None,
    include_inactive: bool = False
) -> List[Dict[str, Any]]:
    """Get staff for a hospital, optionally for one department"""
    supabase = get_supabase()

    query = supabase.table("staff").select(PUBLIC_COLUMNS).eq("hospital_id", hospital_id)
    if not include_inactive:
        query = query.eq("is_active", True)

    result = query.order("name").execute()
    staff = result.data or []

    if department:
        staff = [s for s in staff if staff_department(s) == department]

    return staff


async def get_staff_member(staff_id: int, with_secret: bool = False) -> Optional[Dict[str, Any]]:
    supabase = get_supabase()

    columns = "*" if with_secret else PUBLIC_COLUMNS
    result = supabase.table("staff").select(columns).eq("id", staff_id).execute()

    if result.data and len(result.data) > 0:
        return result.data[0]
    return None


async def get_staff_by_email(email: str) -> Optional[Dict[str, Any]]:
    supabase = get_supabase()

    result = supabase.table("staff").select("*").eq("email", email).limit(1).execute()

    if result.data and len(result.data) > 0:
        return result.data[0]
    return None


async def _ensure_email_free(email: Optional[str], exclude_id: Optional[int] = None):
    if not email:
        return
    existing = await get_staff_by_email(email)
    if existing and existing["id"] != exclude_id:
        raise ConflictError("Email already exists")


async def create_staff_member(staff_data: StaffCreate, current_user: Dict[str, Any]) -> Dict[str, Any]:
    """Create new staff member"""
    supabase = get_supabase()

    hospital_id = staff_data.hospital_id or current_user.get("hospital_id")
    if hospital_id is None:
        raise ValidationError("hospital_id is required")
    ensure_hospital_access(current_user, hospital_id)

    department = _resolve_department(staff_data.department, staff_data.specialization)
    ensure(check_can_add_user(current_user, staff_data.role, department))

    await _ensure_email_free(staff_data.email)

    new_staff = {
        "name": staff_data.name,
        "email": staff_data.email,
        "password": hash_secret(staff_data.password) if staff_data.password else None,
        "role": staff_data.role,
        "type": staff_data.type,
        "hospital_id": hospital_id,
        "specialization": staff_data.specialization,
        "department": department,
        "is_active": True
    }

    result = supabase.table("staff").insert(new_staff).execute()
    if not result.data:
        raise Exception("Insert returned no data")
    staff = result.data[0]
    staff.pop("password", None)

    await log_activity(
        user_id=current_user["staff_id"],
        hospital_id=hospital_id,
        activity_type="staff_created",
        description=f"added {staff['name']}",
        metadata={"staff_id": staff["id"], "role": staff["role"]}
    )

    return staff


async def update_staff_member(
    staff_id: int,
    staff_data: StaffUpdate,
    current_user: Dict[str, Any]
) -> Dict[str, Any]:
    """Update existing staff member"""
    supabase = get_supabase()

    current = await get_staff_member(staff_id)
    if not current:
        raise NotFoundError(f"Staff member {staff_id} not found")
    ensure_hospital_access(current_user, current["hospital_id"])

    updates = staff_data.dict(exclude_unset=True)
    password = updates.pop("password", None)

    if "department" in updates or "specialization" in updates:
        updates["department"] = _resolve_department(
            updates.get("department"),
            updates.get("specialization", current.get("specialization"))
        )

    ensure(check_can_update_user(current_user, current, staff_department(current), updates))

    if updates.get("email"):
        await _ensure_email_free(updates["email"], exclude_id=staff_id)

    # Track what changed
    changed_fields = {}
    for key, new_value in updates.items():
        old_value = current.get(key)
        if old_value != new_value:
            changed_fields[key] = {"old": old_value, "new": new_value}

    if password:
        updates["password"] = hash_secret(password)
        changed_fields["password"] = {"old": "***", "new": "***"}

    if not updates:
        return current

    result = supabase.table("staff").update(updates).eq("id", staff_id).execute()
    staff = result.data[0] if result.data else {**current, **updates}
    staff.pop("password", None)

    await log_activity(
        user_id=current_user["staff_id"],
        hospital_id=current["hospital_id"],
        activity_type="staff_updated",
        description=f"updated {staff['name']}",
        metadata={"staff_id": staff_id, "changed_fields": changed_fields}
    )

    return staff


async def deactivate_staff_member(staff_id: int, current_user: Dict[str, Any]) -> Dict[str, Any]:
    """Deactivate (soft delete) staff member"""
    supabase = get_supabase()

    current = await get_staff_member(staff_id)
    if not current:
        raise NotFoundError(f"Staff member {staff_id} not found")
    ensure_hospital_access(current_user, current["hospital_id"])
    ensure(check_can_delete_user(current_user, current, staff_department(current)))

    upcoming = supabase.table("shifts") \
        .select("id", count="exact") \
        .eq("staff_id", staff_id) \
        .gte("date", date.today().isoformat()) \
        .execute()

    if upcoming.count:
        raise ValidationError("Cannot delete staff member with assigned shifts")

    result = supabase.table("staff").update({"is_active": False}).eq("id", staff_id).execute()

    await log_activity(
        user_id=current_user["staff_id"],
        hospital_id=current["hospital_id"],
        activity_type="staff_updated",
        description=f"deactivated {current['name']}",
        metadata={"staff_id": staff_id, "is_active": False}
    )

    staff = result.data[0] if result.data else {**current, "is_active": False}
    staff.pop("password", None)
    return staff
