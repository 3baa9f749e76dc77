"""
Role based access rules.

Roles form a hierarchy: staff < manager < admin. Managers inherit every
staff permission and admins inherit every manager permission. Managers
who carry a department are scoped to it; managers without one manage
their whole hospital. Non-admins never reach outside their hospital.
"""
from typing import Dict, Any, Optional, Tuple, Set

from models.departments import VALID_DEPARTMENTS
from services.errors import PermissionDeniedError, ValidationError

ROLES = ["staff", "manager", "admin"]

STAFF_PERMISSIONS: Set[Tuple[str, str]] = {
    ("schedule", "view"),
    ("shift", "view"),
    ("shift", "reserve"),
    ("reservation", "view"),
    ("reservation", "create"),
    ("reservation", "update"),
    ("reservation", "delete"),
    ("swap", "view"),
    ("swap", "create"),
    ("notification", "view"),
    ("unavailability", "view"),
    ("unavailability", "create"),
    ("unavailability", "delete"),
}

MANAGER_PERMISSIONS: Set[Tuple[str, str]] = STAFF_PERMISSIONS | {
    ("staff", "view"),
    ("staff", "create"),
    ("staff", "update"),
    ("staff", "delete"),
    ("schedule", "create"),
    ("schedule", "update"),
    ("schedule", "delete"),
    ("schedule", "generate"),
    ("shift", "assign"),
    ("shift", "cancel"),
    ("swap", "approve"),
    ("swap", "reject"),
    ("reports", "view"),
    ("notification", "send"),
    ("access_code", "manage"),
}

ADMIN_PERMISSIONS: Set[Tuple[str, str]] = MANAGER_PERMISSIONS | {
    ("hospital", "view"),
    ("hospital", "create"),
    ("hospital", "update"),
    ("hospital", "delete"),
    ("system", "config"),
    ("system", "logs"),
    ("notification", "manage"),
}

ROLE_PERMISSIONS = {
    "staff": STAFF_PERMISSIONS,
    "manager": MANAGER_PERMISSIONS,
    "admin": ADMIN_PERMISSIONS,
}

Result = Tuple[bool, Optional[str]]


def has_permission(role: str, resource: str, action: str) -> bool:
    return (resource, action) in ROLE_PERMISSIONS.get(role, set())


def is_role_higher_than(role: str, other: str) -> bool:
    return ROLES.index(role) > ROLES.index(other)


def is_admin(user: Dict[str, Any]) -> bool:
    return user.get("role") == "admin"


def is_manager(user: Dict[str, Any]) -> bool:
    return user.get("role") in ("manager", "admin")


def can_access_hospital(user: Dict[str, Any], hospital_id: Optional[int]) -> bool:
    if is_admin(user):
        return True
    return hospital_id is not None and user.get("hospital_id") == hospital_id


def manages_department(user: Dict[str, Any], department: Optional[str]) -> bool:
    if is_admin(user):
        return True
    if user.get("role") != "manager":
        return False
    scope = user.get("department")
    if scope is None:
        return True
    return scope in VALID_DEPARTMENTS and scope == department


def can_manage_staff_member(user: Dict[str, Any], target: Dict[str, Any], target_department: Optional[str]) -> bool:
    """Whether ``user`` may act on behalf of ``target`` (same hospital, in scope)."""
    if user.get("staff_id") == target.get("id"):
        return True
    if not can_access_hospital(user, target.get("hospital_id")):
        return False
    return manages_department(user, target_department)


def check_can_add_user(current: Dict[str, Any], new_role: str, new_department: Optional[str]) -> Result:
    if not is_manager(current):
        return False, "Only managers and admins can add users"

    if current["role"] == "manager":
        if new_role != "staff":
            return False, "Managers can only add staff"
        scope = current.get("department")
        if scope is not None and new_department != scope:
            return False, "Managers can only add to their own department"

    return True, None


def check_can_update_user(
    current: Dict[str, Any],
    target: Dict[str, Any],
    target_department: Optional[str],
    updates: Dict[str, Any]
) -> Result:
    if not is_manager(current):
        return False, "Only managers and admins can update users"

    new_role = updates.get("role")
    if current.get("staff_id") == target.get("id") and new_role and new_role != current["role"]:
        return False, "Cannot change own role"

    if current["role"] == "manager":
        scope = current.get("department")
        if scope is not None and target_department != scope:
            return False, "Managers can only edit users in their department"
        if new_role and new_role != "staff" and new_role != target.get("role"):
            return False, "Managers can only set the staff role"
        new_department = updates.get("department")
        if scope is not None and new_department and new_department != scope:
            return False, "Managers can only set their own department"

    return True, None


def check_can_delete_user(current: Dict[str, Any], target: Dict[str, Any], target_department: Optional[str]) -> Result:
    if not is_manager(current):
        return False, "Only managers and admins can delete users"

    if current.get("staff_id") == target.get("id"):
        return False, "Cannot delete yourself"

    if current["role"] == "manager":
        scope = current.get("department")
        out_of_scope = scope is not None and target_department != scope
        if out_of_scope or target.get("role") != "staff":
            return False, "Managers can only delete staff in their department"

    return True, None


def check_can_reject_swap(user: Dict[str, Any], swap: Dict[str, Any], shift_department: Optional[str]) -> Result:
    staff_id = user.get("staff_id")
    if staff_id in (swap.get("to_staff_id"), swap.get("from_staff_id")):
        return True, None
    if can_access_hospital(user, swap.get("hospital_id")) and manages_department(user, shift_department):
        return True, None
    return False, "Only the swap target, the requester or a manager can reject this swap"


def check_can_approve_swap(user: Dict[str, Any], swap: Dict[str, Any], shift_department: Optional[str]) -> Result:
    if not has_permission(user.get("role"), "swap", "approve"):
        return False, "Only managers can approve swaps"
    if not can_access_hospital(user, swap.get("hospital_id")) or not manages_department(user, shift_department):
        return False, "Swap is outside your department"
    return True, None


def ensure(result: Result):
    """Raise PermissionDeniedError when a check fails."""
    allowed, reason = result
    if not allowed:
        raise PermissionDeniedError(reason or "Access denied")


def ensure_hospital_access(user: Dict[str, Any], hospital_id: Optional[int]):
    if not can_access_hospital(user, hospital_id):
        raise PermissionDeniedError("Access denied")


def resolve_hospital_id(user: Dict[str, Any], requested: Optional[int] = None) -> int:
    """Hospital a request targets: the requested one (checked) or the user's own."""
    hospital_id = requested if requested is not None else user.get("hospital_id")
    if hospital_id is None:
        raise ValidationError("hospital_id is required")
    ensure_hospital_access(user, hospital_id)
    return hospital_id
