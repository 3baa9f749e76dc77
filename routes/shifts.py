import logging
from fastapi import APIRouter, Depends, HTTPException, status, Query
from typing import Dict, Any, Optional
from datetime import date
from services.auth_service import verify_jwt_token as get_current_user, require_manager
from services.shifts_service import ShiftsService
from services.generation_service import GenerationService
from services.permissions import resolve_hospital_id, manages_department, is_admin
from services.errors import ServiceError
from models.shift_generator import month_bounds
from models.shifts import (
    ShiftAssign,
    GenerateShiftsRequest,
    ClearShiftsRequest,
    GenerationPermissionGrant
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("")
async def get_shifts(
    hospital_id: Optional[int] = Query(default=None),
    year: Optional[int] = Query(default=None, ge=2000, le=2100),
    month: Optional[int] = Query(default=None, ge=1, le=12),
    start_date: Optional[date] = Query(default=None),
    end_date: Optional[date] = Query(default=None),
    department: Optional[str] = Query(default=None),
    staff_id: Optional[int] = Query(default=None),
    current_user: Dict[str, Any] = Depends(get_current_user)
):
    """
    Get shifts for a hospital.
    Defaults to the current month if no dates are provided.

    Optional filters:
    - department: Only one department
    - staff_id: Only one staff member
    """
    hospital_id = resolve_hospital_id(current_user, hospital_id)

    if start_date and end_date and start_date > end_date:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="start_date must not be after end_date"
        )

    if not (start_date and end_date):
        today = date.today()
        start_date, end_date = month_bounds(year or today.year, month or today.month)

    service = ShiftsService()

    try:
        shifts = await service.get_shifts(
            hospital_id=hospital_id,
            start_date=start_date,
            end_date=end_date,
            department=department,
            staff_id=staff_id
        )

        return {
            "success": True,
            "shifts": shifts,
            "start_date": start_date.isoformat(),
            "end_date": end_date.isoformat()
        }

    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to fetch shifts: {str(e)}"
        )


@router.post("", status_code=status.HTTP_201_CREATED)
async def assign_shift(
    shift: ShiftAssign,
    current_user: Dict[str, Any] = Depends(require_manager)
):
    """
    Assign a staff member to a shift slot, creating the slot if needed.
    Managers only. Without staff_id the slot is opened.
    """
    hospital_id = resolve_hospital_id(current_user, shift.hospital_id)

    if shift.department and not manages_department(current_user, shift.department):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Shift is outside your department"
        )

    service = ShiftsService()

    try:
        result = await service.assign_shift(
            shift_date=shift.date,
            shift_type=shift.type,
            hospital_id=hospital_id,
            department=shift.department or (None if is_admin(current_user) else current_user.get("department")),
            staff_id=shift.staff_id,
            assigned_by=current_user["staff_id"],
            hospital_name=current_user.get("hospital_name")
        )

        return {
            "success": True,
            "shift": result,
            "message": "Shift assigned" if shift.staff_id else "Shift opened"
        }

    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to assign shift: {str(e)}"
        )


@router.post("/generate")
async def generate_shifts(
    request: GenerateShiftsRequest,
    current_user: Dict[str, Any] = Depends(get_current_user)
):
    """
    Generate a department schedule for a month or a date range.

    Allowed for managers of the department and for staff holding a
    generation permission for it. Set dry_run to preview without saving.
    """
    hospital_id = resolve_hospital_id(current_user, request.hospital_id)
    service = GenerationService()

    try:
        start_date, end_date = service.resolve_range(
            request.year, request.month, request.start_date, request.end_date
        )

        result = await service.generate(
            user=current_user,
            hospital_id=hospital_id,
            department=request.department,
            start_date=start_date,
            end_date=end_date,
            shift_types=request.shift_types,
            prevent_consecutive_days=request.prevent_consecutive_days,
            max_weekend_shifts=request.max_weekend_shifts,
            weekends_first=request.weekends_first,
            dry_run=request.dry_run
        )

        return {
            "success": True,
            **result
        }

    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        logger.error(f"Generate shifts error: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to generate shifts: {str(e)}"
        )


@router.post("/clear")
async def clear_shifts(
    request: ClearShiftsRequest,
    current_user: Dict[str, Any] = Depends(require_manager)
):
    """Delete a month of shifts. Managers only, scoped to their department."""
    hospital_id = resolve_hospital_id(current_user, request.hospital_id)

    department = request.department
    if not is_admin(current_user) and current_user.get("department"):
        out_of_scope = department and department != current_user["department"]
        if out_of_scope or not manages_department(current_user, current_user["department"]):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Shifts are outside your department"
            )
        department = current_user["department"]

    try:
        deleted = await ShiftsService().clear_month(hospital_id, request.year, request.month, department)

        return {
            "success": True,
            "deleted": deleted,
            "message": f"Deleted {deleted} shifts"
        }

    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to clear shifts: {str(e)}"
        )


# ============ GENERATION PERMISSIONS ============

@router.get("/permissions")
async def list_generation_permissions(
    hospital_id: Optional[int] = Query(default=None),
    current_user: Dict[str, Any] = Depends(require_manager)
):
    hospital_id = resolve_hospital_id(current_user, hospital_id)
    permissions = await GenerationService().list_permissions(hospital_id)

    return {
        "success": True,
        "permissions": permissions
    }


@router.post("/permissions", status_code=status.HTTP_201_CREATED)
async def grant_generation_permission(
    grant: GenerationPermissionGrant,
    hospital_id: Optional[int] = Query(default=None),
    current_user: Dict[str, Any] = Depends(require_manager)
):
    """Let a staff member generate shifts for a department"""
    hospital_id = resolve_hospital_id(current_user, hospital_id)

    if not manages_department(current_user, grant.department):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Department is outside your scope"
        )

    permission = await GenerationService().grant_permission(
        hospital_id, grant.staff_id, grant.department, current_user["staff_id"]
    )

    return {
        "success": True,
        "permission": permission
    }


@router.delete("/permissions")
async def revoke_generation_permission(
    staff_id: int,
    department: str,
    hospital_id: Optional[int] = Query(default=None),
    current_user: Dict[str, Any] = Depends(require_manager)
):
    hospital_id = resolve_hospital_id(current_user, hospital_id)

    if not manages_department(current_user, department):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Department is outside your scope"
        )

    await GenerationService().revoke_permission(hospital_id, staff_id, department)

    return {
        "success": True,
        "message": "Permission revoked"
    }


# ============ SINGLE SHIFT ============

@router.get("/{shift_id}")
async def get_shift(
    shift_id: int,
    current_user: Dict[str, Any] = Depends(get_current_user)
):
    """Get a specific shift"""
    hospital_id = resolve_hospital_id(current_user, None) if not is_admin(current_user) else None
    shift = await ShiftsService().get_shift_by_id(shift_id, hospital_id)

    if not shift:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Shift not found"
        )

    return {
        "success": True,
        "shift": shift
    }


async def _managed_shift(shift_id: int, current_user: Dict[str, Any]) -> Dict[str, Any]:
    shift = await ShiftsService().get_shift_by_id(shift_id)
    if not shift:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Shift not found"
        )

    resolve_hospital_id(current_user, shift["hospital_id"])
    if not manages_department(current_user, shift["department"]):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Shift is outside your department"
        )
    return shift


@router.post("/{shift_id}/unassign")
async def unassign_shift(
    shift_id: int,
    current_user: Dict[str, Any] = Depends(require_manager)
):
    """Remove the assignee and reopen the shift"""
    shift = await _managed_shift(shift_id, current_user)

    try:
        updated = await ShiftsService().unassign_shift(shift_id, shift["hospital_id"])
        return {
            "success": True,
            "shift": updated
        }

    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to unassign shift: {str(e)}"
        )


@router.delete("/{shift_id}")
async def delete_shift(
    shift_id: int,
    current_user: Dict[str, Any] = Depends(require_manager)
):
    """Delete a shift. Managers only."""
    shift = await _managed_shift(shift_id, current_user)

    try:
        await ShiftsService().delete_shift(shift_id, shift["hospital_id"])
        return {
            "success": True,
            "message": "Shift deleted"
        }

    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to delete shift: {str(e)}"
        )
