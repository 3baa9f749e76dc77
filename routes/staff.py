import logging
from fastapi import APIRouter, Depends, HTTPException, Query, status
from typing import Dict, Any, Optional
from models.staff import StaffCreate, StaffUpdate
from services.auth_service import verify_jwt_token, require_manager
from services.staff_service import (
    get_staff_list,
    get_staff_member,
    create_staff_member,
    update_staff_member,
    deactivate_staff_member
)
from services.permissions import resolve_hospital_id, ensure_hospital_access

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("")
async def list_staff(
    hospital_id: Optional[int] = Query(default=None),
    department: Optional[str] = Query(default=None),
    include_inactive: bool = Query(default=False),
    current_staff: Dict[str, Any] = Depends(verify_jwt_token)
):
    """Get active staff for the hospital, optionally one department"""
    hospital_id = resolve_hospital_id(current_staff, hospital_id)
    staff = await get_staff_list(hospital_id, department=department, include_inactive=include_inactive)

    return {
        "success": True,
        "staff": staff
    }


@router.get("/{staff_id}")
async def get_staff(
    staff_id: int,
    current_staff: Dict[str, Any] = Depends(verify_jwt_token)
):
    staff = await get_staff_member(staff_id)
    if not staff:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Staff member not found"
        )
    ensure_hospital_access(current_staff, staff["hospital_id"])

    return {
        "success": True,
        "staff": staff
    }


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_staff(
    staff_data: StaffCreate,
    current_staff: Dict[str, Any] = Depends(require_manager)
):
    """Create new staff member"""
    staff = await create_staff_member(staff_data=staff_data, current_user=current_staff)
    logger.info(f"Staff {staff['id']} created by {current_staff['staff_id']}")

    return {
        "success": True,
        "message": f"{staff_data.name} has been added successfully",
        "staff": staff
    }


@router.put("/{staff_id}")
async def update_staff(
    staff_id: int,
    staff_data: StaffUpdate,
    current_staff: Dict[str, Any] = Depends(require_manager)
):
    """Update existing staff member"""
    staff = await update_staff_member(staff_id=staff_id, staff_data=staff_data, current_user=current_staff)

    return {
        "success": True,
        "message": f"{staff['name']} has been updated successfully",
        "staff": staff
    }


@router.delete("/{staff_id}")
async def delete_staff(
    staff_id: int,
    current_staff: Dict[str, Any] = Depends(require_manager)
):
    """Deactivate (soft delete) staff member"""
    staff = await deactivate_staff_member(staff_id=staff_id, current_user=current_staff)

    return {
        "success": True,
        "message": f"{staff['name']} has been removed successfully"
    }
