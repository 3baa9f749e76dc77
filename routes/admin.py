import logging
from fastapi import APIRouter, Depends, HTTPException, status, Query
from typing import Dict, Any, Optional
from models.access_codes import AccessCodeCreate, AccessCodeCreateResponse
from services.auth_service import require_manager, require_admin
from services.access_code_service import AccessCodeService
from services.staff_service import get_staff_member
from services.permissions import resolve_hospital_id, has_permission
from services.maintenance_service import check_tables
from services.errors import ServiceError

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/db/check")
async def db_check(current_user: Dict[str, Any] = Depends(require_admin)):
    """Report which tables are reachable"""
    report = check_tables()
    return {
        "success": report["healthy"],
        **report
    }


# ============ ACCESS CODES ============

def _ensure_code_permission(current_user: Dict[str, Any]):
    if not has_permission(current_user["role"], "access_code", "manage"):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Manager or admin access required"
        )


@router.get("/admin/access-codes")
async def list_access_codes(
    hospital_id: Optional[int] = Query(default=None),
    current_user: Dict[str, Any] = Depends(require_manager)
):
    """Access codes of a hospital. The codes themselves are never returned."""
    _ensure_code_permission(current_user)
    hospital_id = resolve_hospital_id(current_user, hospital_id)

    try:
        codes = await AccessCodeService().list_hospital_codes(hospital_id)
        return {
            "success": True,
            "codes": codes
        }

    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to fetch access codes: {str(e)}"
        )


@router.post("/admin/access-codes", response_model=AccessCodeCreateResponse, status_code=status.HTTP_201_CREATED)
async def generate_access_code(
    request: AccessCodeCreate,
    current_user: Dict[str, Any] = Depends(require_manager)
):
    """
    Issue a new access code.
    Managers issue staff codes only; manager codes need an admin.
    """
    _ensure_code_permission(current_user)
    hospital_id = resolve_hospital_id(current_user, request.hospital_id)

    if request.role == "manager" and current_user["role"] != "admin":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only admins can issue manager codes"
        )

    if request.staff_id is not None:
        staff = await get_staff_member(request.staff_id)
        if not staff or staff["hospital_id"] != hospital_id:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Staff member not found in this hospital"
            )

    try:
        code = await AccessCodeService().generate_access_code(
            hospital_id=hospital_id,
            role=request.role,
            staff_id=request.staff_id,
            expires_at=request.expires_at
        )

        return AccessCodeCreateResponse(
            success=True,
            code=code,
            role=request.role,
            hospital_id=hospital_id,
            message="Access code generated. It will not be shown again."
        )

    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to generate access code: {str(e)}"
        )


@router.delete("/admin/access-codes/{code_id}")
async def revoke_access_code(
    code_id: int,
    current_user: Dict[str, Any] = Depends(require_manager)
):
    _ensure_code_permission(current_user)
    service = AccessCodeService()

    existing = await service.get_code(code_id)
    if not existing:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Access code not found"
        )
    resolve_hospital_id(current_user, existing["hospital_id"])

    await service.revoke_access_code(code_id)
    return {
        "success": True,
        "message": "Access code revoked"
    }
