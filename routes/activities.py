from fastapi import APIRouter, Depends, HTTPException, status, Query
from typing import Dict, Any, Optional
from services.auth_service import verify_jwt_token as get_current_user
from services.activity_service import get_recent_activities
from services.permissions import resolve_hospital_id, is_admin

router = APIRouter()


@router.get("")
async def list_activities(
    hospital_id: Optional[int] = Query(default=None),
    limit: int = Query(default=10, ge=1, le=100),
    current_user: Dict[str, Any] = Depends(get_current_user)
):
    """Recent activities of a hospital (admins without a hospital see all)"""
    if hospital_id is not None or not is_admin(current_user):
        hospital_id = resolve_hospital_id(current_user, hospital_id)

    try:
        activities = await get_recent_activities(hospital_id, limit)
        return {
            "success": True,
            "activities": activities
        }

    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to fetch activities: {str(e)}"
        )
