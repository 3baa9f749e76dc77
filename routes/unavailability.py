from fastapi import APIRouter, Depends, HTTPException, status, Query
from typing import Dict, Any, Optional
from datetime import date
from models.unavailability import UnavailabilityCreate
from services.auth_service import verify_jwt_token as get_current_user
from services.unavailability_service import UnavailabilityService
from services.permissions import resolve_hospital_id
from services.errors import ServiceError

router = APIRouter()


@router.get("")
async def get_unavailability(
    hospital_id: Optional[int] = Query(default=None),
    start_date: Optional[date] = Query(default=None),
    end_date: Optional[date] = Query(default=None),
    staff_id: Optional[int] = Query(default=None),
    current_user: Dict[str, Any] = Depends(get_current_user)
):
    hospital_id = resolve_hospital_id(current_user, hospital_id)

    try:
        records = await UnavailabilityService().get_unavailability(hospital_id, start_date, end_date, staff_id)
        return {
            "success": True,
            "unavailability": records
        }

    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to fetch unavailability: {str(e)}"
        )


@router.post("", status_code=status.HTTP_201_CREATED)
async def mark_unavailable(
    record: UnavailabilityCreate,
    current_user: Dict[str, Any] = Depends(get_current_user)
):
    """Mark a day as unavailable, for yourself or (managers) for staff in scope"""
    try:
        created = await UnavailabilityService().mark_unavailable(
            current_user,
            record.staff_id or current_user["staff_id"],
            record.date,
            record.reason
        )

        return {
            "success": True,
            "unavailability": created
        }

    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to mark unavailability: {str(e)}"
        )


@router.delete("")
async def unmark_unavailable(
    day: date = Query(..., alias="date"),
    staff_id: Optional[int] = Query(default=None),
    current_user: Dict[str, Any] = Depends(get_current_user)
):
    try:
        await UnavailabilityService().unmark_unavailable(current_user, staff_id or current_user["staff_id"], day)
        return {
            "success": True,
            "message": "Unavailability removed"
        }

    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to remove unavailability: {str(e)}"
        )
