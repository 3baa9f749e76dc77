from fastapi import APIRouter, Depends, HTTPException, status
from typing import Dict, Any
from models.hospitals import HospitalCreate, HospitalUpdate
from services.auth_service import verify_jwt_token as get_current_user, require_admin
from services.activity_service import log_activity
from services.hospitals_service import HospitalsService
from services.permissions import ensure_hospital_access
from services.errors import ServiceError

router = APIRouter()


@router.get("")
async def list_hospitals(current_user: Dict[str, Any] = Depends(get_current_user)):
    """
    List hospitals with their staff counts.
    Admins see every hospital, everyone else only their own.
    """
    service = HospitalsService()

    try:
        hospitals = await service.list_hospitals()
        if current_user["role"] != "admin":
            hospitals = [h for h in hospitals if h["id"] == current_user.get("hospital_id")]

        return {
            "success": True,
            "hospitals": hospitals
        }

    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to fetch hospitals: {str(e)}"
        )


@router.get("/{hospital_id}")
async def get_hospital(
    hospital_id: int,
    current_user: Dict[str, Any] = Depends(get_current_user)
):
    ensure_hospital_access(current_user, hospital_id)

    try:
        hospital = await HospitalsService().get_hospital_details(hospital_id)
        return {
            "success": True,
            "hospital": hospital
        }

    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to fetch hospital: {str(e)}"
        )


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_hospital(
    hospital: HospitalCreate,
    current_user: Dict[str, Any] = Depends(require_admin)
):
    """Create a hospital. Admin only."""
    try:
        created = await HospitalsService().create_hospital(hospital.dict())

        await log_activity(
            user_id=current_user["staff_id"],
            hospital_id=created["id"],
            activity_type="hospital_created",
            description=f"created hospital {created['name']}"
        )

        return {
            "success": True,
            "hospital": created
        }

    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to create hospital: {str(e)}"
        )


@router.put("/{hospital_id}")
async def update_hospital(
    hospital_id: int,
    updates: HospitalUpdate,
    current_user: Dict[str, Any] = Depends(require_admin)
):
    try:
        hospital = await HospitalsService().update_hospital(hospital_id, updates.dict(exclude_unset=True))
        return {
            "success": True,
            "hospital": hospital
        }

    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to update hospital: {str(e)}"
        )


@router.delete("/{hospital_id}")
async def delete_hospital(
    hospital_id: int,
    current_user: Dict[str, Any] = Depends(require_admin)
):
    try:
        await HospitalsService().delete_hospital(hospital_id)
        return {
            "success": True,
            "message": "Hospital deleted"
        }

    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to delete hospital: {str(e)}"
        )
