from fastapi import APIRouter, Depends, HTTPException, status, Query
from typing import Dict, Any, Optional
from datetime import date
from models.reservations import ReservationCreate
from services.auth_service import verify_jwt_token as get_current_user
from services.reservations_service import ReservationsService
from services.permissions import resolve_hospital_id
from services.errors import ServiceError

router = APIRouter()


@router.get("")
async def get_reservations(
    hospital_id: Optional[int] = Query(default=None),
    staff_id: Optional[int] = Query(default=None),
    year: Optional[int] = Query(default=None),
    month: Optional[int] = Query(default=None, ge=1, le=12),
    current_user: Dict[str, Any] = Depends(get_current_user)
):
    """
    Get reservations for the hospital.

    Optional filters:
    - staff_id: Only one staff member
    - year + month: Only one calendar month
    """
    hospital_id = resolve_hospital_id(current_user, hospital_id)

    try:
        reservations = await ReservationsService().get_reservations(hospital_id, staff_id, year, month)
        return {
            "success": True,
            "reservations": reservations
        }

    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to get reservations: {str(e)}"
        )


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_reservation(
    reservation: ReservationCreate,
    current_user: Dict[str, Any] = Depends(get_current_user)
):
    """Reserve a future date. Staff reserve for themselves, managers for staff in scope."""
    hospital_id = resolve_hospital_id(current_user, reservation.hospital_id)

    try:
        created = await ReservationsService().create_reservation(
            current_user=current_user,
            hospital_id=hospital_id,
            staff_id=reservation.staff_id or current_user["staff_id"],
            shift_date=reservation.shift_date,
            department=reservation.department
        )

        return {
            "success": True,
            "reservation": created
        }

    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to create reservation: {str(e)}"
        )


@router.delete("")
async def delete_reservation(
    id: Optional[int] = Query(default=None),
    staff_id: Optional[int] = Query(default=None),
    shift_date: Optional[date] = Query(default=None),
    hospital_id: Optional[int] = Query(default=None),
    current_user: Dict[str, Any] = Depends(get_current_user)
):
    """Delete a reservation by id, or by staff_id and shift_date"""
    hospital_id = resolve_hospital_id(current_user, hospital_id)
    service = ReservationsService()

    try:
        if id is not None:
            await service.delete_reservation(current_user, hospital_id, id)
        elif staff_id is not None and shift_date is not None:
            await service.delete_reservation_for_date(current_user, hospital_id, staff_id, shift_date)
        else:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Missing required parameters"
            )

        return {
            "success": True,
            "message": "Reservation deleted successfully"
        }

    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to delete reservation: {str(e)}"
        )
