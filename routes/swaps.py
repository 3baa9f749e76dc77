from fastapi import APIRouter, Depends, HTTPException, status, Query
from typing import Dict, Any, Optional
from models.swaps import SwapCreate, SwapReview, SwapReject
from services.auth_service import verify_jwt_token as get_current_user
from services.swaps_service import SwapsService, SWAP_STATUSES
from services.permissions import resolve_hospital_id
from services.errors import ServiceError

router = APIRouter()


@router.get("")
async def get_swaps(
    status_filter: Optional[str] = Query(default="pending", alias="status"),
    hospital_id: Optional[int] = Query(default=None),
    staff_id: Optional[int] = Query(default=None),
    current_user: Dict[str, Any] = Depends(get_current_user)
):
    """
    Get swap requests for the hospital, newest first.

    Optional filters:
    - status: pending (default), approved, rejected, cancelled or all
    - staff_id: Requests from or to one staff member
    """
    hospital_id = resolve_hospital_id(current_user, hospital_id)

    if status_filter != "all" and status_filter not in SWAP_STATUSES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid status"
        )

    try:
        swaps = await SwapsService().get_swaps(
            hospital_id=hospital_id,
            status=None if status_filter == "all" else status_filter,
            staff_id=staff_id
        )

        return {
            "success": True,
            "swaps": swaps
        }

    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to fetch swap requests: {str(e)}"
        )


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_swap(
    swap: SwapCreate,
    current_user: Dict[str, Any] = Depends(get_current_user)
):
    """
    Request a swap for a shift you hold.
    Without to_staff_id the request is open and every manager is notified.
    """
    try:
        created = await SwapsService().create_swap(
            current_user=current_user,
            shift_id=swap.shift_id,
            reason=swap.reason,
            from_staff_id=swap.from_staff_id,
            to_staff_id=swap.to_staff_id
        )

        return {
            "success": True,
            "swap": created
        }

    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to create swap request: {str(e)}"
        )


@router.patch("/{swap_id}")
async def review_swap(
    swap_id: int,
    review: SwapReview,
    current_user: Dict[str, Any] = Depends(get_current_user)
):
    """Approve or reject a pending swap"""
    service = SwapsService()

    try:
        if review.status == "approved":
            swap = await service.approve_swap(
                current_user, swap_id, review.review_comment, review.cover_staff_id
            )
        else:
            swap = await service.reject_swap(current_user, swap_id, review.review_comment)

        return {
            "success": True,
            "swap": swap,
            "message": f"Swap {review.status}"
        }

    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to update swap request: {str(e)}"
        )


@router.post("/{swap_id}/reject")
async def reject_swap(
    swap_id: int,
    body: Optional[SwapReject] = None,
    current_user: Dict[str, Any] = Depends(get_current_user)
):
    """Reject a pending swap. Open to the target, the requester and managers."""
    try:
        swap = await SwapsService().reject_swap(current_user, swap_id, body.review_comment if body else None)
        return {
            "success": True,
            "swap": swap,
            "message": "Swap rejected"
        }

    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to reject swap request: {str(e)}"
        )


@router.post("/{swap_id}/cancel")
async def cancel_swap(
    swap_id: int,
    current_user: Dict[str, Any] = Depends(get_current_user)
):
    """Withdraw your own pending swap request"""
    try:
        swap = await SwapsService().cancel_swap(current_user, swap_id)
        return {
            "success": True,
            "swap": swap,
            "message": "Swap cancelled"
        }

    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to cancel swap request: {str(e)}"
        )
