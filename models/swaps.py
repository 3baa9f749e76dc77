from pydantic import BaseModel, Field
from typing import Optional, Literal


class SwapCreate(BaseModel):
    """Request model for a swap request. Without to_staff_id the request is open."""
    shift_id: int
    reason: str = Field(..., min_length=1)
    from_staff_id: Optional[int] = None
    to_staff_id: Optional[int] = None


class SwapReview(BaseModel):
    """Manager decision on a pending swap"""
    status: Literal["approved", "rejected"]
    review_comment: Optional[str] = None
    cover_staff_id: Optional[int] = None  # Who takes an open request


class SwapReject(BaseModel):
    review_comment: Optional[str] = None
