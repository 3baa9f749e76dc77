from pydantic import BaseModel
from typing import Optional, Literal
from datetime import datetime


class AccessCodeCreate(BaseModel):
    """Request model for issuing an access code"""
    hospital_id: Optional[int] = None
    role: Literal["staff", "manager"] = "staff"
    staff_id: Optional[int] = None  # Bind the code to one staff member
    expires_at: Optional[datetime] = None


class AccessCodeCreateResponse(BaseModel):
    """The plain code is only returned once"""
    success: bool
    code: str
    role: str
    hospital_id: int
    message: str
