from pydantic import BaseModel
from typing import Optional
from datetime import date


class ReservationCreate(BaseModel):
    """Request model for reserving a future date"""
    staff_id: Optional[int] = None  # Defaults to the current user
    shift_date: date
    department: Optional[str] = None
    hospital_id: Optional[int] = None
