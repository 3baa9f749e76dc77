from pydantic import BaseModel
from typing import Optional
from datetime import date


class UnavailabilityCreate(BaseModel):
    staff_id: Optional[int] = None  # Defaults to the current user
    date: date
    reason: Optional[str] = None
