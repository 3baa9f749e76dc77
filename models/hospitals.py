from pydantic import BaseModel, Field
from typing import Optional, Dict, Literal

ShiftType = Literal["24h", "day", "night", "12h"]


class DepartmentRule(BaseModel):
    enabled: bool = True
    shift_type: ShiftType = "24h"


class HospitalCreate(BaseModel):
    """Request model for creating a hospital"""
    name: str = Field(..., min_length=1)
    city: Optional[str] = None
    department_rules: Dict[str, DepartmentRule] = {}


class HospitalUpdate(BaseModel):
    """Request model for updating a hospital. All fields optional."""
    name: Optional[str] = Field(None, min_length=1)
    city: Optional[str] = None
    department_rules: Optional[Dict[str, DepartmentRule]] = None
