from pydantic import BaseModel, Field
from typing import Optional, List, Literal
from datetime import date

ShiftType = Literal["24h", "day", "night", "12h"]
ShiftStatus = Literal["open", "assigned", "reserved"]


class ShiftAssign(BaseModel):
    """Request model for assigning (or opening) a shift slot"""
    date: date
    type: ShiftType = "24h"
    hospital_id: Optional[int] = None
    department: Optional[str] = None  # Defaults to the assignee's department
    staff_id: Optional[int] = None  # None leaves the slot open


class ShiftResponse(BaseModel):
    """Response model for a shift"""
    id: int
    date: date
    type: ShiftType
    start_time: str
    end_time: str
    staff_id: Optional[int]
    staff_name: Optional[str] = None
    hospital_id: int
    department: str
    status: ShiftStatus
    reserved_by: Optional[int] = None
    reserved_by_name: Optional[str] = None


class GenerateShiftsRequest(BaseModel):
    """Request model for generating a department schedule"""
    hospital_id: Optional[int] = None
    department: str
    year: Optional[int] = Field(None, ge=2000, le=2100)
    month: Optional[int] = Field(None, ge=1, le=12)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    shift_types: Optional[List[ShiftType]] = None
    prevent_consecutive_days: bool = False
    max_weekend_shifts: Optional[int] = Field(None, ge=0)
    weekends_first: bool = False
    dry_run: bool = False


class GenerationPermissionGrant(BaseModel):
    staff_id: int
    department: str


class ClearShiftsRequest(BaseModel):
    """Delete a month of shifts, optionally for one department"""
    hospital_id: Optional[int] = None
    year: int = Field(..., ge=2000, le=2100)
    month: int = Field(..., ge=1, le=12)
    department: Optional[str] = None
