from pydantic import BaseModel, EmailStr, Field
from typing import Optional, Literal

Role = Literal["admin", "manager", "staff"]
StaffType = Literal["medic", "biolog", "chimist", "asistent"]


class StaffBase(BaseModel):
    name: str = Field(..., min_length=1)
    type: StaffType = "medic"
    specialization: Optional[str] = None
    department: Optional[str] = None


class StaffCreate(StaffBase):
    email: Optional[EmailStr] = None
    role: Role = "staff"
    hospital_id: Optional[int] = None  # Defaults to the creator's hospital
    password: Optional[str] = Field(None, min_length=6)


class StaffUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    email: Optional[EmailStr] = None
    role: Optional[Role] = None
    type: Optional[StaffType] = None
    specialization: Optional[str] = None
    department: Optional[str] = None
    password: Optional[str] = Field(None, min_length=6)

