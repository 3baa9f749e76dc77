from pydantic import BaseModel, EmailStr


class LoginRequest(BaseModel):
    email: EmailStr
    password: str

class AccessCodeLogin(BaseModel):
    """Single-field login with a staff or manager access code"""
    access_code: str

