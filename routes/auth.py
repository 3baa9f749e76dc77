import logging
from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from typing import Dict, Any
from config.settings import AUTH_COOKIE_NAME
from models.auth import LoginRequest, AccessCodeLogin
from models.departments import scope_department
from services.auth_service import (
    verify_jwt_token,
    decode_jwt_token,
    verify_secret,
    create_jwt_token,
    set_auth_cookie,
    clear_auth_cookie
)
from services.access_code_service import AccessCodeService
from services.activity_service import log_activity
from services.hospitals_service import HospitalsService
from services.staff_service import get_staff_by_email
from services.errors import ServiceError

logger = logging.getLogger(__name__)

router = APIRouter()


async def _start_session(staff: Dict[str, Any], response: Response, method: str) -> Dict[str, Any]:
    """Issue the token and cookie for an authenticated staff row"""
    hospital_name = None
    if staff.get("hospital_id") is not None:
        hospital = await HospitalsService().get_hospital(staff["hospital_id"])
        hospital_name = hospital["name"] if hospital else None

    user = {
        "id": staff["id"],
        "name": staff["name"],
        "email": staff.get("email"),
        "role": staff["role"],
        "hospital_id": staff.get("hospital_id"),
        "hospital_name": hospital_name,
        "department": scope_department(staff)
    }

    token = create_jwt_token(user)
    set_auth_cookie(response, token)

    await log_activity(
        user_id=staff["id"],
        hospital_id=staff.get("hospital_id"),
        activity_type="login",
        description=f"{staff['name']} logged in",
        metadata={"method": method}
    )

    return {
        "success": True,
        "user": user,
        "token": token
    }


@router.post("/login")
async def login(request: LoginRequest, response: Response):
    """Email and password login"""
    if not request.password:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email and password are required"
        )

    try:
        staff = await get_staff_by_email(request.email)

        if not staff or not staff.get("is_active", True) or not verify_secret(request.password, staff.get("password")):
            logger.warning(f"Failed login for {request.email}")
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid email or password"
            )

        return await _start_session(staff, response, "password")

    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        logger.error(f"Login error: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An error occurred during login"
        )


@router.post("/access-code")
async def access_code_login(request: AccessCodeLogin, response: Response):
    """
    Access code login.

    Staff codes log in the staff member they were issued for; role codes
    log in the hospital's first active user with that role.
    """
    if not request.access_code.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Access code is required"
        )

    try:
        staff = await AccessCodeService().authenticate_with_code(request.access_code)

        if not staff:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid access code"
            )

        return await _start_session(staff, response, "access_code")

    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        logger.error(f"Access code login error: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An error occurred during login"
        )


@router.get("/verify")
async def verify(current_user: Dict[str, Any] = Depends(verify_jwt_token)):
    """Get current authenticated user info"""
    return {
        "success": True,
        "user": {
            "id": current_user["staff_id"],
            "name": current_user.get("name"),
            "email": current_user.get("email"),
            "role": current_user["role"],
            "hospital_id": current_user.get("hospital_id"),
            "hospital_name": current_user.get("hospital_name"),
            "department": current_user.get("department")
        }
    }


@router.post("/logout")
async def logout(request: Request, response: Response):
    """Clear the session cookie"""
    token = request.cookies.get(AUTH_COOKIE_NAME)
    if token:
        try:
            user = decode_jwt_token(token)
            await log_activity(
                user_id=user["staff_id"],
                hospital_id=user.get("hospital_id"),
                activity_type="logout",
                description=f"{user.get('name')} logged out"
            )
        except HTTPException:
            # Expired sessions are cleared all the same
            logger.info("Logout with an invalid session token")

    clear_auth_cookie(response)
    return {
        "success": True,
        "message": "Logged out successfully"
    }
