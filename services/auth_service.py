import jwt
import bcrypt
from datetime import datetime, timedelta
from typing import Dict, Any, Optional
from fastapi import HTTPException, status, Depends, Request, Response
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from config.settings import (
    JWT_SECRET,
    JWT_ALGORITHM,
    JWT_EXPIRATION_HOURS,
    AUTH_COOKIE_NAME,
    COOKIE_SECURE,
    BCRYPT_ROUNDS
)

security = HTTPBearer(auto_error=False)


def hash_secret(secret: str) -> str:
    """Hash a password or access code using bcrypt"""
    hashed = bcrypt.hashpw(secret.encode('utf-8'), bcrypt.gensalt(rounds=BCRYPT_ROUNDS))
    return hashed.decode('utf-8')


def verify_secret(secret: str, hashed: Optional[str]) -> bool:
    """Verify a password or access code against its hash"""
    if not hashed:
        return False
    try:
        return bcrypt.checkpw(secret.encode('utf-8'), hashed.encode('utf-8'))
    except ValueError:
        # Malformed hash in storage
        return False


def create_jwt_token(user_data: Dict[str, Any]) -> str:
    """Create JWT token"""
    payload = {
        "staff_id": user_data["id"],
        "name": user_data.get("name"),
        "email": user_data.get("email"),
        "role": user_data["role"],
        "hospital_id": user_data.get("hospital_id"),
        "hospital_name": user_data.get("hospital_name"),
        "department": user_data.get("department"),
        "exp": datetime.utcnow() + timedelta(hours=JWT_EXPIRATION_HOURS),
        "iat": datetime.utcnow()
    }
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)


def decode_jwt_token(token: str) -> Dict[str, Any]:
    try:
        return jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has expired"
        )
    except jwt.InvalidTokenError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials"
        )


def set_auth_cookie(response: Response, token: str):
    response.set_cookie(
        key=AUTH_COOKIE_NAME,
        value=token,
        httponly=True,
        secure=COOKIE_SECURE,
        samesite="lax",
        max_age=JWT_EXPIRATION_HOURS * 60 * 60
    )


def clear_auth_cookie(response: Response):
    response.delete_cookie(key=AUTH_COOKIE_NAME, httponly=True, samesite="lax")


def verify_jwt_token(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> Dict[str, Any]:
    """Verify the session token (cookie first, then bearer header) and return its payload"""
    token = request.cookies.get(AUTH_COOKIE_NAME)
    if not token and credentials:
        token = credentials.credentials

    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="No authentication token"
        )

    payload = decode_jwt_token(token)
    if payload.get("hospital_id") is None and payload.get("role") != "admin":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="No hospital ID in token"
        )
    return payload


def require_manager(current_user: Dict[str, Any] = Depends(verify_jwt_token)) -> Dict[str, Any]:
    """Require manager or admin role"""
    if current_user.get("role") not in ("manager", "admin"):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Manager or admin access required"
        )
    return current_user


def require_admin(current_user: Dict[str, Any] = Depends(verify_jwt_token)) -> Dict[str, Any]:
    """Require admin role"""
    if current_user.get("role") != "admin":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required"
        )
    return current_user
