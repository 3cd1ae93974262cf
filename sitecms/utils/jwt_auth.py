"""
JWT session tokens for the admin area.
Issued on login, carried in the httpOnly cms_token cookie or a Bearer header.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional
import logging

from jose import JWTError, jwt
from fastapi import HTTPException, status, Header, Request

from sitecms.config import settings

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
COOKIE_NAME = "cms_token"


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    claims = dict(data, exp=expire, iat=now, type="access")
    return jwt.encode(claims, settings.JWT_SECRET_KEY, algorithm=ALGORITHM)


def decode_token(token: str) -> dict:
    """
    Decode and validate an access token.

    Raises:
        HTTPException: 401 if the token is invalid, expired or not an access token
    """
    try:
        payload = jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"error": "Invalid token", "message": "Authentication token is invalid or expired"},
            headers={"WWW-Authenticate": "Bearer"},
        )

    if payload.get("type") != "access":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"error": "Invalid token type", "message": "Token is not an access token"},
            headers={"WWW-Authenticate": "Bearer"},
        )
    return payload


def token_from_request(request: Request, authorization: Optional[str] = None) -> Optional[str]:
    """Cookie first, then an `Authorization: Bearer` header."""
    token = request.cookies.get(COOKIE_NAME)
    if not token and authorization:
        parts = authorization.split()
        if len(parts) == 2 and parts[0].lower() == "bearer":
            token = parts[1]
    return token


def verify_cms_token(
    request: Request,
    authorization: Optional[str] = Header(None, description="Bearer token (fallback to cookie)"),
) -> dict:
    """
    FastAPI dependency guarding every admin route.

    Raises:
        HTTPException: 401 if the token is missing, invalid, or expired
    """
    token = token_from_request(request, authorization)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"error": "Missing token", "message": "Authentication required"},
            headers={"WWW-Authenticate": "Bearer"},
        )
    return decode_token(token)


def is_authenticated(request: Request) -> bool:
    token = token_from_request(request, request.headers.get("authorization"))
    if not token:
        return False
    try:
        decode_token(token)
    except HTTPException:
        return False
    return True
