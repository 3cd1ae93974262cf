"""
Admin login/logout and session check.
Only the admin area depends on these; public routes never look at the session.
"""
from datetime import timedelta
from fastapi import APIRouter, HTTPException, Request, Response, status
import logging

from sitecms.config import settings
from sitecms.schemas import LoginRequest, SessionResponse, TokenResponse
from sitecms.utils.auth import verify_admin_password
from sitecms.utils.jwt_auth import COOKIE_NAME, create_access_token, is_authenticated
from sitecms.utils.rate_limit import limiter, RATE_LIMITS

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=TokenResponse)
@limiter.limit(RATE_LIMITS["login"])
async def login(request: Request, response: Response, credentials: LoginRequest):
    """
    Exchange the admin password for a session token.
    The token is set as an httpOnly cookie and also returned in the body.

    Raises:
        HTTPException: 401 on a wrong password, 500 if no admin password is configured
    """
    try:
        valid = verify_admin_password(credentials.password)
    except ValueError as e:
        logger.error(f"Login attempted without admin password configured: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "Authentication not configured", "message": str(e)},
        )

    if not valid:
        logger.warning("Failed admin login attempt")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"error": "Invalid credentials", "message": "Incorrect password"},
        )

    expires = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    token = create_access_token({"sub": "cms_admin", "role": "admin"}, expires)
    response.set_cookie(
        COOKIE_NAME,
        token,
        max_age=int(expires.total_seconds()),
        httponly=True,
        secure=request.url.scheme == "https",
        samesite="lax",
    )
    logger.info("Admin logged in")
    return TokenResponse(access_token=token, expires_in=int(expires.total_seconds()))


@router.post("/logout")
async def logout(response: Response):
    response.delete_cookie(COOKIE_NAME)
    return {"message": "Logged out"}


@router.get("/session", response_model=SessionResponse)
async def session(request: Request):
    return SessionResponse(authenticated=is_authenticated(request))
