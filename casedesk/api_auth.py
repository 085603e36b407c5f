"""
Auth API Endpoints
==================

POST /api/auth/register
POST /api/auth/login    (sets the httpOnly auth cookie)
POST /api/auth/logout   (revokes the token, clears the cookie)
GET  /api/auth/me
"""

from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from .auth import UserIdentity
from .config import get_settings
from .deps import Services, get_current_user, get_request_token, get_services
from .responses import error_body, to_response
from .results import Success
from .schemas import LoginRequest, RegisterRequest

router = APIRouter(prefix="/api/auth", tags=["Auth"])


@router.post("/register", status_code=201)
async def register(body: RegisterRequest, services: Services = Depends(get_services)):
    """Create a CLIENT or LAWYER account"""
    return to_response(services.accounts.register(
        email=body.email,
        password=body.password,
        first_name=body.first_name,
        last_name=body.last_name,
        role=body.role,
    ))


@router.post("/login")
async def login(body: LoginRequest, services: Services = Depends(get_services)):
    settings = get_settings()
    authenticated = services.accounts.authenticate(body.email, body.password)
    if authenticated is None:
        return JSONResponse(status_code=401, content=error_body("Invalid credentials"))

    token, user = authenticated
    response = to_response(Success({"user": user, "token": token}, "Login successful"))
    response.set_cookie(
        key=settings.auth_cookie_name,
        value=token,
        max_age=settings.jwt_access_token_expire_minutes * 60,
        httponly=True,
        secure=settings.auth_cookie_secure,
        samesite=settings.auth_cookie_samesite,
        path="/",
    )
    return response


@router.post("/logout")
async def logout(
    token: Optional[str] = Depends(get_request_token),
    services: Services = Depends(get_services),
):
    """Revoke the current token (if any) and clear the cookie"""
    settings = get_settings()
    services.accounts.logout(token)
    response = to_response(Success(None, "Logout successful"))
    response.delete_cookie(key=settings.auth_cookie_name, path="/")
    return response


@router.get("/me")
async def me(
    user: UserIdentity = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    return to_response(services.accounts.me(user))
