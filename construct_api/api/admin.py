"""
Admin session endpoints

A successful login sets an opaque session cookie that the admin list routes
accept as an alternative to HTTP Basic credentials.
"""
import logging

from fastapi import APIRouter, Depends, Request, Response
from pydantic import BaseModel

from construct_api.api.deps import check_admin_credentials, get_services
from construct_api.errors import AuthError, ConfigurationError
from construct_api.state import Services


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["admin"])


class LoginRequest(BaseModel):
    username: str
    password: str


@router.post("/login")
async def login(body: LoginRequest, response: Response, services: Services = Depends(get_services)):
    """
    Admin: exchange credentials for a session cookie

    Request:
        {"username": "admin", "password": "..."}
    """
    settings = services.settings
    admin = settings.admin
    if not admin.password:
        raise ConfigurationError("Admin access is not configured. Set ADMIN_PASSWORD in the server environment.")

    if not check_admin_credentials(admin, body.username, body.password):
        logger.warning(f"🔒 Failed admin login for user '{body.username}'")
        raise AuthError("Invalid credentials.")

    token = services.admin_sessions.create(body.username)
    secure = admin.cookie_secure if admin.cookie_secure is not None else settings.is_production
    response.set_cookie(
        admin.cookie_name,
        token,
        max_age=admin.session_ttl_seconds,
        path="/",
        secure=secure,
        httponly=True,
        samesite="lax",
    )
    logger.info(f"✅ Admin '{body.username}' signed in")
    return {"ok": True, "user": body.username}


@router.post("/logout")
async def logout(request: Request, response: Response, services: Services = Depends(get_services)):
    cookie_name = services.settings.admin.cookie_name
    services.admin_sessions.destroy(request.cookies.get(cookie_name))
    response.delete_cookie(cookie_name, path="/")
    return {"ok": True}


@router.get("/session")
async def session_status(request: Request, services: Services = Depends(get_services)):
    session = services.admin_sessions.get(request.cookies.get(services.settings.admin.cookie_name))
    return {
        "authenticated": session is not None,
        "user": session["user"] if session else None,
    }
