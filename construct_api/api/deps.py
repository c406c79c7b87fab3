"""
Shared request dependencies: services, rate limiting, admin auth, JSON body
"""
import logging
import secrets
from typing import Any, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from construct_api.core.rate_guard import client_key
from construct_api.errors import AuthError, ConfigurationError, RateLimitError, ValidationError
from construct_api.models import AdminSettings
from construct_api.state import Services


logger = logging.getLogger(__name__)

basic_auth = HTTPBasic(auto_error=False, realm="Admin Area")
BASIC_CHALLENGE = {"WWW-Authenticate": 'Basic realm="Admin Area"'}


def get_services(request: Request) -> Services:
    return request.app.state.services


def rate_limited(scope: str):
    """
    Dependency factory: throttle a write endpoint per client

    Keys are scoped per endpoint so one flow (unlock, then submit) does not
    trip its own interval guard.
    """
    def dependency(request: Request, services: Services = Depends(get_services)) -> str:
        key = client_key(request, services.settings.rate_limit.trust_forwarded_for)
        decision = services.rate_guard.check(f"{scope}:{key}")
        if not decision.allowed:
            logger.warning(f"🚦 Rate limited {scope} for {key} ({decision.reason})")
            raise RateLimitError(decision.message)
        return key

    return dependency


def check_admin_credentials(admin: AdminSettings, username: str, password: str) -> bool:
    user_ok = secrets.compare_digest(username.encode("utf-8"), admin.username.encode("utf-8"))
    pass_ok = secrets.compare_digest(password.encode("utf-8"), (admin.password or "").encode("utf-8"))
    return user_ok and pass_ok


def require_admin(
    request: Request,
    credentials: Optional[HTTPBasicCredentials] = Depends(basic_auth),
    services: Services = Depends(get_services),
) -> str:
    """Admin via session cookie or HTTP Basic; returns the admin user name"""
    admin = services.settings.admin
    if not admin.password:
        raise ConfigurationError("Admin access is not configured. Set ADMIN_PASSWORD in the server environment.")

    session = services.admin_sessions.get(request.cookies.get(admin.cookie_name))
    if session:
        return session["user"]

    if credentials is None:
        raise AuthError("Authentication required.", headers=BASIC_CHALLENGE)
    if check_admin_credentials(admin, credentials.username, credentials.password):
        return credentials.username

    logger.warning(f"🔒 Rejected admin credentials for user '{credentials.username}'")
    raise AuthError("Invalid credentials.", headers=BASIC_CHALLENGE)


async def read_json_body(request: Request) -> Any:
    try:
        return await request.json()
    except ValueError:
        raise ValidationError("Invalid request body. Expected a JSON object.")
