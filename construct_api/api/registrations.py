"""
Team registration endpoints
"""
import logging
from typing import Optional

import requests
from fastapi import APIRouter, BackgroundTasks, Depends, Request
from fastapi.concurrency import run_in_threadpool

from construct_api.api.deps import get_services, rate_limited, read_json_body, require_admin
from construct_api.core.registration import validate_registration
from construct_api.errors import ForbiddenError, ValidationError
from construct_api.services.bot_verification import check_bot_verdict
from construct_api.services.notifier import dispatch_notification
from construct_api.state import Services
from construct_api.utils import sanitize_string


router = APIRouter(prefix="/api", tags=["registrations"])
logger = logging.getLogger(__name__)


async def verify_bot_token(body: dict, client_ip: str, services: Services) -> None:
    """Reject the request with 400 unless the bot-verification provider passes it"""
    token = sanitize_string(body.pop("recaptchaToken", None))
    if not token:
        raise ValidationError("Verification failed. Refresh and try again.")

    try:
        verdict = await run_in_threadpool(services.bot_verifier.verify, token, client_ip)
    except (requests.RequestException, ValueError) as e:
        logger.error(f"❌ Bot verification error for {client_ip}: {type(e).__name__}: {e}")
        raise ValidationError("Verification failed. Please try again.")

    error = check_bot_verdict(verdict, services.settings.bot_verification)
    if error:
        logger.info(f"🤖 Bot verification rejected {client_ip}: score={verdict.score} action={verdict.action}")
        raise ValidationError(error)


async def register_team(
    request: Request,
    background_tasks: BackgroundTasks,
    client_ip: str = Depends(rate_limited("registration")),
    services: Services = Depends(get_services),
):
    """
    Register a team

    Request:
        {
            "teamName": "Testers United",
            "teamSize": 3,
            "lead": {"name": "...", "email": "...", "gender": "female"},
            "members": [{"name": "...", "email": "...", "gender": "..."}, ...],
            "recaptchaToken": "..."   # only when bot verification is enabled
        }

    Response (201):
        {"ok": true}
    """
    if not services.settings.registration.open:
        raise ForbiddenError("Registrations are closed.")

    body = await read_json_body(request)

    if services.bot_verifier is not None and isinstance(body, dict):
        await verify_bot_token(body, client_ip, services)

    result = validate_registration(body, services.settings.registration.campuses)
    if not result.ok:
        logger.info(f"❌ Registration rejected from {client_ip}: {result.error}")
        raise ValidationError(result.error, status_code=result.status)

    saved = await run_in_threadpool(services.registrations.save, result.record)

    background_tasks.add_task(dispatch_notification, services.notifier, saved)
    return {"ok": True}


router.add_api_route("/registrations", register_team, methods=["POST"], status_code=201)
router.add_api_route("/submit", register_team, methods=["POST"], status_code=201)


@router.get("/registrations")
async def list_registrations(
    limit: Optional[str] = None,
    admin: str = Depends(require_admin),
    services: Services = Depends(get_services),
):
    """Admin: registrations, newest first (default 100, max 500)"""
    items = await run_in_threadpool(services.registrations.list, limit)
    return {"items": [item.to_document() for item in items]}
