"""
Final submission endpoints

Both write routes re-verify the access credential on every call; the
"unlocked" state is only the hash the client keeps after /access succeeds.
"""
import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.concurrency import run_in_threadpool

from construct_api.api.deps import get_services, rate_limited, read_json_body, require_admin
from construct_api.core.access import credential_from
from construct_api.core.submission import validate_final_submission
from construct_api.errors import (
    AuthError, ConfigurationError, ForbiddenError, NotFoundError, PortalError, ValidationError,
)
from construct_api.models import AccessResult
from construct_api.state import Services


router = APIRouter(prefix="/api", tags=["submission"])
logger = logging.getLogger(__name__)

ACCESS_FIELDS = ("accessCode", "accessCodeHash")

ACCESS_ERRORS = {
    400: ValidationError,
    401: AuthError,
    404: NotFoundError,
    503: ConfigurationError,
}


def ensure_submissions_open(services: Services) -> None:
    if not services.settings.submissions.open:
        raise ForbiddenError("Final submissions are closed.")


async def verify_access(body: Any, services: Services) -> AccessResult:
    if not isinstance(body, dict):
        raise ValidationError("Invalid request body. Expected a JSON object.")

    credential = credential_from(body.get("accessCode"), body.get("accessCodeHash"))
    result = await run_in_threadpool(services.access.validate_access, body.get("leadEmail"), credential)
    if not result.ok:
        error_class = ACCESS_ERRORS.get(result.status, PortalError)
        raise error_class(result.error or "Submission access denied.", status_code=result.status)
    return result


@router.post("/final-submissions/access")
async def unlock_submission(
    request: Request,
    client_ip: str = Depends(rate_limited("final-access")),
    services: Services = Depends(get_services),
):
    """
    Check a team's access code before showing the submission form

    Request:
        {"leadEmail": "...", "accessCode": "ABCD-EFGH-JKLM"}
        or {"leadEmail": "...", "accessCodeHash": "<hex>"}

    Response:
        {"ok": true, "teamName": "...", "leadEmail": "...", "accessCodeHash": "<hex>"}
    """
    ensure_submissions_open(services)
    body = await read_json_body(request)
    result = await verify_access(body, services)

    return {
        "ok": True,
        "teamName": result.registration.team_name,
        "leadEmail": result.registration.lead.email,
        "accessCodeHash": result.hash,
    }


@router.post("/final-submissions", status_code=201)
async def create_final_submission(
    request: Request,
    client_ip: str = Depends(rate_limited("final-submit")),
    services: Services = Depends(get_services),
):
    """
    Store a team's final project links

    Request:
        {
            "leadEmail": "...",
            "accessCode": "..." | "accessCodeHash": "...",
            "projectName": "...",
            "deckUrl": "https://...",
            "repoUrl": "https://...",
            "demoUrl": "https://...",            # optional
            "documentationUrl": "https://...",   # optional
            "notes": "..."                        # optional
        }

    Response (201):
        {"ok": true}
    """
    ensure_submissions_open(services)
    body = await read_json_body(request)
    access = await verify_access(body, services)

    payload = {k: v for k, v in body.items() if k not in ACCESS_FIELDS}
    result = validate_final_submission(payload, registration=access.registration, access_hash=access.hash)
    if not result.ok:
        logger.info(f"❌ Final submission rejected for {access.registration.lead.email}: {result.error}")
        raise ValidationError(result.error, status_code=result.status)

    await run_in_threadpool(services.submissions.save, result.record)
    return {"ok": True}


@router.get("/final-submissions")
async def list_final_submissions(
    limit: Optional[str] = None,
    admin: str = Depends(require_admin),
    services: Services = Depends(get_services),
):
    """Admin: final submissions, newest first (default 100, max 300)"""
    items = await run_in_threadpool(services.submissions.list, limit)
    return {"items": [item.to_document() for item in items]}
