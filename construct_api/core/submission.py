"""
Final submission validator
"""
from typing import Any, Optional

from construct_api.models import (
    FinalSubmission, RegistrationSnapshot, SubmissionResult, TeamRegistration,
)
from construct_api.utils import is_valid_email, normalize_email, normalize_url, sanitize_string


def _fail(message: str, status: int = 400) -> SubmissionResult:
    return SubmissionResult(ok=False, status=status, error=message)


def snapshot_registration(registration: TeamRegistration) -> RegistrationSnapshot:
    """Copy the fields of a registration that travel with a final submission"""
    lead = registration.lead.model_copy(update={"email": normalize_email(registration.lead.email)})
    return RegistrationSnapshot(
        id=registration.id,
        team_name=registration.team_name,
        team_size=registration.team_size,
        campus=registration.campus,
        batch=registration.batch,
        lead=lead,
        members=list(registration.members),
        submitted_at=registration.submitted_at,
    )


def _optional_url(payload: dict, *keys: str):
    """Returns (url, ok): empty input is fine, a malformed one is not"""
    raw = ""
    for key in keys:
        raw = sanitize_string(payload.get(key))
        if raw:
            break
    if not raw:
        return None, True
    url = normalize_url(raw)
    return (url, True) if url else (None, False)


def validate_final_submission(
    payload: Any,
    registration: Optional[TeamRegistration] = None,
    access_hash: Optional[str] = None,
) -> SubmissionResult:
    """
    Validate a final project submission

    Args:
        payload: Decoded JSON request body (access fields already consumed)
        registration: Registration resolved by the access check
        access_hash: Hash that authorized this write, kept for audit

    Returns:
        SubmissionResult with a FinalSubmission record on success
    """
    if not isinstance(payload, dict):
        return _fail("Invalid request body. Expected a JSON object.")

    project_name = sanitize_string(payload.get("projectName")) or sanitize_string(payload.get("teamName"))
    lead_email = normalize_email(payload.get("leadEmail"))
    deck_url = normalize_url(payload.get("deckUrl"))
    repo_url = normalize_url(payload.get("repoUrl"))
    notes = sanitize_string(payload.get("notes"))

    if not project_name:
        return _fail("Project name is required.")

    if not lead_email or not is_valid_email(lead_email):
        return _fail("Provide a valid contact email for the team lead.")

    if registration is not None and normalize_email(registration.lead.email) != lead_email:
        return _fail("Lead email does not match the registered record.")

    if not deck_url:
        return _fail("Pitch deck link is required. Share an accessible http(s) URL.")

    if not repo_url:
        return _fail("Git repository URL is required for final submissions.")

    demo_url, demo_ok = _optional_url(payload, "demoUrl")
    if not demo_ok:
        return _fail("Demo link must be a valid http(s) URL.")

    documentation_url, docs_ok = _optional_url(payload, "documentationUrl", "extraDocsUrl")
    if not docs_ok:
        return _fail("Documentation link must be a valid http(s) URL.")

    record = FinalSubmission(
        project_name=project_name,
        team_name=registration.team_name if registration is not None else project_name,
        lead_email=lead_email,
        deck_url=deck_url,
        repo_url=repo_url,
        demo_url=demo_url,
        documentation_url=documentation_url,
        notes=notes or None,
        access_hash=access_hash,
        registration=snapshot_registration(registration) if registration is not None else None,
    )
    return SubmissionResult(ok=True, status=200, record=record)
