"""
Final-submission access registry

Teams receive an opaque code by email; only its SHA-256 hex digest is stored,
either embedded on the registration (preferred) or in submissionAccessKeys.
A caller proves identity with the raw code or with the hash returned by an
earlier successful check. Nothing is remembered between calls: every write
re-verifies.

Status mapping:
  400  lead email or credential missing
  404  lead email not registered
  401  no code assigned / code does not match
  503  access entry exists but holds no usable hash
  200  verified
"""
import hashlib
import hmac
import logging
import secrets
from datetime import datetime, timezone
from typing import Dict, Optional

from construct_api.models import (
    AccessResult, Credential, HashedCode, RawCode, SubmissionAccessEntry, TeamRegistration,
)
from construct_api.services.team_registry import AccessKeyGateway, RegistrationGateway
from construct_api.utils import normalize_email, sanitize_string


logger = logging.getLogger(__name__)

# Ambiguous characters (I, O, 0, 1) left out
CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
CODE_LENGTH = 12
CODE_GROUP = 4


def hash_access_code(code: str) -> str:
    """SHA-256 hex digest of the trimmed code"""
    return hashlib.sha256(str(code or "").strip().encode("utf-8")).hexdigest()


def generate_access_code(length: int = CODE_LENGTH) -> str:
    """
    Random human-friendly code

    Example:
        >>> len(generate_access_code())
        14
    """
    raw = "".join(secrets.choice(CODE_ALPHABET) for _ in range(length))
    return "-".join(raw[i:i + CODE_GROUP] for i in range(0, length, CODE_GROUP))


def credential_from(access_code=None, access_code_hash=None) -> Optional[Credential]:
    """Build a credential from request fields; a supplied hash wins over a code"""
    hashed = sanitize_string(access_code_hash)
    if hashed:
        return HashedCode(value=hashed)
    code = sanitize_string(access_code)
    if code:
        return RawCode(value=code)
    return None


def credential_hash(credential: Credential) -> str:
    """Normalize either credential form to a lowercase hex digest"""
    if isinstance(credential, HashedCode):
        return credential.value.strip().lower()
    return hash_access_code(credential.value)


def entry_hash(entry: Optional[Dict]) -> Optional[str]:
    """Expected hash from an access entry; plain `code`/`passcode` entries are hashed"""
    if not entry:
        return None
    for key in ("hash", "accessCodeHash"):
        value = sanitize_string(entry.get(key))
        if value:
            return value.lower()
    for key in ("code", "passcode"):
        value = sanitize_string(entry.get(key))
        if value:
            return hash_access_code(value)
    return None


class AccessRegistry:
    def __init__(self, registrations: RegistrationGateway, access_keys: AccessKeyGateway):
        self.registrations = registrations
        self.access_keys = access_keys

    def validate_access(self, lead_email, credential: Optional[Credential]) -> AccessResult:
        """
        Check a claimed credential against the hash stored for a team

        Args:
            lead_email: Lead email as typed by the client
            credential: RawCode or HashedCode, None if the client sent neither

        Returns:
            AccessResult; on success carries the expected hash and a copy of
            the registration with the lead email normalized
        """
        normalized = normalize_email(lead_email)
        if not normalized:
            return AccessResult(status=400, error="Lead email is required.")

        registration = self.registrations.find_by_lead_email(normalized)
        if registration is None:
            logger.info(f"🔒 Access check for unregistered email {normalized}")
            return AccessResult(
                status=404,
                error="Lead email not found in registrations. Contact the organisers.",
            )

        expected = sanitize_string(registration.submission_access_code_hash).lower()
        if not expected:
            entry = self.access_keys.get(normalized)
            if entry is None:
                return AccessResult(
                    status=401,
                    error="Submission code not assigned for this team. Reach out to the ops desk.",
                )
            expected = entry_hash(entry)
            if not expected:
                logger.error(f"❌ Access entry for {normalized} has no hash")
                return AccessResult(
                    status=503,
                    error="Submission access configuration missing hash. Contact the engineering team.",
                )

        if credential is None:
            return AccessResult(status=400, error="Submission code is required.")

        provided = credential_hash(credential)
        if not hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8")):
            logger.info(f"🔒 Invalid {credential.kind} credential for {normalized}")
            return AccessResult(
                status=401,
                error="Submission code invalid for this team. Double-check the passcode email.",
            )

        verified = registration.model_copy(update={
            "lead": registration.lead.model_copy(update={"email": normalize_email(registration.lead.email)}),
        })
        logger.info(f"🔓 Access verified for team '{registration.team_name}'")
        return AccessResult(status=200, registration=verified, hash=expected)

    def issue_access_code(self, registration: TeamRegistration, code: Optional[str] = None) -> str:
        """
        Assign a new code to a team, storing only its hash

        Returns:
            The plain code, to be distributed out of band
        """
        code = code or generate_access_code()
        self.access_keys.put(SubmissionAccessEntry(
            lead_email=registration.lead.email,
            access_code_hash=hash_access_code(code),
            team_name=registration.team_name,
            campus=registration.campus,
            batch=registration.batch,
            generated_at=datetime.now(timezone.utc),
        ))
        logger.info(f"🔑 Issued access code for team '{registration.team_name}'")
        return code
