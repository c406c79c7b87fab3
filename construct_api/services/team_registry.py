"""Team registration, final submission and access-key persistence"""
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from construct_api.errors import DuplicateRegistrationError
from construct_api.models import FinalSubmission, SubmissionAccessEntry, TeamRegistration
from construct_api.services.store import DocumentStore, DuplicateDocumentError
from construct_api.utils import normalize_email


logger = logging.getLogger(__name__)

REGISTRATIONS = "teamRegistrations"
SUBMISSIONS = "teamSubmissions"
ACCESS_KEYS = "submissionAccessKeys"

DEFAULT_LIST_LIMIT = 100
MAX_REGISTRATION_LIMIT = 500
MAX_SUBMISSION_LIMIT = 300


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def clamp_limit(limit: Any, ceiling: int, default: int = DEFAULT_LIST_LIMIT) -> int:
    """Parse a caller-supplied limit; junk or non-positive values give the default"""
    try:
        value = int(str(limit).strip())
    except (TypeError, ValueError):
        return default
    if value <= 0:
        return default
    return min(value, ceiling)


def _stamped_document(model, now: datetime) -> Dict:
    doc = model.model_copy(update={"submitted_at": now}).to_document()
    doc.pop("id", None)
    return doc


class RegistrationGateway:
    def __init__(self, store: DocumentStore, clock: Callable[[], datetime] = utcnow):
        self.store = store
        self.clock = clock

    def save(self, record: TeamRegistration) -> TeamRegistration:
        """
        Append one registration with a server timestamp

        Raises:
            DuplicateRegistrationError: lead email already registered
            StorageError: store unavailable
        """
        doc = _stamped_document(record, self.clock())
        try:
            doc_id = self.store.insert(REGISTRATIONS, doc, unique_field="lead.email")
        except DuplicateDocumentError as e:
            logger.info(f"⚠️ Duplicate registration for {record.lead.email}")
            raise DuplicateRegistrationError(record.lead.email) from e
        logger.info(f"✅ Registered team '{record.team_name}' ({record.team_size} members) | id={doc_id}")
        return TeamRegistration.model_validate(dict(doc, id=doc_id))

    def list(self, limit: Any = None) -> List[TeamRegistration]:
        docs = self.store.list(REGISTRATIONS, limit=clamp_limit(limit, MAX_REGISTRATION_LIMIT))
        return [TeamRegistration.model_validate(doc) for doc in docs]

    def all(self) -> List[TeamRegistration]:
        """Every registration, unclamped (maintenance tooling only)"""
        return [TeamRegistration.model_validate(doc) for doc in self.store.list(REGISTRATIONS)]

    def find_by_lead_email(self, email: str) -> Optional[TeamRegistration]:
        normalized = normalize_email(email)
        if not normalized:
            return None
        doc = self.store.find_one(REGISTRATIONS, "lead.email", normalized)
        return TeamRegistration.model_validate(doc) if doc else None


class SubmissionGateway:
    """Final submissions; every accepted write is kept, none are merged"""

    def __init__(self, store: DocumentStore, clock: Callable[[], datetime] = utcnow):
        self.store = store
        self.clock = clock

    def save(self, record: FinalSubmission) -> FinalSubmission:
        doc = _stamped_document(record, self.clock())
        doc_id = self.store.insert(SUBMISSIONS, doc)
        logger.info(f"✅ Final submission '{record.project_name}' from {record.lead_email} | id={doc_id}")
        return FinalSubmission.model_validate(dict(doc, id=doc_id))

    def list(self, limit: Any = None) -> List[FinalSubmission]:
        docs = self.store.list(SUBMISSIONS, limit=clamp_limit(limit, MAX_SUBMISSION_LIMIT))
        return [FinalSubmission.model_validate(doc) for doc in docs]


class AccessKeyGateway:
    """submissionAccessKeys, one document per normalized lead email"""

    def __init__(self, store: DocumentStore):
        self.store = store

    def get(self, lead_email: str) -> Optional[Dict]:
        # Raw dict: legacy entries may hold a plain code instead of a hash
        normalized = normalize_email(lead_email)
        if not normalized:
            return None
        return self.store.get(ACCESS_KEYS, normalized)

    def put(self, entry: SubmissionAccessEntry) -> None:
        normalized = normalize_email(entry.lead_email)
        doc = entry.model_copy(update={"lead_email": normalized}).to_document()
        self.store.put(ACCESS_KEYS, normalized, doc)
