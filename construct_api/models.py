"""
Data models for the registration and final-submission portal

Wire and stored documents use camelCase keys; Python code uses snake_case.
"""
from datetime import datetime
from enum import Enum
from typing import Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model serialized with camelCase aliases"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_document(self) -> Dict:
        return self.model_dump(by_alias=True, mode="json")


# ==================== REGISTRATION ====================

class SlotRole(str, Enum):
    REQUIRED = "required"
    OPTIONAL = "optional"


class MemberSlot(BaseModel):
    """One UI member position and whether the declared team size mandates it"""
    slot: int       # 1-based position in the submitted members array
    role: SlotRole


class Participant(CamelModel):
    name: str
    email: str      # lowercased
    gender: Optional[str] = None


class Member(Participant):
    slot: int       # renumbered 1..N after empty optional slots are dropped


class TeamRegistration(CamelModel):
    """One accepted team, unique on lead email"""
    id: Optional[str] = None
    team_name: str
    team_size: int
    campus: Optional[str] = None
    batch: Optional[str] = None
    lead: Participant
    members: List[Member] = []
    # Placeholder until the gateway stamps the server time at write
    submitted_at: Optional[datetime] = None
    # Embedded access hash takes precedence over the separate registry entry
    submission_access_code_hash: Optional[str] = None


class RegistrationResult(BaseModel):
    ok: bool
    status: int = 200
    error: Optional[str] = None
    record: Optional[TeamRegistration] = None


# ==================== SUBMISSION ACCESS ====================

class SubmissionAccessEntry(CamelModel):
    """Hashed access code for one team, keyed by normalized lead email"""
    lead_email: str
    access_code_hash: str
    team_name: Optional[str] = None
    campus: Optional[str] = None
    batch: Optional[str] = None
    generated_at: Optional[datetime] = None


class RawCode(BaseModel):
    """Plaintext access code as distributed to the team"""
    kind: Literal["raw"] = "raw"
    value: str


class HashedCode(BaseModel):
    """Previously verified hash cached by the client"""
    kind: Literal["hashed"] = "hashed"
    value: str


Credential = Union[RawCode, HashedCode]


class AccessResult(BaseModel):
    status: int
    error: Optional[str] = None
    registration: Optional[TeamRegistration] = None
    hash: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == 200


# ==================== FINAL SUBMISSION ====================

class RegistrationSnapshot(CamelModel):
    """Denormalized copy of the originating registration"""
    id: Optional[str] = None
    team_name: Optional[str] = None
    team_size: Optional[int] = None
    campus: Optional[str] = None
    batch: Optional[str] = None
    lead: Optional[Participant] = None
    members: List[Member] = []
    submitted_at: Optional[datetime] = None


class FinalSubmission(CamelModel):
    id: Optional[str] = None
    project_name: str
    team_name: str
    lead_email: str
    deck_url: str
    repo_url: str
    demo_url: Optional[str] = None
    documentation_url: Optional[str] = None
    notes: Optional[str] = None
    access_hash: Optional[str] = None
    registration: Optional[RegistrationSnapshot] = None
    submitted_at: Optional[datetime] = None


class SubmissionResult(BaseModel):
    ok: bool
    status: int = 200
    error: Optional[str] = None
    record: Optional[FinalSubmission] = None


# ==================== COLLABORATORS ====================

class BotVerdict(BaseModel):
    """Response of the bot-verification provider"""
    success: bool
    score: Optional[float] = None
    action: Optional[str] = None


class CampusRule(BaseModel):
    """Email domain and allowed batches for one campus"""
    email_domain: str
    batches: List[str] = Field(default_factory=list)


# ==================== CONFIGURATION ====================

class RegistrationSettings(BaseModel):
    open: bool = True
    # campus name -> policy; empty disables campus/batch/domain checks
    campuses: Dict[str, CampusRule] = Field(default_factory=dict)


class SubmissionSettings(BaseModel):
    open: bool = True


class RateLimitSettings(BaseModel):
    window_seconds: float = 3600.0
    max_per_window: int = 5
    min_interval_seconds: float = 60.0
    trust_forwarded_for: bool = True


class StorageSettings(BaseModel):
    backend: Literal["auto", "local", "mongo"] = "auto"
    data_dir: str = "data"
    mongo_url: Optional[str] = None
    database: str = "construct"
    connect_timeout_ms: int = 3000


class AdminSettings(BaseModel):
    username: str = "admin"
    password: Optional[str] = None
    session_ttl_seconds: int = 12 * 60 * 60
    cookie_name: str = "construct_admin_session"
    cookie_secure: Optional[bool] = None    # defaults to True in production


class BotVerificationSettings(BaseModel):
    secret_key: Optional[str] = None
    min_score: float = 0.5
    expected_action: str = "registration"
    verify_url: str = "https://www.google.com/recaptcha/api/siteverify"
    timeout_seconds: float = 10.0


class EmailSettings(BaseModel):
    smtp_host: Optional[str] = None
    smtp_port: int = 587
    username: Optional[str] = None
    password: Optional[str] = None
    use_tls: bool = True
    use_ssl: bool = False
    from_address: Optional[str] = None
    reply_to: Optional[str] = None
    timeout_seconds: float = 15.0

    @property
    def configured(self) -> bool:
        return bool(self.smtp_host and self.username and self.password)


class Settings(BaseModel):
    """Application configuration"""
    environment: Literal["development", "production"] = "development"
    cors_origins: List[str] = Field(default_factory=lambda: ["*"])
    registration: RegistrationSettings = Field(default_factory=RegistrationSettings)
    submissions: SubmissionSettings = Field(default_factory=SubmissionSettings)
    rate_limit: RateLimitSettings = Field(default_factory=RateLimitSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    admin: AdminSettings = Field(default_factory=AdminSettings)
    bot_verification: BotVerificationSettings = Field(default_factory=BotVerificationSettings)
    email: EmailSettings = Field(default_factory=EmailSettings)

    @property
    def is_production(self) -> bool:
        return self.environment == "production"
