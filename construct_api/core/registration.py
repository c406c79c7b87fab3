"""
Team registration validator

Rules (checked in order, first failure wins):
  - Payload must be a JSON object; honeypot fields must be empty
  - Team name required, team size an integer in [3, 5] (leader included)
  - Campus/batch/email-domain policy when campus rules are configured
  - Lead needs name, valid email and gender
  - Member slots 1..teamSize-1 are required, later slots are optional:
    empty optional slots are dropped, non-empty ones are still email-checked
  - Surviving members must number exactly teamSize - 1
  - At least one participant must be female

No I/O: the result carries a status and message instead of raising.
"""
from typing import Any, Dict, List, Optional

from construct_api.models import (
    CampusRule, Member, MemberSlot, Participant, RegistrationResult,
    SlotRole, TeamRegistration,
)
from construct_api.utils import (
    is_valid_email, matches_domain, normalize_email, sanitize_string,
)


MIN_TEAM_SIZE = 3
MAX_TEAM_SIZE = 5
MEMBER_SLOTS = MAX_TEAM_SIZE - 1    # slots rendered by the registration form
HONEYPOT_FIELDS = ("honeypot", "website", "phone", "url")
INCLUSION_GENDER = "female"


def plan_member_slots(team_size: int, slot_count: int = MEMBER_SLOTS) -> List[MemberSlot]:
    """
    Tag each member slot as required or optional for a declared team size

    Args:
        team_size: Declared team size including the leader
        slot_count: Number of member slots to plan

    Returns:
        MemberSlot list, slots numbered from 1

    Example:
        >>> [s.role.value for s in plan_member_slots(3)]
        ['required', 'required', 'optional', 'optional']
    """
    required = team_size - 1
    return [
        MemberSlot(slot=i + 1, role=SlotRole.REQUIRED if i < required else SlotRole.OPTIONAL)
        for i in range(slot_count)
    ]


def _fail(message: str, status: int = 400) -> RegistrationResult:
    return RegistrationResult(ok=False, status=status, error=message)


def _parse_team_size(value: Any) -> Optional[int]:
    raw = sanitize_string(value)
    try:
        size = int(raw)
    except ValueError:
        return None
    if size < MIN_TEAM_SIZE or size > MAX_TEAM_SIZE:
        return None
    return size


def validate_registration(
    payload: Any,
    campus_rules: Optional[Dict[str, CampusRule]] = None,
) -> RegistrationResult:
    """
    Validate and normalize a team registration payload

    Args:
        payload: Decoded JSON request body
        campus_rules: Optional campus -> CampusRule policy

    Returns:
        RegistrationResult with a normalized TeamRegistration on success.
        submitted_at is left empty for the gateway to stamp.
    """
    if not isinstance(payload, dict):
        return _fail("Invalid request body. Expected a JSON object.")

    if any(sanitize_string(payload.get(field)) for field in HONEYPOT_FIELDS):
        return _fail("Submission failed verification. Please contact the organizers if this persists.")

    team_name = sanitize_string(payload.get("teamName"))
    if not team_name:
        return _fail("Team name is required.")

    team_size = _parse_team_size(payload.get("teamSize"))
    if team_size is None:
        return _fail(
            f"Team size must be between {MIN_TEAM_SIZE} and {MAX_TEAM_SIZE} members (including the leader)."
        )

    campus = sanitize_string(payload.get("campus"))
    batch = sanitize_string(payload.get("batch"))
    rule: Optional[CampusRule] = None
    if campus_rules:
        rule = campus_rules.get(campus)
        if rule is None:
            return _fail("Please select your campus.")
        if batch not in rule.batches:
            allowed = ", ".join(rule.batches) or "the appropriate year"
            return _fail(f"{campus} students can register only for {allowed}.")

    def email_allowed(email: str) -> bool:
        if not is_valid_email(email):
            return False
        return rule is None or matches_domain(email, rule.email_domain)

    lead_input = payload.get("lead")
    if not isinstance(lead_input, dict):
        lead_input = {}
    lead_name = sanitize_string(lead_input.get("name"))
    lead_email = normalize_email(lead_input.get("email"))
    lead_gender = sanitize_string(lead_input.get("gender"))

    if not lead_name or not lead_email or not lead_gender:
        return _fail("Team lead name, email, and gender are required.")
    if not email_allowed(lead_email):
        if rule is not None:
            return _fail(f"Use your official {campus} student email (@{rule.email_domain}).")
        return _fail("Provide a valid email address for the team lead.")

    members_raw = payload.get("members")
    if not isinstance(members_raw, list):
        members_raw = []

    kept = []
    seen_emails = {lead_email}
    for slot, entry in zip(plan_member_slots(team_size, len(members_raw)), members_raw):
        if not isinstance(entry, dict):
            entry = {}
        name = sanitize_string(entry.get("name"))
        email = normalize_email(entry.get("email"))
        gender = sanitize_string(entry.get("gender"))

        if slot.role is SlotRole.REQUIRED:
            if not name or not email or not gender:
                return _fail("Each submitted teammate must include name, email, and gender.")
            if not email_allowed(email):
                if rule is not None:
                    return _fail(f"Every teammate must use their {campus} student email (@{rule.email_domain}).")
                return _fail("Every teammate must use a valid email address.")
        elif not name and not email and not gender:
            continue

        if email:
            if not email_allowed(email):
                return _fail("One or more teammate emails are not valid.")
            if email in seen_emails:
                return _fail("Each teammate must have a unique email address.")
            seen_emails.add(email)

        kept.append((name, email, gender))

    if len(kept) != team_size - 1:
        return _fail("Team size selection does not match submitted member details.")

    genders = [lead_gender] + [gender for _, _, gender in kept]
    if not any(g.lower() == INCLUSION_GENDER for g in genders):
        return _fail("Teams must include at least one female participant.")

    record = TeamRegistration(
        team_name=team_name,
        team_size=team_size,
        campus=campus or None,
        batch=batch or None,
        lead=Participant(name=lead_name, email=lead_email, gender=lead_gender),
        members=[
            Member(slot=index, name=name, email=email, gender=gender)
            for index, (name, email, gender) in enumerate(kept, start=1)
        ],
    )
    return RegistrationResult(ok=True, status=200, record=record)
