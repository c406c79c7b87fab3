"""
Issue final-submission access codes for registered teams

Only hashes are stored; plain codes are written to a local JSON file for the
organizers to distribute.

Usage:
    python -m construct_api.issue_codes
    python -m construct_api.issue_codes --email lead@example.edu --update-existing
    python -m construct_api.issue_codes --out data/submission-codes-plain.json
"""
import argparse
import json
import logging
from pathlib import Path
from typing import Dict, Iterable, Optional

from construct_api.config import load_settings
from construct_api.core.access import AccessRegistry
from construct_api.services.store import open_store
from construct_api.services.team_registry import AccessKeyGateway, RegistrationGateway
from construct_api.utils import normalize_email


logger = logging.getLogger(__name__)

DEFAULT_OUT = "data/submission-codes-plain.json"


def issue_codes(
    registrations: RegistrationGateway,
    registry: AccessRegistry,
    emails: Optional[Iterable[str]] = None,
    update_existing: bool = False,
) -> Dict[str, Dict[str, str]]:
    """
    Generate codes for teams that lack one

    Args:
        registrations: Registration gateway
        registry: Access registry that stores the hashes
        emails: Restrict to these lead emails
        update_existing: Replace codes already issued in the registry

    Returns:
        lead email -> {"teamName", "code"} for every code issued
    """
    wanted = {normalize_email(e) for e in emails} if emails else None
    issued: Dict[str, Dict[str, str]] = {}

    for registration in registrations.all():
        email = normalize_email(registration.lead.email)
        if wanted is not None and email not in wanted:
            continue
        if registration.submission_access_code_hash:
            # Embedded hashes win over registry entries, a new entry would be ignored
            logger.warning(f"⚠️ {email} has an embedded access hash, skipping")
            continue
        if not update_existing and registry.access_keys.get(email):
            continue
        issued[email] = {
            "teamName": registration.team_name,
            "code": registry.issue_access_code(registration),
        }

    return issued


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Issue final-submission access codes")
    parser.add_argument("--config", help="Path to settings YAML")
    parser.add_argument("--email", action="append", help="Only this lead email (repeatable)")
    parser.add_argument("--update-existing", action="store_true", help="Reissue codes that already exist")
    parser.add_argument("--out", default=DEFAULT_OUT, help="Where to write the plain codes")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    settings = load_settings(args.config)
    store = open_store(settings.storage)
    try:
        registrations = RegistrationGateway(store)
        registry = AccessRegistry(registrations, AccessKeyGateway(store))
        issued = issue_codes(registrations, registry, args.email, args.update_existing)
    finally:
        store.close()

    out_path = Path(args.out)
    existing: Dict = {}
    if out_path.exists():
        with open(out_path, 'r', encoding='utf-8') as f:
            existing = json.load(f)
    existing.update(issued)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    with open(out_path, 'w', encoding='utf-8') as f:
        json.dump(existing, f, indent=2, ensure_ascii=False)

    print(f"✅ Issued {len(issued)} access code(s), plain codes in {out_path}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
