"""
Utility functions
"""
import math
import re
from typing import Any

from pydantic import HttpUrl, TypeAdapter
from pydantic import ValidationError as PydanticValidationError


EMAIL_REGEX = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$", re.IGNORECASE)

HTTP_URL = TypeAdapter(HttpUrl)


def sanitize_string(value: Any) -> str:
    """
    Coerce a raw JSON value into a trimmed string

    Args:
        value: Any decoded JSON value

    Returns:
        Trimmed string for str input, str() of finite numbers, "" otherwise

    Example:
        >>> sanitize_string("  Team Rocket ")
        'Team Rocket'
        >>> sanitize_string(4)
        '4'
        >>> sanitize_string(None)
        ''
    """
    if isinstance(value, bool):
        return ""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float) and math.isfinite(value):
        return str(int(value)) if value.is_integer() else str(value)
    return ""


def normalize_email(value: Any) -> str:
    """Trim and lowercase an email-ish value"""
    return sanitize_string(value).lower()


def is_valid_email(email: str) -> bool:
    return bool(EMAIL_REGEX.match(email))


def email_domain(email: str) -> str:
    return email.rsplit("@", 1)[-1] if "@" in email else ""


def matches_domain(email: str, suffix: str) -> bool:
    """True if the email's domain is `suffix` or a subdomain of it"""
    domain = email_domain(email).lower()
    suffix = suffix.lower().lstrip("@")
    return domain == suffix or domain.endswith(f".{suffix}")


def normalize_url(value: Any) -> str:
    """
    Validate an http(s) URL

    Returns:
        The trimmed URL, or "" when it is empty, malformed or not http/https

    Example:
        >>> normalize_url(" https://github.com/team/repo ")
        'https://github.com/team/repo'
        >>> normalize_url("https://github.com:abc/team/repo")
        ''
    """
    trimmed = sanitize_string(value)
    if not trimmed or any(ch.isspace() for ch in trimmed):
        return ""
    try:
        HTTP_URL.validate_python(trimmed)
    except PydanticValidationError:
        return ""
    return trimmed
