"""
Configuration loader

Settings come from a YAML file, then environment variables (a local .env is
honored) override individual keys. Secrets belong in the environment.
"""
import logging
import os
from pathlib import Path
from typing import Dict, Optional, Tuple

import yaml
from dotenv import load_dotenv

from construct_api.models import Settings


logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "config/settings.yaml"

# ENV_NAME -> (section, key); section None means top level
ENV_OVERRIDES: Dict[str, Tuple[Optional[str], str]] = {
    "APP_ENV": (None, "environment"),
    "ADMIN_USERNAME": ("admin", "username"),
    "ADMIN_PASSWORD": ("admin", "password"),
    "ADMIN_SESSION_TTL_SECONDS": ("admin", "session_ttl_seconds"),
    "ADMIN_SESSION_COOKIE_NAME": ("admin", "cookie_name"),
    "ADMIN_SESSION_COOKIE_SECURE": ("admin", "cookie_secure"),
    "STORAGE_BACKEND": ("storage", "backend"),
    "DATA_DIR": ("storage", "data_dir"),
    "MONGO_URL": ("storage", "mongo_url"),
    "MONGO_DATABASE": ("storage", "database"),
    "RECAPTCHA_SECRET_KEY": ("bot_verification", "secret_key"),
    "RECAPTCHA_MIN_SCORE": ("bot_verification", "min_score"),
    "SMTP_HOST": ("email", "smtp_host"),
    "SMTP_PORT": ("email", "smtp_port"),
    "SMTP_USERNAME": ("email", "username"),
    "SMTP_PASSWORD": ("email", "password"),
    "SMTP_USE_SSL": ("email", "use_ssl"),
    "EMAIL_FROM": ("email", "from_address"),
    "EMAIL_REPLY_TO": ("email", "reply_to"),
    "SUBMISSION_WINDOW_SECONDS": ("rate_limit", "window_seconds"),
    "SUBMISSION_MAX_PER_WINDOW": ("rate_limit", "max_per_window"),
    "SUBMISSION_MIN_INTERVAL_SECONDS": ("rate_limit", "min_interval_seconds"),
    "TRUST_FORWARDED_FOR": ("rate_limit", "trust_forwarded_for"),
}


def _is_true(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def apply_env_overrides(data: Dict, environ=None) -> Dict:
    """
    Overlay environment variables on raw config data

    Args:
        data: Raw mapping loaded from YAML (modified in place)
        environ: Mapping to read from (defaults to os.environ)

    Returns:
        The same mapping, for chaining
    """
    environ = os.environ if environ is None else environ

    for env_name, (section, key) in ENV_OVERRIDES.items():
        value = environ.get(env_name)
        if value is None or value == "":
            continue
        target = data if section is None else data.setdefault(section, {})
        target[key] = value

    # Closure switches: *_CLOSED=true or *_OPEN=false close the feature
    for feature, prefix in (("registration", "REGISTRATION"), ("submissions", "SUBMISSION")):
        closed = environ.get(f"{prefix}_CLOSED")
        opened = environ.get(f"{prefix}_OPEN")
        if closed is not None and _is_true(closed):
            data.setdefault(feature, {})["open"] = False
        elif opened is not None and opened.strip().lower() == "false":
            data.setdefault(feature, {})["open"] = False

    origins = environ.get("CORS_ORIGINS")
    if origins:
        data["cors_origins"] = [origin.strip() for origin in origins.split(",") if origin.strip()]

    return data


def load_settings(config_path: Optional[str] = None, environ=None) -> Settings:
    """
    Load configuration from YAML file plus environment overrides

    Args:
        config_path: Path to config file (default: $CONSTRUCT_CONFIG or config/settings.yaml)
        environ: Environment mapping, mainly for tests

    Returns:
        Settings object

    Raises:
        ValueError: If the config file does not hold a mapping
    """
    if environ is None:
        load_dotenv()
        environ = os.environ

    path = Path(config_path or environ.get("CONSTRUCT_CONFIG") or DEFAULT_CONFIG_PATH)

    data: Dict = {}
    if path.exists():
        with open(path, 'r', encoding='utf-8') as f:
            loaded = yaml.safe_load(f)
        if loaded is None:
            loaded = {}
        if not isinstance(loaded, dict):
            raise ValueError(f"Config file must contain a mapping: {path}")
        data = loaded
        logger.info(f"📄 Loaded configuration from {path}")
    else:
        logger.info(f"📄 No config file at {path}, using defaults")

    return Settings(**apply_env_overrides(data, environ))
