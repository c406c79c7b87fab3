"""
Bot verification (reCAPTCHA v3 style score check)
"""
import logging
from abc import ABC, abstractmethod
from typing import Optional

import requests

from construct_api.models import BotVerdict, BotVerificationSettings


logger = logging.getLogger(__name__)


class BotVerifier(ABC):
    @abstractmethod
    def verify(self, token: str, client_ip: Optional[str] = None) -> BotVerdict:
        """Ask the provider whether a client token is human"""


class RecaptchaVerifier(BotVerifier):
    def __init__(self, settings: BotVerificationSettings, session: Optional[requests.Session] = None):
        self.settings = settings
        self.session = session or requests.Session()

    def verify(self, token: str, client_ip: Optional[str] = None) -> BotVerdict:
        data = {"secret": self.settings.secret_key, "response": token}
        if client_ip:
            data["remoteip"] = client_ip
        response = self.session.post(
            self.settings.verify_url, data=data, timeout=self.settings.timeout_seconds
        )
        response.raise_for_status()
        payload = response.json()
        return BotVerdict(
            success=bool(payload.get("success")),
            score=payload.get("score"),
            action=payload.get("action"),
        )


def build_bot_verifier(settings: BotVerificationSettings) -> Optional[BotVerifier]:
    """None when no secret is configured (verification disabled)"""
    if not settings.secret_key:
        return None
    return RecaptchaVerifier(settings)


def check_bot_verdict(verdict: BotVerdict, settings: BotVerificationSettings) -> Optional[str]:
    """
    Apply score threshold and action match

    Returns:
        Error message for the client, or None if the verdict passes
    """
    if not verdict.success:
        return "Verification failed. Please try again."
    if verdict.score is not None and verdict.score < settings.min_score:
        return "Verification score too low. Refresh the page and try again."
    if verdict.action and verdict.action != settings.expected_action:
        return "Verification mismatch. Please try again."
    return None
