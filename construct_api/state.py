"""
Application state
Services shared by all routers, built once per app and kept on app.state.services
"""
from dataclasses import dataclass
from typing import Optional

from construct_api.core.access import AccessRegistry
from construct_api.core.rate_guard import InMemoryRateGuard, RateGuard
from construct_api.models import Settings
from construct_api.services.admin_sessions import AdminSessionStore
from construct_api.services.bot_verification import BotVerifier, build_bot_verifier
from construct_api.services.notifier import Notifier, build_notifier
from construct_api.services.store import DocumentStore, open_store
from construct_api.services.team_registry import (
    AccessKeyGateway, RegistrationGateway, SubmissionGateway,
)


@dataclass
class Services:
    settings: Settings
    store: DocumentStore
    registrations: RegistrationGateway
    submissions: SubmissionGateway
    access_keys: AccessKeyGateway
    access: AccessRegistry
    rate_guard: RateGuard
    notifier: Notifier
    bot_verifier: Optional[BotVerifier]
    admin_sessions: AdminSessionStore


def build_services(
    settings: Settings,
    store: Optional[DocumentStore] = None,
    notifier: Optional[Notifier] = None,
    bot_verifier: Optional[BotVerifier] = None,
    rate_guard: Optional[RateGuard] = None,
) -> Services:
    """Wire services from settings; explicit arguments replace the defaults"""
    if store is None:
        store = open_store(settings.storage)
    if rate_guard is None:
        limits = settings.rate_limit
        rate_guard = InMemoryRateGuard(
            window_seconds=limits.window_seconds,
            max_per_window=limits.max_per_window,
            min_interval_seconds=limits.min_interval_seconds,
        )
    if notifier is None:
        notifier = build_notifier(settings.email)
    if bot_verifier is None:
        bot_verifier = build_bot_verifier(settings.bot_verification)

    registrations = RegistrationGateway(store)
    access_keys = AccessKeyGateway(store)

    return Services(
        settings=settings,
        store=store,
        registrations=registrations,
        submissions=SubmissionGateway(store),
        access_keys=access_keys,
        access=AccessRegistry(registrations, access_keys),
        rate_guard=rate_guard,
        notifier=notifier,
        bot_verifier=bot_verifier,
        admin_sessions=AdminSessionStore(settings.admin.session_ttl_seconds),
    )
