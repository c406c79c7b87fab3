"""
Error taxonomy shared by services and request handlers

Expected validation and access failures are returned as result objects by the
core; these exceptions carry the ones that cross the handler boundary.
"""
from typing import Dict, Optional


class PortalError(Exception):
    """Base error rendered as {"error": message} with its HTTP status"""
    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None,
                 headers: Optional[Dict[str, str]] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.headers = headers


class ValidationError(PortalError):
    status_code = 400


class AuthError(PortalError):
    status_code = 401


class ForbiddenError(PortalError):
    """Feature closed, independent of credentials"""
    status_code = 403


class NotFoundError(PortalError):
    status_code = 404


class DuplicateRegistrationError(PortalError):
    status_code = 409

    def __init__(self, email: str):
        super().__init__(f"A registration already exists for {email}.")
        self.email = email


class RateLimitError(PortalError):
    status_code = 429


class StorageError(PortalError):
    """Document store unreachable, uninitialized or failing"""
    status_code = 500


class ConfigurationError(PortalError):
    status_code = 503
