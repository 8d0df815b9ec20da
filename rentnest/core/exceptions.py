"""
core/exceptions.py

Domain errors raised by the services. Routers never build HTTPExceptions for
business-rule failures; the handler registered in ``main.py`` renders these.
"""

from typing import Dict, Optional

from fastapi import status


class RentnestError(Exception):
    status_code: int = status.HTTP_400_BAD_REQUEST
    default_message: str = "Request failed"
    headers: Optional[Dict[str, str]] = None

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    @property
    def kind(self) -> str:
        return type(self).__name__


class ValidationError(RentnestError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid input"


class DuplicateIdentity(RentnestError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "User already exists"


class InvalidCredentials(RentnestError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Invalid credentials"


class AccountDisabled(RentnestError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Your account has been deactivated. Please contact support."


class Unauthenticated(RentnestError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Not authenticated"
    headers = {"WWW-Authenticate": "Bearer"}


class Forbidden(RentnestError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "You are not authorized to perform this action"


class NotFound(RentnestError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Resource not found"


class UpstreamFailure(RentnestError):
    """Blob store or storage fault. The message is never shown to clients."""

    status_code = status.HTTP_502_BAD_GATEWAY
    default_message = "Upstream service failure"
    public_message = "Server error. Please try again later."
