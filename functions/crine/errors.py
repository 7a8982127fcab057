"""
Error taxonomy for the data-access facade.

Backend failures (network, permission, not-found on update) are raised by the
Firestore client as google.api_core exceptions and are not wrapped here.
"""

from __future__ import annotations


class CrineError(Exception):
    """Base class for errors raised by the facade itself."""


class UnauthenticatedError(CrineError):
    """Raised when an operation requires a signed-in principal and none is present."""

    def __init__(self, message: str = "Sign-in required."):
        super().__init__(message)


class QuotaExceededError(CrineError):
    """Raised when a user already holds their maximum number of customers."""

    def __init__(self, limit: int):
        self.limit = limit
        super().__init__(f"Customer limit reached ({limit}).")
